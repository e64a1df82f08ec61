"""
Purpose: Progressive disclosure of an already complete reply, one
character per tick. The completion callback fires exactly once per text.
"""

from __future__ import annotations
import asyncio
from typing import Awaitable, Callable, Optional

Sleep = Callable[[float], Awaitable[None]]


class RevealScheduler:
    def __init__(self, interval_ms: int = 8, *, sleep: Sleep = asyncio.sleep):
        self.interval_ms = interval_ms
        self.sleep = sleep
        self.text: str = ""
        self.revealed: str = ""
        self.done: bool = False
        self._generation = 0

    @property
    def in_progress(self) -> bool:
        return bool(self.text) and not self.done

    def restart(self, text: str) -> int:
        """Reset revealed-so-far state for a new text."""
        self._generation += 1
        self.text = text or ""
        self.revealed = ""
        self.done = False
        return self._generation

    async def reveal(
        self,
        text: str,
        *,
        on_progress: Optional[Callable[[str], None]] = None,
        on_complete: Optional[Callable[[], None]] = None,
        is_current: Callable[[], bool] = lambda: True,
    ) -> bool:
        """
        Returns True once the whole text was shown and on_complete fired.
        Returns False if a newer reveal or a stale session interrupted it.
        """
        generation = self.restart(text)

        for ch in self.text:
            await self.sleep(self.interval_ms / 1000)
            if generation != self._generation or not is_current():
                return False
            self.revealed += ch
            if on_progress:
                on_progress(self.revealed)

        if generation != self._generation or not is_current():
            return False
        if not self.done:
            self.done = True
            if on_complete:
                on_complete()
        return True
