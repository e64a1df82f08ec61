"""
Purpose: Play a ReasoningPlan as a timed sequence of "current step" labels.
Pure theatre: no data is read, it only produces a perceptible interval
before the completion call.

Testing: Inject a fake async sleep and a seeded random.Random; assert the
sequence of steps and the sum of waits.
"""

from __future__ import annotations
import asyncio
import logging
import random
from enum import Enum
from typing import Awaitable, Callable, Optional

from ..models import ReasoningPlan

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
StepListener = Callable[[str], None]


class SimulatorState(str, Enum):
    IDLE = "idle"
    STEPPING = "stepping"


class ReasoningSimulator:
    def __init__(
        self,
        *,
        rng: Optional[random.Random] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.rng = rng or random.Random()
        self.sleep = sleep
        self.state = SimulatorState.IDLE
        self.current_step: str = ""
        self.elapsed_ms: float = 0.0

    def _reset(self) -> None:
        self.state = SimulatorState.IDLE
        self.current_step = ""

    async def run(
        self,
        plan: ReasoningPlan,
        *,
        on_step: Optional[StepListener] = None,
        is_current: Callable[[], bool] = lambda: True,
    ) -> bool:
        """
        Step through the plan. Returns False if is_current() went stale
        mid-sequence; in that case no listener is called after the switch.
        """
        self.elapsed_ms = 0.0
        if not plan.show_reasoning or not plan.steps:
            self._reset()
            return True

        self.state = SimulatorState.STEPPING
        try:
            for step in plan.steps:
                if not is_current():
                    logger.debug("Reasoning abandoned before step %r", step)
                    return False
                self.current_step = step
                if on_step:
                    on_step(step)

                wait_ms = plan.timing.base_delay_ms + self.rng.random() * (
                    plan.timing.jitter_ms
                )
                await self.sleep(wait_ms / 1000)
                self.elapsed_ms += wait_ms

            return is_current()
        finally:
            self._reset()
