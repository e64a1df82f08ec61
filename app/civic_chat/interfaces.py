"""
Abstractions for pluggable collaborators. The controller depends on these
protocols, not on concrete services, so tests can pass simple fakes.

Common protocols:
- CompletionGateway.complete(system_prompt, user_message, max_tokens, temperature) -> str
- SessionBackend.save(session) / list() / delete(session_id)
- EscalationSink.escalate(question, context) -> bool
- PromptFactory.build_system(strict=...) -> str
"""

from __future__ import annotations
from typing import Protocol

from .models import ChatSession


class CompletionGateway(Protocol):
    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: int,
        temperature: float,
    ) -> str: ...


class SessionBackend(Protocol):
    def save(self, session: ChatSession) -> None: ...

    def list(self) -> list[ChatSession]: ...

    def delete(self, session_id: str) -> None: ...


class EscalationSink(Protocol):
    def escalate(self, question: str, context: str) -> bool: ...


class PromptFactory(Protocol):
    def build_system(self, *, strict: bool = False) -> str: ...
