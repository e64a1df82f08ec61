"""Facade over the persona prompt builders."""

from __future__ import annotations
from typing import Optional

from ..config import CANONICAL_REFUSAL
from .persona import PersonaProfile, build_persona_system


class DefaultPromptFactory:
    def __init__(
        self,
        persona: Optional[PersonaProfile] = None,
        canonical_refusal: str = CANONICAL_REFUSAL,
    ):
        self.persona = persona or PersonaProfile()
        self.canonical_refusal = canonical_refusal

    def build_system(self, *, strict: bool = False) -> str:
        return build_persona_system(
            self.persona,
            canonical_refusal=self.canonical_refusal if strict else None,
        )


__all__ = ["DefaultPromptFactory", "PersonaProfile", "build_persona_system"]
