"""
Purpose: The one process-wide credential ("the API key").
Backed by any mutable mapping: a dict in tests, st.session_state in the app.
Seeded from OPENAI_API_KEY at startup when the mapping has no key yet.
"""

from __future__ import annotations
import os
from typing import MutableMapping, Optional

from ..config import API_KEY_ENV
from ..services.security import DefaultSecurity

CREDENTIAL_KEY = "openai_api_key"


class CredentialStore:
    def __init__(
        self,
        storage: Optional[MutableMapping] = None,
        *,
        env_var: Optional[str] = API_KEY_ENV,
    ) -> None:
        self._storage = storage if storage is not None else {}
        self._security = DefaultSecurity()
        if env_var and not self._storage.get(CREDENTIAL_KEY):
            seeded = os.getenv(env_var, "").strip()
            if seeded:
                self._storage[CREDENTIAL_KEY] = seeded

    def get(self) -> str:
        return self._storage.get(CREDENTIAL_KEY) or ""

    def has_valid(self) -> bool:
        try:
            self._security.validate_api_key(self.get())
        except ValueError:
            return False
        return True

    def set(self, key: str) -> str:
        """Validate locally, then store. Raises CredentialError."""
        key = self._security.validate_api_key(key)
        self._storage[CREDENTIAL_KEY] = key
        return key

    def clear(self) -> None:
        self._storage.pop(CREDENTIAL_KEY, None)
