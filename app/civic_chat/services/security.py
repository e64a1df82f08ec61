"""
Purpose: Guardrails for inputs and the credential.
Content: early, predictable failures before anything reaches the network.
"""

from ..config import API_KEY_PREFIX
from ..errors import CredentialError

MAX_INPUT_CHARS = 4000


class DefaultSecurity:
    def validate_user_input(self, text: str) -> None:
        if not (text or "").strip():
            raise ValueError("Please enter a non-empty message.")
        if len(text) > MAX_INPUT_CHARS:
            raise ValueError("Your message is too long.")

    def sanitize_for_prompt(self, text: str) -> str:
        return (text or "").replace("\x00", "").strip()

    def validate_api_key(self, key: str) -> str:
        key = (key or "").strip()
        if not key:
            raise CredentialError("Please enter your OpenAI API key")
        if not key.startswith(API_KEY_PREFIX):
            raise CredentialError(f'OpenAI API keys should start with "{API_KEY_PREFIX}"')
        return key
