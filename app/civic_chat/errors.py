"""Error hierarchy for the chat core."""

from __future__ import annotations
from typing import Any, Optional


class CivicChatError(Exception):
    def __init__(
        self,
        code: str = "civic_chat_error",
        message: str = "",
        details: Optional[Any] = None,
    ):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(message)


class CredentialError(CivicChatError, ValueError):
    def __init__(self, message: str = "Missing API key", details: Any = None):
        super().__init__(code="credential_error", message=message, details=details)


class GatewayError(CivicChatError):
    def __init__(self, message: str = "Completion failed", details: Any = None):
        super().__init__(code="gateway_error", message=message, details=details)


class TransportError(GatewayError):
    def __init__(self, message: str = "Network error", details: Any = None):
        super().__init__(message=message, details=details)
        self.code = "transport_error"


class AuthError(GatewayError):
    def __init__(self, message: str = "Authentication failed", details: Any = None):
        super().__init__(message=message, details=details)
        self.code = "auth_error"


class TurnInProgressError(CivicChatError):
    def __init__(self, message: str = "A reply is still in progress", details: Any = None):
        super().__init__(code="turn_in_progress", message=message, details=details)
