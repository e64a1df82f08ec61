"""Civic Chat: conversational assistant core (turn pipeline, sessions, classifiers)."""

from .config import APP_VERSION as __version__
from .controller import ChatTurnController
from .errors import (
    AuthError,
    CivicChatError,
    CredentialError,
    GatewayError,
    TransportError,
    TurnInProgressError,
)

__all__ = [
    "ChatTurnController",
    "CivicChatError",
    "CredentialError",
    "GatewayError",
    "TransportError",
    "AuthError",
    "TurnInProgressError",
    "__version__",
]
