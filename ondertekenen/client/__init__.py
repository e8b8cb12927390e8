"""
Signing client modules

Provides the client contract, its Signhost and in-memory implementations
and the factory that selects between them.
"""

from .base import (
    ClientType,
    OperationResult,
    PostbackEvent,
    SignhostAuthenticationError,
    SignhostConnectionError,
    SignhostError,
    SignhostNotFoundError,
    SignhostValidationError,
    SigningClient,
    SigningClientFactory,
)
from .memory_adapter import InMemorySigningClient
from .signhost_adapter import SignhostClient

SigningClientFactory.register_client(ClientType.SIGNHOST, SignhostClient)
SigningClientFactory.register_client(ClientType.IN_MEMORY, InMemorySigningClient)

__all__ = [
    "ClientType",
    "OperationResult",
    "PostbackEvent",
    "SignhostAuthenticationError",
    "SignhostConnectionError",
    "SignhostError",
    "SignhostNotFoundError",
    "SignhostValidationError",
    "SigningClient",
    "SigningClientFactory",
    "InMemorySigningClient",
    "SignhostClient",
]
