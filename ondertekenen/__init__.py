"""
Async client for the Signhost digital signing API.

Signhost (branded Ondertekenen.nl in The Netherlands) signs, seals and
delivers documents. A transaction groups the files to sign with their
signers; it is created, gets its files uploaded, and is then started, after
which signers receive their sign requests.
"""

from .client import (
    ClientType,
    InMemorySigningClient,
    OperationResult,
    PostbackEvent,
    SignhostAuthenticationError,
    SignhostClient,
    SignhostConnectionError,
    SignhostError,
    SignhostNotFoundError,
    SignhostValidationError,
    SigningClient,
    SigningClientFactory,
)
from .schemas import (
    Document,
    FileEntry,
    FileMetaData,
    Link,
    Receipt,
    Receiver,
    Signer,
    Transaction,
    TransactionStatus,
)

__version__ = "0.1.0"

__all__ = [
    "ClientType",
    "InMemorySigningClient",
    "OperationResult",
    "PostbackEvent",
    "SignhostAuthenticationError",
    "SignhostClient",
    "SignhostConnectionError",
    "SignhostError",
    "SignhostNotFoundError",
    "SignhostValidationError",
    "SigningClient",
    "SigningClientFactory",
    "Document",
    "FileEntry",
    "FileMetaData",
    "Link",
    "Receipt",
    "Receiver",
    "Signer",
    "Transaction",
    "TransactionStatus",
]
