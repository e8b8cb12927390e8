"""
Signing Client Base Classes and Interfaces

Defines the contract every Signhost client implementation follows,
the operation result types and the error taxonomy.
"""

import asyncio
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from ondertekenen.schemas import (
    Document,
    FileMetaData,
    Receipt,
    Transaction,
    TransactionStatus,
)

FileSource = Union[str, os.PathLike, bytes]
TransactionRef = Union[str, Transaction]


class ClientType(str, Enum):
    """Available client implementations."""
    SIGNHOST = "signhost"
    IN_MEMORY = "in_memory"


@dataclass
class OperationResult:
    """Outcome of an operation that has no payload of its own."""
    success: bool
    operation: str
    transaction_id: str
    file_id: Optional[str] = None
    status_code: Optional[int] = None
    completed_at: Optional[datetime] = None
    provider_response: Optional[Dict[str, Any]] = None


@dataclass
class PostbackEvent:
    """A postback whose checksum has been verified."""
    transaction_id: str
    status: TransactionStatus
    checksum: str
    transaction: Transaction
    received_at: datetime


class SignhostError(Exception):
    """Signing service errors."""

    default_error_code = "api_error"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        status_code: Optional[int] = None,
        provider_response: Optional[Dict[str, Any]] = None,
        transaction_id: Optional[str] = None
    ):
        super().__init__(message)
        self.error_message = message
        self.error_code = error_code or self.default_error_code
        self.status_code = status_code
        self.provider_response = provider_response
        self.transaction_id = transaction_id


class SignhostConnectionError(SignhostError):
    """The service could not be reached or did not answer in time."""

    default_error_code = "connection_error"


class SignhostAuthenticationError(SignhostError):
    """Credentials were rejected or lack permission."""

    default_error_code = "AUTH_ERROR"


class SignhostNotFoundError(SignhostError):
    """Unknown transaction, file or document id."""

    default_error_code = "NOT_FOUND"


class SignhostValidationError(SignhostError):
    """The request was malformed or not allowed in the current state."""

    default_error_code = "VALIDATION_ERROR"


class SigningClient(ABC):
    """Abstract base class for signing service clients."""

    def __init__(self, **config):
        """Initialize the client with configuration."""
        self.config = config
        self.client_type = self._get_client_type()

    @abstractmethod
    def _get_client_type(self) -> ClientType:
        """Return the client type identifier."""
        pass

    @abstractmethod
    async def get_signed_document(
        self,
        transaction_id: str,
        file_id: str,
        send_sign_request: bool = False
    ) -> Document:
        """
        Get the signed version of a file in a transaction.

        Args:
            transaction_id: The transaction ID
            file_id: The file ID within the transaction
            send_sign_request: If True the sender and signer also receive the
                signed document and receipt by email

        Returns:
            Document with the signed file content

        Raises:
            SignhostNotFoundError: If the transaction or file is unknown
            SignhostError: If retrieval fails
        """
        pass

    @abstractmethod
    async def get_receipt(self, document_id: str, send_sign_request: bool = False) -> Receipt:
        """
        Get the signing receipt for a document.

        Args:
            document_id: The document ID
            send_sign_request: If True the sender and signer also receive the
                signed document and receipt by email

        Returns:
            Receipt for the given document

        Raises:
            SignhostNotFoundError: If no receipt exists for the document
            SignhostError: If retrieval fails
        """
        pass

    @abstractmethod
    async def get_transaction(self, transaction_id: str) -> Transaction:
        """
        Get a transaction by id.

        Raises:
            SignhostNotFoundError: If the transaction is unknown
        """
        pass

    @abstractmethod
    async def delete_transaction(
        self,
        transaction: TransactionRef,
        send_notification: bool = False,
        reason: Optional[str] = None
    ) -> Transaction:
        """
        Delete (cancel) a transaction.

        Args:
            transaction: The transaction ID, or the transaction itself
            send_notification: True if signers should be notified of the cancelling
            reason: The reason of the cancel

        Returns:
            The transaction that was removed

        Raises:
            SignhostNotFoundError: If the transaction is unknown
            SignhostValidationError: If a Transaction without id is given
        """
        pass

    @abstractmethod
    async def create_transaction(self, transaction: Transaction) -> Transaction:
        """
        Create a new transaction.

        Args:
            transaction: Fully populated request object (without id)

        Returns:
            The created transaction, carrying its assigned id
        """
        pass

    @abstractmethod
    async def upload_file(
        self,
        transaction: Transaction,
        file: FileSource,
        file_id: Optional[str] = None
    ) -> OperationResult:
        """
        Upload a PDF to an existing transaction.

        Args:
            transaction: The transaction the file is appended to
            file: Path of the file, or its raw content
            file_id: File identifier; defaults to the file name for paths

        Returns:
            OperationResult of the upload

        Raises:
            SignhostValidationError: If the transaction was never created or
                no file id can be determined
        """
        pass

    @abstractmethod
    async def upload_file_metadata(
        self,
        transaction: Transaction,
        file_metadata: FileMetaData,
        file_identifier: str
    ) -> OperationResult:
        """
        Upload metadata for a file with the given identifier.

        Raises:
            SignhostValidationError: If the transaction was never created
        """
        pass

    @abstractmethod
    async def start_transaction(self, transaction_id: str) -> OperationResult:
        """
        Start a transaction, sending out the sign requests.

        Raises:
            SignhostNotFoundError: If the transaction is unknown
        """
        pass

    async def close(self) -> None:
        """Release held resources."""
        return None

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    @staticmethod
    def _transaction_id_of(transaction: TransactionRef, operation: str) -> str:
        """Resolve a transaction reference to its id, rejecting uncreated transactions."""
        transaction_id = transaction.id if isinstance(transaction, Transaction) else transaction
        if not transaction_id:
            raise SignhostValidationError(
                message=f"Cannot {operation}: transaction has not been created yet",
                error_code="transaction_not_created"
            )
        return transaction_id

    @staticmethod
    async def _resolve_file(file: FileSource, file_id: Optional[str]) -> Tuple[bytes, str]:
        """Read the file content and determine the file id.

        Paths are read in a worker thread so large PDFs do not block the event loop.
        """
        if isinstance(file, (bytes, bytearray)):
            if not file_id:
                raise SignhostValidationError(
                    message="file_id is required when uploading raw content",
                    error_code="file_id_required"
                )
            return bytes(file), file_id

        path = os.fspath(file)
        if not os.path.isfile(path):
            raise SignhostValidationError(
                message=f"File not found: {path}",
                error_code="file_not_found"
            )
        content = await asyncio.to_thread(_read_file, path)
        return content, file_id or os.path.basename(path)


class SigningClientFactory:
    """Factory for creating signing client instances."""

    _clients: Dict[ClientType, type] = {}

    @classmethod
    def register_client(
        cls,
        client_type: ClientType,
        client_class: type[SigningClient]
    ):
        """Register a client implementation."""
        cls._clients[client_type] = client_class

    @classmethod
    def create_client(
        cls,
        client_type: ClientType,
        **config
    ) -> SigningClient:
        """Create a client instance."""
        if client_type not in cls._clients:
            raise ValueError(f"Unsupported client type: {client_type}")

        client_class = cls._clients[client_type]
        return client_class(**config)

    @classmethod
    def get_supported_clients(cls) -> List[ClientType]:
        """Get list of registered client types."""
        return list(cls._clients.keys())


def _read_file(path: str) -> bytes:
    with open(path, "rb") as handle:
        return handle.read()
