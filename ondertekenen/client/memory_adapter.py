"""
In-memory Signing Client

Keeps transactions, files and metadata in process and enforces the
transaction lifecycle (pending -> started -> signed | cancelled) the way the
live service does. Used for development and tests.
"""

import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from ondertekenen.core.logging import get_logger
from ondertekenen.schemas import (
    PDF_CONTENT_TYPE,
    Document,
    FileEntry,
    FileMetaData,
    Link,
    Receipt,
    Transaction,
    TransactionStatus,
)
from ondertekenen.schemas.transaction import STARTED_STATUSES

from .base import (
    ClientType,
    FileSource,
    OperationResult,
    SignhostNotFoundError,
    SignhostValidationError,
    SigningClient,
    TransactionRef,
)

logger = get_logger(__name__)


class InMemorySigningClient(SigningClient):
    """Signing client backed by dictionaries."""

    def __init__(self, base_url: str = "memory://signhost", **config):
        super().__init__(base_url=base_url, **config)
        self.base_url = base_url.rstrip('/')
        self._transactions: Dict[str, Transaction] = {}
        self._files: Dict[Tuple[str, str], bytes] = {}
        self._metadata: Dict[Tuple[str, str], FileMetaData] = {}
        # (recipient kind, transaction id) for every email the flags would trigger
        self.notifications: List[Tuple[str, str]] = []

    def _get_client_type(self) -> ClientType:
        """Return the client type identifier."""
        return ClientType.IN_MEMORY

    async def get_signed_document(
        self,
        transaction_id: str,
        file_id: str,
        send_sign_request: bool = False
    ) -> Document:
        transaction = self._get(self._transaction_id_of(transaction_id, "get signed document"))
        if transaction.status != TransactionStatus.SIGNED:
            raise SignhostNotFoundError(
                message=f"No signed document for file {file_id}: transaction is not signed",
                transaction_id=transaction.id
            )

        content = self._files.get((transaction.id, file_id))
        if content is None:
            raise SignhostNotFoundError(
                message=f"File {file_id} not found in transaction {transaction.id}",
                transaction_id=transaction.id
            )

        if send_sign_request:
            self.notifications.append(("signed_document", transaction.id))
        return Document(transaction_id=transaction.id, file_id=file_id, content=content)

    async def get_receipt(self, document_id: str, send_sign_request: bool = False) -> Receipt:
        """Receipts exist once every signer has signed; ``document_id`` is the transaction id."""
        transaction = self._get(document_id)
        if transaction.status != TransactionStatus.SIGNED:
            raise SignhostNotFoundError(
                message=f"No receipt for document {document_id}: transaction is not signed",
                transaction_id=transaction.id
            )

        if send_sign_request:
            self.notifications.append(("receipt", transaction.id))
        content = f"%PDF-1.4\n% receipt for transaction {transaction.id}\n".encode("utf-8")
        return Receipt(document_id=document_id, content=content, content_type=PDF_CONTENT_TYPE)

    async def get_transaction(self, transaction_id: str) -> Transaction:
        return self._get(self._transaction_id_of(transaction_id, "get transaction"))

    async def delete_transaction(
        self,
        transaction: TransactionRef,
        send_notification: bool = False,
        reason: Optional[str] = None
    ) -> Transaction:
        transaction_id = self._transaction_id_of(transaction, "delete transaction")
        current = self._get(transaction_id)

        removed = current.model_copy(update={
            "status": TransactionStatus.CANCELLED,
            "cancellation_reason": reason,
            "cancelled_date_time": datetime.now(timezone.utc),
        })
        del self._transactions[transaction_id]
        for key in [key for key in self._files if key[0] == transaction_id]:
            del self._files[key]
        for key in [key for key in self._metadata if key[0] == transaction_id]:
            del self._metadata[key]

        if send_notification:
            self.notifications.append(("cancellation", transaction_id))
        logger.info("memory.transaction.deleted", transaction_id=transaction_id)
        return removed

    async def create_transaction(self, transaction: Transaction) -> Transaction:
        if transaction.id:
            raise SignhostValidationError(
                message=f"Transaction {transaction.id} has already been created",
                transaction_id=transaction.id
            )

        created = transaction.model_copy(update={
            "id": str(uuid.uuid4()),
            "status": TransactionStatus.WAITING_FOR_DOCUMENT,
            "created_date_time": datetime.now(timezone.utc),
        })
        self._transactions[created.id] = created
        logger.info("memory.transaction.created", transaction_id=created.id)
        return created

    async def upload_file(
        self,
        transaction: Transaction,
        file: FileSource,
        file_id: Optional[str] = None
    ) -> OperationResult:
        transaction_id = self._transaction_id_of(transaction, "upload file")
        current = self._get_pending(transaction_id, "upload file")
        content, file_id = await self._resolve_file(file, file_id)

        self._files[(transaction_id, file_id)] = content
        metadata = self._metadata.get((transaction_id, file_id))
        self._put_file_entry(current, file_id, metadata.display_name if metadata else None)

        return OperationResult(
            success=True,
            operation="upload_file",
            transaction_id=transaction_id,
            file_id=file_id,
            completed_at=datetime.now(timezone.utc),
        )

    async def upload_file_metadata(
        self,
        transaction: Transaction,
        file_metadata: FileMetaData,
        file_identifier: str
    ) -> OperationResult:
        transaction_id = self._transaction_id_of(transaction, "upload file metadata")
        if not file_identifier:
            raise SignhostValidationError(
                message="file_identifier is required",
                error_code="file_id_required",
                transaction_id=transaction_id
            )
        current = self._get_pending(transaction_id, "upload file metadata")

        self._metadata[(transaction_id, file_identifier)] = file_metadata
        if file_identifier in current.files:
            self._put_file_entry(current, file_identifier, file_metadata.display_name)

        return OperationResult(
            success=True,
            operation="upload_file_metadata",
            transaction_id=transaction_id,
            file_id=file_identifier,
            completed_at=datetime.now(timezone.utc),
        )

    async def start_transaction(self, transaction_id: str) -> OperationResult:
        transaction_id = self._transaction_id_of(transaction_id, "start transaction")
        current = self._get_pending(transaction_id, "start transaction")
        if not current.files:
            raise SignhostValidationError(
                message=f"Transaction {transaction_id} has no files to sign",
                error_code="no_files",
                transaction_id=transaction_id
            )

        self._transactions[transaction_id] = current.model_copy(
            update={"status": TransactionStatus.WAITING_FOR_SIGNER}
        )
        for signer in current.signers:
            if signer.send_sign_request is not False:
                self.notifications.append(("sign_request", transaction_id))
        logger.info("memory.transaction.started", transaction_id=transaction_id)
        return OperationResult(
            success=True,
            operation="start_transaction",
            transaction_id=transaction_id,
            completed_at=datetime.now(timezone.utc),
        )

    def sign_transaction(self, transaction_id: str) -> Transaction:
        """Simulate every signer completing a started transaction."""
        current = self._get(transaction_id)
        if current.status not in STARTED_STATUSES:
            raise SignhostValidationError(
                message=f"Transaction {transaction_id} has not been started",
                error_code="invalid_state",
                transaction_id=transaction_id
            )
        signed = current.model_copy(update={"status": TransactionStatus.SIGNED})
        self._transactions[transaction_id] = signed
        return signed

    def _get(self, transaction_id: str) -> Transaction:
        try:
            return self._transactions[transaction_id]
        except KeyError:
            raise SignhostNotFoundError(
                message=f"Transaction {transaction_id} not found",
                transaction_id=transaction_id
            ) from None

    def _get_pending(self, transaction_id: str, operation: str) -> Transaction:
        current = self._get(transaction_id)
        if current.status != TransactionStatus.WAITING_FOR_DOCUMENT:
            raise SignhostValidationError(
                message=f"Cannot {operation}: transaction {transaction_id} is no longer pending",
                error_code="invalid_state",
                transaction_id=transaction_id
            )
        return current

    def _put_file_entry(self, transaction: Transaction, file_id: str, display_name: Optional[str]) -> None:
        entry = FileEntry(
            display_name=display_name or file_id,
            links=[
                Link(
                    rel="file",
                    type=PDF_CONTENT_TYPE,
                    url=f"{self.base_url}/transaction/{transaction.id}/file/{file_id}",
                )
            ],
        )
        files = dict(transaction.files)
        files[file_id] = entry
        self._transactions[transaction.id] = transaction.model_copy(update={"files": files})
