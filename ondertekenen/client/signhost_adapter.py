"""
Signhost Client Adapter

Talks to the Signhost REST API (branded Ondertekenen.nl in The Netherlands).
Every operation is a single HTTPS request; responses are decoded into the
payload schemas.
"""

import asyncio
import base64
import hashlib
import hmac
import json
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Union
from urllib.parse import quote

import aiohttp
from aiohttp import ClientTimeout
from pydantic import ValidationError

from ondertekenen.core.config import DEFAULT_SIGNHOST_BASE_URL, Settings, get_settings
from ondertekenen.core.logging import get_logger
from ondertekenen.schemas import (
    PDF_CONTENT_TYPE,
    Document,
    FileMetaData,
    Receipt,
    Transaction,
    TransactionStatus,
)

from .base import (
    ClientType,
    FileSource,
    OperationResult,
    PostbackEvent,
    SignhostAuthenticationError,
    SignhostConnectionError,
    SignhostError,
    SignhostNotFoundError,
    SignhostValidationError,
    SigningClient,
    TransactionRef,
)

logger = get_logger(__name__)

SUCCESS_STATUSES = (200, 201, 202, 204)


class SignhostClient(SigningClient):
    """Signhost REST API client."""

    def __init__(
        self,
        app_key: str,
        api_key: str,
        base_url: str = DEFAULT_SIGNHOST_BASE_URL,
        shared_secret: Optional[str] = None,
        timeout_seconds: int = 30,
        connect_timeout_seconds: int = 10,
        **config
    ):
        """
        Initialize the Signhost client.

        Args:
            app_key: Application key, sent as ``Application: APPKey <key>``
            api_key: User API key, sent as ``Authorization: APIKey <key>``
            base_url: API base URL; locale domains may replace signhost.com
            shared_secret: Secret used to verify postback checksums
            timeout_seconds: Total request timeout
            connect_timeout_seconds: Connect timeout
            **config: Additional configuration
        """
        super().__init__(base_url=base_url, timeout_seconds=timeout_seconds, **config)
        self.base_url = base_url.rstrip('/')
        if not self.base_url.lower().startswith("https://"):
            raise ValueError(f"Signhost base URL must use https, got '{base_url}'")

        self.app_key = app_key
        self.api_key = api_key
        self.shared_secret = shared_secret

        self.transaction_endpoint = f"{self.base_url}/transaction"
        self.receipt_endpoint = f"{self.base_url}/file/receipt"

        # Session is created lazily, inside the running event loop
        self._session: Optional[aiohttp.ClientSession] = None
        self._timeout = ClientTimeout(total=timeout_seconds, connect=connect_timeout_seconds)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **config) -> "SignhostClient":
        """Build a client from application settings."""
        settings = settings or get_settings()
        return cls(
            app_key=settings.signhost_app_key or "",
            api_key=settings.signhost_api_key or "",
            base_url=settings.signhost_base_url,
            shared_secret=settings.signhost_shared_secret,
            timeout_seconds=settings.signhost_timeout_seconds,
            connect_timeout_seconds=settings.signhost_connect_timeout_seconds,
            **config
        )

    def _get_client_type(self) -> ClientType:
        """Return the client type identifier."""
        return ClientType.SIGNHOST

    @property
    def session(self) -> aiohttp.ClientSession:
        """Get or create the HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={
                    "Authorization": f"APIKey {self.api_key}",
                    "Application": f"APPKey {self.app_key}",
                    "Accept": "application/json",
                }
            )
        return self._session

    async def get_signed_document(
        self,
        transaction_id: str,
        file_id: str,
        send_sign_request: bool = False
    ) -> Document:
        """Download the signed file ``file_id`` of a transaction."""
        transaction_id = self._transaction_id_of(transaction_id, "get signed document")
        if not file_id:
            raise SignhostValidationError(
                message="file_id is required",
                error_code="file_id_required",
                transaction_id=transaction_id
            )
        endpoint = self._file_endpoint(transaction_id, file_id)
        params = {"sendSignRequest": self._flag(send_sign_request)}

        try:
            async with self.session.get(endpoint, params=params) as response:
                await self._handle_api_error(response, "get_signed_document", transaction_id)
                content = await response.read()
                content_type = self._content_type(response)

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise self._connection_error(e, "get_signed_document", transaction_id) from e

        if not content:
            raise SignhostError(
                message=f"Empty document returned for file {file_id}",
                error_code="invalid_response",
                transaction_id=transaction_id
            )

        logger.info(
            "signhost.document.downloaded",
            transaction_id=transaction_id,
            file_id=file_id,
            size_bytes=len(content),
        )
        return Document(
            transaction_id=transaction_id,
            file_id=file_id,
            content=content,
            content_type=content_type,
        )

    async def get_receipt(self, document_id: str, send_sign_request: bool = False) -> Receipt:
        """Download the receipt for ``document_id``."""
        if not document_id:
            raise SignhostValidationError(message="document_id is required", error_code="document_id_required")

        endpoint = f"{self.receipt_endpoint}/{quote(document_id, safe='')}"
        params = {"sendSignRequest": self._flag(send_sign_request)}

        try:
            async with self.session.get(endpoint, params=params) as response:
                await self._handle_api_error(response, "get_receipt")
                content = await response.read()
                content_type = self._content_type(response)

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise self._connection_error(e, "get_receipt") from e

        if not content:
            raise SignhostError(message=f"Empty receipt returned for document {document_id}", error_code="invalid_response")

        logger.info("signhost.receipt.downloaded", document_id=document_id, size_bytes=len(content))
        return Receipt(document_id=document_id, content=content, content_type=content_type)

    async def get_transaction(self, transaction_id: str) -> Transaction:
        transaction_id = self._transaction_id_of(transaction_id, "get transaction")
        endpoint = f"{self.transaction_endpoint}/{quote(transaction_id, safe='')}"

        try:
            async with self.session.get(endpoint) as response:
                await self._handle_api_error(response, "get_transaction", transaction_id)
                response_data = await self._read_json(response, "get_transaction", transaction_id)

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise self._connection_error(e, "get_transaction", transaction_id) from e

        return self._parse_transaction(response_data, "get_transaction", transaction_id)

    async def delete_transaction(
        self,
        transaction: TransactionRef,
        send_notification: bool = False,
        reason: Optional[str] = None
    ) -> Transaction:
        """
        Cancel a transaction, given either its id or the transaction itself.

        Both forms issue the same request. When Signhost answers without a
        body, the removed transaction is reported with status CANCELLED.
        """
        transaction_id = self._transaction_id_of(transaction, "delete transaction")
        endpoint = f"{self.transaction_endpoint}/{quote(transaction_id, safe='')}"

        payload: Dict[str, Any] = {"SendNotifications": send_notification}
        if reason:
            payload["Reason"] = reason

        try:
            async with self.session.delete(endpoint, json=payload) as response:
                await self._handle_api_error(response, "delete_transaction", transaction_id)
                response_data = await self._read_json(response, "delete_transaction", transaction_id)

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise self._connection_error(e, "delete_transaction", transaction_id) from e

        logger.info(
            "signhost.transaction.deleted",
            transaction_id=transaction_id,
            send_notification=send_notification,
        )

        if not response_data:
            return Transaction(
                id=transaction_id,
                status=TransactionStatus.CANCELLED,
                cancellation_reason=reason,
            )
        return self._parse_transaction(response_data, "delete_transaction", transaction_id)

    async def create_transaction(self, transaction: Transaction) -> Transaction:
        try:
            async with self.session.post(self.transaction_endpoint, json=transaction.to_wire()) as response:
                await self._handle_api_error(response, "create_transaction")
                response_data = await self._read_json(response, "create_transaction")

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise self._connection_error(e, "create_transaction") from e

        created = self._parse_transaction(response_data, "create_transaction")
        if not created.id:
            raise SignhostError(
                message="Signhost did not return a transaction id",
                error_code="invalid_response",
                provider_response=response_data
            )

        logger.info("signhost.transaction.created", transaction_id=created.id, status=created.status)
        return created

    async def upload_file(
        self,
        transaction: Transaction,
        file: FileSource,
        file_id: Optional[str] = None
    ) -> OperationResult:
        """
        Upload a PDF to a created transaction.

        The content is sent with a SHA-256 ``Digest`` header so Signhost can
        check it arrived intact.
        """
        transaction_id = self._transaction_id_of(transaction, "upload file")
        content, file_id = await self._resolve_file(file, file_id)
        endpoint = self._file_endpoint(transaction_id, file_id)

        headers = {
            "Content-Type": PDF_CONTENT_TYPE,
            "Digest": f"SHA-256={base64.b64encode(hashlib.sha256(content).digest()).decode('ascii')}",
        }

        try:
            async with self.session.put(endpoint, data=content, headers=headers) as response:
                await self._handle_api_error(response, "upload_file", transaction_id)
                status_code = response.status

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise self._connection_error(e, "upload_file", transaction_id) from e

        logger.info(
            "signhost.file.uploaded",
            transaction_id=transaction_id,
            file_id=file_id,
            size_bytes=len(content),
        )
        return OperationResult(
            success=True,
            operation="upload_file",
            transaction_id=transaction_id,
            file_id=file_id,
            status_code=status_code,
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
        endpoint = self._file_endpoint(transaction_id, file_identifier)

        try:
            async with self.session.put(endpoint, json=file_metadata.to_wire()) as response:
                await self._handle_api_error(response, "upload_file_metadata", transaction_id)
                status_code = response.status

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise self._connection_error(e, "upload_file_metadata", transaction_id) from e

        logger.info("signhost.file.metadata_uploaded", transaction_id=transaction_id, file_id=file_identifier)
        return OperationResult(
            success=True,
            operation="upload_file_metadata",
            transaction_id=transaction_id,
            file_id=file_identifier,
            status_code=status_code,
            completed_at=datetime.now(timezone.utc),
        )

    async def start_transaction(self, transaction_id: str) -> OperationResult:
        transaction_id = self._transaction_id_of(transaction_id, "start transaction")
        endpoint = f"{self.transaction_endpoint}/{quote(transaction_id, safe='')}/start"

        try:
            async with self.session.put(endpoint) as response:
                await self._handle_api_error(response, "start_transaction", transaction_id)
                status_code = response.status

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise self._connection_error(e, "start_transaction", transaction_id) from e

        logger.info("signhost.transaction.started", transaction_id=transaction_id)
        return OperationResult(
            success=True,
            operation="start_transaction",
            transaction_id=transaction_id,
            status_code=status_code,
            completed_at=datetime.now(timezone.utc),
        )

    def verify_postback(self, payload: Union[bytes, str, Mapping[str, Any]]) -> PostbackEvent:
        """
        Verify and parse a postback sent by Signhost.

        Args:
            payload: Raw request body, or the already decoded JSON object

        Returns:
            PostbackEvent with the decoded transaction

        Raises:
            SignhostError: If no shared secret is configured, the body is not
                valid JSON or the checksum does not match
            SignhostValidationError: If id, status or checksum are missing
        """
        if not self.shared_secret:
            raise SignhostError(
                message="Cannot verify postback without a shared secret",
                error_code="postback_secret_missing"
            )

        if isinstance(payload, Mapping):
            data = dict(payload)
        else:
            try:
                data = json.loads(payload)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise SignhostError(
                    message=f"Invalid postback JSON: {str(e)}",
                    error_code="postback_json_invalid"
                ) from e

        if not isinstance(data, dict):
            raise SignhostValidationError(message="Postback body must be a JSON object", error_code="postback_incomplete")

        transaction_id = data.get("Id")
        status = data.get("Status")
        checksum = data.get("Checksum")
        if not transaction_id or status is None or not checksum:
            raise SignhostValidationError(
                message="Postback is missing Id, Status or Checksum",
                error_code="postback_incomplete",
                transaction_id=transaction_id
            )

        try:
            expected = self.compute_postback_checksum(transaction_id, status, self.shared_secret)
        except (TypeError, ValueError) as e:
            raise SignhostValidationError(
                message=f"Postback status is not numeric: {status!r}",
                error_code="postback_incomplete",
                transaction_id=transaction_id
            ) from e

        if not hmac.compare_digest(expected.encode("ascii"), str(checksum).lower().encode("utf-8")):
            logger.warning("signhost.postback.checksum_invalid", transaction_id=transaction_id)
            raise SignhostError(
                message="Invalid postback checksum",
                error_code="postback_checksum_invalid",
                transaction_id=transaction_id
            )

        transaction = self._parse_transaction(data, "verify_postback", transaction_id)
        logger.info("signhost.postback.verified", transaction_id=transaction_id, status=status)
        return PostbackEvent(
            transaction_id=transaction_id,
            status=transaction.status,
            checksum=str(checksum).lower(),
            transaction=transaction,
            received_at=datetime.now(timezone.utc),
        )

    @staticmethod
    def compute_postback_checksum(transaction_id: str, status: Union[int, str], shared_secret: str) -> str:
        """SHA-1 hex digest of ``{id}||{status}|{secret}``."""
        value = f"{transaction_id}||{int(status)}|{shared_secret}"
        return hashlib.sha1(value.encode("utf-8")).hexdigest()

    async def close(self):
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    def _file_endpoint(self, transaction_id: str, file_id: str) -> str:
        return (
            f"{self.transaction_endpoint}/{quote(transaction_id, safe='')}"
            f"/file/{quote(file_id, safe='')}"
        )

    @staticmethod
    def _flag(value: bool) -> str:
        return "true" if value else "false"

    @staticmethod
    def _content_type(response: aiohttp.ClientResponse) -> str:
        content_type = response.headers.get("Content-Type") or PDF_CONTENT_TYPE
        return content_type.split(";")[0].strip()

    async def _read_json(
        self,
        response: aiohttp.ClientResponse,
        operation: str,
        transaction_id: Optional[str] = None
    ) -> Any:
        """Decode a success body, reporting non-JSON content as a malformed response."""
        try:
            return await response.json(content_type=None)
        except ValueError as e:
            raise SignhostError(
                message=f"Response in {operation} is not valid JSON: {str(e)}",
                error_code="invalid_response",
                status_code=response.status,
                transaction_id=transaction_id
            ) from e

    def _parse_transaction(
        self,
        data: Any,
        operation: str,
        transaction_id: Optional[str] = None
    ) -> Transaction:
        """Decode a transaction body, reporting malformed responses as errors."""
        if not isinstance(data, dict):
            raise SignhostError(
                message=f"Unexpected response body in {operation}",
                error_code="invalid_response",
                transaction_id=transaction_id
            )
        try:
            return Transaction.from_wire(data)
        except ValidationError as e:
            raise SignhostError(
                message=f"Malformed transaction in {operation}: {str(e)}",
                error_code="invalid_response",
                provider_response=data,
                transaction_id=transaction_id
            ) from e

    def _connection_error(
        self,
        error: Exception,
        operation: str,
        transaction_id: Optional[str] = None
    ) -> SignhostConnectionError:
        logger.error("signhost.request.failed", operation=operation, transaction_id=transaction_id, error=str(error))
        return SignhostConnectionError(
            message=f"Signhost request failed in {operation}: {str(error) or type(error).__name__}",
            transaction_id=transaction_id
        )

    async def _handle_api_error(
        self,
        response: aiohttp.ClientResponse,
        operation: str,
        transaction_id: Optional[str] = None
    ):
        """Raise the matching SignhostError for a non-success response."""
        if response.status in SUCCESS_STATUSES:
            return

        error_message = f"Signhost API error in {operation}"
        error_data: Optional[Dict[str, Any]] = None

        try:
            body = await response.json(content_type=None)
            if isinstance(body, dict):
                error_data = body
                error_message = body.get("Message") or body.get("message") or error_message
        except (aiohttp.ContentTypeError, json.JSONDecodeError, ValueError):
            error_message = await response.text() or error_message

        logger.warning(
            "signhost.request.rejected",
            operation=operation,
            status=response.status,
            transaction_id=transaction_id,
        )

        details = dict(status_code=response.status, provider_response=error_data, transaction_id=transaction_id)
        if response.status == 401:
            raise SignhostAuthenticationError("Authentication failed - check app key and api key", "AUTH_ERROR", **details)
        elif response.status == 403:
            raise SignhostAuthenticationError("Insufficient permissions", "PERMISSION_ERROR", **details)
        elif response.status == 404:
            raise SignhostNotFoundError(f"Resource not found in {operation}", "NOT_FOUND", **details)
        elif response.status in (400, 409, 422):
            raise SignhostValidationError(error_message, "VALIDATION_ERROR", **details)
        elif response.status == 429:
            retry_after = response.headers.get('Retry-After', '60')
            raise SignhostError(f"Rate limit exceeded, retry after {retry_after}s", "RATE_LIMIT", **details)
        elif response.status >= 500:
            raise SignhostError("Signhost server error", "SERVER_ERROR", **details)
        else:
            raise SignhostError(error_message, "api_error", **details)
