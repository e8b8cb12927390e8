"""
In-memory client tests covering the transaction lifecycle.
"""

import threading
from unittest.mock import patch

import pytest

from ondertekenen.client import (
    ClientType,
    SignhostNotFoundError,
    SignhostValidationError,
)
from ondertekenen.schemas import FileMetaData, Transaction, TransactionStatus

LIFECYCLE_FIELDS = {"id", "created_date_time", "cancelled_date_time"}


class TestTransactionLifecycle:
    """Create, upload, start, sign."""

    @pytest.mark.asyncio
    async def test_create_then_get(self, memory_client, sample_transaction):
        created = await memory_client.create_transaction(sample_transaction)
        fetched = await memory_client.get_transaction(created.id)

        assert memory_client.client_type == ClientType.IN_MEMORY
        assert created.id
        assert created.status == TransactionStatus.WAITING_FOR_DOCUMENT
        assert fetched == created
        assert fetched.signers == sample_transaction.signers
        assert fetched.reference == sample_transaction.reference

    @pytest.mark.asyncio
    async def test_create_twice_is_rejected(self, memory_client, sample_transaction):
        created = await memory_client.create_transaction(sample_transaction)

        with pytest.raises(SignhostValidationError):
            await memory_client.create_transaction(created)

    @pytest.mark.asyncio
    async def test_get_unknown_transaction(self, memory_client):
        with pytest.raises(SignhostNotFoundError):
            await memory_client.get_transaction("unknown-id")

    @pytest.mark.asyncio
    async def test_start_unknown_transaction_is_not_found(self, memory_client):
        with pytest.raises(SignhostNotFoundError) as exc_info:
            await memory_client.start_transaction("unknown-id")

        assert exc_info.value.transaction_id == "unknown-id"

    @pytest.mark.asyncio
    async def test_start_without_files(self, memory_client, sample_transaction):
        created = await memory_client.create_transaction(sample_transaction)

        with pytest.raises(SignhostValidationError) as exc_info:
            await memory_client.start_transaction(created.id)

        assert exc_info.value.error_code == "no_files"

    @pytest.mark.asyncio
    async def test_full_signing_flow(self, memory_client, sample_transaction, sample_metadata, pdf_bytes):
        created = await memory_client.create_transaction(sample_transaction)

        metadata_result = await memory_client.upload_file_metadata(created, sample_metadata, "file1")
        upload_result = await memory_client.upload_file(created, pdf_bytes, file_id="file1")
        assert metadata_result.success and upload_result.success

        pending = await memory_client.get_transaction(created.id)
        assert pending.files["file1"].display_name == "contract.pdf"
        assert pending.files["file1"].links[0].url.endswith(f"/transaction/{created.id}/file/file1")

        started = await memory_client.start_transaction(created.id)
        assert started.success is True
        assert (await memory_client.get_transaction(created.id)).status == TransactionStatus.WAITING_FOR_SIGNER
        assert ("sign_request", created.id) in memory_client.notifications

        signed = memory_client.sign_transaction(created.id)
        assert signed.status == TransactionStatus.SIGNED

        document = await memory_client.get_signed_document(created.id, "file1", send_sign_request=True)
        assert document.content == pdf_bytes
        assert ("signed_document", created.id) in memory_client.notifications

        receipt = await memory_client.get_receipt(created.id)
        assert receipt.document_id == created.id
        assert receipt.content.startswith(b"%PDF")

    @pytest.mark.asyncio
    async def test_upload_after_start_is_rejected(self, memory_client, sample_transaction, pdf_bytes):
        created = await memory_client.create_transaction(sample_transaction)
        await memory_client.upload_file(created, pdf_bytes, file_id="file1")
        await memory_client.start_transaction(created.id)

        with pytest.raises(SignhostValidationError) as exc_info:
            await memory_client.upload_file(created, pdf_bytes, file_id="file2")

        assert exc_info.value.error_code == "invalid_state"

    @pytest.mark.asyncio
    async def test_metadata_after_upload_renames_entry(self, memory_client, sample_transaction, pdf_bytes):
        created = await memory_client.create_transaction(sample_transaction)
        await memory_client.upload_file(created, pdf_bytes, file_id="file1")

        await memory_client.upload_file_metadata(created, FileMetaData(display_name="Agreement"), "file1")

        fetched = await memory_client.get_transaction(created.id)
        assert fetched.files["file1"].display_name == "Agreement"

    @pytest.mark.asyncio
    async def test_receipt_before_signing(self, memory_client, sample_transaction):
        created = await memory_client.create_transaction(sample_transaction)

        with pytest.raises(SignhostNotFoundError):
            await memory_client.get_receipt(created.id)

    @pytest.mark.asyncio
    async def test_sign_before_start(self, memory_client, sample_transaction):
        created = await memory_client.create_transaction(sample_transaction)

        with pytest.raises(SignhostValidationError):
            memory_client.sign_transaction(created.id)

    @pytest.mark.asyncio
    async def test_document_before_signing(self, memory_client, sample_transaction, pdf_bytes):
        created = await memory_client.create_transaction(sample_transaction)
        await memory_client.upload_file(created, pdf_bytes, file_id="file1")

        with pytest.raises(SignhostNotFoundError):
            await memory_client.get_signed_document(created.id, "file1")

        await memory_client.start_transaction(created.id)
        with pytest.raises(SignhostNotFoundError):
            await memory_client.get_signed_document(created.id, "file1")

    @pytest.mark.asyncio
    async def test_unknown_file(self, memory_client, sample_transaction, pdf_bytes):
        created = await memory_client.create_transaction(sample_transaction)
        await memory_client.upload_file(created, pdf_bytes, file_id="file1")
        await memory_client.start_transaction(created.id)
        memory_client.sign_transaction(created.id)

        with pytest.raises(SignhostNotFoundError):
            await memory_client.get_signed_document(created.id, "missing")


class TestUploadPreconditions:
    """Uploads need a created transaction."""

    @pytest.mark.asyncio
    async def test_upload_before_creation(self, memory_client, sample_transaction, pdf_bytes):
        with pytest.raises(SignhostValidationError) as exc_info:
            await memory_client.upload_file(sample_transaction, pdf_bytes, file_id="file1")

        assert exc_info.value.error_code == "transaction_not_created"

    @pytest.mark.asyncio
    async def test_metadata_before_creation(self, memory_client, sample_transaction, sample_metadata):
        with pytest.raises(SignhostValidationError):
            await memory_client.upload_file_metadata(sample_transaction, sample_metadata, "file1")

    @pytest.mark.asyncio
    async def test_upload_to_unknown_transaction(self, memory_client, pdf_bytes):
        with pytest.raises(SignhostNotFoundError):
            await memory_client.upload_file(Transaction(id="unknown-id"), pdf_bytes, file_id="file1")

    @pytest.mark.asyncio
    async def test_path_is_read_off_the_event_loop(self, memory_client, sample_transaction, pdf_bytes, tmp_path):
        pdf_path = tmp_path / "contract.pdf"
        pdf_path.write_bytes(pdf_bytes)
        created = await memory_client.create_transaction(sample_transaction)
        reader_threads = []

        def read(path):
            reader_threads.append(threading.get_ident())
            return pdf_bytes

        with patch('ondertekenen.client.base._read_file', side_effect=read):
            result = await memory_client.upload_file(created, pdf_path)

        assert result.file_id == "contract.pdf"
        assert reader_threads
        assert reader_threads[0] != threading.get_ident()


class TestDeleteTransaction:
    """Deleting by id or by object."""

    @pytest.mark.asyncio
    async def test_delete_by_id_and_by_object(self, memory_client, sample_transaction):
        first = await memory_client.create_transaction(sample_transaction)
        second = await memory_client.create_transaction(sample_transaction)

        by_id = await memory_client.delete_transaction(first.id, False, "Duplicate")
        by_object = await memory_client.delete_transaction(second, False, "Duplicate")

        assert by_id.status == TransactionStatus.CANCELLED
        assert by_id.cancellation_reason == "Duplicate"
        assert by_id.model_dump(exclude=LIFECYCLE_FIELDS) == by_object.model_dump(exclude=LIFECYCLE_FIELDS)

        for removed in (first, second):
            with pytest.raises(SignhostNotFoundError):
                await memory_client.get_transaction(removed.id)

    @pytest.mark.asyncio
    async def test_delete_sends_notification(self, memory_client, sample_transaction):
        created = await memory_client.create_transaction(sample_transaction)

        await memory_client.delete_transaction(created, send_notification=True)

        assert memory_client.notifications == [("cancellation", created.id)]

    @pytest.mark.asyncio
    async def test_delete_unknown(self, memory_client):
        with pytest.raises(SignhostNotFoundError):
            await memory_client.delete_transaction("unknown-id")
