"""
Signhost payload schemas

Pydantic models mapping snake_case attributes to the API's wire names.
"""

from .common import PassThroughModel, SignhostModel
from .document import PDF_CONTENT_TYPE, Document, Receipt
from .file import FileEntry, FileMetaData, Link
from .transaction import (
    Activity,
    Receiver,
    Signer,
    SignRequestMode,
    Transaction,
    TransactionStatus,
)

__all__ = [
    "PassThroughModel",
    "SignhostModel",
    "PDF_CONTENT_TYPE",
    "Document",
    "Receipt",
    "FileEntry",
    "FileMetaData",
    "Link",
    "Activity",
    "Receiver",
    "Signer",
    "SignRequestMode",
    "Transaction",
    "TransactionStatus",
]
