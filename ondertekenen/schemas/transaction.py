from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field

from ondertekenen.schemas.common import SignhostModel
from ondertekenen.schemas.file import FileEntry


class TransactionStatus(int, Enum):
    """Transaction status codes as reported by Signhost."""
    WAITING_FOR_DOCUMENT = 5
    WAITING_FOR_SIGNER = 10
    IN_PROGRESS = 20
    SIGNED = 30
    REJECTED = 40
    EXPIRED = 50
    CANCELLED = 60
    FAILED = 70


PENDING_STATUSES = frozenset({TransactionStatus.WAITING_FOR_DOCUMENT})
STARTED_STATUSES = frozenset({TransactionStatus.WAITING_FOR_SIGNER, TransactionStatus.IN_PROGRESS})
FINAL_STATUSES = frozenset({
    TransactionStatus.SIGNED,
    TransactionStatus.REJECTED,
    TransactionStatus.EXPIRED,
    TransactionStatus.CANCELLED,
    TransactionStatus.FAILED,
})


class SignRequestMode(int, Enum):
    """How sign requests go out to multiple signers."""
    SIMULTANEOUS = 1
    SEQUENTIAL = 2


class Activity(SignhostModel):
    id: Optional[str] = Field(default=None, alias="Id")
    code: Optional[int] = Field(default=None, alias="Code")
    activity: Optional[str] = Field(default=None, alias="Activity")
    info: Optional[str] = Field(default=None, alias="Info")
    created_date_time: Optional[datetime] = Field(default=None, alias="CreatedDateTime")


class Signer(SignhostModel):
    id: Optional[str] = Field(default=None, alias="Id")
    email: str = Field(alias="Email", min_length=3)
    verifications: Optional[List[Dict[str, Any]]] = Field(default=None, alias="Verifications")
    mobile: Optional[str] = Field(default=None, alias="Mobile")
    require_scribble: Optional[bool] = Field(default=None, alias="RequireScribble")
    send_sign_request: Optional[bool] = Field(default=None, alias="SendSignRequest")
    sign_request_message: Optional[str] = Field(default=None, alias="SignRequestMessage")
    send_sign_confirmation: Optional[bool] = Field(default=None, alias="SendSignConfirmation")
    language: Optional[str] = Field(default=None, alias="Language")
    scribble_name: Optional[str] = Field(default=None, alias="ScribbleName")
    days_to_remind: Optional[int] = Field(default=None, alias="DaysToRemind")
    expires: Optional[datetime] = Field(default=None, alias="Expires")
    reference: Optional[str] = Field(default=None, alias="Reference")
    return_url: Optional[str] = Field(default=None, alias="ReturnUrl")
    context: Optional[Dict[str, Any]] = Field(default=None, alias="Context")
    sign_url: Optional[str] = Field(default=None, alias="SignUrl")
    activities: Optional[List[Activity]] = Field(default=None, alias="Activities")


class Receiver(SignhostModel):
    name: Optional[str] = Field(default=None, alias="Name")
    email: str = Field(alias="Email", min_length=3)
    language: Optional[str] = Field(default=None, alias="Language")
    message: Optional[str] = Field(default=None, alias="Message")
    reference: Optional[str] = Field(default=None, alias="Reference")
    context: Optional[Dict[str, Any]] = Field(default=None, alias="Context")


class Transaction(SignhostModel):
    """A signing transaction.

    A new transaction has no ``id``; Signhost assigns one on creation and the
    returned object carries it along with the initial status.
    """

    id: Optional[str] = Field(default=None, alias="Id")
    files: Dict[str, FileEntry] = Field(default_factory=dict, alias="Files")
    seal: Optional[bool] = Field(default=None, alias="Seal")
    signers: List[Signer] = Field(default_factory=list, alias="Signers")
    receivers: List[Receiver] = Field(default_factory=list, alias="Receivers")
    reference: Optional[str] = Field(default=None, alias="Reference")
    postback_url: Optional[str] = Field(default=None, alias="PostbackUrl")
    sign_request_mode: Optional[SignRequestMode] = Field(default=None, alias="SignRequestMode")
    days_to_expire: Optional[int] = Field(default=None, ge=0, le=90, alias="DaysToExpire")
    send_email_notifications: Optional[bool] = Field(default=None, alias="SendEmailNotifications")
    status: Optional[TransactionStatus] = Field(default=None, alias="Status")
    context: Optional[Dict[str, Any]] = Field(default=None, alias="Context")
    created_date_time: Optional[datetime] = Field(default=None, alias="CreatedDateTime")
    cancelled_date_time: Optional[datetime] = Field(default=None, alias="CancelledDateTime")
    cancellation_reason: Optional[str] = Field(default=None, alias="CancellationReason")

    @property
    def is_created(self) -> bool:
        return bool(self.id)

    @property
    def is_pending(self) -> bool:
        return self.status in PENDING_STATUSES

    @property
    def is_final(self) -> bool:
        return self.status in FINAL_STATUSES
