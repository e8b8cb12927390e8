from pydantic import BaseModel, ConfigDict, Field

PDF_CONTENT_TYPE = "application/pdf"


class BinaryPayload(BaseModel):
    """Binary response body. Not part of the JSON wire format."""

    model_config = ConfigDict(frozen=True)

    content: bytes
    content_type: str = PDF_CONTENT_TYPE

    @property
    def size_bytes(self) -> int:
        return len(self.content)


class Document(BinaryPayload):
    """A (signed) file of a transaction."""

    transaction_id: str = Field(min_length=1)
    file_id: str = Field(min_length=1)


class Receipt(BinaryPayload):
    """Signing receipt for a document."""

    document_id: str = Field(min_length=1)
