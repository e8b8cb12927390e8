from typing import Any, Dict, List, Optional

from pydantic import Field

from ondertekenen.schemas.common import PassThroughModel, SignhostModel


class Link(PassThroughModel):
    rel: Optional[str] = Field(default=None, alias="Rel")
    type: Optional[str] = Field(default=None, alias="Type")
    url: Optional[str] = Field(default=None, alias="Link")


class FileEntry(SignhostModel):
    """A file as listed in a transaction: display name plus its links."""

    links: List[Link] = Field(default_factory=list, alias="Links")
    display_name: Optional[str] = Field(default=None, alias="DisplayName")


class FileMetaData(PassThroughModel):
    """Metadata for a file within a transaction.

    ``signers`` maps a signer id to its form-set assignment (for example
    ``{"FormSets": ["SignatureSet"]}``) and ``form_sets`` maps a form-set
    name to its field definitions. Both are passed through as given.
    """

    display_order: Optional[int] = Field(default=None, alias="DisplayOrder")
    display_name: Optional[str] = Field(default=None, alias="DisplayName")
    description: Optional[str] = Field(default=None, alias="Description")
    signers: Optional[Dict[str, Dict[str, Any]]] = Field(default=None, alias="Signers")
    form_sets: Optional[Dict[str, Dict[str, Any]]] = Field(default=None, alias="FormSets")
