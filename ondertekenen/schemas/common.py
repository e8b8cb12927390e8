from typing import Any, Dict, Mapping, Type, TypeVar

from pydantic import BaseModel, ConfigDict

ModelT = TypeVar("ModelT", bound="SignhostModel")


class SignhostModel(BaseModel):
    """Base for payloads exchanged with Signhost.

    Python attribute names are snake_case; the wire names (PascalCase) are
    declared as field aliases. Instances are frozen once constructed.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_wire(cls: Type[ModelT], data: Mapping[str, Any]) -> ModelT:
        return cls.model_validate(data)


class PassThroughModel(SignhostModel):
    """Payload whose full shape is owned by the API; unknown keys are kept."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="allow")
