"""
Pydantic models for records exchanged with the data service.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from .validation import FROZEN_CONFIG


class EntityReference(BaseModel):
    """Pointer to a record without its field values.

    Attributes:
        type: Name of the record type (table or entity name).
        id: Identifier assigned by the data service.
    """

    model_config = FROZEN_CONFIG

    type: str
    id: str

    def __str__(self) -> str:
        return self.id


class Record(BaseModel):
    """A typed, identified bag of named field values.

    Reference-typed values are held as :class:`EntityReference` instances. Records built
    for ``create`` or ``update`` carry only the fields that should be written.

    Example:
        >>> record = Record(type="opportunity", fields={"name": "Pumps"})
        >>> record["name"]
        'Pumps'
    """

    type: str
    id: str | None = None
    fields: dict[str, Any] = Field(default_factory=dict)

    def __getitem__(self, name: str) -> Any:
        return self.fields[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self.fields[name] = value

    def __contains__(self, name: object) -> bool:
        return name in self.fields

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)

    def pop(self, name: str, default: Any = None) -> Any:
        return self.fields.pop(name, default)

    def reference(self) -> EntityReference:
        """Return a reference to this record.

        Raises:
            ValueError: If the record has not been assigned an identity yet.
        """
        if self.id is None:
            raise ValueError(f"Record of type {self.type} has no identity")
        return EntityReference(type=self.type, id=self.id)
