"""Typed query filters passed to the data service.

Identifiers are carried as values of :class:`Condition` objects and are never
spliced into query text. A data service translates a :class:`Query` into its own
query mechanism (the ERMrest implementation uses the deriva datapath builder).

Example:
    Products of an opportunity:

        >>> Query(entity="opportunityproduct").where("opportunityid", "1-ABCD")

    Stakeholders linked to an opportunity through an intersect table:

        >>> Query(
        ...     entity="crff8_stakeholder",
        ...     link=Link(
        ...         entity="crff8_stakeholder_opportunity",
        ...         from_field="crff8_stakeholderid",
        ...         conditions=[Condition(field="opportunityid", value="1-ABCD")],
        ...     ),
        ... )
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from .records import EntityReference
from .validation import FROZEN_CONFIG


class Condition(BaseModel):
    """Equality condition on a single field."""

    model_config = FROZEN_CONFIG

    field: str
    operator: Literal["eq"] = "eq"
    value: Any

    @field_validator("value", mode="before")
    @classmethod
    def unwrap_reference(cls, value: Any) -> Any:
        # References compare by identifier.
        return value.id if isinstance(value, EntityReference) else value


class Link(BaseModel):
    """Join from the queried entity through an intersect (association) entity.

    Attributes:
        entity: Name of the intersect entity.
        from_field: Field on the intersect entity that references the queried entity.
        to_field: Field on the queried entity matched by ``from_field``. None matches the
            identity of the queried record.
        conditions: Conditions evaluated on the intersect entity.
    """

    model_config = FROZEN_CONFIG

    entity: str
    from_field: str
    to_field: str | None = None
    conditions: tuple[Condition, ...] = ()


class Query(BaseModel):
    """Structured query: entity name plus equality and linking conditions.

    Attributes:
        entity: Name of the entity whose records are returned.
        conditions: Equality conditions on the returned entity, all of which must hold.
        link: Optional intersect entity the result must be linked through.
        top: Maximum number of records to return.
        order_by: Field used to order the result.
        descending: Order the result from the largest ``order_by`` value.
    """

    model_config = FROZEN_CONFIG

    entity: str
    conditions: tuple[Condition, ...] = ()
    link: Link | None = None
    top: int | None = Field(default=None, ge=1)
    order_by: str | None = None
    descending: bool = False

    def where(self, field: str, value: Any) -> Query:
        """Return a copy of this query with an additional equality condition."""
        return self.model_copy(update={"conditions": (*self.conditions, Condition(field=field, value=value))})
