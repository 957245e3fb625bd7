"""Specifications of the dependent data copied along with a root record.

A :class:`DuplicationPlan` bundles the field policy of the root record type with
the child collections, workflow-state record, and association edges that are
replicated onto the clone. Plans are plain pydantic models so that they can be
written in YAML or JSON and validated on load.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from deriva_duplicate.core.constants import BLOB_FIELDS
from deriva_duplicate.core.query import Condition, Link, Query
from deriva_duplicate.core.records import EntityReference, Record
from deriva_duplicate.core.validation import STRICT_VALIDATION_CONFIG

from .field_policy import CloneSpec


class DependentSpec(BaseModel):
    """A child collection whose records reference the root through a foreign key.

    Attributes:
        clone: Field policy applied to each child. Its ``allow_list`` names the
            reference fields that denote shared reference data (unit of measure,
            catalog item) and are retained.
        foreign_key_field: Child field referencing the root record.
        computed_fields: Fields the store recalculates on create. Never copied.
        blob_fields: Binary/image fields. Never copied.
    """

    model_config = STRICT_VALIDATION_CONFIG

    clone: CloneSpec
    foreign_key_field: str
    computed_fields: list[str] = Field(default_factory=list)
    blob_fields: list[str] = Field(default_factory=lambda: list(BLOB_FIELDS))

    @property
    def entity(self) -> str:
        return self.clone.entity

    def query_filter(self, root_id: str) -> Query:
        """Query matching every child of the root record ``root_id``."""
        return Query(entity=self.entity).where(self.foreign_key_field, root_id)


class WorkflowStateSpec(BaseModel):
    """Locates the workflow-state record the store creates for a process-bound record.

    Attributes:
        state_entity: Record type of the workflow-state record.
        link_field: State record field referencing the business record.
        transfer_fields: Fields copied from the original's state record. By default the
            process identity and the traversed path. The active stage and state/status
            are not transferred.
        order_by: Field used to pick the most recent state record when several match.
    """

    model_config = STRICT_VALIDATION_CONFIG

    state_entity: str
    link_field: str
    transfer_fields: list[str] = Field(default_factory=lambda: ["processid", "traversedpath"])
    order_by: str | None = None

    def state_query(self, root_id: str) -> Query:
        return Query(
            entity=self.state_entity,
            top=1,
            order_by=self.order_by,
            descending=self.order_by is not None,
        ).where(self.link_field, root_id)


class AssociationSpec(BaseModel):
    """A many-to-many relationship between the root type and ``related_entity``.

    Attributes:
        relationship_name: Name used when associating records.
        related_entity: Record type on the other side of the relationship.
        intersect_entity: Intersect (association) entity holding the links.
        source_field: Intersect field referencing the root record.
        target_field: Intersect field referencing the related record.
        related_key: Field of the related record holding the value stored in
            ``target_field``. None when ``target_field`` holds the related record identity.
    """

    model_config = STRICT_VALIDATION_CONFIG

    relationship_name: str
    related_entity: str
    intersect_entity: str
    source_field: str
    target_field: str
    related_key: str | None = None

    def link_query(self, root_id: str) -> Query:
        """Query returning every related record linked to ``root_id``."""
        return Query(
            entity=self.related_entity,
            link=Link(
                entity=self.intersect_entity,
                from_field=self.target_field,
                to_field=self.related_key,
                conditions=(Condition(field=self.source_field, value=root_id),),
            ),
        )

    def target_reference(self, related: Record) -> EntityReference:
        """Reference stored in the intersect row that links ``related``."""
        value = related.id if self.related_key is None else related[self.related_key]
        if isinstance(value, EntityReference):
            value = value.id
        return EntityReference(type=self.related_entity, id=str(value))


class DuplicationPlan(BaseModel):
    """Everything duplicated for one root record type."""

    model_config = STRICT_VALIDATION_CONFIG

    root: CloneSpec
    dependents: list[DependentSpec] = Field(default_factory=list)
    workflow_state: WorkflowStateSpec | None = None
    associations: list[AssociationSpec] = Field(default_factory=list)

    @property
    def root_entity(self) -> str:
        return self.root.entity

    @model_validator(mode="after")
    def check_dependents(self) -> "DuplicationPlan":
        for dependent in self.dependents:
            if dependent.entity == self.root_entity:
                raise ValueError(f"Dependent collection {dependent.entity} cannot be the root type")
        return self
