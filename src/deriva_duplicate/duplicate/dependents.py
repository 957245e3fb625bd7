"""Cloning of the child records that reference the root record."""

from __future__ import annotations

from typing import Callable

from deriva_duplicate.core.logging_config import LoggerMixin
from deriva_duplicate.core.records import EntityReference, Record
from deriva_duplicate.policy.field_policy import FieldPolicy
from deriva_duplicate.policy.specs import DependentSpec
from deriva_duplicate.service.port import DataService


class DependentCollectionCloner(LoggerMixin):
    """Copies each child of the original root onto the clone root.

    Children are created one at a time in query order. A failing ``create`` stops the
    loop; children already created are left in place.
    """

    def __init__(self, service: DataService, policy: FieldPolicy | None = None):
        self.service = service
        self.policy = policy or FieldPolicy()

    def build_child(self, child: Record, clone_root: EntityReference, spec: DependentSpec) -> Record:
        """Return the unsaved copy of ``child`` bound to ``clone_root``.

        Dropped fields: the foreign key, fields excluded by the clone spec, blob fields,
        reference values not on the spec's allow-list, and store-computed fields.
        """
        fields = self.policy.select(child, spec.clone)
        fields.pop(spec.foreign_key_field, None)
        for name in list(fields):
            if name in spec.blob_fields or name in spec.computed_fields:
                del fields[name]
            elif isinstance(fields[name], EntityReference) and not spec.clone.is_allowed(name):
                del fields[name]
        fields[spec.foreign_key_field] = clone_root
        return Record(type=child.type, fields=fields)

    def clone_dependents(
        self,
        original_root_id: str,
        clone_root: EntityReference,
        spec: DependentSpec,
        on_created: Callable[[EntityReference], None] | None = None,
    ) -> int:
        """Clone every child of ``original_root_id`` onto ``clone_root``.

        Args:
            original_root_id: Identity of the original root record.
            clone_root: Reference to the clone root.
            spec: The child collection to copy.
            on_created: Called with each created child, before the next one is attempted.

        Returns:
            int: Number of children created.
        """
        children = self.service.query(spec.query_filter(original_root_id))
        if not children:
            self._logger.info("No %s records found on %s. Skipping.", spec.entity, original_root_id)
            return 0

        self._logger.info("Cloning %d %s records...", len(children), spec.entity)
        created = 0
        for child in children:
            child_id = self.service.create(self.build_child(child, clone_root, spec))
            created += 1
            if on_created:
                on_created(EntityReference(type=child.type, id=child_id))
        self._logger.info("Finished cloning %s records", spec.entity)
        return created
