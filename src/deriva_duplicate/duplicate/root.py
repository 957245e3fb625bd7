"""Cloning of the root record."""

from __future__ import annotations

from deriva_duplicate.core.logging_config import LoggerMixin
from deriva_duplicate.core.records import EntityReference, Record
from deriva_duplicate.policy.field_policy import CloneSpec, FieldPolicy
from deriva_duplicate.service.port import DataService


class RootCloner(LoggerMixin):
    """Builds the clone of a root record and creates it in the store.

    Creating a record of a process-bound type may make the store create a
    workflow-state record for it as a side effect. The cloner never creates that
    record itself.
    """

    def __init__(self, service: DataService, spec: CloneSpec, policy: FieldPolicy | None = None):
        self.service = service
        self.spec = spec
        self.policy = policy or FieldPolicy()

    def build(self, original: Record) -> Record:
        return self.policy.apply(original, self.spec)

    def clone_root(self, original: Record) -> EntityReference:
        """Create the clone of ``original`` and return its new identity."""
        clone = self.build(original)
        clone_id = self.service.create(clone)
        if clone_id == original.id:
            raise ValueError(f"Store returned the original identity {clone_id} for the clone")
        self._logger.info("Cloned %s %s as %s", original.type, original.id, clone_id)
        return EntityReference(type=original.type, id=clone_id)
