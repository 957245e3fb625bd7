"""Replication of many-to-many links from the original root to its clone."""

from __future__ import annotations

from typing import Callable

from deriva_duplicate.core.logging_config import LoggerMixin
from deriva_duplicate.core.records import EntityReference
from deriva_duplicate.policy.specs import AssociationSpec
from deriva_duplicate.service.port import DataService


class AssociationReplicator(LoggerMixin):
    """Links the clone to every record linked to the original.

    The clone's existing links are not checked first. Running the step twice against
    the same clone may fail or create duplicate links, depending on the store's
    constraints.
    """

    def __init__(self, service: DataService):
        self.service = service

    def replicate_associations(
        self,
        original_root_id: str,
        clone_root: EntityReference,
        spec: AssociationSpec,
        on_created: Callable[[EntityReference], None] | None = None,
    ) -> int:
        """Associate ``clone_root`` with each record related to ``original_root_id``.

        Returns:
            int: Number of links created.
        """
        related = self.service.query(spec.link_query(original_root_id))
        self._logger.info("Found %d %s records linked to %s", len(related), spec.related_entity, original_root_id)

        linked = 0
        for record in related:
            target = spec.target_reference(record)
            self.service.associate(spec.relationship_name, clone_root, [target])
            linked += 1
            if on_created:
                on_created(target)
        return linked
