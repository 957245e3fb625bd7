"""Transfer of in-progress workflow position from the original to the clone.

When a record bound to a staged business process is created, the store creates a
workflow-state record for it. This step copies the process identity and the
traversed path from the original's state record onto the clone's. It never
creates a state record, and it does not copy the active stage or the
state/status of the process.
"""

from __future__ import annotations

from deriva_duplicate.core.exceptions import WorkflowStateMissingError
from deriva_duplicate.core.logging_config import LoggerMixin
from deriva_duplicate.core.records import Record
from deriva_duplicate.policy.specs import WorkflowStateSpec
from deriva_duplicate.service.port import DataService


class WorkflowStateTransfer(LoggerMixin):
    def __init__(self, service: DataService):
        self.service = service

    def _state_record(self, root_id: str, spec: WorkflowStateSpec) -> Record | None:
        matches = self.service.query(spec.state_query(root_id))
        return matches[0] if matches else None

    def transfer_workflow_state(self, original_root_id: str, clone_root_id: str, spec: WorkflowStateSpec) -> bool:
        """Copy the transfer fields of the original's state record onto the clone's.

        Returns:
            bool: False if the original has no state record or nothing to transfer.

        Raises:
            WorkflowStateMissingError: The original has a state record but the clone does not.
        """
        original_state = self._state_record(original_root_id, spec)
        if original_state is None:
            self._logger.info("No %s record for %s. Nothing to transfer.", spec.state_entity, original_root_id)
            return False

        clone_state = self._state_record(clone_root_id, spec)
        if clone_state is None or clone_state.id is None:
            raise WorkflowStateMissingError(
                f"No {spec.state_entity} record was created for clone {clone_root_id}"
            )

        fields = {name: original_state[name] for name in spec.transfer_fields if name in original_state}
        if not fields:
            self._logger.warning(
                "%s record of %s has none of %s", spec.state_entity, original_root_id, spec.transfer_fields
            )
            return False

        self.service.update(Record(type=spec.state_entity, id=clone_state.id, fields=fields))
        self._logger.info("Transferred %s from %s to %s", sorted(fields), original_state.id, clone_state.id)
        return True
