"""Tracing and bookkeeping for a single duplication run.

A duplication is not transactional: when a step fails, whatever the earlier steps
created stays in the store. The :class:`DuplicationReport` records every trace line,
every state transition, and every record or link created, in order, so that a
failed run can be inspected (and cleaned up by hand) after the fact.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from deriva_duplicate.core.logging_config import get_logger
from deriva_duplicate.core.records import EntityReference

logger = get_logger("report")


class DuplicationStep(Enum):
    """Steps of a duplication, in execution order."""

    FETCH_ROOT = "fetch root record"
    CLONE_ROOT = "root record cloning"
    CLONE_DEPENDENTS = "dependent record cloning"
    TRANSFER_WORKFLOW_STATE = "workflow-state transfer"
    REPLICATE_ASSOCIATIONS = "association replication"


class DuplicationState(Enum):
    """States of the duplication state machine. ``FAILED`` is absorbing."""

    START = "start"
    ROOT_CLONED = "root_cloned"
    DEPENDENTS_CLONED = "dependents_cloned"
    STATE_TRANSFERRED = "state_transferred"
    ASSOCIATIONS_REPLICATED = "associations_replicated"
    DONE = "done"
    FAILED = "failed"


# Legal forward transitions. Every non-terminal state may also move to FAILED.
TRANSITIONS: dict[DuplicationState, DuplicationState] = {
    DuplicationState.START: DuplicationState.ROOT_CLONED,
    DuplicationState.ROOT_CLONED: DuplicationState.DEPENDENTS_CLONED,
    DuplicationState.DEPENDENTS_CLONED: DuplicationState.STATE_TRANSFERRED,
    DuplicationState.STATE_TRANSFERRED: DuplicationState.ASSOCIATIONS_REPLICATED,
    DuplicationState.ASSOCIATIONS_REPLICATED: DuplicationState.DONE,
}


@dataclass
class CreatedItem:
    """A record or link created in the store during a run."""

    step: DuplicationStep
    reference: EntityReference
    relationship: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result = {"step": self.step.value, "type": self.reference.type, "id": self.reference.id}
        if self.relationship:
            result["relationship"] = self.relationship
        return result


@dataclass
class DuplicationReport:
    """Report of one duplication run.

    Attributes:
        source: The record being duplicated.
        clone: The clone, once created.
        state: Current state of the run.
        failed_step: Step that raised, if the run failed.
        created: Records and links created, in creation order.
        counts: Number of items handled per step.
        trace_lines: Human-readable trace of the run.
    """

    source: EntityReference
    clone: EntityReference | None = None
    state: DuplicationState = DuplicationState.START
    failed_step: DuplicationStep | None = None
    error: str | None = None
    workflow_state_transferred: bool = False
    created: list[CreatedItem] = field(default_factory=list)
    counts: dict[str, int] = field(default_factory=dict)
    trace_lines: list[str] = field(default_factory=list)

    def trace(self, message: str, *args: Any, level: int = logging.INFO) -> None:
        """Record a trace line and forward it to the report logger."""
        text = message % args if args else message
        self.trace_lines.append(text)
        logger.log(level, text)

    def advance(self, new_state: DuplicationState) -> None:
        """Move the state machine forward.

        Raises:
            ValueError: If ``new_state`` is not the successor of the current state.
        """
        if TRANSITIONS.get(self.state) != new_state:
            raise ValueError(f"Illegal duplication transition {self.state.value} -> {new_state.value}")
        self.trace("state %s -> %s", self.state.value, new_state.value, level=logging.DEBUG)
        self.state = new_state

    def fail(self, step: DuplicationStep, error: BaseException) -> None:
        self.failed_step = step
        self.error = str(error)
        self.state = DuplicationState.FAILED
        self.trace("%s failed: %s", step.value, error, level=logging.ERROR)

    def record_created(
        self, step: DuplicationStep, reference: EntityReference, relationship: str | None = None
    ) -> None:
        self.created.append(CreatedItem(step=step, reference=reference, relationship=relationship))

    def count(self, key: str, value: int) -> None:
        self.counts[key] = self.counts.get(key, 0) + value

    @property
    def succeeded(self) -> bool:
        return self.state == DuplicationState.DONE

    @property
    def partial(self) -> bool:
        """True if the run failed after creating something in the store."""
        return self.state == DuplicationState.FAILED and bool(self.created)

    def to_dict(self) -> dict[str, Any]:
        """Return the report as a JSON-serializable dictionary."""
        return {
            "source": {"type": self.source.type, "id": self.source.id},
            "clone": {"type": self.clone.type, "id": self.clone.id} if self.clone else None,
            "state": self.state.value,
            "failed_step": self.failed_step.value if self.failed_step else None,
            "error": self.error,
            "workflow_state_transferred": self.workflow_state_transferred,
            "counts": self.counts,
            "created": [c.to_dict() for c in self.created],
            "trace": self.trace_lines,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def to_text(self) -> str:
        """Return the report as human-readable text."""
        lines = ["=" * 70, "DUPLICATION REPORT", "=" * 70, ""]
        lines.append(f"Source:       {self.source.type} {self.source.id}")
        lines.append(f"Clone:        {self.clone.id if self.clone else '-'}")
        lines.append(f"State:        {self.state.value}")
        for key, value in self.counts.items():
            lines.append(f"{key + ':':<14}{value}")
        if self.failed_step:
            lines.append("")
            lines.append(f"FAILED during {self.failed_step.value}: {self.error}")
            if self.created:
                lines.append("The following items were created and remain in the store:")
                for item in self.created:
                    suffix = f" via {item.relationship}" if item.relationship else ""
                    lines.append(f"  - {item.reference.type} {item.reference.id}{suffix}")
        lines.append("")
        lines.append("TRACE")
        lines.append("-" * 40)
        lines.extend(f"  {line}" for line in self.trace_lines)
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.to_text()
