"""Duplication of a record together with its dependent data.

The :class:`Duplicator` runs the steps of a duplication in a fixed order::

    START -> ROOT_CLONED -> DEPENDENTS_CLONED -> STATE_TRANSFERRED
          -> ASSOCIATIONS_REPLICATED -> DONE

Any step may fail, which moves the run to the absorbing ``FAILED`` state and
stops it. Nothing is retried and nothing is rolled back: a failed duplication can
leave a partially populated clone in the store. The raised error carries the run's
:class:`DuplicationReport`, whose ``created`` list names everything left behind.

Errors raised by :meth:`Duplicator.duplicate`:
    RecordNotFoundError: The record to duplicate does not exist.
    StepFault: A data service call failed. ``step`` names the failing step.
    Any other exception: Re-raised unchanged.

Example:
    >>> duplicator = Duplicator(service, opportunity_plan())
    >>> clone = duplicator.duplicate(EntityReference(type="opportunity", id=rid))
    >>> print(clone.id)
"""

from __future__ import annotations

from typing import Any, Callable

from deriva_duplicate.core.constants import RECORD_NOT_FOUND_CODE
from deriva_duplicate.core.exceptions import DerivaDuplicateException, RecordNotFoundError, ServiceFault, StepFault
from deriva_duplicate.core.logging_config import LoggerMixin
from deriva_duplicate.core.records import EntityReference, Record
from deriva_duplicate.policy.field_policy import FieldPolicy
from deriva_duplicate.policy.specs import DuplicationPlan
from deriva_duplicate.service.port import DataService

from .associations import AssociationReplicator
from .dependents import DependentCollectionCloner
from .report import DuplicationReport, DuplicationState, DuplicationStep
from .root import RootCloner
from .workflow_state import WorkflowStateTransfer


class Duplicator(LoggerMixin):
    """Duplicates records of the plan's root type.

    Args:
        service: Data service holding the records.
        plan: What to copy for the root type.
        not_found_code: Provider fault code meaning "record does not exist".
    """

    def __init__(
        self,
        service: DataService,
        plan: DuplicationPlan,
        not_found_code: int = RECORD_NOT_FOUND_CODE,
        policy: FieldPolicy | None = None,
    ):
        self.service = service
        self.plan = plan
        self.not_found_code = not_found_code
        policy = policy or FieldPolicy()
        self.root_cloner = RootCloner(service, plan.root, policy)
        self.dependent_cloner = DependentCollectionCloner(service, policy)
        self.state_transfer = WorkflowStateTransfer(service)
        self.association_replicator = AssociationReplicator(service)
        self.last_report: DuplicationReport | None = None

    def applies_to(self, target: Any) -> bool:
        """True if ``target`` is a reference to a record of the plan's root type."""
        return isinstance(target, EntityReference) and target.type == self.plan.root_entity

    def duplicate(self, root: EntityReference | None) -> EntityReference | None:
        """Duplicate ``root`` and return a reference to the clone.

        Returns None without touching the store when ``root`` is missing or is not
        of the plan's root type.
        """
        report = self.run(root)
        return report.clone if report else None

    def run(self, root: EntityReference | None) -> DuplicationReport | None:
        """Duplicate ``root`` and return the report of the run."""
        if not self.applies_to(root):
            self._logger.debug("Not applicable to %r; expected %s", root, self.plan.root_entity)
            return None

        report = DuplicationReport(source=root)
        self.last_report = report
        report.trace("Duplicating %s %s", root.type, root.id)

        original: Record = self._step(
            report, DuplicationStep.FETCH_ROOT, lambda: self.service.fetch(root.type, root.id)
        )

        clone = self._step(report, DuplicationStep.CLONE_ROOT, lambda: self.root_cloner.clone_root(original))
        report.clone = clone
        report.record_created(DuplicationStep.CLONE_ROOT, clone)
        report.trace("Verify cloning %s completed: %s", root.type, clone.id)
        report.advance(DuplicationState.ROOT_CLONED)

        self._step(report, DuplicationStep.CLONE_DEPENDENTS, lambda: self._clone_dependents(report, original, clone))
        report.advance(DuplicationState.DEPENDENTS_CLONED)

        self._step(
            report, DuplicationStep.TRANSFER_WORKFLOW_STATE, lambda: self._transfer_state(report, original, clone)
        )
        report.advance(DuplicationState.STATE_TRANSFERRED)

        self._step(
            report,
            DuplicationStep.REPLICATE_ASSOCIATIONS,
            lambda: self._replicate_associations(report, original, clone),
        )
        report.advance(DuplicationState.ASSOCIATIONS_REPLICATED)

        report.advance(DuplicationState.DONE)
        report.trace("Duplicated %s %s as %s", root.type, root.id, clone.id)
        return report

    def _clone_dependents(self, report: DuplicationReport, original: Record, clone: EntityReference) -> None:
        for spec in self.plan.dependents:
            created = self.dependent_cloner.clone_dependents(
                original.id,
                clone,
                spec,
                on_created=lambda ref: report.record_created(DuplicationStep.CLONE_DEPENDENTS, ref),
            )
            report.count(spec.entity, created)
            report.trace("Cloned %d %s records", created, spec.entity)

    def _transfer_state(self, report: DuplicationReport, original: Record, clone: EntityReference) -> None:
        if self.plan.workflow_state is None:
            return
        transferred = self.state_transfer.transfer_workflow_state(original.id, clone.id, self.plan.workflow_state)
        report.workflow_state_transferred = transferred
        report.trace("Workflow state %s", "transferred" if transferred else "not transferred")

    def _replicate_associations(self, report: DuplicationReport, original: Record, clone: EntityReference) -> None:
        for spec in self.plan.associations:
            linked = self.association_replicator.replicate_associations(
                original.id,
                clone,
                spec,
                on_created=lambda ref, name=spec.relationship_name: report.record_created(
                    DuplicationStep.REPLICATE_ASSOCIATIONS, ref, relationship=name
                ),
            )
            report.count(spec.relationship_name, linked)
            report.trace("Verify associate %d %s with %s", linked, spec.related_entity, clone.type)

    def _step(self, report: DuplicationReport, step: DuplicationStep, action: Callable[[], Any]) -> Any:
        """Run one step, translating its failure into the error reported to the caller."""
        try:
            return action()
        except ServiceFault as fault:
            report.fail(step, fault)
            self._logger.error("FaultException Code: %s Message: %s", fault.code, fault.message)
            if step == DuplicationStep.FETCH_ROOT and fault.code == self.not_found_code:
                error: DerivaDuplicateException = RecordNotFoundError()
            else:
                error = StepFault(step, fault)
            error.report = report
            raise error from fault
        except Exception as e:
            report.fail(step, e)
            self._logger.exception("Unexpected error during %s", step.value)
            if isinstance(e, DerivaDuplicateException):
                e.report = report
            raise
