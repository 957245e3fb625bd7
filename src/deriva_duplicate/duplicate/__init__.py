"""Duplication steps and their orchestration.

Steps:
    RootCloner: Clone and create the root record
    DependentCollectionCloner: Clone the child records of the root
    WorkflowStateTransfer: Copy workflow position onto the clone's state record
    AssociationReplicator: Link the clone to the original's related records
    Duplicator: Run the steps in order and report failures
"""

from deriva_duplicate.duplicate.associations import AssociationReplicator
from deriva_duplicate.duplicate.dependents import DependentCollectionCloner
from deriva_duplicate.duplicate.orchestrator import Duplicator
from deriva_duplicate.duplicate.report import DuplicationReport, DuplicationState, DuplicationStep
from deriva_duplicate.duplicate.root import RootCloner
from deriva_duplicate.duplicate.workflow_state import WorkflowStateTransfer

__all__ = [
    "AssociationReplicator",
    "DependentCollectionCloner",
    "DuplicationReport",
    "DuplicationState",
    "DuplicationStep",
    "Duplicator",
    "RootCloner",
    "WorkflowStateTransfer",
]
