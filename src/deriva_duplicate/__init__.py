__all__ = [
    "AssociationSpec",
    "CloneSpec",
    "DataService",
    "DependentSpec",
    "DerivaDuplicateException",
    "DuplicateRecordPlugin",
    "DuplicationPlan",
    "DuplicationReport",
    "Duplicator",
    "EntityReference",
    "FieldAction",
    "FieldPolicy",
    "FieldRule",
    "InvocationContext",
    "NamePrefix",
    "Query",
    "Record",
    "RecordNotFoundError",
    "ServiceFault",
    "StepFault",
    "WorkflowStateMissingError",
    "WorkflowStateSpec",
]

from importlib.metadata import PackageNotFoundError, version

from deriva_duplicate.core import (
    DerivaDuplicateException,
    EntityReference,
    Query,
    Record,
    RecordNotFoundError,
    ServiceFault,
    StepFault,
    WorkflowStateMissingError,
)
from deriva_duplicate.duplicate import DuplicationReport, Duplicator
from deriva_duplicate.plugin import DuplicateRecordPlugin, InvocationContext
from deriva_duplicate.policy import (
    AssociationSpec,
    CloneSpec,
    DependentSpec,
    DuplicationPlan,
    FieldAction,
    FieldPolicy,
    FieldRule,
    NamePrefix,
    WorkflowStateSpec,
)
from deriva_duplicate.service.port import DataService

try:
    __version__ = version("deriva_duplicate")
except PackageNotFoundError:
    # package is not installed
    pass
