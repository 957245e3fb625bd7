from deriva_duplicate.core.constants import (
    CLONE_PREFIX,
    RECORD_NOT_FOUND_CODE,
    DerivaSystemColumns,
)
from deriva_duplicate.core.exceptions import (
    DerivaDuplicateException,
    PlanConfigurationError,
    RecordNotFoundError,
    ServiceFault,
    StepFault,
    WorkflowStateMissingError,
)
from deriva_duplicate.core.query import Condition, Link, Query
from deriva_duplicate.core.records import EntityReference, Record

__all__ = [
    "CLONE_PREFIX",
    "RECORD_NOT_FOUND_CODE",
    "DerivaSystemColumns",
    "Condition",
    "DerivaDuplicateException",
    "EntityReference",
    "Link",
    "PlanConfigurationError",
    "Query",
    "Record",
    "RecordNotFoundError",
    "ServiceFault",
    "StepFault",
    "WorkflowStateMissingError",
]
