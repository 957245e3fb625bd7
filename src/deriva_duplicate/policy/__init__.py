"""Field policies and duplication plans."""

from deriva_duplicate.policy.field_policy import (
    CloneSpec,
    FieldAction,
    FieldPolicy,
    FieldRule,
    NamePrefix,
    deriva_system_rules,
    standard_rules,
)
from deriva_duplicate.policy.specs import AssociationSpec, DependentSpec, DuplicationPlan, WorkflowStateSpec

__all__ = [
    "AssociationSpec",
    "CloneSpec",
    "DependentSpec",
    "DuplicationPlan",
    "FieldAction",
    "FieldPolicy",
    "FieldRule",
    "NamePrefix",
    "WorkflowStateSpec",
    "deriva_system_rules",
    "standard_rules",
]
