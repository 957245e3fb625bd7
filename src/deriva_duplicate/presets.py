"""Built-in duplication plans.

``opportunity`` duplicates a sales opportunity with its products, its sales
process position, and its stakeholders. ``deriva_plan`` builds a plan for a table
in a Deriva catalog, where records are identified by RID and the ERMrest system
columns are never copied.
"""

from __future__ import annotations

from typing import Callable, Sequence

from pydantic import validate_call

from deriva_duplicate.core.constants import BLOB_FIELDS
from deriva_duplicate.core.exceptions import PlanConfigurationError
from deriva_duplicate.core.validation import VALIDATION_CONFIG
from deriva_duplicate.policy.field_policy import CloneSpec, NamePrefix, deriva_system_rules, standard_rules
from deriva_duplicate.policy.specs import AssociationSpec, DependentSpec, DuplicationPlan, WorkflowStateSpec

# Context references that keep an opportunity valid in its business context.
OPPORTUNITY_CONTEXT_FIELDS = [
    "customerid",
    "parentcontactid",
    "parentaccountid",
    "ownerid",
    "transactioncurrencyid",
    "pricelevelid",
]

# Line-item amounts the store recalculates from quantity and price.
PRODUCT_COMPUTED_FIELDS = ["baseamount", "extendedamount", "tax", "manualdiscountamount"]


def opportunity_plan() -> DuplicationPlan:
    return DuplicationPlan(
        root=CloneSpec(
            entity="opportunity",
            identity_fields=["opportunityid"],
            allow_list=OPPORTUNITY_CONTEXT_FIELDS,
            rules=standard_rules(),
            transform=NamePrefix(field="name"),
        ),
        dependents=[
            DependentSpec(
                clone=CloneSpec(
                    entity="opportunityproduct",
                    identity_fields=["opportunityproductid"],
                    allow_list=["uomid", "productid"],
                    rules=standard_rules(system_fields=()),
                ),
                foreign_key_field="opportunityid",
                computed_fields=PRODUCT_COMPUTED_FIELDS,
                blob_fields=list(BLOB_FIELDS),
            )
        ],
        workflow_state=WorkflowStateSpec(
            state_entity="opportunitysalesprocess",
            link_field="opportunityid",
            transfer_fields=["processid", "traversedpath"],
        ),
        associations=[
            AssociationSpec(
                relationship_name="crff8_Stakeholder_Opportunity_Opportunity",
                related_entity="crff8_stakeholder",
                intersect_entity="crff8_stakeholder_opportunity",
                source_field="opportunityid",
                target_field="crff8_stakeholderid",
            )
        ],
    )


@validate_call(config=VALIDATION_CONFIG)
def deriva_plan(
    table: str,
    name_field: str | None = "Name",
    children: Sequence[tuple[str, str]] = (),
    associations: Sequence[tuple[str, str, str, str]] = (),
    computed_fields: Sequence[str] = (),
    retained_references: Sequence[str] = (),
) -> DuplicationPlan:
    """Build a plan for a table of a Deriva catalog.

    Args:
        table: Table of the root records.
        name_field: Column prefixed on the clone, or None for no prefix.
        children: ``(child_table, fk_column)`` pairs for the child collections.
        associations: ``(association_table, related_table, source_column, target_column)``
            tuples for the many-to-many relationships.
        computed_fields: Child columns recomputed by the catalog.
        retained_references: Child reference columns kept on the copies.

    Returns:
        DuplicationPlan: Plan whose identity fields are the RID column.
    """
    return DuplicationPlan(
        root=CloneSpec(
            entity=table,
            identity_fields=["RID"],
            rules=deriva_system_rules(),
            transform=NamePrefix(field=name_field) if name_field else None,
        ),
        dependents=[
            DependentSpec(
                clone=CloneSpec(
                    entity=child,
                    identity_fields=["RID"],
                    allow_list=list(retained_references),
                    rules=deriva_system_rules(),
                ),
                foreign_key_field=fk_column,
                computed_fields=list(computed_fields),
                blob_fields=[],
            )
            for child, fk_column in children
        ],
        associations=[
            AssociationSpec(
                relationship_name=association,
                related_entity=related,
                intersect_entity=association,
                source_field=source_column,
                target_field=target_column,
                related_key="RID",
            )
            for association, related, source_column, target_column in associations
        ],
    )


PRESETS: dict[str, Callable[[], DuplicationPlan]] = {
    "opportunity": opportunity_plan,
}


def get_preset(name: str) -> DuplicationPlan:
    try:
        return PRESETS[name]()
    except KeyError:
        raise PlanConfigurationError(f"Unknown duplication plan {name!r}; known plans: {sorted(PRESETS)}")
