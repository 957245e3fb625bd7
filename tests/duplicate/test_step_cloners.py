"""Tests for the individual duplication steps against the in-memory store."""

from __future__ import annotations

import pytest

from deriva_duplicate.core.exceptions import ServiceFault, WorkflowStateMissingError
from deriva_duplicate.core.records import EntityReference
from deriva_duplicate.duplicate.associations import AssociationReplicator
from deriva_duplicate.duplicate.dependents import DependentCollectionCloner
from deriva_duplicate.duplicate.root import RootCloner
from deriva_duplicate.duplicate.workflow_state import WorkflowStateTransfer
from deriva_duplicate.policy.specs import AssociationSpec
from deriva_duplicate.presets import PRODUCT_COMPUTED_FIELDS

from conftest import OPPORTUNITY_RELATIONSHIP, InMemoryDataService, OpportunityFixture


def _clone_root(store, plan, opportunity) -> EntityReference:
    original = store.fetch("opportunity", opportunity.rid)
    return RootCloner(store, plan.root).clone_root(original)


class TestRootCloner:
    def test_clone_gets_new_identity(self, store, plan, opportunity):
        clone = _clone_root(store, plan, opportunity)
        assert clone.type == "opportunity"
        assert clone.id != opportunity.rid
        assert store.get("opportunity", clone.id)["name"] == "[Cloned] Pump retrofit"

    def test_create_implicitly_creates_state_record(self, store, plan, opportunity):
        clone = _clone_root(store, plan, opportunity)
        state = store.state_of("opportunity", clone.id)
        assert state is not None
        assert state["processid"] is None

    def test_create_fault_propagates(self, store, plan, opportunity):
        store.fail("create", "opportunity")
        with pytest.raises(ServiceFault):
            _clone_root(store, plan, opportunity)
        assert len(store.records("opportunity")) == 1


class TestDependentCollectionCloner:
    def test_children_rebound_to_clone(self, store, plan, opportunity):
        clone = _clone_root(store, plan, opportunity)
        spec = plan.dependents[0]

        created = DependentCollectionCloner(store).clone_dependents(opportunity.rid, clone, spec)

        assert created == 3
        copies = [p for p in store.records("opportunityproduct") if p["opportunityid"].id == clone.id]
        assert len(copies) == 3
        assert sorted(p["quantity"] for p in copies) == [1, 2, 3]
        for product in copies:
            assert product["opportunityid"] == clone
            assert product["productid"] == opportunity.product
            assert product["uomid"] == opportunity.unit
            for stripped in PRODUCT_COMPUTED_FIELDS + ["entityimage", "entityimage_timestamp", "createdon"]:
                assert stripped not in product
            # Reference fields outside the allow-list are not copied.
            assert "transactioncurrencyid" not in product

    def test_original_children_untouched(self, store, plan, opportunity):
        clone = _clone_root(store, plan, opportunity)
        DependentCollectionCloner(store).clone_dependents(opportunity.rid, clone, plan.dependents[0])
        originals = [p for p in store.records("opportunityproduct") if p["opportunityid"].id == opportunity.rid]
        assert len(originals) == 3
        assert all("extendedamount" in p for p in originals)

    def test_no_children_is_noop(self, store, plan):
        rid = store.add("opportunity", name="Empty")
        clone = EntityReference(type="opportunity", id=store.add("opportunity", name="[Cloned] Empty"))
        assert DependentCollectionCloner(store).clone_dependents(rid, clone, plan.dependents[0]) == 0
        assert ("create", "opportunityproduct") not in store.calls

    def test_failure_stops_remaining_children(self, store, plan, opportunity):
        clone = _clone_root(store, plan, opportunity)
        store.fail("create", "opportunityproduct", on_call=2)
        created = []

        with pytest.raises(ServiceFault):
            DependentCollectionCloner(store).clone_dependents(
                opportunity.rid, clone, plan.dependents[0], on_created=created.append
            )

        assert len(created) == 1
        copies = [p for p in store.records("opportunityproduct") if p["opportunityid"].id == clone.id]
        assert [p.id for p in copies] == [c.id for c in created]


class TestWorkflowStateTransfer:
    def test_transfers_process_and_path_only(self, store, plan, opportunity):
        clone = _clone_root(store, plan, opportunity)

        assert WorkflowStateTransfer(store).transfer_workflow_state(opportunity.rid, clone.id, plan.workflow_state)

        state = store.state_of("opportunity", clone.id)
        assert state["processid"] == opportunity.process_id
        assert state["traversedpath"] == "stage-1,stage-2,stage-3"
        # The active stage is not part of the transfer.
        assert "activestageid" not in state
        assert ("create", "opportunitysalesprocess") not in store.calls

    def test_original_without_state_is_noop(self, store, plan):
        fixture = OpportunityFixture(store, with_state=False)
        clone = _clone_root(store, plan, fixture)
        before = store.state_of("opportunity", clone.id)

        assert not WorkflowStateTransfer(store).transfer_workflow_state(fixture.rid, clone.id, plan.workflow_state)

        assert store.state_of("opportunity", clone.id) == before
        assert ("update", "opportunitysalesprocess") not in store.calls

    def test_clone_without_state_record(self, store, plan, opportunity):
        clone_id = store.add("opportunity", name="[Cloned] Pump retrofit")
        with pytest.raises(WorkflowStateMissingError):
            WorkflowStateTransfer(store).transfer_workflow_state(opportunity.rid, clone_id, plan.workflow_state)


class TestAssociationReplicator:
    def test_links_match_original(self, store, plan, opportunity):
        clone = _clone_root(store, plan, opportunity)

        linked = AssociationReplicator(store).replicate_associations(opportunity.rid, clone, plan.associations[0])

        assert linked == 2
        assert store.linked_ids(OPPORTUNITY_RELATIONSHIP, clone.id) == set(opportunity.stakeholder_ids)
        assert store.linked_ids(OPPORTUNITY_RELATIONSHIP, opportunity.rid) == set(opportunity.stakeholder_ids)

    def test_failure_stops_remaining_links(self, store, plan, opportunity):
        clone = _clone_root(store, plan, opportunity)
        store.fail("associate", OPPORTUNITY_RELATIONSHIP, on_call=2)

        with pytest.raises(ServiceFault):
            AssociationReplicator(store).replicate_associations(opportunity.rid, clone, plan.associations[0])

        assert len(store.linked_ids(OPPORTUNITY_RELATIONSHIP, clone.id)) == 1

    def test_rerun_is_not_deduplicated(self, store, plan, opportunity):
        clone = _clone_root(store, plan, opportunity)
        replicator = AssociationReplicator(store)
        replicator.replicate_associations(opportunity.rid, clone, plan.associations[0])
        replicator.replicate_associations(opportunity.rid, clone, plan.associations[0])

        intersect_rows = [
            r for r in store.records("crff8_stakeholder_opportunity") if r["opportunityid"] == clone.id
        ]
        assert len(intersect_rows) == 4

    def test_links_through_alternate_key(self):
        store = InMemoryDataService(relationships={"Project_Member": ("project_member", "projectid", "member_code")})
        project = store.add("project", name="Survey")
        clone = EntityReference(type="project", id=store.add("project", name="[Cloned] Survey"))
        codes = ["M-ADA", "M-GRACE"]
        for code in codes:
            store.add("member", code=code)
            store.link("Project_Member", project, code)
        spec = AssociationSpec(
            relationship_name="Project_Member",
            related_entity="member",
            intersect_entity="project_member",
            source_field="projectid",
            target_field="member_code",
            related_key="code",
        )

        assert AssociationReplicator(store).replicate_associations(project, clone, spec) == 2
        assert store.linked_ids("Project_Member", clone.id) == set(codes)
