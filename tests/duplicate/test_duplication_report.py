"""Tests for DuplicationReport bookkeeping and rendering."""

import json

import pytest

from deriva_duplicate.core.exceptions import ServiceFault
from deriva_duplicate.core.records import EntityReference
from deriva_duplicate.duplicate.report import (
    TRANSITIONS,
    DuplicationReport,
    DuplicationState,
    DuplicationStep,
)


@pytest.fixture
def report():
    return DuplicationReport(source=EntityReference(type="opportunity", id="o-1"))


def _advance_to(report, state):
    current = DuplicationState.START
    while current != state:
        current = TRANSITIONS[current]
        report.advance(current)


class TestStateMachine:
    def test_full_sequence(self, report):
        _advance_to(report, DuplicationState.DONE)
        assert report.succeeded
        assert not report.partial

    def test_cannot_skip_states(self, report):
        with pytest.raises(ValueError, match="start -> dependents_cloned"):
            report.advance(DuplicationState.DEPENDENTS_CLONED)

    def test_failed_is_absorbing(self, report):
        report.fail(DuplicationStep.CLONE_ROOT, ServiceFault(-1, "boom"))
        assert report.state == DuplicationState.FAILED
        for state in DuplicationState:
            with pytest.raises(ValueError):
                report.advance(state)

    def test_done_is_terminal(self, report):
        _advance_to(report, DuplicationState.DONE)
        with pytest.raises(ValueError):
            report.advance(DuplicationState.FAILED)


class TestBookkeeping:
    def test_partial_after_creation(self, report):
        clone = EntityReference(type="opportunity", id="o-2")
        report.clone = clone
        report.record_created(DuplicationStep.CLONE_ROOT, clone)
        report.fail(DuplicationStep.CLONE_DEPENDENTS, ServiceFault(-2147220891, "Quantity invalid"))

        assert report.partial
        assert report.failed_step == DuplicationStep.CLONE_DEPENDENTS
        assert report.error == "Quantity invalid (code -2147220891)"

    def test_counts_accumulate(self, report):
        report.count("opportunityproduct", 2)
        report.count("opportunityproduct", 1)
        assert report.counts == {"opportunityproduct": 3}

    def test_trace_formats_and_logs(self, report, caplog):
        with caplog.at_level("INFO", logger="deriva_duplicate"):
            report.trace("Cloned %d %s records", 3, "opportunityproduct")
        assert report.trace_lines == ["Cloned 3 opportunityproduct records"]
        assert "Cloned 3 opportunityproduct records" in caplog.text


class TestRendering:
    def _failed_report(self, report):
        clone = EntityReference(type="opportunity", id="o-2")
        report.clone = clone
        report.record_created(DuplicationStep.CLONE_ROOT, clone)
        report.record_created(
            DuplicationStep.REPLICATE_ASSOCIATIONS,
            EntityReference(type="crff8_stakeholder", id="s-1"),
            relationship="crff8_Stakeholder_Opportunity_Opportunity",
        )
        report.fail(DuplicationStep.REPLICATE_ASSOCIATIONS, ServiceFault(-1, "boom"))
        return report

    def test_to_dict_is_json_serializable(self, report):
        data = json.loads(self._failed_report(report).to_json())
        assert data["state"] == "failed"
        assert data["failed_step"] == "association replication"
        assert data["clone"] == {"type": "opportunity", "id": "o-2"}
        assert data["created"][1] == {
            "step": "association replication",
            "type": "crff8_stakeholder",
            "id": "s-1",
            "relationship": "crff8_Stakeholder_Opportunity_Opportunity",
        }

    def test_text_lists_leftovers(self, report):
        text = str(self._failed_report(report))
        assert "FAILED during association replication" in text
        assert "  - opportunity o-2" in text
        assert "  - crff8_stakeholder s-1 via crff8_Stakeholder_Opportunity_Opportunity" in text

    def test_text_without_clone(self, report):
        assert "Clone:        -" in report.to_text()
