"""
Pytest configuration and shared fixtures.

The duplication engine is exercised against an in-memory data service that mimics
the behaviour of the remote store: identities are assigned on create, creating a
process-bound record also creates its workflow-state record, and association
tables hold many-to-many links. Faults can be injected on the n-th call of an
operation.
"""

from __future__ import annotations

import copy
import itertools
import uuid
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

import pytest

from deriva_duplicate.core.constants import RECORD_NOT_FOUND_CODE
from deriva_duplicate.core.exceptions import ServiceFault
from deriva_duplicate.core.query import Query
from deriva_duplicate.core.records import EntityReference, Record
from deriva_duplicate.presets import opportunity_plan


def _unwrap(value: Any) -> Any:
    return value.id if isinstance(value, EntityReference) else value


@dataclass
class InjectedFault:
    operation: str
    entity: str | None
    on_call: int
    error: Exception


class InMemoryDataService:
    """DataService keeping records in dictionaries.

    Args:
        state_bindings: Root type -> (state entity, link field). Creating a record of a
            bound type also creates a state record linked to it.
        relationships: Relationship name -> (intersect entity, source field, target field).
    """

    def __init__(
        self,
        state_bindings: dict[str, tuple[str, str]] | None = None,
        relationships: dict[str, tuple[str, str, str]] | None = None,
    ):
        self.tables: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)
        self.state_bindings = state_bindings or {}
        self.relationships = relationships or {}
        self.calls: list[tuple[str, str]] = []
        self._faults: list[InjectedFault] = []
        self._call_counts: dict[tuple[str, str], int] = defaultdict(int)
        self._sequence = itertools.count(1)

    # Test helpers -------------------------------------------------------
    def add(self, entity: str, **fields: Any) -> str:
        """Insert a record directly, bypassing fault injection and side effects."""
        record_id = str(uuid.uuid4())
        self.tables[entity][record_id] = {f"{entity}id": record_id, "_seq": next(self._sequence), **fields}
        return record_id

    def link(self, relationship: str, source_id: str, target_id: str) -> None:
        intersect, source_field, target_field = self.relationships[relationship]
        self.add(intersect, **{source_field: source_id, target_field: target_id})

    def fail(
        self,
        operation: str,
        entity: str | None = None,
        on_call: int = 1,
        code: int = -2147220891,
        error: Exception | None = None,
    ) -> None:
        """Make the ``on_call``-th call of ``operation`` (on ``entity``) raise."""
        self._faults.append(
            InjectedFault(operation, entity, on_call, error or ServiceFault(code, f"Simulated {operation} fault"))
        )

    def records(self, entity: str) -> list[Record]:
        return [self._record(entity, rid, row) for rid, row in self.tables[entity].items()]

    def get(self, entity: str, record_id: str) -> Record:
        return self._record(entity, record_id, self.tables[entity][record_id])

    def linked_ids(self, relationship: str, source_id: str) -> set[str]:
        intersect, source_field, target_field = self.relationships[relationship]
        return {
            _unwrap(row[target_field])
            for row in self.tables[intersect].values()
            if _unwrap(row.get(source_field)) == source_id
        }

    def state_of(self, entity: str, record_id: str) -> Record | None:
        state_entity, link_field = self.state_bindings[entity]
        matches = [r for r in self.records(state_entity) if _unwrap(r.get(link_field)) == record_id]
        return matches[-1] if matches else None

    # Internals ----------------------------------------------------------
    def _record(self, entity: str, record_id: str, row: dict[str, Any]) -> Record:
        fields = {k: copy.deepcopy(v) for k, v in row.items() if k != "_seq"}
        return Record(type=entity, id=record_id, fields=fields)

    def _check(self, operation: str, entity: str) -> None:
        self.calls.append((operation, entity))
        for key in ((operation, entity), (operation, None)):
            self._call_counts[key] += 1
        for fault in self._faults:
            if fault.operation == operation and fault.entity in (None, entity):
                if self._call_counts[(operation, fault.entity)] == fault.on_call:
                    raise fault.error

    def _value(self, entity: str, record_id: str, row: dict[str, Any], field: str | None) -> Any:
        if field is None:
            return record_id
        if field in row:
            return _unwrap(row[field])
        if field in ("RID", f"{entity}id"):
            return record_id
        return None

    # DataService --------------------------------------------------------
    def fetch(self, entity: str, record_id: str, field_set: Iterable[str] | None = None) -> Record:
        self._check("fetch", entity)
        row = self.tables[entity].get(record_id)
        if row is None:
            raise ServiceFault(RECORD_NOT_FOUND_CODE, f"{entity} With Id = {record_id} Does Not Exist")
        record = self._record(entity, record_id, row)
        if field_set is not None:
            record.fields = {k: v for k, v in record.fields.items() if k in set(field_set)}
        return record

    def query(self, query: Query) -> list[Record]:
        self._check("query", query.entity)
        rows = list(self.tables[query.entity].items())
        if query.link is not None:
            link = query.link
            linked = [
                _unwrap(row.get(link.from_field))
                for rid, row in self.tables[link.entity].items()
                if all(self._value(link.entity, rid, row, c.field) == c.value for c in link.conditions)
            ]
            rows = [(rid, row) for rid, row in rows if self._value(query.entity, rid, row, link.to_field) in linked]
        rows = [
            (rid, row)
            for rid, row in rows
            if all(self._value(query.entity, rid, row, c.field) == c.value for c in query.conditions)
        ]
        key = query.order_by
        rows.sort(key=lambda item: (item[1].get(key) if key else None, item[1]["_seq"]), reverse=query.descending)
        if query.top:
            rows = rows[: query.top]
        return [self._record(query.entity, rid, row) for rid, row in rows]

    def create(self, record: Record) -> str:
        self._check("create", record.type)
        record_id = str(uuid.uuid4())
        self.tables[record.type][record_id] = {
            **copy.deepcopy(record.fields),
            f"{record.type}id": record_id,
            "_seq": next(self._sequence),
        }
        if record.type in self.state_bindings:
            state_entity, link_field = self.state_bindings[record.type]
            self.add(
                state_entity,
                **{link_field: EntityReference(type=record.type, id=record_id)},
                processid=None,
                traversedpath=None,
            )
        return record_id

    def update(self, record: Record) -> None:
        self._check("update", record.type)
        if record.id not in self.tables[record.type]:
            raise ServiceFault(RECORD_NOT_FOUND_CODE, f"{record.type} With Id = {record.id} Does Not Exist")
        self.tables[record.type][record.id].update(copy.deepcopy(record.fields))

    def associate(self, relationship_name: str, source: EntityReference, targets: Sequence[EntityReference]) -> None:
        self._check("associate", relationship_name)
        if relationship_name not in self.relationships:
            raise ServiceFault(-2147220969, f"Relationship {relationship_name} not found")
        for target in targets:
            self.link(relationship_name, source.id, target.id)


OPPORTUNITY_RELATIONSHIP = "crff8_Stakeholder_Opportunity_Opportunity"


@pytest.fixture
def store() -> InMemoryDataService:
    return InMemoryDataService(
        state_bindings={"opportunity": ("opportunitysalesprocess", "opportunityid")},
        relationships={
            OPPORTUNITY_RELATIONSHIP: ("crff8_stakeholder_opportunity", "opportunityid", "crff8_stakeholderid")
        },
    )


@pytest.fixture
def plan():
    return opportunity_plan()


class OpportunityFixture:
    """An opportunity with three products, a sales process position and two stakeholders."""

    def __init__(self, store: InMemoryDataService, with_state: bool = True):
        self.store = store
        self.account = EntityReference(type="account", id=str(uuid.uuid4()))
        self.owner = EntityReference(type="systemuser", id=str(uuid.uuid4()))
        self.currency = EntityReference(type="transactioncurrency", id=str(uuid.uuid4()))
        self.price_list = EntityReference(type="pricelevel", id=str(uuid.uuid4()))
        self.rid = store.add(
            "opportunity",
            name="Pump retrofit",
            customerid=self.account,
            parentaccountid=self.account,
            ownerid=self.owner,
            transactioncurrencyid=self.currency,
            pricelevelid=self.price_list,
            campaignid=EntityReference(type="campaign", id=str(uuid.uuid4())),
            estimatedvalue=125000.0,
            closeprobability=40,
            stepname="3-Propose",
            description=None,
            createdon="2024-03-01T09:00:00Z",
            createdby=self.owner,
            modifiedon="2024-04-01T09:00:00Z",
            statecode=1,
            statuscode=3,
        )
        self.reference = EntityReference(type="opportunity", id=self.rid)
        self.product = EntityReference(type="product", id=str(uuid.uuid4()))
        self.unit = EntityReference(type="uom", id=str(uuid.uuid4()))
        self.product_ids = [
            store.add(
                "opportunityproduct",
                opportunityid=self.reference,
                productid=self.product,
                uomid=self.unit,
                transactioncurrencyid=self.currency,
                quantity=quantity,
                priceperunit=100.0,
                baseamount=100.0 * quantity,
                extendedamount=100.0 * quantity,
                tax=7.0,
                manualdiscountamount=5.0,
                entityimage=b"\x89PNG",
                entityimage_timestamp=1700000000,
                createdon="2024-03-01T09:00:00Z",
                productdescription=f"Line {quantity}",
            )
            for quantity in (1, 2, 3)
        ]
        self.process_id = str(uuid.uuid4())
        if with_state:
            store.add(
                "opportunitysalesprocess",
                opportunityid=self.reference,
                processid=self.process_id,
                traversedpath="stage-1,stage-2,stage-3",
                activestageid="stage-3",
                statecode=0,
            )
        self.stakeholder_ids = [store.add("crff8_stakeholder", crff8_name=name) for name in ("Ada", "Grace")]
        for stakeholder_id in self.stakeholder_ids:
            store.link(OPPORTUNITY_RELATIONSHIP, self.rid, stakeholder_id)


@pytest.fixture
def opportunity(store: InMemoryDataService) -> OpportunityFixture:
    return OpportunityFixture(store)
