"""ERMrest implementation of the data service used by the duplication engine.

Records are rows of tables in a single schema of a Deriva catalog and are
identified by their RID. Single-column foreign keys are surfaced as
:class:`EntityReference` values, and association tables play the role of
many-to-many relationships: associating two records inserts a row into the
association table named by the relationship.

All filters are built with the deriva datapath API, so identifiers are passed as
values and never interpolated into URLs by this module.

Example:
    >>> service = ErmrestDataService.connect("deriva.example.org", 1, schema_name="sales")
    >>> record = service.fetch("Opportunity", "1-ABCD")
"""

from __future__ import annotations

import contextlib
import operator
from functools import reduce
from typing import Any, Iterable, Iterator, Sequence

from deriva.core import DEFAULT_SESSION_CONFIG, DerivaServer, ErmrestCatalog, get_credential
from deriva.core.datapath import DataPathException
from deriva.core.ermrest_model import Table
from requests.exceptions import HTTPError

from deriva_duplicate.core.constants import RECORD_NOT_FOUND_CODE
from deriva_duplicate.core.exceptions import ServiceFault
from deriva_duplicate.core.logging_config import LoggerMixin
from deriva_duplicate.core.query import Condition, Query
from deriva_duplicate.core.records import EntityReference, Record

# Fault code used when the catalog reports an error without an HTTP status
UNKNOWN_FAULT_CODE = -1

# Upper bound on values combined into one disjunctive filter
FILTER_CHUNK_SIZE = 100


@contextlib.contextmanager
def translate_faults(operation: str) -> Iterator[None]:
    """Convert deriva and HTTP errors raised inside the block into :class:`ServiceFault`."""
    try:
        yield
    except HTTPError as e:
        status = e.response.status_code if e.response is not None else UNKNOWN_FAULT_CODE
        raise ServiceFault(status, f"{operation} failed: {e}", detail=e) from e
    except DataPathException as e:
        reason = getattr(e, "reason", None)
        response = getattr(reason, "response", None)
        status = response.status_code if response is not None else UNKNOWN_FAULT_CODE
        raise ServiceFault(status, f"{operation} failed: {e.message}", detail=e) from e


class ErmrestDataService(LoggerMixin):
    """Data service backed by one schema of an ERMrest catalog.

    Args:
        catalog: Connected catalog.
        schema_name: Schema holding the record tables.
        not_found_code: Fault code raised when a fetched RID does not exist.
    """

    def __init__(self, catalog: ErmrestCatalog, schema_name: str, not_found_code: int = RECORD_NOT_FOUND_CODE):
        self.catalog = catalog
        self.schema_name = schema_name
        self.not_found_code = not_found_code
        self.model = catalog.getCatalogModel()
        self._pb = catalog.getPathBuilder()
        self._reference_cache: dict[str, dict[str, str]] = {}

    @classmethod
    def connect(
        cls,
        hostname: str,
        catalog_id: str | int,
        schema_name: str,
        credential: Any = None,
        not_found_code: int = RECORD_NOT_FOUND_CODE,
    ) -> "ErmrestDataService":
        """Connect to a catalog over https using stored or supplied credentials."""
        server = DerivaServer(
            "https",
            hostname,
            credentials=credential or get_credential(hostname),
            session_config=DEFAULT_SESSION_CONFIG.copy(),
        )
        return cls(server.connect_ermrest(catalog_id), schema_name, not_found_code=not_found_code)

    # ------------------------------------------------------------------
    # Model helpers
    # ------------------------------------------------------------------
    def _table(self, entity: str) -> Table:
        try:
            return self.model.schemas[self.schema_name].tables[entity]
        except KeyError:
            raise ServiceFault(404, f"Table {self.schema_name}:{entity} does not exist")

    def _path(self, entity: str):
        self._table(entity)
        return self._pb.schemas[self.schema_name].tables[entity]

    def _reference_columns(self, entity: str) -> dict[str, str]:
        """Map single-column foreign keys of ``entity`` to the table they reference."""
        if entity not in self._reference_cache:
            self._reference_cache[entity] = {
                fk.foreign_key_columns[0].name: fk.pk_table.name
                for fk in self._table(entity).foreign_keys
                if len(fk.foreign_key_columns) == 1
            }
        return self._reference_cache[entity]

    def _to_record(self, entity: str, row: dict[str, Any]) -> Record:
        references = self._reference_columns(entity)
        fields = {
            name: EntityReference(type=references[name], id=str(value))
            if name in references and value is not None
            else value
            for name, value in row.items()
        }
        return Record(type=entity, id=row.get("RID"), fields=fields)

    @staticmethod
    def _to_row(record: Record) -> dict[str, Any]:
        return {
            name: value.id if isinstance(value, EntityReference) else value for name, value in record.fields.items()
        }

    @staticmethod
    def _predicate(path, conditions: Iterable[Condition]):
        predicates = [_column(path, c.field) == c.value for c in conditions]
        return reduce(operator.and_, predicates) if predicates else None

    # ------------------------------------------------------------------
    # DataService
    # ------------------------------------------------------------------
    def fetch(self, entity: str, record_id: str, field_set: Iterable[str] | None = None) -> Record:
        path = self._path(entity)
        with translate_faults(f"Fetch {entity} {record_id}"):
            filtered = path.filter(_column(path, "RID") == record_id)
            if field_set:
                columns = [_column(path, c) for c in {"RID", *field_set}]
                rows = list(filtered.attributes(*columns).fetch())
            else:
                rows = list(filtered.entities().fetch())
        if not rows:
            raise ServiceFault(self.not_found_code, f"{entity} with RID {record_id} does not exist")
        return self._to_record(entity, rows[0])

    def query(self, query: Query) -> list[Record]:
        path = self._path(query.entity)
        conditions = list(query.conditions)
        if query.link is not None:
            linked_ids = self._linked_values(query)
            if not linked_ids:
                return []
            return [
                record
                for chunk in _chunks(linked_ids, FILTER_CHUNK_SIZE)
                for record in self._select(path, query, conditions, query.link.to_field or "RID", chunk)
            ]
        return self._select(path, query, conditions)

    def _linked_values(self, query: Query) -> list[Any]:
        link = query.link
        intersect = self._path(link.entity)
        with translate_faults(f"Query {link.entity}"):
            predicate = self._predicate(intersect, link.conditions)
            linked = intersect.filter(predicate) if predicate is not None else intersect
            rows = linked.attributes(_column(intersect, link.from_field)).fetch()
            # Preserve first-seen order while dropping duplicate links.
            return list(dict.fromkeys(r[link.from_field] for r in rows if r[link.from_field] is not None))

    def _select(
        self,
        path,
        query: Query,
        conditions: list[Condition],
        key_field: str | None = None,
        key_values: Sequence[Any] = (),
    ) -> list[Record]:
        with translate_faults(f"Query {query.entity}"):
            predicate = self._predicate(path, conditions)
            if key_field is not None:
                keys = reduce(operator.or_, [_column(path, key_field) == v for v in key_values])
                predicate = keys if predicate is None else predicate & keys
            selected = path.filter(predicate) if predicate is not None else path
            entities = selected.entities()
            if query.order_by:
                column = _column(path, query.order_by)
                entities = entities.sort(column.desc if query.descending else column)
            rows = list(entities.fetch(limit=query.top))
        return [self._to_record(query.entity, row) for row in rows]

    def create(self, record: Record) -> str:
        path = self._path(record.type)
        with translate_faults(f"Create {record.type}"):
            created = path.insert([self._to_row(record)])
        rid = created[0]["RID"]
        self._logger.debug("Created %s %s", record.type, rid)
        return rid

    def update(self, record: Record) -> None:
        if record.id is None:
            raise ValueError(f"Cannot update {record.type} without an identity")
        path = self._path(record.type)
        row = self._to_row(record)
        with translate_faults(f"Update {record.type} {record.id}"):
            path.update([{"RID": record.id, **row}], correlation={"RID"}, targets=set(row))

    def associate(self, relationship_name: str, source: EntityReference, targets: Sequence[EntityReference]) -> None:
        if not targets:
            return
        source_column = target_column = None
        for fk in self._table(relationship_name).foreign_keys:
            referenced = fk.pk_table.name
            column = fk.foreign_key_columns[0].name
            if referenced == source.type and source_column is None:
                source_column = column
            elif referenced == targets[0].type and target_column is None:
                target_column = column
        if source_column is None or target_column is None:
            raise ServiceFault(
                400, f"{relationship_name} does not associate {source.type} with {targets[0].type}"
            )
        with translate_faults(f"Associate {relationship_name}"):
            self._path(relationship_name).insert(
                [{source_column: source.id, target_column: target.id} for target in targets]
            )


def _column(path, name: str):
    try:
        return path.column_definitions[name]
    except KeyError:
        raise ServiceFault(400, f"Unknown column {name}")


def _chunks(values: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    for start in range(0, len(values), size):
        yield values[start : start + size]
