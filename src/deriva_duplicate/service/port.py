"""The data service interface required by the duplication engine.

Every method is synchronous. Implementations raise
:class:`~deriva_duplicate.core.exceptions.ServiceFault` carrying a provider
specific numeric code; a fetch that resolves to no record raises a fault with the
provider's not-found code.
"""

from __future__ import annotations

from typing import Iterable, Protocol, Sequence, runtime_checkable

from deriva_duplicate.core.query import Query
from deriva_duplicate.core.records import EntityReference, Record


@runtime_checkable
class DataService(Protocol):
    def fetch(self, entity: str, record_id: str, field_set: Iterable[str] | None = None) -> Record: ...

    def query(self, query: Query) -> Sequence[Record]: ...

    def create(self, record: Record) -> str: ...

    def update(self, record: Record) -> None: ...

    def associate(
        self, relationship_name: str, source: EntityReference, targets: Sequence[EntityReference]
    ) -> None: ...
