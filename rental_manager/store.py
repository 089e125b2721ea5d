from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from .errors import StoreError
from .query import ArrayFilterAggregation, Filter, Projection, Sort, Update


class DuplicateKeyError(StoreError):
    """An insert, or an upsert that fell back to an insert, hit an existing ``_id``."""


class NoDocumentsError(StoreError):
    """No document matched a filter that was required to match."""


@dataclass(frozen=True)
class FindOptions:
    sort: Sort | None = None
    projection: Projection | None = None


class DocumentStore(Protocol):
    """Low level access to one document database.

    Implementations raise ``StoreError`` (or one of the subclasses above) for
    every engine failure, timeouts included.
    """

    def insert(self, collection: str, document: dict[str, Any]) -> str:
        ...

    def find_one(self, collection: str, filter: Filter, options: FindOptions | None = None) -> dict[str, Any]:
        """Raises ``NoDocumentsError`` if nothing matches."""
        ...

    def find_many(
        self,
        collection: str,
        filter: Filter,
        options: FindOptions | None = None,
    ) -> list[dict[str, Any]]:
        ...

    def update_one(self, collection: str, filter: Filter, update: Update, upsert: bool = False) -> None:
        """Apply ``update`` to the first document matching ``filter``.

        With ``upsert`` a document seeded from the equality terms of ``filter``
        is created when nothing matches; ``DuplicateKeyError`` is raised if that
        document would reuse an existing ``_id``. Without ``upsert``,
        ``NoDocumentsError`` is raised when nothing matches.
        """
        ...

    def aggregate(self, collection: str, pipeline: ArrayFilterAggregation) -> list[dict[str, Any]]:
        ...

    def drop_collection(self, collection: str) -> None:
        ...

    def close(self) -> None:
        ...
