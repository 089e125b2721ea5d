"""A document store that executes nothing.

Every call is recorded together with the query descriptions it received, so
tests can compare the exact shape of a query with ``==``. Results are served from
responses queued with ``respond``; an exception instance in the queue is raised
instead of returned.
"""

from __future__ import annotations

from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Any

from .query import ArrayFilterAggregation, Filter, Update
from .store import FindOptions, NoDocumentsError


@dataclass(frozen=True)
class RecordedCall:
    method: str
    collection: str
    arguments: dict[str, Any]


class PseudoStore:
    def __init__(self) -> None:
        self.calls: list[RecordedCall] = []
        self.closed = False
        self._responses: dict[str, deque[Any]] = defaultdict(deque)

    def respond(self, method: str, *results: Any) -> None:
        self._responses[method].extend(results)

    def calls_to(self, method: str) -> list[RecordedCall]:
        return [call for call in self.calls if call.method == method]

    def _answer(self, method: str, collection: str, arguments: dict[str, Any], default: Any) -> Any:
        self.calls.append(RecordedCall(method, collection, arguments))
        queue = self._responses[method]
        result = queue.popleft() if queue else default
        if isinstance(result, BaseException):
            raise result
        return result

    def insert(self, collection: str, document: dict[str, Any]) -> str:
        return self._answer("insert", collection, {"document": document}, str(document.get("_id", "")))

    def find_one(self, collection: str, filter: Filter, options: FindOptions | None = None) -> dict[str, Any]:
        return self._answer(
            "find_one",
            collection,
            {"filter": filter, "options": options},
            NoDocumentsError(f"no document in {collection} matched the query"),
        )

    def find_many(
        self,
        collection: str,
        filter: Filter,
        options: FindOptions | None = None,
    ) -> list[dict[str, Any]]:
        return self._answer("find_many", collection, {"filter": filter, "options": options}, [])

    def update_one(self, collection: str, filter: Filter, update: Update, upsert: bool = False) -> None:
        self._answer("update_one", collection, {"filter": filter, "update": update, "upsert": upsert}, None)

    def aggregate(self, collection: str, pipeline: ArrayFilterAggregation) -> list[dict[str, Any]]:
        return self._answer("aggregate", collection, {"pipeline": pipeline}, [])

    def drop_collection(self, collection: str) -> None:
        self._answer("drop_collection", collection, {}, None)

    def close(self) -> None:
        self.closed = True
