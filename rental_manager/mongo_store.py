from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import Any, Iterator

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.errors import DuplicateKeyError as MongoDuplicateKeyError
from pymongo.errors import PyMongoError

from .errors import StoreError
from .query import (
    And,
    ArrayFilterAggregation,
    ElementMatch,
    Equal,
    Everything,
    Filter,
    Greater,
    GreaterEqual,
    ID_FIELD,
    Less,
    LessEqual,
    Match,
    Not,
    Or,
    Projection,
    Push,
    SetField,
    SetFields,
    SetMatchingElement,
    Sort,
    Update,
)
from .store import DuplicateKeyError, FindOptions, NoDocumentsError

logger = logging.getLogger(__name__)


def compile_filter(query: Filter) -> dict[str, Any]:
    match query:
        case Equal(field=name, value=value):
            return {name: value}
        case Less(field=name, value=value):
            return {name: {"$lt": value}}
        case LessEqual(field=name, value=value):
            return {name: {"$lte": value}}
        case Greater(field=name, value=value):
            return {name: {"$gt": value}}
        case GreaterEqual(field=name, value=value):
            return {name: {"$gte": value}}
        case And(left=left, right=right):
            return {"$and": [compile_filter(left), compile_filter(right)]}
        case Or(left=left, right=right):
            return {"$or": [compile_filter(left), compile_filter(right)]}
        case Not(inner=inner):
            # $not only applies to field expressions, $nor negates a whole filter
            return {"$nor": [compile_filter(inner)]}
        case Everything():
            return {}
        case ElementMatch(field=name, inner=inner):
            return {name: {"$elemMatch": compile_filter(inner)}}
        case Match(document=document):
            return dict(document)
    raise TypeError(f"unsupported filter: {query!r}")


def compile_sort(sort: Sort) -> dict[str, int]:
    return {sort.field: ASCENDING if sort.ascending else DESCENDING}


def compile_projection(projection: Projection) -> dict[str, int]:
    if projection.is_identity:
        return {ID_FIELD: 1}
    return {ID_FIELD: 0, projection.field: 1}


def compile_update(update: Update) -> dict[str, Any]:
    match update:
        case SetField(field=name, value=value):
            return {"$set": {name: value}}
        case SetFields(document=document):
            return {"$set": dict(document)}
        case Push(field=name, value=value):
            return {"$push": {name: value}}
        case SetMatchingElement(array=array, element_field=element_field, value=value):
            return {"$set": {f"{array}.$.{element_field}": value}}
    raise TypeError(f"unsupported update: {update!r}")


def compile_pipeline(pipeline: ArrayFilterAggregation) -> list[dict[str, Any]]:
    array = pipeline.array
    stages: list[dict[str, Any]] = [
        {"$unwind": f"${array}"},
        {"$match": compile_filter(pipeline.element_filter)},
    ]
    if pipeline.sort is not None:
        stages.append({"$sort": compile_sort(pipeline.sort)})
    if pipeline.has_limit:
        stages.append({"$limit": pipeline.limit})
    stages.append(
        {
            "$group": {
                ID_FIELD: f"${ID_FIELD}",
                "document": {"$first": "$$ROOT"},
                array: {"$push": f"${array}"},
            }
        }
    )
    stages.append({"$replaceRoot": {"newRoot": {"$mergeObjects": ["$document", {array: f"${array}"}]}}})
    if pipeline.sort is not None:
        # $group does not keep the document order established before it
        stages.append({"$sort": compile_sort(pipeline.sort)})
    return stages


@contextmanager
def _translate_errors(operation: str, collection: str) -> Iterator[None]:
    try:
        yield
    except StoreError:
        raise
    except PyMongoError as error:
        logger.warning("MongoDB %s on %s failed: %s", operation, collection, type(error).__name__)
        raise StoreError(f"MongoDB {operation} on {collection} failed") from error


class MongoStore:
    def __init__(self, client: MongoClient, database: str) -> None:
        self.client = client
        self.database = client[database]

    @classmethod
    def connect(cls, uri: str, database: str, timeout_seconds: float = 5.0) -> MongoStore:
        """Connect and ping the server. Every later call is bounded by ``timeout_seconds``."""
        client: MongoClient = MongoClient(uri, timeoutMS=int(timeout_seconds * 1000), tz_aware=True)
        with _translate_errors("ping", "admin"):
            client.admin.command("ping")
        return cls(client, database)

    def insert(self, collection: str, document: dict[str, Any]) -> str:
        with _translate_errors("insert", collection):
            try:
                result = self.database[collection].insert_one(document)
            except MongoDuplicateKeyError as error:
                raise DuplicateKeyError(f"duplicate key in {collection}") from error
        return str(result.inserted_id)

    def find_one(self, collection: str, filter: Filter, options: FindOptions | None = None) -> dict[str, Any]:
        kwargs = _find_kwargs(options)
        with _translate_errors("find_one", collection):
            document = self.database[collection].find_one(compile_filter(filter), **kwargs)
        if document is None:
            raise NoDocumentsError(f"no document in {collection} matched the query")
        return document

    def find_many(
        self,
        collection: str,
        filter: Filter,
        options: FindOptions | None = None,
    ) -> list[dict[str, Any]]:
        kwargs = _find_kwargs(options)
        with _translate_errors("find", collection):
            return list(self.database[collection].find(compile_filter(filter), **kwargs))

    def update_one(self, collection: str, filter: Filter, update: Update, upsert: bool = False) -> None:
        with _translate_errors("update_one", collection):
            try:
                result = self.database[collection].update_one(
                    compile_filter(filter),
                    compile_update(update),
                    upsert=upsert,
                )
            except MongoDuplicateKeyError as error:
                if not upsert:
                    raise
                raise DuplicateKeyError(f"upsert into {collection} hit an existing key") from error

        if not upsert and result.matched_count == 0:
            raise NoDocumentsError(f"no document in {collection} matched the update filter")

    def aggregate(self, collection: str, pipeline: ArrayFilterAggregation) -> list[dict[str, Any]]:
        with _translate_errors("aggregate", collection):
            return list(self.database[collection].aggregate(compile_pipeline(pipeline)))

    def drop_collection(self, collection: str) -> None:
        with _translate_errors("drop", collection):
            self.database[collection].drop()

    def close(self) -> None:
        self.client.close()


def _find_kwargs(options: FindOptions | None) -> dict[str, Any]:
    kwargs: dict[str, Any] = {}
    if options is None:
        return kwargs
    if options.projection is not None:
        kwargs["projection"] = compile_projection(options.projection)
    if options.sort is not None:
        kwargs["sort"] = list(compile_sort(options.sort).items())
    return kwargs
