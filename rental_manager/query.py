"""Engine independent vocabulary for document store queries.

Every value here is an immutable description. Nothing is executed: a store
adapter compiles the descriptions into its own query language (see
``mongo_store``), while ``pseudo_store`` keeps them as they are so call sites
can be compared structurally in tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

ID_FIELD = "_id"


class Filter:
    """Base of all filter variants."""

    __slots__ = ()


@dataclass(frozen=True)
class Equal(Filter):
    field: str
    value: Any


@dataclass(frozen=True)
class Less(Filter):
    field: str
    value: Any


@dataclass(frozen=True)
class LessEqual(Filter):
    field: str
    value: Any


@dataclass(frozen=True)
class Greater(Filter):
    field: str
    value: Any


@dataclass(frozen=True)
class GreaterEqual(Filter):
    field: str
    value: Any


@dataclass(frozen=True)
class And(Filter):
    left: Filter
    right: Filter


@dataclass(frozen=True)
class Or(Filter):
    left: Filter
    right: Filter


@dataclass(frozen=True)
class Not(Filter):
    inner: Filter


@dataclass(frozen=True)
class Everything(Filter):
    pass


@dataclass(frozen=True)
class ElementMatch(Filter):
    """At least one element of the array ``field`` satisfies ``inner``.

    Field names inside ``inner`` are relative to the array element.
    """

    field: str
    inner: Filter


@dataclass(frozen=True)
class Match(Filter):
    """All fields of ``document`` are equal to the given values."""

    document: Mapping[str, Any]


@dataclass(frozen=True)
class Sort:
    field: str
    ascending: bool = True

    @classmethod
    def asc(cls, field_name: str) -> Sort:
        return cls(field_name, ascending=True)

    @classmethod
    def desc(cls, field_name: str) -> Sort:
        return cls(field_name, ascending=False)


@dataclass(frozen=True)
class Projection:
    field: str

    @classmethod
    def identity(cls) -> Projection:
        return cls(ID_FIELD)

    @property
    def is_identity(self) -> bool:
        return self.field == ID_FIELD


class Update:
    """Base of all update variants."""

    __slots__ = ()


@dataclass(frozen=True)
class SetField(Update):
    field: str
    value: Any


@dataclass(frozen=True)
class SetFields(Update):
    document: Mapping[str, Any]


@dataclass(frozen=True)
class Push(Update):
    field: str
    value: Any


@dataclass(frozen=True)
class SetMatchingElement(Update):
    """Set ``element_field`` on the array element selected by an ElementMatch filter.

    Must not be combined with an upsert.
    """

    array: str
    element_field: str
    value: Any


@dataclass(frozen=True)
class ArrayFilterAggregation:
    """Flatten ``array``, keep the elements matching ``element_filter``, order and
    limit them globally, then rebuild one document per parent.

    ``element_filter`` addresses element fields as ``<array>.<field>`` and may mix
    in parent fields. ``limit <= 0`` disables the limit. ``sort`` orders the
    elements inside every document as well as the documents themselves.
    """

    array: str
    element_filter: Filter
    limit: int = 0
    sort: Sort | None = field(default=None)

    @property
    def has_limit(self) -> bool:
        return self.limit > 0


def unpack_push(update: Update) -> tuple[str, Any]:
    if not isinstance(update, Push):
        raise TypeError(f"not a push update: {update!r}")
    return update.field, update.value
