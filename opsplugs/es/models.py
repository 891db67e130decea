"""Request and response records of the Elasticsearch query endpoints."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


def _require_object(data: Any) -> dict:
    if not isinstance(data, dict):
        raise ValueError("request body must be a JSON object")
    return data


def _lookup(data: dict, key: str) -> Any:
    if key in data:
        return data[key]
    lowered = key.lower()
    for name, value in data.items():
        if isinstance(name, str) and name.lower() == lowered:
            return value
    return None


def _string(data: dict, key: str) -> str:
    value = _lookup(data, key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string")
    return value


def _integer(data: dict, key: str) -> int:
    value = _lookup(data, key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {key!r} must be an integer")
    return value


def _mapping(data: dict, key: str) -> dict | None:
    value = _lookup(data, key)
    if value is not None and not isinstance(value, dict):
        raise ValueError(f"field {key!r} must be an object")
    return value


def _sequence(data: dict, key: str) -> list | None:
    value = _lookup(data, key)
    if value is not None and not isinstance(value, list):
        raise ValueError(f"field {key!r} must be an array")
    return value


@dataclass
class ContextRequest:
    """Ask for the documents surrounding one document."""

    index: str = ""
    doc_id: str = ""
    before: int = 0
    after: int = 0
    sort_field: str = ""
    source: Any = None

    @classmethod
    def from_dict(cls, data: Any) -> ContextRequest:
        data = _require_object(data)
        return cls(
            index=_string(data, "index"),
            doc_id=_string(data, "doc_id"),
            before=_integer(data, "before"),
            after=_integer(data, "after"),
            sort_field=_string(data, "sort_field"),
            source=_lookup(data, "_source"),
        )


@dataclass
class ContextResponse:
    """A document with its neighbours before and after it."""

    before: list[dict] = field(default_factory=list)
    center: dict | None = None
    after: list[dict] = field(default_factory=list)
    total: int = 0
    before_total: int = 0
    after_total: int = 0
    took: int = 0

    def to_dict(self) -> dict:
        return {
            "before": self.before,
            "center": self.center,
            "after": self.after,
            "total": self.total,
            "before_total": self.before_total,
            "after_total": self.after_total,
            "took": self.took,
        }


@dataclass
class IndexMappingResponse:
    """Matching index names and the simplified fields of the newest one."""

    indices: list[str] = field(default_factory=list)
    fields: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"indices": self.indices, "fields": self.fields}


@dataclass
class ScrollRequest:
    """One step of a scroll query: init, continue or clear."""

    action: str = ""
    index: str = ""
    start_time: str = ""
    end_time: str = ""
    time_field: str = ""
    keyword: str = ""
    query: dict | None = None
    size: int = 0
    scroll_time: str = ""
    scroll_id: str = ""
    sort: list | None = None
    source: Any = None

    @classmethod
    def from_dict(cls, data: Any) -> ScrollRequest:
        data = _require_object(data)
        return cls(
            action=_string(data, "action"),
            index=_string(data, "index"),
            start_time=_string(data, "start_time"),
            end_time=_string(data, "end_time"),
            time_field=_string(data, "time_field"),
            keyword=_string(data, "keyword"),
            query=_mapping(data, "query"),
            size=_integer(data, "size"),
            scroll_time=_string(data, "scroll_time"),
            scroll_id=_string(data, "scroll_id"),
            sort=_sequence(data, "sort"),
            source=_lookup(data, "_source"),
        )


@dataclass
class ScrollResponse:
    """A batch of scroll hits, or the acknowledgement of a clear."""

    scroll_id: str = ""
    query_time: int = 0
    total_hits: int = 0
    actual_hits: int = 0
    hits: list[dict] = field(default_factory=list)
    cleared: bool = False

    def to_dict(self) -> dict:
        return {
            "scroll_id": self.scroll_id,
            "query_time": self.query_time,
            "total_hits": self.total_hits,
            "actual_hits": self.actual_hits,
            "hits": self.hits,
            "cleared": self.cleared,
        }


@dataclass
class SearchRequest:
    """A keyword search over a time range."""

    index: str = ""
    start_time: str = ""
    end_time: str = ""
    time_field: str = ""
    keyword: str = ""
    size: int = 0
    sort_order: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> SearchRequest:
        data = _require_object(data)
        return cls(
            index=_string(data, "index"),
            start_time=_string(data, "start_time"),
            end_time=_string(data, "end_time"),
            time_field=_string(data, "time_field"),
            keyword=_string(data, "keyword"),
            size=_integer(data, "size"),
            sort_order=_string(data, "sort_order"),
        )


@dataclass
class SearchHit:
    """One matching document."""

    index: str = ""
    id: str = ""
    score: float = 0.0
    source: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "_index": self.index,
            "_id": self.id,
            "_score": self.score,
            "_source": self.source,
        }


@dataclass
class SearchResponse:
    """The result of a search."""

    query_time: int = 0
    timed_out: bool = False
    total_hits: int = 0
    actual_hits: int = 0
    hits: list[SearchHit] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "query_time": self.query_time,
            "timed_out": self.timed_out,
            "total_hits": self.total_hits,
            "actual_hits": self.actual_hits,
            "hits": [hit.to_dict() for hit in self.hits],
        }