"""Configuration items and list pages as the Nacos server returns them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


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
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"field {key!r} must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"field {key!r} must be an integer")
    return int(value)


@dataclass
class ConfigItem:
    """One configuration entry."""

    data_id: str = ""
    group: str = ""
    content: str = ""
    tenant: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> ConfigItem:
        if not isinstance(data, dict):
            raise ValueError("config item must be an object")
        return cls(
            data_id=_string(data, "dataId"),
            group=_string(data, "group"),
            content=_string(data, "content"),
            tenant=_string(data, "tenant"),
        )

    def to_dict(self) -> dict:
        return {
            "dataId": self.data_id,
            "group": self.group,
            "content": self.content,
            "tenant": self.tenant,
        }


@dataclass
class ConfigListResponse:
    """One page of configuration entries; page_items is None when absent."""

    total_count: int = 0
    page_number: int = 0
    pages_available: int = 0
    page_items: list[ConfigItem] | None = None

    @classmethod
    def from_dict(cls, data: Any) -> ConfigListResponse:
        if not isinstance(data, dict):
            raise ValueError("config list must be an object")
        raw_items = _lookup(data, "pageItems")
        items: list[ConfigItem] | None
        if raw_items is None:
            items = None
        elif isinstance(raw_items, list):
            items = [ConfigItem() if item is None else ConfigItem.from_dict(item) for item in raw_items]
        else:
            raise ValueError("field 'pageItems' must be an array")
        return cls(
            total_count=_integer(data, "totalCount"),
            page_number=_integer(data, "pageNumber"),
            pages_available=_integer(data, "pagesAvailable"),
            page_items=items,
        )

    def to_dict(self) -> dict:
        return {
            "totalCount": self.total_count,
            "pageNumber": self.page_number,
            "pagesAvailable": self.pages_available,
            "pageItems": None if self.page_items is None else [i.to_dict() for i in self.page_items],
        }