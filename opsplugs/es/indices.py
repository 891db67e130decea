"""Index listing and simplified field mappings."""

from __future__ import annotations

import logging
from typing import Any

import requests

from opsplugs.es.models import IndexMappingResponse
from opsplugs.es.search import EsError, es_request
from opsplugs.web import Request, Response, error, success

log = logging.getLogger(__name__)

_MAX_INDICES = 10


def _decode(response: requests.Response) -> Any:
    if response.status_code != 200:
        raise EsError(f"ES返回错误: {response.text}")
    try:
        return response.json()
    except ValueError as exc:
        raise EsError(f"解析响应失败: {exc}") from exc


def get_indices_list(pattern: str) -> list[str]:
    """Names of the indices matching a pattern, in the order the cluster lists them."""
    payload = _decode(es_request("GET", f"/_cat/indices/{pattern}?format=json&h=index"))
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise EsError("解析响应失败: 响应不是数组")
    names: list[str] = []
    for item in payload:
        if item is None:
            continue
        if not isinstance(item, dict):
            raise EsError("解析响应失败: 数组元素不是对象")
        name = item.get("index")
        if isinstance(name, str):
            names.append(name)
    return names


def get_index_mappings(index_name: str) -> dict:
    """The raw mapping document of one index."""
    payload = _decode(es_request("GET", f"/{index_name}/_mapping"))
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise EsError("解析响应失败: 响应不是对象")
    return payload


def simplify_properties(properties: dict) -> dict:
    """Keep only field types, recursing into object fields."""
    result: dict[str, Any] = {}
    for name, info in properties.items():
        if not isinstance(info, dict):
            continue
        field_type = info.get("type")
        nested = info.get("properties")
        if isinstance(field_type, str):
            result[name] = {"type": field_type}
        elif isinstance(nested, dict):
            result[name] = {"type": "object", "properties": simplify_properties(nested)}
    return result


def simplify_mappings(mappings: dict) -> dict:
    """Reduce a mapping document to {"properties": {...}} of its first index."""
    for index_mapping in mappings.values():
        if not isinstance(index_mapping, dict):
            continue
        mapping = index_mapping.get("mappings")
        if not isinstance(mapping, dict):
            continue
        properties = mapping.get("properties")
        if isinstance(properties, dict):
            return {"properties": simplify_properties(properties)}
    return {"properties": {}}


def index_mapping_handler(request: Request) -> Response:
    """GET /api/elfk/indices?index=<pattern>."""
    log.info("GET请求 - 获取索引映射")
    pattern = request.query.get("index", "")
    if not pattern:
        return error(400, "索引模式不能为空")

    log.info("开始获取索引映射 - 索引模式: %s", pattern)
    try:
        indices = get_indices_list(pattern)
    except EsError as exc:
        log.error("获取索引列表失败: %s", exc)
        return error(500, f"获取索引列表失败: {exc}")

    if not indices:
        return error(404, "未找到匹配的索引")

    indices.sort()
    total = len(indices)
    if total > _MAX_INDICES:
        indices = indices[-_MAX_INDICES:]
        log.info("找到 %d 个索引，仅返回最新的 %d 个", total, _MAX_INDICES)

    latest = indices[-1]
    log.info("最新索引: %s", latest)

    try:
        mappings = get_index_mappings(latest)
    except EsError as exc:
        log.error("获取索引映射失败: %s", exc)
        return error(500, f"获取索引映射失败: {exc}")

    result = IndexMappingResponse(indices=indices, fields=simplify_mappings(mappings))
    log.info("成功获取索引映射，返回 %d 个索引（总共 %d 个）", len(indices), total)
    return success(result)