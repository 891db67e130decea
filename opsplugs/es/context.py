"""Fetch a document together with the documents sorted just before and after it."""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Any

import requests

from opsplugs.es.models import ContextRequest, ContextResponse
from opsplugs.es.search import EsError, es_request
from opsplugs.web import Request, Response, error, success

log = logging.getLogger(__name__)


def _decode(response: requests.Response) -> Any:
    if response.status_code != 200:
        raise EsError(f"ES返回错误: {response.text}")
    try:
        return response.json()
    except ValueError as exc:
        raise EsError(f"解析响应失败: {exc}") from exc


def normalize_sort_value(value: Any) -> Any:
    """Truncate floating-point sort values to integers; leave others unchanged."""
    if isinstance(value, float):
        return int(value)
    return value


def get_center_document(index: str, doc_id: str) -> dict:
    """Fetch one document by id."""
    response = es_request("GET", f"/{index}/_doc/{doc_id}")
    if response.status_code == 404:
        raise EsError(f"中心文档不存在，ID: {doc_id}")
    document = _decode(response)
    if document is None:
        return {}
    if not isinstance(document, dict):
        raise EsError("解析响应失败: 响应不是对象")
    return document


def _neighbours(req: ContextRequest, comparison: str, order: str, size: int, sort_value: Any) -> list[dict]:
    body: dict[str, Any] = {
        "query": {
            "bool": {
                "must": [{"range": {req.sort_field: {comparison: sort_value}}}],
            }
        },
        "size": size,
        "sort": [{req.sort_field: {"order": order}}],
    }
    if req.source is not None:
        body["_source"] = req.source

    payload = _decode(es_request("POST", f"/{req.index}/_search", body))
    if not isinstance(payload, dict):
        if payload is None:
            return []
        raise EsError("解析响应失败: 响应不是对象")
    hits = payload.get("hits")
    if not isinstance(hits, dict):
        return []
    hit_list = hits.get("hits")
    if not isinstance(hit_list, list):
        return []
    return [hit for hit in hit_list if isinstance(hit, dict)]


def get_before_documents(req: ContextRequest, sort_value: Any) -> list[dict]:
    """Documents sorted just before the value, returned in ascending order."""
    docs = _neighbours(req, "lt", "desc", req.before, sort_value)
    docs.reverse()
    return docs


def get_after_documents(req: ContextRequest, sort_value: Any) -> list[dict]:
    """Documents sorted just after the value, in ascending order."""
    return _neighbours(req, "gt", "asc", req.after, sort_value)


def get_document_context(req: ContextRequest) -> ContextResponse:
    """The centre document with its neighbours; neighbour failures are only logged."""
    center = get_center_document(req.index, req.doc_id)
    result = ContextResponse(center=center)

    source = center.get("_source")
    if not isinstance(source, dict):
        raise EsError("中心文档格式错误")
    if req.sort_field not in source:
        raise EsError(f"中心文档不包含排序字段: {req.sort_field}")
    sort_value = normalize_sort_value(source[req.sort_field])

    if req.before > 0:
        try:
            result.before = get_before_documents(req, sort_value)
            result.before_total = len(result.before)
        except EsError as exc:
            log.error("获取before文档失败: %s", exc)

    if req.after > 0:
        try:
            result.after = get_after_documents(req, sort_value)
            result.after_total = len(result.after)
        except EsError as exc:
            log.error("获取after文档失败: %s", exc)

    result.total = result.before_total + 1 + result.after_total
    return result


def context_handler(request: Request) -> Response:
    """POST /api/elfk/context."""
    log.info("POST请求 - 上下文查询")
    started = time.monotonic()

    try:
        data = request.json()
        req = ContextRequest.from_dict({} if data is None else data)
    except ValueError as exc:
        log.error("解析请求失败: %s", exc)
        return error(400, "请求格式错误")

    if not req.index:
        return error(400, "缺少必要参数: index")
    if not req.doc_id:
        return error(400, "缺少必要参数: doc_id")
    if not req.sort_field:
        req = replace(req, sort_field="@timestamp")

    log.info(
        "上下文查询 - 索引: %s, 文档ID: %s, before: %d, after: %d, 排序字段: %s",
        req.index, req.doc_id, req.before, req.after, req.sort_field,
    )

    try:
        result = get_document_context(req)
    except EsError as exc:
        log.error("上下文查询失败: %s", exc)
        return error(500, str(exc))

    result.took = int((time.monotonic() - started) * 1000)
    log.info("上下文查询成功，总记录数: %d", result.total)
    return success(result)