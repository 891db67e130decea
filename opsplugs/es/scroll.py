"""Scroll queries: open a scroll context, page through it and clear it."""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from typing import Any

import requests

from opsplugs.es.config import apply_size_limit
from opsplugs.es.dsl import QueryBuilder
from opsplugs.es.models import ScrollRequest, ScrollResponse
from opsplugs.es.search import EsError, es_request
from opsplugs.es.tokenizer import QuerySyntaxError
from opsplugs.web import Request, Response, error, success

log = logging.getLogger(__name__)

_DEFAULT_SIZE = 1000
_DEFAULT_SCROLL_TIME = "1m"


def _decode(response: requests.Response) -> Any:
    if response.status_code != 200:
        raise EsError(f"ES返回错误: {response.text}")
    try:
        return response.json()
    except ValueError as exc:
        raise EsError(f"解析响应失败: {exc}") from exc


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _scroll_result(payload: Any) -> ScrollResponse:
    if not isinstance(payload, dict):
        raise EsError("未找到滚动ID")
    scroll_id = payload.get("_scroll_id")
    if not isinstance(scroll_id, str):
        raise EsError("未找到滚动ID")
    took = payload.get("took")
    if not _is_number(took):
        raise EsError("解析响应失败: took 缺失")
    result = ScrollResponse(scroll_id=scroll_id, query_time=int(took))

    hits = payload.get("hits")
    if isinstance(hits, dict):
        total = hits.get("total")
        if isinstance(total, dict):
            value = total.get("value")
            if not _is_number(value):
                raise EsError("解析响应失败: total.value 缺失")
            result.total_hits = int(value)
        hit_list = hits.get("hits")
        if isinstance(hit_list, list):
            result.hits = [hit for hit in hit_list if isinstance(hit, dict)]

    result.actual_hits = len(result.hits)
    return result


def _build_query(req: ScrollRequest) -> dict | None:
    if req.start_time or req.end_time or req.keyword:
        builder = QueryBuilder(
            index=req.index,
            start_time=req.start_time,
            end_time=req.end_time,
            time_field=req.time_field or "@timestamp",
            time_format="epoch_millis",
            size=req.size,
        )
        if req.keyword:
            try:
                builder.parse_keyword(req.keyword)
            except QuerySyntaxError as exc:
                raise QuerySyntaxError(f"解析关键词失败: {exc}") from exc
        return builder.query
    if req.query is not None:
        return req.query
    return {"match_all": {}}


def init_scroll(req: ScrollRequest) -> ScrollResponse:
    """Open a scroll context and return its first batch."""
    if not req.index:
        raise ValueError("缺少必要参数: index")

    req = replace(req)
    if req.size <= 0:
        req.size = _DEFAULT_SIZE
    req.size = apply_size_limit(req.size)
    if not req.scroll_time:
        req.scroll_time = _DEFAULT_SCROLL_TIME

    body: dict[str, Any] = {
        "query": _build_query(req),
        "size": req.size,
        "track_total_hits": True,
    }
    if req.sort:
        body["sort"] = req.sort
    else:
        body["sort"] = [{"_doc": {"order": "asc"}}]
    if req.source is not None:
        body["_source"] = req.source

    log.info(
        "滚动查询初始化 - 索引: %s, 时间范围: %s ~ %s, 关键词: %s, 每批: %d",
        req.index, req.start_time, req.end_time, req.keyword, req.size,
    )
    log.info("构建的DSL: %s", json.dumps(body, ensure_ascii=False))

    response = es_request("POST", f"/{req.index}/_search?scroll={req.scroll_time}", body)
    return _scroll_result(_decode(response))


def continue_scroll(req: ScrollRequest) -> ScrollResponse:
    """Fetch the next batch; an empty batch clears the context and blanks the id."""
    if not req.scroll_id:
        raise ValueError("缺少必要参数: scroll_id")
    scroll_time = req.scroll_time or _DEFAULT_SCROLL_TIME

    body = {"scroll": scroll_time, "scroll_id": req.scroll_id}
    result = _scroll_result(_decode(es_request("POST", "/_search/scroll", body)))

    if not result.hits:
        try:
            clear_scroll(ScrollRequest(scroll_id=result.scroll_id))
        except (EsError, ValueError) as exc:
            log.error("清除滚动上下文失败: %s", exc)
        result.scroll_id = ""
    return result


def clear_scroll(req: ScrollRequest) -> ScrollResponse:
    """Release a scroll context; an unknown context counts as cleared."""
    if not req.scroll_id:
        raise ValueError("缺少必要参数: scroll_id")

    response = es_request("DELETE", "/_search/scroll", {"scroll_id": [req.scroll_id]})
    if response.status_code not in (200, 404):
        raise EsError(f"ES返回错误: {response.text}")
    return ScrollResponse(scroll_id=req.scroll_id, cleared=True)


_ACTIONS = {
    "init": init_scroll,
    "continue": continue_scroll,
    "clear": clear_scroll,
}


def scroll_handler(request: Request) -> Response:
    """POST /api/elfk/scroll with an action of init, continue or clear."""
    log.info("POST请求 - 滚动查询，原始请求体: %s", request.body.decode("utf-8", "replace"))
    try:
        data = request.json()
        req = ScrollRequest.from_dict({} if data is None else data)
    except ValueError as exc:
        log.error("解析请求失败: %s", exc)
        return error(400, "请求格式错误")

    if not req.action:
        return error(400, "缺少必要参数: action (init/continue/clear)")

    log.info("滚动查询操作: %s", req.action)
    action = _ACTIONS.get(req.action)
    if action is None:
        return error(400, f"不支持的操作类型: {req.action}")

    try:
        result = action(req)
    except (EsError, ValueError) as exc:
        log.error("滚动查询失败: %s", exc)
        return error(500, str(exc))

    log.info("滚动查询成功")
    return success(result)