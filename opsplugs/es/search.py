"""Keyword search against Elasticsearch and the shared request helper."""

from __future__ import annotations

import json
import logging
from typing import Any

import requests

from opsplugs.es.config import get_es_config, get_limit_config
from opsplugs.es.dsl import QueryBuilder
from opsplugs.es.models import SearchHit, SearchRequest, SearchResponse
from opsplugs.es.tokenizer import QuerySyntaxError
from opsplugs.web import Request, Response, error, success

log = logging.getLogger(__name__)


class EsError(Exception):
    """An Elasticsearch request failed or returned something unusable."""


def es_request(
    method: str, path: str, body: Any = None, timeout: float | None = None
) -> requests.Response:
    """Send a request to the configured cluster; body is encoded as JSON when given."""
    cfg = get_es_config()
    headers: dict[str, str] = {}
    data = None
    if body is not None:
        data = json.dumps(body, ensure_ascii=False).encode("utf-8")
        headers["Content-Type"] = "application/json"
    auth = (cfg.username, cfg.password) if cfg.username and cfg.password else None
    try:
        return requests.request(
            method,
            f"{cfg.host}{path}",
            data=data,
            headers=headers,
            auth=auth,
            timeout=timeout,
        )
    except requests.RequestException as exc:
        raise EsError(f"请求ES失败: {exc}") from exc


def build_search_dsl(req: SearchRequest) -> dict:
    """Build the search body; raises QuerySyntaxError when the keyword is malformed."""
    time_field = req.time_field or "@timestamp"
    builder = QueryBuilder(
        index=req.index,
        start_time=req.start_time,
        end_time=req.end_time,
        time_field=time_field,
        time_format="epoch_millis",
        size=req.size,
    )
    try:
        builder.parse_keyword(req.keyword)
    except QuerySyntaxError as exc:
        raise QuerySyntaxError(f"解析关键词失败: {exc}") from exc

    sort_order = req.sort_order if req.sort_order in ("asc", "desc") else "desc"
    return {
        "size": req.size,
        "track_total_hits": True,
        "query": builder.query,
        "sort": [{time_field: {"order": sort_order}}],
    }


def _number(value: Any) -> int | float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected a number, got {value!r}")
    return value


def _search_hit(hit: Any) -> SearchHit:
    if not isinstance(hit, dict):
        raise TypeError("hit is not an object")
    index, doc_id, source = hit["_index"], hit["_id"], hit["_source"]
    if not isinstance(index, str) or not isinstance(doc_id, str):
        raise TypeError("hit _index and _id must be strings")
    if not isinstance(source, dict):
        raise TypeError("hit _source must be an object")
    result = SearchHit(index=index, id=doc_id, source=source)
    score = hit.get("_score")
    if isinstance(score, (int, float)) and not isinstance(score, bool):
        result.score = float(score)
    return result


def _search_response(raw: Any) -> SearchResponse:
    if not isinstance(raw, dict):
        raise TypeError("response is not an object")
    timed_out = raw["timed_out"]
    if not isinstance(timed_out, bool):
        raise TypeError("timed_out must be a boolean")
    result = SearchResponse(query_time=int(_number(raw["took"])), timed_out=timed_out)
    hits_map = raw.get("hits")
    if isinstance(hits_map, dict):
        total = hits_map.get("total")
        if isinstance(total, dict):
            result.total_hits = int(_number(total["value"]))
        hits = hits_map.get("hits")
        if isinstance(hits, list):
            result.hits = [_search_hit(hit) for hit in hits]
    result.actual_hits = len(result.hits)
    return result


def execute_search(index: str, dsl: dict) -> SearchResponse:
    """Run a search body against an index."""
    timeout = get_es_config().timeout
    response = es_request("POST", f"/{index}/_search", dsl, timeout if timeout > 0 else None)
    if response.status_code != 200:
        raise EsError(f"ES返回错误状态码: {response.status_code}, 响应: {response.text}")
    try:
        raw = response.json()
    except ValueError as exc:
        raise EsError(f"解析ES响应失败: {exc}") from exc
    try:
        return _search_response(raw)
    except (KeyError, TypeError, ValueError) as exc:
        raise EsError(f"解析ES响应失败: {exc}") from exc


def search_handler(request: Request) -> Response:
    """POST /api/elfk/search."""
    if request.method != "POST":
        return error(405, "仅支持POST请求")

    log.info("POST请求 - 原始请求体: %s", request.body.decode("utf-8", "replace"))
    try:
        data = request.json()
        req = SearchRequest.from_dict({} if data is None else data)
    except ValueError as exc:
        log.error("解析请求失败: %s", exc)
        return error(400, "请求参数错误")

    if not req.index:
        return error(400, "索引名不能为空")

    req.size = get_limit_config().max_size

    try:
        dsl = build_search_dsl(req)
    except QuerySyntaxError as exc:
        log.error("构建DSL失败: %s", exc)
        return error(400, f"构建查询失败: {exc}")

    log.info("构建的DSL: %s", json.dumps(dsl, ensure_ascii=False))

    try:
        result = execute_search(req.index, dsl)
    except EsError as exc:
        log.error("ES查询失败: %s", exc)
        return error(500, f"查询失败: {exc}")

    return success(result)