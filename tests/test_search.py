import json

import pytest
import responses

from opsplugs.es.config import get_limit_config, load_config
from opsplugs.es.models import SearchRequest
from opsplugs.es.search import (
    EsError,
    build_search_dsl,
    es_request,
    execute_search,
    search_handler,
)
from opsplugs.es.tokenizer import QuerySyntaxError
from opsplugs.web import Request

ES_VARS = ("ES_HOST", "ES_USERNAME", "ES_PASSWORD", "LOG_LEVEL", "LIMIT_MAX_SIZE")
SEARCH_URL = "http://localhost:9200/logs/_search"

ES_REPLY = {
    "took": 5,
    "timed_out": False,
    "hits": {
        "total": {"value": 2},
        "hits": [
            {"_index": "logs", "_id": "1", "_score": 1.5, "_source": {"m": "x"}},
            {"_index": "logs", "_id": "2", "_score": None, "_source": {}},
        ],
    },
}


@pytest.fixture(autouse=True)
def es_config(monkeypatch, tmp_path):
    for name in ES_VARS:
        monkeypatch.delenv(name, raising=False)
    return load_config(tmp_path / "absent.yml")


@pytest.fixture
def rsps():
    with responses.RequestsMock() as mock:
        yield mock


def test_dsl_defaults():
    dsl = build_search_dsl(SearchRequest(index="logs", size=10))
    assert dsl["size"] == 10
    assert dsl["track_total_hits"] is True
    assert dsl["sort"] == [{"@timestamp": {"order": "desc"}}]
    assert "@timestamp" in dsl["query"]["bool"]["must"][0]["range"]


def test_dsl_sort_order_kept_or_reset():
    asc = build_search_dsl(SearchRequest(index="logs", sort_order="asc"))
    bogus = build_search_dsl(SearchRequest(index="logs", sort_order="sideways"))
    assert asc["sort"] == [{"@timestamp": {"order": "asc"}}]
    assert bogus["sort"] == [{"@timestamp": {"order": "desc"}}]


def test_dsl_custom_time_field():
    dsl = build_search_dsl(SearchRequest(index="logs", time_field="ts"))
    assert dsl["sort"] == [{"ts": {"order": "desc"}}]
    assert "ts" in dsl["query"]["bool"]["must"][0]["range"]


def test_dsl_times_are_epoch_millis():
    dsl = build_search_dsl(
        SearchRequest(
            index="logs",
            start_time="2025-03-10 00:00:00",
            end_time="2025-03-11 00:00:00",
        )
    )
    span = dsl["query"]["bool"]["must"][0]["range"]["@timestamp"]
    assert span["gte"].isdigit() and span["lte"].isdigit()
    assert int(span["lte"]) - int(span["gte"]) == 86_400_000


def test_dsl_keyword_clause_and_range():
    dsl = build_search_dsl(SearchRequest(index="logs", keyword="status:500"))
    must = dsl["query"]["bool"]["must"]
    assert must[0] == {"match_phrase": {"status": "500"}}
    assert "range" in must[1]


def test_dsl_bad_keyword():
    with pytest.raises(QuerySyntaxError):
        build_search_dsl(SearchRequest(index="logs", keyword="(a"))


def test_execute_search_parses_hits(rsps):
    rsps.add(responses.POST, SEARCH_URL, json=ES_REPLY)
    dsl = {"size": 2, "query": {"match_all": {}}}
    result = execute_search("logs", dsl)
    assert result.query_time == 5
    assert result.timed_out is False
    assert result.total_hits == 2
    assert result.actual_hits == 2
    assert [hit.id for hit in result.hits] == ["1", "2"]
    assert result.hits[0].score == 1.5
    assert result.hits[1].score == 0.0
    assert result.hits[0].source == {"m": "x"}
    assert json.loads(rsps.calls[0].request.body) == dsl


def test_execute_search_error_status(rsps):
    rsps.add(responses.POST, SEARCH_URL, status=500, body="boom")
    with pytest.raises(EsError) as info:
        execute_search("logs", {})
    assert "500" in str(info.value)
    assert "boom" in str(info.value)


def test_execute_search_malformed_reply(rsps):
    rsps.add(responses.POST, SEARCH_URL, json={"hits": {}})
    with pytest.raises(EsError):
        execute_search("logs", {})


def test_es_request_connection_failure(rsps):
    with pytest.raises(EsError) as info:
        es_request("GET", "/nowhere")
    assert str(info.value).startswith("请求ES失败")


def test_es_request_basic_auth(monkeypatch, tmp_path, rsps):
    monkeypatch.setenv("ES_PASSWORD", "password")
    load_config(tmp_path / "absent.yml")
    rsps.add(responses.GET, "http://localhost:9200/_cluster/health", json={"status": "green"})
    response = es_request("GET", "/_cluster/health")
    assert response.status_code == 200
    assert response.json() == {"status": "green"}
    assert rsps.calls[0].request.headers["Authorization"].startswith("Basic ")


def test_es_request_without_password_has_no_auth(rsps):
    rsps.add(responses.GET, "http://localhost:9200/_cluster/health", json={})
    response = es_request("GET", "/_cluster/health")
    assert response.status_code == 200
    assert "Authorization" not in rsps.calls[0].request.headers


def test_handler_rejects_get():
    resp = search_handler(Request(method="GET"))
    assert resp.status == 405
    assert json.loads(resp.body)["message"] == "仅支持POST请求"


def test_handler_rejects_bad_json():
    resp = search_handler(Request(method="POST", body=b"{oops"))
    assert resp.status == 400
    assert json.loads(resp.body)["message"] == "请求参数错误"


def test_handler_requires_index():
    resp = search_handler(Request(method="POST", body=b"{}"))
    assert resp.status == 400
    assert json.loads(resp.body)["message"] == "索引名不能为空"


def test_handler_bad_keyword():
    body = json.dumps({"index": "logs", "keyword": "(a"}).encode()
    resp = search_handler(Request(method="POST", body=body))
    assert resp.status == 400
    assert json.loads(resp.body)["message"].startswith("构建查询失败")


def test_handler_returns_hits(rsps):
    rsps.add(responses.POST, SEARCH_URL, json=ES_REPLY)
    body = json.dumps({"index": "logs", "keyword": "error", "size": 5}).encode()
    resp = search_handler(Request(method="POST", body=body))
    payload = json.loads(resp.body)
    assert resp.status == 200
    assert payload["code"] == 200
    assert payload["data"]["total_hits"] == 2
    assert payload["data"]["hits"][0]["_id"] == "1"
    sent = json.loads(rsps.calls[0].request.body)
    assert sent["size"] == get_limit_config().max_size


def test_handler_es_failure(rsps):
    rsps.add(responses.POST, SEARCH_URL, status=503, body="down")
    body = json.dumps({"index": "logs"}).encode()
    resp = search_handler(Request(method="POST", body=body))
    assert resp.status == 500
    assert json.loads(resp.body)["message"].startswith("查询失败")