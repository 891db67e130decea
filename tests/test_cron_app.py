import json
import threading

import pytest

from opsplugs.cron.app import build_router, execute_handler, health_handler
from opsplugs.web import Request


def _post(payload):
    body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    return execute_handler(Request(method="POST", path="/api/task/execute", body=body))


def test_health_handler():
    response = health_handler(Request(path="/health"))
    assert response.status == 200
    assert json.loads(response.body) == {"status": "ok"}


def test_execute_rejects_get():
    response = execute_handler(Request(method="GET", path="/api/task/execute"))
    assert response.status == 405
    assert response.body.decode() == "只支持POST请求\n"


def test_execute_rejects_invalid_json():
    response = _post(b"{not json")
    assert response.status == 200
    body = json.loads(response.body)
    assert body["code"] == 400
    assert body["msg"].startswith("请求参数解析失败: ")


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"task_key": "k", "callback_url": "http://127.0.0.1:1/cb"}, "job_id不能为空"),
        ({"job_id": 1, "callback_url": "http://127.0.0.1:1/cb"}, "task_key不能为空"),
        ({"job_id": 1, "task_key": "k"}, "callback_url不能为空"),
    ],
)
def test_execute_validates_fields(payload, message):
    body = json.loads(_post(payload).body)
    assert body["code"] == 400
    assert body["msg"] == message
    assert body["data"] is None


def test_execute_accepts_task():
    payload = {
        "job_id": 4242,
        "task_name": "noop",
        "task_key": "opsplugs-test-absent-task",
        "callback_url": "http://127.0.0.1:1/callback",
    }
    body = json.loads(_post(payload).body)
    for thread in threading.enumerate():
        if thread.name == "cron-task-4242":
            thread.join(10)
    assert body["code"] == 0
    assert body["msg"] == "任务已接收,正在执行"
    assert body["data"] == {
        "job_id": 4242,
        "task_name": "noop",
        "task_key": "opsplugs-test-absent-task",
    }


def test_router_dispatches_routes():
    router = build_router()
    assert json.loads(router.handle(Request(path="/health")).body) == {"status": "ok"}
    assert router.handle(Request(path="/missing")).status == 404
    assert router.handle(Request(method="GET", path="/api/task/execute")).status == 405