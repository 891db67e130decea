"""Script runner service: routes and the command entry point."""

from __future__ import annotations

import argparse
import logging
import threading
from collections.abc import Sequence
from typing import Any

from opsplugs.cron.executor import execute_local_script
from opsplugs.cron.models import ExecuteRequest
from opsplugs.web import Request, Response, Router, json_response, text_response

log = logging.getLogger(__name__)

DEFAULT_PORT = 8081


def _reply(code: int, msg: str, data: Any = None) -> Response:
    return json_response(200, {"code": code, "msg": msg, "data": data})


def health_handler(request: Request) -> Response:
    """GET /health."""
    return json_response(200, {"status": "ok"})


def execute_handler(request: Request) -> Response:
    """POST /api/task/execute: accept a task and run it in the background."""
    if request.method != "POST":
        response = text_response(405, "只支持POST请求\n")
        response.headers["X-Content-Type-Options"] = "nosniff"
        return response

    try:
        data = request.json()
        req = ExecuteRequest.from_dict({} if data is None else data)
    except ValueError as exc:
        return _reply(400, f"请求参数解析失败: {exc}")

    if req.job_id == 0:
        return _reply(400, "job_id不能为空")
    if not req.task_key:
        return _reply(400, "task_key不能为空")
    if not req.callback_url:
        return _reply(400, "callback_url不能为空")

    threading.Thread(
        target=execute_local_script,
        args=(req, req.callback_url),
        name=f"cron-task-{req.job_id}",
        daemon=True,
    ).start()

    log.info("任务已接收: JobID=%d, 任务名=%s, 任务标识=%s", req.job_id, req.task_name, req.task_key)
    return _reply(
        0,
        "任务已接收,正在执行",
        {"job_id": req.job_id, "task_name": req.task_name, "task_key": req.task_key},
    )


def build_router() -> Router:
    """All routes of the script runner."""
    router = Router()
    router.route("/health", health_handler)
    router.route("/api/task/execute", execute_handler)
    return router


def main(argv: Sequence[str] | None = None) -> int:
    """Serve the script runner API."""
    parser = argparse.ArgumentParser(prog="cron-plugs", description="Local script runner")
    parser.add_argument("-port", "--port", type=int, default=DEFAULT_PORT, help="监听端口号")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s %(message)s", datefmt="%Y/%m/%d %H:%M:%S"
    )
    log.info("Agent服务启动在端口: %d", args.port)
    try:
        build_router().serve("", args.port)
    except OSError as exc:
        log.error("服务启动失败: %s", exc)
        return 1
    except KeyboardInterrupt:
        return 0
    return 0