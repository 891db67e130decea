"""Run local scripts and report their outcome to a callback URL."""

from __future__ import annotations

import json
import logging
import os
import subprocess
from datetime import datetime

import requests

from opsplugs.cron.models import (
    EXEC_FAILED,
    EXEC_SUCCESS,
    SCRIPT_DIR,
    ExecuteRequest,
    TaskResult,
)

log = logging.getLogger(__name__)

USER_AGENT = "CronPlugs-Agent/1.0"
CALLBACK_TIMEOUT = 10


class ScriptError(Exception):
    """The requested script name is unsafe or the script does not exist."""


def send_callback(callback_url: str, result: TaskResult) -> bool:
    """POST the result as JSON; failures are logged and reported as False."""
    payload = json.dumps(result.to_dict(), ensure_ascii=False).encode("utf-8")
    headers = {"Content-Type": "application/json", "User-Agent": USER_AGENT}
    try:
        response = requests.post(
            callback_url, data=payload, headers=headers, timeout=CALLBACK_TIMEOUT
        )
    except requests.RequestException as exc:
        log.error("回调失败: %s, 错误: %s", callback_url, exc)
        return False

    body = response.content.decode("utf-8", "replace")
    if 200 <= response.status_code < 300:
        log.info("回调成功: JobID=%d, URL=%s, 响应=%s", result.job_id, callback_url, body)
        return True
    log.error(
        "回调失败: JobID=%d, URL=%s, 状态码=%d, 响应=%s",
        result.job_id, callback_url, response.status_code, body,
    )
    return False


def validate_script_path(script_name: str, script_dir: str = SCRIPT_DIR) -> str:
    """Return the script's full path; raises ScriptError for unsafe or missing scripts."""
    if ".." in script_name or "/" in script_name or "\\" in script_name:
        raise ScriptError(f"非法脚本名称: {script_name}")
    path = os.path.join(script_dir, script_name)
    try:
        os.stat(path)
    except FileNotFoundError:
        raise ScriptError(f"脚本不存在: {path}") from None
    except OSError:
        pass
    return path


def run_script(script_path: str) -> tuple[int, str, str, str]:
    """Run a script with bash; return (exec_status, result, error_msg, exec_log)."""
    log.info("开始执行: 脚本=%s", script_path)
    try:
        completed = subprocess.run(["bash", script_path], capture_output=True, check=False)
    except OSError as exc:
        return EXEC_FAILED, "error", str(exc), ""

    output = completed.stdout.decode("utf-8", "replace")
    errors = completed.stderr.decode("utf-8", "replace")
    if errors:
        output = f"{output}\n{errors}" if output else errors

    if completed.returncode != 0:
        code = completed.returncode if completed.returncode > 0 else -1
        return EXEC_FAILED, "failed", f"退出码: {code}", output
    return EXEC_SUCCESS, "success", "", output


def _finish(result: TaskResult) -> None:
    result.end_time = datetime.now().astimezone()
    if result.start_time is not None:
        result.duration = int((result.end_time - result.start_time).total_seconds())


def execute_local_script(
    req: ExecuteRequest, callback_url: str, script_dir: str = SCRIPT_DIR
) -> TaskResult:
    """Run the script named by the task key, report it to the callback and return it."""
    result = TaskResult(
        job_id=req.job_id,
        task_name=req.task_name,
        task_key=req.task_key,
        start_time=datetime.now().astimezone(),
    )
    script_name = f"{req.task_key}.sh"

    try:
        script_path = validate_script_path(script_name, script_dir)
    except ScriptError as exc:
        result.exec_status = EXEC_FAILED
        result.error_msg = f"脚本验证失败: {exc}"
        result.result = "failed"
        _finish(result)
        send_callback(callback_url, result)
        return result

    status, outcome, message, output = run_script(script_path)
    result.exec_status = status
    result.result = outcome
    result.error_msg = message
    result.exec_log = output
    _finish(result)
    log.info(
        "任务执行完成: JobID=%d, 脚本=%s, 状态=%d, 耗时=%ds",
        req.job_id, script_name, result.exec_status, result.duration,
    )
    send_callback(callback_url, result)
    return result