"""Requests and callback records of the script runner."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

DEFAULT_TIMEOUT = 300
SCRIPT_DIR = "/data/script/"

EXEC_RUNNING = 0
EXEC_SUCCESS = 1
EXEC_FAILED = 2

_ZERO_TIME = "0001-01-01T00:00:00Z"


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


def _rfc3339(moment: datetime | None) -> str:
    if moment is None:
        return _ZERO_TIME
    if moment.tzinfo is None:
        moment = moment.astimezone()
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    if moment.microsecond:
        text += "." + f"{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset() or timedelta(0)
    if offset == timedelta(0):
        return text + "Z"
    seconds = int(offset.total_seconds())
    sign = "+" if seconds >= 0 else "-"
    seconds = abs(seconds)
    return f"{text}{sign}{seconds // 3600:02d}:{seconds % 3600 // 60:02d}"


@dataclass
class ExecuteRequest:
    """A request to run the script named by task_key."""

    job_id: int = 0
    task_name: str = ""
    task_key: str = ""
    callback_url: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> ExecuteRequest:
        if not isinstance(data, dict):
            raise ValueError("request body must be a JSON object")
        return cls(
            job_id=_integer(data, "job_id"),
            task_name=_string(data, "task_name"),
            task_key=_string(data, "task_key"),
            callback_url=_string(data, "callback_url"),
        )


@dataclass
class TaskResult:
    """The outcome of one script run, sent to the callback URL."""

    job_id: int = 0
    task_name: str = ""
    task_key: str = ""
    exec_status: int = EXEC_RUNNING
    result: str = ""
    error_msg: str = ""
    exec_log: str = ""
    start_time: datetime | None = None
    end_time: datetime | None = None
    duration: int = 0

    def to_dict(self) -> dict:
        return {
            "job_id": self.job_id,
            "task_name": self.task_name,
            "task_key": self.task_key,
            "exec_status": self.exec_status,
            "result": self.result,
            "error_msg": self.error_msg,
            "exec_log": self.exec_log,
            "start_time": _rfc3339(self.start_time),
            "end_time": _rfc3339(self.end_time),
            "duration": self.duration,
        }