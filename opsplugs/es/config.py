"""Elasticsearch service configuration: built-in defaults, optional YAML file, environment."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

MAX_SIZE_CAP = 3000

_INTEGER = re.compile(r"[+-]?[0-9]+")


@dataclass
class ESConfig:
    """Connection settings for the Elasticsearch cluster."""

    host: str = ""
    username: str = ""
    password: str = ""
    timeout: int = 0


@dataclass
class LogConfig:
    """Logging settings; level is "info" or "error"."""

    level: str = ""


@dataclass
class LimitConfig:
    """Upper bound on the number of documents returned by a query."""

    max_size: int = 0


@dataclass
class Config:
    """Complete service configuration."""

    elasticsearch: ESConfig = field(default_factory=ESConfig)
    log: LogConfig = field(default_factory=LogConfig)
    limit: LimitConfig = field(default_factory=LimitConfig)


_SCHEMA: dict[str, dict[str, type]] = {
    "elasticsearch": {"host": str, "username": str, "password": str, "timeout": int},
    "log": {"level": str},
    "limit": {"max_size": int},
}

_global_config: Config | None = None


def _default_config() -> Config:
    return Config(
        elasticsearch=ESConfig(
            host="http://localhost:9200",
            username="elastic",
            password="",
            timeout=30,
        ),
        log=LogConfig(level="info"),
        limit=LimitConfig(max_size=1000),
    )


def _coerce(value: Any, kind: type, key: str) -> Any:
    if value is None:
        return kind()
    if kind is int:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"解析配置文件失败: {key} 必须是整数")
        if isinstance(value, float) and not value.is_integer():
            raise ValueError(f"解析配置文件失败: {key} 必须是整数")
        return int(value)
    if isinstance(value, (dict, list)):
        raise ValueError(f"解析配置文件失败: {key} 必须是字符串")
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _apply_document(cfg: Config, document: Any) -> None:
    if document is None:
        return
    if not isinstance(document, dict):
        raise ValueError("解析配置文件失败: 顶层必须是映射")
    for section, fields in _SCHEMA.items():
        if section not in document:
            continue
        values = document[section]
        target = getattr(cfg, section)
        if values is None:
            setattr(cfg, section, type(target)())
            continue
        if not isinstance(values, dict):
            raise ValueError(f"解析配置文件失败: {section} 必须是映射")
        for name, kind in fields.items():
            if name in values:
                setattr(target, name, _coerce(values[name], kind, f"{section}.{name}"))


def _atoi(text: str) -> int | None:
    return int(text) if _INTEGER.fullmatch(text) else None


def _override_with_env(cfg: Config) -> None:
    if host := os.environ.get("ES_HOST"):
        cfg.elasticsearch.host = host
    if username := os.environ.get("ES_USERNAME"):
        cfg.elasticsearch.username = username
    if secret := os.environ.get("ES_PASSWORD"):
        cfg.elasticsearch.password = secret
    if level := os.environ.get("LOG_LEVEL"):
        cfg.log.level = level
    if raw := os.environ.get("LIMIT_MAX_SIZE"):
        max_size = _atoi(raw)
        if max_size is not None and max_size > 0:
            cfg.limit.max_size = min(max_size, MAX_SIZE_CAP)


def load_config(path: str | os.PathLike[str]) -> Config:
    """Load the configuration; a missing file is not an error, a malformed one is."""
    global _global_config
    cfg = _default_config()
    _global_config = cfg
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError:
        text = None
    if text is not None:
        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ValueError(f"解析配置文件失败: {exc}") from exc
        _apply_document(cfg, document)
    _override_with_env(cfg)
    return cfg


def get_es_config() -> ESConfig:
    """Return a copy of the Elasticsearch settings, empty if nothing is loaded."""
    if _global_config is None:
        return ESConfig()
    return replace(_global_config.elasticsearch)


def get_log_config() -> LogConfig:
    """Return the logging settings, defaulting the level to "info"."""
    if _global_config is None or not _global_config.log.level:
        return LogConfig(level="info")
    return replace(_global_config.log)


def get_limit_config() -> LimitConfig:
    """Return the size limit, always between 1 and the hard cap."""
    if _global_config is None or _global_config.limit.max_size <= 0:
        return LimitConfig(max_size=MAX_SIZE_CAP)
    if _global_config.limit.max_size > MAX_SIZE_CAP:
        return LimitConfig(max_size=MAX_SIZE_CAP)
    return replace(_global_config.limit)


def apply_size_limit(requested_size: int) -> int:
    """Clamp a requested result size to the configured maximum."""
    return min(requested_size, get_limit_config().max_size)