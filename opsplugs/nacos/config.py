"""Nacos connection settings: built-in defaults, optional YAML file, environment."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

_INTEGER = re.compile(r"[+-]?[0-9]+")

_STRING_FIELDS = {
    "host": "host",
    "namespace": "namespace",
    "username": "username",
    "password": "password",
    "contextPath": "context_path",
}


@dataclass
class NacosConfig:
    """Where the Nacos server is and how to authenticate against it."""

    host: str = "127.0.0.1"
    port: int = 8848
    namespace: str = "public"
    username: str = ""
    password: str = ""
    context_path: str = "/nacos"

    def server_address(self) -> str:
        """Base URL of the server, including the context path."""
        return f"http://{self.host}:{self.port}{self.context_path}"


def _atoi(text: str) -> int | None:
    return int(text) if _INTEGER.fullmatch(text) else None


def _scalar_text(value: Any) -> str:
    if isinstance(value, (dict, list)):
        raise ValueError("expected a scalar")
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _read_file(config_path: str | os.PathLike[str]) -> dict[str, Any]:
    """Values set in the file; an unreadable or malformed file yields nothing."""
    try:
        document = yaml.safe_load(Path(config_path).read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError):
        return {}
    if document is None:
        return {}
    if not isinstance(document, dict):
        return {}

    values: dict[str, Any] = {}
    try:
        for key, attribute in _STRING_FIELDS.items():
            if document.get(key) is not None:
                values[attribute] = _scalar_text(document[key])
        port = document.get("port")
        if port is not None:
            if isinstance(port, bool) or not isinstance(port, int):
                raise ValueError("port must be an integer")
            values["port"] = port
    except ValueError:
        return {}
    return values


def load_config(config_path: str | os.PathLike[str]) -> NacosConfig:
    """Defaults, overridden by non-empty file values, overridden by the environment."""
    cfg = NacosConfig()

    for attribute, value in _read_file(config_path).items():
        if value not in ("", 0):
            setattr(cfg, attribute, value)

    if host := os.environ.get("NACOS_HOST"):
        cfg.host = host
    if raw_port := os.environ.get("NACOS_PORT"):
        port = _atoi(raw_port)
        if port is not None:
            cfg.port = port
    if namespace := os.environ.get("NACOS_NAMESPACE"):
        cfg.namespace = namespace
    if username := os.environ.get("NACOS_USERNAME"):
        cfg.username = username
    if secret := os.environ.get("NACOS_PASSWORD"):
        cfg.password = secret
    if context_path := os.environ.get("NACOS_CONTEXT_PATH"):
        cfg.context_path = context_path

    return cfg