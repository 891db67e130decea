"""Nacos configuration browser service: handlers, routes and the command entry point."""

from __future__ import annotations

import argparse
import logging
import re
from collections.abc import Sequence
from typing import Any

from opsplugs.nacos.client import NacosClient, NacosError
from opsplugs.nacos.config import load_config
from opsplugs.web import Request, Response, Router, json_response

log = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/config.yml"
DEFAULT_PORT = 8080
DEFAULT_GROUP = "DEFAULT_GROUP"

_INTEGER = re.compile(r"[+-]?[0-9]+")


def _reply(status: int, code: int, msg: str, data: Any = None) -> Response:
    return json_response(status, {"code": code, "msg": msg, "data": data})


def _not_allowed() -> Response:
    return _reply(405, 405, "Method not allowed")


def _atoi(text: str) -> int:
    return int(text) if _INTEGER.fullmatch(text) else 0


def _paging(request: Request) -> tuple[int, int]:
    page_no = _atoi(request.query.get("pageNo", ""))
    page_size = _atoi(request.query.get("pageSize", ""))
    return (page_no if page_no > 0 else 1, page_size if page_size > 0 else 10)


class NacosApi:
    """HTTP handlers backed by one Nacos client."""

    def __init__(self, client: NacosClient) -> None:
        self.client = client

    def get_config_handler(self, request: Request) -> Response:
        """GET /api/config/get?dataId=&group=."""
        if request.method != "GET":
            return _not_allowed()
        data_id = request.query.get("dataId", "")
        group = request.query.get("group", "") or DEFAULT_GROUP
        try:
            content = self.client.get_config(data_id, group)
        except NacosError as exc:
            return _reply(500, 500, str(exc))
        return _reply(200, 0, "success", {"content": content})

    def list_configs_handler(self, request: Request) -> Response:
        """GET /api/config/list?pageNo=&pageSize=."""
        if request.method != "GET":
            return _not_allowed()
        page_no, page_size = _paging(request)
        try:
            page = self.client.list_configs(page_no, page_size)
        except NacosError as exc:
            return _reply(500, 500, str(exc))
        return _reply(200, 0, "success", page.to_dict())

    def search_configs_handler(self, request: Request) -> Response:
        """GET /api/config/search?dataId=&group=&pageNo=&pageSize=."""
        if request.method != "GET":
            return _not_allowed()
        data_id = request.query.get("dataId", "")
        group = request.query.get("group", "")
        page_no, page_size = _paging(request)
        try:
            page = self.client.search_configs(data_id, group, page_no, page_size)
        except NacosError as exc:
            return _reply(500, 500, str(exc))
        return _reply(200, 0, "success", page.to_dict())


def build_router(client: NacosClient) -> Router:
    """All routes of the configuration browser."""
    api = NacosApi(client)
    router = Router()
    router.route("/api/config/get", api.get_config_handler)
    router.route("/api/config/list", api.list_configs_handler)
    router.route("/api/config/search", api.search_configs_handler)
    return router


def main(argv: Sequence[str] | None = None) -> int:
    """Load configuration and serve the configuration browser API."""
    parser = argparse.ArgumentParser(prog="nacos-plugs", description="Nacos configuration browser")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="YAML configuration file")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="listening port")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s %(message)s", datefmt="%Y/%m/%d %H:%M:%S"
    )
    cfg = load_config(args.config)
    log.info(
        "Nacos配置: host=%s, port=%d, namespace=%s, username=%s, password=%s, contextPath=%s",
        cfg.host, cfg.port, cfg.namespace, cfg.username, "***", cfg.context_path,
    )

    router = build_router(NacosClient(cfg))
    log.info("服务启动在 :%d", args.port)
    try:
        router.serve("", args.port)
    except OSError as exc:
        log.error("服务启动失败: %s", exc)
        return 1
    except KeyboardInterrupt:
        return 0
    return 0