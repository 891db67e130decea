"""Elasticsearch query service: logging, routes and the command entry point."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from opsplugs.es.config import get_es_config, get_limit_config, get_log_config, load_config
from opsplugs.es.context import context_handler
from opsplugs.es.indices import index_mapping_handler
from opsplugs.es.scroll import scroll_handler
from opsplugs.es.search import search_handler
from opsplugs.web import Request, Response, Router, text_response

log = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/config.yml"
DEFAULT_PORT = 8081

_PACKAGE_LOGGER = "opsplugs"
_FORMAT = "[%(levelname)s] %(asctime)s %(filename)s:%(lineno)d: %(message)s"
_DATE_FORMAT = "%Y/%m/%d %H:%M:%S"


class _BelowError(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.ERROR


def setup_logging(level: str) -> str:
    """Send info to stdout and errors to stderr; return the effective level name."""
    normalized = (level or "").lower()
    if normalized not in ("info", "error"):
        normalized = "info"

    formatter = logging.Formatter(_FORMAT, _DATE_FORMAT)
    info_handler = logging.StreamHandler(sys.stdout)
    info_handler.setFormatter(formatter)
    info_handler.addFilter(_BelowError())
    error_handler = logging.StreamHandler(sys.stderr)
    error_handler.setFormatter(formatter)
    error_handler.setLevel(logging.ERROR)

    logger = logging.getLogger(_PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.addHandler(info_handler)
    logger.addHandler(error_handler)
    logger.setLevel(logging.ERROR if normalized == "error" else logging.INFO)

    # The chosen level is always announced, whatever the filter.
    announcement = logger.makeRecord(
        logger.name, logging.INFO, __file__, 0, "日志级别: %s", (normalized,), None
    )
    info_handler.handle(announcement)
    return normalized


def health_check(request: Request) -> Response:
    """GET /health."""
    return text_response(200, "OK")


def build_router() -> Router:
    """All routes of the query service."""
    router = Router()
    router.route("/api/elfk/search", search_handler)
    router.route("/api/elfk/indices", index_mapping_handler)
    router.route("/api/elfk/scroll", scroll_handler)
    router.route("/api/elfk/context", context_handler)
    router.route("/health", health_check)
    return router


def main(argv: Sequence[str] | None = None) -> int:
    """Load configuration and serve the query API."""
    parser = argparse.ArgumentParser(prog="es-plugs", description="Elasticsearch query service")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="YAML configuration file")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="listening port")
    args = parser.parse_args(argv)

    try:
        load_config(args.config)
    except ValueError as exc:
        print(f"加载配置失败: {exc}", file=sys.stderr)
        return 1

    setup_logging(get_log_config().level)
    log.info("配置加载完成 (配置文件可选，环境变量优先)")

    es = get_es_config()
    log.info(
        "ES配置: host=%s, username=%s, password=%s, timeout=%d",
        es.host, es.username, "***", es.timeout,
    )
    log.info("限制配置: max_size=%d (最大返回条数，硬限制3000)", get_limit_config().max_size)

    router = build_router()
    log.info("服务启动在端口 :%d", args.port)
    try:
        router.serve("", args.port)
    except OSError as exc:
        log.error("服务启动失败: %s", exc)
        return 1
    except KeyboardInterrupt:
        return 0
    return 0