"""Public IP service: logging, routes and the command entry point."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from opsplugs.eip.publicip import ip_handler
from opsplugs.web import Router

log = logging.getLogger(__name__)

DEFAULT_PORT = 8070

_PACKAGE_LOGGER = "opsplugs"
_LEVEL_NAMES = {"WARNING": "WARN"}


class _Formatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = _LEVEL_NAMES.get(record.levelname, record.levelname)
        return super().format(record)


def configure_logging() -> logging.Logger:
    """Write every level to stdout as "[time] [LEVEL] message"; return the logger."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_Formatter("[%(asctime)s] [%(levelname)s] %(message)s", "%Y-%m-%d %H:%M:%S"))
    logger = logging.getLogger(_PACKAGE_LOGGER)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    return logger


def build_router() -> Router:
    """All routes of the public IP service."""
    router = Router()
    router.route("/api/ip", ip_handler)
    return router


def main(argv: Sequence[str] | None = None) -> int:
    """Serve the public IP API."""
    parser = argparse.ArgumentParser(prog="eip-plugs", description="Public IP lookup service")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="listening port")
    args = parser.parse_args(argv)

    configure_logging()
    log.info("服务器启动在端口 :%d", args.port)
    try:
        build_router().serve("", args.port)
    except OSError as exc:
        log.error("服务器启动失败: %s", exc)
        print(f"服务器启动失败: {exc}")
        return 1
    except KeyboardInterrupt:
        return 0
    return 0