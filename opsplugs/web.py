"""HTTP plumbing shared by the services: requests, JSON replies and a path router."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable
from urllib.parse import parse_qsl, urlsplit

log = logging.getLogger(__name__)

_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


@dataclass
class Request:
    """An incoming HTTP request; query holds the first value of each parameter."""

    method: str = "GET"
    path: str = "/"
    query: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def json(self) -> Any:
        """Decode the body as JSON; raises ValueError when it is not valid JSON."""
        return json.loads(self.body.decode("utf-8"))


@dataclass
class Response:
    """An outgoing HTTP response."""

    status: int = 200
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)


Handler = Callable[[Request], Response]


def _encode_default(obj: Any) -> Any:
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    raise TypeError(f"cannot encode {type(obj).__name__} as JSON")


def json_response(status: int, payload: Any) -> Response:
    """Encode payload as a JSON body, one line terminated by a newline."""
    text = json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=_encode_default)
    for raw, escaped in _HTML_ESCAPES.items():
        text = text.replace(raw, escaped)
    return Response(
        status=status,
        body=(text + "\n").encode("utf-8"),
        headers={"Content-Type": "application/json"},
    )


def text_response(status: int, text: str) -> Response:
    """A plain-text response."""
    return Response(
        status=status,
        body=text.encode("utf-8"),
        headers={"Content-Type": "text/plain; charset=utf-8"},
    )


def success(data: Any) -> Response:
    """The uniform success envelope with HTTP status 200."""
    return json_response(200, {"code": 200, "message": "success", "data": data})


def error(code: int, message: str, status: int | None = None) -> Response:
    """The uniform error envelope; the HTTP status defaults to the code."""
    return json_response(
        code if status is None else status,
        {"code": code, "message": message, "data": None},
    )


class Router:
    """Dispatches requests to handlers registered for exact paths."""

    def __init__(self) -> None:
        self._routes: dict[str, Handler] = {}

    def route(self, path: str, handler: Handler) -> Handler:
        """Register handler for path and return it."""
        self._routes[path] = handler
        return handler

    def handle(self, request: Request) -> Response:
        """Run the handler for the request's path, or answer 404."""
        handler = self._routes.get(request.path)
        if handler is None:
            return text_response(404, "404 page not found\n")
        try:
            return handler(request)
        except Exception:
            log.exception("处理请求失败: %s %s", request.method, request.path)
            return text_response(500, "Internal Server Error\n")

    def serve(self, host: str, port: int) -> None:
        """Serve HTTP on host:port until interrupted."""
        router = self

        class _Handler(BaseHTTPRequestHandler):
            protocol_version = "HTTP/1.1"

            def _dispatch(self) -> None:
                parts = urlsplit(self.path)
                try:
                    length = int(self.headers.get("Content-Length") or 0)
                except ValueError:
                    length = 0
                body = self.rfile.read(length) if length > 0 else b""
                query: dict[str, str] = {}
                for name, value in parse_qsl(parts.query, keep_blank_values=True):
                    query.setdefault(name, value)
                request = Request(
                    method=self.command,
                    path=parts.path or "/",
                    query=query,
                    headers=dict(self.headers.items()),
                    body=body,
                )
                response = router.handle(request)
                self.send_response(response.status)
                for name, value in response.headers.items():
                    self.send_header(name, value)
                self.send_header("Content-Length", str(len(response.body)))
                self.end_headers()
                if self.command != "HEAD":
                    self.wfile.write(response.body)

            do_GET = do_POST = do_PUT = do_DELETE = do_PATCH = do_HEAD = do_OPTIONS = _dispatch

            def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
                log.debug("%s - %s", self.address_string(), format % args)

        with ThreadingHTTPServer((host, port), _Handler) as server:
            server.serve_forever()