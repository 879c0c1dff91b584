import logging
import re
import time
import uuid
from typing import Any

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("app.core.middleware")

REQUEST_ID_HEADER = "x-request-id"
# Accept caller-supplied ids only when they are short and log-safe.
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{8,64}$")
_STRIPPED_RESPONSE_HEADERS = ("server", "x-powered-by")


def _resolve_request_id(headers: Headers) -> str:
  incoming = headers.get(REQUEST_ID_HEADER)
  if incoming and _REQUEST_ID_PATTERN.match(incoming):
    return incoming
  return str(uuid.uuid4())


class RequestLoggingMiddleware:
  """Tag each HTTP request with an id and log one line per request with its latency."""

  def __init__(self, app: ASGIApp) -> None:
    self.app = app

  async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
    if scope["type"] != "http":
      await self.app(scope, receive, send)
      return

    request_id = _resolve_request_id(Headers(scope=scope))
    # Exception handlers read the id back from request.state.
    scope.setdefault("state", {})["request_id"] = request_id

    started = time.perf_counter()
    status_code = 0

    async def send_with_request_id(message: Message) -> None:
      nonlocal status_code
      if message["type"] == "http.response.start":
        status_code = message["status"]
        MutableHeaders(scope=message)[REQUEST_ID_HEADER] = request_id
      await send(message)

    try:
      await self.app(scope, receive, send_with_request_id)
    finally:
      elapsed_ms = (time.perf_counter() - started) * 1000
      log_level = logging.WARNING if status_code >= 500 or status_code == 0 else logging.INFO
      logger.log(log_level, "request_id=%s %s %s status=%s took=%.1fms", request_id, scope.get("method", "?"), scope.get("path", ""), status_code, elapsed_ms)


class SecurityHeadersMiddleware:
  """Drop server fingerprint headers and forbid MIME sniffing on every response."""

  def __init__(self, app: ASGIApp) -> None:
    self.app = app

  async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
    if scope["type"] != "http":
      await self.app(scope, receive, send)
      return

    async def send_hardened(message: dict[str, Any]) -> None:
      if message["type"] == "http.response.start":
        headers = MutableHeaders(scope=message)
        for name in _STRIPPED_RESPONSE_HEADERS:
          if name in headers:
            del headers[name]
        headers["x-content-type-options"] = "nosniff"
      await send(message)

    await self.app(scope, receive, send_hardened)
