"""Request id propagation for the receipt API.

Ids supplied by the caller are reused when they look sane so a POS terminal
can correlate its print job with our logs; anything else is replaced.
"""

from __future__ import annotations

import re
import uuid
from contextvars import ContextVar

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

HEADER = "X-Request-ID"
_SAFE_ID = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")

# Read by the log filter and the error envelopes
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)


def _incoming_id(scope: Scope) -> str | None:
    for key, value in scope.get("headers", []):
        if key.decode("latin-1").lower() == HEADER.lower():
            candidate = value.decode("latin-1").strip()
            return candidate if _SAFE_ID.match(candidate) else None
    return None


class RequestIdMiddleware:
    """Bind a request id for the duration of an HTTP request and echo it back."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        req_id = _incoming_id(scope) or uuid.uuid4().hex
        scope.setdefault("state", {})["request_id"] = req_id

        async def send_with_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[HEADER] = req_id
            await send(message)

        token = request_id_ctx.set(req_id)
        try:
            await self.app(scope, receive, send_with_id)
        finally:
            request_id_ctx.reset(token)
