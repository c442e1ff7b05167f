from __future__ import annotations

import re
import time
import uuid
from collections.abc import Callable

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from deadnetguard_api.observability.context import reset_request_id, set_request_id
from deadnetguard_api.observability.tracing import tracing_enabled

_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.:-]{0,127}$")

AccessLog = Callable[[dict[str, object]], None]


def _incoming_request_id(scope: Scope, header_name: bytes) -> str | None:
    for name, value in scope.get("headers") or []:
        if name != header_name:
            continue
        decoded = value.decode("latin-1").strip()
        return decoded if _REQUEST_ID_RE.fullmatch(decoded) else None
    return None


class RequestContextMiddleware:
    """Assigns a request id, echoes it back and writes one access-log line per request.

    Client-supplied ids are honoured only when they look like an id.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        header_name: str = "x-request-id",
        access_log: AccessLog | None = None,
    ) -> None:
        self._app = app
        self._header_name = header_name.lower().encode("ascii")
        self._access_log = access_log

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self._app(scope, receive, send)
            return

        request_id = _incoming_request_id(scope, self._header_name) or str(uuid.uuid4())
        token = set_request_id(request_id)
        start = time.perf_counter()
        status_code: int | None = None

        async def send_with_request_id(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = int(message["status"])
                headers = list(message.get("headers") or [])
                headers.append((self._header_name, request_id.encode("ascii")))
                message["headers"] = headers
            await send(message)

        try:
            if tracing_enabled():
                await _call_with_server_span(
                    self._app,
                    scope,
                    receive,
                    send_with_request_id,
                    request_id=request_id,
                    get_status_code=lambda: status_code,
                )
            else:
                await self._app(scope, receive, send_with_request_id)
        finally:
            if self._access_log is not None:
                self._access_log(
                    {
                        "request_id": request_id,
                        "method": scope.get("method"),
                        "path": scope.get("path"),
                        "status_code": status_code,
                        "duration_ms": round((time.perf_counter() - start) * 1000.0, 3),
                    }
                )
            reset_request_id(token)


async def _call_with_server_span(
    app: ASGIApp,
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    request_id: str,
    get_status_code: Callable[[], int | None],
) -> None:
    """Run the request under a SERVER span that continues any incoming trace context."""
    from opentelemetry import trace
    from opentelemetry.propagate import extract
    from opentelemetry.trace import SpanKind
    from opentelemetry.trace.status import Status, StatusCode

    carrier = {
        name.decode("latin-1"): value.decode("latin-1")
        for name, value in scope.get("headers") or []
    }
    method = scope.get("method") or "UNKNOWN"
    path = scope.get("path") or ""
    tracer = trace.get_tracer("deadnetguard_api")
    with tracer.start_as_current_span(
        f"{method} {path}",
        context=extract(carrier),
        kind=SpanKind.SERVER,
        attributes={"http.method": method, "http.target": path, "request.id": request_id},
    ) as span:
        try:
            await app(scope, receive, send)
        except Exception as exc:  # noqa: BLE001
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR))
            raise
        finally:
            status_code = get_status_code()
            if status_code is not None:
                span.set_attribute("http.status_code", status_code)
                span.set_status(Status(StatusCode.ERROR if status_code >= 500 else StatusCode.OK))
