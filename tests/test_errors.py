from __future__ import annotations

import uuid

import pytest
from httpx import ASGITransport, AsyncClient
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import SpanKind
from sqlalchemy.exc import OperationalError

from deadnetguard_api.domain.errors import AppError, channel_not_found
from deadnetguard_api.main import create_app
from deadnetguard_api.observability.ops import observe_operation


@pytest.mark.asyncio
async def test_store_outage_maps_to_retryable_503(db_sessionmaker) -> None:
    app = create_app()

    @app.get("/boom")
    async def boom() -> None:
        raise OperationalError("SELECT 1", {}, ConnectionRefusedError("store down"))

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/boom")

    assert response.status_code == 503
    assert response.headers["retry-after"] == "2"
    assert response.json()["error"]["code"] == "store_unavailable"


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["x-request-id"] == "req-123"

    response = await client.get("/health", headers={"X-Request-ID": "bad id with spaces"})
    assert response.headers["x-request-id"] != "bad id with spaces"


@pytest.mark.asyncio
async def test_metrics_endpoint(client: AsyncClient) -> None:
    await client.post("/v1/reports", json={"external_id": "UC-m", "display_name": "Metrics"})
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "dng_operation_total" in response.text


@pytest.mark.asyncio
async def test_app_error_propagates_through_operation_span() -> None:
    with pytest.raises(AppError) as excinfo:
        async with observe_operation("lookup_channel"):
            raise channel_not_found()
    assert excinfo.value.code == "channel_not_found"
    assert excinfo.value.__traceback__ is not None


@pytest.mark.asyncio
async def test_domain_errors_keep_their_status(client: AsyncClient) -> None:
    vote = await client.post(
        "/v1/votes",
        json={"channel_id": str(uuid.uuid4()), "visitor_token": "visitor-1", "value": 1},
    )
    verify = await client.get("/v1/admin/verify")
    login = await client.post("/v1/admin/login", json={"username": "ghost", "password": "nope"})

    assert [vote.status_code, verify.status_code, login.status_code] == [404, 401, 401]
    assert vote.json()["error"]["code"] == "channel_not_found"
    assert verify.json()["error"]["code"] == "auth_required"
    assert login.json()["error"]["code"] == "invalid_credentials"


@pytest.mark.asyncio
async def test_request_span_continues_incoming_trace(
    client: AsyncClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    if trace.get_tracer_provider() is not provider:
        pytest.skip("a tracer provider was already installed in this process")
    monkeypatch.setenv("DNG_OTEL_ENABLED", "1")

    response = await client.post(
        "/v1/reports",
        json={"external_id": "UC-traced", "display_name": "Traced"},
        headers={"traceparent": "00-0af7651916cd43dd8448eb211c80319c-b7ad6b7169203331-01"},
    )
    assert response.status_code == 200

    spans = {span.name: span for span in exporter.get_finished_spans()}
    server = spans["POST /v1/reports"]
    assert server.kind == SpanKind.SERVER
    assert server.context.trace_id == 0x0AF7651916CD43DD8448EB211C80319C
    assert server.parent is not None
    assert server.parent.span_id == 0xB7AD6B7169203331
    assert server.attributes["http.status_code"] == 200
    assert spans["dng.submit_report"].context.trace_id == server.context.trace_id
