from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.responses import Response

operation_total = Counter(
    "dng_operation_total",
    "Count of engine operations.",
    labelnames=("operation", "outcome", "error_code"),
)
operation_duration_seconds = Histogram(
    "dng_operation_duration_seconds",
    "Duration of engine operations in seconds.",
    labelnames=("operation", "outcome"),
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

channel_ban_total = Counter(
    "dng_channel_ban_total",
    "Count of channel ban state changes.",
    labelnames=("source", "is_banned"),
)

vote_total = Counter(
    "dng_vote_total",
    "Count of accepted votes by kind.",
    labelnames=("outcome",),
)


def render_metrics() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
