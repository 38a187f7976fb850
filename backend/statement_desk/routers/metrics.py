"""Prometheus metrics exposition router.

Registers a /metrics endpoint exposing the default prometheus_client registry,
which carries both the native request collectors from main.py and the
OpenTelemetry instruments bridged by PrometheusMetricReader.
"""
from fastapi import APIRouter, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

router = APIRouter()


@router.get("/metrics", include_in_schema=False)
async def prometheus_metrics() -> Response:  # noqa: D401
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
