"""Prometheus scrape endpoint (text exposition format, not JSON).

Besides the HTTP series, a scrape carries the engine's own counters, e.g.:

  content_job_items_total{job="expiry",outcome="expired"} 12.0
  content_job_items_total{job="expiry",outcome="conflict"} 1.0
  lifecycle_transitions_total{operation="publish",result="invalid"} 3.0
  notifications_total{kind="expired",result="failed"} 0.0

Alert on ``outcome="error"`` and ``result="failed"``; conflicts are
expected whenever an editor and a job race on the same version.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
