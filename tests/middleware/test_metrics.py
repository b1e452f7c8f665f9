"""Prometheus metrics middleware.

The default registry is global and counters never reset, so every test
reads the value before and after the action and asserts on the delta.
"""

from __future__ import annotations

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY


def _get_sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def test_request_counter_increments(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health", "status_code": "200"}
    before = _get_sample("http_requests_total", labels)
    client.get("/health")
    after = _get_sample("http_requests_total", labels)
    assert after - before >= 1


def test_error_status_is_labelled(client: TestClient) -> None:
    labels = {
        "method": "GET",
        "endpoint": "/v1/versions/{version_id}",
        "status_code": "404",
    }
    before = _get_sample("http_requests_total", labels)
    client.get("/v1/versions/missing")
    assert _get_sample("http_requests_total", labels) - before == 1


def test_ids_share_one_route_label(client: TestClient) -> None:
    labels = {
        "method": "GET",
        "endpoint": "/v1/versions/{version_id}",
        "status_code": "404",
    }
    before = _get_sample("http_requests_total", labels)
    client.get("/v1/versions/a")
    client.get("/v1/versions/b")
    assert _get_sample("http_requests_total", labels) - before == 2
    raw = {"method": "GET", "endpoint": "/v1/versions/a", "status_code": "404"}
    assert _get_sample("http_requests_total", raw) == 0


def test_unrouted_requests_share_a_label(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "<unmatched>", "status_code": "404"}
    before = _get_sample("http_requests_total", labels)
    client.get("/no/such/page")
    assert _get_sample("http_requests_total", labels) - before == 1


def test_request_duration_histogram_observes(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health"}
    before = _get_sample("http_request_duration_seconds_count", labels)
    client.get("/health")
    after = _get_sample("http_request_duration_seconds_count", labels)
    assert after - before >= 1


def test_metrics_endpoint_lists_engine_metrics(client: TestClient) -> None:
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    for name in (
        "http_requests_total",
        "path_rollup_computations_total",
        "lifecycle_transitions_total",
        "content_job_items_total",
        "notifications_total",
    ):
        assert name in resp.text


def test_metrics_endpoint_not_self_instrumented(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/metrics", "status_code": "200"}
    before = _get_sample("http_requests_total", labels)
    client.get("/metrics")
    client.get("/metrics")
    assert _get_sample("http_requests_total", labels) == before
