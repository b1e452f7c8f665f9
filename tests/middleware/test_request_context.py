"""Every response carries an X-Request-ID, generated or echoed."""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    uuid.UUID(req_id)  # raises ValueError if invalid


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    resp = client.get("/health", headers={"X-Request-ID": "job-scheduler-42"})
    assert resp.headers.get("x-request-id") == "job-scheduler-42"


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    resp = client.get("/v1/progress/paths/missing", params={"user_id": "u1"})
    assert resp.status_code == 404
    assert resp.headers.get("x-request-id") is not None


def test_request_is_logged_with_context(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO):
        client.get("/health", headers={"X-Request-ID": "trace-me"})
    records = [r for r in caplog.records if getattr(r, "path", None) == "/health"]
    assert records
    assert records[-1].request_id == "trace-me"  # type: ignore[attr-defined]
    assert records[-1].status_code == 200  # type: ignore[attr-defined]
