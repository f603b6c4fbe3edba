from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from brokerdesk.otel import setup_inmemory_otel
from brokerdesk.platform.security.roles import Role
from tests.factories import Seed


@pytest.fixture()
def span_exporter() -> InMemorySpanExporter:
    exporter = setup_inmemory_otel("brokerdesk-api")
    exporter.clear()
    return exporter


def test_request_span_contains_correlation_id(
    client: TestClient,
    seed: Seed,
    span_exporter: InMemorySpanExporter,
) -> None:
    broker = seed.user(Role.ADMIN_EMPLOYEE)

    response = client.post(
        "/api/clients",
        json={"name": "OTel Client", "taxId": "20333333333"},
        headers={**seed.headers(broker), "X-Correlation-Id": "otel-corr-1"},
    )
    assert response.status_code == 201

    spans = span_exporter.get_finished_spans()
    assert spans
    assert any(span.attributes.get("correlation_id") == "otel-corr-1" for span in spans)


def test_claim_update_span_records_transition(
    client: TestClient,
    seed: Seed,
    span_exporter: InMemorySpanExporter,
) -> None:
    manager = seed.user(Role.CLAIMS_EMPLOYEE)
    claim = seed.claim(seed.affiliate(seed.client()), manager)

    response = client.patch(
        f"/api/claims/{claim.id}",
        json={"status": "PENDING_INFO"},
        headers={**seed.headers(manager), "X-Correlation-Id": "otel-claim-1"},
    )
    assert response.status_code == 200

    claim_spans = [span for span in span_exporter.get_finished_spans() if span.name == "claim.update"]
    assert claim_spans
    assert any(
        span.attributes.get("claim_id") == str(claim.id)
        and span.attributes.get("from_status") == "SUBMITTED"
        and span.attributes.get("to_status") == "PENDING_INFO"
        and span.attributes.get("correlation_id") == "otel-claim-1"
        for span in claim_spans
    )
