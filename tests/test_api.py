import asyncio
import json

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from lead_relay.core.errors import ConfigurationError, PersistenceError, RelayError
from lead_relay.core.utils import PLACEHOLDER, build_sheet_row
from lead_relay.main import create_app
from tests.stubs import StubRelay, StubSink


class TestHealth:
    """Tests for the health endpoint."""

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestChat:
    """Tests for POST /api/chat."""

    def test_success(self, client: TestClient, relay: StubRelay) -> None:
        history = [{"role": "user", "parts": [{"text": "Hi"}]}, {"role": "model", "parts": [{"text": "Hello!"}]}]
        response = client.post("/api/chat", json={"message": "Do you build AI websites?", "history": history})

        assert response.status_code == 200
        assert response.json() == {"response": relay.reply}
        assert relay.calls == [(history, "Do you build AI websites?")]

    def test_empty_history_allowed(self, client: TestClient, relay: StubRelay) -> None:
        response = client.post("/api/chat", json={"message": "Hi", "history": []})
        assert response.status_code == 200
        assert len(relay.calls) == 1

    @pytest.mark.parametrize(
        ("body", "field"),
        [
            ({"history": []}, "message"),
            ({"message": "", "history": []}, "message"),
            ({"message": 42, "history": []}, "message"),
            ({"message": "Hi"}, "history"),
            ({"message": "Hi", "history": "not a list"}, "history"),
            ({"message": "Hi", "history": {"role": "user"}}, "history"),
            ({"message": "Hi", "history": None}, "history"),
        ],
    )
    def test_invalid_body(self, client: TestClient, relay: StubRelay, body: dict, field: str) -> None:
        """Bad shape: 400 naming the field, model never called."""
        response = client.post("/api/chat", json=body)

        assert response.status_code == 400
        assert f'"{field}"' in response.json()["error"]
        assert relay.calls == []

    def test_malformed_json(self, client: TestClient, relay: StubRelay) -> None:
        response = client.post("/api/chat", content=b"{not json", headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert "error" in response.json()
        assert relay.calls == []

    def test_relay_failure_hides_details(self, settings, sink: StubSink) -> None:
        """Upstream error text never reaches the client."""
        relay = StubRelay(error=RelayError("quota exceeded for project secret-project-42"))
        client = TestClient(create_app(settings=settings, relay=relay, sink=sink))

        response = client.post("/api/chat", json={"message": "Hi", "history": []})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to get response from AI model."}
        assert "secret-project-42" not in response.text

    def test_unexpected_failure_hides_details(self, settings, sink: StubSink) -> None:
        """Untyped errors still pass through the middleware stack."""
        relay = StubRelay(error=RuntimeError("connection reset by 10.0.0.7"))
        client = TestClient(create_app(settings=settings, relay=relay, sink=sink))

        response = client.post(
            "/api/chat", json={"message": "Hi", "history": []}, headers={"Origin": "https://bunnyhoney.ai"}
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to get response from AI model."}
        assert "10.0.0.7" not in response.text
        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["access-control-allow-origin"] == "https://bunnyhoney.ai"


class TestLead:
    """Tests for POST /api/lead."""

    def test_success(self, client: TestClient, sink: StubSink) -> None:
        lead = {"name": "John Doe", "email": "john@example.com", "budget": 5000, "source": "widget"}
        response = client.post("/api/lead", json=lead)

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Lead successfully saved."}
        assert len(sink.records) == 1
        assert sink.records[0].snapshot() == lead

    def test_structured_optional_fields(self, client: TestClient, sink: StubSink) -> None:
        """Optional fields may hold any JSON value; only email is type-checked."""
        lead = {
            "email": "a@b.c",
            "interest": ["AI Websites", "Chatbots"],
            "usecase": {"channel": "web", "seats": 3},
            "budget": True,
            "company": None,
        }
        response = client.post("/api/lead", json=lead)

        assert response.status_code == 200
        snapshot = sink.records[0].snapshot()
        assert snapshot == lead
        assert snapshot["budget"] is True

        row = build_sheet_row(snapshot)
        raw = json.loads(row[9])
        assert raw == lead
        assert raw["budget"] is True
        assert row[6] == "AI Websites, Chatbots"
        assert row[7] == "True"
        assert row[3] == PLACEHOLDER

    def test_empty_email_accepted(self, client: TestClient, sink: StubSink) -> None:
        """Email only has to be a string; an empty one becomes a placeholder in the sheet."""
        response = client.post("/api/lead", json={"email": "", "name": "Jane"})
        assert response.status_code == 200
        assert len(sink.records) == 1

    @pytest.mark.parametrize(
        "body",
        [
            {"name": "John"},
            {"email": None},
            {"email": 123},
            {"email": ["a@b.c"]},
        ],
    )
    def test_invalid_email(self, client: TestClient, sink: StubSink, body: dict) -> None:
        """Missing or non-string email: 400, nothing appended."""
        response = client.post("/api/lead", json=body)

        assert response.status_code == 400
        assert '"email"' in response.json()["error"]
        assert sink.records == []

    def test_body_not_object(self, client: TestClient, sink: StubSink) -> None:
        response = client.post("/api/lead", json=["john@example.com"])
        assert response.status_code == 400
        assert sink.records == []

    def test_persistence_failure_hides_details(self, settings, relay: StubRelay) -> None:
        sink = StubSink(error=PersistenceError("HttpError 403 for spreadsheet spreadsheet-123"))
        client = TestClient(create_app(settings=settings, relay=relay, sink=sink))

        response = client.post("/api/lead", json={"email": "john@example.com"})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to save lead data."}
        assert "spreadsheet-123" not in response.text

    def test_unexpected_failure_hides_details(self, settings, relay: StubRelay) -> None:
        sink = StubSink(error=KeyError("worksheet cache corrupted"))
        client = TestClient(create_app(settings=settings, relay=relay, sink=sink))

        response = client.post("/api/lead", json={"email": "john@example.com"})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to save lead data."}
        assert response.headers["x-frame-options"] == "SAMEORIGIN"

    def test_configuration_failure(self, settings, relay: StubRelay) -> None:
        sink = StubSink(error=ConfigurationError("GOOGLE_SHEETS_SPREADSHEET_ID environment variable not set."))
        client = TestClient(create_app(settings=settings, relay=relay, sink=sink))

        response = client.post("/api/lead", json={"email": "john@example.com"})

        assert response.status_code == 500
        assert "GOOGLE_SHEETS_SPREADSHEET_ID" not in response.text


@pytest.mark.asyncio
async def test_concurrent_leads_are_appended_independently(app: FastAPI, sink: StubSink) -> None:
    """Two simultaneous submissions produce two separate appends."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        first, second = await asyncio.gather(
            client.post("/api/lead", json={"email": "first@example.com", "name": "First"}),
            client.post("/api/lead", json={"email": "second@example.com", "name": "Second"}),
        )

    assert first.status_code == 200
    assert second.status_code == 200
    assert len(sink.records) == 2
    assert sorted(json.dumps(r.snapshot(), sort_keys=True) for r in sink.records) == [
        json.dumps({"email": "first@example.com", "name": "First"}, sort_keys=True),
        json.dumps({"email": "second@example.com", "name": "Second"}, sort_keys=True),
    ]

