"""Integration tests for the FastAPI mangling API."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from wordmangle.errors import MarkupError
from wordmangle.main import app

from test_markup import UNKNOWN_MARKED_SECTION, requires_strict_tokenizer


@pytest.fixture
def client():
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


# --- Health Endpoint ---


class TestHealthEndpoint:
    def test_health_returns_200(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


# --- Mangle Endpoint ---


class TestMangleEndpoint:
    def test_json_body(self, client):
        response = client.post(
            "/mangle",
            json={"text": "The quick brown fox\njumps over the lazy dog"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["mangled_text"] == "Iii ooooo ooooo iii\nooooo jjjj iii llll hhh"
        assert data["format"] == "text"
        assert data["word_count"] == 9

    def test_json_html_format(self, client):
        response = client.post(
            "/mangle",
            json={"text": "<h2>HTML is Easy To Learn</h2>", "format": "html"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["mangled_text"] == "<h2>KKKK ee Jjjj Ee Nnnnn</h2>"
        assert data["format"] == "html"
        assert data["word_count"] == 5

    def test_text_plain_body(self, client):
        response = client.post(
            "/mangle",
            content="So funny, ROFL.",
            headers={"Content-Type": "text/plain; charset=utf-8"},
        )
        assert response.status_code == 200
        assert response.json()["mangled_text"] == "Dd ooooo, KKKK."

    def test_text_html_body(self, client):
        response = client.post(
            "/mangle",
            content="<!doctype html><title>Short HTML5</title>",
            headers={"Content-Type": "text/html"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["mangled_text"] == "<!doctype html><title>Mmmmm MMMMM</title>"
        assert data["format"] == "html"

    def test_unknown_format_rejected(self, client):
        response = client.post("/mangle", json={"text": "hello", "format": "pdf"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Validation error"

    def test_empty_text_rejected(self, client):
        response = client.post(
            "/mangle",
            json={"text": ""},
        )
        assert response.status_code == 400

    def test_invalid_json_rejected(self, client):
        response = client.post(
            "/mangle",
            content=b"not valid json{{{",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid request body"

    def test_undecodable_text_rejected(self, client):
        response = client.post(
            "/mangle",
            content=b"\xff\xfe broken",
            headers={"Content-Type": "text/plain"},
        )
        assert response.status_code == 400

    def test_request_id_header_present(self, client):
        response = client.post(
            "/mangle",
            json={"text": "hello"},
        )
        assert "x-request-id" in response.headers

    def test_incoming_request_id_reused(self, client):
        response = client.post(
            "/mangle",
            json={"text": "hello"},
            headers={"X-Request-ID": "trace-42"},
        )
        assert response.headers["x-request-id"] == "trace-42"

    def test_malformed_request_id_replaced(self, client):
        response = client.get("/health", headers={"X-Request-ID": "bad id with spaces"})
        assert response.headers["x-request-id"] != "bad id with spaces"


# --- Payload Size Limit ---


class TestPayloadSizeLimit:
    def test_oversized_payload_rejected(self, client):
        huge_text = "confidential " * 100_000  # well over 1MB
        response = client.post(
            "/mangle",
            content=huge_text.encode(),
            headers={"Content-Type": "text/plain"},
        )
        assert response.status_code == 413

    def test_normal_payload_accepted(self, client):
        response = client.post(
            "/mangle",
            json={"text": "Small payload"},
        )
        assert response.status_code == 200


# --- Exception Handling ---


class TestExceptionHandling:
    def test_500_does_not_expose_stack_trace(self, client):
        with patch(
            "wordmangle.main.Mangler.mangle_stream",
            side_effect=RuntimeError("boom"),
        ):
            response = client.post(
                "/mangle",
                json={"text": "hello"},
            )
            assert response.status_code == 500
            body = response.json()
            assert body["detail"] == "Internal server error"
            assert "boom" not in str(body)
            assert "Traceback" not in str(body)

    def test_markup_error_is_422(self, client):
        with patch(
            "wordmangle.main.Mangler.mangle_html",
            side_effect=MarkupError("unknown declaration"),
        ):
            response = client.post(
                "/mangle",
                json={"text": "<!bad>", "format": "html"},
            )
        assert response.status_code == 422
        assert response.json() == {"detail": "Malformed markup"}

    @requires_strict_tokenizer
    def test_unparseable_markup_is_422(self, client):
        response = client.post(
            "/mangle",
            json={"text": "<p>Intro</p>" + UNKNOWN_MARKED_SECTION, "format": "html"},
        )
        assert response.status_code == 422
        assert response.json() == {"detail": "Malformed markup"}
        assert "x-request-id" in response.headers


class TestHealthReadiness:
    def test_ready_endpoint_ok(self, client):
        response = client.get("/health/ready")
        assert response.status_code == 200

    def test_ready_endpoint_failure(self, client):
        client.app.state.ready = False
        response = client.get("/health/ready")
        assert response.status_code == 503
        client.app.state.ready = True
