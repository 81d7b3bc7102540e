"""Tests for client identifier resolution and the client identity middleware."""

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from studio.app.middleware.client_identity import (
    ANONYMOUS_CLIENT,
    MAX_IDENTIFIER_LENGTH,
    ClientIdentityMiddleware,
    derive_client_identifier,
    get_client_identifier,
    get_request_id,
    reset_client_identifier,
    set_client_identifier,
)


class TestDeriveClientIdentifier:
    """Test identifier derivation from headers."""

    def test_first_forwarded_for_entry(self):
        headers = {
            "x-forwarded-for": "203.0.113.7, 10.0.0.1",
            "x-real-ip": "10.0.0.2",
            "user-agent": "Mozilla/5.0",
        }

        assert derive_client_identifier(headers, "127.0.0.1") == "203.0.113.7-Mozilla/5.0"

    def test_real_ip_when_no_forwarded_for(self):
        headers = {"x-real-ip": "198.51.100.4", "user-agent": "curl/8.0"}

        assert derive_client_identifier(headers, "127.0.0.1") == "198.51.100.4-curl/8.0"

    def test_connection_address_fallback(self):
        assert derive_client_identifier({"user-agent": "curl/8.0"}, "127.0.0.1") == "127.0.0.1-curl/8.0"

    def test_unknown_when_nothing_available(self):
        assert derive_client_identifier({}) == "unknown-unknown"

    def test_empty_forwarded_for_entry_ignored(self):
        headers = {"x-forwarded-for": " , 10.0.0.1", "x-real-ip": "198.51.100.4"}

        assert derive_client_identifier(headers) == "198.51.100.4-unknown"

    def test_truncated_to_max_length(self):
        headers = {"x-real-ip": "198.51.100.4", "user-agent": "A" * 500}

        identifier = derive_client_identifier(headers)

        assert len(identifier) == MAX_IDENTIFIER_LENGTH
        assert identifier.startswith("198.51.100.4-AAA")


class TestClientIdentifierContext:
    """Test the context variable accessors."""

    def test_default_outside_request(self):
        assert get_client_identifier() == ANONYMOUS_CLIENT

    def test_set_and_reset(self):
        token = set_client_identifier("1.2.3.4-curl")
        try:
            assert get_client_identifier() == "1.2.3.4-curl"
        finally:
            reset_client_identifier(token)

        assert get_client_identifier() == ANONYMOUS_CLIENT


class TestClientIdentityMiddleware:
    """Test ClientIdentityMiddleware."""

    @pytest.fixture
    def app(self):
        """Create test FastAPI app with middleware."""
        app = FastAPI()
        app.add_middleware(ClientIdentityMiddleware)

        @app.get("/test")
        async def test_endpoint(request: Request):
            return {
                "request_id": get_request_id(request),
                "state_identifier": request.state.client_identifier,
                "context_identifier": get_client_identifier(),
            }

        return app

    @pytest.fixture
    def client(self, app):
        """Create test client."""
        return TestClient(app)

    def test_identifier_available_to_endpoint(self, client):
        response = client.get(
            "/test",
            headers={"X-Forwarded-For": "203.0.113.7", "User-Agent": "studio-test"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["state_identifier"] == "203.0.113.7-studio-test"
        assert data["context_identifier"] == "203.0.113.7-studio-test"

    def test_identifier_falls_back_to_connection(self, client):
        response = client.get("/test", headers={"User-Agent": "studio-test"})

        assert response.json()["context_identifier"] == "testclient-studio-test"

    def test_context_cleared_after_request(self, client):
        client.get("/test", headers={"X-Real-IP": "198.51.100.4"})

        assert get_client_identifier() == ANONYMOUS_CLIENT

    def test_request_id_generated(self, client):
        response = client.get("/test")

        request_id = response.json()["request_id"]
        assert request_id != "unknown"
        assert response.headers["X-Request-ID"] == request_id

    def test_request_id_from_header(self, client):
        response = client.get("/test", headers={"X-Request-ID": "my-request-id"})

        assert response.json()["request_id"] == "my-request-id"
        assert response.headers["X-Request-ID"] == "my-request-id"
