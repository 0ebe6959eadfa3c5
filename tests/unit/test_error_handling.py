"""
Unit tests for the error handling middleware
"""

from fastapi import FastAPI
from fastapi.testclient import TestClient
from unittest.mock import patch

from app.middleware.error_handling import ErrorHandlingMiddleware


def build_app(enable_graceful_degradation=True):
    test_app = FastAPI()
    test_app.add_middleware(ErrorHandlingMiddleware, enable_graceful_degradation=enable_graceful_degradation)

    @test_app.get("/api/videos/search")
    async def search():
        raise RuntimeError("catalog offline")

    @test_app.get("/api/chat")
    async def chat():
        raise ValueError("boom sk-or-v1-" + "f" * 64)

    @test_app.get("/api/voice/faq")
    async def faq():
        raise ConnectionError("database unreachable")

    return test_app


class TestErrorHandlingMiddleware:
    """Test conversion of uncaught exceptions"""

    def test_video_search_degrades_to_empty_list(self):
        client = TestClient(build_app())

        response = client.get("/api/videos/search")

        assert response.status_code == 200
        assert response.json() == {"videos": []}

    def test_unexpected_error_envelope(self):
        client = TestClient(build_app())

        response = client.get("/api/chat", headers={"X-Correlation-ID": "req-42"})

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "INTERNAL_ERROR"
        assert error["message"] == "Internal server error"
        assert error["requestId"] == "req-42"
        assert error["details"] == {}

    def test_debug_details_mask_keys(self):
        client = TestClient(build_app())

        with patch("app.middleware.error_handling.settings.debug", True):
            response = client.get("/api/chat")

        details = response.json()["error"]["details"]
        assert details["exception_type"] == "ValueError"
        assert "f" * 64 not in details["exception_message"]

    def test_connection_errors_return_503(self):
        client = TestClient(build_app())

        response = client.get("/api/voice/faq")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "SERVICE_UNAVAILABLE"

    def test_degradation_can_be_disabled(self):
        client = TestClient(build_app(enable_graceful_degradation=False))

        response = client.get("/api/videos/search")

        assert response.status_code == 500
        assert response.json()["error"]["requestId"] == "unknown"
