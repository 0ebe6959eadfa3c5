"""
Integration tests for the voice coaching endpoints
"""

from unittest.mock import AsyncMock, patch

from app.core.config import settings
from app.deps.exceptions import MissingAPIKeyError, VoiceTokenError


class TestVoiceConnect:
    """Test POST /api/voice/connect"""

    def test_issues_token(self, client):
        token = {"token": "auth_tokens/xyz", "model": "models/gemini-live"}
        with patch("app.api.routes.voice.issue_voice_token", new_callable=AsyncMock, return_value=token):
            response = client.post("/api/voice/connect")

        assert response.status_code == 200
        assert response.json() == token

    def test_missing_google_key(self, client):
        with patch("app.api.routes.voice.issue_voice_token", new_callable=AsyncMock, side_effect=MissingAPIKeyError("no key")):
            response = client.post("/api/voice/connect")

        assert response.status_code == 500
        error = response.json()["detail"]["error"]
        assert error["code"] == "AUTH_ERROR"
        assert error["message"] == "Google API key is not configured"

    def test_token_failure(self, client):
        with patch("app.api.routes.voice.issue_voice_token", new_callable=AsyncMock, side_effect=VoiceTokenError("quota exceeded")):
            response = client.post("/api/voice/connect", headers={"X-Correlation-ID": "voice-1"})

        assert response.status_code == 500
        error = response.json()["detail"]["error"]
        assert error["code"] == "VOICE_ERROR"
        assert error["requestId"] == "voice-1"


class TestVoiceFaq:
    """Test GET /api/voice/faq"""

    def test_returns_truncated_faq(self, client, tmp_path, monkeypatch):
        faq = tmp_path / "faq.md"
        faq.write_text("Q: Who is Matt?\n" + "A" * 50, encoding="utf-8")
        monkeypatch.setattr(settings, "faq_path", str(faq))
        monkeypatch.setattr(settings, "faq_max_chars", 20)

        response = client.get("/api/voice/faq")

        assert response.status_code == 200
        assert response.json() == {"content": "Q: Who is Matt?\nAAAA"}

    def test_missing_faq_file(self, client, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "faq_path", str(tmp_path / "missing.md"))

        response = client.get("/api/voice/faq")

        assert response.status_code == 500
        assert response.json()["detail"]["error"]["code"] == "FAQ_ERROR"
