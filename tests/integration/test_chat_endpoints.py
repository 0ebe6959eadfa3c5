"""
Integration tests for the chat endpoints
"""

import json
from unittest.mock import patch

from app.deps.exceptions import MissingAPIKeyError
from app.services.session_store import session_store
from app.services.video_suggestions import video_suggestion_resolver
from tests.utils.mock_services import FakeOpenRouterClient, FakeStream, text_chunk, text_stream

REPLY = (
    "Keep your chin tucked and snap the jab back.\n\n"
    '```json\n{"actions":[{"label":"Show me drills","type":"explore_topic","query":"Jab drills"}],'
    '"videos":["jab"]}\n```'
)


def user_message(text, message_id="m1"):
    return {"id": message_id, "role": "user", "parts": [{"type": "text", "text": text}]}


def events(response):
    payloads = [line[len("data: "):] for line in response.text.split("\n\n") if line.startswith("data: ")]
    assert payloads[-1] == "[DONE]"
    return [json.loads(p) for p in payloads[:-1]]


class TestChatEndpoint:
    """Test POST /api/chat"""

    def test_missing_session_id(self, client):
        response = client.post("/api/chat", json={"messages": [user_message("Hi")]})

        assert response.status_code == 400
        error = response.json()["detail"]["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"] == {"field": "sessionId"}

    def test_blank_session_id_is_missing(self, client):
        response = client.post("/api/chat", json={"sessionId": "   ", "messages": [user_message("Hi")]})
        assert response.status_code == 400

    def test_streams_and_persists_both_turns(self, client, seeded_videos):
        fake = FakeOpenRouterClient([text_stream(REPLY[:20], REPLY[20:])])

        with patch("app.services.stream_relay.get_openrouter_client", return_value=fake):
            response = client.post("/api/chat", json={
                "sessionId": "session-abc",
                "category": "Technique",
                "messages": [user_message("How do I jab?")],
            })

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["x-vercel-ai-ui-message-stream"] == "v1"

        stream = events(response)
        assert [e["type"] for e in stream] == ["start", "text-start", "text-delta", "text-delta", "text-end", "finish"]
        assert "".join(e["delta"] for e in stream if e["type"] == "text-delta") == REPLY

        sent = fake.completions.calls[0]["messages"]
        assert sent[0]["role"] == "system"
        assert sent[1] == {"role": "user", "content": "How do I jab?"}

        history = session_store.history("session-abc")
        assert [(m["role"], m["content"]) for m in history] == [("user", "How do I jab?"), ("assistant", REPLY)]

    def test_missing_api_key(self, client):
        with patch("app.services.stream_relay.get_openrouter_client", side_effect=MissingAPIKeyError()):
            response = client.post("/api/chat", json={"sessionId": "s1", "messages": [user_message("Hi")]})

        assert response.status_code == 500
        error = response.json()["detail"]["error"]
        assert error["code"] == "AUTH_ERROR"
        assert error["details"]["error_type"] == "missing_api_key"

        # The user turn is saved before the provider is called
        assert [m["role"] for m in session_store.history("s1")] == ["user"]

    def test_mid_stream_failure_keeps_partial_reply(self, client):
        fake = FakeOpenRouterClient([FakeStream([text_chunk("Hands up, "), text_chunk("always")], fail_after=1)])

        with patch("app.services.stream_relay.get_openrouter_client", return_value=fake):
            response = client.post("/api/chat", json={"sessionId": "s2", "messages": [user_message("Guard?")]})

        assert response.status_code == 200
        stream = events(response)
        assert stream[-1]["type"] == "error"
        assert "finish" not in [e["type"] for e in stream]
        assert session_store.history("s2")[-1]["content"] == "Hands up, "


class TestChatHistory:
    """Test GET and DELETE /api/chat"""

    def test_history_includes_parsed_reply_and_videos(self, client, seeded_videos):
        session_store.get_or_create("s-hist")
        session_store.append("s-hist", "user", "How do I jab?")
        session_store.append("s-hist", "assistant", REPLY)

        response = client.get("/api/chat", params={"sessionId": "s-hist"})

        assert response.status_code == 200
        messages = response.json()["messages"]
        assert [m["role"] for m in messages] == ["user", "assistant"]
        assert all(m["id"].startswith("msg-") for m in messages)
        assert "parsed" not in messages[0]

        parsed = messages[1]["parsed"]
        assert parsed["text"] == "Keep your chin tucked and snap the jab back."
        assert parsed["actions"][0] == {
            "label": "Show me drills", "action": "explore_topic", "value": "Jab drills", "video_id": None,
        }
        assert parsed["video_search_terms"] == ["jab"]
        assert [v["video_id"] for v in parsed["videos"]][:1] == ["jab00000001"]

    def test_delete_drops_cached_suggestions(self, client, seeded_videos):
        session_store.get_or_create("reused")
        session_store.append("reused", "user", "Jab?")
        session_store.append("reused", "assistant", REPLY)
        first = client.get("/api/chat", params={"sessionId": "reused"}).json()["messages"][1]
        assert first["parsed"]["videos"][0]["video_id"] == "jab00000001"

        client.delete("/api/chat", params={"sessionId": "reused"})
        assert len(video_suggestion_resolver) == 0

        footwork_reply = REPLY.replace('"videos":["jab"]', '"videos":["footwork"]')
        session_store.get_or_create("reused")
        session_store.append("reused", "user", "Feet?")
        session_store.append("reused", "assistant", footwork_reply)
        second = client.get("/api/chat", params={"sessionId": "reused"}).json()["messages"][1]

        assert [v["video_id"] for v in second["parsed"]["videos"]] == ["foot0000001"]

    def test_history_requires_session_id(self, client):
        response = client.get("/api/chat")
        assert response.status_code == 400

    def test_unknown_session_has_empty_history(self, client):
        response = client.get("/api/chat", params={"sessionId": "never-seen"})
        assert response.json() == {"messages": []}

    def test_get_all_sessions(self, client):
        session_store.get_or_create("first")
        session_store.append("first", "user", "Opening question")
        session_store.get_or_create("second")

        response = client.get("/api/chat", params={"getAll": "true"})

        sessions = {s["session_id"]: s for s in response.json()["sessions"]}
        assert set(sessions) == {"first", "second"}
        assert sessions["first"]["first_message"] == "Opening question"
        assert sessions["first"]["message_count"] == 1
        assert sessions["second"]["message_count"] == 0

    def test_delete_session(self, client):
        session_store.get_or_create("doomed")
        session_store.append("doomed", "user", "Bye")

        response = client.delete("/api/chat", params={"sessionId": "doomed"})

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert session_store.history("doomed") == []

    def test_delete_requires_session_id(self, client):
        assert client.delete("/api/chat").status_code == 400
