"""
Unit tests for the live voice session client
"""

import numpy as np
import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from app.services.voice_client import (
    CONNECTION_ERROR_MESSAGE,
    CoachingPlan,
    VoiceCoachSession,
    build_live_config,
    coach_instruction,
    is_thinking_text,
)


def audio_message(samples):
    data = np.array(samples, dtype="<i2").tobytes()
    part = SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type="audio/pcm;rate=24000"), text=None)
    return SimpleNamespace(tool_call=None, server_content=SimpleNamespace(
        interrupted=False, model_turn=SimpleNamespace(parts=[part])
    ))


def text_message(text):
    part = SimpleNamespace(inline_data=None, text=text)
    return SimpleNamespace(tool_call=None, server_content=SimpleNamespace(
        interrupted=False, model_turn=SimpleNamespace(parts=[part])
    ))


def interrupted_message():
    return SimpleNamespace(tool_call=None, server_content=SimpleNamespace(interrupted=True, model_turn=None))


def tool_call_message(name, args, call_id="fc-1"):
    call = SimpleNamespace(id=call_id, name=name, args=args)
    return SimpleNamespace(tool_call=SimpleNamespace(function_calls=[call]), server_content=None)


class FakeLiveSession:
    def __init__(self, batches=None, error=None):
        self.send_realtime_input = AsyncMock()
        self.send_tool_response = AsyncMock()
        self.close = AsyncMock()
        self.batches = list(batches or [])
        self.error = error

    async def receive(self):
        if self.batches:
            for message in self.batches.pop(0):
                yield message
            return
        if self.error is not None:
            raise self.error


@pytest.fixture
def clock():
    return MagicMock(return_value=0.0)


class TestLiveConfig:
    def test_voice_and_background(self):
        faq = "F" * 1000
        config = build_live_config(faq)
        instruction = coach_instruction(faq)

        assert config.speech_config.voice_config.prebuilt_voice_config.voice_name == "Aoede"
        assert ("Background: " + "F" * 400) in instruction
        assert "F" * 401 not in instruction
        assert config.tools[0].function_declarations[0].name == "generate_coaching_plan"

    def test_fallback_background(self):
        assert "7-0 professional boxer" in coach_instruction(None)


class TestThinkingFilter:
    @pytest.mark.parametrize("text", ["**Planning the reply**", "Responding to the jab question", "I'm just checking"])
    def test_thinking(self, text):
        assert is_thinking_text(text)

    def test_normal_speech(self):
        assert not is_thinking_text("Right then, hands up!")


class TestCoachingPlan:
    def test_markdown(self):
        plan = CoachingPlan(
            plan_title="Sharpen The Jab",
            summary="Work the lead hand",
            key_points=["Snap it back", "Step with it"],
            next_steps="Shadow box daily",
            duration="5 mins",
        )
        markdown = plan.to_markdown()

        assert markdown.startswith("# Sharpen The Jab")
        assert "- Snap it back" in markdown
        assert "## Next Steps\n\nShadow box daily" in markdown


@pytest.mark.asyncio
class TestVoiceCoachSession:
    """Test duplex session handling"""

    async def test_microphone_buffers_only_sent_while_recording(self, clock):
        live = FakeLiveSession()
        coach = VoiceCoachSession(live, clock=clock)

        assert await coach.send_microphone_buffer(np.zeros(2048)) is False
        coach.start_recording()
        assert await coach.send_microphone_buffer(np.zeros(2048)) is True

        blob = live.send_realtime_input.call_args.kwargs["audio"]
        assert blob.mime_type == "audio/pcm;rate=16000"
        assert len(blob.data) == 4096

    async def test_stop_recording_sends_stream_end(self, clock):
        live = FakeLiveSession()
        coach = VoiceCoachSession(live, clock=clock)
        coach.start_recording()

        await coach.stop_recording()

        live.send_realtime_input.assert_awaited_once_with(audio_stream_end=True)
        assert coach.recording is False

    async def test_audio_is_scheduled_gaplessly(self, clock):
        coach = VoiceCoachSession(FakeLiveSession(), clock=clock)

        await coach.handle_server_message(audio_message([0] * 4800))
        await coach.handle_server_message(audio_message([0] * 3600))

        assert len(coach.playback_queue) == 2
        assert [f.start for f in coach.scheduler.queue] == pytest.approx([0.0, 0.2])

    async def test_finished_audio_is_released(self, clock):
        coach = VoiceCoachSession(FakeLiveSession(), clock=clock)

        for second in range(100):
            clock.return_value = float(second)
            await coach.handle_server_message(audio_message([0] * 2400))

        assert len(coach.playback_queue) == 1
        assert len(coach.scheduler.queue) == 1

    async def test_interruption_clears_playback(self, clock):
        coach = VoiceCoachSession(FakeLiveSession(), clock=clock)
        await coach.handle_server_message(audio_message([0] * 4800))

        await coach.handle_server_message(interrupted_message())

        assert coach.playback_queue == []
        assert coach.scheduler.cursor == 0.0

    async def test_transcript_filters_thinking(self, clock):
        coach = VoiceCoachSession(FakeLiveSession(), clock=clock)

        await coach.handle_server_message(text_message("**Thinking about footwork**"))
        await coach.handle_server_message(text_message("Lovely, keep those feet moving."))

        assert [m.text for m in coach.messages] == ["Lovely, keep those feet moving."]
        assert "Freya: Lovely, keep those feet moving." in coach.transcript

    async def test_plan_tool_call_writes_markdown_and_acknowledges(self, clock, tmp_path):
        live = FakeLiveSession()
        coach = VoiceCoachSession(live, clock=clock, plan_dir=str(tmp_path))

        await coach.handle_server_message(tool_call_message("generate_coaching_plan", {
            "planTitle": "Jab Plan",
            "summary": "Lead hand work",
            "keyPoints": ["Relax the shoulder"],
            "nextSteps": "Three rounds a day",
        }))

        files = list(tmp_path.glob("*.md"))
        assert len(files) == 1
        assert files[0].name.startswith("jab-plan-")
        assert "Relax the shoulder" in files[0].read_text(encoding="utf-8")

        response = live.send_tool_response.call_args.kwargs["function_responses"][0]
        assert response.id == "fc-1"
        assert response.name == "generate_coaching_plan"
        assert response.response["success"] is True

    async def test_plan_write_failure_reports_error(self, clock, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")
        live = FakeLiveSession()
        coach = VoiceCoachSession(live, clock=clock, plan_dir=str(blocker))

        await coach.handle_server_message(tool_call_message("generate_coaching_plan", {"planTitle": "X"}))

        response = live.send_tool_response.call_args.kwargs["function_responses"][0]
        assert response.response == {"success": False, "error": "Failed to generate plan"}

    async def test_receive_forever_surfaces_dismissible_error(self, clock):
        live = FakeLiveSession(batches=[[text_message("Right then.")]], error=ConnectionError("socket closed"))
        coach = VoiceCoachSession(live, clock=clock)

        await coach.receive_forever()

        assert coach.error == CONNECTION_ERROR_MESSAGE
        assert coach.connected is False
        assert [m.text for m in coach.messages] == ["Right then."]

        coach.dismiss_error()
        assert coach.error is None

    async def test_receive_forever_stops_when_server_closes(self, clock):
        coach = VoiceCoachSession(FakeLiveSession(), clock=clock)

        await coach.receive_forever()

        assert coach.connected is False
        assert coach.error is None

    async def test_end_closes_session_and_logs_close_errors(self, clock):
        live = FakeLiveSession()
        live.close.side_effect = RuntimeError("already closed")
        coach = VoiceCoachSession(live, clock=clock)
        coach.start_recording()
        await coach.handle_server_message(audio_message([0] * 100))

        await coach.end()

        live.send_realtime_input.assert_awaited_with(audio_stream_end=True)
        live.close.assert_awaited_once()
        assert coach.playback_queue == []
        assert coach.recording is False
