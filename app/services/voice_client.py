"""
Duplex client for live voice coaching sessions

Wraps a google-genai live session: streams microphone buffers up, schedules
returned audio for gapless playback, handles barge-in and answers the
model's generate_coaching_plan tool calls by writing a Markdown plan.
"""

import logging
import re
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

import numpy as np
from google import genai
from google.genai import types

from app.core.config import settings
from app.services.voice_audio import (
    INPUT_MIME_TYPE,
    OUTPUT_SAMPLE_RATE,
    PlaybackScheduler,
    decode_pcm16,
    float_to_pcm16_bytes,
)

logger = logging.getLogger(__name__)

VOICE_NAME = "Aoede"
COACH_NAME = "Freya"
FAQ_BACKGROUND_CHARS = 400
FALLBACK_BACKGROUND = (
    "Matt Goddard is a 7-0 professional boxer and National Champion with 20+ years of ring experience."
)
CONNECTION_ERROR_MESSAGE = "Connection error - please try again"

PLAN_TOOL_NAME = "generate_coaching_plan"
DEFAULT_KEY_POINTS = ["Keep your guard up", "Work on footwork", "Stay relaxed"]

# Planning chatter the native-audio model sometimes emits as text
_THINKING_MARKERS = ("Responding", "Figuring", "I'm just", "Trying to", "I'm getting")


def is_thinking_text(text: str) -> bool:
    return text.startswith("**") or any(marker in text for marker in _THINKING_MARKERS)


def coaching_plan_tool() -> types.Tool:
    return types.Tool(function_declarations=[
        types.FunctionDeclaration(
            name=PLAN_TOOL_NAME,
            description=(
                "Generate a personalised boxing coaching plan based on the conversation. Call this when the "
                "user asks for their plan, wants a summary, or the coaching session is wrapping up."
            ),
            parameters=types.Schema(
                type="OBJECT",
                properties={
                    "planTitle": types.Schema(type="STRING", description="A catchy title for the coaching plan"),
                    "summary": types.Schema(type="STRING", description="A brief summary of the coaching advice given"),
                    "keyPoints": types.Schema(
                        type="ARRAY",
                        items=types.Schema(type="STRING"),
                        description="List of 3-5 key takeaways from the session",
                    ),
                    "nextSteps": types.Schema(type="STRING", description="Recommended next steps for the boxer"),
                },
                required=["planTitle", "summary", "keyPoints", "nextSteps"],
            ),
        )
    ])


def coach_instruction(faq_content: Optional[str] = None) -> str:
    """Voice coach persona with the first few hundred FAQ characters as background"""
    background = faq_content[:FAQ_BACKGROUND_CHARS] if faq_content else FALLBACK_BACKGROUND
    return f"""You are {COACH_NAME} Mills - a British boxing coach. Be warm, direct, and natural. Use British expressions like "brilliant", "lovely", "right then".

Give helpful, complete responses - not too short, not too long. Like a real gym conversation. No planning text or thinking out loud.

You can generate a coaching plan when asked - use '{PLAN_TOOL_NAME}' tool.

Background: {background}"""


def build_live_config(faq_content: Optional[str] = None) -> types.LiveConnectConfig:
    """
    Live session config: audio replies in the Aoede voice, coach persona
    with a short FAQ background, automatic voice activity detection
    """
    return types.LiveConnectConfig(
        response_modalities=["AUDIO"],
        system_instruction=coach_instruction(faq_content),
        speech_config=types.SpeechConfig(
            voice_config=types.VoiceConfig(
                prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=VOICE_NAME)
            )
        ),
        realtime_input_config=types.RealtimeInputConfig(
            automatic_activity_detection=types.AutomaticActivityDetection(disabled=False)
        ),
        tools=[coaching_plan_tool()],
    )


@dataclass
class CoachingPlan:
    plan_title: str
    summary: str
    key_points: List[str]
    next_steps: str
    transcript: str = ""
    duration: str = "N/A"

    def to_markdown(self) -> str:
        lines = [f"# {self.plan_title}", "", f"*Session length: {self.duration}*", "", "## Summary", "", self.summary, ""]
        lines += ["## Key Points", ""] + [f"- {point}" for point in self.key_points] + [""]
        lines += ["## Next Steps", "", self.next_steps, ""]
        if self.transcript:
            lines += ["## Transcript", "", self.transcript.strip(), ""]
        return "\n".join(lines)


def _slugify(title: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    return slug[:60] or "coaching-plan"


def write_plan(plan: CoachingPlan, directory: Optional[str] = None) -> Path:
    """Write the plan as Markdown and return the file path"""
    out_dir = Path(directory or settings.plan_output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / f"{_slugify(plan.plan_title)}-{datetime.now().strftime('%Y%m%d-%H%M%S')}.md"
    path.write_text(plan.to_markdown(), encoding="utf-8")
    return path


@dataclass
class TranscriptEntry:
    role: str
    text: str
    timestamp: datetime = field(default_factory=datetime.now)


class VoiceCoachSession:
    """
    Client-side state for one live voice session

    ``session`` is a connected google-genai live session (or anything with
    the same send_realtime_input / send_tool_response / receive / close API).
    ``clock`` returns the playback clock in seconds.
    """

    def __init__(
        self,
        session: Any,
        clock: Optional[Callable[[], float]] = None,
        plan_dir: Optional[str] = None,
    ):
        self.session = session
        self.clock = clock or time.monotonic
        self.plan_dir = plan_dir
        self.scheduler = PlaybackScheduler(sample_rate=OUTPUT_SAMPLE_RATE)
        self.messages: List[TranscriptEntry] = []
        self.transcript = ""
        self.plans: List[Path] = []
        self.recording = False
        self.connected = True
        self.error: Optional[str] = None
        self.started_at = datetime.now()

    # Microphone

    def start_recording(self) -> None:
        self.recording = True
        logger.info("Voice recording started")

    async def stop_recording(self) -> None:
        """Stop capturing and tell the server the audio stream ended"""
        if not self.recording:
            return
        self.recording = False
        await self.session.send_realtime_input(audio_stream_end=True)
        logger.info("Voice recording stopped")

    async def send_microphone_buffer(self, samples) -> bool:
        """
        Send one buffer of 16 kHz float samples

        Returns:
            False when not recording (the buffer is dropped)
        """
        if not self.recording or not self.connected:
            return False
        await self.session.send_realtime_input(
            audio=types.Blob(data=float_to_pcm16_bytes(samples), mime_type=INPUT_MIME_TYPE)
        )
        return True

    # Server messages

    async def handle_server_message(self, message: Any) -> None:
        tool_call = getattr(message, "tool_call", None)
        if tool_call is not None and getattr(tool_call, "function_calls", None):
            for call in tool_call.function_calls:
                await self.handle_tool_call(call)
            return

        content = getattr(message, "server_content", None)
        if content is None:
            return

        if getattr(content, "interrupted", False):
            logger.info("User interrupted, clearing audio")
            self.clear_playback()
            return

        turn = getattr(content, "model_turn", None)
        for part in getattr(turn, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            if inline is not None and getattr(inline, "data", None):
                try:
                    self.enqueue_audio(decode_pcm16(inline.data))
                except (ValueError, TypeError) as e:
                    logger.error(f"Error processing audio: {str(e)}")

            text = (getattr(part, "text", None) or "").strip()
            if text and not is_thinking_text(text):
                self.messages.append(TranscriptEntry(role="assistant", text=text))
                self.transcript += f"\n\n{COACH_NAME}: {text}"

    def enqueue_audio(self, samples: np.ndarray) -> float:
        """Queue decoded audio for playback; returns its scheduled start"""
        now = self.clock()
        self.scheduler.drain(now)
        return self.scheduler.schedule(samples, now)

    @property
    def playback_queue(self) -> List[np.ndarray]:
        """Audio still scheduled to play; finished fragments are released on the next enqueue"""
        return [f.samples for f in self.scheduler.queue if f.samples is not None]

    def clear_playback(self) -> None:
        self.scheduler.interrupt()

    async def handle_tool_call(self, call: Any) -> None:
        logger.info(f"Tool call received: {call.name}")
        if call.name != PLAN_TOOL_NAME:
            await self._send_tool_response(call, {"success": False, "error": f"Unknown tool: {call.name}"})
            return

        try:
            args = call.args or {}
            minutes = round((datetime.now() - self.started_at).total_seconds() / 60)
            plan = CoachingPlan(
                plan_title=args.get("planTitle") or "Your Coaching Plan",
                summary=args.get("summary") or "Personalised boxing coaching session",
                key_points=list(args.get("keyPoints") or DEFAULT_KEY_POINTS),
                next_steps=args.get("nextSteps") or "",
                transcript=self.transcript or f"Voice coaching session with {COACH_NAME} Mills",
                duration=f"{minutes} mins",
            )
            path = write_plan(plan, self.plan_dir)
        except (OSError, TypeError, AttributeError) as e:
            logger.error(f"Error generating plan: {str(e)}")
            await self._send_tool_response(call, {"success": False, "error": "Failed to generate plan"})
            return

        self.plans.append(path)
        self.messages.append(TranscriptEntry(
            role="assistant",
            text=f'Your personalised coaching plan "{plan.plan_title}" has been generated and saved!',
        ))
        logger.info(f"Coaching plan written to {path}")
        await self._send_tool_response(call, {"success": True, "message": "Plan generated and downloaded successfully!"})

    async def _send_tool_response(self, call: Any, response: Dict[str, Any]) -> None:
        await self.session.send_tool_response(function_responses=[
            types.FunctionResponse(id=getattr(call, "id", None), name=call.name, response=response)
        ])

    # Connection lifecycle

    async def receive_forever(self) -> None:
        """
        Pump server messages until the connection closes

        Socket errors become a dismissible banner in ``error``; there is no
        automatic reconnect.
        """
        try:
            while self.connected:
                received = False
                async for message in self.session.receive():
                    received = True
                    await self.handle_server_message(message)
                if not received:
                    logger.info("Voice session closed by server")
                    self.connected = False
        except Exception as e:
            logger.error(f"Voice connection error: {str(e)}")
            self.error = CONNECTION_ERROR_MESSAGE
            self.connected = False

    def dismiss_error(self) -> None:
        self.error = None

    async def end(self) -> None:
        """Stop recording, clear playback and close the session"""
        try:
            await self.stop_recording()
        except Exception as e:
            logger.warning(f"Failed to signal end of audio stream: {str(e)}")
        self.clear_playback()
        self.connected = False
        try:
            await self.session.close()
        except Exception as e:
            logger.warning(f"Error closing voice session: {str(e)}")


@asynccontextmanager
async def open_voice_session(token: str, model: str, faq_content: Optional[str] = None) -> AsyncIterator[VoiceCoachSession]:
    """
    Connect to the live API with an ephemeral token from /api/voice/connect
    """
    client = genai.Client(api_key=token, http_options={"api_version": "v1alpha"})
    async with client.aio.live.connect(model=model, config=build_live_config(faq_content)) as session:
        logger.info(f"Voice session established with model {model}")
        coach = VoiceCoachSession(session)
        try:
            yield coach
        finally:
            await coach.end()
