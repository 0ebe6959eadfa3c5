"""
Server-sent event framing for the UI message stream

Frames are newline-delimited ``data: <json>`` lines separated by a blank line
and terminated by ``data: [DONE]``. Each JSON object carries a ``type``
discriminator (text-delta, tool-input-start, tool-output-available, ...).
"""

import codecs
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from app.schemas.chat import ParsedResponse
from app.schemas.coach import CoachingResult
from app.services.response_parser import parse_assistant_response, parse_coaching_response

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"
DATA_PREFIX = "data:"

STAGE_ANALYZING = "analyzing"
STAGE_SEARCHING_VIDEOS = "searching_videos"
STAGE_GENERATING = "generating"


def encode_event(event: Dict[str, Any]) -> str:
    """Serialize one event as an SSE data frame"""
    return f"data: {json.dumps(event, separators=(',', ':'))}\n\n"


def encode_done() -> str:
    return f"data: {DONE_SENTINEL}\n\n"


@dataclass
class StreamResult:
    text: str
    tool_videos: List[Dict[str, Any]]
    done: bool

    def reconcile(self) -> ParsedResponse:
        return parse_assistant_response(self.text)

    def reconcile_coaching(self) -> CoachingResult:
        """Lead-magnet output, with tool-search videos as fallback recommendations"""
        return parse_coaching_response(self.text, self.tool_videos)


@dataclass
class StreamAccumulator:
    """
    Incremental reader for a relayed UI message stream

    Network reads split lines arbitrarily, so the trailing fragment of every
    chunk is held back until its newline arrives.
    """
    text: str = ""
    tool_videos: List[Dict[str, Any]] = field(default_factory=list)
    stage: str = STAGE_ANALYZING
    done: bool = False
    _buffer: str = ""
    _decoder: Any = field(default_factory=lambda: codecs.getincrementaldecoder("utf-8")(errors="replace"), repr=False)

    def feed(self, chunk: Union[str, bytes]) -> List[Dict[str, Any]]:
        """
        Consume a chunk of the stream

        Returns:
            Events fully decoded from this chunk, in order
        """
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        self._buffer += chunk
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()

        events = []
        for line in lines:
            event = self._process_line(line)
            if event is not None:
                events.append(event)
        return events

    def close(self) -> List[Dict[str, Any]]:
        """Flush a final line that arrived without a trailing newline"""
        # An incomplete multibyte tail decodes to U+FFFD rather than vanishing
        remaining = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        event = self._process_line(remaining)
        return [event] if event is not None else []

    def result(self) -> StreamResult:
        return StreamResult(text=self.text, tool_videos=list(self.tool_videos), done=self.done)

    def _process_line(self, line: str) -> Optional[Dict[str, Any]]:
        stripped = line.strip()
        # Blank separators and ": OPENROUTER PROCESSING" style keep-alives
        if not stripped or stripped.startswith(":"):
            return None
        if not stripped.startswith(DATA_PREFIX):
            return None

        data = stripped[len(DATA_PREFIX):].strip()
        if not data:
            return None
        if data == DONE_SENTINEL:
            self.done = True
            return None

        try:
            event = json.loads(data)
        except json.JSONDecodeError:
            logger.debug(f"Skipping undecodable stream frame: {data[:80]}")
            return None
        if not isinstance(event, dict):
            return None

        self._apply(event)
        return event

    def _apply(self, event: Dict[str, Any]) -> None:
        event_type = event.get("type")

        if event_type == "text-delta":
            delta = event.get("delta") or event.get("textDelta") or ""
            if delta:
                self.text += delta
            self.stage = STAGE_GENERATING
        elif event_type == "text":
            self.text += event.get("text") or ""
            self.stage = STAGE_GENERATING
        elif event_type == "tool-input-start":
            self.stage = STAGE_SEARCHING_VIDEOS
        elif event_type == "tool-output-available":
            output = event.get("output")
            if isinstance(output, dict) and output.get("type") == "video_selections":
                videos = output.get("videos")
                if isinstance(videos, list):
                    self.tool_videos = [
                        {
                            "video_id": v.get("video_id"),
                            "title": v.get("title"),
                            "topic": v.get("topic"),
                            "subtopic": v.get("subtopic"),
                        }
                        for v in videos
                        if isinstance(v, dict)
                    ]
                    logger.debug(f"Found {len(self.tool_videos)} videos from tool output")
