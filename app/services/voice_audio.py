"""
PCM16 audio framing and gapless playback scheduling for live voice sessions

Microphone audio is sent as 16 kHz mono little-endian PCM16; the model
answers with 24 kHz PCM16 fragments that are queued back to back.
"""

import base64
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

import numpy as np

logger = logging.getLogger(__name__)

INPUT_SAMPLE_RATE = 16000
OUTPUT_SAMPLE_RATE = 24000
INPUT_BUFFER_SIZE = 2048  # ~128 ms at 16 kHz
INPUT_MIME_TYPE = f"audio/pcm;rate={INPUT_SAMPLE_RATE}"


def float_to_pcm16_bytes(samples) -> bytes:
    """Clamp float samples to [-1, 1] and convert to little-endian int16 bytes"""
    clipped = np.clip(np.asarray(samples, dtype=np.float32), -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 0x8000, clipped * 0x7FFF)
    return scaled.astype("<i2").tobytes()


def encode_pcm16(samples) -> str:
    """Float samples to base64 PCM16, the realtime-input wire format"""
    return base64.b64encode(float_to_pcm16_bytes(samples)).decode("ascii")


def decode_pcm16(data: Union[str, bytes]) -> np.ndarray:
    """
    PCM16 (base64 text or raw bytes) to float32 samples in [-1, 1)

    A trailing odd byte is dropped.
    """
    raw = base64.b64decode(data) if isinstance(data, str) else bytes(data)
    if len(raw) % 2:
        raw = raw[:-1]
    return np.frombuffer(raw, dtype="<i2").astype(np.float32) / 32768.0


@dataclass
class ScheduledFragment:
    start: float
    duration: float
    samples: Optional[np.ndarray] = field(default=None, repr=False)

    @property
    def end(self) -> float:
        return self.start + self.duration


class PlaybackScheduler:
    """
    Schedules audio fragments so each starts exactly when the previous ends

    Times are in seconds on the caller's playback clock.
    """

    def __init__(self, sample_rate: int = OUTPUT_SAMPLE_RATE):
        self.sample_rate = sample_rate
        self.cursor = 0.0
        self.queue: List[ScheduledFragment] = []

    def schedule(self, fragment, now: float) -> float:
        """
        Queue a fragment and return its start time

        Args:
            fragment: Sample array, or a sample count
            now: Current playback clock

        Returns:
            max(now, cursor); the cursor then advances by the fragment duration
        """
        count = fragment if isinstance(fragment, int) else len(fragment)
        duration = count / self.sample_rate
        start = max(now, self.cursor)
        self.cursor = start + duration
        samples = None if isinstance(fragment, int) else fragment
        self.queue.append(ScheduledFragment(start=start, duration=duration, samples=samples))
        return start

    def drain(self, now: float) -> int:
        """Drop fragments that have finished playing; returns how many remain"""
        self.queue = [f for f in self.queue if f.end > now]
        return len(self.queue)

    def interrupt(self) -> int:
        """
        Discard everything queued (barge-in) and reset the cursor

        Returns:
            Number of fragments dropped
        """
        dropped = len(self.queue)
        self.queue = []
        self.cursor = 0.0
        if dropped:
            logger.debug(f"Playback interrupted, dropped {dropped} fragments")
        return dropped

    @property
    def is_playing(self) -> bool:
        return bool(self.queue)
