from __future__ import annotations
import base64
import binascii
import re
from dataclasses import dataclass
import numpy as np

PCM_FULL_SCALE = 32768.0

_DATA_URI = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?;base64,(?P<data>.*)$", re.DOTALL)


class DecodeError(Exception):
    pass


@dataclass(frozen=True)
class AudioBuffer:
    """Decoded float audio, shaped (frame_count, num_channels)."""

    samples: np.ndarray
    sample_rate: int

    @property
    def num_channels(self) -> int:
        return self.samples.shape[1]

    @property
    def frame_count(self) -> int:
        return self.samples.shape[0]

    @property
    def duration(self) -> float:
        return self.frame_count / self.sample_rate

    def channel(self, index: int) -> np.ndarray:
        return self.samples[:, index]


def decode_base64(text: str) -> bytes:
    try:
        return base64.b64decode(text.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64 payload: {e}") from e


def encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def parse_data_uri(uri: str) -> tuple[str, bytes]:
    """Split a ``data:<mime>;base64,<payload>`` URI into its mime type and bytes."""
    match = _DATA_URI.match(uri)
    if not match:
        raise DecodeError("Not a base64 data URI")
    return match.group("mime") or "text/plain", decode_base64(match.group("data"))


def decode_pcm(data: bytes, sample_rate: int = 24000, num_channels: int = 1) -> AudioBuffer:
    """Decode interleaved signed 16-bit little-endian PCM into float samples.

    Each sample is divided by 32768 so values land in [-1.0, 1.0). A trailing
    frame that does not have a sample for every channel is dropped.
    """
    if num_channels < 1:
        raise ValueError(f"num_channels must be at least 1, got {num_channels}")
    if sample_rate < 1:
        raise ValueError(f"sample_rate must be positive, got {sample_rate}")
    if len(data) % 2:
        raise DecodeError(f"PCM16 data must have an even length, got {len(data)} bytes")

    pcm = np.frombuffer(data, dtype="<i2")
    frame_count = len(pcm) // num_channels
    frames = pcm[: frame_count * num_channels].reshape(frame_count, num_channels)
    return AudioBuffer(samples=frames.astype(np.float32) / PCM_FULL_SCALE, sample_rate=sample_rate)


def encode_pcm(buffer: AudioBuffer) -> bytes:
    scaled = np.rint(buffer.samples.astype(np.float64) * PCM_FULL_SCALE)
    return np.clip(scaled, -32768, 32767).astype("<i2").tobytes()
