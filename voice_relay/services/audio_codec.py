"""
Client-side audio helpers for talking to the relay.

Captured audio goes upstream as mono 24kHz PCM16 frames, base64 encoded, one
frame per audio.chunk message. Synthesized speech comes back as base64 MP3
chunks that are queued in arrival order for playback.
"""

import base64
import binascii
import logging
import wave
from pathlib import Path
from typing import Iterator, List, Union

import numpy as np

from voice_relay.config.constants import CLIENT_FRAME_SAMPLES, INPUT_SAMPLE_RATE, LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

# PCM16 is two bytes per sample
FRAME_BYTES = CLIENT_FRAME_SAMPLES * 2


def float_to_pcm16(samples) -> bytes:
    """
    Convert float samples in [-1, 1] to little-endian signed 16-bit PCM.

    Values outside the range are clipped. Negative samples scale by 0x8000 and
    positive ones by 0x7FFF so both ends of the int16 range are reachable.
    """
    data = np.clip(np.asarray(samples, dtype=np.float32), -1.0, 1.0)
    scaled = np.where(data < 0, data * 0x8000, data * 0x7FFF)
    return scaled.astype("<i2").tobytes()


def _frames_to_float(raw: bytes, sample_width: int) -> np.ndarray:
    if sample_width == 1:
        return (np.frombuffer(raw, dtype=np.uint8).astype(np.float32) - 128.0) / 128.0
    if sample_width == 2:
        return np.frombuffer(raw, dtype="<i2").astype(np.float32) / 32768.0
    if sample_width == 4:
        return np.frombuffer(raw, dtype="<i4").astype(np.float32) / 2147483648.0
    raise ValueError(f"Unsupported WAV sample width: {sample_width} bytes")


def resample(samples: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
    """Linear-interpolation resampler; good enough for speech recognition input."""
    if source_rate == target_rate or len(samples) == 0:
        return samples
    duration = len(samples) / source_rate
    target_length = max(1, int(round(duration * target_rate)))
    source_times = np.arange(len(samples)) / source_rate
    target_times = np.arange(target_length) / target_rate
    return np.interp(target_times, source_times, samples).astype(np.float32)


def load_wav_as_pcm16(path: Union[str, Path], sample_rate: int = INPUT_SAMPLE_RATE) -> bytes:
    """
    Read a WAV file and return mono PCM16 at sample_rate.

    Multi-channel audio is downmixed by averaging the channels.
    """
    with wave.open(str(path), "rb") as wav_file:
        channels = wav_file.getnchannels()
        sample_width = wav_file.getsampwidth()
        source_rate = wav_file.getframerate()
        raw = wav_file.readframes(wav_file.getnframes())

    samples = _frames_to_float(raw, sample_width)
    if channels > 1:
        samples = samples.reshape(-1, channels).mean(axis=1)

    samples = resample(samples, source_rate, sample_rate)
    logger.debug(
        f"Loaded {path}: {channels} channel(s) at {source_rate}Hz -> "
        f"{len(samples)} mono samples at {sample_rate}Hz"
    )
    return float_to_pcm16(samples)


def iter_frames(pcm: bytes, frame_bytes: int = FRAME_BYTES) -> Iterator[bytes]:
    """Split PCM into fixed-size frames; the last frame may be shorter."""
    if frame_bytes <= 0 or frame_bytes % 2:
        raise ValueError("frame_bytes must be a positive even number")
    for offset in range(0, len(pcm), frame_bytes):
        yield pcm[offset:offset + frame_bytes]


def encode_frame(frame: bytes) -> str:
    return base64.b64encode(frame).decode("utf-8")


class AudioPlaybackQueue:
    """
    Holds returned speech chunks in playback order.

    Chunks are played in the order they arrive; `complete` is set when the
    relay reports the end of a reply with audio.complete.
    """

    def __init__(self):
        self.chunks: List[bytes] = []
        self.complete = False

    def __len__(self) -> int:
        return len(self.chunks)

    @property
    def total_bytes(self) -> int:
        return sum(len(chunk) for chunk in self.chunks)

    def add(self, encoded: str) -> bool:
        """Queue one base64 chunk; returns False if it could not be decoded."""
        try:
            chunk = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            logger.warning(f"Dropping undecodable audio chunk: {e}")
            return False
        if self.complete:
            # A new reply started after the previous one finished
            self.complete = False
        self.chunks.append(chunk)
        return True

    def mark_complete(self) -> None:
        self.complete = True

    def stop(self) -> None:
        """Discard anything not yet played."""
        self.chunks.clear()
        self.complete = False

    def write(self, path: Union[str, Path]) -> int:
        """Write the queued MP3 chunks to path in order and return the byte count."""
        data = b"".join(self.chunks)
        Path(path).write_bytes(data)
        logger.info(f"Wrote {len(data)} bytes of audio from {len(self.chunks)} chunk(s) to {path}")
        return len(data)
