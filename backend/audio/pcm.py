"""
PCM conversion utilities.

Stateless numpy transforms used to turn captured audio into the
PCM16 little-endian mono 16kHz stream the recognizer expects.
"""

from __future__ import annotations

import math

import numpy as np
from numpy.typing import ArrayLike, NDArray

_INT16_POS_SCALE = 0x7FFF
_INT16_NEG_SCALE = 0x8000


def float32_to_int16(samples: ArrayLike) -> NDArray[np.int16]:
    """
    Convert float samples in [-1.0, 1.0] to int16.

    Out-of-range input is clamped. Positive values scale by 32767 and
    negative by 32768, so 1.0 -> 32767 and -1.0 -> -32768.
    """
    audio = np.clip(np.asarray(samples, dtype=np.float32), -1.0, 1.0)
    scaled = np.where(audio < 0, audio * _INT16_NEG_SCALE, audio * _INT16_POS_SCALE)
    return scaled.astype(np.int16)


def int16_to_float32(samples: ArrayLike) -> NDArray[np.float32]:
    """Inverse of float32_to_int16 (asymmetric scaling, range [-1.0, 1.0])."""
    audio = np.asarray(samples, dtype=np.int16).astype(np.float32)
    return np.where(audio < 0, audio / _INT16_NEG_SCALE, audio / _INT16_POS_SCALE).astype(
        np.float32
    )


def int16_to_bytes(samples: ArrayLike) -> bytes:
    """Serialize int16 samples as little-endian bytes."""
    return np.asarray(samples, dtype=np.int16).astype("<i2").tobytes()


def float32_to_pcm_bytes(samples: ArrayLike) -> bytes:
    """float32_to_int16 followed by int16_to_bytes."""
    return int16_to_bytes(float32_to_int16(samples))


def pcm_bytes_to_float32(pcm_bytes: bytes) -> NDArray[np.float32]:
    """
    Convert PCM16 little-endian bytes to float32 in [-1.0, 1.0].

    A trailing odd byte (truncated sample) is dropped.
    """
    if len(pcm_bytes) % 2 != 0:
        pcm_bytes = pcm_bytes[: len(pcm_bytes) - 1]
    return int16_to_float32(np.frombuffer(pcm_bytes, dtype="<i2"))


def concat_chunks(*chunks: bytes) -> bytes:
    """Concatenate byte chunks in order."""
    return b"".join(chunks)


def resample(
    samples: ArrayLike,
    input_rate: int,
    output_rate: int,
) -> NDArray[np.float32]:
    """
    Resample by linear interpolation.

    Adequate for speech input to the recognizer; not a band-limited resampler.
    """
    audio = np.asarray(samples, dtype=np.float32)
    if input_rate == output_rate or audio.size == 0:
        return audio

    ratio = input_rate / output_rate
    output_length = int(round(audio.size / ratio))
    src_positions = np.arange(output_length, dtype=np.float64) * ratio
    return np.interp(src_positions, np.arange(audio.size), audio).astype(np.float32)


def stereo_to_mono(left: ArrayLike, right: ArrayLike) -> NDArray[np.float32]:
    """Average two channels."""
    l = np.asarray(left, dtype=np.float32)
    r = np.asarray(right, dtype=np.float32)
    return ((l + r) / 2).astype(np.float32)


def calculate_rms(samples: ArrayLike) -> float:
    """Root-mean-square level (0.0 for empty input)."""
    audio = np.asarray(samples, dtype=np.float64)
    if audio.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(audio * audio)))


def calculate_peak(samples: ArrayLike) -> float:
    """Largest absolute sample (0.0 for empty input)."""
    audio = np.asarray(samples, dtype=np.float64)
    if audio.size == 0:
        return 0.0
    return float(np.max(np.abs(audio)))


def db_to_linear(db: float) -> float:
    return math.pow(10.0, db / 20.0)


def linear_to_db(linear: float) -> float:
    """20*log10(linear); -inf for non-positive input."""
    if linear <= 0:
        return float("-inf")
    return 20.0 * math.log10(linear)
