# pylint: disable=missing-module-docstring,missing-function-docstring

import math

import numpy as np
import pytest

from audio.pcm import (
    calculate_peak,
    calculate_rms,
    concat_chunks,
    db_to_linear,
    float32_to_int16,
    float32_to_pcm_bytes,
    int16_to_bytes,
    int16_to_float32,
    linear_to_db,
    pcm_bytes_to_float32,
    resample,
    stereo_to_mono,
)


# ---------------------------------------------------------------------
# float32 <-> int16
# ---------------------------------------------------------------------

def test_float32_to_int16_bounds_and_clamping():
    out = float32_to_int16([0.0, 1.0, -1.0, 1.5, -2.0])

    assert out.dtype == np.int16
    assert out.tolist() == [0, 32767, -32768, 32767, -32768]


def test_int16_round_trip_within_one_lsb():
    samples = np.array([-32768, -12345, -1, 0, 1, 12345, 32767], dtype=np.int16)

    back = float32_to_int16(int16_to_float32(samples))

    assert np.max(np.abs(back.astype(np.int32) - samples.astype(np.int32))) <= 1


def test_int16_to_float32_extremes():
    out = int16_to_float32(np.array([-32768, 0, 32767], dtype=np.int16))
    assert out.tolist() == [-1.0, 0.0, 1.0]


def test_int16_to_bytes_is_little_endian():
    assert int16_to_bytes([1, -2]) == b"\x01\x00\xfe\xff"


def test_float32_to_pcm_bytes():
    assert float32_to_pcm_bytes([1.0, -1.0]) == b"\xff\x7f\x00\x80"


def test_pcm_bytes_to_float32_drops_trailing_odd_byte():
    out = pcm_bytes_to_float32(b"\xff\x7f\x00")
    assert out.tolist() == [1.0]


def test_concat_chunks():
    assert concat_chunks(b"ab", b"", b"c") == b"abc"


# ---------------------------------------------------------------------
# Resampling / mixing
# ---------------------------------------------------------------------

def test_resample_48k_to_16k_length():
    out = resample(np.zeros(48_000, dtype=np.float32), 48_000, 16_000)
    assert len(out) == 16_000


def test_resample_downsample_linear_ramp():
    ramp = np.linspace(0.0, 1.0, 48, dtype=np.float32)
    out = resample(ramp, 48_000, 16_000)

    assert len(out) == 16
    assert np.allclose(out, ramp[::3])


def test_resample_upsample_interpolates():
    out = resample([0.0, 1.0], 8_000, 16_000)
    assert np.allclose(out, [0.0, 0.5, 1.0, 1.0])


def test_resample_same_rate_is_identity():
    samples = np.array([0.1, -0.2, 0.3], dtype=np.float32)
    assert np.array_equal(resample(samples, 16_000, 16_000), samples)


def test_stereo_to_mono_averages():
    assert np.allclose(stereo_to_mono([1.0, 0.0], [0.0, -1.0]), [0.5, -0.5])


# ---------------------------------------------------------------------
# Levels
# ---------------------------------------------------------------------

def test_rms_and_peak():
    assert calculate_rms([1.0, -1.0]) == pytest.approx(1.0)
    assert calculate_peak([0.5, -0.8]) == pytest.approx(0.8)
    assert calculate_rms([]) == 0.0
    assert calculate_peak([]) == 0.0


@pytest.mark.parametrize("db", [-60.0, -6.0, 0.0, 12.0])
def test_db_conversions_are_inverse(db: float):
    assert linear_to_db(db_to_linear(db)) == pytest.approx(db)


def test_linear_to_db_of_zero_is_negative_infinity():
    assert linear_to_db(0.0) == -math.inf
    assert db_to_linear(0.0) == 1.0
