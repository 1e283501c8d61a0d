"""
Stream a WAV file through a recognition session and print the transcript.

    python tools/transcribe_wav.py hello.wav --realtime --rewrite

Reads credentials from the environment (or .env): DOUBAO_APP_KEY,
DOUBAO_ACCESS_KEY, and optionally REWRITE_API_URL / REWRITE_API_KEY /
REWRITE_MODEL for --rewrite.
"""
from __future__ import annotations

import argparse
import asyncio
import sys
import wave

import numpy as np
from dotenv import load_dotenv

from adapters.llm.rewrite import create_rewrite_client_from_env
from audio.pcm import float32_to_pcm_bytes, pcm_bytes_to_float32, resample
from config import AppConfig
from constants import AUDIO_SAMPLE_RATE_HZ, AUDIO_SAMPLE_WIDTH_BYTES
from observability.logger import set_log_level
from orchestrator.events import SessionEvent
from session.asr_manager import ASRSessionManager

CHUNK_MS = 200


def load_pcm16_mono_16k(path: str) -> bytes:
    """Read a PCM16 WAV file and return 16kHz mono PCM16 LE bytes."""
    with wave.open(path, "rb") as wf:
        if wf.getsampwidth() != AUDIO_SAMPLE_WIDTH_BYTES:
            raise ValueError(f"{path}: expected 16-bit PCM, got {wf.getsampwidth() * 8}-bit")
        channels = wf.getnchannels()
        rate = wf.getframerate()
        raw = wf.readframes(wf.getnframes())

    samples = pcm_bytes_to_float32(raw)
    if channels > 1:
        # Interleaved frames -> average across channels
        samples = samples[: len(samples) - len(samples) % channels]
        samples = samples.reshape(-1, channels).mean(axis=1).astype(np.float32)
    if rate != AUDIO_SAMPLE_RATE_HZ:
        samples = resample(samples, rate, AUDIO_SAMPLE_RATE_HZ)
    return float32_to_pcm_bytes(samples)


def _print_result(event: SessionEvent) -> None:
    if event.result is None:
        return
    tag = "partial" if event.result.is_partial else "final"
    print(f"[{tag}] {event.result.text}", file=sys.stderr)


def _print_error(event: SessionEvent) -> None:
    print(f"[error] {event.error}", file=sys.stderr)


async def run(path: str, *, realtime: bool, rewrite: bool) -> int:
    app_config = AppConfig.load_from_env()
    set_log_level(app_config.log_level)

    pcm = load_pcm16_mono_16k(path)
    chunk_bytes = AUDIO_SAMPLE_RATE_HZ * AUDIO_SAMPLE_WIDTH_BYTES * CHUNK_MS // 1000

    manager = ASRSessionManager(app_config.asr_config())
    manager.on("result", _print_result)
    manager.on("error", _print_error)

    await manager.start_session()
    try:
        for offset in range(0, len(pcm), chunk_bytes):
            manager.send_audio(pcm[offset:offset + chunk_bytes])
            if realtime:
                await asyncio.sleep(CHUNK_MS / 1000)
        result = await manager.stop_session()
    except BaseException:
        await manager.cancel_session()
        raise

    text = result.text
    if rewrite:
        rewriter = create_rewrite_client_from_env()
        if rewriter is not None:
            polished = await rewriter.rewrite(text)
            if not polished.success:
                print(f"[rewrite failed] {polished.error}", file=sys.stderr)
            text = polished.polished

    print(text)
    return 0


def main() -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("wav", help="16-bit PCM WAV file (any rate, mono or stereo)")
    parser.add_argument(
        "--realtime",
        action="store_true",
        help=f"pace {CHUNK_MS} ms chunks in real time instead of sending as fast as possible",
    )
    parser.add_argument(
        "--rewrite",
        action="store_true",
        help="polish the final text with the rewrite endpoint",
    )
    args = parser.parse_args()

    sys.exit(asyncio.run(run(args.wav, realtime=args.realtime, rewrite=args.rewrite)))


if __name__ == "__main__":
    main()
