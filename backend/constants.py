"""
BEHAVIOURAL CONSTANTS
---------------------
Single source of truth for protocol defaults, timings and limits.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- Per-session tunables are copied into the immutable config objects
  (config.py) so tests can override them; fixed protocol limits are read
  directly.
"""

from __future__ import annotations

from typing import Final

# =============================================================================
# Audio Format (PCM16 little-endian mono @ 16kHz)
# =============================================================================

AUDIO_SAMPLE_RATE_HZ: Final[int] = 16_000
AUDIO_BIT_DEPTH: Final[int] = 16
AUDIO_CHANNELS: Final[int] = 1
AUDIO_SAMPLE_WIDTH_BYTES: Final[int] = AUDIO_BIT_DEPTH // 8

# =============================================================================
# Remote ASR endpoint (bidirectional streaming, async variant)
# =============================================================================

ASR_ENDPOINT_URL: Final[str] = "wss://openspeech.bytedance.com/api/v3/sauc/bigmodel_async"
ASR_RESOURCE_ID: Final[str] = "volc.seedasr.sauc.duration"
ASR_USER_ID: Final[str] = "voice_input_user"

ASR_MODEL_NAME: Final[str] = "bigmodel"
ASR_RESULT_TYPE: Final[str] = "full"

# Largest inbound frame accepted from the service (4 MiB)
ASR_MAX_MESSAGE_BYTES: Final[int] = 2**22

# =============================================================================
# Outbound audio pacing
# =============================================================================

ASR_FLUSH_INTERVAL_MS: Final[int] = 200
ASR_CONNECT_TIMEOUT_S: Final[float] = 10.0

# =============================================================================
# Session finalization
# =============================================================================

FINAL_RESULT_TIMEOUT_MS: Final[int] = 5_000
FINAL_RESULT_POLL_MS: Final[int] = 100

# =============================================================================
# History
# =============================================================================

HISTORY_MAX_SIZE_DEFAULT: Final[int] = 100

# =============================================================================
# Rewrite (OpenAI-compatible chat completions)
# =============================================================================

REWRITE_TEMPERATURE_DEFAULT: Final[float] = 0.3
REWRITE_MAX_TOKENS_DEFAULT: Final[int] = 4096
REWRITE_TIMEOUT_S_DEFAULT: Final[float] = 30.0
