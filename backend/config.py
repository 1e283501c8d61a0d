"""
Application configuration.

Responsibilities:
- Read environment variables
- Provide typed, immutable config objects for the ASR session and rewrite client
- Validate numeric limits once, at construction

Non-responsibilities:
- No protocol logic
- No runtime mutation (use dataclasses.replace for variants)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from constants import (
    ASR_CONNECT_TIMEOUT_S,
    ASR_ENDPOINT_URL,
    ASR_FLUSH_INTERVAL_MS,
    ASR_MODEL_NAME,
    ASR_RESOURCE_ID,
    ASR_USER_ID,
    AUDIO_BIT_DEPTH,
    AUDIO_CHANNELS,
    AUDIO_SAMPLE_RATE_HZ,
    FINAL_RESULT_POLL_MS,
    FINAL_RESULT_TIMEOUT_MS,
    HISTORY_MAX_SIZE_DEFAULT,
    REWRITE_MAX_TOKENS_DEFAULT,
    REWRITE_TEMPERATURE_DEFAULT,
    REWRITE_TIMEOUT_S_DEFAULT,
)


@dataclass(frozen=True)
class AudioFormat:
    """PCM format announced to the service in the init request."""

    sample_rate: int = AUDIO_SAMPLE_RATE_HZ
    bit_depth: int = AUDIO_BIT_DEPTH
    channels: int = AUDIO_CHANNELS


@dataclass(frozen=True)
class RecognitionOptions:
    """
    Request options for the recognition model.

    enable_itn:      inverse text normalization ("twenty" -> "20")
    enable_punc:     punctuation
    enable_ddc:      disfluency removal
    show_utterances: return per-utterance segments with timings
    """

    model_name: str = ASR_MODEL_NAME
    enable_itn: bool = True
    enable_punc: bool = True
    enable_ddc: bool = True
    show_utterances: bool = True


@dataclass(frozen=True)
class ASRConfig:
    """
    Immutable per-session configuration.

    Shared by the session manager (history, finalization wait) and the
    protocol client (credentials, endpoint, pacing).
    """

    app_key: str
    access_key: str

    audio: AudioFormat = field(default_factory=AudioFormat)
    request: RecognitionOptions = field(default_factory=RecognitionOptions)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    endpoint_url: str = ASR_ENDPOINT_URL
    resource_id: str = ASR_RESOURCE_ID
    user_id: str = ASR_USER_ID
    flush_interval_ms: int = ASR_FLUSH_INTERVAL_MS
    connect_timeout_s: float = ASR_CONNECT_TIMEOUT_S

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------
    auto_save_history: bool = True
    max_history_size: int = HISTORY_MAX_SIZE_DEFAULT
    final_result_timeout_ms: int = FINAL_RESULT_TIMEOUT_MS
    final_result_poll_ms: int = FINAL_RESULT_POLL_MS

    def __post_init__(self) -> None:
        errs: list[str] = []
        if self.flush_interval_ms <= 0:
            errs.append(f"flush_interval_ms must be > 0 (got {self.flush_interval_ms})")
        if self.connect_timeout_s <= 0:
            errs.append(f"connect_timeout_s must be > 0 (got {self.connect_timeout_s})")
        if self.max_history_size < 1:
            errs.append(f"max_history_size must be >= 1 (got {self.max_history_size})")
        if self.final_result_timeout_ms < 0:
            errs.append(
                f"final_result_timeout_ms must be >= 0 (got {self.final_result_timeout_ms})"
            )
        if self.final_result_poll_ms <= 0:
            errs.append(f"final_result_poll_ms must be > 0 (got {self.final_result_poll_ms})")
        if errs:
            raise ValueError("ASR configuration invalid:\n" + "\n".join(errs))


@dataclass(frozen=True)
class RewriteConfig:
    """Configuration for the OpenAI-compatible rewrite endpoint."""

    api_url: str
    api_key: str
    model: str
    temperature: float = REWRITE_TEMPERATURE_DEFAULT
    max_tokens: int = REWRITE_MAX_TOKENS_DEFAULT
    timeout_s: float = REWRITE_TIMEOUT_S_DEFAULT


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup by entry points
    (tools/transcribe_wav.py) and turned into component configs.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str
    log_level: str

    # ------------------------------------------------------------------
    # ASR
    # ------------------------------------------------------------------

    asr_app_key: str | None
    asr_access_key: str | None
    asr_resource_id: str
    asr_endpoint_url: str

    # ------------------------------------------------------------------
    # Rewrite
    # ------------------------------------------------------------------

    rewrite_api_url: str | None
    rewrite_api_key: str | None
    rewrite_model: str | None

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """Load configuration from environment variables."""
        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),

            asr_app_key=os.environ.get("DOUBAO_APP_KEY"),
            asr_access_key=os.environ.get("DOUBAO_ACCESS_KEY"),
            asr_resource_id=os.environ.get("DOUBAO_RESOURCE_ID", ASR_RESOURCE_ID),
            asr_endpoint_url=os.environ.get("ASR_ENDPOINT_URL", ASR_ENDPOINT_URL),

            rewrite_api_url=os.environ.get("REWRITE_API_URL"),
            rewrite_api_key=os.environ.get("REWRITE_API_KEY"),
            rewrite_model=os.environ.get("REWRITE_MODEL"),
        )

    def asr_config(self, **overrides: object) -> ASRConfig:
        """
        Build the session config.

        Raises:
            ValueError if ASR credentials are missing.
        """
        if not self.asr_app_key or not self.asr_access_key:
            raise ValueError("DOUBAO_APP_KEY and DOUBAO_ACCESS_KEY must be set")
        return ASRConfig(
            app_key=self.asr_app_key,
            access_key=self.asr_access_key,
            resource_id=self.asr_resource_id,
            endpoint_url=self.asr_endpoint_url,
            **overrides,  # type: ignore[arg-type]
        )

    def rewrite_config(self) -> RewriteConfig | None:
        """Return the rewrite config, or None when URL, key or model is missing."""
        if not (self.rewrite_api_url and self.rewrite_api_key and self.rewrite_model):
            return None
        return RewriteConfig(
            api_url=self.rewrite_api_url,
            api_key=self.rewrite_api_key,
            model=self.rewrite_model,
        )
