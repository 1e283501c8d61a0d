"""Rewrite client over an OpenAI-compatible chat completions endpoint."""
from __future__ import annotations

from dataclasses import replace
from typing import Any, Optional

import openai
from openai import AsyncOpenAI

from adapters.llm.base import RewriteResult, TextRewriter
from adapters.llm.prompts import REWRITE_SYSTEM_PROMPT
from config import AppConfig, RewriteConfig
from observability.logger import log_event
from observability.metrics import timed


_COMPONENT = "rewrite"
_COMPLETIONS_SUFFIX = "/chat/completions"


def _base_url(api_url: str) -> str:
    """
    Accept either the API root (".../v1") or the full completions URL
    (".../v1/chat/completions"); the OpenAI client wants the root.
    """
    url = api_url.rstrip("/")
    if url.endswith(_COMPLETIONS_SUFFIX):
        url = url[: -len(_COMPLETIONS_SUFFIX)]
    return url


def _completion_text(completion: Any) -> str:
    try:
        content = completion.choices[0].message.content
    except (AttributeError, IndexError, TypeError):
        return ""
    return content.strip() if isinstance(content, str) else ""


class RewriteClient(TextRewriter):
    """
    Stateless request/response rewriter.

    Design notes:
    - One request per rewrite(); client-side retries are disabled.
    - The round trip is bounded by config.timeout_s.
    - Every failure degrades to the original text.
    """

    def __init__(self, config: RewriteConfig, *, client: Any = None) -> None:
        """
        Args:
            config:
                Endpoint, credentials and sampling parameters.
            client:
                Pre-built AsyncOpenAI-compatible client. When omitted one is
                created lazily from config.
        """
        self._config = config
        self._injected_client = client
        self._client = client

    @property
    def config(self) -> RewriteConfig:
        return self._config

    def update_config(self, **changes: Any) -> None:
        """Replace individual config fields (api_key, model, temperature, ...)."""
        self._config = replace(self._config, **changes)
        # A lazily built client carries the old URL/key/timeout
        if self._injected_client is None:
            self._client = None

    async def rewrite(self, text: str) -> RewriteResult:
        trimmed = text.strip()
        if not trimmed:
            return RewriteResult(original=text, polished="", success=True)

        if not self._config.api_key:
            log_event({
                "event_type": "REWRITE_SKIPPED",
                "level": "warning",
                "component": _COMPONENT,
                "reason": "missing_api_key",
            })
            return RewriteResult(original=text, polished=text, success=True)

        try:
            with timed(
                "rewrite_round_trip",
                component=_COMPONENT,
                details={"model": self._config.model, "chars": len(trimmed)},
            ):
                completion = await self._get_client().chat.completions.create(
                    model=self._config.model,
                    messages=[
                        {"role": "system", "content": REWRITE_SYSTEM_PROMPT},
                        {"role": "user", "content": trimmed},
                    ],
                    temperature=self._config.temperature,
                    max_tokens=self._config.max_tokens,
                )
        except openai.APIStatusError as e:
            return self._failed(text, f"rewrite request failed: HTTP {e.status_code}")
        except openai.OpenAIError as e:
            return self._failed(text, str(e) or type(e).__name__)
        except Exception as e:  # pylint: disable=broad-exception-caught
            return self._failed(text, str(e) or type(e).__name__)

        polished = _completion_text(completion)
        if not polished:
            return self._failed(text, "rewrite returned an empty result")

        return RewriteResult(original=text, polished=polished, success=True)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._config.api_key,
                base_url=_base_url(self._config.api_url),
                timeout=self._config.timeout_s,
                max_retries=0,
            )
        return self._client

    def _failed(self, text: str, error: str) -> RewriteResult:
        log_event({
            "event_type": "REWRITE_FAILED",
            "level": "error",
            "component": _COMPONENT,
            "model": self._config.model,
            "error": error,
        })
        return RewriteResult(original=text, polished=text, success=False, error=error)


async def rewrite_text(text: str, config: RewriteConfig) -> str:
    """One-shot helper: polished text (the original on failure)."""
    result = await RewriteClient(config).rewrite(text)
    return result.polished


def create_rewrite_client_from_env() -> Optional[RewriteClient]:
    """
    Build a client from REWRITE_API_URL / REWRITE_API_KEY / REWRITE_MODEL.

    Returns None when any of them is missing.
    """
    app_config = AppConfig.load_from_env()
    config = app_config.rewrite_config()
    if config is None:
        log_event({
            "event_type": "REWRITE_SKIPPED",
            "level": "warning",
            "component": _COMPONENT,
            "reason": "incomplete_env",
            "has_api_url": bool(app_config.rewrite_api_url),
            "has_api_key": bool(app_config.rewrite_api_key),
            "has_model": bool(app_config.rewrite_model),
        })
        return None
    return RewriteClient(config)
