"""
Text rewrite contract.

Purpose:
- Define the interface for polishing transcribed text with an LLM.
- Guarantee callers always get usable text back.

Rules:
- This file contains NO logic.
- No retries.
- No knowledge of ASR sessions or UI.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RewriteResult:
    """
    Outcome of one rewrite.

    polished is always usable: on failure it is the original text.
    """
    original: str
    polished: str
    success: bool
    error: Optional[str] = None


class TextRewriter(ABC):
    """
    Abstract base class for rewrite clients.

    The rewriter is a *dumb pipe*:
    text -> vendor -> polished text.

    Caller responsibilities (NOT here):
    - When to rewrite
    - What to do with the polished text
    """

    @abstractmethod
    async def rewrite(self, text: str) -> RewriteResult:
        """
        Polish one transcription.

        Contract:
        - Must NOT raise for vendor, HTTP or transport failures; report them
          with success=False and polished=text.
        - Empty / whitespace-only input returns polished="" without a request.
        - Must NOT retry internally.
        """
        raise NotImplementedError
