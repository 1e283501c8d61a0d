"""
Recognition result types and tolerant extraction from server JSON.

The upstream payload shape varies between service versions, so text is read
through an ordered list of strategies; the first non-empty one wins:

    1. result.text
    2. result.payload_msg.result.text
    3. "".join(u.text for u in result.utterances)

where `result` itself is found at payload_msg.result or at the top-level
result key.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping, Optional


@dataclass(frozen=True)
class Utterance:
    """One delimited spoken segment within a transcription result."""
    text: str
    start_time_ms: int
    end_time_ms: int
    is_final: bool


@dataclass(frozen=True)
class ASRResult:
    """
    Recognition result delivered to the session layer.

    error results never carry text; is_partial is True until the server
    flags the last packet.
    """
    text: str
    is_partial: bool
    utterances: Optional[tuple[Utterance, ...]] = None
    error: Optional[str] = None

    @classmethod
    def from_error(cls, error: str) -> ASRResult:
        """Soft error: no text, still partial."""
        return cls(text="", is_partial=True, error=error)

    def as_final(self) -> ASRResult:
        """Copy promoted to a final result."""
        return replace(self, is_partial=False)


# ---------------------------------------------------------------------
# Locating the result object
# ---------------------------------------------------------------------

def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def find_result(data: Any) -> Optional[Mapping[str, Any]]:
    """Return payload_msg.result, else the top-level result, else None."""
    root = _as_mapping(data)
    nested = _as_mapping(root.get("payload_msg")).get("result")
    if isinstance(nested, Mapping) and nested:
        return nested
    top = root.get("result")
    if isinstance(top, Mapping) and top:
        return top
    return None


# ---------------------------------------------------------------------
# Text strategies
# ---------------------------------------------------------------------

def _text_direct(result: Mapping[str, Any]) -> str:
    text = result.get("text")
    return text if isinstance(text, str) else ""


def _text_nested_payload(result: Mapping[str, Any]) -> str:
    inner = _as_mapping(_as_mapping(result.get("payload_msg")).get("result"))
    text = inner.get("text")
    return text if isinstance(text, str) else ""


def _text_from_utterances(result: Mapping[str, Any]) -> str:
    utterances = result.get("utterances")
    if not isinstance(utterances, list):
        return ""
    return "".join(
        u["text"] for u in utterances
        if isinstance(u, Mapping) and isinstance(u.get("text"), str)
    )


TextStrategy = Callable[[Mapping[str, Any]], str]

TEXT_STRATEGIES: tuple[tuple[str, TextStrategy], ...] = (
    ("result.text", _text_direct),
    ("result.payload_msg.result.text", _text_nested_payload),
    ("result.utterances[].text", _text_from_utterances),
)


def extract_text(result: Mapping[str, Any]) -> str:
    """Apply TEXT_STRATEGIES in order; first non-empty text wins."""
    for _name, strategy in TEXT_STRATEGIES:
        text = strategy(result)
        if text:
            return text
    return ""


# ---------------------------------------------------------------------
# Utterances
# ---------------------------------------------------------------------

def _first_int(entry: Mapping[str, Any], *keys: str) -> int:
    for key in keys:
        value = entry.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return int(value)
    return 0


def extract_utterances(result: Mapping[str, Any]) -> Optional[tuple[Utterance, ...]]:
    """
    Parse result.utterances.

    Time fields accept snake_case (start_time) or camelCase (startTime);
    finality comes from the `definite` flag. Returns None when the field
    is absent or not a list.
    """
    raw = result.get("utterances")
    if not isinstance(raw, list):
        return None

    utterances: list[Utterance] = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            continue
        text = entry.get("text")
        utterances.append(
            Utterance(
                text=text if isinstance(text, str) else "",
                start_time_ms=_first_int(entry, "start_time", "startTime"),
                end_time_ms=_first_int(entry, "end_time", "endTime"),
                is_final=bool(entry.get("definite", False)),
            )
        )
    return tuple(utterances)


# ---------------------------------------------------------------------
# Full response -> ASRResult
# ---------------------------------------------------------------------

def parse_full_response(data: Any, *, is_last: bool) -> Optional[ASRResult]:
    """
    Convert a decoded full-response payload into an ASRResult.

    Returns None when there is neither text nor a non-empty utterance list
    (keep-alives and empty acks produce no result).
    """
    if data is None:
        return None

    result = find_result(data)
    if result is None:
        return None

    text = extract_text(result)
    utterances = extract_utterances(result)

    if not text and not utterances:
        return None

    return ASRResult(
        text=text,
        is_partial=not is_last,
        utterances=utterances or None,
    )
