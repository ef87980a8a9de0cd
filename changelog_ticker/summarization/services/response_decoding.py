"""
Decoding of model responses that are expected, but not guaranteed, to be JSON.

Every stage decodes through the same chain: strict parse, then repair and
reparse, then bullet-line scraping. Total failure yields an empty result
rather than an error.
"""

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from langchain_core.utils.json import parse_json_markdown

_BULLET_LINE = re.compile(r"^[-*•]\s?")


class DecodeMethod(str, Enum):
    """Which step of the decode chain produced the result."""

    STRICT = "strict"
    REPAIRED = "repaired"
    BULLETS = "bullets"
    EMPTY = "empty"


@dataclass(frozen=True)
class DecodedResponse:
    """Outcome of decoding one model response."""

    method: DecodeMethod
    payload: dict[str, Any] | list[Any] | None = None
    lines: tuple[str, ...] = ()

    @property
    def is_json(self) -> bool:
        return self.method in (DecodeMethod.STRICT, DecodeMethod.REPAIRED)

    def get(self, key: str) -> Any:
        """Value of a top-level key when the payload is a JSON object."""
        if isinstance(self.payload, dict):
            return self.payload.get(key)
        return None


def extract_bullet_lines(text: str) -> list[str]:
    """
    Scrape lines that start with a bullet marker (``-``, ``*`` or ``•``).

    Args:
        text: Free-form model output

    Returns:
        Bullet texts without their marker, in order
    """
    bullets: list[str] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not _BULLET_LINE.match(stripped):
            continue
        content = _BULLET_LINE.sub("", stripped, count=1).strip()
        if content:
            bullets.append(content)
    return bullets


def _is_container(value: Any) -> bool:
    return isinstance(value, (dict, list))


def _is_item_list(value: Any) -> bool:
    """Non-empty list of objects or strings, as the model answers with."""
    return (
        isinstance(value, list)
        and bool(value)
        and all(isinstance(item, (dict, str)) for item in value)
    )


def _repair(text: str) -> dict[str, Any] | list[Any] | None:
    """Parse fenced, truncated or prose-wrapped JSON."""
    candidates = [text]
    slices: list[tuple[int, str]] = []
    for opener, closer in (("{", "}"), ("[", "]")):
        start, end = text.find(opener), text.rfind(closer)
        if 0 <= start < end:
            slices.append((start, text[start : end + 1]))
    candidates.extend(candidate for _, candidate in sorted(slices))

    for candidate in candidates:
        try:
            parsed = parse_json_markdown(candidate)
        except ValueError:
            continue
        if isinstance(parsed, dict) or _is_item_list(parsed):
            return parsed
    return None


def decode_json(raw: str | None) -> DecodedResponse:
    """
    Decode a response with strict and repaired JSON parsing only.

    Args:
        raw: Model output, possibly None

    Returns:
        DecodedResponse whose method is STRICT, REPAIRED or EMPTY
    """
    if not raw or not raw.strip():
        return DecodedResponse(method=DecodeMethod.EMPTY)

    try:
        parsed = json.loads(raw)
    except ValueError:
        parsed = None
    if _is_container(parsed):
        return DecodedResponse(method=DecodeMethod.STRICT, payload=parsed)

    repaired = _repair(raw.strip())
    if repaired is not None:
        return DecodedResponse(method=DecodeMethod.REPAIRED, payload=repaired)

    return DecodedResponse(method=DecodeMethod.EMPTY)


def decode_model_response(raw: str | None) -> DecodedResponse:
    """
    Decode a response through the full chain, including bullet scraping.

    Args:
        raw: Model output, possibly None

    Returns:
        DecodedResponse. ``lines`` holds scraped bullets when JSON decoding failed
    """
    decoded = decode_json(raw)
    if decoded.is_json or not raw:
        return decoded

    lines = extract_bullet_lines(raw)
    if lines:
        return DecodedResponse(method=DecodeMethod.BULLETS, lines=tuple(lines))
    return DecodedResponse(method=DecodeMethod.EMPTY)
