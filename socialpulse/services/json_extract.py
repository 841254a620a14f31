"""Recover a JSON value from model text that was asked to be JSON-only.

Models wrap answers in markdown fences or add a sentence of prose around the
payload often enough that a plain ``json.loads`` is not sufficient. The
extractor only widens the window it parses; it never rewrites the text.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

from socialpulse.errors import ParseFailure

_LEADING_FENCE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"\s*```$")


@dataclass(frozen=True)
class ExtractionResult:
    """Either a parsed value or the failure that prevented one."""

    value: Any = None
    error: ParseFailure | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value


def strip_fences(text: str) -> str:
    cleaned = text.strip()
    cleaned = _LEADING_FENCE.sub("", cleaned, count=1)
    cleaned = _TRAILING_FENCE.sub("", cleaned, count=1)
    return cleaned.strip()


def _json_span(text: str) -> str | None:
    # Greedy: first opening bracket to last closing bracket, not nesting-aware.
    starts = [i for i in (text.find("{"), text.find("[")) if i >= 0]
    if not starts:
        return None
    start = min(starts)
    end = max(text.rfind("}"), text.rfind("]"))
    if end <= start:
        return None
    return text[start : end + 1]


def extract_json(raw_text: str) -> ExtractionResult:
    cleaned = strip_fences(raw_text)
    try:
        return ExtractionResult(value=json.loads(cleaned))
    except json.JSONDecodeError as exc:
        last_error = exc

    span = _json_span(cleaned)
    if span is not None and span != cleaned:
        try:
            return ExtractionResult(value=json.loads(span))
        except json.JSONDecodeError as exc:
            last_error = exc

    return ExtractionResult(error=ParseFailure(raw_text, last_error))


def parse_json(raw_text: str) -> Any:
    """Like :func:`extract_json` but raises :class:`ParseFailure`."""
    return extract_json(raw_text).unwrap()


def parse_json_fields(raw_text: str) -> dict[str, Any]:
    """Parse a payload whose fields are read by name.

    Valid JSON that is not an object (a bare array, a string) has no named
    fields and reads as ``{}``, so callers fall back to their defaults.
    Unparseable text still raises :class:`ParseFailure`.
    """
    value = parse_json(raw_text)
    return value if isinstance(value, dict) else {}
