"""Prompt templates kept in ``prompts/prompts.json``.

The catalog nests templates by stage; they are addressed with dotted keys
such as ``complaints.with_research`` and rendered with ``string.Template``.
"""
from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from string import Template
from typing import Any

from socialpulse.config import settings

PROMPTS_PATH = Path(__file__).resolve().parents[1] / "prompts" / "prompts.json"


def _flatten(node: dict[str, Any], prefix: str = "") -> dict[str, str]:
    flat: dict[str, str] = {}
    for name, value in node.items():
        key = f"{prefix}{name}"
        if isinstance(value, dict):
            flat.update(_flatten(value, f"{key}."))
        elif isinstance(value, str):
            flat[key] = value
        else:
            raise TypeError(f"Prompt key must map to a string: {key}")
    return flat


@lru_cache(maxsize=1)
def _templates() -> dict[str, Template]:
    payload = json.loads(PROMPTS_PATH.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError("Prompt catalog must be a JSON object.")
    return {key: Template(text) for key, text in _flatten(payload).items()}


def _template(key: str) -> Template:
    try:
        return _templates()[key]
    except KeyError:
        raise KeyError(f"Prompt key not found: {key}") from None


def prompt_keys() -> list[str]:
    return sorted(_templates())


def render_prompt(key: str, **values: Any) -> str:
    """Render a catalog template.

    ``$brand`` and ``$suffix`` (the JSON-only reminder) are filled in unless
    the caller passes them explicitly.
    """
    template = _template(key)
    values.setdefault("brand", settings.brand_name)
    values.setdefault("suffix", _template("system.json_suffix").template)
    try:
        return template.substitute(values)
    except KeyError as exc:
        raise KeyError(f"Missing template value '{exc.args[0]}' for prompt '{key}'") from exc


def json_only_system_prompt() -> str:
    return _template("system.json_only").template


def clear_prompt_cache() -> None:
    _templates.cache_clear()
