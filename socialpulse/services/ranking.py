"""Deterministic ordering and reply policy for ranked complaints.

The ranking prompt asks the model to sort complaints itself; this module
re-applies the same policy mechanically because the model output is not
trusted to follow it.

Order: severity first, then source tier inside each severity, then
engagement (higher first). Model order is kept for exact ties.
"""
from __future__ import annotations

import re
from typing import Any

from socialpulse.models.schemas import Complaint
from socialpulse.tools.url_filter import sanitize_source_url

SEVERITY_ORDER: dict[str, int] = {"Critical": 0, "High": 1, "Medium": 2, "Low": 3}
FUNNEL_STAGES = ("Awareness", "Consideration", "Decision")
DEFAULT_SEVERITY = "Medium"
DEFAULT_FUNNEL_STAGE = "Awareness"

# Tier 1: community forums with direct engagement signals.
# Tier 2: review/QA sites and social platforms.
# Tier 3: editorial and documentation content, and anything unrecognized.
SOURCE_TIERS: dict[str, int] = {
    "reddit": 1,
    "hackernews": 1,
    "hacker news": 1,
    "hn": 1,
    "forum": 1,
    "forums": 1,
    # Ranks with forums but is not in ACTIONABLE_PLATFORMS: vendor community
    # sites get no drafted reply unless the source names a listed platform.
    "community": 1,
    "stack overflow": 2,
    "stackoverflow": 2,
    "x/twitter": 2,
    "x": 2,
    "twitter": 2,
    "g2": 2,
    "g2 reviews": 2,
    "trustradius": 2,
    "quora": 2,
    "blog": 3,
    "news": 3,
    "case study": 3,
    "documentation": 3,
}
LOWEST_TIER = 3

# Closed allowlist: only these sources get a drafted public reply.
ACTIONABLE_PLATFORMS = frozenset(
    {
        "reddit",
        "hackernews",
        "hacker news",
        "hn",
        "stack overflow",
        "stackoverflow",
        "x/twitter",
        "x",
        "twitter",
        "g2",
        "g2 reviews",
        "trustradius",
        "quora",
        "forum",
        "forums",
    }
)

_NUMBER = re.compile(r"(\d[\d,]*(?:\.\d+)?)(?:\s?([kKmM])\b)?")


def _source_key(source: str) -> str:
    return " ".join(source.strip().lower().split())


def is_actionable(source: str) -> bool:
    return _source_key(source) in ACTIONABLE_PLATFORMS


def source_tier(source: str) -> int:
    key = _source_key(source)
    if key in SOURCE_TIERS:
        return SOURCE_TIERS[key]
    # "r/dataengineering", "Reddit (r/analytics)" and similar.
    if key.startswith("r/") or key.startswith("reddit"):
        return 1
    return LOWEST_TIER


def normalize_severity(value: Any) -> str:
    label = str(value or "").strip().capitalize()
    return label if label in SEVERITY_ORDER else DEFAULT_SEVERITY


def normalize_funnel_stage(value: Any) -> str:
    label = str(value or "").strip().capitalize()
    return label if label in FUNNEL_STAGES else DEFAULT_FUNNEL_STAGE


def engagement_magnitude(engagement: Any) -> float:
    """Largest number found in a free-text engagement hint ("1.2k upvotes")."""
    if isinstance(engagement, (int, float)) and not isinstance(engagement, bool):
        return float(engagement)
    if not isinstance(engagement, str):
        return 0.0
    best = 0.0
    for digits, suffix in _NUMBER.findall(engagement):
        value = float(digits.replace(",", ""))
        if suffix.lower() == "k":
            value *= 1_000
        elif suffix.lower() == "m":
            value *= 1_000_000
        best = max(best, value)
    return best


def rank_key(item: dict[str, Any]) -> tuple[int, int, float]:
    return (
        SEVERITY_ORDER[normalize_severity(item.get("severity"))],
        source_tier(str(item.get("source") or "")),
        -engagement_magnitude(item.get("engagement")),
    )


def rank_complaints(raw_items: Any) -> list[Complaint]:
    """Sanitize, sort and number complaint records from model output.

    Non-dict items are dropped. ``sourceUrl`` goes through the URL filter and
    ``draftReply`` is cleared for non-actionable sources.
    """
    if not isinstance(raw_items, list):
        return []
    items = [item for item in raw_items if isinstance(item, dict)]
    ordered = sorted(items, key=rank_key)

    complaints: list[Complaint] = []
    for position, item in enumerate(ordered, start=1):
        source = str(item.get("source") or "").strip()
        reply = str(item.get("draftReply") or "").strip()
        complaints.append(
            Complaint(
                id=position,
                text=str(item.get("text") or "").strip(),
                source=source,
                source_url=sanitize_source_url(item.get("sourceUrl")),
                severity=normalize_severity(item.get("severity")),
                funnel_stage=normalize_funnel_stage(item.get("funnelStage")),
                draft_reply=reply if is_actionable(source) else "",
            )
        )
    return complaints
