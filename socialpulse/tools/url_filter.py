from __future__ import annotations

import re

# Landing, listing and tag pages per platform. Anything not listed here is
# presumed to point at a specific item.
GENERIC_URL_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"^https?://(www\.)?reddit\.com/r/[^/]+/?$",  # subreddit root
        r"^https?://(www\.)?reddit\.com/?$",
        r"^https?://news\.ycombinator\.com/?$",
        r"^https?://(www\.)?stackoverflow\.com/?$",
        r"^https?://(www\.)?stackoverflow\.com/questions/tagged/",
        r"^https?://(www\.)?g2\.com/products/[^/]+/?$",  # product page, not a review
        r"^https?://(www\.)?g2\.com/?$",
        r"^https?://community\.[^/]+\.com/?$",
        r"^https?://(www\.)?twitter\.com/?$",
        r"^https?://(www\.)?x\.com/?$",
    )
)


def is_generic_url(url: str) -> bool:
    """Return True when the URL is a homepage, listing or tag-search page."""
    return any(pattern.search(url) for pattern in GENERIC_URL_PATTERNS)


def sanitize_source_url(url: object) -> str:
    """Keep an explicit http(s) URL to a specific item, otherwise return ``""``."""
    if not isinstance(url, str):
        return ""
    candidate = url.strip()
    if not candidate.startswith(("http://", "https://")):
        return ""
    if is_generic_url(candidate):
        return ""
    return candidate
