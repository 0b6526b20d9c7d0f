"""
Local emoji placeholders returned when every remote GIF source failed.
"""
from __future__ import annotations

from typing import Any, Dict
from urllib.parse import quote

from .types import GifItem, MediaRendition, search_response

DICEBEAR_URL = "https://api.dicebear.com/7.x/fun-emoji/svg?seed={seed}&backgroundColor=transparent"
FALLBACK_MSG = "Local Fallback Emojis"


def generate_fallback(query: str = "", count: int = 20) -> Dict[str, Any]:
    """Deterministic set of ``count`` (at least one) fun-emoji SVGs seeded by the query."""
    seed_base = quote(query or "happy", safe="-_.!~*'()")
    items = []
    for i in range(max(count, 1)):
        rendition = MediaRendition(DICEBEAR_URL.format(seed=f"{seed_base}-{i}"), "100", "100")
        items.append(GifItem(id=f"fallback-{i}", title=f"Fun Emoji {i + 1}", fixed_height=rendition, original=rendition))
    return search_response(items, FALLBACK_MSG)
