"""
Tenor GIF API: endpoint construction, response normalization and HTTP sources.
[CA][CMV][IV]
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

import httpx

from aigateway.exceptions import BackendProtocolError
from aigateway.utils.logging import get_logger
from .types import GifItem, GifQuery, MediaRendition, MediaType, search_response

logger = get_logger(__name__)

TENOR_MSG = "Powered by Tenor"
USER_AGENT = "Mozilla/5.0"


def build_endpoint(params: GifQuery, api_key: str, base_url: str = "https://tenor.googleapis.com/v2") -> str:
    """``search`` when a query is given, ``featured`` otherwise."""
    query: Dict[str, Any] = {}
    if params.query:
        path = "search"
        query["q"] = params.query
    else:
        path = "featured"
    query.update({"key": api_key, "limit": params.limit or 20, "media_filter": "gif"})
    if params.media_type is MediaType.STICKERS:
        query["searchfilter"] = "sticker"
    return f"{base_url.rstrip('/')}/{path}?{urlencode(query, quote_via=quote)}"


def proxied_url(template: str, endpoint: str) -> str:
    """Fill a proxy template. ``{url}`` inserts the endpoint raw, ``{quoted_url}`` percent-encoded."""
    return template.format(url=endpoint, quoted_url=quote(endpoint, safe=""))


def is_usable_template(template: str) -> bool:
    """False when the template has placeholders other than ``{url}`` and ``{quoted_url}``."""
    try:
        proxied_url(template, "https://tenor.googleapis.com/v2/featured")
    except (AttributeError, IndexError, KeyError, ValueError):
        return False
    return True


def convert_tenor_data(tenor_data: Dict[str, Any]) -> Dict[str, Any]:
    items: List[GifItem] = []
    for result in tenor_data.get("results") or []:
        formats = result.get("media_formats") or {}
        gif_url = (formats.get("gif") or {}).get("url") or ""
        tiny_url = (formats.get("tinygif") or {}).get("url") or ""
        items.append(
            GifItem(
                id=str(result.get("id", "")),
                title=result.get("content_description") or "GIF",
                fixed_height=MediaRendition(gif_url or tiny_url, "200", "200"),
                original=MediaRendition(gif_url, "400", "400"),
            )
        )
    return search_response(items, TENOR_MSG)


class TenorSource:
    """One HTTP route to the Tenor API (direct or through a proxy)."""

    def __init__(self, name: str, url: str, client: httpx.AsyncClient, timeout_s: float):
        self.name = name
        self.url = url
        self.client = client
        self.timeout_s = timeout_s

    async def fetch(self) -> Optional[Dict[str, Any]]:
        """
        Return the normalized payload, or None when the reply has no results.

        Raises:
            httpx.HTTPError: transport failure.
            BackendProtocolError: non-2xx status or a body that is not JSON.
        """
        response = await self.client.get(
            self.url,
            headers={"User-Agent": USER_AGENT},
            timeout=self.timeout_s,
            follow_redirects=True,
        )
        if not response.is_success:
            raise BackendProtocolError(f"{self.name} returned HTTP {response.status_code}", status=response.status_code)
        try:
            data = response.json()
        except ValueError as e:
            raise BackendProtocolError(f"{self.name} returned invalid JSON") from e

        if not isinstance(data, dict) or not data.get("results"):
            return None

        logger.info(f"✅ {self.name} success: {len(data['results'])} GIFs")
        return convert_tenor_data(data)
