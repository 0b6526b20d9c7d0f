"""
GIF search with an ordered source fallback chain.

Direct Tenor -> each configured proxy -> local emoji placeholders. Every remote
source runs under its own deadline; the local generator cannot fail, so search()
always returns a non-empty ``data`` list.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlsplit

import httpx

from aigateway.config import DEFAULT_GIF_PROXY_TEMPLATES, load_config
from aigateway.fallback_chain import ChainResult, FallbackSource, run_fallback_chain
from aigateway.utils.logging import get_logger
from .local import generate_fallback
from .tenor import TenorSource, build_endpoint, is_usable_template, proxied_url
from .types import GifQuery, MediaType

logger = get_logger(__name__)


class GifFallbackChain:
    """Media search that degrades through proxies to a local result."""

    def __init__(
        self,
        api_key: str = "",
        base_url: str = "https://tenor.googleapis.com/v2",
        *,
        client: Optional[httpx.AsyncClient] = None,
        direct_timeout_s: float = 3.0,
        proxy_timeout_s: float = 4.0,
        proxy_templates: Sequence[str] = tuple(DEFAULT_GIF_PROXY_TEMPLATES),
        fallback_count: int = 20,
        default_limit: int = 20,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.direct_timeout_s = direct_timeout_s
        self.proxy_timeout_s = proxy_timeout_s
        self.proxy_templates: List[str] = []
        for template in proxy_templates:
            if is_usable_template(template):
                self.proxy_templates.append(template)
            else:
                logger.warning(f"⚠️ Ignoring malformed GIF proxy template: {template!r}")
        if fallback_count < 1:
            logger.warning(f"⚠️ GIF fallback count {fallback_count} raised to 1")
            fallback_count = 1
        self.fallback_count = fallback_count
        self.default_limit = default_limit
        self._client = client
        self._owns_client = client is None
        self.last_result: Optional[ChainResult[Dict[str, Any]]] = None

        if not api_key:
            logger.warning("⚠️ TENOR_API_KEY not set - remote GIF sources will likely fail")

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=None)
        return self._client

    def build_sources(self, params: GifQuery) -> List[FallbackSource[Optional[Dict[str, Any]]]]:
        client = self._get_client()
        endpoint = build_endpoint(params, self.api_key, self.base_url)

        routes = [TenorSource("tenor-direct", endpoint, client, self.direct_timeout_s)]
        for template in self.proxy_templates:
            host = urlsplit(template).hostname or template
            routes.append(TenorSource(f"proxy:{host}", proxied_url(template, endpoint), client, self.proxy_timeout_s))

        return [FallbackSource(route.name, route.fetch, route.timeout_s) for route in routes]

    async def search(self, query: str = "", limit: Optional[int] = None, media_type: str = "gifs") -> Dict[str, Any]:
        """Return ``{data: [...], meta: {msg}}``. Never raises and never returns empty data."""
        params = GifQuery(query=(query or "").strip(), limit=limit or self.default_limit, media_type=MediaType.parse(media_type))
        logger.info(f"🎬 GIF search: {params.query or 'Featured'}", extra={"subsys": "gif", "event": "gif.search"})

        result = await run_fallback_chain(
            self.build_sources(params),
            terminal=lambda: generate_fallback(params.query, self.fallback_count),
            label="gif",
        )
        self.last_result = result
        return result.value

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


def create_gif_chain(config: Optional[Dict[str, Any]] = None, client: Optional[httpx.AsyncClient] = None) -> GifFallbackChain:
    config = config or load_config()
    return GifFallbackChain(
        api_key=config["TENOR_API_KEY"],
        base_url=config["TENOR_BASE_URL"],
        client=client,
        direct_timeout_s=config["GIF_DIRECT_TIMEOUT_MS"] / 1000,
        proxy_timeout_s=config["GIF_PROXY_TIMEOUT_MS"] / 1000,
        proxy_templates=config["GIF_PROXY_TEMPLATES"],
        fallback_count=config["GIF_FALLBACK_COUNT"],
        default_limit=config["GIF_DEFAULT_LIMIT"],
    )
