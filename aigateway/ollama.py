"""
Ollama API integration for the AI gateway.
"""
import asyncio
from typing import Any, Dict, List, Optional

import aiohttp

from .exceptions import BackendProtocolError, BackendUnavailable, ProbeTimeout
from .utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CHAT_TIMEOUT = 300.0
DEFAULT_PROBE_TIMEOUT = 2.0


class OllamaClient:
    """Client for interacting with the Ollama API."""

    def __init__(self, base_url: str = "http://localhost:11434", api_key: Optional[str] = None):
        """Initialize the Ollama client."""
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.session: Optional[aiohttp.ClientSession] = None
        self.headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.api_key:
            self.headers["Authorization"] = f"Bearer {self.api_key}"

    async def ensure_session(self) -> None:
        """Ensure we have an active aiohttp session."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(headers=self.headers)

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self.session and not self.session.closed:
            await self.session.close()

    async def list_models(self, timeout: float = DEFAULT_PROBE_TIMEOUT) -> List[str]:
        """
        Fetch installed model names from ``GET /api/tags``.

        Raises:
            ProbeTimeout: no reply within ``timeout`` seconds.
            BackendUnavailable: connection refused or dropped.
            BackendProtocolError: non-200 status or malformed JSON.
        """
        data = await self._request_json("GET", "/api/tags", timeout=timeout)
        models = data.get("models")
        if not isinstance(models, list):
            raise BackendProtocolError("Missing 'models' list in /api/tags reply")
        return [m["name"] for m in models if isinstance(m, dict) and m.get("name")]

    async def chat(self, payload: Dict[str, Any], timeout: float = DEFAULT_CHAT_TIMEOUT) -> Dict[str, Any]:
        """
        Send a non-streaming chat request to ``POST /api/chat``.

        Args:
            payload: ``{model, messages, stream: False, options: {...}}``
            timeout: Total request deadline in seconds.

        Returns:
            The decoded JSON reply.
        """
        return await self._request_json("POST", "/api/chat", timeout=timeout, json_body=payload)

    async def _request_json(
        self,
        method: str,
        path: str,
        *,
        timeout: float,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        await self.ensure_session()
        url = f"{self.base_url}{path}"
        client_timeout = aiohttp.ClientTimeout(total=timeout)

        try:
            async with self.session.request(method, url, json=json_body, timeout=client_timeout) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise BackendProtocolError(
                        f"API request failed with status {response.status}: {error_text[:200]}",
                        status=response.status,
                    )
                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise BackendProtocolError(f"Invalid JSON from {path}: {e}", status=response.status) from e
        except asyncio.TimeoutError as e:
            raise ProbeTimeout(f"{method} {path} timed out after {timeout}s") from e
        except aiohttp.ClientConnectionError as e:
            raise BackendUnavailable(f"Cannot reach Ollama at {self.base_url}: {e}") from e
        except aiohttp.ClientError as e:
            raise BackendProtocolError(f"Network error: {e}") from e

        if not isinstance(data, dict):
            raise BackendProtocolError(f"Unexpected reply type from {path}: {type(data).__name__}")
        return data
