"""
Streaming download of a remote resource straight to a local file.
"""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import aiofiles
import aiohttp

from .exceptions import DownloadFailure
from .utils.logging import get_logger

logger = get_logger(__name__)

CHUNK_SIZE = 64 * 1024
USER_AGENT = "Mozilla/5.0 (compatible; aigateway/1.0)"


async def download_to_file(
    url: str,
    dest: Path,
    timeout_s: float = 120.0,
    session: Optional[aiohttp.ClientSession] = None,
) -> int:
    """
    Stream ``url`` into ``dest`` and return the number of bytes written.

    The caller owns ``dest``; on failure it may hold partial content and must be
    cleaned up by the caller.

    Raises:
        DownloadFailure: non-200 status, timeout, or transport error.
    """
    own_session = session is None
    if own_session:
        session = aiohttp.ClientSession(headers={"User-Agent": USER_AGENT})

    written = 0
    try:
        timeout = aiohttp.ClientTimeout(total=timeout_s)
        async with session.get(url, timeout=timeout) as response:
            if response.status != 200:
                raise DownloadFailure(f"Failed to download: {response.status}")
            async with aiofiles.open(dest, "wb") as f:
                async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                    await f.write(chunk)
                    written += len(chunk)
    except asyncio.TimeoutError as e:
        raise DownloadFailure(f"Download timed out after {timeout_s}s") from e
    except aiohttp.ClientError as e:
        raise DownloadFailure(f"Download error: {e}") from e
    finally:
        if own_session:
            await session.close()

    if written == 0:
        raise DownloadFailure("Downloaded body was empty")

    logger.debug(f"📥 Downloaded {written} bytes to {dest.name}")
    return written
