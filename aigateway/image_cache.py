"""
Content-addressed local cache for generated images.

Images are keyed by md5(raw prompt) and stored as ``<hash>.jpg``. Files are written
to a temporary ``.part`` name in the same directory and atomically renamed, so a
reader never sees a half-written image. Concurrent misses for one key share a
single download.
"""
from __future__ import annotations

import asyncio
import hashlib
import os
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Dict, Union

from .exceptions import CacheWriteFailure, DownloadFailure
from .http_download import download_to_file
from .utils.logging import get_logger

logger = get_logger(__name__)

FetchToFile = Callable[[str, Path, float], Awaitable[int]]


@dataclass(frozen=True)
class CachedImage:
    content_hash: str
    local_path: Path
    source_url: str
    public_url: str
    from_cache: bool = False


def content_hash(cache_key_source: str) -> str:
    return hashlib.md5(cache_key_source.encode("utf-8")).hexdigest()


class ImageCache:
    """Write-once, never-evicted image store addressed by prompt hash."""

    def __init__(
        self,
        cache_dir: Union[str, Path] = "public/uploads/ai-images",
        public_prefix: str = "/uploads/ai-images",
        fetch: FetchToFile = download_to_file,
        timeout_s: float = 120.0,
    ):
        self.cache_dir = Path(cache_dir)
        self.public_prefix = public_prefix.rstrip("/")
        self._fetch = fetch
        self.timeout_s = timeout_s
        self._pending: Dict[str, asyncio.Task] = {}
        self._lock = asyncio.Lock()

    def ensure_dir(self) -> Path:
        """Create the cache directory if needed (startup hook)."""
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheWriteFailure(f"Cannot create cache dir {self.cache_dir}: {e}") from e
        return self.cache_dir

    def _entry(self, key: str, remote_url: str, from_cache: bool) -> CachedImage:
        filename = f"{key}.jpg"
        return CachedImage(
            content_hash=key,
            local_path=self.cache_dir / filename,
            source_url=remote_url,
            public_url=f"{self.public_prefix}/{filename}",
            from_cache=from_cache,
        )

    async def fetch_or_create(self, remote_url: str, cache_key_source: str) -> CachedImage:
        """
        Return the cached image for ``cache_key_source``, downloading it on a miss.

        Raises:
            DownloadFailure: the remote fetch failed.
            CacheWriteFailure: the file could not be written or renamed.
        """
        key = content_hash(cache_key_source)
        final_path = self.cache_dir / f"{key}.jpg"

        if final_path.exists():
            logger.info(f"✅ Image already cached: {final_path.name}")
            return self._entry(key, remote_url, from_cache=True)

        async with self._lock:
            if final_path.exists():
                return self._entry(key, remote_url, from_cache=True)
            task = self._pending.get(key)
            if task is None or task.done():
                task = asyncio.create_task(self._download(key, remote_url, final_path))
                self._pending[key] = task
                task.add_done_callback(lambda t, k=key: self._forget(k, t))
            else:
                logger.debug(f"⏳ Joining in-flight download for {key}")

        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]

    async def _download(self, key: str, remote_url: str, final_path: Path) -> CachedImage:
        self.ensure_dir()
        tmp_path = self.cache_dir / f"{key}.jpg.{secrets.token_hex(4)}.part"
        logger.info(f"📥 Downloading AI image: {remote_url[:100]}...")

        try:
            try:
                await self._fetch(remote_url, tmp_path, self.timeout_s)
            except (DownloadFailure, CacheWriteFailure):
                raise
            except OSError as e:
                raise CacheWriteFailure(f"Cannot write {tmp_path.name}: {e}") from e

            try:
                os.replace(tmp_path, final_path)
            except OSError as e:
                raise CacheWriteFailure(f"Cannot finalize {final_path.name}: {e}") from e
        except Exception as e:
            logger.error(
                f"❌ Failed to cache AI image: {e}",
                extra={"subsys": "image", "event": "image.cache.fail", "detail": {"hash": key}},
            )
            raise
        finally:
            if tmp_path.exists():
                tmp_path.unlink()

        logger.info(
            f"✅ AI image cached: {final_path.name}",
            extra={"subsys": "image", "event": "image.cache.write", "detail": {"hash": key}},
        )
        return self._entry(key, remote_url, from_cache=False)
