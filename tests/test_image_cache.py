"""
Tests for the content-addressed image cache.
"""
import asyncio
import hashlib

import pytest

from aigateway.exceptions import CacheWriteFailure, DownloadFailure
from aigateway.image_cache import ImageCache


class FakeFetcher:
    """Writes fixed bytes to the destination, optionally slowly or failing midway."""

    def __init__(self, body=b"\xff\xd8jpegdata", delay=0.0, error=None, partial=False):
        self.body = body
        self.delay = delay
        self.error = error
        self.partial = partial
        self.calls = []

    async def __call__(self, url, dest, timeout_s):
        self.calls.append((url, dest, timeout_s))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.partial:
            dest.write_bytes(self.body[:2])
        if self.error is not None:
            raise self.error
        dest.write_bytes(self.body)
        return len(self.body)


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "ai-images"


class TestImageCache:
    @pytest.mark.asyncio
    async def test_miss_downloads_and_names_by_md5(self, cache_dir):
        fetch = FakeFetcher()
        cache = ImageCache(cache_dir, "/uploads/ai-images", fetch=fetch)

        image = await cache.fetch_or_create("https://render/x", "a cat")

        digest = hashlib.md5(b"a cat").hexdigest()
        assert image.content_hash == digest
        assert image.local_path == cache_dir / f"{digest}.jpg"
        assert image.public_url == f"/uploads/ai-images/{digest}.jpg"
        assert image.source_url == "https://render/x"
        assert image.local_path.read_bytes() == fetch.body
        assert not image.from_cache

    @pytest.mark.asyncio
    async def test_hit_makes_no_network_call(self, cache_dir):
        fetch = FakeFetcher()
        cache = ImageCache(cache_dir, fetch=fetch)
        first = await cache.fetch_or_create("https://render/x", "a cat")

        again = await cache.fetch_or_create("https://render/other-seed", "a cat")
        assert again.from_cache
        assert again.local_path == first.local_path
        assert len(fetch.calls) == 1

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_one_download(self, cache_dir):
        fetch = FakeFetcher(delay=0.05)
        cache = ImageCache(cache_dir, fetch=fetch)

        results = await asyncio.gather(*(cache.fetch_or_create("https://render/x", "a dog") for _ in range(5)))

        assert len(fetch.calls) == 1
        assert len({r.local_path for r in results}) == 1

    @pytest.mark.asyncio
    async def test_download_goes_through_part_file_in_same_dir(self, cache_dir):
        fetch = FakeFetcher()
        cache = ImageCache(cache_dir, fetch=fetch)
        image = await cache.fetch_or_create("https://render/x", "a bird")

        _, dest, _ = fetch.calls[0]
        assert dest.parent == cache_dir
        assert dest.name.startswith(f"{image.content_hash}.jpg.")
        assert dest.name.endswith(".part")
        assert list(cache_dir.glob("*.part")) == []

    @pytest.mark.asyncio
    async def test_failed_download_leaves_no_files(self, cache_dir):
        fetch = FakeFetcher(error=DownloadFailure("Failed to download: 500"), partial=True)
        cache = ImageCache(cache_dir, fetch=fetch)

        with pytest.raises(DownloadFailure):
            await cache.fetch_or_create("https://render/x", "a fish")
        assert list(cache_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_write_error_becomes_cache_write_failure(self, cache_dir):
        fetch = FakeFetcher(error=PermissionError("read-only filesystem"))
        cache = ImageCache(cache_dir, fetch=fetch)

        with pytest.raises(CacheWriteFailure):
            await cache.fetch_or_create("https://render/x", "a frog")

    @pytest.mark.asyncio
    async def test_failure_is_not_cached(self, cache_dir):
        fetch = FakeFetcher(error=DownloadFailure("boom"))
        cache = ImageCache(cache_dir, fetch=fetch)
        with pytest.raises(DownloadFailure):
            await cache.fetch_or_create("https://render/x", "a cow")

        fetch.error = None
        image = await cache.fetch_or_create("https://render/x", "a cow")
        assert image.local_path.exists()
        assert len(fetch.calls) == 2

    def test_ensure_dir(self, cache_dir):
        cache = ImageCache(cache_dir / "nested")
        assert cache.ensure_dir().is_dir()
