"""
Tests for the streaming fetch-to-file primitive.
"""
import pytest
import pytest_asyncio
from aiohttp import test_utils, web

from aigateway.exceptions import DownloadFailure
from aigateway.http_download import download_to_file


@pytest_asyncio.fixture
async def server():
    async def image(_request):
        return web.Response(body=b"\xff\xd8" + b"x" * 200_000, content_type="image/jpeg")

    async def broken(_request):
        return web.Response(status=502, text="bad gateway")

    async def empty(_request):
        return web.Response(body=b"", content_type="image/jpeg")

    app = web.Application()
    app.add_routes([web.get("/img", image), web.get("/broken", broken), web.get("/empty", empty)])
    srv = test_utils.TestServer(app)
    await srv.start_server()
    yield srv
    await srv.close()


class TestDownloadToFile:
    @pytest.mark.asyncio
    async def test_streams_body_to_disk(self, server, tmp_path):
        dest = tmp_path / "out.jpg.part"
        written = await download_to_file(str(server.make_url("/img")), dest, timeout_s=5)
        assert written == 200_002
        assert dest.read_bytes().startswith(b"\xff\xd8")

    @pytest.mark.asyncio
    async def test_non_200_raises(self, server, tmp_path):
        with pytest.raises(DownloadFailure, match="502"):
            await download_to_file(str(server.make_url("/broken")), tmp_path / "x.part", timeout_s=5)

    @pytest.mark.asyncio
    async def test_empty_body_raises(self, server, tmp_path):
        with pytest.raises(DownloadFailure):
            await download_to_file(str(server.make_url("/empty")), tmp_path / "x.part", timeout_s=5)
