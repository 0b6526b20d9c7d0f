"""
Tests for attachment resolution and ingestion.
"""
import base64

import pytest

from aigateway.attachments import AttachmentIngestor, AttachmentResult, attachment_file_name
from aigateway.exceptions import AttachmentNotFound


@pytest.fixture
def dirs(tmp_path):
    public = tmp_path / "public" / "uploads"
    uploads = tmp_path / "uploads"
    public.mkdir(parents=True)
    uploads.mkdir()
    return public, uploads


class TestAttachmentIngestor:
    @pytest.mark.asyncio
    async def test_image_becomes_base64(self, dirs):
        public, uploads = dirs
        (uploads / "photo.PNG").write_bytes(b"\x89PNGdata")
        ingestor = AttachmentIngestor([public, uploads])

        result = await ingestor.resolve("https://cdn.example.com/uploads/photo.PNG?v=3")

        assert result.images == [base64.b64encode(b"\x89PNGdata").decode("ascii")]
        assert result.inlined_text == ""
        assert result.file_name == "photo.PNG"

    @pytest.mark.asyncio
    async def test_text_file_is_inlined(self, dirs):
        public, uploads = dirs
        (public / "notes.md").write_text("# Title\nbody", encoding="utf-8")
        ingestor = AttachmentIngestor([public, uploads])

        result = await ingestor.resolve("/uploads/notes.md")

        assert result.images == []
        assert result.inlined_text == "\n\n[Attached File Content: notes.md]\n# Title\nbody\n[/End File]"
        assert result.apply_to("summarize this") == f"summarize this{result.inlined_text}"

    @pytest.mark.asyncio
    async def test_first_matching_directory_wins(self, dirs):
        public, uploads = dirs
        (public / "a.txt").write_text("from public")
        (uploads / "a.txt").write_text("from uploads")

        result = await AttachmentIngestor([public, uploads]).resolve("a.txt")
        assert "from public" in result.inlined_text

    @pytest.mark.asyncio
    async def test_invalid_utf8_is_replaced(self, dirs):
        public, _ = dirs
        (public / "bad.txt").write_bytes(b"ok \xff\xfe end")
        result = await AttachmentIngestor([public]).resolve("bad.txt")
        assert "ok �� end" in result.inlined_text

    @pytest.mark.asyncio
    async def test_missing_file_gives_empty_result(self, dirs):
        result = await AttachmentIngestor(list(dirs)).resolve("https://x/uploads/nope.png")
        assert result.is_empty
        assert result.apply_to("msg") == "msg"

    @pytest.mark.asyncio
    async def test_unsupported_extension_is_ignored(self, dirs):
        public, _ = dirs
        (public / "archive.zip").write_bytes(b"PK")
        result = await AttachmentIngestor([public]).resolve("archive.zip")
        assert result.is_empty
        assert result.file_name == "archive.zip"

    @pytest.mark.asyncio
    async def test_oversize_file_is_skipped(self, dirs):
        public, _ = dirs
        (public / "big.txt").write_text("x" * 100)
        result = await AttachmentIngestor([public], max_bytes=10).resolve("big.txt")
        assert result.is_empty

    @pytest.mark.asyncio
    async def test_no_reference(self):
        assert (await AttachmentIngestor().resolve(None)).is_empty


class TestAttachmentFileName:
    def test_strips_query_and_fragment(self):
        assert attachment_file_name("https://h/uploads/pic.jpg?x=1#frag") == "pic.jpg"
        assert attachment_file_name("/uploads/doc.txt?download=1") == "doc.txt"

    @pytest.mark.parametrize("ref", ["", "https://h/uploads/", "..", "https://h/a/..", "..\\secret.txt"])
    def test_rejects_unusable_names(self, ref):
        with pytest.raises(AttachmentNotFound):
            attachment_file_name(ref)


def test_empty_result_defaults():
    result = AttachmentResult()
    assert result.images == []
    assert result.is_empty
