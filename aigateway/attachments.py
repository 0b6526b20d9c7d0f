"""
Attachment ingestion: resolve a reference to a local file and turn it into model input.
"""
from __future__ import annotations

import base64
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Union
from urllib.parse import urlsplit

import aiofiles

from .exceptions import AttachmentNotFound
from .utils.logging import get_logger

logger = get_logger(__name__)

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp"})
TEXT_EXTENSIONS = frozenset({".txt", ".md", ".js", ".json", ".html", ".css", ".py"})
DEFAULT_SEARCH_DIRS = ("public/uploads", "uploads", ".")


@dataclass
class AttachmentResult:
    images: List[str] = field(default_factory=list)
    inlined_text: str = ""
    file_name: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.images and not self.inlined_text

    def apply_to(self, message: str) -> str:
        return f"{message}{self.inlined_text}" if self.inlined_text else message


def attachment_file_name(attachment_ref: str) -> str:
    """Last path segment of ``attachment_ref`` without query or fragment."""
    path = urlsplit(attachment_ref).path if "://" in attachment_ref else attachment_ref.split("?")[0].split("#")[0]
    name = path.split("/")[-1]
    if not name or name in (".", "..") or "\\" in name or ".." in name:
        raise AttachmentNotFound(f"Unusable attachment name in {attachment_ref!r}")
    return name


class AttachmentIngestor:
    """Finds an uploaded file in the candidate directories and reads it."""

    def __init__(
        self,
        search_dirs: Sequence[Union[str, Path]] = DEFAULT_SEARCH_DIRS,
        max_bytes: Optional[int] = 10 * 1024 * 1024,
    ):
        self.search_dirs = [Path(d) for d in search_dirs]
        self.max_bytes = max_bytes

    def locate(self, file_name: str) -> Path:
        for directory in self.search_dirs:
            candidate = directory / file_name
            if candidate.is_file():
                return candidate
        raise AttachmentNotFound(f"Attachment file not found: {file_name}")

    async def resolve(self, attachment_ref: Optional[str]) -> AttachmentResult:
        """Return images/inlined text for ``attachment_ref``; failures yield an empty result."""
        if not attachment_ref:
            return AttachmentResult()

        try:
            file_name = attachment_file_name(attachment_ref)
            path = self.locate(file_name)
        except AttachmentNotFound as e:
            logger.warning(f"⚠️ {e}", extra={"subsys": "attachments", "event": "attachment.missing"})
            return AttachmentResult()

        ext = path.suffix.lower()
        if ext not in IMAGE_EXTENSIONS and ext not in TEXT_EXTENSIONS:
            logger.info(f"ℹ️ Ignoring unsupported attachment type: {file_name}")
            return AttachmentResult(file_name=file_name)

        try:
            size = path.stat().st_size
            if self.max_bytes is not None and size > self.max_bytes:
                logger.warning(f"⚠️ Attachment {file_name} too large ({size} bytes), skipping")
                return AttachmentResult(file_name=file_name)

            async with aiofiles.open(path, "rb") as f:
                data = await f.read()
        except OSError as e:
            logger.error(
                f"❌ Error processing attachment: {e}",
                extra={"subsys": "attachments", "event": "attachment.read_fail"},
            )
            return AttachmentResult(file_name=file_name)

        if ext in IMAGE_EXTENSIONS:
            logger.info(f"🖼️ Processed image attachment: {file_name}")
            return AttachmentResult(images=[base64.b64encode(data).decode("ascii")], file_name=file_name)

        content = data.decode("utf-8", errors="replace")
        logger.info(f"📄 Processed text attachment: {file_name}")
        return AttachmentResult(
            inlined_text=f"\n\n[Attached File Content: {file_name}]\n{content}\n[/End File]",
            file_name=file_name,
        )
