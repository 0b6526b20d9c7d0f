"""
GIF search types.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


class MediaType(str, Enum):
    GIFS = "gifs"
    STICKERS = "stickers"

    @classmethod
    def parse(cls, value: str | None) -> "MediaType":
        if value and value.lower() in ("sticker", "stickers"):
            return cls.STICKERS
        return cls.GIFS


@dataclass(frozen=True)
class GifQuery:
    query: str = ""
    limit: int = 20
    media_type: MediaType = MediaType.GIFS


@dataclass(frozen=True)
class MediaRendition:
    url: str
    width: str
    height: str

    def to_dict(self) -> Dict[str, str]:
        return {"url": self.url, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class GifItem:
    id: str
    title: str
    fixed_height: MediaRendition
    original: MediaRendition

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "images": {
                "fixed_height": self.fixed_height.to_dict(),
                "original": self.original.to_dict(),
            },
        }


def search_response(items: list[GifItem], msg: str) -> Dict[str, Any]:
    """Normalized payload handed back to callers: ``{data: [...], meta: {msg}}``."""
    return {"data": [item.to_dict() for item in items], "meta": {"msg": msg}}
