from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Sequence

MediaKind = Literal["image", "video"]


@dataclass(frozen=True)
class Author:
    nickname: str
    uid: str = ""
    avatar_url: str = ""


@dataclass(frozen=True)
class Media:
    id: str
    url: str
    kind: MediaKind


@dataclass(frozen=True)
class Post:
    """A resolved post: metadata plus media in source order (images, then video)."""

    title: str
    description: str
    author: Author
    media: Sequence[Media] = ()
    original_url: str = ""

    @property
    def images(self) -> tuple[Media, ...]:
        return tuple(m for m in self.media if m.kind == "image")

    @property
    def video(self) -> Media | None:
        for m in self.media:
            if m.kind == "video":
                return m
        return None

    def to_dict(self) -> dict[str, object]:
        return {
            "title": self.title,
            "description": self.description,
            "author": {
                "nickname": self.author.nickname,
                "uid": self.author.uid,
                "avatar_url": self.author.avatar_url,
            },
            "media": [{"id": m.id, "url": m.url, "kind": m.kind} for m in self.media],
            "original_url": self.original_url,
        }
