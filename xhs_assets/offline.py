from __future__ import annotations

from .post import Author, Media, Post

_DEMO_TITLE = "Summer OOTD | Casual Business Style"
_DEMO_DESCRIPTION = "Sharing my favorite look for the office this summer. #ootd #business"

_DEMO_AUTHOR = Author(
    nickname="Fashion_Daily",
    uid="102938",
    avatar_url="https://picsum.photos/100/100",
)

_DEMO_MEDIA: tuple[Media, ...] = (
    Media(id="1", url="https://picsum.photos/800/1000?random=1", kind="image"),
    Media(id="2", url="https://picsum.photos/800/1000?random=2", kind="image"),
    Media(id="3", url="https://picsum.photos/800/1000?random=3", kind="image"),
)


def demo_post(url: str) -> Post:
    """
    Deterministic stand-in for a resolved post, used when no resolver is configured.

    Only original_url varies between calls: three images, no video.
    """
    return Post(
        title=_DEMO_TITLE,
        description=_DEMO_DESCRIPTION,
        author=_DEMO_AUTHOR,
        media=_DEMO_MEDIA,
        original_url=url,
    )
