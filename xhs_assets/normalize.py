from __future__ import annotations

import json
from typing import Any, Callable, Mapping, Sequence

from .errors import NormalizationError
from .post import Author, Media, Post

UNKNOWN_AUTHOR = "未知用户"
TITLE_FROM_DESCRIPTION_CHARS = 20

FieldRule = Callable[[Mapping[str, Any]], str | None]


def _coerce_str(value: Any) -> str | None:
    if isinstance(value, str):
        s = value.strip()
        return s if s else None
    return None


def _coerce_text(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def _coerce_id(value: Any) -> str | None:
    if isinstance(value, str):
        v = value.strip()
        return v if v else None
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return None


def _lookup(payload: Mapping[str, Any], path: Sequence[str]) -> Any:
    node: Any = payload
    for key in path:
        if not isinstance(node, Mapping):
            return None
        node = node.get(key)
    return node


def field(*path: str, coerce: Callable[[Any], str | None] = _coerce_str) -> FieldRule:
    """Rule reading a (possibly nested) key, e.g. field("author", "nickname")."""

    def _rule(payload: Mapping[str, Any]) -> str | None:
        return coerce(_lookup(payload, path))

    _rule.__name__ = "field:" + ".".join(path)
    return _rule


def _title_from_description(payload: Mapping[str, Any]) -> str | None:
    desc = resolve_field(payload, DESCRIPTION_RULES, "")
    return desc[:TITLE_FROM_DESCRIPTION_CHARS] or None


DESCRIPTION_RULES: tuple[FieldRule, ...] = (
    field("desc", coerce=_coerce_text),
    field("description", coerce=_coerce_text),
)

TITLE_RULES: tuple[FieldRule, ...] = (
    field("title", coerce=_coerce_text),
    field("note_title", coerce=_coerce_text),
    _title_from_description,
)

NICKNAME_RULES: tuple[FieldRule, ...] = (
    field("author", "nickname"),
    field("nickname"),
    field("user", "nickname"),
)

UID_RULES: tuple[FieldRule, ...] = (
    field("author", "uid", coerce=_coerce_id),
    field("author", "user_id", coerce=_coerce_id),
    field("user_id", coerce=_coerce_id),
    field("uid", coerce=_coerce_id),
)

AVATAR_RULES: tuple[FieldRule, ...] = (
    field("author", "avatar"),
    field("avatar"),
)

IMAGE_LIST_KEYS: tuple[str, ...] = ("image_list", "images")
VIDEO_KEYS: tuple[str, ...] = ("video_url", "video")


def resolve_field(payload: Mapping[str, Any], rules: Sequence[FieldRule], default: str) -> str:
    """Try each rule in order; the first non-empty value wins, else default."""
    for rule in rules:
        value = rule(payload)
        if value:
            return value
    return default


def _media_url(entry: Any) -> str | None:
    if isinstance(entry, str):
        return _coerce_str(entry)
    if isinstance(entry, Mapping):
        return _coerce_str(entry.get("url")) or _coerce_str(entry.get("url_default"))
    return None


def _image_media(payload: Mapping[str, Any]) -> list[Media]:
    for key in IMAGE_LIST_KEYS:
        entries = payload.get(key)
        if not isinstance(entries, list):
            continue

        out: list[Media] = []
        for idx, entry in enumerate(entries):
            url = _media_url(entry)
            if url:
                out.append(Media(id=f"img-{idx}", url=url, kind="image"))
        return out
    return []


def _video_media(payload: Mapping[str, Any]) -> Media | None:
    for key in VIDEO_KEYS:
        url = _media_url(payload.get(key))
        if url:
            return Media(id="video-main", url=url, kind="video")
    return None


def _decode(raw: Any) -> Any:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise NormalizationError(f"Resolver payload is not UTF-8 text: {e}") from e
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except ValueError as e:
            raise NormalizationError(f"Resolver payload is not valid JSON: {e}") from e
    return raw


def extract_payload(raw: Any) -> Mapping[str, Any]:
    """
    Locate the substantive payload inside a resolver response.

    Wrapped responses carry the post under "data"; flat ones are the post itself.
    A top-level array contributes its first object.
    """
    body = _decode(raw)

    if isinstance(body, list):
        body = next((item for item in body if isinstance(item, Mapping)), {})
    elif not isinstance(body, Mapping):
        raise NormalizationError(
            f"Resolver payload must be a JSON object or array, got {type(body).__name__}"
        )

    nested = body.get("data")
    if isinstance(nested, Mapping):
        return nested
    return body


def normalize(raw: Any, *, original_url: str = "") -> Post:
    """
    Map a raw resolver response onto a Post.

    Tolerates both known backend schemas (wrapped XHS-Downloader output and flat
    responses with alternate field names). Missing or malformed fields degrade
    to defaults; only a payload that is not a JSON object/array raises.
    """
    payload = extract_payload(raw)

    media = _image_media(payload)
    video = _video_media(payload)
    if video is not None:
        media.append(video)

    return Post(
        title=resolve_field(payload, TITLE_RULES, ""),
        description=resolve_field(payload, DESCRIPTION_RULES, ""),
        author=Author(
            nickname=resolve_field(payload, NICKNAME_RULES, UNKNOWN_AUTHOR),
            uid=resolve_field(payload, UID_RULES, ""),
            avatar_url=resolve_field(payload, AVATAR_RULES, ""),
        ),
        media=tuple(media),
        original_url=original_url,
    )
