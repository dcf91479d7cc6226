# tests/test_normalize.py
from __future__ import annotations

import unittest

from xhs_assets.errors import NormalizationError
from xhs_assets.normalize import (
    NICKNAME_RULES,
    TITLE_RULES,
    UID_RULES,
    UNKNOWN_AUTHOR,
    normalize,
    resolve_field,
)


class TestNormalize(unittest.TestCase):
    def test_wrapped_payload_with_string_images(self) -> None:
        post = normalize({"data": {"title": "T", "image_list": ["a", "b"]}})

        self.assertEqual(post.title, "T")
        self.assertEqual([m.id for m in post.media], ["img-0", "img-1"])
        self.assertEqual([m.url for m in post.media], ["a", "b"])
        self.assertTrue(all(m.kind == "image" for m in post.media))
        self.assertIsNone(post.video)

    def test_flat_payload_derives_title_from_description(self) -> None:
        post = normalize({"desc": "hello world this is long", "images": ["x"]})

        self.assertEqual(post.title, "hello world this is ")
        self.assertEqual(post.description, "hello world this is long")
        self.assertEqual([m.url for m in post.media], ["x"])

    def test_title_and_description_are_kept_verbatim(self) -> None:
        desc = "  padded description text here \n"
        post = normalize({"desc": desc})

        self.assertEqual(post.description, desc)
        self.assertEqual(post.title, desc[:20])

        post = normalize({"title": " Spaced  title ", "description": "d"})
        self.assertEqual(post.title, " Spaced  title ")

    def test_extracts_author_and_video(self) -> None:
        raw = {
            "data": {
                "title": "Look",
                "desc": "d",
                "author": {"nickname": "nick", "user_id": "u1", "avatar": "https://a/av.jpg"},
                "image_list": [{"url": "https://a/1.jpg"}, {"url": "https://a/2.jpg"}],
                "video_url": "https://a/v.mp4",
            }
        }
        post = normalize(raw, original_url="http://xhslink.com/a/1")

        self.assertEqual(post.author.nickname, "nick")
        self.assertEqual(post.author.uid, "u1")
        self.assertEqual(post.author.avatar_url, "https://a/av.jpg")
        self.assertEqual([m.id for m in post.media], ["img-0", "img-1", "video-main"])
        self.assertEqual(post.media[-1].kind, "video")
        self.assertEqual(post.original_url, "http://xhslink.com/a/1")

    def test_flat_schema_author_fields(self) -> None:
        post = normalize({"nickname": "flat", "user_id": 42, "video": {"url": "https://a/v.mp4"}})

        self.assertEqual(post.author.nickname, "flat")
        self.assertEqual(post.author.uid, "42")
        self.assertEqual([m.id for m in post.media], ["video-main"])

    def test_missing_fields_degrade_to_defaults(self) -> None:
        post = normalize({"data": {"image_list": "not-a-list", "author": "nope", "title": 7}})

        self.assertEqual(post.title, "")
        self.assertEqual(post.description, "")
        self.assertEqual(post.author.nickname, UNKNOWN_AUTHOR)
        self.assertEqual(post.author.uid, "")
        self.assertEqual(post.author.avatar_url, "")
        self.assertEqual(tuple(post.media), ())

    def test_image_entries_without_url_are_skipped(self) -> None:
        post = normalize({"image_list": ["a", {}, None, {"url": "c"}]})
        self.assertEqual([(m.id, m.url) for m in post.media], [("img-0", "a"), ("img-3", "c")])

    def test_accepts_json_text_and_arrays(self) -> None:
        post = normalize('{"data": {"title": "From text"}}')
        self.assertEqual(post.title, "From text")

        post = normalize([{"title": "First"}, {"title": "Second"}])
        self.assertEqual(post.title, "First")

    def test_malformed_payload_raises(self) -> None:
        for raw in (5, None, "not json", '"just a string"', b"\xff\xfe"):
            with self.subTest(raw=raw):
                with self.assertRaises(NormalizationError):
                    normalize(raw)


class TestFieldRules(unittest.TestCase):
    def test_rules_are_tried_in_order(self) -> None:
        payload = {"author": {"nickname": "  "}, "nickname": "fallback"}
        self.assertEqual(resolve_field(payload, NICKNAME_RULES, UNKNOWN_AUTHOR), "fallback")

    def test_uid_prefers_nested_uid(self) -> None:
        payload = {"author": {"uid": "a", "user_id": "b"}, "user_id": "c"}
        self.assertEqual(resolve_field(payload, UID_RULES, ""), "a")

    def test_title_falls_through_to_description(self) -> None:
        self.assertEqual(resolve_field({"description": "short"}, TITLE_RULES, ""), "short")
        self.assertEqual(resolve_field({}, TITLE_RULES, "default"), "default")


if __name__ == "__main__":
    unittest.main()
