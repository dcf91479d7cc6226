from __future__ import annotations

import unittest

from xhs_assets.extract import extract_url, extract_urls


class TestExtractUrl(unittest.TestCase):
    def test_pulls_url_out_of_share_text(self) -> None:
        text = "53 【夏日穿搭】 http://xhslink.com/a/AbC123 复制本条信息，打开【小红书】App查看精彩内容！"
        self.assertEqual(extract_url(text), "http://xhslink.com/a/AbC123")

    def test_bare_url_is_returned_unchanged(self) -> None:
        url = "https://www.xiaohongshu.com/explore/64f0c0de000000001e03a1b2?xsec_token=x"
        self.assertEqual(extract_url(url), url)

    def test_returns_none_without_url(self) -> None:
        self.assertIsNone(extract_url("no link here, just xhslink.com/abc"))
        self.assertIsNone(extract_url(""))
        self.assertIsNone(extract_url(None))

    def test_first_url_wins(self) -> None:
        text = "see https://a.example/1 and http://b.example/2"
        self.assertEqual(extract_url(text), "https://a.example/1")
        self.assertEqual(extract_urls(text), ["https://a.example/1", "http://b.example/2"])

    def test_trailing_punctuation_is_kept(self) -> None:
        self.assertEqual(extract_url("link: https://a.example/x, thanks"), "https://a.example/x,")

    def test_whitespace_truncates_url(self) -> None:
        self.assertEqual(extract_url("https://a.example/pa th"), "https://a.example/pa")


if __name__ == "__main__":
    unittest.main()
