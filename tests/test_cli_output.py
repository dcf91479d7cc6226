from __future__ import annotations

import io
import unittest
from contextlib import redirect_stderr
from unittest import mock

import httpx

from xhs_assets import cli
from xhs_assets.config_schema import AppConfig
from xhs_assets.download import AssetDownloader, BatchStatus
from xhs_assets.errors import ResolutionError
from xhs_assets.event_log import EventLogger
from xhs_assets.messages import message
from xhs_assets.post import Author, Media, Post


class _MemorySink:
    def __init__(self) -> None:
        self.saved: list[str] = []

    def save(self, filename: str, content: bytes) -> None:
        self.saved.append(filename)


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.path.endswith("/2.jpg"):
        return httpx.Response(404)
    return httpx.Response(200, content=b"ok")


async def _no_sleep(seconds: float) -> None:
    return None


def _post() -> Post:
    return Post(
        title="Look",
        description="",
        author=Author(nickname="n"),
        media=(
            Media(id="img-0", url="https://img/1.jpg", kind="image"),
            Media(id="img-1", url="https://img/2.jpg", kind="image"),
        ),
        original_url="http://xhslink.com/a/1",
    )


class TestDownloadLines(unittest.IsolatedAsyncioTestCase):
    async def _run(self, language: str, *, only: int | None = None) -> tuple[BatchStatus, list[str]]:
        log = EventLogger(mirror=io.StringIO())
        async with httpx.AsyncClient(transport=httpx.MockTransport(_handler)) as client:
            downloader = AssetDownloader(
                _MemorySink(), client=client, sleep_fn=_no_sleep, fallback=None
            )
            return await cli._download(_post(), downloader, only=only, log=log, language=language)

    async def test_batch_lines_use_configured_language(self) -> None:
        status, lines = await self._run("en")

        self.assertIs(status, BatchStatus.SUCCEEDED)
        self.assertEqual(lines, ["[1] Saved\tLook_1.jpg", "[2] Failed\tLook_2.jpg"])

        _, lines = await self._run("zh")
        self.assertEqual(lines, ["[1] 已保存\tLook_1.jpg", "[2] 失败\tLook_2.jpg"])

    async def test_single_asset_line_is_localized(self) -> None:
        status, lines = await self._run("en", only=2)

        self.assertIs(status, BatchStatus.FAILED)
        self.assertEqual(len(lines), 1)
        self.assertTrue(lines[0].startswith("[2] Failed\txhs_media_2_"))


class TestResolveErrors(unittest.TestCase):
    def test_blank_resolution_error_falls_back_to_hint(self) -> None:
        cfg = AppConfig(endpoint="http://api", language="en")
        err = io.StringIO()
        failing = mock.AsyncMock(side_effect=ResolutionError(""))

        with mock.patch.object(cli.PostResolver, "resolve", failing), redirect_stderr(err):
            with self.assertRaises(ResolutionError):
                cli._resolve_text("http://xhslink.com/a/1", cfg, EventLogger(mirror=io.StringIO()))

        self.assertEqual(
            err.getvalue().strip(),
            f"{message('analysis_failed', 'en')}: {message('analysis_failed_hint', 'en')}",
        )

    def test_resolution_error_detail_is_printed(self) -> None:
        cfg = AppConfig(endpoint="http://api", language="zh")
        err = io.StringIO()
        failing = mock.AsyncMock(side_effect=ResolutionError("API Error: Bad Gateway"))

        with mock.patch.object(cli.PostResolver, "resolve", failing), redirect_stderr(err):
            with self.assertRaises(ResolutionError):
                cli._resolve_text("http://xhslink.com/a/1", cfg, EventLogger(mirror=io.StringIO()))

        self.assertEqual(err.getvalue().strip(), "解析失败: API Error: Bad Gateway")


if __name__ == "__main__":
    unittest.main()
