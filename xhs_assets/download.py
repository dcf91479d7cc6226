from __future__ import annotations

import asyncio
import re
import time
import webbrowser
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, Iterable, Protocol, Sequence

import httpx

from .errors import AssetFetchError
from .event_log import EventLogger
from .post import Media, MediaKind, Post

FILENAME_TITLE_CHARS = 10

_UNSAFE_FILENAME_RE = re.compile(r"[^a-zA-Z0-9]")

SleepFn = Callable[[float], Awaitable[None]]
FallbackFn = Callable[[str], object]


class BatchStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def _extension(kind: MediaKind) -> str:
    return "mp4" if kind == "video" else "jpg"


def batch_filename(title: str, position: int, kind: MediaKind) -> str:
    """'<first 10 chars of title, non-alphanumerics as _>_<position>.<ext>'"""
    stem = _UNSAFE_FILENAME_RE.sub("_", (title or "")[:FILENAME_TITLE_CHARS])
    return f"{stem}_{int(position)}.{_extension(kind)}"


def single_filename(position: int, kind: MediaKind, *, timestamp_ms: int | None = None) -> str:
    ms = int(time.time() * 1000) if timestamp_ms is None else int(timestamp_ms)
    return f"xhs_media_{int(position)}_{ms}.{_extension(kind)}"


class AssetSink(Protocol):
    def save(self, filename: str, content: bytes) -> object: ...


class DirectorySink:
    """Saves fetched assets as files under a directory."""

    def __init__(self, out_dir: str | Path) -> None:
        self._out_dir = Path(out_dir)

    @property
    def out_dir(self) -> Path:
        return self._out_dir

    def save(self, filename: str, content: bytes) -> Path:
        self._out_dir.mkdir(parents=True, exist_ok=True)
        target = self._out_dir / Path(filename).name
        target.write_bytes(content)
        return target


@dataclass(frozen=True)
class AssetOutcome:
    media: Media
    position: int
    filename: str
    succeeded: bool
    error: str | None = None


@dataclass(frozen=True)
class BatchOutcome:
    status: BatchStatus
    outcomes: Sequence[AssetOutcome] = field(default_factory=tuple)

    @property
    def succeeded_count(self) -> int:
        return sum(1 for o in self.outcomes if o.succeeded)

    @property
    def failed_count(self) -> int:
        return sum(1 for o in self.outcomes if not o.succeeded)


def fold_status(outcomes: Iterable[AssetOutcome]) -> BatchStatus:
    seen = False
    for outcome in outcomes:
        seen = True
        if outcome.succeeded:
            return BatchStatus.SUCCEEDED
    return BatchStatus.FAILED if seen else BatchStatus.IDLE


class AssetDownloader:
    """
    Fetches media assets one at a time and hands the bytes to a sink.

    A failed asset never raises: the URL is passed to the fallback opener
    (a browser tab by default) and the outcome is recorded as failed.
    """

    def __init__(
        self,
        sink: AssetSink,
        *,
        client: httpx.AsyncClient | None = None,
        sleep_fn: SleepFn | None = None,
        throttle_seconds: float = 0.5,
        fallback: FallbackFn | None = webbrowser.open_new_tab,
        logger: EventLogger | None = None,
        timeout_seconds: float = 60.0,
    ) -> None:
        self._sink = sink
        self._client = client
        self._sleep_fn = sleep_fn or asyncio.sleep
        self._throttle_seconds = max(0.0, float(throttle_seconds))
        self._fallback = fallback
        self._logger = logger
        self._timeout_seconds = timeout_seconds

    async def download_one(
        self,
        media: Media,
        *,
        filename: str | None = None,
        position: int = 1,
    ) -> bool:
        outcome = await self._acquire(
            media,
            position=position,
            filename=filename or single_filename(position, media.kind),
        )
        return outcome.succeeded

    async def iter_batch(self, post: Post) -> AsyncIterator[AssetOutcome]:
        for idx, media in enumerate(post.media):
            if idx > 0 and self._throttle_seconds > 0:
                await self._sleep_fn(self._throttle_seconds)

            position = idx + 1
            yield await self._acquire(
                media,
                position=position,
                filename=batch_filename(post.title, position, media.kind),
            )

    async def download_all(self, post: Post) -> BatchOutcome:
        outcomes = [outcome async for outcome in self.iter_batch(post)]
        return BatchOutcome(status=fold_status(outcomes), outcomes=tuple(outcomes))

    async def _acquire(self, media: Media, *, position: int, filename: str) -> AssetOutcome:
        try:
            content = await self._fetch(media.url)
            try:
                self._sink.save(filename, content)
            except Exception as e:
                raise AssetFetchError(f"Failed to save {filename}: {e}", url=media.url) from e
        except AssetFetchError as e:
            if self._logger is not None:
                self._logger.warning(
                    "asset_failed",
                    url=media.url,
                    media_id=media.id,
                    position=position,
                    error=str(e),
                )
            self._open_fallback(media.url)
            return AssetOutcome(
                media=media,
                position=position,
                filename=filename,
                succeeded=False,
                error=str(e),
            )

        if self._logger is not None:
            self._logger.info(
                "asset_saved",
                url=media.url,
                media_id=media.id,
                position=position,
                filename=filename,
                bytes=len(content),
            )
        return AssetOutcome(media=media, position=position, filename=filename, succeeded=True)

    async def _fetch(self, url: str) -> bytes:
        try:
            if self._client is not None:
                response = await self._client.get(url)
            else:
                async with httpx.AsyncClient(
                    timeout=self._timeout_seconds, follow_redirects=True
                ) as client:
                    response = await client.get(url)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise AssetFetchError(f"Failed to fetch asset: {e}", url=url) from e
        return response.content

    def _open_fallback(self, url: str) -> None:
        if self._fallback is None:
            return
        try:
            self._fallback(url)
        except Exception as e:  # webbrowser can fail in many ways on headless hosts
            if self._logger is not None:
                self._logger.warning("fallback_open_failed", url=url, error=str(e))


class BatchSession:
    """
    Batch status state machine: idle -> running -> succeeded|failed -> idle.

    The terminal status stays visible for the display window and is then reset
    to idle on the running event loop.
    """

    def __init__(
        self,
        downloader: AssetDownloader,
        *,
        display_window_seconds: float = 3.0,
        logger: EventLogger | None = None,
    ) -> None:
        self._downloader = downloader
        self._display_window_seconds = max(0.0, float(display_window_seconds))
        self._logger = logger
        self._status = BatchStatus.IDLE
        self._reset_handle: asyncio.TimerHandle | None = None

    @property
    def status(self) -> BatchStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._status is BatchStatus.RUNNING

    async def run(self, post: Post) -> BatchOutcome | None:
        """Download every asset of post; returns None if a batch is already running."""
        if self.is_running:
            return None
        if not post.media:
            return BatchOutcome(status=BatchStatus.IDLE)

        self._cancel_reset()
        self._status = BatchStatus.RUNNING
        if self._logger is not None:
            self._logger.info("batch_started", url=post.original_url, media_count=len(post.media))

        outcomes: list[AssetOutcome] = []
        status = BatchStatus.FAILED
        try:
            async for outcome in self._downloader.iter_batch(post):
                outcomes.append(outcome)
            status = fold_status(outcomes)
        finally:
            # A raising downloader still ends the batch and schedules the reset.
            self._status = status
            self._schedule_reset()

        result = BatchOutcome(status=status, outcomes=tuple(outcomes))
        if self._logger is not None:
            self._logger.info(
                "batch_completed",
                url=post.original_url,
                status=result.status.value,
                succeeded=result.succeeded_count,
                failed=result.failed_count,
            )

        return result

    def _schedule_reset(self) -> None:
        loop = asyncio.get_running_loop()
        self._reset_handle = loop.call_later(self._display_window_seconds, self._reset)

    def _cancel_reset(self) -> None:
        if self._reset_handle is not None:
            self._reset_handle.cancel()
            self._reset_handle = None

    def _reset(self) -> None:
        self._reset_handle = None
        if not self.is_running:
            self._status = BatchStatus.IDLE
