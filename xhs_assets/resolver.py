from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import httpx

from .config_schema import AppConfig
from .errors import NormalizationError, ResolutionError
from .event_log import EventLogger
from .normalize import normalize
from .offline import demo_post
from .post import Post

RESOLVE_PATH = "/xhs/detail"

SleepFn = Callable[[float], Awaitable[None]]


def build_headers(config: AppConfig) -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if config.token:
        headers["Authorization"] = f"Bearer {config.token}"
    return headers


class PostResolver:
    """
    Resolves a post URL through the configured extraction service.

    Demo mode (endpoint empty or "demo") returns a fixed mock post after a short
    delay without touching the network. Otherwise exactly one POST is made per
    call; failures are not retried.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        client: httpx.AsyncClient | None = None,
        sleep_fn: SleepFn | None = None,
        logger: EventLogger | None = None,
        mock_delay_seconds: float = 1.5,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._config = config
        self._client = client
        self._sleep_fn = sleep_fn or asyncio.sleep
        self._logger = logger
        self._mock_delay_seconds = max(0.0, float(mock_delay_seconds))
        self._timeout_seconds = timeout_seconds

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def resolve_url(self) -> str:
        return f"{self._config.base_url}{RESOLVE_PATH}"

    async def resolve(self, url: str) -> Post:
        if self._config.is_demo:
            if self._logger is not None:
                self._logger.info("resolve_demo", url=url)
            if self._mock_delay_seconds > 0:
                await self._sleep_fn(self._mock_delay_seconds)
            return demo_post(url)

        if self._logger is not None:
            self._logger.info("resolve_started", url=url, endpoint=self.resolve_url)

        try:
            raw = await self._post(url)
            post = normalize(raw, original_url=url)
        except (ResolutionError, NormalizationError) as e:
            if self._logger is not None:
                self._logger.exception("resolve_failed", exc=e, url=url)
            raise

        if self._logger is not None:
            self._logger.info(
                "resolve_completed",
                url=url,
                title=post.title,
                media_count=len(post.media),
            )
        return post

    async def _post(self, url: str) -> Any:
        try:
            if self._client is not None:
                response = await self._send(self._client, url)
            else:
                async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                    response = await self._send(client, url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ResolutionError(f"API request failed: {e}") from e

        if not response.is_success:
            reason = response.reason_phrase or str(response.status_code)
            raise ResolutionError(f"API Error: {reason}", status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise NormalizationError(f"Resolver response is not valid JSON: {e}") from e

    async def _send(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        return await client.post(
            self.resolve_url,
            json={"url": url},
            headers=build_headers(self._config),
        )


async def resolve(
    url: str,
    config: AppConfig,
    *,
    client: httpx.AsyncClient | None = None,
    sleep_fn: SleepFn | None = None,
    logger: EventLogger | None = None,
) -> Post:
    resolver = PostResolver(config, client=client, sleep_fn=sleep_fn, logger=logger)
    return await resolver.resolve(url)
