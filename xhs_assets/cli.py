from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
import webbrowser
from contextlib import ExitStack
from pathlib import Path
from typing import Any, Sequence

from .config import apply_env_overrides, config_from_mapping, load_config
from .config_schema import AppConfig, Language
from .download import AssetDownloader, BatchSession, BatchStatus, DirectorySink, single_filename
from .errors import ConfigError, NormalizationError, ResolutionError, StorageError
from .event_log import EventLogger
from .extract import extract_url, extract_urls
from .messages import message
from .post import Post
from .resolver import PostResolver
from .storage import SettingsStore

STATE_DIR_ENV = "XHS_ASSETS_HOME"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="xhs_assets")
    parser.add_argument(
        "--state",
        default=None,
        help=f"State directory for settings and run.log (default: ${STATE_DIR_ENV} or ~/.xhs_assets).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Mirror JSONL log events to stderr.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser(
        "analyze",
        help="Resolve pasted share text or a post URL and print the post.",
    )
    analyze.add_argument("text", help="Share text or URL copied from the app.")
    analyze.add_argument("--json", action="store_true", help="Print the post as JSON.")
    analyze.set_defaults(_handler=_cmd_analyze)

    download = subparsers.add_parser(
        "download",
        help="Resolve a post and download its media one by one.",
    )
    download.add_argument("text", help="Share text or URL copied from the app.")
    download.add_argument("--out", required=True, help="Directory to save media into.")
    download.add_argument(
        "--only",
        type=int,
        default=None,
        help="Download a single asset by 1-based position instead of the whole set.",
    )
    download.add_argument(
        "--no-open",
        action="store_true",
        help="Do not open failed assets in a browser tab.",
    )
    download.set_defaults(_handler=_cmd_download)

    config = subparsers.add_parser("config", help="Show or change saved settings.")
    config_sub = config.add_subparsers(dest="config_command", required=True)

    show = config_sub.add_parser("show", help="Print the saved settings.")
    show.set_defaults(_handler=_cmd_config_show)

    set_cmd = config_sub.add_parser("set", help="Update saved settings.")
    set_cmd.add_argument("--endpoint", default=None, help="Resolver base URL, or 'demo'.")
    set_cmd.add_argument("--token", default=None, help="Bearer token ('' clears it).")
    set_cmd.add_argument("--language", choices=["zh", "en"], default=None)
    set_cmd.set_defaults(_handler=_cmd_config_set)

    imp = config_sub.add_parser("import", help="Replace saved settings from a YAML file.")
    imp.add_argument("path", help="Path to YAML config file.")
    imp.set_defaults(_handler=_cmd_config_import)

    return parser


def _eprint(message_text: str) -> None:
    print(message_text, file=sys.stderr)


def _state_dir(args: argparse.Namespace) -> Path:
    raw = getattr(args, "state", None) or os.environ.get(STATE_DIR_ENV) or ""
    if raw.strip():
        return Path(raw.strip()).expanduser()
    return Path.home() / ".xhs_assets"


def _open_logger(args: argparse.Namespace, stack: ExitStack) -> EventLogger:
    mirror = sys.stderr if bool(getattr(args, "verbose", False)) else None
    return stack.enter_context(EventLogger.open(_state_dir(args) / "run.log", mirror=mirror))


def _open_store(args: argparse.Namespace, stack: ExitStack, log: EventLogger) -> SettingsStore:
    return stack.enter_context(SettingsStore.open(_state_dir(args) / "settings.sqlite", logger=log))


def _masked(config: AppConfig) -> dict[str, Any]:
    data = config.model_dump(mode="json")
    if data.get("token"):
        data["token"] = "***"
    return data


def _print_post(post: Post, config: AppConfig) -> None:
    lang = config.language
    print(f"{message('author', lang)}: {post.author.nickname} (ID: {post.author.uid})")
    print(f"{message('title', lang)}: {post.title}")
    print(f"{message('description', lang)}: {post.description}")
    print(f"{message('media', lang)}: {len(post.media)}")
    if not post.media:
        print(message("no_media", lang))
    for m in post.media:
        print(f"  {m.id}\t{m.kind}\t{m.url}")


def _resolve_text(text: str, config: AppConfig, log: EventLogger) -> Post | None:
    url = extract_url(text)
    if url is None:
        log.warning("extract_miss", text_length=len(text or ""))
        _eprint(message("no_url", config.language))
        return None

    if len(extract_urls(text)) > 1:
        log.info("extract_extra_urls_ignored", url=url)
        _eprint(message("extra_urls_ignored", config.language))

    resolver = PostResolver(config, logger=log)
    try:
        return asyncio.run(resolver.resolve(url))
    except (ResolutionError, NormalizationError) as e:
        detail = str(e) or message("analysis_failed_hint", config.language)
        _eprint(f"{message('analysis_failed', config.language)}: {detail}")
        raise


def _cmd_analyze(args: argparse.Namespace) -> int:
    with ExitStack() as stack:
        log = _open_logger(args, stack)
        store = _open_store(args, stack, log)
        cfg = apply_env_overrides(store.load_config())
        log.info("analyze_command_started", endpoint=cfg.endpoint, demo=cfg.is_demo)

        post = _resolve_text(args.text, cfg, log)
        if post is None:
            return 2

        if bool(getattr(args, "json", False)):
            print(json.dumps(post.to_dict(), indent=2, ensure_ascii=False))
        else:
            _print_post(post, cfg)
            if cfg.is_demo:
                print(message("demo_note", cfg.language))
        return 0


async def _download(
    post: Post,
    downloader: AssetDownloader,
    *,
    only: int | None,
    log: EventLogger,
    language: Language = "zh",
) -> tuple[BatchStatus, list[str]]:
    lines: list[str] = []

    if only is not None:
        if only < 1 or only > len(post.media):
            raise ConfigError(f"--only must be between 1 and {len(post.media)}")
        media = post.media[only - 1]
        filename = single_filename(only, media.kind)
        ok = await downloader.download_one(media, filename=filename, position=only)
        state = message("saved" if ok else "failed", language)
        lines.append(f"[{only}] {state}\t{filename}")
        return (BatchStatus.SUCCEEDED if ok else BatchStatus.FAILED), lines

    session = BatchSession(downloader, logger=log)
    result = await session.run(post)
    if result is None:
        return session.status, lines

    for outcome in result.outcomes:
        state = message("saved" if outcome.succeeded else "failed", language)
        lines.append(f"[{outcome.position}] {state}\t{outcome.filename}")
    return result.status, lines


def _cmd_download(args: argparse.Namespace) -> int:
    with ExitStack() as stack:
        log = _open_logger(args, stack)
        store = _open_store(args, stack, log)
        cfg = apply_env_overrides(store.load_config())
        log.info("download_command_started", endpoint=cfg.endpoint, out_dir=str(args.out))

        post = _resolve_text(args.text, cfg, log)
        if post is None:
            return 2

        downloader = AssetDownloader(
            DirectorySink(args.out),
            logger=log,
            fallback=None if bool(getattr(args, "no_open", False)) else webbrowser.open_new_tab,
        )
        status, lines = asyncio.run(
            _download(post, downloader, only=args.only, log=log, language=cfg.language)
        )

        for line in lines:
            print(line)
        if not post.media:
            print(message("no_media", cfg.language))

        print(f"status={status.value}")
        if status is BatchStatus.FAILED:
            _eprint(message("batch_failed", cfg.language))
            return 4
        if status is BatchStatus.SUCCEEDED:
            print(message("batch_succeeded", cfg.language))
        return 0


def _cmd_config_show(args: argparse.Namespace) -> int:
    with ExitStack() as stack:
        log = _open_logger(args, stack)
        store = _open_store(args, stack, log)
        cfg = store.load_config()
        print(json.dumps(_masked(cfg), indent=2, ensure_ascii=False, sort_keys=True))
        return 0


def _cmd_config_set(args: argparse.Namespace) -> int:
    with ExitStack() as stack:
        log = _open_logger(args, stack)
        store = _open_store(args, stack, log)

        merged = store.load_config().model_dump(mode="json")
        for key in ("endpoint", "token", "language"):
            value = getattr(args, key, None)
            if value is not None:
                merged[key] = value

        cfg = config_from_mapping(merged, source="command line")
        store.save_config(cfg)
        log.info("settings_saved", **_masked(cfg))
        print(json.dumps(_masked(cfg), indent=2, ensure_ascii=False, sort_keys=True))
        return 0


def _cmd_config_import(args: argparse.Namespace) -> int:
    with ExitStack() as stack:
        log = _open_logger(args, stack)
        store = _open_store(args, stack, log)

        cfg = load_config(args.path)
        store.save_config(cfg)
        log.info("settings_imported", path=str(args.path), **_masked(cfg))
        print(json.dumps(_masked(cfg), indent=2, ensure_ascii=False, sort_keys=True))
        return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        handler = getattr(args, "_handler")
        return int(handler(args))
    except ConfigError as e:
        _eprint(str(e))
        return 2
    except StorageError as e:
        _eprint(str(e))
        return 3
    except (ResolutionError, NormalizationError):
        # Reported by the handler with the localized heading.
        return 3
    except KeyboardInterrupt:
        _eprint("Interrupted")
        return 130
    except Exception as e:
        _eprint(f"Unexpected error: {e}")
        return 1
