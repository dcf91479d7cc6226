from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from .config_schema import AppConfig
from .errors import ConfigError

ENDPOINT_ENV = "XHS_API_ENDPOINT"
TOKEN_ENV = "XHS_API_TOKEN"
LANGUAGE_ENV = "XHS_LANGUAGE"


def load_config(path: str | Path) -> AppConfig:
    """
    Load a YAML config file and validate it into a typed AppConfig.

    Raises ConfigError with a readable validation message on failure.
    """
    p = Path(path)

    if not p.exists():
        raise ConfigError(f"Config file not found: {p}")

    try:
        raw_text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read config file: {p}") from e

    try:
        data = yaml.safe_load(raw_text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML in {p}: {e}") from e

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise ConfigError(f"Top-level YAML in {p} must be a mapping/object")

    return config_from_mapping(data, source=str(p))


def config_from_mapping(data: Mapping[str, Any], *, source: str = "<config>") -> AppConfig:
    try:
        return AppConfig.model_validate(dict(data))
    except ValidationError as e:
        raise ConfigError(_format_pydantic_errors(e, source)) from e


def config_from_json(text: str, *, source: str = "<json>") -> AppConfig:
    """Parse the persisted JSON blob back into an AppConfig."""
    try:
        data = json.loads(text)
    except ValueError as e:
        raise ConfigError(f"Failed to parse JSON in {source}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Top-level JSON in {source} must be an object")

    return config_from_mapping(data, source=source)


def config_to_json(config: AppConfig) -> str:
    return json.dumps(
        config.model_dump(mode="json"),
        ensure_ascii=False,
        sort_keys=True,
        separators=(",", ":"),
    )


def apply_env_overrides(
    config: AppConfig, *, environ: Mapping[str, str] | None = None
) -> AppConfig:
    """
    Overlay non-empty XHS_API_ENDPOINT / XHS_API_TOKEN / XHS_LANGUAGE values.

    Returns a new AppConfig; the stored settings are left untouched.
    """
    env = os.environ if environ is None else environ

    update: dict[str, Any] = {}
    for key, env_name in (
        ("endpoint", ENDPOINT_ENV),
        ("token", TOKEN_ENV),
        ("language", LANGUAGE_ENV),
    ):
        value = (env.get(env_name) or "").strip()
        if value:
            update[key] = value

    if not update:
        return config

    merged = config.model_dump(mode="json")
    merged.update(update)
    return config_from_mapping(merged, source="environment")


def _format_pydantic_errors(err: ValidationError, source: str) -> str:
    lines: list[str] = [f"Invalid configuration in {source}:"]
    for item in err.errors():
        loc = ".".join(str(part) for part in item.get("loc", [])) or "<root>"
        msg = item.get("msg", "invalid value")
        lines.append(f"- {loc}: {msg}")
    return "\n".join(lines)
