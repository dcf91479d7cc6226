from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from .config import config_from_json, config_to_json
from .config_schema import AppConfig
from .errors import ConfigError, StorageError
from .event_log import EventLogger
from .storage_schema import initialize_sqlite

CONFIG_KEY = "xhs_manager_config"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SettingsStore:
    """
    Persists the AppConfig as a single JSON blob under a fixed key.

    The blob is read once at startup and rewritten wholesale on save; it is never
    patched field by field.
    """

    def __init__(self, conn: sqlite3.Connection, *, logger: EventLogger | None = None) -> None:
        self._conn = conn
        self._conn.row_factory = sqlite3.Row
        self._logger = logger

    @classmethod
    def open(cls, path: str | Path, *, logger: EventLogger | None = None) -> "SettingsStore":
        db_path = str(path)
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            conn = sqlite3.connect(db_path)
        except sqlite3.DatabaseError as e:
            raise StorageError(f"Failed to open sqlite database: {db_path}: {e}") from e

        try:
            initialize_sqlite(conn)
        except Exception as e:
            conn.close()
            raise StorageError(f"Failed to initialize sqlite schema: {e}") from e

        return cls(conn, logger=logger)

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "SettingsStore":
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()

    def read_blob(self, key: str = CONFIG_KEY) -> str | None:
        try:
            row = self._conn.execute(
                "SELECT value_json FROM settings WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.DatabaseError as e:
            raise StorageError(f"Failed to read setting {key}: {e}") from e
        return None if row is None else str(row["value_json"])

    def write_blob(self, value_json: str, key: str = CONFIG_KEY) -> None:
        try:
            with self._conn:
                self._conn.execute(
                    """
                    INSERT INTO settings(key, value_json, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                      value_json = excluded.value_json,
                      updated_at = excluded.updated_at
                    """.strip(),
                    (key, value_json, _utc_now_iso()),
                )
        except sqlite3.DatabaseError as e:
            raise StorageError(f"Failed to write setting {key}: {e}") from e

    def load_config(self) -> AppConfig:
        """
        Return the saved config, or defaults when nothing valid is stored.

        An unreadable blob is logged and ignored rather than blocking startup.
        """
        blob = self.read_blob()
        if blob is None:
            return AppConfig()

        try:
            return config_from_json(blob, source=f"settings[{CONFIG_KEY}]")
        except ConfigError as e:
            if self._logger is not None:
                self._logger.warning("settings_parse_failed", key=CONFIG_KEY, error=str(e))
            return AppConfig()

    def save_config(self, config: AppConfig) -> None:
        self.write_blob(config_to_json(config))
