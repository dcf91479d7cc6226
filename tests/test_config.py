from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from xhs_assets.config import apply_env_overrides, config_from_json, load_config
from xhs_assets.config_schema import AppConfig
from xhs_assets.errors import ConfigError


_VALID_YAML = """\
endpoint: http://nas.local:5556/
token: "  secret  "
language: en
"""


class TestConfig(unittest.TestCase):
    def test_defaults_are_demo_mode(self) -> None:
        cfg = AppConfig()
        self.assertTrue(cfg.is_demo)
        self.assertIsNone(cfg.token)
        self.assertEqual(cfg.language, "zh")
        self.assertTrue(AppConfig(endpoint="  ").is_demo)

    def test_load_config_ok(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "config.yaml"
            path.write_text(_VALID_YAML, encoding="utf-8")

            cfg = load_config(path)
            self.assertFalse(cfg.is_demo)
            self.assertEqual(cfg.base_url, "http://nas.local:5556")
            self.assertEqual(cfg.token, "secret")
            self.assertEqual(cfg.language, "en")

    def test_load_config_rejects_unknown_language(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "config.yaml"
            path.write_text(_VALID_YAML.replace("language: en", "language: fr"), encoding="utf-8")

            with self.assertRaises(ConfigError) as ctx:
                load_config(path)
            self.assertIn("language", str(ctx.exception))

    def test_load_config_rejects_unknown_keys_and_missing_file(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "config.yaml"
            path.write_text("apiBaseUrl: demo\n", encoding="utf-8")
            with self.assertRaises(ConfigError):
                load_config(path)

            with self.assertRaises(ConfigError):
                load_config(Path(td) / "missing.yaml")

    def test_blank_token_becomes_none(self) -> None:
        self.assertIsNone(AppConfig(endpoint="http://api", token="   ").token)

    def test_env_overrides(self) -> None:
        cfg = AppConfig()
        out = apply_env_overrides(
            cfg,
            environ={"XHS_API_ENDPOINT": "http://api", "XHS_API_TOKEN": "t", "XHS_LANGUAGE": ""},
        )
        self.assertEqual(out.endpoint, "http://api")
        self.assertEqual(out.token, "t")
        self.assertEqual(out.language, "zh")
        self.assertIs(apply_env_overrides(cfg, environ={}), cfg)

    def test_config_from_json(self) -> None:
        cfg = config_from_json('{"endpoint": "demo", "language": "en"}')
        self.assertEqual(cfg.language, "en")

        with self.assertRaises(ConfigError):
            config_from_json("{not json")
        with self.assertRaises(ConfigError):
            config_from_json("[1, 2]")


if __name__ == "__main__":
    unittest.main()
