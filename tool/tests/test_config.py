"""
Config テスト — レコーダー設定の単体テスト

環境変数・CLI 引数からの設定読み込みを検証する。
"""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from tpilot.config import (
    RecorderConfig,
    _parse_bool,
    apply_cli_args,
    build_cli_parser,
    load_config_from_env,
)


# ---------------------------------------------------------------------------
# デフォルト値
# ---------------------------------------------------------------------------

class TestRecorderConfigDefaults:
    """RecorderConfig のデフォルト値テスト。"""

    def test_defaults(self):
        """デフォルト値が設定されていること。"""
        config = RecorderConfig()
        assert config.headed is True
        assert config.channel == "chromium"
        assert (config.viewport_width, config.viewport_height) == (1280, 720)
        assert config.artifacts_dir == "artifacts"
        assert config.screenshot_mode == "each_step"
        assert config.dialect == "javascript"
        assert config.log_level == "WARNING"

    def test_capture_timeout_seconds(self):
        """capture_timeout はミリ秒設定を秒に変換すること。"""
        assert RecorderConfig(capture_timeout_ms=2500).capture_timeout == 2.5

    @pytest.mark.parametrize("ms", [0, -1])
    def test_capture_timeout_unlimited(self, ms):
        """0 以下は無制限（None）になること。"""
        assert RecorderConfig(capture_timeout_ms=ms).capture_timeout is None


# ---------------------------------------------------------------------------
# _parse_bool
# ---------------------------------------------------------------------------

class TestParseBool:
    """_parse_bool() のテスト。"""

    @pytest.mark.parametrize("value", ["true", "True", "1", "yes", "YES"])
    def test_truthy(self, value):
        assert _parse_bool(value) is True

    @pytest.mark.parametrize("value", ["false", "0", "no", "", "off"])
    def test_falsy(self, value):
        assert _parse_bool(value) is False


# ---------------------------------------------------------------------------
# 環境変数からの読み込み
# ---------------------------------------------------------------------------

class TestLoadConfigFromEnv:
    """load_config_from_env() のテスト。"""

    def test_empty_env(self):
        """環境変数がなければデフォルト値になること。"""
        with patch.dict(os.environ, {}, clear=True):
            assert load_config_from_env() == RecorderConfig()

    def test_all_variables(self):
        """全環境変数が反映されること。"""
        env = {
            "TPILOT_HEADED": "false",
            "TPILOT_CHANNEL": "msedge",
            "TPILOT_VIEWPORT_WIDTH": "1920",
            "TPILOT_VIEWPORT_HEIGHT": "1080",
            "TPILOT_ARTIFACTS_DIR": "output",
            "TPILOT_SCREENSHOT_MODE": "none",
            "TPILOT_SCREENSHOT_FORMAT": "png",
            "TPILOT_CAPTURE_TIMEOUT_MS": "1000",
            "TPILOT_DIALECT": "typescript",
            "TPILOT_LOG_LEVEL": "debug",
        }
        with patch.dict(os.environ, env, clear=True):
            config = load_config_from_env()

        assert config == RecorderConfig(
            headed=False,
            channel="msedge",
            viewport_width=1920,
            viewport_height=1080,
            artifacts_dir="output",
            screenshot_mode="none",
            screenshot_format="png",
            capture_timeout_ms=1000,
            dialect="typescript",
            log_level="DEBUG",
        )

    @pytest.mark.parametrize(
        "key, value",
        [
            ("TPILOT_CHANNEL", "firefox"),
            ("TPILOT_VIEWPORT_WIDTH", "wide"),
            ("TPILOT_SCREENSHOT_MODE", "always"),
            ("TPILOT_SCREENSHOT_FORMAT", "gif"),
            ("TPILOT_CAPTURE_TIMEOUT_MS", "5s"),
            ("TPILOT_LOG_LEVEL", "verbose"),
        ],
    )
    def test_invalid_values_keep_default(self, key, value, caplog):
        """不正な値は警告を出してデフォルト値のままになること。"""
        with patch.dict(os.environ, {key: value}, clear=True):
            config = load_config_from_env()

        assert config == RecorderConfig()
        assert key in caplog.text


# ---------------------------------------------------------------------------
# CLI 引数
# ---------------------------------------------------------------------------

class TestApplyCliArgs:
    """build_cli_parser() / apply_cli_args() のテスト。"""

    def test_no_args_keeps_config(self):
        """引数なしの場合は設定が変わらないこと。"""
        args = build_cli_parser().parse_args([])
        assert apply_cli_args(RecorderConfig(), args) == RecorderConfig()

    def test_overrides(self):
        """指定した引数が設定を上書きすること。"""
        args = build_cli_parser().parse_args([
            "--headless",
            "--channel", "chrome",
            "--artifacts-dir", "out",
            "--screenshot", "none",
            "--viewport", "1920x1080",
            "--dialect", "typescript",
            "--log-level", "INFO",
        ])
        config = apply_cli_args(RecorderConfig(), args)

        assert config.headed is False
        assert config.channel == "chrome"
        assert config.artifacts_dir == "out"
        assert config.screenshot_mode == "none"
        assert (config.viewport_width, config.viewport_height) == (1920, 1080)
        assert config.dialect == "typescript"
        assert config.log_level == "INFO"

    def test_headed_overrides_env(self):
        """--headed は環境変数の headless 設定を上書きすること。"""
        args = build_cli_parser().parse_args(["--headed"])
        config = apply_cli_args(RecorderConfig(headed=False), args)
        assert config.headed is True

    def test_invalid_viewport(self, caplog):
        """不正なビューポート指定は警告して無視すること。"""
        args = build_cli_parser().parse_args(["--viewport", "big"])
        config = apply_cli_args(RecorderConfig(), args)

        assert (config.viewport_width, config.viewport_height) == (1280, 720)
        assert "--viewport" in caplog.text
