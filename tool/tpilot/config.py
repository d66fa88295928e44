"""
レコーダー設定 — 環境変数・CLI 引数からの設定読み込み

環境変数または CLI 引数で記録・コンパイルの動作を制御する。
CLI 引数 > 環境変数 > デフォルト値 の優先順位で適用される。

環境変数一覧:
  TPILOT_HEADED            : ブラウザ表示モード（true/false, デフォルト: true）
  TPILOT_CHANNEL           : ブラウザチャンネル（chromium/chrome/msedge, デフォルト: chromium）
  TPILOT_VIEWPORT_WIDTH    : ビューポート幅（デフォルト: 1280）
  TPILOT_VIEWPORT_HEIGHT   : ビューポート高さ（デフォルト: 720）
  TPILOT_ARTIFACTS_DIR     : 成果物ディレクトリ（デフォルト: artifacts）
  TPILOT_SCREENSHOT_MODE   : スクリーンショットモード（each_step/none, デフォルト: each_step）
  TPILOT_SCREENSHOT_FORMAT : 画像形式（jpeg/png, デフォルト: jpeg）
  TPILOT_CAPTURE_TIMEOUT_MS: 1 回のキャプチャのタイムアウト（ミリ秒, デフォルト: 5000）
  TPILOT_DIALECT           : デフォルトのスクリプト方言（デフォルト: javascript）
  TPILOT_LOG_LEVEL         : ログレベル（デフォルト: WARNING）
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Literal, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# 環境変数キー定数
# ---------------------------------------------------------------------------

_ENV_HEADED = "TPILOT_HEADED"
_ENV_CHANNEL = "TPILOT_CHANNEL"
_ENV_VIEWPORT_WIDTH = "TPILOT_VIEWPORT_WIDTH"
_ENV_VIEWPORT_HEIGHT = "TPILOT_VIEWPORT_HEIGHT"
_ENV_ARTIFACTS_DIR = "TPILOT_ARTIFACTS_DIR"
_ENV_SCREENSHOT_MODE = "TPILOT_SCREENSHOT_MODE"
_ENV_SCREENSHOT_FORMAT = "TPILOT_SCREENSHOT_FORMAT"
_ENV_CAPTURE_TIMEOUT_MS = "TPILOT_CAPTURE_TIMEOUT_MS"
_ENV_DIALECT = "TPILOT_DIALECT"
_ENV_LOG_LEVEL = "TPILOT_LOG_LEVEL"

_CHANNELS = ("chromium", "chrome", "msedge")
_SCREENSHOT_MODES = ("each_step", "none")
_SCREENSHOT_FORMATS = ("jpeg", "png")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


# ---------------------------------------------------------------------------
# 設定データクラス
# ---------------------------------------------------------------------------

@dataclass
class RecorderConfig:
    """記録・コンパイルの実行時設定。

    Attributes:
        headed: ブラウザ表示モード（True=表示, False=ヘッドレス）
        channel: ブラウザチャンネル
        viewport_width: ビューポート幅
        viewport_height: ビューポート高さ
        artifacts_dir: 成果物ディレクトリパス
        screenshot_mode: スクリーンショットモード
        screenshot_format: スクリーンショット形式
        screenshot_quality: JPEG 品質
        capture_timeout_ms: 1 回のキャプチャのタイムアウト（ミリ秒, 0 で無制限）
        dialect: デフォルトのスクリプト方言
        log_level: ログレベル名
    """

    headed: bool = True
    channel: Literal["chromium", "chrome", "msedge"] = "chromium"
    viewport_width: int = 1280
    viewport_height: int = 720
    artifacts_dir: str = "artifacts"
    screenshot_mode: Literal["each_step", "none"] = "each_step"
    screenshot_format: Literal["jpeg", "png"] = "jpeg"
    screenshot_quality: int = 70
    capture_timeout_ms: int = 5000
    dialect: str = "javascript"
    log_level: str = "WARNING"

    @property
    def capture_timeout(self) -> Optional[float]:
        """キャプチャのタイムアウト秒数を返す。0 以下は無制限（None）。"""
        if self.capture_timeout_ms <= 0:
            return None
        return self.capture_timeout_ms / 1000.0


# ---------------------------------------------------------------------------
# 環境変数からの読み込み
# ---------------------------------------------------------------------------

def _parse_bool(value: str) -> bool:
    """文字列を bool に変換する。

    Args:
        value: "true", "1", "yes" → True、それ以外 → False

    Returns:
        変換結果
    """
    return value.lower() in ("true", "1", "yes")


def _parse_int(key: str, default: int) -> int:
    """環境変数を int として読み込む。不正な値は警告してデフォルトを返す。"""
    try:
        return int(os.environ[key])
    except ValueError:
        logger.warning("%s の値が不正です: %s", key, os.environ[key])
        return default


def load_config_from_env() -> RecorderConfig:
    """環境変数から RecorderConfig を生成する。

    設定されていない環境変数はデフォルト値を使用する。

    Returns:
        環境変数から読み込んだ設定
    """
    config = RecorderConfig()

    if _ENV_HEADED in os.environ:
        config.headed = _parse_bool(os.environ[_ENV_HEADED])

    if _ENV_CHANNEL in os.environ:
        val = os.environ[_ENV_CHANNEL]
        if val in _CHANNELS:
            config.channel = val  # type: ignore[assignment]
        else:
            logger.warning("%s の値が不正です: %s", _ENV_CHANNEL, val)

    if _ENV_VIEWPORT_WIDTH in os.environ:
        config.viewport_width = _parse_int(_ENV_VIEWPORT_WIDTH, config.viewport_width)

    if _ENV_VIEWPORT_HEIGHT in os.environ:
        config.viewport_height = _parse_int(_ENV_VIEWPORT_HEIGHT, config.viewport_height)

    if _ENV_ARTIFACTS_DIR in os.environ:
        config.artifacts_dir = os.environ[_ENV_ARTIFACTS_DIR]

    if _ENV_SCREENSHOT_MODE in os.environ:
        val = os.environ[_ENV_SCREENSHOT_MODE]
        if val in _SCREENSHOT_MODES:
            config.screenshot_mode = val  # type: ignore[assignment]
        else:
            logger.warning("%s の値が不正です: %s", _ENV_SCREENSHOT_MODE, val)

    if _ENV_SCREENSHOT_FORMAT in os.environ:
        val = os.environ[_ENV_SCREENSHOT_FORMAT]
        if val in _SCREENSHOT_FORMATS:
            config.screenshot_format = val  # type: ignore[assignment]
        else:
            logger.warning("%s の値が不正です: %s", _ENV_SCREENSHOT_FORMAT, val)

    if _ENV_CAPTURE_TIMEOUT_MS in os.environ:
        config.capture_timeout_ms = _parse_int(_ENV_CAPTURE_TIMEOUT_MS, config.capture_timeout_ms)

    if _ENV_DIALECT in os.environ and os.environ[_ENV_DIALECT]:
        config.dialect = os.environ[_ENV_DIALECT]

    if _ENV_LOG_LEVEL in os.environ:
        val = os.environ[_ENV_LOG_LEVEL].upper()
        if val in _LOG_LEVELS:
            config.log_level = val
        else:
            logger.warning("%s の値が不正です: %s", _ENV_LOG_LEVEL, val)

    logger.info("設定を読み込みました: %s", config)
    return config


# ---------------------------------------------------------------------------
# CLI 引数（MCP サーバー起動用）
# ---------------------------------------------------------------------------

def build_cli_parser():
    """CLI 引数パーサーを構築する。

    Returns:
        argparse.ArgumentParser インスタンス
    """
    import argparse

    parser = argparse.ArgumentParser(
        description="TestPilot MCP Server - record browser interactions as test scripts",
    )
    parser.add_argument(
        "--headless", action="store_true", default=None,
        help="Run browser in headless mode (default: headed)",
    )
    parser.add_argument(
        "--headed", action="store_true", default=None,
        help="Run browser in headed mode (default)",
    )
    parser.add_argument(
        "--channel", type=str, default=None, choices=list(_CHANNELS),
        help="Browser channel (default: chromium)",
    )
    parser.add_argument(
        "--artifacts-dir", type=str, default=None,
        help="Artifacts output directory (default: artifacts)",
    )
    parser.add_argument(
        "--screenshot", type=str, default=None, choices=list(_SCREENSHOT_MODES),
        help="Screenshot mode (default: each_step)",
    )
    parser.add_argument(
        "--viewport", type=str, default=None,
        help="Viewport size as WIDTHxHEIGHT (e.g. 1920x1080)",
    )
    parser.add_argument(
        "--dialect", type=str, default=None,
        help="Default script dialect (default: javascript)",
    )
    parser.add_argument(
        "--log-level", type=str, default=None, choices=list(_LOG_LEVELS),
        help="Logging level (default: WARNING)",
    )
    return parser


def apply_cli_args(config: RecorderConfig, args: Any) -> RecorderConfig:
    """CLI 引数を RecorderConfig に適用する。

    CLI 引数が指定されている場合のみ上書きする。

    Args:
        config: ベースとなる設定（環境変数から読み込み済み）
        args: argparse の解析結果

    Returns:
        CLI 引数が適用された設定
    """
    # headed / headless
    if getattr(args, "headless", None):
        config.headed = False
    elif getattr(args, "headed", None):
        config.headed = True

    channel = getattr(args, "channel", None)
    if channel is not None:
        config.channel = channel

    artifacts_dir = getattr(args, "artifacts_dir", None)
    if artifacts_dir is not None:
        config.artifacts_dir = artifacts_dir

    screenshot = getattr(args, "screenshot", None)
    if screenshot is not None:
        config.screenshot_mode = screenshot

    dialect = getattr(args, "dialect", None)
    if dialect is not None:
        config.dialect = dialect

    log_level = getattr(args, "log_level", None)
    if log_level is not None:
        config.log_level = log_level

    viewport_str = getattr(args, "viewport", None)
    if viewport_str is not None:
        try:
            w, h = str(viewport_str).split("x")
            config.viewport_width = int(w)
            config.viewport_height = int(h)
        except (ValueError, AttributeError):
            logger.warning("--viewport の形式が不正です: %s (WIDTHxHEIGHT)", viewport_str)

    return config


def configure_logging(level: str) -> None:
    """エントリポイント用にルートロガーを設定する。

    Args:
        level: ログレベル名（DEBUG / INFO / WARNING / ERROR）
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(name)s - %(message)s",
    )
