"""
アーティファクト取得 — 記録ステップごとのスクリーンショット

Event Channel Adapter は受理したイベントごとに capture() を呼び、
戻り値の参照文字列を RecordedStep.artifact に格納する。
ストア側は参照を保持するだけで、ファイルの中身には関与しない。

主な構成:
  - ArtifactCapture Protocol: capture() -> 参照文字列
  - NullCapture: 常に "unavailable" を返す（スクリーンショット無効時）
  - ScreenshotCapture: Playwright Page のスクリーンショットを保存
  - create_run_dir(): 記録ごとの成果物ディレクトリ作成
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal, Optional, Protocol, runtime_checkable

from ..errors import CaptureFailed

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

ARTIFACT_UNAVAILABLE = "unavailable"
"""キャプチャ失敗・無効時に記録されるアーティファクト参照のセンチネル値。"""


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------

@runtime_checkable
class ArtifactCapture(Protocol):
    """アーティファクト取得の共通インターフェース。"""

    async def capture(self) -> str:
        """アーティファクトを取得し、参照文字列を返す。

        Raises:
            CaptureFailed: 取得に失敗した場合
        """
        ...


class NullCapture:
    """何も取得せず、常にセンチネル値を返すキャプチャ。"""

    async def capture(self) -> str:
        return ARTIFACT_UNAVAILABLE


# ---------------------------------------------------------------------------
# ScreenshotCapture
# ---------------------------------------------------------------------------

@dataclass
class ScreenshotCapture:
    """Playwright Page のスクリーンショットを連番で保存するキャプチャ。

    ファイル名は NNNN_step.jpg 形式（4 桁ゼロ埋めの連番）。

    Attributes:
        page: Playwright の Page オブジェクト
        output_dir: 保存先ディレクトリ
        format: 画像形式（jpeg / png）
        quality: JPEG 品質（png の場合は無視）
    """

    page: Page
    output_dir: Path
    format: Literal["jpeg", "png"] = "jpeg"
    quality: int = 70
    _index: int = field(default=0, init=False)

    async def capture(self) -> str:
        """スクリーンショットを保存し、そのパスを返す。

        Returns:
            保存したファイルのパス文字列

        Raises:
            CaptureFailed: ページが閉じている等で保存できない場合
        """
        file_ext = "jpg" if self.format == "jpeg" else "png"
        filepath = Path(self.output_dir) / f"{self._index:04d}_step.{file_ext}"
        self._index += 1

        options: dict[str, Any] = {"path": str(filepath), "type": self.format}
        if self.format == "jpeg":
            options["quality"] = self.quality

        try:
            filepath.parent.mkdir(parents=True, exist_ok=True)
            await self.page.screenshot(**options)
        except Exception as exc:
            raise CaptureFailed(f"スクリーンショットの保存に失敗しました: {exc}") from exc

        logger.debug("スクリーンショットを保存しました: %s", filepath)
        return str(filepath)


# ---------------------------------------------------------------------------
# 成果物ディレクトリ
# ---------------------------------------------------------------------------

def create_run_dir(base_dir: Path, timestamp: Optional[datetime] = None) -> Path:
    """記録ごとの成果物ディレクトリを作成する。

    base_dir/run-YYYYMMDD-HHMMSS/screenshots/ を作成する。

    Args:
        base_dir: 成果物ベースディレクトリ
        timestamp: ディレクトリ名に使用する時刻。None の場合は現在時刻

    Returns:
        作成した実行ディレクトリのパス
    """
    if timestamp is None:
        timestamp = datetime.now()

    run_dir = Path(base_dir) / f"run-{timestamp.strftime('%Y%m%d-%H%M%S')}"
    (run_dir / "screenshots").mkdir(parents=True, exist_ok=True)

    logger.info("実行ディレクトリを作成しました: %s", run_dir)
    return run_dir
