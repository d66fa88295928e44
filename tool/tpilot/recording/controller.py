"""
RecordingController — 記録セッションの制御面

CLI・MCP サーバーなどの外側の層が使う操作をまとめる。

  - start_recording(url): 新しいセッションで記録を開始
  - stop_recording(): 記録を停止（冪等）
  - get_steps(): 直近のステップ列（記録中はその時点のスナップショット）
  - set_cursor(index): ステップ単位のタイムトラベル
  - compile(dialect): 封印済みステップ列からスクリプトを生成

記録中のセッションは常に高々 1 つ。記録中の再開始は RecordingInProgress で拒否する。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence

from ..compiler import DialectInfo, DialectRegistry, GeneratedScript, ScriptCompiler, registry_for
from ..config import RecorderConfig
from ..core.artifacts import ArtifactCapture, NullCapture, ScreenshotCapture, create_run_dir
from ..drivers.target import RecordingTarget, TargetHandle
from ..errors import NoRecording, RecordingInProgress
from .models import RecordedStep, StepSequence
from .session import CaptureFactory, RecordingSession, StopHook, log_step_summary

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# デフォルトのアーティファクト取得
# ---------------------------------------------------------------------------

def screenshot_capture_factory(config: RecorderConfig) -> CaptureFactory:
    """設定に従ってスクリーンショット取得を生成する関数を返す。

    screenshot_mode が none の場合、または記録対象が Page を
    持たない場合は NullCapture を使う。

    Args:
        config: レコーダー設定

    Returns:
        記録対象ハンドルを受け取り ArtifactCapture を返す関数
    """

    def factory(handle: TargetHandle) -> ArtifactCapture:
        page = getattr(handle, "page", None)
        if config.screenshot_mode == "none" or page is None:
            return NullCapture()

        run_dir = create_run_dir(Path(config.artifacts_dir))
        return ScreenshotCapture(
            page=page,
            output_dir=run_dir / "screenshots",
            format=config.screenshot_format,
            quality=config.screenshot_quality,
        )

    return factory


# ---------------------------------------------------------------------------
# RecordingController 本体
# ---------------------------------------------------------------------------

class RecordingController:
    """記録セッションを 1 つずつ管理するコントローラ。

    使用例::

        controller = RecordingController(PlaywrightTarget(config), config=config)
        await controller.start_recording("https://example.com")
        ...
        await controller.stop_recording()
        script = controller.compile("javascript")
    """

    def __init__(
        self,
        target: RecordingTarget,
        *,
        config: Optional[RecorderConfig] = None,
        capture_factory: Optional[CaptureFactory] = None,
        registry: Optional[DialectRegistry] = None,
        hooks: Optional[Sequence[StopHook]] = None,
    ) -> None:
        """コントローラを初期化する。

        Args:
            target: 記録対象バックエンド
            config: レコーダー設定（None でデフォルト）
            capture_factory: アーティファクト取得の生成関数（None で設定に従う）
            registry: 方言レジストリ（None で標準方言）
            hooks: 記録停止後フック（None でステップ概要のログ出力）
        """
        self.config = config if config is not None else RecorderConfig()
        self._target = target
        self._capture_factory = (
            capture_factory if capture_factory is not None
            else screenshot_capture_factory(self.config)
        )
        self._compiler = ScriptCompiler(
            registry if registry is not None else registry_for(self.config)
        )
        self._hooks: list[StopHook] = list(hooks) if hooks is not None else [log_step_summary]

        self._session: Optional[RecordingSession] = None
        self._starting = False

    # ----- 状態 -----

    @property
    def session(self) -> Optional[RecordingSession]:
        """直近のセッションを返す。未記録の場合は None。"""
        return self._session

    @property
    def is_recording(self) -> bool:
        """記録中かどうかを返す。"""
        return self._session is not None and self._session.is_recording

    @property
    def registry(self) -> DialectRegistry:
        """方言レジストリを返す。"""
        return self._compiler.registry

    # ----- 記録 -----

    async def start_recording(self, url: str) -> RecordingSession:
        """新しいセッションを生成して記録を開始する。

        開始に成功した時点で前回のセッションは破棄される。
        失敗した場合は前回のセッションとステップ列がそのまま残る。

        Args:
            url: 記録対象 URL

        Returns:
            記録中のセッション

        Raises:
            RecordingInProgress: 既に記録中・開始処理中の場合
            InvalidTarget: URL が空・不正な場合
            TargetUnavailable: 記録対象を開けない場合
        """
        if self._starting or self.is_recording:
            raise RecordingInProgress(
                "既に記録中です。先に stop_recording() を呼んでください。"
            )

        session = RecordingSession(
            url,
            self._target,
            capture_factory=self._capture_factory,
            capture_timeout=self.config.capture_timeout,
            hooks=self._hooks,
        )

        self._starting = True
        try:
            await session.start()
        finally:
            self._starting = False

        self._session = session
        return session

    async def stop_recording(self, reason: str = "requested") -> Optional[StepSequence]:
        """記録を停止し、封印済みステップ列を返す。

        記録中でない場合は何もしない。停止済みの場合は同じステップ列を返す。

        Returns:
            封印済みステップ列。記録が一度もない場合は None
        """
        if self._session is None:
            logger.debug("記録がないため stop_recording() を無視しました")
            return None
        return await self._session.stop(reason)

    # ----- 参照 -----

    def get_steps(self) -> StepSequence:
        """直近のステップ列を返す。

        停止済みなら封印済みステップ列、記録中ならその時点のスナップショット。

        Raises:
            NoRecording: 記録が一度もない場合
        """
        session = self._session
        if session is None:
            raise NoRecording()
        if session.steps is not None:
            return session.steps
        if session.store is not None:
            return session.store.snapshot()
        raise NoRecording()

    def set_cursor(self, index: int) -> RecordedStep:
        """直近のステップ列の読み取りカーソルを移動する。

        Args:
            index: 0 始まりのインデックス

        Returns:
            カーソル位置のステップ

        Raises:
            NoRecording: 記録が一度もない場合
            IndexOutOfRange: index が範囲外の場合
        """
        session = self._session
        if session is None or session.store is None:
            raise NoRecording()
        return session.store.set_cursor(index)

    # ----- コンパイル -----

    def compile(self, dialect: Optional[str] = None) -> GeneratedScript:
        """封印済みステップ列をスクリプトに変換する。

        失敗してもステップ列は変更されず、別の方言で再試行できる。

        Args:
            dialect: 方言名（None で設定のデフォルト方言）

        Returns:
            生成結果

        Raises:
            NoRecording: 記録が一度もない場合
            RecordingInProgress: 記録中の場合
            UnsupportedDialect: 未登録の方言の場合
        """
        session = self._session
        if session is None:
            raise NoRecording()
        if session.is_recording:
            raise RecordingInProgress(
                "記録中はコンパイルできません。先に stop_recording() を呼んでください。"
            )
        steps = session.steps
        if steps is None:
            raise NoRecording()

        return self._compiler.compile(steps, steps.target_url, dialect or self.config.dialect)

    def list_dialects(self) -> list[DialectInfo]:
        """登録済み方言のメタ情報を返す。"""
        return self.registry.list_all()
