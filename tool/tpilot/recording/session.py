"""
RecordingSession — 記録セッションのライフサイクル管理

1 つの記録対象の生成から解放までを所有し、
記録中（RECORDING）の間だけイベントを受理する状態機械。

状態遷移:
  IDLE ──start()──▶ RECORDING ──stop() / 外部クローズ──▶ STOPPED

  - STOPPED は終端状態。再記録には新しいセッションを生成する
  - IDLE での stop() は何もしない（状態も IDLE のまま）
  - 記録対象を開けない場合は IDLE のまま TargetUnavailable を送出する
"""

from __future__ import annotations

import asyncio
import enum
import inspect
import logging
from collections import Counter
from typing import Any, Callable, Optional, Sequence

from ..core.artifacts import ArtifactCapture
from ..drivers.target import RecordingTarget, TargetHandle
from ..errors import RecordingInProgress, TestPilotError
from .channel import EventChannelAdapter
from .models import StepSequence, validate_target_url
from .store import StepStore

logger = logging.getLogger(__name__)

StopHook = Callable[[StepSequence], Any]
"""記録停止後に呼ばれるフック。同期関数・コルーチン関数のどちらでもよい。"""

CaptureFactory = Callable[[TargetHandle], Optional[ArtifactCapture]]
"""開いた記録対象からアーティファクト取得コラボレータを生成する関数。"""


# ---------------------------------------------------------------------------
# セッション状態
# ---------------------------------------------------------------------------

class SessionState(enum.Enum):
    """記録セッションの状態。"""

    IDLE = "idle"
    RECORDING = "recording"
    STOPPED = "stopped"


# ---------------------------------------------------------------------------
# 記録後フック
# ---------------------------------------------------------------------------

def log_step_summary(sequence: StepSequence) -> None:
    """記録結果の概要をログに出力する。

    記録後解析の差し込み口のデフォルト実装。
    """
    counts = Counter(step.event for step in sequence)
    breakdown = ", ".join(f"{event}={count}" for event, count in sorted(counts.items()))
    logger.info(
        "記録結果: %s に対して %d ステップ (%s)",
        sequence.target_url, len(sequence), breakdown or "操作なし",
    )


# ---------------------------------------------------------------------------
# RecordingSession 本体
# ---------------------------------------------------------------------------

class RecordingSession:
    """1 回の記録を表すセッション。

    記録対象ハンドル・StepStore・EventChannelAdapter を排他的に所有する。

    使用例::

        session = RecordingSession("https://example.com", PlaywrightTarget())
        await session.start()
        ...
        sequence = await session.stop()
    """

    def __init__(
        self,
        target_url: str,
        target: RecordingTarget,
        *,
        capture_factory: Optional[CaptureFactory] = None,
        capture_timeout: Optional[float] = None,
        hooks: Sequence[StopHook] = (),
    ) -> None:
        """セッションを初期化する（この時点では記録対象を開かない）。

        Args:
            target_url: 記録対象 URL
            target: 記録対象バックエンド
            capture_factory: アーティファクト取得コラボレータの生成関数
            capture_timeout: 1 回のキャプチャのタイムアウト秒数
            hooks: 記録停止後に呼ぶフックのリスト
        """
        self.target_url = target_url
        self.stop_reason: Optional[str] = None

        self._target = target
        self._capture_factory = capture_factory
        self._capture_timeout = capture_timeout
        self._hooks: list[StopHook] = list(hooks)

        self._state: SessionState = SessionState.IDLE
        self._starting = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._handle: Optional[TargetHandle] = None
        self._store: Optional[StepStore] = None
        self._adapter: Optional[EventChannelAdapter] = None
        self._sequence: Optional[StepSequence] = None
        self._stop_task: Optional[asyncio.Task[StepSequence]] = None
        self._stopped = asyncio.Event()

    # ----- 状態 -----

    @property
    def state(self) -> SessionState:
        """現在のセッション状態を返す。"""
        return self._state

    @property
    def is_recording(self) -> bool:
        """記録中かどうかを返す。"""
        return self._state == SessionState.RECORDING

    @property
    def store(self) -> Optional[StepStore]:
        """StepStore を返す。記録開始前は None。"""
        return self._store

    @property
    def adapter(self) -> Optional[EventChannelAdapter]:
        """EventChannelAdapter を返す。記録開始前は None。"""
        return self._adapter

    @property
    def steps(self) -> Optional[StepSequence]:
        """封印済みステップ列を返す。停止前は None。"""
        return self._sequence

    # ----- 開始 -----

    async def start(self) -> None:
        """記録対象を開き、イベントの受理を開始する。

        Raises:
            InvalidTarget: URL が空・不正な場合
            TargetUnavailable: 記録対象を開けない場合（状態は IDLE のまま）
            RecordingInProgress: 既に記録中・開始処理中の場合
            TestPilotError: 停止済みセッションを再開しようとした場合
        """
        if self._state == SessionState.RECORDING or self._starting:
            raise RecordingInProgress("既に記録中です。先に停止してください。")
        if self._state == SessionState.STOPPED:
            raise TestPilotError(
                "停止済みのセッションは再開できません。"
                "新しいセッションを作成してください。"
            )

        url = validate_target_url(self.target_url)

        self._starting = True
        try:
            handle = await self._target.open(url)
        finally:
            self._starting = False

        self.target_url = url
        self._loop = asyncio.get_running_loop()

        store = StepStore(url)
        adapter = EventChannelAdapter(
            store,
            self._build_capture(handle),
            capture_timeout=self._capture_timeout,
        )
        adapter.attach()

        self._handle = handle
        self._store = store
        self._adapter = adapter
        self._state = SessionState.RECORDING

        handle.on_message(adapter.deliver)
        handle.on_close(self._on_target_closed)
        logger.info("記録を開始しました: %s", url)

        # open() と購読登録の間に閉じられた場合
        if handle.closed:
            self._on_target_closed()

    def _build_capture(self, handle: TargetHandle) -> Optional[ArtifactCapture]:
        """キャプチャコラボレータを生成する。失敗時はキャプチャなしで続行する。"""
        if self._capture_factory is None:
            return None
        try:
            return self._capture_factory(handle)
        except Exception:
            logger.warning("アーティファクト取得の準備に失敗しました（取得なしで続行します）", exc_info=True)
            return None

    # ----- 停止 -----

    async def stop(self, reason: str = "requested") -> Optional[StepSequence]:
        """記録を停止し、封印済みステップ列を返す。

        IDLE では何もせず None を返す。STOPPED では同じステップ列を返す。
        同時に呼ばれた場合は 1 回の停止処理を共有する。

        Args:
            reason: 停止理由（ログ・stop_reason に記録）

        Returns:
            封印済みステップ列。IDLE の場合は None
        """
        if self._state == SessionState.IDLE:
            logger.debug("記録中でないため stop() を無視しました")
            return None
        if self._state == SessionState.STOPPED and self._stop_task is None:
            return self._sequence

        if self._stop_task is None:
            self._stop_task = asyncio.get_running_loop().create_task(self._teardown(reason))
        return await asyncio.shield(self._stop_task)

    async def wait_stopped(self) -> StepSequence:
        """セッションが STOPPED になるまで待機する。

        Returns:
            封印済みステップ列
        """
        await self._stopped.wait()
        assert self._sequence is not None
        return self._sequence

    def _on_target_closed(self) -> None:
        """記録対象の外部クローズを検知し、停止処理を開始する。"""
        if self._state != SessionState.RECORDING or self._stop_task is not None:
            return
        assert self._loop is not None

        logger.info("記録対象が閉じられたため記録を停止します")
        self._stop_task = self._loop.create_task(self._teardown("target_closed"))

    async def _teardown(self, reason: str) -> StepSequence:
        """受理停止 → 書き出し → 封印 → 記録対象の解放 → フック実行。"""
        assert self._adapter is not None and self._store is not None
        logger.info("記録を停止しています... (reason=%s)", reason)

        try:
            await self._adapter.detach()
        except Exception:
            logger.exception("受理済みイベントの書き出し中にエラーが発生しました")

        sequence = self._store.seal()
        self._sequence = sequence
        self.stop_reason = reason

        handle, self._handle = self._handle, None
        if handle is not None:
            try:
                await self._target.close(handle)
            except Exception:
                logger.exception("記録対象の解放中にエラーが発生しました")

        self._state = SessionState.STOPPED
        logger.info("記録を停止しました (%d ステップ, reason=%s)", len(sequence), reason)

        await self._run_hooks(sequence)
        self._stopped.set()
        return sequence

    async def _run_hooks(self, sequence: StepSequence) -> None:
        """記録後フックを順に実行する。失敗はログに残して続行する。"""
        for hook in self._hooks:
            try:
                result = hook(sequence)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "記録後フックの実行中にエラーが発生しました: %s",
                    getattr(hook, "__name__", repr(hook)),
                )
