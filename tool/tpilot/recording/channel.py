"""
EventChannelAdapter — 記録対象からのイベントを検証・直列化する

記録対象（別ウィンドウ・別コンテキスト）から届く生メッセージを
ChannelMessage として検証し、受理したものだけを単一ライタータスクの
キューに積む。ライターはキュー順にアーティファクトを取得してから
StepStore に追加するため、キャプチャの完了順が前後しても
ストアへの追加順は常に配送順と一致する。

  - 不正なメッセージは破棄してログに残す（記録は中断しない）
  - キャプチャ失敗は "unavailable" センチネルに縮退する
  - deliver() は同期・非ブロッキング
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from pydantic import ValidationError

from ..core.artifacts import ARTIFACT_UNAVAILABLE, ArtifactCapture, NullCapture
from ..errors import CaptureFailed, StoreSealed
from .models import ChannelMessage, parse_channel_message
from .store import StepStore

logger = logging.getLogger(__name__)


def _describe_error(exc: ValueError) -> str:
    """ログ出力用にバリデーションエラーを 1 行に要約する。"""
    if isinstance(exc, ValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            loc = ".".join(str(p) for p in first.get("loc", ())) or "<root>"
            return f"{loc}: {first.get('msg', '')} ({exc.error_count()} 件)"
    return str(exc).splitlines()[0] if str(exc) else type(exc).__name__


class EventChannelAdapter:
    """Event Channel の受信口。

    attach() で受理を開始し、detach() で受理を止めて
    キュー内の受理済みイベントを全て書き出す。

    Attributes:
        accepted: 受理したメッセージ数
        dropped: 破棄したメッセージ数（不正形式・未接続時）
        degraded: アーティファクト取得に失敗したステップ数
    """

    def __init__(
        self,
        store: StepStore,
        capture: Optional[ArtifactCapture] = None,
        *,
        capture_timeout: Optional[float] = None,
    ) -> None:
        """アダプタを初期化する。

        Args:
            store: 書き込み先の StepStore
            capture: アーティファクト取得コラボレータ（None で取得しない）
            capture_timeout: 1 回のキャプチャのタイムアウト秒数（None で無制限）
        """
        self._store = store
        self._capture: ArtifactCapture = capture if capture is not None else NullCapture()
        self._capture_timeout = capture_timeout
        self._queue: Optional[asyncio.Queue[Optional[ChannelMessage]]] = None
        self._writer: Optional[asyncio.Task[None]] = None
        self._accepting = False

        self.accepted = 0
        self.dropped = 0
        self.degraded = 0

    @property
    def attached(self) -> bool:
        """メッセージを受理中かどうかを返す。"""
        return self._accepting

    @property
    def pending(self) -> int:
        """書き出し待ちのメッセージ数を返す。"""
        return self._queue.qsize() if self._queue is not None else 0

    # ----- 接続・切断 -----

    def attach(self) -> None:
        """ライタータスクを起動し、メッセージの受理を開始する。

        実行中のイベントループ内で呼ぶ必要がある。

        Raises:
            RuntimeError: 既に接続済みの場合
        """
        if self._writer is not None:
            raise RuntimeError("EventChannelAdapter は既に接続済みです")

        self._queue = asyncio.Queue()
        self._writer = asyncio.get_running_loop().create_task(self._write_loop())
        self._accepting = True
        logger.debug("イベントチャネルを接続しました")

    async def detach(self) -> None:
        """受理を停止し、受理済みメッセージを全て書き出してから終了する。"""
        if self._writer is None or self._queue is None:
            self._accepting = False
            return

        self._accepting = False
        # 終端マーカー: ここまでに積まれた分を書き出してライターを止める
        self._queue.put_nowait(None)
        writer, self._writer = self._writer, None
        await writer

        logger.info(
            "イベントチャネルを切断しました (受理=%d, 破棄=%d, 縮退=%d)",
            self.accepted, self.dropped, self.degraded,
        )

    # ----- 受信 -----

    def deliver(self, raw: Any, **metadata: Any) -> bool:
        """生メッセージを受け取り、検証に通れば書き込みキューに積む。

        不正なメッセージや未接続時のメッセージは例外を出さずに破棄する。

        Args:
            raw: 受信メッセージ（辞書または JSON 文字列）
            **metadata: チャネル固有のメタ情報（送信元フレーム URL 等）

        Returns:
            受理した場合は True
        """
        if not self._accepting or self._queue is None:
            self.dropped += 1
            logger.debug("記録中でないためメッセージを破棄しました")
            return False

        try:
            message = parse_channel_message(raw)
        except ValueError as exc:
            self.dropped += 1
            logger.warning("不正なメッセージを破棄しました: %s", _describe_error(exc))
            return False

        self._queue.put_nowait(message)
        self.accepted += 1
        logger.debug(
            "メッセージを受理しました: %s %s %s",
            message.event, message.action, metadata or "",
        )
        return True

    # ----- ライター -----

    async def _write_loop(self) -> None:
        """キュー順にキャプチャ → ストア追加を 1 件ずつ実行する。"""
        assert self._queue is not None
        queue = self._queue

        while True:
            message = await queue.get()
            if message is None:
                break

            artifact = await self._capture_artifact()
            try:
                step = self._store.append(message.to_step(artifact))
            except StoreSealed:
                logger.error("封印済みストアへの追加を破棄しました: %s", message.action)
                continue

            logger.debug("ステップを追加しました: #%d %s", len(self._store) - 1, step.action)

    async def _capture_artifact(self) -> str:
        """アーティファクトを取得する。失敗時はセンチネル値を返す。"""
        try:
            if self._capture_timeout is None:
                return await self._capture.capture()
            return await asyncio.wait_for(self._capture.capture(), self._capture_timeout)
        except CaptureFailed as exc:
            logger.warning("アーティファクト取得に失敗しました: %s", exc)
        except asyncio.TimeoutError:
            logger.warning(
                "アーティファクト取得がタイムアウトしました (%.1f 秒)",
                self._capture_timeout,
            )
        except Exception:
            logger.warning("アーティファクト取得中に予期しないエラーが発生しました", exc_info=True)

        self.degraded += 1
        return ARTIFACT_UNAVAILABLE
