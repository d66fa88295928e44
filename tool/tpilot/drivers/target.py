"""
記録対象インターフェース — 記録対象の開閉とイベント通知

記録セッションはブラウザ自動化バックエンドに依存せず、
この Protocol を満たす任意の記録対象を扱う。
"""

from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable

MessageCallback = Callable[..., Any]
"""生メッセージ受信時のコールバック。callback(raw, **metadata)。"""

CloseCallback = Callable[[], Any]
"""記録対象が外部から閉じられた時のコールバック。"""


@runtime_checkable
class TargetHandle(Protocol):
    """開いている記録対象へのハンドル。

    記録セッションが排他的に所有し、停止時に解放する。
    """

    url: str

    @property
    def closed(self) -> bool:
        """記録対象が閉じられているかどうか。"""
        ...

    def on_message(self, callback: MessageCallback) -> None:
        """生メッセージの受信コールバックを登録する。"""
        ...

    def on_close(self, callback: CloseCallback) -> None:
        """外部クローズ検知のコールバックを登録する（1 回だけ呼ばれる）。"""
        ...


@runtime_checkable
class RecordingTarget(Protocol):
    """記録対象の開閉を担当するバックエンド。"""

    async def open(self, url: str) -> TargetHandle:
        """URL を開いた記録対象を返す。

        Raises:
            TargetUnavailable: 記録対象を開けない場合
        """
        ...

    async def close(self, handle: TargetHandle) -> None:
        """記録対象を閉じる。閉じ済みの場合は何もしない。"""
        ...
