"""
テスト共通フィクスチャ — 記録対象・アーティファクト取得のテストダブル

ブラウザを起動せずに記録セッションを検証するため、
RecordingTarget / TargetHandle / ArtifactCapture の偽実装を提供する。
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

import pytest

from tpilot.errors import CaptureFailed, TargetUnavailable
from tpilot.recording.models import RecordedStep, SelectorHint


# ---------------------------------------------------------------------------
# 記録対象のテストダブル
# ---------------------------------------------------------------------------

class FakeHandle:
    """テスト用の記録対象ハンドル。

    emit() でページ側からのメッセージ送信を、
    close() で利用者によるウィンドウクローズを模擬する。
    """

    def __init__(
        self,
        url: str,
        script: Sequence[Any] = (),
        close_after_script: bool = False,
    ) -> None:
        self.url = url
        self.page = None
        self.script = list(script)
        self.close_after_script = close_after_script
        self.message_callbacks: list[Callable[..., Any]] = []
        self.close_callbacks: list[Callable[[], None]] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def on_message(self, callback: Callable[..., Any]) -> None:
        self.message_callbacks.append(callback)

    def on_close(self, callback: Callable[[], None]) -> None:
        self.close_callbacks.append(callback)

    def emit(self, raw: Any, **metadata: Any) -> list[Any]:
        """登録済みコールバックにメッセージを配信する。"""
        if self._closed:
            return []
        return [cb(raw, **metadata) for cb in list(self.message_callbacks)]

    def close(self) -> None:
        """外部クローズを模擬する（コールバックは 1 回だけ呼ぶ）。"""
        if self._closed:
            return
        self._closed = True
        for cb in list(self.close_callbacks):
            cb()

    def play(self) -> None:
        """script のメッセージを順に送信し、必要ならクローズする。"""
        for raw in self.script:
            self.emit(raw, frame_url=self.url)
        if self.close_after_script:
            self.close()


class FakeTarget:
    """テスト用の記録対象バックエンド。

    Attributes:
        handles: open() で生成したハンドル
        released: close() で解放したハンドル
    """

    def __init__(
        self,
        *,
        fail: bool = False,
        script: Sequence[Any] = (),
        close_after_script: bool = False,
        open_delay: float = 0.0,
        close_error: Optional[Exception] = None,
    ) -> None:
        self.fail = fail
        self.script = list(script)
        self.close_after_script = close_after_script
        self.open_delay = open_delay
        self.close_error = close_error
        self.handles: list[FakeHandle] = []
        self.released: list[FakeHandle] = []

    @property
    def last_handle(self) -> FakeHandle:
        return self.handles[-1]

    async def open(self, url: str) -> FakeHandle:
        if self.open_delay:
            await asyncio.sleep(self.open_delay)
        if self.fail:
            raise TargetUnavailable(url, "ポップアップがブロックされました")

        handle = FakeHandle(url, self.script, self.close_after_script)
        self.handles.append(handle)
        if self.script or self.close_after_script:
            # 購読登録の後に送信されるよう次のループ周回で再生する
            asyncio.get_running_loop().call_soon(handle.play)
        return handle

    async def close(self, handle: FakeHandle) -> None:
        self.released.append(handle)
        handle._closed = True
        if self.close_error is not None:
            raise self.close_error


# ---------------------------------------------------------------------------
# アーティファクト取得のテストダブル
# ---------------------------------------------------------------------------

class SequenceCapture:
    """連番の参照を返すキャプチャ。delays で完了時間を変えられる。"""

    def __init__(self, delays: Sequence[float] = ()) -> None:
        self.delays = list(delays)
        self.calls = 0

    async def capture(self) -> str:
        index = self.calls
        self.calls += 1
        if index < len(self.delays):
            await asyncio.sleep(self.delays[index])
        return f"shot-{index:04d}"


class FailingCapture:
    """常に CaptureFailed を送出するキャプチャ。"""

    async def capture(self) -> str:
        raise CaptureFailed("ページが閉じられています")


class BrokenCapture:
    """想定外の例外を送出するキャプチャ。"""

    async def capture(self) -> str:
        raise RuntimeError("boom")


class HangingCapture:
    """完了しないキャプチャ（タイムアウト検証用）。"""

    async def capture(self) -> str:
        await asyncio.sleep(3600)
        return "never"


# ---------------------------------------------------------------------------
# pytest フィクスチャ
# ---------------------------------------------------------------------------

@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """一時ディレクトリを提供する pytest フィクスチャ。"""
    return tmp_path


@pytest.fixture
def fake_target() -> FakeTarget:
    """メッセージを自動送信しない記録対象。"""
    return FakeTarget()


@pytest.fixture
def make_target() -> Callable[..., FakeTarget]:
    """オプション付きで FakeTarget を生成するファクトリ。"""
    return FakeTarget


@pytest.fixture
def make_capture() -> Callable[..., Any]:
    """種別を指定してキャプチャを生成するファクトリ。

    種別: ok / fail / broken / hang
    """

    def _make(kind: str = "ok", delays: Sequence[float] = ()) -> Any:
        if kind == "fail":
            return FailingCapture()
        if kind == "broken":
            return BrokenCapture()
        if kind == "hang":
            return HangingCapture()
        return SequenceCapture(delays)

    return _make


@pytest.fixture
def sample_steps() -> list[RecordedStep]:
    """button@100 → link@250 のステップ列（セレクタヒントなし）。"""
    return [
        RecordedStep(action="button", timestamp=100),
        RecordedStep(action="link", timestamp=250),
    ]


@pytest.fixture
def rich_steps() -> list[RecordedStep]:
    """全イベント種別・セレクタ種別を含むステップ列。"""
    return [
        RecordedStep(
            action="input", timestamp=1000, event="fill", value="alice@example.com",
            selector=SelectorHint(type="placeholder", value="Email"),
        ),
        RecordedStep(
            action="input", timestamp=1100, event="press", value="Enter",
            selector=SelectorHint(type="placeholder", value="Email"),
        ),
        RecordedStep(
            action="button", timestamp=1200,
            selector=SelectorHint(type="role", role="button", name="Sign in"),
        ),
        RecordedStep(
            action="div", timestamp=1300, event="dblclick",
            selector=SelectorHint(type="testId", value="row-1"),
        ),
        RecordedStep(
            action="a", timestamp=1400,
            selector=SelectorHint(type="css", value="#nav > a:nth-of-type(2)"),
        ),
    ]
