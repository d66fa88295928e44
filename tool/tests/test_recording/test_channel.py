"""
EventChannelAdapter のテスト

不正メッセージの破棄、受理順の保持（キャプチャ完了順に依存しない）、
キャプチャ失敗時のセンチネル、detach() での書き出しを検証する。
"""

from __future__ import annotations

import asyncio

import pytest

from tpilot.recording.channel import EventChannelAdapter
from tpilot.recording.store import StepStore

URL = "https://example.com"


async def _drain(adapter: EventChannelAdapter) -> None:
    """受理済みメッセージを書き出して切断する。"""
    await adapter.detach()


# ---------------------------------------------------------------------------
# 受理・破棄
# ---------------------------------------------------------------------------

class TestDeliver:
    """deliver() のテスト。"""

    @pytest.mark.asyncio
    async def test_valid_message_is_appended(self):
        """有効なメッセージがストアに追加されること。"""
        store = StepStore(URL)
        adapter = EventChannelAdapter(store)
        adapter.attach()

        assert adapter.deliver({"action": "button", "timestamp": 100}) is True
        await _drain(adapter)

        assert [(s.action, s.timestamp) for s in store] == [("button", 100)]
        assert adapter.accepted == 1

    @pytest.mark.asyncio
    async def test_malformed_messages_are_dropped(self, caplog):
        """不正なメッセージは例外を出さずに破棄され、記録は続くこと。"""
        store = StepStore(URL)
        adapter = EventChannelAdapter(store)
        adapter.attach()

        assert adapter.deliver({"action": "button", "timestamp": 100}) is True
        assert adapter.deliver({"action": "", "timestamp": 1}) is False
        assert adapter.deliver({"action": "link", "timestamp": "soon"}) is False
        assert adapter.deliver("not json") is False
        assert adapter.deliver(None) is False
        assert adapter.deliver({"action": "link", "timestamp": 250}) is True
        await _drain(adapter)

        assert [s.action for s in store] == ["button", "link"]
        assert adapter.dropped == 4
        assert "不正なメッセージを破棄しました" in caplog.text

    @pytest.mark.asyncio
    async def test_metadata_is_accepted(self):
        """チャネル固有のメタ情報を受け取れること。"""
        store = StepStore(URL)
        adapter = EventChannelAdapter(store)
        adapter.attach()

        assert adapter.deliver({"action": "a", "timestamp": 1}, frame_url=URL) is True
        await _drain(adapter)
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_not_attached_drops(self):
        """接続前・切断後のメッセージは破棄されること。"""
        store = StepStore(URL)
        adapter = EventChannelAdapter(store)

        assert adapter.deliver({"action": "button", "timestamp": 1}) is False

        adapter.attach()
        await adapter.detach()
        assert adapter.deliver({"action": "button", "timestamp": 2}) is False
        assert len(store) == 0
        assert adapter.dropped == 2

    @pytest.mark.asyncio
    async def test_double_attach_fails(self):
        """二重接続は RuntimeError になること。"""
        adapter = EventChannelAdapter(StepStore(URL))
        adapter.attach()
        with pytest.raises(RuntimeError):
            adapter.attach()
        await adapter.detach()


# ---------------------------------------------------------------------------
# 順序
# ---------------------------------------------------------------------------

class TestOrdering:
    """受理順の保持のテスト。"""

    @pytest.mark.asyncio
    async def test_out_of_order_capture_keeps_delivery_order(self, make_capture):
        """キャプチャが逆順に完了しても受理順に追加されること。"""
        store = StepStore(URL)
        capture = make_capture("ok", delays=[0.05, 0.0, 0.02])
        adapter = EventChannelAdapter(store, capture)
        adapter.attach()

        for i, action in enumerate(["first", "second", "third"]):
            adapter.deliver({"action": action, "timestamp": i})
        await _drain(adapter)

        assert [s.action for s in store] == ["first", "second", "third"]
        assert [s.artifact for s in store] == ["shot-0000", "shot-0001", "shot-0002"]

    @pytest.mark.asyncio
    async def test_delivery_order_wins_over_timestamp(self):
        """到着順を正とし、timestamp の逆転は補正されること。"""
        store = StepStore(URL)
        adapter = EventChannelAdapter(store)
        adapter.attach()

        adapter.deliver({"action": "late", "timestamp": 500})
        adapter.deliver({"action": "early", "timestamp": 100})
        await _drain(adapter)

        assert [s.action for s in store] == ["late", "early"]
        assert [s.timestamp for s in store] == [500, 500]

    @pytest.mark.asyncio
    async def test_detach_flushes_pending(self, make_capture):
        """detach() は受理済みの全メッセージを書き出してから戻ること。"""
        store = StepStore(URL)
        adapter = EventChannelAdapter(store, make_capture("ok", delays=[0.01] * 5))
        adapter.attach()

        for i in range(5):
            adapter.deliver({"action": "button", "timestamp": i})
        assert adapter.pending == 5

        await adapter.detach()
        assert len(store) == 5
        assert adapter.pending == 0


# ---------------------------------------------------------------------------
# アーティファクト取得
# ---------------------------------------------------------------------------

class TestCapture:
    """キャプチャ失敗時の縮退のテスト。"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", ["fail", "broken"])
    async def test_failure_degrades_to_sentinel(self, make_capture, kind):
        """キャプチャに失敗してもステップは追加され、参照は unavailable になること。"""
        store = StepStore(URL)
        adapter = EventChannelAdapter(store, make_capture(kind))
        adapter.attach()

        adapter.deliver({"action": "button", "timestamp": 100})
        await _drain(adapter)

        assert [s.artifact for s in store] == ["unavailable"]
        assert adapter.degraded == 1

    @pytest.mark.asyncio
    async def test_timeout_degrades_to_sentinel(self, make_capture):
        """キャプチャがタイムアウトした場合も unavailable になること。"""
        store = StepStore(URL)
        adapter = EventChannelAdapter(store, make_capture("hang"), capture_timeout=0.01)
        adapter.attach()

        adapter.deliver({"action": "button", "timestamp": 100})
        await asyncio.wait_for(_drain(adapter), timeout=5)

        assert [s.artifact for s in store] == ["unavailable"]
        assert adapter.degraded == 1

    @pytest.mark.asyncio
    async def test_no_capture_uses_sentinel(self):
        """キャプチャ未指定の場合は unavailable になること。"""
        store = StepStore(URL)
        adapter = EventChannelAdapter(store)
        adapter.attach()

        adapter.deliver({"action": "button", "timestamp": 100})
        await _drain(adapter)

        assert store.seal()[0].artifact == "unavailable"
        assert adapter.degraded == 0
