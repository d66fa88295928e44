"""
Server テスト — MCP サーバーのツール定義・統合テスト

FastMCP のインメモリクライアントでツールを呼び出し、
記録の開始から停止・参照・コンパイルまでの流れを検証する。
ブラウザは起動せず、FakeTarget で代替する。
"""

from __future__ import annotations

import asyncio
import json

import pytest
from fastmcp import Client

from tpilot.config import RecorderConfig
from tpilot.mcp.server import SERVER_NAME, create_server
from tpilot.recording.controller import RecordingController

URL = "https://example.com"

SCRIPT = [
    {"action": "button", "timestamp": 100},
    {"action": "link", "timestamp": 250},
]

EXPECTED_TOOLS = {
    "tp_start_recording",
    "tp_stop_recording",
    "tp_get_steps",
    "tp_set_cursor",
    "tp_compile",
    "tp_list_dialects",
}


def _text(result) -> str:
    """call_tool() の結果からテキストを取り出す。"""
    return result.content[0].text


@pytest.fixture
def controller(make_target) -> RecordingController:
    target = make_target(script=SCRIPT)
    return RecordingController(target, config=RecorderConfig(screenshot_mode="none"))


@pytest.fixture
def server(controller):
    return create_server(controller=controller)


# ---------------------------------------------------------------------------
# サーバー生成
# ---------------------------------------------------------------------------

class TestCreateServer:
    """create_server() のテスト。"""

    def test_server_has_name(self, server):
        """サーバーに名前が設定されていること。"""
        assert server.name == SERVER_NAME

    @pytest.mark.asyncio
    async def test_registers_all_tools(self, server):
        """全ツールが登録されていること。"""
        async with Client(server) as client:
            tools = await client.list_tools()
        assert {t.name for t in tools} == EXPECTED_TOOLS


# ---------------------------------------------------------------------------
# ツール呼び出し
# ---------------------------------------------------------------------------

class TestRecordingTools:
    """記録系ツールの統合テスト。"""

    @pytest.mark.asyncio
    async def test_record_then_compile(self, server, controller):
        """開始 → 操作 → 停止 → コンパイルの一連の流れ。"""
        async with Client(server) as client:
            started = _text(await client.call_tool("tp_start_recording", {"url": URL}))
            assert started.startswith(f"Recording started at {URL}.")

            # FakeHandle の再生と取り込みが終わるまで待つ
            for _ in range(50):
                if len(controller.get_steps()) == 2:
                    break
                await asyncio.sleep(0.01)

            stopped = _text(await client.call_tool("tp_stop_recording", {}))
            assert stopped == "Recording stopped (reason=requested). 2 steps recorded."

            steps = json.loads(_text(await client.call_tool("tp_get_steps", {})))
            assert steps["targetUrl"] == URL
            assert [s["action"] for s in steps["steps"]] == ["button", "link"]

            script = _text(await client.call_tool("tp_compile", {"dialect": "javascript"}))
            assert "cy.visit('https://example.com')" in script
            assert script.index("cy.get('button')") < script.index("cy.get('link')")

    @pytest.mark.asyncio
    async def test_set_cursor(self, server, controller):
        """カーソル移動でステップ位置と内容が返ること。"""
        async with Client(server) as client:
            await client.call_tool("tp_start_recording", {"url": URL})
            for _ in range(50):
                if len(controller.get_steps()) == 2:
                    break
                await asyncio.sleep(0.01)
            await client.call_tool("tp_stop_recording", {})

            text = _text(await client.call_tool("tp_set_cursor", {"index": 1}))
            assert text.startswith("Step 2/2:\n")
            assert json.loads(text.split("\n", 1)[1])["action"] == "link"

            error = _text(await client.call_tool("tp_set_cursor", {"index": 5}))
            assert error.startswith("Error:")

    @pytest.mark.asyncio
    async def test_tools_before_recording(self, server):
        """記録前の参照・停止はエラーメッセージを返すこと。"""
        async with Client(server) as client:
            assert _text(await client.call_tool("tp_stop_recording", {})) == (
                "No recording to stop."
            )
            assert _text(await client.call_tool("tp_get_steps", {})).startswith("Error:")
            assert _text(await client.call_tool("tp_compile", {})).startswith("Error:")

    @pytest.mark.asyncio
    async def test_invalid_url(self, server):
        """不正な URL はエラーメッセージになること。"""
        async with Client(server) as client:
            text = _text(await client.call_tool("tp_start_recording", {"url": "not a url"}))
        assert text.startswith("Error:")

    @pytest.mark.asyncio
    async def test_compile_while_recording(self, server):
        """記録中のコンパイルはエラーメッセージになること。"""
        async with Client(server) as client:
            await client.call_tool("tp_start_recording", {"url": URL})
            text = _text(await client.call_tool("tp_compile", {}))
            await client.call_tool("tp_stop_recording", {})
        assert text.startswith("Error:")

    @pytest.mark.asyncio
    async def test_unknown_dialect(self, server):
        """未登録の方言は登録済み方言を含むエラーになること。"""
        async with Client(server) as client:
            await client.call_tool("tp_start_recording", {"url": URL})
            await client.call_tool("tp_stop_recording", {})
            text = _text(await client.call_tool("tp_compile", {"dialect": "cobol"}))
        assert text.startswith("Error:")
        assert "javascript" in text

    @pytest.mark.asyncio
    async def test_list_dialects(self, server):
        """方言一覧がフレームワークと拡張子付きで返ること。"""
        async with Client(server) as client:
            text = _text(await client.call_tool("tp_list_dialects", {}))
        lines = text.splitlines()
        assert [line.split(":")[0] for line in lines] == [
            "javascript", "playwright-python", "typescript",
        ]
        assert "(cypress, *.cy.ts)" in lines[2]
