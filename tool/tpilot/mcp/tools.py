"""
参照・コンパイル系ツール — ステップ列の参照・タイムトラベル・スクリプト生成

MCP サーバーに登録する記録結果の参照ツールを定義する。

主なツール:
  - tp_get_steps: 記録済みステップ列（記録中はスナップショット）
  - tp_set_cursor: 指定ステップへのカーソル移動
  - tp_compile: テストスクリプト生成
  - tp_list_dialects: 対応方言の一覧
"""

from __future__ import annotations

import json
import logging
from typing import Optional

from fastmcp import FastMCP

from ..errors import TestPilotError
from ..recording.controller import RecordingController

logger = logging.getLogger(__name__)


def register_inspection_tools(mcp: FastMCP, controller: RecordingController) -> None:
    """参照・コンパイル系ツールを MCP サーバーに登録する。

    Args:
        mcp: FastMCP サーバーインスタンス
        controller: 記録コントローラ
    """

    @mcp.tool
    async def tp_get_steps() -> str:
        """Return the recorded steps as JSON.

        While recording, returns a snapshot of the steps received so far.

        Returns:
            JSON text {"targetUrl": ..., "steps": [...]}
        """
        try:
            sequence = controller.get_steps()
        except TestPilotError as exc:
            return f"Error: {exc}"

        return json.dumps(sequence.to_dict(), ensure_ascii=False, indent=2)

    @mcp.tool
    async def tp_set_cursor(index: int) -> str:
        """Move the inspection cursor to a recorded step (time travel).

        Args:
            index: Zero-based step index

        Returns:
            The step at the cursor as JSON
        """
        try:
            step = controller.set_cursor(index)
            total = len(controller.get_steps())
        except TestPilotError as exc:
            return f"Error: {exc}"

        body = json.dumps(
            step.model_dump(mode="json", exclude_none=True),
            ensure_ascii=False,
            indent=2,
        )
        return f"Step {index + 1}/{total}:\n{body}"

    @mcp.tool
    async def tp_compile(dialect: Optional[str] = None) -> str:
        """Compile the recorded steps into a test script.

        Args:
            dialect: Script dialect (see tp_list_dialects). None uses server config.

        Returns:
            Source text of the generated script
        """
        try:
            script = controller.compile(dialect)
        except TestPilotError as exc:
            return f"Error: {exc}"

        return script.source_text

    @mcp.tool
    async def tp_list_dialects() -> str:
        """List the available script dialects.

        Returns:
            One dialect per line
        """
        lines = [
            f"{info.name}: {info.description} ({info.framework}, *{info.file_suffix})"
            for info in controller.list_dialects()
        ]
        return "\n".join(lines)
