"""
TestPilot MCP Server — ブラウザ操作の記録 + テストスクリプト生成サーバー

FastMCP を使用して、AI エージェントから記録セッションを制御し、
記録したステップ列をテストスクリプトに変換する MCP サーバーを提供する。

ツール定義は以下のモジュールに分離:
  - tools: 参照・コンパイル系ツール（steps, cursor, compile, dialects）

本モジュールはサーバー生成と記録のライフサイクル（start, stop）を担当する。
"""

from __future__ import annotations

import logging
from typing import Optional

from fastmcp import FastMCP

from ..config import RecorderConfig, load_config_from_env
from ..drivers.playwright_target import PlaywrightTarget
from ..errors import TestPilotError
from ..recording.controller import RecordingController
from .tools import register_inspection_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "testpilot-recorder"


def create_server(
    config: Optional[RecorderConfig] = None,
    controller: Optional[RecordingController] = None,
) -> FastMCP:
    """TestPilot MCP サーバーを生成する。

    Args:
        config: レコーダー設定。None の場合は環境変数から読み込む。
        controller: 記録コントローラ。None の場合は Playwright で記録する。

    Returns:
        設定済みの FastMCP サーバーインスタンス
    """
    if controller is None:
        if config is None:
            config = load_config_from_env()
        controller = RecordingController(PlaywrightTarget(config), config=config)

    mcp = FastMCP(SERVER_NAME)

    # -------------------------------------------------------------------
    # ライフサイクルツール（start / stop）
    # -------------------------------------------------------------------

    @mcp.tool
    async def tp_start_recording(url: str) -> str:
        """Open a browser at the URL and start recording user interactions.

        Args:
            url: The http(s) or file URL to record against

        Returns:
            Status message
        """
        try:
            await controller.start_recording(url)
        except TestPilotError as exc:
            logger.info("記録を開始できませんでした: %s", exc)
            return f"Error: {exc}"

        return (
            f"Recording started at {url}.\n"
            "Interact with the page, then close the browser window "
            "or call tp_stop_recording."
        )

    @mcp.tool
    async def tp_stop_recording() -> str:
        """Stop the active recording and seal the recorded steps.

        Returns:
            Status message with the number of recorded steps
        """
        was_recording = controller.is_recording
        sequence = await controller.stop_recording()
        if sequence is None:
            return "No recording to stop."

        session = controller.session
        reason = session.stop_reason if session is not None else None
        prefix = "Recording stopped" if was_recording else "Recording already stopped"
        return f"{prefix} (reason={reason}). {len(sequence)} steps recorded."

    # -------------------------------------------------------------------
    # 参照・コンパイル系ツール（別ファイルから登録）
    # -------------------------------------------------------------------
    register_inspection_tools(mcp, controller)

    return mcp


# ---------------------------------------------------------------------------
# エントリポイント（直接実行用）
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    from ..config import apply_cli_args, build_cli_parser, configure_logging

    parser = build_cli_parser()
    args = parser.parse_args()

    srv_config = load_config_from_env()
    srv_config = apply_cli_args(srv_config, args)
    configure_logging(srv_config.log_level)

    server = create_server(config=srv_config)
    server.run()
