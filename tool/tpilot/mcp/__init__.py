"""
TestPilot MCP Server パッケージ

AI エージェントから記録の開始・停止・参照・スクリプト生成を行う
MCP (Model Context Protocol) サーバーを提供する。

主な構成:
  - server: FastMCP サーバー本体（記録の開始・停止）
  - tools: 参照・コンパイル系ツール（steps, cursor, compile, dialects）
"""

from __future__ import annotations


def create_server(config=None, controller=None):  # type: ignore[no-untyped-def]
    """TestPilot MCP サーバーを生成する（遅延インポート）。

    `python -m tpilot.mcp.server` 実行時の RuntimeWarning を回避するため、
    server モジュールの import をここで遅延させる。

    Args:
        config: RecorderConfig インスタンス（None で環境変数から読み込み）
        controller: RecordingController インスタンス（None で Playwright を使用）

    Returns:
        設定済みの FastMCP サーバーインスタンス
    """
    from .server import create_server as _create
    return _create(config=config, controller=controller)


__all__ = [
    "create_server",
]
