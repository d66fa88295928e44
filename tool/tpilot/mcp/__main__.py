"""
TestPilot MCP Server CLI エントリポイント

python -m tpilot.mcp で MCP サーバーを起動する。
CLI 引数と環境変数でサーバー設定を制御できる。

使用例:
  python -m tpilot.mcp                          # デフォルト設定で起動
  python -m tpilot.mcp --headless               # ヘッドレスモード
  python -m tpilot.mcp --dialect typescript     # デフォルト方言を変更
  python -m tpilot.mcp --viewport 1920x1080     # ビューポートサイズ指定

環境変数:
  TPILOT_HEADED=false                           # ヘッドレスモード
  TPILOT_SCREENSHOT_MODE=none                   # スクリーンショットなし
  TPILOT_ARTIFACTS_DIR=output                   # 成果物ディレクトリ変更
"""

from __future__ import annotations

from ..config import apply_cli_args, build_cli_parser, configure_logging, load_config_from_env
from .server import create_server

# 環境変数 → CLI 引数の順で設定を構築
_config = load_config_from_env()
_parser = build_cli_parser()
_args = _parser.parse_args()
_config = apply_cli_args(_config, _args)
configure_logging(_config.log_level)

# サーバー生成・起動
server = create_server(config=_config)
server.run()
