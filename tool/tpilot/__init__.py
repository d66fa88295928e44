"""
TestPilot — ブラウザ操作の記録からテストスクリプトを生成するツール

主な構成:
  - recording: 記録セッション・イベントチャネル・ステップストア
  - compiler: ステップ列 → テストスクリプト（方言別）
  - drivers: 記録対象バックエンド（Playwright）
  - core: アーティファクト取得
  - cli / mcp: 外側のインターフェース
"""

__version__ = "0.1.0"
