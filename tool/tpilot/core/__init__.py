"""記録に付随する共通機能（アーティファクト取得）。"""
