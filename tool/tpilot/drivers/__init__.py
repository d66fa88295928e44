"""
記録対象バックエンド

  - target: RecordingTarget / TargetHandle の Protocol
  - playwright_target: Playwright による実装
"""

from __future__ import annotations

from .target import CloseCallback, MessageCallback, RecordingTarget, TargetHandle

__all__ = [
    "CloseCallback",
    "MessageCallback",
    "RecordingTarget",
    "TargetHandle",
]
