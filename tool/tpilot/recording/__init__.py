"""
記録エンジン — セッション・イベントチャネル・ステップストア

主な構成:
  - models: RecordedStep / ChannelMessage / StepSequence
  - channel: EventChannelAdapter（生メッセージの検証と順序付き書き込み）
  - store: StepStore（追記専用ログ + カーソル）
  - session: RecordingSession（IDLE → RECORDING → STOPPED）
  - controller: RecordingController（外側の層向けの操作）

controller は compiler に依存するため、ここでは再エクスポートしない。
"""

from __future__ import annotations

from .channel import EventChannelAdapter
from .models import (
    ChannelMessage,
    RecordedStep,
    SelectorHint,
    StepSequence,
    parse_channel_message,
    validate_target_url,
)
from .session import RecordingSession, SessionState, log_step_summary
from .store import StepStore

__all__ = [
    "ChannelMessage",
    "EventChannelAdapter",
    "RecordedStep",
    "RecordingSession",
    "SelectorHint",
    "SessionState",
    "StepSequence",
    "StepStore",
    "log_step_summary",
    "parse_channel_message",
    "validate_target_url",
]
