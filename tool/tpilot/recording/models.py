"""
記録データモデル — 記録ステップ・チャネルメッセージ・ステップ列

記録対象から届く生メッセージの検証モデル（ChannelMessage）と、
Step Store に蓄積される不変の記録ステップ（RecordedStep）、
封印後のステップ列（StepSequence）を定義する。

主な構成:
  - SelectorHint: 記録時に取得した安定セレクタ（testId, role, label 等）
  - ChannelMessage: Event Channel のワイヤ形式 {action, timestamp, ...}
  - RecordedStep: 1 操作分の不変レコード
  - StepSequence: 1 セッション分の不変ステップ列（YAML 保存・読み込み対応）
  - validate_target_url(): 記録対象 URL の検証
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Literal, Optional, Union
from urllib.parse import urlparse

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
    field_validator,
    model_validator,
)
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ..core.artifacts import ARTIFACT_UNAVAILABLE
from ..errors import InvalidTarget

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# 定数
# ---------------------------------------------------------------------------

_ACTION_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_.:-]*$")
"""action（タグ名・ロール名）として受け付ける識別子の形式。"""

EventType = Literal["click", "dblclick", "fill", "press"]
SelectorType = Literal["testId", "role", "label", "placeholder", "text", "css"]


# ---------------------------------------------------------------------------
# セレクタヒント
# ---------------------------------------------------------------------------

class SelectorHint(BaseModel):
    """記録時に取得した要素特定用のセレクタ情報。

    注入スクリプトが生成するセレクタ辞書と同じ形式。
    type が role の場合は role（必須）と name（任意）を使用し、
    それ以外は value を使用する。
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: SelectorType = Field(..., description="セレクタ種別")
    value: StrictStr = Field(default="", max_length=512, description="セレクタ値")
    role: Optional[StrictStr] = Field(default=None, max_length=64, description="ARIA ロール")
    name: Optional[StrictStr] = Field(default=None, max_length=512, description="アクセシブルネーム")

    @model_validator(mode="after")
    def _check_required_value(self) -> "SelectorHint":
        if self.type == "role":
            if not self.role:
                raise ValueError("role セレクタには role が必要です")
        elif not self.value:
            raise ValueError(f"{self.type} セレクタには value が必要です")
        return self


# ---------------------------------------------------------------------------
# RecordedStep
# ---------------------------------------------------------------------------

class RecordedStep(BaseModel):
    """記録された 1 操作分の不変レコード。

    Attributes:
        action: 操作対象の意味的識別子（タグ名・ロール名。例: button）
        timestamp: 記録時刻（エポックミリ秒）
        artifact: アーティファクト参照（取得失敗時は "unavailable"）
        event: 操作種別（click, dblclick, fill, press）
        value: 入力値（fill）またはキー名（press）
        selector: 記録時に取得したセレクタ情報
    """

    model_config = ConfigDict(frozen=True)

    action: str
    timestamp: float = Field(..., ge=0)
    artifact: str = ARTIFACT_UNAVAILABLE
    event: EventType = "click"
    value: Optional[str] = None
    selector: Optional[SelectorHint] = None


# ---------------------------------------------------------------------------
# ChannelMessage（ワイヤ形式）
# ---------------------------------------------------------------------------

class ChannelMessage(BaseModel):
    """記録対象から届くメッセージの検証モデル。

    最小形式は {action: string, timestamp: number}。
    未知のフィールドは無視する。型の暗黙変換は行わない
    （"100" や True を timestamp として受け付けない）。
    """

    model_config = ConfigDict(extra="ignore")

    action: StrictStr = Field(..., min_length=1, max_length=64)
    timestamp: Union[StrictInt, StrictFloat]
    event: EventType = "click"
    value: Optional[StrictStr] = Field(default=None, max_length=4096)
    selector: Optional[SelectorHint] = None

    @field_validator("action")
    @classmethod
    def _check_action(cls, v: str) -> str:
        v = v.strip()
        if not _ACTION_PATTERN.match(v):
            raise ValueError(f"action の形式が不正です: {v!r}")
        return v

    @field_validator("timestamp")
    @classmethod
    def _check_timestamp(cls, v: Union[int, float]) -> float:
        if not math.isfinite(v) or v < 0:
            raise ValueError(f"timestamp は有限の非負数である必要があります: {v!r}")
        return float(v)

    @model_validator(mode="after")
    def _check_event_value(self) -> "ChannelMessage":
        if self.event == "press" and not self.value:
            raise ValueError("press イベントにはキー名（value）が必要です")
        return self

    def to_step(self, artifact: str) -> RecordedStep:
        """アーティファクト参照を付与して RecordedStep に変換する。

        Args:
            artifact: キャプチャ結果の参照（またはセンチネル値）

        Returns:
            記録ステップ
        """
        value = self.value
        if self.event == "fill" and value is None:
            value = ""
        return RecordedStep(
            action=self.action,
            timestamp=self.timestamp,
            artifact=artifact,
            event=self.event,
            value=value,
            selector=self.selector,
        )


def parse_channel_message(raw: Any) -> ChannelMessage:
    """生メッセージを検証して ChannelMessage に変換する。

    Args:
        raw: 辞書または JSON 文字列

    Returns:
        検証済みメッセージ

    Raises:
        ValueError: 形式が不正な場合（pydantic の ValidationError を含む）
    """
    if isinstance(raw, (str, bytes)):
        return ChannelMessage.model_validate_json(raw)
    if not isinstance(raw, dict):
        raise ValueError(f"メッセージは辞書である必要があります: {type(raw).__name__}")
    return ChannelMessage.model_validate(raw)


# ---------------------------------------------------------------------------
# 記録対象 URL の検証
# ---------------------------------------------------------------------------

def validate_target_url(url: object) -> str:
    """記録対象 URL を検証し、前後の空白を除いた URL を返す。

    http / https はホスト必須、file はパス必須。

    Args:
        url: 検証対象の URL

    Returns:
        正規化済み URL

    Raises:
        InvalidTarget: 空・不正な URL の場合
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidTarget(url, "URL が空です")

    url = url.strip()
    if any(ch.isspace() for ch in url):
        raise InvalidTarget(url, "URL に空白文字が含まれています")

    parsed = urlparse(url)
    if parsed.scheme in ("http", "https") and parsed.netloc:
        return url
    if parsed.scheme == "file" and parsed.path:
        return url

    raise InvalidTarget(url, "http(s):// または file:// の URL を指定してください")


# ---------------------------------------------------------------------------
# StepSequence
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StepSequence:
    """1 セッション分の封印済みステップ列。

    Script Compiler は読み取り専用でこれを消費する。

    Attributes:
        target_url: 記録対象 URL
        steps: 記録ステップのタプル（到着順）
    """

    target_url: str
    steps: tuple[RecordedStep, ...] = ()

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[RecordedStep]:
        return iter(self.steps)

    def __getitem__(self, index: int) -> RecordedStep:
        return self.steps[index]

    # ----- 辞書変換 -----

    def to_dict(self) -> dict[str, Any]:
        """YAML 保存用の辞書に変換する。"""
        return {
            "targetUrl": self.target_url,
            "steps": [step.model_dump(mode="json", exclude_none=True) for step in self.steps],
        }

    @classmethod
    def from_dict(cls, data: Any) -> StepSequence:
        """辞書から StepSequence を復元する。

        Raises:
            ValueError: 形式が不正な場合
            InvalidTarget: targetUrl が不正な場合
        """
        if not isinstance(data, dict):
            raise ValueError("ステップ列のルートは辞書である必要があります")

        target_url = validate_target_url(data.get("targetUrl"))
        raw_steps = data.get("steps") or []
        if not isinstance(raw_steps, list):
            raise ValueError("steps はリストである必要があります")

        try:
            steps = tuple(RecordedStep.model_validate(dict(s)) for s in raw_steps)
        except (ValidationError, TypeError) as exc:
            raise ValueError(f"ステップの形式が不正です: {exc}") from exc

        return cls(target_url=target_url, steps=steps)

    # ----- YAML 入出力 -----

    def save_yaml(self, path: Path) -> None:
        """ステップ列を YAML ファイルとして保存する。

        Args:
            path: 出力先ファイルパス
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        yaml = YAML()
        yaml.default_flow_style = False

        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(self.to_dict(), f)

        logger.info("ステップ列を保存しました: %s (%d ステップ)", path, len(self))

    @classmethod
    def load_yaml(cls, path: Path) -> StepSequence:
        """YAML ファイルからステップ列を読み込む。

        Args:
            path: 読み込む YAML ファイル

        Returns:
            復元された StepSequence

        Raises:
            FileNotFoundError: ファイルが存在しない場合
            ValueError: YAML 構文エラーまたは形式エラーの場合
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"ファイルが見つかりません: {path}")

        yaml = YAML(typ="safe")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.load(f)
        except YAMLError as exc:
            raise ValueError(f"YAML 構文エラー: {exc}") from exc

        return cls.from_dict(data)
