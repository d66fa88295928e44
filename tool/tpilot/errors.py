"""
エラー定義 — 記録セッション・コンパイラ共通の例外階層

全ての例外は TestPilotError を基底とし、呼び出し側が
型で捕捉・回復できるようにする。

  - InvalidTarget: URL が空・不正
  - TargetUnavailable: 記録対象（ブラウザ）を開けない
  - CaptureFailed: アーティファクト取得失敗（記録は継続）
  - StoreSealed: 封印済みストアへの追加
  - IndexOutOfRange: カーソル範囲外
  - UnsupportedDialect: 未登録のスクリプト方言
  - RecordingInProgress: 記録中の重複開始・記録中のコンパイル
  - NoRecording: 記録が一度も行われていない
"""

from __future__ import annotations

from typing import Iterable


class TestPilotError(Exception):
    """TestPilot の全例外の基底クラス。"""

    # pytest がテストクラスとして収集しないようにする
    __test__ = False


class InvalidTarget(TestPilotError):
    """記録対象 URL が空、または不正な形式の場合の例外。

    Attributes:
        url: 指定された URL
    """

    def __init__(self, url: object, reason: str = "") -> None:
        self.url = url
        self.reason = reason
        detail = f"（{reason}）" if reason else ""
        super().__init__(f"記録対象の URL が不正です: {url!r}{detail}")


class TargetUnavailable(TestPilotError):
    """記録対象を開けなかった場合の例外（ポップアップブロック、起動失敗等）。"""

    def __init__(self, url: str, reason: str = "") -> None:
        self.url = url
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"記録対象を開けませんでした ({url}){detail}")


class CaptureFailed(TestPilotError):
    """アーティファクト（スクリーンショット）の取得に失敗した場合の例外。"""


class StoreSealed(TestPilotError):
    """封印済みの StepStore に append した場合の例外。"""

    def __init__(self) -> None:
        super().__init__("StepStore は封印済みのため追加できません")


class IndexOutOfRange(TestPilotError, IndexError):
    """カーソル位置が [0, length-1] の範囲外の場合の例外。

    Attributes:
        index: 指定されたインデックス
        length: ステップ数
    """

    def __init__(self, index: int, length: int) -> None:
        self.index = index
        self.length = length
        if length == 0:
            message = f"ステップがありません（index={index}）"
        else:
            message = f"インデックス {index} は範囲外です（有効範囲: 0-{length - 1}）"
        super().__init__(message)


class UnsupportedDialect(TestPilotError, ValueError):
    """未登録のスクリプト方言が指定された場合の例外。

    Attributes:
        dialect: 指定された方言名
        available: 登録済み方言名のリスト
    """

    def __init__(self, dialect: str, available: Iterable[str] = ()) -> None:
        self.dialect = dialect
        self.available = sorted(available)
        registered = ", ".join(self.available)
        super().__init__(
            f"方言 '{dialect}' はサポートされていません。"
            f"登録済み方言: [{registered}]"
        )


class RecordingInProgress(TestPilotError):
    """記録中に開始・コンパイルが要求された場合の例外。"""


class NoRecording(TestPilotError):
    """記録が一度も行われていない状態でステップを要求された場合の例外。"""

    def __init__(self) -> None:
        super().__init__("記録がありません。先に記録を開始してください。")
