"""
StepStore — 追記専用の記録ステップストア

記録中のセッションが所有するステップ列。末尾への追加のみを許し、
並べ替え・重複排除は行わない。seal() 以降は不変となる。
タイムトラベル表示用に読み取りカーソルを持つ。
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from ..errors import IndexOutOfRange, StoreSealed
from .models import RecordedStep, StepSequence

logger = logging.getLogger(__name__)


class StepStore:
    """追記専用の RecordedStep ストア。

    カーソル範囲外の指定は常に IndexOutOfRange とする（クランプしない）。

    使用例::

        store = StepStore("https://example.com")
        store.append(step)
        sequence = store.seal()
        store.set_cursor(0)
    """

    def __init__(self, target_url: str) -> None:
        """空のストアを初期化する。

        Args:
            target_url: 記録対象 URL
        """
        self.target_url = target_url
        self._steps: list[RecordedStep] = []
        self._sealed: Optional[StepSequence] = None
        self._cursor: int = 0

    @classmethod
    def from_sequence(cls, sequence: StepSequence) -> StepStore:
        """保存済みステップ列から封印済みストアを生成する。

        Args:
            sequence: 元のステップ列

        Returns:
            封印済みの StepStore
        """
        store = cls(sequence.target_url)
        store._steps = list(sequence.steps)
        store._sealed = sequence
        return store

    # ----- 状態 -----

    @property
    def sealed(self) -> bool:
        """封印済みかどうかを返す。"""
        return self._sealed is not None

    @property
    def cursor(self) -> int:
        """現在のカーソル位置を返す。"""
        return self._cursor

    @property
    def current(self) -> Optional[RecordedStep]:
        """カーソル位置のステップを返す。空の場合は None。"""
        if not self._steps:
            return None
        return self._steps[self._cursor]

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[RecordedStep]:
        return iter(tuple(self._steps))

    # ----- 追加・封印 -----

    def append(self, step: RecordedStep) -> RecordedStep:
        """ステップを末尾に追加する。

        直前のステップより小さい timestamp は直前の値に引き上げる
        （到着順を正とするため、timestamp は非減少に保つ）。

        Args:
            step: 追加するステップ

        Returns:
            実際に格納されたステップ

        Raises:
            StoreSealed: 封印済みの場合
        """
        if self._sealed is not None:
            raise StoreSealed()

        if self._steps and step.timestamp < self._steps[-1].timestamp:
            last = self._steps[-1].timestamp
            logger.debug(
                "timestamp を補正しました: %s -> %s (action=%s)",
                step.timestamp, last, step.action,
            )
            step = step.model_copy(update={"timestamp": last})

        self._steps.append(step)
        return step

    def seal(self) -> StepSequence:
        """ストアを封印し、不変のステップ列を返す。

        2 回目以降の呼び出しは同じステップ列を返す。

        Returns:
            封印済みステップ列
        """
        if self._sealed is None:
            self._sealed = StepSequence(
                target_url=self.target_url,
                steps=tuple(self._steps),
            )
            logger.info("ステップ列を封印しました (%d ステップ)", len(self._steps))
        return self._sealed

    def snapshot(self) -> StepSequence:
        """現時点のステップ列を返す（封印はしない）。"""
        if self._sealed is not None:
            return self._sealed
        return StepSequence(target_url=self.target_url, steps=tuple(self._steps))

    # ----- カーソル -----

    def set_cursor(self, index: int) -> RecordedStep:
        """読み取りカーソルを移動し、そのステップを返す。

        Args:
            index: 0 始まりのインデックス

        Returns:
            カーソル位置のステップ

        Raises:
            IndexOutOfRange: index が [0, length-1] の範囲外の場合
        """
        if isinstance(index, bool) or not isinstance(index, int):
            raise IndexOutOfRange(index, len(self._steps))  # type: ignore[arg-type]
        if index < 0 or index >= len(self._steps):
            raise IndexOutOfRange(index, len(self._steps))

        self._cursor = index
        return self._steps[index]
