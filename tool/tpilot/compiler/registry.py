"""
方言レジストリ — スクリプト方言の登録・検索・一覧とコンパイル

方言ごとのエミッタを名前で登録し、封印済みステップ列と
記録対象 URL からテストスクリプトのソーステキストを生成する。

主な構成:
  - DialectEmitter Protocol: emit(steps, target_url) -> str
  - DialectInfo: 方言のメタ情報（名前、説明、フレームワーク、拡張子）
  - DialectRegistry: エミッタの登録・検索・一覧
  - ScriptCompiler / compile_script(): 検証付きのコンパイル入口
  - GeneratedScript: 生成結果 {dialect, source_text}

出力は入力だけで決まる（時刻・乱数・アーティファクト参照を含めない）。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol, Sequence, runtime_checkable

from ..errors import UnsupportedDialect
from ..recording.models import RecordedStep, validate_target_url

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# 生成結果
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GeneratedScript:
    """生成されたテストスクリプト。

    Attributes:
        dialect: 方言名
        source_text: スクリプトのソーステキスト
    """

    dialect: str
    source_text: str


# ---------------------------------------------------------------------------
# 方言メタ情報
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DialectInfo:
    """方言のメタ情報。

    CLI の dialects コマンドで一覧表示に使用する。

    Attributes:
        name: 方言名（--dialect で指定するキー）
        description: 方言の説明文
        framework: 出力先テストフレームワーク
        file_suffix: 生成スクリプトの推奨拡張子
    """

    name: str
    description: str
    framework: str = "unknown"
    file_suffix: str = ".txt"


# ---------------------------------------------------------------------------
# エミッタ Protocol
# ---------------------------------------------------------------------------

@runtime_checkable
class DialectEmitter(Protocol):
    """方言エミッタの共通インターフェース。"""

    def emit(self, steps: Sequence[RecordedStep], target_url: str) -> str:
        """ステップ列をソーステキストに変換する。

        Args:
            steps: 記録ステップ列（到着順）
            target_url: 検証済みの記録対象 URL

        Returns:
            スクリプトのソーステキスト
        """
        ...


# ---------------------------------------------------------------------------
# DialectRegistry 本体
# ---------------------------------------------------------------------------

class DialectRegistry:
    """方言エミッタの登録・検索・一覧を管理するレジストリ。

    使用例::

        registry = DialectRegistry()
        registry.register("javascript", CypressEmitter("function"), info=DialectInfo(...))
        emitter = registry.get("javascript")
    """

    def __init__(self) -> None:
        """空のレジストリを初期化する。"""
        self._emitters: dict[str, DialectEmitter] = {}
        self._info: dict[str, DialectInfo] = {}

    def register(
        self,
        name: str,
        emitter: DialectEmitter,
        *,
        info: Optional[DialectInfo] = None,
    ) -> None:
        """方言エミッタを登録する。

        同名のエミッタが既に登録されている場合は上書きする（警告を出力）。

        Args:
            name: 方言名
            emitter: エミッタインスタンス
            info: 方言のメタ情報。None の場合はデフォルト値を使用

        Raises:
            TypeError: emitter が DialectEmitter Protocol を満たさない場合
        """
        if not isinstance(emitter, DialectEmitter):
            raise TypeError(
                f"emitter は DialectEmitter Protocol を満たす必要があります: "
                f"{type(emitter).__name__}"
            )

        if name in self._emitters:
            logger.warning(
                "方言 '%s' のエミッタを上書きします（既存: %s → 新規: %s）",
                name,
                type(self._emitters[name]).__name__,
                type(emitter).__name__,
            )

        self._emitters[name] = emitter
        if info is not None:
            self._info[name] = info
        elif name not in self._info:
            self._info[name] = DialectInfo(name=name, description=f"{name} 方言")

        logger.debug("方言 '%s' を登録しました: %s", name, type(emitter).__name__)

    def get(self, name: str) -> DialectEmitter:
        """名前で方言エミッタを取得する。

        Raises:
            UnsupportedDialect: 指定名の方言が未登録の場合
        """
        if name not in self._emitters:
            raise UnsupportedDialect(name, self._emitters.keys())
        return self._emitters[name]

    def info(self, name: str) -> DialectInfo:
        """方言のメタ情報を返す。

        Raises:
            UnsupportedDialect: 指定名の方言が未登録の場合
        """
        if name not in self._info:
            raise UnsupportedDialect(name, self._emitters.keys())
        return self._info[name]

    def list_all(self) -> list[DialectInfo]:
        """登録済み全方言のメタ情報を名前順で返す。"""
        return sorted(self._info.values(), key=lambda d: d.name)

    def has(self, name: str) -> bool:
        """指定名の方言が登録されているかを返す。"""
        return name in self._emitters

    @property
    def names(self) -> list[str]:
        """登録済み全方言名をソート済みリストで返す。"""
        return sorted(self._emitters.keys())


# ---------------------------------------------------------------------------
# コンパイル入口
# ---------------------------------------------------------------------------

class ScriptCompiler:
    """封印済みステップ列をテストスクリプトに変換するコンパイラ。

    純粋関数として振る舞い、同じ (steps, target_url, dialect) からは
    常にバイト単位で同一の出力を返す。
    """

    def __init__(self, registry: Optional[DialectRegistry] = None) -> None:
        """コンパイラを初期化する。

        Args:
            registry: 方言レジストリ（None で標準方言のレジストリ）
        """
        if registry is None:
            from . import create_default_registry

            registry = create_default_registry()
        self.registry = registry

    def compile(
        self,
        steps: Iterable[RecordedStep],
        target_url: str,
        dialect: str,
    ) -> GeneratedScript:
        """ステップ列を指定方言のスクリプトに変換する。

        空のステップ列はエラーにせず、遷移のみのスクリプトを返す。

        Args:
            steps: 記録ステップ列
            target_url: 記録対象 URL
            dialect: 方言名

        Returns:
            生成結果

        Raises:
            UnsupportedDialect: 未登録の方言の場合
            InvalidTarget: URL が空・不正な場合
        """
        emitter = self.registry.get(dialect)
        url = validate_target_url(target_url)
        step_list = tuple(steps)

        source = emitter.emit(step_list, url)
        logger.info("スクリプトを生成しました: %s (%d ステップ)", dialect, len(step_list))
        return GeneratedScript(dialect=dialect, source_text=source)


def compile_script(
    steps: Iterable[RecordedStep],
    target_url: str,
    dialect: str,
    registry: Optional[DialectRegistry] = None,
) -> GeneratedScript:
    """ScriptCompiler の簡易呼び出し。

    Args:
        steps: 記録ステップ列
        target_url: 記録対象 URL
        dialect: 方言名
        registry: 方言レジストリ（None で標準方言）

    Returns:
        生成結果
    """
    return ScriptCompiler(registry).compile(steps, target_url, dialect)
