"""
スクリプトコンパイラ — 記録ステップ列からテストスクリプトを生成

主な公開 API:
  - compile_script(): ステップ列・URL・方言からスクリプトを生成
  - ScriptCompiler: レジストリを保持するコンパイラ
  - create_default_registry(): 標準方言を登録済みのレジストリ
"""

from __future__ import annotations

from typing import Optional

from .cypress import CypressEmitter
from .playwright import PlaywrightPythonEmitter
from .registry import (
    DialectEmitter,
    DialectInfo,
    DialectRegistry,
    GeneratedScript,
    ScriptCompiler,
    compile_script,
)

__all__ = [
    "CypressEmitter",
    "DialectEmitter",
    "DialectInfo",
    "DialectRegistry",
    "GeneratedScript",
    "PlaywrightPythonEmitter",
    "ScriptCompiler",
    "compile_script",
    "create_default_registry",
]


def create_default_registry(
    channel: str = "chromium",
    viewport: tuple[int, int] = (1280, 720),
) -> DialectRegistry:
    """標準方言を登録済みのレジストリを生成する。

    Args:
        channel: playwright-python 方言で使うブラウザチャンネル
        viewport: playwright-python 方言で使うビューポートサイズ

    Returns:
        javascript / typescript / playwright-python を登録したレジストリ
    """
    registry = DialectRegistry()
    registry.register(
        "javascript",
        CypressEmitter("function"),
        info=DialectInfo(
            name="javascript",
            description="Cypress（function 形式の describe / it）",
            framework="cypress",
            file_suffix=".cy.js",
        ),
    )
    registry.register(
        "typescript",
        CypressEmitter("arrow", reference_types=True),
        info=DialectInfo(
            name="typescript",
            description="Cypress（arrow 形式、型参照ディレクティブ付き）",
            framework="cypress",
            file_suffix=".cy.ts",
        ),
    )
    registry.register(
        "playwright-python",
        PlaywrightPythonEmitter(channel=channel, viewport=viewport),
        info=DialectInfo(
            name="playwright-python",
            description="Playwright Python（sync API、codegen 互換）",
            framework="playwright",
            file_suffix=".py",
        ),
    )
    return registry


def registry_for(config: Optional[object] = None) -> DialectRegistry:
    """RecorderConfig の設定を反映した標準レジストリを返す。"""
    if config is None:
        return create_default_registry()
    return create_default_registry(
        channel=getattr(config, "channel", "chromium"),
        viewport=(
            getattr(config, "viewport_width", 1280),
            getattr(config, "viewport_height", 720),
        ),
    )
