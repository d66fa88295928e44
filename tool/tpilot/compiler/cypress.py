"""
CypressEmitter — ステップ列を Cypress のテストスクリプトに変換

describe / it でテストを包み、cy.visit() の後に
1 ステップ 1 文でインタラクションを出力する。

方言:
  - function 形式: describe('...', function() { ... })（javascript 方言）
  - arrow 形式:    describe('...', () => { ... })（typescript 方言）
"""

from __future__ import annotations

import logging
from typing import Literal, Sequence

from ..recording.models import RecordedStep
from .selectors import FORM_ROLES, css_attr, escape_js, js_str, role_css

logger = logging.getLogger(__name__)

# キー名 → cy.type() の特殊シーケンス
_TYPE_KEYS: dict[str, str] = {
    "Enter": "{enter}",
    "Escape": "{esc}",
    "Backspace": "{backspace}",
    "Delete": "{del}",
    "ArrowUp": "{uparrow}",
    "ArrowDown": "{downarrow}",
    "ArrowLeft": "{leftarrow}",
    "ArrowRight": "{rightarrow}",
}


class CypressEmitter:
    """記録ステップ列を Cypress スクリプトに変換するエミッタ。

    使用例::

        emitter = CypressEmitter("function")
        source = emitter.emit(steps, "https://example.com")
    """

    def __init__(
        self,
        style: Literal["function", "arrow"] = "function",
        *,
        reference_types: bool = False,
        suite_title: str = "Recorded Test",
        test_title: str = "performs recorded actions",
    ) -> None:
        """エミッタを初期化する。

        Args:
            style: スイート宣言の形式
            reference_types: 先頭に Cypress 型参照ディレクティブを出力するか
            suite_title: describe のタイトル
            test_title: it のタイトル
        """
        if style not in ("function", "arrow"):
            raise ValueError(f"未対応のスタイルです: {style}")
        self.style = style
        self.reference_types = reference_types
        self.suite_title = suite_title
        self.test_title = test_title

    def emit(self, steps: Sequence[RecordedStep], target_url: str) -> str:
        """ステップ列を Cypress スクリプトのソーステキストに変換する。

        Args:
            steps: 記録ステップ列
            target_url: 記録対象 URL

        Returns:
            末尾改行付きのソーステキスト
        """
        fn = "function()" if self.style == "function" else "() =>"
        lines: list[str] = []

        if self.reference_types:
            lines.append('/// <reference types="cypress" />')
            lines.append("")

        lines.append(f"describe('{escape_js(self.suite_title)}', {fn} {{")
        lines.append(f"  it('{escape_js(self.test_title)}', {fn} {{")
        lines.append(f"    cy.visit('{escape_js(target_url)}')")

        for step in steps:
            lines.append(f"    {self._step_to_line(step)}")

        lines.append("  })")
        lines.append("})")
        return "\n".join(lines) + "\n"

    # ----- ステップ変換 -----

    def _step_to_line(self, step: RecordedStep) -> str:
        """単一ステップを Cypress コマンドチェーンに変換する。"""
        locator = self._locator(step)

        if step.event == "dblclick":
            return f"{locator}.dblclick()"

        if step.event == "fill":
            value = step.value or ""
            if not value:
                return f"{locator}.clear()"
            return f"{locator}.clear().type('{escape_js(_escape_type_text(value))}')"

        if step.event == "press":
            key = step.value or ""
            sequence = _TYPE_KEYS.get(key)
            if sequence is not None:
                return f"{locator}.type('{sequence}')"
            return f"{locator}.trigger('keydown', {{ key: '{escape_js(key)}' }})"

        return f"{locator}.click()"

    def _locator(self, step: RecordedStep) -> str:
        """ステップの要素指定を cy.get() / cy.contains() 式に変換する。

        セレクタヒントがない場合は action（タグ名）の最初の一致を使う。
        フォーム部品はテキスト内容を持たないため、ロール名での指定は
        <label> の文字列から関連付けられた部品をたどる。
        """
        hint = step.selector
        if hint is None:
            return f"cy.get({js_str(step.action)}).first()"

        if hint.type == "testId":
            return f"cy.get({js_str(css_attr('data-testid', hint.value))})"

        if hint.type == "role":
            role = hint.role or ""
            if not hint.name:
                return f"cy.get({js_str(role_css(role))}).first()"
            if role in FORM_ROLES:
                return (
                    f"cy.contains('label', {js_str(hint.name)})"
                    ".then(($label) => cy.wrap($label.prop('control')))"
                )
            return f"cy.contains({js_str(role_css(role))}, {js_str(hint.name)})"

        if hint.type == "label":
            return f"cy.get({js_str(css_attr('aria-label', hint.value))})"

        if hint.type == "placeholder":
            return f"cy.get({js_str(css_attr('placeholder', hint.value))})"

        if hint.type == "text":
            return f"cy.contains({js_str(hint.value)})"

        return f"cy.get({js_str(hint.value or step.action)})"


def _escape_type_text(text: str) -> str:
    """cy.type() が特殊シーケンスとして解釈しないよう波括弧をエスケープする。"""
    return text.replace("{", "{{}")
