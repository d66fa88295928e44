"""
PlaywrightPythonEmitter — ステップ列を Playwright Python スクリプトに変換

記録ステップ列を Playwright codegen 互換の
Python スクリプト（sync API）に変換する。
"""

from __future__ import annotations

import logging
from typing import Sequence

from ..recording.models import RecordedStep, SelectorHint
from .selectors import py_str

logger = logging.getLogger(__name__)

_PROLOGUE = """\
import re
from playwright.sync_api import Playwright, sync_playwright, expect


def run(playwright: Playwright) -> None:
    browser = playwright.chromium.launch({launch_args})
    context = browser.new_context(viewport={{"width":{width},"height":{height}}})
    page = context.new_page()
"""

_EPILOGUE = """\
    page.close()

    # ---------------------
    context.close()
    browser.close()


with sync_playwright() as playwright:
    run(playwright)
"""

# セレクタ種別 → 値 1 つを取る page のロケータメソッド
_LOCATOR_METHODS: dict[str, str] = {
    "testId": "get_by_test_id",
    "label": "get_by_label",
    "placeholder": "get_by_placeholder",
    "text": "get_by_text",
    "css": "locator",
}

# イベント種別 → ロケータのメソッド（値を引数に取るかどうか）
_ACTIONS: dict[str, tuple[str, bool]] = {
    "click": ("click", False),
    "dblclick": ("dblclick", False),
    "fill": ("fill", True),
    "press": ("press", True),
}


class PlaywrightPythonEmitter:
    """記録ステップ列を Playwright Python スクリプトに変換するエミッタ。

    使用例::

        emitter = PlaywrightPythonEmitter(channel="chrome")
        source = emitter.emit(steps, "https://example.com")
    """

    def __init__(
        self,
        channel: str = "chromium",
        viewport: tuple[int, int] = (1280, 720),
    ) -> None:
        self.channel = channel
        self.viewport = viewport

    def emit(self, steps: Sequence[RecordedStep], target_url: str) -> str:
        """ステップ列を Python スクリプトのソーステキストに変換する。

        Args:
            steps: 記録ステップ列
            target_url: 記録対象 URL

        Returns:
            末尾改行付きのソーステキスト
        """
        launch_args = ["headless=False"]
        if self.channel != "chromium":
            launch_args.insert(0, f"channel={py_str(self.channel)}")

        width, height = self.viewport
        body = [f"page.goto({py_str(target_url)})"]
        body.extend(_step_to_statement(step) for step in steps)

        return (
            _PROLOGUE.format(launch_args=", ".join(launch_args), width=width, height=height)
            + "".join(f"    {statement}\n" for statement in body)
            + _EPILOGUE
        )


def _step_to_statement(step: RecordedStep) -> str:
    """単一ステップをロケータ操作の文に変換する。"""
    if step.selector is None:
        locator = f"page.locator({py_str(step.action)}).first"
    else:
        locator = _locator(step.selector)

    method, takes_value = _ACTIONS[step.event]
    argument = py_str(step.value or "") if takes_value else ""
    return f"{locator}.{method}({argument})"


def _locator(hint: SelectorHint) -> str:
    """セレクタヒントを page のロケータ式に変換する。

    role は name があれば完全一致、なければ最初の一致を使う。
    """
    if hint.type == "role":
        role = py_str(hint.role or "")
        if hint.name:
            return f"page.get_by_role({role}, name={py_str(hint.name)}, exact=True)"
        return f"page.get_by_role({role}).first"

    return f"page.{_LOCATOR_METHODS[hint.type]}({py_str(hint.value)})"
