"""
セレクタ・文字列リテラルの共通ヘルパー

各方言エミッタが使う文字列エスケープと、
ロール名から CSS セレクタへの対応表を提供する。
"""

from __future__ import annotations

# ロール → 暗黙ロールを持つ HTML 要素
_ROLE_TAGS: dict[str, str] = {
    "button": "button",
    "link": "a",
    "textbox": "input, textarea",
    "checkbox": 'input[type="checkbox"]',
    "radio": 'input[type="radio"]',
    "combobox": "select",
    "spinbutton": 'input[type="number"]',
    "heading": "h1, h2, h3, h4, h5, h6",
}

# テキスト内容を持たないフォーム部品のロール
FORM_ROLES = frozenset({
    "textbox", "searchbox", "spinbutton", "combobox", "listbox",
    "checkbox", "radio", "switch", "slider",
})


def escape_js(s: str) -> str:
    """JavaScript/TypeScript のシングルクォート文字列用にエスケープする。

    Args:
        s: エスケープ対象の文字列

    Returns:
        エスケープ済み文字列
    """
    return (
        s.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )


def escape_py(s: str) -> str:
    """Python のダブルクォート文字列用にエスケープする。"""
    return (
        s.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )


def js_str(s: str) -> str:
    """シングルクォートで囲んだ JavaScript 文字列リテラルを返す。"""
    return f"'{escape_js(s)}'"


def py_str(s: str) -> str:
    """ダブルクォートで囲んだ Python 文字列リテラルを返す。"""
    return f'"{escape_py(s)}"'


def css_attr(name: str, value: str) -> str:
    """属性一致の CSS セレクタを組み立てる。

    Args:
        name: 属性名
        value: 属性値

    Returns:
        '[name="value"]' 形式のセレクタ
    """
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'[{name}="{escaped}"]'


def role_css(role: str) -> str:
    """ロールに一致する CSS セレクタを返す。

    明示的な role 属性に加えて、暗黙ロールを持つ要素も対象にする。
    """
    selector = css_attr("role", role)
    tags = _ROLE_TAGS.get(role)
    if tags:
        selector = f"{selector}, {tags}"
    return selector
