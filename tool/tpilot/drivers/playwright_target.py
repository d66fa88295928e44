"""
PlaywrightTarget — Playwright による記録対象バックエンド

Playwright async API でブラウザを起動し、BrowserContext に
バインディング関数と記録用 JavaScript（injected.js）を登録する。
ページ側の click / dblclick / change / keydown を捕捉し、
{action, timestamp, event, value, selector} 形式で Python 側に送信する。

主な機能:
  - ブラウザ起動（headed/headless、チャンネル、ビューポート）
  - 全ページ・全遷移への記録スクリプト注入（add_init_script）
  - ページクローズ・ブラウザ切断の検知（1 回だけ通知）
  - 起動失敗時の後始末と TargetUnavailable の送出
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from ..config import RecorderConfig
from ..errors import TargetUnavailable
from .target import CloseCallback, MessageCallback

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page

logger = logging.getLogger(__name__)

# 注入スクリプトのパス
_INJECTED_JS_PATH = Path(__file__).parent / "injected.js"

BINDING_NAME = "__tpilot_emit"
"""ページ側から Python 側へメッセージを送るバインディング名。"""


def _load_injected_script() -> str:
    """記録用 JavaScript を読み込む。"""
    return _INJECTED_JS_PATH.read_text(encoding="utf-8")


# ---------------------------------------------------------------------------
# PlaywrightTargetHandle
# ---------------------------------------------------------------------------

class PlaywrightTargetHandle:
    """Playwright で開いた記録対象へのハンドル。

    Attributes:
        url: 記録開始 URL
    """

    def __init__(
        self,
        url: str,
        pw_instance: Any,
        browser: Browser,
        context: BrowserContext,
    ) -> None:
        self.url = url
        self._pw_instance = pw_instance
        self._browser: Optional[Browser] = browser
        self._context: Optional[BrowserContext] = context
        self._page: Optional[Page] = None
        self._message_callbacks: list[MessageCallback] = []
        self._close_callbacks: list[CloseCallback] = []
        self._closed = False

    @property
    def page(self) -> Optional[Page]:
        """記録対象の Page を返す。閉じ済みの場合は None。"""
        if self._closed:
            return None
        return self._page

    @property
    def closed(self) -> bool:
        """記録対象が閉じられているかどうかを返す。"""
        return self._closed

    def on_message(self, callback: MessageCallback) -> None:
        """生メッセージの受信コールバックを登録する。"""
        self._message_callbacks.append(callback)

    def on_close(self, callback: CloseCallback) -> None:
        """外部クローズ検知のコールバックを登録する。"""
        self._close_callbacks.append(callback)

    # ----- Playwright からの通知 -----

    def _on_binding(self, source: Any, payload: Any = None) -> None:
        """ページ側の __tpilot_emit(payload) 呼び出しを受け取る。

        Args:
            source: Playwright のバインディング送信元情報（context, page, frame）
            payload: ページ側から渡された値
        """
        if self._closed:
            return

        frame_url = ""
        frame = source.get("frame") if isinstance(source, dict) else None
        if frame is not None:
            frame_url = getattr(frame, "url", "") or ""

        for callback in list(self._message_callbacks):
            callback(payload, frame_url=frame_url)

    def _notify_closed(self) -> None:
        """クローズを検知し、登録済みコールバックを 1 回だけ呼ぶ。"""
        if self._closed:
            return
        self._closed = True
        logger.info("記録対象が閉じられました: %s", self.url)

        for callback in list(self._close_callbacks):
            try:
                callback()
            except Exception:
                logger.exception("クローズ通知の処理中にエラーが発生しました")

    def _release(self) -> tuple[Any, Optional[Browser]]:
        """通知を止めて、後始末対象を取り出す。"""
        self._closed = True
        self._message_callbacks.clear()
        self._close_callbacks.clear()
        pw, browser = self._pw_instance, self._browser
        self._pw_instance = None
        self._browser = None
        self._context = None
        self._page = None
        return pw, browser


# ---------------------------------------------------------------------------
# PlaywrightTarget 本体
# ---------------------------------------------------------------------------

class PlaywrightTarget:
    """Playwright でブラウザを起動する記録対象バックエンド。

    使用例::

        target = PlaywrightTarget(RecorderConfig(headed=True))
        handle = await target.open("https://example.com")
        handle.on_message(adapter.deliver)
        ...
        await target.close(handle)
    """

    def __init__(self, config: Optional[RecorderConfig] = None) -> None:
        """バックエンドを初期化する。

        Args:
            config: ブラウザ起動設定（None でデフォルト）
        """
        self._config = config if config is not None else RecorderConfig()

    async def open(self, url: str) -> PlaywrightTargetHandle:
        """ブラウザを起動して URL を開く。

        Args:
            url: 記録対象 URL

        Returns:
            記録対象ハンドル

        Raises:
            TargetUnavailable: 起動・遷移に失敗した場合
        """
        cfg = self._config
        pw_instance: Any = None
        browser: Optional[Browser] = None

        logger.info("ブラウザを起動しています... (headed=%s, channel=%s)", cfg.headed, cfg.channel)

        try:
            from playwright.async_api import async_playwright

            pw_instance = await async_playwright().start()

            launch_kwargs: dict[str, Any] = {"headless": not cfg.headed}
            if cfg.channel != "chromium":
                launch_kwargs["channel"] = cfg.channel
            browser = await pw_instance.chromium.launch(**launch_kwargs)

            context = await browser.new_context(
                viewport={"width": cfg.viewport_width, "height": cfg.viewport_height},
            )
            handle = PlaywrightTargetHandle(url, pw_instance, browser, context)

            # 全ページ・全遷移で記録スクリプトが有効になるよう context に登録する
            await context.expose_binding(BINDING_NAME, handle._on_binding)
            await context.add_init_script(script=_load_injected_script())

            page = await context.new_page()
            handle._page = page
            page.on("close", lambda *_: handle._notify_closed())
            browser.on("disconnected", lambda *_: handle._notify_closed())

            await page.goto(url)
            await page.wait_for_load_state("domcontentloaded")

        except Exception as exc:
            logger.warning("記録対象を開けませんでした: %s (%s)", url, exc)
            await _teardown(pw_instance, browser)
            raise TargetUnavailable(url, str(exc)) from exc

        logger.info("記録対象を開きました: %s", url)
        return handle

    async def close(self, handle: PlaywrightTargetHandle) -> None:
        """ブラウザを終了し、リソースを解放する。閉じ済みでもエラーにしない。

        Args:
            handle: open() が返したハンドル
        """
        pw_instance, browser = handle._release()
        if pw_instance is None and browser is None:
            return

        logger.info("ブラウザを終了しています...")
        await _teardown(pw_instance, browser)
        logger.info("ブラウザを終了しました")


async def _teardown(pw_instance: Any, browser: Optional[Browser]) -> None:
    """ブラウザと Playwright を停止する。エラーはログに残して続行する。"""
    try:
        if browser is not None:
            await browser.close()
    except Exception:
        logger.exception("ブラウザの終了中にエラーが発生しました")

    try:
        if pw_instance is not None and hasattr(pw_instance, "stop"):
            await pw_instance.stop()
    except Exception:
        logger.exception("Playwright の停止中にエラーが発生しました")
