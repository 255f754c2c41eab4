"""
PlaywrightBackend — Playwright (async API) によるバックエンド実装

Page.query_selector_all() に css= エンジンを指定して要素ハンドルを取得し、
ElementHandle の click / fill / press / inner_text で操作する。
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional, Sequence

from .base import BrowserBackend

if TYPE_CHECKING:
    from playwright.async_api import Browser, ElementHandle, Page, Playwright

logger = logging.getLogger(__name__)


class PlaywrightBackend(BrowserBackend):
    """Playwright の Page を操作するバックエンド。

    使用例::

        backend = PlaywrightBackend(page, browser=browser, playwright=pw)
        await backend.navigate("https://example.com")
        await backend.close()
    """

    name = "playwright"

    def __init__(
        self,
        page: Page,
        browser: Optional[Browser] = None,
        playwright: Optional[Playwright] = None,
    ) -> None:
        """PlaywrightBackend を初期化する。

        Args:
            page: 操作対象の Page
            browser: close() で終了する Browser（None の場合は Page の Context のみ閉じる）
            playwright: close() で停止する Playwright インスタンス
        """
        self._page = page
        self._browser = browser
        self._playwright = playwright
        self._closed = False

    @property
    def page(self) -> Page:
        return self._page

    @property
    def closed(self) -> bool:
        return self._closed

    # ----- 要素 -----

    async def locate_all(self, selector: str) -> Sequence[ElementHandle]:
        # XPath や text= などの Playwright 独自セレクタとして解釈させない
        return await self._page.query_selector_all(f"css={selector}")

    async def click(self, handle: ElementHandle) -> None:
        await handle.click()

    async def fill(self, handle: ElementHandle, text: str) -> None:
        await handle.fill(text)

    async def press_enter_or_submit(self, handle: ElementHandle) -> None:
        await handle.press("Enter")

    async def text(self, handle: ElementHandle) -> str:
        return await handle.inner_text()

    # ----- ページ -----

    async def current_url(self) -> str:
        # Page.url はプロパティ
        return self._page.url

    async def navigate(self, url: str) -> None:
        logger.debug("page.goto: %s", url)
        await self._page.goto(url)
        await self._page.wait_for_load_state("domcontentloaded")

    async def clear_cookies(self) -> None:
        await self._page.context.clear_cookies()

    async def evaluate(self, expression: str) -> Any:
        return await self._page.evaluate(expression)

    async def ping(self) -> str:
        return await self._page.title()

    # ----- ライフサイクル -----

    async def close(self) -> None:
        """Browser（なければ Context）を閉じ、Playwright を停止する。"""
        if self._closed:
            return
        self._closed = True
        logger.info("Playwright ブラウザを終了しています...")

        try:
            if self._browser is not None:
                await self._browser.close()
            else:
                await self._page.context.close()
        except Exception:
            logger.exception("Playwright の終了中にエラーが発生しました")
        finally:
            if self._playwright is not None:
                try:
                    await self._playwright.stop()
                except Exception:
                    logger.exception("Playwright の停止中にエラーが発生しました")
