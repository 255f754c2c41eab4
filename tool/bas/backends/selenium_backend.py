"""
SeleniumBackend — Selenium WebDriver によるバックエンド実装

WebDriver の呼び出しはブロッキングのため asyncio.to_thread で実行し、
インタプリタ側からは他のバックエンドと同じ非同期インターフェースに見せる。
1 回に 1 操作しか実行しないため、WebDriver へのアクセスは直列化される。
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Sequence

from selenium.webdriver.common.by import By
from selenium.webdriver.common.keys import Keys

from .base import BrowserBackend

if TYPE_CHECKING:
    from selenium.webdriver.remote.webdriver import WebDriver
    from selenium.webdriver.remote.webelement import WebElement

logger = logging.getLogger(__name__)


class SeleniumBackend(BrowserBackend):
    """Selenium WebDriver を操作するバックエンド。"""

    name = "selenium"

    def __init__(self, driver: WebDriver) -> None:
        self._driver = driver
        self._closed = False

    @property
    def driver(self) -> WebDriver:
        return self._driver

    @property
    def closed(self) -> bool:
        return self._closed

    # ----- 要素 -----

    async def locate_all(self, selector: str) -> Sequence[WebElement]:
        return await asyncio.to_thread(
            self._driver.find_elements, By.CSS_SELECTOR, selector
        )

    async def click(self, handle: WebElement) -> None:
        await asyncio.to_thread(handle.click)

    async def fill(self, handle: WebElement, text: str) -> None:
        def _fill() -> None:
            handle.clear()
            handle.send_keys(text)

        await asyncio.to_thread(_fill)

    async def press_enter_or_submit(self, handle: WebElement) -> None:
        await asyncio.to_thread(handle.send_keys, Keys.RETURN)

    async def text(self, handle: WebElement) -> str:
        # WebElement.text は表示テキスト（innerText 相当）
        return await asyncio.to_thread(lambda: handle.text)

    # ----- ページ -----

    async def current_url(self) -> str:
        return await asyncio.to_thread(lambda: self._driver.current_url)

    async def navigate(self, url: str) -> None:
        logger.debug("driver.get: %s", url)
        await asyncio.to_thread(self._driver.get, url)

    async def clear_cookies(self) -> None:
        await asyncio.to_thread(self._driver.delete_all_cookies)

    async def evaluate(self, expression: str) -> Any:
        # execute_script は関数本体として実行されるため return を付与する
        body = f"return ({expression.strip().rstrip(';')});"
        return await asyncio.to_thread(self._driver.execute_script, body)

    async def ping(self) -> str:
        return await asyncio.to_thread(lambda: self._driver.title)

    # ----- ライフサイクル -----

    async def close(self) -> None:
        """WebDriver セッションを終了する。"""
        if self._closed:
            return
        self._closed = True
        logger.info("Selenium セッションを終了しています...")

        try:
            await asyncio.to_thread(self._driver.quit)
        except Exception:
            logger.exception("Selenium の終了中にエラーが発生しました")
