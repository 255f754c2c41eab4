"""
PlaywrightBackend のユニットテスト

Playwright の Page / ElementHandle はモックを使用し、
各操作が正しい Playwright メソッドを呼び出すことを確認する。
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from bas.backends import ElementNotFoundError, backend_class
from bas.backends.playwright_backend import PlaywrightBackend


# ---------------------------------------------------------------------------
# ヘルパー: モック生成
# ---------------------------------------------------------------------------

def _make_mock_page(handles=None):
    """Playwright Page のモックを生成する。"""
    page = MagicMock()
    page.url = "https://example.com/"
    page.query_selector_all = AsyncMock(return_value=handles or [])
    page.goto = AsyncMock()
    page.wait_for_load_state = AsyncMock()
    page.evaluate = AsyncMock(return_value=True)
    page.title = AsyncMock(return_value="Example Domain")
    page.context.clear_cookies = AsyncMock()
    page.context.close = AsyncMock()
    return page


def _make_mock_handle(text: str = ""):
    handle = MagicMock()
    handle.click = AsyncMock()
    handle.fill = AsyncMock()
    handle.press = AsyncMock()
    handle.inner_text = AsyncMock(return_value=text)
    return handle


class TestElements:
    """要素の取得と操作。"""

    def test_locate_all_queries_css(self):
        handles = [_make_mock_handle(), _make_mock_handle()]
        page = _make_mock_page(handles)
        backend = PlaywrightBackend(page)

        assert asyncio.run(backend.locate_all("li")) == handles
        assert asyncio.run(backend.count("li")) == 2
        page.query_selector_all.assert_awaited_with("css=li")

    @pytest.mark.parametrize("selector", ["//h1", "text=Go", "xpath=//li"])
    def test_locate_all_is_css_only(self, selector):
        page = _make_mock_page()
        asyncio.run(PlaywrightBackend(page).locate_all(selector))
        page.query_selector_all.assert_awaited_once_with(f"css={selector}")


    def test_locate_first_missing(self):
        backend = PlaywrightBackend(_make_mock_page([]))
        with pytest.raises(ElementNotFoundError):
            asyncio.run(backend.locate_first("#missing"))

    def test_click_fill_press(self):
        handle = _make_mock_handle()
        backend = PlaywrightBackend(_make_mock_page([handle]))

        asyncio.run(backend.click(handle))
        asyncio.run(backend.fill(handle, "hello"))
        asyncio.run(backend.press_enter_or_submit(handle))

        handle.click.assert_awaited_once()
        handle.fill.assert_awaited_once_with("hello")
        handle.press.assert_awaited_once_with("Enter")

    def test_text_is_inner_text(self):
        handle = _make_mock_handle("Example Domain")
        backend = PlaywrightBackend(_make_mock_page([handle]))
        assert asyncio.run(backend.text(handle)) == "Example Domain"


class TestPage:
    """ページ操作。"""

    def test_navigate_waits_for_dom(self):
        page = _make_mock_page()
        asyncio.run(PlaywrightBackend(page).navigate("https://example.com/a"))
        page.goto.assert_awaited_once_with("https://example.com/a")
        page.wait_for_load_state.assert_awaited_once_with("domcontentloaded")

    def test_current_url(self):
        assert asyncio.run(PlaywrightBackend(_make_mock_page()).current_url()) == (
            "https://example.com/"
        )

    def test_clear_cookies(self):
        page = _make_mock_page()
        asyncio.run(PlaywrightBackend(page).clear_cookies())
        page.context.clear_cookies.assert_awaited_once()

    def test_evaluate_and_ping(self):
        page = _make_mock_page()
        backend = PlaywrightBackend(page)
        assert asyncio.run(backend.evaluate("1 + 1")) is True
        page.evaluate.assert_awaited_once_with("1 + 1")
        assert asyncio.run(backend.ping()) == "Example Domain"


class TestClose:
    """close() の冪等性と解放順序。"""

    def test_close_browser_and_playwright(self):
        browser = MagicMock()
        browser.close = AsyncMock()
        pw = MagicMock()
        pw.stop = AsyncMock()
        backend = PlaywrightBackend(_make_mock_page(), browser=browser, playwright=pw)

        asyncio.run(backend.close())
        asyncio.run(backend.close())

        assert backend.closed is True
        browser.close.assert_awaited_once()
        pw.stop.assert_awaited_once()

    def test_close_context_without_browser(self):
        page = _make_mock_page()
        asyncio.run(PlaywrightBackend(page).close())
        page.context.close.assert_awaited_once()

    def test_close_error_is_logged_not_raised(self, caplog):
        browser = MagicMock()
        browser.close = AsyncMock(side_effect=RuntimeError("gone"))
        backend = PlaywrightBackend(_make_mock_page(), browser=browser)

        asyncio.run(backend.close())

        assert backend.closed is True
        assert "終了中にエラー" in caplog.text

    def test_playwright_stopped_when_browser_close_fails(self, caplog):
        browser = MagicMock()
        browser.close = AsyncMock(side_effect=RuntimeError("gone"))
        pw = MagicMock()
        pw.stop = AsyncMock()
        backend = PlaywrightBackend(_make_mock_page(), browser=browser, playwright=pw)

        asyncio.run(backend.close())

        pw.stop.assert_awaited_once()
        assert "終了中にエラー" in caplog.text

    def test_stop_error_is_logged_not_raised(self, caplog):
        pw = MagicMock()
        pw.stop = AsyncMock(side_effect=RuntimeError("driver gone"))
        page = _make_mock_page()
        backend = PlaywrightBackend(page, playwright=pw)

        asyncio.run(backend.close())

        page.context.close.assert_awaited_once()
        assert "停止中にエラー" in caplog.text



class TestBackendClass:
    """エンジン名からの実装クラス解決。"""

    def test_playwright(self):
        assert backend_class("playwright") is PlaywrightBackend

    def test_selenium(self):
        from bas.backends.selenium_backend import SeleniumBackend

        assert backend_class("selenium") is SeleniumBackend

    def test_unknown(self):
        with pytest.raises(ValueError, match="未知のエンジン"):
            backend_class("webkit")
