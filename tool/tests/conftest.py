"""
テスト共通フィクスチャ

実ブラウザを起動せずにインタプリタ・レコーダーを検証するため、
メモリ上の簡易 DOM を持つ FakeBackend を提供する。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import urlparse

import pytest

from bas.backends.base import BrowserBackend
from bas.recorder.recorder import COLLECT_EXPRESSION, STOP_REQUESTED_EXPRESSION


# ---------------------------------------------------------------------------
# FakeBackend
# ---------------------------------------------------------------------------

@dataclass
class FakeElement:
    """簡易 DOM 要素。"""

    tag: str
    id: Optional[str] = None
    text: str = ""
    value: str = ""
    clicks: int = 0
    submits: int = 0


class FakeBackend(BrowserBackend):
    """メモリ上の DOM（セレクタ → 要素リスト）を操作するバックエンド。

    Attributes:
        dom: セレクタ → 要素リスト
        redirects: URL → 実際に到達する URL（goto のホスト検証用）
        calls: 呼び出されたメソッド名と引数の履歴
        page_state: 注入スクリプトが window.__basRecorder に保持する状態
        stop_after_polls: 停止フラグ取得が何回目で True になるか
    """

    name = "fake"

    def __init__(
        self,
        dom: Optional[dict[str, list[FakeElement]]] = None,
        url: str = "about:blank",
        redirects: Optional[dict[str, str]] = None,
        stop_after_polls: int = 1,
    ) -> None:
        self.dom: dict[str, list[FakeElement]] = dom or {}
        self.url = url
        self.redirects = redirects or {}
        self.calls: list[tuple] = []
        self.cookies: dict[str, str] = {"session": "abc"}
        self.page_state: Optional[dict[str, Any]] = None
        self.stop_after_polls = stop_after_polls
        self.polls = 0
        self.close_count = 0
        self._closed = False

    # ----- 要素 -----

    async def locate_all(self, selector: str) -> list[FakeElement]:
        self.calls.append(("locate_all", selector))
        return list(self.dom.get(selector, []))

    async def click(self, handle: FakeElement) -> None:
        self.calls.append(("click", handle))
        handle.clicks += 1

    async def fill(self, handle: FakeElement, text: str) -> None:
        self.calls.append(("fill", handle, text))
        handle.value = text

    async def press_enter_or_submit(self, handle: FakeElement) -> None:
        self.calls.append(("submit", handle))
        handle.submits += 1

    async def text(self, handle: FakeElement) -> str:
        return handle.text

    # ----- ページ -----

    async def current_url(self) -> str:
        return self.url

    async def navigate(self, url: str) -> None:
        self.calls.append(("navigate", url))
        if not urlparse(url).scheme:
            raise ValueError(f"invalid url: {url}")
        self.url = self.redirects.get(url, url)

    async def clear_cookies(self) -> None:
        self.calls.append(("clear_cookies",))
        self.cookies.clear()

    async def evaluate(self, expression: str) -> Any:
        if expression == STOP_REQUESTED_EXPRESSION:
            self.polls += 1
            if self.page_state is None:
                return False
            if self.polls >= self.stop_after_polls:
                self.page_state["active"] = False
                self.page_state["stopRequested"] = True
            return self.page_state["stopRequested"]
        if expression == COLLECT_EXPRESSION:
            return [] if self.page_state is None else list(self.page_state["events"])
        if "__basRecorder" in expression:
            # 注入スクリプト
            self.calls.append(("inject",))
            if self.page_state is not None and self.page_state["active"]:
                return False
            self.page_state = {"events": [], "active": True, "stopRequested": False}
            return True
        raise NotImplementedError(expression)

    async def ping(self) -> str:
        return "Fake Page"

    # ----- ライフサイクル -----

    async def close(self) -> None:
        self.close_count += 1
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    # ----- ページ上のユーザー操作（記録中の操作を模擬） -----

    def user_click(self, element: FakeElement) -> None:
        """注入スクリプトの click リスナーと同じ規則でイベントを積む。"""
        if self.page_state is None or not self.page_state["active"]:
            return
        self.page_state["events"].append(
            {"type": "click", "selector": _selector_for(element)}
        )

    def user_input(self, element: FakeElement, value: str) -> None:
        """注入スクリプトの input リスナーと同じ規則でイベントを積む。"""
        if self.page_state is None or not self.page_state["active"]:
            return
        selector = _selector_for(element)
        events = self.page_state["events"]
        if events and events[-1]["type"] == "type" and events[-1]["selector"] == selector:
            events[-1]["text"] = value
            return
        events.append({"type": "type", "selector": selector, "text": value})


def _selector_for(element: FakeElement) -> str:
    return f"#{element.id}" if element.id else element.tag.lower()


# ---------------------------------------------------------------------------
# pytest フィクスチャ
# ---------------------------------------------------------------------------

@pytest.fixture
def make_backend():
    """FakeBackend を生成するファクトリ。"""
    return FakeBackend


@pytest.fixture
def fake_backend() -> FakeBackend:
    """リスト・見出し・フォームを持つ標準的なページ。"""
    return FakeBackend(
        dom={
            "li": [FakeElement("li", text=f"item {i}") for i in range(3)],
            "h1": [FakeElement("h1", text="Example Domain")],
            "#q": [FakeElement("input", id="q")],
            "#go": [FakeElement("button", id="go", text="Go")],
        },
        url="https://example.com/",
    )
