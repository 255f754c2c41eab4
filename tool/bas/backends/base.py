"""
BrowserBackend — ブラウザ制御バックエンドの共通インターフェース

インタプリタとレコーダーが必要とする最小限の操作セットを定義する。
Playwright / Selenium の 2 実装がこのインターフェースを満たし、
実行時にどちらか一方が選択される。

セレクタは CSS セレクタ、テキストは innerText 相当（マークアップではない）で
両実装とも同一の意味を持つ。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Sequence


# ---------------------------------------------------------------------------
# 例外
# ---------------------------------------------------------------------------

class BackendError(RuntimeError):
    """バックエンド操作の失敗（実行を中断するフォールト）。"""


class ElementNotFoundError(BackendError):
    """操作対象の要素が見つからない。"""

    def __init__(self, selector: str) -> None:
        super().__init__(f"要素が見つかりません: {selector}")
        self.selector = selector


# ---------------------------------------------------------------------------
# BrowserBackend 本体
# ---------------------------------------------------------------------------

class BrowserBackend(ABC):
    """ブラウザ制御バックエンドの抽象基底クラス。

    全メソッドは非同期。1 つのバックエンドは 1 回の実行で排他的に使用され、
    同時に複数のアクションが実行されることはない。

    要素ハンドルは実装ごとの不透明なオブジェクトで、
    locate_all() で取得したものを同じバックエンドの操作にだけ渡す。
    """

    #: エンジン名（"playwright" / "selenium"）
    name: str = ""

    # ----- 要素の取得 -----

    @abstractmethod
    async def locate_all(self, selector: str) -> Sequence[Any]:
        """selector に一致する要素ハンドルを文書順で返す。

        呼び出しごとに DOM を再検索する（結果をキャッシュしない）。
        """

    async def locate_first(self, selector: str) -> Any:
        """selector に一致する最初の要素ハンドルを返す。

        Raises:
            ElementNotFoundError: 一致する要素がない場合
        """
        handles = await self.locate_all(selector)
        if not handles:
            raise ElementNotFoundError(selector)
        return handles[0]

    async def count(self, selector: str) -> int:
        """selector に一致する要素数を返す。"""
        return len(await self.locate_all(selector))

    # ----- 要素の操作 -----

    @abstractmethod
    async def click(self, handle: Any) -> None:
        """要素をクリックする。"""

    @abstractmethod
    async def fill(self, handle: Any, text: str) -> None:
        """要素の入力値を text に置き換える。"""

    @abstractmethod
    async def press_enter_or_submit(self, handle: Any) -> None:
        """要素で Enter を押下し、関連フォームを送信する。"""

    @abstractmethod
    async def text(self, handle: Any) -> str:
        """要素の表示テキスト（innerText 相当）を返す。"""

    # ----- ページ -----

    @abstractmethod
    async def current_url(self) -> str:
        """現在のページ URL を返す。"""

    @abstractmethod
    async def navigate(self, url: str) -> None:
        """url を読み込む。"""

    @abstractmethod
    async def clear_cookies(self) -> None:
        """現在のセッション（コンテキスト）の Cookie を全て削除する。"""

    @abstractmethod
    async def evaluate(self, expression: str) -> Any:
        """ページ内で JavaScript 式を評価し、JSON 互換の値を返す。"""

    @abstractmethod
    async def ping(self) -> str:
        """疎通確認としてページタイトルを取得する。"""

    # ----- ライフサイクル -----

    @abstractmethod
    async def close(self) -> None:
        """ブラウザ / セッションを解放する。2 回目以降の呼び出しは何もしない。"""

    @property
    @abstractmethod
    def closed(self) -> bool:
        """close() 済みかどうか。"""
