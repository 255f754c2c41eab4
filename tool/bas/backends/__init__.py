"""
バックエンドパッケージ

ブラウザ制御バックエンドの共通インターフェースと 2 つの実装を提供する。

  - BrowserBackend: 共通インターフェース（抽象基底クラス）
  - PlaywrightBackend: Playwright (async API) 実装
  - SeleniumBackend: Selenium WebDriver 実装

各実装はエンジンのライブラリを import するため、遅延インポートで公開する。
"""

from __future__ import annotations

from .base import BackendError, BrowserBackend, ElementNotFoundError

#: 選択可能なエンジン名
ENGINES: tuple[str, ...] = ("selenium", "playwright")

__all__ = [
    "BackendError",
    "BrowserBackend",
    "ElementNotFoundError",
    "ENGINES",
    "backend_class",
]


def backend_class(engine: str) -> type[BrowserBackend]:
    """エンジン名に対応するバックエンドクラスを返す。

    Args:
        engine: "selenium" または "playwright"

    Raises:
        ValueError: 未知のエンジン名の場合
    """
    if engine == "playwright":
        from .playwright_backend import PlaywrightBackend
        return PlaywrightBackend
    if engine == "selenium":
        from .selenium_backend import SeleniumBackend
        return SeleniumBackend
    raise ValueError(
        f"未知のエンジンです: {engine}（選択可能: {', '.join(ENGINES)}）"
    )
