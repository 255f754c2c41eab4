"""
Session — バックエンド接続の確立と解放

設定に従ってバックエンド（Selenium / Playwright）に接続し、
実行が終わったら必ず解放する。

主な機能:
  - リトライ付き接続（接続後に ping で疎通確認）
  - セッション状態の追跡
  - run_session(): 接続 → TARGET_URL を開く → 処理 → 解放
    （正常終了・quit・例外・SIGINT/SIGTERM のいずれでも解放する）
"""

from __future__ import annotations

import asyncio
import enum
import logging
import signal
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, TypeVar

if TYPE_CHECKING:
    from ..backends.base import BrowserBackend
    from ..config import RunConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

_BROWSER_ARGS = ["--no-sandbox", "--disable-dev-shm-usage"]


# ---------------------------------------------------------------------------
# セッション状態
# ---------------------------------------------------------------------------

class SessionState(enum.Enum):
    """バックエンドセッションの状態。"""

    IDLE = "idle"
    CONNECTING = "connecting"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


# ---------------------------------------------------------------------------
# BrowserSession 本体
# ---------------------------------------------------------------------------

class BrowserSession:
    """1 つのバックエンド接続のライフサイクルを管理する。"""

    def __init__(self, config: RunConfig) -> None:
        self._config = config
        self._state: SessionState = SessionState.IDLE
        self._backend: Optional[BrowserBackend] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state == SessionState.ACTIVE

    @property
    def backend(self) -> Optional[BrowserBackend]:
        """接続済みのバックエンド。非アクティブ時は None。"""
        if not self.is_active:
            return None
        return self._backend

    async def connect(self) -> BrowserBackend:
        """バックエンドに接続する。

        connect_retries 回まで試行し、各試行の間は connect_interval 秒待機する。
        接続できたバックエンドは ping で疎通確認してから返す。

        Returns:
            接続済みのバックエンド

        Raises:
            RuntimeError: 既にアクティブなセッションがある場合
            ConnectionError: 全ての試行に失敗した場合
        """
        if self._state == SessionState.ACTIVE:
            raise RuntimeError(
                "既にアクティブなセッションがあります。先に close() を呼んでください。"
            )

        engine = self._config.engine
        retries = max(1, self._config.connect_retries)
        self._state = SessionState.CONNECTING

        for attempt in range(1, retries + 1):
            logger.info("%s に接続しています (%d/%d)", engine, attempt, retries)
            backend: Optional[BrowserBackend] = None
            try:
                backend = await self._open_backend()
                await backend.ping()
            except Exception as exc:
                logger.warning("%s への接続に失敗しました: %s", engine, exc)
                if backend is not None:
                    await backend.close()
                if attempt < retries:
                    await asyncio.sleep(self._config.connect_interval)
                continue

            self._backend = backend
            self._state = SessionState.ACTIVE
            logger.info("%s に接続しました", engine)
            return backend

        self._state = SessionState.IDLE
        raise ConnectionError(f"{engine} に {retries} 回試行しても接続できませんでした")

    async def close(self) -> None:
        """バックエンドを解放する。2 回目以降の呼び出しは何もしない。"""
        if self._state in (SessionState.CLOSED, SessionState.CLOSING):
            return

        self._state = SessionState.CLOSING
        try:
            if self._backend is not None:
                await self._backend.close()
        finally:
            self._backend = None
            self._state = SessionState.CLOSED

    # -------------------------------------------------------------------
    # エンジン別の接続
    # -------------------------------------------------------------------

    async def _open_backend(self) -> BrowserBackend:
        if self._config.engine == "playwright":
            return await self._open_playwright()
        if self._config.engine == "selenium":
            return await self._open_selenium()
        raise ValueError(f"未知のエンジンです: {self._config.engine}")

    async def _open_selenium(self) -> BrowserBackend:
        """Selenium Remote WebDriver（URL 未設定時はローカル Chrome）を生成する。"""
        from selenium import webdriver

        from ..backends.selenium_backend import SeleniumBackend

        options = webdriver.ChromeOptions()
        for arg in _BROWSER_ARGS:
            options.add_argument(arg)

        remote_url = self._config.selenium_remote_url
        if remote_url:
            driver = await asyncio.to_thread(
                webdriver.Remote, command_executor=remote_url, options=options,
            )
        else:
            if not self._config.show_browser:
                options.add_argument("--headless=new")
            driver = await asyncio.to_thread(webdriver.Chrome, options=options)
        return SeleniumBackend(driver)

    async def _open_playwright(self) -> BrowserBackend:
        """ws エンドポイントがあれば接続し、なければ Chromium を起動する。"""
        from playwright.async_api import async_playwright

        from ..backends.playwright_backend import PlaywrightBackend

        pw = await async_playwright().start()
        try:
            endpoint = self._config.playwright_ws_endpoint
            if endpoint:
                logger.debug("PLAYWRIGHT_WS_ENDPOINT: %s", endpoint)
                browser = await pw.chromium.connect(endpoint, timeout=60_000)
            else:
                browser = await pw.chromium.launch(
                    headless=not self._config.show_browser,
                    args=_BROWSER_ARGS,
                )
            context = await browser.new_context()
            page = await context.new_page()
        except Exception:
            await pw.stop()
            raise
        return PlaywrightBackend(page, browser=browser, playwright=pw)


# ---------------------------------------------------------------------------
# 接続 → 処理 → 解放
# ---------------------------------------------------------------------------

async def run_session(
    config: RunConfig,
    operation: Callable[[BrowserBackend], Awaitable[T]],
    session: Optional[BrowserSession] = None,
) -> T:
    """バックエンドに接続し、target_url を開いて operation を実行する。

    SIGINT / SIGTERM を受信すると実行中のタスクをキャンセルする。
    どの経路で終了してもバックエンドは解放される。

    Args:
        config: 実行設定
        operation: 接続済みバックエンドを受け取る処理
        session: 使用するセッション（None で config から生成）

    Returns:
        operation の戻り値

    Raises:
        asyncio.CancelledError: シグナルにより中断された場合
    """
    session = session or BrowserSession(config)
    backend = await session.connect()

    loop = asyncio.get_running_loop()
    task = asyncio.current_task()
    installed: list[signal.Signals] = []
    if task is not None:
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, _cancel_on_signal, sig, task)
            except (NotImplementedError, RuntimeError):
                # Windows やメインスレッド以外ではシグナルハンドラを登録できない
                logger.debug("シグナルハンドラを登録できません: %s", sig.name)
                continue
            installed.append(sig)

    try:
        logger.info("開いています: %s", config.target_url)
        await backend.navigate(config.target_url)
        return await operation(backend)
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        await session.close()


def _cancel_on_signal(sig: signal.Signals, task: asyncio.Task) -> None:
    logger.info("%s を受信しました。終了します...", sig.name)
    task.cancel()
