"""
Runner — アクションスクリプト実行エンジン

アクション列を 1 つのバックエンドに対して先頭から順に実行する。

実行ポリシー:
  - 操作系アクション（click, type, submit, goto/navigate, wait, deleteAllCookies）:
    バックエンドの例外はそのまま送出し、実行を中断する（フォールト）
  - 検証系アクション（exists, contains, count, goto のホスト検証）:
    失敗を Failure として記録し、次のアクションへ進む
  - throw: 無条件に ActionFault を送出して中断する
  - quit: バックエンドを閉じ、以降のアクションを実行せずに終了する
    （終了コード = code、未指定なら失敗件数）
  - 未知の type: ログに出力してスキップする
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterable, Optional, Union
from urllib.parse import urlparse

from ..dsl.schema import (
    ActionScript,
    ClickAction,
    ContainsAction,
    CountAction,
    DeleteAllCookiesAction,
    ExistsAction,
    GotoAction,
    NavigateAction,
    QuitAction,
    SubmitAction,
    ThrowAction,
    TypeAction,
    UnknownAction,
    WaitAction,
    parse_action,
)
from .compare import evaluate_count

if TYPE_CHECKING:
    from ..backends.base import BrowserBackend
    from ..dsl.schema import Action

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# 例外
# ---------------------------------------------------------------------------

class ActionFault(RuntimeError):
    """throw アクションによる実行中断。"""

    def __init__(self, index: int) -> None:
        super().__init__(f"throw アクションにより実行を中断しました (index={index})")
        self.index = index


def host_matches(expected_url: str, actual_url: str) -> bool:
    """遷移後の URL が goto 先のホスト（またはそのサブドメイン）にあるか。

    example.com → www.example.com のようなリダイレクトは一致とみなす。
    goto 先にホストがない場合は常に不一致。
    """
    expected = urlparse(expected_url).hostname
    actual = urlparse(actual_url).hostname
    if not expected or not actual:
        return False
    return actual == expected or actual.endswith("." + expected)


# ---------------------------------------------------------------------------
# 結果データクラス

# ---------------------------------------------------------------------------

@dataclass
class Failure:
    """検証失敗の記録。

    Attributes:
        index: アクションのインデックス（0始まり）
        action_type: アクションの type
        selector: 対象セレクタ（goto の場合は URL）
        expected: 期待条件
        actual: 観測値
        message: エラーメッセージ
    """

    index: int
    action_type: str
    selector: Optional[str]
    expected: str
    actual: str
    message: str


@dataclass
class RunResult:
    """1 回の実行結果。

    Attributes:
        failures: 検証失敗のリスト（発生順）
        executed: 処理したアクション数（スキップしたものを含む）
        skipped: 未知の type によりスキップしたアクション数
        quit_requested: quit アクションで終了したか
        quit_code: quit アクションが決定した終了コード
        started_at: 実行開始日時
        finished_at: 実行終了日時
        duration_ms: 実行時間（ミリ秒）
    """

    failures: list[Failure] = field(default_factory=list)
    executed: int = 0
    skipped: int = 0
    quit_requested: bool = False
    quit_code: Optional[int] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    duration_ms: float = 0.0

    @property
    def exit_code(self) -> int:
        """プロセス終了コード（quit の code、なければ失敗件数）。"""
        if self.quit_code is not None:
            return self.quit_code
        return len(self.failures)

    @property
    def status(self) -> str:
        return "passed" if not self.failures else "failed"


ActionsInput = Union[ActionScript, Iterable[Union["Action", dict]]]


# ---------------------------------------------------------------------------
# ActionRunner 本体
# ---------------------------------------------------------------------------

class ActionRunner:
    """1 つのバックエンドに対してアクション列を実行するインタプリタ。

    失敗リストは run() の呼び出しごとに新しく生成され、
    呼び出し間で共有されない。

    使用例::

        runner = ActionRunner(backend)
        result = await runner.run(script)
        sys.exit(result.exit_code)
    """

    def __init__(self, backend: BrowserBackend) -> None:
        self._backend = backend
        self._handlers: dict[type, Callable[[int, Any, RunResult], Awaitable[bool]]] = {
            ClickAction: self._click,
            TypeAction: self._type,
            SubmitAction: self._submit,
            ExistsAction: self._exists,
            ContainsAction: self._contains,
            CountAction: self._count,
            GotoAction: self._goto,
            NavigateAction: self._navigate,
            WaitAction: self._wait,
            DeleteAllCookiesAction: self._delete_all_cookies,
            ThrowAction: self._throw,
            QuitAction: self._quit,
            UnknownAction: self._unknown,
        }

    # -------------------------------------------------------------------
    # パブリック API
    # -------------------------------------------------------------------

    async def run(self, actions: ActionsInput) -> RunResult:
        """アクション列を順に実行し、結果を返す。

        辞書で渡されたアクションは実行直前にモデルへ変換するため、
        形式不正のアクションはその位置でフォールトとなる。

        Args:
            actions: ActionScript、またはアクション（モデル / 辞書）の列

        Returns:
            実行結果

        Raises:
            ActionFault: throw アクションを実行した場合
            BackendError: 操作対象の要素が見つからない場合など
            pydantic.ValidationError: アクションの形式が不正な場合
        """
        if isinstance(actions, ActionScript):
            actions = actions.actions

        result = RunResult(started_at=datetime.now())
        start_time = time.perf_counter()
        logger.info("実行開始 (backend=%s)", self._backend.name)

        try:
            for index, raw in enumerate(actions):
                try:
                    action = parse_action(raw)
                except Exception as exc:
                    raw_type = raw.get("type") if isinstance(raw, dict) else type(raw).__name__
                    logger.error("アクション %d (%s) の形式が不正です: %s", index, raw_type, exc)
                    raise
                result.executed += 1
                if await self._execute(index, action, result):
                    break
        finally:
            result.finished_at = datetime.now()
            result.duration_ms = (time.perf_counter() - start_time) * 1000

        logger.info(
            "実行終了: actions=%d, failures=%d, exit_code=%d",
            result.executed, len(result.failures), result.exit_code,
        )
        return result

    # -------------------------------------------------------------------
    # ディスパッチ
    # -------------------------------------------------------------------

    async def _execute(self, index: int, action: Action, result: RunResult) -> bool:
        """1 アクションを実行する。実行を終了すべき場合は True を返す。"""
        handler = self._handlers[type(action)]
        logger.debug("[%d] %s %s", index, action.type, action.target or "")
        try:
            return await handler(index, action, result)
        except Exception as exc:
            logger.error(
                "アクション %d (%s %s) でフォールト: %s",
                index, action.type, action.target or "", exc,
            )
            raise

    def _fail(
        self,
        result: RunResult,
        index: int,
        action: Action,
        expected: str,
        actual: str,
        message: str,
        selector: Optional[str] = None,
    ) -> None:
        failure = Failure(
            index=index,
            action_type=action.type,
            selector=selector if selector is not None else action.target,
            expected=expected,
            actual=actual,
            message=message,
        )
        result.failures.append(failure)
        logger.error(
            "✗ [%d] %s %s: %s", index, failure.action_type, failure.selector or "", message,
        )

    # -------------------------------------------------------------------
    # 操作アクション
    # -------------------------------------------------------------------

    async def _click(self, index: int, action: ClickAction, result: RunResult) -> bool:
        handle = await self._backend.locate_first(action.selector)
        await self._backend.click(handle)
        return False

    async def _type(self, index: int, action: TypeAction, result: RunResult) -> bool:
        handle = await self._backend.locate_first(action.selector)
        await self._backend.fill(handle, action.text)
        return False

    async def _submit(self, index: int, action: SubmitAction, result: RunResult) -> bool:
        handle = await self._backend.locate_first(action.selector)
        await self._backend.press_enter_or_submit(handle)
        return False

    # -------------------------------------------------------------------
    # 検証アクション
    # -------------------------------------------------------------------

    async def _exists(self, index: int, action: ExistsAction, result: RunResult) -> bool:
        count = await self._backend.count(action.selector)
        if count == 0:
            self._fail(
                result, index, action,
                expected="1 件以上",
                actual="0 件",
                message=f"要素 {action.selector} が存在しません",
            )
        return False

    async def _contains(self, index: int, action: ContainsAction, result: RunResult) -> bool:
        handles = await self._backend.locate_all(action.selector)
        if not handles:
            self._fail(
                result, index, action,
                expected=f"テキストに {action.text!r} を含む",
                actual="要素なし",
                message=f"要素 {action.selector} が存在しません",
            )
            return False

        text = await self._backend.text(handles[0])
        if action.text not in text:
            self._fail(
                result, index, action,
                expected=f"テキストに {action.text!r} を含む",
                actual=repr(text),
                message=(
                    f"要素のテキストに {action.text!r} が含まれていません"
                    f"（実際: {text!r}）"
                ),
            )
        return False

    async def _count(self, index: int, action: CountAction, result: RunResult) -> bool:
        count = await self._backend.count(action.selector)
        check = evaluate_count(count, action)
        if check is None:
            logger.debug("[%d] count %s = %d（演算子なし）", index, action.selector, count)
        elif not check.passed:
            self._fail(
                result, index, action,
                expected=check.expected,
                actual=str(count),
                message=check.message,
            )
        return False

    # -------------------------------------------------------------------
    # ナビゲーション・待機・セッション
    # -------------------------------------------------------------------

    async def _goto(self, index: int, action: GotoAction, result: RunResult) -> bool:
        logger.info("goto: %s", action.url)
        await self._backend.navigate(action.url)

        current = await self._backend.current_url()
        if not host_matches(action.url, current):
            expected_host = urlparse(action.url).hostname
            self._fail(
                result, index, action,
                expected=f"host == {expected_host}",
                actual=current,
                message=f"遷移先のホストが一致しません（現在の URL: {current}）",
                selector=action.url,
            )
        return False

    async def _navigate(self, index: int, action: NavigateAction, result: RunResult) -> bool:
        logger.info("navigate: %s", action.url)
        await self._backend.navigate(action.url)
        return False

    async def _wait(self, index: int, action: WaitAction, result: RunResult) -> bool:
        await asyncio.sleep(action.ms / 1000.0)
        return False

    async def _delete_all_cookies(
        self, index: int, action: DeleteAllCookiesAction, result: RunResult
    ) -> bool:
        await self._backend.clear_cookies()
        return False

    # -------------------------------------------------------------------
    # 制御アクション
    # -------------------------------------------------------------------

    async def _throw(self, index: int, action: ThrowAction, result: RunResult) -> bool:
        raise ActionFault(index)

    async def _quit(self, index: int, action: QuitAction, result: RunResult) -> bool:
        result.quit_requested = True
        result.quit_code = action.code if action.code is not None else len(result.failures)
        logger.info("quit: exit_code=%d", result.quit_code)
        await self._backend.close()
        return True

    async def _unknown(self, index: int, action: UnknownAction, result: RunResult) -> bool:
        result.skipped += 1
        logger.warning("未知のアクションをスキップします [%d]: %s", index, action.model_dump())
        return False


async def run_actions(backend: BrowserBackend, actions: ActionsInput) -> RunResult:
    """backend に対して actions を実行する（ActionRunner のショートカット）。"""
    return await ActionRunner(backend).run(actions)
