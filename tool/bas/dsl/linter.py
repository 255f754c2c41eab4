"""
Script Linter — アクションスクリプトの静的解析

実行前にスクリプトのアンチパターンや曖昧さを検出して報告する。

検出ルール:
  - count-without-operator: 演算子なしの count（何も検証しない） → info
  - count-multiple-operators: 演算子の複数指定（先頭のみ評価） → warning
  - ambiguous-selector: id を持たない要素のタグ名だけのセレクタ → warning
  - unknown-action: 未知の type（実行時にスキップ） → warning
  - unreachable-after-quit: quit 以降のアクション → warning
  - url-without-host: ホストを持たない goto / navigate の URL → error
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import urlparse

from ..core.compare import present_operators
from .schema import (
    ActionScript,
    CountAction,
    GotoAction,
    NavigateAction,
    QuitAction,
    UnknownAction,
)


# ---------------------------------------------------------------------------
# Lint 重大度
# ---------------------------------------------------------------------------

class LintSeverity(Enum):
    """Lint 結果の重大度レベル。"""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class LintIssue:
    """Lint で検出された問題。

    Attributes:
        index: アクションのインデックス（0始まり）
        action_type: アクションの type
        severity: 重大度
        rule: 適用されたルール名
        message: 問題の説明メッセージ
    """

    index: int
    action_type: str
    severity: LintSeverity
    rule: str
    message: str


# レコーダーが id なし要素に対して出力する、タグ名だけのセレクタ
_BARE_TAG = re.compile(r"^[a-z][a-z0-9-]*$")


# ---------------------------------------------------------------------------
# ScriptLinter 本体
# ---------------------------------------------------------------------------

class ScriptLinter:
    """アクションスクリプトの静的解析を行う Linter。"""

    def lint(self, script: ActionScript) -> list[LintIssue]:
        """全 lint ルールを適用し、問題を検出する。

        Args:
            script: 検査対象のスクリプト

        Returns:
            検出された LintIssue のリスト（問題なしの場合は空リスト）
        """
        issues: list[LintIssue] = []
        quit_index: Optional[int] = None

        for index, action in enumerate(script.actions):
            if quit_index is not None:
                issues.append(LintIssue(
                    index=index,
                    action_type=action.type,
                    severity=LintSeverity.WARNING,
                    rule="unreachable-after-quit",
                    message=f"アクション {quit_index} の quit 以降は実行されません。",
                ))

            for check in (
                self._check_count_operators,
                self._check_ambiguous_selector,
                self._check_unknown_action,
                self._check_url_host,
            ):
                issue = check(index, action)
                if issue is not None:
                    issues.append(issue)

            if isinstance(action, QuitAction) and quit_index is None:
                quit_index = index

        return issues

    # -----------------------------------------------------------------
    # Lint ルール
    # -----------------------------------------------------------------

    def _check_count_operators(self, index: int, action) -> Optional[LintIssue]:
        if not isinstance(action, CountAction):
            return None

        operators = present_operators(action)
        if not operators:
            return LintIssue(
                index=index,
                action_type=action.type,
                severity=LintSeverity.INFO,
                rule="count-without-operator",
                message=(
                    f"count '{action.selector}' に演算子がありません。"
                    "要素数は検証されません。"
                ),
            )
        if len(operators) > 1:
            return LintIssue(
                index=index,
                action_type=action.type,
                severity=LintSeverity.WARNING,
                rule="count-multiple-operators",
                message=(
                    f"演算子が複数指定されています ({', '.join(operators)})。"
                    f"{operators[0]} のみ評価されます。"
                ),
            )
        return None

    def _check_ambiguous_selector(self, index: int, action) -> Optional[LintIssue]:
        selector = action.target
        if not selector or not _BARE_TAG.match(selector):
            return None
        return LintIssue(
            index=index,
            action_type=action.type,
            severity=LintSeverity.WARNING,
            rule="ambiguous-selector",
            message=(
                f"セレクタ '{selector}' はタグ名のみです。"
                "同じタグの要素が複数ある場合、先頭の要素が対象になります。"
            ),
        )

    def _check_unknown_action(self, index: int, action) -> Optional[LintIssue]:
        if not isinstance(action, UnknownAction):
            return None
        return LintIssue(
            index=index,
            action_type=action.type,
            severity=LintSeverity.WARNING,
            rule="unknown-action",
            message=f"未知のアクション '{action.type}' は実行時にスキップされます。",
        )

    def _check_url_host(self, index: int, action) -> Optional[LintIssue]:
        if not isinstance(action, (GotoAction, NavigateAction)):
            return None
        if urlparse(action.url).hostname:
            return None
        return LintIssue(
            index=index,
            action_type=action.type,
            severity=LintSeverity.ERROR,
            rule="url-without-host",
            message=f"URL '{action.url}' にホストがありません（スキームを含めてください）。",
        )
