"""
比較演算子 — count アクションの $eq / $gt / $lt / $gte / $lte 評価

count アクションに指定された演算子キーを固定の優先順で探し、
最初に見つかった 1 つだけを観測値に対して評価する。
演算子キーが 1 つもない場合は評価しない（検証なしの count）。
"""

from __future__ import annotations

import operator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:
    from ..dsl.schema import CountAction


# 評価優先順（複数指定時は先頭のみ評価する）
COUNT_OPERATORS: tuple[str, ...] = ("$eq", "$gt", "$lt", "$gte", "$lte")

# ワイヤ上の演算子キー → (モデル属性名, 比較関数, 表示記号)
_OPERATORS: dict[str, tuple[str, Callable[[int, int], bool], str]] = {
    "$eq": ("eq", operator.eq, "=="),
    "$gt": ("gt", operator.gt, ">"),
    "$lt": ("lt", operator.lt, "<"),
    "$gte": ("gte", operator.ge, ">="),
    "$lte": ("lte", operator.le, "<="),
}


@dataclass(frozen=True)
class CountCheck:
    """count 検証の結果。

    Attributes:
        operator: 評価した演算子キー（$eq 等）
        target: 比較対象の値
        actual: 観測された要素数
        passed: 検証に成功したか
    """

    operator: str
    target: int
    actual: int
    passed: bool

    @property
    def expected(self) -> str:
        """期待条件の表示文字列（例: "count >= 3"）。"""
        return f"count {_OPERATORS[self.operator][2]} {self.target}"

    @property
    def message(self) -> str:
        return f"要素数の検証に失敗しました: 期待 {self.expected}, 実際 {self.actual}"


def present_operators(action: CountAction) -> list[str]:
    """action に指定されている演算子キーを優先順で返す。"""
    return [
        key for key in COUNT_OPERATORS
        if getattr(action, _OPERATORS[key][0]) is not None
    ]


def select_operator(action: CountAction) -> Optional[tuple[str, int]]:
    """評価対象の演算子と目標値を返す。

    Args:
        action: count アクション

    Returns:
        (演算子キー, 目標値)。演算子が 1 つもない場合は None
    """
    for key in COUNT_OPERATORS:
        target = getattr(action, _OPERATORS[key][0])
        if target is not None:
            return key, target
    return None


def evaluate_count(count: int, action: CountAction) -> Optional[CountCheck]:
    """観測した要素数を action の演算子で評価する。

    Args:
        count: 観測された要素数（0 以上）
        action: count アクション

    Returns:
        評価結果。演算子が指定されていない場合は None（検証なし）
    """
    selected = select_operator(action)
    if selected is None:
        return None

    key, target = selected
    compare = _OPERATORS[key][1]
    return CountCheck(
        operator=key,
        target=target,
        actual=count,
        passed=compare(count, target),
    )
