"""
DSL スキーマ定義 — アクションスクリプトモデル

JSON アクションスクリプトで使用するアクションの Pydantic v2 モデルを定義する。
各アクションは type フィールドをタグとする単純なレコードで、
分岐・ループを持たないフラットな列としてスクリプトを構成する。

アクション種別:
  - 操作: click, type, submit
  - 検証: exists, contains, count
  - ナビゲーション: goto, navigate
  - 待機: wait
  - セッション: deleteAllCookies
  - 制御: throw, quit

未知の type は UnknownAction として保持し、実行時にスキップする。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, TypeAdapter, field_validator


# ---------------------------------------------------------------------------
# 共通ベース
# ---------------------------------------------------------------------------

class _ActionBase(BaseModel):
    """全アクションの共通ベース。

    ロード後のスクリプトは不変とするため frozen にする。
    バリアントに存在しないフィールドは無視する。
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    type: str

    @property
    def target(self) -> Optional[str]:
        """ログ・レポート用の対象セレクタ（セレクタを持たない場合は None）。"""
        return getattr(self, "selector", None)


# ---------------------------------------------------------------------------
# 操作アクション
# ---------------------------------------------------------------------------

class ClickAction(_ActionBase):
    """selector に一致する最初の要素をクリックする。"""

    type: Literal["click"] = "click"
    selector: str = Field(..., description="CSS セレクタ")


class TypeAction(_ActionBase):
    """selector に一致する要素の入力値を text に設定する。"""

    type: Literal["type"] = "type"
    selector: str = Field(..., description="CSS セレクタ")
    text: str = Field(..., description="入力する文字列")


class SubmitAction(_ActionBase):
    """selector に一致する要素で Enter を押下し、フォームを送信する。"""

    type: Literal["submit"] = "submit"
    selector: str = Field(..., description="CSS セレクタ")


# ---------------------------------------------------------------------------
# 検証アクション
# ---------------------------------------------------------------------------

class ExistsAction(_ActionBase):
    """selector に一致する要素が 1 件以上存在することを検証する。"""

    type: Literal["exists"] = "exists"
    selector: str = Field(..., description="CSS セレクタ")


class ContainsAction(_ActionBase):
    """selector に一致する要素の表示テキストに text が含まれることを検証する。"""

    type: Literal["contains"] = "contains"
    selector: str = Field(..., description="CSS セレクタ")
    text: str = Field(..., description="含まれるべき文字列")


class CountAction(_ActionBase):
    """selector に一致する要素数を比較演算子で検証する。

    演算子キーはワイヤ上では $eq / $gt / $lt / $gte / $lte と表記する。
    いずれも指定されていない場合は検証を行わない。
    """

    type: Literal["count"] = "count"
    selector: str = Field(..., description="CSS セレクタ")
    eq: Optional[int] = Field(default=None, alias="$eq")
    gt: Optional[int] = Field(default=None, alias="$gt")
    lt: Optional[int] = Field(default=None, alias="$lt")
    gte: Optional[int] = Field(default=None, alias="$gte")
    lte: Optional[int] = Field(default=None, alias="$lte")

    @field_validator("eq", "gt", "lt", "gte", "lte", mode="before")
    @classmethod
    def reject_null_operator(cls, v: Any) -> Any:
        """演算子キーに null を明示した場合はエラーにする。"""
        if v is None:
            raise ValueError("比較演算子の値に null は指定できません")
        return v


# ---------------------------------------------------------------------------
# ナビゲーション・待機・セッション
# ---------------------------------------------------------------------------

class GotoAction(_ActionBase):
    """url へ遷移し、遷移後のホストが url のホストと一致することを検証する。"""

    type: Literal["goto"] = "goto"
    url: str = Field(..., description="遷移先 URL")


class NavigateAction(_ActionBase):
    """url へ遷移する（ホスト検証なし）。"""

    type: Literal["navigate"] = "navigate"
    url: str = Field(..., description="遷移先 URL")


class WaitAction(_ActionBase):
    """ms ミリ秒だけ実行を停止する。"""

    type: Literal["wait"] = "wait"
    ms: int = Field(..., ge=0, description="待機時間（ミリ秒）")


class DeleteAllCookiesAction(_ActionBase):
    """現在のセッションの Cookie を全て削除する。"""

    type: Literal["deleteAllCookies"] = "deleteAllCookies"


# ---------------------------------------------------------------------------
# 制御アクション
# ---------------------------------------------------------------------------

class ThrowAction(_ActionBase):
    """無条件に例外を送出して実行を中断する（インタプリタ自体の検証用）。"""

    type: Literal["throw"] = "throw"


class QuitAction(_ActionBase):
    """実行を終了する。終了コードは code、未指定なら失敗件数。"""

    type: Literal["quit"] = "quit"
    code: Optional[int] = Field(default=None, description="明示的な終了コード")


class UnknownAction(_ActionBase):
    """未知の type を持つアクション。元のフィールドをそのまま保持する。"""

    model_config = ConfigDict(frozen=True, extra="allow")

    type: str


# type タグ → モデルクラス（閉じた集合）
ACTION_MODELS: dict[str, type[_ActionBase]] = {
    "click": ClickAction,
    "type": TypeAction,
    "submit": SubmitAction,
    "exists": ExistsAction,
    "contains": ContainsAction,
    "count": CountAction,
    "goto": GotoAction,
    "navigate": NavigateAction,
    "wait": WaitAction,
    "deleteAllCookies": DeleteAllCookiesAction,
    "throw": ThrowAction,
    "quit": QuitAction,
}


def _action_tag(value: Any) -> str:
    """判別用タグを返す。未知の type は "unknown" に振り分ける。"""
    if isinstance(value, dict):
        action_type = value.get("type")
    else:
        action_type = getattr(value, "type", None)
    if isinstance(action_type, str) and action_type in ACTION_MODELS:
        return action_type
    return "unknown"


Action = Annotated[
    Union[
        Annotated[ClickAction, Tag("click")],
        Annotated[TypeAction, Tag("type")],
        Annotated[SubmitAction, Tag("submit")],
        Annotated[ExistsAction, Tag("exists")],
        Annotated[ContainsAction, Tag("contains")],
        Annotated[CountAction, Tag("count")],
        Annotated[GotoAction, Tag("goto")],
        Annotated[NavigateAction, Tag("navigate")],
        Annotated[WaitAction, Tag("wait")],
        Annotated[DeleteAllCookiesAction, Tag("deleteAllCookies")],
        Annotated[ThrowAction, Tag("throw")],
        Annotated[QuitAction, Tag("quit")],
        Annotated[UnknownAction, Tag("unknown")],
    ],
    Discriminator(_action_tag),
]
"""全アクション型の判別共用体（未知アクションを含む）。

type タグで対応するモデルに振り分け、未知のタグは UnknownAction とする。
"""

_ACTION_ADAPTER: TypeAdapter[Action] = TypeAdapter(Action)


def parse_action(data: Any) -> Action:
    """生の辞書を対応するアクションモデルに変換する。

    既にモデルインスタンスの場合はそのまま返す。
    type が未知の場合は UnknownAction を返す。

    Args:
        data: アクション辞書またはアクションモデル

    Returns:
        アクションモデル

    Raises:
        pydantic.ValidationError: 必須フィールドの欠落・型不一致の場合
    """
    if isinstance(data, _ActionBase):
        return data  # type: ignore[return-value]
    return _ACTION_ADAPTER.validate_python(data)


def action_to_dict(action: Action) -> dict[str, Any]:
    """アクションをワイヤ形式（JSON 互換辞書）に変換する。"""
    return action.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# ActionScript 定義
# ---------------------------------------------------------------------------

class ActionScript(BaseModel):
    """アクションスクリプトのルートモデル。

    JSON ドキュメント { "actions": [...] } に対応する。
    actions の順序が実行順序であり、ロード後は変更できない。
    """

    model_config = ConfigDict(frozen=True)

    actions: tuple[Action, ...] = Field(
        ..., description="アクション列（実行順）"
    )

    def to_document(self) -> dict[str, Any]:
        """ワイヤ形式のドキュメント辞書を返す。"""
        return {"actions": [action_to_dict(a) for a in self.actions]}

    def __len__(self) -> int:
        return len(self.actions)


# ---------------------------------------------------------------------------
# アクションメタ情報
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ActionInfo:
    """アクションのメタ情報（list-actions コマンドで表示）。

    Attributes:
        name: type タグ
        description: 説明文
        category: カテゴリ（action, assertion, navigation, wait, session, control）
    """

    name: str
    description: str
    category: str


ACTION_INFO: dict[str, ActionInfo] = {
    "click": ActionInfo("click", "要素をクリック", "action"),
    "type": ActionInfo("type", "要素の入力値を設定", "action"),
    "submit": ActionInfo("submit", "Enter 押下でフォーム送信", "action"),
    "exists": ActionInfo("exists", "要素の存在を検証", "assertion"),
    "contains": ActionInfo("contains", "要素テキストの部分一致を検証", "assertion"),
    "count": ActionInfo("count", "要素数を $eq/$gt/$lt/$gte/$lte で検証", "assertion"),
    "goto": ActionInfo("goto", "URL へ遷移しホストを検証", "navigation"),
    "navigate": ActionInfo("navigate", "URL へ遷移（検証なし）", "navigation"),
    "wait": ActionInfo("wait", "指定ミリ秒待機", "wait"),
    "deleteAllCookies": ActionInfo("deleteAllCookies", "Cookie を全削除", "session"),
    "throw": ActionInfo("throw", "例外を送出して実行を中断", "control"),
    "quit": ActionInfo("quit", "実行を終了（code または失敗件数で終了）", "control"),
}
