"""
スクリプトパーサー — アクションスクリプトの読み込み・書き出し・検証

JSON ドキュメント { "actions": [...] } を ActionScript モデルに変換する。
拡張子が .yaml / .yml のファイルは ruamel.yaml で読み込む
（YAML は JSON の上位互換のため、同じドキュメント形状をそのまま扱える）。
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .schema import ActionScript

_YAML_SUFFIXES = (".yaml", ".yml")


# ---------------------------------------------------------------------------
# バリデーションエラー表現
# ---------------------------------------------------------------------------

@dataclass
class ScriptValidationError:
    """スクリプトのスキーマ検証で検出されたエラー。

    Attributes:
        message: エラーメッセージ
        location: エラー箇所（actions -> 2 -> selector 等）
        line: ファイル内の行番号（取得可能な場合）
    """

    message: str
    location: str = ""
    line: Optional[int] = None


# ---------------------------------------------------------------------------
# ScriptParser 本体
# ---------------------------------------------------------------------------

class ScriptParser:
    """アクションスクリプトの読み込み・書き出し・検証を担当するパーサー。"""

    def __init__(self) -> None:
        self._yaml = YAML(typ="safe")

    # ----- load -----

    def load(self, path: Path) -> ActionScript:
        """スクリプトファイルを読み込み、ActionScript に変換する。

        Args:
            path: 読み込むファイルのパス（JSON / YAML）

        Returns:
            パース済みの ActionScript

        Raises:
            FileNotFoundError: ファイルが存在しない場合
            ValueError: 構文エラーまたはスキーマ検証エラーの場合
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"スクリプトファイルが見つかりません: {path}")

        data = self._read(path)
        return self._to_script(data)

    def loads(self, text: str) -> ActionScript:
        """JSON 文字列から ActionScript を生成する。

        Raises:
            ValueError: 構文エラーまたはスキーマ検証エラーの場合
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(
                f"JSON 構文エラー (行 {e.lineno}, 列 {e.colno}): {e.msg}"
            ) from e
        return self._to_script(data)

    # ----- dump -----

    def dump(self, script: ActionScript, path: Path) -> Path:
        """ActionScript を JSON ファイルとして書き出す。

        Args:
            script: 書き出すスクリプト
            path: 出力先パス

        Returns:
            書き出したファイルのパス
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(script.to_document(), f, ensure_ascii=False, indent=2)
            f.write("\n")
        return path

    # ----- validate -----

    def validate(self, path: Path) -> list[ScriptValidationError]:
        """スクリプトファイルを検証し、違反箇所をリストで返す。

        load() と異なり例外を送出せず、検出した全エラーを返す。

        Args:
            path: 検証するファイルのパス

        Returns:
            検出されたエラーのリスト（問題なしの場合は空リスト）
        """
        path = Path(path)
        if not path.exists():
            return [ScriptValidationError(
                message=f"スクリプトファイルが見つかりません: {path}",
                location="file",
            )]

        try:
            data = self._read(path)
        except ValueError as e:
            return [ScriptValidationError(
                message=str(e),
                location="syntax",
                line=getattr(e, "line", None),
            )]

        if not isinstance(data, dict):
            return [ScriptValidationError(
                message="ルートはオブジェクト { \"actions\": [...] } である必要があります",
                location="root",
            )]

        try:
            ActionScript.model_validate(data)
        except PydanticValidationError as e:
            return [
                ScriptValidationError(
                    message=err.get("msg", "不明なエラー"),
                    location=" -> ".join(str(p) for p in err.get("loc", ())) or "unknown",
                )
                for err in e.errors()
            ]
        return []

    # ----- ユーティリティ -----

    def _read(self, path: Path) -> Any:
        """拡張子に応じて JSON / YAML を読み込む。"""
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()

        if path.suffix.lower() in _YAML_SUFFIXES:
            try:
                return self._yaml.load(text)
            except YAMLError as e:
                line = None
                mark = getattr(e, "problem_mark", None)
                if mark is not None:
                    line = mark.line + 1
                error = _SyntaxError(f"YAML 構文エラー: {e}")
                error.line = line
                raise error from e

        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            error = _SyntaxError(
                f"JSON 構文エラー (行 {e.lineno}, 列 {e.colno}): {e.msg}"
            )
            error.line = e.lineno
            raise error from e

    def _to_script(self, data: Any) -> ActionScript:
        if data is None:
            raise ValueError("スクリプトファイルが空です")
        if not isinstance(data, dict):
            raise ValueError(
                "ルートはオブジェクト { \"actions\": [...] } である必要があります"
            )
        try:
            return ActionScript.model_validate(data)
        except PydanticValidationError as e:
            raise ValueError(f"スキーマ検証エラー: {e}") from e


class _SyntaxError(ValueError):
    """構文エラー（行番号付き）。"""

    line: Optional[int] = None
