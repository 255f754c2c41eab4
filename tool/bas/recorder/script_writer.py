"""
ScriptWriter — 記録結果をアクションスクリプトファイルに変換

RecordedEvent リストを { "actions": [...] } 形式の JSON として、
セッションごとに一意なファイル名（UUID + .json）で書き出す。
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from ..dsl.parser import ScriptParser
from ..dsl.schema import ActionScript

if TYPE_CHECKING:
    from .recorder import RecordedEvent

logger = logging.getLogger(__name__)

RECORDING_SUFFIX = ".json"


class ScriptWriter:
    """記録結果をスクリプトファイルとして出力するライター。"""

    def __init__(self, parser: ScriptParser | None = None) -> None:
        self._parser = parser or ScriptParser()

    def build(self, events: Iterable[RecordedEvent]) -> ActionScript:
        """記録イベント列から ActionScript を構築する（順序は保持）。"""
        return ActionScript(actions=[event.to_action_dict() for event in events])

    def write(self, events: Iterable[RecordedEvent], recordings_dir: Path) -> Path:
        """記録結果を recordings_dir 配下の新しいファイルに書き出す。

        Args:
            events: 記録されたイベントのリスト
            recordings_dir: 出力先ディレクトリ（存在しなければ作成）

        Returns:
            書き出したファイルのパス
        """
        script = self.build(events)
        path = Path(recordings_dir) / f"{uuid.uuid4()}{RECORDING_SUFFIX}"
        self._parser.dump(script, path)
        logger.debug("Recording written: %s", path)
        return path
