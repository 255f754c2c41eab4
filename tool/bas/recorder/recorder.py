"""
ActionRecorder — ページ内操作記録エンジン

ページに JavaScript を注入して click / input イベントを捕捉し、
ユーザーが「Stop & Save」を押すまで記録を続ける。

記録の流れ:
  1. Armed: 注入スクリプトでバッファ・リスナー・操作パネルを設置
  2. Recording: イベントがページ内バッファに順に蓄積される
  3. Stopped: 停止フラグをポーリングで検出し、バッファを一括取得して保存

ページ側の状態には「停止フラグの取得」「バッファの取得」の 2 つの式でのみアクセスする。
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from .script_writer import ScriptWriter

if TYPE_CHECKING:
    from ..backends.base import BrowserBackend

logger = logging.getLogger(__name__)

# 注入スクリプトのパス
_INJECTED_JS_PATH = Path(__file__).parent / "injected.js"

# ページ側状態へのアクセス式
STOP_REQUESTED_EXPRESSION = (
    "!!(window.__basRecorder && window.__basRecorder.stopRequested === true)"
)
COLLECT_EXPRESSION = "(window.__basRecorder ? window.__basRecorder.events : [])"

_RECORDED_TYPES = ("click", "type")


@dataclass
class RecordedEvent:
    """記録された単一の操作。

    Attributes:
        type: 操作種別（click / type）
        selector: 導出された CSS セレクタ（#id またはタグ名）
        text: 入力値（type の場合）
    """

    type: str
    selector: str
    text: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional[RecordedEvent]:
        """ページから取得した辞書を変換する。不正なデータは None を返す。"""
        if not isinstance(data, dict):
            return None
        event_type = data.get("type")
        selector = data.get("selector")
        if event_type not in _RECORDED_TYPES or not isinstance(selector, str):
            return None
        text = data.get("text")
        if event_type == "type":
            text = "" if text is None else str(text)
        else:
            text = None
        return cls(type=event_type, selector=selector, text=text)

    def to_action_dict(self) -> dict[str, str]:
        """アクションスクリプトの 1 要素に変換する。"""
        action = {"type": self.type, "selector": self.selector}
        if self.type == "type":
            action["text"] = self.text or ""
        return action


class ActionRecorder:
    """ページ内でユーザー操作を記録し、アクションスクリプトとして保存する。

    1 ページにつき同時に 1 セッションのみ記録できる。

    使用例::

        recorder = ActionRecorder(backend, Path("recordings"))
        path = await recorder.record()
    """

    def __init__(
        self,
        backend: BrowserBackend,
        recordings_dir: Path,
        poll_interval: float = 1.0,
        writer: Optional[ScriptWriter] = None,
    ) -> None:
        """レコーダーを初期化する。

        Args:
            backend: 記録対象ページを持つバックエンド
            recordings_dir: 記録ファイルの保存先ディレクトリ
            poll_interval: 停止フラグのポーリング間隔（秒）
            writer: スクリプトライター（None でデフォルト）
        """
        self._backend = backend
        self._recordings_dir = Path(recordings_dir)
        self._poll_interval = poll_interval
        self._writer = writer or ScriptWriter()
        self._injected_js = ""

    async def arm(self) -> None:
        """記録用スクリプトをページに注入する。"""
        if not self._injected_js:
            self._injected_js = _INJECTED_JS_PATH.read_text(encoding="utf-8")

        logger.info("レコーダー UI を注入しています...")
        armed = await self._backend.evaluate(self._injected_js)
        if armed is False:
            logger.warning("記録セッションは既に開始されています")

    async def stop_requested(self) -> bool:
        """ページ側で停止が要求されたかを返す。"""
        return bool(await self._backend.evaluate(STOP_REQUESTED_EXPRESSION))

    async def collect(self) -> list[RecordedEvent]:
        """ページ側のバッファを一括取得する。"""
        raw = await self._backend.evaluate(COLLECT_EXPRESSION) or []
        events: list[RecordedEvent] = []
        for item in raw:
            event = RecordedEvent.from_dict(item)
            if event is None:
                logger.warning("不正な記録データをスキップします: %r", item)
                continue
            events.append(event)
        return events

    async def wait_for_stop(self) -> None:
        """停止フラグが立つまで poll_interval 秒ごとに確認する。"""
        while not await self.stop_requested():
            await asyncio.sleep(self._poll_interval)

    async def record(self) -> Path:
        """記録を開始し、停止後にスクリプトファイルとして保存する。

        Returns:
            保存したスクリプトファイルのパス
        """
        await self.arm()
        logger.info("記録中... ページ右上の「Stop & Save」で保存します。")

        await self.wait_for_stop()

        events = await self.collect()
        path = self._writer.write(events, self._recordings_dir)
        logger.info("記録を保存しました: %s (%d 件)", path, len(events))
        return path
