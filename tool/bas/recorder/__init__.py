"""
recorder パッケージ — ページ内操作記録

ページに注入したスクリプトで click / input を捕捉し、
アクションスクリプト（JSON）として保存する。

主な機能:
  - ActionRecorder: 記録セッションの制御（注入・停止ポーリング・保存）
  - RecordedEvent: 記録された操作のデータクラス
  - ScriptWriter: 記録結果をスクリプトファイルに変換
"""

from __future__ import annotations

from .recorder import ActionRecorder, RecordedEvent
from .script_writer import ScriptWriter

__all__ = ["ActionRecorder", "RecordedEvent", "ScriptWriter"]
