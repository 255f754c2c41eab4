"""
Reporter — 実行レポートの生成

RunResult を受け取り、JSON / JUnit XML 形式のレポートを生成する。

主な機能:
  - generate_json(): JSON レポート（report.json）の生成
  - generate_junit_xml(): JUnit XML レポート（junit.xml）の生成（CI 統合用）
"""

from __future__ import annotations

import json
import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any

from .runner import Failure, RunResult

logger = logging.getLogger(__name__)


class Reporter:
    """実行レポートの生成クラス。"""

    # -------------------------------------------------------------------
    # JSON レポート
    # -------------------------------------------------------------------

    def generate_json(
        self, result: RunResult, output_dir: Path, script_name: str = "script",
    ) -> Path:
        """JSON レポートを生成する。

        Args:
            result: 実行結果
            output_dir: 出力先ディレクトリ
            script_name: スクリプト名（ファイル名等）

        Returns:
            生成された report.json のパス
        """
        output_dir.mkdir(parents=True, exist_ok=True)

        output_path = output_dir / "report.json"
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(
                self._build_report_dict(result, script_name),
                f, ensure_ascii=False, indent=2,
            )

        logger.info("JSON レポートを生成しました: %s", output_path)
        return output_path

    # -------------------------------------------------------------------
    # JUnit XML レポート
    # -------------------------------------------------------------------

    def generate_junit_xml(
        self, result: RunResult, output_dir: Path, script_name: str = "script",
    ) -> Path:
        """JUnit XML レポートを生成する。

        検証失敗ごとに failure 付きの testcase を出力し、
        失敗がなければ全体を表す testcase を 1 件出力する。

        Args:
            result: 実行結果
            output_dir: 出力先ディレクトリ
            script_name: スクリプト名（testsuite 名）

        Returns:
            生成された junit.xml のパス
        """
        output_dir.mkdir(parents=True, exist_ok=True)

        testsuites = ET.Element("testsuites")
        testsuite = ET.SubElement(testsuites, "testsuite")
        testsuite.set("name", script_name)
        testsuite.set("tests", str(max(1, len(result.failures))))
        testsuite.set("failures", str(len(result.failures)))
        testsuite.set("time", f"{result.duration_ms / 1000:.3f}")

        if not result.failures:
            testcase = ET.SubElement(testsuite, "testcase")
            testcase.set("name", "actions")
            testcase.set("classname", script_name)
            testcase.set("time", f"{result.duration_ms / 1000:.3f}")

        for failure in result.failures:
            testcase = ET.SubElement(testsuite, "testcase")
            testcase.set("name", _testcase_name(failure))
            testcase.set("classname", script_name)
            element = ET.SubElement(testcase, "failure")
            element.set("message", failure.message)
            element.text = f"expected: {failure.expected}\nactual: {failure.actual}"

        tree = ET.ElementTree(testsuites)
        output_path = output_dir / "junit.xml"
        ET.indent(tree, space="  ")
        tree.write(str(output_path), encoding="unicode", xml_declaration=True)

        logger.info("JUnit XML レポートを生成しました: %s", output_path)
        return output_path

    # -------------------------------------------------------------------
    # 内部ヘルパー
    # -------------------------------------------------------------------

    def _build_report_dict(self, result: RunResult, script_name: str) -> dict[str, Any]:
        return {
            "script": script_name,
            "status": result.status,
            "exit_code": result.exit_code,
            "quit_requested": result.quit_requested,
            "duration_ms": result.duration_ms,
            "started_at": result.started_at.isoformat() if result.started_at else None,
            "finished_at": result.finished_at.isoformat() if result.finished_at else None,
            "summary": {
                "executed": result.executed,
                "skipped": result.skipped,
                "failures": len(result.failures),
            },
            "failures": [
                {
                    "index": f.index,
                    "type": f.action_type,
                    "selector": f.selector,
                    "expected": f.expected,
                    "actual": f.actual,
                    "message": f.message,
                }
                for f in result.failures
            ],
        }


def _testcase_name(failure: Failure) -> str:
    target = f" {failure.selector}" if failure.selector else ""
    return f"[{failure.index}] {failure.action_type}{target}"
