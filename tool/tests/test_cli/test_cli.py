"""
CLI テスト — typer.testing.CliRunner を使用した CLI コマンドのテスト

実際のブラウザ接続は行わず、BrowserSession の接続処理を
FakeBackend を返すモックに差し替えて実行する。
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from bas.cli import app

from conftest import FakeBackend, FakeElement

runner = CliRunner()


# ---------------------------------------------------------------------------
# ヘルパー
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """実行環境の環境変数の影響を受けないようにする。"""
    for key in (
        "ENGINE", "MODE", "SELENIUM_REMOTE_URL", "PLAYWRIGHT_WS_ENDPOINT",
        "TARGET_URL", "CONFIG_PATH", "RECORDINGS_DIR", "BAS_HEADED",
        "BAS_REPORT_DIR", "BAS_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("BAS_CONNECT_RETRIES", "1")
    monkeypatch.setenv("BAS_CONNECT_INTERVAL", "0")
    monkeypatch.setenv("BAS_POLL_INTERVAL", "0")


def _page() -> FakeBackend:
    return FakeBackend(dom={
        "h1": [FakeElement("h1", text="Example Domain")],
        "#go": [FakeElement("button", id="go")],
    })


def _patch_connect(backend: FakeBackend):
    return patch(
        "bas.core.session.BrowserSession._open_backend",
        new=AsyncMock(return_value=backend),
    )


def _script(tmp_path: Path, actions: list[dict], name: str = "flow.json") -> Path:
    path = tmp_path / name
    path.write_text(json.dumps({"actions": actions}), encoding="utf-8")
    return path


# ===========================================================================
# 1. run コマンド
# ===========================================================================

class TestRunCommand:
    """run コマンドのテスト。"""

    def test_run_success(self, tmp_path: Path) -> None:
        backend = _page()
        path = _script(tmp_path, [
            {"type": "exists", "selector": "h1"},
            {"type": "click", "selector": "#go"},
        ])

        with _patch_connect(backend):
            result = runner.invoke(app, ["run", str(path), "--target-url", "https://example.com/"])

        assert result.exit_code == 0, result.output
        assert "ステータス: passed" in result.output
        assert backend.calls[0] == ("navigate", "https://example.com/")
        assert backend.closed is True

    def test_exit_code_is_failure_count(self, tmp_path: Path) -> None:
        path = _script(tmp_path, [
            {"type": "exists", "selector": ".a"},
            {"type": "contains", "selector": "h1", "text": "Other"},
            {"type": "exists", "selector": "h1"},
        ])

        with _patch_connect(_page()):
            result = runner.invoke(app, ["run", str(path)])

        assert result.exit_code == 2

    def test_exit_code_from_quit(self, tmp_path: Path) -> None:
        path = _script(tmp_path, [
            {"type": "exists", "selector": ".a"},
            {"type": "quit", "code": 5},
        ])

        with _patch_connect(_page()):
            result = runner.invoke(app, ["run", str(path)])

        assert result.exit_code == 5

    def test_fault_exits_one_and_closes(self, tmp_path: Path) -> None:
        backend = _page()
        path = _script(tmp_path, [{"type": "throw"}])

        with _patch_connect(backend):
            result = runner.invoke(app, ["run", str(path)])

        assert result.exit_code == 1
        assert "エラー" in result.output
        assert backend.closed is True

    def test_run_nonexistent_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["run", str(tmp_path / "nope.json")])
        assert result.exit_code == 1
        assert "見つかりません" in result.output

    def test_unknown_engine(self, tmp_path: Path) -> None:
        path = _script(tmp_path, [])
        result = runner.invoke(app, ["run", str(path), "--engine", "webkit"])
        assert result.exit_code == 1
        assert "未知のエンジン" in result.output

    def test_connection_failure(self, tmp_path: Path) -> None:
        path = _script(tmp_path, [])
        with patch(
            "bas.core.session.BrowserSession._open_backend",
            new=AsyncMock(side_effect=OSError("refused")),
        ):
            result = runner.invoke(app, ["run", str(path)])
        assert result.exit_code == 1
        assert "接続できませんでした" in result.output

    def test_report_dir(self, tmp_path: Path) -> None:
        path = _script(tmp_path, [{"type": "exists", "selector": ".a"}], name="login.json")
        report_dir = tmp_path / "reports"

        with _patch_connect(_page()):
            result = runner.invoke(app, ["run", str(path), "--report-dir", str(report_dir)])

        assert result.exit_code == 1
        report = json.loads((report_dir / "report.json").read_text(encoding="utf-8"))
        assert report["script"] == "login"
        assert report["summary"]["failures"] == 1
        assert (report_dir / "junit.xml").exists()

    def test_interrupted_exits_zero(self, tmp_path: Path) -> None:
        path = _script(tmp_path, [])
        with patch("bas.core.session.run_session", side_effect=asyncio.CancelledError):
            result = runner.invoke(app, ["run", str(path)])
        assert result.exit_code == 0
        assert "中断" in result.output


# ===========================================================================
# 2. record コマンド
# ===========================================================================

class TestRecordCommand:
    """record コマンドのテスト。"""

    def test_record_saves_file(self, tmp_path: Path) -> None:
        backend = FakeBackend(stop_after_polls=2)
        out_dir = tmp_path / "recordings"

        with _patch_connect(backend):
            result = runner.invoke(app, [
                "record", "--target-url", "https://example.com/", "--output-dir", str(out_dir),
            ])

        assert result.exit_code == 0, result.output
        files = list(out_dir.glob("*.json"))
        assert len(files) == 1
        assert json.loads(files[0].read_text(encoding="utf-8")) == {"actions": []}
        assert "記録を保存しました" in result.output
        assert backend.closed is True

    def test_record_is_headed_by_default(self) -> None:
        with patch("bas.cli._record") as record:
            result = runner.invoke(app, ["record"])
        assert result.exit_code == 0, result.output
        config = record.call_args.args[0]
        assert config.mode == "record"
        assert config.show_browser is True

    def test_record_respects_headed_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BAS_HEADED", "false")
        with patch("bas.cli._record") as record:
            result = runner.invoke(app, ["record"])
        assert result.exit_code == 0, result.output
        assert record.call_args.args[0].show_browser is False

    def test_record_headless_option_overrides_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BAS_HEADED", "true")
        with patch("bas.cli._record") as record:
            result = runner.invoke(app, ["record", "--headless"])
        assert result.exit_code == 0, result.output
        assert record.call_args.args[0].show_browser is False

    def test_record_unknown_engine(self) -> None:
        result = runner.invoke(app, ["record", "--engine", "webkit"])
        assert result.exit_code == 1


# ===========================================================================
# 3. start コマンド
# ===========================================================================

class TestStartCommand:
    """環境変数による run / record の切り替え。"""

    def test_start_play(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = _script(tmp_path, [{"type": "quit", "code": 3}])
        monkeypatch.setenv("CONFIG_PATH", str(path))

        with _patch_connect(_page()):
            result = runner.invoke(app, ["start"])

        assert result.exit_code == 3

    def test_start_play_without_config_path(self) -> None:
        result = runner.invoke(app, ["start"])
        assert result.exit_code == 1
        assert "CONFIG_PATH" in result.output

    def test_start_record(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MODE", "record")
        monkeypatch.setenv("RECORDINGS_DIR", str(tmp_path))

        with _patch_connect(FakeBackend()):
            result = runner.invoke(app, ["start"])

        assert result.exit_code == 0, result.output
        assert len(list(tmp_path.glob("*.json"))) == 1


# ===========================================================================
# 4. validate / lint コマンド
# ===========================================================================

class TestValidateCommand:
    """validate コマンドのテスト。"""

    def test_validate_valid(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["validate", str(_script(tmp_path, [{"type": "quit"}]))])
        assert result.exit_code == 0
        assert "スキーマ検証 OK" in result.output

    def test_validate_invalid(self, tmp_path: Path) -> None:
        path = _script(tmp_path, [{"type": "click"}])
        result = runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == 1
        assert "actions -> 0" in result.output

    def test_validate_nonexistent_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["validate", str(tmp_path / "nope.json")])
        assert result.exit_code == 1


class TestLintCommand:
    """lint コマンドのテスト。"""

    def test_lint_clean(self, tmp_path: Path) -> None:
        path = _script(tmp_path, [{"type": "click", "selector": "#go"}])
        result = runner.invoke(app, ["lint", str(path)])
        assert result.exit_code == 0
        assert "lint 問題なし" in result.output

    def test_lint_info_only_passes(self, tmp_path: Path) -> None:
        path = _script(tmp_path, [{"type": "count", "selector": ".row"}])
        result = runner.invoke(app, ["lint", str(path)])
        assert result.exit_code == 0
        assert "count-without-operator" in result.output

    def test_lint_warning_fails(self, tmp_path: Path) -> None:
        path = _script(tmp_path, [{"type": "type", "selector": "input", "text": "x"}])
        result = runner.invoke(app, ["lint", str(path)])
        assert result.exit_code == 1
        assert "[warning]" in result.output
        assert "ambiguous-selector" in result.output

    def test_lint_invalid_file(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{", encoding="utf-8")
        result = runner.invoke(app, ["lint", str(path)])
        assert result.exit_code == 1


# ===========================================================================
# 5. list-actions コマンド
# ===========================================================================

class TestListActionsCommand:
    def test_lists_all_actions(self) -> None:
        result = runner.invoke(app, ["list-actions"])
        assert result.exit_code == 0
        for name in ("click", "deleteAllCookies", "quit"):
            assert name in result.output
        assert "[assertion]" in result.output
        assert "合計: 12 アクション" in result.output
