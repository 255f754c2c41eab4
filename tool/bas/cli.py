"""
CLI エントリポイント — Typer ベースのコマンドラインインターフェース

bas コマンドとして以下のサブコマンドを提供する:
  - run: アクションスクリプト実行
  - record: ページ内操作の記録
  - start: 環境変数（MODE / CONFIG_PATH）に従って run / record を実行（コンテナ用）
  - validate: スキーマ検証
  - lint: 静的解析
  - list-actions: 全アクション一覧
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import typer

from .config import RunConfig, apply_cli_options, load_config_from_env

if TYPE_CHECKING:
    from .backends.base import BrowserBackend
    from .core.runner import RunResult

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# ---------------------------------------------------------------------------
# Typer アプリ定義
# ---------------------------------------------------------------------------

app = typer.Typer(
    help=(
        "bas — ブラウザアクションスクリプト実行・記録ツール\n\n"
        "基本の流れ:\n"
        "  1. bas record --target-url https://...   操作を記録\n"
        "  2. bas run recordings/xxx.json            記録した操作を再実行\n\n"
        "詳しくは各コマンドに --help を付けてください。"
    ),
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# run コマンド
# ---------------------------------------------------------------------------

@app.command()
def run(
    script_file: Path = typer.Argument(..., help="実行するアクションスクリプト（JSON / YAML）"),
    engine: Optional[str] = typer.Option(
        None, "--engine", "-e", help="バックエンド (selenium / playwright)。省略時は ENGINE",
    ),
    target_url: Optional[str] = typer.Option(
        None, "--target-url", "-u", help="最初に開く URL。省略時は TARGET_URL",
    ),
    headed: Optional[bool] = typer.Option(
        None, "--headed/--headless", help="ブラウザ表示モード（ローカル起動時のみ）",
    ),
    report_dir: Optional[Path] = typer.Option(
        None, "--report-dir", "-r", help="report.json / junit.xml の出力先",
    ),
) -> None:
    """アクションスクリプトを実行する。

    終了コードは quit アクションの code、なければ検証失敗の件数です。
    """
    try:
        config = _load_config(
            engine=_check_engine(engine),
            target_url=target_url,
            headed=headed,
            report_dir=str(report_dir) if report_dir else None,
            script_path=str(script_file),
        )
        _play(config, script_file)
    except typer.Exit:
        raise
    except Exception as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# record コマンド
# ---------------------------------------------------------------------------

@app.command()
def record(
    engine: Optional[str] = typer.Option(
        None, "--engine", "-e", help="バックエンド (selenium / playwright)。省略時は ENGINE",
    ),
    target_url: Optional[str] = typer.Option(
        None, "--target-url", "-u", help="記録を開始する URL。省略時は TARGET_URL",
    ),
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", "-o", help="記録ファイルの保存先。省略時は RECORDINGS_DIR",
    ),
    headed: Optional[bool] = typer.Option(
        None, "--headed/--headless", help="ブラウザ表示モード（ローカル起動時のみ）。省略時は BAS_HEADED、未設定なら表示",
    ),
) -> None:
    """ページ内の操作を記録し、アクションスクリプトとして保存する。

    ページ右上の「Stop & Save」を押すと記録を終了して保存します。
    """
    try:
        config = _load_config(
            engine=_check_engine(engine),
            target_url=target_url,
            recordings_dir=str(output_dir) if output_dir else None,
            headed=headed,
            mode="record",
        )
        _record(config)
    except typer.Exit:
        raise
    except Exception as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# start コマンド
# ---------------------------------------------------------------------------

@app.command()
def start() -> None:
    """環境変数の設定に従って実行する（コンテナのエントリポイント用）。

    MODE=record なら記録、それ以外は CONFIG_PATH のスクリプトを実行します。
    """
    try:
        config = _load_config()
        if config.mode == "record":
            _record(config)
            return

        if not config.script_path:
            typer.echo("エラー: CONFIG_PATH が設定されていません", err=True)
            raise typer.Exit(code=1)
        _play(config, Path(config.script_path))
    except typer.Exit:
        raise
    except Exception as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# validate コマンド
# ---------------------------------------------------------------------------

@app.command()
def validate(
    script_file: Path = typer.Argument(..., help="検証するアクションスクリプト"),
) -> None:
    """アクションスクリプトのスキーマ検証を行う。"""
    from .dsl.parser import ScriptParser

    parser = ScriptParser()
    errors = parser.validate(script_file)

    if not errors:
        typer.echo(f"✓ {script_file}: スキーマ検証 OK")
    else:
        for err in errors:
            line_info = f" (行 {err.line})" if err.line else ""
            typer.echo(f"✗ {err.location}{line_info}: {err.message}", err=True)
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# lint コマンド
# ---------------------------------------------------------------------------

@app.command()
def lint(
    script_file: Path = typer.Argument(..., help="静的解析するアクションスクリプト"),
) -> None:
    """アクションスクリプトの静的解析（Lint）を実行する。"""
    from .dsl.linter import LintSeverity, ScriptLinter
    from .dsl.parser import ScriptParser

    try:
        script = ScriptParser().load(script_file)
        issues = ScriptLinter().lint(script)

        if not issues:
            typer.echo(f"✓ {script_file}: lint 問題なし")
            return

        for issue in issues:
            typer.echo(
                f"[{issue.severity.value}] "
                f"#{issue.index} ({issue.action_type}) {issue.rule}: {issue.message}"
            )
        # warning/error がある場合は終了コード 1
        if any(i.severity != LintSeverity.INFO for i in issues):
            raise typer.Exit(code=1)
    except typer.Exit:
        raise
    except Exception as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# list-actions コマンド
# ---------------------------------------------------------------------------

@app.command("list-actions")
def list_actions() -> None:
    """使用可能な全アクションの一覧を表示する。"""
    from .dsl.schema import ACTION_INFO

    categories: dict[str, list] = {}
    for info in ACTION_INFO.values():
        categories.setdefault(info.category, []).append(info)

    for category, actions in sorted(categories.items()):
        typer.echo(f"\n[{category}]")
        for action in actions:
            typer.echo(f"  {action.name:20s} {action.description}")

    typer.echo(f"\n合計: {len(ACTION_INFO)} アクション")


# ---------------------------------------------------------------------------
# 内部ヘルパー
# ---------------------------------------------------------------------------

def _check_engine(engine: Optional[str]) -> Optional[str]:
    from .backends import ENGINES

    if engine is not None and engine not in ENGINES:
        raise ValueError(f"未知のエンジンです: {engine}（選択可能: {', '.join(ENGINES)}）")
    return engine


def _load_config(**options) -> RunConfig:
    """環境変数 → CLI オプションの順に設定を読み込み、ログを初期化する。"""
    config = apply_cli_options(load_config_from_env(), **options)
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format=_LOG_FORMAT,
    )
    return config


def _play(config: RunConfig, script_file: Path) -> None:
    """スクリプトを実行し、結果に応じた終了コードで typer.Exit を送出する。"""
    from .core.runner import run_actions
    from .core.session import run_session
    from .dsl.parser import ScriptParser

    script = ScriptParser().load(script_file)
    typer.echo(f"スクリプト: {script_file} ({len(script)} アクション)")
    typer.echo(f"エンジン: {config.engine}")

    async def operation(backend: BrowserBackend) -> RunResult:
        return await run_actions(backend, script)

    try:
        result = asyncio.run(run_session(config, operation))
    except (asyncio.CancelledError, KeyboardInterrupt):
        typer.echo("中断しました")
        raise typer.Exit(code=0)

    typer.echo(f"ステータス: {result.status}")
    typer.echo(f"実行時間: {result.duration_ms:.0f}ms")
    typer.echo(
        f"アクション: {result.executed} "
        f"(failures={len(result.failures)}, skipped={result.skipped})"
    )
    for failure in result.failures:
        typer.echo(f"  ✗ [{failure.index}] {failure.action_type}: {failure.message}", err=True)

    if config.report_dir:
        _write_reports(result, Path(config.report_dir), script_file.stem)

    raise typer.Exit(code=result.exit_code)


def _record(config: RunConfig) -> None:
    """記録セッションを実行し、保存先を表示する。"""
    from .core.session import run_session
    from .recorder import ActionRecorder

    typer.echo(f"エンジン: {config.engine}")
    typer.echo(f"URL: {config.target_url}")
    typer.echo("ページ右上の「Stop & Save」を押すと記録を保存します。\n")

    async def operation(backend: BrowserBackend) -> Path:
        recorder = ActionRecorder(
            backend,
            Path(config.recordings_dir),
            poll_interval=config.poll_interval,
        )
        return await recorder.record()

    try:
        path = asyncio.run(run_session(config, operation))
    except (asyncio.CancelledError, KeyboardInterrupt):
        typer.echo("中断しました（記録は保存されていません）")
        raise typer.Exit(code=0)

    typer.echo(f"記録を保存しました: {path}")


def _write_reports(result: RunResult, report_dir: Path, script_name: str) -> None:
    from .core.reporting import Reporter

    reporter = Reporter()
    json_path = reporter.generate_json(result, report_dir, script_name)
    junit_path = reporter.generate_junit_xml(result, report_dir, script_name)
    typer.echo(f"レポート: {json_path}")
    typer.echo(f"  JUnit: {junit_path}")
