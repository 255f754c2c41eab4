"""
実行設定 — 環境変数・CLI オプションからの設定読み込み

CLI オプション > 環境変数 > デフォルト値 の優先順位で適用される。
コンテナ実行時の互換性のため、エンジン選択・接続先の環境変数名は
既存のデプロイ構成に合わせている。

環境変数一覧:
  ENGINE                 : バックエンド（selenium/playwright, デフォルト: selenium）
  MODE                   : 動作モード（play/record, デフォルト: play）
  SELENIUM_REMOTE_URL    : Selenium Remote WebDriver の URL
  PLAYWRIGHT_WS_ENDPOINT : Playwright ブラウザサーバーの WebSocket エンドポイント（未設定でローカル起動）
  TARGET_URL             : 最初に開く URL（デフォルト: https://example.com）
  CONFIG_PATH            : 実行するアクションスクリプトのパス
  RECORDINGS_DIR         : 記録ファイルの保存先（デフォルト: recordings）
  BAS_HEADED             : ブラウザ表示モード（true/false, 未設定時は record のみ表示）
  BAS_CONNECT_RETRIES    : 接続リトライ回数（デフォルト: 30）
  BAS_CONNECT_INTERVAL   : 接続リトライ間隔（秒, デフォルト: 2.0）
  BAS_POLL_INTERVAL      : レコーダーの停止ポーリング間隔（秒, デフォルト: 1.0）
  BAS_REPORT_DIR         : レポート出力先（未設定でレポートなし）
  BAS_LOG_LEVEL          : ログレベル（デフォルト: INFO）
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Literal, Mapping, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# 環境変数キー定数
# ---------------------------------------------------------------------------

_ENV_ENGINE = "ENGINE"
_ENV_MODE = "MODE"
_ENV_SELENIUM_REMOTE_URL = "SELENIUM_REMOTE_URL"
_ENV_PLAYWRIGHT_WS_ENDPOINT = "PLAYWRIGHT_WS_ENDPOINT"
_ENV_TARGET_URL = "TARGET_URL"
_ENV_CONFIG_PATH = "CONFIG_PATH"
_ENV_RECORDINGS_DIR = "RECORDINGS_DIR"
_ENV_HEADED = "BAS_HEADED"
_ENV_CONNECT_RETRIES = "BAS_CONNECT_RETRIES"
_ENV_CONNECT_INTERVAL = "BAS_CONNECT_INTERVAL"
_ENV_POLL_INTERVAL = "BAS_POLL_INTERVAL"
_ENV_REPORT_DIR = "BAS_REPORT_DIR"
_ENV_LOG_LEVEL = "BAS_LOG_LEVEL"


# ---------------------------------------------------------------------------
# 設定データクラス
# ---------------------------------------------------------------------------

@dataclass
class RunConfig:
    """実行時設定。

    Attributes:
        engine: バックエンド（selenium / playwright）
        mode: 動作モード（play: スクリプト実行 / record: 記録）
        selenium_remote_url: Selenium Remote WebDriver の URL
        playwright_ws_endpoint: Playwright の WebSocket エンドポイント
        target_url: 最初に開く URL
        script_path: 実行するアクションスクリプトのパス
        recordings_dir: 記録ファイルの保存先
        headed: ブラウザ表示モード（ローカル起動時のみ有効、None で未指定）
        connect_retries: 接続リトライ回数
        connect_interval: 接続リトライ間隔（秒）
        poll_interval: レコーダーの停止ポーリング間隔（秒）
        report_dir: レポート出力先（None でレポートなし）
        log_level: ログレベル
    """

    engine: Literal["selenium", "playwright"] = "selenium"
    mode: Literal["play", "record"] = "play"
    selenium_remote_url: Optional[str] = None
    playwright_ws_endpoint: Optional[str] = None
    target_url: str = "https://example.com"
    script_path: Optional[str] = None
    recordings_dir: str = "recordings"
    headed: Optional[bool] = None
    connect_retries: int = 30
    connect_interval: float = 2.0
    poll_interval: float = 1.0
    report_dir: Optional[str] = None
    log_level: str = "INFO"

    @property
    def show_browser(self) -> bool:
        """ブラウザを表示して起動するか。未指定なら record モードのみ表示する。"""
        if self.headed is not None:
            return self.headed
        return self.mode == "record"


# ---------------------------------------------------------------------------
# 環境変数からの読み込み
# ---------------------------------------------------------------------------

def _parse_bool(value: str) -> bool:
    """"true", "1", "yes" → True、それ以外 → False"""
    return value.lower() in ("true", "1", "yes")


def _parse_number(environ: Mapping[str, str], key: str, cast: type) -> Optional[Any]:
    """数値の環境変数を読み込む。不正な値は警告して無視する。"""
    if key not in environ:
        return None
    try:
        value = cast(environ[key])
    except ValueError:
        logger.warning("%s の値が不正です: %s", key, environ[key])
        return None
    if value < 0:
        logger.warning("%s は 0 以上である必要があります: %s", key, environ[key])
        return None
    return value


def load_config_from_env(environ: Optional[Mapping[str, str]] = None) -> RunConfig:
    """環境変数から RunConfig を生成する。

    Args:
        environ: 環境変数のマッピング（None で os.environ）

    Returns:
        環境変数から読み込んだ設定
    """
    env = os.environ if environ is None else environ
    config = RunConfig()

    engine = env.get(_ENV_ENGINE)
    if engine:
        if engine in ("selenium", "playwright"):
            config.engine = engine  # type: ignore[assignment]
        else:
            logger.warning("ENGINE の値が不正です: %s（selenium を使用）", engine)

    mode = env.get(_ENV_MODE)
    if mode:
        if mode in ("play", "record"):
            config.mode = mode  # type: ignore[assignment]
        else:
            logger.warning("MODE の値が不正です: %s（play を使用）", mode)

    if env.get(_ENV_SELENIUM_REMOTE_URL):
        config.selenium_remote_url = env[_ENV_SELENIUM_REMOTE_URL]
    if env.get(_ENV_PLAYWRIGHT_WS_ENDPOINT):
        config.playwright_ws_endpoint = env[_ENV_PLAYWRIGHT_WS_ENDPOINT]
    if env.get(_ENV_TARGET_URL):
        config.target_url = env[_ENV_TARGET_URL]
    if env.get(_ENV_CONFIG_PATH):
        config.script_path = env[_ENV_CONFIG_PATH]
    if env.get(_ENV_RECORDINGS_DIR):
        config.recordings_dir = env[_ENV_RECORDINGS_DIR]
    if env.get(_ENV_REPORT_DIR):
        config.report_dir = env[_ENV_REPORT_DIR]
    if env.get(_ENV_LOG_LEVEL):
        config.log_level = env[_ENV_LOG_LEVEL].upper()

    if _ENV_HEADED in env:
        config.headed = _parse_bool(env[_ENV_HEADED])

    retries = _parse_number(env, _ENV_CONNECT_RETRIES, int)
    if retries is not None:
        config.connect_retries = max(1, retries)
    interval = _parse_number(env, _ENV_CONNECT_INTERVAL, float)
    if interval is not None:
        config.connect_interval = interval
    poll = _parse_number(env, _ENV_POLL_INTERVAL, float)
    if poll is not None:
        config.poll_interval = poll

    logger.debug("設定を読み込みました: %s", config)
    return config


def apply_cli_options(config: RunConfig, **options: Any) -> RunConfig:
    """CLI オプションを RunConfig に適用する。

    値が None のオプション（未指定）は適用しない。

    Args:
        config: ベースとなる設定（環境変数から読み込み済み）
        **options: RunConfig のフィールド名 → 値

    Returns:
        CLI オプションが適用された設定

    Raises:
        TypeError: RunConfig に存在しないフィールド名が渡された場合
    """
    for key, value in options.items():
        if not hasattr(config, key):
            raise TypeError(f"未知の設定項目です: {key}")
        if value is not None:
            setattr(config, key, value)
    return config
