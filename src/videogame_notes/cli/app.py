from __future__ import annotations

import typer

from videogame_notes.cli.commands import igdb
from videogame_notes.shared.config import get_settings
from videogame_notes.shared.exceptions import ConfigurationError
from videogame_notes.shared.logging import DEFAULT_LOG_LEVEL, configure_logging

app = typer.Typer(help="IGDB からゲーム情報を取得してノートを作る CLI")

app.add_typer(igdb.app, name="igdb", help="IGDB 関連の操作")


def resolve_log_level() -> str:
    """設定のログレベルを返す。設定が不完全なら既定値。

    設定エラー自体は各コマンドがセッションを作る時点で改めて報告される。
    """

    try:
        return get_settings().log_level
    except ConfigurationError:
        return DEFAULT_LOG_LEVEL


def main() -> None:
    """エントリポイント。"""

    configure_logging(resolve_log_level())
    app()


if __name__ == "__main__":  # pragma: no cover - CLI エントリ
    main()
