from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.table import Table
from structlog.stdlib import BoundLogger

from videogame_notes.core.lookup import GameLookupService, LookupResult, LookupSession
from videogame_notes.core.notes import (
    BLANK,
    format_rating,
    format_release_date,
    format_title_for_suggestion,
    load_template,
    render_note,
)
from videogame_notes.infra.igdb import (
    AuthTokenRefreshFailedError,
    IGDBGameRecord,
    NoResultsFoundError,
)
from videogame_notes.shared.exceptions import BaseAppError, UserAbortError
from videogame_notes.shared.logging import get_logger


class OutputFormat(str, Enum):
    """出力形式。"""

    TABLE = "table"
    JSON = "json"


class NoteOutput(str, Enum):
    """note コマンドの出力形式。"""

    JSON = "json"
    TABLE = "table"
    NOTE = "note"


app = typer.Typer(help="IGDB の検索とノート生成")


def _open_session(logger: BoundLogger) -> LookupSession:
    return LookupSession.from_settings(logger=logger)


def _candidate_table(titles: Sequence[str], records: Sequence[IGDBGameRecord]) -> Table:
    table = Table(title="IGDB Title Search")
    table.add_column("#", style="cyan", no_wrap=True)
    table.add_column("Title", style="bold")
    table.add_column("Release")
    table.add_column("Developer")
    table.add_column("Rating")

    for index, (title, record) in enumerate(zip(titles, records, strict=True), start=1):
        developer = record.developer
        table.add_row(
            str(index),
            title,
            format_release_date(record.first_release_date).strip() or "-",
            (developer.company_name if developer else None) or "-",
            format_rating(record),
        )
    return table


@dataclass(slots=True)
class CliPrompter:
    """オプションで与えられた値を優先し、足りない分だけ対話的に尋ねる。"""

    title: str | None = None
    pick: int | None = None
    download_url: str | None = None
    console: Console = field(default_factory=lambda: Console(stderr=True))

    def ask_query(self) -> str | None:
        if self.title is not None:
            return self.title
        return typer.prompt("Enter videogame title", default="", show_default=False)

    def choose(
        self, titles: Sequence[str], records: Sequence[IGDBGameRecord]
    ) -> IGDBGameRecord | None:
        index = self.pick
        if index is None:
            self.console.print(_candidate_table(titles, records))
            raw = typer.prompt("Select a number", default="", show_default=False)
            try:
                index = int(raw)
            except ValueError:
                return None
        if 1 <= index <= len(records):
            return records[index - 1]
        return None

    def ask_download_url(self) -> str | None:
        if self.download_url is not None:
            return self.download_url
        return typer.prompt("Download URL", default="", show_default=False)


def _json_default(value: Any) -> str:
    return str(value)


def _render_search_table(records: Sequence[IGDBGameRecord]) -> None:
    console = Console(force_terminal=False, color_system=None)
    titles = [format_title_for_suggestion(record) for record in records]
    console.print(_candidate_table(titles, records))


def _render_search_json(records: Iterable[IGDBGameRecord]) -> None:
    payload = [
        {
            "id": record.id,
            "title": format_title_for_suggestion(record),
            "name": record.name,
            "release": record.first_release_date.date().isoformat()
            if record.first_release_date
            else None,
            "developer": record.developer.company_name if record.developer else None,
            "rating": format_rating(record),
            "url": record.url,
        }
        for record in records
    ]
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


def _render_variables_table(variables: dict[str, Any]) -> None:
    console = Console(force_terminal=False, color_system=None)
    table = Table(title="Template Variables")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Value")
    for key, value in variables.items():
        rendered = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)
        table.add_row(key, rendered if rendered.strip() else BLANK)
    console.print(table)


def _write_note(result: LookupResult, content: str, note_dir: Path, *, force: bool) -> Path:
    file_name = result.file_name.strip() or "untitled"
    path = note_dir / f"{file_name}.md"
    if path.exists() and not force:
        msg = f"ノートが既に存在します: {path}"
        raise FileExistsError(msg)
    note_dir.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def _exit_for_error(exc: Exception, logger: BoundLogger) -> typer.Exit:
    if isinstance(exc, UserAbortError):
        logger.info("lookup aborted", reason=str(exc))
        typer.echo(str(exc))
        return typer.Exit(code=2)
    if isinstance(exc, NoResultsFoundError):
        logger.warning("IGDB 検索結果なし")
        typer.echo(str(exc))
        return typer.Exit(code=1)
    if isinstance(exc, AuthTokenRefreshFailedError):
        logger.error("IGDB トークン再取得に失敗", error=str(exc))
        typer.echo(f"IGDB の認証に失敗しました: {exc}")
        return typer.Exit(code=1)
    if isinstance(exc, OSError):
        logger.error("ファイル操作に失敗", error=str(exc))
        typer.echo(f"ファイル操作に失敗しました: {exc}")
        return typer.Exit(code=1)
    logger.error("IGDB 検索に失敗", error=str(exc))
    typer.echo(f"IGDB 検索に失敗しました: {exc}")
    return typer.Exit(code=1)


@app.command()
def search(
    title: Annotated[str, typer.Option("--title", "-t", help="検索するゲームタイトル")] = ...,
    output: Annotated[
        OutputFormat,
        typer.Option(
            "--output",
            "-f",
            case_sensitive=False,
            help="出力形式(table/json)",
        ),
    ] = OutputFormat.TABLE,
) -> None:
    """IGDB のタイトル検索を実行し、候補一覧を表示する。"""

    logger = get_logger("cli.igdb.search", title=title)
    try:
        service = GameLookupService(_open_session(logger))
        records = service.search(title)
    except (BaseAppError, OSError) as exc:
        raise _exit_for_error(exc, logger) from exc

    logger.info("IGDB 検索完了", results=len(records))
    if output is OutputFormat.JSON:
        _render_search_json(records)
    else:
        _render_search_table(records)


@app.command()
def note(  # noqa: PLR0913 - CLI のため引数が多い
    title: Annotated[
        str | None, typer.Option("--title", "-t", help="検索するゲームタイトル")
    ] = None,
    pick: Annotated[
        int | None, typer.Option("--pick", "-p", min=1, help="選択する候補の番号(1 始まり)")
    ] = None,
    download_url: Annotated[
        str | None, typer.Option("--download-url", "-d", help="ダウンロード URL")
    ] = None,
    template: Annotated[
        Path | None,
        typer.Option("--template", exists=True, dir_okay=False, help="ノートテンプレート"),
    ] = None,
    note_dir: Annotated[
        Path | None,
        typer.Option("--note-dir", file_okay=False, help="ノートを書き出すディレクトリ"),
    ] = None,
    force: Annotated[bool, typer.Option("--force", help="既存のノートを上書きする")] = False,
    output: Annotated[
        NoteOutput,
        typer.Option(
            "--output",
            "-f",
            case_sensitive=False,
            help="出力形式(json/table/note)",
        ),
    ] = NoteOutput.JSON,
) -> None:
    """ゲームを検索・選択し、ノート用のテンプレート変数を生成する。"""

    logger = get_logger("cli.igdb.note")
    prompter = CliPrompter(title=title, pick=pick, download_url=download_url)
    try:
        service = GameLookupService(_open_session(logger))
        result = service.run(prompter)
        if note_dir is not None or output is NoteOutput.NOTE:
            content = render_note(load_template(template), result.variables)
        if note_dir is not None:
            path = _write_note(result, content, note_dir, force=force)
    except (BaseAppError, OSError) as exc:
        raise _exit_for_error(exc, logger) from exc

    if note_dir is not None:
        logger.info("ノート作成完了", path=str(path))
        typer.echo(f"ノートを作成しました: {path}")
        return

    if output is NoteOutput.NOTE:
        typer.echo(content)
    elif output is NoteOutput.TABLE:
        _render_variables_table(result.variables)
    else:
        typer.echo(
            json.dumps(result.variables, ensure_ascii=False, indent=2, default=_json_default)
        )
