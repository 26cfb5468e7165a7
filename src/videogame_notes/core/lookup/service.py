"""ゲーム検索からテンプレート変数生成までの一連の処理。"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
from structlog.stdlib import BoundLogger

from videogame_notes.core.notes.formatter import (
    build_template_variables,
    format_title_for_suggestion,
)
from videogame_notes.infra.igdb import (
    EmptyQueryError,
    IGDBClientProtocol,
    IGDBGameRecord,
    build_igdb_client,
)
from videogame_notes.shared.config import AppSettings, get_settings
from videogame_notes.shared.exceptions import UserAbortError
from videogame_notes.shared.logging import get_logger
from videogame_notes.shared.types import DTO


class NoSelectionError(UserAbortError):
    """候補が選択されなかった。"""

    default_message = "No choice selected."


class LookupPrompter(Protocol):
    """ユーザーへの問い合わせを担う外部コラボレーター。"""

    def ask_query(self) -> str | None:
        """検索するタイトルを尋ねる。"""

    def choose(
        self, titles: Sequence[str], records: Sequence[IGDBGameRecord]
    ) -> IGDBGameRecord | None:
        """候補から 1 件を選ばせる。選ばれなければ None。"""

    def ask_download_url(self) -> str | None:
        """ダウンロード URL を尋ねる。"""


@dataclass(slots=True)
class LookupSession:
    """1 回の実行ごとに構築するコンテキスト。現在のトークンはクライアント内に閉じる。"""

    settings: AppSettings
    client: IGDBClientProtocol
    logger: BoundLogger

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings | None = None,
        *,
        logger: BoundLogger | None = None,
        http_post: Callable[..., httpx.Response] = httpx.post,
    ) -> LookupSession:
        app_settings = settings or get_settings()
        session_logger = logger or get_logger(__name__, component="lookup")
        return cls(
            settings=app_settings,
            client=build_igdb_client(
                settings=app_settings, logger=session_logger, http_post=http_post
            ),
            logger=session_logger,
        )


@dataclass(slots=True)
class LookupResult(DTO):
    """選ばれたレコードとテンプレート変数。"""

    record: IGDBGameRecord
    variables: dict[str, Any] = field(default_factory=dict)

    @property
    def file_name(self) -> str:
        return str(self.variables.get("fileName") or "")


@dataclass(slots=True)
class GameLookupService:
    """検索、候補選択、整形を順に行う。"""

    session: LookupSession

    @property
    def logger(self) -> BoundLogger:
        return self.session.logger

    def search(self, query: str | None) -> tuple[IGDBGameRecord, ...]:
        if not query or not query.strip():
            self.logger.info("lookup.empty_query")
            raise EmptyQueryError

        response = self.session.client.search_games(query)
        return response.items

    def run(self, prompter: LookupPrompter) -> LookupResult:
        records = self.search(prompter.ask_query())

        titles = [format_title_for_suggestion(record) for record in records]
        selected = prompter.choose(titles, records)
        if selected is None:
            self.logger.info("lookup.no_selection", candidates=len(records))
            raise NoSelectionError

        variables = build_template_variables(selected, download_url=prompter.ask_download_url())
        self.logger.info("lookup.completed", title=selected.name)
        return LookupResult(record=selected, variables=variables)


__all__ = [
    "GameLookupService",
    "LookupPrompter",
    "LookupResult",
    "LookupSession",
    "NoSelectionError",
]
