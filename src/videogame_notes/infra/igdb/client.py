"""IGDB API クライアント実装。"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import httpx

from videogame_notes.infra.igdb.dto import (
    IGDBGameResponse,
    IGDBPayloadKind,
    IGDBPayloadShapeError,
    decode_search_payload,
)
from videogame_notes.infra.igdb.token_store import IGDBAccessToken, TokenStore
from videogame_notes.shared.config import AppSettings, get_settings
from videogame_notes.shared.exceptions import BaseAppError, UserAbortError
from videogame_notes.shared.logging import get_logger

DEFAULT_API_URL = "https://api.igdb.com/v4"
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_SEARCH_LIMIT = 15

# 展開記法の詳細: https://api-docs.igdb.com/#expander
SEARCH_FIELDS: tuple[str, ...] = (
    "name",
    "first_release_date",
    "involved_companies.developer",
    "involved_companies.company.name",
    "involved_companies.company.logo.url",
    "url",
    "cover.url",
    "genres.name",
    "game_modes.name",
    "themes.name",
    "storyline",
    "summary",
    "aggregated_rating",
    "rating",
)


class IGDBClientError(BaseAppError):
    """IGDB クライアント共通の例外。"""


class IGDBRequestError(IGDBClientError):
    """再認証で回復できない HTTP エラー。"""


class AuthTokenRefreshFailedError(IGDBClientError):
    """トークンの取得、または再認証後の再検索に失敗した。"""

    default_message = "Auth token refresh failed."


class NoResultsFoundError(IGDBClientError):
    """検索結果が空配列だった。"""

    default_message = "No results found."


class EmptyQueryError(UserAbortError):
    """検索語が空。"""

    default_message = "No query entered."


class TwitchOAuthClient:
    """Twitch OAuth2 (client credentials) でアクセストークンを取得するクライアント。"""

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        token_url: str,
        http_post: Callable[..., httpx.Response] = httpx.post,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        logger=None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._token_url = token_url
        self._http_post = http_post
        self._timeout = timeout
        self._logger = logger or get_logger(__name__)

    def fetch_app_access_token(self) -> IGDBAccessToken:
        """資格情報をクエリパラメータで送り、新しいトークンを得る。"""

        try:
            response = self._http_post(
                self._token_url,
                params={
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "grant_type": "client_credentials",
                },
                headers={"Accept": "application/json"},
                timeout=self._timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            self._logger.error("twitch_oauth_failed", status_code=exc.response.status_code)
            raise AuthTokenRefreshFailedError from exc
        except httpx.RequestError as exc:
            self._logger.error("twitch_oauth_request_error", message=str(exc))
            raise AuthTokenRefreshFailedError from exc
        except ValueError as exc:
            self._logger.error("twitch_oauth_invalid_body")
            raise AuthTokenRefreshFailedError from exc

        access_token = payload.get("access_token") if isinstance(payload, dict) else None
        if not isinstance(access_token, str) or not access_token:
            self._logger.error("twitch_oauth_missing_token")
            raise AuthTokenRefreshFailedError

        self._logger.info("twitch_oauth_token_issued")
        return IGDBAccessToken(access_token=access_token)


class IGDBAccessTokenProvider:
    """セッション中の現在トークンを保持し、取得と永続化を担うプロバイダー。

    キャッシュされたトークンを書き換えるのはこのクラスだけで、
    書き換えは必ず TokenStore への保存を伴う。
    """

    def __init__(
        self,
        *,
        oauth_client: TwitchOAuthClient,
        token_store: TokenStore,
        logger=None,
    ) -> None:
        self._oauth_client = oauth_client
        self._token_store = token_store
        self._logger = logger or get_logger(__name__)
        self._cached_token: IGDBAccessToken | None = None

    def get_token(self) -> IGDBAccessToken:
        if self._cached_token is not None:
            return self._cached_token

        stored = self._token_store.load()
        if stored is None:
            return self.refresh()

        self._cached_token = stored
        return stored

    def refresh(self) -> IGDBAccessToken:
        """新しいトークンを取得して保存する。認証に失敗した場合は保存済みトークンを残す。"""

        token = self._oauth_client.fetch_app_access_token()
        self._token_store.save(token)
        self._cached_token = token
        self._logger.info("igdb_token_refreshed")
        return token


def _escape(term: str) -> str:
    return term.replace("\\", "\\\\").replace('"', '\\"')


@dataclass(slots=True, frozen=True)
class IGDBQuery:
    """APICalypse DSL を扱うための構造化クエリ。"""

    fields: tuple[str, ...] = ()
    search_term: str | None = None
    limit_value: int | None = None

    def to_apicalypse(self) -> str:
        parts: list[str] = []
        if self.fields:
            parts.append(f"fields {', '.join(self.fields)};")
        if self.search_term:
            parts.append(f'search "{_escape(self.search_term)}";')
        if self.limit_value is not None:
            parts.append(f"limit {self.limit_value};")
        return " ".join(parts)


class IGDBQueryBuilder:
    """APICalypse クエリを組み立てるビルダー。"""

    def __init__(self) -> None:
        self._fields: list[str] = []
        self._limit: int | None = None
        self._search: str | None = None

    def select(self, *fields: str) -> IGDBQueryBuilder:
        self._fields.extend(field for field in fields if field)
        return self

    def limit(self, value: int) -> IGDBQueryBuilder:
        if value >= 0:
            self._limit = value
        return self

    def search(self, term: str) -> IGDBQueryBuilder:
        if term:
            self._search = term
        return self

    def build(self) -> IGDBQuery:
        return IGDBQuery(
            fields=tuple(self._fields),
            search_term=self._search,
            limit_value=self._limit,
        )


@dataclass(slots=True)
class IGDBRetryConfig:
    """再認証の設定。

    `reauth_on_transport_error` が True の場合、通信エラーや 401/403 以外の
    HTTP エラーもトークン失効とみなして再認証する。
    """

    max_reauth_attempts: int = 1
    reauth_on_transport_error: bool = True
    auth_statuses: tuple[int, ...] = (401, 403)


class IGDBClientProtocol(Protocol):
    """core/CLI 層から利用するためのプロトコル。"""

    def search_games(self, query: str) -> IGDBGameResponse:
        """タイトル検索を実行する。"""


class IGDBClient(IGDBClientProtocol):
    """IGDB API v4 の games エンドポイントを叩くクライアント。"""

    def __init__(
        self,
        *,
        client_id: str,
        token_provider: IGDBAccessTokenProvider,
        api_url: str = DEFAULT_API_URL,
        retry_config: IGDBRetryConfig | None = None,
        search_limit: int = DEFAULT_SEARCH_LIMIT,
        http_post: Callable[..., httpx.Response] = httpx.post,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        logger=None,
    ) -> None:
        self._client_id = client_id
        self._token_provider = token_provider
        self._api_url = api_url.rstrip("/")
        self._retry_config = retry_config or IGDBRetryConfig()
        self._search_limit = search_limit
        self._http_post = http_post
        self._timeout = timeout
        self._logger = logger or get_logger(__name__)

    def search_games(self, query: str) -> IGDBGameResponse:
        """タイトル検索を行う。空の検索語と空の結果はエラーにする。"""

        term = (query or "").strip()
        if not term:
            raise EmptyQueryError

        igdb_query = (
            IGDBQueryBuilder().select(*SEARCH_FIELDS).search(term).limit(self._search_limit).build()
        )
        response = self.fetch_games(igdb_query)
        if not response.items:
            self._logger.info("igdb_no_results", query=term)
            raise NoResultsFoundError

        self._logger.info("igdb_search_completed", query=term, results=len(response.items))
        return response

    def fetch_games(self, query: IGDBQuery) -> IGDBGameResponse:
        """games エンドポイントへクエリを実行する。空配列はそのまま返す。"""

        compiled_query = query.to_apicalypse()
        attempt = 0
        while True:
            attempt += 1
            token = self._token_provider.get_token()
            self._logger.debug("igdb_request", endpoint="games", attempt=attempt)
            cause: Exception | None = None
            try:
                raw = self._post("games", compiled_query, token)
                payload = decode_search_payload(raw)
            except httpx.HTTPStatusError as exc:
                status_code = exc.response.status_code
                if not self._is_token_failure(status_code):
                    msg = f"IGDB API request failed (status={status_code})"
                    raise IGDBRequestError(msg) from exc
                reason = f"status={status_code}"
                cause = exc
            except IGDBPayloadShapeError as exc:
                self._logger.error("igdb_unexpected_payload", message=str(exc))
                msg = f"Unexpected IGDB response: {exc}"
                raise IGDBRequestError(msg) from exc
            except (httpx.RequestError, ValueError) as exc:
                if not self._retry_config.reauth_on_transport_error:
                    msg = f"IGDB API request failed ({type(exc).__name__})"
                    raise IGDBRequestError(msg) from exc
                reason = type(exc).__name__
                cause = exc
            else:
                if payload.kind is IGDBPayloadKind.RESULTS:
                    return IGDBGameResponse(items=payload.items, raw=raw)
                reason = payload.message or "message"

            if attempt > self._retry_config.max_reauth_attempts:
                self._logger.error("igdb_reauth_exhausted", attempt=attempt, reason=reason)
                raise AuthTokenRefreshFailedError from cause

            self._logger.warning("igdb_reauthenticate", attempt=attempt, reason=reason)
            self._token_provider.refresh()

    def _post(self, endpoint: str, compiled_query: str, token: IGDBAccessToken) -> bytes:
        response = self._http_post(
            f"{self._api_url}/{endpoint}",
            content=compiled_query,
            headers={
                "Client-ID": self._client_id,
                "Authorization": f"Bearer {token.access_token}",
                "Accept": "application/json",
            },
            timeout=self._timeout,
        )
        response.raise_for_status()
        return response.content

    def _is_token_failure(self, status_code: int) -> bool:
        if status_code in self._retry_config.auth_statuses:
            return True
        return self._retry_config.reauth_on_transport_error


def build_igdb_client(
    *,
    settings: AppSettings | None = None,
    retry_config: IGDBRetryConfig | None = None,
    logger=None,
    http_post: Callable[..., httpx.Response] = httpx.post,
) -> IGDBClient:
    """共有設定から IGDB クライアントを構築するファクトリ。"""

    app_settings = settings or get_settings()
    igdb_settings = app_settings.igdb
    oauth_client = TwitchOAuthClient(
        client_id=igdb_settings.client_id,
        client_secret=igdb_settings.client_secret.get_secret_value(),
        token_url=str(igdb_settings.token_url),
        http_post=http_post,
        timeout=igdb_settings.timeout_seconds,
        logger=logger,
    )
    token_provider = IGDBAccessTokenProvider(
        oauth_client=oauth_client,
        token_store=TokenStore(app_settings.storage.token_path),
        logger=logger,
    )
    return IGDBClient(
        client_id=igdb_settings.client_id,
        token_provider=token_provider,
        api_url=str(igdb_settings.api_url),
        retry_config=retry_config
        or IGDBRetryConfig(reauth_on_transport_error=igdb_settings.reauth_on_transport_error),
        search_limit=igdb_settings.search_limit,
        http_post=http_post,
        timeout=igdb_settings.timeout_seconds,
        logger=logger,
    )


__all__ = [
    "AuthTokenRefreshFailedError",
    "EmptyQueryError",
    "IGDBAccessTokenProvider",
    "IGDBClient",
    "IGDBClientError",
    "IGDBClientProtocol",
    "IGDBQuery",
    "IGDBQueryBuilder",
    "IGDBRequestError",
    "IGDBRetryConfig",
    "NoResultsFoundError",
    "SEARCH_FIELDS",
    "TwitchOAuthClient",
    "build_igdb_client",
]
