"""IGDB クライアントの認証・再認証まわりの挙動を検証する。"""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from videogame_notes.infra.igdb import (
    SEARCH_FIELDS,
    AuthTokenRefreshFailedError,
    EmptyQueryError,
    IGDBAccessToken,
    IGDBAccessTokenProvider,
    IGDBClient,
    IGDBQueryBuilder,
    IGDBRequestError,
    IGDBRetryConfig,
    NoResultsFoundError,
    TwitchOAuthClient,
)

API_URL = "https://api.igdb.com/v4"
TOKEN_URL = "https://id.twitch.tv/oauth2/token"
HADES = {"id": 1, "name": "Hades", "first_release_date": 1513555200}
AUTH_MESSAGE = {"message": "Authorization Failure. Have you tried:"}


class RecordingPost:
    """httpx.post の代わりに事前登録したレスポンスを返す。"""

    def __init__(self, actions: list[Any]) -> None:
        self._actions = list(actions)
        self.calls: list[dict[str, Any]] = []

    def __call__(self, url: str, **kwargs: Any) -> httpx.Response:
        self.calls.append({"url": url, **kwargs})
        if not self._actions:
            msg = "No action registered"
            raise RuntimeError(msg)
        action = self._actions.pop(0)
        if isinstance(action, Exception):
            raise action
        status, body = action
        content = body if isinstance(body, bytes) else json.dumps(body).encode()
        return httpx.Response(status, content=content, request=httpx.Request("POST", url))


class StubTokenStore:
    def __init__(self, token: str | None = None) -> None:
        self.token = IGDBAccessToken(access_token=token) if token else None
        self.loads = 0
        self.saved: list[IGDBAccessToken] = []

    def load(self) -> IGDBAccessToken | None:
        self.loads += 1
        return self.token

    def save(self, token: IGDBAccessToken) -> None:
        self.saved.append(token)
        self.token = token


def _build_client(
    api_actions: list[Any],
    *,
    oauth_actions: list[Any] | None = None,
    stored_token: str | None = "stored",
    retry_config: IGDBRetryConfig | None = None,
) -> tuple[IGDBClient, RecordingPost, RecordingPost, StubTokenStore]:
    api_post = RecordingPost(api_actions)
    oauth_post = RecordingPost(oauth_actions or [])
    store = StubTokenStore(stored_token)
    oauth_client = TwitchOAuthClient(
        client_id="cid",
        client_secret="secret",
        token_url=TOKEN_URL,
        http_post=oauth_post,
    )
    provider = IGDBAccessTokenProvider(oauth_client=oauth_client, token_store=store)
    client = IGDBClient(
        client_id="cid",
        token_provider=provider,
        api_url=API_URL,
        retry_config=retry_config,
        http_post=api_post,
    )
    return client, api_post, oauth_post, store


def test_search_returns_results_without_authentication() -> None:
    client, api_post, oauth_post, store = _build_client([(200, [HADES])])

    response = client.search_games("Hades")

    assert [item.name for item in response.items] == ["Hades"]
    assert oauth_post.calls == []
    assert store.saved == []

    call = api_post.calls[0]
    assert call["url"] == f"{API_URL}/games"
    assert call["headers"]["Client-ID"] == "cid"
    assert call["headers"]["Authorization"] == "Bearer stored"
    assert call["timeout"] == 10.0
    assert call["content"] == (f'fields {", ".join(SEARCH_FIELDS)}; search "Hades"; limit 15;')


def test_soft_auth_failure_reauthenticates_once_and_retries() -> None:
    client, api_post, oauth_post, store = _build_client(
        [(200, AUTH_MESSAGE), (200, [HADES])],
        oauth_actions=[(200, {"access_token": "fresh", "expires_in": 5_000_000})],
    )

    response = client.search_games("Hades")

    assert response.items[0].name == "Hades"
    assert len(oauth_post.calls) == 1
    assert store.saved == [IGDBAccessToken(access_token="fresh")]
    assert len(api_post.calls) == 2
    assert api_post.calls[1]["headers"]["Authorization"] == "Bearer fresh"


def test_second_soft_auth_failure_gives_up() -> None:
    client, api_post, oauth_post, store = _build_client(
        [(200, AUTH_MESSAGE), (200, AUTH_MESSAGE)],
        oauth_actions=[(200, {"access_token": "fresh"})],
    )

    with pytest.raises(AuthTokenRefreshFailedError, match="Auth token refresh failed."):
        client.search_games("Hades")

    assert len(oauth_post.calls) == 1
    assert len(store.saved) == 1
    assert len(api_post.calls) == 2


@pytest.mark.parametrize("query", ["", "   "])
def test_empty_query_never_hits_network(query: str) -> None:
    client, api_post, oauth_post, store = _build_client([])

    with pytest.raises(EmptyQueryError, match="No query entered."):
        client.search_games(query)

    assert api_post.calls == []
    assert oauth_post.calls == []
    assert store.loads == 0


def test_empty_array_is_not_retried() -> None:
    client, api_post, oauth_post, _store = _build_client([(200, [])])

    with pytest.raises(NoResultsFoundError, match="No results found."):
        client.search_games("Nothing Here")

    assert len(api_post.calls) == 1
    assert oauth_post.calls == []


def test_fresh_install_authenticates_and_saves_once() -> None:
    client, api_post, oauth_post, store = _build_client(
        [(200, [HADES])],
        oauth_actions=[(200, {"access_token": "fresh"})],
        stored_token=None,
    )

    client.search_games("Hades")

    assert len(oauth_post.calls) == 1
    assert store.saved == [IGDBAccessToken(access_token="fresh")]
    assert api_post.calls[0]["headers"]["Authorization"] == "Bearer fresh"


def test_transport_error_takes_reauth_path() -> None:
    request = httpx.Request("POST", f"{API_URL}/games")
    client, api_post, oauth_post, store = _build_client(
        [httpx.ConnectError("connection refused", request=request), (200, [HADES])],
        oauth_actions=[(200, {"access_token": "fresh"})],
    )

    response = client.search_games("Hades")

    assert response.items[0].name == "Hades"
    assert len(oauth_post.calls) == 1
    assert len(api_post.calls) == 2


def test_undecodable_body_takes_reauth_path() -> None:
    client, api_post, oauth_post, _store = _build_client(
        [(200, b"<html>gateway</html>"), (200, [HADES])],
        oauth_actions=[(200, {"access_token": "fresh"})],
    )

    client.search_games("Hades")

    assert len(oauth_post.calls) == 1
    assert len(api_post.calls) == 2


@pytest.mark.parametrize("body", [{"error": "weird"}, [HADES, 1]])
def test_unexpected_payload_shape_is_not_retried(body: Any) -> None:
    client, api_post, oauth_post, store = _build_client([(200, body)])

    with pytest.raises(IGDBRequestError, match="Unexpected IGDB response"):
        client.search_games("Hades")

    assert len(api_post.calls) == 1
    assert oauth_post.calls == []
    assert store.saved == []


def test_server_error_raises_when_transport_reauth_disabled() -> None:
    client, api_post, oauth_post, _store = _build_client(
        [(500, {"error": "boom"})],
        retry_config=IGDBRetryConfig(reauth_on_transport_error=False),
    )

    with pytest.raises(IGDBRequestError, match="status=500"):
        client.search_games("Hades")

    assert len(api_post.calls) == 1
    assert oauth_post.calls == []


def test_unauthorized_status_reauthenticates_when_transport_reauth_disabled() -> None:
    client, api_post, oauth_post, _store = _build_client(
        [(401, AUTH_MESSAGE), (200, [HADES])],
        oauth_actions=[(200, {"access_token": "fresh"})],
        retry_config=IGDBRetryConfig(reauth_on_transport_error=False),
    )

    client.search_games("Hades")

    assert len(oauth_post.calls) == 1
    assert len(api_post.calls) == 2


def test_oauth_failure_keeps_saved_token() -> None:
    client, api_post, oauth_post, store = _build_client(
        [(200, AUTH_MESSAGE)],
        oauth_actions=[(400, {"message": "invalid client secret"})],
    )

    with pytest.raises(AuthTokenRefreshFailedError):
        client.search_games("Hades")

    assert store.saved == []
    assert store.token == IGDBAccessToken(access_token="stored")
    assert len(api_post.calls) == 1


def test_oauth_sends_credentials_as_query_parameters() -> None:
    oauth_post = RecordingPost([(200, {"access_token": "abc", "expires_in": 100})])
    oauth_client = TwitchOAuthClient(
        client_id="cid",
        client_secret="secret",
        token_url=TOKEN_URL,
        http_post=oauth_post,
        timeout=4.0,
    )

    token = oauth_client.fetch_app_access_token()

    assert token == IGDBAccessToken(access_token="abc")
    call = oauth_post.calls[0]
    assert call["url"] == TOKEN_URL
    assert call["params"] == {
        "client_id": "cid",
        "client_secret": "secret",
        "grant_type": "client_credentials",
    }
    assert call["timeout"] == 4.0


@pytest.mark.parametrize(
    "action",
    [
        (200, {"token_type": "bearer"}),
        (200, b"not json"),
        (503, {"message": "unavailable"}),
        httpx.ConnectTimeout("timeout", request=httpx.Request("POST", TOKEN_URL)),
    ],
)
def test_oauth_failures_are_fatal(action: Any) -> None:
    oauth_client = TwitchOAuthClient(
        client_id="cid",
        client_secret="secret",
        token_url=TOKEN_URL,
        http_post=RecordingPost([action]),
    )

    with pytest.raises(AuthTokenRefreshFailedError):
        oauth_client.fetch_app_access_token()


def test_query_builder_escapes_search_term() -> None:
    query = IGDBQueryBuilder().select("name", "cover.url").search('Say "Hi"').limit(5).build()

    assert query.to_apicalypse() == 'fields name, cover.url; search "Say \\"Hi\\""; limit 5;'


def test_token_provider_reuses_loaded_token() -> None:
    store = StubTokenStore("stored")
    provider = IGDBAccessTokenProvider(
        oauth_client=TwitchOAuthClient(
            client_id="cid",
            client_secret="secret",
            token_url=TOKEN_URL,
            http_post=RecordingPost([]),
        ),
        token_store=store,
    )

    assert provider.get_token().access_token == "stored"
    assert provider.get_token().access_token == "stored"
    assert store.loads == 1
