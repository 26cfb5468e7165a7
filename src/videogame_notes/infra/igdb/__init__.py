"""IGDB API 向け infra 層パッケージ。"""

from .client import (
    SEARCH_FIELDS,
    AuthTokenRefreshFailedError,
    EmptyQueryError,
    IGDBAccessTokenProvider,
    IGDBClient,
    IGDBClientError,
    IGDBClientProtocol,
    IGDBQuery,
    IGDBQueryBuilder,
    IGDBRequestError,
    IGDBRetryConfig,
    NoResultsFoundError,
    TwitchOAuthClient,
    build_igdb_client,
)
from .dto import IGDBGameRecord, IGDBGameResponse, IGDBInvolvedCompanyDTO
from .token_store import IGDBAccessToken, PersistedTokenRecord, TokenStore, TokenStoreError

__all__ = [
    "SEARCH_FIELDS",
    "AuthTokenRefreshFailedError",
    "EmptyQueryError",
    "IGDBAccessToken",
    "IGDBAccessTokenProvider",
    "IGDBClient",
    "IGDBClientError",
    "IGDBClientProtocol",
    "IGDBGameRecord",
    "IGDBGameResponse",
    "IGDBInvolvedCompanyDTO",
    "IGDBQuery",
    "IGDBQueryBuilder",
    "IGDBRequestError",
    "IGDBRetryConfig",
    "NoResultsFoundError",
    "PersistedTokenRecord",
    "TokenStore",
    "TokenStoreError",
    "TwitchOAuthClient",
    "build_igdb_client",
]
