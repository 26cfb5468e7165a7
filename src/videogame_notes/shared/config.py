"""アプリケーション全体で共有する設定ローダー。"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AnyHttpUrl, BaseModel, Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

EnvName = Literal["local", "test", "staging", "production"]


class IGDBSettings(BaseModel):
    """IGDB API 関連の資格情報と接続設定。"""

    client_id: str = Field(..., description="IGDB API client id")
    client_secret: SecretStr = Field(..., description="IGDB API client secret")
    token_url: AnyHttpUrl = Field(
        "https://id.twitch.tv/oauth2/token", description="Twitch OAuth2 token endpoint"
    )
    api_url: AnyHttpUrl = Field("https://api.igdb.com/v4", description="IGDB API v4 base URL")
    timeout_seconds: float = Field(10.0, gt=0, description="HTTP リクエストのタイムアウト秒数")
    search_limit: int = Field(15, ge=1, le=500, description="検索で取得する最大件数")
    reauth_on_transport_error: bool = Field(
        True,
        description="通信エラーもトークン失効とみなして再認証する",
    )


class StorageSettings(BaseModel):
    """トークン保存先の設定。"""

    config_dir: Path = Field(Path(".obsidian"), description="Vault の設定ディレクトリ")
    token_filename: str = Field("igdbToken.json", description="トークンを保存するファイル名")

    @property
    def token_path(self) -> Path:
        return self.config_dir / self.token_filename


class AppSettings(BaseSettings):
    """共有設定。`.env` 読み込みと環境変数バリデーションを担う。"""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    environment: EnvName = Field("local", description="実行環境識別子")
    log_level: str = Field("INFO", description="ルートロガーのログレベル")
    igdb: IGDBSettings
    storage: StorageSettings = Field(default_factory=StorageSettings)


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """設定をロードし、再利用する。

    LRU キャッシュによりプロセス内での重複読み込みを防ぎ、
    `pytest` などから `get_settings.cache_clear()` を呼び出すことで再読込できる。
    """

    try:
        return AppSettings()
    except ValidationError as exc:  # pragma: no cover - ValidationError carries context
        raise ConfigurationError(str(exc)) from exc


__all__ = [
    "AppSettings",
    "IGDBSettings",
    "StorageSettings",
    "EnvName",
    "get_settings",
]
