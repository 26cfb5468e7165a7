"""IGDB アクセストークンのファイル永続化。"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from structlog.stdlib import BoundLogger

from videogame_notes.shared.exceptions import BaseAppError
from videogame_notes.shared.logging import get_logger


@dataclass(slots=True, frozen=True)
class IGDBAccessToken:
    """IGDB API へアクセスするためのアクセストークン。有効期限はサーバー側のみが知る。"""

    access_token: str

    def __repr__(self) -> str:
        return "IGDBAccessToken(access_token='***')"


class PersistedTokenRecord(BaseModel):
    """ディスク上の表現 `{"igdbToken": "<token>"}`。"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    igdb_token: str = Field(..., alias="igdbToken", repr=False)


class TokenStoreError(BaseAppError):
    """保存済みトークンファイルが壊れている場合の例外。"""

    default_message = "Saved IGDB token file is malformed"


@dataclass(slots=True)
class TokenStore:
    """固定パスの JSON ファイルにトークンを 1 件だけ保存する。

    ロックは取らない。同じファイルへの同時書き込みは後勝ち。
    """

    path: Path
    logger: BoundLogger = field(
        default_factory=lambda: get_logger(__name__, component="token-store")
    )

    def load(self) -> IGDBAccessToken | None:
        """保存済みトークンを読み込む。ファイルが無ければ None。"""

        if not self.path.exists():
            self.logger.info("igdb_token_missing", path=str(self.path))
            return None

        try:
            content = self.path.read_text(encoding="utf-8")
            record = PersistedTokenRecord.model_validate_json(content)
        except (UnicodeDecodeError, ValidationError) as exc:
            self.logger.error("igdb_token_malformed", path=str(self.path))
            msg = f"Saved IGDB token file is malformed: {self.path}"
            raise TokenStoreError(msg) from exc

        self.logger.debug("igdb_token_loaded", path=str(self.path))
        return IGDBAccessToken(access_token=record.igdb_token)

    def save(self, token: IGDBAccessToken) -> None:
        """トークンを書き込む。既存の内容は上書きする。OSError はそのまま送出。"""

        record = PersistedTokenRecord(igdb_token=token.access_token)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(record.model_dump_json(by_alias=True), encoding="utf-8")
        self.logger.info("igdb_token_saved", path=str(self.path))


__all__ = [
    "IGDBAccessToken",
    "PersistedTokenRecord",
    "TokenStore",
    "TokenStoreError",
]
