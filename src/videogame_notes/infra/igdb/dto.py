"""IGDB API 向け DTO およびレスポンス整形ユーティリティ。"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from videogame_notes.shared.types import DTO


class IGDBPayloadKind(Enum):
    """検索レスポンスの分類。"""

    RESULTS = "results"
    AUTH_FAILURE = "auth_failure"


@dataclass(slots=True)
class IGDBInvolvedCompanyDTO(DTO):
    """ゲームに関わった企業。"""

    developer: bool = False
    company_name: str | None = None
    company_logo_url: str | None = None


@dataclass(slots=True)
class IGDBGameRecord(DTO):
    """検索結果 1 件。IGDB は要求したフィールドでも欠落させるため全て任意項目。"""

    id: int | None = None
    name: str | None = None
    url: str | None = None
    first_release_date: datetime | None = None
    cover_url: str | None = None
    genres: tuple[str, ...] = ()
    game_modes: tuple[str, ...] = ()
    themes: tuple[str, ...] = ()
    storyline: str | None = None
    summary: str | None = None
    aggregated_rating: float | None = None
    rating: float | None = None
    involved_companies: tuple[IGDBInvolvedCompanyDTO, ...] = ()
    raw: Mapping[str, Any] = field(default_factory=dict)

    @property
    def developer(self) -> IGDBInvolvedCompanyDTO | None:
        """developer フラグを持つ最初の企業。"""

        return next((company for company in self.involved_companies if company.developer), None)


@dataclass(slots=True)
class IGDBSearchPayload(DTO):
    """デコード済みの検索レスポンス。"""

    kind: IGDBPayloadKind
    items: tuple[IGDBGameRecord, ...] = ()
    message: str | None = None


@dataclass(slots=True)
class IGDBGameResponse(DTO):
    """ゲームリストのレスポンス。"""

    items: tuple[IGDBGameRecord, ...]
    raw: bytes


class IGDBPayloadShapeError(ValueError):
    """JSON としては読めるが、結果一覧にも認証エラーにも当たらない。"""


def decode_search_payload(payload: bytes) -> IGDBSearchPayload:
    """検索レスポンスを結果一覧か認証エラーに分類する。

    IGDB は認証エラー時に `{"message": ...}` 形式のオブジェクトを返す。

    Raises:
        ValueError: JSON として解釈できない場合。
        IGDBPayloadShapeError: JSON だが想定外の形状の場合。
    """

    try:
        decoded = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError("Invalid JSON payload for IGDB response") from exc

    if isinstance(decoded, dict):
        if "message" in decoded:
            return IGDBSearchPayload(
                kind=IGDBPayloadKind.AUTH_FAILURE,
                message=str(decoded["message"]),
            )
        raise IGDBPayloadShapeError("IGDB JSON object payload without `message`")

    if not isinstance(decoded, list):
        raise IGDBPayloadShapeError("IGDB JSON payload must be an array")

    games: list[IGDBGameRecord] = []
    for raw_game in decoded:
        if not isinstance(raw_game, dict):
            msg = "Each game record must be an object"
            raise IGDBPayloadShapeError(msg)
        games.append(map_game_dict(raw_game))

    return IGDBSearchPayload(kind=IGDBPayloadKind.RESULTS, items=tuple(games))


def map_game_dict(data: Mapping[str, Any]) -> IGDBGameRecord:
    """生の JSON オブジェクトを IGDBGameRecord へ変換する。型の合わない値は欠落扱い。"""

    cover = _as_mapping(data.get("cover"))
    return IGDBGameRecord(
        id=data.get("id") if isinstance(data.get("id"), int) else None,
        name=_as_str(data.get("name")),
        url=_as_str(data.get("url")),
        first_release_date=_timestamp_to_datetime(data.get("first_release_date")),
        cover_url=_as_str(cover.get("url")) if cover else None,
        genres=_names(data.get("genres")),
        game_modes=_names(data.get("game_modes")),
        themes=_names(data.get("themes")),
        storyline=_as_str(data.get("storyline")),
        summary=_as_str(data.get("summary")),
        aggregated_rating=_as_float(data.get("aggregated_rating")),
        rating=_as_float(data.get("rating")),
        involved_companies=_companies(data.get("involved_companies")),
        raw=dict(data),
    )


def _as_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _as_mapping(value: Any) -> Mapping[str, Any] | None:
    return value if isinstance(value, Mapping) else None


def _names(raw: Any) -> tuple[str, ...]:
    if not isinstance(raw, list):
        return ()
    names: list[str] = []
    for item in raw:
        mapping = _as_mapping(item)
        name = _as_str(mapping.get("name")) if mapping else None
        if name is not None:
            names.append(name)
    return tuple(names)


def _companies(raw: Any) -> tuple[IGDBInvolvedCompanyDTO, ...]:
    if not isinstance(raw, list):
        return ()

    companies: list[IGDBInvolvedCompanyDTO] = []
    for item in raw:
        entry = _as_mapping(item)
        if entry is None:
            continue
        company = _as_mapping(entry.get("company")) or {}
        logo = _as_mapping(company.get("logo")) or {}
        companies.append(
            IGDBInvolvedCompanyDTO(
                developer=entry.get("developer") is True,
                company_name=_as_str(company.get("name")),
                company_logo_url=_as_str(logo.get("url")),
            )
        )
    return tuple(companies)


def _timestamp_to_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        timestamp = int(value)
    except (TypeError, ValueError):
        return None
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)  # noqa: UP017 - Py311 fallback
    except (OverflowError, OSError, ValueError):
        return None


__all__ = [
    "IGDBGameRecord",
    "IGDBGameResponse",
    "IGDBInvolvedCompanyDTO",
    "IGDBPayloadKind",
    "IGDBPayloadShapeError",
    "IGDBSearchPayload",
    "decode_search_payload",
    "map_game_dict",
]
