"""検索結果 1 件をノートテンプレート用の文字列へ整形する。"""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from urllib.parse import quote

from videogame_notes.infra.igdb.dto import IGDBGameRecord

# テンプレート側で空欄として扱われる値
BLANK = " "
UNKNOWN_TITLE = "Unknown title"

_ILLEGAL_FILENAME_CHARS = re.compile(r'[\\,#%&{}/*<>$":@.]')
# encodeURIComponent がエスケープしない記号
_URI_COMPONENT_SAFE = "-_.!~*'()"
_PARAGRAPH_BREAK = "\n\n"
_QUOTED_PARAGRAPH_BREAK = "\n>\n> "


def format_title_for_suggestion(record: IGDBGameRecord) -> str:
    """候補一覧に表示する `タイトル (発売年)`。発売日不明ならタイトルのみ。"""

    name = record.name or UNKNOWN_TITLE
    if record.first_release_date is None:
        return name
    return f"{name} ({record.first_release_date.year})"


def format_release_date(value: datetime | None) -> str:
    if value is None:
        return BLANK
    return value.date().isoformat()


def format_rating(record: IGDBGameRecord) -> str:
    """100 点満点の評価を 10 点満点に直す。批評家評価を優先する。"""

    rating = record.aggregated_rating if record.aggregated_rating else record.rating
    if not rating:
        return "0"
    # 0.125 のような二進でちょうど中間の値は切り上げる
    scaled = Decimal(rating / 10).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{scaled:.2f}"


def format_list(items: Sequence[str]) -> str:
    """フロントマター向けの `"a", "b"` 形式。1 件ならそのまま。"""

    if not items or items[0] == "N/A":
        return BLANK
    if len(items) == 1:
        return items[0]
    return ", ".join(f'"{item.strip()}"' for item in items)


def format_list_properties(items: Sequence[str]) -> str:
    """YAML リスト形式。先頭に改行を付けてプロパティ名の後ろへ置けるようにする。"""

    if not items or items[0] == "N/A":
        return BLANK
    return "\n" + "\n".join(f"- {item.strip()}" for item in items)


def format_storyline(text: str | None) -> str:
    """段落ごとに引用ブロックへ変換する。"""

    if not text:
        return BLANK
    return "> " + text.replace(_PARAGRAPH_BREAK, _QUOTED_PARAGRAPH_BREAK)


def format_summary(text: str | None) -> str:
    if not text:
        return BLANK
    return text.replace(_PARAGRAPH_BREAK, _QUOTED_PARAGRAPH_BREAK).replace("> ", "")


def replace_illegal_file_name_characters(value: str) -> str:
    return _ILLEGAL_FILENAME_CHARS.sub("", value)


def encode_uri_component(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


def _image_url(url: str | None, size: str | None = None) -> str:
    # IGDB の画像 URL はスキーム無しの `//images.igdb.com/.../t_thumb/...`
    if not url:
        return BLANK
    absolute = f"https:{url}"
    if size is None:
        return absolute
    return absolute.replace("thumb", size, 1)


def format_download_url(raw: str | None) -> str:
    """入力された URL を整える。スキームが無ければ https:// を補う。"""

    url = (raw or "").strip()
    if not url:
        return BLANK
    if not url.startswith(("http://", "https://")):
        url = f"https://{url}"
    return url


def build_template_variables(
    record: IGDBGameRecord,
    *,
    download_url: str | None = None,
) -> dict[str, Any]:
    """ノートテンプレートへ渡す変数を組み立てる。

    生レコードのフィールドを先に展開し、整形済みの値で上書きする。
    """

    name = record.name or UNKNOWN_TITLE
    developer = record.developer

    variables: dict[str, Any] = dict(record.raw)
    variables.update(
        {
            "urlName": encode_uri_component(name),
            "download": format_download_url(download_url),
            "fileName": replace_illegal_file_name_characters(name),
            "release": format_release_date(record.first_release_date),
            "rating": format_rating(record),
            "genresFormatted": format_list(record.genres),
            "genresListed": format_list_properties(record.genres),
            "gameModesFormatted": format_list(record.game_modes),
            "gameModesListed": format_list_properties(record.game_modes),
            "themesFormatted": format_list(record.themes),
            "themesListed": format_list_properties(record.themes),
            "storylineFormatted": format_storyline(record.storyline),
            "summaryFormatted": format_summary(record.summary),
            "developerName": (developer.company_name or BLANK) if developer else BLANK,
            "developerLogo": _image_url(developer.company_logo_url, "logo_med")
            if developer
            else BLANK,
            "thumbnail": _image_url(record.cover_url),
            "cover": _image_url(record.cover_url, "cover_big"),
        }
    )
    return variables


__all__ = [
    "BLANK",
    "UNKNOWN_TITLE",
    "build_template_variables",
    "encode_uri_component",
    "format_download_url",
    "format_list",
    "format_list_properties",
    "format_rating",
    "format_release_date",
    "format_storyline",
    "format_summary",
    "format_title_for_suggestion",
    "replace_illegal_file_name_characters",
]
