"""`{{VALUE:name}}` 形式のノートテンプレートを描画する。"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

DEFAULT_TEMPLATE_NAME = "videogame.md"
_TEMPLATES_DIR = Path(__file__).with_name("templates")
_PLACEHOLDER = re.compile(r"\{\{\s*VALUE:([^}]+?)\s*\}\}", re.IGNORECASE)


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float, bool)):
        return json.dumps(value)
    return json.dumps(value, ensure_ascii=False)


def render_note(template: str, variables: Mapping[str, Any]) -> str:
    """プレースホルダを変数で置き換える。変数名は大文字小文字を区別しない。未定義は空文字。"""

    lookup = {key.lower(): value for key, value in variables.items()}

    def _replace(match: re.Match[str]) -> str:
        return _stringify(lookup.get(match.group(1).strip().lower()))

    return _PLACEHOLDER.sub(_replace, template)


def load_template(path: Path | None = None) -> str:
    """テンプレートを読み込む。未指定なら同梱のテンプレート。"""

    resolved = Path(path) if path else _TEMPLATES_DIR / DEFAULT_TEMPLATE_NAME
    if not resolved.exists():
        msg = f"テンプレートが見つかりません: {resolved}"
        raise FileNotFoundError(msg)
    return resolved.read_text(encoding="utf-8")


__all__ = ["DEFAULT_TEMPLATE_NAME", "load_template", "render_note"]
