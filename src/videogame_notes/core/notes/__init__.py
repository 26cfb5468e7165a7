"""ノート用の整形とテンプレート描画。"""

from .formatter import (
    BLANK,
    build_template_variables,
    format_list,
    format_list_properties,
    format_rating,
    format_release_date,
    format_title_for_suggestion,
)
from .template import DEFAULT_TEMPLATE_NAME, load_template, render_note

__all__ = [
    "BLANK",
    "DEFAULT_TEMPLATE_NAME",
    "build_template_variables",
    "format_list",
    "format_list_properties",
    "format_rating",
    "format_release_date",
    "format_title_for_suggestion",
    "load_template",
    "render_note",
]
