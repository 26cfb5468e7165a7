"""ゲーム検索ワークフロー。"""

from .service import (
    GameLookupService,
    LookupPrompter,
    LookupResult,
    LookupSession,
    NoSelectionError,
)

__all__ = [
    "GameLookupService",
    "LookupPrompter",
    "LookupResult",
    "LookupSession",
    "NoSelectionError",
]
