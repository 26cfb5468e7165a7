"""共通例外。"""

from __future__ import annotations


class BaseAppError(Exception):
    """全レイヤで共有するベース例外。"""

    default_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class ConfigurationError(BaseAppError):
    """設定読み込みや不足を示すエラー。"""

    default_message = "Configuration is invalid or missing"


class DomainError(BaseAppError):
    """ドメイン層で利用する基底例外。"""

    default_message = "Domain layer error"


class UserAbortError(DomainError):
    """ユーザーが入力を行わずに処理を中断したことを示す。"""

    default_message = "Lookup aborted by user"


__all__ = [
    "BaseAppError",
    "ConfigurationError",
    "DomainError",
    "UserAbortError",
]
