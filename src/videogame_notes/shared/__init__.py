"""共有レイヤの公開インターフェース。"""

from .config import AppSettings, get_settings
from .exceptions import BaseAppError, ConfigurationError, DomainError, UserAbortError
from .logging import configure_logging, get_logger
from .types import DTO, ValueObject

__all__ = [
    "AppSettings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "BaseAppError",
    "ConfigurationError",
    "DomainError",
    "UserAbortError",
    "DTO",
    "ValueObject",
]
