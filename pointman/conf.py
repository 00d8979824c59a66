"""
Pointman configuration.

Usage in settings.py:
    POINTMAN = {
        "RECEIPT_ID_MAX_ATTEMPTS": 10,
        "FREE_TRIAL_DAYS": 14,
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class PointmanSettings:
    """Pointman configuration settings."""

    # Receipt identifiers
    RECEIPT_ID_LENGTH: int = 8
    RECEIPT_ID_MAX_ATTEMPTS: int = 10

    # Subscriptions
    FREE_TRIAL_DAYS: int = 14

    # Listings
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Transparent retries of StorageConflict
    CONFLICT_RETRY_ATTEMPTS: int = 3


def get_pointman_settings() -> PointmanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "POINTMAN", {})
    return PointmanSettings(**user_settings)


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_pointman_settings(), name)


pointman_settings = _LazySettings()
