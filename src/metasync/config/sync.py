"""Synchronization defaults for metaobject runs."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .env import env_flag
from .errors import ConfigurationError

DEFAULT_ITEM_LIMIT = 3
DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 250


@dataclass(frozen=True, slots=True)
class SyncConfig:
    limit: int | None = DEFAULT_ITEM_LIMIT
    page_size: int = DEFAULT_PAGE_SIZE
    normalize_handles: bool = False


def get_sync_config() -> SyncConfig:
    raw_page_size = os.getenv("METASYNC_PAGE_SIZE")
    page_size = DEFAULT_PAGE_SIZE
    if raw_page_size and raw_page_size.strip():
        try:
            page_size = int(raw_page_size)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid METASYNC_PAGE_SIZE: {raw_page_size!r}") from exc
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise ConfigurationError(f"METASYNC_PAGE_SIZE must be between 1 and {MAX_PAGE_SIZE}")
    return SyncConfig(
        page_size=page_size,
        normalize_handles=env_flag("METASYNC_NORMALIZE_HANDLES", default=False),
    )
