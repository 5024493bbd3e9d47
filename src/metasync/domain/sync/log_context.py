"""Scoped logger passed explicitly through a sync run."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import MutableMapping

SCOPE_SEPARATOR = " > "
DRY_RUN_PREFIX = "[DRY RUN] "


class SyncLogContext(logging.LoggerAdapter):  # type: ignore[type-arg]
    """Logger adapter that prefixes every message with the current scope path.

    Scopes nest by calling :meth:`child`, which returns a new adapter and leaves
    the parent untouched, so there is no shared indentation state between
    callers.
    """

    def __init__(self, logger: logging.Logger, scope: tuple[str, ...] = ()) -> None:
        super().__init__(logger, {"scope": scope})
        self.scope = scope

    def child(self, label: str) -> SyncLogContext:
        return SyncLogContext(self.logger, (*self.scope, label))

    def dry_run(self, msg: str, *args: object) -> None:
        self.info(DRY_RUN_PREFIX + msg, *args)

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        if not self.scope:
            return msg, kwargs
        return f"[{SCOPE_SEPARATOR.join(self.scope)}] {msg}", kwargs


def root_context(name: str) -> SyncLogContext:
    return SyncLogContext(logging.getLogger(name))
