"""Reporting of per-item mutation errors."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from metasync.domain.model import UserError

    from .log_context import SyncLogContext

PREVIEW_LIMIT = 50
PREVIEW_KEEP = 47


def value_preview(value: object) -> str:
    text = str(value) if value else ""
    if len(text) > PREVIEW_LIMIT:
        return text[:PREVIEW_KEEP] + "..."
    return text


def report_user_errors[T](
    context: SyncLogContext,
    errors: Sequence[UserError],
    items: Sequence[T],
    describe: Callable[[T], tuple[str, object]],
    subject: str,
) -> int:
    """Log mutation user errors, pointing at the offending input where possible.

    The platform reports paths like ``("fields", "3", "value")`` where the second
    segment indexes the submitted input list. ``describe`` turns that item into a
    label and a value whose preview is logged next to the message.
    """

    if not errors:
        return 0
    context.error("Failed to process %s:", subject)
    for error in errors:
        item = _item_for(error, items)
        if item is None:
            context.error("  - Error: %s", error.message)
            continue
        label, value = describe(item)
        context.error("  - %s: %s", label, error.message)
        preview = value_preview(value)
        if preview:
            context.error("    Value: %s", preview)
    return len(errors)


def _item_for[T](error: UserError, items: Sequence[T]) -> T | None:
    if len(error.field) < 2:
        return None
    try:
        index = int(error.field[1])
    except ValueError:
        return None
    if 0 <= index < len(items):
        return items[index]
    return None
