"""Cursor pagination over a store's instances."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from metasync.domain.model import Instance
    from metasync.domain.ports import DataStore


async def iter_instances(
    store: DataStore,
    definition_type: str,
    *,
    page_size: int | None = None,
) -> AsyncIterator[Instance]:
    """Yield instances of ``definition_type`` one page at a time.

    Pages are requested lazily, so a consumer that stops iterating early never
    triggers the next fetch.
    """

    cursor: str | None = None
    while True:
        page = await store.fetch_instances(definition_type, cursor=cursor, page_size=page_size)
        for instance in page.items:
            yield instance
        if not page.next_cursor:
            return
        cursor = page.next_cursor


async def collect_instances(
    store: DataStore,
    definition_type: str,
    *,
    page_size: int | None = None,
    max_items: int | None = None,
    predicate: Callable[[Instance], bool] | None = None,
) -> tuple[list[Instance], int]:
    """Collect instances, stopping once ``max_items`` matching ones are gathered.

    Returns the kept instances and the number of fetched instances rejected by
    ``predicate``.
    """

    kept: list[Instance] = []
    rejected = 0
    if max_items is not None and max_items <= 0:
        return kept, rejected
    async for instance in iter_instances(store, definition_type, page_size=page_size):
        if predicate is not None and not predicate(instance):
            rejected += 1
            continue
        kept.append(instance)
        if max_items is not None and len(kept) >= max_items:
            break
    return kept, rejected
