"""In-memory catalog of one store's definitions."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from metasync.domain.ports import DataStoreError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from metasync.domain.model import Definition
    from metasync.domain.ports import DataStore

log = getLogger(__name__)


class DefinitionCatalog:
    """Definitions of one store, indexed by id and by type.

    The catalog is loaded once with :meth:`load` and grows when definitions are
    discovered by id (:meth:`fetch_by_id`) or created during the run
    (:meth:`add`). A failed load leaves the catalog empty; callers cannot tell
    the difference between "no definitions" and "fetch failed", and do not need
    to.
    """

    def __init__(self, store: DataStore, definitions: Iterable[Definition] = ()) -> None:
        self.store = store
        self._by_id: dict[str, Definition] = {}
        self._by_type: dict[str, Definition] = {}
        self._missing_ids: set[str] = set()
        self._pending: dict[str, asyncio.Task[Definition | None]] = {}
        for definition in definitions:
            self.add(definition)

    @classmethod
    async def load(cls, store: DataStore) -> DefinitionCatalog:
        catalog = cls(store)
        await catalog.fetch_all()
        return catalog

    async def fetch_all(self) -> list[Definition]:
        try:
            definitions = await self.store.fetch_definitions()
        except DataStoreError as exc:
            log.error(  # noqa: TRY400
                "Error fetching definitions from %s: %s", self.store.name, exc
            )
            definitions = []
        for definition in definitions:
            self.add(definition)
        log.info("Found %d definition(s) in %s", len(definitions), self.store.name)
        return definitions

    async def fetch_by_id(self, definition_id: str) -> Definition | None:
        """Resolve a definition that was not part of the initial catalog.

        Concurrent lookups of the same id share one store call.
        """

        if not definition_id:
            log.error("No definition id provided for lookup in %s", self.store.name)
            return None
        cached = self._by_id.get(definition_id)
        if cached is not None:
            return cached
        if definition_id in self._missing_ids:
            return None
        pending = self._pending.get(definition_id)
        if pending is None:
            pending = asyncio.create_task(self._fetch_by_id(definition_id))
            self._pending[definition_id] = pending
        return await pending

    async def _fetch_by_id(self, definition_id: str) -> Definition | None:
        try:
            definition = await self.store.fetch_definition_by_id(definition_id)
        except DataStoreError as exc:
            log.error(  # noqa: TRY400
                "Error fetching definition %s from %s: %s", definition_id, self.store.name, exc
            )
            definition = None
        finally:
            self._pending.pop(definition_id, None)
        if definition is None:
            log.warning("No definition found for id %s in %s", definition_id, self.store.name)
            self._missing_ids.add(definition_id)
            return None
        log.info("Fetched definition %s (type: %s)", definition_id, definition.type)
        self.add(definition)
        return definition

    def add(self, definition: Definition) -> None:
        self._by_id[definition.id] = definition
        self._by_type[definition.type] = definition
        self._missing_ids.discard(definition.id)

    def by_type(self, definition_type: str) -> Definition | None:
        return self._by_type.get(definition_type)

    def by_id(self, definition_id: str) -> Definition | None:
        return self._by_id.get(definition_id)

    def id_for_type(self, definition_type: str) -> str | None:
        definition = self._by_type.get(definition_type)
        return definition.id if definition is not None else None

    @property
    def types(self) -> list[str]:
        return list(self._by_type)

    def __iter__(self) -> Iterator[Definition]:
        return iter(self._by_type.values())

    def __len__(self) -> int:
        return len(self._by_type)

    def __contains__(self, definition_type: object) -> bool:
        return definition_type in self._by_type
