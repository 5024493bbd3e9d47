"""Cross-store translation of reference field values.

A reference field holds a store-local instance id (or a JSON array of them).
Ids mean nothing in the other store, so each id is resolved to the referenced
instance's ``(type, handle)`` in the source store and looked up again by
``(type, handle)`` in the target store.

Per run the resolver goes through three steps:

1. :meth:`ReferenceResolver.discover` walks the reference fields of the
   definitions being synced and collects every referenced type, following
   references transitively. A visited set keeps cyclic definition graphs from
   being walked twice.
2. :meth:`ReferenceResolver.build_indexes` loads a ``handle -> instance`` index
   of the target store for each discovered type. Types first met later (for
   example through a reference with no type validation) are indexed lazily.
3. :meth:`ReferenceResolver.resolve` rewrites one instance's fields.

Resolution never raises: unresolvable values are blanked (single references)
or dropped (list entries) and counted in :class:`ReferenceStats`.
"""

from __future__ import annotations

import json
from collections import deque
from logging import getLogger
from typing import TYPE_CHECKING

from metasync.domain.model import FieldTypeTag
from metasync.domain.ports import DataStoreError

from .field_types import (
    FieldTypePolicy,
    classify_type_name,
    is_unsupported_reference,
    referenced_definition_ids,
    type_name_of,
)
from .matching import EntityMatcher, HandleIndex
from .paging import collect_instances
from .results import ReferenceStats

if TYPE_CHECKING:
    from collections.abc import Iterable

    from metasync.domain.model import Definition, Field, Instance

    from .catalog import DefinitionCatalog
    from .log_context import SyncLogContext

log = getLogger(__name__)

REFERENCE_TAGS = frozenset({FieldTypeTag.REFERENCE, FieldTypeTag.LIST_REFERENCE})
EMPTY_LIST = "[]"


def encode_id_list(ids: list[str]) -> str:
    return json.dumps(ids, separators=(",", ":"))


class ReferenceResolver:
    def __init__(
        self,
        source_catalog: DefinitionCatalog,
        target_catalog: DefinitionCatalog,
        *,
        matcher: EntityMatcher | None = None,
        policy: FieldTypePolicy | None = None,
        page_size: int | None = None,
    ) -> None:
        self.source_catalog = source_catalog
        self.target_catalog = target_catalog
        self.matcher = matcher or EntityMatcher()
        self.policy = policy or FieldTypePolicy()
        self.page_size = page_size
        self._discovered: set[str] = set()
        self._visited: set[str] = set()
        self._indexes: dict[str, HandleIndex] = {}
        self._unindexable: set[str] = set()
        self._source_instances: dict[str, Instance | None] = {}

    async def discover(
        self, definitions: Iterable[Definition], *, context: SyncLogContext
    ) -> set[str]:
        """Collect every type referenced, directly or transitively, by ``definitions``."""

        queue: deque[Definition] = deque(definitions)
        while queue:
            definition = queue.popleft()
            if definition.type in self._visited:
                continue
            self._visited.add(definition.type)
            for field_definition in definition.field_definitions:
                if self.policy.classify(field_definition) not in REFERENCE_TAGS:
                    continue
                for definition_id in referenced_definition_ids(field_definition):
                    referenced = await self._source_definition(definition_id)
                    if referenced is None:
                        context.warning(
                            "Field %s.%s references unknown definition %s",
                            definition.type,
                            field_definition.key,
                            definition_id,
                        )
                        continue
                    if referenced.type not in self._discovered:
                        context.debug(
                            "Discovered referenced type %s via %s.%s",
                            referenced.type,
                            definition.type,
                            field_definition.key,
                        )
                    self._discovered.add(referenced.type)
                    if referenced.type not in self._visited:
                        queue.append(referenced)
        return set(self._discovered)

    async def build_indexes(self, *, context: SyncLogContext) -> None:
        for definition_type in sorted(self._discovered):
            await self._index_for(definition_type, context=context)

    def cached_index(self, definition_type: str) -> HandleIndex | None:
        return self._indexes.get(definition_type)

    def adopt_index(self, definition_type: str, index: HandleIndex) -> None:
        """Share an index built elsewhere so writes registered here reach both users."""

        self._indexes[definition_type] = index
        self._unindexable.discard(definition_type)

    def register(self, instance: Instance) -> None:
        """Make an instance written during this run resolvable by later records."""

        index = self._indexes.get(instance.type)
        if index is not None:
            self.matcher.add(index, instance)

    async def resolve(
        self,
        definition: Definition,
        instance: Instance,
        *,
        context: SyncLogContext,
    ) -> tuple[list[Field], ReferenceStats]:
        """Return ``instance``'s fields with every reference rewritten to target ids."""

        stats = ReferenceStats()
        translated: list[Field] = []
        for entry in instance.fields:
            field_definition = definition.field_definition(entry.key)
            type_name = (
                type_name_of(field_definition) if field_definition is not None else entry.type or ""
            )
            tag = classify_type_name(type_name) if type_name else FieldTypeTag.PLAIN
            if tag not in REFERENCE_TAGS:
                if entry.value and is_unsupported_reference(type_name):
                    if type_name not in stats.unsupported_types:
                        context.info(
                            "Unsupported reference type %s for field %s, passing through",
                            type_name,
                            entry.key,
                        )
                    stats.unsupported_types.add(type_name)
                translated.append(entry)
                continue
            if not entry.value:
                translated.append(entry)
                continue

            stats.processed += 1
            field_context = context.child(f"field={entry.key}")
            if tag is FieldTypeTag.REFERENCE:
                value = await self._translate_single(entry.value, stats, context=field_context)
            else:
                value = await self._translate_list(entry.value, stats, context=field_context)
            translated.append(entry.with_value(value))
        return translated, stats

    async def _translate_single(
        self, source_id: str, stats: ReferenceStats, *, context: SyncLogContext
    ) -> str:
        target_id = await self._translate_id(source_id, stats, context=context)
        if target_id is None:
            stats.blanked += 1
            context.warning("Blanking reference %s", source_id)
            return ""
        stats.transformed += 1
        return target_id

    async def _translate_list(
        self, raw_value: str, stats: ReferenceStats, *, context: SyncLogContext
    ) -> str:
        source_ids = decode_id_list(raw_value)
        if source_ids is None:
            stats.errors += 1
            stats.blanked += 1
            context.error("Malformed reference list %r, replacing with an empty list", raw_value)
            return EMPTY_LIST

        target_ids: list[str] = []
        for source_id in source_ids:
            target_id = await self._translate_id(source_id, stats, context=context)
            if target_id is not None:
                target_ids.append(target_id)

        if source_ids and not target_ids:
            stats.blanked += 1
            context.warning("None of %d referenced entries resolved", len(source_ids))
        else:
            stats.transformed += 1
            dropped = len(source_ids) - len(target_ids)
            if dropped:
                context.warning("Dropped %d of %d unresolved entries", dropped, len(source_ids))
        return encode_id_list(target_ids)

    async def _translate_id(
        self, source_id: str, stats: ReferenceStats, *, context: SyncLogContext
    ) -> str | None:
        try:
            source = await self._source_instance(source_id)
        except DataStoreError as exc:
            stats.errors += 1
            context.error("Error fetching referenced record %s: %s", source_id, exc)
            return None
        if source is None:
            stats.warnings += 1
            context.warning("Referenced record %s not found in source", source_id)
            return None
        if not source.handle:
            stats.warnings += 1
            context.warning("Referenced record %s has no handle", source_id)
            return None

        index = await self._index_for(source.type, context=context)
        target = self.matcher.match(source, index) if index is not None else None
        if target is None:
            stats.warnings += 1
            context.warning(
                "No %s record with handle %r in target", source.type, source.handle
            )
            return None
        context.debug("Mapped %s -> %s (%s/%s)", source_id, target.id, source.type, source.handle)
        return target.id

    async def _source_instance(self, instance_id: str) -> Instance | None:
        if instance_id in self._source_instances:
            return self._source_instances[instance_id]
        instance = await self.source_catalog.store.fetch_instance_by_id(instance_id)
        self._source_instances[instance_id] = instance
        return instance

    async def _source_definition(self, definition_id: str) -> Definition | None:
        known = self.source_catalog.by_id(definition_id)
        if known is not None:
            return known
        return await self.source_catalog.fetch_by_id(definition_id)

    async def _index_for(
        self, definition_type: str, *, context: SyncLogContext
    ) -> HandleIndex | None:
        index = self._indexes.get(definition_type)
        if index is not None:
            return index
        if definition_type in self._unindexable:
            return None
        if self.target_catalog.by_type(definition_type) is None:
            context.warning(
                "Target has no definition for type %s; references to it will be blanked",
                definition_type,
            )
            self._unindexable.add(definition_type)
            return None
        try:
            instances, _ = await collect_instances(
                self.target_catalog.store, definition_type, page_size=self.page_size
            )
        except DataStoreError as exc:
            context.error("Error indexing target records of type %s: %s", definition_type, exc)
            self._unindexable.add(definition_type)
            return None
        index = self.matcher.build_index(instances)
        self._indexes[definition_type] = index
        self._discovered.add(definition_type)
        log.debug("Indexed %d %s record(s) in target", len(index), definition_type)
        return index


def decode_id_list(raw_value: str) -> list[str] | None:
    try:
        parsed = json.loads(raw_value)
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
        return None
    return [item for item in parsed if item]
