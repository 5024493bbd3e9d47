"""Write strategies for the sync engine.

The orchestrator never branches on dry-run: every mutation goes through an
:class:`Executor`. :class:`LiveExecutor` forwards to the target store and
:class:`SimulatingExecutor` logs the intended write and answers with a
placeholder record, so both modes walk the same code path and end with the
same counters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import count
from typing import TYPE_CHECKING, Protocol

from metasync.domain.model import (
    Definition,
    Field,
    FieldType,
    Instance,
    MetafieldDefinition,
    MutationResult,
)

from .errors import value_preview

if TYPE_CHECKING:
    from collections.abc import Iterator

    from metasync.domain.model import (
        Capabilities,
        DefinitionInput,
        DefinitionUpdateInput,
        FieldInput,
        MetafieldDefinitionInput,
    )
    from metasync.domain.ports import DataStore

    from .log_context import SyncLogContext

PLACEHOLDER_PREFIX = "dry-run"
PLACEHOLDER_HANDLE = "dry-run-handle"


class Executor(Protocol):
    live: bool

    async def create_definition(
        self, definition: DefinitionInput, *, context: SyncLogContext
    ) -> MutationResult[Definition]: ...

    async def update_definition(
        self, existing: Definition, update: DefinitionUpdateInput, *, context: SyncLogContext
    ) -> MutationResult[Definition]: ...

    async def create_instance(
        self,
        definition_type: str,
        fields: list[FieldInput],
        *,
        capabilities: Capabilities | None,
        handle: str | None,
        context: SyncLogContext,
    ) -> MutationResult[Instance]: ...

    async def update_instance(
        self, existing: Instance, fields: list[FieldInput], *, context: SyncLogContext
    ) -> MutationResult[Instance]: ...

    async def create_metafield_definition(
        self, definition: MetafieldDefinitionInput, *, context: SyncLogContext
    ) -> MutationResult[MetafieldDefinition]: ...

    async def update_metafield_definition(
        self,
        existing: MetafieldDefinition,
        update: MetafieldDefinitionInput,
        *,
        context: SyncLogContext,
    ) -> MutationResult[MetafieldDefinition]: ...


@dataclass(slots=True)
class LiveExecutor:
    """Apply every write to the target store."""

    target: DataStore
    live: bool = field(default=True, init=False)

    async def create_definition(
        self, definition: DefinitionInput, *, context: SyncLogContext
    ) -> MutationResult[Definition]:
        context.info(
            "Creating definition %s with %d field(s)",
            definition.type,
            len(definition.field_definitions),
        )
        return await self.target.create_definition(definition)

    async def update_definition(
        self, existing: Definition, update: DefinitionUpdateInput, *, context: SyncLogContext
    ) -> MutationResult[Definition]:
        context.info(
            "Updating definition %s with %d field change(s)",
            existing.type,
            len(update.field_definitions),
        )
        return await self.target.update_definition(existing.id, update)

    async def create_instance(
        self,
        definition_type: str,
        fields: list[FieldInput],
        *,
        capabilities: Capabilities | None,
        handle: str | None,
        context: SyncLogContext,
    ) -> MutationResult[Instance]:
        context.info("Creating %s record %r", definition_type, handle)
        return await self.target.create_instance(
            definition_type, fields, capabilities=capabilities, handle=handle
        )

    async def update_instance(
        self, existing: Instance, fields: list[FieldInput], *, context: SyncLogContext
    ) -> MutationResult[Instance]:
        context.info("Updating %s record %r (%s)", existing.type, existing.handle, existing.id)
        return await self.target.update_instance(existing.id, fields)

    async def create_metafield_definition(
        self, definition: MetafieldDefinitionInput, *, context: SyncLogContext
    ) -> MutationResult[MetafieldDefinition]:
        context.info(
            "Creating %s metafield definition %s%s",
            definition.owner_type,
            definition.full_key,
            " (pinned)" if definition.pin else "",
        )
        return await self.target.create_metafield_definition(definition)

    async def update_metafield_definition(
        self,
        existing: MetafieldDefinition,
        update: MetafieldDefinitionInput,
        *,
        context: SyncLogContext,
    ) -> MutationResult[MetafieldDefinition]:
        context.info(
            "Updating %s metafield definition %s (%s)",
            existing.owner_type,
            existing.full_key,
            existing.id,
        )
        return await self.target.update_metafield_definition(update)


@dataclass(slots=True)
class SimulatingExecutor:
    """Log intended writes and return placeholder records without touching any store."""

    live: bool = field(default=False, init=False)
    _ids: Iterator[int] = field(default_factory=lambda: count(1), init=False, repr=False)

    def _placeholder_id(self, kind: str) -> str:
        return f"{PLACEHOLDER_PREFIX}-{kind}-{next(self._ids)}"

    async def create_definition(
        self, definition: DefinitionInput, *, context: SyncLogContext
    ) -> MutationResult[Definition]:
        context.dry_run(
            "Would create definition %s with %d field(s)",
            definition.type,
            len(definition.field_definitions),
        )
        for field_definition in definition.field_definitions:
            context.debug(
                "  %s (%s, required=%s)",
                field_definition.key,
                field_definition.type,
                field_definition.required,
            )
        return MutationResult(
            record=Definition(
                id=self._placeholder_id("definition"),
                type=definition.type,
                name=definition.name,
                description=definition.description,
                capabilities=dict(definition.capabilities),
            )
        )

    async def update_definition(
        self, existing: Definition, update: DefinitionUpdateInput, *, context: SyncLogContext
    ) -> MutationResult[Definition]:
        context.dry_run(
            "Would update definition %s with %d field change(s)",
            existing.type,
            len(update.field_definitions),
        )
        for change in update.field_definitions:
            context.debug("  %s %s", change.operation, change.field_definition.key)
        return MutationResult(record=existing)

    async def create_instance(
        self,
        definition_type: str,
        fields: list[FieldInput],
        *,
        capabilities: Capabilities | None,
        handle: str | None,
        context: SyncLogContext,
    ) -> MutationResult[Instance]:
        context.dry_run("Would create %s record %r", definition_type, handle)
        self._log_fields(fields, context=context)
        return MutationResult(
            record=Instance(
                id=self._placeholder_id("instance"),
                type=definition_type,
                handle=handle or PLACEHOLDER_HANDLE,
                fields=[Field(key=entry.key, value=entry.value) for entry in fields],
                capabilities=dict(capabilities or {}),
            )
        )

    async def update_instance(
        self, existing: Instance, fields: list[FieldInput], *, context: SyncLogContext
    ) -> MutationResult[Instance]:
        context.dry_run(
            "Would update %s record %r (%s)", existing.type, existing.handle, existing.id
        )
        self._log_fields(fields, context=context)
        return MutationResult(record=existing)

    async def create_metafield_definition(
        self, definition: MetafieldDefinitionInput, *, context: SyncLogContext
    ) -> MutationResult[MetafieldDefinition]:
        context.dry_run(
            "Would create %s metafield definition %s", definition.owner_type, definition.full_key
        )
        self._log_validations(definition, context=context)
        return MutationResult(
            record=MetafieldDefinition(
                id=self._placeholder_id("metafield-definition"),
                owner_type=definition.owner_type,
                namespace=definition.namespace,
                key=definition.key,
                type=FieldType(name=definition.type),
                name=definition.name,
                description=definition.description,
                validations=tuple(definition.validations),
            )
        )

    async def update_metafield_definition(
        self,
        existing: MetafieldDefinition,
        update: MetafieldDefinitionInput,
        *,
        context: SyncLogContext,
    ) -> MutationResult[MetafieldDefinition]:
        context.dry_run(
            "Would update %s metafield definition %s (%s)",
            existing.owner_type,
            existing.full_key,
            existing.id,
        )
        self._log_validations(update, context=context)
        return MutationResult(record=existing)

    @staticmethod
    def _log_fields(fields: list[FieldInput], *, context: SyncLogContext) -> None:
        for entry in fields:
            context.debug("  %s = %s", entry.key, value_preview(entry.value))

    @staticmethod
    def _log_validations(
        definition: MetafieldDefinitionInput, *, context: SyncLogContext
    ) -> None:
        for validation in definition.validations:
            context.debug("  %s = %s", validation.name, value_preview(validation.value))
