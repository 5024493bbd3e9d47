"""Per-run control loop: definition phase, then data phase."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from metasync.domain.model import (
    DefinitionInput,
    DefinitionUpdateInput,
    FieldDefinitionChange,
    FieldDefinitionInput,
    FieldDefinitionOperation,
    FieldInput,
)
from metasync.domain.ports import DataStoreError

from .catalog import DefinitionCatalog
from .errors import report_user_errors
from .field_types import DEFINITION_ID_VALIDATION, FieldTypePolicy, type_name_of
from .log_context import SyncLogContext
from .matching import EntityMatcher
from .paging import collect_instances
from .plan import SetupError, build_tasks
from .references import ReferenceResolver
from .results import SyncResult, SyncRunResult
from .validations import DefinitionIdTranslator

if TYPE_CHECKING:
    from metasync.domain.model import Definition, Field, FieldDefinition, Instance, Validation
    from metasync.domain.ports import DataStore

    from .executor import Executor
    from .matching import HandleIndex
    from .plan import RunConfig, SyncTask

log = getLogger(__name__)


class SyncState(StrEnum):
    IDLE = "idle"
    DEFINITIONS = "definitions"
    DATA = "data"
    DONE = "done"
    FAILED = "failed"


@dataclass(slots=True)
class SyncOrchestrator:
    """Synchronise definitions and their records from ``source`` into ``target``.

    Every write goes through ``executor``; the orchestrator itself never checks
    whether the run is live. Per-record failures are counted and the loop moves
    on. Only a malformed run configuration stops a run, and it does so before
    anything is written.
    """

    source: DataStore
    target: DataStore
    executor: Executor
    policy: FieldTypePolicy = field(default_factory=FieldTypePolicy)
    matcher: EntityMatcher = field(default_factory=EntityMatcher)
    page_size: int | None = None
    state: SyncState = field(default=SyncState.IDLE, init=False)
    source_catalog: DefinitionCatalog | None = field(default=None, init=False)
    target_catalog: DefinitionCatalog | None = field(default=None, init=False)
    _resolver: ReferenceResolver | None = field(default=None, init=False, repr=False)
    _translator: DefinitionIdTranslator | None = field(default=None, init=False, repr=False)

    async def run(
        self, config: RunConfig, *, context: SyncLogContext | None = None
    ) -> SyncRunResult:
        root = context or SyncLogContext(log)
        try:
            config.validate()
        except SetupError:
            self.state = SyncState.FAILED
            raise

        self.source_catalog = await DefinitionCatalog.load(self.source)
        self.target_catalog = await DefinitionCatalog.load(self.target)
        self._resolver = ReferenceResolver(
            self.source_catalog,
            self.target_catalog,
            matcher=self.matcher,
            policy=self.policy,
            page_size=self.page_size,
        )
        self._translator = DefinitionIdTranslator(self.source_catalog, self.target_catalog)

        tasks = build_tasks(config, self.source_catalog)
        if not tasks:
            root.warning("No definition types to sync")
        run_result = SyncRunResult()

        if config.includes_definitions:
            self.state = SyncState.DEFINITIONS
            await self._definition_phase(
                tasks, config, run_result.definitions, context=root.child("definitions")
            )
        # the definition limit does not narrow the types whose records are synced
        run_result.definition_types = [
            task.definition_type for task in tasks if task.definition_type in self.source_catalog
        ]

        if config.includes_data:
            self.state = SyncState.DATA
            await self._data_phase(tasks, config, run_result.data, context=root.child("data"))

        self.state = SyncState.DONE
        return run_result

    # definitions

    async def _definition_phase(
        self,
        tasks: list[SyncTask],
        config: RunConfig,
        result: SyncResult,
        *,
        context: SyncLogContext,
    ) -> None:
        """Create or update each requested definition, up to ``config.limit`` of them."""

        self._audit_unknown_references(tasks, context=context)
        processed = 0
        for position, task in enumerate(tasks):
            if config.limit is not None and processed >= config.limit:
                remaining = tasks[position:]
                context.info(
                    "Reached limit of %d definition(s), skipping %d remaining",
                    config.limit,
                    len(remaining),
                )
                for skipped in remaining:
                    result.track_skipped(skipped.definition_type)
                break
            type_context = context.child(f"type={task.definition_type}")
            source_definition = self._catalogs[0].by_type(task.definition_type)
            if source_definition is None:
                type_context.warning("No definition found in source, skipping")
                result.track_skipped(task.definition_type)
                continue
            processed += 1
            try:
                await self._sync_definition(source_definition, result, context=type_context)
            except DataStoreError as exc:
                type_context.error("Error syncing definition: %s", exc)
                result.track_failed(task.definition_type)
        context.info("Definitions: %s", result.summary())

    def _audit_unknown_references(self, tasks: list[SyncTask], *, context: SyncLogContext) -> None:
        source_catalog, _ = self._catalogs
        for task in tasks:
            definition = source_catalog.by_type(task.definition_type)
            if definition is None:
                continue
            for field_definition in definition.field_definitions:
                validation = field_definition.validation(DEFINITION_ID_VALIDATION)
                if validation is None or not validation.value:
                    continue
                if source_catalog.by_id(validation.value) is None:
                    context.warning(
                        "Field %s.%s references definition %s, which is not in the source catalog",
                        definition.type,
                        field_definition.key,
                        validation.value,
                    )

    async def _sync_definition(
        self, source_definition: Definition, result: SyncResult, *, context: SyncLogContext
    ) -> None:
        _, target_catalog = self._catalogs
        field_inputs = list(
            await asyncio.gather(
                *(
                    self._field_definition_input(field_definition, context=context)
                    for field_definition in source_definition.field_definitions
                )
            )
        )
        existing = target_catalog.by_type(source_definition.type)
        if existing is None:
            mutation = await self.executor.create_definition(
                DefinitionInput(
                    type=source_definition.type,
                    name=source_definition.name,
                    description=source_definition.description,
                    field_definitions=field_inputs,
                    capabilities=dict(source_definition.capabilities),
                ),
                context=context,
            )
        else:
            existing_keys = {fd.key for fd in existing.field_definitions}
            changes = [
                FieldDefinitionChange(
                    operation=(
                        FieldDefinitionOperation.UPDATE
                        if field_input.key in existing_keys
                        else FieldDefinitionOperation.CREATE
                    ),
                    field_definition=field_input,
                )
                for field_input in field_inputs
            ]
            mutation = await self.executor.update_definition(
                existing,
                DefinitionUpdateInput(
                    name=source_definition.name,
                    description=source_definition.description,
                    field_definitions=changes,
                    capabilities=dict(source_definition.capabilities),
                ),
                context=context,
            )

        if not mutation.ok:
            report_user_errors(
                context,
                mutation.errors,
                field_inputs,
                lambda item: (f"Field definition {item.key}", item.type),
                f"definition {source_definition.type}",
            )
            result.track_failed(source_definition.type)
            return
        if existing is None:
            result.track_created(source_definition.type)
            if mutation.record is not None:
                target_catalog.add(mutation.record)
        else:
            result.track_updated(source_definition.type)

    async def _field_definition_input(
        self, field_definition: FieldDefinition, *, context: SyncLogContext
    ) -> FieldDefinitionInput:
        validations = [
            await self._translate_validation(validation, field_definition.key, context=context)
            for validation in self.policy.build_create_validations(field_definition)
        ]
        return FieldDefinitionInput(
            key=field_definition.key,
            name=field_definition.name,
            type=type_name_of(field_definition),
            required=field_definition.required,
            description=field_definition.description,
            validations=validations,
        )

    async def _translate_validation(
        self, validation: Validation, field_key: str, *, context: SyncLogContext
    ) -> Validation:
        translated = await self._definition_ids.translate(validation, field_key, context=context)
        if translated is None:
            context.error(
                "Keeping source ids in %s validation of field %s", validation.name, field_key
            )
            return validation
        return translated

    # data

    async def _data_phase(
        self,
        tasks: list[SyncTask],
        config: RunConfig,
        result: SyncResult,
        *,
        context: SyncLogContext,
    ) -> None:
        source_catalog, _ = self._catalogs
        resolver = self._reference_resolver
        definitions: list[Definition] = []
        for task in tasks:
            definition = source_catalog.by_type(task.definition_type)
            if definition is None:
                context.warning(
                    "No source definition for type %s, skipping its records", task.definition_type
                )
                continue
            definitions.append(definition)

        referenced = await resolver.discover(definitions, context=context)
        if referenced:
            context.info("Referenced types: %s", ", ".join(sorted(referenced)))
        await resolver.build_indexes(context=context)

        for definition in definitions:
            type_context = context.child(f"type={definition.type}")
            try:
                await self._sync_records(definition, config, result, context=type_context)
            except DataStoreError as exc:
                type_context.error("Error fetching records: %s", exc)
        context.info("Data: %s", result.summary())
        context.info("References: %s", result.reference_summary())

    async def _sync_records(
        self,
        definition: Definition,
        config: RunConfig,
        result: SyncResult,
        *,
        context: SyncLogContext,
    ) -> None:
        def wanted(instance: Instance) -> bool:
            return config.single_handle is None or instance.handle == config.single_handle

        records, rejected = await collect_instances(
            self.source,
            definition.type,
            page_size=self.page_size,
            max_items=config.limit,
            predicate=wanted,
        )
        result.track_skipped(definition.type, rejected)
        context.info("Processing %d record(s)", len(records))
        if not records:
            return

        try:
            index = await self._target_index(definition.type)
        except DataStoreError as exc:
            context.error(
                "Error fetching target records, counting %d record(s) as failed: %s",
                len(records),
                exc,
            )
            result.track_failed(definition.type, len(records))
            return
        required = self.policy.required_fields(definition)
        for record in records:
            record_context = context.child(f"handle={record.handle or '<none>'}")
            await self._sync_record(
                definition, record, index, required, result, context=record_context
            )

    async def _target_index(self, definition_type: str) -> HandleIndex:
        resolver = self._reference_resolver
        index = resolver.cached_index(definition_type)
        if index is not None:
            return index
        instances: list[Instance] = []
        if definition_type in self._catalogs[1]:
            instances, _ = await collect_instances(
                self.target, definition_type, page_size=self.page_size
            )
        index = self.matcher.build_index(instances)
        resolver.adopt_index(definition_type, index)
        return index

    async def _sync_record(
        self,
        definition: Definition,
        record: Instance,
        index: HandleIndex,
        required: dict[str, FieldDefinition],
        result: SyncResult,
        *,
        context: SyncLogContext,
    ) -> None:
        resolver = self._reference_resolver
        instance = record.copy()
        self.policy.fill_required_defaults(instance, required, context=context)
        fields, stats = await resolver.resolve(definition, instance, context=context)
        result.merge_reference_stats(stats)
        inputs = _field_inputs(fields)

        existing = self.matcher.match(instance, index)
        try:
            if existing is None:
                mutation = await self.executor.create_instance(
                    definition.type,
                    inputs,
                    capabilities=dict(instance.capabilities) or None,
                    handle=instance.handle,
                    context=context,
                )
            else:
                mutation = await self.executor.update_instance(existing, inputs, context=context)
        except DataStoreError as exc:
            context.error("Error writing record: %s", exc)
            result.track_failed(definition.type)
            return

        if not mutation.ok:
            report_user_errors(
                context,
                mutation.errors,
                inputs,
                lambda item: (f"Field {item.key}", item.value),
                f"record {instance.handle or 'unknown'}",
            )
            result.track_failed(definition.type)
            return
        if existing is not None:
            result.track_updated(definition.type)
            return
        result.track_created(definition.type)
        if mutation.record is not None and instance.handle:
            resolver.register(mutation.record)

    @property
    def _catalogs(self) -> tuple[DefinitionCatalog, DefinitionCatalog]:
        if self.source_catalog is None or self.target_catalog is None:
            raise RuntimeError("Catalogs are loaded by run()")
        return self.source_catalog, self.target_catalog

    @property
    def _reference_resolver(self) -> ReferenceResolver:
        if self._resolver is None:
            raise RuntimeError("Reference resolver is created by run()")
        return self._resolver

    @property
    def _definition_ids(self) -> DefinitionIdTranslator:
        if self._translator is None:
            raise RuntimeError("Definition id translator is created by run()")
        return self._translator


def _field_inputs(fields: list[Field]) -> list[FieldInput]:
    return [
        FieldInput(key=entry.key, value=entry.value)
        for entry in fields
        if entry.value is not None
    ]

