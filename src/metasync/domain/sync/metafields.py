"""Metafield definition sync, per owner type and namespace.

Metafield definitions describe the custom fields attached to products,
variants, collections, customers, companies and orders. They are synced as
definitions only; the metafield values live on the owning resources, which
this package does not copy.

Definitions are matched across stores by ``namespace.key``. Reference
validations that point at metaobject definitions are rewritten with the same
:class:`DefinitionIdTranslator` the metaobject definition phase uses; a
definition whose reference cannot be mapped is counted as failed and not
written.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from metasync.domain.model import MetafieldDefinitionInput
from metasync.domain.ports import DataStoreError

from .catalog import DefinitionCatalog
from .errors import report_user_errors
from .field_types import DEFINITION_ID_VALIDATION, DEFINITION_IDS_VALIDATION
from .log_context import SyncLogContext
from .plan import SetupError
from .results import SyncResult
from .validations import DefinitionIdTranslator

if TYPE_CHECKING:
    from metasync.domain.model import (
        MetafieldDefinition,
        MetafieldOwnerType,
        MutationResult,
        Validation,
    )
    from metasync.domain.ports import DataStore

    from .executor import Executor

log = getLogger(__name__)

ALL_NAMESPACES: Literal["all"] = "all"
PINNED_LIMIT_REACHED = "PINNED_LIMIT_REACHED"
_REFERENCE_VALIDATIONS = frozenset({DEFINITION_ID_VALIDATION, DEFINITION_IDS_VALIDATION})


def split_key(key: str, namespace: str | None = None) -> tuple[str | None, str]:
    """Split ``namespace.key`` into its parts.

    An explicit ``namespace`` wins over the prefix of ``key``; a key without a
    dot keeps ``namespace`` as given.
    """

    prefix, dot, rest = key.strip().partition(".")
    if not dot:
        return namespace, prefix
    return namespace or prefix, rest


@dataclass(slots=True, frozen=True)
class MetafieldRunConfig:
    """One metafield definition sync: an owner type and the namespaces to copy.

    ``limit`` bounds the definitions processed per namespace.
    """

    owner_type: MetafieldOwnerType
    namespaces: tuple[str, ...] | Literal["all"]
    key: str | None = None
    live: bool = False
    limit: int | None = 3

    def validate(self) -> None:
        if self.namespaces != ALL_NAMESPACES:
            if not self.namespaces:
                raise SetupError("No metafield namespaces requested")
            if any(not namespace.strip() for namespace in self.namespaces):
                raise SetupError("Metafield namespaces must not be blank")
        if self.key is not None and not split_key(self.key)[1]:
            raise SetupError("Metafield key must not be blank")
        if self.limit is not None and self.limit < 0:
            raise SetupError(f"Limit must not be negative, got {self.limit}")


@dataclass(slots=True)
class MetafieldDefinitionSync:
    """Create or update the metafield definitions of one owner type in ``target``."""

    source: DataStore
    target: DataStore
    executor: Executor
    _translator: DefinitionIdTranslator | None = field(default=None, init=False, repr=False)

    async def run(
        self, config: MetafieldRunConfig, *, context: SyncLogContext | None = None
    ) -> SyncResult:
        root = (context or SyncLogContext(log)).child(f"metafields={config.owner_type}")
        config.validate()
        result = SyncResult()
        for namespace in await self._namespaces(config, context=root):
            await self._sync_namespace(
                namespace, config, result, context=root.child(f"namespace={namespace}")
            )
        root.info("Metafield definitions: %s", result.summary())
        return result

    async def _namespaces(
        self, config: MetafieldRunConfig, *, context: SyncLogContext
    ) -> list[str]:
        if config.namespaces != ALL_NAMESPACES:
            return list(dict.fromkeys(namespace.strip() for namespace in config.namespaces))
        definitions = await self._fetch(self.source, config.owner_type, context=context)
        namespaces = list(dict.fromkeys(definition.namespace for definition in definitions))
        if namespaces:
            context.info("Found %d namespace(s): %s", len(namespaces), ", ".join(namespaces))
        else:
            context.warning("No %s metafield definitions in source", config.owner_type)
        return namespaces

    async def _sync_namespace(
        self,
        namespace: str,
        config: MetafieldRunConfig,
        result: SyncResult,
        *,
        context: SyncLogContext,
    ) -> None:
        key: str | None = None
        if config.key is not None:
            _, key = split_key(config.key, namespace)
        sources = await self._fetch(
            self.source, config.owner_type, namespace=namespace, key=key, context=context
        )
        if not sources:
            context.warning("No definitions found in source%s", f" for key {key}" if key else "")
            return
        context.info("Found %d definition(s) in source", len(sources))
        for definition in sources:
            context.info(
                "  %s (%s): %s",
                definition.full_key,
                definition.name or "unnamed",
                definition.type.name,
            )
            for validation in definition.validations:
                context.debug("    Validation: %s = %s", validation.name, validation.value)

        targets = await self._fetch(
            self.target, config.owner_type, namespace=namespace, context=context
        )
        context.info("Found %d definition(s) in target", len(targets))
        existing_by_key = {definition.full_key: definition for definition in targets}

        processed = 0
        for position, definition in enumerate(sources):
            if config.limit is not None and processed >= config.limit:
                remaining = sources[position:]
                context.info(
                    "Reached limit of %d definition(s), skipping %d remaining",
                    config.limit,
                    len(remaining),
                )
                for skipped in remaining:
                    result.track_skipped(skipped.full_key)
                break
            processed += 1
            key_context = context.child(f"key={definition.full_key}")
            try:
                await self._sync_definition(
                    definition,
                    existing_by_key.get(definition.full_key),
                    result,
                    context=key_context,
                )
            except DataStoreError as exc:
                key_context.error("Error syncing metafield definition: %s", exc)
                result.track_failed(definition.full_key)

    async def _sync_definition(
        self,
        definition: MetafieldDefinition,
        existing: MetafieldDefinition | None,
        result: SyncResult,
        *,
        context: SyncLogContext,
    ) -> None:
        validations = await self._translated_validations(definition, context=context)
        if validations is None:
            context.error(
                "Skipping %s: a referenced definition cannot be mapped", definition.full_key
            )
            result.track_failed(definition.full_key)
            return
        payload = MetafieldDefinitionInput(
            owner_type=definition.owner_type,
            namespace=definition.namespace,
            key=definition.key,
            name=definition.name,
            type=definition.type.name,
            description=definition.description,
            validations=validations,
            pin=definition.pinned,
        )

        if existing is None:
            mutation = await self._create(payload, context=context)
        else:
            mutation = await self.executor.update_metafield_definition(
                existing, payload, context=context
            )

        if not mutation.ok:
            report_user_errors(
                context,
                mutation.errors,
                payload.validations,
                lambda item: (f"Validation {item.name}", item.value),
                f"metafield definition {definition.full_key}",
            )
            result.track_failed(definition.full_key)
        elif existing is None:
            result.track_created(definition.full_key)
        else:
            result.track_updated(definition.full_key)

    async def _create(
        self, payload: MetafieldDefinitionInput, *, context: SyncLogContext
    ) -> MutationResult[MetafieldDefinition]:
        mutation = await self.executor.create_metafield_definition(payload, context=context)
        pinned_limit = any(error.code == PINNED_LIMIT_REACHED for error in mutation.errors)
        if mutation.ok or not (pinned_limit and payload.pin):
            return mutation
        context.warning("Pinned limit reached for %s, retrying unpinned", payload.full_key)
        return await self.executor.create_metafield_definition(
            replace(payload, pin=False), context=context
        )

    async def _translated_validations(
        self, definition: MetafieldDefinition, *, context: SyncLogContext
    ) -> list[Validation] | None:
        if not any(
            validation.name in _REFERENCE_VALIDATIONS and validation.value
            for validation in definition.validations
        ):
            return list(definition.validations)
        translator = await self._definition_ids()
        translated: list[Validation] = []
        for validation in definition.validations:
            mapped = await translator.translate(validation, definition.full_key, context=context)
            if mapped is None:
                return None
            translated.append(mapped)
        return translated

    async def _definition_ids(self) -> DefinitionIdTranslator:
        if self._translator is None:
            self._translator = DefinitionIdTranslator(
                await DefinitionCatalog.load(self.source),
                await DefinitionCatalog.load(self.target),
            )
        return self._translator

    @staticmethod
    async def _fetch(
        store: DataStore,
        owner_type: MetafieldOwnerType,
        *,
        namespace: str | None = None,
        key: str | None = None,
        context: SyncLogContext,
    ) -> list[MetafieldDefinition]:
        try:
            return await store.fetch_metafield_definitions(
                owner_type, namespace=namespace, key=key
            )
        except DataStoreError as exc:
            context.error("Error fetching metafield definitions from %s: %s", store.name, exc)
            return []
