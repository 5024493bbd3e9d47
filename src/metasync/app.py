"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from metasync.adapters.shopify import ShopifyDataStore, ShopifyGraphQLClient
from metasync.config import ProtectedShopError, get_shop_config, get_sync_config
from metasync.domain.sync import (
    ALL_NAMESPACES,
    ALL_TYPES,
    DefinitionCatalog,
    EntityMatcher,
    LiveExecutor,
    MetafieldDefinitionSync,
    MetafieldRunConfig,
    RunConfig,
    SetupError,
    SimulatingExecutor,
    SyncOrchestrator,
    SyncPhase,
    root_context,
    split_key,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from contextlib import AbstractAsyncContextManager

    from metasync.config import ShopConfig, SyncConfig
    from metasync.domain.model import Definition, MetafieldDefinition, MetafieldOwnerType
    from metasync.domain.ports import DataStore
    from metasync.domain.sync import Executor, SyncResult, SyncRunResult

type StoreFactory = Callable[[ShopConfig, int], AbstractAsyncContextManager[DataStore]]
type ShopConfigLoader = Callable[[str], ShopConfig]

log = getLogger(__name__)


def build_shopify_store(config: ShopConfig, page_size: int) -> ShopifyDataStore:
    return ShopifyDataStore(ShopifyGraphQLClient(config), page_size=page_size)


def sync_metaobjects(
    *,
    source_shop: str,
    target_shop: str,
    types: Sequence[str] | str,
    phase: SyncPhase = SyncPhase.SYNC,
    live: bool = False,
    limit: int | None = None,
    single_handle: str | None = None,
    sync_config: SyncConfig | None = None,
    shop_config_loader: ShopConfigLoader = get_shop_config,
    store_factory: StoreFactory = build_shopify_store,
) -> SyncRunResult:
    """Synchronise metaobject definitions and/or metaobjects between two shops."""

    settings = sync_config or get_sync_config()
    source_config, target_config = _load_shops(
        source_shop, target_shop, live=live, shop_config_loader=shop_config_loader
    )

    run_config = RunConfig(
        types=_requested_types(types),
        phase=phase,
        live=live,
        limit=settings.limit if limit is None else limit,
        single_handle=single_handle,
    )
    run_config.validate()

    log.info(
        "Starting %s: source=%s target=%s dry_run=%s limit=%s%s",
        phase,
        source_config.domain,
        target_config.domain,
        "no" if live else "yes",
        run_config.limit if run_config.limit is not None else "none",
        f" handle={single_handle}" if single_handle else "",
    )
    result = asyncio.run(
        _run_sync(
            source_config,
            target_config,
            run_config,
            settings=settings,
            store_factory=store_factory,
        )
    )
    _log_summary(result, run_config)
    return result


def _load_shops(
    source_shop: str, target_shop: str, *, live: bool, shop_config_loader: ShopConfigLoader
) -> tuple[ShopConfig, ShopConfig]:
    if source_shop.strip().lower() == target_shop.strip().lower():
        raise SetupError("Source and target shop must differ")
    source_config = shop_config_loader(source_shop)
    target_config = shop_config_loader(target_shop)
    if live and target_config.protected:
        raise ProtectedShopError(
            f"Shop {target_config.name} is protected; refusing a live run against it"
        )
    return source_config, target_config


def _requested_types(types: Sequence[str] | str) -> tuple[str, ...] | Literal["all"]:
    """A bare string names one type unless it is ``"all"``."""

    if isinstance(types, str):
        if types.strip().lower() == ALL_TYPES:
            return ALL_TYPES
        return (types,)
    return tuple(types)


async def _run_sync(
    source_config: ShopConfig,
    target_config: ShopConfig,
    run_config: RunConfig,
    *,
    settings: SyncConfig,
    store_factory: StoreFactory,
) -> SyncRunResult:
    async with AsyncExitStack() as stack:
        source = await stack.enter_async_context(store_factory(source_config, settings.page_size))
        target = await stack.enter_async_context(store_factory(target_config, settings.page_size))
        executor: Executor = LiveExecutor(target) if run_config.live else SimulatingExecutor()
        orchestrator = SyncOrchestrator(
            source=source,
            target=target,
            executor=executor,
            matcher=EntityMatcher(normalize=settings.normalize_handles),
            page_size=settings.page_size,
        )
        return await orchestrator.run(run_config, context=root_context("metasync.sync"))


def _log_summary(result: SyncRunResult, run_config: RunConfig) -> None:
    if run_config.includes_definitions:
        log.info("Definitions: %s", result.definitions.summary())
    if run_config.includes_data:
        log.info("Data: %s", result.data.summary())
        log.info("References: %s", result.data.reference_summary())
    if not run_config.live:
        log.info("Dry run: nothing was written; pass --live to apply")


def list_definition_types(
    *,
    shop: str,
    sync_config: SyncConfig | None = None,
    shop_config_loader: ShopConfigLoader = get_shop_config,
    store_factory: StoreFactory = build_shopify_store,
) -> list[Definition]:
    """Return every definition of ``shop``, sorted by type."""

    settings = sync_config or get_sync_config()
    config = shop_config_loader(shop)
    return asyncio.run(_list_definitions(config, settings.page_size, store_factory))


async def _list_definitions(
    config: ShopConfig, page_size: int, store_factory: StoreFactory
) -> list[Definition]:
    async with store_factory(config, page_size) as store:
        catalog = await DefinitionCatalog.load(store)
    return sorted(catalog, key=lambda definition: definition.type)


def sync_metafield_definitions(
    *,
    source_shop: str,
    target_shop: str,
    owner_type: MetafieldOwnerType,
    namespaces: Sequence[str] | str | None = None,
    key: str | None = None,
    live: bool = False,
    limit: int | None = None,
    sync_config: SyncConfig | None = None,
    shop_config_loader: ShopConfigLoader = get_shop_config,
    store_factory: StoreFactory = build_shopify_store,
) -> SyncResult:
    """Copy the metafield definitions of one owner type between two shops.

    Without ``namespaces`` the namespace is taken from a ``namespace.key``
    style ``key``; ``"all"`` covers every namespace present in the source.
    """

    settings = sync_config or get_sync_config()
    source_config, target_config = _load_shops(
        source_shop, target_shop, live=live, shop_config_loader=shop_config_loader
    )
    run_config = MetafieldRunConfig(
        owner_type=owner_type,
        namespaces=_requested_namespaces(namespaces, key),
        key=key,
        live=live,
        limit=settings.limit if limit is None else limit,
    )
    run_config.validate()

    log.info(
        "Starting metafield definition sync: owner=%s source=%s target=%s dry_run=%s limit=%s",
        owner_type,
        source_config.domain,
        target_config.domain,
        "no" if live else "yes",
        run_config.limit if run_config.limit is not None else "none",
    )
    result = asyncio.run(
        _run_metafield_sync(
            source_config,
            target_config,
            run_config,
            page_size=settings.page_size,
            store_factory=store_factory,
        )
    )
    log.info("Metafield definitions: %s", result.summary())
    if not live:
        log.info("Dry run: nothing was written; pass --live to apply")
    return result


def _requested_namespaces(
    namespaces: Sequence[str] | str | None, key: str | None
) -> tuple[str, ...] | Literal["all"]:
    if namespaces is None:
        namespace = split_key(key)[0] if key else None
        if namespace is None:
            raise SetupError("Pass a namespace, or a key in namespace.key form")
        return (namespace,)
    if isinstance(namespaces, str):
        namespaces = (namespaces,)
    if any(namespace.strip().lower() == ALL_NAMESPACES for namespace in namespaces):
        return ALL_NAMESPACES
    return tuple(namespaces)


async def _run_metafield_sync(
    source_config: ShopConfig,
    target_config: ShopConfig,
    run_config: MetafieldRunConfig,
    *,
    page_size: int,
    store_factory: StoreFactory,
) -> SyncResult:
    async with AsyncExitStack() as stack:
        source = await stack.enter_async_context(store_factory(source_config, page_size))
        target = await stack.enter_async_context(store_factory(target_config, page_size))
        executor: Executor = LiveExecutor(target) if run_config.live else SimulatingExecutor()
        engine = MetafieldDefinitionSync(source=source, target=target, executor=executor)
        return await engine.run(run_config, context=root_context("metasync.metafields"))


def list_metafield_definitions(
    *,
    shop: str,
    owner_type: MetafieldOwnerType,
    sync_config: SyncConfig | None = None,
    shop_config_loader: ShopConfigLoader = get_shop_config,
    store_factory: StoreFactory = build_shopify_store,
) -> list[MetafieldDefinition]:
    """Return the metafield definitions of one owner type, sorted by namespace and key."""

    settings = sync_config or get_sync_config()
    config = shop_config_loader(shop)
    return asyncio.run(
        _list_metafield_definitions(config, owner_type, settings.page_size, store_factory)
    )


async def _list_metafield_definitions(
    config: ShopConfig, owner_type: MetafieldOwnerType, page_size: int, store_factory: StoreFactory
) -> list[MetafieldDefinition]:
    async with store_factory(config, page_size) as store:
        definitions = await store.fetch_metafield_definitions(owner_type)
    return sorted(definitions, key=lambda definition: (definition.namespace, definition.key))
