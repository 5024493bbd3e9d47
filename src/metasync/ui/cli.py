from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Literal

from dotenv import load_dotenv

from metasync.app import (
    list_definition_types,
    list_metafield_definitions,
    sync_metafield_definitions,
    sync_metaobjects,
)
from metasync.config import ConfigurationError, SyncConfig, configure_logging, get_sync_config
from metasync.domain.model import MetafieldOwnerType
from metasync.domain.sync import ALL_NAMESPACES, ALL_TYPES, SyncPhase, split_key

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from metasync.domain.sync import SyncResult, SyncRunResult

log = logging.getLogger(__name__)


def _add_run_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--source", required=True, help="Name of the shop to read from")
    parser.add_argument("--target", required=True, help="Name of the shop to write to")
    parser.add_argument(
        "--live",
        action="store_true",
        help="Apply changes to the target shop (default is a dry run)",
    )
    limits = parser.add_mutually_exclusive_group()
    limits.add_argument(
        "--limit",
        type=int,
        help="Maximum number of items to process per type and phase (defaults to config)",
    )
    limits.add_argument(
        "--no-limit",
        action="store_true",
        help="Process every item",
    )


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    _add_run_arguments(parser)
    parser.add_argument(
        "--type",
        dest="types",
        action="append",
        metavar="TYPE",
        help=(
            f"Definition type to sync; repeat for several, or pass '{ALL_TYPES}'. "
            "Without it the source definitions are listed"
        ),
    )
    parser.add_argument("--handle", help="Only sync the record with this handle")


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Synchronise metaobjects between Shopify shops")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    definitions = subparsers.add_parser(
        SyncPhase.DEFINITIONS.value, help="Sync metaobject definitions only"
    )
    _add_common_arguments(definitions)
    data = subparsers.add_parser(SyncPhase.DATA.value, help="Sync metaobjects only")
    _add_common_arguments(data)
    sync = subparsers.add_parser(
        SyncPhase.SYNC.value, help="Sync definitions, then their metaobjects"
    )
    _add_common_arguments(sync)

    metafields = subparsers.add_parser(
        "metafields", help="Sync metafield definitions of one owner type"
    )
    _add_run_arguments(metafields)
    metafields.add_argument(
        "--owner",
        required=True,
        choices=[owner.value.lower() for owner in MetafieldOwnerType],
        help="Resource kind the metafields belong to",
    )
    metafields.add_argument(
        "--namespace",
        dest="namespaces",
        action="append",
        metavar="NAMESPACE",
        help=(
            f"Namespace to sync; repeat for several, or pass '{ALL_NAMESPACES}'. "
            "Without it (or a namespaced --key) the source definitions are listed"
        ),
    )
    metafields.add_argument("--key", help="Only sync this key, as 'key' or 'namespace.key'")

    listing = subparsers.add_parser("list", help="List the metaobject definitions of a shop")
    listing.add_argument("--shop", required=True, help="Name of the shop to inspect")

    args = parser.parse_args(list(argv))
    if getattr(args, "limit", None) is not None and args.limit < 0:
        raise ValueError("Limit must be non-negative")
    return args


def _requested_types(values: list[str] | None) -> tuple[str, ...] | Literal["all"] | None:
    if not values:
        return None
    if any(value.strip().lower() == ALL_TYPES for value in values):
        return ALL_TYPES
    return tuple(value.strip() for value in values)


def _list_definitions(shop: str) -> None:
    definitions = list_definition_types(shop=shop)
    if not definitions:
        log.info("No metaobject definitions found in %s", shop)
        return
    log.info("Metaobject definitions in %s:", shop)
    for definition in definitions:
        log.info("  %s (%s)", definition.type, definition.name or "unnamed")


def _run_phase(args: argparse.Namespace) -> SyncRunResult | None:
    types = _requested_types(args.types)
    if types is None:
        log.info("No --type given; listing definitions of %s", args.source)
        _list_definitions(args.source)
        return None
    limit: int | None = args.limit
    return sync_metaobjects(
        source_shop=args.source,
        target_shop=args.target,
        types=types,
        phase=SyncPhase(args.command),
        live=args.live,
        limit=limit,
        single_handle=args.handle,
        sync_config=_sync_config(no_limit=args.no_limit),
    )


def _list_metafield_definitions(shop: str, owner_type: MetafieldOwnerType) -> None:
    definitions = list_metafield_definitions(shop=shop, owner_type=owner_type)
    if not definitions:
        log.info("No %s metafield definitions found in %s", owner_type, shop)
        return
    log.info("%s metafield definitions in %s:", owner_type, shop)
    namespace: str | None = None
    for definition in definitions:
        if definition.namespace != namespace:
            namespace = definition.namespace
            log.info("  %s:", namespace)
        log.info(
            "    %s (%s): %s",
            definition.key,
            definition.name or "unnamed",
            definition.type.name,
        )


def _run_metafields(args: argparse.Namespace) -> SyncResult | None:
    owner_type = MetafieldOwnerType(args.owner.upper())
    namespaces: list[str] | None = args.namespaces
    key: str | None = args.key
    if not namespaces and (key is None or split_key(key)[0] is None):
        log.info("No --namespace given; listing %s metafield definitions", owner_type)
        _list_metafield_definitions(args.source, owner_type)
        return None
    return sync_metafield_definitions(
        source_shop=args.source,
        target_shop=args.target,
        owner_type=owner_type,
        namespaces=namespaces or None,
        key=key,
        live=args.live,
        limit=args.limit,
        sync_config=_sync_config(no_limit=args.no_limit),
    )


def _sync_config(*, no_limit: bool) -> SyncConfig:
    config = get_sync_config()
    return replace(config, limit=None) if no_limit else config


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    configure_logging(level=logging.DEBUG if "--debug" in args_list else logging.INFO)
    parsed_args: argparse.Namespace
    try:
        parsed_args = _parse_args(args_list)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "list":
            _list_definitions(parsed_args.shop)
        elif parsed_args.command in {phase.value for phase in SyncPhase}:
            result = _run_phase(parsed_args)
            if result is not None and (result.definitions.failed or result.data.failed):
                log.warning("Finished with failures")
        elif parsed_args.command == "metafields":
            metafield_result = _run_metafields(parsed_args)
            if metafield_result is not None and metafield_result.failed:
                log.warning("Finished with failures")
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except (ValueError, ConfigurationError):
        log.exception("Invalid configuration")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during sync")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
