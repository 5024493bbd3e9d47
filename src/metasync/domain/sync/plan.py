"""Run configuration and its expansion into per-type sync tasks."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from .catalog import DefinitionCatalog

ALL_TYPES: Literal["all"] = "all"


class SetupError(ValueError):
    """The run cannot start; raised before any mutation is attempted."""


class SyncPhase(StrEnum):
    DEFINITIONS = "definitions"
    DATA = "data"
    SYNC = "sync"


@dataclass(slots=True, frozen=True)
class RunConfig:
    """What one invocation should do.

    ``limit`` bounds the items processed per type per phase (``None`` means
    unbounded); it is independent of the page size used to fetch records.
    """

    types: tuple[str, ...] | Literal["all"]
    phase: SyncPhase = SyncPhase.SYNC
    live: bool = False
    limit: int | None = 3
    single_handle: str | None = None

    @property
    def includes_definitions(self) -> bool:
        return self.phase in {SyncPhase.DEFINITIONS, SyncPhase.SYNC}

    @property
    def includes_data(self) -> bool:
        return self.phase in {SyncPhase.DATA, SyncPhase.SYNC}

    def validate(self) -> None:
        if self.types != ALL_TYPES:
            if not self.types:
                raise SetupError("No definition types requested")
            if any(not definition_type.strip() for definition_type in self.types):
                raise SetupError("Definition types must not be blank")
        if self.limit is not None and self.limit < 0:
            raise SetupError(f"Limit must not be negative, got {self.limit}")
        if self.single_handle is not None and not self.single_handle.strip():
            raise SetupError("Handle filter must not be blank")


@dataclass(slots=True, frozen=True)
class SyncTask:
    definition_type: str


def build_tasks(config: RunConfig, source_catalog: DefinitionCatalog) -> list[SyncTask]:
    """Expand the requested types into one task per type, in a stable order.

    ``"all"`` becomes every type the source catalog knows about. Explicit types
    keep the requested order; duplicates are dropped.
    """

    if config.types == ALL_TYPES:
        requested = sorted(source_catalog.types)
    else:
        requested = [definition_type.strip() for definition_type in config.types]
    seen: set[str] = set()
    tasks: list[SyncTask] = []
    for definition_type in requested:
        if definition_type in seen:
            continue
        seen.add(definition_type)
        tasks.append(SyncTask(definition_type=definition_type))
    return tasks
