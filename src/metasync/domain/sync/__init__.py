"""Definition and record synchronisation engine.

A run loads one :class:`DefinitionCatalog` per store, expands the requested
types into :class:`SyncTask` objects and hands them to
:class:`SyncOrchestrator`, which syncs definitions first and records second.
Record fields are completed by :class:`FieldTypePolicy`, rewritten by
:class:`ReferenceResolver`, matched by :class:`EntityMatcher` and written
through an :class:`Executor`.
"""

from __future__ import annotations

from .catalog import DefinitionCatalog
from .errors import report_user_errors, value_preview
from .executor import Executor, LiveExecutor, SimulatingExecutor
from .field_types import FieldTypePolicy, classify_type_name
from .log_context import SyncLogContext, root_context
from .matching import EntityMatcher, HandleIndex
from .metafields import ALL_NAMESPACES, MetafieldDefinitionSync, MetafieldRunConfig, split_key
from .orchestrator import SyncOrchestrator, SyncState
from .paging import collect_instances, iter_instances
from .plan import ALL_TYPES, RunConfig, SetupError, SyncPhase, SyncTask, build_tasks
from .references import ReferenceResolver
from .results import ReferenceStats, SyncCounts, SyncResult, SyncRunResult
from .validations import DefinitionIdTranslator

__all__ = [
    "ALL_NAMESPACES",
    "ALL_TYPES",
    "DefinitionCatalog",
    "DefinitionIdTranslator",
    "EntityMatcher",
    "Executor",
    "FieldTypePolicy",
    "HandleIndex",
    "LiveExecutor",
    "MetafieldDefinitionSync",
    "MetafieldRunConfig",
    "ReferenceResolver",
    "ReferenceStats",
    "RunConfig",
    "SetupError",
    "SimulatingExecutor",
    "SyncCounts",
    "SyncLogContext",
    "SyncOrchestrator",
    "SyncPhase",
    "SyncResult",
    "SyncRunResult",
    "SyncState",
    "SyncTask",
    "build_tasks",
    "classify_type_name",
    "collect_instances",
    "iter_instances",
    "report_user_errors",
    "root_context",
    "split_key",
    "value_preview",
]
