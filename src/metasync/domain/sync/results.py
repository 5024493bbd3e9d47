"""Counters aggregated across a sync run."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class ReferenceStats:
    """Outcome of reference translation, summed over every processed record."""

    processed: int = 0
    transformed: int = 0
    blanked: int = 0
    warnings: int = 0
    errors: int = 0
    unsupported_types: set[str] = field(default_factory=set[str])

    def merge(self, other: ReferenceStats) -> None:
        self.processed += other.processed
        self.transformed += other.transformed
        self.blanked += other.blanked
        self.warnings += other.warnings
        self.errors += other.errors
        self.unsupported_types.update(other.unsupported_types)


@dataclass(slots=True)
class SyncCounts:
    created: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0


@dataclass(slots=True)
class SyncResult:
    """Created/updated/skipped/failed totals plus a per-type breakdown."""

    created: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    reference_stats: ReferenceStats = field(default_factory=ReferenceStats)
    by_type: dict[str, SyncCounts] = field(default_factory=dict[str, SyncCounts])

    def for_type(self, definition_type: str) -> SyncCounts:
        counts = self.by_type.get(definition_type)
        if counts is None:
            counts = SyncCounts()
            self.by_type[definition_type] = counts
        return counts

    def track_created(self, definition_type: str) -> None:
        self.created += 1
        self.for_type(definition_type).created += 1

    def track_updated(self, definition_type: str) -> None:
        self.updated += 1
        self.for_type(definition_type).updated += 1

    def track_failed(self, definition_type: str, count: int = 1) -> None:
        if count <= 0:
            return
        self.failed += count
        self.for_type(definition_type).failed += count

    def track_skipped(self, definition_type: str, count: int = 1) -> None:
        if count <= 0:
            return
        self.skipped += count
        self.for_type(definition_type).skipped += count

    def merge_reference_stats(self, stats: ReferenceStats) -> None:
        self.reference_stats.merge(stats)

    def summary(self) -> str:
        return (
            f"{self.created} created, {self.updated} updated, "
            f"{self.skipped} skipped, {self.failed} failed"
        )

    def reference_summary(self) -> str:
        stats = self.reference_stats
        text = (
            f"{stats.processed} processed, {stats.transformed} transformed, "
            f"{stats.blanked} blanked, {stats.warnings} warnings, {stats.errors} errors"
        )
        if stats.unsupported_types:
            text += f", unsupported types: {', '.join(sorted(stats.unsupported_types))}"
        return text


@dataclass(slots=True)
class SyncRunResult:
    """Results of both phases of one invocation."""

    definitions: SyncResult = field(default_factory=SyncResult)
    data: SyncResult = field(default_factory=SyncResult)
    definition_types: list[str] = field(default_factory=list[str])
