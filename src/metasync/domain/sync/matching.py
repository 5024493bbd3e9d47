"""Handle-based matching of source instances against a target collection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from metasync.domain.model import Instance

type HandleIndex = dict[str, Instance]


@dataclass(slots=True, frozen=True)
class EntityMatcher:
    """Match instances by handle.

    With ``normalize`` set, handles are trimmed and lower-cased on both sides
    before indexing and lookup.
    """

    normalize: bool = False

    def key_for(self, handle: str | None) -> str | None:
        if handle is None:
            return None
        key = handle.strip().lower() if self.normalize else handle
        return key or None

    def build_index(self, instances: Iterable[Instance]) -> HandleIndex:
        index: HandleIndex = {}
        for instance in instances:
            key = self.key_for(instance.handle)
            if key is None:
                continue
            # last write wins; the platform enforces handle uniqueness
            index[key] = instance
        return index

    def match(self, source: Instance, index: HandleIndex) -> Instance | None:
        key = self.key_for(source.handle)
        if key is None:
            return None
        return index.get(key)

    def add(self, index: HandleIndex, instance: Instance) -> None:
        key = self.key_for(instance.handle)
        if key is not None:
            index[key] = instance
