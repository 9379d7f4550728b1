"""Bidirectional challenge <-> logbook links.

Only ``items`` and ``equipment`` entries take part: a challenge is linked to an
entry when one of its ``Items.*`` / ``Equipment.*`` unlocks is that entry's
canonical id. Monsters, stages, survivors and drones are never linked.
"""

from __future__ import annotations

import logging
from collections.abc import Set as AbstractSet
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

from unlocksync.core.catalog import (
    Catalog,
    CatalogRepository,
    Challenge,
    LogbookCategory,
    LogbookEntry,
)

logger = logging.getLogger(__name__)

LINKED_PREFIXES = ("Items.", "Equipment.")
LINKED_CATEGORIES = (LogbookCategory.ITEMS, LogbookCategory.EQUIPMENT)


@dataclass(frozen=True)
class UnmappedUnlock:
    challenge: Challenge
    unlock_id: str


@dataclass(frozen=True)
class MappingStats:
    total_challenges: int
    challenges_with_logbook: int
    total_logbook_entries: int
    logbook_with_challenges: int
    items_mapped: int
    equipment_mapped: int


class ReferenceGraph:
    """Read-only link indices, built once from a catalog."""

    def __init__(self, catalog: Catalog) -> None:
        self._catalog = catalog
        self._entries_by_challenge: Dict[str, Tuple[LogbookEntry, ...]] = {}
        self._challenges_by_entry: Dict[str, Tuple[Challenge, ...]] = {}
        self._entry_by_unlock_id: Dict[str, LogbookEntry] = {}
        self._entry_by_pickup_id: Dict[str, LogbookEntry] = {}
        self._challenges_by_unlock_id: Dict[str, Tuple[Challenge, ...]] = {}
        self._build()

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    def _build(self) -> None:
        for entry in self._catalog.entries:
            if entry.category in LINKED_CATEGORIES:
                self._entry_by_unlock_id[entry.unlock_id] = entry
                if entry.pickup_id:
                    self._entry_by_pickup_id[entry.pickup_id] = entry

        by_entry: Dict[str, List[Challenge]] = {}
        by_unlock: Dict[str, List[Challenge]] = {}
        for challenge in self._catalog.challenges:
            linked: List[LogbookEntry] = []
            for unlock in challenge.unlocks:
                if not unlock.startswith(LINKED_PREFIXES):
                    continue
                entry = self._entry_by_unlock_id.get(unlock)
                if entry is None:
                    continue
                linked.append(entry)
                by_entry.setdefault(entry.id, []).append(challenge)
                by_unlock.setdefault(unlock, []).append(challenge)
            if linked:
                self._entries_by_challenge[challenge.id] = tuple(linked)

        self._challenges_by_entry = {k: tuple(v) for k, v in by_entry.items()}
        self._challenges_by_unlock_id = {k: tuple(v) for k, v in by_unlock.items()}
        logger.debug(
            "Reference graph: %d linked challenges, %d linked entries",
            len(self._entries_by_challenge),
            len(self._challenges_by_entry),
        )

    def entries_for_challenge(self, challenge_id: str) -> Tuple[LogbookEntry, ...]:
        return self._entries_by_challenge.get(challenge_id, ())

    def challenges_for_entry(self, entry_id: str) -> Tuple[Challenge, ...]:
        return self._challenges_by_entry.get(entry_id, ())

    def entry_by_canonical_id(self, unlock_id: str) -> Optional[LogbookEntry]:
        return self._entry_by_unlock_id.get(unlock_id)

    def entry_by_pickup_id(self, pickup_id: str) -> Optional[LogbookEntry]:
        return self._entry_by_pickup_id.get(pickup_id)

    def challenges_for_unlock_id(self, unlock_id: str) -> Tuple[Challenge, ...]:
        return self._challenges_by_unlock_id.get(unlock_id, ())

    def has_logbook_connection(self, challenge: Challenge) -> bool:
        return challenge.id in self._entries_by_challenge

    def has_challenge_connection(self, entry: LogbookEntry) -> bool:
        return entry.id in self._challenges_by_entry

    def is_provided_by_other_challenge(
        self,
        entry: LogbookEntry,
        excluded_achievement: str,
        achievements: AbstractSet[str],
    ) -> bool:
        """True when a held achievement other than ``excluded_achievement`` also links to ``entry``."""
        return any(
            challenge.achievement != excluded_achievement and challenge.achievement in achievements
            for challenge in self.challenges_for_entry(entry.id)
        )

    def should_disable_challenge(
        self,
        challenge: Challenge,
        entry: LogbookEntry,
        viewed_viewables: AbstractSet[str],
    ) -> bool:
        """Whether disabling ``entry`` takes ``challenge`` down with it.

        A challenge linked to a single entry always goes. Otherwise it stays as
        long as another of its entries is still viewed.
        """
        linked = self.entries_for_challenge(challenge.id)
        if len(linked) == 1:
            return True
        return not any(
            other.id != entry.id and other.unlock_id in viewed_viewables for other in linked
        )

    def find_unmapped_challenge_unlocks(self) -> List[UnmappedUnlock]:
        """Item/equipment unlocks with no logbook entry, e.g. after a catalog update."""
        return [
            UnmappedUnlock(challenge=challenge, unlock_id=unlock)
            for challenge in self._catalog.challenges
            for unlock in challenge.unlocks
            if unlock.startswith(LINKED_PREFIXES) and unlock not in self._entry_by_unlock_id
        ]

    def mapping_stats(self) -> MappingStats:
        mapped = list(self._entry_by_unlock_id.values())
        return MappingStats(
            total_challenges=len(self._catalog.challenges),
            challenges_with_logbook=len(self._entries_by_challenge),
            total_logbook_entries=len(self._catalog.entries),
            logbook_with_challenges=len(self._challenges_by_entry),
            items_mapped=sum(1 for e in mapped if e.category == LogbookCategory.ITEMS),
            equipment_mapped=sum(1 for e in mapped if e.category == LogbookCategory.EQUIPMENT),
        )


@lru_cache(maxsize=1)
def default_graph() -> ReferenceGraph:
    """Graph over the bundled catalog, built once per process."""
    return ReferenceGraph(CatalogRepository().catalog)
