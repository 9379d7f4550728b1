"""Unlock-state synchronization.

Every operation takes an :class:`UnlockState` and returns the next one. Work is
done on a single :class:`StateDraft` per call, so callers never observe a
half-applied change, and unknown ids degrade to no-ops instead of errors.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Dict, FrozenSet, Iterable, List, Optional, Union

from unlocksync.core.catalog import Catalog, Challenge, Dlc, LogbookEntry
from unlocksync.core.graph import ReferenceGraph, default_graph
from unlocksync.core.naming import IdentifierResolver
from unlocksync.core.state import StateDraft, UnlockState, is_unlocked
from unlocksync.core.stats import apply_stat_projection, strip_counter_families
from unlocksync.core.survivors import SurvivorAchievementResolver

logger = logging.getLogger(__name__)

DlcFilter = Optional[Iterable[Union[Dlc, str]]]


def normalize_dlcs(allowed_dlcs: DlcFilter) -> Optional[FrozenSet[Dlc]]:
    """``None`` means no filter. Unknown DLC names are ignored."""
    if allowed_dlcs is None:
        return None
    allowed = set()
    for value in allowed_dlcs:
        try:
            allowed.add(Dlc(value))
        except ValueError:
            logger.debug("Ignoring unknown DLC %r in filter", value)
    return frozenset(allowed)


def dlc_allowed(dlc: Dlc, allowed_dlcs: Optional[FrozenSet[Dlc]]) -> bool:
    return allowed_dlcs is None or dlc == Dlc.BASE or dlc in allowed_dlcs


class SyncEngine:
    """Keeps achievements, unlocks, viewed entries, pickups and counters consistent."""

    def __init__(
        self,
        catalog: Catalog,
        graph: Optional[ReferenceGraph] = None,
        resolver: Optional[IdentifierResolver] = None,
        survivor_resolver: Optional[SurvivorAchievementResolver] = None,
    ) -> None:
        self._catalog = catalog
        self._graph = graph if graph is not None else ReferenceGraph(catalog)
        self._resolver = resolver if resolver is not None else IdentifierResolver()
        self._survivors = (
            survivor_resolver
            if survivor_resolver is not None
            else SurvivorAchievementResolver(catalog, self._resolver.tables)
        )

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    @property
    def graph(self) -> ReferenceGraph:
        return self._graph

    @property
    def resolver(self) -> IdentifierResolver:
        return self._resolver

    @property
    def survivors(self) -> SurvivorAchievementResolver:
        return self._survivors

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_achievement_unlocked(self, state: UnlockState, achievement_id: str) -> bool:
        return state.has_achievement(achievement_id)

    def is_entry_unlocked(self, state: UnlockState, entry: LogbookEntry) -> bool:
        return is_unlocked(state, entry, self._resolver)

    # ------------------------------------------------------------------
    # Single toggles
    # ------------------------------------------------------------------

    def toggle_achievement(self, state: UnlockState, achievement_id: str, enable: bool) -> UnlockState:
        draft = state.draft()
        challenge = self._catalog.challenge_by_achievement(achievement_id)
        if challenge is None:
            logger.debug("Unknown achievement %s, nothing to toggle", achievement_id)
            return draft.freeze()

        if enable:
            self._enable_challenge(draft, challenge)
        else:
            self._disable_challenge(draft, challenge)
        return draft.freeze()

    def toggle_logbook_entry(self, state: UnlockState, entry: LogbookEntry, enable: bool) -> UnlockState:
        draft = state.draft()
        if enable:
            self._enable_entry(draft, entry)
        else:
            self._disable_entry(draft, entry)
        return draft.freeze()

    def toggle_entry_by_id(self, state: UnlockState, entry_id: str, enable: bool) -> UnlockState:
        entry = self._catalog.entry(entry_id)
        if entry is None:
            logger.debug("Unknown logbook entry %s, nothing to toggle", entry_id)
            return state.draft().freeze()
        return self.toggle_logbook_entry(state, entry, enable)

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------

    def unlock_all(self, state: UnlockState, allowed_dlcs: DlcFilter = None) -> UnlockState:
        allowed = normalize_dlcs(allowed_dlcs)
        draft = state.draft()
        count = 0
        for challenge in self._catalog.challenges:
            if not dlc_allowed(challenge.dlc, allowed):
                continue
            self._enable_challenge(draft, challenge, notify=False)
            count += 1
        draft.unviewed_achievements.clear()
        logger.debug("Unlocked %d challenges", count)
        return self._unlock_all_logbook(draft, allowed).freeze()

    def lock_all(self, state: UnlockState) -> UnlockState:
        draft = state.draft()
        draft.achievements.clear()
        draft.unviewed_achievements.clear()
        draft.viewed_unlockables.clear()
        draft.unlocks.clear()
        draft.viewed_viewables.clear()
        draft.discovered_pickups.clear()
        removed = strip_counter_families(draft.counters)
        logger.debug("Locked everything, removed %d counters", len(removed))
        return draft.freeze()

    def unlock_all_logbook(self, state: UnlockState, allowed_dlcs: DlcFilter = None) -> UnlockState:
        return self._unlock_all_logbook(state.draft(), normalize_dlcs(allowed_dlcs)).freeze()

    def lock_all_logbook(self, state: UnlockState) -> UnlockState:
        draft = state.draft()
        linked: Dict[str, Challenge] = {}
        for entry in self._catalog.entries:
            self._clear_entry(draft, entry)
            for challenge in self._graph.challenges_for_entry(entry.id):
                linked.setdefault(challenge.achievement, challenge)

        for challenge in linked.values():
            self._revoke_challenge(draft, challenge)
        logger.debug(
            "Locked %d logbook entries and %d linked challenges",
            len(self._catalog.entries),
            len(linked),
        )
        return draft.freeze()

    # ------------------------------------------------------------------
    # Draft helpers
    # ------------------------------------------------------------------

    def _unlock_all_logbook(self, draft: StateDraft, allowed: Optional[FrozenSet[Dlc]]) -> StateDraft:
        count = 0
        for entry in self._catalog.entries:
            if not dlc_allowed(entry.dlc, allowed):
                continue
            self._enable_entry(draft, entry, allowed, notify=False)
            count += 1
        draft.unviewed_achievements.clear()
        logger.debug("Unlocked %d logbook entries", count)
        return draft

    def _mark_entry(self, draft: StateDraft, entry: LogbookEntry) -> None:
        draft.viewed_viewables.add(entry.unlock_id)
        draft.unlocks.add(entry.unlock_id)
        if entry.pickup_id:
            draft.discovered_pickups.add(entry.pickup_id)

    def _unmark_entry(self, draft: StateDraft, entry: LogbookEntry) -> None:
        draft.viewed_viewables.discard(entry.unlock_id)
        draft.unlocks.discard(entry.unlock_id)
        if entry.pickup_id:
            draft.discovered_pickups.discard(entry.pickup_id)

    def _grant_challenge(self, draft: StateDraft, challenge: Challenge, notify: bool = True) -> None:
        draft.achievements.add(challenge.achievement)
        if notify:
            draft.unviewed_achievements.add(challenge.achievement)
        for unlock in challenge.unlocks:
            draft.viewed_unlockables.add(unlock)
            draft.unlocks.add(unlock)

    def _revoke_challenge(
        self,
        draft: StateDraft,
        challenge: Challenge,
        keep: FrozenSet[str] = frozenset(),
    ) -> None:
        draft.achievements.discard(challenge.achievement)
        draft.unviewed_achievements.discard(challenge.achievement)
        for unlock in challenge.unlocks:
            if unlock in keep:
                continue
            draft.viewed_unlockables.discard(unlock)
            draft.unlocks.discard(unlock)

    def _granted_by(self, achievements: FrozenSet[str]) -> FrozenSet[str]:
        """Unlock ids some challenge in ``achievements`` still grants."""
        granted = set()
        for achievement in achievements:
            challenge = self._catalog.challenge_by_achievement(achievement)
            if challenge is not None:
                granted.update(challenge.unlocks)
        return frozenset(granted)

    def _enable_challenge(self, draft: StateDraft, challenge: Challenge, notify: bool = True) -> None:
        self._grant_challenge(draft, challenge, notify)
        for entry in self._graph.entries_for_challenge(challenge.id):
            self._mark_entry(draft, entry)

    def _disable_challenge(self, draft: StateDraft, challenge: Challenge) -> None:
        remaining = frozenset(draft.achievements) - {challenge.achievement}
        released: List[LogbookEntry] = [
            entry
            for entry in self._graph.entries_for_challenge(challenge.id)
            if not self._graph.is_provided_by_other_challenge(entry, challenge.achievement, remaining)
        ]

        self._revoke_challenge(draft, challenge, keep=self._granted_by(remaining))
        for entry in released:
            self._unmark_entry(draft, entry)

    def _enable_entry(
        self,
        draft: StateDraft,
        entry: LogbookEntry,
        allowed: Optional[FrozenSet[Dlc]] = None,
        notify: bool = True,
    ) -> None:
        self._mark_entry(draft, entry)
        for alias in self._resolver.resolve_aliases(entry.unlock_id):
            draft.viewed_viewables.add(alias)
        apply_stat_projection(self._resolver, entry, True, draft.unlocks, draft.counters)

        for challenge in self._graph.challenges_for_entry(entry.id):
            if dlc_allowed(challenge.dlc, allowed):
                self._enable_challenge(draft, challenge, notify)

        survivor_challenge = self._survivors.achievement_for(entry)
        if survivor_challenge is not None and dlc_allowed(survivor_challenge.dlc, allowed):
            self._enable_challenge(draft, survivor_challenge, notify)

    def _disable_entry(self, draft: StateDraft, entry: LogbookEntry) -> None:
        # Cascade decisions must see the viewed entries as they were before this removal.
        snapshot = frozenset(draft.viewed_viewables)
        doomed = [
            challenge
            for challenge in self._graph.challenges_for_entry(entry.id)
            if self._graph.should_disable_challenge(challenge, entry, snapshot)
        ]

        self._clear_entry(draft, entry)

        for challenge in doomed:
            self._revoke_challenge(draft, challenge)
            for other in self._graph.entries_for_challenge(challenge.id):
                if other.id != entry.id:
                    self._unmark_entry(draft, other)

    def _clear_entry(self, draft: StateDraft, entry: LogbookEntry) -> None:
        self._unmark_entry(draft, entry)
        for alias in self._resolver.resolve_aliases(entry.unlock_id):
            draft.viewed_viewables.discard(alias)
        # Markers the game writes itself, read by is_unlocked.
        viewable_path = self._resolver.resolve_viewable_path(entry)
        if viewable_path:
            draft.viewed_viewables.discard(viewable_path)
        if not entry.pickup_id:
            drone_pickup = self._resolver.resolve_drone_pickup_id(entry.unlock_id)
            if drone_pickup:
                draft.discovered_pickups.discard(drone_pickup)
        apply_stat_projection(self._resolver, entry, False, draft.unlocks, draft.counters)


@lru_cache(maxsize=1)
def default_engine() -> SyncEngine:
    """Engine over the bundled catalog and naming tables, built once per process."""
    graph = default_graph()
    return SyncEngine(graph.catalog, graph=graph)
