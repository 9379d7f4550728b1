from __future__ import annotations

from collections.abc import MutableSet
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, Tuple

from unlocksync.core.catalog import LogbookCategory, LogbookEntry
from unlocksync.core.naming import IdentifierResolver

COLLECTIONS = (
    "achievements",
    "unviewed_achievements",
    "viewed_unlockables",
    "unlocks",
    "viewed_viewables",
    "discovered_pickups",
)


class TokenSet(MutableSet):
    """Set of string tokens that remembers insertion order."""

    def __init__(self, tokens: Iterable[str] = ()) -> None:
        self._items: Dict[str, None] = dict.fromkeys(tokens)

    def __contains__(self, token: object) -> bool:
        return token in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"TokenSet({list(self._items)!r})"

    def add(self, token: str) -> None:
        self._items[token] = None

    def discard(self, token: str) -> None:
        self._items.pop(token, None)

    def clear(self) -> None:
        self._items.clear()


@dataclass(frozen=True)
class UnlockState:
    """Unlock-related collections of a profile.

    The six collections are duplicate-free tuples in first-seen order and
    ``counters`` maps stat names to their stored text. Instances are never
    changed in place: engine operations return a new state.
    """

    achievements: Tuple[str, ...] = ()
    unviewed_achievements: Tuple[str, ...] = ()
    viewed_unlockables: Tuple[str, ...] = ()
    unlocks: Tuple[str, ...] = ()
    viewed_viewables: Tuple[str, ...] = ()
    discovered_pickups: Tuple[str, ...] = ()
    counters: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        for name in COLLECTIONS:
            object.__setattr__(self, name, tuple(dict.fromkeys(getattr(self, name))))
        object.__setattr__(self, "counters", MappingProxyType(dict(self.counters)))

    def draft(self) -> "StateDraft":
        return StateDraft(self)

    def has_achievement(self, achievement_id: str) -> bool:
        return achievement_id in self.achievements


class StateDraft:
    """Mutable working copy of an :class:`UnlockState`."""

    def __init__(self, state: UnlockState) -> None:
        self.achievements = TokenSet(state.achievements)
        self.unviewed_achievements = TokenSet(state.unviewed_achievements)
        self.viewed_unlockables = TokenSet(state.viewed_unlockables)
        self.unlocks = TokenSet(state.unlocks)
        self.viewed_viewables = TokenSet(state.viewed_viewables)
        self.discovered_pickups = TokenSet(state.discovered_pickups)
        self.counters: Dict[str, str] = dict(state.counters)

    def freeze(self) -> UnlockState:
        return UnlockState(
            achievements=tuple(self.achievements),
            unviewed_achievements=tuple(self.unviewed_achievements),
            viewed_unlockables=tuple(self.viewed_unlockables),
            unlocks=tuple(self.unlocks),
            viewed_viewables=tuple(self.viewed_viewables),
            discovered_pickups=tuple(self.discovered_pickups),
            counters=self.counters,
        )


def counter_value(state: UnlockState, name: str, default: int = 0) -> int:
    """Numeric value of a counter; missing or non-numeric values read as ``default``."""
    raw = state.counters.get(name)
    if raw is None:
        return default
    try:
        return int(float(raw.strip()))
    except (ValueError, OverflowError):
        return default


def is_unlocked(state: UnlockState, entry: LogbookEntry, resolver: IdentifierResolver) -> bool:
    """Whether any of the profile's representations marks ``entry`` as discovered.

    Stat counters on their own are not enough: a profile can record kills of a
    monster without the logbook entry having dropped.
    """
    unlocks = state.unlocks
    viewed = state.viewed_viewables

    if entry.unlock_id in unlocks:
        return True
    if entry.unlock_id in viewed:
        return True
    if any(alias in viewed for alias in resolver.resolve_aliases(entry.unlock_id)):
        return True

    viewable_path = resolver.resolve_viewable_path(entry)
    if viewable_path and viewable_path in viewed:
        return True

    pickups = state.discovered_pickups
    if entry.pickup_id and entry.pickup_id in pickups:
        return True
    if entry.category == LogbookCategory.DRONES and not entry.pickup_id:
        drone_pickup = resolver.resolve_drone_pickup_id(entry.unlock_id)
        if drone_pickup and drone_pickup in pickups:
            return True

    log_key = resolver.resolve_log_key(entry)
    if log_key is None:
        return False
    if log_key.key in unlocks:
        return True
    return not log_key.qualified and log_key.key in state.counters
