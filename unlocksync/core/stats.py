from __future__ import annotations

import logging
from collections.abc import MutableSet
from typing import Dict, List, Mapping, MutableMapping

from unlocksync.core.catalog import LogbookEntry
from unlocksync.core.naming import IdentifierResolver

logger = logging.getLogger(__name__)

# Counter families written for logbook entries and progress, wiped by a full lock.
COUNTER_FAMILIES = (
    "Logs.",
    "Log.",
    "timesSummoned.",
    "totalTimeAlive.",
    "killsAgainst.",
    "minionKillsAs.",
    "deathsFrom.",
    "timesPicked.",
    "totalWins.",
    "totalTimesVisited.",
    "totalTimesCleared.",
)


def apply_stat_projection(
    resolver: IdentifierResolver,
    entry: LogbookEntry,
    enable: bool,
    unlocks: MutableSet,
    counters: MutableMapping[str, str],
) -> None:
    """Add or remove the log unlocks and counters that accompany ``entry``.

    Enabling writes each counter's sentinel value; disabling deletes the keys
    rather than zeroing them.
    """
    projection = resolver.project_entry(entry)
    if projection is None:
        return

    if enable:
        for key in projection.log_unlocks:
            unlocks.add(key)
        counters.update(projection.counters)
    else:
        for key in projection.log_unlocks:
            unlocks.discard(key)
            counters.pop(key, None)
        for name in projection.counters:
            counters.pop(name, None)


def strip_counter_families(counters: MutableMapping[str, str]) -> List[str]:
    """Delete every counter in :data:`COUNTER_FAMILIES`; returns the removed names."""
    removed = [name for name in counters if name.startswith(COUNTER_FAMILIES)]
    for name in removed:
        del counters[name]
    return removed


def tracked_counters(counters: Mapping[str, str]) -> Dict[str, str]:
    return {name: value for name, value in counters.items() if name.startswith(COUNTER_FAMILIES)}
