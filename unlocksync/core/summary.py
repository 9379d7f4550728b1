from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

from unlocksync.core.catalog import Catalog, ChallengeCategory, LogbookCategory
from unlocksync.core.naming import IdentifierResolver
from unlocksync.core.state import UnlockState, is_unlocked
from unlocksync.core.survivors import SurvivorAchievementResolver


@dataclass
class CategoryCount:
    total: int = 0
    unlocked: int = 0


@dataclass
class AchievementSummary:
    total: int = 0
    unlocked: int = 0
    by_category: Dict[ChallengeCategory, int] = field(
        default_factory=lambda: {category: 0 for category in ChallengeCategory}
    )


@dataclass
class LogbookSummary:
    total: int = 0
    unlocked: int = 0
    by_category: Dict[LogbookCategory, CategoryCount] = field(
        default_factory=lambda: {category: CategoryCount() for category in LogbookCategory}
    )


def achievement_summary(state: UnlockState, catalog: Catalog) -> AchievementSummary:
    """Counts unlocked catalog challenges. Achievement ids the catalog does not
    know about are ignored."""
    held = set(state.achievements)
    summary = AchievementSummary(total=len(catalog.challenges))
    for challenge in catalog.challenges:
        if challenge.achievement in held:
            summary.unlocked += 1
            summary.by_category[challenge.category] += 1
    return summary


def logbook_summary(state: UnlockState, catalog: Catalog, resolver: IdentifierResolver) -> LogbookSummary:
    summary = LogbookSummary(total=len(catalog.entries))
    for category, count in summary.by_category.items():
        for entry in catalog.entries_in(category):
            count.total += 1
            if is_unlocked(state, entry, resolver):
                count.unlocked += 1
                summary.unlocked += 1
    return summary


def survivor_summary(state: UnlockState, catalog: Catalog, survivors: SurvivorAchievementResolver) -> CategoryCount:
    """Playable survivors: starters plus those whose unlock achievement is held."""
    count = CategoryCount(total=len(catalog.survivors))
    count.unlocked = sum(1 for survivor in catalog.survivors if survivors.survivor_unlocked(state, survivor))
    return count
