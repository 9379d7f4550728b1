from __future__ import annotations

import logging
from typing import Optional

from unlocksync.core.catalog import Catalog, Challenge, LogbookCategory, LogbookEntry, Survivor
from unlocksync.core.naming import NamingTables, default_tables
from unlocksync.core.state import UnlockState

logger = logging.getLogger(__name__)


class SurvivorAchievementResolver:
    """Finds the achievement that unlocks a survivor's logbook entry."""

    def __init__(self, catalog: Catalog, tables: Optional[NamingTables] = None) -> None:
        self._catalog = catalog
        self._tables = tables if tables is not None else default_tables()

    def achievement_id_for(self, entry: LogbookEntry) -> Optional[str]:
        if entry.category != LogbookCategory.SURVIVORS:
            return None
        return (
            self._tables.survivor_by_unlock_id.get(entry.unlock_id)
            or self._tables.survivor_by_entry_id.get(entry.id)
            or self._tables.survivor_entry_id_aliases.get(entry.id)
        )

    def achievement_for(self, entry: LogbookEntry) -> Optional[Challenge]:
        """Challenge to enable alongside ``entry``; ``None`` for survivors that
        are available from the start."""
        achievement_id = self.achievement_id_for(entry)
        if achievement_id is None:
            return None
        challenge = self._catalog.challenge_by_achievement(achievement_id)
        if challenge is None:
            logger.debug("Survivor entry %s maps to unknown achievement %s", entry.id, achievement_id)
        return challenge

    def survivor_unlocked(self, state: UnlockState, survivor: Survivor) -> bool:
        if survivor.unlock_achievement is None:
            return True
        return state.has_achievement(survivor.unlock_achievement)
