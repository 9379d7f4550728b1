"""Tests for unlocksync.core.sync – the synchronization engine."""

from __future__ import annotations

import pytest

from unlocksync.core.catalog import Catalog, Dlc
from unlocksync.core.state import UnlockState
from unlocksync.core.stats import COUNTER_FAMILIES
from unlocksync.core.sync import SyncEngine, default_engine, dlc_allowed, normalize_dlcs


# ---------------------------------------------------------------------------
# DLC filter
# ---------------------------------------------------------------------------

class TestDlcFilter:
    def test_none_means_no_filter(self):
        assert normalize_dlcs(None) is None
        assert dlc_allowed(Dlc.AC, None)

    def test_strings_and_enums(self):
        assert normalize_dlcs(["sotv", Dlc.AC]) == frozenset({Dlc.SOTV, Dlc.AC})

    def test_unknown_names_ignored(self):
        assert normalize_dlcs(["dlc9"]) == frozenset()

    def test_base_always_allowed(self):
        assert dlc_allowed(Dlc.BASE, frozenset())

    def test_unlisted_rejected(self):
        assert not dlc_allowed(Dlc.SOTS, frozenset({Dlc.SOTV}))


# ---------------------------------------------------------------------------
# toggle_achievement
# ---------------------------------------------------------------------------

class TestToggleAchievement:
    def test_enable_grants_unlocks_and_entries(self, engine: SyncEngine, empty: UnlockState):
        state = engine.toggle_achievement(empty, "AchAlpha", True)
        assert state.achievements == ("AchAlpha",)
        assert state.unviewed_achievements == ("AchAlpha",)
        assert state.viewed_unlockables == ("Items.Shared", "Skills.Commando.Alt")
        assert state.unlocks == ("Items.Shared", "Skills.Commando.Alt")
        assert state.viewed_viewables == ("Items.Shared",)
        assert state.discovered_pickups == ("ItemIndex.Shared",)

    def test_enable_marks_every_linked_entry(self, engine: SyncEngine, catalog: Catalog, empty: UnlockState):
        state = engine.toggle_achievement(empty, "AchPair", True)
        assert engine.is_entry_unlocked(state, catalog.entry("left"))
        assert engine.is_entry_unlocked(state, catalog.entry("right"))

    def test_idempotent(self, engine: SyncEngine, empty: UnlockState):
        once = engine.toggle_achievement(empty, "AchPair", True)
        twice = engine.toggle_achievement(once, "AchPair", True)
        assert twice == once

    @pytest.mark.parametrize("achievement", ["AchAlpha", "AchPair", "AchSolo", "FreeMage", "AchOrphan"])
    def test_enable_then_disable_restores(self, engine: SyncEngine, achievement: str):
        before = UnlockState(
            unlocks=("Logs.BeetleBody.0",),
            viewed_viewables=("Logs.BeetleBody.0",),
            counters={"totalTimePlayed": "900"},
        )
        enabled = engine.toggle_achievement(before, achievement, True)
        assert engine.toggle_achievement(enabled, achievement, False) == before

    def test_disable_does_not_touch_unrelated(self, engine: SyncEngine, empty: UnlockState):
        state = engine.toggle_achievement(empty, "AchPair", True)
        state = engine.toggle_achievement(state, "AchSolo", True)
        state = engine.toggle_achievement(state, "AchPair", False)
        assert state.achievements == ("AchSolo",)
        assert "Equipment.Solo" in state.unlocks

    def test_unknown_achievement(self, engine: SyncEngine):
        state = UnlockState(achievements=("Unrelated",), counters={"x": "1"})
        assert engine.toggle_achievement(state, "NoSuchAchievement", True) == state
        assert engine.toggle_achievement(state, "NoSuchAchievement", False) == state

    def test_input_not_modified(self, engine: SyncEngine, empty: UnlockState):
        engine.toggle_achievement(empty, "AchAlpha", True)
        assert empty == UnlockState()

    def test_is_achievement_unlocked(self, engine: SyncEngine, empty: UnlockState):
        state = engine.toggle_achievement(empty, "AchSolo", True)
        assert engine.is_achievement_unlocked(state, "AchSolo")
        assert not engine.is_achievement_unlocked(state, "AchAlpha")


# ---------------------------------------------------------------------------
# Shared entries
# ---------------------------------------------------------------------------

class TestSharedEntry:
    def test_kept_while_other_challenge_held(self, engine: SyncEngine, catalog: Catalog, empty: UnlockState):
        shared = catalog.entry("shared")
        state = engine.toggle_achievement(empty, "AchAlpha", True)
        state = engine.toggle_achievement(state, "AchBeta", True)
        state = engine.toggle_achievement(state, "AchAlpha", False)

        assert engine.is_entry_unlocked(state, shared)
        assert "Items.Shared" in state.unlocks
        assert "Items.Shared" in state.viewed_unlockables
        assert "ItemIndex.Shared" in state.discovered_pickups
        assert "Skills.Commando.Alt" not in state.unlocks

    def test_removed_with_last_provider(self, engine: SyncEngine, catalog: Catalog, empty: UnlockState):
        shared = catalog.entry("shared")
        state = engine.toggle_achievement(empty, "AchAlpha", True)
        state = engine.toggle_achievement(state, "AchBeta", True)
        state = engine.toggle_achievement(state, "AchAlpha", False)
        state = engine.toggle_achievement(state, "AchBeta", False)

        assert not engine.is_entry_unlocked(state, shared)
        assert state == UnlockState()

    def test_entry_enable_grants_every_provider(self, engine: SyncEngine, catalog: Catalog, empty: UnlockState):
        state = engine.toggle_logbook_entry(empty, catalog.entry("shared"), True)
        assert set(state.achievements) == {"AchAlpha", "AchBeta"}


# ---------------------------------------------------------------------------
# toggle_logbook_entry
# ---------------------------------------------------------------------------

class TestToggleLogbookEntry:
    def test_chirp_enable(self, engine: SyncEngine, catalog: Catalog, empty: UnlockState):
        state = engine.toggle_logbook_entry(empty, catalog.entry("chirp"), True)
        assert "Logs.ChirpBody.0" in state.unlocks
        assert "Logs.ChirpBody.0" in state.viewed_viewables
        assert "DroneIndex.Chirp" in state.discovered_pickups
        assert state.counters == {"timesSummoned.ChirpBody": "1", "totalTimeAlive.ChirpBody": "1"}

    def test_chirp_disable_removes_everything(self, engine: SyncEngine, catalog: Catalog, empty: UnlockState):
        chirp = catalog.entry("chirp")
        state = engine.toggle_logbook_entry(empty, chirp, True)
        assert engine.toggle_logbook_entry(state, chirp, False) == UnlockState()

    def test_artifactworld_stage_variants(self, engine: SyncEngine, catalog: Catalog, empty: UnlockState):
        state = engine.toggle_logbook_entry(empty, catalog.entry("artifactworld"), True)
        assert set(state.unlocks) == {
            "Logs.Stages.artifactworld",
            "Logs.Stages.artifactworld01",
            "Logs.Stages.artifactworld02",
            "Logs.Stages.artifactworld03",
            "Logs.Stages.artifactworld04",
        }
        assert len(state.counters) == 10
        assert all(value == "1" for value in state.counters.values())

    def test_idempotent(self, engine: SyncEngine, catalog: Catalog, empty: UnlockState):
        beetle = catalog.entry("beetle")
        once = engine.toggle_logbook_entry(empty, beetle, True)
        assert engine.toggle_logbook_entry(once, beetle, True) == once

    def test_survivor_aliases(self, engine: SyncEngine, catalog: Catalog, empty: UnlockState):
        state = engine.toggle_logbook_entry(empty, catalog.entry("commando"), True)
        assert "/Survivors/Commando" in state.viewed_viewables
        assert "Logs.CommandoBody.0" in state.unlocks
        assert state.counters["timesPicked.CommandoBody"] == "1"
        assert state.achievements == ()

    def test_survivor_enables_unlock_achievement(self, engine: SyncEngine, catalog: Catalog, empty: UnlockState):
        state = engine.toggle_logbook_entry(empty, catalog.entry("mage"), True)
        assert state.achievements == ("FreeMage",)
        assert "Characters.Mage" in state.unlocks

    def test_survivor_disable_keeps_achievement(self, engine: SyncEngine, catalog: Catalog, empty: UnlockState):
        mage = catalog.entry("mage")
        state = engine.toggle_logbook_entry(empty, mage, True)
        state = engine.toggle_logbook_entry(state, mage, False)
        assert state.achievements == ("FreeMage",)
        assert not engine.is_entry_unlocked(state, mage)
        assert "/Survivors/Mage" not in state.viewed_viewables

    def test_enable_cascades_to_sibling(self, engine: SyncEngine, catalog: Catalog, empty: UnlockState):
        state = engine.toggle_logbook_entry(empty, catalog.entry("left"), True)
        assert state.achievements == ("AchPair",)
        assert state.unviewed_achievements == ("AchPair",)
        assert engine.is_entry_unlocked(state, catalog.entry("right"))

    def test_single_entry_cascade(self, engine: SyncEngine, catalog: Catalog, empty: UnlockState):
        state = engine.unlock_all(empty)
        state = engine.toggle_logbook_entry(state, catalog.entry("solo"), False)
        assert "AchSolo" not in state.achievements
        assert "Equipment.Solo" not in state.unlocks
        assert "Equipment.Solo" not in state.viewed_unlockables

    def test_multi_entry_kept_while_sibling_viewed(self, engine: SyncEngine, catalog: Catalog, empty: UnlockState):
        state = engine.toggle_achievement(empty, "AchPair", True)
        state = engine.toggle_logbook_entry(state, catalog.entry("left"), False)
        assert "AchPair" in state.achievements
        assert not engine.is_entry_unlocked(state, catalog.entry("left"))
        assert engine.is_entry_unlocked(state, catalog.entry("right"))

    def test_multi_entry_disabled_with_last_sibling(self, engine: SyncEngine, catalog: Catalog, empty: UnlockState):
        state = engine.toggle_achievement(empty, "AchPair", True)
        state = engine.toggle_logbook_entry(state, catalog.entry("left"), False)
        state = engine.toggle_logbook_entry(state, catalog.entry("right"), False)
        assert state == UnlockState()

    def test_multi_entry_disable_unmarks_siblings(self, engine: SyncEngine, catalog: Catalog):
        # right is unlocked but not viewed, so disabling left takes the pair down with it
        state = UnlockState(
            achievements=("AchPair",),
            unlocks=("Items.Left", "Items.Right"),
            viewed_viewables=("Items.Left",),
            discovered_pickups=("ItemIndex.Left", "ItemIndex.Right"),
        )
        state = engine.toggle_logbook_entry(state, catalog.entry("left"), False)
        assert state.achievements == ()
        assert state.unlocks == ()
        assert state.discovered_pickups == ()

    def test_toggle_by_id(self, engine: SyncEngine, empty: UnlockState):
        state = engine.toggle_entry_by_id(empty, "beetle", True)
        assert state.counters["killsAgainst.BeetleBody"] == "1"

    def test_toggle_unknown_id(self, engine: SyncEngine):
        state = UnlockState(unlocks=("Items.Syringe",))
        assert engine.toggle_entry_by_id(state, "no-such-entry", True) == state

    def test_disable_clears_table_drone_pickup(self, engine: SyncEngine, catalog: Catalog):
        drone = catalog.entry("gunner-drone")
        state = UnlockState(discovered_pickups=("DroneIndex.Drone1", "ItemIndex.Syringe"))
        assert engine.is_entry_unlocked(state, drone)
        state = engine.toggle_logbook_entry(state, drone, False)
        assert state.discovered_pickups == ("ItemIndex.Syringe",)
        assert not engine.is_entry_unlocked(state, drone)

    def test_disable_clears_viewable_path(self, engine: SyncEngine, catalog: Catalog):
        beetle = catalog.entry("beetle")
        state = UnlockState(viewed_viewables=("/Logbook/LOGBOOK_CATEGORY_MONSTER/BEETLE_BODY_NAME",))
        assert engine.is_entry_unlocked(state, beetle)
        state = engine.toggle_logbook_entry(state, beetle, False)
        assert state.viewed_viewables == ()
        assert not engine.is_entry_unlocked(state, beetle)


# ---------------------------------------------------------------------------
# Bulk operations
# ---------------------------------------------------------------------------

class TestUnlockAll:
    def test_completeness(self, engine: SyncEngine, catalog: Catalog, empty: UnlockState):
        state = engine.unlock_all(empty)
        for challenge in catalog.challenges:
            assert challenge.achievement in state.achievements
        for entry in catalog.entries:
            assert engine.is_entry_unlocked(state, entry), entry.id

    def test_not_a_notification(self, engine: SyncEngine, empty: UnlockState):
        state = UnlockState(unviewed_achievements=("Older",))
        assert engine.unlock_all(state).unviewed_achievements == ()

    def test_base_only(self, engine: SyncEngine, catalog: Catalog, empty: UnlockState):
        state = engine.unlock_all(empty, allowed_dlcs=[])
        assert "AchVoid" not in state.achievements
        assert "AchAlpha" in state.achievements
        assert not engine.is_entry_unlocked(state, catalog.entry("void-thing"))
        assert not engine.is_entry_unlocked(state, catalog.entry("chirp"))
        assert engine.is_entry_unlocked(state, catalog.entry("beetle"))

    def test_allowed_dlc(self, engine: SyncEngine, catalog: Catalog, empty: UnlockState):
        state = engine.unlock_all(empty, allowed_dlcs=["sotv"])
        assert "AchVoid" in state.achievements
        assert engine.is_entry_unlocked(state, catalog.entry("void-thing"))
        assert not engine.is_entry_unlocked(state, catalog.entry("chirp"))

    def test_unlock_all_logbook(self, engine: SyncEngine, catalog: Catalog, empty: UnlockState):
        state = engine.unlock_all_logbook(empty)
        for entry in catalog.entries:
            assert engine.is_entry_unlocked(state, entry), entry.id
        assert "AchOrphan" not in state.achievements
        assert "FreeMage" in state.achievements
        assert state.unviewed_achievements == ()


class TestLockAll:
    def test_clears_everything_tracked(self, engine: SyncEngine):
        start = UnlockState(counters={"totalTimePlayed": "900"})
        state = engine.lock_all(engine.unlock_all(start))
        assert state == UnlockState(counters={"totalTimePlayed": "900"})

    def test_strips_foreign_family_counters(self, engine: SyncEngine):
        state = UnlockState(counters={"minionKillsAs.EngiBody": "40", "highestLevel": "30"})
        assert engine.lock_all(state).counters == {"highestLevel": "30"}


class TestLockAllLogbook:
    def test_minimality(self, engine: SyncEngine, catalog: Catalog):
        start = UnlockState(counters={"totalTimePlayed": "900"})
        state = engine.lock_all_logbook(engine.unlock_all(start))

        for entry in catalog.entries:
            assert not engine.is_entry_unlocked(state, entry), entry.id
        assert not [name for name in state.counters if name.startswith(COUNTER_FAMILIES)]
        assert state.counters == {"totalTimePlayed": "900"}

    def test_clears_markers_written_by_the_game(self, engine: SyncEngine, catalog: Catalog):
        state = UnlockState(
            viewed_viewables=("/Logbook/LOGBOOK_CATEGORY_MONSTER/BEETLE_BODY_NAME",),
            discovered_pickups=("DroneIndex.Drone1",),
        )
        state = engine.lock_all_logbook(state)
        assert state.viewed_viewables == ()
        assert state.discovered_pickups == ()
        for entry in catalog.entries:
            assert not engine.is_entry_unlocked(state, entry), entry.id

    def test_linked_challenges_disabled(self, engine: SyncEngine):
        state = engine.lock_all_logbook(engine.unlock_all(UnlockState()))
        assert set(state.achievements) == {"FreeMage", "AchOrphan"}
        assert "Skills.Commando.Alt" not in state.unlocks
        assert "Characters.Mage" in state.unlocks
        assert "Artifacts.Bomb" in state.unlocks


# ---------------------------------------------------------------------------
# Bundled data
# ---------------------------------------------------------------------------

class TestDefaultEngine:
    def test_cached(self):
        assert default_engine() is default_engine()

    def test_unlock_all_completeness(self):
        engine = default_engine()
        state = engine.unlock_all(UnlockState())
        for entry in engine.catalog.entries:
            assert engine.is_entry_unlocked(state, entry), entry.id
        for challenge in engine.catalog.challenges:
            assert challenge.achievement in state.achievements

    def test_lock_all_logbook_leaves_no_logbook_state(self):
        engine = default_engine()
        state = engine.lock_all_logbook(engine.unlock_all(UnlockState()))
        for entry in engine.catalog.entries:
            assert not engine.is_entry_unlocked(state, entry), entry.id

    def test_survivor_entry_unlocks_character(self):
        engine = default_engine()
        state = engine.toggle_entry_by_id(UnlockState(), "mult", True)
        assert "RepeatFirstTeleporter" in state.achievements
        assert "Characters.Toolbot" in state.unlocks
        assert "/Survivors/Toolbot" in state.viewed_viewables
