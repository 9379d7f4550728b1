"""Shared fixtures: a small hand-built catalog covering every linkage shape."""

from __future__ import annotations

import pytest

from unlocksync.core.catalog import (
    Catalog,
    Challenge,
    ChallengeCategory,
    Dlc,
    LogbookCategory,
    LogbookEntry,
    Survivor,
)
from unlocksync.core.graph import ReferenceGraph
from unlocksync.core.naming import IdentifierResolver
from unlocksync.core.state import UnlockState
from unlocksync.core.sync import SyncEngine


def _challenge(cid, achievement, unlocks, category=ChallengeCategory.ITEMS, dlc=Dlc.BASE, survivor=None):
    return Challenge(
        id=cid,
        name=cid.title(),
        description=f"Description of {cid}",
        achievement=achievement,
        unlocks=tuple(unlocks),
        category=category,
        dlc=dlc,
        survivor=survivor,
    )


def _entry(eid, category, unlock_id, pickup_id=None, dlc=Dlc.BASE):
    return LogbookEntry(
        id=eid,
        name=eid.title(),
        category=category,
        unlock_id=unlock_id,
        dlc=dlc,
        pickup_id=pickup_id,
    )


CHALLENGES = (
    # alpha and beta both unlock the shared item
    _challenge("alpha", "AchAlpha", ["Items.Shared", "Skills.Commando.Alt"]),
    _challenge("beta", "AchBeta", ["Items.Shared"]),
    # one challenge, two linked items
    _challenge("pair", "AchPair", ["Items.Left", "Items.Right"]),
    _challenge("solo", "AchSolo", ["Equipment.Solo"]),
    _challenge("void", "AchVoid", ["Items.VoidThing"], dlc=Dlc.SOTV),
    _challenge("orphan", "AchOrphan", ["Items.Missing", "Artifacts.Bomb"], category=ChallengeCategory.ARTIFACTS),
    _challenge(
        "free-mage",
        "FreeMage",
        ["Characters.Mage"],
        category=ChallengeCategory.SURVIVORS,
        survivor="artificer",
    ),
)

ENTRIES = (
    _entry("shared", LogbookCategory.ITEMS, "Items.Shared", "ItemIndex.Shared"),
    _entry("left", LogbookCategory.ITEMS, "Items.Left", "ItemIndex.Left"),
    _entry("right", LogbookCategory.ITEMS, "Items.Right", "ItemIndex.Right"),
    _entry("solo", LogbookCategory.EQUIPMENT, "Equipment.Solo", "EquipmentIndex.Solo"),
    _entry("void-thing", LogbookCategory.ITEMS, "Items.VoidThing", "ItemIndex.VoidThing", dlc=Dlc.SOTV),
    _entry("syringe", LogbookCategory.ITEMS, "Items.Syringe", "ItemIndex.Syringe"),
    _entry("beetle", LogbookCategory.MONSTERS, "Logs.BeetleBody.0"),
    _entry("chirp", LogbookCategory.DRONES, "Logs.ChirpBody.0", "DroneIndex.Chirp", dlc=Dlc.AC),
    _entry("gunner-drone", LogbookCategory.DRONES, "Logs.Drone1Body.0"),
    _entry("artifactworld", LogbookCategory.ENVIRONMENTS, "Logs.Stages.artifactworld"),
    _entry("mage", LogbookCategory.SURVIVORS, "/Logbook/LOGBOOK_CATEGORY_SURVIVOR/MAGE_BODY_NAME"),
    _entry("commando", LogbookCategory.SURVIVORS, "/Logbook/LOGBOOK_CATEGORY_SURVIVOR/COMMANDO_BODY_NAME"),
)

SURVIVORS = (
    Survivor(id="commando", name="Commando", dlc=Dlc.BASE),
    Survivor(id="artificer", name="Artificer", dlc=Dlc.BASE, unlock_achievement="FreeMage"),
)


@pytest.fixture()
def catalog() -> Catalog:
    return Catalog(CHALLENGES, ENTRIES, SURVIVORS)


@pytest.fixture()
def graph(catalog: Catalog) -> ReferenceGraph:
    return ReferenceGraph(catalog)


@pytest.fixture()
def resolver() -> IdentifierResolver:
    return IdentifierResolver()


@pytest.fixture()
def engine(catalog: Catalog, graph: ReferenceGraph, resolver: IdentifierResolver) -> SyncEngine:
    return SyncEngine(catalog, graph=graph, resolver=resolver)


@pytest.fixture()
def empty() -> UnlockState:
    return UnlockState()
