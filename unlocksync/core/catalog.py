from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


class Dlc(str, Enum):
    BASE = "base"
    SOTV = "sotv"
    SOTS = "sots"
    AC = "ac"


class ChallengeCategory(str, Enum):
    SURVIVORS = "survivors"
    SKILLS = "skills"
    SKINS = "skins"
    ITEMS = "items"
    ARTIFACTS = "artifacts"


class LogbookCategory(str, Enum):
    MONSTERS = "monsters"
    ENVIRONMENTS = "environments"
    SURVIVORS = "survivors"
    ITEMS = "items"
    EQUIPMENT = "equipment"
    DRONES = "drones"


@dataclass(frozen=True)
class Challenge:
    id: str
    name: str
    description: str
    achievement: str
    unlocks: Tuple[str, ...]
    category: ChallengeCategory
    dlc: Dlc
    survivor: Optional[str] = None


@dataclass(frozen=True)
class LogbookEntry:
    id: str
    name: str
    category: LogbookCategory
    unlock_id: str
    dlc: Dlc
    pickup_id: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class Survivor:
    id: str
    name: str
    dlc: Dlc
    unlock_achievement: Optional[str] = None
    description: Optional[str] = None


class Catalog:
    """Immutable challenge, logbook and survivor lists with id lookups."""

    def __init__(
        self,
        challenges: Iterable[Challenge],
        entries: Iterable[LogbookEntry],
        survivors: Iterable[Survivor] = (),
    ) -> None:
        self._challenges = tuple(challenges)
        self._entries = tuple(entries)
        self._survivors = tuple(survivors)
        self._challenge_by_id = {c.id: c for c in self._challenges}
        self._challenge_by_achievement = {c.achievement: c for c in self._challenges}
        self._entry_by_id = {e.id: e for e in self._entries}
        self._survivor_by_id = {s.id: s for s in self._survivors}

    @property
    def challenges(self) -> Tuple[Challenge, ...]:
        return self._challenges

    @property
    def entries(self) -> Tuple[LogbookEntry, ...]:
        return self._entries

    @property
    def survivors(self) -> Tuple[Survivor, ...]:
        return self._survivors

    def challenge(self, challenge_id: str) -> Optional[Challenge]:
        return self._challenge_by_id.get(challenge_id)

    def challenge_by_achievement(self, achievement_id: str) -> Optional[Challenge]:
        return self._challenge_by_achievement.get(achievement_id)

    def entry(self, entry_id: str) -> Optional[LogbookEntry]:
        return self._entry_by_id.get(entry_id)

    def survivor(self, survivor_id: str) -> Optional[Survivor]:
        return self._survivor_by_id.get(survivor_id)

    def entries_in(self, category: LogbookCategory) -> List[LogbookEntry]:
        return [e for e in self._entries if e.category == category]


class CatalogRepository:
    """Loads the static catalogs from ``challenges.yaml``, ``logbook.yaml`` and
    ``survivors.yaml``. Defaults to the catalogs bundled with the package."""

    def __init__(self, data_dir: Optional[Path] = None) -> None:
        self._data_dir = Path(data_dir) if data_dir is not None else DATA_DIR
        self._catalog = self._load_catalog()

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    def _load_catalog(self) -> Catalog:
        if not self._data_dir.exists():
            raise FileNotFoundError(f"Catalog directory not found: {self._data_dir}")

        challenges = [
            _parse_challenge(record, "challenges.yaml")
            for record in self._read_records("challenges.yaml", "challenges")
        ]
        entries = [
            _parse_entry(record, "logbook.yaml")
            for record in self._read_records("logbook.yaml", "entries")
        ]
        survivors = [
            _parse_survivor(record, "survivors.yaml")
            for record in self._read_records("survivors.yaml", "survivors", required=False)
        ]

        _reject_duplicates("challenges.yaml", [c.id for c in challenges])
        _reject_duplicates("challenges.yaml", [c.achievement for c in challenges])
        _reject_duplicates("logbook.yaml", [e.id for e in entries])
        _reject_duplicates("survivors.yaml", [s.id for s in survivors])

        logger.debug(
            "Loaded catalog from %s: %d challenges, %d logbook entries, %d survivors",
            self._data_dir,
            len(challenges),
            len(entries),
            len(survivors),
        )
        return Catalog(challenges, entries, survivors)

    def _read_records(self, file_name: str, key: str, required: bool = True) -> List[dict]:
        path = self._data_dir / file_name
        if not path.exists():
            if required:
                raise FileNotFoundError(f"Catalog file not found: {path}")
            return []
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        if not raw or not isinstance(raw, dict):
            raise ValueError(f"{file_name}: expected YAML mapping with '{key}'")
        records = raw.get(key)
        if not isinstance(records, list):
            raise ValueError(f"{file_name}: '{key}' must be a list")
        for record in records:
            if not isinstance(record, dict):
                raise ValueError(f"{file_name}: expected mapping, got {record!r}")
        return records


def _require_str(record: dict, field: str, file_name: str) -> str:
    value = record.get(field)
    if not value or not isinstance(value, str):
        raise ValueError(f"{file_name}: missing or invalid '{field}' in {record!r}")
    return value.strip()


def _optional_str(record: dict, field: str) -> Optional[str]:
    value = record.get(field)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_enum(enum_type, record: dict, field: str, file_name: str, default=None):
    value = record.get(field, default)
    try:
        return enum_type(value)
    except ValueError:
        raise ValueError(f"{file_name}: invalid '{field}' {value!r} in {record!r}") from None


def _parse_challenge(record: dict, file_name: str) -> Challenge:
    unlocks = record.get("unlocks") or []
    if not isinstance(unlocks, list):
        raise ValueError(f"{file_name}: 'unlocks' must be a list in {record!r}")
    return Challenge(
        id=_require_str(record, "id", file_name),
        name=_require_str(record, "name", file_name),
        description=str(record.get("description") or "").strip(),
        achievement=_require_str(record, "achievement", file_name),
        unlocks=tuple(str(u).strip() for u in unlocks if str(u).strip()),
        category=_parse_enum(ChallengeCategory, record, "category", file_name),
        dlc=_parse_enum(Dlc, record, "dlc", file_name, default="base"),
        survivor=_optional_str(record, "survivor"),
    )


def _parse_entry(record: dict, file_name: str) -> LogbookEntry:
    return LogbookEntry(
        id=_require_str(record, "id", file_name),
        name=_require_str(record, "name", file_name),
        category=_parse_enum(LogbookCategory, record, "category", file_name),
        unlock_id=_require_str(record, "unlock_id", file_name),
        dlc=_parse_enum(Dlc, record, "dlc", file_name, default="base"),
        pickup_id=_optional_str(record, "pickup_id"),
        description=_optional_str(record, "description"),
    )


def _parse_survivor(record: dict, file_name: str) -> Survivor:
    return Survivor(
        id=_require_str(record, "id", file_name),
        name=_require_str(record, "name", file_name),
        dlc=_parse_enum(Dlc, record, "dlc", file_name, default="base"),
        unlock_achievement=_optional_str(record, "unlock_achievement"),
        description=_optional_str(record, "description"),
    )


def _reject_duplicates(file_name: str, keys: List[str]) -> None:
    seen: Dict[str, int] = {}
    for key in keys:
        seen[key] = seen.get(key, 0) + 1
    duplicates = sorted(k for k, count in seen.items() if count > 1)
    if duplicates:
        raise ValueError(f"{file_name}: duplicate ids {', '.join(duplicates)}")
