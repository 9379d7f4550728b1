"""Translation between the identifier spaces a piece of logbook content is known by.

A single monster, survivor, drone or stage can be referenced by its canonical
unlock id (``Logs.BeetleBody.0``), a legacy viewable path
(``/Logbook/LOGBOOK_CATEGORY_MONSTER/BEETLE_BODY_NAME``), a pickup index
(``DroneIndex.Drone1``) and the counter keys derived from its body name
(``killsAgainst.BeetleBody``). The irregular cases live in ``naming.yaml``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping, Optional, Tuple

import yaml

from unlocksync.core.catalog import DATA_DIR, LogbookCategory, LogbookEntry

logger = logging.getLogger(__name__)

LOG_PREFIXES = ("Logs.", "Log.")
STAGE_PREFIX = "Logs.Stages."
BODY_SUFFIX = "Body"

_STAGE_PATTERN = re.compile(r"Logs\.Stages\.(.+)$")
_BODY_PATTERN = re.compile(r"Logs\.(.+?)(?:Body)?(?:\.0)?$")

_VIEWABLE_TEMPLATES: Dict[LogbookCategory, str] = {
    LogbookCategory.MONSTERS: "/Logbook/LOGBOOK_CATEGORY_MONSTER/{}_BODY_NAME",
    LogbookCategory.SURVIVORS: "/Logbook/LOGBOOK_CATEGORY_SURVIVOR/{}_BODY_NAME",
    LogbookCategory.DRONES: "/Logbook/LOGBOOK_CATEGORY_DRONE/{}_BODY_NAME",
}
_STAGE_VIEWABLE_TEMPLATE = "/Logbook/LOGBOOK_CATEGORY_STAGE/MAP_{}_TITLE"

# (counter family, sentinel value); "0" marks a counter that must exist but stay unsatisfied.
_BODY_COUNTERS: Dict[LogbookCategory, Tuple[Tuple[str, str], ...]] = {
    LogbookCategory.DRONES: (("timesSummoned", "1"), ("totalTimeAlive", "1")),
    LogbookCategory.MONSTERS: (("killsAgainst", "1"), ("deathsFrom", "0")),
    LogbookCategory.SURVIVORS: (
        ("totalTimeAlive", "1"),
        ("timesPicked", "1"),
        ("totalWins", "1"),
    ),
}
_STAGE_COUNTERS: Tuple[Tuple[str, str], ...] = (
    ("totalTimesVisited", "1"),
    ("totalTimesCleared", "1"),
)


@dataclass(frozen=True)
class NamingTables:
    """Read-only lookup tables for naming mismatches between identifier spaces."""

    internal_names: Mapping[str, str] = field(default_factory=dict)
    viewable_names: Mapping[str, str] = field(default_factory=dict)
    direct_drone_names: FrozenSet[str] = frozenset()
    aliases: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    drone_pickups: Mapping[str, str] = field(default_factory=dict)
    uncounted_logs: FrozenSet[str] = frozenset()
    stage_variants: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    extra_counters: Mapping[str, Mapping[str, str]] = field(default_factory=dict)
    survivor_by_unlock_id: Mapping[str, str] = field(default_factory=dict)
    survivor_by_entry_id: Mapping[str, str] = field(default_factory=dict)
    survivor_entry_id_aliases: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "NamingTables":
        """Read the tables from a YAML file (the bundled ``naming.yaml`` by default)."""
        path = Path(path) if path is not None else DATA_DIR / "naming.yaml"
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        if not raw or not isinstance(raw, dict):
            raise ValueError(f"{path.name}: expected YAML mapping of lookup tables")
        survivors = raw.get("survivor_achievements") or {}
        return cls(
            internal_names=_str_mapping(raw, "internal_names", path.name),
            viewable_names=_str_mapping(raw, "viewable_names", path.name),
            direct_drone_names=frozenset(str(n) for n in raw.get("direct_drone_names") or []),
            aliases=MappingProxyType(
                {
                    str(k): tuple(str(v) for v in (values or []))
                    for k, values in (raw.get("aliases") or {}).items()
                }
            ),
            drone_pickups=_str_mapping(raw, "drone_pickups", path.name),
            uncounted_logs=frozenset(str(n) for n in raw.get("uncounted_logs") or []),
            stage_variants=MappingProxyType(
                {
                    str(k): tuple(str(v) for v in (values or []))
                    for k, values in (raw.get("stage_variants") or {}).items()
                }
            ),
            extra_counters=MappingProxyType(
                {
                    str(k): MappingProxyType({str(n): str(v) for n, v in (counters or {}).items()})
                    for k, counters in (raw.get("extra_counters") or {}).items()
                }
            ),
            survivor_by_unlock_id=_str_mapping(survivors, "by_unlock_id", path.name),
            survivor_by_entry_id=_str_mapping(survivors, "by_entry_id", path.name),
            survivor_entry_id_aliases=_str_mapping(survivors, "entry_id_aliases", path.name),
        )


def _str_mapping(raw: dict, key: str, file_name: str) -> Mapping[str, str]:
    table = raw.get(key) or {}
    if not isinstance(table, dict):
        raise ValueError(f"{file_name}: '{key}' must be a mapping")
    return MappingProxyType({str(k): str(v) for k, v in table.items()})


@lru_cache(maxsize=1)
def default_tables() -> NamingTables:
    return NamingTables.load()


@dataclass(frozen=True)
class BodyToken:
    """Body name of an entry. ``qualified_key`` is set when an override
    supplied the complete log key instead of a short name."""

    name: str
    qualified_key: Optional[str] = None


@dataclass(frozen=True)
class LogKey:
    key: str
    qualified: bool = False


@dataclass(frozen=True)
class CounterProjection:
    """Unlock ids and counters (with their sentinel values) that accompany a log entry."""

    log_unlocks: Tuple[str, ...]
    counters: Mapping[str, str]


def is_qualified_log_key(name: str) -> bool:
    return name.startswith(LOG_PREFIXES)


def with_body_suffix(name: str) -> str:
    """Append ``Body`` exactly once."""
    return _strip_suffix(name, BODY_SUFFIX) + BODY_SUFFIX


def _strip_suffix(text: str, suffix: str) -> str:
    return text[: -len(suffix)] if suffix and text.endswith(suffix) else text


def _strip_log_prefix(name: str) -> str:
    for prefix in LOG_PREFIXES:
        if name.startswith(prefix):
            return name[len(prefix):]
    return name


class IdentifierResolver:
    """Deterministic mapping between canonical ids, viewable paths, pickup ids
    and counter keys."""

    def __init__(self, tables: Optional[NamingTables] = None) -> None:
        self._tables = tables if tables is not None else default_tables()

    @property
    def tables(self) -> NamingTables:
        return self._tables

    def resolve_internal_name(self, viewable_path: str) -> str:
        """Internal body name for a viewable path, or a complete log key when
        an override provides one."""
        last = viewable_path.rsplit("/", 1)[-1]
        if not last:
            return ""
        clean = re.sub(r"_BODY_NAME$", "", last)
        clean = re.sub(r"_NAME$", "", clean)
        clean = re.sub(r"^MAP_", "", clean)
        clean = re.sub(r"_TITLE$", "", clean)

        override = self._tables.internal_names.get(clean)
        if override:
            return override
        return "".join(seg[:1].upper() + seg[1:].lower() for seg in clean.split("_"))

    def resolve_viewable_path(self, entry: LogbookEntry) -> Optional[str]:
        stage = _STAGE_PATTERN.search(entry.unlock_id)
        if stage and entry.category == LogbookCategory.ENVIRONMENTS:
            return _STAGE_VIEWABLE_TEMPLATE.format(stage.group(1).upper())

        body = _BODY_PATTERN.search(entry.unlock_id)
        if not body:
            return None
        token = _strip_suffix(body.group(1).upper(), "BODY")
        token = self._tables.viewable_names.get(token, token)

        template = _VIEWABLE_TEMPLATES.get(entry.category)
        if template is None:
            return None
        if entry.category == LogbookCategory.DRONES and token not in self._tables.direct_drone_names:
            token = f"DRONE_{token}"
        return template.format(token)

    def resolve_aliases(self, viewable_path: str) -> Tuple[str, ...]:
        return self._tables.aliases.get(viewable_path, ())

    def resolve_drone_pickup_id(self, unlock_id: str) -> Optional[str]:
        return self._tables.drone_pickups.get(unlock_id)

    def resolve_body_token(self, entry: LogbookEntry) -> Optional[BodyToken]:
        if entry.category in (LogbookCategory.ITEMS, LogbookCategory.EQUIPMENT):
            return None

        unlock_id = entry.unlock_id
        if is_qualified_log_key(unlock_id):
            if unlock_id.startswith(STAGE_PREFIX):
                stage = unlock_id[len(STAGE_PREFIX):]
                return BodyToken(stage) if stage else None
            inner = _strip_suffix(_strip_log_prefix(unlock_id), ".0")
            if not inner:
                return None
            override = self._tables.internal_names.get(_strip_suffix(inner, BODY_SUFFIX).upper())
            if override is None:
                return BodyToken(inner)
            return self._token_from_name(override)

        name = self.resolve_internal_name(unlock_id)
        if not name:
            return None
        return self._token_from_name(name)

    def resolve_log_key(self, entry: LogbookEntry) -> Optional[LogKey]:
        token = self.resolve_body_token(entry)
        if token is None:
            return None
        if entry.category == LogbookCategory.ENVIRONMENTS:
            return LogKey(f"{STAGE_PREFIX}{token.name.lower()}")
        if entry.category not in _BODY_COUNTERS:
            return None
        if token.qualified_key:
            return LogKey(token.qualified_key, qualified=True)
        return LogKey(f"Logs.{with_body_suffix(token.name)}.0")

    def project_to_counter_keys(
        self,
        entry: LogbookEntry,
        body_token: Optional[BodyToken],
    ) -> Optional[CounterProjection]:
        if body_token is None or not body_token.name:
            return None

        if entry.category == LogbookCategory.ENVIRONMENTS:
            return self._project_stage(body_token.name.lower())

        families = _BODY_COUNTERS.get(entry.category)
        if families is None:
            return None
        log_key = body_token.qualified_key or f"Logs.{with_body_suffix(body_token.name)}.0"
        if log_key in self._tables.uncounted_logs:
            logger.debug("No counters tracked for %s", log_key)
            return None

        stat_body = with_body_suffix(body_token.name)
        counters = {f"{family}.{stat_body}": value for family, value in families}
        counters.update(self._tables.extra_counters.get(log_key, {}))
        return CounterProjection(log_unlocks=(log_key,), counters=counters)

    def project_entry(self, entry: LogbookEntry) -> Optional[CounterProjection]:
        return self.project_to_counter_keys(entry, self.resolve_body_token(entry))

    def _project_stage(self, stage: str) -> CounterProjection:
        stages = list(dict.fromkeys((stage,) + self._tables.stage_variants.get(stage, ())))
        counters: Dict[str, str] = {}
        for name in stages:
            for family, value in _STAGE_COUNTERS:
                counters[f"{family}.{name}"] = value
        return CounterProjection(
            log_unlocks=tuple(f"{STAGE_PREFIX}{name}" for name in stages),
            counters=counters,
        )

    def _token_from_name(self, name: str) -> BodyToken:
        if not is_qualified_log_key(name):
            return BodyToken(name)
        return BodyToken(_strip_suffix(_strip_log_prefix(name), ".0"), qualified_key=name)
