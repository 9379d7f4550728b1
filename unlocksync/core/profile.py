"""Reading and writing the XML user profile.

Only the unlock-related fields are interpreted; everything else in the
document is carried through untouched.
"""

from __future__ import annotations

import copy
import logging
import re
import shutil
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, List, Optional

from unlocksync.core.state import UnlockState

logger = logging.getLogger(__name__)

ROOT_TAG = "UserProfile"
MAX_COINS = 2147483647

_LIST_FIELDS = {
    "achievements": "achievementsList",
    "unviewed_achievements": "unviewedAchievementsList",
    "viewed_unlockables": "viewedUnlockablesList",
    "viewed_viewables": "viewedViewables",
    "discovered_pickups": "discoveredPickups",
}
_DECLARATION = re.compile(r"^\s*(<\?xml[^>]*\?>)")


class ProfileError(ValueError):
    """The text is not a readable user profile."""


class ProfileDocument:
    """Parsed profile tree plus the XML declaration it was read with."""

    def __init__(self, root: ET.Element, declaration: Optional[str] = None) -> None:
        self._root = root
        self._declaration = declaration

    @property
    def root(self) -> ET.Element:
        return self._root

    @property
    def declaration(self) -> Optional[str]:
        return self._declaration

    def copy(self) -> "ProfileDocument":
        return ProfileDocument(copy.deepcopy(self._root), self._declaration)

    @property
    def name(self) -> str:
        return (self._root.findtext("name") or "").strip() or "Unknown"

    @name.setter
    def name(self, value: str) -> None:
        _child(self._root, "name").text = value

    @property
    def coins(self) -> int:
        raw = (self._root.findtext("coins") or "").strip()
        try:
            return int(raw)
        except ValueError:
            return 0

    @coins.setter
    def coins(self, value: int) -> None:
        _child(self._root, "coins").text = str(max(0, min(int(value), MAX_COINS)))


def _child(parent: ET.Element, tag: str) -> ET.Element:
    element = parent.find(tag)
    if element is None:
        element = ET.SubElement(parent, tag)
    return element


def parse(text: str) -> ProfileDocument:
    parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True))
    try:
        root = ET.fromstring(text, parser=parser)
    except ET.ParseError as e:
        raise ProfileError(f"Failed to parse profile XML: {e}") from e
    if root.tag != ROOT_TAG:
        raise ProfileError(f"Not a user profile: root element is <{root.tag}>, expected <{ROOT_TAG}>")
    match = _DECLARATION.match(text)
    return ProfileDocument(root, match.group(1) if match else None)


def serialize(document: ProfileDocument) -> str:
    root = copy.deepcopy(document.root)
    ET.indent(root, space="  ")
    body = ET.tostring(root, encoding="unicode")
    if document.declaration:
        return f"{document.declaration}\n{body}\n"
    return f"{body}\n"


def _tokens(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return value.split()


def extract(document: ProfileDocument) -> UnlockState:
    root = document.root
    lists = {attr: _tokens(root.findtext(tag)) for attr, tag in _LIST_FIELDS.items()}

    counters: Dict[str, str] = {}
    unlocks: List[str] = []
    stats = root.find("stats")
    if stats is not None:
        for stat in stats.findall("stat"):
            name = stat.get("name")
            if name:
                counters[name] = (stat.text or "").strip()
        for unlock in stats.findall("unlock"):
            token = (unlock.text or "").strip()
            if token:
                unlocks.append(token)

    return UnlockState(unlocks=tuple(unlocks), counters=counters, **lists)


def apply(document: ProfileDocument, state: UnlockState) -> ProfileDocument:
    """Return a copy of ``document`` with the state's collections written into it."""
    result = document.copy()
    root = result.root

    for attr, tag in _LIST_FIELDS.items():
        _child(root, tag).text = " ".join(getattr(state, attr))

    stats = _child(root, "stats")
    written = set()
    for stat in list(stats.findall("stat")):
        name = stat.get("name")
        if not name:
            continue
        if name in state.counters and name not in written:
            stat.text = state.counters[name]
            written.add(name)
        else:
            stats.remove(stat)
    for name, value in state.counters.items():
        if name not in written:
            ET.SubElement(stats, "stat", {"name": name}).text = value

    for unlock in list(stats.findall("unlock")):
        stats.remove(unlock)
    for token in state.unlocks:
        ET.SubElement(stats, "unlock").text = token

    return result


def _missing_fields(document: ProfileDocument) -> Optional[str]:
    if document.root.find("coins") is None:
        return "Not a valid profile: missing <coins> element"
    return None


def validate(text: str) -> Optional[str]:
    """Why ``text`` is not a usable profile, or ``None`` if it is."""
    try:
        document = parse(text)
    except ProfileError as e:
        return str(e)
    return _missing_fields(document)


def read_profile_text(path: Path) -> str:
    path = Path(path)
    try:
        return path.read_text(encoding="utf-8-sig")
    except OSError as e:
        raise ProfileError(f"Could not read profile {path}: {e}") from e


def load_profile(path: Path) -> ProfileDocument:
    document = parse(read_profile_text(path))
    problem = _missing_fields(document)
    if problem:
        raise ProfileError(f"{problem} in {path}")
    return document


def save_profile(path: Path, document: ProfileDocument, backup: bool = True) -> Optional[Path]:
    """Write ``document`` to ``path``; returns the backup path when one was made."""
    path = Path(path)
    backup_path = None
    if backup and path.exists():
        backup_path = path.with_name(path.name + ".backup")
        shutil.copyfile(path, backup_path)
    path.write_text(serialize(document), encoding="utf-8")
    logger.info("Wrote profile %s", path)
    return backup_path
