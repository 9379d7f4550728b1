from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, FrozenSet, Optional

from unlocksync.core.catalog import Dlc

logger = logging.getLogger(__name__)


def _default_owned() -> Dict[str, bool]:
    return {dlc.value: True for dlc in Dlc}


class SettingsStore:
    """Stores editor settings across runs.
    File: ~/.unlocksync/settings.json. Every DLC counts as owned until the user says otherwise."""

    def __init__(self, file_path: Optional[Path] = None) -> None:
        self._file_path = Path(file_path) if file_path is not None else Path.home() / ".unlocksync" / "settings.json"
        self._owned, self._catalog_dir = self._load()

    @property
    def file_path(self) -> Path:
        return self._file_path

    @property
    def owned_dlcs(self) -> Dict[Dlc, bool]:
        return {dlc: self._owned.get(dlc.value, True) for dlc in Dlc}

    @property
    def catalog_dir(self) -> Optional[Path]:
        return self._catalog_dir

    def allowed_dlcs(self) -> FrozenSet[Dlc]:
        """DLCs bulk unlocks may touch. The base game is always included."""
        return frozenset(dlc for dlc, owned in self.owned_dlcs.items() if owned or dlc == Dlc.BASE)

    def set_owned(self, dlc: Dlc, owned: bool) -> None:
        dlc = Dlc(dlc)
        if dlc == Dlc.BASE and not owned:
            logger.warning("The base game cannot be disowned")
            return
        self._owned[dlc.value] = owned
        self._save()

    def set_catalog_dir(self, path: Optional[Path]) -> None:
        self._catalog_dir = Path(path) if path is not None else None
        self._save()

    def reset(self) -> None:
        self._owned = _default_owned()
        self._catalog_dir = None
        self._save()

    def _load(self):
        owned = _default_owned()
        if not self._file_path.exists():
            return owned, None
        try:
            payload = json.loads(self._file_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not load settings from %s: %s", self._file_path, e)
            return owned, None
        if not isinstance(payload, dict):
            logger.warning("Ignoring malformed settings in %s", self._file_path)
            return owned, None

        stored = payload.get("owned_dlcs", {})
        if isinstance(stored, dict):
            for key, value in stored.items():
                if key in owned:
                    owned[key] = bool(value)
        owned[Dlc.BASE.value] = True

        catalog_dir = payload.get("catalog_dir")
        return owned, Path(catalog_dir) if isinstance(catalog_dir, str) and catalog_dir else None

    def _save(self) -> None:
        payload = {
            "owned_dlcs": dict(self._owned),
            "catalog_dir": str(self._catalog_dir) if self._catalog_dir is not None else None,
        }
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as e:
            logger.warning("Could not save settings to %s: %s", self._file_path, e)
