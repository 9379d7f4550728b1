"""Command-line entry point for the unlocksync profile editor."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

from unlocksync.core.catalog import CatalogRepository, Dlc
from unlocksync.core.profile import (
    ProfileDocument,
    ProfileError,
    apply,
    extract,
    load_profile,
    read_profile_text,
    save_profile,
    validate,
)
from unlocksync.core.settings import SettingsStore
from unlocksync.core.state import UnlockState, counter_value
from unlocksync.core.stats import tracked_counters
from unlocksync.core.summary import achievement_summary, logbook_summary, survivor_summary
from unlocksync.core.sync import SyncEngine, default_engine

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    """Configure application-wide logging with a standard format."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def build_engine(settings: SettingsStore, catalog_dir: Optional[str] = None) -> SyncEngine:
    """Engine over ``catalog_dir``, the configured catalog directory, or the bundled catalog."""
    directory = Path(catalog_dir) if catalog_dir else settings.catalog_dir
    if directory is None:
        return default_engine()
    return SyncEngine(CatalogRepository(directory).catalog)


def _on_off(value: str) -> bool:
    value = value.lower()
    if value in ("on", "true", "1", "yes"):
        return True
    if value in ("off", "false", "0", "no"):
        return False
    raise argparse.ArgumentTypeError(f"expected on or off, got {value!r}")


CAREER_STATS = (
    ("games played", "totalGamesPlayed"),
    ("stages", "totalStagesCompleted"),
    ("kills", "totalKills"),
    ("deaths", "totalDeaths"),
)

# Commands that only touch settings or raw files and run without a catalog.
ENGINE_FREE_COMMANDS = {"validate", "coins", "rename", "dlc", "catalog-dir"}


def _print_summary(engine: SyncEngine, state: UnlockState) -> None:
    achievements = achievement_summary(state, engine.catalog)
    print(f"Achievements: {achievements.unlocked}/{achievements.total}")
    for category, unlocked in achievements.by_category.items():
        print(f"  {category.value:<13} {unlocked}")

    logbook = logbook_summary(state, engine.catalog, engine.resolver)
    print(f"Logbook: {logbook.unlocked}/{logbook.total}")
    for category, count in logbook.by_category.items():
        print(f"  {category.value:<13} {count.unlocked}/{count.total}")

    survivors = survivor_summary(state, engine.catalog, engine.survivors)
    print(f"Survivors: {survivors.unlocked}/{survivors.total}")

    print("Career:")
    for label, name in CAREER_STATS:
        print(f"  {label:<13} {counter_value(state, name)}")
    print(f"Tracked counters: {len(tracked_counters(state.counters))}")


def _write(args: argparse.Namespace, document: ProfileDocument) -> None:
    target = Path(args.output) if args.output else Path(args.profile)
    backup = save_profile(target, document, backup=not args.no_backup)
    if backup is not None:
        print(f"Backup written to {backup}")


def _edit(args: argparse.Namespace, engine: SyncEngine, change: Callable[[UnlockState], UnlockState]) -> int:
    document = load_profile(args.profile)
    state = extract(document)
    updated = change(state)
    if updated == state:
        print("No changes.")
        return 0

    _write(args, apply(document, updated))
    _print_summary(engine, updated)
    return 0


def _edit_header(args: argparse.Namespace, change: Callable[[ProfileDocument], None]) -> int:
    document = load_profile(args.profile)
    updated = document.copy()
    change(updated)
    if (updated.name, updated.coins) == (document.name, document.coins):
        print("No changes.")
        return 0

    _write(args, updated)
    print(f"Profile: {updated.name} ({updated.coins} coins)")
    return 0


def cmd_summary(args: argparse.Namespace, engine: SyncEngine, settings: SettingsStore) -> int:
    document = load_profile(args.profile)
    print(f"Profile: {document.name} ({document.coins} coins)")
    _print_summary(engine, extract(document))
    return 0


def cmd_validate(args: argparse.Namespace, engine: Optional[SyncEngine], settings: SettingsStore) -> int:
    problem = validate(read_profile_text(args.profile))
    if problem:
        print(f"{args.profile}: {problem}")
        return 1
    print(f"{args.profile}: OK")
    return 0


def cmd_coins(args: argparse.Namespace, engine: Optional[SyncEngine], settings: SettingsStore) -> int:
    def change(document: ProfileDocument) -> None:
        document.coins = args.amount

    return _edit_header(args, change)


def cmd_rename(args: argparse.Namespace, engine: Optional[SyncEngine], settings: SettingsStore) -> int:
    def change(document: ProfileDocument) -> None:
        document.name = args.name

    return _edit_header(args, change)


def cmd_achievement(args: argparse.Namespace, engine: SyncEngine, settings: SettingsStore) -> int:
    if engine.catalog.challenge_by_achievement(args.id) is None:
        logger.warning("Unknown achievement %s", args.id)
    return _edit(args, engine, lambda state: engine.toggle_achievement(state, args.id, args.state))


def cmd_entry(args: argparse.Namespace, engine: SyncEngine, settings: SettingsStore) -> int:
    if engine.catalog.entry(args.id) is None:
        logger.warning("Unknown logbook entry %s", args.id)
    return _edit(args, engine, lambda state: engine.toggle_entry_by_id(state, args.id, args.state))


def cmd_unlock_all(args: argparse.Namespace, engine: SyncEngine, settings: SettingsStore) -> int:
    return _edit(args, engine, lambda state: engine.unlock_all(state, settings.allowed_dlcs()))


def cmd_lock_all(args: argparse.Namespace, engine: SyncEngine, settings: SettingsStore) -> int:
    return _edit(args, engine, engine.lock_all)


def cmd_unlock_logbook(args: argparse.Namespace, engine: SyncEngine, settings: SettingsStore) -> int:
    return _edit(args, engine, lambda state: engine.unlock_all_logbook(state, settings.allowed_dlcs()))


def cmd_lock_logbook(args: argparse.Namespace, engine: SyncEngine, settings: SettingsStore) -> int:
    return _edit(args, engine, engine.lock_all_logbook)


def cmd_diagnose(args: argparse.Namespace, engine: SyncEngine, settings: SettingsStore) -> int:
    stats = engine.graph.mapping_stats()
    print(f"Challenges linked to the logbook: {stats.challenges_with_logbook}/{stats.total_challenges}")
    print(f"Logbook entries linked to challenges: {stats.logbook_with_challenges}/{stats.total_logbook_entries}")
    print(f"Mapped items: {stats.items_mapped}, mapped equipment: {stats.equipment_mapped}")

    unmapped = engine.graph.find_unmapped_challenge_unlocks()
    if not unmapped:
        print("Every item and equipment unlock has a logbook entry.")
        return 0
    print(f"Unlocks without a logbook entry: {len(unmapped)}")
    for item in unmapped:
        print(f"  {item.challenge.achievement}: {item.unlock_id}")
    return 0


def cmd_dlc(args: argparse.Namespace, engine: Optional[SyncEngine], settings: SettingsStore) -> int:
    if args.reset:
        settings.reset()
    for dlc in args.own or []:
        settings.set_owned(dlc, True)
    for dlc in args.disown or []:
        settings.set_owned(dlc, False)
    for dlc, owned in settings.owned_dlcs.items():
        print(f"{dlc.value:<5} {'owned' if owned else 'not owned'}")
    return 0


def cmd_catalog_dir(args: argparse.Namespace, engine: Optional[SyncEngine], settings: SettingsStore) -> int:
    if args.clear:
        settings.set_catalog_dir(None)
    elif args.path:
        try:
            CatalogRepository(args.path)
        except (FileNotFoundError, ValueError) as e:
            print(f"error: catalog: {e}", file=sys.stderr)
            return 1
        settings.set_catalog_dir(Path(args.path))

    current = settings.catalog_dir
    print(f"Catalog directory: {current if current is not None else 'bundled'}")
    return 0


COMMANDS: Dict[str, Callable[[argparse.Namespace, Optional[SyncEngine], SettingsStore], int]] = {
    "summary": cmd_summary,
    "validate": cmd_validate,
    "coins": cmd_coins,
    "rename": cmd_rename,
    "achievement": cmd_achievement,
    "entry": cmd_entry,
    "unlock-all": cmd_unlock_all,
    "lock-all": cmd_lock_all,
    "unlock-logbook": cmd_unlock_logbook,
    "lock-logbook": cmd_lock_logbook,
    "diagnose": cmd_diagnose,
    "dlc": cmd_dlc,
    "catalog-dir": cmd_catalog_dir,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="unlocksync",
        description="Edit achievements, unlocks and logbook entries in a game profile.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--catalog", default=None, help="Directory with challenges.yaml and logbook.yaml")
    parser.add_argument("--settings", default=None, help="Settings file (default: ~/.unlocksync/settings.json)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_summary = sub.add_parser("summary", help="Show unlock counts")
    p_summary.add_argument("profile", help="Path to the profile XML")

    p_validate = sub.add_parser("validate", help="Check that a file is a usable profile")
    p_validate.add_argument("profile", help="Path to the profile XML")

    def editing(name: str, help_text: str) -> argparse.ArgumentParser:
        p = sub.add_parser(name, help=help_text)
        p.add_argument("profile", help="Path to the profile XML")
        p.add_argument("-o", "--output", default=None, help="Write here instead of over the profile")
        p.add_argument("--no-backup", action="store_true", help="Do not keep a .backup copy")
        return p

    p_coins = editing("coins", "Set the lunar coin balance")
    p_coins.add_argument("amount", type=int, help="New balance, clamped to the valid range")

    p_rename = editing("rename", "Change the profile name")
    p_rename.add_argument("name", help="New profile name")

    p_ach = editing("achievement", "Enable or disable one achievement")
    p_ach.add_argument("id", help="Achievement id, e.g. FreeMage")
    p_ach.add_argument("state", type=_on_off, help="on or off")

    p_entry = editing("entry", "Enable or disable one logbook entry")
    p_entry.add_argument("id", help="Logbook entry id")
    p_entry.add_argument("state", type=_on_off, help="on or off")

    editing("unlock-all", "Unlock every challenge and logbook entry for owned DLCs")
    editing("lock-all", "Lock everything and clear progress counters")
    editing("unlock-logbook", "Unlock every logbook entry for owned DLCs")
    editing("lock-logbook", "Lock every logbook entry and its linked challenges")

    sub.add_parser("diagnose", help="Report challenge unlocks without a logbook entry")

    p_dlc = sub.add_parser("dlc", help="Show or change DLC ownership")
    dlc_values = [dlc.value for dlc in Dlc if dlc != Dlc.BASE]
    p_dlc.add_argument("--own", action="append", choices=dlc_values, help="Mark a DLC as owned")
    p_dlc.add_argument("--disown", action="append", choices=dlc_values, help="Mark a DLC as not owned")
    p_dlc.add_argument("--reset", action="store_true", help="Forget all settings before applying changes")

    p_catalog = sub.add_parser("catalog-dir", help="Show or change the catalog directory")
    group = p_catalog.add_mutually_exclusive_group()
    group.add_argument("path", nargs="?", default=None, help="Directory with the catalog YAML files")
    group.add_argument("--clear", action="store_true", help="Go back to the bundled catalog")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    settings = SettingsStore(Path(args.settings) if args.settings else None)
    engine = None
    if args.command not in ENGINE_FREE_COMMANDS:
        try:
            engine = build_engine(settings, args.catalog)
        except (FileNotFoundError, ValueError) as e:
            print(f"error: catalog: {e}", file=sys.stderr)
            return 1

    try:
        return COMMANDS[args.command](args, engine, settings)
    except ProfileError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


def run() -> None:
    """Console-script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
