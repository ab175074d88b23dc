"""
Command line interface of i18n-ledger.

Commands:
  check        Load the locale files and report their state
  compact      Apply the update log to the baselines
  add-key      Add a key to every locale file
  copy-key     Copy a key with its translations
  rename-key   Rename a key in every locale file
  delete-key   Delete a key from every locale file
  set-value    Set the value of a key in one locale file
  set-comment  Set the comment of a key in one locale file
  revert       Drop pending updates
  add-file     Create a locale file
  delete-file  Delete a locale file
  export       Run the exporter
  watch        Watch the directory and export on changes

Usage:
  i18n-ledger --directory locales check
  i18n-ledger --directory locales set-value app.fr.i18n greeting "Bonjour" --approved
"""
import argparse
import logging
import sys
import time
from typing import List, Optional

from i18n_ledger.app_config import ConfigError, load_app_config
from i18n_ledger.engine import TranslationEngine
from i18n_ledger.errors import I18nError
from i18n_ledger.logging_config import LOGGER_NAME
from i18n_ledger.scheduling import ManualScheduler, TimerScheduler

logger = logging.getLogger(LOGGER_NAME)


def cmd_check(engine: TranslationEngine, args) -> int:
    """Report files, keys and pending updates. Fails on broken content."""
    state = engine.snapshot()
    if state.error:
        print(f"\n  Locale files are broken: {state.error}")
        return 1

    print(f"\n  Directory:       {engine.config.directory}")
    print(f"  Locale files:    {len(state.files)}")
    for file in state.files:
        print(f"    {file.name:<30} {file.locale or '(base)'}")
    print(f"  Keys:            {len(state.keys)}")
    print(f"  Pending updates: {state.updates_length}")
    return 0


def cmd_compact(engine: TranslationEngine, args) -> int:
    engine.save()
    print(f"\n  Compacted {len(engine.state.keys)} key(s)")
    return 0


def cmd_add_key(engine: TranslationEngine, args) -> int:
    engine.add_key(args.key)
    return 0


def cmd_copy_key(engine: TranslationEngine, args) -> int:
    engine.copy_key(args.from_key, args.to_key)
    return 0


def cmd_rename_key(engine: TranslationEngine, args) -> int:
    engine.rename_key(args.from_key, args.to_key)
    return 0


def cmd_delete_key(engine: TranslationEngine, args) -> int:
    engine.delete_key(args.key)
    return 0


def cmd_set_value(engine: TranslationEngine, args) -> int:
    entry = engine.translation(args.file, args.key)
    comment = entry.comment if entry is not None else None
    engine.update_translation(args.file, args.key, value=args.value, comment=comment, approved=args.approved)
    return 0


def cmd_set_comment(engine: TranslationEngine, args) -> int:
    engine.update_comment(args.file, args.key, args.comment)
    return 0


def cmd_revert(engine: TranslationEngine, args) -> int:
    engine.revert(file_name=args.file, key=args.key)
    print(f"\n  Pending updates left: {engine.state.updates.length}")
    return 0


def cmd_add_file(engine: TranslationEngine, args) -> int:
    engine.add_file(args.name)
    return 0


def cmd_delete_file(engine: TranslationEngine, args) -> int:
    engine.delete_file(args.name)
    return 0


def cmd_export(engine: TranslationEngine, args) -> int:
    engine.export()
    return 0


def cmd_watch(engine: TranslationEngine, args) -> int:
    def on_change(state):
        if state.error:
            logger.error("Locale files are broken: %s", state.error)
        else:
            logger.info("%d key(s), %d pending update(s)", len(state.keys), state.updates_length)

    disconnect = engine.connect(on_change=on_change)
    print(f"\n  Watching {engine.config.directory}, press Ctrl+C to stop")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        disconnect()
    return 0


COMMANDS = {
    'check': cmd_check,
    'compact': cmd_compact,
    'add-key': cmd_add_key,
    'copy-key': cmd_copy_key,
    'rename-key': cmd_rename_key,
    'delete-key': cmd_delete_key,
    'set-value': cmd_set_value,
    'set-comment': cmd_set_comment,
    'revert': cmd_revert,
    'add-file': cmd_add_file,
    'delete-file': cmd_delete_file,
    'export': cmd_export,
    'watch': cmd_watch,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="i18n-ledger",
        description="Manage locale files with an append-only update log",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  i18n-ledger --directory locales check
  i18n-ledger --directory locales add-key menu.open
  i18n-ledger --directory locales set-value app.de.i18n menu.open "Öffnen" --approved
  i18n-ledger --directory locales compact
        """
    )
    parser.add_argument("--config", default=None, help="Path to the YAML configuration file")
    parser.add_argument("--directory", default=None, help="Directory with the locale files")
    parser.add_argument("--auto-export", action="store_true", default=None,
                        help="Export after every change")
    parser.add_argument("--debug", action="store_true", default=None, help="Verbose logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("check", help="Load and report the state")
    subparsers.add_parser("compact", help="Apply the update log to the baselines")

    p_add = subparsers.add_parser("add-key", help="Add a key")
    p_add.add_argument("key")

    for name, help_text in (("copy-key", "Copy a key"), ("rename-key", "Rename a key")):
        p_pair = subparsers.add_parser(name, help=help_text)
        p_pair.add_argument("from_key")
        p_pair.add_argument("to_key")

    p_delete = subparsers.add_parser("delete-key", help="Delete a key")
    p_delete.add_argument("key")

    p_value = subparsers.add_parser("set-value", help="Set a value")
    p_value.add_argument("file")
    p_value.add_argument("key")
    p_value.add_argument("value")
    p_value.add_argument("--approved", action="store_true", help="Mark the value as approved")

    p_comment = subparsers.add_parser("set-comment", help="Set a comment")
    p_comment.add_argument("file")
    p_comment.add_argument("key")
    p_comment.add_argument("comment")

    p_revert = subparsers.add_parser("revert", help="Drop pending updates")
    p_revert.add_argument("--file", default=None, help="Only updates of this locale file")
    p_revert.add_argument("--key", default=None, help="Only updates of this key")

    p_add_file = subparsers.add_parser("add-file", help="Create a locale file")
    p_add_file.add_argument("name")

    p_delete_file = subparsers.add_parser("delete-file", help="Delete a locale file")
    p_delete_file.add_argument("name")

    subparsers.add_parser("export", help="Run the exporter")
    subparsers.add_parser("watch", help="Watch the directory")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    overrides = {
        name: value for name, value in (
            ('directory', args.directory),
            ('auto_export', args.auto_export),
            ('debug', args.debug),
        ) if value is not None
    }
    # One-shot commands run the deferred notifications and exports before exiting
    overrides['scheduler'] = TimerScheduler() if args.command == 'watch' else ManualScheduler()

    try:
        config = load_app_config(args.config, **overrides)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    engine = TranslationEngine(config)
    try:
        if args.command != 'watch':
            engine.load()
        result = COMMANDS[args.command](engine, args)
        if isinstance(config.scheduler, ManualScheduler):
            config.scheduler.run_pending()
        return result
    except I18nError as e:
        logger.error("%s failed: %s", args.command, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
