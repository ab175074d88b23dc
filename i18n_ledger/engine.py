"""
The translation state engine.

Each locale file holds a baseline region followed by an append-only log of
pending updates (``>``-prefixed lines). The engine keeps the baseline
(``state.original``), the working view (``state.updated``) and the log
(``state.updates``) in sync with the files, drops log entries that net to no
change, and compacts the files when the log becomes empty.
"""
import functools
import inspect
import logging
import os
import threading
import time
from contextlib import ExitStack, closing
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Set

from i18n_ledger.app_config import EngineConfig
from i18n_ledger.errors import (
    DuplicateKeyError,
    ExportError,
    I18nError,
    InvalidDirectoryError,
    InvalidFileError,
    InvalidKeyError,
    InvalidLineError,
    InvalidOptionsError,
    KeyExistError,
    KeyNotExistError,
    NoI18nFilesError,
    NotLoadedError,
    NotResolvedError,
    UnappliedChangesError
)
from i18n_ledger.exporter import Exporter, load_export_module, resolve_module_exporter
from i18n_ledger.full_key import compose, decompose
from i18n_ledger.line_codec import (
    KEY_VALUE_SEPARATOR,
    ParsedLine,
    comment_line,
    decode,
    delete_line,
    is_update_line,
    to_update_line,
    value_line
)
from i18n_ledger.scheduling import Debounce, Throttle
from i18n_ledger.state import EngineState, LocaleFile, StateSnapshot, TranslationEntry, snapshot
from i18n_ledger.storage import detect_locale, is_export_file, is_locale_file

logger = logging.getLogger(__name__)

# Operations that bootstrap the state themselves and skip the loaded/error checks
STATELESS_OPERATIONS = ('load', 'connect', 'export')
CALLABLE_OPTIONS = ('on_change',)


def operation(fn):
    """
    Wrap a public engine operation with the validation gate.

    The gate rejects functions passed as option values, and for stateful
    operations requires a completed load without a captured error. Calls are
    serialized on the engine lock and timed in debug mode.
    """
    name = fn.__name__
    signature = inspect.signature(fn)

    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        bound = signature.bind(self, *args, **kwargs)
        for option, value in bound.arguments.items():
            if option != 'self' and option not in CALLABLE_OPTIONS and callable(value):
                raise InvalidOptionsError(name, option)

        with self._lock:
            if name not in STATELESS_OPERATIONS:
                if not self.state.loaded:
                    raise NotLoadedError()
                if self.state.error:
                    raise NotResolvedError(self.state.error) from self.state.error

            if not self._config.debug:
                return fn(self, *args, **kwargs)

            started = time.perf_counter()
            try:
                return fn(self, *args, **kwargs)
            finally:
                logger.debug("%s() took %.1f ms", name, (time.perf_counter() - started) * 1000)

    return wrapper


class TranslationEngine:
    """
    Keeps a directory of locale files and their update logs in memory.

    Example::

        engine = TranslationEngine(EngineConfig(directory='locales'))
        engine.load()
        if engine.state.error:
            ...
        engine.add_key('greeting')
        engine.update_value('app.en.i18n', 'greeting', 'Hello')
        engine.save()
    """

    def __init__(self, config: Optional[EngineConfig] = None, **overrides):
        config = config or EngineConfig()
        self._config = replace(config, **overrides) if overrides else config

        self._auto_export_suppressed = False
        self._export_change_index = 0
        self._last_time_updated = 0.0
        self._lock = threading.RLock()
        self._on_change: Optional[Callable[[StateSnapshot], None]] = None

        self.state = EngineState()

        scheduler = self._config.scheduler
        self._trigger_change = Throttle(scheduler, self._config.change_throttle_s,
                                        self._notify_change, 'change notification')
        self._auto_export = Debounce(scheduler, self._config.auto_export_debounce_s,
                                     self._run_auto_export, 'auto export')

        if self._config.debug:
            logger.debug("Engine created for directory '%s'", self._config.directory)

    @property
    def config(self) -> EngineConfig:
        return self._config

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _reset_state(self) -> None:
        self.state = EngineState()

    def _find_files(self, predicate: Callable[[str], bool]) -> List[LocaleFile]:
        directory = self._config.directory
        if not os.path.isdir(directory):
            raise InvalidDirectoryError(directory)

        return [
            LocaleFile(name=name, path=os.path.join(directory, name), locale=detect_locale(name))
            for name in sorted(self._config.files_in(directory))
            if predicate(name)
        ]

    def _find_locale_files(self) -> List[LocaleFile]:
        return self._find_files(is_locale_file)

    def _find_export_file(self) -> Optional[LocaleFile]:
        files = self._find_files(is_export_file)
        return files[0] if files else None

    def _path_to(self, file_name: str) -> str:
        return os.path.join(self._config.directory, file_name)

    def _validate_key(self, key: Optional[str]) -> None:
        if isinstance(key, str) and key and KEY_VALUE_SEPARATOR not in key:
            return
        raise InvalidKeyError(key)

    def _validate_registered(self, file_name: str, key: str) -> None:
        self._validate_key(key)
        if key not in self.state.keys:
            raise KeyNotExistError(key)
        if not any(file.name == file_name for file in self._find_locale_files()):
            raise InvalidFileError(f"Locale file {file_name!r} does not exist")

    def _touched_keys(self) -> Set[str]:
        return self.state.updates.keys()

    def _resolve_baseline(self, file_name: str, parsed: ParsedLine) -> None:
        full_key = compose(file_name, parsed.key)
        entry = self.state.original.get(full_key)
        if entry is None:
            entry = self.state.original[full_key] = TranslationEntry(parsed.key)
        _assign(entry, parsed)
        self.state.updated[full_key] = entry

    def _apply_line(self, file_name: str, parsed: ParsedLine) -> None:
        """Apply one decoded log line to the working view and the update log."""
        updates = self.state.updates
        full_key = compose(file_name, parsed.key)

        if full_key not in updates.before:
            updates.before[full_key] = self.state.original.get(full_key)

        if parsed.is_delete:
            updates.after.pop(full_key, None)
            self.state.updated.pop(full_key, None)
            self.state.keys.remove(parsed.key)
        else:
            entry = updates.after.get(full_key)
            if entry is None:
                current = self.state.updated.get(full_key)
                entry = current.copy() if current is not None else TranslationEntry(parsed.key)
                updates.after[full_key] = entry
            _assign(entry, parsed)
            self.state.updated[full_key] = entry

        updates.length = len(self._touched_keys())

    def _check_single_line(self, line: str) -> None:
        if '\n' in line or '\r' in line:
            raise InvalidLineError(line)

    def _append_update(self, file_name: str, line: str) -> None:
        update_line = to_update_line(line)
        self._check_single_line(update_line)

        parsed = decode(update_line, 1)
        self._config.append_line(self._path_to(file_name), update_line)
        self._last_time_updated = time.monotonic()

        self._apply_line(file_name, parsed)
        self._optimize_updates()

    def _drop_update(self, full_key: str) -> None:
        self.state.updates.before.pop(full_key, None)
        self.state.updates.after.pop(full_key, None)

    def _optimize_updates(self) -> None:
        """Drop log entries whose working entry matches the baseline again."""
        def drop_if_unchanged(full_key: str) -> None:
            original = self.state.original.get(full_key)
            updated = self.state.updated.get(full_key)
            if original is None and updated is None:
                self._drop_update(full_key)
            elif original is not None and original.same_as(updated):
                self._drop_update(full_key)

        self._change_updates(drop_if_unchanged)

    def _change_updates(self, fn: Callable[[str], None]) -> None:
        update_keys = self._touched_keys()
        if not update_keys:
            return

        for full_key in sorted(update_keys):
            fn(full_key)

        optimized_keys = self._touched_keys()
        self.state.updates.length = len(optimized_keys)

        if not optimized_keys:
            # Every update was reverted, remove the log lines from the files
            logger.debug("Update log became empty, compacting locale files")
            self._save()

    def _save(self) -> None:
        self._last_time_updated = time.monotonic()

        files = self._find_locale_files()
        updated = self.state.updated

        with ExitStack() as stack:
            writers = [stack.enter_context(closing(self._config.line_writer(file.path))) for file in files]

            for key in self.state.keys:
                entries = [updated.get(compose(file.name, key)) or TranslationEntry(key) for file in files]
                has_comment = any((entry.comment or '').strip() for entry in entries)
                has_value = any((entry.value or '').strip() for entry in entries)

                for writer, entry in zip(writers, entries):
                    if has_comment:
                        writer.next(comment_line(key, entry.comment, trim=False))
                    if has_comment or has_value:
                        writer.next(value_line(bool(entry.approved), key, entry.value, trim=False))

        self.state.reset_updates()
        self._last_time_updated = time.monotonic()
        logger.info("Saved %d key(s) to %d locale file(s)", len(self.state.keys), len(files))

        self._trigger_change()
        self._schedule_auto_export()

    def _load_file(self, file: LocaleFile) -> None:
        # A key may appear once per line kind in a file
        value_keys: Set[str] = set()
        comment_keys: Set[str] = set()
        update_lines = []

        with closing(self._config.line_reader(file.path)) as reader:
            line_number = 0
            while True:
                line = reader.next()
                if line is None:
                    break
                line_number += 1

                if not line.strip():
                    continue

                if is_update_line(line):
                    update_lines.append((line_number, line))
                    continue

                try:
                    parsed = decode(line)
                    if parsed.is_delete:
                        raise InvalidLineError(line)

                    target_keys = comment_keys if parsed.is_comment else value_keys
                    if parsed.key in target_keys:
                        raise DuplicateKeyError(parsed.type + parsed.key)
                    target_keys.add(parsed.key)

                    self._resolve_baseline(file.name, parsed)
                except I18nError as e:
                    if e.state_error:
                        e.annotate(file.name, line_number)
                    raise

        for line_number, line in update_lines:
            try:
                parsed = decode(line, 1)
            except I18nError as e:
                e.annotate(file.name, line_number)
                raise

            self._apply_line(file.name, parsed)

    def _notify_change(self) -> None:
        with self._lock:
            try:
                if self._on_change:
                    self._on_change(self.snapshot())
            finally:
                self.state.keys.changed = False

    def _schedule_auto_export(self) -> None:
        if self._config.auto_export and not self._auto_export_suppressed:
            self._auto_export()

    def _run_auto_export(self) -> None:
        if not self._config.auto_export:
            return
        with self._lock:
            # The export may write into the watched directory
            self._last_time_updated = time.monotonic()
            self.export(options={'type': 'auto'})
            self._last_time_updated = time.monotonic()

    def _export(self, export_options: Dict[str, Any], exporter: Exporter) -> None:
        started = time.perf_counter()
        try:
            validate = getattr(exporter, 'validate', None)
            if validate is not None:
                validate(export_options, self.snapshot())

            for file in self._find_locale_files():
                handle = exporter.open(export_options, file)
                for key in self.state.keys:
                    entry = self.state.updated.get(compose(file.name, key))
                    if entry is not None:
                        exporter.write(handle, entry.copy())
                exporter.close(handle, file)
        except Exception as e:
            raise ExportError(e) from e
        finally:
            if self._config.debug:
                logger.debug("Export took %.1f ms", (time.perf_counter() - started) * 1000)

        logger.info("Exported %d key(s) (%s)", len(self.state.keys), export_options.get('type'))

    def _on_watch_event(self, event_type: str, file_name: str, reload: Throttle) -> None:
        if is_export_file(file_name):
            with self._lock:
                self._export_change_index += 1
                logger.debug("Export module changed (%s), version %d", event_type, self._export_change_index)
                self._schedule_auto_export()
            return

        if is_locale_file(file_name):
            if self._last_time_updated + self._config.ignore_changes_s < time.monotonic():
                logger.debug("Locale file '%s' changed (%s), reloading", file_name, event_type)
                reload()
            else:
                logger.debug("Ignoring %s of '%s' right after own write", event_type, file_name)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def snapshot(self) -> StateSnapshot:
        """Return a read-only copy of the current state."""
        with self._lock:
            return snapshot(self.state, tuple(self._find_locale_files()))

    @operation
    def connect(self, on_change: Optional[Callable[[StateSnapshot], None]] = None) -> Callable[[], None]:
        """
        Load the translations if needed and watch the directory for changes.

        Returns:
            A function that stops watching and detaches ``on_change``.
        """
        directory = self._config.directory
        if not os.path.isdir(directory):
            raise InvalidDirectoryError(directory)

        if not self.state.loaded:
            self.load()

        self._on_change = on_change

        # Several files may change at once, e.g. on a checkout
        reload = Throttle(self._config.scheduler, self._config.reload_throttle_s, self.load, 'reload')

        def on_event(event_type: str, file_name: str) -> None:
            self._on_watch_event(event_type, file_name, reload)

        watcher = self._config.watcher(directory, on_event, self._config.watch_poll_interval_s)
        logger.info("Connected to '%s'", directory)

        def disconnect() -> None:
            self._on_change = None
            reload.cancel()
            watcher.close()
            logger.info("Disconnected from '%s'", directory)

        return disconnect

    @operation
    def load(self) -> None:
        """
        Read every locale file and replay its update log.

        Broken content (invalid lines, duplicated keys) does not raise: it is
        stored in ``state.error`` and every stateful operation is rejected
        until a later load succeeds.
        """
        self._load()

    def _load(self) -> None:
        self._reset_state()
        files = []

        try:
            files = self._find_locale_files()

            for file in files:
                self._load_file(file)

            # A key stays registered while any file still has a working entry for it
            self.state.keys.rebuild(decompose(full_key)[1] for full_key in self.state.updated)
            self._optimize_updates()
        except I18nError as e:
            if not e.state_error:
                raise
            self.state.error = e
            logger.error("Failed to load translations: %s", e)
        finally:
            self.state.loaded = True

        if not self.state.error:
            logger.info("Loaded %d key(s) from %d locale file(s), %d pending update(s)",
                        len(self.state.keys), len(files), self.state.updates.length)

        self._trigger_change()
        self._schedule_auto_export()

    @operation
    def save(self) -> None:
        """Rewrite the baselines from the current state and clear the update log."""
        self._save()

    @operation
    def export(self, options: Optional[Dict[str, Any]] = None) -> None:
        """
        Export the working view through the configured exporter.

        Without ``EngineConfig.exporter`` the ``i18n_export.py`` module of the
        directory is used. Nothing happens when neither exists.
        """
        export_file = self._find_export_file()
        exporter = self._config.exporter
        if export_file is None and exporter is None:
            return

        export_options: Dict[str, Any] = {'type': 'manual', 'config': self._config}
        export_options.update(options or {})

        if export_options['type'] == 'auto':
            if not self.state.loaded:
                raise NotLoadedError()
        elif not self.state.loaded:
            # The load made for this export must not queue another one
            self._auto_export_suppressed = True
            try:
                self._load()
            finally:
                self._auto_export_suppressed = False

        if self.state.error:
            raise NotResolvedError(self.state.error) from self.state.error

        if exporter is None:
            try:
                module = load_export_module(export_file.path, self._export_change_index)
                exporter = resolve_module_exporter(module)
            except Exception as e:
                raise ExportError(e) from e

        self._export(export_options, exporter)

    @operation
    def translation(self, file_name: str, key: str) -> Optional[TranslationEntry]:
        """Return a copy of the working entry of ``key`` in ``file_name``."""
        entry = self.state.updated.get(compose(file_name, key))
        return entry.copy() if entry is not None else None

    @operation
    def add_file(self, file_name: str) -> None:
        if self.state.updates.length:
            raise UnappliedChangesError()

        if not file_name:
            raise InvalidFileError("File name can't be empty")

        if not is_locale_file(file_name):
            raise InvalidFileError(f"File name {file_name!r} is not a locale file name (*.i18n)")

        if any(file.name == file_name for file in self._find_locale_files()):
            raise InvalidFileError(f"File with name {file_name!r} already exists")

        try:
            self._config.create_file(self._path_to(file_name))
        except OSError as e:
            raise InvalidFileError(str(e)) from e

        logger.info("Added locale file '%s'", file_name)
        self._save()

    @operation
    def delete_file(self, file_name: str) -> None:
        if self.state.updates.length:
            raise UnappliedChangesError()

        if not file_name:
            raise InvalidFileError("File name can't be empty")

        if not any(file.name == file_name for file in self._find_locale_files()):
            return

        try:
            self._config.delete_file(self._path_to(file_name))
        except OSError as e:
            raise InvalidFileError(str(e)) from e

        prefix = compose(file_name, '')
        for entries in (self.state.original, self.state.updated):
            for full_key in [k for k in entries if k.startswith(prefix)]:
                del entries[full_key]

        logger.info("Deleted locale file '%s'", file_name)
        self._save()

    @operation
    def add_key(self, key: str) -> None:
        self._validate_key(key)
        self._check_single_line(delete_line(key))

        sorted_index = self.state.keys.sorted_index_of(key)
        if sorted_index == -1:
            raise KeyExistError(key)

        files = self._find_locale_files()
        if not files:
            raise NoI18nFilesError()

        self.state.keys.insert(sorted_index, key)

        for file in files:
            self._append_update(file.name, value_line(False, key, ''))

        self._trigger_change()

    @operation
    def copy_key(self, from_key: str, to_key: str) -> None:
        if from_key == to_key:
            return

        self._validate_key(from_key)
        self._validate_key(to_key)
        self._check_single_line(delete_line(to_key))

        files = self._find_locale_files()
        if not files:
            raise NoI18nFilesError()

        if self.state.keys.index_of(from_key) == -1:
            raise KeyNotExistError(from_key)

        sorted_index = self.state.keys.sorted_index_of(to_key)
        if sorted_index == -1:
            raise KeyExistError(to_key)

        self.state.keys.insert(sorted_index, to_key)

        for file in files:
            source = self.state.updated.get(compose(file.name, from_key)) or TranslationEntry(from_key)
            self.update_translation(file.name, to_key, value=source.value,
                                    comment=source.comment, approved=bool(source.approved))

    @operation
    def rename_key(self, from_key: str, to_key: str) -> None:
        if from_key == to_key:
            return

        self._validate_key(from_key)
        self._validate_key(to_key)

        self.copy_key(from_key, to_key)
        self.delete_key(from_key)

    @operation
    def delete_key(self, key: str) -> None:
        self._validate_key(key)

        if not self.state.keys.remove(key):
            return

        for file in self._find_locale_files():
            self._append_update(file.name, delete_line(key))

        self._trigger_change()

    @operation
    def update_value(self, file_name: str, key: str, value: Optional[str] = None) -> None:
        self._validate_registered(file_name, key)
        self._append_update(file_name, value_line(False, key, value))
        self._trigger_change()

    @operation
    def update_approved(self, file_name: str, key: str, approved: bool = False) -> None:
        self._validate_registered(file_name, key)
        entry = self.state.updated.get(compose(file_name, key))
        value = entry.value if entry is not None else None
        self._append_update(file_name, value_line(approved, key, value))
        self._trigger_change()

    @operation
    def update_comment(self, file_name: str, key: str, comment: Optional[str] = None) -> None:
        self._validate_registered(file_name, key)
        self._append_update(file_name, comment_line(key, comment))
        self._trigger_change()

    @operation
    def update_translation(self, file_name: str, key: str, value: Optional[str] = None,
                           comment: Optional[str] = None, approved: bool = False) -> None:
        self._validate_registered(file_name, key)
        self._append_update(file_name, comment_line(key, comment))
        self._append_update(file_name, value_line(approved, key, value))
        self._trigger_change()

    @operation
    def revert(self, file_name: Optional[str] = None, key: Optional[str] = None) -> None:
        """Undo the pending updates of a file, a key, both, or everything when neither is given."""
        file_names = [file.name for file in self._find_locale_files()]

        def revert_update(full_key: str) -> None:
            entry_file, entry_key = decompose(full_key)
            if (file_name and file_name != entry_file) or (key and key != entry_key):
                return

            original = self.state.original.get(full_key)
            if entry_file in file_names:
                # The log must still replay to the reverted entry if it isn't compacted
                if original is not None:
                    restore = [comment_line(entry_key, original.comment),
                               value_line(bool(original.approved), entry_key, original.value)]
                else:
                    restore = [delete_line(entry_key)]
                for line in restore:
                    self._config.append_line(self._path_to(entry_file), to_update_line(line))
                self._last_time_updated = time.monotonic()

            if original is not None:
                self.state.updated[full_key] = original.copy()
                self.state.keys.add(entry_key)
            else:
                self.state.updated.pop(full_key, None)
                if not any(compose(name, entry_key) in self.state.updated for name in file_names):
                    self.state.keys.remove(entry_key)

            self._drop_update(full_key)

        self._change_updates(revert_update)
        self._trigger_change()


def _assign(entry: TranslationEntry, parsed: ParsedLine) -> None:
    if parsed.is_comment:
        entry.comment = parsed.value
    else:
        entry.value = parsed.value
        entry.approved = parsed.approved
