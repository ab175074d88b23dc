import os

import pytest

from i18n_ledger.app_config import EngineConfig
from i18n_ledger.engine import TranslationEngine
from i18n_ledger.scheduling import ManualScheduler


class FakeWatcher:
    """Watcher double: tests emit events by calling ``emit``."""

    def __init__(self, directory, callback, interval):
        self.directory = directory
        self.callback = callback
        self.interval = interval
        self.closed = False

    def emit(self, event_type, file_name):
        self.callback(event_type, file_name)

    def close(self):
        self.closed = True


def write_locale_files(directory, files):
    """Create locale files from a mapping of file name to content."""
    for name, content in files.items():
        with open(os.path.join(directory, name), 'w', encoding='utf-8', newline='\n') as f:
            f.write(content)


def read_file(directory, name):
    with open(os.path.join(directory, name), 'r', encoding='utf-8', newline='') as f:
        return f.read()


@pytest.fixture
def locale_dir(tmp_path):
    directory = tmp_path / "locales"
    directory.mkdir()
    return str(directory)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def watchers():
    return []


@pytest.fixture
def make_engine(locale_dir, scheduler, watchers):
    """
    Factory creating an engine over ``locale_dir`` driven by the manual scheduler.

    Locale files given as keyword ``files`` are written before the engine is
    created; other keyword arguments override EngineConfig fields.
    """
    def factory(files=None, load=True, **overrides):
        if files:
            write_locale_files(locale_dir, files)

        def watcher(directory, callback, interval):
            fake = FakeWatcher(directory, callback, interval)
            watchers.append(fake)
            return fake

        values = {'directory': locale_dir, 'scheduler': scheduler, 'watcher': watcher}
        values.update(overrides)
        engine = TranslationEngine(EngineConfig(**values))
        if load:
            engine.load()
            scheduler.run_pending()
        return engine

    return factory
