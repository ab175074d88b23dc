import json
import os
import textwrap

import pytest

from i18n_ledger.exporter import JsonExporter, load_export_module, resolve_module_exporter
from i18n_ledger.state import LocaleFile, TranslationEntry


def write_module(directory, body):
    path = os.path.join(directory, 'i18n_export.py')
    with open(path, 'w', encoding='utf-8') as f:
        f.write(textwrap.dedent(body))
    return path


def test_module_versions_are_loaded_separately(tmp_path):
    path = write_module(str(tmp_path), """
        VERSION = 1

        def open(options, file):
            return []

        def write(handle, entry):
            handle.append(entry)

        def close(handle, file):
            pass
    """)
    first = load_export_module(path, 0)

    write_module(str(tmp_path), """
        VERSION = 2

        def open(options, file):
            return []

        def write(handle, entry):
            handle.append(entry)

        def close(handle, file):
            pass
    """)
    second = load_export_module(path, 1)

    assert first.VERSION == 1
    assert second.VERSION == 2
    assert first.__name__ != second.__name__


def test_same_second_edits_are_not_served_from_bytecode_cache(tmp_path):
    path = write_module(str(tmp_path), "VERSION = 1\n")
    os.utime(path, (1_700_000_000, 1_700_000_000))
    first = load_export_module(path, 0)

    write_module(str(tmp_path), "VERSION = 2\n")
    os.utime(path, (1_700_000_000, 1_700_000_000))
    second = load_export_module(path, 1)

    assert (first.VERSION, second.VERSION) == (1, 2)
    assert not os.path.exists(tmp_path / '__pycache__')


def test_resolve_prefers_exporter_attribute(tmp_path):
    path = write_module(str(tmp_path), """
        class _Exporter:
            def open(self, options, file):
                return file.name

            def write(self, handle, entry):
                pass

            def close(self, handle, file):
                pass

        exporter = _Exporter()
    """)
    module = load_export_module(path, 0)
    assert resolve_module_exporter(module) is module.exporter


def test_resolve_rejects_incomplete_module(tmp_path):
    path = write_module(str(tmp_path), """
        def open(options, file):
            return None
    """)
    module = load_export_module(path, 0)
    with pytest.raises(AttributeError, match="write"):
        resolve_module_exporter(module)


def test_json_exporter_writes_values_per_locale(tmp_path):
    output = tmp_path / 'out'
    exporter = JsonExporter(str(output))
    exporter.validate({}, None)

    for file in (LocaleFile('app.fr.i18n', '/x/app.fr.i18n', 'fr'), LocaleFile('app.i18n', '/x/app.i18n')):
        handle = exporter.open({}, file)
        exporter.write(handle, TranslationEntry('hello', value='Salut', approved=True))
        exporter.write(handle, TranslationEntry('only.comment', comment='note'))
        exporter.close(handle, file)

    with open(output / 'fr.json', encoding='utf-8') as f:
        assert json.load(f) == {'hello': 'Salut'}
    assert (output / 'app.json').exists()
