"""Exporter contract, export module loading and the built-in JSON exporter."""
import importlib.machinery
import importlib.util
import json
import logging
import os
import re
from typing import Any, Dict, Optional, Protocol

from i18n_ledger.state import LocaleFile, TranslationEntry
from i18n_ledger.storage import LOCALE_FILE_EXTENSION

logger = logging.getLogger(__name__)


class Exporter(Protocol):
    """
    Hooks called by ``TranslationEngine.export``.

    ``validate(options, state)`` is optional and runs once before anything is
    written. Then, for every locale file, ``open`` returns a handle, ``write``
    receives each translation in key order and ``close`` finishes the file.
    """

    def open(self, options: Dict[str, Any], file: LocaleFile) -> Any:
        ...

    def write(self, handle: Any, entry: TranslationEntry) -> None:
        ...

    def close(self, handle: Any, file: LocaleFile) -> None:
        ...


class _SourceOnlyLoader(importlib.machinery.SourceFileLoader):
    """Source loader that neither reads nor writes cached bytecode."""

    def path_stats(self, path):
        # No source stats, so no bytecode cache lookup or write
        raise OSError(f"Bytecode cache disabled for '{path}'")


def load_export_module(path: str, version: int):
    """
    Import the export module at ``path`` under a name tied to ``version``.

    Every version gets its own module object, so edits to the module are
    picked up once the version is bumped.
    """
    stem = re.sub(r'\W', '_', os.path.splitext(os.path.basename(path))[0])
    module_name = f"i18n_ledger_export_{stem}_v{version}"
    loader = _SourceOnlyLoader(module_name, path)
    spec = importlib.util.spec_from_file_location(module_name, path, loader=loader)
    if spec is None or spec.loader is None:
        raise ImportError(f"Can't load export module from '{path}'")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    logger.debug("Loaded export module '%s' as %s", path, module_name)
    return module


def resolve_module_exporter(module) -> Exporter:
    """Use the module's ``exporter`` attribute if it has one, else the module itself."""
    exporter = getattr(module, 'exporter', None) or module
    for hook in ('open', 'write', 'close'):
        if not callable(getattr(exporter, hook, None)):
            raise AttributeError(f"Export module '{module.__name__}' does not define {hook}()")
    return exporter


class JsonExporter:
    """Write one ``<locale>.json`` file per locale file with the values of its translations."""

    def __init__(self, output_directory: str, indent: Optional[int] = 2):
        self.output_directory = output_directory
        self.indent = indent

    def validate(self, options, state) -> None:
        os.makedirs(self.output_directory, exist_ok=True)

    def open(self, options, file: LocaleFile) -> Dict[str, Any]:
        return {'file': file, 'translations': {}}

    def write(self, handle: Dict[str, Any], entry: TranslationEntry) -> None:
        if entry.value is not None:
            handle['translations'][entry.key] = entry.value

    def close(self, handle: Dict[str, Any], file: LocaleFile) -> None:
        name = file.locale or file.name[:-len(LOCALE_FILE_EXTENSION)]
        output_path = os.path.join(self.output_directory, f"{name}.json")
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(handle['translations'], f, ensure_ascii=False, indent=self.indent)
            f.write('\n')
        logger.info("Exported %d translation(s) to '%s'", len(handle['translations']), output_path)
