"""Default file system primitives used by the engine."""
import os
import re
from typing import List, Optional

LOCALE_FILE_EXTENSION = '.i18n'
EXPORT_MODULE_NAME = 'i18n_export.py'

LOCALE_FILE_RE = re.compile(r'^(?:(?P<stem>[^/\\]*)\.)?(?P<tail>[^./\\]+)\.i18n$')
# Language with an optional region or script, e.g. "fr", "pt-BR", "zh_CN"
LOCALE_TAG_RE = re.compile(r'^[a-z]{2}(?:[-_][A-Za-z]{2,4})?$')


def is_locale_file(file_name: Optional[str]) -> bool:
    return bool(file_name) and LOCALE_FILE_RE.match(file_name) is not None


def is_export_file(file_name: Optional[str]) -> bool:
    return file_name == EXPORT_MODULE_NAME


def detect_locale(file_name: str) -> Optional[str]:
    """
    Derive the locale of a locale file from its name.

    ``app.fr.i18n`` and ``fr.i18n`` give ``fr``, while ``app.i18n`` is a base
    file without a locale.
    """
    match = LOCALE_FILE_RE.match(file_name)
    if not match:
        return None
    tail = match.group('tail')
    return tail if LOCALE_TAG_RE.match(tail) else None


def files_in(directory: str) -> List[str]:
    return [entry.name for entry in os.scandir(directory) if entry.is_file()]


def append_line(file_path: str, line: str) -> None:
    """Append a line, first terminating the last line of the file if needed."""
    prefix = ''
    if os.path.exists(file_path) and os.path.getsize(file_path) > 0:
        with open(file_path, 'rb') as f:
            f.seek(-1, os.SEEK_END)
            if f.read(1) != b'\n':
                prefix = '\n'
    with open(file_path, 'a', encoding='utf-8', newline='\n') as f:
        f.write(prefix + line + '\n')


class LineReader:
    """Sequential reader returning one line per ``next()`` call and None at the end."""

    def __init__(self, file_path: str):
        self.file_path = file_path
        self._file = open(file_path, 'r', encoding='utf-8', newline='')

    def next(self) -> Optional[str]:
        line = self._file.readline()
        if not line:
            return None
        return line.rstrip('\r\n')

    def close(self) -> None:
        self._file.close()


class LineWriter:
    """Sequential writer replacing the file content, one line per ``next()`` call."""

    def __init__(self, file_path: str):
        self.file_path = file_path
        self._file = open(file_path, 'w', encoding='utf-8', newline='\n')

    def next(self, line: str) -> None:
        self._file.write(line + '\n')

    def close(self) -> None:
        self._file.close()


def line_reader(file_path: str) -> LineReader:
    return LineReader(file_path)


def line_writer(file_path: str) -> LineWriter:
    return LineWriter(file_path)


def create_file(file_path: str) -> None:
    # 'x' mode refuses to overwrite an existing file
    with open(file_path, 'x', encoding='utf-8'):
        pass


def delete_file(file_path: str) -> None:
    os.remove(file_path)
