"""
Encoding and decoding of single lines of a locale file.

Every entry occupies exactly one physical line::

    #<key>=<comment>
    +<key>=<approved value>
    -<key>=<not approved value>
    !<key>

Pending updates are appended after the baseline with an extra ``>`` prefix.
Line breaks inside values and comments are stored as ``NEW_LINE_SYMBOL``.
"""
import re
from dataclasses import dataclass
from typing import Optional

from i18n_ledger.errors import InvalidLineError

COMMENT_LINE = '#'
APPROVED_LINE = '+'
NOT_APPROVED_LINE = '-'
DELETE_KEY_LINE = '!'
UPDATE_LINE = '>'

LINE_TYPES = (COMMENT_LINE, APPROVED_LINE, NOT_APPROVED_LINE, DELETE_KEY_LINE)

KEY_VALUE_SEPARATOR = '='
NEW_LINE_SYMBOL = '↵'

_LINE_BREAK_RE = re.compile(r'\r\n|\r|\n')


@dataclass(frozen=True)
class ParsedLine:
    type: str
    key: str
    value: str = ''

    @property
    def is_comment(self) -> bool:
        return self.type == COMMENT_LINE

    @property
    def is_delete(self) -> bool:
        return self.type == DELETE_KEY_LINE

    @property
    def approved(self) -> bool:
        return self.type == APPROVED_LINE


def escape_new_lines(value: Optional[str]) -> str:
    return _LINE_BREAK_RE.sub(NEW_LINE_SYMBOL, value or '')


def safe_value(value: Optional[str]) -> str:
    """Normalize a value for storage on a single line (trimmed, line breaks escaped)."""
    return escape_new_lines((value or '').strip())


def unsafe_value(value: Optional[str]) -> str:
    return (value or '').replace(NEW_LINE_SYMBOL, '\n')


def comment_line(key: str, comment: Optional[str], trim: bool = True) -> str:
    payload = safe_value(comment) if trim else escape_new_lines(comment)
    return COMMENT_LINE + key + KEY_VALUE_SEPARATOR + payload


def value_line(approved: bool, key: str, value: Optional[str], trim: bool = True) -> str:
    # Baseline lines are written untrimmed so a load/save cycle keeps the file intact
    payload = safe_value(value) if trim else escape_new_lines(value)
    marker = APPROVED_LINE if approved else NOT_APPROVED_LINE
    return marker + key + KEY_VALUE_SEPARATOR + payload


def delete_line(key: str) -> str:
    return DELETE_KEY_LINE + key


def is_update_line(line: str) -> bool:
    return line.startswith(UPDATE_LINE)


def to_update_line(line: str) -> str:
    return UPDATE_LINE + line


def decode(line: str, type_index: int = 0) -> ParsedLine:
    """
    Decode one line starting at ``type_index``.

    Args:
        line: The physical line without its trailing line break.
        type_index: Position of the type marker, 1 for update lines.

    Returns:
        ParsedLine: The decoded record. Values and comments are unescaped.

    Raises:
        InvalidLineError: If the marker is unknown or the separator is missing.
    """
    if len(line) <= type_index:
        raise InvalidLineError(line)

    line_type = line[type_index]
    if line_type not in LINE_TYPES:
        raise InvalidLineError(line)

    separator_index = line.find(KEY_VALUE_SEPARATOR, type_index + 1)

    if line_type == DELETE_KEY_LINE:
        end = separator_index if separator_index != -1 else len(line)
        key = line[type_index + 1:end]
        if not key:
            raise InvalidLineError(line)
        return ParsedLine(line_type, key)

    if separator_index == -1:
        raise InvalidLineError(line)

    return ParsedLine(
        line_type,
        line[type_index + 1:separator_index],
        unsafe_value(line[separator_index + 1:])
    )
