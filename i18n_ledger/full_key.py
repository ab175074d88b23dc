from typing import Tuple

# File names can't contain a slash, so the first one always ends the file name.
FULL_KEY_SEPARATOR = '/'


def compose(file_name: str, key: str) -> str:
    """Build the identifier of a (locale file, key) pair."""
    return file_name + FULL_KEY_SEPARATOR + key


def decompose(full_key: str) -> Tuple[str, str]:
    file_name, _, key = full_key.partition(FULL_KEY_SEPARATOR)
    return file_name, key
