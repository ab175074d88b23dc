"""Error conditions raised or captured by the translation engine."""
from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    NOT_LOADED = 'NotLoaded'
    NOT_RESOLVED = 'NotResolved'
    INVALID_LINE = 'InvalidLine'
    DUPLICATE_KEY = 'DuplicateKey'
    INVALID_DIRECTORY = 'InvalidDirectory'
    INVALID_KEY = 'InvalidKey'
    KEY_EXIST = 'KeyExist'
    KEY_NOT_EXIST = 'KeyNotExist'
    NO_I18N_FILES = 'NoI18nFiles'
    UNAPPLIED_CHANGES = 'UnappliedChanges'
    INVALID_FILE = 'InvalidFile'
    INVALID_OPTIONS = 'InvalidOptions'
    EXPORT = 'Export'


class I18nError(Exception):
    """
    Base class of every condition the engine reports.

    Errors with ``state_error = True`` describe broken file content. They are
    captured into ``EngineState.error`` during load instead of being raised.
    """
    state_error = False

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def annotate(self, file_name: str, line_number: int) -> None:
        """Prefix the message with the file and line the error was found at."""
        self.message = f"[{file_name}:{line_number}] {self.message}"
        self.args = (self.message,)

    def __str__(self) -> str:
        return self.message


class InvalidLineError(I18nError):
    state_error = True

    def __init__(self, line: str):
        super().__init__(ErrorCode.INVALID_LINE, f"Invalid line: {line!r}")
        self.line = line


class DuplicateKeyError(I18nError):
    state_error = True

    def __init__(self, line_key: str):
        super().__init__(ErrorCode.DUPLICATE_KEY, f"Duplicate key: {line_key!r}")
        self.line_key = line_key


class NotLoadedError(I18nError):
    def __init__(self):
        super().__init__(ErrorCode.NOT_LOADED, "Translations are not loaded yet. Call load() first.")


class NotResolvedError(I18nError):
    def __init__(self, cause: Optional[BaseException]):
        super().__init__(ErrorCode.NOT_RESOLVED, f"Resolve the loading error first: {cause}")
        self.cause = cause


class InvalidDirectoryError(I18nError):
    def __init__(self, directory: str):
        super().__init__(ErrorCode.INVALID_DIRECTORY, f"Directory {directory!r} does not exist.")
        self.directory = directory


class InvalidKeyError(I18nError):
    def __init__(self, key: Optional[str]):
        super().__init__(ErrorCode.INVALID_KEY, f"Invalid key: {key!r}")
        self.key = key


class KeyExistError(I18nError):
    def __init__(self, key: str):
        super().__init__(ErrorCode.KEY_EXIST, f"Key {key!r} already exists.")
        self.key = key


class KeyNotExistError(I18nError):
    def __init__(self, key: str):
        super().__init__(ErrorCode.KEY_NOT_EXIST, f"Key {key!r} does not exist.")
        self.key = key


class NoI18nFilesError(I18nError):
    def __init__(self):
        super().__init__(ErrorCode.NO_I18N_FILES, "No locale files found. Add a locale file first.")


class UnappliedChangesError(I18nError):
    def __init__(self):
        super().__init__(ErrorCode.UNAPPLIED_CHANGES,
                         "There are unapplied changes. Save or revert them first.")


class InvalidFileError(I18nError):
    def __init__(self, message: str):
        super().__init__(ErrorCode.INVALID_FILE, message)


class InvalidOptionsError(I18nError):
    def __init__(self, operation: str, name: str):
        super().__init__(ErrorCode.INVALID_OPTIONS,
                         f"Option {name!r} of {operation}() can't be a function.")


class ExportError(I18nError):
    def __init__(self, cause: BaseException):
        super().__init__(ErrorCode.EXPORT, f"Export failed: {cause}")
        self.cause = cause
