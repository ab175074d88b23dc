"""Data model of the translation engine."""
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from i18n_ledger.key_registry import KeyRegistry
from i18n_ledger.line_codec import safe_value


@dataclass
class TranslationEntry:
    key: str
    value: Optional[str] = None
    comment: Optional[str] = None
    approved: Optional[bool] = None

    def copy(self) -> 'TranslationEntry':
        return replace(self)

    def same_as(self, other: Optional['TranslationEntry']) -> bool:
        """Compare ignoring surrounding whitespace and line break style; missing approval is False."""
        if other is None:
            return False
        return (safe_value(self.comment) == safe_value(other.comment) and
                safe_value(self.value) == safe_value(other.value) and
                bool(self.approved) == bool(other.approved))


@dataclass(frozen=True)
class LocaleFile:
    name: str
    path: str
    locale: Optional[str] = None


@dataclass
class PendingUpdates:
    length: int = 0
    before: Dict[str, Optional[TranslationEntry]] = field(default_factory=dict)
    after: Dict[str, TranslationEntry] = field(default_factory=dict)

    def keys(self) -> set:
        return set(self.before) | set(self.after)


@dataclass
class EngineState:
    keys: KeyRegistry = field(default_factory=KeyRegistry)
    original: Dict[str, TranslationEntry] = field(default_factory=dict)
    updated: Dict[str, TranslationEntry] = field(default_factory=dict)
    updates: PendingUpdates = field(default_factory=PendingUpdates)
    error: Optional[Exception] = None
    loaded: bool = False

    def reset_updates(self) -> None:
        """Make the working view the new baseline and clear the update log."""
        self.updates = PendingUpdates()
        self.original = self.updated
        self.updated = dict(self.original)


@dataclass(frozen=True)
class StateSnapshot:
    """Read-only copy of the engine state handed out to observers."""
    files: Tuple[LocaleFile, ...]
    keys: Tuple[str, ...]
    keys_changed: bool
    original: Mapping[str, TranslationEntry]
    updated: Mapping[str, TranslationEntry]
    updates_length: int
    updates_before: Mapping[str, Optional[TranslationEntry]]
    updates_after: Mapping[str, TranslationEntry]
    error: Optional[Exception]
    loaded: bool


def _frozen(entries: Mapping[str, Optional[TranslationEntry]]) -> Mapping[str, Optional[TranslationEntry]]:
    return MappingProxyType({k: (v.copy() if v is not None else None) for k, v in entries.items()})


def snapshot(state: EngineState, files: Tuple[LocaleFile, ...]) -> StateSnapshot:
    return StateSnapshot(
        files=files,
        keys=tuple(state.keys.array),
        keys_changed=state.keys.changed,
        original=_frozen(state.original),
        updated=_frozen(state.updated),
        updates_length=state.updates.length,
        updates_before=_frozen(state.updates.before),
        updates_after=_frozen(state.updates.after),
        error=state.error,
        loaded=state.loaded,
    )
