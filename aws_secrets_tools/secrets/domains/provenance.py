"""Provenance model: which configuration layer set each loaded key.

Every key carries an ordered history of entries, oldest first. Only the last
entry (the effective entry) decides whether the key is eligible for a push;
earlier entries are kept for auditing and debugging.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Union

from .errors import ValidationError

logger = logging.getLogger(__name__)

SCOPES = ("global", "env")
PRIVACIES = ("public", "private")
CONFIG_SCOPES = ("packaged", "project")
DYNAMIC_SOURCES = ("config", "programmatic", "dynamicPath")
UNSET = "unset"


@dataclass(frozen=True)
class FileEntry:
    """Key was set by a dotenv file."""
    scope: str
    privacy: str
    path: Optional[str] = None
    op: Optional[str] = None
    kind = "file"


@dataclass(frozen=True)
class ConfigEntry:
    """Key was set by the vars section of a packaged or project config."""
    config_scope: str
    scope: str
    privacy: str
    op: Optional[str] = None
    kind = "config"


@dataclass(frozen=True)
class DynamicEntry:
    """Key was computed by a dynamic variable source."""
    dynamic_source: str
    op: Optional[str] = None
    kind = "dynamic"


@dataclass(frozen=True)
class VarsEntry:
    """Key was passed explicitly on the command line."""
    op: Optional[str] = None
    kind = "vars"


ProvenanceEntry = Union[FileEntry, ConfigEntry, DynamicEntry, VarsEntry]


class ProvenanceHistory:
    """Append-only list of provenance entries for a single key."""

    __slots__ = ("_entries",)

    def __init__(self, entries: Optional[Sequence[ProvenanceEntry]] = None):
        self._entries: List[ProvenanceEntry] = list(entries or [])

    def append(self, entry: ProvenanceEntry) -> None:
        self._entries.append(entry)

    @property
    def effective(self) -> Optional[ProvenanceEntry]:
        """The most recent entry, or None when nothing has been recorded."""
        return self._entries[-1] if self._entries else None

    @property
    def entries(self) -> tuple:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ProvenanceEntry]:
        return iter(self._entries)

    def __getitem__(self, index):
        return self._entries[index]

    def __eq__(self, other) -> bool:
        if isinstance(other, ProvenanceHistory):
            return self._entries == other._entries
        if isinstance(other, (list, tuple)):
            return self._entries == list(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"ProvenanceHistory({self._entries!r})"


DotenvProvenance = Mapping[str, Union[ProvenanceHistory, Sequence[ProvenanceEntry]]]


def effective_entry(
    history: Optional[Union[ProvenanceHistory, Sequence[ProvenanceEntry]]],
) -> Optional[ProvenanceEntry]:
    """Return the last entry of a history, or None if it is missing or empty."""
    if history is None:
        return None
    if isinstance(history, ProvenanceHistory):
        return history.effective
    return history[-1] if len(history) else None


def _require(raw: Mapping[str, Any], field: str, allowed: Sequence[str]) -> str:
    value = raw.get(field)
    if value not in allowed:
        raise ValidationError(
            f"Invalid provenance entry {dict(raw)!r}: '{field}' must be one of {', '.join(allowed)}"
        )
    return value


def entry_from_dict(raw: Mapping[str, Any]) -> ProvenanceEntry:
    """
    Build a provenance entry from its JSON (camelCase) form.

    Args:
        raw: Mapping such as {"kind": "config", "configScope": "project",
            "scope": "env", "privacy": "private"}

    Returns:
        The matching entry dataclass

    Raises:
        ValidationError: If the kind or any field value is not recognized
    """
    if not isinstance(raw, Mapping):
        raise ValidationError(f"Invalid provenance entry: {raw!r}")

    op = raw.get("op")
    if op is not None and op != UNSET:
        raise ValidationError(f"Invalid provenance entry {dict(raw)!r}: 'op' must be '{UNSET}'")

    kind = raw.get("kind")
    if kind == "file":
        return FileEntry(
            scope=_require(raw, "scope", SCOPES),
            privacy=_require(raw, "privacy", PRIVACIES),
            path=raw.get("path"),
            op=op,
        )
    if kind == "config":
        return ConfigEntry(
            config_scope=_require(raw, "configScope", CONFIG_SCOPES),
            scope=_require(raw, "scope", SCOPES),
            privacy=_require(raw, "privacy", PRIVACIES),
            op=op,
        )
    if kind == "dynamic":
        return DynamicEntry(dynamic_source=_require(raw, "dynamicSource", DYNAMIC_SOURCES), op=op)
    if kind == "vars":
        return VarsEntry(op=op)

    raise ValidationError(f"Invalid provenance entry {dict(raw)!r}: unknown kind {kind!r}")


def provenance_from_dict(raw: Mapping[str, Any]) -> Dict[str, ProvenanceHistory]:
    """Build a provenance map from {key: [entry, ...]} JSON data."""
    if not isinstance(raw, Mapping):
        raise ValidationError("Provenance must be an object mapping keys to entry lists")

    out: Dict[str, ProvenanceHistory] = {}
    for key, entries in raw.items():
        if not isinstance(entries, list):
            raise ValidationError(f"Provenance for '{key}' must be a list of entries")
        out[key] = ProvenanceHistory(entry_from_dict(e) for e in entries)

    logger.debug(f"Loaded provenance for {len(out)} keys")
    return out
