"""Provenance selectors for push (--from) and pull (--to).

Grammar of --from selectors (repeatable, matched with logical OR):

    file:<scope>:<privacy>                  scope: global|env|*   privacy: public|private|*
    config:<configScope>:<scope>:<privacy>  configScope: packaged|project|*
    dynamic:<dynamicSource>                 dynamicSource: config|programmatic|dynamicPath|*
    vars

A --to selector names exactly one destination dotenv file and accepts no
wildcards:

    <scope>:<privacy>                       scope: global|env   privacy: public|private
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Union

from .errors import InvalidSelector
from .provenance import (
    CONFIG_SCOPES,
    DYNAMIC_SOURCES,
    PRIVACIES,
    SCOPES,
    UNSET,
    DotenvProvenance,
    ProvenanceEntry,
    effective_entry,
)

logger = logging.getLogger(__name__)

WILDCARD = "*"

DEFAULT_FROM = "file:env:private"
DEFAULT_TO = "env:private"


@dataclass(frozen=True)
class FileSelector:
    scope: str = WILDCARD
    privacy: str = WILDCARD
    kind = "file"


@dataclass(frozen=True)
class ConfigSelector:
    config_scope: str = WILDCARD
    scope: str = WILDCARD
    privacy: str = WILDCARD
    kind = "config"


@dataclass(frozen=True)
class DynamicSelector:
    dynamic_source: str = WILDCARD
    kind = "dynamic"


@dataclass(frozen=True)
class VarsSelector:
    kind = "vars"


FromSelector = Union[FileSelector, ConfigSelector, DynamicSelector, VarsSelector]


@dataclass(frozen=True)
class ToSelector:
    """Destination dotenv file for a pull."""
    scope: str
    privacy: str

    def __str__(self) -> str:
        return f"{self.scope}:{self.privacy}"


# Fields compared for each kind, as (entry attribute, selector attribute).
_MATCH_FIELDS = {
    "file": ("scope", "privacy"),
    "config": ("config_scope", "scope", "privacy"),
    "dynamic": ("dynamic_source",),
    "vars": (),
}


def _parts(raw: str) -> List[str]:
    return [p.strip() for p in str(raw).split(":") if p.strip()]


def _one_of(value: str, allowed: Sequence[str], wildcard: bool) -> bool:
    return value in allowed or (wildcard and value == WILDCARD)


def parse_from_selector(raw: str) -> FromSelector:
    """
    Parse a --from selector string.

    Args:
        raw: Selector text, e.g. "file:env:private" or "dynamic:*"

    Returns:
        Parsed selector

    Raises:
        InvalidSelector: On unknown kind, wrong number of segments or an
            unrecognized token in any position
    """
    parts = _parts(raw)
    if not parts:
        raise InvalidSelector(raw, "from")

    kind, args = parts[0], parts[1:]

    if kind == "vars" and not args:
        return VarsSelector()

    if kind == "file" and len(args) == 2:
        scope, privacy = args
        if _one_of(scope, SCOPES, True) and _one_of(privacy, PRIVACIES, True):
            return FileSelector(scope=scope, privacy=privacy)

    if kind == "config" and len(args) == 3:
        config_scope, scope, privacy = args
        if (
            _one_of(config_scope, CONFIG_SCOPES, True)
            and _one_of(scope, SCOPES, True)
            and _one_of(privacy, PRIVACIES, True)
        ):
            return ConfigSelector(config_scope=config_scope, scope=scope, privacy=privacy)

    if kind == "dynamic" and len(args) == 1:
        if _one_of(args[0], DYNAMIC_SOURCES, True):
            return DynamicSelector(dynamic_source=args[0])

    raise InvalidSelector(raw, "from")


def parse_from_selectors(raw: Sequence[str]) -> List[FromSelector]:
    return [parse_from_selector(s) for s in raw]


def parse_to_selector(raw: str) -> ToSelector:
    """Parse a --to selector; wildcards are rejected."""
    parts = _parts(raw)
    if len(parts) != 2:
        raise InvalidSelector(raw, "to")

    scope, privacy = parts
    if not (_one_of(scope, SCOPES, False) and _one_of(privacy, PRIVACIES, False)):
        raise InvalidSelector(raw, "to")
    return ToSelector(scope=scope, privacy=privacy)


def _field_matches(value: Optional[str], wanted: str) -> bool:
    return wanted == WILDCARD or value == wanted


def matches_from_selector(entry: ProvenanceEntry, selector: FromSelector) -> bool:
    """True when the entry has the selector's kind and every field matches exactly or by wildcard."""
    if entry.kind != selector.kind:
        return False
    return all(
        _field_matches(getattr(entry, field), getattr(selector, field))
        for field in _MATCH_FIELDS[selector.kind]
    )


def select_env_by_provenance(
    values: Mapping[str, Optional[str]],
    provenance: DotenvProvenance,
    selectors: Sequence[FromSelector],
) -> Dict[str, Optional[str]]:
    """
    Select the loaded values whose effective provenance matches any selector.

    Keys are taken from the provenance map, not from the values, so a value
    without recorded provenance is never selected. Keys whose value is absent,
    whose history is empty, or whose effective entry is an unset are skipped.

    Args:
        values: Currently loaded env values (None means absent)
        provenance: Per-key provenance histories, oldest first
        selectors: Parsed --from selectors; an empty list selects nothing

    Returns:
        New dict holding the selected key/value pairs
    """
    selected: Dict[str, Optional[str]] = {}

    for key, history in provenance.items():
        value = values.get(key)
        if value is None:
            continue

        effective = effective_entry(history)
        if effective is None or effective.op == UNSET:
            continue

        if any(matches_from_selector(effective, s) for s in selectors):
            selected[key] = value

    logger.debug(f"Selected {len(selected)} of {len(provenance)} keys with provenance")
    return selected
