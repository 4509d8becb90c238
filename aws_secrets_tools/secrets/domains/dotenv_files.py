"""Dotenv cascade loading (with provenance) and destination writing for pull.

File naming for each configured path, lowest precedence first:

    <token>                     global, public      e.g. .env
    <token>.<private>           global, private     e.g. .env.local
    <token>.<env>               env, public         e.g. .env.dev
    <token>.<env>.<private>     env, private        e.g. .env.dev.local

Later paths take precedence over earlier ones.
"""
import json
import logging
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from dotenv import dotenv_values, set_key, unset_key

from .errors import ValidationError
from .models import EnvMap
from .provenance import FileEntry, ProvenanceHistory, VarsEntry, provenance_from_dict
from .selectors import ToSelector

logger = logging.getLogger(__name__)

CASCADE = (
    ("global", "public"),
    ("global", "private"),
    ("env", "public"),
    ("env", "private"),
)


@dataclass
class LoadedEnv:
    """Merged dotenv values plus the provenance of every key."""
    values: EnvMap = field(default_factory=dict)
    provenance: Dict[str, ProvenanceHistory] = field(default_factory=dict)

    def record(self, key: str, value: Optional[str], entry) -> None:
        self.values[key] = value
        self.provenance.setdefault(key, ProvenanceHistory()).append(entry)


def dotenv_filename(
    scope: str,
    privacy: str,
    env: Optional[str] = None,
    dotenv_token: str = ".env",
    private_token: str = "local",
) -> str:
    """Name of the dotenv file for a scope/privacy pair."""
    parts = [dotenv_token]
    if scope == "env":
        if not env:
            raise ValidationError("env is required for env-scoped dotenv files (use --env or default_env)")
        parts.append(env)
    if privacy == "private":
        parts.append(private_token)
    return ".".join(parts)


def parse_var_assignments(assignments: Iterable[str]) -> Dict[str, str]:
    """Parse KEY=VALUE strings given with --var."""
    out: Dict[str, str] = {}
    for item in assignments:
        key, sep, value = item.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValidationError(f"Invalid --var '{item}': expected KEY=VALUE")
        out[key] = value
    return out


def load_dotenv_cascade(
    paths: Sequence[str],
    env: Optional[str] = None,
    dotenv_token: str = ".env",
    private_token: str = "local",
    variables: Optional[Mapping[str, str]] = None,
) -> LoadedEnv:
    """
    Load dotenv files in precedence order and record where each key came from.

    Env-scoped files are only read when ``env`` is given. ``variables`` are
    applied last, as ``vars`` entries.
    """
    loaded = LoadedEnv()

    for base in paths:
        for scope, privacy in CASCADE:
            if scope == "env" and not env:
                continue
            path = Path(base) / dotenv_filename(scope, privacy, env, dotenv_token, private_token)
            if not path.is_file():
                continue

            values = dotenv_values(path)
            logger.debug(f"Loaded {len(values)} keys from {path}")
            for key, value in values.items():
                loaded.record(key, value, FileEntry(scope=scope, privacy=privacy, path=str(path)))

    for key, value in (variables or {}).items():
        loaded.record(key, value, VarsEntry())

    return loaded


def load_provenance_document(path: str) -> LoadedEnv:
    """
    Load values and provenance exported by another config loader.

    Format: {"values": {KEY: str|null}, "provenance": {KEY: [entry, ...]}}
    """
    try:
        data = json.loads(Path(path).read_text())
    except OSError as e:
        raise ValidationError(f"Failed to read provenance file {path}: {e}")
    except ValueError as e:
        raise ValidationError(f"Provenance file {path} is not valid JSON: {e}")

    if not isinstance(data, dict):
        raise ValidationError(f"Provenance file {path} must contain a JSON object")

    values = data.get("values") or {}
    if not isinstance(values, dict) or not all(v is None or isinstance(v, str) for v in values.values()):
        raise ValidationError(f"'values' in {path} must map keys to strings or null")

    return LoadedEnv(values=dict(values), provenance=provenance_from_dict(data.get("provenance") or {}))


_BARE_VALUE = re.compile(r"^[A-Za-z0-9_./:@+-]*$")


def format_dotenv_line(key: str, value: str) -> str:
    """Render KEY=value, double-quoting values that need it."""
    if _BARE_VALUE.match(value):
        return f"{key}={value}"
    return f"{key}={json.dumps(value, ensure_ascii=False)}"


def _candidate_paths(paths: Sequence[str], filename: str) -> List[Path]:
    return [Path(p) / filename for p in reversed(list(paths))]


def resolve_destination(
    to: ToSelector,
    paths: Sequence[str],
    env: Optional[str] = None,
    dotenv_token: str = ".env",
    private_token: str = "local",
    template_extension: str = "template",
) -> Tuple[Path, Optional[Path]]:
    """
    Pick the dotenv file a pull writes to.

    The highest-precedence path that already holds the target file wins.
    Otherwise the highest-precedence path holding a template for it wins,
    and the template is returned alongside. Otherwise the file is created in
    the last path.

    Returns:
        (target path, template path or None)
    """
    if not paths:
        raise ValidationError("At least one dotenv path is required")

    filename = dotenv_filename(to.scope, to.privacy, env, dotenv_token, private_token)
    candidates = _candidate_paths(paths, filename)

    for target in candidates:
        if target.is_file():
            return target, None

    for target in candidates:
        template = target.with_name(f"{target.name}.{template_extension}")
        if template.is_file():
            return target, template

    return candidates[0], None


def write_dotenv(target: Path, values: Mapping[str, Optional[str]], template: Optional[Path] = None) -> Path:
    """
    Merge values into a dotenv file, keeping keys that are not being written.

    Absent (None) values remove the key from the file.
    """
    if not target.exists():
        target.parent.mkdir(parents=True, exist_ok=True)
        if template is not None:
            logger.info(f"Creating {target} from template {template}")
            shutil.copyfile(template, target)
        else:
            target.touch()

    existing = dotenv_values(target)
    for key, value in values.items():
        if value is None:
            if key in existing:
                unset_key(target, key)
            continue
        set_key(target, key, value, quote_mode="auto")

    return target
