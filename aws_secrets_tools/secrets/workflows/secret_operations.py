"""Workflows for pushing, pulling and deleting env-map secrets."""
import logging
import os
import re
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..domains.aws_client import AWSSecretsClient
from ..domains.env_map import assert_within_limit
from ..domains.errors import ValidationError
from ..domains.models import DeletionPolicy, EnvMap
from ..domains.provenance import DotenvProvenance
from ..domains.selectors import FromSelector, select_env_by_provenance

logger = logging.getLogger(__name__)

DEFAULT_SECRET_NAME = "$STACK_NAME"

# $VAR, ${VAR} and ${VAR:-default}
_VAR_PATTERN = re.compile(r"\$(?:\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}|([A-Za-z_][A-Za-z0-9_]*))")


def build_expansion_env(dotenv: Optional[Mapping[str, Optional[str]]] = None) -> Dict[str, str]:
    """Process environment overlaid with loaded dotenv values (absent values skipped)."""
    env = dict(os.environ)
    for key, value in (dotenv or {}).items():
        if value is not None:
            env[key] = value
    return env


def expand_secret_name(raw: Optional[str], env: Mapping[str, str]) -> str:
    """
    Expand $VAR references in a secret name.

    Unknown variables expand to an empty string unless a ${VAR:-default} is given.
    """
    if not raw:
        return ""

    def _replace(match: "re.Match") -> str:
        name = match.group(1) or match.group(3)
        default = match.group(2)
        value = env.get(name)
        if value:
            return value
        return default if default is not None else ""

    return _VAR_PATTERN.sub(_replace, raw).strip()


def resolve_secret_id(
    cli_value: Optional[str],
    config_value: Optional[str],
    dotenv: Optional[Mapping[str, Optional[str]]] = None,
) -> str:
    """Pick the secret name (CLI, then config, then $STACK_NAME) and expand it."""
    raw = cli_value or config_value or DEFAULT_SECRET_NAME
    secret_id = expand_secret_name(raw, build_expansion_env(dotenv))
    if not secret_id:
        raise ValidationError(f"secret-name is required ('{raw}' expanded to an empty name)")
    return secret_id


def resolve_include_exclude(
    cli_include: Optional[List[str]] = None,
    cli_exclude: Optional[List[str]] = None,
    cfg_include: Optional[List[str]] = None,
    cfg_exclude: Optional[List[str]] = None,
) -> Tuple[Optional[List[str]], Optional[List[str]]]:
    """
    Combine CLI and config include/exclude lists.

    If either list is given on the CLI, config include/exclude are ignored
    entirely.

    Raises:
        ValidationError: If the result has both include and exclude
    """
    include = cli_include if cli_include is not None else (None if cli_exclude is not None else cfg_include)
    exclude = cli_exclude if cli_exclude is not None else (None if cli_include is not None else cfg_exclude)

    if include and exclude:
        raise ValidationError("--exclude and --include are mutually exclusive.")
    return include, exclude


def apply_include_exclude(
    env: Mapping[str, Optional[str]],
    include: Optional[Sequence[str]] = None,
    exclude: Optional[Sequence[str]] = None,
) -> EnvMap:
    """Drop excluded keys, then keep only included keys. Unknown keys are ignored."""
    out = dict(env)
    if exclude:
        excluded = set(exclude)
        out = {k: v for k, v in out.items() if k not in excluded}
    if include:
        included = set(include)
        out = {k: v for k, v in out.items() if k in included}
    return out


def build_push_payload(
    values: Mapping[str, Optional[str]],
    provenance: DotenvProvenance,
    selectors: Sequence[FromSelector],
    include: Optional[Sequence[str]] = None,
    exclude: Optional[Sequence[str]] = None,
) -> EnvMap:
    """
    Select keys by provenance, narrow with include/exclude and check the size limit.

    Raises:
        PayloadTooLarge: If the final payload does not fit in one secret
    """
    selected = select_env_by_provenance(values, provenance, selectors)
    payload = apply_include_exclude(selected, include, exclude)
    size = assert_within_limit(payload)
    logger.debug(f"Push payload has {len(payload)} keys ({size} bytes)")
    return payload


def push_secret(client: AWSSecretsClient, secret_id: str, payload: EnvMap) -> str:
    """
    Create or update a secret from a prepared payload.

    Returns:
        'updated' or 'created'
    """
    logger.info(f"Pushing secret '{secret_id}' to AWS Secrets Manager...")
    mode = client.upsert_env_secret(secret_id, payload)
    logger.info("Created." if mode == "created" else "Updated.")
    return mode


def pull_secret(
    client: AWSSecretsClient,
    secret_id: str,
    include: Optional[Sequence[str]] = None,
    exclude: Optional[Sequence[str]] = None,
) -> EnvMap:
    """Read a secret and narrow it with include/exclude."""
    logger.info(f"Pulling secret '{secret_id}' from AWS Secrets Manager...")
    secrets = client.read_env_secret(secret_id)
    return apply_include_exclude(secrets, include, exclude)


def delete_secret(client: AWSSecretsClient, secret_id: str, policy: DeletionPolicy) -> None:
    if policy.recoverable:
        window = policy.recovery_window_days
        logger.info(
            f"Deleting secret '{secret_id}' from AWS Secrets Manager "
            f"(recoverable, window: {f'{window} days' if window else 'AWS default'})..."
        )
    else:
        logger.warning(f"Deleting secret '{secret_id}' from AWS Secrets Manager WITHOUT recovery...")
    client.delete_secret_with_policy(secret_id, policy)
    logger.info("Done.")
