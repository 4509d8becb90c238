"""Wire format for env-map secrets.

A secret body is a flat JSON object whose values are strings or null. null
decodes to None (absent) and None encodes back to null.
"""
import json
from typing import Any, Mapping, Optional

from .errors import InvalidJson, InvalidShape, InvalidValueType, MissingPayload, PayloadTooLarge
from .models import EnvMap

# AWS Secrets Manager SecretString limit, in UTF-8 bytes.
MAX_SECRET_BYTES = 65536


def _json_type(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, str):
        return "string"
    return "null" if value is None else type(value).__name__


def _reject_constant(name: str) -> Any:
    # NaN, Infinity and -Infinity are Python extensions, not JSON.
    raise ValueError(f"{name} is not valid JSON")


def encode_env_map(value: Mapping[str, Optional[str]]) -> str:
    """Serialize an env-map to the compact JSON string sent to Secrets Manager."""
    return json.dumps(dict(value), separators=(",", ":"), ensure_ascii=False)


def decode_env_map(secret_string: Optional[str]) -> EnvMap:
    """
    Parse a SecretString into an env-map.

    Raises:
        MissingPayload: If there is no string body (binary secrets)
        InvalidJson: If the body is not JSON
        InvalidShape: If the JSON is not an object
        InvalidValueType: If a value is neither a string nor null
    """
    if not secret_string:
        raise MissingPayload()

    try:
        parsed = json.loads(secret_string, parse_constant=_reject_constant)
    except ValueError as e:
        raise InvalidJson(str(e)) from e

    if not isinstance(parsed, dict):
        raise InvalidShape(_json_type(parsed))

    out: EnvMap = {}
    for key, value in parsed.items():
        if value is not None and not isinstance(value, str):
            raise InvalidValueType(key, _json_type(value))
        out[key] = value
    return out


def payload_size(payload: Mapping[str, Optional[str]]) -> int:
    return len(encode_env_map(payload).encode("utf-8"))


def assert_within_limit(payload: Mapping[str, Optional[str]], limit: int = MAX_SECRET_BYTES) -> int:
    """
    Check that a payload fits in a single SecretString.

    Call after all selection and filtering, before any write.

    Returns:
        The measured size in bytes

    Raises:
        PayloadTooLarge: If the serialized payload exceeds ``limit`` bytes
    """
    size = payload_size(payload)
    if size > limit:
        raise PayloadTooLarge(size, limit)
    return size
