"""Error taxonomy for env-map secret operations.

Local validation errors are raised before any AWS call is made. Errors coming
back from AWS (botocore ``ClientError`` and friends) are never wrapped here;
they propagate to the caller unmodified.
"""
from typing import Optional


class SecretsToolsError(Exception):
    """Base class for all errors raised by aws-secrets-tools."""
    pass


class ValidationError(SecretsToolsError, ValueError):
    """Bad or missing arguments, or mutually exclusive options supplied together."""
    pass


class InvalidSelector(ValidationError):
    """A --from or --to selector string could not be parsed."""

    def __init__(self, selector: str, direction: str = "from"):
        self.selector = selector
        self.direction = direction
        super().__init__(f"Invalid --{direction} selector: {selector}")


class SecretFormatError(SecretsToolsError):
    """The stored secret is not a valid env-map."""
    pass


class MissingPayload(SecretFormatError):
    def __init__(self, secret_id: Optional[str] = None):
        self.secret_id = secret_id
        super().__init__("SecretString is missing (binary secrets not supported).")


class InvalidJson(SecretFormatError):
    def __init__(self, detail: str = ""):
        self.detail = detail
        super().__init__("SecretString is not valid JSON.")


class InvalidShape(SecretFormatError):
    def __init__(self, actual_type: str):
        self.actual_type = actual_type
        super().__init__(f"Secret JSON must be an object map (got {actual_type}).")


class InvalidValueType(SecretFormatError):
    def __init__(self, key: str, actual_type: str):
        self.key = key
        self.actual_type = actual_type
        super().__init__(
            f"Secret JSON value for '{key}' must be a string or null (got {actual_type})."
        )


class PayloadTooLarge(SecretsToolsError):
    """Serialized payload exceeds the Secrets Manager SecretString limit."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(
            f"SecretString size {size} bytes exceeds {limit} bytes; "
            f"narrow selection with --from/--include/--exclude."
        )


class TracingConfigError(SecretsToolsError):
    """X-Ray capture was requested but the daemon address is not configured."""
    pass


class TracingUnavailable(SecretsToolsError):
    """X-Ray capture is enabled but the optional SDK is not installed."""

    def __init__(self, dependency: str = "aws-xray-sdk"):
        self.dependency = dependency
        super().__init__(
            f"X-Ray capture is enabled but '{dependency}' is not installed. "
            f"Install it (pip install aws-secrets-tools[xray]) or set xray to 'off'."
        )
