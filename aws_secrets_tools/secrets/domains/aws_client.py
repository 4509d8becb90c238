"""AWS Secrets Manager client wrapper for env-map secrets."""
import logging
from typing import Any, Optional

import boto3

from .aws_errors import is_resource_not_found_error
from .env_map import assert_within_limit, decode_env_map, encode_env_map
from .errors import ValidationError
from .models import DeletionPolicy, EnvMap
from .xray import XrayState, attempt_capture, get_daemon_address, resolve_state

logger = logging.getLogger(__name__)

LOGGER_METHODS = ("debug", "info", "warning", "error")


def assert_logger(candidate: Any) -> Any:
    """
    Check that a logger provides debug, info, warning and error methods.

    Raises:
        ValidationError: On the first missing method
    """
    for name in LOGGER_METHODS:
        if not callable(getattr(candidate, name, None)):
            raise ValidationError(
                f"logger must implement {', '.join(LOGGER_METHODS)}; missing '{name}'"
            )
    return candidate


def _require_secret_id(secret_id: Optional[str]) -> str:
    if not secret_id or not isinstance(secret_id, str):
        raise ValidationError("secret_id is required")
    return secret_id


class AWSSecretsClient:
    """
    Wrapper around the boto3 Secrets Manager client for env-map secrets.

    The secret payload is always a flat JSON object of environment variables.
    X-Ray capture is decided and applied once, when the instance is built;
    ``xray`` records the decision and ``client`` is the effective client.
    """

    def __init__(
        self,
        region: Optional[str] = None,
        xray: str = "auto",
        logger: Any = None,
        client: Any = None,
        endpoint_url: Optional[str] = None,
    ):
        """
        Args:
            region: AWS region (boto3 default resolution when omitted)
            xray: X-Ray capture mode, auto, on or off
            logger: Logger with debug/info/warning/error; defaults to this module's logger
            client: Pre-built boto3 secretsmanager client (region and endpoint_url are ignored)
            endpoint_url: Custom endpoint, e.g. a LocalStack URL
        """
        self.logger = assert_logger(logger if logger is not None else logging.getLogger(__name__))

        if client is None:
            kwargs = {}
            if region:
                kwargs["region_name"] = region
            if endpoint_url:
                kwargs["endpoint_url"] = endpoint_url
            client = boto3.client("secretsmanager", **kwargs)

        daemon_address = get_daemon_address()
        self.xray: XrayState = resolve_state(xray, daemon_address)
        self.client = attempt_capture(client, self.xray.mode, daemon_address, self.logger)

    def read_env_secret(self, secret_id: str, version_id: Optional[str] = None) -> EnvMap:
        """
        Read a secret and parse it as an env-map.

        Args:
            secret_id: Secret name or ARN
            version_id: Specific version to read (latest when omitted)

        Returns:
            Env-map with null values decoded to None

        Raises:
            ValidationError: If secret_id is empty
            MissingPayload, InvalidJson, InvalidShape, InvalidValueType: On malformed secrets
        """
        _require_secret_id(secret_id)

        self.logger.debug(f"Getting secret value for '{secret_id}' (version: {version_id or 'current'})")
        request = {"SecretId": secret_id}
        if version_id:
            request["VersionId"] = version_id
        response = self.client.get_secret_value(**request)

        return decode_env_map(response.get("SecretString"))

    def update_env_secret(self, secret_id: str, value: EnvMap, version_id: Optional[str] = None) -> None:
        """
        Write a new version of an existing secret. Does not create missing secrets.

        Raises:
            PayloadTooLarge: If the encoded value exceeds the SecretString limit
        """
        _require_secret_id(secret_id)
        assert_within_limit(value)

        self.logger.debug(f"Putting secret value for '{secret_id}'")
        request = {"SecretId": secret_id, "SecretString": encode_env_map(value)}
        if version_id:
            request["ClientRequestToken"] = version_id
        self.client.put_secret_value(**request)

    def create_env_secret(
        self,
        secret_id: str,
        value: EnvMap,
        description: Optional[str] = None,
        force_overwrite_replica_secret: Optional[bool] = None,
        version_id: Optional[str] = None,
    ) -> None:
        """Create a new secret containing an env-map. Oversized values raise PayloadTooLarge."""
        _require_secret_id(secret_id)
        assert_within_limit(value)

        self.logger.debug(f"Creating secret '{secret_id}'")
        request = {"Name": secret_id, "SecretString": encode_env_map(value)}
        if version_id:
            request["ClientRequestToken"] = version_id
        if description:
            request["Description"] = description
        if force_overwrite_replica_secret is not None:
            request["ForceOverwriteReplicaSecret"] = force_overwrite_replica_secret
        self.client.create_secret(**request)

    def upsert_env_secret(self, secret_id: str, value: EnvMap) -> str:
        """
        Update a secret, creating it only if it does not exist.

        Returns:
            'updated' or 'created'

        Raises:
            Any AWS error other than ResourceNotFoundException, unmodified
        """
        _require_secret_id(secret_id)

        try:
            self.update_env_secret(secret_id, value)
            return "updated"
        except Exception as e:
            if not is_resource_not_found_error(e):
                raise
            self.logger.debug(f"Secret '{secret_id}' not found, creating it")

        self.create_env_secret(secret_id, value)
        return "created"

    def delete_secret(
        self,
        secret_id: str,
        recovery_window_days: Optional[int] = None,
        force_without_recovery: Optional[bool] = None,
    ) -> None:
        """
        Delete a secret.

        Deletion is recoverable within the AWS default window unless
        ``recovery_window_days`` or ``force_without_recovery`` says otherwise.
        The two options are mutually exclusive.
        """
        _require_secret_id(secret_id)
        policy = DeletionPolicy.from_options(recovery_window_days, force_without_recovery)
        self.delete_secret_with_policy(secret_id, policy)

    def delete_secret_with_policy(self, secret_id: str, policy: DeletionPolicy) -> None:
        _require_secret_id(secret_id)

        self.logger.debug(f"Deleting secret '{secret_id}' ({policy})")
        self.client.delete_secret(SecretId=secret_id, **policy.to_request())
