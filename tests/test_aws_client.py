"""Unit tests for AWSSecretsClient (AWS Secrets Manager).

Tests cover:
- read/update/create/upsert/delete against moto
- Upsert fallback only on ResourceNotFoundException
- Payload size guard before any write
- AWS error code classification
- Logger contract and argument validation
"""
import json
from unittest.mock import MagicMock

import boto3
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

from aws_secrets_tools.secrets.domains.aws_client import AWSSecretsClient, assert_logger
from aws_secrets_tools.secrets.domains.aws_errors import (
    get_aws_error_code,
    is_aws_error_code,
    is_resource_not_found_error,
)
from aws_secrets_tools.secrets.domains.env_map import MAX_SECRET_BYTES
from aws_secrets_tools.secrets.domains.errors import (
    InvalidShape,
    MissingPayload,
    PayloadTooLarge,
    ValidationError,
)
from aws_secrets_tools.secrets.domains.models import DeletionPolicy


def _client_error(code: str, operation: str = "PutSecretValue") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": f"{code} raised"}}, operation)


@pytest.fixture
def secretsmanager():
    """Mocked Secrets Manager client."""
    with mock_aws():
        yield boto3.client("secretsmanager", region_name="us-east-1")


@pytest.fixture
def client(secretsmanager):
    return AWSSecretsClient(client=secretsmanager, xray="off")


class RecordingLogger:
    def __init__(self):
        self.records = []

    def debug(self, msg, *args):
        self.records.append(("debug", msg))

    def info(self, msg, *args):
        self.records.append(("info", msg))

    def warning(self, msg, *args):
        self.records.append(("warning", msg))

    def error(self, msg, *args):
        self.records.append(("error", msg))


class TestAWSErrors:
    """Test suite for AWS error classification."""

    def test_client_error_code(self):
        """Test that the code is read from a botocore ClientError response."""
        err = _client_error("ResourceNotFoundException")

        assert get_aws_error_code(err) == "ResourceNotFoundException"
        assert is_resource_not_found_error(err)
        assert not is_resource_not_found_error(_client_error("AccessDeniedException"))

    def test_name_and_code_attributes(self):
        """Test that errors exposing name or code attributes are classified."""
        named = Exception("x")
        named.name = "ResourceNotFoundException"
        coded = Exception("x")
        coded.code = "ThrottlingException"

        assert is_resource_not_found_error(named)
        assert is_aws_error_code(coded, "ThrottlingException")

    def test_message_is_never_inspected(self):
        """Test that an error code in the message alone does not count."""
        assert get_aws_error_code(Exception("ResourceNotFoundException")) is None
        assert not is_resource_not_found_error(ValueError("ResourceNotFoundException"))


class TestClientConstruction:
    """Test suite for building the client."""

    def test_builds_boto3_client_for_region(self):
        """Test that a boto3 client is built for the requested region."""
        with mock_aws():
            client = AWSSecretsClient(region="eu-west-1", xray="off")

        assert client.client.meta.region_name == "eu-west-1"
        assert client.xray.enabled is False

    def test_logger_contract(self):
        """Test that a logger missing a required method is rejected."""
        class NoWarning:
            def debug(self, msg):
                pass

            def info(self, msg):
                pass

            def error(self, msg):
                pass

        with pytest.raises(ValidationError) as exc_info:
            AWSSecretsClient(client=MagicMock(), xray="off", logger=NoWarning())

        assert "'warning'" in str(exc_info.value)

    def test_custom_logger_is_used(self):
        """Test that an injected logger receives client debug output."""
        logger = RecordingLogger()
        raw = MagicMock()
        raw.get_secret_value.return_value = {"SecretString": '{"A":"1"}'}

        client = AWSSecretsClient(client=raw, xray="off", logger=logger)
        client.read_env_secret("app")

        assert assert_logger(logger) is logger
        assert any(level == "debug" and "app" in msg for level, msg in logger.records)


class TestReadEnvSecret:
    """Test suite for reading env-map secrets."""

    def test_read_success(self, client, secretsmanager):
        """Test reading a well-formed secret."""
        secretsmanager.create_secret(Name="app", SecretString='{"A":"1","B":null}')

        assert client.read_env_secret("app") == {"A": "1", "B": None}

    def test_read_specific_version(self, client, secretsmanager):
        """Test reading an older version by id."""
        created = secretsmanager.create_secret(Name="app", SecretString='{"A":"1"}')
        secretsmanager.put_secret_value(SecretId="app", SecretString='{"A":"2"}')

        assert client.read_env_secret("app") == {"A": "2"}
        assert client.read_env_secret("app", version_id=created["VersionId"]) == {"A": "1"}

    def test_binary_secret_is_missing_payload(self, client, secretsmanager):
        """Test that a binary-only secret raises MissingPayload."""
        secretsmanager.create_secret(Name="bin", SecretBinary=b"\x00\x01")

        with pytest.raises(MissingPayload):
            client.read_env_secret("bin")

    def test_array_secret_is_invalid_shape(self, client, secretsmanager):
        """Test that a JSON array secret raises InvalidShape."""
        secretsmanager.create_secret(Name="arr", SecretString="[1,2]")

        with pytest.raises(InvalidShape):
            client.read_env_secret("arr")

    def test_missing_secret_propagates_aws_error(self, client):
        """Test that AWS errors reach the caller unmodified."""
        with pytest.raises(ClientError) as exc_info:
            client.read_env_secret("nope")

        assert is_resource_not_found_error(exc_info.value)

    @pytest.mark.parametrize("secret_id", ["", None])
    def test_empty_secret_id(self, secret_id):
        """Test that an empty secret id fails before any AWS call."""
        raw = MagicMock()
        client = AWSSecretsClient(client=raw, xray="off")

        with pytest.raises(ValidationError):
            client.read_env_secret(secret_id)

        raw.get_secret_value.assert_not_called()


class TestWriteEnvSecret:
    """Test suite for update, create and upsert."""

    def test_update_existing(self, client, secretsmanager):
        """Test that update writes a new version of an existing secret."""
        secretsmanager.create_secret(Name="app", SecretString="{}")

        client.update_env_secret("app", {"A": "1"})

        stored = secretsmanager.get_secret_value(SecretId="app")["SecretString"]
        assert json.loads(stored) == {"A": "1"}

    def test_update_missing_does_not_create(self, client, secretsmanager):
        """Test that update never creates a secret."""
        with pytest.raises(ClientError) as exc_info:
            client.update_env_secret("missing", {"A": "1"})

        assert is_resource_not_found_error(exc_info.value)

    def test_create_with_description(self, client, secretsmanager):
        """Test creating a secret with a description."""
        client.create_env_secret("app", {"A": "1"}, description="app env")

        described = secretsmanager.describe_secret(SecretId="app")
        assert described["Description"] == "app env"
        assert client.read_env_secret("app") == {"A": "1"}

    def test_upsert_updates_existing(self, client, secretsmanager):
        """Test that upsert updates an existing secret."""
        secretsmanager.create_secret(Name="app", SecretString='{"A":"old"}')

        assert client.upsert_env_secret("app", {"A": "new"}) == "updated"
        assert client.read_env_secret("app") == {"A": "new"}

    def test_upsert_creates_missing(self, client, secretsmanager):
        """Test that upsert creates a secret that does not exist."""
        assert client.upsert_env_secret("fresh", {"A": "1"}) == "created"
        assert client.read_env_secret("fresh") == {"A": "1"}

    def test_upsert_creates_exactly_once_on_not_found(self):
        """Test that a not-found update is followed by exactly one create."""
        raw = MagicMock()
        raw.put_secret_value.side_effect = _client_error("ResourceNotFoundException")
        client = AWSSecretsClient(client=raw, xray="off")

        assert client.upsert_env_secret("app", {"A": "1"}) == "created"

        raw.put_secret_value.assert_called_once()
        raw.create_secret.assert_called_once_with(Name="app", SecretString='{"A":"1"}')

    @pytest.mark.parametrize("code", ["AccessDeniedException", "InvalidRequestException", "ThrottlingException"])
    def test_upsert_never_creates_on_other_errors(self, code):
        """Test that any other update failure propagates and nothing is created."""
        raw = MagicMock()
        raw.put_secret_value.side_effect = _client_error(code)
        client = AWSSecretsClient(client=raw, xray="off")

        with pytest.raises(ClientError) as exc_info:
            client.upsert_env_secret("app", {"A": "1"})

        assert get_aws_error_code(exc_info.value) == code
        raw.create_secret.assert_not_called()

    @pytest.mark.parametrize("method", ["update_env_secret", "create_env_secret", "upsert_env_secret"])
    def test_oversized_payload_is_never_written(self, method):
        """Test that a 65537-byte payload is rejected before any write."""
        raw = MagicMock()
        client = AWSSecretsClient(client=raw, xray="off")
        # {"A":"..."} adds 8 bytes of JSON framing.
        payload = {"A": "x" * (MAX_SECRET_BYTES - 7)}

        with pytest.raises(PayloadTooLarge) as exc_info:
            getattr(client, method)("app", payload)

        assert exc_info.value.size == MAX_SECRET_BYTES + 1
        raw.put_secret_value.assert_not_called()
        raw.create_secret.assert_not_called()

    def test_payload_at_limit_is_written(self):
        """Test that exactly 65536 bytes still reaches Secrets Manager."""
        raw = MagicMock()
        client = AWSSecretsClient(client=raw, xray="off")

        client.update_env_secret("app", {"A": "x" * (MAX_SECRET_BYTES - 8)})

        raw.put_secret_value.assert_called_once()

    def test_upsert_propagates_non_aws_errors(self):
        """Test that unexpected exceptions are not treated as not-found."""
        raw = MagicMock()
        raw.put_secret_value.side_effect = RuntimeError("boom")
        client = AWSSecretsClient(client=raw, xray="off")

        with pytest.raises(RuntimeError):
            client.upsert_env_secret("app", {})

        raw.create_secret.assert_not_called()


class TestDeleteSecret:
    """Test suite for deleting secrets."""

    def test_default_delete_is_recoverable(self):
        """Test that a plain delete sends only the secret id."""
        raw = MagicMock()
        client = AWSSecretsClient(client=raw, xray="off")

        client.delete_secret("app")

        raw.delete_secret.assert_called_once_with(SecretId="app")

    def test_recovery_window(self):
        """Test that the recovery window is passed through."""
        raw = MagicMock()
        client = AWSSecretsClient(client=raw, xray="off")

        client.delete_secret("app", recovery_window_days=10)

        raw.delete_secret.assert_called_once_with(SecretId="app", RecoveryWindowInDays=10)

    def test_force_without_recovery(self, client, secretsmanager):
        """Test that a forced delete removes the secret immediately."""
        secretsmanager.create_secret(Name="app", SecretString="{}")

        client.delete_secret("app", force_without_recovery=True)

        with pytest.raises(ClientError) as exc_info:
            secretsmanager.describe_secret(SecretId="app")
        assert is_resource_not_found_error(exc_info.value)

    def test_recoverable_delete_schedules_deletion(self, client, secretsmanager):
        """Test that a recoverable delete marks the secret for deletion."""
        secretsmanager.create_secret(Name="app", SecretString="{}")

        client.delete_secret_with_policy("app", DeletionPolicy.from_options(recovery_window_days=7))

        with pytest.raises(ClientError) as exc_info:
            secretsmanager.get_secret_value(SecretId="app")
        assert get_aws_error_code(exc_info.value) == "InvalidRequestException"

    def test_conflicting_options_make_no_call(self):
        """Test that both options together fail before calling AWS."""
        raw = MagicMock()
        client = AWSSecretsClient(client=raw, xray="off")

        with pytest.raises(ValidationError):
            client.delete_secret("app", recovery_window_days=7, force_without_recovery=True)

        raw.delete_secret.assert_not_called()
