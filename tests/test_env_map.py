"""Tests for the env-map wire format, payload size guard and deletion policy."""
import json

import pytest

from aws_secrets_tools.secrets.domains.env_map import (
    MAX_SECRET_BYTES,
    assert_within_limit,
    decode_env_map,
    encode_env_map,
    payload_size,
)
from aws_secrets_tools.secrets.domains.errors import (
    InvalidJson,
    InvalidShape,
    InvalidValueType,
    MissingPayload,
    PayloadTooLarge,
    SecretFormatError,
    ValidationError,
)
from aws_secrets_tools.secrets.domains.models import DeletionPolicy


class TestEnvMapCodec:
    """Test suite for encoding and decoding env-maps."""

    def test_round_trip_preserves_strings_and_absent_values(self):
        """Test that decode(encode(m)) == m, including None and unicode."""
        value = {"A": "1", "EMPTY": "", "UNICODE": "héllo ✓", "GONE": None}

        assert decode_env_map(encode_env_map(value)) == value

    def test_encode_is_compact_json(self):
        """Test that encoding produces compact JSON with null for absent values."""
        assert encode_env_map({"A": "1", "B": None}) == '{"A":"1","B":null}'

    def test_decode_null_is_absent(self):
        """Test that a JSON null decodes to None."""
        assert decode_env_map('{"A": null}') == {"A": None}

    @pytest.mark.parametrize("body", [None, ""])
    def test_missing_payload(self, body):
        """Test that a missing SecretString raises MissingPayload."""
        with pytest.raises(MissingPayload) as exc_info:
            decode_env_map(body)

        assert "binary secrets not supported" in str(exc_info.value)

    def test_invalid_json(self):
        """Test that a non-JSON body raises InvalidJson."""
        with pytest.raises(InvalidJson) as exc_info:
            decode_env_map("A=1")

        assert str(exc_info.value) == "SecretString is not valid JSON."

    @pytest.mark.parametrize("body", ['{"A": NaN}', '{"A": Infinity}', '{"A": -Infinity}'])
    def test_non_standard_constants_are_invalid_json(self, body):
        """Test that NaN and Infinity are rejected as JSON, not as value types."""
        with pytest.raises(InvalidJson):
            decode_env_map(body)

    @pytest.mark.parametrize("body, actual", [
        ("[1, 2]", "array"),
        ('"text"', "string"),
        ("42", "number"),
        ("null", "null"),
    ])
    def test_invalid_shape(self, body, actual):
        """Test that non-object JSON raises InvalidShape naming the actual type."""
        with pytest.raises(InvalidShape) as exc_info:
            decode_env_map(body)

        assert exc_info.value.actual_type == actual
        assert f"(got {actual})" in str(exc_info.value)

    @pytest.mark.parametrize("value, actual", [
        (1, "number"),
        (True, "boolean"),
        ({"nested": "x"}, "object"),
        (["x"], "array"),
    ])
    def test_invalid_value_type(self, value, actual):
        """Test that non-string values raise InvalidValueType naming the key."""
        with pytest.raises(InvalidValueType) as exc_info:
            decode_env_map(json.dumps({"OK": "x", "BAD": value}))

        assert exc_info.value.key == "BAD"
        assert exc_info.value.actual_type == actual
        assert "'BAD'" in str(exc_info.value)

    def test_format_errors_share_a_base_class(self):
        """Test that every malformed-secret error is a SecretFormatError."""
        for error in (MissingPayload(), InvalidJson(), InvalidShape("array"), InvalidValueType("K", "number")):
            assert isinstance(error, SecretFormatError)


class TestPayloadLimit:
    """Test suite for the SecretString size guard."""

    def test_limit_is_64_kib(self):
        """Test the Secrets Manager limit constant."""
        assert MAX_SECRET_BYTES == 65536

    def test_exact_limit_passes(self):
        """Test that a payload of exactly 65536 bytes is accepted."""
        # {"A":"..."} adds 8 bytes of JSON framing.
        payload = {"A": "x" * (MAX_SECRET_BYTES - 8)}

        assert payload_size(payload) == MAX_SECRET_BYTES
        assert assert_within_limit(payload) == MAX_SECRET_BYTES

    def test_one_byte_over_fails(self):
        """Test that 65537 bytes is rejected with size and limit in the message."""
        payload = {"A": "x" * (MAX_SECRET_BYTES - 7)}

        with pytest.raises(PayloadTooLarge) as exc_info:
            assert_within_limit(payload)

        assert exc_info.value.size == MAX_SECRET_BYTES + 1
        assert exc_info.value.limit == MAX_SECRET_BYTES
        assert "65537 bytes exceeds 65536 bytes" in str(exc_info.value)
        assert "--from/--include/--exclude" in str(exc_info.value)

    def test_size_counts_utf8_bytes(self):
        """Test that multi-byte characters are measured in bytes, not characters."""
        assert payload_size({"A": "é"}) == len('{"A":"é"}'.encode("utf-8"))
        assert payload_size({"A": "é"}) == 10

    def test_custom_limit(self):
        """Test that a smaller limit can be enforced."""
        with pytest.raises(PayloadTooLarge):
            assert_within_limit({"A": "12345"}, limit=5)


class TestDeletionPolicy:
    """Test suite for building delete requests."""

    def test_default_is_recoverable_with_aws_window(self):
        """Test that no options means a recoverable delete with no extra parameters."""
        policy = DeletionPolicy.from_options()

        assert policy.recoverable
        assert policy.to_request() == {}

    def test_recovery_window(self):
        """Test that an explicit window is passed through."""
        policy = DeletionPolicy.from_options(recovery_window_days=14)

        assert policy.recoverable
        assert policy.to_request() == {"RecoveryWindowInDays": 14}

    def test_force_without_recovery(self):
        """Test that force maps to ForceDeleteWithoutRecovery."""
        policy = DeletionPolicy.from_options(force_without_recovery=True)

        assert not policy.recoverable
        assert policy.to_request() == {"ForceDeleteWithoutRecovery": True}

    def test_force_false_is_recoverable(self):
        """Test that force_without_recovery=False leaves the delete recoverable."""
        assert DeletionPolicy.from_options(force_without_recovery=False).to_request() == {}

    @pytest.mark.parametrize("window, force", [(7, True), (7, False)])
    def test_options_are_mutually_exclusive(self, window, force):
        """Test that supplying both options is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            DeletionPolicy.from_options(recovery_window_days=window, force_without_recovery=force)

        assert "mutually exclusive" in str(exc_info.value)

    @pytest.mark.parametrize("window", [0, -3, "7", 7.5, True])
    def test_invalid_recovery_window(self, window):
        """Test that non-positive or non-integer windows are rejected."""
        with pytest.raises(ValidationError):
            DeletionPolicy.from_options(recovery_window_days=window)
