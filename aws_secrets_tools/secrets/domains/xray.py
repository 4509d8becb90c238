"""Optional AWS X-Ray capture for the Secrets Manager client.

Capture is decided in two separate steps:

1. ``resolve_enabled`` is a pure decision from the configured mode and the
   ``AWS_XRAY_DAEMON_ADDRESS`` environment variable.
2. ``attempt_capture`` loads ``aws_xray_sdk`` and instruments the client. It is
   only ever reached when step 1 says yes, because the SDK must not be loaded
   without a daemon to talk to. The lifecycle client runs it once, at
   construction.
"""
import importlib
import logging
import os
from dataclasses import dataclass
from typing import Any, Optional

from .errors import TracingConfigError, TracingUnavailable, ValidationError

logger = logging.getLogger(__name__)

XRAY_DAEMON_ADDRESS_ENV = "AWS_XRAY_DAEMON_ADDRESS"
XRAY_MODES = ("auto", "on", "off")
XRAY_SDK_MODULE = "aws_xray_sdk.core"
XRAY_SDK_DISTRIBUTION = "aws-xray-sdk"
XRAY_SUBSEGMENT_NAME = "SecretsManager"

_SUBSEGMENT_CONTEXT_KEY = "xray_subsegment"
_HANDLER_ID = "aws-secrets-tools-xray"


@dataclass(frozen=True)
class XrayState:
    """Effective X-Ray decision for one client instance."""
    mode: str
    enabled: bool
    daemon_address: Optional[str] = None


def validate_mode(mode: Optional[str]) -> str:
    if mode is None:
        return "auto"
    if mode not in XRAY_MODES:
        raise ValidationError(f"Invalid xray mode '{mode}': must be one of {', '.join(XRAY_MODES)}")
    return mode


def get_daemon_address() -> Optional[str]:
    """Read the daemon address from the environment; empty counts as unset."""
    return os.getenv(XRAY_DAEMON_ADDRESS_ENV) or None


def resolve_enabled(mode: Optional[str], daemon_address: Optional[str]) -> bool:
    """
    Decide whether X-Ray capture should be attempted.

    off -> False, on -> True, auto -> True only if a daemon address is set.
    """
    mode = validate_mode(mode)
    if mode == "off":
        return False
    if mode == "on":
        return True
    return bool(daemon_address)


def resolve_state(mode: Optional[str], daemon_address: Optional[str]) -> XrayState:
    mode = validate_mode(mode)
    enabled = resolve_enabled(mode, daemon_address)
    return XrayState(
        mode=mode,
        enabled=enabled,
        daemon_address=daemon_address if enabled and daemon_address else None,
    )


def _load_xray_sdk() -> Any:
    return importlib.import_module(XRAY_SDK_MODULE)


def instrument_client(client: Any, recorder: Any) -> Any:
    """
    Trace API calls made through one botocore client.

    Handlers are registered on the client's own event system, so other
    clients in the process are left untouched. Each call is recorded as an
    ``aws`` subsegment annotated with the operation name.
    """
    def _begin(model=None, context=None, **kwargs):
        subsegment = recorder.begin_subsegment(XRAY_SUBSEGMENT_NAME, namespace="aws")
        if subsegment is not None and model is not None:
            subsegment.put_annotation("operation", model.name)
        if context is not None:
            context[_SUBSEGMENT_CONTEXT_KEY] = subsegment

    def _end(http_response=None, context=None, **kwargs):
        subsegment = (context or {}).pop(_SUBSEGMENT_CONTEXT_KEY, None)
        if subsegment is None:
            return
        status = getattr(http_response, "status_code", None) or 0
        if status >= 500:
            subsegment.add_fault_flag()
        elif status >= 400:
            subsegment.add_error_flag()
        recorder.end_subsegment()

    def _fail(exception=None, context=None, **kwargs):
        subsegment = (context or {}).pop(_SUBSEGMENT_CONTEXT_KEY, None)
        if subsegment is None:
            return
        subsegment.add_fault_flag()
        recorder.end_subsegment()

    events = client.meta.events
    events.register("before-call", _begin, unique_id=f"{_HANDLER_ID}-begin")
    events.register("after-call", _end, unique_id=f"{_HANDLER_ID}-end")
    events.register("after-call-error", _fail, unique_id=f"{_HANDLER_ID}-fail")
    return client


def attempt_capture(client: Any, mode: Optional[str], daemon_address: Optional[str], log: Any = None) -> Any:
    """
    Instrument a boto3 client with X-Ray when capture is enabled.

    Args:
        client: boto3 Secrets Manager client
        mode: auto, on or off
        daemon_address: Value of AWS_XRAY_DAEMON_ADDRESS (or None)
        log: Logger used for debug output

    Returns:
        The client, instrumented when capture is enabled, untouched otherwise

    Raises:
        TracingConfigError: If capture is enabled without a daemon address
        TracingUnavailable: If aws-xray-sdk is not installed
    """
    log = log or logger

    if not resolve_enabled(mode, daemon_address):
        return client

    if not daemon_address:
        raise TracingConfigError(
            f"X-Ray capture requested but {XRAY_DAEMON_ADDRESS_ENV} is not set."
        )

    try:
        sdk = _load_xray_sdk()
    except ImportError as e:
        raise TracingUnavailable(XRAY_SDK_DISTRIBUTION) from e

    log.debug(f"Enabling AWS X-Ray capture (daemon: {daemon_address})")
    sdk.xray_recorder.configure(daemon_address=daemon_address, context_missing="LOG_ERROR")
    return instrument_client(client, sdk.xray_recorder)
