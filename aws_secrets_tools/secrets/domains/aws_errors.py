"""Classify errors returned by AWS by their machine-readable error code."""
from typing import Optional

from botocore.exceptions import ClientError

RESOURCE_NOT_FOUND = "ResourceNotFoundException"


def get_aws_error_code(err: BaseException) -> Optional[str]:
    """
    Return the AWS error code carried by an exception, if any.

    botocore ``ClientError`` carries it in ``response["Error"]["Code"]``.
    Other error objects are checked for a ``name``, ``code`` or ``Code``
    attribute. Messages are never inspected.
    """
    if isinstance(err, ClientError):
        code = err.response.get("Error", {}).get("Code")
        return code if isinstance(code, str) and code else None

    for attr in ("name", "code", "Code"):
        code = getattr(err, attr, None)
        if isinstance(code, str) and code:
            return code
    return None


def is_aws_error_code(err: BaseException, code: str) -> bool:
    return get_aws_error_code(err) == code


def is_resource_not_found_error(err: BaseException) -> bool:
    return is_aws_error_code(err, RESOURCE_NOT_FOUND)
