"""Input validation for CLI arguments."""
import re
import sys

# AWS Secrets Manager secret names: 1-512 chars of letters, digits and /_+=.@-
SECRET_NAME_PATTERN = re.compile(r'^[A-Za-z0-9/_+=.@-]{1,512}$')
SECRET_ARN_PREFIX = "arn:"


def validate_secret_name(name: str) -> None:
    """
    Validate a secret name (after $VAR expansion) or ARN.

    Args:
        name: Secret name to validate

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not name:
        print("Error: Secret name cannot be empty", file=sys.stderr)
        print("\nSet --secret-name, secrets.secret_name in config, or STACK_NAME.", file=sys.stderr)
        sys.exit(2)

    if name.startswith(SECRET_ARN_PREFIX):
        return

    if not SECRET_NAME_PATTERN.match(name):
        print(f"Error: Invalid secret name '{name}'", file=sys.stderr)
        print("\nAllowed characters: letters, numbers and / _ + = . @ -", file=sys.stderr)
        print("Maximum length: 512 characters", file=sys.stderr)
        print("\nExamples of valid names:", file=sys.stderr)
        print("  ✓ my-stack", file=sys.stderr)
        print("  ✓ prod/api/env", file=sys.stderr)
        print("\nExamples of invalid names:", file=sys.stderr)
        print("  ✗ my stack (contains space)", file=sys.stderr)
        print("  ✗ $UNSET_VAR (unexpanded variable)", file=sys.stderr)
        sys.exit(2)


def validate_recovery_window(days: int) -> None:
    """Secrets Manager accepts recovery windows of 7 to 30 days."""
    if not 7 <= days <= 30:
        print(f"Error: Invalid recovery window {days}: must be between 7 and 30 days", file=sys.stderr)
        sys.exit(2)
