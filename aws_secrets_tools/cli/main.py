"""CLI entrypoint for aws-secrets-tools."""
import sys
import argparse
import logging
import shutil
from pathlib import Path

from .validators import validate_recovery_window, validate_secret_name

VERSION = "0.1.0"

# Configure logging to stderr
logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    stream=sys.stderr
)
logger = logging.getLogger(__name__)

STARTER_CONFIG = """\
aws:
  # region: us-east-1
  xray: auto
dotenv:
  paths: ["./"]
  dotenv_token: .env
  private_token: local
  # default_env: dev
secrets:
  secret_name: $STACK_NAME
  push:
    from: ["file:env:private"]
  pull:
    to: "env:private"
"""


def _configure_verbosity(verbose: int) -> None:
    if verbose >= 2:
        logging.getLogger().setLevel(logging.DEBUG)
    elif verbose == 1:
        logging.getLogger().setLevel(logging.INFO)


def _load_config(args):
    from aws_secrets_tools.secrets.domains.config_loader import load_config

    return load_config(getattr(args, "config", None))


def _build_client(args, config):
    from aws_secrets_tools.secrets.domains.aws_client import AWSSecretsClient

    return AWSSecretsClient(
        region=args.region or config.region,
        xray=args.xray or config.xray,
        endpoint_url=args.endpoint_url,
    )


def _load_env(args, config):
    """Load dotenv values and provenance (or a provenance document) for this invocation."""
    from aws_secrets_tools.secrets.domains.dotenv_files import (
        load_dotenv_cascade,
        load_provenance_document,
        parse_var_assignments,
    )
    from aws_secrets_tools.secrets.domains.provenance import VarsEntry

    variables = parse_var_assignments(getattr(args, "var", None) or [])
    provenance_file = getattr(args, "provenance_file", None)
    if provenance_file:
        loaded = load_provenance_document(provenance_file)
        for key, value in variables.items():
            loaded.record(key, value, VarsEntry())
        return loaded

    return load_dotenv_cascade(
        args.paths or config.paths,
        env=args.env or config.default_env,
        dotenv_token=config.dotenv_token,
        private_token=config.private_token,
        variables=variables,
    )


def _resolve_secret_id(args, config, loaded):
    from aws_secrets_tools.secrets.workflows.secret_operations import resolve_secret_id

    secret_id = resolve_secret_id(args.secret_name, config.secret_name, loaded.values)
    validate_secret_name(secret_id)
    return secret_id


def cmd_version(args):
    """Show version information."""
    print(f"aws-secrets-tools {VERSION}")


def cmd_config_set_path(args):
    """Set config file path preference."""
    from aws_secrets_tools.secrets.domains.preferences import CONFIG_PATH_KEY, set_preference

    config_path = Path(args.path).resolve()

    if not config_path.exists():
        print(f"Error: Config file does not exist: {config_path}", file=sys.stderr)
        sys.exit(1)

    if not config_path.is_file():
        print(f"Error: Path is not a file: {config_path}", file=sys.stderr)
        sys.exit(1)

    set_preference(CONFIG_PATH_KEY, str(config_path))
    print(f"Config path set to: {config_path}")


def cmd_config_show(args):
    """Show the config file in effect and its settings."""
    from aws_secrets_tools.secrets.domains.config_loader import default_config_path
    from aws_secrets_tools.secrets.domains.preferences import CONFIG_PATH_KEY, get_preference

    config_path_pref = get_preference(CONFIG_PATH_KEY)

    if config_path_pref and Path(config_path_pref).exists():
        print(f"Config path: {config_path_pref}")
        print("Source: preference")
    elif config_path_pref:
        print(f"Config path (from preference, but file not found): {config_path_pref}")
        print("Source: preference")
    else:
        default_config = default_config_path()
        print(f"Config path: {default_config}")
        print("Source: default" if default_config.exists() else "Source: default (file not found, using built-in defaults)")


def cmd_config_clear(args):
    """Clear config path preference."""
    from aws_secrets_tools.secrets.domains.config_loader import default_config_path
    from aws_secrets_tools.secrets.domains.preferences import CONFIG_PATH_KEY, clear_preference

    clear_preference(CONFIG_PATH_KEY)
    print(f"Config path preference cleared. Will use default: {default_config_path()}")


def cmd_config_init(args):
    """Interactive config setup."""
    from aws_secrets_tools.secrets.domains.config_loader import default_config_path
    from aws_secrets_tools.secrets.domains.preferences import CONFIG_PATH_KEY, set_preference

    default_config = default_config_path()

    print("=== aws-secrets-tools Configuration Setup ===\n")
    print(f"Default config location: {default_config}\n")

    if default_config.exists():
        print(f"Configuration file already exists at: {default_config}")
        return

    print("Choose an option:")
    print("1. Write a starter config to the default location")
    print("2. Copy an existing config file to the default location")
    print("3. Point to an existing config file at a different location")
    print("4. Cancel")

    choice = input("\nEnter choice (1-4): ").strip()

    if choice == "1":
        default_config.parent.mkdir(parents=True, exist_ok=True)
        default_config.write_text(STARTER_CONFIG)
        print(f"\nStarter config written to: {default_config}")

    elif choice == "2":
        source = Path(input("Enter path to existing config file: ").strip()).expanduser().resolve()
        if not source.is_file():
            print(f"Error: File not found: {source}", file=sys.stderr)
            sys.exit(1)
        default_config.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, default_config)
        print(f"\nConfig copied to: {default_config}")

    elif choice == "3":
        config_file = Path(input("Enter path to config file: ").strip()).expanduser().resolve()
        if not config_file.is_file():
            print(f"Error: File not found: {config_file}", file=sys.stderr)
            sys.exit(1)
        set_preference(CONFIG_PATH_KEY, str(config_file))
        print(f"\nConfig path set to: {config_file}")

    elif choice == "4":
        print("\nSetup cancelled. Built-in defaults will be used.")

    else:
        print("Invalid choice.", file=sys.stderr)
        sys.exit(2)


def cmd_secrets_push(args):
    """Create or update a secret from selected loaded keys."""
    from aws_secrets_tools.secrets.domains.selectors import DEFAULT_FROM, parse_from_selectors
    from aws_secrets_tools.secrets.workflows.secret_operations import (
        build_push_payload,
        push_secret,
        resolve_include_exclude,
    )

    config = _load_config(args)
    selectors = parse_from_selectors(args.from_selectors or config.push.from_selectors or [DEFAULT_FROM])
    include, exclude = resolve_include_exclude(
        args.include, args.exclude, config.push.include, config.push.exclude
    )

    loaded = _load_env(args, config)
    secret_id = _resolve_secret_id(args, config, loaded)

    payload = build_push_payload(loaded.values, loaded.provenance, selectors, include, exclude)
    if not payload:
        logger.warning("No keys matched the selectors; pushing an empty secret.")

    client = _build_client(args, config)
    mode = push_secret(client, secret_id, payload)
    print(f"{'Created' if mode == 'created' else 'Updated'} secret '{secret_id}' ({len(payload)} keys)")


def cmd_secrets_pull(args):
    """Update a local dotenv file from a secret."""
    from aws_secrets_tools.secrets.domains.dotenv_files import (
        format_dotenv_line,
        resolve_destination,
        write_dotenv,
    )
    from aws_secrets_tools.secrets.domains.selectors import DEFAULT_TO, parse_to_selector
    from aws_secrets_tools.secrets.workflows.secret_operations import pull_secret, resolve_include_exclude

    config = _load_config(args)
    to = parse_to_selector(args.to or config.pull.to or DEFAULT_TO)
    include, exclude = resolve_include_exclude(
        args.include, args.exclude, config.pull.include, config.pull.exclude
    )

    env = args.env or config.default_env
    paths = args.paths or config.paths

    loaded = _load_env(args, config)
    secret_id = _resolve_secret_id(args, config, loaded)

    # Resolve the destination before reading so a missing --env fails locally.
    target, template = resolve_destination(
        to,
        paths,
        env=env,
        dotenv_token=config.dotenv_token,
        private_token=config.private_token,
        template_extension=args.template_extension or config.template_extension,
    )

    client = _build_client(args, config)
    secrets = pull_secret(client, secret_id, include, exclude)

    if args.stdout:
        for key, value in secrets.items():
            if value is not None:
                print(format_dotenv_line(key, value))
        return

    write_dotenv(target, secrets, template)
    print(f"Updated {target}")


def cmd_secrets_delete(args):
    """Delete a secret (recoverable by default)."""
    from aws_secrets_tools.secrets.domains.models import DeletionPolicy
    from aws_secrets_tools.secrets.workflows.secret_operations import delete_secret

    config = _load_config(args)

    if args.recovery_window_days is not None:
        validate_recovery_window(args.recovery_window_days)
    policy = DeletionPolicy.from_options(
        recovery_window_days=args.recovery_window_days,
        force_without_recovery=True if args.force else None,
    )

    loaded = _load_env(args, config)
    secret_id = _resolve_secret_id(args, config, loaded)

    client = _build_client(args, config)
    delete_secret(client, secret_id, policy)
    print(f"Deleted secret '{secret_id}'" + ("" if policy.recoverable else " (no recovery)"))


def _add_common_secret_options(parser):
    parser.add_argument(
        "-s", "--secret-name",
        help="Secret name, supports $VAR expansion (default: secrets.secret_name from config, else $STACK_NAME)"
    )
    parser.add_argument(
        "--region",
        help="AWS region (default: aws.region from config, else the boto3 default)"
    )
    parser.add_argument(
        "--xray",
        choices=["auto", "on", "off"],
        help="AWS X-Ray capture mode (default: aws.xray from config, else auto)"
    )
    parser.add_argument(
        "--endpoint-url",
        help="Custom Secrets Manager endpoint (e.g. LocalStack)"
    )
    parser.add_argument(
        "--env",
        help="Environment name for env-scoped dotenv files (default: dotenv.default_env from config)"
    )
    parser.add_argument(
        "--paths",
        nargs="+",
        help="Directories searched for dotenv files, lowest precedence first (default: ./)"
    )
    parser.add_argument(
        "--var",
        action="append",
        metavar="KEY=VALUE",
        help="Explicit variable, applied after dotenv files (repeatable)"
    )


def _add_include_exclude(parser, noun):
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "-i", "--include",
        nargs="+",
        metavar="KEY",
        help=f"Only {noun} these keys (overrides config include/exclude)"
    )
    group.add_argument(
        "-e", "--exclude",
        nargs="+",
        metavar="KEY",
        help=f"Do not {noun} these keys (overrides config include/exclude)"
    )


def build_parser():
    parser = argparse.ArgumentParser(
        prog="aws-secrets",
        description="aws-secrets-tools CLI - env-map secrets in AWS Secrets Manager",
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (AWS error, malformed secret, config error, etc.)
  2 - Usage error (invalid arguments, selectors, secret name, etc.)

Environment variables:
  STACK_NAME               - Default secret name ($STACK_NAME)
  AWS_XRAY_DAEMON_ADDRESS  - Enables X-Ray capture in auto mode

Configuration:
  Default location: ~/.config/aws-secrets-tools/config.yml
  Custom path: Set with 'aws-secrets config set-path <path>' or --config
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", help="Path to config file (overrides preference and default location)")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Log progress (-vv for debug)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of aws-secrets-tools"
    )

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Manage aws-secrets-tools configuration"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")

    config_set_path_parser = config_subparsers.add_parser(
        "set-path",
        help="Set config file path",
        description="Store the absolute path to your config file in ~/.config/aws-secrets-tools/preferences.json"
    )
    config_set_path_parser.add_argument("path", help="Path to config file")

    config_subparsers.add_parser("show", help="Show current config path")
    config_subparsers.add_parser("clear", help="Clear config path preference")
    config_subparsers.add_parser("init", help="Interactive config setup")

    # secrets command
    secrets_parser = subparsers.add_parser(
        "secrets",
        help="Secret management operations",
        description="Manage env-map secrets in AWS Secrets Manager"
    )
    secrets_subparsers = secrets_parser.add_subparsers(dest="secrets_command")

    push_parser = secrets_subparsers.add_parser(
        "push",
        help="Create or update a secret from selected loaded keys",
        description="""
Select loaded keys by the layer that last set them and write them to a secret.

Selectors (repeatable --from, any match selects the key):
  file:<global|env|*>:<public|private|*>
  config:<packaged|project|*>:<global|env|*>:<public|private|*>
  dynamic:<config|programmatic|dynamicPath|*>
  vars

Default: file:env:private (or secrets.push.from in config).
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _add_common_secret_options(push_parser)
    push_parser.add_argument(
        "--from",
        dest="from_selectors",
        action="append",
        metavar="SELECTOR",
        help="Provenance selector for payload keys (repeatable)"
    )
    push_parser.add_argument(
        "--provenance-file",
        help="JSON document with values and provenance, used instead of dotenv files"
    )
    _add_include_exclude(push_parser, "push")

    pull_parser = secrets_subparsers.add_parser(
        "pull",
        help="Update a local dotenv file from a secret",
        description="Read an env-map secret and merge it into the dotenv file named by --to."
    )
    _add_common_secret_options(pull_parser)
    pull_parser.add_argument(
        "--to",
        metavar="SCOPE:PRIVACY",
        help="Destination dotenv selector (global|env):(public|private) (default: env:private)"
    )
    pull_parser.add_argument(
        "-t", "--template-extension",
        help="Template extension used when the target file is missing (default: template)"
    )
    pull_parser.add_argument(
        "--stdout",
        action="store_true",
        help="Print the pulled keys as dotenv lines instead of writing a file"
    )
    _add_include_exclude(pull_parser, "pull")

    delete_parser = secrets_subparsers.add_parser(
        "delete",
        help="Delete a secret (recoverable by default)",
        description="Delete a secret. Without options the AWS default recovery window applies."
    )
    _add_common_secret_options(delete_parser)
    delete_group = delete_parser.add_mutually_exclusive_group()
    delete_group.add_argument(
        "--recovery-window-days",
        type=int,
        help="Recovery window in days, 7-30 (omit to use the AWS default)"
    )
    delete_group.add_argument(
        "--force",
        action="store_true",
        help="Delete immediately without recovery (DANGEROUS)"
    )

    return parser, {"config": config_parser, "secrets": secrets_parser}


def main(argv=None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (AWS, malformed secret, config, etc.)
        2 - Usage errors (invalid arguments, selectors, secret name, etc.)
    """
    from aws_secrets_tools.secrets.domains.errors import ValidationError

    parser, subparsers = build_parser()
    args = parser.parse_args(argv)
    _configure_verbosity(args.verbose)

    if not args.command:
        parser.print_help()
        sys.exit(2)

    handlers = {
        ("version", None): cmd_version,
        ("config", "set-path"): cmd_config_set_path,
        ("config", "show"): cmd_config_show,
        ("config", "clear"): cmd_config_clear,
        ("config", "init"): cmd_config_init,
        ("secrets", "push"): cmd_secrets_push,
        ("secrets", "pull"): cmd_secrets_pull,
        ("secrets", "delete"): cmd_secrets_delete,
    }
    subcommand = getattr(args, f"{args.command}_command", None)
    handler = handlers.get((args.command, subcommand))

    if handler is None:
        subparsers.get(args.command, parser).print_help()
        sys.exit(2)

    try:
        handler(args)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
