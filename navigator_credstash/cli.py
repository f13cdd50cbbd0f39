"""credstasher — command line access to the credential store.

Usage::

    credstasher [global options] list [--json]
    credstasher [global options] put NAME SECRET [-v VERSION] [-c CONTEXT]
    credstasher [global options] get NAME [-v VERSION] [-c CONTEXT] [-n]
    credstasher [global options] delete NAME [-v VERSION] [-a]
    credstasher [global options] setup

CONTEXT is a JSON object of string values, e.g. ``'{"env": "prod"}'``.
"""
import sys
import asyncio
import argparse
import logging
from typing import Optional

import orjson

from .config import DEFAULT_REGION, DEFAULT_TABLE, resolve_config
from .exceptions import (
    DecodingError,
    IntegrityError,
    KeyServiceError,
    NotFoundError,
)
from .store import SecretStore
from .version import __version__

logger = logging.getLogger("navigator.credstash")

EXIT_ERROR = 1
EXIT_NOT_FOUND = 2
EXIT_INTEGRITY = 3
EXIT_KEY_SERVICE = 4


def parse_context(raw: Optional[str]) -> Optional[dict[str, str]]:
    """Parse an encryption context given as a JSON object.

    Raises:
        ValueError: If it is not a JSON object with string values.
    """
    if raw is None:
        return None
    try:
        context = orjson.loads(raw)
    except orjson.JSONDecodeError as err:
        raise ValueError(f"Invalid JSON in context option: {err}") from err
    if not isinstance(context, dict) or not all(
        isinstance(v, str) for v in context.values()
    ):
        raise ValueError("Context must be a JSON object with string values")
    return context


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="credstasher",
        description="Credential management using AWS KMS and DynamoDB",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument("-r", "--region", help=f"AWS region (default {DEFAULT_REGION})")
    parser.add_argument("-t", "--table", help=f"DynamoDB table name (default {DEFAULT_TABLE})")
    parser.add_argument("-k", "--kms-key-id", help="KMS key ID or alias")
    parser.add_argument("-p", "--profile", help="AWS profile")
    parser.add_argument("-d", "--dynamodb-endpoint", help="Custom endpoint URL for DynamoDB")
    parser.add_argument("-e", "--kms-endpoint", help="Custom KMS endpoint URL")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    cmd = commands.add_parser("list", help="List all stored credentials")
    cmd.add_argument("--json", action="store_true", help="Print a JSON array")

    cmd = commands.add_parser("put", help="Store a new credential")
    cmd.add_argument("name")
    cmd.add_argument("secret")
    cmd.add_argument("-v", "--key-version", help="Version number")
    cmd.add_argument("-c", "--context", help="Encryption context (JSON string)")

    cmd = commands.add_parser("get", help="Retrieve a specific credential")
    cmd.add_argument("name")
    cmd.add_argument("-v", "--key-version", help="Version number")
    cmd.add_argument("-c", "--context", help="Encryption context (JSON string)")
    cmd.add_argument("-n", "--noline", action="store_true", help="Don't append newline")

    cmd = commands.add_parser("delete", help="Delete a credential")
    cmd.add_argument("name")
    cmd.add_argument("-v", "--key-version", help="Version number")
    cmd.add_argument("-a", "--all", action="store_true", help="Delete all versions")

    commands.add_parser("setup", help="Create the DynamoDB table")
    return parser


async def run(args: argparse.Namespace, store: SecretStore) -> None:
    """Execute a parsed command against a store."""
    table = store.table
    if args.command == "setup":
        created = await table.ensure_table()
        print("DynamoDB table created." if created else "DynamoDB table already exists.")
        return
    if hasattr(table, "check_for_table"):
        await table.check_for_table()

    if args.command == "list":
        secrets = await store.list_secrets()
        if args.json:
            print(orjson.dumps([s._asdict() for s in secrets]).decode("utf-8"))
            return
        if not secrets:
            print("No secrets found.")
            return
        print("Stored secrets:\n")
        for secret in secrets:
            print(f"{secret.name} (v: {secret.version})")
        print(f"\nTotal secrets: {len(secrets)}")
    elif args.command == "put":
        version = await store.put(
            args.name, args.secret,
            version=args.key_version,
            context=parse_context(args.context),
        )
        print(f"Secret '{args.name}' stored successfully (v: {version}).")
    elif args.command == "get":
        secret = await store.get(
            args.name,
            version=args.key_version,
            context=parse_context(args.context),
        )
        sys.stdout.write(secret if args.noline else secret + "\n")
    elif args.command == "delete":
        await store.delete(args.name, version=args.key_version, all_versions=args.all)
        if args.all:
            print(f"All versions of secret '{args.name}' deleted successfully.")
        else:
            print(f"Secret '{args.name}' deleted successfully.")


def main(argv: Optional[list[str]] = None, store: Optional[SecretStore] = None) -> int:
    """Entry point of the ``credstasher`` script; returns the exit status."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        if store is None:
            config = resolve_config(
                region=args.region,
                table=args.table,
                kms_key_id=args.kms_key_id,
                profile=args.profile,
                dynamodb_endpoint=args.dynamodb_endpoint,
                kms_endpoint=args.kms_endpoint,
            )
            store = SecretStore.from_config(config)
        asyncio.run(run(args, store))
    except NotFoundError as err:
        print(f"Error: {err}", file=sys.stderr)
        return EXIT_NOT_FOUND
    except (IntegrityError, DecodingError) as err:
        print(f"Error: secret is corrupt or was stored under another context: {err}",
              file=sys.stderr)
        return EXIT_INTEGRITY
    except KeyServiceError as err:
        print(f"Error: key service failure: {err}", file=sys.stderr)
        return EXIT_KEY_SERVICE
    except Exception as err:  # pylint: disable=broad-except
        logger.debug("credstasher %s failed", args.command, exc_info=True)
        print(f"Error: {err}", file=sys.stderr)
        return EXIT_ERROR
    return 0


if __name__ == "__main__":
    sys.exit(main())
