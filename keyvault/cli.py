"""
keyvault command line.

Usage:
    python -m keyvault init vault.txt --id mykey    # Create vault file
    python -m keyvault add vault.txt "s3cret"        # Encrypt a value
    python -m keyvault show vault.txt                # Decrypt all values
    python -m keyvault passwd vault.txt              # Change the password
    python -m keyvault inspect vault.txt             # Show header, no prompt
"""
import sys
import asyncio
import logging
import argparse
from pathlib import Path
from typing import Any

import orjson
from cryptography.exceptions import InvalidTag

from .config import KeyVaultConfig
from .exceptions import KeyVaultError
from .manager import KeyManager
from .reader import SecretReader
from .vault import KeyVault
from .version import __version__

logger = logging.getLogger("keyvault")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="keyvault",
        description="Password-protected key vault.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init", help="create a new vault file")
    init.add_argument("path", type=Path)
    init.add_argument("--id", dest="key_id", help="key id (defaults to file stem)")

    add = sub.add_parser("add", help="encrypt a value into the vault")
    add.add_argument("path", type=Path)
    add.add_argument("value")

    show = sub.add_parser("show", help="decrypt and print every value")
    show.add_argument("path", type=Path)

    passwd = sub.add_parser("passwd", help="change the vault password")
    passwd.add_argument("path", type=Path)

    inspect = sub.add_parser("inspect", help="print the vault header")
    inspect.add_argument("path", type=Path)
    return parser


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        return value.hex()
    return orjson.dumps(value).decode("utf-8")


async def run(args: argparse.Namespace, manager: KeyManager) -> int:
    if args.command == "init":
        if args.path.exists():
            raise KeyVaultError(f"{args.path} already exists")
        key_id = args.key_id or args.path.stem
        vault = await KeyVault.create(manager, key_id, path=args.path)
        vault.save()
        print(f"Created key {key_id} in {args.path}")
        return 0

    vault = KeyVault.load(manager, args.path)
    if args.command == "inspect":
        for name, value in vault.record.to_dict().items():
            print(f"{name}: {value}")
        print(f"chunks: {len(vault.chunks)}")
    elif args.command == "add":
        await vault.append(args.value)
        vault.save()
        print(f"Stored value #{len(vault.chunks)} in {args.path}")
    elif args.command == "show":
        for value in await vault.values():
            print(_format_value(value))
    elif args.command == "passwd":
        await vault.change_password()
        vault.save()
        print(f"Password changed for key {vault.key_id}")
    return 0


def main(
    argv: list[str] | None = None,
    reader: SecretReader | None = None,
    config: KeyVaultConfig | None = None,
) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = config or KeyVaultConfig.from_env()
    except ValueError as err:
        print(f"Invalid configuration: {err}", file=sys.stderr)
        return 2
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    manager = KeyManager.from_config(config, reader=reader)
    try:
        return asyncio.run(run(args, manager))
    except (KeyVaultError, OSError) as err:
        print(f"Error: {err}", file=sys.stderr)
        return 1
    except InvalidTag:
        logger.debug("Authentication failed for %s", args.path)
        print("Error: vault data failed authentication", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nExiting...", file=sys.stderr)
        return 130
    finally:
        manager.reset()
