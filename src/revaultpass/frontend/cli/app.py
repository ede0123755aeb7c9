"""Command line frontend for RevaultPass.

Each invocation loads the store, runs exactly one command and, for commands
that change it, saves it back under the store lock. Commands return a
CommandResult instead of printing, so they can be driven from tests.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

import pyperclip

from revaultpass import __version__
from revaultpass.core.exceptions import RecordNotFoundError, RevaultError
from revaultpass.core.models import Record, add_record, find_record, remove_record
from revaultpass.security import keystore
from revaultpass.security.kdf import kdf_params

from .context import AppContext, build_context
from .logging_config import configure_logging

logger = logging.getLogger(__name__)

UNLOCK_PROMPT = "Master key (or press Enter if store is unencrypted): "

HELP_TEXT = """RevaultPass - password manager (account:secret)
  init [--force]                 create store, set master key (recommended)
  add <name> <account> [secret]  add entry
  list                           list names (account:****)
  get <name> [--copy]            print account:secret, or copy the secret
  delete <name>                  remove entry
  info                           show store format and size
  remember                       cache the master key in the OS keystore
  forget                         drop the cached master key"""


class Command(Enum):
    INIT = "init"
    ADD = "add"
    LIST = "list"
    GET = "get"
    DELETE = "delete"
    INFO = "info"
    REMEMBER = "remember"
    FORGET = "forget"
    HELP = "help"


@dataclass
class CommandResult:
    ok: bool
    message: str = ""

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


def _init(ctx: AppContext, args: argparse.Namespace) -> CommandResult:
    storage = ctx.storage
    exists_msg = f"Store already exists at {storage.path}; use --force to replace it."
    if storage.exists() and not args.force:
        return CommandResult(False, exists_msg)
    passphrase = ctx.new_master_key()
    with storage.locked():
        # another invocation may have created it while we prompted
        if storage.exists() and not args.force:
            return CommandResult(False, exists_msg)
        storage.save([], passphrase)
    if passphrase is None:
        return CommandResult(True, "Store created (unencrypted). Use 'revaultpass init --force' to set a key.")
    return CommandResult(True, "Store created. Your data is encrypted with your key.")


def _add(ctx: AppContext, args: argparse.Namespace) -> CommandResult:
    secret = args.secret
    if secret is None:
        secret = ctx.prompt_secret("Secret: ")
    passphrase = ctx.master_key(UNLOCK_PROMPT)
    with ctx.storage.locked():
        records = ctx.storage.load(passphrase)
        add_record(records, Record(args.name, args.account, secret))
        ctx.storage.save(records, passphrase)
    return CommandResult(True, "Saved.")


def _list(ctx: AppContext, args: argparse.Namespace) -> CommandResult:
    records = ctx.storage.load(ctx.master_key(UNLOCK_PROMPT))
    if not records:
        return CommandResult(True, "(none)")
    return CommandResult(True, "\n".join(f"  {r.masked()}" for r in records))


def _get(ctx: AppContext, args: argparse.Namespace) -> CommandResult:
    records = ctx.storage.load(ctx.master_key(UNLOCK_PROMPT))
    record = find_record(records, args.name)
    if record is None:
        raise RecordNotFoundError(f"not found: {args.name}", name=args.name)
    if args.copy:
        try:
            pyperclip.copy(record.secret)
        except pyperclip.PyperclipException as e:
            logger.debug("clipboard copy failed: %s", e)
            return CommandResult(False, "Could not copy to clipboard")
        return CommandResult(True, f"Secret for {record.name} ({record.account}) copied to clipboard.")
    return CommandResult(True, f"{record.account}:{record.secret}")


def _delete(ctx: AppContext, args: argparse.Namespace) -> CommandResult:
    passphrase = ctx.master_key(UNLOCK_PROMPT)
    with ctx.storage.locked():
        records = ctx.storage.load(passphrase)
        remove_record(records, args.name)
        ctx.storage.save(records, passphrase)
    return CommandResult(True, "Deleted.")


def _info(ctx: AppContext, args: argparse.Namespace) -> CommandResult:
    info = ctx.storage.info()
    if info is None:
        return CommandResult(True, f"No store at {ctx.storage.path}")
    lines = [
        f"path:    {ctx.storage.path}",
        f"format:  {info.kind}",
        f"size:    {info.size} bytes (payload {info.payload_size})",
    ]
    if info.kind == "encrypted":
        params = kdf_params()
        lines.append(
            f"kdf:     {params['algo']} t={params['time']} m={params['memory']}KiB p={params['parallelism']}"
        )
        lines.append("cipher:  chacha20-poly1305")
    return CommandResult(True, "\n".join(lines))


def _remember(ctx: AppContext, args: argparse.Namespace) -> CommandResult:
    info = ctx.storage.info()
    if info is None or info.kind != "encrypted":
        return CommandResult(False, "Nothing to remember: the store is not encrypted.")
    passphrase = ctx.env_master_key or ctx.prompt_secret("Master key to remember: ")
    if not passphrase:
        return CommandResult(False, "No master key entered.")
    # fails with AuthError before anything is cached if the key is wrong
    ctx.storage.load(passphrase)
    try:
        keystore.save_passphrase(ctx.keystore_account, passphrase, force=args.force)
    except RuntimeError as e:
        return CommandResult(False, str(e))
    return CommandResult(True, "Master key stored in the OS keystore.")


def _forget(ctx: AppContext, args: argparse.Namespace) -> CommandResult:
    try:
        removed = keystore.delete_passphrase(ctx.keystore_account)
    except RuntimeError as e:
        return CommandResult(False, str(e))
    if not removed:
        return CommandResult(True, "No cached master key.")
    return CommandResult(True, "Cached master key removed.")


def _help(ctx: AppContext, args: argparse.Namespace) -> CommandResult:
    return CommandResult(True, HELP_TEXT)


HANDLERS: Dict[Command, Callable[[AppContext, argparse.Namespace], CommandResult]] = {
    Command.INIT: _init,
    Command.ADD: _add,
    Command.LIST: _list,
    Command.GET: _get,
    Command.DELETE: _delete,
    Command.INFO: _info,
    Command.REMEMBER: _remember,
    Command.FORGET: _forget,
    Command.HELP: _help,
}


def dispatch(ctx: AppContext, command: Command, args: argparse.Namespace) -> CommandResult:
    """Run one command; every RevaultPass error becomes a failed result."""
    try:
        return HANDLERS[command](ctx, args)
    except RevaultError as e:
        logger.debug("%s failed: %s (%s)", command.value, e, e.kind.value)
        return CommandResult(False, str(e))
    except ValueError as e:
        return CommandResult(False, str(e))


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="revaultpass",
        description="Private password manager with optional encryption.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--store",
        default=None,
        help="Path to the store file (default: $REVAULTPASS_STORE or ~/.revaultpass/store.dat)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Fail on an unrecognized store format instead of treating it as empty",
    )
    parser.add_argument(
        "--no-keystore",
        dest="use_keystore",
        action="store_false",
        help="Do not read a cached master key from the OS keystore",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command")

    p = sub.add_parser(Command.INIT.value, help="create store, set master key")
    p.add_argument("--force", action="store_true", help="replace an existing store")

    p = sub.add_parser(Command.ADD.value, help="add entry")
    p.add_argument("name")
    p.add_argument("account")
    p.add_argument("secret", nargs="?", default=None)

    sub.add_parser(Command.LIST.value, help="list names")

    p = sub.add_parser(Command.GET.value, help="print account:secret")
    p.add_argument("name")
    p.add_argument("--copy", action="store_true", help="copy the secret to the clipboard instead")

    p = sub.add_parser(Command.DELETE.value, help="remove entry")
    p.add_argument("name")

    sub.add_parser(Command.INFO.value, help="show store format and size")

    p = sub.add_parser(Command.REMEMBER.value, help="cache the master key in the OS keystore")
    p.add_argument("--force", action="store_true", help="store even on an insecure keyring backend")

    sub.add_parser(Command.FORGET.value, help="drop the cached master key")
    sub.add_parser(Command.HELP.value, help="show help")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)

    command = Command(args.command) if args.command else Command.HELP
    ctx = build_context(store_path=args.store, strict=args.strict, use_keystore=args.use_keystore)

    try:
        result = dispatch(ctx, command, args)
    except KeyboardInterrupt:
        print("\nAborted.", file=sys.stderr)
        return 1

    if result.message:
        print(result.message, file=sys.stdout if result.ok else sys.stderr)
    return result.exit_code


if __name__ == "__main__":  # pragma: no cover - CLI entry
    sys.exit(main())
