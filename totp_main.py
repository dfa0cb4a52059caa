"""
TOTPVault - Command Line

Subcommands:
- create-db: Create a new, empty database
- add-url:   Add a credential from an otpauth:// URL (flag or clipboard)
- add-qrc:   Add a credential from a QR code image
- list:      Show all credentials as a table
- generate:  Print (and optionally copy) the current code
- remove:    Delete a credential
- export:    Write the decrypted database as plain JSON
- version:   Print the version

Every command that touches the database prompts for the password, loads,
changes the collection in memory, and saves it back in one go.
"""

import os
import sys
import getpass
import logging
import argparse

import pyperclip
from dotenv import load_dotenv

from totpvault import __version__
from totpvault import otp
from totpvault.config import VaultConfig, resolve_db_path, resolve_salt
from totpvault.errors import TOTPVaultError
from totpvault.store import TOTPStore, write_plain

PASSWORD_PROMPT = "Enter password: "
CONFIRM_PROMPT = "Confirm: "

logger = logging.getLogger(__name__)


def say(args, message):
    """Print unless --quiet."""
    if not args.quiet:
        print(message)


def open_config(args, read_password):
    """Resolve path and salt, then prompt for the password."""
    path = resolve_db_path(args.db)
    say(args, f"Using database file: {path}")
    password = read_password(PASSWORD_PROMPT)
    return VaultConfig(path=path, password=password, salt=resolve_salt(args.salt))


def load_existing(cfg):
    try:
        return cfg.load()
    except FileNotFoundError:
        raise TOTPVaultError(f"database not found: {cfg.path} (run create-db first)") from None


def print_table(entries):
    headers = ("Issuer", "Account Name", "Type", "Period", "Digits", "Algorithm")
    rows = [
        (e.issuer or '-', e.account_name, e.type, str(e.period), str(e.digits), e.algorithm)
        for e in entries
    ]
    widths = [max(len(h), *(len(r[i]) for r in rows)) if rows else len(h) for i, h in enumerate(headers)]

    line = "  ".join(f"{h:<{w}}" for h, w in zip(headers, widths))
    print(line)
    print("-" * len(line))
    for row in rows:
        print("  ".join(f"{c:<{w}}" for c, w in zip(row, widths)))


# =============================================================================
# COMMANDS
# =============================================================================

def cmd_create_db(args, read_password):
    path = resolve_db_path(args.db)
    say(args, f"Using database file: {path}")
    if os.path.exists(path):
        raise TOTPVaultError(f"database file already exists: {path}")

    pw = read_password(PASSWORD_PROMPT)
    pw2 = read_password(CONFIRM_PROMPT)
    if pw != pw2:
        raise TOTPVaultError("passwords don't match")
    if not pw:
        raise TOTPVaultError("password must not be empty")

    cfg = VaultConfig(path=path, password=pw, salt=resolve_salt(args.salt))
    cfg.save(TOTPStore())
    logger.info("Created database %s", path)
    say(args, f"Created new TOTP database at {path}")


def add_entry_from_url(args, read_password, url):
    """Parse, load, add, save, then show the current code."""
    entry = otp.entry_from_url(url)

    cfg = open_config(args, read_password)
    store = load_existing(cfg)
    store.add(entry)
    cfg.save(store)

    say(args, f"Added TOTP for {entry.account_name} from {entry.issuer or '-'}")
    if entry.type == "totp":
        if not args.quiet:
            print("Generated TOTP code: ", end="")
        print(otp.generate_code(entry))


def cmd_add_url(args, read_password):
    url = args.url
    if not url:
        url = pyperclip.paste()
    add_entry_from_url(args, read_password, url)


def cmd_add_qrc(args, read_password):
    url = otp.url_from_qr_image(args.image)
    add_entry_from_url(args, read_password, url)


def cmd_list(args, read_password):
    cfg = open_config(args, read_password)
    store = load_existing(cfg)
    entries = store.list()
    if not entries:
        say(args, "No entries.")
        return
    print_table(entries)


def cmd_generate(args, read_password):
    cfg = open_config(args, read_password)
    store = load_existing(cfg)
    entry = store.get(args.account, args.issuer)
    code = otp.generate_code(entry)

    if args.quiet:
        print(code)
    else:
        remaining = otp.seconds_remaining(entry)
        print(f"TOTP for {entry.account_name} from {entry.issuer or '-'}: {code} ({remaining}s left)")

    if args.clipboard:
        pyperclip.copy(code)
        say(args, "Copied TOTP code to clipboard")


def cmd_remove(args, read_password):
    cfg = open_config(args, read_password)
    store = load_existing(cfg)
    entry = store.remove(args.account, args.issuer)
    cfg.save(store)
    say(args, f"Removed TOTP for {entry.account_name} from {entry.issuer or '-'}")


def cmd_export(args, read_password):
    cfg = open_config(args, read_password)
    store = load_existing(cfg)
    write_plain(args.output, store)
    say(args, f"Exported {len(store)} entries to {args.output} (UNENCRYPTED)")


def cmd_version(args, read_password):
    print(f"totp-cli {__version__}")


# =============================================================================
# ARGUMENTS
# =============================================================================

def build_parser():
    parser = argparse.ArgumentParser(prog="totp-cli", description="Encrypted TOTP credential store")
    parser.add_argument("--db", help="database file (env TOTP_DB_PATH, default ~/.config/totp-cli/entries.db)")
    parser.add_argument("--salt", help="salt phrase (env TOTP_SALT)")
    parser.add_argument("-q", "--quiet", action="store_true", help="only print essential output")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("create-db", aliases=["c", "db"], help="create a new TOTP database")
    p.set_defaults(func=cmd_create_db)

    p = sub.add_parser("add-url", aliases=["a"], help="add a TOTP from a URL or the clipboard")
    p.add_argument("-u", "--url", help="otpauth:// URL (read from clipboard when omitted)")
    p.set_defaults(func=cmd_add_url)

    p = sub.add_parser("add-qrc", aliases=["qrc"], help="add a TOTP from a QR code image")
    p.add_argument("-i", "--image", required=True, help="PNG/JPEG file holding the QR code")
    p.set_defaults(func=cmd_add_qrc)

    p = sub.add_parser("list", aliases=["l"], help="list all TOTPs")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("generate", aliases=["gen", "g"], help="generate a TOTP code")
    p.add_argument("-a", "--account", required=True)
    p.add_argument("-i", "--issuer", default="")
    p.add_argument("-c", "--clipboard", action="store_true", help="copy the code to the clipboard")
    p.set_defaults(func=cmd_generate)

    p = sub.add_parser("remove", aliases=["rm"], help="remove a TOTP")
    p.add_argument("-a", "--account", required=True)
    p.add_argument("-i", "--issuer", default="")
    p.set_defaults(func=cmd_remove)

    p = sub.add_parser("export", help="write the database as unencrypted JSON")
    p.add_argument("-o", "--output", required=True)
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("version", help="print the version")
    p.set_defaults(func=cmd_version)

    return parser


def main(argv=None, read_password=getpass.getpass):
    load_dotenv()
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        args.func(args, read_password)
    except (TOTPVaultError, ValueError, OSError, pyperclip.PyperclipException) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nExiting...")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
