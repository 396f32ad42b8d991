#!/usr/bin/env python3
"""
otp_cli.py — command line front end for the Mint account store.

Subcommands:
- list    : accounts with their current codes
- add     : store an account from a name and a Base32 secret
- import  : store an account from an otpauth://totp/ URI
- code    : code for an ad-hoc secret (optionally at a given time)
- show    : live code for one account, refreshed every window
- watch   : drive the popup router for a view hash (#list, #view/<name>)
- uri     : otpauth URI for an account
- verify  : check a code for an account
- delete  : remove an account
"""

import argparse
import asyncio
import os
import sys
import time

from mint_database import DATABASE_FILE, db_manager

from . import base32, otp_core
from .errors import HashPrimitiveError, InvalidOtpAuthUri
from .otpauth import format_otpauth_uri, parse_otpauth_uri
from .views import ERROR_TEXT, Router, ViewKind, ViewState


# --- CLI command handlers ---
def cmd_list(args):
    keys = db_manager.get_keys(args.db)
    if not keys:
        print("No accounts yet. Add one with 'mint-totp add'.")
        return 0
    now = time.time()
    for name, secret in keys.items():
        try:
            code = asyncio.run(otp_core.generate(secret, now))
        except HashPrimitiveError:
            code = ERROR_TEXT
        print(f"{name:<30} {code}")
    print(f"(valid ~{otp_core.remaining_seconds(now)}s)")
    return 0


def cmd_add(args):
    if args.strict and not base32.is_valid(args.secret):
        print(f"[-] '{args.secret}' is not a valid Base32 secret", file=sys.stderr)
        return 1
    if not db_manager.save_account(args.name, args.secret, args.db):
        print("[-] Name and secret are required", file=sys.stderr)
        return 1
    print(f"[+] Saved account '{args.name.strip()}'")
    return 0


def cmd_import(args):
    try:
        entry = parse_otpauth_uri(args.uri)
    except InvalidOtpAuthUri as e:
        print(f"[-] {e}", file=sys.stderr)
        return 1
    if not db_manager.save_account(entry.name, entry.secret, args.db):
        print("[-] Name and secret are required", file=sys.stderr)
        return 1
    print(f"[+] Saved account '{entry.name}'")
    return 0


def cmd_code(args):
    now = args.time if args.time is not None else time.time()
    try:
        code = asyncio.run(otp_core.generate(args.secret, now))
    except ValueError as e:
        print(f"[-] {e}", file=sys.stderr)
        return 1
    print(code)
    return 0


def cmd_show(args):
    return _watch(ViewState(ViewKind.VIEW, args.name).to_hash(), args.db)


def cmd_watch(args):
    return _watch(args.view, args.db)


def _watch(fragment, db_path):
    def on_code(name, code):
        print(f"{name:<30} {code}  (valid ~{otp_core.remaining_seconds(time.time()):2d}s)", flush=True)

    def on_error(name, exc):
        print(f"{name:<30} {ERROR_TEXT}: {exc}", flush=True)

    async def run():
        router = Router(lambda: db_manager.get_keys(db_path), on_code, on_error)
        state = await router.navigate(fragment)
        if state.kind is ViewKind.ADD:
            print("Nothing to watch on the add page.")
            await router.close()
            return
        print(f"[{state.to_hash()}] Press Ctrl+C to quit.\n")
        try:
            await asyncio.Event().wait()
        finally:
            await router.close()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        print("\nBye.")
    return 0


def cmd_uri(args):
    secret = db_manager.get_account_secret(args.name, args.db)
    if secret is None:
        print(f"[-] Account '{args.name}' not found", file=sys.stderr)
        return 1
    print(format_otpauth_uri(args.name, secret))
    return 0


def cmd_verify(args):
    secret = db_manager.get_account_secret(args.name, args.db)
    if secret is None:
        print(f"[-] Account '{args.name}' not found", file=sys.stderr)
        return 1
    try:
        valid = otp_core.verify_totp(secret, args.code, window=args.window)
    except ValueError as e:
        print(f"[-] {e}", file=sys.stderr)
        return 1
    if valid:
        print(f"[{args.name}] [+] TOTP code is VALID")
        return 0
    print(f"[{args.name}] [-] TOTP code is INVALID")
    return 1


def cmd_delete(args):
    if not db_manager.delete_account(args.name, args.db):
        print(f"[-] Account '{args.name}' not found", file=sys.stderr)
        return 1
    print(f"[+] Deleted account '{args.name}'")
    return 0


# --- Argparse builder ---
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="mint-totp", description="TOTP authenticator (SHA-1, 30s, 6 digits)")
    p.add_argument("--db", default=os.environ.get("MINT_DATABASE_FILE", DATABASE_FILE),
                   help="SQLite file holding the accounts")
    sub = p.add_subparsers(dest="cmd")

    pl = sub.add_parser("list", help="Show all accounts with current codes")
    pl.set_defaults(func=cmd_list)

    pa = sub.add_parser("add", help="Store an account")
    pa.add_argument("--name", required=True, help="Account name (unique)")
    pa.add_argument("--secret", required=True, help="Base32 secret")
    pa.add_argument("--strict", action="store_true", help="Reject secrets with non-Base32 characters")
    pa.set_defaults(func=cmd_add)

    pi = sub.add_parser("import", help="Store an account from an otpauth://totp/ URI")
    pi.add_argument("--uri", required=True)
    pi.set_defaults(func=cmd_import)

    pc = sub.add_parser("code", help="Print the code for a Base32 secret")
    pc.add_argument("--secret", required=True)
    pc.add_argument("--time", type=float, help="Unix time to use instead of now")
    pc.set_defaults(func=cmd_code)

    ps = sub.add_parser("show", help="Live code for one account")
    ps.add_argument("--name", required=True)
    ps.set_defaults(func=cmd_show)

    pw = sub.add_parser("watch", help="Live codes for a view hash")
    pw.add_argument("--view", default="#list", help="#list or #view/<name>")
    pw.set_defaults(func=cmd_watch)

    pu = sub.add_parser("uri", help="Print the otpauth URI for an account")
    pu.add_argument("--name", required=True)
    pu.set_defaults(func=cmd_uri)

    pv = sub.add_parser("verify", help="Verify a code for an account")
    pv.add_argument("--name", required=True)
    pv.add_argument("--code", required=True)
    pv.add_argument("--window", type=int, default=1, help="Allowed +/- step window")
    pv.set_defaults(func=cmd_verify)

    pd = sub.add_parser("delete", help="Remove an account")
    pd.add_argument("--name", required=True)
    pd.set_defaults(func=cmd_delete)

    return p


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
