#!/usr/bin/env python3
"""
sessionauth -- administrative command line for the auth database.

Usage:
  python main.py register alice@example.com --first Alice --last Smith
  python main.py show --email alice@example.com
  python main.py show --id 7
  python main.py activate 7
  python main.py deactivate 7
  python main.py verify 7
  python main.py purge-revoked

Environment variables (see core/config.py for the full list):
  JWT_SECRET_KEY   Signing key, at least 32 characters. Required unless DEBUG=true.
  DATABASE_URL     SQLAlchemy URL of the auth database.
  LOG_LEVEL        Logging level for the sessionauth.* loggers (default INFO).
"""

from __future__ import annotations

import argparse
import getpass
import json
import logging
import sys
from typing import Optional

from auth.coordinator import AuthCoordinator
from core import __version__
from core.config import get_settings
from core.errors import AuthError


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sessionauth",
        description="Manage user accounts and token revocations.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py register alice@example.com --first Alice --last Smith
  python main.py deactivate 7
  DATABASE_URL=sqlite:///prod-auth.db python main.py purge-revoked
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    register = sub.add_parser("register", help="Create a user (password is prompted for)")
    register.add_argument("email")
    register.add_argument("--first", default="", help="First name")
    register.add_argument("--last", default="", help="Last name")
    register.add_argument(
        "--password",
        default=None,
        help="Password; omit to be prompted (avoids leaving it in shell history)",
    )

    show = sub.add_parser("show", help="Print a user record as JSON")
    group = show.add_mutually_exclusive_group(required=True)
    group.add_argument("--id", type=int, dest="user_id")
    group.add_argument("--email")

    for name, help_text in (
        ("activate", "Re-enable login for a user"),
        ("deactivate", "Block login for a user"),
        ("verify", "Mark a user's email as verified"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("user_id", type=int, metavar="USER-ID")

    sub.add_parser("purge-revoked", help="Delete revocation entries whose tokens have expired")
    return parser


def _print_user(user) -> None:
    print(json.dumps(user.to_public_dict(), indent=2))


def run(args: argparse.Namespace, coordinator: AuthCoordinator) -> None:
    """Execute one parsed command against coordinator."""
    if args.command == "register":
        password: Optional[str] = args.password or getpass.getpass("Password: ")
        result = coordinator.register(args.email, password, args.first, args.last)
        _print_user(result.user)
    elif args.command == "show":
        if args.user_id is not None:
            _print_user(coordinator.get_user_by_id(args.user_id))
        else:
            _print_user(coordinator.get_user_by_email(args.email))
    elif args.command == "activate":
        _print_user(coordinator.activate_user(args.user_id))
    elif args.command == "deactivate":
        _print_user(coordinator.deactivate_user(args.user_id))
    elif args.command == "verify":
        _print_user(coordinator.verify_user(args.user_id))
    elif args.command == "purge-revoked":
        removed = coordinator.purge_revocations()
        print(f"Removed {removed} expired revocation entr{'y' if removed == 1 else 'ies'}.")


def main(argv: Optional[list[str]] = None, coordinator: Optional[AuthCoordinator] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    owned = coordinator is None
    if coordinator is None:
        coordinator = AuthCoordinator.from_settings(settings)
    try:
        run(args, coordinator)
    except AuthError as err:
        print(f"  [!] {err.message}", file=sys.stderr)
        return 1
    finally:
        if owned:
            coordinator.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
