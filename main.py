#!/usr/bin/env python3
"""
Billarpro client session tool -- log in, inspect, and end the saved session.

Usage:
  python main.py login -u admin
  python main.py login -u admin -p admin123
  python main.py whoami
  python main.py can-access empleado
  python main.py logout

Environment variables (see core/config.py):
  AUTH_MODE      local (default, offline directory) or remote
  API_BASE_URL   login authority host for AUTH_MODE=remote
  STORAGE_URL    where the session survives between runs
"""

import argparse
import asyncio
import getpass
import logging
import sys

from auth.exceptions import StorageError, UnknownRoleError
from auth.models import RoleTag
from auth.policy import can_access_session
from auth.store import SessionStore
from auth.validators import build_validator
from core.config import get_settings
from web.login_form import FormState, LoginFormController

logger = logging.getLogger("billarpro.cli")


def _cmd_login(args: argparse.Namespace, store: SessionStore) -> int:
    form = LoginFormController(build_validator(get_settings()), store)
    form.edit("username", args.username if args.username is not None else input("Username: "))
    form.edit("password", args.password if args.password is not None else getpass.getpass("Password: "))

    state = asyncio.run(form.submit())
    if state is FormState.SUCCESS:
        user = store.current_user()
        print(f"  Logged in as {user.full_name} ({user.role.value}).")
        return 0
    for field, error in form.field_errors.items():
        print(f"  [!] {field}: {error}")
    if form.message:
        print(f"  [!] {form.message}")
    return 1


def _cmd_logout(args: argparse.Namespace, store: SessionStore) -> int:
    store.clear()
    print("  Logged out.")
    return 0


def _cmd_whoami(args: argparse.Namespace, store: SessionStore) -> int:
    session = store.get()
    if session is None:
        print("  Not logged in.")
        return 1
    user = session.user
    print(f"  {user.username} -- {user.full_name} <{user.email}>")
    print(f"  role: {user.role.value}   shift: {user.shift or '-'}")
    return 0


def _cmd_can_access(args: argparse.Namespace, store: SessionStore) -> int:
    allowed = can_access_session(store.get(), args.role)
    print(f"  {'allowed' if allowed else 'denied'}")
    return 0 if allowed else 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="billarpro-session",
        description="Manage the Billarpro client session.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login", help="Log in and save the session")
    login.add_argument("-u", "--username", help="Username (prompted if omitted)")
    login.add_argument("-p", "--password", help="Password (prompted without echo if omitted)")
    login.set_defaults(handler=_cmd_login)

    sub.add_parser("logout", help="End the saved session").set_defaults(handler=_cmd_logout)
    sub.add_parser("whoami", help="Show the logged-in user").set_defaults(handler=_cmd_whoami)

    check = sub.add_parser("can-access", help="Exit 0 if the logged-in user has at least ROLE")
    check.add_argument("role", choices=[role.value for role in RoleTag], metavar="ROLE")
    check.set_defaults(handler=_cmd_can_access)

    args = parser.parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose or settings.debug else logging.WARNING,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        store = SessionStore.from_settings(settings)
    except StorageError as e:
        print(f"  [!] {e}")
        return 1
    store.init()
    try:
        return args.handler(args, store)
    except (StorageError, UnknownRoleError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"  [!] {e}")
        return 1
    finally:
        store.teardown()


if __name__ == "__main__":
    sys.exit(main())
