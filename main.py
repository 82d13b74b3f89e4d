#!/usr/bin/env python3
"""
sessionauth -- Administer API clients, users and bearer-token sessions.

Usage:
  python main.py client add mobile-app
  python main.py client show mobile-app
  python main.py user add alice
  python main.py issue --user alice --client mobile-app
  python main.py issue --user alice --client 1 --expires 2030-01-01T00:00:00
  python main.py issue --user alice --client mobile-app --no-expiry
  python main.py verify <TOKEN>
  python main.py revoke <TOKEN>
  python main.py sessions alice
  python main.py purge alice

Environment variables:
  SECRET_KEY            Required (>= 32 chars) unless DEBUG=true.
  TOKEN_KEY             Optional. Token encryption key source; derived from SECRET_KEY if unset.
  DATABASE_URL          SQLAlchemy URL (default: sqlite:///sessionauth.db).
  SESSION_EXPIRE_WEEKS  Default session lifetime (default: 4).
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from auth.clients import ClientResolver, ClientStore
from auth.errors import InvalidTokenError, PersistenceError, TokenExpiredError
from auth.models import RawToken, ResolvedSession, User
from auth.service import SessionAuthService
from auth.store import make_engine, parse_row_id
from auth.users import UserStore
from core.config import Settings, get_settings

logger = logging.getLogger("sessionauth.cli")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_EXPIRED = 2


def _find_user(users: UserStore, ref: str) -> Optional[User]:
    """Resolve a user by username, falling back to numeric id."""
    user = users.get_by_username(ref)
    user_id = parse_row_id(ref)
    if user is None and user_id is not None:
        user = users.get_by_id(user_id)
    return user


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sessionauth",
        description="Issue, verify and revoke bearer-token sessions.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py client add mobile-app
  python main.py user add alice
  python main.py issue --user alice --client mobile-app --no-expiry
  python main.py verify eyJhbGciOiJkaXIi...
  python main.py purge alice
        """,
    )
    parser.add_argument(
        "--database-url",
        metavar="URL",
        default=None,
        help="SQLAlchemy database URL (default: DATABASE_URL setting)",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    client = sub.add_parser("client", help="Manage API clients")
    client_sub = client.add_subparsers(dest="client_command", metavar="ACTION")
    client_add = client_sub.add_parser("add", help="Register a client")
    client_add.add_argument("name")
    client_show = client_sub.add_parser("show", help="Look up a client by id or name")
    client_show.add_argument("ref", metavar="ID_OR_NAME")

    user = sub.add_parser("user", help="Manage users")
    user_sub = user.add_subparsers(dest="user_command", metavar="ACTION")
    user_add = user_sub.add_parser("add", help="Register a user")
    user_add.add_argument("username")

    issue = sub.add_parser("issue", help="Create a session and print its token")
    issue.add_argument("--user", required=True, metavar="USER", help="Username or user id")
    issue.add_argument("--client", required=True, metavar="ID_OR_NAME", help="Client id or name")
    expiry = issue.add_mutually_exclusive_group()
    expiry.add_argument(
        "--expires",
        metavar="WHEN",
        default=None,
        help="Expiry timestamp (ISO 8601). Unparseable values fall back to the default lifetime.",
    )
    expiry.add_argument("--no-expiry", action="store_true", help="Issue a session that never expires")

    verify = sub.add_parser("verify", help="Check a token and print the user it belongs to")
    verify.add_argument("token")

    revoke = sub.add_parser("revoke", help="Delete the session behind a token")
    revoke.add_argument("token")

    sessions = sub.add_parser("sessions", help="List a user's sessions")
    sessions.add_argument("user", metavar="USER")

    purge = sub.add_parser("purge", help="Delete all of a user's sessions")
    purge.add_argument("user", metavar="USER")

    return parser


def main(argv: Optional[list[str]] = None, settings: Optional[Settings] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_OK

    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    engine = make_engine(args.database_url or settings.database_url)
    users = UserStore(engine)
    clients = ClientStore(engine)
    resolver = ClientResolver(clients)
    service = SessionAuthService.from_settings(engine, settings)

    try:
        return _dispatch(args, parser, service, users, clients, resolver)
    except InvalidTokenError:
        print("  [!] Token is invalid.")
        return EXIT_FAILED
    except TokenExpiredError:
        print("  [!] Token has expired.")
        return EXIT_EXPIRED
    except PersistenceError as e:
        print(f"  [!] {e}")
        return EXIT_FAILED
    finally:
        engine.dispose()


def _dispatch(
    args: argparse.Namespace,
    parser: argparse.ArgumentParser,
    service: SessionAuthService,
    users: UserStore,
    clients: ClientStore,
    resolver: ClientResolver,
) -> int:
    if args.command == "client":
        if args.client_command == "add":
            client = clients.create_client(args.name)
            print(f"Client {client.id}: {client.name}")
            return EXIT_OK
        if args.client_command == "show":
            client = resolver.find_client(args.ref)
            if client is None:
                print(f"  [!] No client matches '{args.ref}'.")
                return EXIT_FAILED
            print(f"Client {client.id}: {client.name}")
            return EXIT_OK
        parser.print_help()
        return EXIT_FAILED

    if args.command == "user":
        if args.user_command == "add":
            user = users.create_user(args.username)
            print(f"User {user.id}: {user.username}")
            return EXIT_OK
        parser.print_help()
        return EXIT_FAILED

    if args.command == "issue":
        user = _find_user(users, args.user)
        if user is None:
            print(f"  [!] No user matches '{args.user}'.")
            return EXIT_FAILED
        client = resolver.find_client(args.client)
        if client is None:
            print(f"  [!] No client matches '{args.client}'.")
            return EXIT_FAILED
        expires = False if args.no_expiry else (args.expires or True)
        session = service.create_session(user, client, expires)
        if session is None:
            print("  [!] Session could not be created.")
            return EXIT_FAILED
        when = session.expires_at.isoformat() if session.expires_at else "never"
        print(f"Session {session.id} for {user.username} on {client.name} (expires: {when})")
        print(service.serialize_session(session))
        return EXIT_OK

    if args.command == "verify":
        session = service.find_session(args.token)
        if session is None:
            print("  [!] Token does not match an active session.")
            return EXIT_FAILED
        user = service.find_user(ResolvedSession(session))
        name = user.username if user else f"<missing user {session.user_id}>"
        print(f"Valid: session {session.id}, user {name}, client {session.client_id}")
        return EXIT_OK

    if args.command == "revoke":
        if service.delete_session(RawToken(args.token)):
            print("Session revoked.")
            return EXIT_OK
        print("  [!] No session to revoke.")
        return EXIT_FAILED

    user = _find_user(users, args.user)
    if user is None:
        print(f"  [!] No user matches '{args.user}'.")
        return EXIT_FAILED

    if args.command == "sessions":
        rows = service.sessions.find_by_user(user.id)
        if not rows:
            print(f"No sessions for {user.username}.")
        for s in rows:
            when = s.expires_at.isoformat() if s.expires_at else "never"
            print(f"  {s.id:>5}  client={s.client_id:<5} created={s.created_at}  expires={when}")
        return EXIT_OK

    # purge
    if service.purge_sessions(user):
        print(f"All sessions for {user.username} removed.")
    else:
        print(f"No sessions for {user.username}.")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
