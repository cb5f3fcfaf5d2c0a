import argparse
import asyncio
import logging
import sys

from coursebase.adapters.auth.tokens import issue_token
from coursebase.adapters.sqlite.migrator import SQLiteMigrator
from coursebase.adapters.sqlite.store import SQLiteContentStore
from coursebase.api.deps import Settings
from coursebase.domain.errors import NotFoundError
from coursebase.rules.loader import load_rules
from coursebase.services.users import UserDirectory

logger = logging.getLogger("cli")


def handle_migrate(settings: Settings, args: argparse.Namespace) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    migrator = SQLiteMigrator(settings.db_path)
    if args.check:
        pending = migrator.pending()
        for name in pending:
            print(f"pending: {name}")
        sys.exit(1 if pending else 0)
    applied = migrator.run_migrations()
    print(f"Applied {len(applied)} migration(s) to {settings.db_path}.")


async def _grant_role(settings: Settings, email: str, role: str) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    SQLiteMigrator(settings.db_path).run_migrations()
    store = SQLiteContentStore(settings.db_path)
    try:
        users = UserDirectory(store, load_rules(settings.rules_path))
        user = await users.grant_role(email, role)  # type: ignore[arg-type]
        print(f"{user.email_address} now has roles: {', '.join(user.roles)}")
    finally:
        store.close()


def handle_grant_role(settings: Settings, args: argparse.Namespace) -> None:
    try:
        asyncio.run(_grant_role(settings, args.email, args.role))
    except NotFoundError as e:
        logger.error(e.message)
        sys.exit(1)


def handle_issue_token(settings: Settings, args: argparse.Namespace) -> None:
    token = issue_token(
        settings.token_secret,
        args.email,
        verified=not args.unverified,
        first_name=args.first_name,
        last_name=args.last_name,
        audience=settings.token_audience,
        algorithm=settings.token_algorithm,
    )
    print(token)


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO)

    parser = argparse.ArgumentParser(description="Coursebase CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    migrate_parser = subparsers.add_parser("migrate", help="Apply database migrations")
    migrate_parser.add_argument(
        "--check", action="store_true", help="List pending migrations and exit non-zero if any"
    )

    # grant-role
    grant_parser = subparsers.add_parser("grant-role", help="Add a role to an existing user")
    grant_parser.add_argument("email", help="Email address of the user")
    grant_parser.add_argument("role", choices=["regular", "admin"], help="Role to add")

    # issue-token
    token_parser = subparsers.add_parser(
        "issue-token", help="Sign a development identity token with the configured secret"
    )
    token_parser.add_argument("email", help="Email claim")
    token_parser.add_argument("--first-name", default="", help="given_name claim")
    token_parser.add_argument("--last-name", default="", help="family_name claim")
    token_parser.add_argument("--unverified", action="store_true", help="Set email_verified to false")

    args = parser.parse_args(argv)
    settings = Settings()

    if args.command == "migrate":
        handle_migrate(settings, args)
    elif args.command == "grant-role":
        handle_grant_role(settings, args)
    elif args.command == "issue-token":
        handle_issue_token(settings, args)


if __name__ == "__main__":
    main()
