import argparse
import logging
import sys
from pathlib import Path

from canvasletter.adapters.clock import SystemClock
from canvasletter.adapters.sqlite.migrator import SQLiteMigrator
from canvasletter.adapters.sqlite.repos import SQLiteNewsletterRepo, SQLiteUserRepo
from canvasletter.api.auth_utils import create_access_token
from canvasletter.api.deps import Settings
from canvasletter.domain.entities import Newsletter, User
from canvasletter.rules.loader import load_rules

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cli")


def handle_migrate(settings: Settings, args: argparse.Namespace) -> None:
    Path(settings.data_dir).mkdir(parents=True, exist_ok=True)
    migrator = SQLiteMigrator(settings.db_path, settings.migrations_dir)
    if args.status:
        for path in migrator.pending():
            print(f"Pending: {path.name}")
        return
    applied = migrator.run_migrations()
    print(f"Applied {len(applied)} migration(s).")


def handle_create_user(settings: Settings, args: argparse.Namespace) -> None:
    repo = SQLiteUserRepo(settings.db_path)
    if repo.get_by_email(args.email):
        logger.error("User %s already exists.", args.email)
        sys.exit(1)
    user = repo.save(User(email=args.email, display_name=args.name or args.email))
    print(f"User created: {user.id}")


def handle_create_newsletter(settings: Settings, args: argparse.Namespace) -> None:
    owner = SQLiteUserRepo(settings.db_path).get_by_email(args.owner_email)
    if not owner:
        logger.error("Owner %s not found.", args.owner_email)
        sys.exit(1)
    newsletter = SQLiteNewsletterRepo(settings.db_path).save(
        Newsletter(owner_user_id=owner.id, title=args.title)
    )
    print(f"Newsletter created: {newsletter.id}")


def handle_session_token(settings: Settings, args: argparse.Namespace) -> None:
    user = SQLiteUserRepo(settings.db_path).get_by_email(args.email)
    if not user:
        logger.error("User %s not found.", args.email)
        sys.exit(1)
    token = create_access_token({"sub": str(user.id)}, now_utc=SystemClock().now_utc())
    print(f"Token: {token}")


def handle_serve(settings: Settings, args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run("canvasletter.api.main:app", host=args.host, port=args.port)


def main() -> None:
    parser = argparse.ArgumentParser(description="Canvasletter CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    migrate_parser = subparsers.add_parser("migrate", help="Apply pending database migrations")
    migrate_parser.add_argument(
        "--status", action="store_true", help="List pending migrations only"
    )

    user_parser = subparsers.add_parser("create-user", help="Create a newsletter owner")
    user_parser.add_argument("email")
    user_parser.add_argument("--name", help="Display name (defaults to the email)")

    newsletter_parser = subparsers.add_parser("create-newsletter", help="Create an empty newsletter")
    newsletter_parser.add_argument("title")
    newsletter_parser.add_argument("--owner-email", required=True)

    token_parser = subparsers.add_parser("session-token", help="Mint an owner session token")
    token_parser.add_argument("email")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()

    settings = Settings()
    try:
        load_rules(settings.rules_path)
    except (FileNotFoundError, ValueError) as e:
        logger.error("Rules file %s is not usable: %s", settings.rules_path, e)
        sys.exit(1)

    handlers = {
        "migrate": handle_migrate,
        "create-user": handle_create_user,
        "create-newsletter": handle_create_newsletter,
        "session-token": handle_session_token,
        "serve": handle_serve,
    }
    handlers[args.command](settings, args)


if __name__ == "__main__":
    main()
