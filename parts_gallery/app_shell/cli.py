import argparse
import logging
import sys
from pathlib import Path

import uvicorn

from parts_gallery.adapters.sqlite.migrator import SQLiteMigrator
from parts_gallery.api.deps import get_settings
from parts_gallery.domain.policy import OwnershipPolicy
from parts_gallery.rules.loader import load_rules
from parts_gallery.rules.models import Rules

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cli")


def get_rules_or_exit(path: Path) -> Rules:
    if not path.exists():
        logger.error("Rules file %s not found.", path)
        sys.exit(1)
    try:
        return load_rules(path)
    except ValueError as e:
        logger.error("%s", e)
        sys.exit(1)


def handle_serve(args: argparse.Namespace) -> None:
    uvicorn.run(
        "parts_gallery.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


def handle_migrate(args: argparse.Namespace) -> None:
    settings = get_settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    applied = SQLiteMigrator(settings.db_path).run_migrations()
    print(f"Applied {len(applied)} migrations to {settings.db_path}.")


def handle_policy_sql(args: argparse.Namespace) -> None:
    rules = get_rules_or_exit(get_settings().rules_path)
    sql = OwnershipPolicy(args.bucket or rules.storage.bucket).to_sql()
    if args.output:
        Path(args.output).write_text(sql)
        print(f"Wrote storage policies to {args.output}")
    else:
        print(sql, end="")


def main() -> None:
    parser = argparse.ArgumentParser(description="Parts Gallery CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--reload", action="store_true")

    # migrate
    subparsers.add_parser("migrate", help="Apply local SQLite migrations")

    # policy-sql
    policy_parser = subparsers.add_parser(
        "policy-sql", help="Render the storage row-level security policies"
    )
    policy_parser.add_argument("--bucket", help="Bucket name (defaults to rules.yaml)")
    policy_parser.add_argument("--output", help="Write to file instead of stdout")

    args = parser.parse_args()

    if args.command == "serve":
        handle_serve(args)
    elif args.command == "migrate":
        handle_migrate(args)
    elif args.command == "policy-sql":
        handle_policy_sql(args)


if __name__ == "__main__":
    main()
