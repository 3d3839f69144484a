"""Command-line interface for the user directory service."""

from __future__ import annotations
import argparse
import logging
import sys
from typing import Sequence

from userservice.config import ServiceConfig, load_config
from userservice.database import Database, DatabaseError

logger = logging.getLogger("userservice.main")

COMMANDS = ("serve", "init-db")
HELP_FLAGS = ("-h", "--help")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="User directory service utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    init_parser = subparsers.add_parser("init-db", help="Initialise the user database")
    init_parser.add_argument(
        "--seed",
        action="store_true",
        help="Insert the demo users (John Doe and Jane Smith) if they are missing",
    )

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP service")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: USER_SERVICE_HOST or 0.0.0.0)")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for the HTTP service (default: PORT or 3000)",
    )

    args_list = list(sys.argv[1:] if argv is None else argv)
    # Options given without a command belong to ``serve``.
    if not args_list or args_list[0] not in (*COMMANDS, *HELP_FLAGS):
        args_list.insert(0, "serve")
    return parser.parse_args(args_list)


def _open_database(config: ServiceConfig) -> Database:
    database = Database(
        config.database_path,
        pool_size=config.pool_size,
        timeout=config.database_timeout,
    )
    database.initialize()
    logger.info("Database initialised at %s", config.database_path)
    return database


def _serve(*, database: Database, config: ServiceConfig, host: str | None, port: int | None) -> None:
    from userservice.service import create_app
    import uvicorn

    bind_host = host or config.host
    bind_port = port or config.port
    logger.info("Starting user directory on http://%s:%s", bind_host, bind_port)

    app = create_app(database=database, config=config, initialize_database=False)
    uvicorn.run(
        app,
        host=bind_host,
        port=bind_port,
        log_level=config.log_level,
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    args = _parse_args(argv)
    config = load_config()
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        database = _open_database(config)
    except DatabaseError as exc:
        logger.error("Could not open database at %s: %s", config.database_path, exc)
        raise SystemExit(2) from exc

    if args.command == "serve":
        _serve(database=database, config=config, host=args.host, port=args.port)
    elif args.command == "init-db":
        if args.seed:
            inserted = database.seed_demo_users()
            print(f"Seeded {inserted} demo user(s).")
        print("Database initialisation complete.")


if __name__ == "__main__":
    main()
