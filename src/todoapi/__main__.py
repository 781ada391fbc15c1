"""
=============================================================================
TODO API CLI ENTRY POINT
=============================================================================

    python -m todoapi                       # Run with TODOAPI_* env / defaults
    python -m todoapi --port 3000           # Custom port
    python -m todoapi --host 0.0.0.0        # Listen on all interfaces
    python -m todoapi --db /var/lib/todo.db # Database file
    python -m todoapi --routes              # Print the route table and exit
    python -m todoapi --init-db             # Create the schema and exit

Flags override environment variables, which override defaults.

=============================================================================
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .app import create_app
from .config import AppConfig
from .server import ApiServer


logger = logging.getLogger("todoapi")


def _setup_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("todoapi").setLevel(level)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="todo-api",
        description="JSON REST API for todo items and user accounts",
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--host", "-H", help="Host to bind to (0.0.0.0 for containers)")
    parser.add_argument("--port", "-p", type=int, help="Port to listen on")

    # ─────────────────────────────────────────────────────────────────────
    # APPLICATION ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--db", help="SQLite database file")
    parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Number of worker threads (max will be 2x this)",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )

    # ─────────────────────────────────────────────────────────────────────
    # ONE-SHOT COMMANDS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--routes", action="store_true", help="Print the route table and exit")
    parser.add_argument("--init-db", action="store_true", help="Create the database schema and exit")
    parser.add_argument("--version", "-v", action="version", version=f"todo-api {__version__}")
    return parser


def config_from_args(args: argparse.Namespace, base: Optional[AppConfig] = None) -> AppConfig:
    """Apply CLI flags on top of `base` (environment when omitted)."""
    config = base or AppConfig.from_env()
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port
    if args.db:
        config.db_path = args.db
    if args.log_level:
        config.log_level = args.log_level
    if args.workers:
        config.min_workers = args.workers
        config.max_workers = args.workers * 2
    return config


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        _setup_logging(config.log_level)

        if args.init_db:
            app = create_app(config)
            logger.info(f"Initialized database at {config.db_path}")
            return 0

        app = create_app(config, init_db=not args.routes)
        if args.routes:
            for line in app.router.describe():
                print(line)
            return 0

        ApiServer(app).run()
    except (ValueError, RuntimeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
