"""Command line entry point: ``python -m notedly.cli serve|init-db``."""

import argparse
import logging
import sys

from .config import get_configured_providers
from .db import create_all
from .observability.logging import setup_logging


logger = logging.getLogger(__name__)

DEFAULT_PORT = 8080


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="notedly", description="Shared notes and boards API.")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API under uvicorn.")
    serve.add_argument("-p", "--port", type=int, default=DEFAULT_PORT, help="Port to listen on (default: 8080).")
    serve.add_argument("--host", default="0.0.0.0", help="Interface to bind (default: 0.0.0.0).")
    verbosity = serve.add_mutually_exclusive_group()
    verbosity.add_argument("-d", "--debug", action="store_true", help="Log at DEBUG level.")
    verbosity.add_argument("-s", "--silent", action="store_true", help="Only log warnings and errors.")

    sub.add_parser("init-db", help="Create every table in the configured database.")
    return parser


def _log_level(args: argparse.Namespace) -> str | None:
    if getattr(args, "debug", False):
        return "DEBUG"
    if getattr(args, "silent", False):
        return "WARNING"
    return None


def serve(args: argparse.Namespace) -> int:
    if not get_configured_providers():
        logger.error(
            "No OAuth provider configured. Set GITHUB_OAUTH_CLIENT_ID/GITHUB_OAUTH_CLIENT_SECRET "
            "or GOOGLE_OAUTH_CLIENT_ID/GOOGLE_OAUTH_CLIENT_SECRET."
        )
        return 1

    import uvicorn

    from .main import create_app

    app = create_app()
    # create_app() installs its own handlers at the default level.
    setup_logging(_log_level(args))
    uvicorn.run(app, host=args.host, port=args.port, log_config=None, proxy_headers=True)
    return 0


def init_db_command(args: argparse.Namespace) -> int:  # noqa: ARG001
    create_all()
    logger.info("Database tables created")
    return 0


def main(argv=None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    args = build_parser().parse_args(argv)
    setup_logging(_log_level(args))
    if args.command == "serve":
        return serve(args)
    return init_db_command(args)


if __name__ == "__main__":
    raise SystemExit(main())
