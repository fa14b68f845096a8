"""
Command line entry point: run the server, broadcast once, or force a new fact.
"""

from __future__ import annotations

import argparse
import logging

import uvicorn

from duckfacts.broadcast import broadcast
from duckfacts.cache import format_fact
from duckfacts.config import get_settings
from duckfacts.dependencies import (
    close_dependencies,
    get_chat_client,
    get_db_client,
    get_fact_cache,
    get_fact_generator,
    get_sms_gateway,
)
from duckfacts.errors import DuckFactsError

logger = logging.getLogger(__name__)


def _serve(args: argparse.Namespace) -> int:
    settings = get_settings()
    uvicorn.run(
        "duckfacts.app:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


def _send(args: argparse.Namespace) -> int:
    settings = get_settings()
    db = get_db_client()
    generator = get_fact_generator(db=db, chat=get_chat_client(), settings=settings)
    cache = get_fact_cache(db=db, generator=generator, settings=settings)
    message = format_fact(cache.get_fact())
    outcomes = broadcast(
        message,
        db.list_subscribers(),
        get_sms_gateway(),
        max_workers=settings.broadcast_max_workers,
    )
    failed = sum(1 for outcome in outcomes if not outcome.success)
    logger.info("Sent to %d subscribers, %d failed", len(outcomes) - failed, failed)
    return 0


def _generate(args: argparse.Namespace) -> int:
    settings = get_settings()
    generator = get_fact_generator(
        db=get_db_client(), chat=get_chat_client(), settings=settings
    )
    print(format_fact(generator.generate()))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Duck facts service")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", type=str, default=None, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Listen port")
    serve_parser.set_defaults(handler=_serve)

    send_parser = subparsers.add_parser(
        "send", help="Send the current fact to every subscriber once"
    )
    send_parser.set_defaults(handler=_send)

    generate_parser = subparsers.add_parser(
        "generate", help="Generate, store and print a brand new fact"
    )
    generate_parser.set_defaults(handler=_generate)

    args = parser.parse_args(argv)

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    if args.command != "serve" and not settings.api_key:
        logger.error("API_KEY must be set")
        return 1

    try:
        return args.handler(args)
    except DuckFactsError as exc:
        logger.exception("%s failed: %s", args.command, exc)
        return 1
    finally:
        if args.command != "serve":
            close_dependencies()


if __name__ == "__main__":
    raise SystemExit(main())
