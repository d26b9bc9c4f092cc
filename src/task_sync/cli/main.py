# src/task_sync/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppContext, then runs one of:
- console: interactive realtime task client (default),
- serve:   stateless REST API over the same document store (uvicorn).
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from ..config import get_settings
from ..logging_setup import setup_logging
from .bootstrap import create_context

logger = logging.getLogger(__name__)


def _shutdown(ctx) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        store = getattr(ctx, "store", None)
        if store is not None and hasattr(store, "close"):
            store.close()
    except Exception:
        logger.debug("Store close failed.", exc_info=True)


def _build_parser(settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="task-sync", description="Live-synchronized personal task list")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("console", help="Interactive task client (default)")

    serve = sub.add_parser("serve", help="Run the stateless REST API")
    serve.add_argument("--host", default=settings.http_host,
                       help="Bind address (use 0.0.0.0 to expose on network)")
    serve.add_argument("--port", type=int, default=settings.http_port)
    return parser


def _serve(ctx, host: str, port: int) -> None:
    import uvicorn

    from ..api.http import create_app

    app = create_app(
        ctx.store,
        collection=ctx.collection,
        cors_origins=list(getattr(ctx.settings, "cors_origins", ["*"])),
    )
    logger.info("Serving REST API on http://%s:%s", host, port)
    # log_config=None keeps our handlers instead of uvicorn's defaults.
    uvicorn.run(app, host=host, port=port, log_config=None)


def main(argv: list[str] | None = None) -> None:
    settings = get_settings()
    args = _build_parser(settings).parse_args(argv)

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logger.info("Starting %s...", settings.app_name)

    if args.command == "serve":
        ctx = create_context(settings=settings)
        try:
            _serve(ctx, args.host, args.port)
        finally:
            _shutdown(ctx)
            logger.info("Bye.")
        return

    from .console import ConsoleNotifier, run_console

    ctx = create_context(settings=settings, notifier=ConsoleNotifier())
    try:
        asyncio.run(run_console(ctx))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    finally:
        _shutdown(ctx)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
