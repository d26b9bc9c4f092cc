# src/task_sync/cli/console.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..core.models import SessionStatus, TaskRecord
from ..core.state import AppContext
from .bootstrap import create_board
from .commands import ConsoleState, format_rows
from .commands import registry as command_registry

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


class ConsoleNotifier:
    """User-facing alerts printed inline."""

    def notify(self, message: str) -> None:
        _print_ts(f"[!] {message}")


def _make_confirm(state_ref: list[ConsoleState]):
    def confirm(prompt: str) -> bool:
        # Blocks the loop like a modal dialog; /delete -y skips it.
        state = state_ref[0] if state_ref else None
        if state is not None and state.preconfirmed:
            return True
        try:
            answer = input(f"{prompt} [y/N] ").strip().lower()
        except (EOFError, KeyboardInterrupt):
            return False
        return answer in ("y", "yes")

    return confirm


async def run_console(ctx: AppContext) -> None:
    """Interactive task client. Returns on /exit, EOF or Ctrl+C."""
    state_ref: list[ConsoleState] = []
    board = create_board(ctx, _make_confirm(state_ref))
    state = ConsoleState(board=board)
    state_ref.append(state)

    def on_records(records: tuple[TaskRecord, ...]) -> None:
        if board.session.status == SessionStatus.AUTHENTICATED:
            _print_ts(f"[sync] {len(records)} task(s)\n{format_rows(board.rows())}")

    def on_redirect() -> None:
        _print_ts("Signed out. Use /login <email> <password> or /signup <email> <password>.")

    remove_listener = board.materializer.add_listener(on_records)
    board.session.add_redirect_listener(on_redirect)

    logger.info("Console started.")
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")
    board.session.start()

    try:
        while True:
            try:
                line = (await asyncio.to_thread(input, ">>> ")).strip()
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break
            except KeyboardInterrupt:
                logger.info("Console KeyboardInterrupt, exiting.")
                print()
                break

            if not line:
                continue
            if line.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            try:
                if line.startswith("/"):
                    reply = await command_registry.handle(state, line)
                else:
                    reply = await command_registry.handle(state, f"/add {line}")
            except Exception:
                logger.exception("Command handler crashed.")
                reply = "Internal error while handling a command."

            if reply:
                _print_ts(reply)
    finally:
        remove_listener()
        board.close()
        logger.info("Console finished.")
