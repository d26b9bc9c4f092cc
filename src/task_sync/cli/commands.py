# src/task_sync/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from ..core.errors import AuthError
from ..core.models import SessionStatus
from ..sync.board import TaskBoard, TaskRow, describe

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ConsoleState:
    board: TaskBoard
    # Set by /delete -y for the next confirmation prompt only.
    preconfirmed: set[str] = field(default_factory=set)
    # Unsplit text after the command name of the line being handled.
    raw_args: str = ""


CommandResult = str | Awaitable[str]
CommandHandler = Callable[[ConsoleState, list[str]], CommandResult]


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(self, state: ConsoleState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        Handlers may be plain functions or coroutines.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split(maxsplit=1)
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        raw = parts[1] if len(parts) > 1 else ""
        args = raw.split()

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        state.raw_args = raw
        result = handler(state, args)
        if inspect.isawaitable(result):
            result = await result
        return result

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        lines.append("  (any other line is added as a new task)")
        return "\n".join(lines)


registry = CommandRegistry()


def format_rows(rows: list[TaskRow]) -> str:
    if not rows:
        return "No tasks yet."
    out = []
    for i, row in enumerate(rows, start=1):
        flag = " [editing]" if row.editing else (" [deleting...]" if row.deleting else "")
        out.append(f"  {i:>2}. {row.text}  ({row.id}){flag}")
    return "\n".join(out)


def _resolve(board: TaskBoard, ref: str) -> str:
    """Accept either a record id or its 1-based position in the list."""
    if ref.isdigit():
        n = int(ref)
        records = board.records
        if 1 <= n <= len(records):
            return records[n - 1].id
    return ref


def _require_auth(board: TaskBoard) -> str | None:
    if board.session.status != SessionStatus.AUTHENTICATED:
        return "Not signed in. Use /login <email> <password> or /signup <email> <password>."
    return None


def cmd_help(state: ConsoleState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_signup(state: ConsoleState, args: list[str]) -> str:
    if len(args) != 2:
        return "Usage: /signup <email> <password>"
    try:
        await state.board.gate.create_account(args[0], args[1])
    except AuthError as e:
        return str(e)
    return "Account successfully created!"


async def cmd_login(state: ConsoleState, args: list[str]) -> str:
    if len(args) != 2:
        return "Usage: /login <email> <password>"
    try:
        identity = await state.board.gate.sign_in(args[0], args[1])
    except AuthError as e:
        return str(e)
    return f"Signed in as {identity.email}."


async def cmd_logout(state: ConsoleState, args: list[str]) -> str:
    if state.board.session.identity is None:
        return "Not signed in."
    await state.board.logout()
    return "Signed out."


def cmd_whoami(state: ConsoleState, args: list[str]) -> str:
    identity = state.board.session.identity
    status = state.board.session.status.value
    if identity is None:
        return f"Session: {status}"
    return f"Session: {status} as {identity.email} (uid={identity.uid})"


def cmd_list(state: ConsoleState, args: list[str]) -> str:
    return _require_auth(state.board) or format_rows(state.board.rows())


async def cmd_add(state: ConsoleState, args: list[str]) -> str:
    if msg := _require_auth(state.board):
        return msg
    state.board.draft = state.raw_args
    return describe(await state.board.submit_draft())


def cmd_edit(state: ConsoleState, args: list[str]) -> str:
    if msg := _require_auth(state.board):
        return msg
    if not args:
        return "Usage: /edit <id|#> [new text]"
    record_id = _resolve(state.board, args[0])
    if not state.board.start_edit(record_id):
        return f"No task {args[0]!r}."
    rest = state.raw_args.split(maxsplit=1)
    if len(rest) > 1:
        state.board.editor.set_buffer(rest[1])
    return f"Editing {record_id}: {state.board.editor.buffer!r}. Use /text, /save or /cancel."


def cmd_text(state: ConsoleState, args: list[str]) -> str:
    if state.board.editor.editing_id is None:
        return "Not editing. Use /edit first."
    state.board.editor.set_buffer(state.raw_args)
    return f"Buffer: {state.board.editor.buffer!r}"


async def cmd_save(state: ConsoleState, args: list[str]) -> str:
    if state.board.editor.editing_id is None:
        return "Not editing."
    return describe(await state.board.save_edit())


def cmd_cancel(state: ConsoleState, args: list[str]) -> str:
    state.board.cancel_edit()
    return "Edit cancelled."


async def cmd_delete(state: ConsoleState, args: list[str]) -> str:
    if msg := _require_auth(state.board):
        return msg
    if not args:
        return "Usage: /delete <id|#> [-y]"
    record_id = _resolve(state.board, args[0])
    if "-y" in args[1:]:
        state.preconfirmed.add(record_id)
    try:
        return describe(await state.board.delete(record_id))
    finally:
        state.preconfirmed.discard(record_id)


registry.register("help", cmd_help, "Show this help", aliases=["h", "?"])
registry.register("signup", cmd_signup, "Create an account: /signup <email> <password>")
registry.register("login", cmd_login, "Sign in: /login <email> <password>")
registry.register("logout", cmd_logout, "Sign out")
registry.register("whoami", cmd_whoami, "Show session status")
registry.register("list", cmd_list, "List your tasks", aliases=["ls"])
registry.register("add", cmd_add, "Add a task: /add <text>")
registry.register("edit", cmd_edit, "Start editing: /edit <id|#> [new text]")
registry.register("text", cmd_text, "Replace the edit buffer: /text <new text>")
registry.register("save", cmd_save, "Save the current edit")
registry.register("cancel", cmd_cancel, "Cancel the current edit")
registry.register("delete", cmd_delete, "Delete a task: /delete <id|#> [-y]", aliases=["rm"])
