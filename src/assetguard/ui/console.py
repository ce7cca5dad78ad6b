"""Interactive operator console for a running moderation service."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
import os

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.shortcuts import PromptSession

from assetguard.datatypes.principal_datatypes import Principal, Role
from assetguard.errors import AssetGuardError
from assetguard.repositories.user_repo import UserRepo
from assetguard.runtime import Runtime
from assetguard.util.logger import get_logger

BOX_WIDTH = 45


def box_title(title: str) -> list[str]:
    inner_width = BOX_WIDTH - 2
    pad_left = (inner_width - len(title)) // 2
    pad_right = inner_width - len(title) - pad_left
    return [
        f"╔{'═' * inner_width}╗",
        f"║{' ' * pad_left}{title}{' ' * pad_right}║",
        f"╚{'═' * inner_width}╝"
    ]


logger = get_logger("console")

CommandHandler = Callable[["ConsoleControl", list[str]], Awaitable[None]]


@dataclass
class Command:
    """Definition of a console command."""
    name: str
    handler: CommandHandler
    aliases: list[str]
    description: str
    usage: str = ""

    def matches(self, input_cmd: str) -> bool:
        """Check if input matches this command or any alias."""
        return input_cmd == self.name or input_cmd in self.aliases


def console_print(message: str, style: str = "") -> None:
    """Render text via prompt_toolkit without breaking the active prompt."""
    formatted: FormattedText | str
    if style:
        formatted = FormattedText([(style, message)])
    else:
        formatted = message
    print_formatted_text(formatted)


class ConsoleControl:
    """Console state: the runtime being operated and the operator identity."""

    def __init__(self, runtime: Runtime, operator: Principal) -> None:
        self.shutdown_event = asyncio.Event()
        self.runtime = runtime
        self.operator = operator

    def request_shutdown(self) -> None:
        self.shutdown_event.set()

    def is_shutdown_requested(self) -> bool:
        return self.shutdown_event.is_set()


# ==================== Command Handlers ====================

async def cmd_help(control: ConsoleControl, args: list[str]) -> None:
    """Display available commands and their descriptions."""
    for line in box_title("Console Commands Reference"):
        console_print(line, "ansigreen")

    for cmd in COMMANDS:
        aliases_str = f" (aliases: {', '.join(cmd.aliases)})" if cmd.aliases else ""
        console_print(f"\n  {cmd.name}{aliases_str}", "ansicyan")
        console_print(f"    {cmd.description}")
        if cmd.usage:
            console_print(f"    Usage: {cmd.usage}", "ansibrightblack")

    console_print("")


async def cmd_status(control: ConsoleControl, args: list[str]) -> None:
    """Display asset counts, in-flight runs and scheduler state."""
    runtime = control.runtime
    for line in box_title("Moderation Status"):
        console_print(line, "ansiblue")

    counts = await runtime.lifecycle.status_counts()
    for status in ("uploading", "published", "rejected", "draft"):
        console_print(f"  {status.capitalize() + ':':<12}{counts.get(status, 0)}")

    async with runtime.db.read() as conn:
        banned = await UserRepo.count_banned(conn)
    console_print(f"  {'Banned:':<12}{banned}")
    console_print(f"  {'In flight:':<12}{runtime.intake.in_flight}")

    for scheduler in (runtime.expiry_scheduler, runtime.reaper_scheduler):
        state = "🟢 Running" if scheduler.is_running else "🔴 Stopped"
        console_print(f"  {scheduler.name}: {state} ({scheduler.runs} runs)")
    console_print("")


async def cmd_user(control: ConsoleControl, args: list[str]) -> None:
    """Register a user, or update its role."""
    if not args:
        console_print("Usage: user <user_id> [role]", "ansiyellow")
        return
    role = Role(args[1].lower()) if len(args) > 1 else Role.MEMBER
    record = await control.runtime.auth.register(args[0], args[0], role)
    console_print(f"User {record.user_id} registered as {record.role}.", "ansigreen")


async def cmd_submit(control: ConsoleControl, args: list[str]) -> None:
    """Create an uploading asset and hand it to intake."""
    if len(args) < 3:
        console_print("Usage: submit <author_id> <image_url> <name...>", "ansiyellow")
        return
    author_id, image_url, name = args[0], args[1], " ".join(args[2:])
    asset = await control.runtime.lifecycle.create_asset(author_id, name, "", image_url)
    control.runtime.intake.submit(asset.asset_id)
    console_print(f"Asset {asset.asset_id} submitted for moderation.", "ansigreen")


async def cmd_rescan(control: ConsoleControl, args: list[str]) -> None:
    """Re-run the image check for an asset."""
    if not args:
        console_print("Usage: rescan <asset_id>", "ansiyellow")
        return
    verdict = await control.runtime.admin.manual_rescan(control.operator, args[0])
    style = "ansired" if verdict.is_flagged else "ansigreen"
    console_print(
        f"flagged={verdict.is_flagged} confidence={verdict.confidence:.2f} "
        f"category={verdict.category or '-'} reason={verdict.reason or '-'}",
        style,
    )


async def cmd_ban(control: ConsoleControl, args: list[str]) -> None:
    """Ban a user for a number of days, or permanently."""
    if len(args) < 3:
        console_print("Usage: ban <user_id> <days|perm> <reason...>", "ansiyellow")
        return
    user_id, duration, reason = args[0], args[1], " ".join(args[2:])
    days = None if duration.lower() in ("perm", "permanent") else int(duration)
    record = await control.runtime.admin.ban_user(control.operator, user_id, reason, days)
    until = record.ban_until_date.isoformat() if record.ban_until_date else "permanent"
    console_print(f"User {user_id} banned ({until}).", "ansiyellow")


async def cmd_unban(control: ConsoleControl, args: list[str]) -> None:
    """Lift a user's ban."""
    if not args:
        console_print("Usage: unban <user_id>", "ansiyellow")
        return
    await control.runtime.admin.unban_user(control.operator, args[0])
    console_print(f"User {args[0]} unbanned.", "ansigreen")


async def cmd_sweep(control: ConsoleControl, args: list[str]) -> None:
    """Run the ban expiry sweep now."""
    restored = await control.runtime.expiry_scheduler.run_once()
    console_print(f"Expiry sweep restored {restored} user(s).", "ansigreen")


async def cmd_reap(control: ConsoleControl, args: list[str]) -> None:
    """Resubmit stale uploads now."""
    resubmitted = await control.runtime.reaper_scheduler.run_once()
    console_print(f"Resubmitted {resubmitted} stale upload(s).", "ansigreen")


async def cmd_audit(control: ConsoleControl, args: list[str]) -> None:
    """Show the latest audit entries, optionally filtered by action."""
    action = args[0].upper() if args else None
    limit = int(args[1]) if len(args) > 1 else 20
    entries = await control.runtime.admin.audit_logs(control.operator, action=action, limit=limit)
    if not entries:
        console_print("No audit entries found.", "ansiyellow")
        return
    for entry in entries:
        console_print(
            f"  {entry.timestamp:%Y-%m-%d %H:%M:%S}  {entry.action:<36} "
            f"{entry.actor_id} -> {entry.target_id}"
        )
    console_print("")


async def cmd_suspicious(control: ConsoleControl, args: list[str]) -> None:
    """Check a user for abuse patterns."""
    if not args:
        console_print("Usage: suspicious <user_id>", "ansiyellow")
        return
    report = await control.runtime.admin.suspicious_activity(control.operator, args[0])
    if not report.suspicious:
        console_print(f"No suspicious activity for {args[0]}.", "ansigreen")
        return
    for alert in report.alerts:
        console_print(f"  • {alert}", "ansired")


async def cmd_clear(control: ConsoleControl, args: list[str]) -> None:
    """Clear the console screen."""
    os.system('cls' if os.name == 'nt' else 'clear')
    console_print("Console cleared.", "ansigreen")


async def cmd_shutdown(control: ConsoleControl, args: list[str]) -> None:
    """Request graceful shutdown."""
    console_print("Shutdown requested.", "ansiyellow")
    control.request_shutdown()


# ==================== Command Registry ====================

COMMANDS: list[Command] = [
    Command(
        name="help",
        handler=cmd_help,
        aliases=["h", "?"],
        description="Show this help message with all available commands",
    ),
    Command(
        name="status",
        handler=cmd_status,
        aliases=["stat", "info"],
        description="Display asset counts, banned users and scheduler state",
    ),
    Command(
        name="user",
        handler=cmd_user,
        aliases=["register"],
        description="Register a user or change its role",
        usage="user <user_id> [member|partner|support|admin|founder]",
    ),
    Command(
        name="submit",
        handler=cmd_submit,
        aliases=["upload"],
        description="Create an asset in uploading state and moderate it",
        usage="submit <author_id> <image_url> <name...>",
    ),
    Command(
        name="rescan",
        handler=cmd_rescan,
        aliases=["scan"],
        description="Re-run the image check for an asset without changing it",
        usage="rescan <asset_id>",
    ),
    Command(
        name="ban",
        handler=cmd_ban,
        aliases=[],
        description="Ban a user",
        usage="ban <user_id> <days|perm> <reason...>",
    ),
    Command(
        name="unban",
        handler=cmd_unban,
        aliases=[],
        description="Lift a user's ban",
        usage="unban <user_id>",
    ),
    Command(
        name="sweep",
        handler=cmd_sweep,
        aliases=["expire"],
        description="Run the ban expiry sweep now",
    ),
    Command(
        name="reap",
        handler=cmd_reap,
        aliases=["stale"],
        description="Resubmit uploads stuck in uploading",
    ),
    Command(
        name="audit",
        handler=cmd_audit,
        aliases=["log"],
        description="Show recent audit entries",
        usage="audit [ACTION] [limit]",
    ),
    Command(
        name="suspicious",
        handler=cmd_suspicious,
        aliases=["sus"],
        description="Check a user for abuse patterns",
        usage="suspicious <user_id>",
    ),
    Command(
        name="clear",
        handler=cmd_clear,
        aliases=["cls"],
        description="Clear the console screen",
    ),
    Command(
        name="shutdown",
        handler=cmd_shutdown,
        aliases=["stop", "quit", "exit"],
        description="Gracefully shut down the service",
    ),
]


# ==================== Command Dispatcher ====================

async def handle_console_command(command: str, control: ConsoleControl) -> None:
    """Interpret and execute a single console command line."""
    if not command.strip():
        return

    parts = command.strip().split()
    cmd_name = parts[0].lower()
    args = parts[1:]

    for cmd in COMMANDS:
        if cmd.matches(cmd_name):
            try:
                await cmd.handler(control, args)
            except (AssetGuardError, ValueError) as exc:
                console_print(f"{type(exc).__name__}: {exc}", "ansired")
            except Exception as exc:
                logger.exception("Error executing command '%s': %s", cmd_name, exc)
                console_print(f"Error executing command: {exc}", "ansired")
            return

    console_print(f"Unknown command '{cmd_name}'. Type 'help' for available commands.", "ansired")


async def run_console(control: ConsoleControl) -> None:
    """Run the interactive console until shutdown is requested."""
    session = PromptSession("> ")

    for line in box_title("AssetGuard Operator Console"):
        console_print(line, "ansigreen")
    console_print("Type 'help' for available commands or 'exit' to quit.\n", "ansibrightblack")

    with patch_stdout():
        while not control.is_shutdown_requested():
            try:
                line = await session.prompt_async()
                if line.strip():
                    await handle_console_command(line, control)
            except (EOFError, KeyboardInterrupt):
                console_print("\nShutdown requested by user.", "ansiyellow")
                control.request_shutdown()
                break
            except Exception as exc:
                logger.exception("Error in console input loop: %s", exc)
                console_print(f"Error: {exc}", "ansired")


@asynccontextmanager
async def console_session(control: ConsoleControl) -> AsyncIterator[ConsoleControl]:
    """Run the console alongside the service, cleaning up automatically."""
    console_task = asyncio.create_task(run_console(control))
    try:
        yield control
    finally:
        control.request_shutdown()
        console_task.cancel()
        try:
            await console_task
        except asyncio.CancelledError:
            pass
