"""Direct-message command language for editing status mappings.

Each handler receives the parsed arguments, the caller's loaded settings and the
store used to persist them, and returns the reply to post back to Slack.
Handlers validate before mutating so a rejected command never writes anything.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from app.commands.tokenizer import CommandArguments, parse_command
from app.models.user_settings import SlackStatus, UserSettings
from app.repositories.user_settings import SettingsConflictError

logger = logging.getLogger(__name__)

NO_MAPPINGS_MESSAGE = (
    "You don't have any status mappings yet. "
    'Try `set meeting="Team Sync" message="In a meeting" emoji=:calendar:`'
)
MISSING_MEETING_MESSAGE = (
    "You must specify a meeting name, for example "
    '`set meeting="Team Sync" message="In a meeting" emoji=:calendar:`'
)
MISSING_REMOVE_MEETING_MESSAGE = 'You must specify which meeting to remove, for example `remove meeting="Team Sync"`'
MISSING_DEFAULT_MESSAGE = (
    "You must specify a message or an emoji for the default status, for example "
    '`set-default message="Working" emoji=:computer:`'
)
CONFLICT_MESSAGE = "Your settings changed while I was saving them. Please try again."
HELP_MESSAGE = "\n".join(
    [
        "Here's what I can do:",
        "• `show` lists your status mappings",
        '• `set meeting="<meeting name>" [message="<status text>"] [emoji=<emoji>]` adds or updates a mapping',
        '• `remove meeting="<meeting name>"` removes a mapping',
        '• `set-default [message="<status text>"] [emoji=<emoji>]` sets the status used when no meeting matches',
        "• `remove-default` removes the default status",
    ]
)

Store = Any
Handler = Callable[[CommandArguments, UserSettings, Store], str]


def format_status(status: SlackStatus) -> str:
    parts = [status.emoji] if status.emoji else []
    if status.text:
        parts.append(f"`{status.text}`")
    return " ".join(parts)


def render_mappings(settings: UserSettings) -> str:
    if not settings.status_mappings:
        return NO_MAPPINGS_MESSAGE
    lines = []
    for mapping in settings.status_mappings:
        status = mapping.slack_status
        line = f"`{mapping.calendar_text}`"
        if status.emoji:
            line = f"{status.emoji} {line}"
        if status.text:
            line = f"{line} uses status `{status.text}`"
        lines.append(line)
    return "\n".join(lines)


def _handle_show(args: CommandArguments, settings: UserSettings, store: Store) -> str:
    return render_mappings(settings)


def _handle_set(args: CommandArguments, settings: UserSettings, store: Store) -> str:
    if not args.meeting:
        return MISSING_MEETING_MESSAGE
    status = SlackStatus(text=args.message or args.meeting, emoji=args.emoji)
    settings.upsert_mapping(args.meeting, status)
    persisted = store.upsert_status_mappings(settings)
    return render_mappings(persisted)


def _handle_remove(args: CommandArguments, settings: UserSettings, store: Store) -> str:
    if not args.meeting:
        return MISSING_REMOVE_MEETING_MESSAGE
    if not settings.remove_mapping(args.meeting):
        return f"You don't have a status mapping for `{args.meeting}`, so there was nothing to remove."
    persisted = store.upsert_status_mappings(settings)
    return f"Removed the status mapping for `{args.meeting}`.\n{render_mappings(persisted)}"


def _handle_set_default(args: CommandArguments, settings: UserSettings, store: Store) -> str:
    status = SlackStatus(text=args.message, emoji=args.emoji)
    if status.is_empty:
        return MISSING_DEFAULT_MESSAGE
    settings.set_default_status(status)
    persisted = store.upsert_default_status(settings)
    return f"Your default status is now {format_status(persisted.default_status or status)}"


def _handle_remove_default(args: CommandArguments, settings: UserSettings, store: Store) -> str:
    settings.clear_default_status()
    store.upsert_default_status(settings)
    return "Your default status has been removed."


def _handle_help(args: CommandArguments, settings: UserSettings, store: Store) -> str:
    return HELP_MESSAGE


COMMANDS: dict[str, Handler] = {
    "show": _handle_show,
    "set": _handle_set,
    "remove": _handle_remove,
    "set-default": _handle_set_default,
    "remove-default": _handle_remove_default,
    "help": _handle_help,
}


def run_command(text: str, settings: UserSettings, store: Store) -> str:
    command = parse_command(text)
    handler = COMMANDS.get(command.name)
    if handler is None:
        logger.info("unknown command name=%s", command.name or "(empty)")
        return HELP_MESSAGE

    args = CommandArguments.from_tokens(command.args)
    try:
        return handler(args, settings, store)
    except SettingsConflictError:
        return CONFLICT_MESSAGE
