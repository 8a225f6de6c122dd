"""
Command handlers.

Each handler takes a CommandContext and writes its replies directly to
the relevant connections. Register them all at once with
register_default_commands(), or pick individual ones:

    from ircchat.chat import CommandDispatcher
    from ircchat.handlers import register_default_commands

    dispatcher = register_default_commands(CommandDispatcher())
"""

from .commands import (
    list_users,
    direct_message,
    current_time,
    user_info,
    kick_user,
    register_default_commands,
)

__all__ = [
    "list_users",
    "direct_message",
    "current_time",
    "user_info",
    "kick_user",
    "register_default_commands",
]
