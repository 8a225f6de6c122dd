"""
=============================================================================
BUILT-IN CHAT COMMANDS
=============================================================================

    Command                  Access   Reply goes to
    ─────────────────────────────────────────────────────────
    /users                   any      issuer
    /msg <user> <text...>    any      <user>  (errors: issuer)
    /time                    any      issuer
    /user <name>             any      issuer
    /kick <name>             admin    <name>, then disconnected

Replies are written straight to the target connection, not through the
event loop. A DM and a broadcast to the same client may therefore
arrive in either order; each line stays whole because of the
connection's write lock.

=============================================================================
"""

import logging

from ..chat.dispatcher import CommandContext, CommandDispatcher
from ..chat.errors import PREFIX


logger = logging.getLogger(__name__)


def list_users(ctx: CommandContext) -> None:
    """/users: one line per registered client."""
    for username in ctx.registry.usernames():
        ctx.reply(f"\t{username}")


def direct_message(ctx: CommandContext) -> None:
    """/msg <user> <text...>: send a private line to one client."""
    if len(ctx.args) < 2:
        raise ctx.usage_error("Please provide a user and a message")

    target = ctx.find_user(ctx.args[0])
    text = " ".join(ctx.args[1:])

    if not target.send(f'DM from <{ctx.client.username}>: "{text}"'):
        logger.warning(f"Direct message from [{ctx.client.username}] to [{target.username}] failed")


def current_time(ctx: CommandContext) -> None:
    """/time: the server's wall-clock time."""
    now = ctx.clock()
    ctx.reply(f"{PREFIX} Server time: {now.strftime('%Y-%m-%d %H:%M:%S %Z').rstrip()}")


def user_info(ctx: CommandContext) -> None:
    """/user <name>: username and remote address of a client."""
    if len(ctx.args) < 1:
        raise ctx.usage_error("Please provide a <user> to view")

    target = ctx.find_user(ctx.args[0])
    ctx.reply(f"{PREFIX} Username: {target.username}, IP: {target.address}")


def kick_user(ctx: CommandContext) -> None:
    """
    /kick <name>: disconnect a client (admin only).

    The target gets a notice first, then a Leave is queued for its
    connection. The registry changes when the event loop processes it,
    not here.
    """
    if len(ctx.args) < 1:
        raise ctx.usage_error("Please provide a user to kick")

    target = ctx.find_user(ctx.args[0])

    target.send(f"{PREFIX} You have been kicked from the server")
    logger.info(f"[{target.username}] was kicked by [{ctx.client.username}]")

    ctx.loop.disconnect(target.connection)


def register_default_commands(dispatcher: CommandDispatcher) -> CommandDispatcher:
    """
    Install the five built-in commands on a dispatcher.

    Returns:
        The same dispatcher, for chaining.
    """
    dispatcher.add_command("/users", list_users, usage="/users")
    dispatcher.add_command("/msg", direct_message, usage="/msg <user> <message>")
    dispatcher.add_command("/time", current_time, usage="/time")
    dispatcher.add_command("/user", user_info, usage="/user <name>")
    dispatcher.add_command("/kick", kick_user, admin_only=True, usage="/kick <name>")
    return dispatcher
