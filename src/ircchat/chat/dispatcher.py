"""
=============================================================================
COMMAND DISPATCHER
=============================================================================

Maps "/name" to a handler function, much like a URL router maps paths to
view functions.

=============================================================================
DISPATCH ORDER
=============================================================================

    "/kick bob"
         │
         ▼
    ┌──────────────────────┐  no   ┌───────────────────────────────────┐
    │ name registered?     │──────►│ "Invalid command" → issuer        │
    └──────────┬───────────┘       └───────────────────────────────────┘
               │ yes
               ▼
    ┌──────────────────────┐  no   ┌───────────────────────────────────┐
    │ role allowed?        │──────►│ "Not allowed command" → issuer    │
    └──────────┬───────────┘       └───────────────────────────────────┘
               │ yes
               ▼
    ┌──────────────────────┐ raise ┌───────────────────────────────────┐
    │ handler(ctx)         │──────►│ CommandError.message → issuer     │
    │  (checks arg counts) │       └───────────────────────────────────┘
    └──────────────────────┘

Name and permission are checked BEFORE the handler looks at arguments,
so a member typing "/kick" with no target is told "not allowed", not
"usage".

Command names match exactly and case-sensitively: "/Users" is unknown.

=============================================================================
REGISTERING COMMANDS
=============================================================================

    dispatcher = CommandDispatcher()

    @dispatcher.command("/ping", usage="/ping")
    def ping(ctx):
        ctx.reply("pong")

    @dispatcher.command("/shutdown", admin_only=True)
    def shutdown(ctx):
        ...

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from .errors import (
    PREFIX,
    CommandError,
    PermissionDeniedError,
    UnknownCommandError,
    UnknownUserError,
    UsageError,
)
from .models import Client
from .registry import ClientRegistry


logger = logging.getLogger(__name__)


def local_now() -> datetime:
    """Current wall-clock time, with the server's local time zone."""
    return datetime.now().astimezone()


@dataclass
class CommandContext:
    """
    Everything a command handler may use.

    Attributes:
        client: The client that issued the command.
        name: The command name as typed ("/msg").
        args: Tokens after the command name.
        registry: Registry to read from (snapshot API only).
        loop: EventLoop, for commands that request state changes.
        clock: Returns the current time.
        usage: Synopsis of the running command ("/user <name>").
    """

    client: Client
    name: str
    args: List[str]
    registry: ClientRegistry
    loop: object = None
    clock: Callable[[], datetime] = field(default=local_now)
    usage: str = ""

    def reply(self, text: str) -> bool:
        """Write one line back to the issuer."""
        return self.client.send(text)

    def find_user(self, username: str) -> Client:
        """
        Look up a registered client by username.

        Raises:
            UnknownUserError: If nobody with that name is registered.
        """
        target = self.registry.find(username)
        if target is None:
            raise UnknownUserError(username)
        return target

    def usage_error(self, hint: str) -> UsageError:
        """A UsageError whose message ends with the command's synopsis."""
        return UsageError(f"{PREFIX} {hint}: {self.usage}")


Handler = Callable[[CommandContext], None]


@dataclass
class Command:
    """
    A registered command.

    Attributes:
        name: Exact name including the prefix ("/users").
        handler: Function called with a CommandContext.
        admin_only: Whether members are refused before the handler runs.
        usage: Human-readable synopsis ("/msg <user> <text...>").
    """

    name: str
    handler: Handler
    admin_only: bool = False
    usage: str = ""

    def allows(self, client: Client) -> bool:
        return client.is_admin or not self.admin_only


class CommandDispatcher:
    """Lookup table from command name to Command, plus the dispatch logic."""

    def __init__(self, clock: Callable[[], datetime] = local_now):
        self._commands: Dict[str, Command] = {}
        self.clock = clock

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def add_command(
        self,
        name: str,
        handler: Handler,
        admin_only: bool = False,
        usage: str = "",
    ) -> Command:
        """
        Register a handler under an exact command name.

        A later registration under the same name replaces the earlier one.
        """
        command = Command(name=name, handler=handler, admin_only=admin_only, usage=usage or name)
        self._commands[name] = command
        return command

    def command(self, name: str, admin_only: bool = False, usage: str = "") -> Callable[[Handler], Handler]:
        """Decorator form of add_command()."""
        def decorator(handler: Handler) -> Handler:
            self.add_command(name, handler, admin_only, usage)
            return handler
        return decorator

    def get(self, name: str) -> Optional[Command]:
        return self._commands.get(name)

    def commands(self) -> List[Command]:
        return list(self._commands.values())

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def resolve(self, client: Client, name: str) -> Command:
        """
        Find the command and check the issuer may run it.

        Raises:
            UnknownCommandError: No such command.
            PermissionDeniedError: Admin-only command issued by a member.
        """
        command = self.get(name)
        if command is None:
            raise UnknownCommandError(name)

        if not command.allows(client):
            raise PermissionDeniedError(name)

        return command

    def dispatch(self, client: Client, tokens: List[str], registry: ClientRegistry, loop=None) -> bool:
        """
        Run one command line for a client.

        Errors from the user's side (unknown command, missing permission,
        bad arguments, unknown target) are written back to the issuer and
        go no further.

        Args:
            client: The issuing client.
            tokens: The whitespace-split command line; tokens[0] is the name.
            registry: Registry to read from.
            loop: EventLoop, for commands that request state changes.

        Returns:
            True if the command ran to completion, False if it was refused
            or failed with a CommandError.
        """
        if not tokens:
            return False

        name, args = tokens[0], tokens[1:]

        try:
            command = self.resolve(client, name)
            context = CommandContext(
                client=client,
                name=name,
                args=args,
                registry=registry,
                loop=loop,
                clock=self.clock,
                usage=command.usage,
            )
            command.handler(context)
        except CommandError as e:
            logger.debug(f"[{client.username}] {name}: {e.message}")
            client.send(e.message)
            return False

        return True
