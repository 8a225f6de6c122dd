"""
=============================================================================
COMMAND ERRORS
=============================================================================

Errors raised while executing a chat command. None of these are server
faults: the dispatcher catches every CommandError and writes its message
back to the client that issued the command. Nothing else happens.

    CommandError
    ├── UnknownCommandError      /frobnicate
    ├── PermissionDeniedError    /kick issued by a member
    ├── UsageError               /msg with no text
    └── UnknownUserError         /user nobody

=============================================================================
"""

PREFIX = "irc-server >"


class CommandError(Exception):
    """
    Base class for errors reported back to the issuing client.

    Attributes:
        message: The line written to the issuer.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnknownCommandError(CommandError):
    def __init__(self, name: str):
        super().__init__(f"{PREFIX} Invalid command")
        self.name = name


class PermissionDeniedError(CommandError):
    def __init__(self, name: str):
        super().__init__(f"{PREFIX} Not allowed command, must be admin")
        self.name = name


class UsageError(CommandError):
    """Wrong number of arguments. The message says what was expected."""


class UnknownUserError(CommandError):
    def __init__(self, username: str):
        super().__init__(f"{PREFIX} The user '{username}' does not exist")
        self.username = username
