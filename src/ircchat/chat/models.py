"""
Chat data model: who is connected and with what role.
"""

from dataclasses import dataclass
from enum import Enum

from ..core.connection import Connection


# The one reserved username. Whoever registers with it is the channel admin.
ADMIN_USERNAME = "admin"


class Role(Enum):
    """
    A client's role, fixed at registration.

    There are no runtime role changes: a client is an admin for its whole
    session or never.
    """
    MEMBER = "member"
    ADMIN = "admin"

    @classmethod
    def for_username(cls, username: str) -> "Role":
        return cls.ADMIN if username == ADMIN_USERNAME else cls.MEMBER


@dataclass(frozen=True, eq=False)
class Client:
    """
    A registered chat participant.

    Identity is the connection: two Client records are the same client
    only if they wrap the same Connection object. Usernames are NOT
    unique.

    Attributes:
        username: Name sent as the first line, trimmed.
        role: MEMBER or ADMIN, derived from the username.
        connection: The client's connection handle.
    """

    username: str
    role: Role
    connection: Connection

    @classmethod
    def register(cls, username: str, connection: Connection) -> "Client":
        """Build the record for a freshly registered connection."""
        return cls(
            username=username,
            role=Role.for_username(username),
            connection=connection,
        )

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def address(self) -> str:
        return self.connection.remote_address

    def send(self, text: str) -> bool:
        """Write one line to this client. False if the write failed."""
        return self.connection.write_line(text)
