"""
=============================================================================
CHAT COMPONENTS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   EventLoop          single writer of the registry                  │
    │     ├── ClientRegistry   connection → Client                        │
    │     └── ClientSession    one reader thread per connection           │
    │             └── CommandDispatcher   "/name args" → handler          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘
"""

from .models import Client, Role, ADMIN_USERNAME
from .registry import ClientRegistry
from .errors import (
    CommandError,
    UnknownCommandError,
    PermissionDeniedError,
    UsageError,
    UnknownUserError,
)
from .dispatcher import Command, CommandContext, CommandDispatcher
from .session import ClientSession
from .event_loop import EventLoop, Join, Leave, Broadcast

__all__ = [
    # Model
    "Client",
    "Role",
    "ADMIN_USERNAME",
    "ClientRegistry",
    # Errors
    "CommandError",
    "UnknownCommandError",
    "PermissionDeniedError",
    "UsageError",
    "UnknownUserError",
    # Commands
    "Command",
    "CommandContext",
    "CommandDispatcher",
    # Concurrency
    "ClientSession",
    "EventLoop",
    "Join",
    "Leave",
    "Broadcast",
]
