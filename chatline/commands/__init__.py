"""Command handler framework for chatline.

Provides the BaseCommandHandler ABC, CommandContext dependency
container, HandlerRegistry for mapping command names to handlers,
and the built-in CoreCommandHandler.
"""

from .base import (
    BUILTIN_COMMANDS,
    BaseCommandHandler,
    CommandContext,
    CommandEvent,
    CommandKind,
    HandlerRegistry,
)
from .core import CoreCommandHandler
from .parse import ParsedCommand, parse_command_line

__all__ = [
    "BaseCommandHandler",
    "CommandContext",
    "CommandEvent",
    "CommandKind",
    "CoreCommandHandler",
    "HandlerRegistry",
    "ParsedCommand",
    "BUILTIN_COMMANDS",
    "parse_command_line",
]
