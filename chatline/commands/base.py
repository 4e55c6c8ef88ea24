"""Base classes for the command handler framework.

Defines the abstractions for registering and dispatching slash
commands. Handlers are grouped into classes that extend
BaseCommandHandler, then registered with a HandlerRegistry that maps
command names to callables. The registry is built once per session,
frozen, and handed to the LineProcessor.

Key classes:
    CommandEvent: Per-line dispatch record with the ``handled`` flag.
    CommandKind: Tagged command type over the built-in command names.
    CommandContext: Dependency container shared by all handlers.
    BaseCommandHandler: ABC that handler groups must implement.
    HandlerRegistry: Maps command names to handler callables.

Constants:
    BUILTIN_COMMANDS: Frozenset of the built-in command names.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Callable, Dict, Mapping, Optional

import structlog

from ..exceptions import RegistryFrozenError

if TYPE_CHECKING:
    from ..state import ChatState

logger = structlog.get_logger("chatline.commands")


@dataclass
class CommandEvent:
    """One dispatch cycle for one processed line.

    ``handled`` is the only field handlers change. Leaving it False
    makes the line processor also send the line raw to the server.
    """

    raw: str
    command: str
    params: str
    handled: bool = False


CommandHandlerFn = Callable[[CommandEvent, str, str], None]


class CommandKind(str, Enum):
    """Built-in command kinds, plus UNKNOWN for everything else."""
    LINES = "lines"
    MSG = "msg"
    ACTION = "action"
    NOTICE = "notice"
    JOIN = "join"
    PART = "part"
    CLOSE = "close"
    QUERY = "query"
    NICK = "nick"
    QUOTE = "quote"
    CLEAR = "clear"
    ECHO = "echo"
    SERVER = "server"
    UNKNOWN = "<unknown>"

    @classmethod
    def resolve(cls, name: str) -> "CommandKind":
        """Classify a command token. Matching is exact (case-sensitive)."""
        kind = _KIND_BY_NAME.get(name)
        return kind if kind is not None else cls.UNKNOWN


_KIND_BY_NAME: Dict[str, CommandKind] = {
    kind.value: kind for kind in CommandKind if kind is not CommandKind.UNKNOWN
}

BUILTIN_COMMANDS = frozenset(_KIND_BY_NAME)


@dataclass
class CommandContext:
    """Dependency container for command handlers.

    The line processor is created after the registry it dispatches
    through, so it is attached later and guarded by a property.
    """

    state: "ChatState"
    default_nick: str = "ircuser"
    default_port: int = 6667
    _process_line: Optional[Callable[[str], None]] = field(default=None, repr=False)

    def attach_processor(self, process_line: Callable[[str], None]) -> None:
        self._process_line = process_line

    @property
    def process_line(self) -> Callable[[str], None]:
        if self._process_line is None:
            raise RuntimeError("Input handler not started — line processor not available")
        return self._process_line


class BaseCommandHandler(ABC):
    """Abstract base class for command handler groups.

    Subclasses implement get_commands() to return a dict mapping
    command names to handler methods. Each handler receives
    ``(event, command, params)`` and must set ``event.handled = True``
    when it takes responsibility for the line.

    Args:
        ctx: Shared CommandContext dependency container.
    """

    def __init__(self, ctx: CommandContext):
        self.ctx = ctx

    @abstractmethod
    def get_commands(self) -> Dict[str, CommandHandlerFn]:
        """Return {command_name: handler} mapping."""
        ...


class HandlerRegistry:
    """Maps command names to handler callables.

    Names are stored lower-cased; the last registration for a name
    wins. Once frozen, further registration raises RegistryFrozenError.
    """

    def __init__(self):
        self._handlers: Dict[str, CommandHandlerFn] = {}
        self._frozen = False

    def register(self, handler: BaseCommandHandler) -> None:
        """Register all commands from a BaseCommandHandler subclass."""
        self._add(handler.get_commands(), source=type(handler).__name__)

    def register_external(self, commands: Mapping[str, CommandHandlerFn]) -> None:
        """Register commands from a plain dict of name -> handler."""
        self._add(commands, source="external")

    def _add(self, commands: Mapping[str, CommandHandlerFn], source: str) -> None:
        if self._frozen:
            raise RegistryFrozenError(
                "Command registry is frozen", source=source
            )
        for cmd_name, method in commands.items():
            key = cmd_name.lower()
            if key in self._handlers:
                logger.warning(
                    "command_handler_conflict",
                    command=key,
                    source=source,
                )
            self._handlers[key] = method

    def freeze(self) -> Mapping[str, CommandHandlerFn]:
        """Stop accepting registrations and return a read-only view."""
        self._frozen = True
        logger.debug("command_registry_frozen", commands=sorted(self._handlers))
        return MappingProxyType(self._handlers)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, command: str) -> Optional[CommandHandlerFn]:
        """Look up a handler by exact command name."""
        return self._handlers.get(command)

    @property
    def command_names(self) -> frozenset:
        """All registered command names."""
        return frozenset(self._handlers.keys())

    def __contains__(self, command: object) -> bool:
        return command in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)
