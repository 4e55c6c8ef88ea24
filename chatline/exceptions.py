"""Custom exception hierarchy for chatline.

Provides error classification for the input pipeline so the line
processor can decide how a failed command is surfaced to the user.
Nothing here is fatal to the process: the dispatcher catches these,
logs them and echoes a local notice instead of letting them escape
``process_line``.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Classification of errors for reporting decisions."""
    USER = "user"                    # Bad input typed by the user
    INTERNAL = "internal"            # Bug or broken collaborator
    CONFIGURATION = "configuration"  # Settings / alias source problems


class ChatlineError(Exception):
    """Base exception for all chatline errors.

    Attributes:
        message: Human-readable error description.
        category: Error classification.
        module: Originating module name (e.g. "commands.core").
        context: Arbitrary key-value pairs for structured logging.
    """

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.message = message
        self.category = category
        self.module = module
        self.context = context
        super().__init__(message)

    @property
    def is_user_error(self) -> bool:
        """Whether the error was caused by what the user typed."""
        return self.category == ErrorCategory.USER

    def __str__(self) -> str:
        parts = [self.message or self.__class__.__name__]
        if self.module:
            parts.append(f"[module={self.module}]")
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"({ctx})")
        return " ".join(parts)

    def __repr__(self) -> str:
        cls = self.__class__.__name__
        return (
            f"{cls}({self.message!r}, category={self.category.value!r}, "
            f"module={self.module!r})"
        )


# ---------------------------------------------------------------------------
# Command exceptions
# ---------------------------------------------------------------------------

class CommandError(ChatlineError):
    """A command handler could not carry out a command.

    Attributes:
        command: The command name being handled (if known).
    """

    def __init__(
        self,
        message: str = "",
        *,
        command: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.USER,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.command = command
        super().__init__(
            message, category=category, module=module or "commands", **context
        )


class InvalidParamsError(CommandError):
    """Command parameters could not be parsed.

    Attributes:
        usage: One-line usage hint shown to the user.
    """

    def __init__(
        self,
        message: str = "",
        *,
        command: Optional[str] = None,
        usage: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.USER,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.usage = usage
        super().__init__(
            message,
            command=command,
            category=category,
            module=module or "commands.parse",
            **context,
        )


class RecursionLimitError(CommandError):
    """Nested ``/lines`` expansion went deeper than allowed.

    Attributes:
        depth: Nesting depth at which processing stopped.
    """

    def __init__(
        self,
        message: str = "",
        *,
        depth: Optional[int] = None,
        command: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.USER,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.depth = depth
        super().__init__(
            message,
            command=command,
            category=category,
            module=module or "dispatcher",
            **context,
        )


class RegistryFrozenError(ChatlineError):
    """A command was registered after the registry was frozen."""

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        super().__init__(
            message, category=category, module=module or "commands.base", **context
        )


# ---------------------------------------------------------------------------
# Alias / configuration exceptions
# ---------------------------------------------------------------------------

class AliasError(ChatlineError):
    """An alias definition or expansion was malformed.

    Attributes:
        alias: The alias name involved (if known).
    """

    def __init__(
        self,
        message: str = "",
        *,
        alias: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.CONFIGURATION,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.alias = alias
        super().__init__(
            message, category=category, module=module or "aliases", **context
        )


class ConfigurationError(ChatlineError):
    """Invalid or missing configuration."""

    def __init__(
        self,
        message: str = "",
        *,
        setting_name: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.CONFIGURATION,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.setting_name = setting_name
        super().__init__(
            message, category=category, module=module or "config", **context
        )


# ---------------------------------------------------------------------------
# State exceptions
# ---------------------------------------------------------------------------

class StateError(ChatlineError):
    """Chat state was asked for something it does not have.

    Raised for example when no network is active yet.
    """

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.USER,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        super().__init__(
            message, category=category, module=module or "state", **context
        )
