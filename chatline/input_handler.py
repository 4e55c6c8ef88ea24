"""Input handler: wires aliases, the command table and raw input together.

One InputHandler per ChatState. On construction it

1. primes an AliasRewriter from the ``aliases`` setting and re-primes
   it whenever that setting changes,
2. builds the command registry (built-ins plus any extra handler
   groups), freezes it and hands it to a LineProcessor,
3. subscribes once to ``input.raw``; each payload is split on newlines
   and processed line by line, in order.
"""

from typing import Iterable, Mapping, Optional

import structlog

from .aliases import DEFAULT_ALIASES, AliasRewriter
from .commands.base import BaseCommandHandler, CommandContext, CommandHandlerFn, HandlerRegistry
from .commands.core import CoreCommandHandler
from .config import DEFAULT_MAX_LINE_DEPTH, DEFAULT_NICK, DEFAULT_PORT
from .dispatcher import LineProcessor
from .state import ChatState

logger = structlog.get_logger("chatline.input")

RAW_INPUT_EVENT = "input.raw"
ALIASES_SETTING = "aliases"


class InputHandler:
    """Coordinator for one session's typed input.

    Args:
        state: The session's chat state.
        extra_handlers: Additional handler groups, registered after the
            built-ins (a name registered twice keeps the later handler).
        extra_commands: Plain ``{name: handler}`` commands, registered last.
        default_nick: Nick used by /server when none is given.
        default_port: Port used by /server when none is given.
        max_line_depth: Nesting limit for /lines.
    """

    def __init__(
        self,
        state: ChatState,
        extra_handlers: Iterable[type] = (),
        extra_commands: Optional[Mapping[str, CommandHandlerFn]] = None,
        default_nick: str = DEFAULT_NICK,
        default_port: int = DEFAULT_PORT,
        max_line_depth: int = DEFAULT_MAX_LINE_DEPTH,
    ):
        self.state = state

        self.alias_rewriter = AliasRewriter()
        self.alias_rewriter.import_from_string(
            state.get_setting(ALIASES_SETTING, DEFAULT_ALIASES)
        )
        state.watch(ALIASES_SETTING, self._on_aliases_changed)

        self.context = CommandContext(
            state=state,
            default_nick=default_nick,
            default_port=default_port,
        )
        self.registry = HandlerRegistry()
        self.registry.register(CoreCommandHandler(self.context))
        for handler_cls in extra_handlers:
            handler: BaseCommandHandler = handler_cls(self.context)
            self.registry.register(handler)
        if extra_commands:
            self.registry.register_external(extra_commands)

        self.processor = LineProcessor(
            state=state,
            aliases=self.alias_rewriter,
            handlers=self.registry.freeze(),
            max_depth=max_line_depth,
        )
        self.context.attach_processor(self.processor.process_line)

        state.on(RAW_INPUT_EVENT, self.handle_raw_input)
        logger.info(
            "input_handler_ready",
            commands=len(self.registry),
            aliases=len(self.alias_rewriter.aliases),
        )

    @classmethod
    def from_config(cls, state: ChatState, config, **kwargs) -> "InputHandler":
        """Build an InputHandler using a Config's defaults.

        The config's alias source is used unless ``state`` already has
        an ``aliases`` setting.
        """
        if state.get_setting(ALIASES_SETTING) is None:
            state.settings[ALIASES_SETTING] = config.aliases
        kwargs.setdefault("default_nick", config.default_nick)
        kwargs.setdefault("default_port", config.default_port)
        kwargs.setdefault("max_line_depth", config.max_line_depth)
        return cls(state, **kwargs)

    def _on_aliases_changed(self, new_value, old_value) -> None:
        self.alias_rewriter.import_from_string(new_value)

    def handle_raw_input(self, text: str) -> None:
        """Process a (possibly multi-line) chunk of typed text."""
        lines = text.replace("\r\n", "\n").split("\n")
        logger.debug("raw_input_received", lines=len(lines))
        for line in lines:
            self.processor.process_line(line)

    def process_line(self, raw_line: str) -> None:
        self.processor.process_line(raw_line)
