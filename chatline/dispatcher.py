"""Line processor: turns one typed line into a dispatched command.

Pipeline for every line:

    plain text  -> "/quote text" (server buffer) or "/msg <buffer> text"
    alias rewrite with {server, channel, destination, nick}
    split "/command params" on the first space
    run the registered handler, if any
    not handled -> send "command params" raw to the active network

Active network and buffer are read at the start of each line, so a
/join or /query earlier in a paste changes where later lines go.
``process_line`` never raises; failures end up in the log and, where
possible, as a local notice in the active buffer.
"""

from typing import Dict, Mapping, Optional

import structlog

from .aliases import AliasRewriter
from .commands.base import CommandEvent, CommandHandlerFn, CommandKind
from .commands.core import SYSTEM_NICK
from .commands.parse import parse_command_line
from .exceptions import ChatlineError, InvalidParamsError, RecursionLimitError
from .models import MessageType
from .state import Buffer, ChatState, Network

logger = structlog.get_logger("chatline.input")

DEFAULT_MAX_DEPTH = 16


class LineProcessor:
    """Dispatches input lines through aliases and the command table.

    Args:
        state: Session chat state.
        aliases: Alias engine used to rewrite each line.
        handlers: Frozen command name -> handler table.
        max_depth: How deep /lines may re-enter process_line.
    """

    def __init__(
        self,
        state: ChatState,
        aliases: AliasRewriter,
        handlers: Mapping[str, CommandHandlerFn],
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        self.state = state
        self.aliases = aliases
        self.handlers = handlers
        self.max_depth = max_depth
        self._depth = 0
        self._aborted = False

    def process_line(self, raw_line: str) -> None:
        """Process one input line. Re-entrant through /lines."""
        self._depth += 1
        try:
            if self._aborted:
                return
            if self._depth > self.max_depth:
                self._aborted = True
                logger.warning("line_depth_exceeded", depth=self._depth, limit=self.max_depth)
                raise RecursionLimitError(
                    f"Too many nested commands (limit {self.max_depth}), stopped",
                    depth=self._depth,
                )
            self._process(raw_line)
        except ChatlineError as e:
            self._report(e)
        except Exception as e:
            logger.error(
                "line_processing_error",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
        finally:
            self._depth -= 1
            if self._depth == 0:
                self._aborted = False

    def _process(self, raw_line: str) -> None:
        network = self.state.get_active_network()
        buffer = self.state.get_active_buffer()

        line = raw_line
        if not line.startswith("/"):
            # Server buffers send raw, channels/queries send a message
            if buffer is None or buffer.is_server():
                line = "/quote " + line
            else:
                line = f"/msg {buffer.name} {line}"

        try:
            line = self.aliases.process(line, self._alias_vars(network, buffer))
        except Exception as e:
            logger.error("alias_process_error", error=str(e), error_type=type(e).__name__)

        parsed = parse_command_line(line)
        event = CommandEvent(raw=raw_line, command=parsed.name, params=parsed.params)

        # Built-ins resolve through their kind; anything else by its exact name
        key = parsed.name if parsed.kind is CommandKind.UNKNOWN else parsed.kind.value
        handler = self.handlers.get(key)
        logger.debug(
            "command_dispatched",
            command=parsed.name,
            kind=parsed.kind.value,
            has_handler=handler is not None,
            depth=self._depth,
        )

        if handler is not None:
            try:
                handler(event, parsed.name, parsed.params)
            except ChatlineError:
                event.handled = True
                raise
            except Exception as e:
                event.handled = True
                logger.error(
                    "command_handler_error",
                    command=parsed.name,
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )

        if not event.handled:
            if network is None:
                logger.warning("passthrough_without_network", command=parsed.name)
                self._notify("Not connected to a network. Use /server <address> first.")
            else:
                logger.debug("command_unhandled_passthrough", command=parsed.name)
                network.transport.raw(parsed.line)

        self.state.emit("input.command", event)

    @staticmethod
    def _alias_vars(network: Optional[Network], buffer: Optional[Buffer]) -> Dict[str, str]:
        buffer_name = buffer.name if buffer is not None else ""
        return {
            "server": network.name if network is not None else "",
            "channel": buffer_name,
            "destination": buffer_name,
            "nick": network.nick if network is not None else "",
        }

    def _report(self, error: ChatlineError) -> None:
        logger.warning(
            "command_failed",
            error=error.message,
            error_type=type(error).__name__,
            category=error.category.value,
        )
        text = error.message or type(error).__name__
        if isinstance(error, InvalidParamsError) and error.usage:
            text = f"{text}. {error.usage}"
        self._notify(text)

    def _notify(self, text: str) -> None:
        buffer = self.state.get_active_buffer()
        if buffer is None:
            logger.info("notice_without_buffer", message=text)
            return
        self.state.add_message(buffer, {
            "nick": SYSTEM_NICK,
            "message": text,
            "type": MessageType.SYSTEM,
        })
