"""Core command handler for chatline.

Handles: lines, msg, action, notice, join, part, close, query, nick,
quote, clear, echo, server.

Every handler marks the event handled before doing anything else.
"""

from __future__ import annotations

import time
from typing import Dict

import structlog

from ..exceptions import CommandError
from ..models import MessageType
from .base import BaseCommandHandler, CommandEvent, CommandHandlerFn, CommandKind
from .parse import (
    key_for,
    parse_close_names,
    parse_join_params,
    parse_message_target,
    parse_part_params,
    parse_server_params,
    split_first_word,
    split_lines_params,
)

logger = structlog.get_logger("chatline.commands")

# Local notices are attributed to this pseudo nick
SYSTEM_NICK = "*"

_SEND_PRIMITIVES = {
    MessageType.MSG: "say",
    MessageType.ACTION: "action",
    MessageType.NOTICE: "notice",
}


class CoreCommandHandler(BaseCommandHandler):
    """Handles the built-in slash commands."""

    def get_commands(self) -> Dict[str, CommandHandlerFn]:
        return {
            CommandKind.LINES: self.handle_lines,
            CommandKind.MSG: self.handle_msg,
            CommandKind.ACTION: self.handle_action,
            CommandKind.NOTICE: self.handle_notice,
            CommandKind.JOIN: self.handle_join,
            CommandKind.PART: self.handle_part,
            CommandKind.CLOSE: self.handle_close,
            CommandKind.QUERY: self.handle_query,
            CommandKind.NICK: self.handle_nick,
            CommandKind.QUOTE: self.handle_quote,
            CommandKind.CLEAR: self.handle_clear,
            CommandKind.ECHO: self.handle_echo,
            CommandKind.SERVER: self.handle_server,
        }

    # --- Multi-command ---

    def handle_lines(self, event: CommandEvent, command: str, params: str) -> None:
        """Run several commands from one line, separated by ``|``.

        Usage::

            /lines /part #old | /join #new

        Each piece goes back through the line processor, so it gets
        its own alias rewrite and dispatch.
        """
        event.handled = True
        for sub_line in split_lines_params(params):
            self.ctx.process_line(sub_line)

    # --- Messages ---

    def handle_msg(self, event: CommandEvent, command: str, params: str) -> None:
        """Send a message: ``/msg [#channel] text``."""
        self._handle_message(MessageType.MSG, event, params)

    def handle_action(self, event: CommandEvent, command: str, params: str) -> None:
        """Send an action: ``/action [#channel] text``."""
        self._handle_message(MessageType.ACTION, event, params)

    def handle_notice(self, event: CommandEvent, command: str, params: str) -> None:
        """Send a notice: ``/notice [#channel] text``."""
        self._handle_message(MessageType.NOTICE, event, params)

    def _handle_message(self, msg_type: MessageType, event: CommandEvent, params: str) -> None:
        """Shared body of /msg, /action and /notice.

        If the first word is a channel name, or the name of an open query
        buffer, it is the target; otherwise the active buffer is. The
        local echo is skipped when the target has no buffer here, but the
        message is still sent.
        """
        event.handled = True

        state = self.ctx.state
        network = state.require_active_network()
        active = state.require_active_buffer()

        # Open query buffers are targets as well as channel names, so an
        # implicit "/msg bob text" typed in bob's query goes to bob
        def is_target(token: str) -> bool:
            if network.is_channel_name(token):
                return True
            buffer = network.buffer_by_name(token) if token else None
            return buffer is not None and buffer.is_query()

        target, message = parse_message_target(params, is_target, active.name)

        buffer = state.get_buffer_by_name(network.id, target)
        if buffer is not None:
            state.add_message(buffer, {
                "time": int(time.time() * 1000),
                "nick": network.nick,
                "message": message,
                "type": msg_type,
            })
        else:
            logger.debug("message_echo_skipped", target=target, type=msg_type.value)

        send = getattr(network.transport, _SEND_PRIMITIVES.get(msg_type, "say"))
        send(target, message)

    # --- Channels and buffers ---

    def handle_join(self, event: CommandEvent, command: str, params: str) -> None:
        """Join channels: ``/join #a,b [key1,key2]``.

        Names without a channel prefix get "#". Focus moves to the
        first buffer this call creates, not to later ones.
        """
        event.handled = True

        state = self.ctx.state
        network = state.require_active_network()
        names, keys = parse_join_params(params)

        has_switched_active_buffer = False
        for idx, name in enumerate(names):
            if not name:
                continue
            chan_name = name if network.is_channel_name(name) else "#" + name

            new_buffer = state.add_buffer(network.id, chan_name)
            if new_buffer is not None and not has_switched_active_buffer:
                state.set_active_buffer(network.id, new_buffer.name)
                has_switched_active_buffer = True

            network.transport.join(chan_name, key_for(keys, idx))

        logger.debug("join_requested", network_id=network.id, channels=len(names))

    def handle_part(self, event: CommandEvent, command: str, params: str) -> None:
        """Leave channels.

        Usage::

            /part
            /part #chan,#other optional message
            /part optional message
        """
        event.handled = True

        state = self.ctx.state
        network = state.require_active_network()
        names, message = parse_part_params(params, network.is_channel_name)
        if names is None:
            names = [state.require_active_buffer().name]

        for name in names:
            network.transport.part(name, message)

    def handle_close(self, event: CommandEvent, command: str, params: str) -> None:
        """Part and remove buffers: ``/close [name name,name]``.

        Defaults to the active buffer. Names with no buffer are skipped.
        The server buffer cannot be closed; asking for it closes nothing.
        """
        event.handled = True

        state = self.ctx.state
        network = state.require_active_network()
        names = parse_close_names(params)
        if not names:
            names = [state.require_active_buffer().name]

        buffers = [network.buffer_by_name(name) for name in names]
        if any(b is not None and b.is_server() for b in buffers):
            raise CommandError("The server buffer cannot be closed", command=command)

        for name, buffer in zip(names, buffers):
            if buffer is None:
                logger.debug("close_unknown_buffer", name=name)
                continue
            network.transport.part(name)
            state.remove_buffer(buffer)

    def handle_query(self, event: CommandEvent, command: str, params: str) -> None:
        """Open query buffers: ``/query nick1 nick2``."""
        event.handled = True

        state = self.ctx.state
        network = state.require_active_network()

        has_switched_active_buffer = False
        for nick in params.split(" "):
            new_buffer = state.add_buffer(network.id, nick)
            if new_buffer is not None and not has_switched_active_buffer:
                state.set_active_buffer(network.id, new_buffer.name)
                has_switched_active_buffer = True

    # --- Connection level ---

    def handle_nick(self, event: CommandEvent, command: str, params: str) -> None:
        """Change nick: ``/nick newnick`` (extra words are ignored)."""
        event.handled = True

        new_nick, _ = split_first_word(params)
        network = self.ctx.state.require_active_network()
        network.transport.change_nick(new_nick)

    def handle_quote(self, event: CommandEvent, command: str, params: str) -> None:
        """Send a raw protocol line: ``/quote PRIVMSG #a :hi``."""
        event.handled = True

        network = self.ctx.state.require_active_network()
        network.transport.raw(params)

    def handle_server(self, event: CommandEvent, command: str, params: str) -> None:
        """Add a network: ``/server irc.example.org +6697 [password] [nick]``.

        A "+" before the port means TLS. Port defaults to 6667 and the
        nick to the configured default. A bad port raises
        InvalidParamsError and no network is added.
        """
        event.handled = True

        server = parse_server_params(
            params,
            default_port=self.ctx.default_port,
            default_nick=self.ctx.default_nick,
        )
        self.ctx.state.add_network(server.addr, server.nick, server.connection_options())

    # --- Local only ---

    def handle_clear(self, event: CommandEvent, command: str, params: str) -> None:
        """Empty the active buffer's scrollback."""
        event.handled = True

        state = self.ctx.state
        buffer = state.require_active_buffer()
        messages = buffer.get_messages()
        del messages[:]

        state.add_message(buffer, {
            "nick": SYSTEM_NICK,
            "message": "Scrollback cleared",
            "type": MessageType.SYSTEM,
        })

    def handle_echo(self, event: CommandEvent, command: str, params: str) -> None:
        """Show text in the active buffer without sending anything."""
        event.handled = True

        state = self.ctx.state
        state.add_message(state.require_active_buffer(), {
            "nick": SYSTEM_NICK,
            "message": params,
            "type": MessageType.SYSTEM,
        })
