"""Transport abstraction used by command handlers.

Handlers never build protocol lines themselves; they call the seven
primitives below on the active network's transport. ``IrcLineTransport``
turns each call into one IRC line and hands it to a ``send_line``
callable, which is where a real connection (or stdout) plugs in.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

import structlog

logger = structlog.get_logger("chatline.transport")

CTCP_DELIM = "\x01"


class Transport(ABC):
    """Operations the input pipeline needs from a network connection."""

    @abstractmethod
    def raw(self, line: str) -> None:
        """Send ``line`` verbatim."""

    @abstractmethod
    def say(self, target: str, message: str) -> None:
        """Send a message to a channel or nick."""

    @abstractmethod
    def action(self, target: str, message: str) -> None:
        """Send a CTCP ACTION (/me) to a channel or nick."""

    @abstractmethod
    def notice(self, target: str, message: str) -> None:
        """Send a notice to a channel or nick."""

    @abstractmethod
    def join(self, channel: str, key: Optional[str] = None) -> None:
        """Join ``channel``, optionally with a channel key."""

    @abstractmethod
    def part(self, channel: str, message: Optional[str] = None) -> None:
        """Leave ``channel`` with an optional part message."""

    @abstractmethod
    def change_nick(self, nick: str) -> None:
        """Request a nick change."""


class IrcLineTransport(Transport):
    """Formats transport calls as IRC protocol lines.

    Args:
        send_line: Called once per outgoing line, without line ending.
        network_name: Used only for log context.
    """

    def __init__(self, send_line: Callable[[str], None], network_name: str = ""):
        self._send_line = send_line
        self.network_name = network_name

    def _send(self, line: str) -> None:
        # One call, one protocol line
        line = line.replace("\r", "").replace("\n", "")
        logger.debug("transport_line_sent", network=self.network_name, line=line)
        self._send_line(line)

    def raw(self, line: str) -> None:
        self._send(line)

    def say(self, target: str, message: str) -> None:
        self._send(f"PRIVMSG {target} :{message}")

    def action(self, target: str, message: str) -> None:
        self._send(f"PRIVMSG {target} :{CTCP_DELIM}ACTION {message}{CTCP_DELIM}")

    def notice(self, target: str, message: str) -> None:
        self._send(f"NOTICE {target} :{message}")

    def join(self, channel: str, key: Optional[str] = None) -> None:
        if key:
            self._send(f"JOIN {channel} {key}")
        else:
            self._send(f"JOIN {channel}")

    def part(self, channel: str, message: Optional[str] = None) -> None:
        if message:
            self._send(f"PART {channel} :{message}")
        else:
            self._send(f"PART {channel}")

    def change_nick(self, nick: str) -> None:
        self._send(f"NICK {nick}")
