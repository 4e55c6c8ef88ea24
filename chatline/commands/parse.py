"""Command line and parameter parsing utilities."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from pydantic import ValidationError

from ..exceptions import InvalidParamsError
from ..models import ServerParams
from .base import CommandKind

SERVER_USAGE = "Usage: /server <address> [+]<port> [password] [nick]"

_CLOSE_SPLIT_RE = re.compile(r"[, ]")


@dataclass(frozen=True)
class ParsedCommand:
    """A command line split into its parts.

    Attributes:
        kind: Built-in kind, or CommandKind.UNKNOWN.
        name: The command token exactly as typed.
        params: Everything after the first space ("" if none).
        line: The whole line without its leading slash.
    """

    kind: CommandKind
    name: str
    params: str
    line: str


def split_first_word(text: str) -> Tuple[str, str]:
    """Split on the first space: ``("a", "b c")`` for ``"a b c"``.

    Without a space the whole text is the first word and the rest is "".
    """
    first, _, rest = text.partition(" ")
    return first, rest


def parse_command_line(line: str) -> ParsedCommand:
    """Parse a ``/command params`` line.

    Only one leading slash is removed; a bare "/" yields the empty
    command name.
    """
    if line.startswith("/"):
        line = line[1:]
    name, params = split_first_word(line)
    return ParsedCommand(
        kind=CommandKind.resolve(name),
        name=name,
        params=params,
        line=line,
    )


def split_lines_params(params: str) -> List[str]:
    """Split ``/lines`` parameters on "|" and trim each piece."""
    return [piece.strip() for piece in params.split("|")]


def parse_message_target(
    params: str,
    is_target: Callable[[str], bool],
    default_target: str,
) -> Tuple[str, str]:
    """Return ``(target, message)`` for /msg, /action and /notice.

    A leading word accepted by ``is_target`` is the target; otherwise
    the whole parameter string is the message for ``default_target``.
    """
    first, rest = split_first_word(params)
    if is_target(first):
        return first, rest
    return default_target, params


def parse_join_params(params: str) -> Tuple[List[str], List[str]]:
    """Return ``(channel_names, keys)`` for ``/join c1,c2 k1,k2``.

    Both lists keep their positional order; keys may be shorter.
    """
    names, keys = split_first_word(params)
    return names.split(","), keys.split(",") if keys else []


def key_for(keys: List[str], idx: int) -> Optional[str]:
    """Positional key lookup; missing or empty keys are None."""
    if idx < len(keys) and keys[idx]:
        return keys[idx]
    return None


def parse_part_params(
    params: str,
    is_channel_name: Callable[[str], bool],
) -> Tuple[Optional[List[str]], str]:
    """Return ``(channel_names, message)`` for /part.

    ``channel_names`` is None when the active buffer is meant.
    """
    if params == "":
        return None, ""
    parts = params.split(" ")
    if is_channel_name(parts[0]):
        names = [name for name in parts[0].split(",") if name]
        return names, " ".join(parts[1:])
    return None, params


def parse_close_names(params: str) -> List[str]:
    """Buffer names for /close, separated by spaces and/or commas."""
    return [name for name in _CLOSE_SPLIT_RE.split(params) if name]


def parse_server_params(
    params: str,
    default_port: int = 6667,
    default_nick: str = "ircuser",
) -> ServerParams:
    """Parse ``addr [+]port [password] [nick]``.

    A "+" before the port selects TLS.

    Raises:
        InvalidParamsError: Missing address or a port that is not a
            number in 1-65535.
    """
    parts = params.split(" ")
    addr = parts[0]
    port_token = parts[1] if len(parts) > 1 else ""
    password = parts[2] if len(parts) > 2 and parts[2] else None
    nick = parts[3] if len(parts) > 3 and parts[3] else default_nick

    if not addr:
        raise InvalidParamsError(
            "No server address given", command="server", usage=SERVER_USAGE
        )

    tls = port_token.startswith("+")
    digits = port_token[1:] if tls else port_token
    if not digits:
        port = default_port
    elif digits.isdigit():
        port = int(digits)
    else:
        raise InvalidParamsError(
            f"Invalid port: {port_token}",
            command="server",
            usage=SERVER_USAGE,
            port=port_token,
        )

    try:
        return ServerParams(addr=addr, port=port, tls=tls, password=password, nick=nick)
    except ValidationError as e:
        raise InvalidParamsError(
            f"Invalid server parameters: {e.errors()[0]['msg']}",
            command="server",
            usage=SERVER_USAGE,
        ) from e
