"""Pydantic models for chat state and parsed command parameters.

Domain models:
    Message, ConnectionOptions

Parsed parameter schemas (intermediate, not stored):
    ServerParams

Enums:
    MessageType
"""

import time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


def _now_ms() -> int:
    return int(time.time() * 1000)


class MessageType(str, Enum):
    """Kind of a buffer message, used for rendering decisions."""
    MESSAGE = "message"
    MSG = "msg"
    ACTION = "action"
    NOTICE = "notice"
    SYSTEM = "system"


class Message(BaseModel):
    """One line in a buffer's scrollback.

    ``time`` is milliseconds since the epoch.
    """

    time: int = Field(default_factory=_now_ms, description="Epoch milliseconds")
    nick: str = Field(..., description="Author nick, '*' for local notices")
    message: str = Field(default="", description="Message text")
    type: MessageType = Field(default=MessageType.MESSAGE)


class ConnectionOptions(BaseModel):
    """How to reach a network. Stored on the network, never dialled here."""

    server: str = Field(..., description="Server host name or address")
    port: int = Field(default=6667, ge=1, le=65535)
    tls: bool = False
    password: Optional[str] = None


class ServerParams(BaseModel):
    """Parsed ``/server addr [+]port [password] [nick]`` parameters."""

    addr: str = Field(..., min_length=1)
    port: int = Field(default=6667, ge=1, le=65535)
    tls: bool = False
    password: Optional[str] = None
    nick: str = Field(..., min_length=1)

    def connection_options(self) -> ConnectionOptions:
        return ConnectionOptions(
            server=self.addr,
            port=self.port,
            tls=self.tls,
            password=self.password,
        )
