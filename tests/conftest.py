"""Shared fixtures: a chat session whose transports record every call."""

from typing import List, Optional, Tuple

import pytest

from chatline.input_handler import InputHandler
from chatline.state import ChatState
from chatline.transport import Transport


class RecordingTransport(Transport):
    """Transport that records calls instead of sending anything."""

    def __init__(self):
        self.calls: List[Tuple] = []

    def raw(self, line: str) -> None:
        self.calls.append(("raw", line))

    def say(self, target: str, message: str) -> None:
        self.calls.append(("say", target, message))

    def action(self, target: str, message: str) -> None:
        self.calls.append(("action", target, message))

    def notice(self, target: str, message: str) -> None:
        self.calls.append(("notice", target, message))

    def join(self, channel: str, key: Optional[str] = None) -> None:
        self.calls.append(("join", channel, key))

    def part(self, channel: str, message: Optional[str] = None) -> None:
        self.calls.append(("part", channel, message))

    def change_nick(self, nick: str) -> None:
        self.calls.append(("change_nick", nick))


@pytest.fixture
def state():
    """Session state with no aliases and recording transports."""
    return ChatState(
        settings={"aliases": ""},
        transport_factory=lambda network: RecordingTransport(),
    )


@pytest.fixture
def handler(state):
    return InputHandler(state)


@pytest.fixture
def network(state, handler):
    """A network named TestNet where we are 'me'; its server buffer is active."""
    return state.add_network("TestNet", "me", {"server": "irc.test", "port": 6667})


@pytest.fixture
def channel(state, network):
    """#chan on TestNet, made the active buffer."""
    buffer = state.add_buffer(network.id, "#chan")
    state.set_active_buffer(network.id, "#chan")
    return buffer


@pytest.fixture
def calls(network):
    """The recorded transport calls of the TestNet network."""
    return network.transport.calls
