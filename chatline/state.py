"""In-memory chat state for one client session.

Holds networks, their buffers and scrollback, the active
network/buffer pointer and the user settings. Command handlers only
go through the methods here; they never poke at a Buffer's or
Network's fields directly except to read identity (name, nick, id).

Key classes:
    ChatState: Session state plus its EventBus and settings watchers.
    Network: One server session with its own nick, buffers and transport.
    Buffer: A named conversation surface (server console, channel, query).
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

import structlog

from .events import EventBus
from .exceptions import StateError
from .models import ConnectionOptions, Message
from .transport import IrcLineTransport, Transport

logger = structlog.get_logger("chatline.state")

SERVER_BUFFER_NAME = "*"
DEFAULT_CHANNEL_PREFIXES = "#&"

TransportFactory = Callable[["Network"], Transport]
Watcher = Callable[[Any, Any], None]


@dataclass
class Buffer:
    """A conversation surface inside a network."""

    name: str
    network_id: int
    kind: str = "query"  # "server", "channel" or "query"
    messages: List[Message] = field(default_factory=list)

    def is_server(self) -> bool:
        return self.kind == "server"

    def is_channel(self) -> bool:
        return self.kind == "channel"

    def is_query(self) -> bool:
        return self.kind == "query"

    def get_messages(self) -> List[Message]:
        """The live scrollback list (mutations are visible to the buffer)."""
        return self.messages


@dataclass
class Network:
    """A server session.

    Buffer names are matched case-insensitively, as IRC does.
    """

    id: int
    name: str
    nick: str
    connection: ConnectionOptions
    channel_prefixes: str = DEFAULT_CHANNEL_PREFIXES
    buffers: Dict[str, Buffer] = field(default_factory=dict, repr=False)
    transport: Optional[Transport] = field(default=None, repr=False)

    def is_channel_name(self, token: str) -> bool:
        return bool(token) and token[0] in self.channel_prefixes

    def buffer_by_name(self, name: str) -> Optional[Buffer]:
        return self.buffers.get(name.lower())

    @property
    def server_buffer(self) -> Buffer:
        return self.buffers[SERVER_BUFFER_NAME]


def _default_transport_factory(network: Network) -> Transport:
    # Not connected anywhere; lines only show up in debug logs
    return IrcLineTransport(lambda line: None, network_name=network.name)


class ChatState:
    """Session state: networks, buffers, settings and the event bus.

    Args:
        settings: Initial user settings (e.g. ``{"aliases": "..."}``).
        transport_factory: Builds the transport for each new network.
    """

    def __init__(
        self,
        settings: Optional[Dict[str, Any]] = None,
        transport_factory: Optional[TransportFactory] = None,
    ):
        self.events = EventBus()
        self.settings: Dict[str, Any] = dict(settings or {})
        self._watchers: Dict[str, List[Watcher]] = defaultdict(list)
        self._transport_factory = transport_factory or _default_transport_factory
        self.networks: Dict[int, Network] = {}
        self._next_network_id = 1
        self.active_network_id: Optional[int] = None
        self.active_buffer_name: Optional[str] = None

    # --- Events ---

    def on(self, event_name: str, listener: Callable[..., Any]) -> Callable[[], None]:
        return self.events.on(event_name, listener)

    def emit(self, event_name: str, *args: Any) -> None:
        self.events.emit(event_name, *args)

    # --- Settings ---

    def get_setting(self, name: str, default: Any = None) -> Any:
        return self.settings.get(name, default)

    def set_setting(self, name: str, value: Any) -> None:
        """Store a setting and notify its watchers if the value changed."""
        old = self.settings.get(name)
        self.settings[name] = value
        if old == value:
            return
        for callback in list(self._watchers.get(name, ())):
            try:
                callback(value, old)
            except Exception as e:
                logger.error(
                    "setting_watcher_error",
                    setting=name,
                    error=str(e),
                    error_type=type(e).__name__,
                )

    def watch(self, name: str, callback: Watcher) -> None:
        """Call ``callback(new, old)`` whenever setting ``name`` changes."""
        self._watchers[name].append(callback)

    # --- Networks ---

    def add_network(
        self,
        name: str,
        nick: str,
        options: Union[ConnectionOptions, Dict[str, Any]],
    ) -> Network:
        """Register a network, create its server buffer and make it active."""
        if not isinstance(options, ConnectionOptions):
            options = ConnectionOptions.model_validate(options)

        network = Network(
            id=self._next_network_id,
            name=name,
            nick=nick,
            connection=options,
        )
        self._next_network_id += 1
        network.buffers[SERVER_BUFFER_NAME] = Buffer(
            name=SERVER_BUFFER_NAME, network_id=network.id, kind="server"
        )
        network.transport = self._transport_factory(network)
        self.networks[network.id] = network

        self.active_network_id = network.id
        self.active_buffer_name = SERVER_BUFFER_NAME

        logger.info(
            "network_added",
            network_id=network.id,
            name=name,
            port=options.port,
            tls=options.tls,
        )
        self.emit("network.new", network)
        return network

    def get_network(self, network_id: int) -> Optional[Network]:
        return self.networks.get(network_id)

    def get_active_network(self) -> Optional[Network]:
        if self.active_network_id is None:
            return None
        return self.networks.get(self.active_network_id)

    def require_active_network(self) -> Network:
        """Active network, or StateError if there is none yet."""
        network = self.get_active_network()
        if network is None:
            raise StateError("Not connected to a network. Use /server <address> first.")
        return network

    # --- Buffers ---

    def get_active_buffer(self) -> Optional[Buffer]:
        network = self.get_active_network()
        if network is None or self.active_buffer_name is None:
            return None
        return network.buffer_by_name(self.active_buffer_name)

    def require_active_buffer(self) -> Buffer:
        buffer = self.get_active_buffer()
        if buffer is None:
            raise StateError("No active buffer. Use /server <address> first.")
        return buffer

    def get_buffer_by_name(self, network_id: int, name: str) -> Optional[Buffer]:
        network = self.networks.get(network_id)
        if network is None:
            return None
        return network.buffer_by_name(name)

    def add_buffer(self, network_id: int, name: str) -> Optional[Buffer]:
        """Create a buffer.

        Returns:
            The new Buffer, or None if it already exists, the name is
            empty or the network is unknown.
        """
        network = self.networks.get(network_id)
        if network is None or not name or " " in name:
            logger.debug("buffer_add_rejected", network_id=network_id, name=name)
            return None
        if network.buffer_by_name(name) is not None:
            return None

        kind = "channel" if network.is_channel_name(name) else "query"
        buffer = Buffer(name=name, network_id=network_id, kind=kind)
        network.buffers[name.lower()] = buffer
        logger.debug("buffer_added", network_id=network_id, name=name, kind=kind)
        self.emit("buffer.new", buffer)
        return buffer

    def set_active_buffer(self, network_id: int, name: str) -> None:
        buffer = self.get_buffer_by_name(network_id, name)
        if buffer is None:
            logger.warning("set_active_buffer_unknown", network_id=network_id, name=name)
            return
        self.active_network_id = network_id
        self.active_buffer_name = buffer.name
        self.emit("buffer.active", buffer)

    def remove_buffer(self, buffer: Buffer) -> None:
        """Drop a buffer. Server buffers stay; focus falls back to the server buffer."""
        network = self.networks.get(buffer.network_id)
        if network is None:
            return
        if buffer.is_server():
            logger.warning("remove_server_buffer_refused", network_id=network.id)
            return
        if network.buffers.pop(buffer.name.lower(), None) is None:
            return

        if (
            self.active_network_id == network.id
            and self.active_buffer_name is not None
            and self.active_buffer_name.lower() == buffer.name.lower()
        ):
            self.active_buffer_name = SERVER_BUFFER_NAME
        logger.debug("buffer_removed", network_id=network.id, name=buffer.name)
        self.emit("buffer.close", buffer)

    # --- Messages ---

    def add_message(self, buffer: Buffer, message: Union[Message, Dict[str, Any]]) -> Message:
        if not isinstance(message, Message):
            message = Message.model_validate(message)
        buffer.messages.append(message)
        self.emit("message.new", message, buffer)
        return message
