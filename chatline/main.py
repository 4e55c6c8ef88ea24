"""Main entry point for chatline.

Initializes logging in two phases (defaults then config-driven),
builds a ChatState whose transports print protocol lines to stdout,
and feeds stdin to the input handler one line at a time. Nothing is
dialled: this is a console for exercising the input pipeline.

Key functions:
    main: Sets up logging, config and the session, then reads stdin.
    run: Entry point for the ``chatline`` console script.
"""

import sys
from typing import Optional, TextIO

import structlog

from . import __version__
from .logging_config import setup_logging


def main(stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None) -> int:
    """Run an interactive session until EOF."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout

    # Phase 1: defaults, cache_logger_on_first_use=False
    setup_logging()
    logger = structlog.get_logger("chatline")
    logger.info("chatline_starting", version=__version__)

    # Import here to ensure logging is configured first
    from .config import get_config
    from .input_handler import RAW_INPUT_EVENT, InputHandler
    from .state import ChatState
    from .transport import IrcLineTransport

    config = get_config()
    config.validate()

    # Phase 2: reconfigure with real config, cache_logger_on_first_use=True
    setup_logging(config)

    def write(text: str) -> None:
        stdout.write(text + "\n")
        stdout.flush()

    state = ChatState(
        transport_factory=lambda network: IrcLineTransport(
            lambda line: write(f"{network.name} >> {line}"),
            network_name=network.name,
        ),
    )
    state.on(
        "message.new",
        lambda message, buffer: write(f"[{buffer.name}] <{message.nick}> {message.message}"),
    )
    state.on("buffer.active", lambda buffer: write(f"-- now in {buffer.name}"))

    handler = InputHandler.from_config(state, config)
    if config.autoconnect:
        handler.process_line("/server " + config.autoconnect)

    for line in stdin:
        state.emit(RAW_INPUT_EVENT, line.rstrip("\r\n"))

    logger.info("chatline_stopped")
    return 0


def run():
    """Synchronous entry point for the ``chatline`` console script."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
