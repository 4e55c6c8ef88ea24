"""Logging configuration for chatline.

Provides subsystem-level log file routing, credential scrubbing,
and structlog + stdlib integration.

Subsystem hierarchy (stdlib dotted names, structlog wraps them):
    root              → ConsoleHandler (stderr)
      └─ chatline     → RotatingFileHandler → chatline.log (combined)
           ├─ chatline.input     → RFH → input.log
           ├─ chatline.commands  → RFH → commands.log
           ├─ chatline.aliases   → RFH → aliases.log
           ├─ chatline.state     → RFH → state.log
           └─ chatline.transport → RFH → transport.log
"""

import logging
import logging.handlers
import re
import sys
from pathlib import Path
from typing import Any, Dict

import structlog

# Subsystem names — each gets its own RotatingFileHandler
SUBSYSTEMS = ("input", "commands", "aliases", "state", "transport")

# stdlib logger name prefix for hierarchy-based propagation
LOGGER_PREFIX = "chatline"

_REDACTED = "***REDACTED***"

# ---------------------------------------------------------------------------
# Credential scrubbing
# ---------------------------------------------------------------------------

_SECRET_PATTERNS = [
    # PASS <password>
    (re.compile(r"(?i)\b(PASS)\s+\S+"), r"\1 " + _REDACTED),
    # OPER <name> <password>
    (re.compile(r"(?i)\b(OPER\s+\S+)\s+\S+"), r"\1 " + _REDACTED),
    # NickServ IDENTIFY [account] <password>
    (re.compile(r"(?i)\b(IDENTIFY)\s+.*"), r"\1 " + _REDACTED),
    # /server <addr> <port> <password> ...
    (re.compile(r"(?i)(/server\s+\S+\s+\+?\d+\s+)\S+"), r"\1" + _REDACTED),
]


def _scrub_value(value: str) -> str:
    """Scrub IRC credentials from a single string value."""
    for pattern, replacement in _SECRET_PATTERNS:
        value = pattern.sub(replacement, value)
    return value


def sanitize_secrets(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """structlog processor that masks passwords in logged input lines.

    Walks all string values in the event dict (one level into lists,
    tuples and dicts) and replaces credentials with a placeholder.
    """
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = _scrub_value(value)
        elif isinstance(value, (list, tuple)):
            event_dict[key] = type(value)(
                _scrub_value(v) if isinstance(v, str) else v
                for v in value
            )
        elif isinstance(value, dict):
            event_dict[key] = {
                k: _scrub_value(v) if isinstance(v, str) else v
                for k, v in value.items()
            }
    return event_dict


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def _level(name: str, default: int) -> int:
    return getattr(logging, name.upper(), default) if name else default


def _file_handler(path: Path, level: int, max_bytes: int, backup_count: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
    ))
    return handler


def setup_logging(config=None) -> None:
    """Route structlog output to stderr and per-subsystem log files.

    Called twice: once with no config so startup messages have
    somewhere to go, then with the loaded Config. Only the second call
    caches loggers. If the log directory cannot be created, logging is
    console-only.
    """
    if config is not None:
        log_dir = config.log_dir
        root_level = _level(config.logging_level, logging.INFO)
        subsystem_levels = config.logging_subsystem_levels
        max_bytes = config.logging_max_file_size_mb * 1024 * 1024
        backup_count = config.logging_backup_count
    else:
        log_dir = Path(__file__).parent.parent / "logs"
        root_level = logging.INFO
        subsystem_levels = {}
        max_bytes = 10 * 1024 * 1024
        backup_count = 5

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        to_files = True
    except OSError as exc:
        print(f"WARNING: Cannot create log directory {log_dir}: {exc}", file=sys.stderr)
        to_files = False

    # stdout carries the chat, so the console handler writes to stderr
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(root_level)
    console.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers[:] = [console]

    loggers = [(LOGGER_PREFIX, "chatline.log", root_level)]
    for subsystem in SUBSYSTEMS:
        level = _level(subsystem_levels.get(subsystem, ""), root_level)
        loggers.append((f"{LOGGER_PREFIX}.{subsystem}", f"{subsystem}.log", level))

    for name, filename, level in loggers:
        std_logger = logging.getLogger(name)
        std_logger.setLevel(logging.DEBUG if name == LOGGER_PREFIX else level)
        std_logger.handlers.clear()
        std_logger.propagate = True
        if to_files:
            std_logger.addHandler(
                _file_handler(log_dir / filename, level, max_bytes, backup_count)
            )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            sanitize_secrets,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=config is not None,
    )
