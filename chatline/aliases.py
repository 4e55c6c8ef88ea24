"""Alias rewriting for typed input lines.

An alias source is plain text, one definition per line::

    # comment
    /j /join $1+
    /cycle /lines /part $channel | /join $channel

The first word is the alias name, the rest is the expansion. Inside
an expansion:

    $0      the alias word itself
    $N      the Nth word after the alias (1-based), empty if missing
    $N+     words N..end joined by single spaces
    $name   a context variable (server, channel, destination, nick)

Only the first word of a line is matched, case-insensitively, and
expansion is a single pass. Multi-command expansions go through
``/lines`` so each piece is rewritten again by the line processor.
"""

import re
from typing import Dict, Mapping, Optional, Tuple

import structlog

from .exceptions import AliasError

logger = structlog.get_logger("chatline.aliases")

DEFAULT_ALIASES = """\
# General aliases
/p /part $1+
/me /action $1+
/j /join $1+
/q /query $1+
/m /quote PRIVMSG $1 :$2+
/n /nick $1+
/w /whois $1+
/raw /quote $1+
/cycle /lines /part $channel | /join $channel

# Op related aliases
/k /kick $channel $1+
/op /quote mode $channel +o $1+
/deop /quote mode $channel -o $1+
/voice /quote mode $channel +v $1+
/devoice /quote mode $channel -v $1+
/topic /quote topic $channel :$1+

# Services
/ns /quote PRIVMSG nickserv :$1+
/cs /quote PRIVMSG chanserv :$1+
"""

_TOKEN_RE = re.compile(r"\$(?:(\d+)(\+)?|([A-Za-z_][A-Za-z0-9_]*))")
_NAME_RE = re.compile(r"^/?[^\s$/|]+$")


class AliasRewriter:
    """Rewrites input lines according to user-defined aliases.

    ``import_from_string`` may be called any number of times; each call
    replaces the whole rule set. ``process`` has no side effects and
    returns lines that match no alias unchanged.
    """

    def __init__(self):
        self._aliases: Dict[str, str] = {}

    @property
    def aliases(self) -> Dict[str, str]:
        """Copy of the current ``{"/name": expansion}`` rules."""
        return dict(self._aliases)

    def import_from_string(self, source: Optional[str]) -> None:
        """Replace all rules with those parsed from ``source``.

        Malformed lines are skipped with a warning; a non-string source
        clears the rule set.
        """
        aliases: Dict[str, str] = {}
        if source is None:
            source = ""
        if not isinstance(source, str):
            logger.warning("alias_source_invalid_type", type=type(source).__name__)
            source = ""

        for lineno, raw in enumerate(source.splitlines(), start=1):
            line = raw.strip()
            if not line or line.startswith("#"):
                continue

            try:
                name, expansion = _parse_definition(line)
            except AliasError as e:
                logger.warning(
                    "alias_definition_skipped",
                    line=lineno,
                    alias=e.alias,
                    reason=e.message,
                )
                continue

            if name in aliases:
                logger.debug("alias_redefined", alias=name, line=lineno)
            aliases[name] = expansion

        self._aliases = aliases
        logger.info("aliases_imported", count=len(aliases))

    def process(self, line: str, variables: Optional[Mapping[str, object]] = None) -> str:
        """Return ``line`` with its leading alias expanded, if any."""
        words = line.split(" ")
        expansion = self._aliases.get(words[0].lower())
        if expansion is None:
            return line

        variables = variables or {}

        def substitute(match: "re.Match[str]") -> str:
            index, rest, name = match.group(1), match.group(2), match.group(3)
            if name is not None:
                value = variables.get(name)
                return "" if value is None else str(value)
            idx = int(index)
            if rest:
                return " ".join(words[idx:])
            return words[idx] if idx < len(words) else ""

        rewritten = _TOKEN_RE.sub(substitute, expansion)
        logger.debug("alias_applied", alias=words[0].lower(), result=rewritten)
        return rewritten


def _parse_definition(line: str) -> Tuple[str, str]:
    """Split one ``/name expansion`` line into a normalised name and expansion."""
    name, _, expansion = line.partition(" ")
    expansion = expansion.strip()
    if not _NAME_RE.match(name):
        raise AliasError(f"Invalid alias name: {name[:40]}", alias=name[:40])
    if not expansion:
        raise AliasError("Alias has no expansion", alias=name)

    if not name.startswith("/"):
        name = "/" + name
    return name.lower(), expansion
