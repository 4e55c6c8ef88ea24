"""chatline - slash-command input dispatcher for an IRC chat client."""

__version__ = "1.0.0"
