"""ANSI color codes for terminal output."""

import sys


class Colors:
    """ANSI color codes for terminal output.

    Call ``Colors.init()`` once at startup with the configured color mode.
    Colors are enabled by default; ``init("auto")`` disables them when stdout
    is not a terminal and ``init("never")`` disables them unconditionally.
    """

    _CODES = {
        "RESET": "\033[0m",
        "BOLD": "\033[1m",
        "DIM": "\033[2m",
        "RED": "\033[31m",
        "GREEN": "\033[32m",
        "YELLOW": "\033[33m",
        "BLUE": "\033[34m",
        "CYAN": "\033[36m",
        "WHITE": "\033[37m",
        "BG_RED": "\033[41m",
    }

    RESET = _CODES["RESET"]
    BOLD = _CODES["BOLD"]
    DIM = _CODES["DIM"]

    RED = _CODES["RED"]
    GREEN = _CODES["GREEN"]
    YELLOW = _CODES["YELLOW"]
    BLUE = _CODES["BLUE"]
    CYAN = _CODES["CYAN"]
    WHITE = _CODES["WHITE"]

    BG_RED = _CODES["BG_RED"]

    @classmethod
    def disable(cls):
        """Disable colors (set all codes to empty strings)."""
        for attr in cls._CODES:
            setattr(cls, attr, "")

    @classmethod
    def enable(cls):
        """Restore the ANSI escape codes."""
        for attr, code in cls._CODES.items():
            setattr(cls, attr, code)

    @classmethod
    def init(cls, mode: str = "auto"):
        """Initialize colors from the configured mode.

        Args:
            mode: "always", "never", or "auto" (colors only when stdout
                  is a TTY).
        """
        if mode == "always":
            cls.enable()
        elif mode == "never" or not sys.stdout.isatty():
            cls.disable()
        else:
            cls.enable()

    @classmethod
    def revision(cls, rev: str) -> str:
        """Format a revision identifier for display."""
        return f"{cls.YELLOW}{rev}{cls.RESET}"
