"""Replay a bisect session from an audit log."""

import logging
import os
import shlex
from typing import Callable, List, Optional

from .errors import BisectError, UsageError

# Runs one command (name followed by its arguments) and returns an exit status
Dispatch = Callable[[List[str]], int]


class Replayer:
    """Feeds the command lines of a log file back through the dispatcher."""

    def __init__(self, dispatch: Dispatch, logger: Optional[logging.Logger] = None):
        self.dispatch = dispatch
        self.logger = logger or logging.getLogger("svn-bisect-tool")

    def replay(self, path: str) -> int:
        """Replay every command line of ``path``.

        Blank lines and ``#`` comments are ignored.  The first token of a
        command line is the program name and is dropped.

        Returns:
            The number of commands replayed.

        Raises:
            UsageError: If the file does not exist or a line cannot be parsed.
            BisectError: The error of the first failing command.
        """
        if not os.path.isfile(path):
            raise UsageError(f"Log file does not exist: {path}")

        with open(path, "r") as f:
            lines = f.read().splitlines()

        count = 0
        for number, line in enumerate(lines, start=1):
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue

            try:
                tokens = shlex.split(stripped)
            except ValueError as e:
                raise UsageError(f"{path}:{number}: cannot parse '{stripped}': {e}")
            if len(tokens) < 2:
                raise UsageError(f"{path}:{number}: no command in '{stripped}'")

            self.logger.debug(f"Replaying line {number}: {stripped}")
            try:
                status = self.dispatch(tokens[1:])
            except BisectError:
                self.logger.error(f"Replay stopped at line {number}: {stripped}")
                raise
            if status != 0:
                raise UsageError(f"Replay stopped at line {number}: {stripped}")
            count += 1

        return count
