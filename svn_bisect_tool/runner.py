"""Automated bisection driven by an external test command."""

import logging
import shlex
import time
from typing import List, Optional, Sequence

from . import PROG_NAME
from .algorithm import BisectOutcome
from .bisect import Bisector
from .colors import Colors
from .errors import ExternalCommandError, UsageError

GOOD = "good"
BAD = "bad"
SKIP = "skip"
ABORT = "abort"

SKIP_EXIT_CODE = 125


def classify_exit_code(exit_code: int) -> str:
    """Map the exit status of a test command onto a bisect verdict.

    0 is good, 125 is skip, 1..127 is bad.  128 and above, or a negative
    status (killed by a signal), aborts the run.
    """
    if exit_code == 0:
        return GOOD
    if exit_code == SKIP_EXIT_CODE:
        return SKIP
    if 0 < exit_code < 128:
        return BAD
    return ABORT


class AutomationRunner:
    """Repeatedly runs a test command and marks the working copy revision."""

    def __init__(self, bisector: Bisector, logger: Optional[logging.Logger] = None):
        self.bisector = bisector
        self.vcs = bisector.vcs
        self.store = bisector.store
        self.logger = logger or logging.getLogger("svn-bisect-tool")

    def run_test(self, cmd_args: Sequence[str]) -> int:
        """Run the test command once and return its exit code."""
        print(Colors.BOLD + shlex.join(cmd_args) + Colors.RESET)
        start_time = time.time()
        exit_code = self.vcs.run_command(cmd_args)
        duration = time.time() - start_time
        self.logger.debug(f"Test command exited with {exit_code} after {duration:.1f}s")
        return exit_code

    def run(self, cmd_args: List[str]) -> BisectOutcome:
        """Drive the session until the first bad revision is known.

        Args:
            cmd_args: The test command and its arguments.

        Returns:
            The final outcome of the bisection.

        Raises:
            UsageError: If the session is not ready or no command is given.
            ExternalCommandError: If the command asks to abort the run.
        """
        if not cmd_args:
            raise UsageError("The run command requires a command to execute")
        session = self.store.require()
        if not session.is_ready:
            raise UsageError(
                f"You must mark both a '{session.term_good_name}' and a "
                f"'{session.term_bad_name}' revision before using run"
            )

        while True:
            exit_code = self.run_test(cmd_args)
            verdict = classify_exit_code(exit_code)

            if verdict == ABORT:
                raise ExternalCommandError(
                    f"Command '{shlex.join(cmd_args)}' returned exit code {exit_code}, aborting the run"
                )

            revision = self.vcs.current_revision()
            session = self.store.require()
            if verdict == GOOD:
                command, color = session.term_good_name, Colors.GREEN
            elif verdict == BAD:
                command, color = session.term_bad_name, Colors.RED
            else:
                command, color = SKIP, Colors.YELLOW
            print(f"{color}{PROG_NAME} {command} {revision}{Colors.RESET}")

            if verdict == GOOD:
                outcome = self.bisector.good(revision)
            elif verdict == BAD:
                outcome = self.bisector.bad(revision)
            else:
                outcome = self.bisector.skip([revision])
                if outcome is None:
                    raise UsageError(
                        f"Revision {revision} is not a bisect candidate, skipping it cannot make progress"
                    )

            if outcome.complete:
                return outcome
