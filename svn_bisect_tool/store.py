"""Session store: the state file and the audit log of a bisect session."""

import json
import logging
import os
import tempfile
from typing import List, Optional

from . import PROG_NAME
from .errors import SessionIOError, UsageError
from .state import BisectSession

STATE_FILE_NAME = "bisect_data.json"
LOG_FILE_NAME = "bisect_log"


class SessionStore:
    """Reads and writes the files of a bisect session.

    Both files live in ``state_dir``.  A session is bound to the directory
    it was started from; loading it from anywhere else is a usage error.
    """

    def __init__(self, state_dir: str, cwd: Optional[str] = None, logger: Optional[logging.Logger] = None):
        """Initialize the store.

        Args:
            state_dir: Directory holding the session files.
            cwd: Directory commands are run from (default: os.getcwd()).
            logger: Optional logger instance.
        """
        self.state_dir = os.path.abspath(state_dir)
        self.cwd = os.path.abspath(cwd or os.getcwd())
        self.logger = logger or logging.getLogger("svn-bisect-tool")

    @property
    def state_file(self) -> str:
        return os.path.join(self.state_dir, STATE_FILE_NAME)

    @property
    def log_file(self) -> str:
        return os.path.join(self.state_dir, LOG_FILE_NAME)

    def exists(self) -> bool:
        return os.path.isfile(self.state_file)

    def load(self) -> Optional[BisectSession]:
        """Load the session, or return None if no session was started.

        Raises:
            SessionIOError: If the state file cannot be read or parsed.
            UsageError: If the session was started from another directory.
        """
        if not self.exists():
            return None

        try:
            with open(self.state_file, "r") as f:
                session = BisectSession.from_dict(json.load(f))
        except (OSError, ValueError) as e:
            raise SessionIOError(f"Error reading bisect data ({self.state_file}): {e}")

        if os.path.realpath(session.local_path) != os.path.realpath(self.cwd):
            raise UsageError(
                f"{PROG_NAME} must be run from the same directory where the "
                f"bisect session was started: {session.local_path}"
            )
        return session

    def require(self) -> BisectSession:
        """Load the session or fail if there is none."""
        session = self.load()
        if session is None:
            raise UsageError(f"You must first start a bisect session with '{PROG_NAME} start'")
        return session

    def save(self, session: BisectSession):
        """Write the session state atomically.

        The data goes to a temporary file in the same directory which then
        replaces the state file, so readers never see a partial write.
        """
        try:
            os.makedirs(self.state_dir, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".bisect_data.", dir=self.state_dir)
            try:
                with os.fdopen(fd, "w") as f:
                    json.dump(session.to_dict(), f, indent=2)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, self.state_file)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except OSError as e:
            raise SessionIOError(f"Error saving bisect data ({self.state_file}): {e}")
        self.logger.debug(f"State saved to: {self.state_file}")

    def append_log(self, line: str):
        try:
            os.makedirs(self.state_dir, exist_ok=True)
            with open(self.log_file, "a") as f:
                f.write(line + "\n")
        except OSError as e:
            raise SessionIOError(f"Error appending to bisect log ({self.log_file}): {e}")

    def read_log(self) -> List[str]:
        if not os.path.exists(self.log_file):
            return []
        try:
            with open(self.log_file, "r") as f:
                return f.read().splitlines()
        except OSError as e:
            raise SessionIOError(f"Error reading bisect log ({self.log_file}): {e}")

    def remove_log(self):
        self._remove(self.log_file)

    def clear(self):
        """Remove the state file and the log file."""
        self._remove(self.state_file)
        self._remove(self.log_file)
        try:
            os.rmdir(self.state_dir)
        except OSError:
            # Directory not empty or already gone
            pass

    def _remove(self, path: str):
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise SessionIOError(f"Error removing {path}: {e}")
