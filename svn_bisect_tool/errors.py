"""Exception types raised by the bisect core."""


class BisectError(Exception):
    """Base class for all user-facing bisect failures."""
    pass


class UsageError(BisectError):
    """Wrong directory, missing session, malformed argument or ambiguous command."""
    pass


class RangeError(BisectError):
    """A revision range cannot be bisected or a revision is not in the history."""
    pass


class SessionIOError(BisectError):
    """The session state or log file could not be read or written."""
    pass


class ExternalCommandError(BisectError):
    """A version control operation or external command failed.

    Attributes:
        stderr: Diagnostic output captured from the failed command.
    """

    def __init__(self, message: str, stderr: str = ""):
        super().__init__(message)
        self.stderr = stderr
