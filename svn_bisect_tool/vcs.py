"""Interface to the version control system holding the working copy."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Sequence


@dataclass(frozen=True)
class ExtantEntry:
    """A revision confirmed to exist in the bisected range."""
    revision: str
    first_line: str = ""


@dataclass
class CommitInfo:
    """Details of a single revision."""
    revision: str
    author: str = "n/a"
    date: str = ""
    message: List[str] = field(default_factory=list)
    paths: List[str] = field(default_factory=list)

    @property
    def first_line(self) -> str:
        return self.message[0] if self.message else ""


def revision_key(revision: str) -> int:
    """Sort key for revision identifiers (numeric, oldest first)."""
    return int(revision)


class VersionControl(ABC):
    """Operations the bisect core needs from the version control system.

    Revisions are passed around as strings holding a totally ordered
    identifier; ``revision_key`` gives the ordering.
    """

    @abstractmethod
    def in_working_copy(self) -> bool:
        """Return True if the working directory is inside a working copy."""

    @abstractmethod
    def working_copy_root(self) -> str:
        """Return the absolute path of the top of the working copy."""

    @abstractmethod
    def current_revision(self) -> str:
        """Return the revision the working copy is currently at."""

    @abstractmethod
    def resolve_revision(self, spec: str) -> Optional[str]:
        """Pin a numeric or symbolic revision to a concrete identifier.

        Returns:
            The revision, or None if it is not part of the working copy history.
        """

    @abstractmethod
    def log_range(self, rev1: str, rev2: str, stop_on_copy: bool = True) -> List[ExtantEntry]:
        """Return the revisions between two endpoints, inclusive, newest first."""

    @abstractmethod
    def first_line(self, revision: str) -> str:
        """Return the first line of the commit message for a revision."""

    @abstractmethod
    def commit_info(self, revision: str) -> CommitInfo:
        """Return the full details of a revision."""

    @abstractmethod
    def update(self, revision: str) -> None:
        """Update the working copy to a revision."""

    @abstractmethod
    def run_command(self, args: Sequence[str]) -> int:
        """Run an external command in the working directory.

        Returns:
            The command's exit status.
        """
