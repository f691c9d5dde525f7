"""Revision range resolver and revision argument parsing."""

import logging
import re
from typing import Iterable, List, Optional, Set, Tuple

from .colors import Colors
from .errors import RangeError, UsageError
from .vcs import ExtantEntry, VersionControl, revision_key

# Friendly names for the symbolic revisions understood by svn
REVISION_ALIASES = {
    "newest": "HEAD",
    "head": "HEAD",
    "base": "BASE",
    "previous": "PREV",
    "prev": "PREV",
    "last-committed": "COMMITTED",
    "committed": "COMMITTED",
}

_REV_PART = r"\d+|[A-Za-z][-A-Za-z]*"
_RANGE_RE = re.compile(rf"^({_REV_PART})(?::({_REV_PART}))?$")
_TERM_RE = re.compile(r"^[A-Za-z][-_A-Za-z]*$")


def normalize_revision(arg: str) -> str:
    """Map a revision argument onto a numeric or svn symbolic revision.

    Raises:
        UsageError: If the argument is neither a number nor a known symbol.
    """
    if arg.isdigit():
        return str(int(arg))
    symbol = REVISION_ALIASES.get(arg.lower())
    if symbol is None:
        raise UsageError(
            f"'{arg}': <revision> must be an integer or one of HEAD, BASE, PREV, "
            f"COMMITTED (newest, base, previous, last-committed)"
        )
    return symbol


def validate_term(name: str, reserved: Iterable[str]) -> str:
    """Check a custom name for the bad or good command.

    Raises:
        UsageError: If the name is malformed or masks a built-in command.
    """
    if not _TERM_RE.match(name):
        raise UsageError(f"'{name}': <term> must start with a letter and contain only letters, '-', or '_'")
    if name in set(reserved):
        raise UsageError(f"'{name}': <term> cannot mask a built in bisect command name")
    return name


class RevisionResolver:
    """Turns revision arguments into concrete revisions of the working copy history."""

    def __init__(self, vcs: VersionControl, stop_on_copy: bool = True, logger: Optional[logging.Logger] = None):
        self.vcs = vcs
        self.stop_on_copy = stop_on_copy
        self.logger = logger or logging.getLogger("svn-bisect-tool")

    def resolve_single_revision(self, arg: str) -> str:
        """Validate a revision argument and pin it to a concrete revision.

        Raises:
            UsageError: If the argument is malformed.
            RangeError: If the revision is not part of the working copy history.
        """
        revision = self.vcs.resolve_revision(normalize_revision(arg))
        if revision is None:
            raise RangeError(f"'{arg}': this revision is not part of the working copy history")
        return revision

    def resolve_range(self, rev1: str, rev2: str) -> Tuple[str, str, List[ExtantEntry]]:
        """Fetch the extant revisions between two endpoints.

        Returns:
            (actual_max, actual_min, entries) with entries newest first and
            without duplicates.

        Raises:
            RangeError: If fewer than two revisions exist in the range.
        """
        print(f"Fetching history from {Colors.revision(rev1)} to {Colors.revision(rev2)}")
        fetched = self.vcs.log_range(rev1, rev2, stop_on_copy=self.stop_on_copy)

        seen: Set[str] = set()
        entries = []
        for entry in fetched:
            if entry.revision not in seen:
                seen.add(entry.revision)
                entries.append(entry)
        entries.sort(key=lambda e: revision_key(e.revision), reverse=True)
        self.logger.debug(f"Fetched {len(entries)} revisions")

        if not entries:
            raise RangeError(f"There is no working copy history in range {rev1} to {rev2}")
        if len(entries) == 1:
            raise RangeError(f"There is only one commit in the working copy history range {rev1} to {rev2}")
        return entries[0].revision, entries[-1].revision, entries

    def resolve_revision_range(self, arg: str) -> Tuple[int, int]:
        """Parse ``REV`` or ``REV:REV`` into an inclusive (low, high) pair.

        Raises:
            UsageError: If the argument is malformed.
            RangeError: If an endpoint is not part of the working copy history.
        """
        match = _RANGE_RE.match(arg)
        if not match:
            raise UsageError(f"'{arg}' is not a valid <revision> or <revision>:<revision>")

        first = revision_key(self.resolve_single_revision(match.group(1)))
        if match.group(2) is None:
            return first, first
        second = revision_key(self.resolve_single_revision(match.group(2)))
        return min(first, second), max(first, second)
