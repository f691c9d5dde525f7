"""Bisect command table and command-name matching.

Command names may be abbreviated to any unambiguous prefix.  The custom
names for the bad and good commands take part in the matching.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from . import PROG_NAME


@dataclass(frozen=True)
class CommandDescriptor:
    name: str
    description: str


COMMANDS = (
    CommandDescriptor("start", "Start a bisect session in the working copy"),
    CommandDescriptor("bad", "Mark a revision as bad  (It contains the bug)"),
    CommandDescriptor("good", "Mark a revision as good  (It does not contain the bug)"),
    CommandDescriptor("terms", "Show the currently defined terms for good/bad"),
    CommandDescriptor("skip", "Skip a revision.  It will no longer be considered"),
    CommandDescriptor("unskip", "Reinstate a previously skipped revision"),
    CommandDescriptor("run", "Automate the bisect session by running a script"),
    CommandDescriptor("log", "Show the bisect log"),
    CommandDescriptor("replay", "Replay the bisect session from a log file"),
    CommandDescriptor("reset", "Clean up after a bisect session"),
)

COMMAND_NAMES = tuple(c.name for c in COMMANDS)

_NAME_RE = re.compile(r"^[a-zA-Z][-a-zA-Z0-9_]*$")


class MatchStatus(Enum):
    FOUND = "found"
    AMBIGUOUS = "ambiguous"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class CommandMatch:
    """Result of looking up a command name.

    ``command`` is the built-in command to run (a custom term resolves to
    "bad" or "good").  ``candidates`` lists every name the input matched.
    """
    status: MatchStatus
    command: Optional[str] = None
    candidates: List[str] = field(default_factory=list)


def match_command(name: str, term_bad: Optional[str] = None, term_good: Optional[str] = None) -> CommandMatch:
    """Find the command a (possibly abbreviated) name refers to."""
    names = list(COMMAND_NAMES) + [t for t in (term_bad, term_good) if t]

    if not _NAME_RE.match(name):
        return CommandMatch(MatchStatus.NOT_FOUND)

    if name in names:
        matches = [name]
    else:
        matches = [n for n in names if n.startswith(name)]

    if not matches:
        return CommandMatch(MatchStatus.NOT_FOUND)
    if len(matches) > 1:
        return CommandMatch(MatchStatus.AMBIGUOUS, candidates=matches)

    matched = matches[0]
    if matched == term_bad:
        command = "bad"
    elif matched == term_good:
        command = "good"
    else:
        command = matched
    return CommandMatch(MatchStatus.FOUND, command=command, candidates=matches)


def format_help() -> str:
    """Return the list of bisect commands."""
    lines = [
        "Use binary search to find the revision that introduced a bug",
        "",
        "Available bisect commands:",
    ]
    for c in COMMANDS:
        lines.append(f"{PROG_NAME} {c.name:<8}  {c.description}")
    lines.append("")
    lines.append(f"Type '{PROG_NAME} <command> --help' for details on a specific command")
    return "\n".join(lines)
