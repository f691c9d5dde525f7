"""The bisection step: pick the next revision or announce the result."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .state import BisectSession
from .vcs import ExtantEntry


class OutcomeKind(Enum):
    """What a bisection step concluded."""
    NEXT = "next"            # a revision should be tested
    FOUND = "found"          # the first bad revision is known
    AMBIGUOUS = "ambiguous"  # only skipped revisions remain


@dataclass(frozen=True)
class BisectOutcome:
    """Result of running the bisection step on a ready session.

    Attributes:
        kind: What the step concluded.
        revision: The revision to test next (NEXT) or the first bad
            revision (FOUND).
        suspects: For AMBIGUOUS, the bad bound followed by the skipped
            candidates, any of which could be the first bad revision.
        remaining: Number of live candidates (NEXT only).
        steps: Expected number of further steps (NEXT only).
    """
    kind: OutcomeKind
    revision: Optional[ExtantEntry] = None
    suspects: Tuple[ExtantEntry, ...] = ()
    remaining: int = 0
    steps: int = 0

    @property
    def complete(self) -> bool:
        return self.kind is not OutcomeKind.NEXT


def estimate_steps(count: int) -> int:
    """Return ceil(log2(count)), reporting a single candidate as 1 step."""
    if count <= 1:
        return 1
    # (n - 1).bit_length() == ceil(log2(n)) for n >= 1, without float rounding
    return (count - 1).bit_length()


def format_steps(steps: int) -> str:
    return "1 step" if steps == 1 else f"{steps} steps"


def bisect_step(session: BisectSession) -> BisectOutcome:
    """Run one bisection step.

    The candidates are the extant revisions strictly between the bad and
    good bounds.  When every candidate has been skipped the first bad
    revision is ambiguous; when there are no candidates at all the bad
    bound is the answer.  Otherwise the middle live candidate is chosen,
    rounding the index down (``live[len(live) // 2]`` counting from the
    newest), which keeps sessions reproducible.

    Args:
        session: A ready session.

    Returns:
        The outcome of the step.

    Raises:
        ValueError: If the session is not ready.
    """
    if not session.is_ready:
        raise ValueError("bisect_step() called when the session is not ready")

    candidates = session.candidates()
    live = [e for e in candidates if e.revision not in session.skipped]
    max_entry = session.get_extant(session.max_rev)

    if not live:
        if candidates:
            return BisectOutcome(
                kind=OutcomeKind.AMBIGUOUS,
                suspects=(max_entry,) + tuple(candidates),
            )
        return BisectOutcome(kind=OutcomeKind.FOUND, revision=max_entry)

    return BisectOutcome(
        kind=OutcomeKind.NEXT,
        revision=live[len(live) // 2],
        remaining=len(live),
        steps=estimate_steps(len(live)),
    )
