"""Persistent bisect session state."""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from .vcs import ExtantEntry, revision_key

BAD = "bad"
GOOD = "good"


def sort_revisions(revisions: Iterable[str]) -> List[str]:
    """Sort revisions newest first."""
    return sorted(revisions, key=revision_key, reverse=True)


@dataclass(frozen=True)
class BisectSession:
    """State of a bisect session.

    Instances are immutable; commands build a new session with
    ``with_changes`` and hand it to the session store.

    ``extant_revs`` is ordered newest first and spans ``start_max_rev``
    to ``start_min_rev`` inclusive once the session is ready.  ``max_rev``
    and ``min_rev`` are the current bad and good bounds.
    """
    local_path: str
    original_rev: str
    start_max_rev: Optional[str] = None
    start_min_rev: Optional[str] = None
    max_rev: Optional[str] = None
    min_rev: Optional[str] = None
    extant_revs: Tuple[ExtantEntry, ...] = ()
    skipped: FrozenSet[str] = field(default_factory=frozenset)
    term_bad: Optional[str] = None
    term_good: Optional[str] = None

    @property
    def term_bad_name(self) -> str:
        return self.term_bad or BAD

    @property
    def term_good_name(self) -> str:
        return self.term_good or GOOD

    @property
    def is_ready(self) -> bool:
        return self.start_max_rev is not None and self.start_min_rev is not None

    def with_changes(self, **changes) -> "BisectSession":
        """Return a copy of this session with some fields replaced."""
        if "extant_revs" in changes:
            changes["extant_revs"] = tuple(changes["extant_revs"])
        if "skipped" in changes:
            changes["skipped"] = frozenset(changes["skipped"])
        return replace(self, **changes)

    def candidates(self) -> List[ExtantEntry]:
        """Extant revisions strictly between max_rev and min_rev, newest first."""
        if not self.is_ready:
            raise ValueError("candidates() called when the session is not ready")
        revisions = [e.revision for e in self.extant_revs]
        high = revisions.index(self.max_rev)
        low = revisions.index(self.min_rev)
        return list(self.extant_revs[high + 1:low])

    def candidates_only(self, revisions: Iterable[str]) -> FrozenSet[str]:
        """Limit revisions to the candidate set.

        Before the session is ready there is no candidate set, so the
        revisions are returned as given.
        """
        revisions = frozenset(revisions)
        if not self.is_ready:
            return revisions
        candidates = {e.revision for e in self.candidates()}
        return frozenset(r for r in revisions if r in candidates)

    def get_extant(self, revision: str) -> Optional[ExtantEntry]:
        for entry in self.extant_revs:
            if entry.revision == revision:
                return entry
        return None

    def is_extant(self, revision: str) -> bool:
        return self.get_extant(revision) is not None

    def nearest_extant(self, revision: str) -> Optional[str]:
        """Return the newest extant revision at or before ``revision``.

        A revision that did not change the working copy path has the same
        content as the extant revision preceding it.
        """
        target = revision_key(revision)
        for entry in self.extant_revs:
            if revision_key(entry.revision) <= target:
                return entry.revision
        return None

    def waiting_status(self) -> Optional[str]:
        """Describe which bounds are still missing, or None if both are known."""
        bad = self.term_bad_name
        good = self.term_good_name
        if self.max_rev is None and self.min_rev is None:
            return f"status: waiting for both '{good}' and '{bad}' revisions"
        if self.min_rev is None:
            return f"status: waiting for a '{good}' revision"
        if self.max_rev is None:
            return f"status: waiting for a '{bad}' revision"
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON layout of the session file."""
        return {
            "localPath": self.local_path,
            "originalRev": self.original_rev,
            "startMaxRev": self.start_max_rev,
            "startMinRev": self.start_min_rev,
            "maxRev": self.max_rev,
            "minRev": self.min_rev,
            "extantRevs": [
                {"revision": e.revision, "firstLine": e.first_line}
                for e in self.extant_revs
            ],
            "skipped": sort_revisions(self.skipped),
            "termBad": self.term_bad,
            "termGood": self.term_good,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BisectSession":
        """Build a session from the JSON layout of the session file.

        Raises:
            ValueError: If required fields are missing or malformed.
        """
        if not isinstance(data, dict):
            raise ValueError("session data must be an object")
        try:
            return cls(
                local_path=data["localPath"],
                original_rev=data["originalRev"],
                start_max_rev=data.get("startMaxRev"),
                start_min_rev=data.get("startMinRev"),
                max_rev=data.get("maxRev"),
                min_rev=data.get("minRev"),
                extant_revs=tuple(
                    ExtantEntry(e["revision"], e.get("firstLine", ""))
                    for e in data.get("extantRevs", [])
                ),
                skipped=frozenset(data.get("skipped", [])),
                term_bad=data.get("termBad"),
                term_good=data.get("termGood"),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"malformed session data: {e!r}")
