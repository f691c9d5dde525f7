"""Bisect session commands.

Every command is a full load / mutate / save cycle against the session
store, so each invocation can run in a fresh process.
"""

import logging
import shlex
from datetime import datetime
from typing import Iterable, List, Optional, Set, Tuple

from . import PROG_NAME
from .algorithm import BisectOutcome, OutcomeKind, bisect_step, format_steps
from .colors import Colors
from .commands import COMMAND_NAMES
from .errors import SessionIOError, UsageError
from .revisions import RevisionResolver, validate_term
from .state import BisectSession, sort_revisions
from .store import SessionStore
from .vcs import VersionControl, revision_key


class Bisector:
    """The bisect session state machine.

    This class implements the commands that create, narrow and destroy a
    bisect session:
    - start, bad, good, skip, unskip
    - terms and log (read only)
    - reset

    Commands that mark revisions return the ``BisectOutcome`` of the
    bisection step, or None when the session is not ready yet.
    """

    def __init__(
        self,
        vcs: VersionControl,
        store: SessionStore,
        resolver: Optional[RevisionResolver] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize the bisector.

        Args:
            vcs: Version control collaborator for the working copy.
            store: Session store for the working copy.
            resolver: Revision resolver (default: one built on ``vcs``).
            logger: Optional logger instance.
        """
        self.vcs = vcs
        self.store = store
        self.resolver = resolver or RevisionResolver(vcs)
        self.logger = logger or logging.getLogger("svn-bisect-tool")

    # -- audit log -----------------------------------------------------

    def log_command(self, *args: str):
        """Append a replayable command line to the audit log."""
        self.store.append_log(shlex.join([PROG_NAME] + list(args)))

    def _log_revision(self, revision: str, term: str, msg: str):
        self.store.append_log(f"# {term}: [{revision}] {msg}")

    def _report_status(self):
        session = self.store.load()
        status = session.waiting_status() if session else None
        if status:
            self.store.append_log(f"# {status}")
            print(status)

    # -- helpers -------------------------------------------------------

    def _resolve(self, rev_arg: Optional[str]) -> str:
        if rev_arg is None:
            return self.vcs.current_revision()
        return self.resolver.resolve_single_revision(rev_arg)

    def _first_line(self, revision: str, session: Optional[BisectSession] = None) -> str:
        if session is not None and session.is_ready:
            entry = session.get_extant(revision)
            if entry is not None:
                return entry.first_line
        return self.vcs.first_line(revision)

    def _update_working_copy(self, revision: str, session: Optional[BisectSession] = None):
        msg = self._first_line(revision, session)
        print(f"Updating working copy: [{Colors.revision(revision)}] {msg}")
        self.vcs.update(revision)

    def _perform_bisect(self, session: BisectSession) -> BisectOutcome:
        outcome = bisect_step(session)

        if outcome.kind is OutcomeKind.NEXT:
            print(
                f"Bisecting: {outcome.remaining} revisions left to test after this "
                f"(roughly {format_steps(outcome.steps)})"
            )
            self._update_working_copy(outcome.revision.revision, session)

        elif outcome.kind is OutcomeKind.FOUND:
            entry = outcome.revision
            print(f"\nThe first '{session.term_bad_name}' revision is: {Colors.revision(entry.revision)}")
            self.print_result(entry.revision)
            self.store.append_log(f"# first {session.term_bad_name} revision: [{entry.revision}] {entry.first_line}")

        else:
            print("\nThere are only skipped revisions left to test.")
            print(f"The first '{session.term_bad_name}' revision could be any of:")
            for entry in outcome.suspects:
                print(f"{Colors.revision(entry.revision)} {entry.first_line}")
            print("We cannot bisect more!")
            suspects = " ".join(e.revision for e in outcome.suspects)
            self.store.append_log(f"# first {session.term_bad_name} revision could be any of: {suspects}")

        return outcome

    def print_result(self, revision: str):
        """Print the details of the first bad revision.

        Args:
            revision: The first bad revision.
        """
        info = self.vcs.commit_info(revision)

        print()
        print(f"{Colors.BOLD}{Colors.RED}╔══════════════════════════════════════════════════════════════╗{Colors.RESET}")
        print(f"{Colors.BOLD}{Colors.RED}║                   🐛  BAD REVISION FOUND  🐛                 ║{Colors.RESET}")
        print(f"{Colors.BOLD}{Colors.RED}╚══════════════════════════════════════════════════════════════╝{Colors.RESET}")
        print()
        print(f"{Colors.BOLD}Revision Details:{Colors.RESET}")
        print(f"  Revision: {Colors.RED}{info.revision}{Colors.RESET}")
        print(f"  Author:   {info.author}")
        print(f"  Date:     {info.date}")
        print()
        for line in info.message:
            print(f"  {line}")
        if info.paths:
            print()
            print(f"{Colors.BOLD}Changed Paths:{Colors.RESET}")
            for path in info.paths:
                print(f"  {path}")
        print(flush=True)

    # -- commands ------------------------------------------------------

    def start(
        self,
        bad: Optional[str] = None,
        good: Optional[str] = None,
        term_bad: Optional[str] = None,
        term_good: Optional[str] = None,
    ) -> Optional[BisectOutcome]:
        """Start a new bisect session.

        Args:
            bad: Revision known to contain the bug.
            good: Revision known not to contain the bug.
            term_bad: Alternate name for the bad command.
            term_good: Alternate name for the good command.

        Returns:
            The first bisection outcome if both revisions were given.
        """
        if not self.vcs.in_working_copy():
            raise UsageError("You must run this command from within a subversion working copy directory")

        existing = self.store.load()
        if existing is not None:
            lines = [f"{PROG_NAME} session already in progress"]
            status = existing.waiting_status()
            if status:
                lines.append(status)
            lines.append(f"Type '{PROG_NAME} reset' to reset your working copy")
            raise UsageError("\n".join(lines))

        for term in (term_bad, term_good):
            if term is not None:
                validate_term(term, COMMAND_NAMES)
        if term_bad is not None and term_bad == term_good:
            raise UsageError("The 'bad' and 'good' terms must be different")

        bad_rev = self.resolver.resolve_single_revision(bad) if bad is not None else None
        good_rev = self.resolver.resolve_single_revision(good) if good is not None else None

        if bad_rev is not None and good_rev is not None:
            if bad_rev == good_rev:
                raise UsageError("The 'bad' and 'good' revisions cannot be the same")
            if revision_key(bad_rev) < revision_key(good_rev):
                raise UsageError("The 'good' revision must be an ancestor of the 'bad' revision")
            max_rev, min_rev, extant_revs = self.resolver.resolve_range(bad_rev, good_rev)
        else:
            max_rev, min_rev, extant_revs = bad_rev, good_rev, []

        session = BisectSession(
            local_path=self.store.cwd,
            original_rev=self.vcs.current_revision(),
            start_max_rev=max_rev,
            start_min_rev=min_rev,
            max_rev=max_rev,
            min_rev=min_rev,
            extant_revs=tuple(extant_revs),
            term_bad=term_bad,
            term_good=term_good,
        )

        self.store.save(session)
        self.store.remove_log()

        self.store.append_log(f"# {PROG_NAME} log file  {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        self.store.append_log(f"# Initiated from: {self.store.cwd}")
        self.store.append_log("# ----------------------------")
        if session.max_rev is not None:
            self._log_revision(session.max_rev, session.term_bad_name, self._first_line(session.max_rev, session))
        if session.min_rev is not None:
            self._log_revision(session.min_rev, session.term_good_name, self._first_line(session.min_rev, session))
        status = session.waiting_status()
        if status:
            self.store.append_log(f"# {status}")
            print(status)

        args = ["start"]
        if max_rev is not None:
            args.append(f"--bad={max_rev}")
        if min_rev is not None:
            args.append(f"--good={min_rev}")
        if term_bad is not None:
            args.append(f"--term-bad={term_bad}")
        if term_good is not None:
            args.append(f"--term-good={term_good}")
        self.log_command(*args)

        return self._perform_bisect(session) if session.is_ready else None

    def bad(self, rev_arg: Optional[str] = None) -> Optional[BisectOutcome]:
        """Mark a revision as bad.

        Args:
            rev_arg: Revision argument (default: the working copy revision).

        Returns:
            The bisection outcome, or None if the session is not ready.

        Raises:
            UsageError: If the revision is not newer than the good revision
                or comes after the starting bad revision.
        """
        session = self.store.require()
        revision = self._resolve(rev_arg)
        bad, good = session.term_bad_name, session.term_good_name

        # A new bad revision may come after the current one so a range can
        # be rechecked, but never after the starting bad revision.
        if session.min_rev is not None and revision_key(revision) <= revision_key(session.min_rev):
            raise UsageError(f"'{bad}' revision must be more recent than the '{good}' revision")
        if session.start_max_rev is not None and revision_key(revision) > revision_key(session.start_max_rev):
            raise UsageError(
                f"'{bad}' revision is out of range, cannot come after starting "
                f"'{bad}' revision ({session.start_max_rev})"
            )
        if session.is_ready:
            revision = self._snap(session, revision, marking_bad=True)

        outcome = self._mark_bad(session, revision, command=(bad, revision))
        self._report_status()
        return outcome

    def good(self, rev_arg: Optional[str] = None) -> Optional[BisectOutcome]:
        """Mark a revision as good.

        Args:
            rev_arg: Revision argument (default: the working copy revision).

        Returns:
            The bisection outcome, or None if the session is not ready.

        Raises:
            UsageError: If the revision is not older than the bad revision
                or comes before the starting good revision.
        """
        session = self.store.require()
        revision = self._resolve(rev_arg)
        bad, good = session.term_bad_name, session.term_good_name

        if session.max_rev is not None and revision_key(revision) >= revision_key(session.max_rev):
            raise UsageError(f"'{good}' revision must be older than the '{bad}' revision")
        if session.start_min_rev is not None and revision_key(revision) < revision_key(session.start_min_rev):
            raise UsageError(
                f"'{good}' revision is out of range, cannot come before starting "
                f"'{good}' revision ({session.start_min_rev})"
            )
        if session.is_ready:
            revision = self._snap(session, revision)

        outcome = self._mark_good(session, revision, command=(good, revision))
        self._report_status()
        return outcome

    def _snap(self, session: BisectSession, revision: str, marking_bad: bool = False) -> str:
        snapped = session.nearest_extant(revision)
        if snapped is None or marking_bad and snapped == session.min_rev:
            raise UsageError(
                f"Revision {revision} did not change the working copy; it is "
                f"identical to the '{session.term_good_name}' revision ({session.min_rev})"
            )
        if snapped != revision:
            self.logger.debug(f"Revision {revision} is not in the history, using {snapped}")
        return snapped

    def _mark_bad(self, session: BisectSession, revision: str, command: Tuple[str, ...]) -> Optional[BisectOutcome]:
        skipped = session.skipped - {revision}
        if session.is_ready:
            new_session = session.with_changes(max_rev=revision, skipped=skipped)
        elif session.start_min_rev is not None:
            max_rev, min_rev, extant_revs = self.resolver.resolve_range(revision, session.start_min_rev)
            new_session = session.with_changes(
                max_rev=max_rev,
                start_max_rev=max_rev,
                min_rev=min_rev,
                start_min_rev=min_rev,
                skipped=skipped,
                extant_revs=extant_revs,
            )
        else:
            new_session = session.with_changes(max_rev=revision, start_max_rev=revision, skipped=skipped)

        self.store.save(new_session)
        self._log_revision(revision, new_session.term_bad_name, self._first_line(revision, new_session))
        self.log_command(*command)
        return self._perform_bisect(new_session) if new_session.is_ready else None

    def _mark_good(self, session: BisectSession, revision: str, command: Tuple[str, ...]) -> Optional[BisectOutcome]:
        skipped = session.skipped - {revision}
        if session.is_ready:
            new_session = session.with_changes(min_rev=revision, skipped=skipped)
        elif session.start_max_rev is not None:
            max_rev, min_rev, extant_revs = self.resolver.resolve_range(session.start_max_rev, revision)
            new_session = session.with_changes(
                max_rev=max_rev,
                start_max_rev=max_rev,
                min_rev=min_rev,
                start_min_rev=min_rev,
                skipped=skipped,
                extant_revs=extant_revs,
            )
        else:
            new_session = session.with_changes(min_rev=revision, start_min_rev=revision, skipped=skipped)

        self.store.save(new_session)
        self._log_revision(revision, new_session.term_good_name, self._first_line(revision, new_session))
        self.log_command(*command)
        return self._perform_bisect(new_session) if new_session.is_ready else None

    def _revisions_from_args(self, rev_args: List[str]) -> Tuple[Set[str], List[str]]:
        """Expand revision arguments, also returning them in concrete form for the log."""
        if not rev_args:
            current = self.vcs.current_revision()
            return {current}, [current]

        revisions: Set[str] = set()
        concrete = []
        for arg in rev_args:
            low, high = self.resolver.resolve_revision_range(arg)
            revisions.update(str(r) for r in range(low, high + 1))
            concrete.append(str(low) if low == high else f"{low}:{high}")
        return revisions, concrete

    def skip(self, rev_args: Optional[List[str]] = None) -> Optional[BisectOutcome]:
        """Exclude revisions from consideration.

        Args:
            rev_args: Revisions or REV:REV ranges (default: the working copy
                revision). Revisions outside the candidate set are ignored.

        Returns:
            The bisection outcome if anything changed and the session is ready.
        """
        self.store.require()
        rev_args = list(rev_args or [])
        revisions, concrete = self._revisions_from_args(rev_args)

        outcome = self._mark_skipped(revisions, command=("skip", *concrete))
        self._report_status()
        return outcome

    def unskip(self, rev_args: Optional[List[str]] = None) -> Optional[BisectOutcome]:
        """Reinstate previously skipped revisions.

        Args:
            rev_args: Revisions or REV:REV ranges (default: the working copy
                revision).

        Returns:
            The bisection outcome if anything changed and the session is ready.
        """
        self.store.require()
        rev_args = list(rev_args or [])
        revisions, concrete = self._revisions_from_args(rev_args)

        outcome = self._mark_unskipped(revisions, command=("unskip", *concrete))
        self._report_status()
        return outcome

    def _mark_skipped(self, revisions: Iterable[str], command: Tuple[str, ...]) -> Optional[BisectOutcome]:
        session = self.store.require()
        incoming = session.candidates_only(revisions)
        newly_skipped = sort_revisions(incoming - session.skipped)
        if not newly_skipped:
            self.logger.debug("No new revisions to skip")
            self.log_command(*command)
            return None

        new_session = session.with_changes(skipped=session.skipped | incoming)
        self.store.save(new_session)
        for revision in newly_skipped:
            self._log_revision(revision, "skip", self._first_line(revision, new_session))
        self.log_command(*command)
        return self._perform_bisect(new_session) if new_session.is_ready else None

    def _mark_unskipped(self, revisions: Iterable[str], command: Tuple[str, ...]) -> Optional[BisectOutcome]:
        session = self.store.require()
        incoming = session.candidates_only(revisions)
        unskipped = sort_revisions(incoming & session.skipped)
        if not unskipped:
            self.logger.debug("No skipped revisions to reinstate")
            self.log_command(*command)
            return None

        new_session = session.with_changes(skipped=session.skipped - incoming)
        self.store.save(new_session)
        for revision in unskipped:
            self._log_revision(revision, "unskip", self._first_line(revision, new_session))
        self.log_command(*command)
        return self._perform_bisect(new_session) if new_session.is_ready else None

    def terms(self, show_good: bool = False, show_bad: bool = False) -> List[str]:
        """Show the names used for the good and bad commands.

        Returns:
            The printed lines.
        """
        if show_good and show_bad:
            raise UsageError("terms does not accept multiple options")
        session = self.store.require()

        if show_good:
            lines = [session.term_good_name]
        elif show_bad:
            lines = [session.term_bad_name]
        else:
            lines = [
                f"The term for the good state is {Colors.BLUE}{session.term_good_name}{Colors.RESET}",
                f"The term for the bad  state is {Colors.BLUE}{session.term_bad_name}{Colors.RESET}",
            ]
            status = session.waiting_status()
            if status:
                lines.append(status)

        for line in lines:
            print(line)
        return lines

    def show_log(self) -> List[str]:
        """Print the audit log of the current session."""
        self.store.require()
        lines = self.store.read_log()
        for line in lines:
            print(line)
        return lines

    def reset(self, update: bool = True, rev_arg: Optional[str] = None):
        """End the session and remove its files.

        Args:
            update: Update the working copy before removing the session.
            rev_arg: Revision to update to (default: the revision the
                working copy was at when the session started).

        An unreadable state file is removed without touching the working
        copy, unless a revision to update to was given.
        """
        try:
            session = self.store.require()
        except SessionIOError as e:
            self.logger.warning(f"{e}; removing the session files")
            if update and rev_arg is not None:
                self._update_working_copy(self._resolve(rev_arg))
            self.store.clear()
            return

        if update:
            target = self._resolve(rev_arg) if rev_arg is not None else session.original_rev
            self._update_working_copy(target, session)
        else:
            current = self.vcs.current_revision()
            print(f"Working copy: [{Colors.revision(current)}] {self._first_line(current, session)}")

        self.store.clear()
        self.logger.debug("Bisect session removed")
