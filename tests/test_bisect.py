"""Tests for the bisect session state machine."""

import shutil
import tempfile
import unittest
from unittest.mock import MagicMock

from svn_bisect_tool.algorithm import OutcomeKind
from svn_bisect_tool.bisect import Bisector
from svn_bisect_tool.errors import ExternalCommandError, RangeError, UsageError
from svn_bisect_tool.store import SessionStore

from fakes import FakeVCS


class BisectorTestCase(unittest.TestCase):
    """Sets up a fake working copy with revisions 90..100."""

    revisions = range(90, 101)

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.vcs = FakeVCS(self.revisions, current=100)
        self.store = SessionStore(self.temp_dir + "/.svn-bisect", cwd=self.temp_dir)
        self.bisector = Bisector(self.vcs, self.store)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def command_lines(self):
        return [line for line in self.store.read_log() if not line.startswith("#")]


class TestStart(BisectorTestCase):
    """Tests for Bisector.start()."""

    def test_start_with_both_revisions(self):
        """start() with both bounds resolves the range and tests the middle."""
        outcome = self.bisector.start(bad="100", good="90")

        session = self.store.load()
        self.assertTrue(session.is_ready)
        self.assertEqual(len(session.extant_revs), 11)
        self.assertEqual(session.original_rev, "100")
        self.assertEqual(outcome.kind, OutcomeKind.NEXT)
        self.assertEqual(outcome.revision.revision, "95")
        self.assertEqual(self.vcs.current, "95")

    def test_start_without_revisions(self):
        """start() alone creates a session waiting for both bounds."""
        outcome = self.bisector.start()

        self.assertIsNone(outcome)
        session = self.store.load()
        self.assertFalse(session.is_ready)
        self.assertIn("# status: waiting for both 'good' and 'bad' revisions", self.store.read_log())

    def test_start_writes_log_banner(self):
        """start() writes the banner, markers and the command line."""
        self.bisector.start(bad="100", good="90")

        log = self.store.read_log()
        self.assertTrue(log[0].startswith("# svn-bisect-tool log file  "))
        self.assertEqual(log[1], f"# Initiated from: {self.store.cwd}")
        self.assertEqual(log[2], "# ----------------------------")
        self.assertIn("# bad: [100] commit 100", log)
        self.assertIn("# good: [90] commit 90", log)
        self.assertEqual(self.command_lines(), ["svn-bisect-tool start --bad=100 --good=90"])

    def test_start_pins_symbolic_revisions(self):
        """Symbolic revisions are logged as concrete revisions."""
        self.bisector.start(bad="head", good="90")

        self.assertEqual(self.command_lines(), ["svn-bisect-tool start --bad=100 --good=90"])

    def test_start_same_revisions(self):
        """start() rejects identical bad and good revisions."""
        with self.assertRaises(UsageError):
            self.bisector.start(bad="95", good="95")
        self.assertFalse(self.store.exists())

    def test_start_bad_older_than_good(self):
        """start() rejects a bad revision older than the good one."""
        with self.assertRaises(UsageError):
            self.bisector.start(bad="91", good="99")

    def test_start_unknown_revision(self):
        """A revision before the start of history is a range error."""
        with self.assertRaises(RangeError):
            self.bisector.start(bad="100", good="10")

    def test_start_twice(self):
        """A second start() while a session exists is refused."""
        self.bisector.start()

        with self.assertRaises(UsageError) as ctx:
            self.bisector.start()
        self.assertIn("already in progress", str(ctx.exception))

    def test_start_invalid_term(self):
        """Terms that mask a command or are malformed are refused."""
        with self.assertRaises(UsageError):
            self.bisector.start(term_bad="skip")
        with self.assertRaises(UsageError):
            self.bisector.start(term_good="9lives")
        with self.assertRaises(UsageError):
            self.bisector.start(term_bad="same", term_good="same")

    def test_start_with_terms(self):
        """Custom terms are stored and used in the log."""
        self.bisector.start(bad="100", term_bad="broken", term_good="fixed")

        session = self.store.load()
        self.assertEqual(session.term_bad_name, "broken")
        self.assertEqual(session.term_good_name, "fixed")
        self.assertIn("# broken: [100] commit 100", self.store.read_log())
        self.assertIn("# status: waiting for a 'fixed' revision", self.store.read_log())


class TestMarking(BisectorTestCase):
    """Tests for bad(), good() and the end-to-end narrowing."""

    def test_end_to_end(self):
        """Narrowing 100..90 finds 97 as the first bad revision."""
        outcome = self.bisector.start(bad="100", good="90")
        self.assertEqual(outcome.revision.revision, "95")
        self.assertEqual(outcome.remaining, 9)

        outcome = self.bisector.good("95")
        self.assertEqual(
            [e.revision for e in self.store.load().candidates()],
            ["99", "98", "97", "96"],
        )
        self.assertEqual(outcome.revision.revision, "97")

        outcome = self.bisector.bad("97")
        self.assertEqual(outcome.revision.revision, "96")

        outcome = self.bisector.good("96")
        self.assertEqual(outcome.kind, OutcomeKind.FOUND)
        self.assertEqual(outcome.revision.revision, "97")
        self.assertIn("# first bad revision: [97] commit 97", self.store.read_log())

    def test_marks_default_to_working_copy_revision(self):
        """bad()/good() without an argument use the working copy revision."""
        self.bisector.start(bad="100", good="90")
        self.bisector.good()

        self.assertEqual(self.store.load().min_rev, "95")
        self.assertEqual(self.command_lines()[-1], "svn-bisect-tool good 95")

    def test_bad_not_newer_than_good(self):
        """bad() at or below the good bound leaves state unchanged."""
        self.bisector.start(bad="100", good="90")
        before = self.store.load()
        log_before = self.store.read_log()

        with self.assertRaises(UsageError):
            self.bisector.bad("90")

        self.assertEqual(self.store.load(), before)
        self.assertEqual(self.store.read_log(), log_before)

    def test_bad_after_start_bad(self):
        """bad() cannot come after the starting bad revision."""
        vcs = FakeVCS(range(90, 106), current=100)
        bisector = Bisector(vcs, self.store)
        bisector.start(bad="100", good="90")

        with self.assertRaises(UsageError):
            bisector.bad("103")

    def test_good_not_older_than_bad(self):
        """good() at or above the bad bound leaves state unchanged."""
        self.bisector.start(bad="100", good="90")
        self.bisector.bad("97")
        before = self.store.load()

        with self.assertRaises(UsageError):
            self.bisector.good("97")

        self.assertEqual(self.store.load(), before)

    def test_bad_can_move_back_up(self):
        """A bad revision may be newer than the current one to recheck a range."""
        self.bisector.start(bad="100", good="90")
        self.bisector.bad("95")

        self.bisector.bad("98")

        self.assertEqual(self.store.load().max_rev, "98")

    def test_becomes_ready_with_good(self):
        """Marking good after bad fetches the range between them."""
        self.bisector.start(bad="100")
        self.assertEqual(self.vcs.log_calls, 0)

        outcome = self.bisector.good("90")

        session = self.store.load()
        self.assertTrue(session.is_ready)
        self.assertEqual(session.start_min_rev, "90")
        self.assertEqual(session.start_max_rev, "100")
        self.assertEqual(outcome.revision.revision, "95")

    def test_becomes_ready_with_bad(self):
        """Marking bad after good fetches the range between them."""
        self.bisector.start(good="90")

        outcome = self.bisector.bad("100")

        self.assertTrue(self.store.load().is_ready)
        self.assertEqual(outcome.revision.revision, "95")

    def test_mark_without_session(self):
        """Marking without a session is a usage error."""
        with self.assertRaises(UsageError):
            self.bisector.bad("100")

    def test_mark_snaps_to_extant_revision(self):
        """A revision that did not change the path snaps to an older extant one."""
        vcs = FakeVCS([90, 92, 94, 96, 98, 100], current=100)
        bisector = Bisector(vcs, self.store)
        bisector.start(bad="100", good="90")

        bisector.good("95")

        self.assertEqual(self.store.load().min_rev, "94")


class TestFailedUpdate(BisectorTestCase):
    """The log stays replayable when updating the working copy fails."""

    def fail_updates(self):
        self.vcs.update = MagicMock(side_effect=ExternalCommandError("svn: E155004: working copy locked"))

    def test_start(self):
        """start() logs its command before updating the working copy."""
        self.fail_updates()

        with self.assertRaises(ExternalCommandError):
            self.bisector.start(bad="100", good="90")

        self.assertTrue(self.store.exists())
        self.assertEqual(self.command_lines(), ["svn-bisect-tool start --bad=100 --good=90"])

    def test_good(self):
        """A saved bound is always matched by a logged command."""
        self.bisector.start(bad="100", good="90")
        self.fail_updates()

        with self.assertRaises(ExternalCommandError):
            self.bisector.good("95")

        self.assertEqual(self.store.load().min_rev, "95")
        self.assertEqual(self.command_lines(), [
            "svn-bisect-tool start --bad=100 --good=90",
            "svn-bisect-tool good 95",
        ])

    def test_skip(self):
        self.bisector.start(bad="100", good="90")
        self.fail_updates()

        with self.assertRaises(ExternalCommandError):
            self.bisector.skip(["95"])

        self.assertEqual(self.store.load().skipped, frozenset({"95"}))
        self.assertEqual(self.command_lines()[-1], "svn-bisect-tool skip 95")


class TestSkip(BisectorTestCase):
    """Tests for skip() and unskip()."""

    def setUp(self):
        super().setUp()
        self.bisector.start(bad="100", good="90")

    def test_skip_current_revision(self):
        """skip() without arguments skips the working copy revision."""
        outcome = self.bisector.skip()

        self.assertEqual(self.store.load().skipped, frozenset({"95"}))
        self.assertEqual(outcome.kind, OutcomeKind.NEXT)
        self.assertNotEqual(outcome.revision.revision, "95")
        self.assertIn("# skip: [95] commit 95", self.store.read_log())
        self.assertEqual(self.command_lines()[-1], "svn-bisect-tool skip 95")

    def test_skip_is_idempotent(self):
        """Skipping the same revision twice changes nothing the second time."""
        self.bisector.skip(["95"])
        first = self.store.load().skipped

        outcome = self.bisector.skip(["95"])

        self.assertIsNone(outcome)
        self.assertEqual(self.store.load().skipped, first)

    def test_skip_outside_candidates(self):
        """Revisions outside the open interval are ignored."""
        outcome = self.bisector.skip(["100", "90"])

        self.assertIsNone(outcome)
        self.assertEqual(self.store.load().skipped, frozenset())

    def test_skip_range(self):
        """REV:REV ranges are inclusive and may be reversed."""
        self.bisector.skip(["96:93"])

        self.assertEqual(self.store.load().skipped, frozenset({"93", "94", "95", "96"}))
        self.assertEqual(self.command_lines()[-1], "svn-bisect-tool skip 93:96")

    def test_skip_everything(self):
        """Skipping every candidate reports the ambiguous result."""
        outcome = self.bisector.skip(["91:99"])

        self.assertEqual(outcome.kind, OutcomeKind.AMBIGUOUS)
        self.assertEqual(
            [e.revision for e in outcome.suspects],
            ["100", "99", "98", "97", "96", "95", "94", "93", "92", "91"],
        )
        self.assertIn(
            "# first bad revision could be any of: 100 99 98 97 96 95 94 93 92 91",
            self.store.read_log(),
        )

    def test_unskip(self):
        """unskip() reinstates skipped revisions."""
        self.bisector.skip(["94:96"])

        self.bisector.unskip(["95"])

        self.assertEqual(self.store.load().skipped, frozenset({"94", "96"}))
        self.assertIn("# unskip: [95] commit 95", self.store.read_log())

    def test_unskip_not_skipped(self):
        """unskip() of a revision that is not skipped is a no-op."""
        self.assertIsNone(self.bisector.unskip(["95"]))

    def test_marking_clears_skip(self):
        """Marking a skipped revision good removes it from the skip set."""
        self.bisector.skip(["95"])

        self.bisector.good("95")

        self.assertNotIn("95", self.store.load().skipped)


class TestTermsLogReset(BisectorTestCase):
    """Tests for terms(), show_log() and reset()."""

    def test_terms_default(self):
        """terms() prints both terms."""
        self.bisector.start(bad="100", good="90")

        lines = self.bisector.terms()

        self.assertEqual(len(lines), 2)
        self.assertIn("good", lines[0])
        self.assertIn("bad", lines[1])

    def test_terms_single(self):
        """--term-good / --term-bad print just the name."""
        self.bisector.start(term_bad="broken", term_good="fixed")

        self.assertEqual(self.bisector.terms(show_good=True), ["fixed"])
        self.assertEqual(self.bisector.terms(show_bad=True), ["broken"])

    def test_terms_both_options(self):
        """terms() refuses both options at once."""
        self.bisector.start()

        with self.assertRaises(UsageError):
            self.bisector.terms(show_good=True, show_bad=True)

    def test_show_log(self):
        """show_log() returns the audit log lines."""
        self.bisector.start(bad="100", good="90")

        self.assertEqual(self.bisector.show_log(), self.store.read_log())

    def test_reset_restores_original_revision(self):
        """reset() updates back to the original revision and removes the session."""
        self.bisector.start(bad="100", good="90")
        self.assertEqual(self.vcs.current, "95")

        self.bisector.reset()

        self.assertEqual(self.vcs.current, "100")
        self.assertFalse(self.store.exists())
        self.assertEqual(self.store.read_log(), [])

    def test_reset_no_update(self):
        """reset(update=False) leaves the working copy alone."""
        self.bisector.start(bad="100", good="90")

        self.bisector.reset(update=False)

        self.assertEqual(self.vcs.current, "95")
        self.assertFalse(self.store.exists())

    def test_reset_to_revision(self):
        """reset() with a revision updates to that revision."""
        self.bisector.start(bad="100", good="90")

        self.bisector.reset(rev_arg="92")

        self.assertEqual(self.vcs.current, "92")

    def test_reset_corrupt_state(self):
        """reset() removes an unreadable session without updating."""
        self.bisector.start(bad="100", good="90")
        with open(self.store.state_file, "w") as f:
            f.write("{")

        self.bisector.reset()

        self.assertFalse(self.store.exists())
        self.assertEqual(self.vcs.current, "95")

    def test_reset_without_session(self):
        """reset() without a session is a usage error."""
        with self.assertRaises(UsageError):
            self.bisector.reset()


if __name__ == "__main__":
    unittest.main()
