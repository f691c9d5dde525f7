"""Tests for the bisect session value type."""

import unittest

from svn_bisect_tool.state import BisectSession, sort_revisions
from svn_bisect_tool.vcs import ExtantEntry


def make_extant(high, low):
    return tuple(ExtantEntry(str(r), f"commit {r}") for r in range(high, low - 1, -1))


def ready_session(**changes):
    session = BisectSession(
        local_path='/wc',
        original_rev='100',
        start_max_rev='100',
        start_min_rev='90',
        max_rev='100',
        min_rev='90',
        extant_revs=make_extant(100, 90),
    )
    return session.with_changes(**changes) if changes else session


class TestSortRevisions(unittest.TestCase):
    """Tests for sort_revisions()."""

    def test_numeric_order(self):
        """Revisions sort numerically, newest first."""
        self.assertEqual(sort_revisions(['9', '100', '10']), ['100', '10', '9'])


class TestBisectSession(unittest.TestCase):
    """Tests for BisectSession."""

    def test_default_terms(self):
        """Without custom terms the names are bad and good."""
        session = BisectSession(local_path='/wc', original_rev='5')
        self.assertEqual(session.term_bad_name, 'bad')
        self.assertEqual(session.term_good_name, 'good')

    def test_ready(self):
        """A session is ready once both starting bounds are known."""
        self.assertTrue(ready_session().is_ready)
        self.assertFalse(BisectSession(local_path='/wc', original_rev='5', start_max_rev='5').is_ready)

    def test_with_changes_is_a_copy(self):
        """with_changes() leaves the original untouched."""
        session = ready_session()
        changed = session.with_changes(min_rev='95', skipped=['93'])

        self.assertEqual(session.min_rev, '90')
        self.assertEqual(changed.min_rev, '95')
        self.assertEqual(changed.skipped, frozenset({'93'}))

    def test_candidates(self):
        """Candidates are strictly between the bounds."""
        session = ready_session(max_rev='97', min_rev='93')
        self.assertEqual([e.revision for e in session.candidates()], ['96', '95', '94'])

    def test_candidates_not_ready(self):
        """candidates() requires a ready session."""
        with self.assertRaises(ValueError):
            BisectSession(local_path='/wc', original_rev='5').candidates()

    def test_candidates_only(self):
        """candidates_only() drops revisions outside the open interval."""
        session = ready_session(max_rev='97', min_rev='93')
        self.assertEqual(session.candidates_only(['97', '95', '93', '50']), frozenset({'95'}))

    def test_candidates_only_not_ready(self):
        """Before the session is ready revisions pass through."""
        session = BisectSession(local_path='/wc', original_rev='5')
        self.assertEqual(session.candidates_only(['1', '2']), frozenset({'1', '2'}))

    def test_nearest_extant(self):
        """nearest_extant() finds the newest extant revision not after the input."""
        session = ready_session(extant_revs=(
            ExtantEntry('100'), ExtantEntry('96'), ExtantEntry('90'),
        ))
        self.assertEqual(session.nearest_extant('98'), '96')
        self.assertEqual(session.nearest_extant('96'), '96')
        self.assertIsNone(session.nearest_extant('80'))

    def test_waiting_status(self):
        """The waiting status names the missing bounds."""
        session = BisectSession(local_path='/wc', original_rev='5', term_good='fixed')
        self.assertEqual(session.waiting_status(), "status: waiting for both 'fixed' and 'bad' revisions")
        self.assertEqual(
            session.with_changes(max_rev='5').waiting_status(),
            "status: waiting for a 'fixed' revision",
        )
        self.assertEqual(
            session.with_changes(min_rev='3').waiting_status(),
            "status: waiting for a 'bad' revision",
        )
        self.assertIsNone(ready_session().waiting_status())

    def test_to_dict_layout(self):
        """to_dict() uses the camelCase layout of the session file."""
        data = ready_session(skipped={'92', '95'}, term_bad='broken').to_dict()

        self.assertEqual(data['localPath'], '/wc')
        self.assertEqual(data['startMaxRev'], '100')
        self.assertEqual(data['extantRevs'][0], {'revision': '100', 'firstLine': 'commit 100'})
        self.assertEqual(data['skipped'], ['95', '92'])
        self.assertEqual(data['termBad'], 'broken')
        self.assertIsNone(data['termGood'])

    def test_round_trip(self):
        """from_dict(to_dict()) gives back an equal session."""
        for session in (
            ready_session(skipped={'92', '95'}, term_bad='broken', term_good='fixed'),
            BisectSession(local_path='/wc', original_rev='5', max_rev='5', start_max_rev='5'),
        ):
            self.assertEqual(BisectSession.from_dict(session.to_dict()), session)

    def test_from_dict_optional_fields(self):
        """Revision fields other than the original revision are optional."""
        session = BisectSession.from_dict({'localPath': '/wc', 'originalRev': '7'})
        self.assertIsNone(session.max_rev)
        self.assertEqual(session.extant_revs, ())
        self.assertEqual(session.skipped, frozenset())

    def test_from_dict_malformed(self):
        """Malformed data raises ValueError."""
        with self.assertRaises(ValueError):
            BisectSession.from_dict({'originalRev': '7'})
        with self.assertRaises(ValueError):
            BisectSession.from_dict([])
        with self.assertRaises(ValueError):
            BisectSession.from_dict({'localPath': '/wc', 'originalRev': '7', 'extantRevs': [5]})


if __name__ == "__main__":
    unittest.main()
