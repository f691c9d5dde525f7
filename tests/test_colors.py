"""Tests for color handling and the colored log formatter."""

import io
import logging
import sys
import unittest
from unittest.mock import patch

from svn_bisect_tool.colors import Colors
from svn_bisect_tool.logging_setup import ColoredFormatter, setup_logging


class TestColors(unittest.TestCase):
    """Tests for Colors class."""

    def tearDown(self):
        Colors.enable()

    def test_color_codes_defined(self):
        """All expected color codes are defined."""
        attrs = ['RESET', 'BOLD', 'DIM', 'RED', 'GREEN', 'YELLOW', 'BLUE', 'CYAN', 'WHITE']
        for attr in attrs:
            self.assertTrue(hasattr(Colors, attr))

    def test_disable_clears_colors(self):
        """disable() sets all color codes to empty strings."""
        Colors.disable()

        self.assertEqual(Colors.RED, '')
        self.assertEqual(Colors.BOLD, '')
        self.assertEqual(Colors.RESET, '')

    def test_enable_restores_colors(self):
        """enable() brings the escape codes back."""
        Colors.disable()
        Colors.enable()

        self.assertEqual(Colors.RESET, '\033[0m')
        self.assertTrue(Colors.RED.startswith('\033['))

    @patch.object(sys.stdout, 'isatty', return_value=False)
    def test_init_disables_for_non_tty(self, mock_isatty):
        """init() disables colors when stdout is not a TTY."""
        Colors.init()

        self.assertEqual(Colors.RED, '')

    @patch.object(sys.stdout, 'isatty', return_value=False)
    def test_init_always(self, mock_isatty):
        """init('always') keeps colors even without a TTY."""
        Colors.init('always')

        self.assertNotEqual(Colors.RED, '')

    @patch.object(sys.stdout, 'isatty', return_value=True)
    def test_init_never(self, mock_isatty):
        """init('never') disables colors on a TTY."""
        Colors.init('never')

        self.assertEqual(Colors.GREEN, '')

    def test_revision(self):
        """revision() wraps the identifier in the highlight color."""
        self.assertEqual(Colors.revision('42'), f"{Colors.YELLOW}42{Colors.RESET}")
        Colors.disable()
        self.assertEqual(Colors.revision('42'), '42')


class TestLogging(unittest.TestCase):
    """Tests for setup_logging() and ColoredFormatter."""

    def tearDown(self):
        Colors.enable()

    def test_setup_logging_levels(self):
        """Verbose mode enables DEBUG output."""
        self.assertEqual(setup_logging(False).level, logging.INFO)
        logger = setup_logging(True)
        self.assertEqual(logger.level, logging.DEBUG)
        self.assertEqual(len(logger.handlers), 1)

    def test_formatter_without_colors(self):
        """With colors disabled the message is passed through."""
        Colors.disable()
        formatter = ColoredFormatter("%(levelname)s %(message)s")
        record = logging.LogRecord('svn-bisect-tool', logging.ERROR, __file__, 1, 'failed %s', ('now',), None)

        self.assertEqual(formatter.format(record), 'ERROR failed now')
        # The original record is left alone for other handlers
        self.assertEqual(record.levelname, 'ERROR')

    def test_formatter_colors_warnings(self):
        """Warnings and errors are colored."""
        Colors.enable()
        formatter = ColoredFormatter("%(message)s")
        record = logging.LogRecord('svn-bisect-tool', logging.WARNING, __file__, 1, 'careful', None, None)

        self.assertEqual(formatter.format(record), f"{Colors.YELLOW}careful{Colors.RESET}")

    def test_messages_go_to_stdout(self):
        """Log records are written to stdout."""
        Colors.disable()
        stream = io.StringIO()
        with patch('sys.stdout', stream):
            logger = setup_logging(False)
            logger.info('hello')
            logger.debug('hidden')

        self.assertEqual(stream.getvalue(), 'hello\n')


if __name__ == '__main__':
    unittest.main()
