"""Command line interface for svn bisect tool."""

import argparse
import os
import sys
import traceback
from typing import Callable, Dict, List, Optional

from . import PROG_NAME, __version__
from .bisect import Bisector
from .colors import Colors
from .commands import COMMANDS, MatchStatus, format_help, match_command
from .config import ToolConfig, load_config
from .errors import BisectError, SessionIOError, UsageError
from .logging_setup import setup_logging
from .replay import Replayer
from .revisions import RevisionResolver
from .runner import AutomationRunner
from .store import SessionStore
from .svn import Subversion


def create_parser() -> argparse.ArgumentParser:
    """Create the top level argument parser.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog=PROG_NAME,
        description="Svn Bisect Tool - Find the revision that introduced a bug in a subversion working copy",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=format_help() + """

Examples:
  # Start a session and let a script find the bad revision
  svn-bisect-tool start --bad=HEAD --good=1200
  svn-bisect-tool run ./test.sh

  # Use custom terms
  svn-bisect-tool start --term-bad=broken --term-good=fixed
  svn-bisect-tool broken
  svn-bisect-tool fixed 1200

Exit Codes:
  0 - Command succeeded
  1 - Command failed
  2 - Invalid arguments
        """
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )
    parser.add_argument(
        "--config", "-c",
        metavar="FILE",
        help="Path to a YAML config file (default: ~/.config/svn-bisect-tool/config.yaml)"
    )
    parser.add_argument(
        "command",
        nargs="?",
        help="Bisect command (may be abbreviated)"
    )
    parser.add_argument(
        "args",
        nargs=argparse.REMAINDER,
        help="Arguments for the bisect command"
    )

    return parser


def create_command_parser(command: str, name: Optional[str] = None) -> argparse.ArgumentParser:
    """Create the argument parser of a single bisect command.

    Args:
        command: Built-in command name.
        name: Name the command was invoked as (a custom term for bad/good).

    Returns:
        Configured ArgumentParser instance.
    """
    description = {c.name: c.description for c in COMMANDS}[command]
    parser = argparse.ArgumentParser(
        prog=f"{PROG_NAME} {name or command}",
        description=description,
    )

    if command == "start":
        parser.add_argument("--bad", metavar="REV", help="Revision known to contain the bug")
        parser.add_argument("--good", metavar="REV", help="Revision known not to contain the bug")
        parser.add_argument("--term-bad", metavar="TERM", help="Alternate name for the bad command")
        parser.add_argument("--term-good", metavar="TERM", help="Alternate name for the good command")
    elif command in ("bad", "good"):
        parser.add_argument("revision", nargs="?", metavar="REV", help="Revision to mark (default: working copy revision)")
    elif command == "terms":
        group = parser.add_mutually_exclusive_group()
        group.add_argument("--term-good", action="store_true", help="Show only the term for good revisions")
        group.add_argument("--term-bad", action="store_true", help="Show only the term for bad revisions")
    elif command in ("skip", "unskip"):
        parser.add_argument(
            "revisions",
            nargs="*",
            metavar="REV|REV:REV",
            help="Revisions or inclusive ranges (default: working copy revision)"
        )
    elif command == "run":
        parser.add_argument("cmd", metavar="CMD", help="Command to run: 0=good, 125=skip, 1-127=bad, 128+=abort")
        parser.add_argument("cmd_args", nargs=argparse.REMAINDER, metavar="ARGS", help="Arguments for the command")
    elif command == "replay":
        parser.add_argument("log_file", metavar="LOGFILE", help="Log file written by a previous session")
    elif command == "reset":
        parser.add_argument("--no-update", action="store_true", help="Do not update the working copy")
        parser.add_argument("revision", nargs="?", metavar="REV", help="Revision to update to (default: original revision)")

    return parser


class CommandDispatcher:
    """Resolves command names and runs them against one working copy."""

    def __init__(self, config: ToolConfig, cwd: Optional[str] = None, vcs=None, store: Optional[SessionStore] = None):
        self.config = config
        self.cwd = os.path.abspath(cwd or os.getcwd())
        self.vcs = vcs or Subversion(cwd=self.cwd, svn_command=config.svn_command)
        self.store = store or SessionStore(self._state_dir(), cwd=self.cwd)
        self.resolver = RevisionResolver(self.vcs, stop_on_copy=config.stop_on_copy)
        self.bisector = Bisector(self.vcs, self.store, resolver=self.resolver)
        self.handlers: Dict[str, Callable[[argparse.Namespace], None]] = {
            "start": self._start,
            "bad": lambda a: self.bisector.bad(a.revision),
            "good": lambda a: self.bisector.good(a.revision),
            "terms": lambda a: self.bisector.terms(show_good=a.term_good, show_bad=a.term_bad),
            "skip": lambda a: self.bisector.skip(a.revisions),
            "unskip": lambda a: self.bisector.unskip(a.revisions),
            "run": lambda a: AutomationRunner(self.bisector).run([a.cmd] + a.cmd_args),
            "log": lambda a: self.bisector.show_log(),
            "replay": lambda a: Replayer(self.execute).replay(a.log_file),
            "reset": lambda a: self.bisector.reset(update=not a.no_update, rev_arg=a.revision),
        }

    def _state_dir(self) -> str:
        root = self.vcs.working_copy_root() if self.vcs.in_working_copy() else self.cwd
        return os.path.join(root, os.path.expanduser(self.config.state_dir))

    def _start(self, args: argparse.Namespace):
        self.bisector.start(
            bad=args.bad,
            good=args.good,
            term_bad=args.term_bad,
            term_good=args.term_good,
        )

    def execute(self, tokens: List[str]) -> int:
        """Run one command given as a name followed by its arguments.

        Returns:
            Exit code.

        Raises:
            UsageError: If the command name is ambiguous.
            BisectError: If the command fails.
        """
        name, rest = tokens[0], tokens[1:]
        try:
            session = self.store.load()
        except SessionIOError:
            # reset must still be reachable with a corrupt state file
            session = None
        term_bad = session.term_bad if session else None
        term_good = session.term_good if session else None

        match = match_command(name, term_bad=term_bad, term_good=term_good)
        if match.status is MatchStatus.NOT_FOUND:
            print(f"'{name}' is not a valid {PROG_NAME} command", file=sys.stderr)
            print(format_help())
            return 1
        if match.status is MatchStatus.AMBIGUOUS:
            raise UsageError(
                f"'{name}' is ambiguous and could be any of: {', '.join(match.candidates)}"
            )

        invoked = match.candidates[0]
        args = create_command_parser(match.command, invoked).parse_args(rest)
        self.handlers[match.command](args)
        return 0


def main(argv=None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command line arguments (default: sys.argv[1:]).

    Returns:
        Exit code.
    """
    parser = create_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        return e.code

    logger = setup_logging(args.verbose)

    try:
        config = load_config(args.config)
        if config.verbose and not args.verbose:
            logger = setup_logging(True)
        Colors.init(config.color)

        if not args.command:
            print(format_help())
            return 0

        dispatcher = CommandDispatcher(config)
        return dispatcher.execute([args.command] + args.args)

    except SystemExit as e:
        # argparse of a single command (--help or a usage error)
        return e.code

    except KeyboardInterrupt:
        print()
        logger.warning("Interrupted by user")
        return 130

    except SessionIOError as e:
        logger.error(str(e))
        logger.error(f"Type '{PROG_NAME} reset' to clear the bisect session")
        return 1

    except BisectError as e:
        logger.error(str(e))
        if args.verbose:
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
