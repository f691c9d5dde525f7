"""Subversion command wrapper with logging."""

import logging
import subprocess
import xml.etree.ElementTree as ElementTree
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from .errors import ExternalCommandError
from .vcs import CommitInfo, ExtantEntry, VersionControl

SYMBOLIC_REVISIONS = ("HEAD", "BASE", "PREV", "COMMITTED")


class SvnError(ExternalCommandError):
    """Exception for svn command failures."""
    pass


def format_svn_date(text: str) -> str:
    """Convert an svn XML timestamp (UTC) to a local display string."""
    try:
        utc = datetime.strptime(text, "%Y-%m-%dT%H:%M:%S.%fZ").replace(tzinfo=timezone.utc)
    except ValueError:
        return text
    return utc.astimezone().strftime("%Y-%m-%d %H:%M:%S")


class Subversion(VersionControl):
    """Subversion command wrapper with logging."""

    def __init__(
        self,
        cwd: str = ".",
        svn_command: str = "svn",
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize Subversion wrapper.

        Args:
            cwd: Working copy directory the commands run in.
            svn_command: The svn executable.
            logger: Optional logger instance. If not provided, uses module logger.
        """
        self.cwd = cwd
        self.svn_command = svn_command
        self.logger = logger or logging.getLogger("svn-bisect-tool")

    def run(self, *args, capture_output: bool = True, check: bool = True) -> subprocess.CompletedProcess:
        """Run an svn command.

        Args:
            *args: svn command arguments.
            capture_output: Whether to capture stdout/stderr.
            check: Whether to raise exception on non-zero exit.

        Returns:
            CompletedProcess instance with command results.

        Raises:
            SvnError: If command fails and check=True.
        """
        cmd = [self.svn_command] + list(args)
        self.logger.debug(f"Running: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=capture_output,
                text=True,
                check=check,
                cwd=self.cwd,
            )
            if result.stdout:
                self.logger.debug(f"stdout: {result.stdout.strip()}")
            return result
        except subprocess.CalledProcessError as e:
            self.logger.debug(f"svn command failed: {e.stderr}")
            raise SvnError(f"svn command failed: {' '.join(cmd)}\n{e.stderr}", stderr=e.stderr or "")
        except FileNotFoundError:
            raise SvnError(f"svn executable not found: {self.svn_command}")

    def _xml(self, *args) -> ElementTree.Element:
        result = self.run(*args)
        try:
            return ElementTree.fromstring(result.stdout)
        except ElementTree.ParseError as e:
            raise SvnError(f"Could not parse output of svn {args[0]}: {e}")

    def info(self, path: str = ".", revision: Optional[str] = None) -> ElementTree.Element:
        """Return the <entry> element of ``svn info --xml`` for a path."""
        args = ["info", "--xml"]
        if revision:
            args += ["--revision", revision]
        entry = self._xml(*args, path).find("entry")
        if entry is None:
            raise SvnError(f"svn info returned no entry for {path}")
        return entry

    def log(
        self,
        paths: Sequence[str] = (".",),
        revisions: Sequence[str] = (),
        limit: Optional[int] = None,
        stop_on_copy: bool = False,
        include_message: bool = True,
        include_paths: bool = False,
    ) -> List[CommitInfo]:
        """Run ``svn log --xml`` and parse the entries."""
        args = ["log", "--xml"]
        if not include_message:
            args.append("--quiet")
        if stop_on_copy:
            args.append("--stop-on-copy")
        if include_paths:
            args.append("--verbose")
        if limit is not None:
            args.append(f"--limit={limit}")
        args += [f"--revision={r}" for r in revisions]
        args += list(paths)

        entries = []
        for node in self._xml(*args).findall("logentry"):
            msg = node.findtext("msg")
            entries.append(CommitInfo(
                revision=node.get("revision", ""),
                author=node.findtext("author") or "n/a",
                date=format_svn_date(node.findtext("date") or ""),
                message=msg.split("\n") if msg else [],
                paths=[
                    f"{p.get('action', '?')} {p.text}"
                    + (f" (from {p.get('copyfrom-path')}:{p.get('copyfrom-rev')})"
                       if p.get("copyfrom-path") else "")
                    for p in node.findall("paths/path")
                ],
            ))
        return entries

    def in_working_copy(self) -> bool:
        try:
            self.info(".")
            return True
        except SvnError:
            return False

    def working_copy_root(self) -> str:
        root = self.info(".").findtext("wc-info/wcroot-abspath")
        if not root:
            raise SvnError("This command must be run from within a subversion working copy directory")
        return root

    def current_revision(self) -> str:
        commit = self.info(".").find("commit")
        if commit is None or not commit.get("revision"):
            raise SvnError("Could not determine the working copy revision")
        return commit.get("revision")

    def resolve_revision(self, spec: str) -> Optional[str]:
        """Resolve a revision for the working copy path.

        Numeric revisions go through ``svn info`` which pins them to the
        last revision that changed the working copy path.  Symbolic
        revisions only produce a log entry when queried as a range, so we
        ask for ``REV:0`` limited to one entry.
        """
        try:
            if spec.isdigit():
                commit = self.info(".", revision=spec).find("commit")
                return commit.get("revision") if commit is not None else None
            if spec not in SYMBOLIC_REVISIONS:
                return None
            entries = self.log(revisions=[f"{spec}:0"], limit=1, include_message=False)
        except SvnError:
            return None
        return entries[0].revision if entries else None

    def log_range(self, rev1: str, rev2: str, stop_on_copy: bool = True) -> List[ExtantEntry]:
        entries = self.log(revisions=[f"{rev1}:{rev2}"], stop_on_copy=stop_on_copy)
        return [ExtantEntry(e.revision, e.first_line) for e in entries]

    def first_line(self, revision: str) -> str:
        entries = self.log(revisions=[revision], limit=1)
        return entries[0].first_line if entries else ""

    def commit_info(self, revision: str) -> CommitInfo:
        entries = self.log(revisions=[revision], limit=1, include_paths=True)
        if not entries:
            raise SvnError(f"No log entry for revision {revision}")
        return entries[0]

    def update(self, revision: str) -> None:
        self.run("update", f"--revision={revision}")

    def run_command(self, args: Sequence[str]) -> int:
        self.logger.debug(f"Running command: {' '.join(args)}")
        try:
            result = subprocess.run(list(args), cwd=self.cwd)
        except OSError as e:
            self.logger.error(f"Error running command: {e}")
            return 128
        return result.returncode
