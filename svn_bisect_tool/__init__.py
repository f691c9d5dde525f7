"""
SVN Bisect Tool - A session-based bisect for Subversion working copies.

This tool helps find the earliest revision in a linear history that
introduced a regression, either interactively or by driving a test command.
"""

__version__ = "0.1.0"
__author__ = "Shilei Tian"

PROG_NAME = "svn-bisect-tool"
