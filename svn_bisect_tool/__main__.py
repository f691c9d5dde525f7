"""Allow running the tool as ``python -m svn_bisect_tool <command>``."""

import sys

from svn_bisect_tool.cli import main

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
