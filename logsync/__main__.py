"""Entry point module for running logsync via `python -m logsync`."""

import sys

from logsync.cli import main

if __name__ == "__main__":
    sys.exit(main())
