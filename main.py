"""Launcher for running the CLI from a source checkout: `python main.py run-action ...`."""
import sys

from actions_runner.cli import main

if __name__ == "__main__":
    sys.exit(main())
