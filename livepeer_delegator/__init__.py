"""Livepeer delegator analytics package."""

from typing import NoReturn

__version__ = "0.1.0"


def _entry_point() -> NoReturn:
    """Entry point for the livepeer-delegator script."""
    import sys

    from livepeer_delegator.cli import main

    raise SystemExit(main(sys.argv[1:]))
