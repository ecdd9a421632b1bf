"""Reward period analysis for Energy Web X worker node operators."""

from typing import NoReturn

__version__ = "0.1.0"


def _entry_point() -> NoReturn:
    """Entry point for the ewx-rewards script."""
    import sys

    from ewx_rewards.cli import main

    raise SystemExit(main(sys.argv[1:]))
