"""
Module entrypoint for the BookSwap CLI.

This file exists so that `python -m bookswap ...` works consistently in all
environments, including when the console-script wrapper is not installed.
"""

from __future__ import annotations

from bookswap.cli import main


def _run() -> None:
    """Execute the BookSwap command line interface and exit with its status."""
    raise SystemExit(main())


if __name__ == "__main__":
    _run()
