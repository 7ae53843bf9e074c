"""Package entry point for ``python -m solar_funnel``."""
from __future__ import annotations

import sys

from . import cli


def main(argv: list[str] | None = None) -> int:
    """Launch the funnel, opening a window unless ``--console`` is given."""

    if argv is None:
        argv = sys.argv[1:]
    return cli.main(argv, prog="python -m solar_funnel")


if __name__ == "__main__":  # pragma: no cover - module entry point
    sys.exit(main())
