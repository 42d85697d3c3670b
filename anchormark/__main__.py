"""Module entrypoint for ``python -m anchormark``.

All argument parsing and workspace setup happen in ``anchormark.cli``.
"""

from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())
