"""Support ``python -m gittrainer [play|verify|list]``."""

from __future__ import annotations

from .main import run


def main(argv: list[str] | None = None) -> int:
    """Run the CLI and return its exit code."""
    return run(argv)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
