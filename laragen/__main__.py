# File: laragen/__main__.py
"""
laragen — Module entry point.

Allows running the generator directly via::

    python -m laragen generate schema.json --project-root ./my-app

This module simply delegates to the CLI entry point defined in ``laragen.cli``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from laragen.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
