"""Module entrypoint for `python -m cool_branch`."""

from __future__ import annotations

from .cli import app


def main() -> None:
    app(prog_name="cool-branch")


if __name__ == "__main__":
    main()
