"""The gator command line."""

from __future__ import annotations

import logging
import sys

from . import config, handlers
from .commands import Command, CommandError, State, execute_command
from .database import DatabaseError, connect

_COMMANDS = handlers  # importing the handlers registers the commands


def _fail(message: str) -> int:
    print(message, file=sys.stderr)
    return 1


def main(argv: list[str] | None = None) -> int:
    """Run one gator command; return the process exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(message)s",
        datefmt="%Y/%m/%d %H:%M:%S",
    )

    try:
        cfg = config.read()
    except (OSError, ValueError) as exc:
        return _fail(f"failed to read config: {exc}")

    try:
        db = connect(cfg.db_url)
    except DatabaseError as exc:
        return _fail(f"failed to open DB: {exc}")

    with db:
        if not args:
            return _fail("usage: gator <command> [args..]")
        state = State(config=cfg, db=db)
        try:
            execute_command(state, Command(name=args[0], args=args[1:]))
        except CommandError as exc:
            return _fail(str(exc))
    return 0


if __name__ == "__main__":
    sys.exit(main())