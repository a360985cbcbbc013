"""Command registry, application state and login checks."""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from typing import Callable

from .config import Config
from .database import DatabaseError, Queries
from .models import User

NO_USER = "unknown"


class CommandError(Exception):
    """A command could not be carried out."""


@dataclass
class State:
    """What every command handler works with."""

    config: Config
    db: Queries


@dataclass
class Command:
    """A command name and its arguments as given on the command line."""

    name: str
    args: list[str] = field(default_factory=list)


Handler = Callable[[State, Command], None]
UserHandler = Callable[[State, Command, User], None]

_registry: dict[str, Handler] = {}


def register_command(name: str, handler: Handler) -> None:
    """Make ``handler`` run for the command ``name``."""
    _registry[name] = handler


def execute_command(state: State, command: Command) -> None:
    """Run the handler registered for ``command``."""
    try:
        handler = _registry[command.name]
    except KeyError:
        raise CommandError(f"unknown command: {command.name}") from None
    handler(state, command)


def current_user(state: State) -> User:
    """Return the user named in the configuration as logged in."""
    name = state.config.current_user_name
    if name == NO_USER:
        raise CommandError("no user is currently logged in")
    try:
        return state.db.get_user(name)
    except DatabaseError as exc:
        raise CommandError(
            f"failed to retrieve current user from database: {exc}"
        ) from exc


def logged_in(handler: UserHandler) -> Handler:
    """Wrap ``handler`` so that it runs only with a logged-in user."""

    @functools.wraps(handler)
    def wrapper(state: State, command: Command) -> None:
        try:
            user = current_user(state)
        except CommandError as exc:
            raise CommandError("must be logged in to use this command") from exc
        handler(state, command, user)

    return wrapper