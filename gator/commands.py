"""Command objects, shared state and the command registry."""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from typing import Callable

from gator.config import Config
from gator.database import Queries
from gator.models import User


@dataclass
class Command:
    name: str
    args: list[str] = field(default_factory=list)


@dataclass
class State:
    queries: Queries
    cfg: Config


class CommandError(Exception):
    """A command failed or was used wrongly."""


Handler = Callable[[State, Command], None]
UserHandler = Callable[[State, Command, User], None]


class CommandRegistry:
    """Maps command names to their handlers."""

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}

    def register(self, name: str, handler: Handler) -> None:
        self._handlers[name] = handler

    def run(self, state: State, cmd: Command) -> None:
        handler = self._handlers.get(cmd.name)
        if handler is None:
            raise CommandError("command not found")
        handler(state, cmd)


def logged_in(handler: UserHandler) -> Handler:
    """Wrap ``handler`` so it receives the current user from the configuration."""

    @functools.wraps(handler)
    def wrapper(state: State, cmd: Command) -> None:
        user = state.queries.get_user(state.cfg.current_user_name)
        handler(state, cmd, user)

    return wrapper