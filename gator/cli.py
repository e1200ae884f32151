"""Command-line entry point."""

from __future__ import annotations

import logging
import sqlite3
import sys

from gator import config, handlers
from gator.commands import Command, CommandError, CommandRegistry, State, logged_in
from gator.database import NoRowsError, Queries, open_database

log = logging.getLogger("gator")


def build_registry() -> CommandRegistry:
    """Return a registry holding every command."""
    reg = CommandRegistry()
    reg.register("login", handlers.handler_login)
    reg.register("register", handlers.handler_register)
    reg.register("reset", handlers.handler_reset)
    reg.register("users", handlers.handler_users)
    reg.register("agg", handlers.handler_agg)
    reg.register("addfeed", logged_in(handlers.handler_add_feed))
    reg.register("feeds", handlers.handler_list_feeds)
    reg.register("follow", logged_in(handlers.handler_follow))
    reg.register("following", logged_in(handlers.handler_list_feed_follows))
    reg.register("unfollow", logged_in(handlers.handler_unfollow))
    reg.register("browse", logged_in(handlers.handler_browse))
    return reg


def main(argv: list[str] | None = None) -> int:
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        cfg = config.read()
    except (OSError, ValueError) as exc:
        log.error("error reading config: %s", exc)
        return 1
    try:
        conn = open_database(cfg.db_url)
    except (ValueError, sqlite3.Error) as exc:
        log.error("error connecting to database: %s", exc)
        return 1
    try:
        if not args:
            log.error("Usage: cli <command> [args...]")
            return 1
        state = State(Queries(conn), cfg)
        try:
            build_registry().run(state, Command(args[0], args[1:]))
        except (CommandError, NoRowsError, sqlite3.Error, OSError, ValueError) as exc:
            log.error("%s", exc)
            return 1
        return 0
    finally:
        conn.close()


if __name__ == "__main__":
    sys.exit(main())