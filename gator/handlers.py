"""Handlers for every command."""

from __future__ import annotations

import logging
import re
import sqlite3
import time
from datetime import datetime, timedelta
from typing import Callable, Optional

from gator.commands import Command, CommandError, State
from gator.database import NoRowsError, Queries
from gator.models import Feed, User, new_id, utc_now
from gator.rss import RSSFeed, fetch_feed

log = logging.getLogger("gator")

SEPARATOR = "====================================="

FeedFetcher = Callable[[str], RSSFeed]

_UNIT_NS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60_000_000_000,
    "h": 3_600_000_000_000,
}
_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_INTEGER = re.compile(r"[+-]?\d+")


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``1m30s`` or ``500ms``."""
    rest = text
    sign = 1
    if rest[:1] in "+-" and rest:
        sign = -1 if rest[0] == "-" else 1
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ValueError(f"invalid duration {text!r}")
    total_ns = 0.0
    pos = 0
    while pos < len(rest):
        match = _DURATION_PART.match(rest, pos)
        if match is None:
            raise ValueError(f"invalid duration {text!r}")
        total_ns += float(match.group(1)) * _UNIT_NS[match.group(2)]
        pos = match.end()
    return timedelta(microseconds=sign * total_ns / 1000)


def parse_pub_date(text: str) -> Optional[datetime]:
    """Parse an RFC 1123 date with numeric zone; None when it does not match."""
    try:
        return datetime.strptime(text, "%a, %d %b %Y %H:%M:%S %z")
    except ValueError:
        return None


def handler_agg(state: State, cmd: Command) -> None:
    if not 1 <= len(cmd.args) <= 2:
        raise CommandError(f"usage: {cmd.name} <time_between_reqs>")
    try:
        interval = parse_duration(cmd.args[0])
    except ValueError as exc:
        raise CommandError(f"couldn't parse time duration: {exc}") from exc
    if interval <= timedelta(0):
        raise CommandError("time between requests must be positive")
    log.info("Collecting feeds every %s...", cmd.args[0])
    while True:
        scrape_feeds(state)
        time.sleep(interval.total_seconds())


def scrape_feeds(state: State, fetch: FeedFetcher = fetch_feed) -> None:
    try:
        feed = state.queries.get_next_feed_to_fetch()
    except NoRowsError as exc:
        log.info("Couldn't get next feed to fetch %s", exc)
        return
    log.info("Found a feed to fetch!")
    scrape_feed(state.queries, feed, fetch)


def scrape_feed(queries: Queries, feed: Feed, fetch: FeedFetcher = fetch_feed) -> None:
    try:
        queries.mark_feed_fetched(feed.id)
    except (NoRowsError, sqlite3.Error) as exc:
        log.info("Couldn't mark feed %s as fetched: %s", feed.name, exc)
        return
    try:
        data = fetch(feed.url)
    except Exception as exc:  # network and parse failures alike
        log.info("Couldn't collect feed %s: %s", feed.name, exc)
        return
    for item in data.items:
        now = utc_now()
        try:
            queries.create_post(
                new_id(), now, now, item.title, item.link, item.description,
                parse_pub_date(item.pub_date), feed.id,
            )
        except sqlite3.IntegrityError as exc:
            if "UNIQUE constraint failed" not in str(exc):
                log.info("Couldn't create post: %s", exc)
        except sqlite3.Error as exc:
            log.info("Couldn't create post: %s", exc)
    log.info("Feed %s collected, %d posts found", feed.name, len(data.items))


def _format_day(value: Optional[datetime]) -> str:
    if value is None:
        return "Mon Jan 1"
    return f"{value:%a %b} {value.day}"


def handler_browse(state: State, cmd: Command, user: User) -> None:
    limit = 2
    if len(cmd.args) == 1:
        if not _INTEGER.fullmatch(cmd.args[0]):
            raise CommandError(f"invalid limit {cmd.args[0]!r}")
        limit = int(cmd.args[0])
    try:
        posts = state.queries.get_posts_for_user(user.id, limit)
    except (ValueError, sqlite3.Error) as exc:
        raise CommandError(f"couldn't get posts for user: {exc}") from exc
    print(f"Found {len(posts)} posts for user {user.name}:")
    for post in posts:
        print(f"{_format_day(post.published_at)} from {user.name}")
        print(f"--- {post.title} ---")
        print(f"    {post.description or ''}")
        print(f"Link: {post.url}")
        print(SEPARATOR)


def _print_feed(feed: Feed, user: User) -> None:
    print(f" * ID: \t\t\t{feed.id}")
    print(f" * Created At: \t{feed.created_at}")
    print(f" * Updated At: \t{feed.updated_at}")
    print(f" * Name: \t\t{feed.name}")
    print(f" * URL: \t\t{feed.url}")
    print(f" * User: \t\t{user.name}")


def _print_feed_follow(user_name: str, feed_name: str) -> None:
    print(f" * User: {user_name}")
    print(f" * Feed: {feed_name}")
    print(SEPARATOR)


def handler_add_feed(state: State, cmd: Command, user: User) -> None:
    if len(cmd.args) != 2:
        raise CommandError(f"usage: {cmd.name} <name> <url>")
    name, url = cmd.args
    now = utc_now()
    try:
        feed = state.queries.create_feed(new_id(), now, now, name, url, user.id)
    except sqlite3.Error as exc:
        raise CommandError(f"couldn't create feed: {exc}") from exc
    try:
        follow = state.queries.create_feed_follow(
            feed.id, feed.created_at, feed.updated_at, user.id, feed.id
        )
    except (sqlite3.Error, NoRowsError) as exc:
        raise CommandError(f"couldn't create feed follow: {exc}") from exc
    print("Feed created successfully:")
    _print_feed(feed, user)
    print()
    print("Feed followed successfully:")
    _print_feed_follow(follow.user_name, follow.feed_name)
    print(SEPARATOR)


def handler_list_feeds(state: State, cmd: Command) -> None:
    feeds = state.queries.get_feeds()
    if not feeds:
        print("No feeds found.")
    for feed in feeds:
        try:
            user = state.queries.get_user_by_id(feed.user_id)
        except NoRowsError as exc:
            raise CommandError(f"couldn't retrieve user for feed {feed.id}: {exc}") from exc
        _print_feed(feed, user)
        print(SEPARATOR)


def _feed_by_url(state: State, url: str) -> Feed:
    try:
        return state.queries.get_feed_by_url(url)
    except NoRowsError as exc:
        raise CommandError(f"couldn't get feed: {exc}") from exc


def handler_follow(state: State, cmd: Command, user: User) -> None:
    if len(cmd.args) != 1:
        raise CommandError(f"usage: {cmd.name} <feed_url>")
    feed = _feed_by_url(state, cmd.args[0])
    try:
        row = state.queries.create_feed_follow(
            new_id(), feed.created_at, feed.updated_at, user.id, feed.id
        )
    except (sqlite3.Error, NoRowsError) as exc:
        raise CommandError(f"couldn't follow feed: {exc}") from exc
    print("Followed feed:")
    _print_feed_follow(row.user_name, row.feed_name)


def handler_list_feed_follows(state: State, cmd: Command, user: User) -> None:
    follows = state.queries.get_feed_follows_for_user(user.id)
    if not follows:
        print("No feed follows found.")
        return
    print(f"Feed follows for user {user.name}:")
    for follow in follows:
        print(f" * {follow.feed_name}")


def handler_unfollow(state: State, cmd: Command, user: User) -> None:
    if len(cmd.args) != 1:
        raise CommandError(f"usage: {cmd.name} <feed_url>")
    feed = _feed_by_url(state, cmd.args[0])
    try:
        state.queries.delete_feed_follow(user.id, feed.id)
    except sqlite3.Error as exc:
        raise CommandError(f"couldn't unfollow feed: {exc}") from exc
    print(f"{feed.name} unfollowed successfully.")


def handler_reset(state: State, cmd: Command) -> None:
    try:
        state.queries.delete_users()
    except sqlite3.Error as exc:
        raise CommandError(f"couldn't reset users: {exc}") from exc
    print("All users deleted successfully!")


def _set_user(state: State, name: str) -> None:
    try:
        state.cfg.set_user(name)
    except OSError as exc:
        raise CommandError(f"couldn't set current user: {exc}") from exc


def handler_register(state: State, cmd: Command) -> None:
    if len(cmd.args) != 1:
        raise CommandError(f"usage: {cmd.name} <name>")
    now = utc_now()
    try:
        user = state.queries.create_user(new_id(), now, now, cmd.args[0])
    except sqlite3.Error as exc:
        raise CommandError(f"couldn't create user: {exc}") from exc
    _set_user(state, user.name)
    print("User created successfully!")
    print(f" * ID: \t\t\t{user.id}")
    print(f" * Name: \t\t{user.name}")


def handler_login(state: State, cmd: Command) -> None:
    if len(cmd.args) != 1:
        raise CommandError(f"usage: {cmd.name} <name>")
    name = cmd.args[0]
    try:
        state.queries.get_user(name)
    except NoRowsError as exc:
        raise CommandError(f"couldn't find user: {exc}") from exc
    _set_user(state, name)
    print("Logged in successfully!")


def handler_users(state: State, cmd: Command) -> None:
    if cmd.args:
        raise CommandError(f"usage: {cmd.name}")
    users = state.queries.get_users()
    if not users:
        print("No users found.")
        return
    for user in users:
        line = f" * {user.name}"
        if user.name == state.cfg.current_user_name:
            line += " (current)"
        print(line)