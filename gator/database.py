"""SQLite storage for users, feeds, follows and posts."""

from __future__ import annotations

import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from gator.models import Feed, FeedFollowRow, PostRow, User, utc_now

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    name TEXT NOT NULL UNIQUE
);
CREATE TABLE IF NOT EXISTS feeds (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    name TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    last_fetched_at TEXT
);
CREATE TABLE IF NOT EXISTS feed_follows (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    feed_id TEXT NOT NULL REFERENCES feeds(id) ON DELETE CASCADE,
    UNIQUE (user_id, feed_id)
);
CREATE TABLE IF NOT EXISTS posts (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    title TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    description TEXT,
    published_at TEXT,
    feed_id TEXT NOT NULL REFERENCES feeds(id) ON DELETE CASCADE
);
"""

_USER_COLUMNS = "id, created_at, updated_at, name"
_FEED_COLUMNS = "id, created_at, updated_at, name, url, user_id, last_fetched_at"


class NoRowsError(LookupError):
    """Raised when a query that expects exactly one row finds none."""


def open_database(url: str) -> sqlite3.Connection:
    """Open the database named by ``url`` and make sure its tables exist.

    ``url`` is a file path, ``:memory:``, or either prefixed with ``sqlite://``.
    """
    if not url:
        raise ValueError("empty database url")
    path = url[len("sqlite://"):] if url.startswith("sqlite://") else url
    if not path:
        path = ":memory:"
    conn = sqlite3.connect(path, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    create_schema(conn)
    return conn


def create_schema(conn: sqlite3.Connection) -> None:
    """Create the tables if they are missing."""
    conn.executescript(SCHEMA)


def _ts(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _opt_ts(value: Optional[datetime]) -> Optional[str]:
    return None if value is None else _ts(value)


def _dt(text: Optional[str]) -> Optional[datetime]:
    return None if text is None else datetime.fromisoformat(text)


def _user(row: sqlite3.Row) -> User:
    return User(
        id=uuid.UUID(row["id"]),
        created_at=_dt(row["created_at"]),
        updated_at=_dt(row["updated_at"]),
        name=row["name"],
    )


def _feed(row: sqlite3.Row) -> Feed:
    return Feed(
        id=uuid.UUID(row["id"]),
        created_at=_dt(row["created_at"]),
        updated_at=_dt(row["updated_at"]),
        name=row["name"],
        url=row["url"],
        user_id=uuid.UUID(row["user_id"]),
        last_fetched_at=_dt(row["last_fetched_at"]),
    )


def _follow_row(row: sqlite3.Row) -> FeedFollowRow:
    return FeedFollowRow(
        id=uuid.UUID(row["id"]),
        created_at=_dt(row["created_at"]),
        updated_at=_dt(row["updated_at"]),
        user_id=uuid.UUID(row["user_id"]),
        feed_id=uuid.UUID(row["feed_id"]),
        feed_name=row["feed_name"],
        user_name=row["user_name"],
    )


def _post_row(row: sqlite3.Row) -> PostRow:
    return PostRow(
        id=uuid.UUID(row["id"]),
        created_at=_dt(row["created_at"]),
        updated_at=_dt(row["updated_at"]),
        title=row["title"],
        url=row["url"],
        description=row["description"],
        published_at=_dt(row["published_at"]),
        feed_id=uuid.UUID(row["feed_id"]),
        feed_name=row["feed_name"],
    )


class Queries:
    """Typed queries over an open connection."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        conn.row_factory = sqlite3.Row
        self._conn = conn

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    @contextmanager
    def transaction(self) -> Iterator["Queries"]:
        """Run the enclosed queries atomically; roll back on any exception."""
        name = f"sp_{uuid.uuid4().hex}"
        self._conn.execute(f"SAVEPOINT {name}")
        try:
            yield self
        except BaseException:
            self._conn.execute(f"ROLLBACK TO {name}")
            self._conn.execute(f"RELEASE {name}")
            raise
        self._conn.execute(f"RELEASE {name}")

    def _one(self, sql: str, params: tuple, what: str) -> sqlite3.Row:
        row = self._conn.execute(sql, params).fetchone()
        if row is None:
            raise NoRowsError(f"no {what} found")
        return row

    # users

    def create_user(self, id, created_at, updated_at, name) -> User:
        with self.transaction():
            self._conn.execute(
                "INSERT INTO users (id, created_at, updated_at, name) VALUES (?, ?, ?, ?)",
                (str(id), _ts(created_at), _ts(updated_at), name),
            )
            return self.get_user_by_id(id)

    def delete_users(self) -> None:
        self._conn.execute("DELETE FROM users")

    def get_user(self, name) -> User:
        row = self._one(
            f"SELECT {_USER_COLUMNS} FROM users WHERE name = ?", (name,), "user"
        )
        return _user(row)

    def get_user_by_id(self, id) -> User:
        row = self._one(
            f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (str(id),), "user"
        )
        return _user(row)

    def get_users(self) -> list[User]:
        rows = self._conn.execute(f"SELECT {_USER_COLUMNS} FROM users")
        return [_user(row) for row in rows]

    # feeds

    def create_feed(self, id, created_at, updated_at, name, url, user_id) -> Feed:
        with self.transaction():
            self._conn.execute(
                "INSERT INTO feeds (id, created_at, updated_at, name, url, user_id) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (str(id), _ts(created_at), _ts(updated_at), name, url, str(user_id)),
            )
            return self._feed_by_id(id)

    def _feed_by_id(self, id) -> Feed:
        row = self._one(
            f"SELECT {_FEED_COLUMNS} FROM feeds WHERE id = ?", (str(id),), "feed"
        )
        return _feed(row)

    def get_feed_by_url(self, url) -> Feed:
        row = self._one(
            f"SELECT {_FEED_COLUMNS} FROM feeds WHERE url = ?", (url,), "feed"
        )
        return _feed(row)

    def get_feeds(self) -> list[Feed]:
        rows = self._conn.execute(f"SELECT {_FEED_COLUMNS} FROM feeds")
        return [_feed(row) for row in rows]

    def get_next_feed_to_fetch(self) -> Feed:
        row = self._one(
            f"SELECT {_FEED_COLUMNS} FROM feeds "
            "ORDER BY last_fetched_at IS NOT NULL, last_fetched_at ASC LIMIT 1",
            (),
            "feed",
        )
        return _feed(row)

    def mark_feed_fetched(self, id) -> Feed:
        now = _ts(utc_now())
        with self.transaction():
            cursor = self._conn.execute(
                "UPDATE feeds SET last_fetched_at = ?, updated_at = ? WHERE id = ?",
                (now, now, str(id)),
            )
            if cursor.rowcount == 0:
                raise NoRowsError("no feed found")
            return self._feed_by_id(id)

    # feed follows

    _FOLLOW_SELECT = (
        "SELECT feed_follows.id, feed_follows.created_at, feed_follows.updated_at, "
        "feed_follows.user_id, feed_follows.feed_id, "
        "feeds.name AS feed_name, users.name AS user_name "
        "FROM feed_follows "
        "INNER JOIN feeds ON feed_follows.feed_id = feeds.id "
        "INNER JOIN users ON feed_follows.user_id = users.id "
    )

    def create_feed_follow(
        self, id, created_at, updated_at, user_id, feed_id
    ) -> FeedFollowRow:
        with self.transaction():
            self._conn.execute(
                "INSERT INTO feed_follows (id, created_at, updated_at, user_id, feed_id) "
                "VALUES (?, ?, ?, ?, ?)",
                (str(id), _ts(created_at), _ts(updated_at), str(user_id), str(feed_id)),
            )
            row = self._one(
                self._FOLLOW_SELECT + "WHERE feed_follows.id = ?",
                (str(id),),
                "feed follow",
            )
            return _follow_row(row)

    def delete_feed_follow(self, user_id, feed_id) -> None:
        self._conn.execute(
            "DELETE FROM feed_follows WHERE user_id = ? AND feed_id = ?",
            (str(user_id), str(feed_id)),
        )

    def get_feed_follows_for_user(self, user_id) -> list[FeedFollowRow]:
        rows = self._conn.execute(
            self._FOLLOW_SELECT + "WHERE feed_follows.user_id = ?", (str(user_id),)
        )
        return [_follow_row(row) for row in rows]

    # posts

    def create_post(
        self, id, created_at, updated_at, title, url, description, published_at, feed_id
    ) -> PostRow:
        with self.transaction():
            self._conn.execute(
                "INSERT INTO posts (id, created_at, updated_at, title, url, "
                "description, published_at, feed_id) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    str(id),
                    _ts(created_at),
                    _ts(updated_at),
                    title,
                    url,
                    description,
                    _opt_ts(published_at),
                    str(feed_id),
                ),
            )
            row = self._one(
                "SELECT posts.id, posts.created_at, posts.updated_at, posts.title, "
                "posts.url, posts.description, posts.published_at, posts.feed_id, "
                "feeds.name AS feed_name FROM posts "
                "JOIN feeds ON posts.feed_id = feeds.id WHERE posts.id = ?",
                (str(id),),
                "post",
            )
            return _post_row(row)

    def get_posts_for_user(self, user_id, limit) -> list[PostRow]:
        if limit < 0:
            raise ValueError("LIMIT must not be negative")
        rows = self._conn.execute(
            "SELECT posts.id, posts.created_at, posts.updated_at, posts.title, "
            "posts.url, posts.description, posts.published_at, posts.feed_id, "
            "feeds.name AS feed_name FROM posts "
            "JOIN feed_follows ON feed_follows.feed_id = posts.feed_id "
            "JOIN feeds ON posts.feed_id = feeds.id "
            "WHERE feed_follows.user_id = ? "
            "ORDER BY posts.published_at IS NULL DESC, posts.published_at DESC "
            "LIMIT ?",
            (str(user_id), int(limit)),
        )
        return [_post_row(row) for row in rows]