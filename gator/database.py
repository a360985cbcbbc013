"""SQLite storage for users, feeds, follows and posts."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, TypeVar
from uuid import UUID

from .models import Feed, FeedFollow, FeedFollowRow, FeedSummary, Post, PostWithFeed, User

T = TypeVar("T")

_SCHEMA = """
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
_FOLLOW_SELECT = """
SELECT ff.id, ff.created_at, ff.updated_at, ff.user_id, ff.feed_id,
       f.name AS feed_name, u.name AS user_name
FROM feed_follows ff
JOIN feeds f ON ff.feed_id = f.id
JOIN users u ON ff.user_id = u.id
"""


class DatabaseError(Exception):
    """A query failed."""


class NoRowsError(DatabaseError):
    """A query that must return a row returned none."""


class DuplicateError(DatabaseError):
    """An insert broke a uniqueness constraint."""


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except sqlite3.IntegrityError as exc:
        if "UNIQUE" in str(exc):
            raise DuplicateError(f"duplicate key value violates unique constraint ({exc})") from exc
        raise DatabaseError(str(exc)) from exc
    except sqlite3.Error as exc:
        raise DatabaseError(str(exc)) from exc


def _ts(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _opt_ts(value: datetime | None) -> str | None:
    return None if value is None else _ts(value)


def _dt(text: str) -> datetime:
    return datetime.fromisoformat(text)


def _opt_dt(text: str | None) -> datetime | None:
    return None if text is None else _dt(text)


def _user(row: sqlite3.Row) -> User:
    return User(
        id=UUID(row["id"]),
        created_at=_dt(row["created_at"]),
        updated_at=_dt(row["updated_at"]),
        name=row["name"],
    )


def _feed(row: sqlite3.Row) -> Feed:
    return Feed(
        id=UUID(row["id"]),
        created_at=_dt(row["created_at"]),
        updated_at=_dt(row["updated_at"]),
        name=row["name"],
        url=row["url"],
        user_id=UUID(row["user_id"]),
        last_fetched_at=_opt_dt(row["last_fetched_at"]),
    )


def _follow_row(row: sqlite3.Row) -> FeedFollowRow:
    return FeedFollowRow(
        id=UUID(row["id"]),
        created_at=_dt(row["created_at"]),
        updated_at=_dt(row["updated_at"]),
        user_id=UUID(row["user_id"]),
        feed_id=UUID(row["feed_id"]),
        feed_name=row["feed_name"],
        user_name=row["user_name"],
    )


def _post_with_feed(row: sqlite3.Row) -> PostWithFeed:
    return PostWithFeed(
        id=UUID(row["id"]),
        created_at=_dt(row["created_at"]),
        updated_at=_dt(row["updated_at"]),
        title=row["title"],
        url=row["url"],
        description=row["description"],
        published_at=_opt_dt(row["published_at"]),
        feed_id=UUID(row["feed_id"]),
        feed_name=row["feed_name"],
    )


def connect(url: str) -> "Queries":
    """Open the database named by ``url``: a path, ``:memory:`` or ``sqlite://<path>``."""
    target = url
    if "://" in url:
        scheme, _, rest = url.partition("://")
        if scheme.lower() not in ("sqlite", "sqlite3"):
            raise DatabaseError(f"unsupported database URL scheme: {scheme}")
        target = rest
    if not target:
        raise DatabaseError("database URL names no database")
    with _translate_errors():
        connection = sqlite3.connect(target, isolation_level=None)
    return Queries(connection)


class Queries:
    """The queries the application runs against its database."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection
        self._conn.row_factory = sqlite3.Row
        with _translate_errors():
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.executescript(_SCHEMA)

    def __enter__(self) -> "Queries":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()

    def _execute(self, sql: str, params: tuple = ()) -> None:
        with _translate_errors():
            self._conn.execute(sql, params)

    def _one(self, sql: str, params: tuple, convert: Callable[[sqlite3.Row], T]) -> T:
        with _translate_errors():
            row = self._conn.execute(sql, params).fetchone()
        if row is None:
            raise NoRowsError("no rows in result set")
        return convert(row)

    def _many(self, sql: str, params: tuple, convert: Callable[[sqlite3.Row], T]) -> list[T]:
        with _translate_errors():
            rows = self._conn.execute(sql, params).fetchall()
        return [convert(row) for row in rows]

    # users

    def create_user(self, user: User) -> User:
        self._execute(
            "INSERT INTO users (id, created_at, updated_at, name) VALUES (?, ?, ?, ?)",
            (str(user.id), _ts(user.created_at), _ts(user.updated_at), user.name),
        )
        return self._one(f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (str(user.id),), _user)

    def get_user(self, name: str) -> User:
        return self._one(f"SELECT {_USER_COLUMNS} FROM users WHERE name = ?", (name,), _user)

    def get_users(self) -> list[User]:
        return self._many(f"SELECT {_USER_COLUMNS} FROM users ORDER BY name", (), _user)

    def delete_all_users(self) -> None:
        self._execute("DELETE FROM users")

    # feeds

    def create_feed(self, feed: Feed) -> Feed:
        self._execute(
            "INSERT INTO feeds (id, created_at, updated_at, name, url, user_id) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                str(feed.id),
                _ts(feed.created_at),
                _ts(feed.updated_at),
                feed.name,
                feed.url,
                str(feed.user_id),
            ),
        )
        return self._one(f"SELECT {_FEED_COLUMNS} FROM feeds WHERE id = ?", (str(feed.id),), _feed)

    def get_feed_by_url(self, url: str) -> Feed:
        return self._one(f"SELECT {_FEED_COLUMNS} FROM feeds WHERE url = ?", (url,), _feed)

    def list_feeds(self) -> list[FeedSummary]:
        return self._many(
            "SELECT feeds.name AS feed_name, feeds.url AS feed_url, users.name AS user_name "
            "FROM feeds JOIN users ON feeds.user_id = users.id "
            "ORDER BY feeds.created_at DESC",
            (),
            lambda row: FeedSummary(row["feed_name"], row["feed_url"], row["user_name"]),
        )

    def get_next_feed_to_fetch(self) -> Feed:
        # NULLs sort first in ascending order, so unfetched feeds come first.
        return self._one(
            f"SELECT {_FEED_COLUMNS} FROM feeds ORDER BY last_fetched_at LIMIT 1", (), _feed
        )

    def mark_feed_fetched(self, feed_id: UUID) -> None:
        now = _ts(datetime.now(timezone.utc))
        self._execute(
            "UPDATE feeds SET last_fetched_at = ?, updated_at = ? WHERE id = ?",
            (now, now, str(feed_id)),
        )

    # follows

    def create_feed_follow(self, follow: FeedFollow) -> FeedFollowRow:
        self._execute(
            "INSERT INTO feed_follows (id, created_at, updated_at, user_id, feed_id) "
            "VALUES (?, ?, ?, ?, ?)",
            (
                str(follow.id),
                _ts(follow.created_at),
                _ts(follow.updated_at),
                str(follow.user_id),
                str(follow.feed_id),
            ),
        )
        return self._one(_FOLLOW_SELECT + "WHERE ff.id = ?", (str(follow.id),), _follow_row)

    def get_feed_follows_for_user(self, user_id: UUID) -> list[FeedFollowRow]:
        return self._many(_FOLLOW_SELECT + "WHERE ff.user_id = ?", (str(user_id),), _follow_row)

    def delete_feed_follow_by_user_and_url(self, user_id: UUID, url: str) -> None:
        self._execute(
            "DELETE FROM feed_follows WHERE feed_follows.user_id = ? "
            "AND feed_follows.feed_id = (SELECT id FROM feeds WHERE url = ?)",
            (str(user_id), url),
        )

    # posts

    def create_post(self, post: Post) -> None:
        """Store ``post``; a post whose URL is already stored is skipped."""
        self._execute(
            "INSERT INTO posts (id, created_at, updated_at, title, url, description, "
            "published_at, feed_id) VALUES (?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT (url) DO NOTHING",
            (
                str(post.id),
                _ts(post.created_at),
                _ts(post.updated_at),
                post.title,
                post.url,
                post.description,
                _opt_ts(post.published_at),
                str(post.feed_id),
            ),
        )

    def get_posts_for_user(self, user_id: UUID, limit: int) -> list[PostWithFeed]:
        """Newest posts from the feeds ``user_id`` follows, undated posts first."""
        if limit < 0:
            raise DatabaseError("LIMIT must not be negative")
        return self._many(
            "SELECT posts.id, posts.created_at, posts.updated_at, posts.title, posts.url, "
            "posts.description, posts.published_at, posts.feed_id, feeds.name AS feed_name "
            "FROM posts "
            "JOIN feed_follows ON feed_follows.feed_id = posts.feed_id "
            "JOIN feeds ON posts.feed_id = feeds.id "
            "WHERE feed_follows.user_id = ? "
            "ORDER BY posts.published_at IS NULL DESC, posts.published_at DESC "
            "LIMIT ?",
            (str(user_id), limit),
            _post_with_feed,
        )