"""Records stored in the gator database."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID, uuid4


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class User:
    id: UUID
    created_at: datetime
    updated_at: datetime
    name: str

    @classmethod
    def create(cls, name: str, now: datetime | None = None) -> "User":
        """Build a new user with a fresh id."""
        now = now or _utcnow()
        return cls(id=uuid4(), created_at=now, updated_at=now, name=name)


@dataclass(frozen=True)
class Feed:
    id: UUID
    created_at: datetime
    updated_at: datetime
    name: str
    url: str
    user_id: UUID
    last_fetched_at: datetime | None = None

    @classmethod
    def create(cls, name: str, url: str, user_id: UUID, now: datetime | None = None) -> "Feed":
        """Build a new, never fetched feed with a fresh id."""
        now = now or _utcnow()
        return cls(
            id=uuid4(),
            created_at=now,
            updated_at=now,
            name=name,
            url=url,
            user_id=user_id,
            last_fetched_at=None,
        )


@dataclass(frozen=True)
class FeedFollow:
    id: UUID
    created_at: datetime
    updated_at: datetime
    user_id: UUID
    feed_id: UUID

    @classmethod
    def create(cls, user_id: UUID, feed_id: UUID, now: datetime | None = None) -> "FeedFollow":
        """Build a new follow record with a fresh id."""
        now = now or _utcnow()
        return cls(id=uuid4(), created_at=now, updated_at=now, user_id=user_id, feed_id=feed_id)


@dataclass(frozen=True)
class Post:
    id: UUID
    created_at: datetime
    updated_at: datetime
    title: str
    url: str
    description: str | None
    published_at: datetime | None
    feed_id: UUID


@dataclass(frozen=True)
class FeedFollowRow:
    """A follow record together with the names of its feed and user."""

    id: UUID
    created_at: datetime
    updated_at: datetime
    user_id: UUID
    feed_id: UUID
    feed_name: str
    user_name: str


@dataclass(frozen=True)
class FeedSummary:
    """A feed's name and URL with the name of the user who added it."""

    feed_name: str
    feed_url: str
    user_name: str


@dataclass(frozen=True)
class PostWithFeed:
    """A post together with the name of its feed."""

    id: UUID
    created_at: datetime
    updated_at: datetime
    title: str
    url: str
    description: str | None
    published_at: datetime | None
    feed_id: UUID
    feed_name: str