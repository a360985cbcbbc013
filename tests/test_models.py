from datetime import datetime, timedelta, timezone
from uuid import uuid4

from gator.models import Feed, FeedFollow, User

NOW = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def test_user_create_sets_fields():
    user = User.create("alice", NOW)
    assert user.name == "alice"
    assert user.created_at == NOW
    assert user.updated_at == NOW
    assert user.id.version == 4


def test_user_create_gives_unique_ids():
    assert User.create("a", NOW).id != User.create("a", NOW).id or False
    ids = {User.create("a", NOW).id for _ in range(20)}
    assert len(ids) == 20


def test_user_create_default_time_is_utc():
    user = User.create("alice")
    assert user.created_at.utcoffset() == timedelta(0)
    assert user.created_at == user.updated_at


def test_feed_create_is_unfetched():
    owner = uuid4()
    feed = Feed.create("Blog", "https://blog.example.com/rss", owner, NOW)
    assert feed.last_fetched_at is None
    assert feed.user_id == owner
    assert (feed.name, feed.url) == ("Blog", "https://blog.example.com/rss")
    assert feed.created_at == feed.updated_at == NOW


def test_feed_follow_create_links_ids():
    user_id, feed_id = uuid4(), uuid4()
    follow = FeedFollow.create(user_id, feed_id, NOW)
    assert (follow.user_id, follow.feed_id) == (user_id, feed_id)
    assert follow.created_at == NOW
    assert follow.id not in (user_id, feed_id)