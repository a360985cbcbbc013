"""The gator commands."""

from __future__ import annotations

import logging
import re
import time
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable

from .commands import NO_USER, Command, CommandError, State, logged_in, register_command
from .database import DatabaseError, NoRowsError, Queries
from .feeds import FeedError, RSSFeed, fetch_feed
from .models import Feed, FeedFollow, Post, User

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], RSSFeed]

DEFAULT_BROWSE_LIMIT = 2
_SEPARATOR = "====================================="

_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

_UNIT_NS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_MAX_NS = 2**63 - 1

_RFC1123Z = re.compile(
    r"(Mon|Tue|Wed|Thu|Fri|Sat|Sun), (\d{2}) ([A-Z][a-z]{2}) (\d{4}) "
    r"(\d{2}):(\d{2}):(\d{2})(?:[.,](\d+))? ([+-])(\d{2})(\d{2})"
)
_INT = re.compile(r"[+-]?\d+")


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``10s``, ``1m30s`` or ``1.5h``."""
    error = ValueError(f'time: invalid duration "{text}"')
    rest = text
    negative = False
    if rest and rest[0] in "+-":
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise error
    total = Decimal(0)
    pos = 0
    while pos < len(rest):
        match = _DURATION_PART.match(rest, pos)
        if match is None:
            raise error
        total += Decimal(match.group(1)) * _UNIT_NS[match.group(2)]
        pos = match.end()
    nanoseconds = int(total)
    if nanoseconds > _MAX_NS:
        raise error
    span = timedelta(microseconds=nanoseconds // 1000)
    return -span if negative else span


def _fraction(value: int, size: int) -> str:
    whole, rest = divmod(value, size)
    if not rest:
        return str(whole)
    digits = str(rest).rjust(len(str(size)) - 1, "0").rstrip("0")
    return f"{whole}.{digits}"


def _format_duration(span: timedelta) -> str:
    ns = (span // timedelta(microseconds=1)) * 1000
    if ns == 0:
        return "0s"
    sign = "-" if ns < 0 else ""
    ns = abs(ns)
    if ns < 1_000:
        return f"{sign}{ns}ns"
    if ns < 1_000_000:
        return f"{sign}{_fraction(ns, 1_000)}µs"
    if ns < 1_000_000_000:
        return f"{sign}{_fraction(ns, 1_000_000)}ms"
    hours, ns = divmod(ns, _UNIT_NS["h"])
    minutes, ns = divmod(ns, _UNIT_NS["m"])
    seconds = _fraction(ns, 1_000_000_000) + "s"
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}"
    if minutes:
        return f"{sign}{minutes}m{seconds}"
    return sign + seconds


def parse_pub_date(text: str) -> datetime | None:
    """Parse an RFC 1123 date with a numeric zone; ``None`` if it is not one."""
    match = _RFC1123Z.fullmatch(text)
    if match is None or match.group(3) not in _MONTHS:
        return None
    _, day, month, year, hour, minute, second, fraction, sign, off_h, off_m = match.groups()
    try:
        offset = timedelta(hours=int(off_h), minutes=int(off_m))
        zone = timezone(-offset if sign == "-" else offset)
        micro = int((fraction or "0")[:6].ljust(6, "0"))
        return datetime(
            int(year), _MONTHS.index(month) + 1, int(day),
            int(hour), int(minute), int(second), micro, tzinfo=zone,
        )
    except ValueError:
        return None


def _short_date(moment: datetime | None) -> str:
    moment = moment or datetime(1, 1, 1)
    return f"{_WEEKDAYS[moment.weekday()]} {_MONTHS[moment.month - 1]} {moment.day}"


def add_feed(state: State, command: Command, user: User) -> None:
    """Add a feed owned by the current user and follow it."""
    if len(command.args) != 2:
        raise CommandError("usage: gator addfeed <name> <url>")
    name = state.config.current_user_name
    if name == NO_USER:
        raise CommandError("no user currently logged in")
    try:
        user = state.db.get_user(name)
    except DatabaseError as exc:
        raise CommandError(f"failed to get user: {exc}") from exc

    now = datetime.now(timezone.utc)
    feed_name, feed_url = command.args
    try:
        feed = state.db.create_feed(Feed.create(feed_name, feed_url, user.id, now))
    except DatabaseError as exc:
        raise CommandError(f"failed to create feed: {exc}") from exc

    print(
        f"Feed created:\nID: {feed.id}\nName: {feed.name}\n"
        f"URL: {feed.url}\nUserID: {feed.user_id}"
    )
    try:
        state.db.create_feed_follow(FeedFollow.create(user.id, feed.id, now))
    except DatabaseError as exc:
        print(f"warning: failed to aut-follow feed: {exc}")
    else:
        print(f"Automatically followed '{feed.name}'")


def aggregate(state: State, command: Command) -> None:
    """Fetch the stalest feed, then again after every interval, forever."""
    if not 1 <= len(command.args) <= 3:
        raise CommandError("usage: gator agg <time_between_reqs> (e.g., 10s, 1m, 2h)")
    try:
        interval = parse_duration(command.args[0])
    except ValueError as exc:
        raise CommandError(f"invalid duration: {exc}") from exc
    if interval <= timedelta(0):
        raise CommandError("invalid duration: interval must be positive")
    print(f"Collecting feeds every {_format_duration(interval)}")

    period = interval.total_seconds()
    next_tick = time.monotonic() + period
    while True:
        scrape_feeds(state, fetch_feed)
        now = time.monotonic()
        if next_tick > now:
            time.sleep(next_tick - now)
            next_tick += period
        else:
            # A tick already passed while scraping; go again at once.
            time.sleep(0.0)
            next_tick += (int((now - next_tick) // period) + 1) * period


def scrape_feeds(state: State, fetch: Fetcher = fetch_feed) -> None:
    """Scrape the feed that was fetched least recently."""
    try:
        feed = state.db.get_next_feed_to_fetch()
    except DatabaseError as exc:
        print(f"error getting next feeds to fetch: {exc}")
        return
    print(f"Fetching feed: {feed.url}")
    scrape_feed(state.db, feed, fetch)


def scrape_feed(db: Queries, feed: Feed, fetch: Fetcher = fetch_feed) -> None:
    """Mark ``feed`` fetched, download it and store its items as posts."""
    try:
        db.mark_feed_fetched(feed.id)
    except DatabaseError as exc:
        print(f"error marking feed fetched: {exc}")
        return
    try:
        parsed = fetch(feed.url)
    except FeedError as exc:
        print(f"error fetching feed: {exc}")
        return

    for item in parsed.items:
        now = datetime.now(timezone.utc)
        post = Post(
            id=User.create("").id,
            created_at=now,
            updated_at=now,
            title=item.title,
            url=item.link,
            description=item.description,
            published_at=parse_pub_date(item.pub_date),
            feed_id=feed.id,
        )
        try:
            db.create_post(post)
        except DatabaseError as exc:
            if "duplicate key" not in str(exc):
                logger.error("Error inserting post: %s", exc)
    logger.info("Feed %s collected, %d posts found", feed.name, len(parsed.items))


def browse(state: State, command: Command, user: User) -> None:
    """Show the newest posts from the feeds the user follows."""
    limit = DEFAULT_BROWSE_LIMIT
    if len(command.args) == 1:
        text = command.args[0]
        if _INT.fullmatch(text) is None or not -(2**63) <= int(text) < 2**63:
            raise CommandError(f'invalid limit: strconv.Atoi: parsing "{text}": invalid syntax')
        # The limit is passed on as a 32-bit integer.
        limit = (int(text) + 2**31) % 2**32 - 2**31
    try:
        posts = state.db.get_posts_for_user(user.id, limit)
    except DatabaseError as exc:
        raise CommandError(f"couldn't get posts for user: {exc}") from exc

    print(f"Found {len(posts)} posts for user {user.name}:")
    for post in posts:
        print(f"{_short_date(post.published_at)} from {post.feed_name}")
        print(f"--- {post.title} ---")
        print(f"    {post.description or ''}")
        print(f"Link: {post.url}")
        print(_SEPARATOR)


def list_feeds(state: State, command: Command, user: User) -> None:
    """Show every feed with the user who added it."""
    if command.args:
        raise CommandError("usage: gator feeds")
    try:
        summaries = state.db.list_feeds()
    except DatabaseError as exc:
        raise CommandError(f"failed to list feeds: {exc}") from exc
    for summary in summaries:
        print(
            f"Feed: {summary.feed_name}\nURL: {summary.feed_url}\n"
            f"Added by: {summary.user_name}\n"
        )


def follow(state: State, command: Command, user: User) -> None:
    """Follow the feed with the given URL."""
    if len(command.args) != 1:
        raise CommandError("usage: gator follow <feed_url>")
    feed_url = command.args[0]
    try:
        feed = state.db.get_feed_by_url(feed_url)
    except DatabaseError as exc:
        raise CommandError(f"could not find feed with URL {feed_url}: {exc}") from exc
    try:
        record = state.db.create_feed_follow(FeedFollow.create(user.id, feed.id))
    except DatabaseError as exc:
        raise CommandError(f"could not follow feed: {exc}") from exc
    print(f"Now following '{record.feed_name}' as user '{record.user_name}'")


def following(state: State, command: Command, user: User) -> None:
    """List the feeds the user follows."""
    try:
        follows = state.db.get_feed_follows_for_user(user.id)
    except DatabaseError as exc:
        raise CommandError(f"failed to get feed follows: {exc}") from exc
    if not follows:
        print("You are not following any feeds.")
        return
    print("Feeds you're following:")
    for record in follows:
        print(f"- {record.feed_name}")


def login(state: State, command: Command, user: User) -> None:
    """Switch the current user to an existing one."""
    if len(command.args) != 1:
        raise CommandError("usage: gator login <username>")
    user_name = command.args[0]
    try:
        state.db.get_user(user_name)
    except NoRowsError as exc:
        raise CommandError(f"user '{user_name}' does not exist") from exc
    except DatabaseError as exc:
        raise CommandError(f"failed to fetch user: {exc}") from exc
    try:
        state.config.set_user(user_name)
    except OSError as exc:
        raise CommandError(f"failed to set user: {exc}") from exc
    print(f"Logged in as {user_name}")


def register(state: State, command: Command) -> None:
    """Create a user and make it the current one."""
    if len(command.args) != 1:
        raise CommandError("usage: gator register <username>")
    user_name = command.args[0]
    try:
        state.db.get_user(user_name)
    except NoRowsError:
        pass
    except DatabaseError as exc:
        raise CommandError(f"error checking for user: {exc}") from exc
    else:
        raise CommandError(f"user {user_name} already exists")

    try:
        user = state.db.create_user(User.create(user_name))
    except DatabaseError as exc:
        print(f"CreateUser failed: {exc}", end="")
        raise CommandError(f"user {user_name} already exists") from exc
    try:
        state.config.set_user(user.name)
    except OSError as exc:
        raise CommandError(f"failed to set user in config: {exc}") from exc
    print(f"User created: {user}")


def reset(state: State, command: Command) -> None:
    """Delete every user, and with them everything they own."""
    try:
        state.db.delete_all_users()
    except DatabaseError as exc:
        raise CommandError(f"failed to delete users: {exc}") from exc
    print("All users have been deleted.")


def unfollow(state: State, command: Command, user: User) -> None:
    """Stop following the feed with the given URL."""
    if len(command.args) != 1:
        raise CommandError("usage: gator unfollow <feed_url>")
    feed_url = command.args[0]
    try:
        state.db.delete_feed_follow_by_user_and_url(user.id, feed_url)
    except DatabaseError as exc:
        raise CommandError(f"failed to unfollow feed {feed_url}: {exc}") from exc
    print(f"Unfollowed feed: {feed_url}")


def users(state: State, command: Command, user: User) -> None:
    """List every user, marking the current one."""
    try:
        everyone = state.db.get_users()
    except DatabaseError as exc:
        raise CommandError(f"failed to get users: {exc}") from exc
    current = state.config.current_user_name
    for person in everyone:
        suffix = " (current)" if person.name == current else ""
        print(f"* {person.name}{suffix}")


register_command("addfeed", logged_in(add_feed))
register_command("agg", aggregate)
register_command("browse", logged_in(browse))
register_command("feeds", logged_in(list_feeds))
register_command("follow", logged_in(follow))
register_command("following", logged_in(following))
register_command("login", logged_in(login))
register_command("register", register)
register_command("reset", reset)
register_command("unfollow", logged_in(unfollow))
register_command("users", logged_in(users))