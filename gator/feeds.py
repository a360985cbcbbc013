"""Fetching and parsing RSS feeds."""

from __future__ import annotations

import html
import urllib.error
import urllib.parse
import urllib.request
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Iterator

USER_AGENT = "gator"
DEFAULT_TIMEOUT = 10.0


class FeedError(Exception):
    """A feed could not be fetched or parsed."""


@dataclass
class RSSItem:
    title: str = ""
    link: str = ""
    description: str = ""
    pub_date: str = ""


@dataclass
class RSSFeed:
    title: str = ""
    link: str = ""
    description: str = ""
    items: list[RSSItem] = field(default_factory=list)


def _local_name(tag: object) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _children(element: ET.Element, name: str) -> Iterator[ET.Element]:
    return (child for child in element if _local_name(child.tag) == name)


def _text(element: ET.Element) -> str:
    """Character data directly inside ``element``, nested elements left out."""
    return "".join([element.text or ""] + [child.tail or "" for child in element])


def _parse_item(element: ET.Element) -> RSSItem:
    item = RSSItem()
    for child in element:
        name = _local_name(child.tag)
        if name == "title":
            item.title = _text(child)
        elif name == "link":
            item.link = _text(child)
        elif name == "description":
            item.description = _text(child)
        elif name == "pubDate":
            item.pub_date = _text(child)
    return item


def parse_feed(data: bytes | str) -> RSSFeed:
    """Parse an RSS document and unescape HTML entities in titles and descriptions."""
    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise FeedError(f"error unmarshaling response: {exc}") from exc

    feed = RSSFeed()
    for channel in _children(root, "channel"):
        for child in channel:
            name = _local_name(child.tag)
            if name == "title":
                feed.title = _text(child)
            elif name == "link":
                feed.link = _text(child)
            elif name == "description":
                feed.description = _text(child)
            elif name == "item":
                feed.items.append(_parse_item(child))

    feed.title = html.unescape(feed.title)
    feed.description = html.unescape(feed.description)
    for item in feed.items:
        item.title = html.unescape(item.title)
        item.description = html.unescape(item.description)
    return feed


def fetch_feed(feed_url: str, timeout: float = DEFAULT_TIMEOUT) -> RSSFeed:
    """Download and parse the feed at ``feed_url``."""
    try:
        request = urllib.request.Request(
            feed_url, headers={"User-Agent": USER_AGENT}, method="GET"
        )
    except ValueError as exc:
        raise FeedError(f"error creating request: {exc}") from exc

    scheme = urllib.parse.urlsplit(request.full_url).scheme.lower()
    if scheme not in ("http", "https"):
        raise FeedError(f"error making request: unsupported protocol scheme {scheme!r}")

    try:
        response = urllib.request.urlopen(request, timeout=timeout)
    except urllib.error.HTTPError as exc:
        # A non-success status still carries a body worth parsing.
        response = exc
    except (urllib.error.URLError, OSError, ValueError) as exc:
        raise FeedError(f"error making request: {exc}") from exc

    with response:
        try:
            body = response.read()
        except OSError as exc:
            raise FeedError(f"error reading response body: {exc}") from exc

    return parse_feed(body)