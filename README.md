# gator

`gator` is a small command-line RSS aggregator. Users register, add
feeds, follow feeds, and let the aggregator collect posts from them.
Collected posts are kept in an SQLite database and can be browsed from
the terminal.

## Installation

```
pip install .
```

This installs the `gator` command. There are no dependencies beyond
the Python standard library (Python 3.10 or later).

## Configuration

`gator` reads its settings from `.gatorconfig.json` in your home
directory. The file must exist before the first run:

```json
{"db_url": "gator.db", "current_user_name": ""}
```

- `db_url` names the SQLite database: a file path, `:memory:`, or a
  URL of the form `sqlite://<path>`. Any other URL scheme is rejected.
  The tables are created on first use.
- `current_user_name` is the user commands act as. `register` and
  `login` rewrite it; you do not normally edit it by hand. The value
  `unknown` means that no one is logged in.

## Usage

```
gator <command> [args...]
```

| Command | What it does |
| --- | --- |
| `gator register <username>` | Create a user and make it the current user. |
| `gator login <username>` | Switch to an existing user (a current user is needed first). |
| `gator users` | List all users by name, marking the current one. |
| `gator reset` | Delete all users, and with them their feeds, follows and posts. |
| `gator addfeed <name> <url>` | Add a feed and follow it as the current user. |
| `gator feeds` | List every feed, newest first, with who added it. |
| `gator follow <feed_url>` | Follow a feed that has already been added. |
| `gator following` | List the feeds the current user follows. |
| `gator unfollow <feed_url>` | Stop following a feed. |
| `gator agg <interval>` | Fetch feeds forever, one per tick, e.g. `10s`, `1m30s`, `2h`. |
| `gator browse [limit]` | Show the newest posts from followed feeds (default 2). |

Every command except `register`, `reset` and `agg` needs a current
user, so start by registering:

```
gator register alice
gator addfeed "Example Blog" https://example.com/feed.xml
gator agg 30s
gator browse 5
```

### Collecting posts

`agg` takes a positive duration made of numbers with the units `ns`,
`us`, `ms`, `s`, `m` and `h`. On every tick it fetches the feed that
has gone longest without being fetched (never-fetched feeds first),
stores each item as a post, and silently skips items whose link is
already stored. Each run is logged with the feed name and the number of
items found. Stop it with Ctrl-C.

An item's `pubDate` is kept only when it is an RFC 1123 date with a
numeric time zone, such as `Mon, 02 Jan 2006 15:04:05 -0700`; other
items are stored without a date. `browse` lists undated posts first,
then the rest newest first.

### Errors

If a command fails, `gator` prints the error to standard error and
exits with status 1.

## Using it from Python

- `gator.feeds.parse_feed(data)` parses an RSS document into an
  `RSSFeed` with its `RSSItem`s, unescaping HTML entities in titles and
  descriptions; `gator.feeds.fetch_feed(url, timeout=10.0)` downloads
  and parses one. Both raise `FeedError` on failure.
- `gator.database.connect(url)` opens the database and returns a
  `Queries` object (usable as a context manager) with methods such as
  `create_user`, `create_feed`, `create_feed_follow`, `create_post` and
  `get_posts_for_user`. Failures raise `DatabaseError`, with
  `NoRowsError` and `DuplicateError` for missing rows and uniqueness
  conflicts.
- `gator.config.read()` and `gator.config.write()` load and save the
  configuration file.

## What gator does not do

- It stores data only in SQLite; it cannot use a database server.
- It reads only RSS `channel`/`item` documents; Atom feeds yield no
  posts.
- `agg` runs in the foreground; there is no background service.

## Development

```
pip install -e ".[test]"
pytest
```