# gator

`gator` is a small command-line RSS aggregator. Users register, add feeds,
follow the feeds other users have added, and leave a collector running that
fetches feeds in turn and stores their posts. Each user can then browse the
latest posts from the feeds they follow. Everything is kept in a SQLite
database.

## Installation

```
pip install .
```

This installs the `gator` command. It needs no third-party libraries.

## Configuration

`gator` reads its settings from `.gatorconfig.json` in your home directory.
The file must exist before the first run; `gator` does not create it. It holds
two keys:

```json
{
  "db_url": "/home/you/gator.db",
  "current_user_name": ""
}
```

- `db_url` names the SQLite database: a file path, `:memory:`, or either of
  those prefixed with `sqlite://`. The tables are created on first use.
- `current_user_name` is the logged-in user. `gator` rewrites the file
  whenever you `register` or `login`, so you normally leave it alone.

## Usage

```
gator <command> [args...]
```

### Users

```
gator register alice      # create a user and log in as them
gator login alice         # switch to an existing user
gator users               # list users; the current one is marked "(current)"
gator reset               # delete every user, with their feeds, follows and posts
```

### Feeds

```
gator addfeed "Example Blog" https://blog.example.com/rss.xml
gator feeds                                   # list all feeds and who added them
gator follow https://blog.example.com/rss.xml # follow a feed someone else added
gator following                               # feeds the current user follows
gator unfollow https://blog.example.com/rss.xml
```

`addfeed` also makes the current user follow the new feed. A feed URL can be
added only once. `addfeed`, `follow`, `following`, `unfollow` and `browse` all
need a logged-in user.

### Collecting posts

```
gator agg 1m
```

`agg` takes the time between requests as a positive duration made of numbers
and units (`ns`, `us`, `ms`, `s`, `m`, `h`), such as `30s`, `1m` or `1h30m`.
It fetches one feed straight away, then one more each interval, always picking
the feed that was fetched least recently (feeds never fetched come first).
Feeds are requested with a 10-second timeout. Items are stored as posts;
items whose link is already stored are skipped. Titles and descriptions have
HTML entities unescaped. Publication dates are read in the RFC 1123 form with
a numeric zone, as in `Mon, 02 Jan 2006 15:04:05 -0700`; other dates are
stored as missing. Progress is logged to standard error. `agg` runs until you
stop it with Ctrl-C.

### Reading

```
gator browse        # the 2 newest posts from feeds you follow
gator browse 10     # the 10 newest
```

Posts are ordered newest first, with undated posts ahead of dated ones. Each
post shows its date, title, description and link.

## Using it from Python

The pieces are importable on their own:

- `gator.config` — `Config`, `read()`, `write()`, `config_file_path()`.
- `gator.database` — `open_database(url)`, `create_schema(conn)` and
  `Queries`, which wraps a connection with typed queries and a
  `transaction()` context manager; `NoRowsError` is raised when a single-row
  lookup finds nothing.
- `gator.models` — the `User`, `Feed`, `FeedFollow`, `Post`, `FeedFollowRow`
  and `PostRow` records.
- `gator.rss` — `parse_feed(data)` and `fetch_feed(feed_url, timeout)`.
- `gator.commands` — `Command`, `State`, `CommandRegistry`, `CommandError`
  and the `logged_in` wrapper.
- `gator.handlers` — one function per command, plus `parse_duration` and
  `parse_pub_date`.
- `gator.cli` — `build_registry()` and `main(argv=None)`.

## Errors

An unknown command, wrong arguments, a missing user, an unreadable
configuration file or a database failure logs a message and exits with
status 1.