from datetime import timedelta

import pytest

from gator import handlers as h
from gator.commands import Command, CommandError, State
from gator.config import Config, read
from gator.database import Queries, open_database
from gator.rss import RSSFeed, RSSItem

DATE = "Mon, 02 Jan 2006 15:04:05 -0700"


@pytest.fixture
def state(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    return State(Queries(open_database(":memory:")), Config(db_url=":memory:"))


def _register(state, name):
    h.handler_register(state, Command("register", [name]))
    return state.queries.get_user(name)


def test_parse_duration():
    assert h.parse_duration("1m30s") == timedelta(seconds=90)
    assert h.parse_duration("0") == timedelta(0)
    assert h.parse_duration("1h") == timedelta(hours=1)


@pytest.mark.parametrize("bad", ["", "10", "abc", "5x"])
def test_parse_duration_rejects(bad):
    with pytest.raises(ValueError):
        h.parse_duration(bad)


def test_parse_pub_date():
    parsed = h.parse_pub_date(DATE)
    assert (parsed.year, parsed.month, parsed.day, parsed.hour) == (2006, 1, 2, 15)
    assert h.parse_pub_date("yesterday") is None


def test_agg_usage_and_bad_duration(state):
    with pytest.raises(CommandError, match="usage"):
        h.handler_agg(state, Command("agg", []))
    with pytest.raises(CommandError, match="couldn't parse"):
        h.handler_agg(state, Command("agg", ["soon"]))


def test_register_sets_config_and_users_marks_current(state, capsys):
    _register(state, "alice")
    _register(state, "bob")
    assert read().current_user_name == "bob"
    capsys.readouterr()
    h.handler_users(state, Command("users"))
    assert capsys.readouterr().out.splitlines() == [" * alice", " * bob (current)"]


def test_register_duplicate_fails(state):
    _register(state, "alice")
    with pytest.raises(CommandError, match="couldn't create user"):
        h.handler_register(state, Command("register", ["alice"]))


def test_login(state):
    _register(state, "alice")
    _register(state, "bob")
    h.handler_login(state, Command("login", ["alice"]))
    assert state.cfg.current_user_name == "alice"
    with pytest.raises(CommandError, match="couldn't find user"):
        h.handler_login(state, Command("login", ["ghost"]))


def test_reset(state, capsys):
    _register(state, "alice")
    h.handler_reset(state, Command("reset"))
    assert state.queries.get_users() == []
    h.handler_users(state, Command("users"))
    assert "No users found." in capsys.readouterr().out


def test_add_feed_follows_and_unfollow(state, capsys):
    user = _register(state, "alice")
    h.handler_add_feed(state, Command("addfeed", ["Blog", "https://example.com/rss"]), user)
    follows = state.queries.get_feed_follows_for_user(user.id)
    assert [f.feed_name for f in follows] == ["Blog"]
    h.handler_unfollow(state, Command("unfollow", ["https://example.com/rss"]), user)
    assert state.queries.get_feed_follows_for_user(user.id) == []
    h.handler_follow(state, Command("follow", ["https://example.com/rss"]), user)
    capsys.readouterr()
    h.handler_list_feed_follows(state, Command("following"), user)
    assert capsys.readouterr().out.splitlines() == ["Feed follows for user alice:", " * Blog"]


def test_follow_unknown_feed(state):
    user = _register(state, "alice")
    with pytest.raises(CommandError, match="couldn't get feed"):
        h.handler_follow(state, Command("follow", ["https://example.com/none"]), user)


def test_list_feeds_empty(state, capsys):
    h.handler_list_feeds(state, Command("feeds"))
    assert capsys.readouterr().out == "No feeds found.\n"


def test_scrape_and_browse(state, capsys):
    user = _register(state, "alice")
    h.handler_add_feed(state, Command("addfeed", ["Blog", "https://example.com/rss"]), user)
    items = [RSSItem("Post A", "https://example.com/a", "desc a", DATE)]
    fetched = []

    def fetch(url):
        fetched.append(url)
        return RSSFeed(items=items)

    h.scrape_feeds(state, fetch)
    h.scrape_feeds(state, fetch)
    assert fetched == ["https://example.com/rss"] * 2
    posts = state.queries.get_posts_for_user(user.id, 10)
    assert [p.title for p in posts] == ["Post A"]
    assert state.queries.get_feeds()[0].last_fetched_at is not None
    capsys.readouterr()
    h.handler_browse(state, Command("browse", []), user)
    out = capsys.readouterr().out
    assert "Mon Jan 2 from alice" in out
    assert "Link: https://example.com/a" in out


def test_browse_invalid_limit(state):
    user = _register(state, "alice")
    with pytest.raises(CommandError, match="invalid limit"):
        h.handler_browse(state, Command("browse", ["many"]), user)