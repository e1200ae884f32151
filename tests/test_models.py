import dataclasses
from datetime import timedelta, timezone

import pytest

from gator.models import Feed, User, new_id, utc_now


def test_new_id_is_random_version_4():
    first, second = new_id(), new_id()
    assert first.version == 4
    assert first != second


def test_utc_now_is_aware_utc():
    now = utc_now()
    assert now.utcoffset() == timedelta(0)
    assert now.tzinfo == timezone.utc


def test_utc_now_is_monotonic_enough():
    before = utc_now()
    after = utc_now()
    assert after >= before


def test_user_equality_by_value():
    ident = new_id()
    now = utc_now()
    assert User(ident, now, now, "alice") == User(ident, now, now, "alice")
    assert User(ident, now, now, "alice") != User(ident, now, now, "bob")


def test_feed_last_fetched_defaults_to_none():
    now = utc_now()
    feed = Feed(new_id(), now, now, "news", "http://example.com/rss", new_id())
    assert feed.last_fetched_at is None
    assert feed.url == "http://example.com/rss"


def test_records_are_immutable():
    ident = new_id()
    now = utc_now()
    user = User(ident, now, now, "alice")
    with pytest.raises(dataclasses.FrozenInstanceError):
        user.name = "bob"
    assert user.name == "alice"
    assert user == User(ident, now, now, "alice")