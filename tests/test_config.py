import json

import pytest

from gator import config
from gator.config import Config


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    return tmp_path


def test_config_file_path_is_in_home(home):
    assert config.config_file_path() == home / ".gatorconfig.json"


def test_write_then_read_round_trip(home):
    cfg = Config(db_url="sqlite:///feeds.db", current_user_name="alice")
    config.write(cfg)
    assert config.read() == cfg


def test_written_file_uses_json_keys(home):
    cfg = Config(db_url="db", current_user_name="bob")
    config.write(cfg)
    path = config.config_file_path()
    assert path == home / ".gatorconfig.json"
    text = path.read_text(encoding="utf-8")
    assert text.endswith("\n")
    assert json.loads(text) == {"db_url": "db", "current_user_name": "bob"}
    assert config.read() == cfg


def test_written_file_escapes_html_characters(home):
    config.write(Config(db_url="a<b>&c", current_user_name=""))
    text = (home / ".gatorconfig.json").read_text(encoding="utf-8")
    assert "<" not in text and ">" not in text and "&" not in text
    assert config.read().db_url == "a<b>&c"


def test_set_user_persists(home):
    cfg = Config(db_url="db")
    cfg.set_user("carol")
    assert cfg.current_user_name == "carol"
    assert config.read() == Config(db_url="db", current_user_name="carol")


def test_read_missing_file_raises(home):
    with pytest.raises(FileNotFoundError):
        config.read()


def test_read_invalid_json_raises(home):
    (home / ".gatorconfig.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError):
        config.read()


def test_read_non_object_raises(home):
    (home / ".gatorconfig.json").write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        config.read()


def test_read_non_string_field_raises(home):
    (home / ".gatorconfig.json").write_text('{"db_url": 5}', encoding="utf-8")
    with pytest.raises(ValueError):
        config.read()


def test_read_missing_fields_default_to_empty(home):
    (home / ".gatorconfig.json").write_text('{"other": 1}', encoding="utf-8")
    assert config.read() == Config(db_url="", current_user_name="")


def test_read_ignores_trailing_data(home):
    (home / ".gatorconfig.json").write_text(
        '{"db_url": "x"}\n{"db_url": "y"}', encoding="utf-8"
    )
    assert config.read().db_url == "x"


def test_read_matches_keys_case_insensitively(home):
    (home / ".gatorconfig.json").write_text(
        '{"DB_URL": "x", "Current_User_Name": "dave"}', encoding="utf-8"
    )
    assert config.read() == Config(db_url="x", current_user_name="dave")