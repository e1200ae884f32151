import pytest

from gator.cli import build_registry, main
from gator.commands import Command, CommandError
from gator.config import Config, read, write


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    write(Config(db_url=str(tmp_path / "gator.db")))
    return tmp_path


def test_register_then_login_persists(home):
    assert main(["register", "alice"]) == 0
    assert main(["register", "bob"]) == 0
    assert read().current_user_name == "bob"
    assert main(["login", "alice"]) == 0
    assert read().current_user_name == "alice"


def test_no_arguments_fails(home):
    assert main([]) == 1


def test_unknown_command_fails(home):
    assert main(["fly"]) == 1


def test_logged_in_command_without_user_fails(home):
    assert main(["following"]) == 1


def test_missing_config_fails(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    assert main(["users"]) == 1


def test_registry_knows_commands():
    with pytest.raises(CommandError, match="command not found"):
        build_registry().run(None, Command("missing"))