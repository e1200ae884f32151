"""Reading and writing the user's JSON configuration file."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

CONFIG_FILE_NAME = ".gatorconfig.json"

_JSON_WHITESPACE = " \t\n\r"
_FIELDS = {"db_url": "db_url", "current_user_name": "current_user_name"}


@dataclass
class Config:
    """Connection string and the name of the logged-in user."""

    db_url: str = ""
    current_user_name: str = ""

    def set_user(self, user_name: str) -> None:
        """Make ``user_name`` the current user and save the configuration."""
        self.current_user_name = user_name
        write(self)


def config_file_path() -> Path:
    """Return the location of the configuration file in the home directory."""
    return Path.home() / CONFIG_FILE_NAME


def read() -> Config:
    """Load the configuration file.

    Raises OSError when the file cannot be opened and ValueError when it
    does not hold a JSON object with string fields.
    """
    text = config_file_path().read_text(encoding="utf-8")
    data, _ = json.JSONDecoder().raw_decode(text.lstrip(_JSON_WHITESPACE))
    cfg = Config()
    if data is None:
        return cfg
    if not isinstance(data, dict):
        raise ValueError("configuration must be a JSON object")
    for key, value in data.items():
        field = _FIELDS.get(key.lower())
        if field is None or value is None:
            continue
        if not isinstance(value, str):
            raise ValueError(f"configuration field {key!r} must be a string")
        setattr(cfg, field, value)
    return cfg


def _encode(cfg: Config) -> str:
    text = json.dumps(
        {"db_url": cfg.db_url, "current_user_name": cfg.current_user_name},
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return (
        text.replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )


def write(cfg: Config) -> None:
    """Save ``cfg`` to the configuration file, replacing its contents."""
    config_file_path().write_text(_encode(cfg) + "\n", encoding="utf-8")