"""Reading and writing the user's gator configuration file."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_FILE_NAME = ".gatorconfig.json"
_FIELDS = ("db_url", "current_user_name")


@dataclass
class Config:
    """Settings kept in the configuration file."""

    db_url: str = ""
    current_user_name: str = ""
    path: Path | None = field(default=None, compare=False, repr=False)

    def set_user(self, user_name: str) -> None:
        """Make ``user_name`` the current user and save the file."""
        self.current_user_name = user_name
        write(self, self.path)


def config_file_path() -> Path:
    """Return the location of the configuration file in the home directory."""
    return Path.home() / CONFIG_FILE_NAME


def read(path: str | Path | None = None) -> Config:
    """Load the configuration from ``path`` or from the default location."""
    target = Path(path) if path is not None else config_file_path()
    text = target.read_text(encoding="utf-8")
    # Only the first JSON value in the file is taken, as a stream decoder would.
    data, _ = json.JSONDecoder().raw_decode(text.lstrip())
    if data is None:
        return Config(path=target)
    if not isinstance(data, dict):
        raise ValueError("configuration file must hold a JSON object")
    values = {}
    for key in _FIELDS:
        value = data.get(key)
        if value is None:
            value = ""
        if not isinstance(value, str):
            raise ValueError(f"configuration field {key!r} must be a string")
        values[key] = value
    return Config(**values, path=target)


def write(cfg: Config, path: str | Path | None = None) -> None:
    """Save ``cfg`` as JSON to ``path`` or to the default location."""
    target = Path(path) if path is not None else config_file_path()
    payload = {key: getattr(cfg, key) for key in _FIELDS}
    target.write_text(
        json.dumps(payload, separators=(",", ":"), ensure_ascii=False) + "\n",
        encoding="utf-8",
    )