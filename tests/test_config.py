import json
from pathlib import Path

import pytest

from gator.config import Config, config_file_path, read, write


def test_write_then_read_round_trip(tmp_path):
    path = tmp_path / "cfg.json"
    write(Config(db_url="sqlite:///gator.db", current_user_name="alice"), path)
    cfg = read(path)
    assert cfg == Config(db_url="sqlite:///gator.db", current_user_name="alice")
    assert cfg.path == path


def test_written_file_uses_json_keys(tmp_path):
    path = tmp_path / "cfg.json"
    write(Config(db_url="db", current_user_name="bob"), path)
    assert json.loads(path.read_text(encoding="utf-8")) == {
        "db_url": "db",
        "current_user_name": "bob",
    }


def test_set_user_saves_to_read_path(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"db_url": "db", "current_user_name": "old"}), encoding="utf-8")
    cfg = read(path)
    cfg.set_user("new")
    assert cfg.current_user_name == "new"
    assert read(path) == Config(db_url="db", current_user_name="new")


def test_missing_fields_default_to_empty(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"db_url": "db", "extra": 1}), encoding="utf-8")
    cfg = read(path)
    assert cfg.db_url == "db"
    assert cfg.current_user_name == ""


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        read(tmp_path / "absent.json")


def test_invalid_json_raises(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError):
        read(path)


def test_wrong_field_type_raises(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"db_url": 5}), encoding="utf-8")
    with pytest.raises(ValueError):
        read(path)


def test_default_path_is_in_home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    assert config_file_path() == Path(tmp_path) / ".gatorconfig.json"
    write(Config(db_url="db", current_user_name="carol"))
    assert read() == Config(db_url="db", current_user_name="carol")