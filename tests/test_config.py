# File: tests/test_config.py
import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from swipe_deck.config import DEFAULT_PAGES, DeckConfig, load_config


def write_file(tmp_path: Path, content: str, suffix: str) -> Path:
    path = tmp_path / f"config{suffix}"
    path.write_text(content, encoding="utf-8")
    return path


def test_defaults():
    cfg = DeckConfig()
    assert cfg.retry_times == 1
    assert cfg.max_sessions is None
    assert [p.title for p in cfg.default_pages] == [p.title for p in DEFAULT_PAGES]
    assert cfg.default_pages[0].url == "https://chatgpt.com"


def test_load_yaml(tmp_path):
    path = write_file(
        tmp_path,
        "store_path: ~/deck.db\nmax_sessions: 5\nlog_level: debug\ndefault_pages:\n  - url: a.com\n    title: A\n",
        ".yaml",
    )
    cfg = load_config(path)
    assert cfg.max_sessions == 5
    assert cfg.log_level == "DEBUG"
    assert cfg.store_path == Path("~/deck.db").expanduser()
    assert [p.url for p in cfg.default_pages] == ["a.com"]


def test_load_json(tmp_path):
    path = write_file(tmp_path, json.dumps({"preload_radius": 2, "retry_delay": 0}), ".json")
    cfg = load_config(path)
    assert cfg.preload_radius == 2
    assert cfg.retry_delay == 0


@pytest.mark.parametrize(
    "content,suffix,exc",
    [
        ("retry_times: 0\n", ".yaml", ValidationError),
        ("max_sessions: 0\n", ".yaml", ValidationError),
        ("unknown: 1\n", ".yaml", ValidationError),
        ("- a\n- b\n", ".yaml", TypeError),
        ("key: [unclosed\n", ".yaml", ValueError),
        ("{not json", ".json", ValueError),
        ("store_path: x\n", ".toml", ValueError),
    ],
)
def test_invalid_configs(tmp_path, content, suffix, exc):
    path = write_file(tmp_path, content, suffix)
    with pytest.raises(exc):
        load_config(path)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.yaml")


def test_none_without_default_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert load_config(None) == DeckConfig()


def test_none_uses_project_default(tmp_path, monkeypatch):
    (tmp_path / "configs").mkdir()
    (tmp_path / "configs" / "default.yaml").write_text("preload_radius: 3\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    assert load_config(None).preload_radius == 3


def test_config_is_frozen():
    cfg = DeckConfig()
    with pytest.raises(ValidationError):
        cfg.retry_times = 3
