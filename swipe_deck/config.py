# === FILE: swipe_deck/config.py ===
"""
Loading and validation of SwipeDeck configuration.
The schema is described with Pydantic; files may be YAML or JSON.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from swipe_deck.models import SeedPage

__all__ = ["DeckConfig", "DEFAULT_PAGES", "load_config"]


DEFAULT_PAGES: List[SeedPage] = [
    SeedPage(url="https://chatgpt.com", title="ChatGPT"),
    SeedPage(url="https://notebooklm.google", title="Google NotebookLM"),
    SeedPage(url="https://claude.ai", title="Claude"),
    SeedPage(url="https://perplexity.ai", title="Perplexity"),
    SeedPage(url="https://gemini.google.com/app", title="Google Gemini"),
    SeedPage(url="http://chat.deepseek.com", title="DeepSeek"),
    SeedPage(url="https://copilot.microsoft.com", title="Microsoft Copilot"),
]


class DeckConfig(BaseModel):
    """Settings for one SwipeDeck process."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    store_path: Path = Field(Path("swipe_deck.db"), description="SQLite file holding pages and UI state.")
    retry_times: int = Field(1, ge=1, description="Extra attempts for a failed save or delete.")
    retry_delay: float = Field(0.5, ge=0, description="Pause between persistence attempts (seconds).")
    preload_radius: int = Field(1, ge=0, description="Neighbours warmed on each side of the displayed page.")
    max_sessions: Optional[int] = Field(
        None, ge=1, description="LRU bound for live sessions; None keeps every session alive."
    )
    user_agent: str = Field("SwipeDeck/1.0", min_length=1, description="User-Agent header of the HTTP engine.")
    navigation_timeout: float = Field(30.0, gt=0, description="Per-navigation timeout of the HTTP engine.")
    log_level: str = Field("INFO", description="Default logging level.")
    default_pages: List[SeedPage] = Field(
        default_factory=lambda: list(DEFAULT_PAGES), description="Pages seeded into an empty registry."
    )

    @field_validator("store_path", mode="before")
    def _expand_store_path(cls, v: Any) -> Any:
        if isinstance(v, str):
            return Path(v).expanduser()
        return v

    @field_validator("log_level", mode="before")
    def _upper_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.upper()
        return v


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of YAML must be a mapping, got {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of JSON must be a mapping, got {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> DeckConfig:
    """
    Reads YAML or JSON and returns a validated DeckConfig.

    With *path* ``None`` the project default ``configs/default.yaml`` is used
    when present, otherwise the built-in defaults. An explicit path that does
    not exist raises FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            return DeckConfig()
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Unsupported config format: {suffix}")

    return DeckConfig(**data)
