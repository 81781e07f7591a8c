"""
Configuration management for PR Finder.

Loads and validates prfinder.yml from $PR_FINDER_CONFIG or
~/.config/prfinder/prfinder.yml. Every setting has a default, so the
file is optional. PR_FINDER_LIMIT overrides the result limit.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .github import GITHUB_API_BASE, SEARCH_RESULT_CAP


DEFAULT_LIMIT = 100
DEFAULT_BATCH_SIZE = 10
# GitHub search never returns more than this many matches
MAX_LIMIT = SEARCH_RESULT_CAP

INTERACTIVE_MODES = ("auto", "force", "off")
COLOR_MODES = ("auto", "always", "never")
MERGE_METHODS = ("merge", "squash", "rebase")


class ConfigError(ValueError):
    """Invalid configuration value."""


@dataclass
class FetchConfig:
    """How PRs are fetched from GitHub."""
    limit: int = DEFAULT_LIMIT
    owner: str | None = None
    batch_size: int = DEFAULT_BATCH_SIZE  # repo: qualifiers per search
    max_concurrent_batches: int = 4
    api_url: str = GITHUB_API_BASE


@dataclass
class PrFinderConfig:
    """Complete PR Finder configuration."""
    fetch: FetchConfig = field(default_factory=FetchConfig)
    interactive: str = "auto"  # auto, force, off
    color: str = "auto"  # auto, always, never
    merge_method: str = "merge"  # merge, squash, rebase

    @classmethod
    def load(cls, path: Path | None = None) -> "PrFinderConfig":
        """Load configuration from ``path`` (or the default location)."""
        path = path or get_config_path()
        data: dict[str, Any] = {}

        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ConfigError(f"{path}: expected a mapping at the top level")

        config = cls._parse(data)

        env_limit = os.environ.get("PR_FINDER_LIMIT")
        if env_limit:
            config.fetch.limit = _positive_int("PR_FINDER_LIMIT", env_limit, MAX_LIMIT)

        return config

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> "PrFinderConfig":
        """Parse configuration dictionary."""
        fetch = FetchConfig(
            limit=_positive_int("limit", data.get("limit", DEFAULT_LIMIT), MAX_LIMIT),
            owner=data.get("owner") or None,
            batch_size=_positive_int("batch_size", data.get("batch_size", DEFAULT_BATCH_SIZE)),
            max_concurrent_batches=_positive_int(
                "max_concurrent_batches", data.get("max_concurrent_batches", 4)
            ),
            api_url=data.get("api_url", GITHUB_API_BASE),
        )

        return cls(
            fetch=fetch,
            interactive=_choice("interactive", data.get("interactive", "auto"), INTERACTIVE_MODES, ("force", "off")),
            color=_choice("color", data.get("color", "auto"), COLOR_MODES, ("always", "never")),
            merge_method=_choice("merge_method", data.get("merge_method", "merge"), MERGE_METHODS),
        )


def _positive_int(name: str, value: Any, maximum: int | None = None) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    if number <= 0:
        raise ConfigError(f"{name} must be positive, got {number}")
    if maximum is not None and number > maximum:
        raise ConfigError(f"{name} must be at most {maximum}, got {number}")
    return number


def _choice(
    name: str,
    value: Any,
    choices: tuple[str, ...],
    booleans: tuple[str, str] | None = None,
) -> str:
    # YAML reads bare on/off as booleans
    if booleans and isinstance(value, bool):
        value = booleans[0] if value else booleans[1]
    if value not in choices:
        raise ConfigError(f"{name} must be one of {', '.join(choices)}, got {value!r}")
    return value


def get_config_path() -> Path:
    """Get the configuration file path."""
    override = os.environ.get("PR_FINDER_CONFIG")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "prfinder" / "prfinder.yml"
