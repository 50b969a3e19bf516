from __future__ import annotations

import argparse
import dataclasses
import json
from pathlib import Path

from .resolver import EXACT_KEYS, SORT_KEYS, STRATEGIES

DEFAULT_CONFIG_PATH = Path("git-authors.json")


def load_config(config_path: Path) -> dict:
    if not config_path.exists():
        return {}
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise SystemExit(f"Invalid JSON in {config_path}: {e}")
    if not isinstance(data, dict):
        raise SystemExit(f"Expected a JSON object in {config_path}")
    return data


@dataclasses.dataclass(frozen=True)
class AuthorsConfig:
    output: str = "AUTHORS"
    repo: Path = Path(".")
    sort: str = "first-commit"
    keep_bots: bool = False
    skip_mailmap: bool = False
    strategy: str = "alias"
    exact_key: str = "email"

    @property
    def sort_key(self) -> str | None:
        return None if self.sort == "none" else self.sort


def _pick(args: argparse.Namespace, config: dict, key: str, default: object) -> object:
    value = getattr(args, key, None)
    if value is not None:
        return value
    value = config.get(key)
    if value is not None:
        return value
    return default


def _choice(value: object, choices: tuple[str, ...], key: str) -> str:
    s = str(value).strip().lower()
    if s not in choices:
        raise SystemExit(f"{key} expects one of {', '.join(choices)}, got: {value!r}")
    return s


def _flag(value: object, key: str) -> bool:
    if not isinstance(value, bool):
        raise SystemExit(f"{key} expects true or false, got: {value!r}")
    return value


def settings_from(config: dict, args: argparse.Namespace) -> AuthorsConfig:
    """Merge config file values with command-line values; the command line wins."""
    d = AuthorsConfig()
    return AuthorsConfig(
        output=str(_pick(args, config, "output", d.output)),
        repo=Path(str(_pick(args, config, "repo", d.repo))),
        sort=_choice(_pick(args, config, "sort", d.sort), (*SORT_KEYS, "none"), "sort"),
        keep_bots=_flag(_pick(args, config, "keep_bots", d.keep_bots), "keep_bots"),
        skip_mailmap=_flag(_pick(args, config, "skip_mailmap", d.skip_mailmap), "skip_mailmap"),
        strategy=_choice(_pick(args, config, "strategy", d.strategy), STRATEGIES, "strategy"),
        exact_key=_choice(_pick(args, config, "exact_key", d.exact_key), EXACT_KEYS, "exact_key"),
    )
