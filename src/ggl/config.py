from __future__ import annotations

import dataclasses
import json
import os
from pathlib import Path

import yaml

from .filters import FIRST_RULE, POLICIES
from .models import FilterMode, FilterRule, RepositoryDescriptor


class ConfigError(ValueError):
    pass


@dataclasses.dataclass(frozen=True)
class Config:
    root: Path
    repositories: list[RepositoryDescriptor]
    filter_policy: str = FIRST_RULE
    fetch_timeout: int = 300

    def repo_path(self, repo: RepositoryDescriptor) -> Path:
        if repo.path.is_absolute():
            return repo.path
        return self.root / repo.path


def default_config_dir() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME", "").strip()
    if xdg:
        return Path(xdg)
    return Path.home() / ".config"


def resolve_config_path(arg_config: Path | None, *, cwd: Path | None = None) -> Path:
    """
    Look for a config file in order:
      1. the --config flag
      2. $XDG_CONFIG_HOME/ggl.yaml (~/.config/ggl.yaml)
      3. config.yaml in the current directory
    """
    if arg_config is not None:
        path = arg_config
    else:
        path = default_config_dir() / "ggl.yaml"
        if not path.exists():
            path = (cwd or Path.cwd()) / "config.yaml"
    if not path.exists():
        raise ConfigError(f"missing config file: {path}")
    return path


def read_config_data(config_path: Path) -> dict:
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"cannot read config file {config_path}: {e}") from e
    try:
        if config_path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot parse config file {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config file {config_path} must contain a mapping at the top level")
    return data


def _parse_filter(raw: object, where: str) -> FilterRule:
    if not isinstance(raw, dict):
        raise ConfigError(f"{where}: filter must be a mapping with filter_type and paths")
    mode_s = str(raw.get("filter_type", "") or "").strip().lower()
    try:
        mode = FilterMode(mode_s)
    except ValueError:
        raise ConfigError(f"{where}: filter_type must be Include or Reject, got {raw.get('filter_type')!r}") from None
    paths = raw.get("paths")
    if not isinstance(paths, list) or not paths:
        raise ConfigError(f"{where}: filter paths must be a non-empty list")
    return FilterRule(mode=mode, paths=tuple(str(p) for p in paths))


def _parse_repository(raw: object, idx: int) -> RepositoryDescriptor:
    where = f"repositories[{idx}]"
    if not isinstance(raw, dict):
        raise ConfigError(f"{where}: expected a mapping")
    for key in ("name", "path", "remote", "branch"):
        if not str(raw.get(key, "") or "").strip():
            raise ConfigError(f"{where}: missing {key!r}")
    filters_raw = raw.get("filters")
    filters: tuple[FilterRule, ...] | None = None
    if filters_raw is not None:
        if not isinstance(filters_raw, list):
            raise ConfigError(f"{where}: filters must be a list")
        filters = tuple(_parse_filter(f, f"{where}.filters[{i}]") for i, f in enumerate(filters_raw))
    fetch = raw.get("fetch", False)
    if not isinstance(fetch, bool):
        raise ConfigError(f"{where}: fetch must be true or false, got {fetch!r}")
    return RepositoryDescriptor(
        name=str(raw["name"]).strip(),
        path=Path(str(raw["path"]).strip()).expanduser(),
        remote=str(raw["remote"]).strip(),
        branch=str(raw["branch"]).strip(),
        fetch=fetch,
        filters=filters,
    )


def parse_config(data: dict, *, base_dir: Path | None = None) -> Config:
    root_s = str(data.get("root", "") or "").strip()
    root = Path(root_s).expanduser() if root_s else Path(".")
    if not root.is_absolute() and base_dir is not None:
        root = base_dir / root

    repos_raw = data.get("repositories")
    if not isinstance(repos_raw, list):
        raise ConfigError("config must define a 'repositories' list")
    repositories = [_parse_repository(r, i) for i, r in enumerate(repos_raw)]

    policy = str(data.get("filter_policy", FIRST_RULE) or FIRST_RULE).strip().lower()
    if policy not in POLICIES:
        raise ConfigError(f"filter_policy must be one of {', '.join(POLICIES)}, got {policy!r}")

    try:
        fetch_timeout = int(data.get("fetch_timeout", 300))
    except (TypeError, ValueError):
        raise ConfigError(f"fetch_timeout must be a number of seconds, got {data.get('fetch_timeout')!r}") from None
    if fetch_timeout <= 0:
        raise ConfigError("fetch_timeout must be positive")

    return Config(root=root, repositories=repositories, filter_policy=policy, fetch_timeout=fetch_timeout)


def load_config(config_path: Path) -> Config:
    data = read_config_data(config_path)
    return parse_config(data, base_dir=config_path.resolve().parent)
