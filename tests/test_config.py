from __future__ import annotations

import json
from pathlib import Path

import pytest

from ggl.config import ConfigError, load_config, resolve_config_path
from ggl.filters import FIRST_RULE, ORDERED
from ggl.models import FilterMode

YAML_CONFIG = """
root: {root}
repositories:
  - name: app
    path: app
    remote: origin
    branch: main
    fetch: true
    filters:
      - filter_type: Include
        paths: ["docs/", "src/"]
      - filter_type: reject
        paths: ["src/generated/"]
  - name: infra
    path: /srv/infra
    remote: upstream
    branch: master
    fetch: false
"""


def test_load_yaml_config(tmp_path: Path) -> None:
    cfg = tmp_path / "ggl.yaml"
    cfg.write_text(YAML_CONFIG.format(root=tmp_path / "src"), encoding="utf-8")

    config = load_config(cfg)
    assert config.root == tmp_path / "src"
    assert config.filter_policy == FIRST_RULE
    assert config.fetch_timeout == 300
    assert [r.name for r in config.repositories] == ["app", "infra"]

    app, infra = config.repositories
    assert app.fetch is True
    assert app.filters is not None
    assert [f.mode for f in app.filters] == [FilterMode.INCLUDE, FilterMode.REJECT]
    assert app.filters[0].paths == ("docs/", "src/")
    assert config.repo_path(app) == tmp_path / "src" / "app"

    assert infra.filters is None
    assert config.repo_path(infra) == Path("/srv/infra")


def test_load_json_config(tmp_path: Path) -> None:
    cfg = tmp_path / "config.json"
    data = {
        "root": str(tmp_path),
        "filter_policy": "ordered",
        "fetch_timeout": 30,
        "repositories": [{"name": "a", "path": "a", "remote": "origin", "branch": "main", "fetch": False}],
    }
    cfg.write_text(json.dumps(data), encoding="utf-8")

    config = load_config(cfg)
    assert config.filter_policy == ORDERED
    assert config.fetch_timeout == 30
    assert config.repositories[0].fetch is False


def test_relative_root_is_relative_to_config_file(tmp_path: Path) -> None:
    cfg = tmp_path / "conf" / "ggl.yaml"
    cfg.parent.mkdir()
    cfg.write_text("root: ../repos\nrepositories: []\n", encoding="utf-8")
    config = load_config(cfg)
    assert config.root.resolve() == (tmp_path / "repos").resolve()


@pytest.mark.parametrize(
    "body",
    [
        "repositories: [\n",
        "- just\n- a list\n",
        "root: /tmp\n",
        "repositories:\n  - name: a\n    path: a\n    remote: origin\n",
        "repositories:\n  - {name: a, path: a, remote: origin, branch: main, filters: [{filter_type: Maybe, paths: [x]}]}\n",
        "repositories:\n  - {name: a, path: a, remote: origin, branch: main, filters: [{filter_type: Include, paths: []}]}\n",
        "filter_policy: last-rule\nrepositories: []\n",
        "repositories:\n  - {name: a, path: a, remote: origin, branch: main, fetch: \"false\"}\n",
        "repositories:\n  - {name: a, path: a, remote: origin, branch: main, fetch: 1}\n",
    ],
)
def test_malformed_config_is_rejected(tmp_path: Path, body: str) -> None:
    cfg = tmp_path / "ggl.yaml"
    cfg.write_text(body, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(cfg)


def test_resolve_config_path_prefers_flag(tmp_path: Path) -> None:
    cfg = tmp_path / "mine.yaml"
    cfg.write_text("repositories: []\n", encoding="utf-8")
    assert resolve_config_path(cfg) == cfg


def test_resolve_config_path_xdg_then_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    xdg = tmp_path / "xdg"
    xdg.mkdir()
    cwd = tmp_path / "cwd"
    cwd.mkdir()
    monkeypatch.setenv("XDG_CONFIG_HOME", str(xdg))

    (cwd / "config.yaml").write_text("repositories: []\n", encoding="utf-8")
    assert resolve_config_path(None, cwd=cwd) == cwd / "config.yaml"

    (xdg / "ggl.yaml").write_text("repositories: []\n", encoding="utf-8")
    assert resolve_config_path(None, cwd=cwd) == xdg / "ggl.yaml"


def test_missing_config_is_an_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "nothing"))
    with pytest.raises(ConfigError, match="missing config file"):
        resolve_config_path(None, cwd=tmp_path)
    with pytest.raises(ConfigError):
        resolve_config_path(tmp_path / "nope.yaml")
