from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import ConfigError, load_config, resolve_config_path
from .run import run_report
from .timebounds import Clock, time_boundary


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ggl", description="Global git log: one chronological log across many repos.")
    parser.add_argument(
        "--until",
        "-u",
        type=str,
        default="",
        help="How far into the past should we go? e.g. 2022-12-31; defaults to one week ago.",
    )
    parser.add_argument("--fetch", "-f", action="store_true", help="Run git fetch for repositories with fetch: true.")
    parser.add_argument("--json", "-j", action="store_true", help="Print JSON.")
    parser.add_argument("--reverse", "-r", action="store_true", help="Oldest first (also reverses commits inside a merge group).")
    parser.add_argument("--config", "-c", type=Path, default=None, help="Path to config file (default: $XDG_CONFIG_HOME/ggl.yaml, then ./config.yaml).")
    parser.add_argument("--jobs", type=int, default=1, help="Walk this many repositories in parallel.")
    return parser


def main(argv: list[str] | None = None, *, clock: Clock | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    args = _build_parser().parse_args(argv)

    try:
        boundary = time_boundary(args.until or None, clock=clock)
        config_path = resolve_config_path(args.config)
        config = load_config(config_path)
    except (ConfigError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    return run_report(
        config=config,
        boundary=boundary,
        fetch=bool(args.fetch),
        as_json=bool(args.json),
        reverse=bool(args.reverse),
        jobs=max(1, int(args.jobs)),
    )


if __name__ == "__main__":
    raise SystemExit(main())
