from __future__ import annotations

import datetime as dt
import sys
from concurrent.futures import ThreadPoolExecutor, as_completed

from .aggregate import merge_repo_logs
from .commit_sets import build_commit_sets
from .config import Config
from .git import GitError, GitRepository
from .models import CommitSet, RepoLog, RepositoryDescriptor
from .render import render_json, render_text


def collect_repo(config: Config, repo: RepositoryDescriptor, boundary: dt.datetime, *, fetch: bool) -> RepoLog:
    path = config.repo_path(repo)
    errors: list[str] = []
    try:
        source = GitRepository.open(path)
        if fetch and repo.fetch:
            print(f"Fetching {repo.name} {repo.remote}/{repo.branch}", file=sys.stderr)
            source.fetch(repo.remote, repo.branch, timeout_s=config.fetch_timeout)
        start = source.tip(repo.remote, repo.branch)
        sets = build_commit_sets(
            source,
            repo,
            boundary,
            start=start,
            policy=config.filter_policy,
            errors=errors,
        )
    except GitError as e:
        errors.append(f"{repo.name}: {e}")
        return RepoLog(name=repo.name, path=str(path), commit_sets=[], errors=errors)
    return RepoLog(name=repo.name, path=str(path), commit_sets=sets, errors=errors)


def collect_all(config: Config, boundary: dt.datetime, *, fetch: bool = False, jobs: int = 1) -> list[RepoLog]:
    if jobs <= 1 or len(config.repositories) <= 1:
        return [collect_repo(config, repo, boundary, fetch=fetch) for repo in config.repositories]

    logs: list[RepoLog] = []
    with ThreadPoolExecutor(max_workers=jobs) as ex:
        futs = [ex.submit(collect_repo, config, repo, boundary, fetch=fetch) for repo in config.repositories]
        for fut in as_completed(futs):
            logs.append(fut.result())
    return logs


def report_errors(logs: list[RepoLog]) -> int:
    count = 0
    for log in sorted(logs, key=lambda r: r.name):
        for err in log.errors:
            print(f"error: {err}", file=sys.stderr)
            count += 1
    return count


def run_report(
    *,
    config: Config,
    boundary: dt.datetime,
    fetch: bool = False,
    as_json: bool = False,
    reverse: bool = False,
    jobs: int = 1,
) -> int:
    logs = collect_all(config, boundary, fetch=fetch, jobs=jobs)
    report_errors(logs)
    sets: list[CommitSet] = merge_repo_logs(logs, reverse=reverse)
    out = render_json(sets) if as_json else render_text(sets)
    sys.stdout.write(out)
    return 0
