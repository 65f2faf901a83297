from __future__ import annotations

from collections.abc import Iterable

from .models import CommitSet, RepoLog


def sort_key(cs: CommitSet) -> tuple[int, str, str]:
    return (-cs.timestamp, cs.repository, cs.sha)


def merge_commit_sets(per_repository: Iterable[Iterable[CommitSet]], *, reverse: bool = False) -> list[CommitSet]:
    """
    Interleave commit sets from every repository, newest first.

    Ties on timestamp are ordered by repository name and then by commit id so the
    output does not depend on which repository finished walking first.
    """
    merged: list[CommitSet] = []
    for sets in per_repository:
        merged.extend(sets)
    merged.sort(key=sort_key)
    if reverse:
        return reverse_report(merged)
    return merged


def reverse_report(sets: list[CommitSet]) -> list[CommitSet]:
    return [cs.reversed() for cs in reversed(sets)]


def merge_repo_logs(logs: Iterable[RepoLog], *, reverse: bool = False) -> list[CommitSet]:
    return merge_commit_sets((log.commit_sets for log in logs), reverse=reverse)
