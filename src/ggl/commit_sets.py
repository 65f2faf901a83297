from __future__ import annotations

import dataclasses
import datetime as dt
from collections.abc import Iterator
from typing import Protocol

from .filters import FIRST_RULE, is_relevant
from .git import CommitDataError
from .models import Commit, CommitSet, ReportedCommit, RepositoryDescriptor


class CommitSource(Protocol):
    def walk(self, start: str) -> Iterator[str]: ...

    def commit(self, sha: str) -> Commit: ...

    def changed_paths(self, sha: str, against: str | None) -> set[str]: ...


@dataclasses.dataclass
class _Group:
    target: str  # first parent of the merge that opened the group
    timestamp: int
    buffer: list[ReportedCommit]


class CommitSetBuilder:
    """
    Groups a topologically ordered stream of commits into commit sets.

    Open merge groups live on a stack. A commit that is the first parent of an open
    merge closes that group (and folds every group nested above it into it) before
    the commit itself is filtered, so a filtered-out mainline commit still ends the
    group. Only the outermost group is emitted; inner groups end up in its buffer.
    """

    def __init__(self, repository: RepositoryDescriptor, policy: str = FIRST_RULE) -> None:
        self.repository = repository
        self.policy = policy
        self.stack: list[_Group] = []
        self.emitted: list[CommitSet] = []

    def close_groups_at(self, sha: str) -> None:
        idx = next((i for i, g in enumerate(self.stack) if g.target == sha), None)
        if idx is None:
            return
        group = self._collapse_from(idx)
        if self.stack:
            self.stack[-1].buffer.extend(group.buffer)
        else:
            self.emitted.append(CommitSet(timestamp=group.timestamp, commits=tuple(group.buffer)))

    def _collapse_from(self, idx: int) -> _Group:
        while len(self.stack) > idx + 1:
            inner = self.stack.pop()
            self.stack[-1].buffer.extend(inner.buffer)
        return self.stack.pop()

    def visit(self, commit: Commit, changed_paths: set[str] | None = None) -> None:
        """
        Feed the next commit of the walk. `changed_paths` is required for non-merge
        commits when the repository has filters; merges are never filtered.
        """
        self.close_groups_at(commit.sha)

        if not commit.is_merge and self.repository.filters:
            if not is_relevant(self.repository.filters, changed_paths or set(), self.policy):
                return

        reported = ReportedCommit.from_commit(commit, self.repository.name)
        if commit.is_merge:
            self.stack.append(_Group(target=commit.parents[0], timestamp=commit.timestamp, buffer=[reported]))
        elif self.stack:
            self.stack[-1].buffer.append(reported)
        else:
            self.emitted.append(CommitSet(timestamp=commit.timestamp, commits=(reported,)))

    def finish(self) -> list[CommitSet]:
        # The walk stopped before some merge's first parent was seen: flush what was buffered.
        if self.stack:
            group = self._collapse_from(0)
            self.emitted.append(CommitSet(timestamp=group.timestamp, commits=tuple(group.buffer)))
        return self.emitted


def build_commit_sets(
    source: CommitSource,
    repository: RepositoryDescriptor,
    boundary: dt.datetime,
    *,
    start: str,
    policy: str = FIRST_RULE,
    errors: list[str] | None = None,
) -> list[CommitSet]:
    """
    Walk `source` from `start` back to `boundary` and return the commit sets in
    discovery order. Malformed commits are reported into `errors` and skipped.
    """
    until = int(boundary.timestamp())
    builder = CommitSetBuilder(repository, policy=policy)

    def skip(sha: str, err: CommitDataError) -> None:
        if errors is not None:
            errors.append(f"{repository.name}: skipped commit: {err}")
        builder.close_groups_at(sha)

    walk = source.walk(start)
    try:
        for sha in walk:
            try:
                commit = source.commit(sha)
            except CommitDataError as e:
                skip(sha, e)
                continue

            if commit.timestamp < until:
                break

            changed: set[str] | None = None
            if not commit.is_merge and repository.filters:
                against = commit.parents[0] if commit.parents else None
                try:
                    changed = source.changed_paths(sha, against)
                except CommitDataError as e:
                    skip(sha, e)
                    continue

            builder.visit(commit, changed)
    finally:
        close = getattr(walk, "close", None)
        if close is not None:
            close()
    return builder.finish()
