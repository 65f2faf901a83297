from __future__ import annotations

import dataclasses
import datetime as dt
import enum
from pathlib import Path


class FilterMode(enum.Enum):
    INCLUDE = "include"
    REJECT = "reject"


@dataclasses.dataclass(frozen=True)
class FilterRule:
    mode: FilterMode
    paths: tuple[str, ...]

    def matches(self, changed_paths: set[str] | list[str]) -> bool:
        for needle in self.paths:
            for path in changed_paths:
                if needle in path:
                    return True
        return False


@dataclasses.dataclass(frozen=True)
class RepositoryDescriptor:
    name: str
    path: Path
    remote: str = "origin"
    branch: str = "main"
    fetch: bool = False
    filters: tuple[FilterRule, ...] | None = None


@dataclasses.dataclass(frozen=True)
class Commit:
    sha: str
    author_name: str
    author_email: str
    timestamp: int  # epoch seconds
    offset_minutes: int
    message: str
    parents: tuple[str, ...] = ()

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1

    @property
    def when(self) -> dt.datetime:
        return to_datetime(self.timestamp, self.offset_minutes)


@dataclasses.dataclass(frozen=True)
class ReportedCommit:
    sha: str
    repository: str
    author: str
    author_email: str
    timestamp: int
    offset_minutes: int
    message: str
    parents: tuple[str, ...] = ()

    @classmethod
    def from_commit(cls, commit: Commit, repository: str) -> ReportedCommit:
        return cls(
            sha=commit.sha,
            repository=repository,
            author=commit.author_name,
            author_email=commit.author_email,
            timestamp=commit.timestamp,
            offset_minutes=commit.offset_minutes,
            message=commit.message,
            parents=commit.parents,
        )

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1

    @property
    def when(self) -> dt.datetime:
        return to_datetime(self.timestamp, self.offset_minutes)


@dataclasses.dataclass(frozen=True)
class CommitSet:
    """A single relevant commit, or a merge bundled with the commits it introduced."""

    timestamp: int
    commits: tuple[ReportedCommit, ...]

    def __post_init__(self) -> None:
        if not self.commits:
            raise ValueError("a commit set needs at least one commit")

    @property
    def repository(self) -> str:
        return self.commits[0].repository

    @property
    def sha(self) -> str:
        return self.commits[0].sha

    @property
    def when(self) -> dt.datetime:
        offset = self.commits[0].offset_minutes
        for c in self.commits:
            if c.timestamp == self.timestamp:
                offset = c.offset_minutes
                break
        return to_datetime(self.timestamp, offset)

    def reversed(self) -> CommitSet:
        return CommitSet(timestamp=self.timestamp, commits=tuple(reversed(self.commits)))


@dataclasses.dataclass
class RepoLog:
    name: str
    path: str
    commit_sets: list[CommitSet]
    errors: list[str]


def to_datetime(timestamp: int, offset_minutes: int) -> dt.datetime:
    tz = dt.timezone(dt.timedelta(minutes=offset_minutes))
    return dt.datetime.fromtimestamp(timestamp, tz=tz)
