from __future__ import annotations

from ggl.aggregate import merge_commit_sets, merge_repo_logs, reverse_report
from ggl.models import CommitSet, RepoLog, ReportedCommit


def _rc(sha: str, repo: str, ts: int) -> ReportedCommit:
    return ReportedCommit(
        sha=sha,
        repository=repo,
        author="Test User",
        author_email="test@example.com",
        timestamp=ts,
        offset_minutes=0,
        message=f"{sha}\n",
    )


def _single(sha: str, repo: str, ts: int) -> CommitSet:
    return CommitSet(timestamp=ts, commits=(_rc(sha, repo, ts),))


def test_merge_orders_newest_first_across_repos() -> None:
    alpha = [_single("a3", "alpha", 300), _single("a1", "alpha", 100)]
    beta = [_single("b4", "beta", 400), _single("b2", "beta", 200)]

    merged = merge_commit_sets([alpha, beta])
    assert [cs.sha for cs in merged] == ["b4", "a3", "b2", "a1"]


def test_equal_timestamps_break_ties_by_repo_then_sha() -> None:
    zeta = [_single("z1", "zeta", 100)]
    alpha = [_single("ff", "alpha", 100), _single("aa", "alpha", 100)]

    merged = merge_commit_sets([zeta, alpha])
    assert [(cs.repository, cs.sha) for cs in merged] == [("alpha", "aa"), ("alpha", "ff"), ("zeta", "z1")]

    # Input order does not matter.
    merged2 = merge_commit_sets([alpha, zeta])
    assert merged2 == merged


def test_merge_is_idempotent() -> None:
    per_repo = [
        [_single("a2", "alpha", 200), _single("a1", "alpha", 100)],
        [_single("b2", "beta", 200)],
    ]
    assert merge_commit_sets(per_repo) == merge_commit_sets(per_repo)


def test_reverse_flips_sets_and_commits_inside_sets() -> None:
    group = CommitSet(timestamp=300, commits=(_rc("m", "alpha", 300), _rc("y", "alpha", 250), _rc("x", "alpha", 240)))
    per_repo = [[group, _single("p", "alpha", 200)], [_single("b", "beta", 400)]]

    rev = merge_commit_sets(per_repo, reverse=True)
    assert [cs.sha for cs in rev] == ["p", "x", "b"]
    assert [c.sha for c in rev[1].commits] == ["x", "y", "m"]
    assert rev[1].timestamp == 300


def test_reverse_is_involutive() -> None:
    group = CommitSet(timestamp=300, commits=(_rc("m", "alpha", 300), _rc("x", "alpha", 240)))
    merged = merge_commit_sets([[group, _single("p", "alpha", 200)], [_single("b", "beta", 400)]])
    assert reverse_report(reverse_report(merged)) == merged


def test_failed_repo_contributes_nothing() -> None:
    ok = RepoLog(name="alpha", path="/tmp/alpha", commit_sets=[_single("a1", "alpha", 100)], errors=[])
    failed = RepoLog(name="beta", path="/tmp/beta", commit_sets=[], errors=["beta: not a git repository"])

    merged = merge_repo_logs([failed, ok])
    assert [cs.sha for cs in merged] == ["a1"]
