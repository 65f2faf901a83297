from __future__ import annotations

import json

from .models import CommitSet, ReportedCommit


def fmt_date(c: ReportedCommit) -> str:
    d = c.when
    return f"{d:%a %b} {d.day} {d:%H:%M:%S %Y %z}"


def short_sha(sha: str) -> str:
    return sha[:9]


def render_commit(c: ReportedCommit, indent: str = "") -> list[str]:
    lines: list[str] = []
    lines.append(f"commit {c.sha}")
    lines.append(f"Repo:   {c.repository}")
    if c.is_merge:
        lines.append("Merge:  " + " ".join(short_sha(p) for p in c.parents))
    author = f"{c.author} <{c.author_email}>" if c.author_email else c.author
    lines.append(f"Author: {author}")
    lines.append(f"Date:   {fmt_date(c)}")
    lines.append("")
    for line in c.message.rstrip("\n").split("\n"):
        lines.append(f"    {line}".rstrip())
    lines.append("")
    return [f"{indent}{line}" if line else line for line in lines]


def render_text(sets: list[CommitSet]) -> str:
    lines: list[str] = []
    for cs in sets:
        for i, c in enumerate(cs.commits):
            lines.extend(render_commit(c, indent="" if i == 0 else "    "))
    return "\n".join(lines) + ("\n" if lines else "")


def commit_to_dict(c: ReportedCommit) -> dict[str, object]:
    return {
        "sha": c.sha,
        "repository": c.repository,
        "author": c.author,
        "author_email": c.author_email,
        "timestamp": c.when.isoformat(),
        "message": c.message,
        "parents": list(c.parents),
    }


def commit_set_to_dict(cs: CommitSet) -> dict[str, object]:
    return {
        "timestamp": cs.when.isoformat(),
        "commits": [commit_to_dict(c) for c in cs.commits],
    }


def render_json(sets: list[CommitSet]) -> str:
    return json.dumps([commit_set_to_dict(cs) for cs in sets], indent=2, sort_keys=False) + "\n"
