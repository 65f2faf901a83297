from __future__ import annotations

import re
import subprocess
import threading
from collections.abc import Iterator
from pathlib import Path

from .models import Commit


class GitError(RuntimeError):
    pass


class RepositoryNotFound(GitError):
    pass


class FetchError(GitError):
    pass


class CommitDataError(ValueError):
    pass


_AUTHOR_RE = re.compile(r"^(?P<name>.*?) ?<(?P<email>[^>]*)> (?P<ts>-?\d+) (?P<tz>[+-]\d{4})$")


def run_git(args: list[str], cwd: Path, timeout_s: int = 300) -> tuple[int, str, str]:
    proc = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
        timeout=timeout_s,
    )
    return proc.returncode, proc.stdout, proc.stderr


def run_git_bytes(args: list[str], cwd: Path, timeout_s: int = 300) -> tuple[int, bytes, str]:
    proc = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        capture_output=True,
        timeout=timeout_s,
    )
    return proc.returncode, proc.stdout, proc.stderr.decode("utf-8", errors="replace")


def parse_offset(tz: str) -> int:
    sign = -1 if tz.startswith("-") else 1
    digits = tz[1:]
    return sign * (int(digits[:2]) * 60 + int(digits[2:4]))


def parse_commit_object(sha: str, raw: bytes) -> Commit:
    """
    Parse the output of `git cat-file commit <sha>`.

    Headers run up to the first empty line; continuation lines (gpgsig, mergetag)
    start with a space and are skipped. Everything after the empty line is the message.
    """
    head, sep, body = raw.partition(b"\n\n")
    if not sep:
        raise CommitDataError(f"{sha}: commit object has no message")

    encoding = "utf-8"
    parents: list[str] = []
    author_line = b""
    for line in head.split(b"\n"):
        if line.startswith(b" "):
            continue
        key, _, value = line.partition(b" ")
        if key == b"parent":
            parents.append(value.decode("ascii").strip())
        elif key == b"author":
            author_line = value
        elif key == b"encoding":
            encoding = value.decode("ascii", errors="replace").strip() or "utf-8"

    try:
        author = author_line.decode(encoding)
        message = body.decode(encoding)
    except (UnicodeDecodeError, LookupError) as e:
        raise CommitDataError(f"{sha}: cannot decode commit as {encoding}: {e}") from e

    m = _AUTHOR_RE.match(author.strip())
    if m is None:
        raise CommitDataError(f"{sha}: malformed author line: {author!r}")
    name = m.group("name").strip()
    if not name:
        raise CommitDataError(f"{sha}: commit has no author name")

    return Commit(
        sha=sha,
        author_name=name,
        author_email=m.group("email").strip(),
        timestamp=int(m.group("ts")),
        offset_minutes=parse_offset(m.group("tz")),
        message=message,
        parents=tuple(parents),
    )


class GitRepository:
    """Read-only view of one repository, driven through the `git` executable."""

    def __init__(self, path: Path, timeout_s: int = 300) -> None:
        self.path = path
        self.timeout_s = timeout_s

    @classmethod
    def open(cls, path: Path, timeout_s: int = 300) -> GitRepository:
        try:
            is_dir = path.is_dir()
        except OSError as e:
            raise RepositoryNotFound(f"cannot access repository path {path}: {e}") from e
        if not is_dir:
            raise RepositoryNotFound(f"repository path does not exist: {path}")
        repo = cls(path, timeout_s=timeout_s)
        code, _, err = repo._git(["rev-parse", "--git-dir"])
        if code != 0:
            raise RepositoryNotFound(f"not a git repository: {path}: {err.strip()}")
        return repo

    def _git(self, args: list[str], timeout_s: int | None = None) -> tuple[int, str, str]:
        try:
            return run_git(args, cwd=self.path, timeout_s=timeout_s or self.timeout_s)
        except subprocess.TimeoutExpired as e:
            raise GitError(f"git {args[0]} timed out after {e.timeout}s in {self.path}") from e
        except OSError as e:
            raise GitError(f"failed to run git {args[0]} in {self.path}: {e}") from e

    def _git_bytes(self, args: list[str]) -> tuple[int, bytes, str]:
        try:
            return run_git_bytes(args, cwd=self.path, timeout_s=self.timeout_s)
        except subprocess.TimeoutExpired as e:
            raise GitError(f"git {args[0]} timed out after {e.timeout}s in {self.path}") from e
        except OSError as e:
            raise GitError(f"failed to run git {args[0]} in {self.path}: {e}") from e

    def resolve(self, ref: str) -> str:
        code, out, err = self._git(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"])
        sha = out.strip()
        if code != 0 or not sha:
            raise GitError(f"cannot resolve {ref!r} in {self.path}{': ' + err.strip() if err.strip() else ''}")
        return sha

    def tip(self, remote: str, branch: str) -> str:
        candidates = [f"refs/remotes/{remote}/{branch}", f"refs/heads/{branch}"]
        for ref in candidates:
            try:
                return self.resolve(ref)
            except GitError:
                continue
        raise GitError(f"cannot resolve {remote}/{branch} (or local {branch}) in {self.path}")

    def walk(self, start: str) -> Iterator[str]:
        """Yield commit ids reachable from `start`, newest first, in topological order."""
        cmd = ["git", "rev-list", "--topo-order", start]
        try:
            proc = subprocess.Popen(
                cmd,
                cwd=str(self.path),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise GitError(f"failed to start git rev-list: {e}") from e

        stderr_chunks: list[bytes] = []

        def drain_stderr() -> None:
            if proc.stderr is None:
                return
            while True:
                chunk = proc.stderr.read(8192)
                if not chunk:
                    return
                if sum(len(c) for c in stderr_chunks) < 50_000:
                    stderr_chunks.append(chunk)

        stderr_thread = threading.Thread(target=drain_stderr, daemon=True)
        stderr_thread.start()

        finished = False
        try:
            assert proc.stdout is not None
            for raw_line in proc.stdout:
                sha = raw_line.strip().decode("ascii", errors="replace")
                if sha:
                    yield sha
            finished = True
        finally:
            if not finished and proc.poll() is None:
                proc.kill()
            code = proc.wait()
            stderr_thread.join()
            if proc.stdout is not None:
                proc.stdout.close()
        if code != 0:
            stderr_text = b"".join(stderr_chunks).decode("utf-8", errors="replace")
            raise GitError(f"git rev-list exited {code}: {stderr_text.strip()[:500]}")

    def commit(self, sha: str) -> Commit:
        code, out, err = self._git_bytes(["cat-file", "commit", sha])
        if code != 0:
            raise GitError(f"cannot read commit {sha}: {err.strip()}")
        return parse_commit_object(sha, out)

    def changed_paths(self, sha: str, against: str | None) -> set[str]:
        if against is None:
            args = ["diff-tree", "-r", "--root", "--no-commit-id", "--name-only", "-z", sha]
        else:
            args = ["diff-tree", "-r", "--no-commit-id", "--name-only", "-z", against, sha]
        code, out, err = self._git_bytes(args)
        if code != 0:
            raise GitError(f"cannot diff {sha} against {against or 'empty tree'}: {err.strip()}")
        paths: set[str] = set()
        for raw in out.split(b"\0"):
            if not raw:
                continue
            try:
                paths.add(raw.decode("utf-8"))
            except UnicodeDecodeError as e:
                raise CommitDataError(f"{sha}: changed path is not valid UTF-8: {raw!r}") from e
        return paths

    def fetch(self, remote: str, branch: str, timeout_s: int | None = None) -> None:
        try:
            code, _, err = self._git(["fetch", remote, branch], timeout_s=timeout_s)
        except GitError as e:
            raise FetchError(str(e)) from e
        if code != 0:
            raise FetchError(f"git fetch {remote} {branch} failed in {self.path}: {err.strip()[:500]}")
