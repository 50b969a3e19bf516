from __future__ import annotations

import datetime as dt
import re
import subprocess
import threading
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .models import Observation

COMMIT_MARKER = "@@@"

_SHA_RE = re.compile(r"^[0-9a-f]{7,64}$")
_ATTRIBUTION_RE = re.compile(
    r"^(Author:|Co-authored-by:)\s+(?P<name>.+?)\s+<(?P<email>[^<>]+)>",
    re.IGNORECASE,
)


class HistorySourceError(RuntimeError):
    pass


def run_git(args: list[str], cwd: Path, timeout_s: int = 300) -> tuple[int, str, str]:
    proc = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        timeout=timeout_s,
    )
    return proc.returncode, proc.stdout, proc.stderr


def ensure_repository(repo: Path) -> None:
    if not repo.is_dir():
        raise HistorySourceError(f"repository path does not exist: {repo}")
    try:
        code, _, err = run_git(["rev-parse", "--git-dir"], cwd=repo)
    except OSError as e:
        raise HistorySourceError(f"failed to run git: {e}") from e
    if code != 0:
        raise HistorySourceError(f"not a git repository: {repo} ({err.strip()[:500]})")


def has_commits(repo: Path) -> bool:
    code, _, _ = run_git(["rev-parse", "--verify", "--quiet", "HEAD"], cwd=repo)
    return code == 0


def parse_author_date(value: str) -> Optional[dt.datetime]:
    s = (value or "").strip()
    if not s:
        return None
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        d = dt.datetime.fromisoformat(s)
    except ValueError:
        return None
    if d.tzinfo is None:
        d = d.replace(tzinfo=dt.timezone.utc)
    return d


def parse_attribution(line: str) -> Optional[tuple[str, str]]:
    """
    Parse an attribution line into (name, email):
      Author: Jane Doe <jane@example.com>
      Co-authored-by: Jane Doe <jane@example.com>
    Returns None for anything else.
    """
    m = _ATTRIBUTION_RE.match(line)
    if not m:
        return None
    name = m.group("name").strip()
    email = m.group("email").strip()
    if not name or not email:
        return None
    return name, email


def parse_history_lines(lines: Iterable[str]) -> Iterator[Observation]:
    """
    Turn `git log` output (see `history_format`) into observations.

    Every commit starts with `@@@<sha>\\t<author date>`; the attribution lines
    that follow inherit that date. Lines that do not parse are skipped.
    """
    seq = 0
    timestamp: Optional[dt.datetime] = None
    for raw_line in lines:
        line = raw_line.rstrip("\r\n")
        if not line:
            continue
        if line.startswith(COMMIT_MARKER):
            parts = line[len(COMMIT_MARKER) :].split("\t", 1)
            if _SHA_RE.match(parts[0]):
                timestamp = parse_author_date(parts[1]) if len(parts) > 1 else None
                continue
        if timestamp is None:
            continue
        parsed = parse_attribution(line)
        if parsed is None:
            continue
        name, email = parsed
        yield Observation(name=name, email=email, timestamp=timestamp, sequence=seq)
        seq += 1


def history_format(use_mailmap: bool) -> str:
    who = "%aN <%aE>" if use_mailmap else "%an <%ae>"
    return f"{COMMIT_MARKER}%H%x09%aI%nAuthor: {who}%n%b"


def iter_observations(repo: Path, *, use_mailmap: bool = True) -> Iterator[Observation]:
    """
    Stream observations from the history of `repo`, oldest commit first.

    Raises HistorySourceError when `repo` is not a readable git repository or
    `git log` fails. Closing the generator early stops the git process.
    """
    ensure_repository(repo)
    if not has_commits(repo):
        return

    cmd = ["git", "log", "--reverse", f"--format={history_format(use_mailmap)}"]
    try:
        proc = subprocess.Popen(
            cmd,
            cwd=str(repo),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as e:
        raise HistorySourceError(f"failed to start git log: {e}") from e

    stderr_chunks: list[str] = []
    stderr_chars = 0
    max_stderr_chars = 50_000

    def drain_stderr() -> None:
        nonlocal stderr_chars
        if proc.stderr is None:
            return
        while True:
            chunk = proc.stderr.read(8192)
            if not chunk:
                return
            if stderr_chars >= max_stderr_chars:
                continue
            take = chunk[: max_stderr_chars - stderr_chars]
            stderr_chunks.append(take)
            stderr_chars += len(take)

    stderr_thread = threading.Thread(target=drain_stderr, daemon=True)
    stderr_thread.start()

    finished = False
    assert proc.stdout is not None
    try:
        yield from parse_history_lines(proc.stdout)
        finished = True
    finally:
        if not finished and proc.poll() is None:
            proc.kill()
        proc.stdout.close()
        code = proc.wait()
        stderr_thread.join()

    if code != 0:
        stderr = "".join(stderr_chunks)
        raise HistorySourceError(f"git log exited {code}: {stderr.strip()[:500]}")
