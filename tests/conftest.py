from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

FAKE_GIT = """#!{python}
import sys
from pathlib import Path

HERE = Path(__file__).resolve().parent


def main() -> int:
    args = sys.argv[1:]
    if (HERE / "not-a-repo").exists() and args[:1] == ["rev-parse"]:
        sys.stderr.write("fatal: not a git repository\\n")
        return 128
    if args[:2] == ["rev-parse", "--git-dir"]:
        sys.stdout.write(".git\\n")
        return 0
    if args[:2] == ["rev-parse", "--verify"]:
        return 1 if (HERE / "no-commits").exists() else 0
    if args[:1] == ["log"]:
        (HERE / "log-args.txt").write_text("\\n".join(args), encoding="utf-8")
        sys.stdout.write((HERE / "history.txt").read_text(encoding="utf-8"))
        sys.stdout.flush()
        if (HERE / "stderr-flood").exists():
            sys.stderr.write("E" * (2 * 1024 * 1024))
            sys.stderr.flush()
        return int((HERE / "exit-code").read_text()) if (HERE / "exit-code").exists() else 0
    sys.stderr.write("unexpected args: " + " ".join(args) + "\\n")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
"""


@pytest.fixture
def fake_git(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Put a scripted `git` first on PATH; returns its directory for per-test knobs."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    git = bin_dir / "git"
    git.write_text(FAKE_GIT.replace("{python}", sys.executable, 1), encoding="utf-8")
    git.chmod(0o755)
    (bin_dir / "history.txt").write_text("", encoding="utf-8")
    monkeypatch.setenv("PATH", str(bin_dir) + os.pathsep + os.environ.get("PATH", ""))
    return bin_dir


@pytest.fixture
def repo_dir(tmp_path: Path) -> Path:
    repo = tmp_path / "repo"
    repo.mkdir()
    return repo
