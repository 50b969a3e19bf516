from __future__ import annotations

import datetime as dt
from pathlib import Path

import pytest

from git_authors.git import (
    HistorySourceError,
    ensure_repository,
    history_format,
    iter_observations,
    parse_attribution,
    parse_author_date,
    parse_history_lines,
)
from git_authors.resolver import resolve

SHA1 = "a" * 40
SHA2 = "b" * 40
SHA3 = "c" * 40

HISTORY = "\n".join(
    [
        f"@@@{SHA1}\t2024-01-01T10:00:00+02:00",
        "Author: Jane Doe <Jane@Example.com>",
        "Initial import",
        "",
        f"@@@{SHA2}\t2024-02-01T12:00:00Z",
        "Author: John Roe <john@example.com>",
        "Fix things",
        "",
        "Co-authored-by: Jane D. <jane@example.com>",
        "co-authored-by: Broken Line without email",
        f"@@@{SHA3}\t2024-03-01T09:30:00+00:00",
        "Author: dependabot[bot] <49699333+dependabot[bot]@users.noreply.github.com>",
        "",
    ]
)


def test_parse_attribution() -> None:
    assert parse_attribution("Author: Jane Doe <jane@x.com>") == ("Jane Doe", "jane@x.com")
    assert parse_attribution("Co-Authored-By:   Jane   Doe   <jane@x.com>") == ("Jane   Doe", "jane@x.com")
    assert parse_attribution("Co-authored-by: Jane Doe") is None
    assert parse_attribution("Reviewed-by: Jane Doe <jane@x.com>") is None
    assert parse_attribution("  Author: Jane Doe <jane@x.com>") is None


def test_parse_author_date() -> None:
    assert parse_author_date("2024-02-01T12:00:00Z") == dt.datetime(2024, 2, 1, 12, tzinfo=dt.timezone.utc)
    naive = parse_author_date("2024-02-01T12:00:00")
    assert naive is not None and naive.tzinfo == dt.timezone.utc
    assert parse_author_date("yesterday") is None
    assert parse_author_date("") is None


def test_parse_history_lines_stamps_attributions_with_commit_date() -> None:
    obs = list(parse_history_lines(HISTORY.splitlines(keepends=True)))

    assert [(o.name, o.email) for o in obs] == [
        ("Jane Doe", "Jane@Example.com"),
        ("John Roe", "john@example.com"),
        ("Jane D.", "jane@example.com"),
        ("dependabot[bot]", "49699333+dependabot[bot]@users.noreply.github.com"),
    ]
    assert [o.sequence for o in obs] == [0, 1, 2, 3]
    assert obs[0].timestamp == dt.datetime(2024, 1, 1, 8, tzinfo=dt.timezone.utc)
    assert obs[1].timestamp == obs[2].timestamp


def test_commit_with_unparseable_date_contributes_nothing() -> None:
    lines = [
        f"@@@{SHA1}\tnot-a-date",
        "Author: Ghost <ghost@x.com>",
        f"@@@{SHA2}\t2024-02-01T12:00:00Z",
        "Author: Real <real@x.com>",
    ]
    assert [o.name for o in parse_history_lines(lines)] == ["Real"]


def test_body_line_resembling_marker_keeps_commit_date() -> None:
    lines = [
        f"@@@{SHA1}\t2024-02-01T12:00:00Z",
        "@@@ hunk header pasted into the message",
        "Co-authored-by: Pat <pat@x.com>",
    ]
    obs = list(parse_history_lines(lines))
    assert [o.name for o in obs] == ["Pat"]


def test_history_format_respects_mailmap_switch() -> None:
    assert "%aN <%aE>" in history_format(True)
    assert "%an <%ae>" in history_format(False)


def test_iter_observations_streams_fake_git(fake_git: Path, repo_dir: Path) -> None:
    (fake_git / "history.txt").write_text(HISTORY, encoding="utf-8")

    authors = resolve(iter_observations(repo_dir), sort="commits")

    assert [(a.name, a.email, a.commits) for a in authors] == [
        ("Jane D.", "jane@example.com", 2),
        ("John Roe", "john@example.com", 1),
    ]
    log_args = (fake_git / "log-args.txt").read_text(encoding="utf-8").splitlines()
    assert "--reverse" in log_args
    assert any("%aN" in a for a in log_args)


def test_iter_observations_without_mailmap(fake_git: Path, repo_dir: Path) -> None:
    list(iter_observations(repo_dir, use_mailmap=False))
    log_args = (fake_git / "log-args.txt").read_text(encoding="utf-8").splitlines()
    assert any("%an" in a for a in log_args)


def test_iter_observations_does_not_deadlock_on_stderr(fake_git: Path, repo_dir: Path) -> None:
    (fake_git / "history.txt").write_text(HISTORY, encoding="utf-8")
    (fake_git / "stderr-flood").write_text("1", encoding="utf-8")

    assert len(list(iter_observations(repo_dir))) == 4


def test_iter_observations_raises_when_git_log_fails(fake_git: Path, repo_dir: Path) -> None:
    (fake_git / "history.txt").write_text(HISTORY, encoding="utf-8")
    (fake_git / "exit-code").write_text("128", encoding="utf-8")

    with pytest.raises(HistorySourceError, match="git log exited 128"):
        list(iter_observations(repo_dir))


def test_empty_repository_yields_nothing(fake_git: Path, repo_dir: Path) -> None:
    (fake_git / "no-commits").write_text("1", encoding="utf-8")
    assert list(iter_observations(repo_dir)) == []
    assert not (fake_git / "log-args.txt").exists()


def test_early_close_stops_reading(fake_git: Path, repo_dir: Path) -> None:
    (fake_git / "history.txt").write_text(HISTORY, encoding="utf-8")

    gen = iter_observations(repo_dir)
    first = next(gen)
    gen.close()
    assert first.name == "Jane Doe"


def test_missing_path_is_fatal(tmp_path: Path) -> None:
    with pytest.raises(HistorySourceError, match="does not exist"):
        ensure_repository(tmp_path / "nope")


def test_non_repository_is_fatal(fake_git: Path, repo_dir: Path) -> None:
    (fake_git / "not-a-repo").write_text("1", encoding="utf-8")
    with pytest.raises(HistorySourceError, match="not a git repository"):
        list(iter_observations(repo_dir))
