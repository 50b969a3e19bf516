from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterable, Optional, TextIO

from .models import AuthorRecord

READABLE_ORDER = {
    "first-commit": "by first commit",
    "last-commit": "by last commit",
    "commits": "by number of commits",
    "name": "alphabetically by name",
    "email": "alphabetically by email",
}

FOOTER = "# Generated by git-authors."


def readable_order(sort: Optional[str]) -> str:
    return READABLE_ORDER.get(sort or "", "by first appearance")


def render_authors(records: Iterable[AuthorRecord], sort: Optional[str]) -> str:
    lines = [f"# Authors ordered {readable_order(sort)}.", ""]
    lines.extend(f"{r.name} <{r.email}>" for r in records)
    lines.extend(["", FOOTER])
    return "\n".join(lines) + "\n"


def write_authors(output: str | Path, records: Iterable[AuthorRecord], sort: Optional[str], stdout: Optional[TextIO] = None) -> None:
    """Write the authors list to `output`, or to stdout when `output` is "-"."""
    text = render_authors(records, sort)
    if str(output) == "-":
        stream = stdout if stdout is not None else sys.stdout
        stream.write(text)
        stream.flush()
        return
    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
