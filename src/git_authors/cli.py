from __future__ import annotations

import argparse
import locale
import sys
from pathlib import Path

from .authors_file import write_authors
from .config import DEFAULT_CONFIG_PATH, load_config, settings_from
from .git import HistorySourceError, iter_observations
from .resolver import EXACT_KEYS, SORT_KEYS, STRATEGIES, make_strategy, resolve


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="git-authors", description="Generate AUTHORS file based on Git's history.")
    parser.add_argument("-o", "--output", type=str, default=None, help="Write result to this file ('-' for stdout, default: AUTHORS).")
    parser.add_argument("-r", "--repo", type=Path, default=None, help="Repository path (default: current directory).")
    parser.add_argument("-s", "--sort", choices=[*SORT_KEYS, "none"], default=None, help="Sort order (default: first-commit).")
    parser.add_argument("--keep-bots", action=argparse.BooleanOptionalAction, default=None, help="Keep bots in the author list.")
    parser.add_argument(
        "--skip-mailmap",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Do not apply .mailmap to author names/emails.",
    )
    parser.add_argument(
        "--strategy",
        choices=list(STRATEGIES),
        default=None,
        help="alias: unify identities sharing a name or email (default); exact: one author per exact key.",
    )
    parser.add_argument("--exact-key", choices=list(EXACT_KEYS), default=None, help="Identity key for --strategy exact (default: email).")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to an optional JSON config file.")
    return parser


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    args = _build_parser().parse_args(argv)
    try:
        # Name/email sorting collates with the user's locale.
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error:
        print("Warning: could not activate the user locale; sorting by code point.", file=sys.stderr)
    cfg = settings_from(load_config(args.config), args)

    status = sys.stderr if cfg.output == "-" else sys.stdout
    strategy = make_strategy(cfg.strategy, exact_key=cfg.exact_key)
    try:
        authors = resolve(
            iter_observations(cfg.repo, use_mailmap=not cfg.skip_mailmap),
            strategy=strategy,
            keep_bots=cfg.keep_bots,
            sort=cfg.sort_key,
        )
    except HistorySourceError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if strategy.skipped:
        print(f"Skipped {strategy.skipped} attribution(s) without a name or email.", file=status)
    print(f"Found {len(authors)} author(s) in {strategy.observed} attribution(s).", file=status)
    write_authors(cfg.output, authors, cfg.sort_key)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
