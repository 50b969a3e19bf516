from __future__ import annotations

import locale
from typing import Callable, Iterable, Optional

from .identity import is_bot_name, normalize_email, normalize_name
from .models import AliasedAuthorRecord, AuthorRecord, Observation

STRATEGIES = ("alias", "exact")
EXACT_KEYS = ("email", "name-email")
SORT_KEYS = ("first-commit", "last-commit", "commits", "name", "email")

TieBreak = Callable[[AliasedAuthorRecord, AliasedAuthorRecord], AliasedAuthorRecord]


def oldest_wins(a: AliasedAuthorRecord, b: AliasedAuthorRecord) -> AliasedAuthorRecord:
    return a if a.record_id < b.record_id else b


class ResolutionStrategy:
    """
    Stateful policy that folds observations into author records.

    Observations must be fed in stream order. Stopping early leaves a valid,
    incomplete set of records; `records()` can be called at any point.
    """

    def __init__(self) -> None:
        self.observed = 0
        self.skipped = 0
        self._next_id = 0

    def feed(self, obs: Observation) -> None:
        name = normalize_name(obs.name)
        email = normalize_email(obs.email)
        if not name or not email:
            self.skipped += 1
            return
        self.observed += 1
        self._apply(obs, name, email)

    def records(self) -> list[AuthorRecord]:
        raise NotImplementedError

    def _apply(self, obs: Observation, name_key: str, email: str) -> None:
        raise NotImplementedError

    def _new_id(self) -> int:
        rid = self._next_id
        self._next_id += 1
        return rid


class AliasSetStrategy(ResolutionStrategy):
    """
    Each record collects every name and email ever attributed to it. An
    observation sharing its name with one record and its email with another
    proves both are the same person and merges them.
    """

    def __init__(self, tie_break: TieBreak = oldest_wins) -> None:
        super().__init__()
        self.tie_break = tie_break
        self._arena: dict[int, AliasedAuthorRecord] = {}
        self._by_name: dict[str, int] = {}
        self._by_email: dict[str, int] = {}

    def records(self) -> list[AuthorRecord]:
        return list(self._arena.values())

    def _apply(self, obs: Observation, name_key: str, email: str) -> None:
        name_id = self._by_name.get(name_key)
        email_id = self._by_email.get(email)

        if name_id is not None and email_id is not None:
            if name_id == email_id:
                record = self._arena[name_id]
            else:
                record = self._merge(self._arena[name_id], self._arena[email_id])
        elif name_id is not None:
            record = self._arena[name_id]
            record.known_emails.add(email)
            self._by_email[email] = record.record_id
        elif email_id is not None:
            record = self._arena[email_id]
            record.known_names.add(name_key)
            self._by_name[name_key] = record.record_id
        else:
            rid = self._new_id()
            self._arena[rid] = AliasedAuthorRecord(
                record_id=rid,
                name=obs.name,
                email=email,
                commits=1,
                first_seen=obs.timestamp,
                last_seen=obs.timestamp,
                known_names={name_key},
                known_emails={email},
            )
            self._by_name[name_key] = rid
            self._by_email[email] = rid
            return

        record.observe(obs.name, email, obs.timestamp)

    def _merge(self, a: AliasedAuthorRecord, b: AliasedAuthorRecord) -> AliasedAuthorRecord:
        winner = self.tie_break(a, b)
        loser = b if winner is a else a
        winner.absorb(loser)
        for n in loser.known_names:
            self._by_name[n] = winner.record_id
        for e in loser.known_emails:
            self._by_email[e] = winner.record_id
        del self._arena[loser.record_id]
        return winner


class ExactKeyStrategy(ResolutionStrategy):
    """Identity is one fixed key: the email, or the (name, email) pair."""

    def __init__(self, key: str = "email") -> None:
        if key not in EXACT_KEYS:
            raise ValueError(f"unknown exact key {key!r} (expected one of: {', '.join(EXACT_KEYS)})")
        super().__init__()
        self.key = key
        self._arena: dict[str, AuthorRecord] = {}

    def records(self) -> list[AuthorRecord]:
        return list(self._arena.values())

    def _apply(self, obs: Observation, name_key: str, email: str) -> None:
        k = email if self.key == "email" else f"{name_key}\0{email}"
        record = self._arena.get(k)
        if record is None:
            self._arena[k] = AuthorRecord(
                record_id=self._new_id(),
                name=obs.name,
                email=email,
                commits=1,
                first_seen=obs.timestamp,
                last_seen=obs.timestamp,
            )
            return
        record.observe(obs.name, email, obs.timestamp)


def make_strategy(name: str, *, exact_key: str = "email", tie_break: TieBreak = oldest_wins) -> ResolutionStrategy:
    if name == "alias":
        return AliasSetStrategy(tie_break=tie_break)
    if name == "exact":
        return ExactKeyStrategy(key=exact_key)
    raise ValueError(f"unknown strategy {name!r} (expected one of: {', '.join(STRATEGIES)})")


def _collate(s: str) -> tuple[str, str]:
    return locale.strxfrm(s.casefold()), locale.strxfrm(s)


def sort_records(records: Iterable[AuthorRecord], sort: Optional[str]) -> list[AuthorRecord]:
    out = list(records)
    if sort is None or sort == "none":
        return out
    if sort == "first-commit":
        out.sort(key=lambda r: r.first_seen)
    elif sort == "last-commit":
        out.sort(key=lambda r: r.last_seen)
    elif sort == "commits":
        out.sort(key=lambda r: -r.commits)
    elif sort == "name":
        out.sort(key=lambda r: _collate(r.name))
    elif sort == "email":
        out.sort(key=lambda r: _collate(r.email))
    else:
        raise ValueError(f"unknown sort {sort!r} (expected one of: {', '.join(SORT_KEYS)})")
    return out


def drop_bots(records: Iterable[AuthorRecord]) -> list[AuthorRecord]:
    # Judged on the final display name only; earlier bot-like aliases do not count.
    return [r for r in records if not is_bot_name(r.name)]


def resolve(
    observations: Iterable[Observation],
    *,
    strategy: str | ResolutionStrategy = "alias",
    keep_bots: bool = False,
    sort: Optional[str] = None,
    tie_break: Optional[TieBreak] = None,
    exact_key: Optional[str] = None,
) -> list[AuthorRecord]:
    """
    Collapse a chronological stream of observations into author records.

    `strategy` is a strategy name ("alias" or "exact") or a fresh
    `ResolutionStrategy` instance; an instance keeps its state after the call.
    `tie_break` and `exact_key` configure a strategy built by name and are
    rejected alongside an instance, which carries its own settings.
    The stream is consumed in a single forward pass.
    """
    if isinstance(strategy, str):
        strategy = make_strategy(
            strategy,
            exact_key=exact_key if exact_key is not None else "email",
            tie_break=tie_break if tie_break is not None else oldest_wins,
        )
    elif tie_break is not None or exact_key is not None:
        raise ValueError("tie_break and exact_key only apply when strategy is given by name")
    if sort is not None and sort != "none" and sort not in SORT_KEYS:
        raise ValueError(f"unknown sort {sort!r} (expected one of: {', '.join(SORT_KEYS)})")

    for obs in observations:
        strategy.feed(obs)

    records = strategy.records()
    if not keep_bots:
        records = drop_bots(records)
    return sort_records(records, sort)
