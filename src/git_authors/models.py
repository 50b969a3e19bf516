from __future__ import annotations

import dataclasses
import datetime as dt


@dataclasses.dataclass(frozen=True)
class Observation:
    name: str
    email: str
    timestamp: dt.datetime
    sequence: int


@dataclasses.dataclass
class AuthorRecord:
    record_id: int
    name: str  # most recently observed raw name
    email: str  # most recently observed email, lowercased
    commits: int
    first_seen: dt.datetime
    last_seen: dt.datetime

    def observe(self, name: str, email: str, timestamp: dt.datetime) -> None:
        self.name = name
        self.email = email
        self.commits += 1
        if timestamp > self.last_seen:
            self.last_seen = timestamp


@dataclasses.dataclass
class AliasedAuthorRecord(AuthorRecord):
    known_names: set[str] = dataclasses.field(default_factory=set)  # lowercase
    known_emails: set[str] = dataclasses.field(default_factory=set)  # lowercase

    def absorb(self, other: AliasedAuthorRecord) -> None:
        """Fold `other` (the loser of a merge) into this record."""
        self.known_names |= other.known_names
        self.known_emails |= other.known_emails
        self.commits += other.commits
        self.first_seen = min(self.first_seen, other.first_seen)
        self.last_seen = max(self.last_seen, other.last_seen)
