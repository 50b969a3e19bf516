from __future__ import annotations

import re

_BOT_NAME_RE = re.compile(r"(-bot|\[bot\])$", re.IGNORECASE)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def normalize_name(name: str) -> str:
    return name.strip().lower()


def is_bot_name(name: str) -> bool:
    """
    True for automation accounts by naming convention:
      - release-bot
      - dependabot[bot]
    """
    return bool(_BOT_NAME_RE.search(name.strip()))
