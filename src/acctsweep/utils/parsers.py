"""Parsers for account database and privilege-grant file contents."""
from __future__ import annotations

import re
from pathlib import Path
from typing import Iterator, List, Optional

from ..types import Account

# Characters allowed inside a POSIX-ish username; a match must not touch them.
_NAME_CHARS = r"\w.\-$"


def parse_passwd_line(line: str) -> Optional[Account]:
    """Parse one passwd(5) line, returning None for blank or malformed entries."""

    line = line.rstrip("\n")
    if not line.strip() or line.lstrip().startswith("#"):
        return None
    parts = line.split(":")
    if len(parts) < 7:
        return None
    username, _password, uid, _gid, _gecos, home, shell = parts[:7]
    if not username or not uid.isdigit():
        return None
    return Account(
        username=username,
        uid=int(uid),
        home=Path(home) if home else None,
        shell=shell,
    )


def parse_passwd(content: str) -> List[Account]:
    """Parse passwd(5) content, keeping file order."""

    accounts: List[Account] = []
    for line in content.splitlines():
        account = parse_passwd_line(line)
        if account is not None:
            accounts.append(account)
    return accounts


def _user_pattern(username: str) -> re.Pattern[str]:
    return re.compile(
        rf"(?<![{_NAME_CHARS}]){re.escape(username)}(?![{_NAME_CHARS}])"
    )


def references_user(line: str, username: str) -> bool:
    """True if the part of ``line`` before any comment names ``username``."""

    active = line.split("#", 1)[0]
    return bool(_user_pattern(username).search(active))


def matching_lines(content: str, username: str) -> Iterator[str]:
    for line in content.splitlines():
        if references_user(line, username):
            yield line


def strip_user_lines(content: str, username: str) -> str:
    """Return ``content`` without the lines that grant anything to ``username``."""

    kept = [
        line
        for line in content.splitlines(keepends=True)
        if not references_user(line, username)
    ]
    return "".join(kept)

