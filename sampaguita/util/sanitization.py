"""Sanitisation and format helpers.

This module provides small utilities used before storing user-supplied
text: stripping HTML tags and trimming whitespace from free-form notes
and descriptions, and checking the fixed formats the registry accepts
(the 12-digit SCCN registration number and account usernames).
"""
from __future__ import annotations

import re

TAG_RE = re.compile(r"<[^>]+>")
SCCN_RE = re.compile(r"^[0-9]{12}$")
USERNAME_RE = re.compile(r"^[A-Za-z0-9_]+$")

SCCN_FORMAT = {
    "example": "202312340001",
    "format": "12 digits (numbers only)",
    "pattern": "XXXXXXXXXXXX",
}


def strip_tags(text: str | None) -> str:
    """Remove HTML tags from the given string.

    Parameters
    ----------
    text: str | None
        The input string that may contain HTML tags.

    Returns
    -------
    str
        The cleaned string with tags removed and whitespace trimmed.
    """
    if not text:
        return ""
    no_tags = TAG_RE.sub("", text)
    return no_tags.strip()


def is_valid_sccn(value: str | None) -> bool:
    """Return True if ``value`` is exactly twelve ASCII digits."""
    return bool(value) and SCCN_RE.fullmatch(value) is not None


def is_valid_username(value: str | None) -> bool:
    return bool(value) and len(value) <= 50 and USERNAME_RE.fullmatch(value) is not None
