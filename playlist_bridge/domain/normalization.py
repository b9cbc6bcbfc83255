from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .entities import UNKNOWN_ARTIST


# Tried in order; the first one present in the title wins.
_TITLE_SEPARATORS = (" - ", " – ", " — ", " | ", ": ", " by ")
_PARENS_PATTERN = re.compile(r"\s*\(.*?\)")
_BRACKETS_PATTERN = re.compile(r"\s*\[.*?\]")
_BOILERPLATE_SUFFIX_PATTERN = re.compile(
    r"\s*\b(official|music|video|lyric|audio|hd|4k|mv|live|acoustic|cover|remix)\b"
    r"\s*(video|audio|version)?.*$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ParsedTitle:
    artist: str
    name: str


def split_on_separator(title: str) -> Optional[ParsedTitle]:
    """Split ``Artist - Name`` style titles on the first known separator.

    Returns None when no separator is present.
    """
    for separator in _TITLE_SEPARATORS:
        if separator in title:
            left, rest = title.split(separator, 1)
            return ParsedTitle(artist=left.strip(), name=rest.strip())
    return None


def clean_title(title: str) -> str:
    """Drop parenthetical/bracketed segments and trailing video boilerplate."""
    value = _PARENS_PATTERN.sub("", title)
    value = _BRACKETS_PATTERN.sub("", value)
    value = _BOILERPLATE_SUFFIX_PATTERN.sub("", value)
    return value.strip()


def normalize_title(title: str) -> ParsedTitle:
    """Best-effort guess of artist and track name from a free-text video title.

    Titles like ``Daft Punk - One More Time`` split on the separator; anything
    else keeps the cleaned title as the name with an unknown artist.
    """
    title = title or ""
    parsed = split_on_separator(title)
    if parsed is not None:
        return parsed
    return ParsedTitle(artist=UNKNOWN_ARTIST, name=clean_title(title) or title)
