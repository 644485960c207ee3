"""
Channel segmentation and pattern pre-parsing.

A channel such as ``/orders/eu/created`` is split on ``/`` into segments;
a leading empty segment (channel starting with ``/``) is dropped. Patterns
use the same rules plus two wildcard tokens:

  *   matches exactly one segment at its position
  **  as the final segment, matches that segment and all following ones

Patterns are parsed once at subscribe time. At publish time the bus only
builds candidate segment tuples for the concrete channel and looks them up.
Every rooted pattern key maps to exactly one segment tuple and back, so a
tuple lookup finds the same patterns a string-key lookup would.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Tuple

SEPARATOR = "/"
SINGLE = "*"
MULTI = "**"

Segments = Tuple[str, ...]


class PatternKind(str, Enum):
    EXACT = "EXACT"
    SINGLE = "SINGLE"
    MULTI = "MULTI"


def split_channel(channel: str) -> List[str]:
    """Split a channel into segments, dropping the leading empty one."""
    segments = channel.split(SEPARATOR)
    if segments[0] == "":
        segments.pop(0)
    return segments


@dataclass(frozen=True)
class ParsedPattern:
    key: str
    segments: Segments
    rooted: bool

    @property
    def is_multi(self) -> bool:
        # only rooted keys can be produced by the "**" pass
        return self.rooted and self.segments[-1:] == (MULTI,)

    @property
    def is_single(self) -> bool:
        return self.rooted and SINGLE in self.segments

    @property
    def prefix(self) -> Segments:
        """Segments in front of a trailing ``**``."""
        return self.segments[:-1] if self.is_multi else self.segments

    @property
    def kind(self) -> PatternKind:
        if self.is_multi:
            return PatternKind.MULTI
        if self.is_single:
            return PatternKind.SINGLE
        return PatternKind.EXACT


def parse_pattern(pattern: str) -> ParsedPattern:
    return ParsedPattern(
        key=pattern,
        segments=tuple(split_channel(pattern)),
        rooted=pattern.startswith(SEPARATOR),
    )


def multi_prefixes(segments: Segments) -> Iterator[Segments]:
    """Prefixes checked against ``**`` patterns, shortest (empty) first."""
    for k in range(len(segments) + 1):
        yield segments[:k]


def single_candidates(segments: Segments) -> Iterator[Segments]:
    """The channel with exactly one segment replaced by ``*``, left to right."""
    for i in range(len(segments)):
        yield segments[:i] + (SINGLE,) + segments[i + 1 :]
