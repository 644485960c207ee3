from __future__ import annotations

import inspect
import itertools
import logging
import types
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from topicbus.core.errors import InvalidCallback, InvalidChannel
from topicbus.core.topics import ParsedPattern, Segments, parse_pattern
from topicbus.utils.logger import log_extra

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Handle:
    """
    One registration: the pattern, the callback and a unique token.

    Returned by subscribe and stored as-is in the pattern's bucket, so
    passing it back to unsubscribe removes exactly this registration.
    """

    pattern: str
    callback: Callable[..., Any]
    token: int = field(default=0)


Bucket = List[Handle]


def same_callback(a: Callable[..., Any], b: Callable[..., Any]) -> bool:
    """Identity comparison that also treats re-bound methods as the same callback."""
    if a is b:
        return True
    if inspect.ismethod(a) and inspect.ismethod(b):
        return a.__func__ is b.__func__ and a.__self__ is b.__self__
    if isinstance(a, types.BuiltinMethodType) and isinstance(b, types.BuiltinMethodType):
        return a.__self__ is b.__self__ and a.__name__ == b.__name__
    return False


def check_pattern(pattern: Any) -> str:
    if not isinstance(pattern, str):
        raise InvalidChannel()
    return pattern


def check_callback(callback: Any) -> Callable[..., Any]:
    if not callable(callback):
        raise InvalidCallback()
    return callback


class SubscriptionRegistry:
    """
    Exact pattern key -> ordered bucket of registrations.

    Wildcard patterns are additionally indexed by their parsed segments:
      - ``**`` patterns by the prefix in front of the ``**``
      - ``*`` patterns by their full segment tuple
    The indexes point at the same bucket lists as the key map, so every
    view sees the same mutations.
    """

    def __init__(self) -> None:
        self._buckets: Dict[str, Bucket] = {}
        self._parsed: Dict[str, ParsedPattern] = {}
        self._multi: Dict[Segments, Bucket] = {}
        self._single: Dict[Segments, Bucket] = {}
        self._tokens = itertools.count(1)

    # ------------------------------------------------------------------
    def add(self, pattern: str, callback: Callable[..., Any]) -> Handle:
        check_pattern(pattern)
        check_callback(callback)

        bucket = self._buckets.get(pattern)
        if bucket is None:
            bucket = self._create(pattern)

        handle = Handle(pattern=pattern, callback=callback, token=next(self._tokens))
        bucket.append(handle)
        log.debug("subscribed", extra=log_extra(pattern=pattern, kind=self._parsed[pattern].kind.value))
        return handle

    def _create(self, pattern: str) -> Bucket:
        parsed = parse_pattern(pattern)
        bucket: Bucket = []
        self._buckets[pattern] = bucket
        self._parsed[pattern] = parsed
        if parsed.is_multi:
            self._multi[parsed.prefix] = bucket
        if parsed.is_single:
            self._single[parsed.segments] = bucket
        return bucket

    # ------------------------------------------------------------------
    def remove(self, pattern: str, callback: Callable[..., Any]) -> bool:
        """Remove the first registration of ``callback`` under ``pattern``."""
        bucket = self._buckets.get(pattern)
        if not bucket:
            return False
        for i, handle in enumerate(bucket):
            if same_callback(handle.callback, callback):
                del bucket[i]
                log.debug("unsubscribed", extra=log_extra(pattern=pattern))
                return True
        return False

    def remove_handle(self, handle: Handle) -> bool:
        """Remove exactly the registration ``handle`` was issued for."""
        bucket = self._buckets.get(handle.pattern)
        if not bucket:
            return False
        for i, entry in enumerate(bucket):
            if entry.token == handle.token:
                del bucket[i]
                log.debug("unsubscribed", extra=log_extra(pattern=handle.pattern, token=handle.token))
                return True
        return False

    # ------------------------------------------------------------------
    def bucket(self, pattern: str) -> Optional[Bucket]:
        return self._buckets.get(pattern)

    def multi_bucket(self, prefix: Segments) -> Optional[Bucket]:
        return self._multi.get(prefix)

    def single_bucket(self, segments: Segments) -> Optional[Bucket]:
        return self._single.get(segments)

    # ------------------------------------------------------------------
    def patterns(self) -> List[str]:
        """Registered keys in first-subscribe order, empty buckets included."""
        return list(self._buckets)

    def count(self, pattern: Optional[str] = None) -> int:
        if pattern is not None:
            return len(self._buckets.get(pattern, ()))
        return sum(len(b) for b in self._buckets.values())

    def clear(self) -> None:
        # empty in place so deliveries already captured see the removal
        for bucket in self._buckets.values():
            bucket.clear()
        self._buckets = {}
        self._parsed = {}
        self._multi = {}
        self._single = {}
