"""
Topic bus: hierarchical in-process publish/subscribe.

Responsibilities:
 - subscribe / unsubscribe against exact pattern keys (SubscriptionRegistry)
 - resolve every bucket matching a published channel
 - deliver to all of them in one deferred task per publish

Resolution order for a channel with segments s0..sn-1:
 1. ``**`` patterns, shortest prefix first: /**, /s0/**, /s0/s1/**, ...
 2. ``*`` patterns, one segment replaced, left to right
 3. the channel string itself, exactly as published

Every matching bucket fires (fan-out). Nothing is deduplicated: a channel
containing literal ``*`` segments can hit the same bucket more than once.

Callback failures are isolated by default: the exception is logged, passed
to ``on_error`` if given, and the remaining callbacks of that publish still
run. With ``isolate_errors=False`` the first failure propagates out of the
deferred task and aborts the rest of that batch.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Any, Callable, List, Optional, Sequence, Union

from topicbus.core.errors import ConfigError
from topicbus.core.registry import (
    Bucket,
    Handle,
    SubscriptionRegistry,
    check_callback,
    check_pattern,
)
from topicbus.core.scheduler import default_scheduler
from topicbus.core.topics import multi_prefixes, single_candidates, split_channel
from topicbus.core.types import BusStatus
from topicbus.utils.logger import log_extra

log = logging.getLogger(__name__)

ErrorHook = Callable[[BaseException, str, Callable[..., Any]], None]


class TopicBus:
    def __init__(
        self,
        scheduler: Any = None,
        *,
        isolate_errors: bool = True,
        on_error: Optional[ErrorHook] = None,
    ) -> None:
        self.scheduler = scheduler if scheduler is not None else default_scheduler()
        schedule = getattr(self.scheduler, "schedule", self.scheduler)
        if not callable(schedule):
            raise ConfigError("scheduler must be callable or expose schedule(task)")
        self._schedule: Callable[[Callable[[], None]], None] = schedule
        self.isolate_errors = isolate_errors
        self.on_error = on_error
        self.registry = SubscriptionRegistry()
        # counters
        self._published = 0
        self._delivered = 0
        self._failed = 0

    # ------------------------------------------------------------------
    # Subscription management
    # ------------------------------------------------------------------
    def subscribe(self, pattern: str, callback: Callable[..., Any]) -> Handle:
        """
        Register ``callback`` under the exact key ``pattern``.

        Raises InvalidChannel / InvalidCallback on bad arguments.
        """
        return self.registry.add(pattern, callback)

    def unsubscribe(
        self,
        handle: Union[Handle, str],
        callback: Optional[Callable[..., Any]] = None,
    ) -> None:
        """
        Remove one registration.

        Either pass the Handle from subscribe (``callback`` is ignored), or the
        pattern string plus the callback. Unknown pairings are a no-op.
        """
        if isinstance(handle, Handle):
            check_pattern(handle.pattern)
            check_callback(handle.callback)
            self.registry.remove_handle(handle)
            return

        pattern = check_pattern(handle)
        self.registry.remove(pattern, check_callback(callback))

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------
    def resolve_buckets(self, channel: str) -> List[Bucket]:
        return self._resolve(channel, tuple(split_channel(channel)))

    def _resolve(self, channel: str, segments: Sequence[str]) -> List[Bucket]:
        registry = self.registry
        key = tuple(segments)
        buckets: List[Bucket] = []

        for prefix in multi_prefixes(key):
            bucket = registry.multi_bucket(prefix)
            if bucket is not None:
                buckets.append(bucket)

        for candidate in single_candidates(key):
            bucket = registry.single_bucket(candidate)
            if bucket is not None:
                buckets.append(bucket)

        bucket = registry.bucket(channel)
        if bucket is not None:
            buckets.append(bucket)

        return buckets

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------
    def publish(self, channel: str, *data: Any) -> None:
        """
        Deliver ``data`` to every callback whose pattern matches ``channel``.

        Callbacks receive ``*data`` followed by the list of channel segments.
        Nothing runs before this call returns; delivery happens in one task
        handed to the scheduler. The channel is not validated.
        """
        segments = split_channel(channel)
        buckets = self._resolve(channel, segments)
        params = data + (segments,)

        self._schedule(partial(self._deliver, channel, buckets, params))
        self._published += 1
        log.debug("published", extra=log_extra(channel=channel, buckets=len(buckets)))

    def _deliver(self, channel: str, buckets: List[Bucket], params: tuple) -> None:
        for bucket in buckets:
            # read live: entries removed since publish are skipped
            i = 0
            while i < len(bucket):
                handle = bucket[i]
                i += 1
                self._invoke(channel, handle, params)

    def _invoke(self, channel: str, handle: Handle, params: tuple) -> None:
        if not self.isolate_errors:
            handle.callback(*params)
            self._delivered += 1
            return

        try:
            handle.callback(*params)
        except Exception as exc:
            self._failed += 1
            log.exception(
                "callback failed",
                extra=log_extra(channel=channel, pattern=handle.pattern, token=handle.token),
            )
            if self.on_error is not None:
                self._report(exc, channel, handle)
        else:
            self._delivered += 1

    def _report(self, exc: BaseException, channel: str, handle: Handle) -> None:
        # a broken hook must not cost the rest of the batch
        try:
            self.on_error(exc, channel, handle.callback)  # type: ignore[misc]
        except Exception:
            log.exception(
                "error hook failed",
                extra=log_extra(channel=channel, pattern=handle.pattern, token=handle.token),
            )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def _scheduler_label(self) -> str:
        if hasattr(self.scheduler, "schedule"):
            return type(self.scheduler).__name__
        return repr(self.scheduler)

    def status(self) -> BusStatus:
        return BusStatus(
            patterns=len(self.registry.patterns()),
            subscriptions=self.registry.count(),
            published=self._published,
            delivered=self._delivered,
            failed=self._failed,
            scheduler=self._scheduler_label(),
        )

    def clear(self) -> None:
        """Drop every registration."""
        self.registry.clear()


__all__ = ["TopicBus", "ErrorHook"]
