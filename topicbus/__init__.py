"""
topicbus: in-process hierarchical publish/subscribe.

    import topicbus

    handle = topicbus.subscribe("/orders/*", on_order)
    topicbus.publish("/orders/eu", {"id": 7})   # on_order({"id": 7}, ["orders", "eu"])
    topicbus.unsubscribe(handle)

The module functions use one shared TopicBus (see topicbus.deps). Build
your own TopicBus for an isolated registry or a different scheduler.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Union

from topicbus.core.bus import TopicBus
from topicbus.core.errors import (
    ConfigError,
    InvalidCallback,
    InvalidChannel,
    SchedulerUnavailable,
    TopicBusError,
)
from topicbus.core.registry import Handle
from topicbus.core.scheduler import AsyncioScheduler, ManualScheduler, ThreadScheduler
from topicbus.deps import get_bus

__version__ = "0.1.0"


def subscribe(pattern: str, callback: Callable[..., Any]) -> Handle:
    return get_bus().subscribe(pattern, callback)


def unsubscribe(handle: Union[Handle, str], callback: Optional[Callable[..., Any]] = None) -> None:
    get_bus().unsubscribe(handle, callback)


def publish(channel: str, *data: Any) -> None:
    get_bus().publish(channel, *data)


__all__ = [
    "TopicBus",
    "Handle",
    "AsyncioScheduler",
    "ManualScheduler",
    "ThreadScheduler",
    "TopicBusError",
    "InvalidChannel",
    "InvalidCallback",
    "SchedulerUnavailable",
    "ConfigError",
    "subscribe",
    "unsubscribe",
    "publish",
    "get_bus",
]
