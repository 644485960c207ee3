from __future__ import annotations

import threading
from typing import Optional

from topicbus.core.bus import TopicBus
from topicbus.core.scheduler import build_scheduler
from topicbus.utils.logger import set_level
from topicbus.utils.settings import Settings, get_settings

# Process-wide default bus, built on first use
_bus: Optional[TopicBus] = None
_lock = threading.Lock()


def build_bus(settings: Optional[Settings] = None) -> TopicBus:
    settings = settings or get_settings()
    set_level(settings.LOG_LEVEL)
    return TopicBus(
        build_scheduler(settings.SCHEDULER),
        isolate_errors=settings.ISOLATE_ERRORS,
    )


def get_bus() -> TopicBus:
    """Shared bus behind topicbus.subscribe / publish / unsubscribe."""
    global _bus
    if _bus is None:
        with _lock:
            if _bus is None:
                _bus = build_bus()
    return _bus


def reset_bus() -> None:
    """Forget the shared bus (and cached settings); the next call rebuilds both."""
    global _bus
    with _lock:
        _bus = None
    get_settings.cache_clear()
