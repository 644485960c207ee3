"""
Error taxonomy for the topic bus.
--------------------------------
Validation errors are raised synchronously at the call site by
subscribe / unsubscribe. publish never raises them.
"""

from __future__ import annotations


class TopicBusError(Exception):
    """Base class for every error raised by topicbus."""


class InvalidChannel(TopicBusError, TypeError):
    def __init__(self, message: str = "invalid or missing channel") -> None:
        super().__init__(message)


class InvalidCallback(TopicBusError, TypeError):
    def __init__(self, message: str = "invalid or missing callback") -> None:
        super().__init__(message)


class SchedulerUnavailable(TopicBusError, RuntimeError):
    pass


class ConfigError(TopicBusError, ValueError):
    pass


__all__ = [
    "TopicBusError",
    "InvalidChannel",
    "InvalidCallback",
    "SchedulerUnavailable",
    "ConfigError",
]
