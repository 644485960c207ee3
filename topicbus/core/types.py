from __future__ import annotations

from pydantic import BaseModel


class BusStatus(BaseModel):
    patterns: int
    subscriptions: int
    published: int
    delivered: int
    failed: int
    scheduler: str
