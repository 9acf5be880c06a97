from __future__ import annotations

from typing import List

from .events import ResolvedServiceRecord, ServiceDetails, ServiceEvent, ServiceInstanceKey
from .listeners import InstanceListener, TypeListener
from .store import EventStore

__all__: List[str] = [
    "EventStore",
    "InstanceListener",
    "ResolvedServiceRecord",
    "ServiceDetails",
    "ServiceEvent",
    "ServiceInstanceKey",
    "TypeListener",
]
