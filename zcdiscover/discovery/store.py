# zcdiscover/discovery/store.py
from __future__ import annotations

import threading
from typing import Iterator, List

from .events import ResolvedServiceRecord


class EventStore:
    """
    Colección *append-only* de registros resueltos, compartida por todos los
    `InstanceListener` de una sesión.

    El orden de inserción es la única garantía de orden. No deduplica: cada
    resolución produce su propio registro.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: list[ResolvedServiceRecord] = []

    def append(self, record: ResolvedServiceRecord) -> None:
        with self._lock:
            self._records.append(record)

    def snapshot(self) -> List[ResolvedServiceRecord]:
        """Copia consistente, en orden FIFO, de lo almacenado hasta ahora."""
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __iter__(self) -> Iterator[ResolvedServiceRecord]:
        return iter(self.snapshot())
