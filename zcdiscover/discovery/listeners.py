# zcdiscover/discovery/listeners.py
"""
Listeners que el motor invoca desde sus propios hilos.

`TypeListener` escucha el canal de enumeración de tipos y, por cada tipo
nuevo, registra un `InstanceListener` que sigue el ciclo de vida de sus
instancias (added → resolved → removed).
"""
from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Dict

from .events import ResolvedServiceRecord, ServiceEvent
from .store import EventStore

if TYPE_CHECKING:  # pragma: no cover
    from ..engine import DiscoveryEngine

logger = logging.getLogger(__name__)


class InstanceListener:
    """Sigue las instancias de un tipo y guarda las que llegan a resolverse."""

    def __init__(self, engine: "DiscoveryEngine", service_type: str, store: EventStore) -> None:
        self.engine = engine
        self.service_type = service_type
        self.store = store

    def service_added(self, event: ServiceEvent) -> None:
        # fire-and-forget: el resultado llega por service_resolved()
        logger.debug("Added: %s (%s)", event.name, event.type)
        self.engine.request_service_info(event.type, event.name)

    def service_removed(self, event: ServiceEvent) -> None:
        logger.debug("Removed: %s (%s)", event.name, event.type)

    def service_resolved(self, event: ServiceEvent) -> None:
        record = ResolvedServiceRecord.from_event(event)
        self.store.append(record)
        logger.debug("Resolved: %s → %s", event.name, record.key)

    def __repr__(self) -> str:
        return f"<InstanceListener type='{self.service_type}'>"


class TypeListener:
    """
    Crea y registra un `InstanceListener` por cada tipo de servicio nuevo.

    El registro tipo → listener se protege con un lock porque el motor puede
    notificar tipos desde varios hilos a la vez. Sólo se vacía en `close()`.
    """

    def __init__(self, engine: "DiscoveryEngine", store: EventStore) -> None:
        self.engine = engine
        self.store = store
        self._lock = threading.Lock()
        self._listeners: Dict[str, InstanceListener] = {}

    @property
    def listeners(self) -> Dict[str, InstanceListener]:
        with self._lock:
            return dict(self._listeners)

    def service_type_added(self, event: ServiceEvent) -> None:
        service_type = event.type
        with self._lock:
            if service_type in self._listeners:
                logger.debug("Tipo %s ya registrado, se ignora.", service_type)
                return
            listener = InstanceListener(self.engine, service_type, self.store)
            self._listeners[service_type] = listener

        logger.info("Nuevo tipo de servicio: %s", service_type)
        try:
            self.engine.add_service_listener(service_type, listener)
        except Exception as exc:
            logger.error("No se pudo registrar el listener para %s: %s", service_type, exc)
            with self._lock:
                self._listeners.pop(service_type, None)

    def close(self) -> None:
        """Da de baja todos los `InstanceListener` registrados en la sesión."""
        with self._lock:
            listeners = list(self._listeners.items())
            self._listeners.clear()
        for service_type, listener in listeners:
            try:
                self.engine.remove_service_listener(service_type, listener)
            except Exception as exc:
                logger.warning("Error al dar de baja %s: %s", service_type, exc)
