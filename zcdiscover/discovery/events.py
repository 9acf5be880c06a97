# zcdiscover/discovery/events.py
"""
Tipos de valor que viajan por el pipeline de descubrimiento.

* `ServiceDetails`        – metadatos completos de una instancia resuelta.
* `ServiceEvent`          – sobre que entrega el motor en cada callback.
* `ResolvedServiceRecord` – valor final, inmutable, que guarda el `EventStore`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple, Tuple

from pydantic import BaseModel, ConfigDict, Field


class ServiceInstanceKey(NamedTuple):
    type: str
    name: str


@dataclass(frozen=True, slots=True)
class ServiceDetails:
    application: str
    domain: str
    key: str
    protocol: str
    name: str
    qualified_name: str
    port: int
    priority: int
    urls: Tuple[str, ...] = field(default_factory=tuple)
    host_addresses: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class ServiceEvent:
    """Notificación del motor. `info` sólo viene poblado en eventos *resolved*."""

    type: str
    name: str
    info: ServiceDetails | None = None

    @property
    def instance_key(self) -> ServiceInstanceKey:
        return ServiceInstanceKey(self.type, self.name)

    @property
    def is_resolved(self) -> bool:
        return self.info is not None


class ResolvedServiceRecord(BaseModel):
    """Registro terminal de una instancia resuelta; se copia tal cual del evento."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Nombre del sobre del evento.")
    type: str = Field(..., description="Tipo DNS-SD del evento.")
    application: str
    domain: str
    key: str
    protocol: str
    info_name: str = Field(..., description="Nombre según los metadatos del servicio.")
    port: int = Field(..., ge=0, le=65535)
    priority: int
    qualified_name: str
    urls: Tuple[str, ...] = ()
    host_addresses: Tuple[str, ...] = ()

    @classmethod
    def from_event(cls, event: ServiceEvent) -> "ResolvedServiceRecord":
        info = event.info
        if info is None:
            raise ValueError(f"El evento {event.name!r} ({event.type}) no está resuelto.")
        return cls(
            name=event.name,
            type=event.type,
            application=info.application,
            domain=info.domain,
            key=info.key,
            protocol=info.protocol,
            info_name=info.name,
            port=info.port,
            priority=info.priority,
            qualified_name=info.qualified_name,
            urls=tuple(info.urls),
            host_addresses=tuple(info.host_addresses),
        )

    @property
    def instance_key(self) -> ServiceInstanceKey:
        return ServiceInstanceKey(self.type, self.name)
