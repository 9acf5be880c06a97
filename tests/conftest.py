"""
Fixtures compartidas por toda la suite PyTest.

Objetivo → correr los tests **sin** red ni multicast real: un `FakeEngine`
en memoria implementa la interfaz de `DiscoveryEngine` y entrega los
callbacks desde un hilo propio, como haría el motor de verdad.
"""
from __future__ import annotations

import threading
from typing import Any, Dict, List, Tuple

import pytest

from zcdiscover.discovery.events import ResolvedServiceRecord, ServiceDetails, ServiceEvent


# ════════════════════════════════════════════════════════════════════════════
# Helpers de datos
# ════════════════════════════════════════════════════════════════════════════
def make_details(
    name: str = "printer",
    type_: str = "_http._tcp.local.",
    *,
    port: int = 631,
    priority: int = 0,
    urls: Tuple[str, ...] = ("http://printer.local:631/",),
    host_addresses: Tuple[str, ...] = ("192.168.1.50",),
) -> ServiceDetails:
    application, protocol, domain = type_.strip(".").replace("_", "").split(".")
    qualified = f"{name}.{type_}"
    return ServiceDetails(
        application=application,
        domain=domain,
        key=qualified.lower(),
        protocol=protocol,
        name=name,
        qualified_name=qualified,
        port=port,
        priority=priority,
        urls=urls,
        host_addresses=host_addresses,
    )


def make_record(name: str = "printer", type_: str = "_http._tcp.local.", **kwargs: Any) -> ResolvedServiceRecord:
    return ResolvedServiceRecord.from_event(ServiceEvent(type_, name, make_details(name, type_, **kwargs)))


# ════════════════════════════════════════════════════════════════════════════
# Motor falso
# ════════════════════════════════════════════════════════════════════════════
class FakeEngine:
    """
    Reproduce un *guion* de eventos cuando se registra el listener de tipos.

    Pasos admitidos:

    * `("type", tipo)`            → `service_type_added`
    * `("add", tipo, nombre)`     → `service_added`
    * `("remove", tipo, nombre)`  → `service_removed`

    `request_service_info` resuelve sólo lo que esté en `catalog`.
    """

    def __init__(self, script: List[Tuple[str, ...]] | None = None, catalog: Dict[Tuple[str, str], ServiceDetails] | None = None) -> None:
        self.script = list(script or [])
        self.catalog = dict(catalog or {})
        self.local_address: str | None = None
        self.type_listeners: list[Any] = []
        self.service_listeners: Dict[str, list[Any]] = {}
        self.requests: list[Tuple[str, str]] = []
        self.removed_types: list[Any] = []
        self.removed_services: list[Tuple[str, Any]] = []
        self.unregistered = False
        self.closed = False
        self.callback_threads: set[str] = set()
        self._lock = threading.Lock()

    # --- interfaz de DiscoveryEngine ---
    def add_service_type_listener(self, listener: Any) -> None:
        self.type_listeners.append(listener)
        worker = threading.Thread(target=self._play, args=(listener,), name="fake-engine")
        worker.start()
        worker.join()

    def remove_service_type_listener(self, listener: Any) -> None:
        self.removed_types.append(listener)
        self.type_listeners.remove(listener)

    def add_service_listener(self, type_: str, listener: Any) -> None:
        with self._lock:
            self.service_listeners.setdefault(type_, []).append(listener)

    def remove_service_listener(self, type_: str, listener: Any) -> None:
        with self._lock:
            self.service_listeners[type_].remove(listener)
        self.removed_services.append((type_, listener))

    def request_service_info(self, type_: str, name: str) -> None:
        self.requests.append((type_, name))
        details = self.catalog.get((type_, name))
        if details is None:
            return
        for listener in self._listeners(type_):
            listener.service_resolved(ServiceEvent(type_, name, details))

    def unregister_all_services(self) -> None:
        self.unregistered = True

    def close(self) -> None:
        self.closed = True

    # --- guion ---
    def _listeners(self, type_: str) -> list[Any]:
        with self._lock:
            return list(self.service_listeners.get(type_, []))

    def _play(self, type_listener: Any) -> None:
        self.callback_threads.add(threading.current_thread().name)
        for step in self.script:
            kind = step[0]
            if kind == "type":
                type_listener.service_type_added(ServiceEvent(step[1], ""))
            elif kind == "add":
                for listener in self._listeners(step[1]):
                    listener.service_added(ServiceEvent(step[1], step[2]))
            elif kind == "remove":
                for listener in self._listeners(step[1]):
                    listener.service_removed(ServiceEvent(step[1], step[2]))
            else:  # pragma: no cover
                raise ValueError(f"Paso desconocido: {step!r}")


# ════════════════════════════════════════════════════════════════════════════
# Fixtures
# ════════════════════════════════════════════════════════════════════════════
@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def engine_factory(fake_engine: FakeEngine):
    """Fábrica compatible con `run_session(engine_factory=…)` que devuelve `fake_engine`."""

    def _factory(local_address: str | None = None) -> FakeEngine:
        fake_engine.local_address = local_address
        return fake_engine

    return _factory


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch):
    """Evita que variables del entorno del desarrollador alteren `Config`."""
    for name in (
        "DISCOVERY_WINDOW",
        "LOCAL_ADDRESS",
        "RESOLVE_TIMEOUT_MS",
        "OUTPUT",
        "OUTPUT_DIR",
        "FILE_PREFIX",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    yield
