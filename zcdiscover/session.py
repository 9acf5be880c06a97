# zcdiscover/session.py
"""
Orquestación de una sesión de descubrimiento.

    crear motor → registrar TypeListener → esperar la ventana completa
    → dar de baja listeners → volcar el EventStore → liberar el motor

La ventana es un plazo fijo: no termina antes por ningún evento ni se
alarga por eventos tardíos. Lo que llegue en vuelo al expirar puede o no
aparecer en el informe.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Coroutine, List, TypeVar

from .config import Config
from .discovery.events import ResolvedServiceRecord, ServiceEvent
from .discovery.listeners import TypeListener
from .discovery.store import EventStore
from .engine import DiscoveryEngine, default_local_address
from .report import Sink, file_sink, stream_sink

logger = logging.getLogger(__name__)

EngineFactory = Callable[[str | None], Any]
T = TypeVar("T")


@dataclass(slots=True)
class SessionReport:
    records: List[ResolvedServiceRecord] = field(default_factory=list)
    written: int = 0

    @property
    def failed(self) -> int:
        return len(self.records) - self.written


async def async_run_session(
    window: float,
    *,
    local_address: str | None = None,
    sink: Sink | None = None,
    engine_factory: EngineFactory = DiscoveryEngine.create,
) -> SessionReport:
    """
    Ejecuta una sesión completa y devuelve lo volcado.

    Las llamadas al motor son bloqueantes (sockets, joins de hilos), por eso
    van a `asyncio.to_thread`; el bucle sólo espera el plazo.

    Raises:
        EngineError: el motor no pudo crearse; la sesión no llega a empezar.
    """
    sink = sink or stream_sink()
    logger.info("Start discovery")
    engine = await asyncio.to_thread(engine_factory, local_address)

    store = EventStore()
    type_listener = TypeListener(engine, store)
    try:
        await asyncio.to_thread(engine.add_service_type_listener, type_listener)

        logger.info("Waiting %s seconds...", window)
        await asyncio.sleep(window)

        await asyncio.to_thread(_deregister, engine, type_listener)

        records = store.snapshot()
        logger.info("Writing %d events", len(records))
        written = await asyncio.to_thread(sink, records)
        report = SessionReport(records=records, written=written)
        if report.failed:
            logger.warning("%d de %d registros no pudieron escribirse.", report.failed, len(records))
        return report
    finally:
        logger.info("Cleaning up")
        await asyncio.to_thread(_release, engine)


def _deregister(engine: Any, type_listener: TypeListener) -> None:
    engine.remove_service_type_listener(type_listener)
    type_listener.close()


def _release(engine: Any) -> None:
    try:
        engine.unregister_all_services()
    finally:
        engine.close()


def run_session(
    window: float,
    *,
    local_address: str | None = None,
    sink: Sink | None = None,
    engine_factory: EngineFactory = DiscoveryEngine.create,
) -> SessionReport:
    """Versión bloqueante de `async_run_session` para el hilo principal."""
    return _run(
        async_run_session(window, local_address=local_address, sink=sink, engine_factory=engine_factory)
    )


def run_from_config(cfg: Config) -> SessionReport:
    """Arma destino y fábrica de motor a partir de `Config` y lanza la sesión."""
    if cfg.output == "files":
        sink = file_sink(cfg.output_dir, cfg.file_prefix)
    else:
        sink = stream_sink()
    return run_session(
        cfg.window,
        local_address=cfg.local_address or default_local_address(),
        sink=sink,
        engine_factory=partial(DiscoveryEngine.create, resolve_timeout_ms=cfg.resolve_timeout_ms),
    )


# ---------------------------------------------------------------------------#
# Enumeración de tipos (diagnóstico)
# ---------------------------------------------------------------------------#
class _TypeCollector:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.types: list[str] = []

    def service_type_added(self, event: ServiceEvent) -> None:
        with self._lock:
            self.types.append(event.type)


async def async_discover_types(
    window: float,
    *,
    local_address: str | None = None,
    engine_factory: EngineFactory = DiscoveryEngine.create,
) -> List[str]:
    """Sólo enumera los tipos visibles durante `window`, sin navegar instancias."""
    engine = await asyncio.to_thread(engine_factory, local_address)
    collector = _TypeCollector()
    try:
        await asyncio.to_thread(engine.add_service_type_listener, collector)
        await asyncio.sleep(window)
        await asyncio.to_thread(engine.remove_service_type_listener, collector)
        return list(collector.types)
    finally:
        await asyncio.to_thread(_release, engine)


def discover_types(
    window: float,
    *,
    local_address: str | None = None,
    engine_factory: EngineFactory = DiscoveryEngine.create,
) -> List[str]:
    return _run(async_discover_types(window, local_address=local_address, engine_factory=engine_factory))


def _run(coro: Coroutine[Any, Any, T]) -> T:
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.run_until_complete(loop.shutdown_default_executor())
        loop.close()
