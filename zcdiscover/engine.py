# zcdiscover/engine.py
"""
Adaptador fino sobre `zeroconf`.

Expone al pipeline la interfaz de motor que necesita (listeners de tipos,
listeners de instancias, resolución *fire-and-forget*) sin que el resto del
paquete importe `zeroconf` directamente.

Los callbacks se invocan desde hilos del motor:

* los `ServiceBrowser` notifican added/removed/updated desde su propio hilo;
* las resoluciones se programan en el *event loop* interno de `Zeroconf` y
  `service_resolved` se entrega desde ese hilo.
"""
from __future__ import annotations

import asyncio
import ipaddress
import logging
import socket
import threading
from concurrent.futures import Future
from functools import partial
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple

from zeroconf import InterfaceChoice, ServiceBrowser, ServiceListener, Zeroconf
from zeroconf.asyncio import AsyncServiceInfo

from .discovery.events import ServiceDetails, ServiceEvent

logger = logging.getLogger(__name__)

TYPE_ENUMERATION = "_services._dns-sd._udp.local."
_DEFAULT_RESOLVE_TIMEOUT_MS = 3000
_PROTOCOL_LABELS = ("_tcp", "_udp")


class EngineError(RuntimeError):
    """El motor mDNS no pudo arrancar (bind, multicast, interfaz inválida…)."""


# ---------------------------------------------------------------------------#
# Helpers de nombres DNS-SD
# ---------------------------------------------------------------------------#
def parse_service_type(type_: str) -> Tuple[str, str, str]:
    """
    `_http._tcp.local.` → `("http", "tcp", "local")`.

    Con subtipos (`_printer._sub._http._tcp.local.`) se toma la etiqueta
    inmediatamente anterior al protocolo.
    """
    labels = [p for p in type_.rstrip(".").split(".") if p]
    for idx, label in enumerate(labels):
        if label.lower() in _PROTOCOL_LABELS and idx > 0:
            application = labels[idx - 1].lstrip("_")
            protocol = label.lstrip("_")
            domain = ".".join(labels[idx + 1 :])
            return application, protocol, domain
    return "", "", ".".join(labels)


def instance_name(type_: str, name: str) -> str:
    """Etiqueta de la instancia relativa a su tipo (`printer` para `printer._http._tcp.local.`)."""
    suffix = "." + _with_trailing_dot(type_)
    full = _with_trailing_dot(name)
    if full.lower().endswith(suffix.lower()):
        return full[: -len(suffix)]
    return name


def full_name(type_: str, name: str) -> str:
    type_ = _with_trailing_dot(type_)
    if _with_trailing_dot(name).lower().endswith("." + type_.lower()):
        return _with_trailing_dot(name)
    return f"{name}.{type_}"


def _with_trailing_dot(value: str) -> str:
    return value if value.endswith(".") else value + "."


def build_urls(addresses: Sequence[str], port: int, properties: Mapping[Any, Any] | None = None) -> List[str]:
    """
    Una URL `http://` por dirección. La propiedad TXT `path` se añade como
    ruta; si ya es una URL completa se usa tal cual.
    """
    path = _property_text(properties or {}, "path")
    urls: list[str] = []
    for addr in addresses:
        host = f"[{addr}]" if ":" in addr else addr
        url = f"http://{host}:{port}"
        if path:
            if "://" in path:
                url = path
            else:
                url += path if path.startswith("/") else "/" + path
        urls.append(url)
    return urls


def _property_text(properties: Mapping[Any, Any], key: str) -> str | None:
    raw = properties.get(key.encode("utf-8"), properties.get(key))
    if raw is None:
        return None
    if isinstance(raw, (bytes, bytearray)):
        return raw.decode("utf-8", errors="replace")
    return str(raw)


def details_from_info(info: Any, type_: str, name: str) -> ServiceDetails:
    """Convierte un `ServiceInfo` de zeroconf en `ServiceDetails`."""
    application, protocol, domain = parse_service_type(type_)
    label = instance_name(type_, name)
    qualified = full_name(type_, label)
    addresses = list(info.parsed_addresses())
    port = info.port or 0
    return ServiceDetails(
        application=application,
        domain=domain,
        key=qualified.lower(),
        protocol=protocol,
        name=label,
        qualified_name=qualified,
        port=port,
        priority=info.priority or 0,
        urls=tuple(build_urls(addresses, port, info.properties)),
        host_addresses=tuple(addresses),
    )


def default_local_address() -> str | None:
    """Primera IPv4 no-loopback del host; `None` → todas las interfaces."""
    try:
        entries = socket.getaddrinfo(socket.gethostname(), None)
    except OSError:
        return None
    for fam, _, _, _, sockaddr in entries:
        if fam == socket.AF_INET:
            ip = sockaddr[0]
            if not ipaddress.ip_address(ip).is_loopback:
                return ip
    return None


def _dispatch(callback: Callable[..., None], *args: Any) -> None:
    # Un listener que falla no debe tumbar el hilo del motor.
    try:
        callback(*args)
    except Exception:
        logger.exception("Listener %r falló con %s", callback, args)


# ---------------------------------------------------------------------------#
# Puentes zeroconf → listeners del pipeline
# ---------------------------------------------------------------------------#
class _TypeBrowserBridge(ServiceListener):
    """Entrega cada tipo nuevo una sola vez a `service_type_added`."""

    def __init__(self, listener: Any) -> None:
        self.listener = listener
        self._lock = threading.Lock()
        self._seen: set[str] = set()

    def add_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        # En el canal de enumeración, `name` es el propio tipo de servicio.
        key = name.lower()
        with self._lock:
            if key in self._seen:
                return
            self._seen.add(key)
        _dispatch(self.listener.service_type_added, ServiceEvent(type=name, name=""))

    def update_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        pass

    def remove_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        pass


class _InstanceBrowserBridge(ServiceListener):
    def __init__(self, engine: "DiscoveryEngine", listener: Any) -> None:
        self.engine = engine
        self.listener = listener

    def add_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        _dispatch(self.listener.service_added, ServiceEvent(type_, instance_name(type_, name)))

    def update_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        # Registros cambiados → nueva resolución, nuevo evento resolved.
        _dispatch(self.engine.request_service_info, type_, name)

    def remove_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        _dispatch(self.listener.service_removed, ServiceEvent(type_, instance_name(type_, name)))


# ---------------------------------------------------------------------------#
# Motor
# ---------------------------------------------------------------------------#
class DiscoveryEngine:
    """Handle de motor para una sesión. Un `Zeroconf` por instancia."""

    def __init__(self, zc: Zeroconf, *, resolve_timeout_ms: int = _DEFAULT_RESOLVE_TIMEOUT_MS) -> None:
        self._zc = zc
        self._resolve_timeout_ms = resolve_timeout_ms
        self._lock = threading.Lock()
        self._type_browsers: Dict[Any, ServiceBrowser] = {}
        self._service_browsers: Dict[str, Dict[Any, ServiceBrowser]] = {}
        self._closed = False

    @classmethod
    def create(
        cls,
        local_address: str | None = None,
        *,
        resolve_timeout_ms: int = _DEFAULT_RESOLVE_TIMEOUT_MS,
    ) -> "DiscoveryEngine":
        interfaces: Any = [local_address] if local_address else InterfaceChoice.All
        try:
            zc = Zeroconf(interfaces=interfaces)
        except OSError as exc:
            raise EngineError(f"No se pudo crear el motor mDNS en {local_address or 'todas las interfaces'}: {exc}") from exc
        logger.debug("Motor mDNS creado (interfaces=%s)", interfaces)
        return cls(zc, resolve_timeout_ms=resolve_timeout_ms)

    # --- Tipos -------------------------------------------------------------
    def add_service_type_listener(self, listener: Any) -> None:
        browser = ServiceBrowser(self._zc, TYPE_ENUMERATION, _TypeBrowserBridge(listener))
        with self._lock:
            self._type_browsers[listener] = browser

    def remove_service_type_listener(self, listener: Any) -> None:
        with self._lock:
            browser = self._type_browsers.pop(listener, None)
        if browser is not None:
            browser.cancel()

    # --- Instancias --------------------------------------------------------
    def add_service_listener(self, type_: str, listener: Any) -> None:
        browser = ServiceBrowser(self._zc, type_, _InstanceBrowserBridge(self, listener))
        with self._lock:
            self._service_browsers.setdefault(type_.lower(), {})[listener] = browser

    def remove_service_listener(self, type_: str, listener: Any) -> None:
        with self._lock:
            browser = self._service_browsers.get(type_.lower(), {}).pop(listener, None)
        if browser is not None:
            browser.cancel()

    def request_service_info(self, type_: str, name: str) -> None:
        """Dispara la resolución sin bloquear; el resultado llega como `service_resolved`."""
        if self._closed or self._zc.loop is None:
            return
        qualified = full_name(type_, name)
        info = AsyncServiceInfo(type_, qualified)
        future = asyncio.run_coroutine_threadsafe(
            info.async_request(self._zc, self._resolve_timeout_ms), self._zc.loop
        )
        future.add_done_callback(partial(self._on_resolved, type_, qualified, info))

    def _on_resolved(self, type_: str, name: str, info: Any, future: Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.debug("Resolución de %s falló: %s", name, exc)
            return
        if not future.result():
            logger.debug("Sin respuesta para %s en %d ms", name, self._resolve_timeout_ms)
            return
        event = ServiceEvent(type_, instance_name(type_, name), details_from_info(info, type_, name))
        for listener in self._listeners_for(type_):
            _dispatch(listener.service_resolved, event)

    def _listeners_for(self, type_: str) -> List[Any]:
        with self._lock:
            return list(self._service_browsers.get(type_.lower(), {}))

    # --- Teardown ----------------------------------------------------------
    def unregister_all_services(self) -> None:
        if not self._closed:
            self._zc.unregister_all_services()

    def close(self) -> None:
        if self._closed:
            return
        with self._lock:
            browsers = list(self._type_browsers.values())
            for per_type in self._service_browsers.values():
                browsers.extend(per_type.values())
            self._type_browsers.clear()
            self._service_browsers.clear()
        for browser in browsers:
            browser.cancel()
        self._zc.close()
        self._closed = True
        logger.debug("Motor mDNS cerrado.")

    def __enter__(self) -> "DiscoveryEngine":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
