# zcdiscover/report.py
"""
Serialización de `ResolvedServiceRecord` a JSON y destinos de salida.

El esquema es fijo y ordenado:

    name, type, application, domain, key, protocol, name, port, priority, qn
    [, urls] [, hostAddresses]

`name` aparece dos veces (sobre del evento y metadatos del servicio). Un
`dict` no admite claves repetidas, así que el objeto se arma a partir de una
lista de pares y `json` sólo codifica los valores.
"""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Iterable, List, TextIO, Tuple

from .discovery.events import ResolvedServiceRecord

logger = logging.getLogger(__name__)

_INDENT = "  "
DEFAULT_FILE_PREFIX = "zeroconf_"

Sink = Callable[[Iterable[ResolvedServiceRecord]], int]


def record_fields(record: ResolvedServiceRecord) -> List[Tuple[str, Any]]:
    """Pares (clave, valor) en el orden exacto de salida."""
    pairs: list[tuple[str, Any]] = [
        ("name", record.name),
        ("type", record.type),
        ("application", record.application),
        ("domain", record.domain),
        ("key", record.key),
        ("protocol", record.protocol),
        ("name", record.info_name),
        ("port", record.port),
        ("priority", record.priority),
        ("qn", record.qualified_name),
    ]
    if record.urls:
        pairs.append(("urls", list(record.urls)))
    if record.host_addresses:
        pairs.append(("hostAddresses", list(record.host_addresses)))
    return pairs


def serialize(record: ResolvedServiceRecord, pretty: bool = False) -> str:
    """
    Devuelve el documento JSON de `record`, terminado en salto de línea.

    * `pretty=False` → una sola línea, apta para un *stream* continuo.
    * `pretty=True`  → indentado a dos espacios, un documento por destino.
    """
    pairs = record_fields(record)
    if not pretty:
        body = ",".join(
            f"{_dumps(key)}:{_dumps(value, separators=(',', ':'))}" for key, value in pairs
        )
        return "{" + body + "}\n"

    lines = []
    for key, value in pairs:
        encoded = _dumps(value, indent=len(_INDENT)).replace("\n", "\n" + _INDENT)
        lines.append(f"{_INDENT}{_dumps(key)}: {encoded}")
    return "{\n" + ",\n".join(lines) + "\n}\n"


def _dumps(value: Any, **kwargs: Any) -> str:
    return json.dumps(value, ensure_ascii=False, **kwargs)


# ---------------------------------------------------------------------------#
# Destinos
# ---------------------------------------------------------------------------#
def write_stream(records: Iterable[ResolvedServiceRecord], stream: TextIO) -> int:
    """Un documento compacto por línea. Devuelve cuántos se escribieron."""
    written = 0
    for record in records:
        try:
            stream.write(serialize(record))
            stream.flush()
        except (OSError, ValueError) as exc:
            logger.error("No se pudo escribir el registro %s: %s", record.key, exc)
            continue
        written += 1
    return written


def report_path(record: ResolvedServiceRecord, directory: Path | str, prefix: str = DEFAULT_FILE_PREFIX) -> Path:
    """`<directory>/<prefix><key>.json`; los separadores de ruta del key se sustituyen por `_`."""
    safe_key = record.key.replace("/", "_").replace("\\", "_")
    return Path(directory).expanduser() / f"{prefix}{safe_key}.json"


def write_files(
    records: Iterable[ResolvedServiceRecord],
    directory: Path | str,
    prefix: str = DEFAULT_FILE_PREFIX,
) -> int:
    """Un fichero JSON indentado por registro. Devuelve cuántos se escribieron."""
    written = 0
    for record in records:
        path = report_path(record, directory, prefix)
        logger.debug("Write file for key: %s", record.key)
        try:
            path.write_text(serialize(record, pretty=True), encoding="utf-8")
        except (OSError, ValueError) as exc:
            logger.error("No se pudo escribir %s: %s", path, exc)
            continue
        written += 1
    return written


def stream_sink(stream: TextIO | None = None) -> Sink:
    """Destino stdout (o `stream`). `sys.stdout` se resuelve al escribir."""

    def _sink(records: Iterable[ResolvedServiceRecord]) -> int:
        return write_stream(records, stream if stream is not None else sys.stdout)

    return _sink


def file_sink(directory: Path | str, prefix: str = DEFAULT_FILE_PREFIX) -> Sink:
    def _sink(records: Iterable[ResolvedServiceRecord]) -> int:
        return write_files(records, directory, prefix)

    return _sink
