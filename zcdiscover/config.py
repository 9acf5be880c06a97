# zcdiscover/config.py

from __future__ import annotations

import os
from dataclasses import dataclass, field

OUTPUT_MODES = ("stdout", "files")


# --- Funciones de ayuda ---
def _getenv_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None: return default
    try: return int(raw)
    except (TypeError, ValueError): return default

def _getenv_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None: return default
    try: return float(raw)
    except (TypeError, ValueError): return default

def _getenv_str(name: str) -> str | None:
    raw = os.getenv(name)
    return raw or None


@dataclass(slots=True)
class Config:
    # --- Ventana de descubrimiento ---
    window: float = field(default_factory=lambda: _getenv_float("DISCOVERY_WINDOW", 15.0))
    local_address: str | None = field(default_factory=lambda: _getenv_str("LOCAL_ADDRESS"))
    resolve_timeout_ms: int = field(default_factory=lambda: _getenv_int("RESOLVE_TIMEOUT_MS", 3000))

    # --- Salida ---
    output: str = field(default_factory=lambda: os.getenv("OUTPUT", "stdout"))
    output_dir: str = field(default_factory=lambda: os.getenv("OUTPUT_DIR", "."))
    file_prefix: str = field(default_factory=lambda: os.getenv("FILE_PREFIX", "zeroconf_"))

    # --- Logging ---
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))


    def __post_init__(self) -> None:
        """Normaliza y valida; falla rápido con `ValueError`."""
        self.output = self.output.lower()
        self.log_level = self.log_level.upper()
        if self.window < 0:
            raise ValueError(f"La ventana de descubrimiento no puede ser negativa ({self.window}).")
        if self.output not in OUTPUT_MODES:
            raise ValueError(f"Modo de salida desconocido '{self.output}'. Usa uno de: {', '.join(OUTPUT_MODES)}.")
        if self.resolve_timeout_ms <= 0:
            raise ValueError("RESOLVE_TIMEOUT_MS debe ser mayor que 0.")


    def __repr__(self) -> str:
        addr_info = f", address='{self.local_address}'" if self.local_address else ""
        out_info = f", dir='{self.output_dir}', prefix='{self.file_prefix}'" if self.output == "files" else ""
        params = (
            f"window={self.window}s{addr_info}, resolve_timeout={self.resolve_timeout_ms}ms, "
            f"output='{self.output}'{out_info}"
        )
        return f"<Config {params}>"
