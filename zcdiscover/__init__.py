"""
zcdiscover – inventario mDNS/DNS-SD
===================================

Paquete raíz. Mantiene metadatos de la distribución y expone la API de alto
nivel (sesión, configuración) sin cargar la CLI.
"""
from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as _pkg_version

# ---------------------------------------------------------------------------#
# Metadatos
# ---------------------------------------------------------------------------#
try:
    __version__: str = _pkg_version(__name__)
except PackageNotFoundError:  # running from source tree
    __version__ = "0.0.0.dev0"

# ---------------------------------------------------------------------------#
# API pública mínima
# ---------------------------------------------------------------------------#
from .config import Config  # noqa: E402
from .session import SessionReport, run_session  # noqa: E402


def run_cli() -> None:
    """
    Punto de entrada para lanzar la CLI desde código:

    ```python
    import zcdiscover
    zcdiscover.run_cli()
    ```
    """
    # Importación diferida: Typer sólo hace falta para la CLI.
    from .cli import cli  # noqa: E402

    cli()


__all__ = [
    "__version__",
    "Config",
    "SessionReport",
    "run_cli",
    "run_session",
]
