# zcdiscover/cli.py

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Annotated, Optional

import typer

from .config import OUTPUT_MODES, Config
from .engine import EngineError, default_local_address
from .session import discover_types, run_from_config

cli = typer.Typer(
    add_completion=False,
    help="Descubre servicios mDNS/DNS-SD de la red local y los emite como JSON.",
    no_args_is_help=True,
)

_LOG_FORMAT = "%(asctime)s | %(levelname)8s | %(name)s | %(message)s"

# ───────────────── Opciones ─────────────────

LogLevelOpt = Annotated[Optional[str], typer.Option("--log-level", "-l", help="Nivel de log (DEBUG, INFO, WARNING…). Por defecto $LOG_LEVEL o INFO.")]

WindowOpt = Annotated[Optional[float], typer.Option("--window", "-w", min=0, help="Segundos de escucha antes de generar el informe.", rich_help_panel="Descubrimiento")]
AddressOpt = Annotated[Optional[str], typer.Option("--address", "-a", help="IP local a la que se enlaza el motor mDNS.", rich_help_panel="Descubrimiento")]
ResolveTimeoutOpt = Annotated[Optional[int], typer.Option("--resolve-timeout", min=1, help="Milisegundos máximos por resolución de instancia.", rich_help_panel="Descubrimiento")]

OutputOpt = Annotated[Optional[str], typer.Option("--output", "-o", help=f"Destino del informe: {' | '.join(OUTPUT_MODES)}.", rich_help_panel="Salida")]
OutputDirOpt = Annotated[Optional[Path], typer.Option("--output-dir", "-d", file_okay=False, help="Directorio para el modo `files`.", rich_help_panel="Salida")]
PrefixOpt = Annotated[Optional[str], typer.Option("--prefix", help="Prefijo de los ficheros en modo `files`.", rich_help_panel="Salida")]


def configure_logging(level: str | None = None) -> None:
    """Logging a stderr; stdout queda reservado para los documentos JSON."""
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(level=level, format=_LOG_FORMAT, datefmt="%H:%M:%S")
    logging.getLogger(__name__).debug("Logger inicializado con nivel %s", level)


@cli.callback()
def main(log_level: LogLevelOpt = None) -> None:
    """Opciones globales."""
    configure_logging(log_level)


# ─────────────── Comandos ───────────────

@cli.command()
def discover(
    window: WindowOpt = None,
    address: AddressOpt = None,
    resolve_timeout: ResolveTimeoutOpt = None,
    output: OutputOpt = None,
    output_dir: OutputDirOpt = None,
    prefix: PrefixOpt = None,
) -> None:
    """Escucha durante la ventana y emite un documento JSON por servicio resuelto."""
    overrides = {
        "window": window,
        "local_address": address,
        "resolve_timeout_ms": resolve_timeout,
        "output": output,
        "output_dir": str(output_dir) if output_dir else None,
        "file_prefix": prefix,
    }
    try:
        cfg = Config(**{k: v for k, v in overrides.items() if v is not None})
    except ValueError as e:
        typer.secho(f"❌  {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(2)

    if cfg.output == "files":
        Path(cfg.output_dir).expanduser().mkdir(parents=True, exist_ok=True)

    try:
        report = run_from_config(cfg)
    except EngineError as e:
        logging.getLogger(__name__).error("%s", e)
        typer.secho(f"💥 {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    typer.secho(
        f"✅  {report.written} servicio(s) escritos ({report.failed} fallidos).",
        fg=typer.colors.GREEN,
        err=True,
    )


@cli.command()
def types(
    window: WindowOpt = None,
    address: AddressOpt = None,
) -> None:
    """Lista los tipos de servicio visibles durante la ventana."""
    try:
        cfg = Config(**{k: v for k, v in {"window": window, "local_address": address}.items() if v is not None})
    except ValueError as e:
        typer.secho(f"❌  {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(2)

    try:
        found = discover_types(cfg.window, local_address=cfg.local_address or default_local_address())
    except EngineError as e:
        typer.secho(f"💥 {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    for service_type in found:
        typer.echo(service_type)
    if not found:
        typer.secho("🙁  No se detectaron tipos de servicio.", fg=typer.colors.YELLOW, err=True)


def _main() -> None:
    cli()

if __name__ == "__main__":
    _main()
