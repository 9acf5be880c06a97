"""Permite `python -m zcdiscover discover …`."""
from .cli import cli

if __name__ == "__main__":
    cli()
