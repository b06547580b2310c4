import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from kubicd.commands import cert, node
from kubicd.config import Settings, get_settings, set_settings
from kubicd.errors import ConfigurationError
from kubicd.logging import setup_logging

app = typer.Typer()

# Add all command groups
app.add_typer(node.app, name="node")
app.add_typer(cert.app, name="cert")


# Global options callback
@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to kubicd.yaml"),
):
    """kubicd - add nodes to a kubeadm cluster through salt."""
    try:
        settings = Settings.load(config) if config else get_settings()
    except ConfigurationError as e:
        typer.secho(f"❌ {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    set_settings(settings)

    level = logging.DEBUG if debug else getattr(logging, settings.logging.level.upper(), logging.INFO)
    setup_logging(
        level,
        log_file=settings.logging.file,
        max_size_mb=settings.logging.max_size_mb,
        backup_count=settings.logging.backup_count,
    )
    if debug:
        logging.getLogger("kubicd").debug("Debug mode enabled")


@app.command("serve")
def serve(
    host: Optional[str] = typer.Option(None, help="Bind address"),
    port: Optional[int] = typer.Option(None, help="Listen port"),
):
    """Run the HTTP API."""
    import uvicorn
    from kubicd.api.main import create_app

    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=host or settings.api.host,
        port=port or settings.api.port,
    )


if __name__ == "__main__":
    try:
        app()
    except Exception as e:
        logging.error(f"Error: {e}")
        sys.exit(1)
