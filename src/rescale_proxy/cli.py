"""
CLI for the rescale proxy.

Commands:
- serve: Start the HTTP server
- info: Show configuration and disk cache status
- locate: Show where an image is stored on disk
"""

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from .config import settings
from .logging import setup_logging

app = typer.Typer(
    name="rescale-proxy",
    help="Caching reverse proxy for rescaled images",
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Rescale Proxy - caching reverse proxy for rescaled images."""
    log_level = "DEBUG" if verbose else settings.log_level
    setup_logging(level=log_level, json_output=settings.log_json, log_file=settings.log_file)
    logger.debug("CLI initialized with log level: {}", log_level)


@app.command()
def serve(
    host: str = typer.Option(settings.host, "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(settings.port, "--port", "-p", help="Port to bind to"),
):
    """Start the image proxy server."""
    import uvicorn

    from .errors import ConfigurationError
    from .server import create_app

    try:
        proxy_app = create_app(settings)
    except ConfigurationError as e:
        logger.error("{}", e)
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)

    logger.info("Starting image proxy on {}:{}", host, port)
    console.print("[bold blue]Starting Rescale Proxy[/]")
    console.print(f"Listening on http://{host}:{port}")
    console.print(f"Cache directory: {settings.cache_path}")

    # log_config=None keeps the loguru intercept installed by setup_logging
    uvicorn.run(
        proxy_app,
        host=host,
        port=port,
        log_level=settings.log_level.lower(),
        log_config=None,
    )


@app.command()
def info():
    """Show configuration and disk cache status."""
    from .images import ContentStore, RescaleType

    logger.debug("Displaying configuration and status")
    console.print("[bold blue]Rescale Proxy Configuration[/]")

    table = Table(title="Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for rescale_type in RescaleType:
        url = settings.rescale_url(rescale_type)
        table.add_row(f"{rescale_type.label} URL", url or "[red]NOT SET[/]")
    table.add_row("Referer", settings.referer or "[red]NOT SET[/]")
    table.add_row("Cache Directory", settings.cache_dir)
    table.add_row("Cache Max-Age", str(settings.cache_max_age))
    table.add_row("Magic TTL", str(settings.magic_ttl))
    table.add_row("Max Backoff", str(settings.max_backoff))
    table.add_row("Server Host", settings.host)
    table.add_row("Server Port", str(settings.port))

    console.print(table)

    console.print("\n[bold]Disk Cache Status[/]")
    if not settings.cache_path.exists():
        console.print("Cache directory not initialized (no image fetched yet)")
        return

    counts = ContentStore(settings.cache_path).stats()
    logger.debug("Disk cache status: {}", counts)
    for rescale_type, count in counts.items():
        console.print(f"{rescale_type.label}: {count}")


@app.command()
def locate(
    rescale_type: str = typer.Argument(..., help="Rescale type (thumbnail, large)"),
    url: str = typer.Argument(..., help="Source image URL"),
):
    """Show the content-addressed path of an image."""
    from .errors import FetchError
    from .images import ContentStore, ImageKey, RescaleType

    try:
        key = ImageKey(rescale_type=RescaleType.parse(rescale_type), url=url)
    except FetchError:
        console.print(f"[red]Error: unknown rescale type '{rescale_type}'[/]")
        raise typer.Exit(1)

    store = ContentStore(settings.cache_path)
    _, path = store.path(key)
    console.print(str(path))

    saved = store.load(key)
    if saved is None:
        console.print("[yellow]Not cached[/]")
    else:
        console.print(
            f"[green]Cached: {saved.image.content_type}, {len(saved.image.body)} bytes[/]"
        )
