"""API server command."""

import click

from ..config import get_settings
from .base import echo_info, ensure_initialized


@click.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind")
@click.option("--port", "-p", default=8000, show_default=True, type=int, help="Port to bind")
@click.option("--reload", is_flag=True, help="Restart on code changes (development only)")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int, reload: bool):
    """Run the phasewise JSON API with uvicorn.

    Examples:

        phasewise serve

        phasewise serve --host 0.0.0.0 --port 9000
    """
    ensure_initialized(ctx)

    import uvicorn

    settings = get_settings()
    echo_info(f"Using database {settings.db_path}")
    click.echo(click.style(f"API listening on http://{host}:{port}", fg="green"))
    click.echo(f"Interactive docs at http://{host}:{port}/docs")

    if reload:
        # uvicorn needs an import string to reload
        target = "phasewise.web:create_app"
    else:
        from ..web import create_app

        target = create_app(settings=settings)

    uvicorn.run(
        target,
        host=host,
        port=port,
        reload=reload,
        factory=reload,
        log_level=settings.log_level.lower() if settings.log_level != "SUCCESS" else "info",
    )
