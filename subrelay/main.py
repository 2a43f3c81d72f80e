"""
Entrypoint: load config, init logging, serve the relay with uvicorn.
"""

from pathlib import Path
from typing import Optional

import structlog
import typer
import uvicorn

from .config import load_config
from .errors import ConfigError
from .logging_setup import configure_logging
from .server import create_app

logger = structlog.get_logger(__name__)

app = typer.Typer(add_completion=False)


@app.command()
def serve(
    sub_url: Optional[str] = typer.Option(None, "--sub-url", help="Subscription URL."),
    proxy_url: Optional[str] = typer.Option(None, "--proxy-url", help="Forward proxy for the outbound fetch."),
    listen: Optional[str] = typer.Option(None, "--listen", help="HTTP listen address:port [default: 127.0.0.1:18888]."),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file (.json, .yaml, .yml or .toml)."),
    verbose_log: Optional[bool] = typer.Option(None, "--verbose-log/--no-verbose-log", help="Log the decoded subscription."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Log level [default: INFO]."),
) -> None:
    """Relay a base64 subscription with its entry comments percent-encoded."""
    configure_logging(log_level or 'INFO')

    try:
        config = load_config(config_path, overrides={
            'sub_url': sub_url,
            'proxy_url': proxy_url,
            'listen_addr': listen,
            'verbose_log': verbose_log,
            'log_level': log_level,
        })
    except ConfigError as e:
        logger.error("config_load_failed", error=str(e))
        typer.echo(f"failed to prepare config: {e}", err=True)
        raise typer.Exit(code=1)

    if config.log_level != (log_level or 'INFO').upper():
        configure_logging(config.log_level)

    logger.info("starting_server",
                listen_addr=config.listen_addr,
                proxied=bool(config.proxy_url))
    uvicorn.run(create_app(config), host=config.host, port=config.port, log_config=None)


if __name__ == "__main__":
    app()
