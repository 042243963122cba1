# SPDX-License-Identifier: MIT
"""CLI entry point for the extension-registry command."""

from __future__ import annotations

import click
import uvicorn

from .config import RegistryConfig
from .log import configure_logging, install_excepthook

DEFAULT_PORT = 4040


@click.group()
@click.version_option(package_name="extension-registry")
def cli() -> None:
    """Extension registry server."""


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind.")
@click.option(
    "--port",
    default=DEFAULT_PORT,
    type=int,
    show_default=True,
    envvar="REGISTRY_PORT",
    help="Port to listen on.",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default="info",
    show_default=True,
    help="Logging level.",
)
def serve(host: str, port: int, log_level: str) -> None:
    """Serve the registry over HTTP.

    Storage, admins and API tokens come from REGISTRY_* environment
    variables.
    """
    configure_logging(log_level)
    install_excepthook()

    from .app import create_app

    config = RegistryConfig.from_env()
    if config.debug:
        configure_logging("debug")
        log_level = "debug"

    uvicorn.run(create_app(config), host=host, port=port, log_level=log_level)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
