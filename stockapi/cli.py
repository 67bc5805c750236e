"""
Command-line interface for the Stock API.

Provides commands for running the HTTP server and checking the store.
"""

import sys
from pathlib import Path
from typing import Optional

import click
import uvicorn
from loguru import logger
from pydantic import ValidationError

from .config import Settings, get_settings
from .db_client import StockDB
from .fastapi_server import create_app


def setup_logging(level: str = "INFO", log_file: Optional[Path] = None) -> None:
    """Configure loguru sinks for the service."""
    # Remove default handler
    logger.remove()

    # Add console handler
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
    )

    # Add file handler if configured
    if log_file:
        logger.add(
            log_file,
            level=level,
            rotation="10 MB",
            retention="30 days",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"
        )


def load_settings(verbose: bool = False) -> Settings:
    """
    Load settings and configure logging.

    Exits the process if the configuration is missing or invalid.
    """
    try:
        settings = get_settings()
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    level = "DEBUG" if verbose else settings.log_level
    setup_logging(level, settings.log_file)
    return settings


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Stock API Command Line Interface."""
    # Settings are loaded by each command so --help works without them
    ctx.obj = {'verbose': verbose}


@main.command()
@click.pass_obj
def serve(obj: dict) -> None:
    """Run the HTTP server."""
    settings = load_settings(obj['verbose'])
    logger.info(f"Server is listening on {settings.api_host}:{settings.api_port}")

    # uvicorn exits non-zero when the lifespan startup fails
    uvicorn.run(
        create_app(settings),
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower()
    )


@main.command()
@click.pass_obj
def status(obj: dict) -> None:
    """Show store connectivity and record count."""
    settings = load_settings(obj['verbose'])

    db = StockDB.from_settings(settings)
    try:
        health = db.health_check()
    finally:
        db.dispose()

    if not health['database_connected']:
        logger.error(f"Database unreachable: {health['error']}")
        sys.exit(1)

    click.echo(f"Status: {health['status']}")
    click.echo(f"Stocks: {health['stock_count']}")


if __name__ == "__main__":
    main()
