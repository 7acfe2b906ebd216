# gcp_log_tail/cli.py

"""
Command line entry point.

The YAML configuration comes from ``--config`` or, when stdin is not a
terminal, from stdin. Options given on the command line override it.
"""

import asyncio
import logging
import sys
from typing import TextIO

import click
from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud.logging_v2.services.logging_service_v2 import (
    LoggingServiceV2AsyncClient,
)
from pydantic import ValidationError

from .config import (
    CommandLineOverrides,
    ConfigError,
    ConfigLoader,
    ConfigValidationError,
    MatchRule,
    TailConfig,
    TailSettings,
)
from .ingestion.interfaces.errors import SourceConnectionError
from .ingestion.manager.pipeline import TailPipeline
from .logger import setup_logging
from .output.sink import OutputSink

logger = logging.getLogger(__name__)

FORMAT_CHOICES = ["yaml", "json", "jsonl", "csv"]


def create_client() -> LoggingServiceV2AsyncClient:
    try:
        return LoggingServiceV2AsyncClient()
    except (GoogleAuthError, GoogleAPIError, ValueError) as e:
        raise SourceConnectionError(f"Failed to create logging client: {e}") from e


async def tail(
    config: TailConfig, settings: TailSettings, stream: TextIO | None = None
) -> None:
    """Tail every configured project until all sources stop."""
    client = create_client()
    sink = OutputSink(stream, buffered=config.buffered)
    try:
        await TailPipeline(config, settings, client, sink).run()
    finally:
        await client.transport.close()


def load_settings(log_level: str | None, log_format: str | None) -> TailSettings:
    values = {}
    if log_level is not None:
        values["log_level"] = log_level
    if log_format is not None:
        values["log_format"] = log_format
    return TailSettings(**values)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "-p", "--project", "projects", multiple=True, help="Project ID (multiple ok)"
)
@click.option(
    "-l", "--log", "logs", multiple=True, help="Log to tail (short name, multiple ok)"
)
@click.option(
    "-f", "--filter", "filters", multiple=True, help="Filter expression (multiple ok)"
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(FORMAT_CHOICES, case_sensitive=False),
    default=None,
    help="Output format",
)
@click.option(
    "--limit",
    type=click.IntRange(min=0),
    default=None,
    help="Number of entries to output; 0 means no limit",
)
@click.option(
    "--match-rule",
    type=click.Choice([rule.value for rule in MatchRule]),
    default=None,
    help="Whether entries matching no log rule are dropped",
)
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML configuration file (default: stdin when piped)",
)
@click.option("--buffered", is_flag=True, help="Do not flush after every record")
@click.option("--log-level", default=None, help="Diagnostic log level")
@click.option(
    "--log-format",
    type=click.Choice(["text", "json"]),
    default=None,
    help="Diagnostic log format",
)
def main(
    projects: tuple[str, ...],
    logs: tuple[str, ...],
    filters: tuple[str, ...],
    output_format: str | None,
    limit: int | None,
    match_rule: str | None,
    config_file: str | None,
    buffered: bool,
    log_level: str | None,
    log_format: str | None,
) -> None:
    """Tail Google Cloud Logging entries from one or more projects."""
    try:
        settings = load_settings(log_level, log_format)
    except ValidationError as e:
        click.echo(f"Invalid settings: {e}", err=True)
        raise click.Abort() from e
    setup_logging(settings.log_level, settings.log_format)

    overrides = CommandLineOverrides(
        projects=list(projects),
        logs=list(logs),
        filters=list(filters),
        format=output_format.lower() if output_format else None,
        limit=limit,
        match_rule=match_rule,
        buffered=buffered,
    )

    stream = None if config_file or sys.stdin.isatty() else sys.stdin
    try:
        config = ConfigLoader().load(config_file, stream, overrides)
    except ConfigValidationError as e:
        click.echo(e.format_errors(), err=True)
        raise click.Abort() from e
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        raise click.Abort() from e

    try:
        asyncio.run(tail(config, settings, sys.stdout))
    except SourceConnectionError as e:
        click.echo(str(e), err=True)
        raise click.Abort() from e
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()
