"""vibelog CLI entry point."""

import typer
from pydantic import ValidationError

from vibelog import __version__
from vibelog.cli.show_cmd import show
from vibelog.cli.summarize_cmd import summarize
from vibelog.logging_setup import configure_logging
from vibelog.models.config import load_recorder_config

app = typer.Typer(
    name="vibelog",
    help="Inspect recorded browser sessions and performance traces",
    no_args_is_help=True,
)

# Register subcommands
app.command()(show)
app.command()(summarize)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"vibelog {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Inspect recorded browser sessions and performance traces."""
    try:
        config = load_recorder_config()
    except ValidationError as exc:
        typer.echo(f"Error: invalid vibelog.yaml: {exc}", err=True)
        raise typer.Exit(code=1)
    configure_logging(config.log_level, json_format=config.log_json)
