"""CLI entrypoint for viewlint."""

import logging
import sys
from pathlib import Path

import click

from . import __version__


def _configure_logging(verbose: bool) -> None:
    from rich.console import Console
    from rich.logging import RichHandler

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    # Keep third-party debug noise out of --verbose.
    if verbose:
        logging.getLogger("asyncio").setLevel(logging.WARNING)


@click.command()
@click.version_option(__version__, "-v", "--version", prog_name="viewlint")
@click.argument("urls", nargs=-1)
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Use this configuration instead of the nearest viewlint_config.py",
)
@click.option("--view", type=str, default=None, help="Use a named view from config")
@click.option(
    "--option",
    "options",
    multiple=True,
    metavar="NAME",
    help="Apply a named option layer from config (repeatable, applied in order)",
)
@click.option(
    "--scope",
    "scopes",
    multiple=True,
    metavar="NAME",
    help="Apply a named scope from config (repeatable)",
)
@click.option(
    "--selector",
    "selectors",
    multiple=True,
    metavar="CSS",
    help="Use an ad hoc CSS selector as an additional scope root (repeatable)",
)
@click.option("--quiet", is_flag=True, help="Report errors only")
@click.option(
    "--max-warnings",
    type=int,
    default=-1,
    help="Number of warnings to trigger a nonzero exit code (-1 disables)",
)
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output results as JSON",
)
@click.option(
    "--output-file",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Write the report to this file instead of stdout",
)
@click.option(
    "--concurrency",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum number of targets linted at once",
)
@click.option("--verbose", is_flag=True, help="Log progress details to stderr")
def cli(
    urls: tuple[str, ...],
    config_file: Path | None,
    view: str | None,
    options: tuple[str, ...],
    scopes: tuple[str, ...],
    selectors: tuple[str, ...],
    quiet: bool,
    max_warnings: int,
    output_json: bool,
    output_file: Path | None,
    concurrency: int | None,
    verbose: bool,
) -> None:
    """viewlint - Lint rendered web pages for visual and layout defects.

    Lints each URL with the configured rules. Without URLs, a single
    target is built from --view and --option layers.

    Examples:

        viewlint https://example.com

        viewlint --view logged-in --option mobile --scope header

        viewlint https://example.com --selector main --json
    """
    _configure_logging(verbose)

    from .commands.lint import run_lint

    exit_code = run_lint(
        list(urls),
        config_file=config_file,
        view=view,
        options=options,
        scopes=scopes,
        selectors=selectors,
        quiet=quiet,
        max_warnings=max_warnings,
        output_json=output_json,
        output_file=output_file,
        max_concurrency=concurrency,
    )
    sys.exit(exit_code)


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
