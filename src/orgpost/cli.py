"""CLI entry point for orgpost."""

from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from org_outline.parser import MalformedOutline
from orgpost import __version__
from orgpost.config.loader import load_config
from orgpost.export.pipeline import run_export
from orgpost.models.config import Config
from orgpost.models.export import ExportReport
from orgpost.services.exceptions import ConfigError, ExportTargetError, SiteGeneratorError
from orgpost.services.site_generator import SiteGenerator
from orgpost.utils.logging import configure_logging, get_logger


logger = get_logger(__name__)
console = Console()


def print_report(report: ExportReport, content_dir: Path) -> None:
    """Print the run summary, listing every per-record failure."""
    console.print(f"[green]Wrote {len(report.written)} document(s)[/green] to {content_dir}")
    if report.removed:
        console.print(f"Removed {len(report.removed)} stale document(s)")
        for path in report.removed:
            console.print(f"  - {path}", highlight=False)
    if report.failures:
        console.print(f"[red]{len(report.failures)} record(s) failed:[/red]")
        for failure in report.failures:
            console.print(f"  - {failure}", highlight=False, markup=False)


def export_or_fail(config: Config) -> ExportReport:
    """Run the export, turning fatal errors into click exceptions.

    Raises:
        click.ClickException: On unreadable source, malformed outline or
            ambiguous output paths (nothing has been written)
    """
    source = config.project.source_path
    try:
        with console.status(f"Exporting {source}..."):
            report = run_export(config)
    except MalformedOutline as e:
        logger.error("outline_malformed", source=str(source), line=e.line_number, error=e.message)
        raise click.ClickException(f"Malformed outline {source}: {e}")
    except ExportTargetError as e:
        logger.error("export_targets_invalid", error=str(e))
        raise click.ClickException(str(e))
    except UnicodeDecodeError as e:
        logger.error("source_undecodable", source=str(source), error=str(e))
        raise click.ClickException(f"Cannot decode outline {source} as UTF-8: {e.reason} at byte {e.start}")
    except OSError as e:
        logger.error("source_unreadable", source=str(source), error=str(e))
        raise click.ClickException(f"Cannot read outline {source}: {e}")

    print_report(report, config.project.content_path)
    return report


@click.group()
@click.version_option(version=__version__, prog_name="orgpost")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Configuration file (default: ./orgpost.yaml)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path]):
    """Orgpost: Export an org-mode outline of posts to a Hugo site."""
    configure_logging()

    try:
        config = load_config(config_path)
    except ConfigError as e:
        logger.error("config_error", error=str(e))
        raise click.ClickException(str(e))

    logger.info("config_loaded", base_dir=config.project.base_dir)
    ctx.obj = config


@cli.command()
@click.pass_obj
def export(config: Config):
    """
    Export every marked heading to a markdown document.

    Examples:
        orgpost export
        orgpost --config blog/orgpost.yaml export
    """
    logger.info("export_command_started")
    report = export_or_fail(config)
    if not report.ok:
        raise SystemExit(1)


@cli.command()
@click.option("--skip-site", is_flag=True, help="Only export documents; do not run the site generator")
@click.pass_obj
def build(config: Config, skip_site: bool):
    """
    Export documents, then build the site into the destination directory.

    The site is not built when any record failed to export.
    """
    logger.info("build_command_started", skip_site=skip_site)
    report = export_or_fail(config)
    if not report.ok:
        console.print("[red]Site build skipped because of export failures[/red]")
        raise SystemExit(1)
    if skip_site:
        return

    generator = SiteGenerator(config.site, config.project.base_path)
    try:
        with console.status("Building site..."):
            copied = generator.build()
    except SiteGeneratorError as e:
        raise click.ClickException(str(e))

    console.print(f"[green]Site built[/green] in {generator.destination}")
    for path in copied:
        console.print(f"  copied {path}", highlight=False)


@cli.command()
@click.pass_obj
def run(config: Config):
    """Start the site generator's preview server."""
    logger.info("run_command_started")
    generator = SiteGenerator(config.site, config.project.base_path)
    try:
        generator.serve()
    except SiteGeneratorError as e:
        raise click.ClickException(str(e))


@cli.command()
@click.pass_obj
def clean(config: Config):
    """Remove the site generator's output directories."""
    logger.info("clean_command_started")
    generator = SiteGenerator(config.site, config.project.base_path)
    removed = generator.clean()
    if not removed:
        console.print("Nothing to clean")
    for path in removed:
        console.print(f"Removed {path}", highlight=False)


def main():
    """Main entry point for setuptools console script."""
    cli()


if __name__ == "__main__":
    main()
