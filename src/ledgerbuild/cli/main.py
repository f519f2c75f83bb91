"""Click CLI group: the build command."""

from __future__ import annotations

import asyncio
from pathlib import Path

import click

from ledgerbuild.config import BuildConfig, get_settings, parse_page_list, validate_settings
from ledgerbuild.errors import LedgerBuildError
from ledgerbuild.logging import configure_logging
from ledgerbuild.orchestrator import BuildReport, run_build


@click.group()
def cli() -> None:
    """Build the dashboard's server script and single-file pages."""


def format_summary(report: BuildReport) -> str:
    if report.server_built:
        server = "built"
    else:
        server = f"skipped ({report.server_skipped_reason or 'n/a'})"
    return (
        f"server: {server}; "
        f"pages built: {', '.join(sorted(report.built_pages)) or '(none)'}; "
        f"pages skipped: {len(report.skipped_pages)}; "
        f"templates copied: {len(report.templates.copied)}; "
        f"pruned: {len(report.pruned)}"
    )


@cli.command()
@click.option("--pages", "pages_arg", type=str, default=None, help="Comma-separated page names.")
@click.option("--changed", is_flag=True, help="Rebuild only units whose sources changed.")
@click.option("--skip-server", is_flag=True, help="Never build the server bundle.")
@click.option(
    "--project-root",
    type=click.Path(path_type=Path, file_okay=False, exists=True),
    default=Path("."),
    show_default=True,
)
def build(pages_arg: str | None, changed: bool, skip_server: bool, project_root: Path) -> None:
    """Build the server script and every discovered page into the output directory."""
    settings = get_settings()
    configure_logging(settings.log_level, app_env=settings.app_env)
    try:
        validate_settings(settings)
        config = BuildConfig.from_settings(
            project_root,
            settings,
            pages=parse_page_list(pages_arg),
            only_changed=changed,
            skip_server=skip_server,
        )
        report = asyncio.run(run_build(config))
    except LedgerBuildError as exc:
        where = f" [{exc.unit}]" if exc.unit else ""
        raise click.ClickException(f"build failed{where}: {exc}") from exc
    click.echo(format_summary(report))


if __name__ == "__main__":
    cli()
