"""Click-based CLI entry point for the MWD depth profile pipeline."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from mwdprofile.config import load_settings

_DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%d %H:%M", "%Y-%m-%d %H:%M:%S"]


def _settings_options(f):
    """Options shared by every command that selects holes."""
    f = click.option("--config", "config_path", type=click.Path(exists=True, path_type=Path),
                     help="YAML settings file; options given here override it.")(f)
    f = click.option("--end", type=click.DateTime(_DATE_FORMATS), help="Latest hole start time.")(f)
    f = click.option("--start", type=click.DateTime(_DATE_FORMATS), help="Earliest hole start time.")(f)
    f = click.option("--pattern", help="Pattern (drill plan) name filter, SQL LIKE syntax, e.g. '1160-3231%'.")(f)
    return f


def _resolve_settings(config_path, **overrides):
    return load_settings(config_path).with_overrides(**overrides)


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Log progress at INFO level.")
def cli(verbose: bool):
    """Blast-hole MWD depth profiles and drilling cycle times."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("input_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("output_dir", type=click.Path(path_type=Path))
@_settings_options
@click.option("--fine-bin", "fine_bin_m", type=float, help="Stage 1 bin width in metres (default 0.2).")
@click.option("--coarse-bin", "coarse_bin_m", type=float, help="Stage 2 bin width in metres (default 1.0).")
@click.option("--format", "fmt", type=click.Choice(["parquet", "csv"]), help="Output file format.")
def profile(input_dir: Path, output_dir: Path, config_path, pattern, start, end, fine_bin_m, coarse_bin_m, fmt):
    """Build 1 m MWD profiles with cycle times and write them to OUTPUT_DIR."""
    from mwdprofile.pipeline import build_profile
    from mwdprofile.storage.catalog import load_tables
    from mwdprofile.storage.writer import write_profile

    settings = _resolve_settings(
        config_path, pattern=pattern, start=start, end=end,
        fine_bin_m=fine_bin_m, coarse_bin_m=coarse_bin_m, fmt=fmt,
    )
    samples, holes = load_tables(input_dir, settings)
    result = build_profile(samples, holes, settings)
    written = write_profile(output_dir, result, settings)

    click.echo("\nProfile complete:")
    click.echo(f"  Join: {result.report.summary_line()}")
    click.echo(f"  Hole attempts: {len(result.cycles)}")
    click.echo(f"  Depth intervals: {len(result.profile)}")
    click.echo(f"  Files written: {len(written)}")


@cli.command()
@click.argument("input_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@_settings_options
def holes(input_dir: Path, config_path, pattern, start, end):
    """Show hole-level cycle times with per-rig averages."""
    from mwdprofile.analysis.cycle_time import hole_cycle_summary
    from mwdprofile.pipeline import build_profile
    from mwdprofile.storage.catalog import load_tables

    settings = _resolve_settings(config_path, pattern=pattern, start=start, end=end)
    samples, holes_df = load_tables(input_dir, settings)
    result = build_profile(samples, holes_df, settings)
    if result.cycles.empty:
        click.echo("No matching holes found.")
        return

    summary = hole_cycle_summary(result.cycles)
    click.echo("Hole Cycle Times")
    click.echo("=" * 80)
    for (pat, rig), group in summary.groupby(["pattern", "rig"], sort=True):
        first = group.iloc[0]
        click.echo(f"\n  {pat} / {rig}: {len(group)} cycles")
        click.echo(f"    Avg cycle time: {first['avg_cycle_time_min_by_rig']:.1f} min")
        click.echo(f"    Avg drilling ROP: {first['avg_drilling_rop_by_rig']:.1f} m/hr")
        click.echo(f"    Avg cycle ROP: {first['avg_cycle_rop_by_rig']:.1f} m/hr")


@cli.command()
@click.argument("input_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@_settings_options
@click.option("--output-dir", type=click.Path(path_type=Path), help="Also write the rig status table here.")
def quality(input_dir: Path, config_path, pattern, start, end, output_dir: Path | None):
    """Report drilling data quality issues and rig status."""
    from mwdprofile.pipeline import build_profile
    from mwdprofile.quality.checks import (
        check_cycle_times,
        check_holes,
        check_join,
        issues_to_frame,
        rig_status,
    )
    from mwdprofile.storage.catalog import load_tables
    from mwdprofile.storage.writer import write_rig_status

    settings = _resolve_settings(config_path, pattern=pattern, start=start, end=end)
    samples, holes_df = load_tables(input_dir, settings)
    result = build_profile(samples, holes_df, settings)

    issues = check_holes(holes_df) + check_join(result.report)
    if not result.cycles.empty:
        issues += check_cycle_times(result.cycles)
    issue_df = issues_to_frame(issues)

    click.echo("Drilling Quality")
    click.echo("=" * 80)
    if issue_df.empty:
        click.echo("  No issues found.")
    else:
        for issue_type, count in issue_df["issue_type"].value_counts().sort_index().items():
            click.echo(f"  {issue_type:25s}: {count}")

    status = rig_status(holes_df)
    click.echo("\nRig status:")
    for _, row in status.iterrows():
        click.echo(
            f"  {row['pattern']} / {row['rig']}: {row['hole_count']} holes, "
            f"{row['total_drilled_m']:.1f} m, {row['bad_diameter_count']} bad diameters, "
            f"{row['placeholder_start_count']} placeholder starts"
        )
    if output_dir is not None:
        write_rig_status(output_dir, status, settings.fmt)


@cli.command()
@click.argument("input_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
def info(input_dir: Path):
    """Show dataset summary statistics."""
    from mwdprofile.storage.catalog import dataset_info

    click.echo(dataset_info(input_dir))


if __name__ == "__main__":
    cli()
