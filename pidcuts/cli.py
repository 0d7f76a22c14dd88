"""Command-line interface to build and run the PID cuts engine"""

import click
from loguru import logger
from pathlib import Path
from pydantic import ValidationError
from tabulate import tabulate

from .cuts import CutParameter
from .engine import (
    _load_config,
    _load_validated_config,
    apply_cuts,
    build_cuts,
    check_period,
    get_config,
)
from .exceptions import PIDCutsError
from .presets import BAND_PRESETS, COMBINED_MODES, MOMENTUM_MAX, MOMENTUM_MIN
from .utils import load_tracks, write_df

# Setup logging
logdir = Path("logs/engine")
logdir.mkdir(parents=True, exist_ok=True)
logger.add(
    logdir / "pidcuts_log_{time}.log",
    rotation="1 day",
    retention="7 days",
    level="INFO",
)


@click.group()
def cli():
    """Command-line interface to build and run the PID cuts engine"""
    pass


@cli.command()
@click.option(
    "-c",
    "--config-path",
    help="Path to the YAML user-defined configuration file",
    default="config/main.yml",
    required=False,
)
def build(config_path):
    """Validate the PID cuts configuration and report the resulting cuts.

    Example:
        pidcuts-engine build --config-path config/main.yml
    """
    logger.info(f"Building the PID cuts engine from: {config_path}")

    try:
        config = _load_config(config_path)
        cuts = build_cuts(config)
    except ValidationError as e:
        logger.error(f"Validation failed for configuration: {e}")
        raise SystemExit(1)
    except (PIDCutsError, OSError) as e:
        logger.error(f"Failed to build PID cuts engine: {e}")
        raise SystemExit(1)

    table_data = [
        [param.name.lower(), cuts.parameters[param], cuts.describe_parameter(param).strip()]
        for param in CutParameter
    ]
    logger.info(
        f"\n\nConfiguration report ({cuts.name}, cut string {cuts.cuts_string}):\n"
        f"{tabulate(table_data, headers=['parameter', 'code', 'cut'], tablefmt='github')}"
    )


@cli.command()
def presets():
    """Print the preset code tables."""
    rows = [["P minimum", code, f"{MOMENTUM_MIN.fetch(code)} GeV/c"] for code in MOMENTUM_MIN.codes]
    rows += [["P maximum", code, f"{MOMENTUM_MAX.fetch(code)} GeV/c"] for code in MOMENTUM_MAX.codes]
    for detector, table in BAND_PRESETS.items():
        for code in table.codes:
            band = table.fetch(code)
            cut = "passive cut" if band is None else f"{band.below} < nsigma < {band.above}"
            rows.append([f"{detector.name} n sigma", code, cut])
    for code in COMBINED_MODES.codes:
        mode = COMBINED_MODES.fetch(code)
        rows.append(
            [
                "TPC+TOF",
                code,
                f"TOF {'required' if mode.tof_required else 'not required'}, "
                f"2D {'required' if mode.two_dee else 'not required'}",
            ]
        )
    click.echo(tabulate(rows, headers=["table", "code", "value"], tablefmt="github"))


@cli.command()
def describe():
    """Print every cut line of the built PID cuts."""
    try:
        config = get_config() or _load_validated_config()
        cuts = build_cuts(config)
    except (FileNotFoundError, PIDCutsError) as e:
        logger.error(f"Cannot describe the PID cuts: {e}")
        raise SystemExit(1)
    cuts.print_cuts()


@cli.command()
@click.argument("tracks_path", type=click.Path(exists=True, dir_okay=False))
@click.argument("output_path", type=click.Path(dir_okay=False))
@click.option("--period", default=None, help="Analysis period of the track table")
def run(tracks_path, output_path, period):
    """Apply the built PID cuts to a track table (CSV or parquet) with pre-computed n-sigma columns.

    Example:
        pidcuts-engine run tracks.parquet tracks_pid.parquet --period LHC18q
    """
    try:
        config = get_config() or _load_validated_config()
        cuts = build_cuts(config)
    except (FileNotFoundError, PIDCutsError) as e:
        logger.error(f"Config not set. Please build the PID cuts engine first: {e}")
        raise SystemExit(1)

    try:
        check_period(config, period)
        df = apply_cuts(cuts, load_tracks(tracks_path), period=period)
    except PIDCutsError as e:
        logger.error(f"Cannot apply the PID cuts to {tracks_path}: {e}")
        raise SystemExit(1)
    write_df(df, output_path)
    logger.info(f"Tracks with PID decision written to {output_path}")

    if cuts.qa is not None and config.qa.output_path:
        cuts.qa.save(config.qa.output_path)


if __name__ == "__main__":
    cli()
