"""Build the PID cuts from the user configuration and run them over track tables."""

import json
from pathlib import Path
from typing import Iterator, Optional, Union

import pandas as pd
from loguru import logger

from pidcuts.cuts import PIDCuts
from pidcuts.exceptions import ConfigurationError, FatalSetupError
from pidcuts.pydantic_config_model import PIDCutsConfig
from pidcuts.species import PID_SPECIES, Detector
from pidcuts.track import DetectorResponse, RecordedResponse, Track
from pidcuts.utils import read_config

# Global variable to store the validated config
config = None
config_path_json = Path(
    ".pidcuts/validated_config.json"
)  # Hidden directory for the validated config

# track-table columns feeding `Track`
TRACK_COLUMNS = (
    "p",
    "its_signal",
    "tpc_signal",
    "tof_in",
    "tof_mismatch",
    "integrated_length",
    "tof_signal",
    "label",
)


def nsigma_column(detector: Detector, species) -> str:
    """Track-table column holding the n-sigma of a detector and species hypothesis, e.g. `nsigma_tpc_kaon`."""
    return f"nsigma_{detector.name.lower()}_{species.label}"


def _load_config(config_path: Union[str, Path]) -> PIDCutsConfig:
    """Load and validate the configuration file."""
    global config
    config_data = read_config(config_path)
    config = PIDCutsConfig(**config_data)

    # Persist the validated config to a hidden directory
    config_path_json.parent.mkdir(exist_ok=True)
    with config_path_json.open("w") as f:
        f.write(config.model_dump_json(indent=4))
    return config


def get_config() -> Optional[PIDCutsConfig]:
    """Return the current value of the config."""
    return config


def _load_validated_config() -> PIDCutsConfig:
    """Load the pre-validated configuration from the JSON file."""
    global config
    if not config_path_json.exists():
        logger.error("Run 'pidcuts-engine build' first.")
        raise FileNotFoundError(
            "Config build missing. Run 'pidcuts-engine build' first."
        )

    with config_path_json.open("r") as f:
        config_data = json.load(f)
        config = PIDCutsConfig(**config_data)
    return config


def build_cuts(cuts_config: PIDCutsConfig) -> PIDCuts:
    """
    Instantiate and configure the PID cuts from a validated configuration.

    Raises
    ------
    ConfigurationError
        If any parameter code is rejected by the cuts.
    """
    cuts = PIDCuts(
        name=cuts_config.name,
        target=cuts_config.target_species,
        cut_number=cuts_config.cut_number,
        qa_level=cuts_config.qa.qa_level,
        fill_before=cuts_config.qa.fill_before,
    )
    if not cuts.set_cuts(cuts_config.parameters):
        raise ConfigurationError(
            f"Cut parameters {cuts_config.parameters} rejected for {cuts_config.name}"
        )
    logger.info(
        f"PID cuts {cuts.name} for {cuts.target.label} built with cut string {cuts.cuts_string}"
    )
    return cuts


def tracks_from_frame(df: pd.DataFrame) -> Iterator[Track]:
    """Yield `Track`s from a track table carrying the kinematic, signal and n-sigma columns."""
    if "p" not in df.columns:
        raise KeyError("Track table is missing the momentum column 'p'")

    kinematic = [c for c in TRACK_COLUMNS if c in df.columns]
    nsigma_columns = {
        (d, s): nsigma_column(d, s)
        for d in (Detector.ITS, Detector.TPC, Detector.TOF)
        for s in PID_SPECIES
        if nsigma_column(d, s) in df.columns
    }
    for row in df.itertuples(index=False):
        values = row._asdict()
        kwargs = {c: values[c] for c in kinematic}
        for flag in ("tof_in", "tof_mismatch"):
            if flag in kwargs:
                kwargs[flag] = bool(kwargs[flag])
        if "label" in kwargs:
            kwargs["label"] = int(kwargs["label"])
        nsigmas = {key: float(values[col]) for key, col in nsigma_columns.items()}
        yield Track(nsigmas=nsigmas, **kwargs)


def required_nsigma_columns(cuts: PIDCuts) -> list:
    """N-sigma columns the enabled bands of the cuts read from a track table."""
    return [
        nsigma_column(detector, species)
        for detector in (Detector.ITS, Detector.TPC, Detector.TOF)
        for species, _ in cuts.tables[detector].enabled_bands()
    ]


def check_period(cuts_config: PIDCutsConfig, period) -> None:
    """
    Check a run period against the periods listed in the configuration.

    Raises
    ------
    ConfigurationError
        If the configuration lists periods and `period` is not one of them.
    """
    if period is None or not cuts_config.periods:
        return
    if period not in cuts_config.periods:
        raise ConfigurationError(
            f"Run period {period} not among the configured periods {cuts_config.periods}"
        )


def apply_cuts(
    cuts: PIDCuts,
    df: pd.DataFrame,
    response: Optional[DetectorResponse] = None,
    period=None,
) -> pd.DataFrame:
    """
    Evaluate the PID cuts on each row of a track table, adding `accepted`, `activated` and `rejected` columns.

    Raises
    ------
    FatalSetupError
        If the n-sigma values are replayed from the table and a column needed by an enabled band is missing.
    """
    if cuts.response is None:
        cuts.init_cuts(response if response is not None else RecordedResponse())
    if isinstance(cuts.response, RecordedResponse):
        missing = [c for c in required_nsigma_columns(cuts) if c not in df.columns]
        if missing:
            logger.error(f"Track table lacks the n-sigma columns {missing}")
            raise FatalSetupError(
                f"{cuts.name}: track table is missing n-sigma columns {missing}"
            )
    cuts.notify_run(period)

    results = [cuts.evaluate(track) for track in tracks_from_frame(df)]
    out = df.copy()
    out["accepted"] = [r.accepted for r in results]
    out["activated"] = [int(r.activated) for r in results]
    out["rejected"] = [int(r.rejected) for r in results]
    logger.info(
        f"{cuts.name}: {int(out['accepted'].sum())}/{len(out)} tracks accepted as {cuts.target.label}"
    )
    return out
