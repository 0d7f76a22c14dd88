"""I/O helpers."""

from pathlib import Path
from typing import Any, Union

import pandas as pd
import yaml


def read_config(config_path: Union[str, Path], key: Union[str, None] = None) -> Any:
    """Read the YAML configuration file, optionally returning a single top-level key."""
    with open(config_path, "r") as f:
        config = yaml.safe_load(f)
    if config is None:
        raise ValueError(f"Empty configuration file: {config_path}")
    if key is not None:
        try:
            return config[key]
        except KeyError:
            raise KeyError(f"Key '{key}' not found in {config_path}") from None
    return config


def load_tracks(path: Union[str, Path]) -> pd.DataFrame:
    """Load a track table from CSV or parquet."""
    path = Path(path)
    match path.suffix:
        case ".csv":
            return pd.read_csv(path)
        case ".parquet" | ".pq":
            return pd.read_parquet(path)
        case _:
            raise ValueError(f"Unsupported track table format: {path.suffix}")


def write_df(df: pd.DataFrame, path: Union[str, Path]) -> Path:
    """Write a DataFrame to CSV or parquet, by extension."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    match path.suffix:
        case ".csv":
            df.to_csv(path, index=False)
        case ".parquet" | ".pq":
            df.to_parquet(path, index=False)
        case _:
            raise ValueError(f"Unsupported track table format: {path.suffix}")
    return path
