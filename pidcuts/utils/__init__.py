from .io import (
    read_config,
    load_tracks,
    write_df,
)
