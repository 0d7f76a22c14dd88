"""
Frozen preset tables mapping the small integer cut codes onto momentum limits, n-sigma bands and TPC+TOF modes.

The code numbering is part of the cut-string contract: a cut string is only reproducible
if each code keeps selecting the same row.
"""

import math
from dataclasses import dataclass, field
from typing import Tuple

from pidcuts.exceptions import InvalidPresetError
from pidcuts.species import Detector


@dataclass(frozen=True)
class SigmaBand:
    """
    Accepted n-sigma band around a species line.

    Attributes
    ----------
    below: float
        n-sigma lower bound
    above: float
        n-sigma upper bound
    """

    below: float
    above: float

    def __post_init__(self):
        if self.below > self.above:
            raise ValueError(
                f"Band lower bound {self.below} above its upper bound {self.above}"
            )

    def contains(self, nsigma: float) -> bool:
        """Strictly inside the band, as required for the target species."""
        return self.below < nsigma < self.above

    def separates(self, nsigma: float) -> bool:
        """Strictly outside the band, as required for a contaminating species."""
        return nsigma < self.below or self.above < nsigma


# band values of a passive (disabled) species; meaningless unless the species is enabled
DISABLED_BAND = SigmaBand(-100.0, 100.0)


@dataclass(frozen=True)
class CombinedMode:
    """TPC+TOF configuration: TOF presence requirement and joint 2D n-sigma cut."""

    tof_required: bool
    two_dee: bool


class PresetTableMixin:
    """Ensure validity of the code in the queries."""

    table_name = "preset"

    def validate_code(self, code: int) -> None:
        """Validate the code against the table rows."""
        if not isinstance(code, int) or isinstance(code, bool) or not (
            0 <= code < len(self.rows)
        ):
            raise InvalidPresetError(self.table_name, code)

    @property
    def codes(self) -> range:
        return range(len(self.rows))


@dataclass(frozen=True)
class MomentumMinPresets(PresetTableMixin):
    """
    Minimum momentum (GeV/c) from which the PID cut is applicable.

    | code | minimum P (GeV/c) |
    |:--:|:--:|
    | 0 | 0.0 |
    | 1..9 | (code + 1) / 10 |
    """

    table_name = "P minimum"
    rows: Tuple[float, ...] = (0.0, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0)

    def fetch(self, code: int) -> float:
        self.validate_code(code)
        return self.rows[code]


@dataclass(frozen=True)
class MomentumMaxPresets(PresetTableMixin):
    """
    Maximum momentum (GeV/c) up to which the PID cut is applicable.

    | code | maximum P (GeV/c) |
    |:--:|:--:|
    | 0 | no maximum |
    | 1 | 0.3 |
    | 2 | 0.4 |
    | 3 | 0.5 |
    | 4 | 0.6 |
    | 5 | 0.7 |
    | 6 | 2.0 |
    | 7 | 3.0 |
    | 8 | 4.0 |
    """

    table_name = "P maximum"
    rows: Tuple[float, ...] = (math.inf, 0.3, 0.4, 0.5, 0.6, 0.7, 2.0, 3.0, 4.0)

    def fetch(self, code: int) -> float:
        self.validate_code(code)
        return self.rows[code]


@dataclass(frozen=True)
class BandPresets(PresetTableMixin):
    """
    n-sigma bands selectable for one detector. Row 0 is the passive cut.

    Attributes
    ----------
    detector: Detector
        The detector the bands refer to
    rows: tuple[SigmaBand | None, ...]
        The (below, above) bands, `None` for the passive cut
    """

    detector: Detector
    rows: Tuple = field(default_factory=tuple)

    @property
    def table_name(self) -> str:
        return f"{self.detector.name} n sigmas cut"

    def fetch(self, code: int):
        """Return the band for the code, `None` if the code disables the species."""
        self.validate_code(code)
        return self.rows[code]


ITS_BANDS = BandPresets(
    detector=Detector.ITS,
    rows=(
        None,
        SigmaBand(-10.0, 10.0),
        SigmaBand(-6.0, 7.0),
        SigmaBand(-5.0, 5.0),
        SigmaBand(-4.0, 5.0),
        SigmaBand(-3.0, 5.0),
        SigmaBand(-4.0, 4.0),
        SigmaBand(-2.5, 4.0),
        SigmaBand(-2.0, 3.5),
    ),
)

TPC_BANDS = BandPresets(
    detector=Detector.TPC,
    rows=(
        None,
        SigmaBand(-10.0, 10.0),
        SigmaBand(-6.0, 7.0),
        SigmaBand(-5.0, 5.0),
        SigmaBand(-4.0, 5.0),
        SigmaBand(-4.0, 4.0),
        SigmaBand(-3.0, 4.0),
        SigmaBand(-3.0, 3.0),
        SigmaBand(-3.0, 5.0),
        SigmaBand(-2.0, 3.0),
    ),
)

TOF_BANDS = BandPresets(
    detector=Detector.TOF,
    rows=(
        None,
        SigmaBand(-7.0, 7.0),
        SigmaBand(-5.0, 5.0),
        SigmaBand(-3.0, 5.0),
        SigmaBand(-2.0, 3.0),
        SigmaBand(-3.0, 3.0),
    ),
)

BAND_PRESETS = {
    Detector.ITS: ITS_BANDS,
    Detector.TPC: TPC_BANDS,
    Detector.TOF: TOF_BANDS,
}


@dataclass(frozen=True)
class CombinedModePresets(PresetTableMixin):
    """
    TPC+TOF configuration codes.

    | code | track TOF presence | 2D TPC+TOF n-sigmas |
    |:--:|:--:|:--:|
    | 0 | not required | not required |
    | 1 |   required   | not required |
    | 2 | not required |   required   |
    | 3 |   required   |   required   |
    """

    table_name = "TOF configuration cut"
    rows: Tuple[CombinedMode, ...] = (
        CombinedMode(tof_required=False, two_dee=False),
        CombinedMode(tof_required=True, two_dee=False),
        CombinedMode(tof_required=False, two_dee=True),
        CombinedMode(tof_required=True, two_dee=True),
    )

    def fetch(self, code: int) -> CombinedMode:
        self.validate_code(code)
        return self.rows[code]


MOMENTUM_MIN = MomentumMinPresets()
MOMENTUM_MAX = MomentumMaxPresets()
COMBINED_MODES = CombinedModePresets()
