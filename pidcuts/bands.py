"""Configuration store: per-detector species masks, n-sigma band tables and the momentum gate."""

import math
from typing import Dict, Iterable, Iterator

from loguru import logger

from pidcuts.presets import (
    BAND_PRESETS,
    DISABLED_BAND,
    MOMENTUM_MAX,
    MOMENTUM_MIN,
    BandPresets,
    SigmaBand,
)
from pidcuts.species import PID_SPECIES, Detector, Species


class SpeciesEnableMask:
    """Bitmask of the species with an active band, indexed by `Species`."""

    __slots__ = ("_bits",)

    def __init__(self, species: Iterable[Species] = ()):
        self._bits = 0
        for s in species:
            self.set(s)

    @classmethod
    def from_bits(cls, bits: int) -> "SpeciesEnableMask":
        mask = cls()
        mask._bits = bits
        return mask

    @property
    def bits(self) -> int:
        return self._bits

    def set(self, species: Species) -> None:
        self._bits |= 1 << int(species)

    def reset(self, species: Species) -> None:
        self._bits &= ~(1 << int(species))

    def reset_all(self) -> None:
        self._bits = 0

    def test(self, species: Species) -> bool:
        return bool(self._bits & (1 << int(species)))

    def count(self) -> int:
        return bin(self._bits).count("1")

    def __and__(self, other: "SpeciesEnableMask") -> "SpeciesEnableMask":
        return SpeciesEnableMask.from_bits(self._bits & other._bits)

    def __contains__(self, species: Species) -> bool:
        return self.test(species)

    def __iter__(self) -> Iterator[Species]:
        return (s for s in Species if self.test(s))

    def __len__(self) -> int:
        return self.count()

    def __bool__(self) -> bool:
        return self._bits != 0

    def __eq__(self, other) -> bool:
        return isinstance(other, SpeciesEnableMask) and self._bits == other._bits

    def __repr__(self) -> str:
        return f"SpeciesEnableMask({[s.label for s in self]})"


class SigmaBandTable:
    """
    n-sigma bands of one detector, configured through the detector preset codes.

    For the target species the band is an acceptance band, for any other enabled
    species it is a separation band.
    """

    def __init__(self, detector: Detector, presets: BandPresets = None):
        self.detector = detector
        self.presets = presets if presets is not None else BAND_PRESETS.get(detector)
        self.mask = SpeciesEnableMask()
        self._bands: Dict[Species, SigmaBand] = {s: DISABLED_BAND for s in PID_SPECIES}

    @property
    def active(self) -> bool:
        """The detector cut is active as long as one species has its band enabled."""
        return bool(self.mask)

    def band(self, species: Species) -> SigmaBand:
        return self._bands.get(species, DISABLED_BAND)

    def set_band(self, species: Species, code: int) -> None:
        """
        Configure the band of a species from its preset code.

        Raises
        ------
        InvalidPresetError
            If the code is not in the detector table; the table is left untouched.
        """
        if self.presets is None:
            raise ValueError(f"No preset table for detector {self.detector.name}")
        if species not in PID_SPECIES:
            raise ValueError(f"Species {species!r} carries no {self.detector.name} band")
        band = self.presets.fetch(code)
        self.assign(species, band)
        logger.debug(
            f"{self.detector.name} band for {species.label} configured with code {code}: {self.band(species)}"
        )

    def assign(self, species: Species, band) -> None:
        """Set a band directly; `None` disables the species."""
        if band is None:
            self.mask.reset(species)
            self._bands[species] = DISABLED_BAND
        else:
            self.mask.set(species)
            self._bands[species] = band

    def reset(self) -> None:
        self.mask.reset_all()
        self._bands = {s: DISABLED_BAND for s in PID_SPECIES}

    def enabled_bands(self) -> Iterator:
        """(species, band) pairs of the enabled species."""
        return ((s, self._bands[s]) for s in self.mask)

    def __repr__(self) -> str:
        return f"SigmaBandTable({self.detector.name}, {dict(self.enabled_bands())})"


class MomentumGate:
    """Total momentum window (GeV/c) within which the PID cut accepts tracks."""

    def __init__(self, min_p: float = 0.0, max_p: float = math.inf):
        self.min_p = min_p
        self.max_p = max_p

    def set_min(self, code: int) -> None:
        self.min_p = MOMENTUM_MIN.fetch(code)

    def set_max(self, code: int) -> None:
        self.max_p = MOMENTUM_MAX.fetch(code)

    @property
    def has_max(self) -> bool:
        return not math.isinf(self.max_p)

    def accepts(self, p: float) -> bool:
        return self.min_p <= p <= self.max_p

    def __repr__(self) -> str:
        return f"MomentumGate({self.min_p}, {self.max_p})"
