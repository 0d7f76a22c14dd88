"""
Per-track PID decision over the configured ITS, TPC, TOF and TPC+TOF n-sigma cuts.

For the target species an enabled band is an acceptance band (the track n-sigma must lie
strictly inside it); for any other enabled species it is a separation band (the n-sigma
must lie strictly outside it).
"""

import math
from dataclasses import dataclass
from enum import IntFlag
from typing import Dict

from pidcuts.bands import MomentumGate, SigmaBandTable, SpeciesEnableMask
from pidcuts.presets import CombinedMode, SigmaBand
from pidcuts.species import Detector, Species
from pidcuts.track import DetectorResponse, Track


class CutsMask(IntFlag):
    """Bitmask over the four cut categories."""

    NONE = 0
    ITS = 1 << Detector.ITS
    TPC = 1 << Detector.TPC
    TOF = 1 << Detector.TOF
    TPCTOF = 1 << Detector.TPCTOF

    @classmethod
    def of(cls, detector: Detector) -> "CutsMask":
        return cls(1 << int(detector))

    def has(self, detector: Detector) -> bool:
        return bool(self & CutsMask.of(detector))

    def detectors(self) -> list:
        return [d for d in Detector if self.has(d)]


@dataclass(frozen=True)
class EvaluationResult:
    """
    Outcome of the PID cut on one track.

    Attributes
    ----------
    accepted: bool
        Overall decision
    activated: CutsMask
        Cut categories applicable to (evaluated on) the track
    rejected: CutsMask
        Evaluated cut categories the track failed
    """

    accepted: bool
    activated: CutsMask = CutsMask.NONE
    rejected: CutsMask = CutsMask.NONE

    def __bool__(self) -> bool:
        return self.accepted


class DetectorCutEvaluator:
    """
    Evaluates the PID cut for one target species.

    Parameters
    ----------
    target: Species
        The species the cut accepts
    gate: MomentumGate
        Momentum window
    tables: dict[Detector, SigmaBandTable]
        ITS, TPC and TOF band tables
    combined: SigmaBandTable
        TPC+TOF combined table; only its species mask, the TPC and TOF mask intersection, is used
    mode: CombinedMode
        TOF requirement and joint 2D flag
    """

    def __init__(
        self,
        target: Species,
        gate: MomentumGate,
        tables: Dict[Detector, SigmaBandTable],
        combined: SigmaBandTable,
        mode: CombinedMode = CombinedMode(tof_required=False, two_dee=False),
    ):
        self.target = target
        self.gate = gate
        self.tables = tables
        self.combined = combined
        self.mode = mode

    @property
    def enabled(self) -> CutsMask:
        """Cut categories with at least one enabled species."""
        mask = CutsMask.NONE
        for detector, table in self.tables.items():
            if table.active:
                mask |= CutsMask.of(detector)
        if self.combined.active:
            mask |= CutsMask.TPCTOF
        return mask

    def _jointly_cut(self, track: Track) -> SpeciesEnableMask:
        """
        Species handled by the joint 2D cut on this track, hence dropped from the 1D TPC and TOF cuts.

        Without a usable TOF hit the joint cut cannot run and the 1D TPC bands apply.
        """
        if self.mode.two_dee and self.combined.active and track.has_tof:
            return self.combined.mask
        return SpeciesEnableMask()

    def _band_passes(self, species: Species, band: SigmaBand, nsigma: float) -> bool:
        if species == self.target:
            return band.contains(nsigma)
        return band.separates(nsigma)

    def _one_dee(
        self,
        detector: Detector,
        track: Track,
        response: DetectorResponse,
        skip: SpeciesEnableMask,
    ):
        """Return (applicable, passed) for the 1D cut of a detector."""
        bands = [(s, b) for s, b in self.tables[detector].enabled_bands() if s not in skip]
        if not bands:
            return False, True
        passed = all(
            [
                self._band_passes(s, band, response.nsigma(detector, track, s))
                for s, band in bands
            ]
        )
        return True, passed

    def _two_dee(self, track: Track, response: DetectorResponse) -> bool:
        # the circle radius is the current TPC upper bound of the species
        passed = True
        for species in self.combined.mask:
            band = self.tables[Detector.TPC].band(species)
            nsigma = math.hypot(
                response.nsigma(Detector.TPC, track, species),
                response.nsigma(Detector.TOF, track, species),
            )
            if species == self.target:
                passed &= nsigma < band.above
            else:
                passed &= nsigma > band.above
        return passed

    def _independent(self, track: Track, response: DetectorResponse) -> bool:
        passed = True
        for species in self.combined.mask:
            for detector in (Detector.TPC, Detector.TOF):
                band = self.tables[detector].band(species)
                passed &= self._band_passes(
                    species, band, response.nsigma(detector, track, species)
                )
        return passed

    def evaluate(self, track: Track, response: DetectorResponse) -> EvaluationResult:
        """
        Evaluate every cut category on the track, without short-circuiting.

        The track is accepted if it lies within the momentum window, carries a valid
        TOF hit when TOF is required, and passes every applicable category.
        """
        activated = CutsMask.NONE
        rejected = CutsMask.NONE

        accepted = self.gate.accepts(track.p)
        if self.mode.tof_required and not track.has_tof:
            accepted = False

        jointly = self._jointly_cut(track)
        no_skip = SpeciesEnableMask()
        for detector in (Detector.ITS, Detector.TPC, Detector.TOF):
            if detector == Detector.TOF and not track.has_tof:
                continue
            skip = jointly if detector in (Detector.TPC, Detector.TOF) else no_skip
            applicable, passed = self._one_dee(detector, track, response, skip)
            if applicable:
                activated |= CutsMask.of(detector)
                if not passed:
                    rejected |= CutsMask.of(detector)

        if self.combined.active and track.has_tof:
            activated |= CutsMask.TPCTOF
            if self.mode.two_dee:
                passed = self._two_dee(track, response)
            else:
                passed = self._independent(track, response)
            if not passed:
                rejected |= CutsMask.TPCTOF

        return EvaluationResult(
            accepted=accepted and not rejected,
            activated=activated,
            rejected=rejected,
        )
