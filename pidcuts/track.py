"""
Per-track inputs to the PID cut and the detector-response service interface.

The detector response is an external collaborator: the cut only queries n-sigma
values and raw signals from it, keyed by track and species.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Tuple

from pidcuts.species import Detector, Species

# speed of light in cm/ps
C_CM_PS = 299792458.0 * 1.0e2 * 1.0e-12


@dataclass(frozen=True)
class Track:
    """
    Reconstructed track quantities consumed by the PID cut.

    Attributes
    ----------
    p: float
        Total momentum [GeV/c]
    its_signal: float
        ITS dE/dx signal [a.u.]
    tpc_signal: float
        TPC dE/dx signal [a.u.]
    tof_in: bool
        The track has a matched TOF hit
    tof_mismatch: bool
        The TOF hit is flagged as mismatched with the track
    integrated_length: float
        Integrated track length up to TOF [cm]
    tof_signal: float
        Raw TOF time [ps]
    label: int
        Monte Carlo label; negative for ghost tracks
    nsigmas: dict[(Detector, Species), float]
        Pre-computed n-sigma values, used by `RecordedResponse`
    """

    p: float
    its_signal: float = 0.0
    tpc_signal: float = 0.0
    tof_in: bool = False
    tof_mismatch: bool = False
    integrated_length: float = 0.0
    tof_signal: float = 0.0
    label: int = 0
    nsigmas: Dict[Tuple[Detector, Species], float] = field(
        default_factory=dict, compare=False
    )

    @property
    def has_tof(self) -> bool:
        """TOF information is usable: hit present and not mismatched."""
        return self.tof_in and not self.tof_mismatch


@dataclass(frozen=True)
class TruthParticle:
    """Generator-level particle associated to a track label."""

    pdg_code: int
    p: float


class DetectorResponse(ABC):
    """Abstract detector-response service."""

    @abstractmethod
    def nsigma(self, detector: Detector, track: Track, species: Species) -> float:
        """Number of sigmas the track signal lies from the species expectation."""
        pass

    @abstractmethod
    def tof_start_time(self, p: float) -> float:
        """Event start-time estimate [ps] for the momentum bin of the track."""
        pass

    def has_nsigma(self, detector: Detector, track: Track, species: Species) -> bool:
        """Whether the service can provide the n-sigma of the track for the species hypothesis."""
        return True

    def raw_signal(self, detector: Detector, track: Track) -> float:
        """Raw detector signal: dE/dx for ITS and TPC, velocity beta for TOF."""
        match detector:
            case Detector.ITS:
                return track.its_signal
            case Detector.TPC:
                return abs(track.tpc_signal)
            case Detector.TOF:
                return self.beta(track)
            case _:
                raise ValueError(f"No raw signal for detector {detector!r}")

    def beta(self, track: Track) -> float:
        """Velocity from the TOF measurement, beta = L / (t - t0) / c."""
        tof_time = track.tof_signal - self.tof_start_time(track.p)
        if tof_time <= 0.0:
            return 0.0
        return track.integrated_length / tof_time / C_CM_PS


class RecordedResponse(DetectorResponse):
    """
    Detector response replaying n-sigma values stored on the tracks, e.g. read from a tuple.

    Parameters
    ----------
    start_time: float
        Constant event start time [ps]
    """

    def __init__(self, start_time: float = 0.0):
        self.start_time = start_time

    def nsigma(self, detector: Detector, track: Track, species: Species) -> float:
        try:
            return track.nsigmas[(detector, species)]
        except KeyError:
            raise KeyError(
                f"No {detector.name} n-sigma recorded for {species.label} hypothesis"
            ) from None

    def has_nsigma(self, detector: Detector, track: Track, species: Species) -> bool:
        return (detector, species) in track.nsigmas

    def tof_start_time(self, p: float) -> float:
        return self.start_time
