"""
Quality-assurance statistics of the PID cut: cut statistics, cut correlations and
before/after n-sigma and signal distributions versus momentum.
"""

import pickle
from enum import IntEnum
from pathlib import Path
from typing import Dict, Union

import hist
import numpy as np
from loguru import logger

from pidcuts.evaluator import EvaluationResult
from pidcuts.species import CUT_NAMES, Detector, Species
from pidcuts.track import DetectorResponse, Track

# momentum binning, log-spaced
_n_p_bins = 150
_min_p = 0.05
_max_p = 20.0

# sample indices
BEFORE = "B"
AFTER = "A"


class QALevel(IntEnum):
    NONE = 0
    LIGHT = 1
    HEAVY = 2


def momentum_edges() -> np.ndarray:
    """Log-spaced momentum bin edges [GeV/c]."""
    return np.geomspace(_min_p, _max_p, _n_p_bins + 1)


def _p_axis() -> hist.axis.Variable:
    return hist.axis.Variable(momentum_edges(), name="p", label=r"$p$ [GeV$/c$]")


def _nsigma_axis(name: str = "nsigma", label: str = r"$n\sigma$") -> hist.axis.Regular:
    return hist.axis.Regular(400, -10.0, 10.0, name=name, label=label)


class PIDCutsQA:
    """
    Histogram recorder for the PID cut, booked per run period.

    Parameters
    ----------
    name: str
        Histogram list name, usually `{cuts name}_{target}{cut number}_{cuts string}`
    level: QALevel
        LIGHT books the statistics and the after-cut samples, HEAVY adds the cut
        correlations and the before-cut samples
    fill_before: str
        "heavy" fills the before-cut samples only at HEAVY level, "always" at any level
    """

    statistics_labels = ["n tracks", "n cut tracks"] + [
        CUT_NAMES[d] for d in Detector
    ]

    def __init__(
        self,
        name: str,
        level: QALevel = QALevel.LIGHT,
        period: Union[str, None] = None,
        fill_before: str = "heavy",
    ) -> None:
        if fill_before not in ("heavy", "always"):
            raise ValueError(f"Invalid before-cut fill policy: {fill_before}")
        self.name = name
        self.level = QALevel(level)
        self.period = period
        self.fill_before = fill_before
        self.histograms: Dict[str, hist.Hist] = {}
        self.book()

    def book(self) -> None:
        """(Re)allocate the histograms."""
        self.histograms = {}
        if self.level == QALevel.NONE:
            return

        self.histograms["CutsStatistics"] = hist.Hist(
            hist.axis.StrCategory(self.statistics_labels, name="cut", label=f"{self.name} tracks cuts statistics"),
            storage=hist.storage.Double(),
        )

        if self.level == QALevel.HEAVY:
            cut_names = [CUT_NAMES[d] for d in Detector]
            self.histograms["CutCorrelation"] = hist.Hist(
                hist.axis.StrCategory(cut_names, name="cut_x", label="Cuts correlation"),
                hist.axis.StrCategory(cut_names, name="cut_y", label="Cuts correlation"),
                storage=hist.storage.Double(),
            )

        for sample in (BEFORE, AFTER):
            self.histograms[f"ITSdEdxSigma{sample}"] = hist.Hist(_p_axis(), _nsigma_axis())
            self.histograms[f"ITSdEdxSignal{sample}"] = hist.Hist(
                _p_axis(),
                hist.axis.Regular(800, 0.0, 200.0, name="signal", label=r"$dE/dx$ (au)"),
            )
            self.histograms[f"TPCdEdxSigma{sample}"] = hist.Hist(_p_axis(), _nsigma_axis())
            self.histograms[f"TPCdEdxSignal{sample}"] = hist.Hist(
                _p_axis(),
                hist.axis.Regular(800, 0.0, 200.0, name="signal", label=r"$dE/dx$ (au)"),
            )
            self.histograms[f"TOFSigma{sample}"] = hist.Hist(_p_axis(), _nsigma_axis())
            self.histograms[f"TOFSignal{sample}"] = hist.Hist(
                _p_axis(),
                hist.axis.Regular(400, 0.0, 1.1, name="signal", label=r"$\beta$"),
            )
            self.histograms[f"TPCTOFSigma{sample}"] = hist.Hist(
                _nsigma_axis("tpc", r"TPC $n\sigma$"),
                _nsigma_axis("tof", r"TOF $n\sigma$"),
            )

        logger.info(
            f"Booked {len(self.histograms)} QA histograms for {self.name} (period {self.period})"
        )

    def __getitem__(self, key: str) -> hist.Hist:
        return self.histograms[key]

    def _fill_before(self) -> bool:
        return self.fill_before == "always" or self.level > QALevel.LIGHT

    def record(
        self,
        track: Track,
        result: EvaluationResult,
        response: DetectorResponse,
        target: Species,
    ) -> None:
        """Record the outcome of the PID cut on one track."""
        if self.level == QALevel.NONE:
            return

        statistics = self.histograms["CutsStatistics"]
        statistics.fill(cut=["n tracks"])
        if not result.accepted:
            statistics.fill(cut=["n cut tracks"])

        activated = result.activated.detectors()
        for detector in activated:
            statistics.fill(cut=[CUT_NAMES[detector]])

        if self.level > QALevel.LIGHT:
            correlation = self.histograms["CutCorrelation"]
            for i, di in enumerate(activated):
                for dj in activated[i:]:
                    correlation.fill(cut_x=[CUT_NAMES[di]], cut_y=[CUT_NAMES[dj]])

        samples = []
        if self._fill_before():
            samples.append(BEFORE)
        if result.accepted:
            samples.append(AFTER)

        for sample in samples:
            self._fill_sample(sample, track, response, target)

    def _fill_sample(
        self, sample: str, track: Track, response: DetectorResponse, target: Species
    ) -> None:
        p = track.p
        nsigmas = {}
        for detector in (Detector.ITS, Detector.TPC, Detector.TOF):
            if detector == Detector.TOF and not track.has_tof:
                continue
            if response.has_nsigma(detector, track, target):
                nsigmas[detector] = response.nsigma(detector, track, target)

        for detector, prefix in (
            (Detector.ITS, "ITSdEdx"),
            (Detector.TPC, "TPCdEdx"),
            (Detector.TOF, "TOF"),
        ):
            if detector == Detector.TOF and not track.has_tof:
                continue
            if detector in nsigmas:
                self.histograms[f"{prefix}Sigma{sample}"].fill(p=p, nsigma=nsigmas[detector])
            self.histograms[f"{prefix}Signal{sample}"].fill(
                p=p, signal=response.raw_signal(detector, track)
            )
        if Detector.TPC in nsigmas and Detector.TOF in nsigmas:
            self.histograms[f"TPCTOFSigma{sample}"].fill(
                tpc=nsigmas[Detector.TPC], tof=nsigmas[Detector.TOF]
            )

    def save(self, path: Union[str, Path]) -> Path:
        """Pickle the histogram collection."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f_out:
            pickle.dump({"name": self.name, "period": self.period, "histograms": self.histograms}, f_out)
        logger.info(f"QA histograms written to {path}")
        return path


def load_qa(f: Union[str, Path]) -> dict:
    """Load a pickled QA histogram collection."""
    with open(f, "rb") as f_in:
        return pickle.load(f_in)
