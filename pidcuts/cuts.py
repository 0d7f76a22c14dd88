"""
PID track cut: parameter-code configuration, cut string, per-track acceptance and truth-level acceptance.

The cut is configured once, before any track is analysed, through `set_cut_and_params`
with a parameter ID and a preset code. The concatenated codes form the cut string
identifying the configuration.
"""

from enum import IntEnum
from typing import Dict, List, Mapping, Optional, Sequence, Union

from loguru import logger

from pidcuts.bands import MomentumGate, SigmaBandTable
from pidcuts.evaluator import CutsMask, DetectorCutEvaluator, EvaluationResult
from pidcuts.exceptions import (
    ConfigurationError,
    FatalSetupError,
    InvalidParameterError,
)
from pidcuts.presets import COMBINED_MODES
from pidcuts.qa import PIDCutsQA, QALevel
from pidcuts.species import PID_SPECIES, Detector, Species, classify
from pidcuts.track import DetectorResponse, Track, TruthParticle


class CutParameter(IntEnum):
    """Cut parameter IDs; the order fixes the position of each code in the cut string."""

    PMIN = 0
    PMAX = 1
    ITS_E = 2
    ITS_MU = 3
    ITS_PI = 4
    ITS_K = 5
    ITS_P = 6
    TPC_E = 7
    TPC_MU = 8
    TPC_PI = 9
    TPC_K = 10
    TPC_P = 11
    TOF_E = 12
    TOF_MU = 13
    TOF_PI = 14
    TOF_K = 15
    TOF_P = 16
    TPCTOF = 17

    @classmethod
    def from_name(cls, name: str) -> "CutParameter":
        try:
            return cls[name.upper()]
        except KeyError:
            raise InvalidParameterError(name) from None


# per-species band parameters: parameter -> (detector, species)
BAND_PARAMETERS = {
    CutParameter(CutParameter.ITS_E + i): (Detector.ITS, s) for i, s in enumerate(PID_SPECIES)
}
BAND_PARAMETERS.update(
    {CutParameter(CutParameter.TPC_E + i): (Detector.TPC, s) for i, s in enumerate(PID_SPECIES)}
)
BAND_PARAMETERS.update(
    {CutParameter(CutParameter.TOF_E + i): (Detector.TOF, s) for i, s in enumerate(PID_SPECIES)}
)


class PIDCuts:
    """
    PID cut accepting tracks identified as the target species.

    Parameters
    ----------
    name: str
        Name of the cut, used to name the QA histogram list
    target: Species
        The species to identify, fixed for the lifetime of the cut
    cut_number: int
        Cut instance number within the analysis
    qa_level: QALevel
        QA histogramming level
    """

    def __init__(
        self,
        name: str,
        target: Union[Species, str],
        cut_number: int = 0,
        title: str = "",
        qa_level: QALevel = QALevel.NONE,
        fill_before: str = "heavy",
    ) -> None:
        self.name = name
        self.title = title or name
        self._target = target if isinstance(target, Species) else Species.from_name(target)
        if self._target not in PID_SPECIES:
            raise ValueError(f"Target species must be one of {[s.label for s in PID_SPECIES]}")
        self.cut_number = cut_number
        self.qa_level = QALevel(qa_level)
        self.fill_before = fill_before

        self.gate = MomentumGate()
        self.tables: Dict[Detector, SigmaBandTable] = {
            d: SigmaBandTable(d) for d in (Detector.ITS, Detector.TPC, Detector.TOF)
        }
        self.combined = SigmaBandTable(Detector.TPCTOF)
        self.mode = COMBINED_MODES.fetch(0)

        self.parameters: List[int] = [0] * len(CutParameter)
        self.cuts_string = ""
        self.update_cuts_string()

        self.response: Optional[DetectorResponse] = None
        self.period = None
        self.qa: Optional[PIDCutsQA] = None
        self._qa_by_period: Dict[object, PIDCutsQA] = {}

    @property
    def target(self) -> Species:
        return self._target

    @property
    def tof_required(self) -> bool:
        return self.mode.tof_required

    @property
    def two_dee(self) -> bool:
        return self.mode.two_dee

    @property
    def evaluator(self) -> DetectorCutEvaluator:
        return DetectorCutEvaluator(
            target=self.target,
            gate=self.gate,
            tables=self.tables,
            combined=self.combined,
            mode=self.mode,
        )

    @property
    def enabled(self) -> CutsMask:
        return self.evaluator.enabled

    # ------------------------------------------------------------------
    # configuration
    # ------------------------------------------------------------------

    def update_cuts_string(self) -> str:
        self.cuts_string = "".join(str(value) for value in self.parameters)
        return self.cuts_string

    def set_cut_and_params(self, param_id: Union[int, CutParameter], value: int) -> bool:
        """
        Set the code of one cut parameter.

        Returns
        -------
        bool
            True if the value was accepted. Otherwise the configuration, the
            parameter store and the cut string are left as they were.
        """
        try:
            param = CutParameter(param_id)
        except ValueError:
            logger.error(str(InvalidParameterError(param_id)))
            return False

        try:
            self._apply(param, value)
        except ConfigurationError as e:
            logger.error(f"{param.name}: {e}")
            return False

        self.parameters[param] = value
        self.update_cuts_string()
        return True

    def _apply(self, param: CutParameter, value: int) -> None:
        match param:
            case CutParameter.PMIN:
                self.gate.set_min(value)
            case CutParameter.PMAX:
                self.gate.set_max(value)
            case CutParameter.TPCTOF:
                self.set_tpc_tof_cut(value)
            case _:
                detector, species = BAND_PARAMETERS[param]
                if detector == Detector.TPC:
                    logger.info(
                        f"Configuring TPC dEdx cut for {species.label}, with {value} code"
                    )
                self.tables[detector].set_band(species, value)
                if detector in (Detector.TPC, Detector.TOF):
                    self._update_combined()

    def set_tpc_tof_cut(self, code: int) -> None:
        """
        Configure the TOF presence requirement and the joint 2D TPC+TOF cut.

        The 2D cut covers the species with both a TPC and a TOF band; the TPC band
        upper bound sets the radius of its n-sigma circle when the cut is evaluated.
        """
        mode = COMBINED_MODES.fetch(code)
        self.mode = mode
        self._update_combined()

    def _update_combined(self) -> None:
        """Keep the 2D species in step with the TPC and TOF bands, whatever the parameter order."""
        self.combined.reset()
        if self.mode.two_dee:
            for species in self.tables[Detector.TPC].mask & self.tables[Detector.TOF].mask:
                self.combined.mask.set(species)

    def set_cuts(self, parameters: Mapping[Union[str, int, CutParameter], int]) -> bool:
        """Apply several parameters in parameter-ID order; True if all were accepted."""
        resolved = {}
        for key, value in parameters.items():
            param = CutParameter.from_name(key) if isinstance(key, str) else CutParameter(key)
            resolved[param] = value
        return all(
            [self.set_cut_and_params(param, resolved[param]) for param in sorted(resolved)]
        )

    # ------------------------------------------------------------------
    # printing
    # ------------------------------------------------------------------

    def _band_line(self, detector: Detector, species: Species) -> str:
        table = self.tables[detector]
        band = table.band(species)
        target = self.target.label

        match detector:
            case Detector.ITS:
                header = "ITS PID CUT"
                shown = table.active
                two_dee = False
            case Detector.TPC:
                header = f"TPC{' [2D] ' if self.two_dee else ' '}PID CUT"
                shown = table.active or self.combined.active
                two_dee = self.two_dee
            case _:
                required = "REQUIRED" if self.tof_required else "NOT required"
                header = f"TOF ({required}){' [2D] ' if self.two_dee else ' '}PID CUT"
                shown = table.active or self.combined.active
                two_dee = self.two_dee

        if not shown:
            return f"  {detector.name} PID CUT {target}: none"
        if species not in table.mask:
            return f"  {header} {target}: none to {species.label} line"
        if species != self.target:
            if two_dee:
                return f"  {header} {target}: {band.above:3.1f} < 2D nsigma {species.label}"
            return (
                f"  {header} {target}: nsigma {species.label} < {band.below:3.1f} "
                f"OR {band.above:3.1f} < nsigma {species.label}"
            )
        if two_dee:
            return f"  {header} {target}: 2D nsigma < {band.above:3.1f}"
        return f"  {header} {target}: {band.below:3.1f} < nsigma < {band.above:3.1f}"

    def describe_parameter(self, param_id: Union[int, CutParameter]) -> str:
        """Human-readable line for one cut parameter."""
        param = CutParameter(param_id)
        match param:
            case CutParameter.PMIN:
                return f"  Cut applicable from P min: {self.gate.min_p:3.1f} GeV/c"
            case CutParameter.PMAX:
                max_p = f"{self.gate.max_p:3.1f} GeV/c" if self.gate.has_max else ""
                return f"  Cut applicable up to P max: {max_p}"
            case CutParameter.TPCTOF:
                required = "required" if self.tof_required else "not required"
                two_dee = "required" if self.two_dee else "not required"
                return f"  TOF presence {required}, 2D TPC+TOF nsigma cut {two_dee}"
            case _:
                return self._band_line(*BAND_PARAMETERS[param])

    def print_cut_with_params(self, param_id: Union[int, CutParameter]) -> None:
        try:
            print(self.describe_parameter(param_id))
        except ValueError:
            logger.error(str(InvalidParameterError(param_id)))

    def print_cuts(self) -> None:
        print(f"Cuts {self.name} ({self.target.label} #{self.cut_number}): {self.cuts_string}")
        for param in CutParameter:
            self.print_cut_with_params(param)

    # ------------------------------------------------------------------
    # run setup
    # ------------------------------------------------------------------

    def init_cuts(self, response: Optional[DetectorResponse]) -> None:
        """
        Attach the detector-response service.

        Raises
        ------
        FatalSetupError
            If no response service is available while detector cuts are enabled.
        """
        if response is None and self.enabled:
            raise FatalSetupError("No PID response instance. ABORTING!!!")
        self.response = response
        logger.info(f"PID cuts {self.name} initialised with cut string {self.cuts_string}")

    @property
    def histograms_name(self) -> str:
        return f"{self.name}_{self.target.short_label}{self.cut_number}_{self.cuts_string}"

    def notify_run(self, period) -> None:
        """Process a potential change of the analysis period, (re)booking the QA histograms."""
        if period == self.period and self.qa is not None:
            return
        self.period = period
        if self.qa_level == QALevel.NONE:
            return
        if period not in self._qa_by_period:
            self._qa_by_period[period] = PIDCutsQA(
                name=self.histograms_name,
                level=self.qa_level,
                period=period,
                fill_before=self.fill_before,
            )
        self.qa = self._qa_by_period[period]

    @property
    def qa_by_period(self) -> Dict[object, PIDCutsQA]:
        return dict(self._qa_by_period)

    # ------------------------------------------------------------------
    # acceptance
    # ------------------------------------------------------------------

    def evaluate(self, track: Track) -> EvaluationResult:
        if self.response is None and self.enabled:
            raise FatalSetupError(f"PID cuts {self.name} used before init_cuts")
        result = self.evaluator.evaluate(track, self.response)
        if self.qa is not None and self.response is not None:
            self.qa.record(track, result, self.response, self.target)
        return result

    def is_track_accepted(self, track: Track) -> bool:
        """Check whether the track is recognised as the target by the configured PID cuts."""
        return self.evaluate(track).accepted

    @staticmethod
    def true_species(particle: TruthParticle) -> Species:
        return classify(particle.pdg_code)

    @staticmethod
    def _lookup(label: int, mc_particles: Union[Mapping, Sequence]) -> Optional[TruthParticle]:
        try:
            return mc_particles[label]
        except (KeyError, IndexError):
            return None

    def true_species_of_track(
        self, label: int, mc_particles: Union[Mapping, Sequence]
    ) -> Species:
        """Species of the truth particle associated to a track label, ghosts included."""
        particle = self._lookup(abs(label), mc_particles)
        if particle is None:
            return Species.UNKNOWN
        return self.true_species(particle)

    def is_true_particle_accepted(self, particle: Optional[TruthParticle]) -> bool:
        """Check whether a truth particle is recognised by the PID cut."""
        if particle is None:
            return False
        if not self.gate.accepts(particle.p):
            return False
        if self.enabled and self.true_species(particle) != self.target:
            return False
        return True

    def is_true_track_accepted(
        self, label: int, mc_particles: Union[Mapping, Sequence]
    ) -> bool:
        """Check whether the truth particle associated to a track label is accepted; ghosts are rejected."""
        if label < 0:
            return False
        return self.is_true_particle_accepted(self._lookup(label, mc_particles))
