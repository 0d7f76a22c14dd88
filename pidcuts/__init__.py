__version__ = "0.1.0"

from .species import Species, Detector, classify
from .presets import SigmaBand
from .bands import SigmaBandTable, SpeciesEnableMask, MomentumGate
from .track import Track, TruthParticle, DetectorResponse, RecordedResponse
from .evaluator import CutsMask, DetectorCutEvaluator, EvaluationResult
from .cuts import CutParameter, PIDCuts
from .qa import PIDCutsQA, QALevel
from .exceptions import (
    PIDCutsError,
    ConfigurationError,
    InvalidPresetError,
    InvalidParameterError,
    FatalSetupError,
)
