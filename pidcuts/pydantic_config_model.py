"""Config model validation of the user-defined PID cuts configuration."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from pidcuts.cuts import BAND_PARAMETERS, CutParameter
from pidcuts.presets import BAND_PRESETS, COMBINED_MODES, MOMENTUM_MAX, MOMENTUM_MIN
from pidcuts.qa import QALevel
from pidcuts.species import PID_SPECIES, Species


def _preset_table(param: CutParameter):
    match param:
        case CutParameter.PMIN:
            return MOMENTUM_MIN
        case CutParameter.PMAX:
            return MOMENTUM_MAX
        case CutParameter.TPCTOF:
            return COMBINED_MODES
        case _:
            detector, _ = BAND_PARAMETERS[param]
            return BAND_PRESETS[detector]


class QAConfig(BaseModel):
    """QA histogramming configuration."""

    level: str = Field("none", description="QA level: none, light or heavy")
    fill_before: str = Field(
        "heavy",
        description="Fill the before-cut samples only at heavy QA level ('heavy') or at any level ('always')",
    )
    output_path: Optional[str] = Field(
        None, description="Path to the pickled QA histograms"
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, value):
        allowed_levels = {level.name.lower() for level in QALevel}
        if value.lower() not in allowed_levels:
            raise ValueError(
                f"Invalid QA level: {value}. Allowed values are {sorted(allowed_levels)}."
            )
        return value.lower()

    @field_validator("fill_before")
    @classmethod
    def validate_fill_before(cls, value):
        if value not in {"heavy", "always"}:
            raise ValueError(
                f"Invalid before-cut fill policy: {value}. Allowed values are 'heavy' or 'always'."
            )
        return value

    @property
    def qa_level(self) -> QALevel:
        return QALevel[self.level.upper()]


class PIDCutsConfig(BaseModel):
    """Main configuration model for a PID cut instance."""

    name: str = Field(..., description="Name of the PID cut")
    target: str = Field(..., description="Target species (electron, muon, pion, kaon, proton)")
    cut_number: int = Field(0, ge=0, description="Cut instance number")
    parameters: Dict[str, int] = Field(
        default_factory=dict,
        description="Cut parameter name (e.g., pmin, tpc_k, tpctof) : preset code",
    )
    periods: List[str] = Field(
        default_factory=list, description="Analysis periods the cut is run over"
    )
    qa: QAConfig = Field(default_factory=QAConfig, description="QA configuration")

    # name cannot be empty - it names the QA histograms
    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @field_validator("target")
    @classmethod
    def validate_target(cls, value):
        allowed_species = {s.label for s in PID_SPECIES}
        if value.lower() not in allowed_species:
            raise ValueError(
                f"Invalid target species: {value}. Must be one of {sorted(allowed_species)}."
            )
        return value.lower()

    # parameter names and codes must be supported by the preset tables
    @field_validator("parameters")
    @classmethod
    def validate_parameters(cls, value):
        allowed_names = {p.name.lower() for p in CutParameter}
        for name, code in value.items():
            if name.lower() not in allowed_names:
                raise ValueError(
                    f"Invalid cut parameter: {name}. Allowed values: {sorted(allowed_names)}."
                )
            table = _preset_table(CutParameter[name.upper()])
            if code not in table.codes:
                raise ValueError(
                    f"Code {code} for parameter {name} not supported by the {table.table_name} table."
                )
        return {name.lower(): code for name, code in value.items()}

    @model_validator(mode="after")
    def validate_periods(self):
        if len(set(self.periods)) != len(self.periods):
            raise ValueError(f"Duplicated analysis periods: {self.periods}")
        return self

    @property
    def target_species(self) -> Species:
        return Species.from_name(self.target)
