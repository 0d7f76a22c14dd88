import pytest
from pydantic import ValidationError
from pidcuts.pydantic_config_model import PIDCutsConfig, QAConfig
from pidcuts.qa import QALevel
from pidcuts.species import Species


@pytest.fixture
def config_data():
    return {
        "name": "PIDCuts",
        "target": "Kaon",
        "cut_number": 1,
        "parameters": {"pmin": 1, "TPC_K": 7, "tof_k": 5, "tpctof": 3},
        "periods": ["LHC18q", "LHC18r"],
        "qa": {"level": "Heavy"},
    }


def test_valid_config(config_data):
    config = PIDCutsConfig(**config_data)
    assert config.target_species == Species.KAON
    assert config.parameters == {"pmin": 1, "tpc_k": 7, "tof_k": 5, "tpctof": 3}
    assert config.qa.qa_level == QALevel.HEAVY
    assert config.qa.fill_before == "heavy"


def test_defaults():
    config = PIDCutsConfig(name="PIDCuts", target="pion")
    assert config.parameters == {}
    assert config.qa.qa_level == QALevel.NONE


@pytest.mark.parametrize(
    "key, value",
    [
        ("target", "deuteron"),
        ("target", "unknown"),
        ("name", ""),
        ("cut_number", -1),
        ("parameters", {"its_x": 1}),
        ("parameters", {"tof_k": 6}),
        ("parameters", {"pmax": 9}),
        ("periods", ["LHC18q", "LHC18q"]),
    ],
)
def test_invalid_config(config_data, key, value):
    config_data[key] = value
    with pytest.raises(ValidationError):
        PIDCutsConfig(**config_data)


def test_invalid_qa():
    with pytest.raises(ValidationError):
        QAConfig(level="verbose")
    with pytest.raises(ValidationError):
        QAConfig(fill_before="sometimes")
