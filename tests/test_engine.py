import pandas as pd
import pytest
import yaml
from pidcuts import engine
from pidcuts.engine import (
    build_cuts,
    apply_cuts,
    check_period,
    tracks_from_frame,
    nsigma_column,
    required_nsigma_columns,
)
from pidcuts.exceptions import ConfigurationError, FatalSetupError
from pidcuts.pydantic_config_model import PIDCutsConfig
from pidcuts.species import Species, Detector


@pytest.fixture
def config():
    return PIDCutsConfig(
        name="PIDCuts",
        target="kaon",
        cut_number=1,
        parameters={"tpc_k": 7, "tof_k": 5, "pmin": 1},
        qa={"level": "light"},
    )


@pytest.fixture
def tracks():
    return pd.DataFrame(
        {
            "p": [1.0, 1.0, 0.1, 1.0],
            "tof_in": [1, 1, 1, 0],
            "tof_mismatch": [0, 0, 0, 0],
            "label": [3, -4, 5, 6],
            nsigma_column(Detector.ITS, Species.KAON): [0.0, 0.0, 0.0, 0.0],
            nsigma_column(Detector.TPC, Species.KAON): [0.5, 3.5, 0.5, 0.5],
            nsigma_column(Detector.TOF, Species.KAON): [0.5, 0.5, 0.5, -999.0],
        }
    )


def test_nsigma_column():
    assert nsigma_column(Detector.TPC, Species.KAON) == "nsigma_tpc_kaon"


def test_build_cuts(config):
    cuts = build_cuts(config)
    assert cuts.target == Species.KAON
    assert cuts.cuts_string == "100000000070000500"
    assert cuts.cut_number == 1


def test_tracks_from_frame(tracks):
    track = next(tracks_from_frame(tracks))
    assert track.p == 1.0
    assert track.has_tof
    assert track.label == 3
    assert track.nsigmas[(Detector.TPC, Species.KAON)] == 0.5

    with pytest.raises(KeyError):
        next(tracks_from_frame(tracks.drop(columns="p")))


def test_apply_cuts(config, tracks):
    cuts = build_cuts(config)
    out = apply_cuts(cuts, tracks, period="LHC18q")

    assert out["accepted"].tolist() == [True, False, False, True]
    assert "accepted" not in tracks.columns
    assert cuts.qa.period == "LHC18q"
    assert cuts.qa["CutsStatistics"]["n tracks"] == 4


def test_load_config(tmp_path, monkeypatch, config):
    monkeypatch.setattr(engine, "config_path_json", tmp_path / ".pidcuts" / "validated_config.json")
    config_path = tmp_path / "main.yml"
    with open(config_path, "w") as f:
        yaml.safe_dump(config.model_dump(), f)

    loaded = engine._load_config(config_path)
    assert loaded == config
    assert engine.get_config() == config
    assert engine._load_validated_config() == config


def test_missing_validated_config(tmp_path, monkeypatch):
    monkeypatch.setattr(engine, "config_path_json", tmp_path / "missing.json")
    with pytest.raises(FileNotFoundError):
        engine._load_validated_config()


def test_build_cuts_rejects_invalid_parameters(config):
    # bypass the model validation
    invalid = config.model_copy(update={"parameters": {"tof_k": 9}})
    with pytest.raises(ConfigurationError):
        build_cuts(invalid)


def test_apply_cuts_with_tpc_columns_only():
    cuts = build_cuts(
        PIDCutsConfig(name="PIDCuts", target="kaon", parameters={"tpc_k": 7}, qa={"level": "light"})
    )
    tracks = pd.DataFrame(
        {"p": [1.0, 1.0], nsigma_column(Detector.TPC, Species.KAON): [0.5, 4.0]}
    )
    out = apply_cuts(cuts, tracks)

    assert out["accepted"].tolist() == [True, False]
    # QA fills only the n-sigma values the table provides
    assert cuts.qa["TPCdEdxSigmaA"].sum(flow=True) == 1
    assert cuts.qa["ITSdEdxSigmaA"].sum(flow=True) == 0
    assert cuts.qa["ITSdEdxSignalA"].sum(flow=True) == 1


def test_required_nsigma_columns(config):
    cuts = build_cuts(config)
    assert required_nsigma_columns(cuts) == [
        nsigma_column(Detector.TPC, Species.KAON),
        nsigma_column(Detector.TOF, Species.KAON),
    ]


def test_apply_cuts_missing_nsigma_column(config, tracks):
    cuts = build_cuts(config)
    with pytest.raises(FatalSetupError):
        apply_cuts(cuts, tracks.drop(columns=nsigma_column(Detector.TOF, Species.KAON)))


def test_check_period(config):
    # no configured periods, any period runs
    check_period(config, "LHC18q")

    restricted = config.model_copy(update={"periods": ["LHC18q", "LHC18r"]})
    check_period(restricted, "LHC18r")
    check_period(restricted, None)
    with pytest.raises(ConfigurationError):
        check_period(restricted, "LHC17p")
