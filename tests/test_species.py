import pytest
from pidcuts.species import Species, Detector, classify, CUT_NAMES


@pytest.mark.parametrize(
    "pdg, species",
    [
        (11, Species.ELECTRON),
        (-11, Species.ELECTRON),
        (13, Species.MUON),
        (-13, Species.MUON),
        (211, Species.PION),
        (-211, Species.PION),
        (321, Species.KAON),
        (-321, Species.KAON),
        (2212, Species.PROTON),
        (-2212, Species.PROTON),
    ],
)
def test_classify_pid_species(pdg, species):
    assert classify(pdg) == species


@pytest.mark.parametrize("pdg", [0, 22, 111, 130, 310, 2112, 3122, 1000010020, -15])
def test_classify_unknown(pdg):
    """Anything outside the five charged species is unknown."""
    assert classify(pdg) == Species.UNKNOWN


def test_classify_is_pure():
    assert [classify(321) for _ in range(3)] == [Species.KAON] * 3


def test_species_from_name():
    assert Species.from_name("kaon") == Species.KAON
    assert Species.from_name("Proton") == Species.PROTON
    with pytest.raises(ValueError):
        Species.from_name("deuteron")


def test_cut_names():
    assert [CUT_NAMES[d] for d in Detector] == [
        "ITS dE/dx n#sigma",
        "TPC dE/dx n#sigma",
        "TOF n#sigma",
        "TPC+TOF 2D",
    ]
    assert Species.KAON.short_label == "K"
