"""
Closed particle-species and detector enumerations, and the truth-level species classification.
"""

from enum import IntEnum


class Species(IntEnum):
    """Particle species hypotheses, indexed as the detector-response service indexes them."""

    ELECTRON = 0
    MUON = 1
    PION = 2
    KAON = 3
    PROTON = 4
    UNKNOWN = 5

    @property
    def label(self) -> str:
        return _species_names[self]

    @property
    def short_label(self) -> str:
        return _species_short_names[self]

    @classmethod
    def from_name(cls, name: str) -> "Species":
        """Fetch the species from its (case-insensitive) name, e.g. `kaon`."""
        try:
            return cls[name.upper()]
        except KeyError:
            raise ValueError(
                f"Species '{name}' not recognised. Allowed values: {[s.label for s in cls]}"
            ) from None


# species carrying a sigma band, in band-table order
PID_SPECIES = (
    Species.ELECTRON,
    Species.MUON,
    Species.PION,
    Species.KAON,
    Species.PROTON,
)

_species_names = {
    Species.ELECTRON: "electron",
    Species.MUON: "muon",
    Species.PION: "pion",
    Species.KAON: "kaon",
    Species.PROTON: "proton",
    Species.UNKNOWN: "unknown",
}

_species_short_names = {
    Species.ELECTRON: "e",
    Species.MUON: "mu",
    Species.PION: "pi",
    Species.KAON: "K",
    Species.PROTON: "p",
    Species.UNKNOWN: "unknown",
}


class Detector(IntEnum):
    """PID detectors; also the order of the cut categories."""

    ITS = 0
    TPC = 1
    TOF = 2
    TPCTOF = 3

    @property
    def cut_name(self) -> str:
        return CUT_NAMES[self]


CUT_NAMES = {
    Detector.ITS: "ITS dE/dx n#sigma",
    Detector.TPC: "TPC dE/dx n#sigma",
    Detector.TOF: "TOF n#sigma",
    Detector.TPCTOF: "TPC+TOF 2D",
}


# PDG Monte Carlo numbering scheme, particle and antiparticle share the species
_pdg_species = {
    11: Species.ELECTRON,
    13: Species.MUON,
    211: Species.PION,
    321: Species.KAON,
    2212: Species.PROTON,
}


def classify(pdg_code: int) -> Species:
    """Map a truth-level PDG code onto the PID species; anything else is unknown."""
    return _pdg_species.get(abs(int(pdg_code)), Species.UNKNOWN)
