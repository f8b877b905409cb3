"""Particle-species hypotheses used for PID and mass assignment.

The species set is closed: every PID table, toggle and QA histogram is keyed
by one `Species` member, and the member order is the order in which tables
are produced.
"""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"

from dataclasses import dataclass
from enum import Enum

from .exceptions import InvalidConfiguration


@dataclass(frozen=True)
class SpeciesInfo:
    """Static properties of one mass hypothesis."""

    code: str
    mass: float
    charge: int
    pdg_id: int
    label: str


class Species(Enum):
    """Closed set of mass hypotheses, in table production order."""

    ELECTRON = SpeciesInfo("El", 0.000510998950, 1, 11, "e")
    MUON = SpeciesInfo("Mu", 0.1056583755, 1, 13, "#mu")
    PION = SpeciesInfo("Pi", 0.13957039, 1, 211, "#pi")
    KAON = SpeciesInfo("Ka", 0.493677, 1, 321, "K")
    PROTON = SpeciesInfo("Pr", 0.93827208816, 1, 2212, "p")
    DEUTERON = SpeciesInfo("De", 1.87561294257, 1, 1000010020, "d")
    TRITON = SpeciesInfo("Tr", 2.80892113298, 1, 1000010030, "t")
    HELIUM3 = SpeciesInfo("He", 2.80839160743, 2, 1000020030, "^{3}He")
    ALPHA = SpeciesInfo("Al", 3.7273794066, 2, 1000020040, "#alpha")

    @property
    def code(self) -> str:
        return self.value.code

    @property
    def mass(self) -> float:
        return self.value.mass

    @property
    def charge(self) -> int:
        return self.value.charge

    @property
    def pdg_id(self) -> int:
        return self.value.pdg_id

    @property
    def label(self) -> str:
        return self.value.label


MASS_PHOTON = 0.0
MASS_LAMBDA = 1.115683
MASS_SIGMA0 = 1.192642

_NAME_TO_SPECIES: dict[str, Species] = {}
for _sp in Species:
    _NAME_TO_SPECIES[_sp.name.lower()] = _sp
    _NAME_TO_SPECIES[_sp.code.lower()] = _sp
_NAME_TO_SPECIES.update(
    {
        "e": Species.ELECTRON,
        "mu": Species.MUON,
        "pi": Species.PION,
        "k": Species.KAON,
        "p": Species.PROTON,
        "d": Species.DEUTERON,
        "t": Species.TRITON,
        "he3": Species.HELIUM3,
    }
)


def species_from_name(name: str) -> Species:
    """Resolve a species name or short code (e.g. `pi`, `Ka`, `proton`)."""
    key = name.strip().lower()
    try:
        return _NAME_TO_SPECIES[key]
    except KeyError as exc:
        supported = ", ".join(sorted(_NAME_TO_SPECIES))
        raise InvalidConfiguration(
            f"Unknown species '{name}'. Supported names: {supported}"
        ) from exc


def species_from_pdg(pdg_code: int) -> Species:
    """Resolve a (signed) PDG code into a species; antiparticles map to the same species."""
    for sp in Species:
        if sp.pdg_id == abs(int(pdg_code)):
            return sp
    raise InvalidConfiguration(f"No species defined for PDG code {pdg_code}")
