"""Physics/math helpers for building and filtering particle combinations."""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"


import math
from typing import Iterable, Sequence

from .models import LorentzVector

Vector3 = tuple[float, float, float]


def momentum_to_lorentz(p3: Vector3, mass: float) -> LorentzVector:
    """Convert a 3-momentum plus mass hypothesis into a Lorentz 4-vector."""
    px, py, pz = p3
    energy = (px * px + py * py + pz * pz + mass * mass) ** 0.5
    return LorentzVector(px=px, py=py, pz=pz, e=energy)


def sum_lorentz(vectors: Iterable[LorentzVector]) -> LorentzVector:
    """Sum an iterable of Lorentz vectors."""
    total = LorentzVector(0.0, 0.0, 0.0, 0.0)
    for vec in vectors:
        total = total + vec
    return total


def sum_momenta(momenta: Iterable[Vector3]) -> Vector3:
    """Component-wise sum of 3-momenta."""
    px = py = pz = 0.0
    for p in momenta:
        px += p[0]
        py += p[1]
        pz += p[2]
    return px, py, pz


def invariant_mass(momenta: Sequence[Vector3], masses: Sequence[float]) -> float:
    """Invariant mass of a system of daughters with assigned rest masses."""
    if len(momenta) != len(masses):
        raise ValueError("Mass list length must match daughter multiplicity.")
    p4 = sum_lorentz(
        momentum_to_lorentz(p3, m) for p3, m in zip(momenta, masses, strict=True)
    )
    return p4.mass


def transverse_momentum(p3: Sequence[float]) -> float:
    """Transverse momentum from (px, py[, pz])."""
    return math.hypot(p3[0], p3[1])


def rapidity(p3: Vector3, mass: float) -> float:
    """Longitudinal rapidity of a momentum under a mass hypothesis."""
    px, py, pz = p3
    energy = math.sqrt(px * px + py * py + pz * pz + mass * mass)
    if energy <= abs(pz):
        return math.copysign(1e9, pz)
    return 0.5 * math.log((energy + pz) / (energy - pz))


def pair_kt(p1: Vector3, p2: Vector3) -> float:
    """Average pair transverse momentum `|pT1 + pT2| / 2`."""
    return 0.5 * math.hypot(p1[0] + p2[0], p1[1] + p2[1])


def pair_mt(kt: float, mass1: float, mass2: float) -> float:
    """Pair transverse mass from kT and the average daughter mass."""
    avg = 0.5 * (mass1 + mass2)
    return math.sqrt(kt * kt + avg * avg)


def pair_kstar(p1: Vector3, mass1: float, p2: Vector3, mass2: float) -> float:
    """Momentum of either particle in the pair rest frame.

    Uses `k* = sqrt((s - (m1+m2)^2)(s - (m1-m2)^2)) / (2 sqrt(s))`, which is
    symmetric under exchange of the two particles.
    """
    s = sum_lorentz((momentum_to_lorentz(p1, mass1), momentum_to_lorentz(p2, mass2))).mass2
    if s <= 0.0:
        return 0.0
    term = (s - (mass1 + mass2) ** 2) * (s - (mass1 - mass2) ** 2)
    return math.sqrt(max(term, 0.0)) / (2.0 * math.sqrt(s))
