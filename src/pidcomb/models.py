"""Core data models used by the PID and candidate-building tasks.

This module defines:
- immutable per-event inputs (`Track`, `V0Leg`, `V0Candidate`, `Collision`)
- the event container (`EventInput`)
- kinematic helpers (`LorentzVector`)
- identification outputs (`IdentificationRecord`)
- configurable selection controls (`PhotonCuts`, `LambdaCuts`, `Sigma0Cuts`,
  `MLThresholds`, `PairSelectionConfig`)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

from .species import Species


@dataclass(frozen=True)
class Track:
    """Single reconstructed charged track with its TPC measurement.

    `tpc_inner_param` is the momentum at the TPC inner wall, the quantity the
    energy-loss response is evaluated at. Identification mappings are empty
    until filled upstream or by `PidEvaluator.attach`.
    """

    track_id: str
    collision_id: str
    p: float
    pt: float
    eta: float
    phi: float = 0.0
    charge: int = 0
    tpc_signal: float = 0.0
    tpc_inner_param: float | None = None
    tpc_nsigma: Mapping[Species, float] = field(default_factory=dict)
    tof_nsigma: Mapping[Species, float] = field(default_factory=dict)

    @property
    def inner_param(self) -> float:
        """Momentum used for the expected-signal evaluation."""
        return self.p if self.tpc_inner_param is None else self.tpc_inner_param

    @property
    def px(self) -> float:
        return self.pt * math.cos(self.phi)

    @property
    def py(self) -> float:
        return self.pt * math.sin(self.phi)

    @property
    def pz(self) -> float:
        return self.pt * math.sinh(self.eta)


@dataclass(frozen=True)
class V0Leg:
    """One daughter track of a V0 with the quantities copied into output tables."""

    px: float
    py: float
    pz: float
    eta: float
    tpc_nsigma_el: float = 0.0
    tpc_nsigma_pi: float = 0.0
    tpc_nsigma_pr: float = 0.0
    tpc_crossed_rows: int = 0
    its_ncls: int = 0
    its_cluster_sizes: int = 0

    @property
    def pt(self) -> float:
        return (self.px * self.px + self.py * self.py) ** 0.5


@dataclass(frozen=True)
class V0Candidate:
    """Two-prong decay-vertex candidate used as sub-candidate for Sigma0 building.

    The same V0 row carries photon, Lambda and anti-Lambda mass hypotheses;
    the role it plays in a pair is decided by the cut chain, not by the row.
    """

    v0_id: str
    collision_id: str
    v0_type: int
    px: float
    py: float
    pz: float
    m_gamma: float
    m_lambda: float
    m_antilambda: float
    v0_radius: float
    dca_v0_daughters: float
    dca_pos_to_pv: float
    dca_neg_to_pv: float
    positive: V0Leg
    negative: V0Leg
    qt_arm: float = 0.0
    alpha: float = 0.0
    v0_cos_pa: float = 1.0
    z: float = 0.0
    psi_pair: float = 0.0
    gamma_bdt_score: float | None = None
    lambda_bdt_score: float | None = None
    antilambda_bdt_score: float | None = None
    pdg_code: int | None = None
    pdg_code_mother: int | None = None
    mother_mc_part_id: int | None = None
    px_mc: float | None = None
    py_mc: float | None = None

    @property
    def pt(self) -> float:
        return (self.px * self.px + self.py * self.py) ** 0.5

    @property
    def eta(self) -> float:
        p = (self.px * self.px + self.py * self.py + self.pz * self.pz) ** 0.5
        if p == abs(self.pz):
            return 1e9 if self.pz >= 0 else -1e9
        return 0.5 * math.log((p + self.pz) / (p - self.pz))

    @property
    def has_mc(self) -> bool:
        return self.pdg_code is not None


@dataclass(frozen=True)
class Collision:
    """Collision-level record, written once per processed event."""

    collision_id: str
    pos_x: float = 0.0
    pos_y: float = 0.0
    pos_z: float = 0.0
    cent_ft0m: float = 0.0
    cent_ft0a: float = 0.0
    cent_ft0c: float = 0.0
    cent_fv0a: float = 0.0
    mult_ntr: int = 0


@dataclass(frozen=True)
class EventInput:
    """One event payload: the collision and the rows sliced to it."""

    collision: Collision
    tracks: tuple[Track, ...] = ()
    v0s: tuple[V0Candidate, ...] = ()

    @property
    def event_id(self) -> str:
        return self.collision.collision_id


@dataclass(frozen=True)
class LorentzVector:
    """Simple 4-vector with convenience properties and addition."""

    px: float
    py: float
    pz: float
    e: float

    def __add__(self, other: "LorentzVector") -> "LorentzVector":
        """Component-wise 4-vector addition."""
        return LorentzVector(
            self.px + other.px,
            self.py + other.py,
            self.pz + other.pz,
            self.e + other.e,
        )

    @property
    def p2(self) -> float:
        """Squared 3-momentum magnitude."""
        return self.px * self.px + self.py * self.py + self.pz * self.pz

    @property
    def pt(self) -> float:
        return (self.px * self.px + self.py * self.py) ** 0.5

    @property
    def mass2(self) -> float:
        """Invariant mass squared."""
        return self.e * self.e - self.p2

    @property
    def mass(self) -> float:
        """Invariant mass with signed handling for small negative mass2 values."""
        m2 = self.mass2
        return m2**0.5 if m2 >= 0.0 else -((-m2) ** 0.5)


@dataclass(frozen=True)
class IdentificationRecord:
    """PID output of one track under one species hypothesis."""

    expected_signal_diff: float
    separation: float


class SelectionMode(Enum):
    """Sub-candidate selection flavour, fixed for a whole task instance."""

    STANDARD = "standard"
    ML = "ml"


@dataclass(frozen=True)
class PhotonCuts:
    """Photon-role selection applied to V0s in standard mode."""

    max_dau_pseudorap: float = 1.0
    min_dca_to_pv: float = 0.001
    max_dca_v0_dau: float = 3.0
    min_radius: float = 0.5
    max_radius: float = 250.0
    max_mass: float = 0.3


@dataclass(frozen=True)
class LambdaCuts:
    """Lambda-role selection applied to V0s in standard mode."""

    dau_pseudorap: float = 1.0
    min_dca_neg_to_pv: float = 0.01
    min_dca_pos_to_pv: float = 0.01
    max_dca_v0_dau: float = 3.5
    min_v0_radius: float = 0.1
    max_v0_radius: float = 200.0
    window: float = 0.01


@dataclass(frozen=True)
class Sigma0Cuts:
    """Composite-level cuts on the photon + Lambda system."""

    window: float = 0.05
    max_rapidity: float = 0.5


@dataclass(frozen=True)
class MLThresholds:
    """Decision thresholds on upstream BDT scores (ML mode)."""

    gamma: float = 0.1
    lambda_: float = 0.1
    antilambda: float = 0.1


@dataclass(frozen=True)
class PairSelectionConfig:
    """Track selection and pair options for same-event pair building."""

    pdg_code_one: int = 211
    pdg_code_two: int = 211
    charge_one: int = 1
    charge_two: int = -1
    pt_low_one: float = 0.14
    pt_high_one: float = 1.5
    pt_low_two: float = 0.14
    pt_high_two: float = 1.5
    eta_max: float = 0.8
    nsigma_tpc: float = 3.0
    nsigma_combined: float = 3.0
    tof_pt_min: float = 0.5
    process_pm: bool = False
    process_pp: bool = True
    process_mm: bool = True
