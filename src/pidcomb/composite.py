"""Flat output rows for accepted composite candidates.

Accepted Sigma0 candidates are written as three fixed-schema rows (core
kinematics, photon-leg extras, Lambda-leg extras). Constituent attributes are
copied by value so the rows remain valid after the event inputs are dropped.
"""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"

from dataclasses import dataclass, field

from .models import Collision, V0Candidate
from .physics import rapidity
from .species import MASS_LAMBDA, MASS_PHOTON, Species

NO_SCORE = -1.0


@dataclass(frozen=True)
class Sigma0Kinematics:
    """Composite kinematics of one photon + Lambda pair."""

    mass: float
    pt: float
    rapidity: float


@dataclass(frozen=True)
class Sigma0Candidate:
    """Accepted candidate with provenance to its two constituent V0 rows."""

    collision_id: str
    photon_id: str
    lambda_id: str
    mass: float
    pt: float
    rapidity: float


@dataclass(frozen=True)
class SigmaCore:
    collision_id: str
    pt: float
    mass: float
    rapidity: float


@dataclass(frozen=True)
class PhotonExtra:
    pt: float
    mass: float
    qt: float
    alpha: float
    radius: float
    cos_pa: float
    dca_dau: float
    dca_neg_pv: float
    dca_pos_pv: float
    z_conv: float
    eta: float
    y: float
    pos_tpc_nsigma: float
    neg_tpc_nsigma: float
    pos_tpc_crossed_rows: int
    neg_tpc_crossed_rows: int
    pos_pt: float
    neg_pt: float
    pos_eta: float
    neg_eta: float
    pos_y: float
    neg_y: float
    psi_pair: float
    pos_its_cls: int
    neg_its_cls: int
    pos_its_cl_size: int
    neg_its_cl_size: int
    v0_type: int
    bdt_score: float


@dataclass(frozen=True)
class LambdaExtra:
    pt: float
    mass: float
    antilambda_mass: float
    qt: float
    alpha: float
    radius: float
    cos_pa: float
    dca_dau: float
    dca_neg_pv: float
    dca_pos_pv: float
    eta: float
    y: float
    pos_pr_tpc_nsigma: float
    pos_pi_tpc_nsigma: float
    neg_pr_tpc_nsigma: float
    neg_pi_tpc_nsigma: float
    pos_tpc_crossed_rows: int
    neg_tpc_crossed_rows: int
    pos_pt: float
    neg_pt: float
    pos_eta: float
    neg_eta: float
    pos_pr_y: float
    pos_pi_y: float
    neg_pr_y: float
    neg_pi_y: float
    pos_its_cls: int
    neg_its_cls: int
    pos_its_cl_size: int
    neg_its_cl_size: int
    v0_type: int
    lambda_bdt_score: float
    antilambda_bdt_score: float


@dataclass(frozen=True)
class Sigma0McCore:
    is_sigma: bool
    is_antisigma: bool


@dataclass
class Sigma0Tables:
    """Append-only output of one Sigma0 builder instance.

    `cores`, `photon_extras` and `lambda_extras` are row-aligned: index i of
    each belongs to the same accepted candidate.
    """

    collisions: list[Collision] = field(default_factory=list)
    cores: list[SigmaCore] = field(default_factory=list)
    photon_extras: list[PhotonExtra] = field(default_factory=list)
    lambda_extras: list[LambdaExtra] = field(default_factory=list)
    mc_cores: list[Sigma0McCore] = field(default_factory=list)


def _score(value: float | None) -> float:
    return NO_SCORE if value is None else value


def photon_extra_row(gamma: V0Candidate) -> PhotonExtra:
    """Copy photon-role attributes of a V0 into a flat row."""
    pos, neg = gamma.positive, gamma.negative
    m_el = Species.ELECTRON.mass
    return PhotonExtra(
        pt=gamma.pt,
        mass=gamma.m_gamma,
        qt=gamma.qt_arm,
        alpha=gamma.alpha,
        radius=gamma.v0_radius,
        cos_pa=gamma.v0_cos_pa,
        dca_dau=gamma.dca_v0_daughters,
        dca_neg_pv=gamma.dca_neg_to_pv,
        dca_pos_pv=gamma.dca_pos_to_pv,
        z_conv=gamma.z,
        eta=gamma.eta,
        y=rapidity((gamma.px, gamma.py, gamma.pz), MASS_PHOTON),
        pos_tpc_nsigma=pos.tpc_nsigma_el,
        neg_tpc_nsigma=neg.tpc_nsigma_el,
        pos_tpc_crossed_rows=pos.tpc_crossed_rows,
        neg_tpc_crossed_rows=neg.tpc_crossed_rows,
        pos_pt=pos.pt,
        neg_pt=neg.pt,
        pos_eta=pos.eta,
        neg_eta=neg.eta,
        pos_y=rapidity((pos.px, pos.py, pos.pz), m_el),
        neg_y=rapidity((neg.px, neg.py, neg.pz), m_el),
        psi_pair=gamma.psi_pair,
        pos_its_cls=pos.its_ncls,
        neg_its_cls=neg.its_ncls,
        pos_its_cl_size=pos.its_cluster_sizes,
        neg_its_cl_size=neg.its_cluster_sizes,
        v0_type=gamma.v0_type,
        bdt_score=_score(gamma.gamma_bdt_score),
    )


def lambda_extra_row(lam: V0Candidate) -> LambdaExtra:
    """Copy Lambda-role attributes of a V0 into a flat row."""
    pos, neg = lam.positive, lam.negative
    m_pr = Species.PROTON.mass
    m_pi = Species.PION.mass
    pos_p = (pos.px, pos.py, pos.pz)
    neg_p = (neg.px, neg.py, neg.pz)
    return LambdaExtra(
        pt=lam.pt,
        mass=lam.m_lambda,
        antilambda_mass=lam.m_antilambda,
        qt=lam.qt_arm,
        alpha=lam.alpha,
        radius=lam.v0_radius,
        cos_pa=lam.v0_cos_pa,
        dca_dau=lam.dca_v0_daughters,
        dca_neg_pv=lam.dca_neg_to_pv,
        dca_pos_pv=lam.dca_pos_to_pv,
        eta=lam.eta,
        y=rapidity((lam.px, lam.py, lam.pz), MASS_LAMBDA),
        pos_pr_tpc_nsigma=pos.tpc_nsigma_pr,
        pos_pi_tpc_nsigma=pos.tpc_nsigma_pi,
        neg_pr_tpc_nsigma=neg.tpc_nsigma_pr,
        neg_pi_tpc_nsigma=neg.tpc_nsigma_pi,
        pos_tpc_crossed_rows=pos.tpc_crossed_rows,
        neg_tpc_crossed_rows=neg.tpc_crossed_rows,
        pos_pt=pos.pt,
        neg_pt=neg.pt,
        pos_eta=pos.eta,
        neg_eta=neg.eta,
        pos_pr_y=rapidity(pos_p, m_pr),
        pos_pi_y=rapidity(pos_p, m_pi),
        neg_pr_y=rapidity(neg_p, m_pr),
        neg_pi_y=rapidity(neg_p, m_pi),
        pos_its_cls=pos.its_ncls,
        neg_its_cls=neg.its_ncls,
        pos_its_cl_size=pos.its_cluster_sizes,
        neg_its_cl_size=neg.its_cluster_sizes,
        v0_type=lam.v0_type,
        lambda_bdt_score=_score(lam.lambda_bdt_score),
        antilambda_bdt_score=_score(lam.antilambda_bdt_score),
    )
