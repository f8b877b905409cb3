"""Sigma0 -> Lambda + gamma builder on per-collision V0 tables.

Every V0 of a collision is tried in both roles: the photon loop and the
Lambda loop run over the same sliced V0 table (cross pairing). Each pair goes
through a fixed, short-circuiting cut chain:

1. role validity (`v0_type != 0` for both V0s), not counted;
2. either the BDT-score cuts (ML mode) or the ten photon/Lambda cuts
   (standard mode, funnel stages 0-9), chosen once per builder instance;
3. composite mass window and rapidity, counted together as stage 10.

All pairs that pass are kept; disambiguation is left to the consumer.
"""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"

from dataclasses import dataclass
from typing import Iterable, Sequence

from .combiner import PairingPolicy, iter_pairs, resolve_selection_mode
from .composite import (
    Sigma0Candidate,
    Sigma0Kinematics,
    Sigma0McCore,
    Sigma0Tables,
    SigmaCore,
    lambda_extra_row,
    photon_extra_row,
)
from .exceptions import SchemaMismatch
from .histograms import Axis, CutFunnel, HistogramRegistry
from .logger import logger
from .models import (
    EventInput,
    LambdaCuts,
    MLThresholds,
    PhotonCuts,
    SelectionMode,
    Sigma0Cuts,
    V0Candidate,
)
from .physics import invariant_mass, rapidity, sum_momenta, transverse_momentum
from .species import MASS_LAMBDA, MASS_PHOTON, MASS_SIGMA0

STAGE_LABELS = (
    "Photon Mass Cut",
    "Photon DauEta Cut",
    "Photon DCAToPV Cut",
    "Photon DCADau Cut",
    "Photon Radius Cut",
    "Lambda Mass Cut",
    "Lambda DauEta Cut",
    "Lambda DCAToPV Cut",
    "Lambda Radius Cut",
    "Lambda DCADau Cut",
    "Sigma Window",
)
SIGMA_WINDOW_STAGE = 10
PROGRESS_EVERY = 5000

PDG_GAMMA = 22
PDG_LAMBDA = 3122
PDG_SIGMA0 = 3212
TRUTH_MAX_RAPIDITY = 0.5

PT_EDGES = (
    0.0, 0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0, 1.1, 1.2, 1.3, 1.4, 1.5, 1.6, 1.7, 1.8,
    1.9, 2.0, 2.2, 2.4, 2.6, 2.8, 3.0, 3.2, 3.4, 3.6, 3.8, 4.0, 4.4, 4.8, 5.2, 5.6, 6.0, 6.5, 7.0,
    7.5, 8.0, 9.0, 10.0, 11.0, 12.0, 13.0, 14.0, 15.0, 17.0, 19.0, 21.0, 23.0, 25.0, 30.0, 35.0,
    40.0, 50.0,
)
CENTRALITY_EDGES = (0.0, 5.0, 10.0, 20.0, 30.0, 40.0, 50.0, 60.0, 70.0, 80.0, 90.0, 100.0, 110.0)


@dataclass(frozen=True)
class Sigma0Axes:
    """Binning of the builder's QA and efficiency histograms."""

    vertex_z: Axis = Axis.uniform(30, -15.0, 15.0, "Vtx_z (cm)")
    pt: Axis = Axis.variable(PT_EDGES, "p_T (GeV/c)")
    centrality: Axis = Axis.variable(CENTRALITY_EDGES, "Centrality")
    sigma_mass: Axis = Axis.uniform(200, 1.16, 1.23, "M_Sigma0 (GeV/c^2)")
    delta_pt: Axis = Axis.uniform(100, -1.0, 1.0, "Delta(p_T)")


def sigma0_kinematics(gamma: V0Candidate, lam: V0Candidate) -> Sigma0Kinematics:
    """Mass, pt and rapidity of the photon + Lambda four-vector sum."""
    p_gamma = (gamma.px, gamma.py, gamma.pz)
    p_lambda = (lam.px, lam.py, lam.pz)
    mass = invariant_mass((p_gamma, p_lambda), (MASS_PHOTON, MASS_LAMBDA))
    total = sum_momenta((p_gamma, p_lambda))
    return Sigma0Kinematics(
        mass=mass,
        pt=transverse_momentum(total),
        rapidity=rapidity(total, MASS_SIGMA0),
    )


class Sigma0Builder:
    """Pair V0s of each collision into Sigma0 candidates and record the outcome.

    One instance corresponds to one processing batch: the funnel, histograms,
    output tables and candidate counter all belong to it.
    """

    def __init__(
        self,
        mode: SelectionMode = SelectionMode.STANDARD,
        photon_cuts: PhotonCuts | None = None,
        lambda_cuts: LambdaCuts | None = None,
        sigma_cuts: Sigma0Cuts | None = None,
        ml_thresholds: MLThresholds | None = None,
        axes: Sigma0Axes | None = None,
    ):
        self.mode = mode
        self.photon_cuts = photon_cuts or PhotonCuts()
        self.lambda_cuts = lambda_cuts or LambdaCuts()
        self.sigma_cuts = sigma_cuts or Sigma0Cuts()
        self.ml_thresholds = ml_thresholds or MLThresholds()
        self.axes = axes or Sigma0Axes()
        self.tables = Sigma0Tables()
        self.n_candidates = 0

        self.histos = HistogramRegistry("Histos")
        self.funnel = CutFunnel(self.histos, "hCandidateBuilderSelection", STAGE_LABELS)
        self._book_histograms()

    @classmethod
    def from_schema(cls, columns: Iterable[str], **kwargs) -> "Sigma0Builder":
        """Builder whose selection mode follows the V0 columns present on the input."""
        return cls(mode=resolve_selection_mode(columns), **kwargs)

    @property
    def active_stages(self) -> tuple[int, ...]:
        """Funnel stages charged in the current selection mode."""
        if self.mode is SelectionMode.ML:
            return (SIGMA_WINDOW_STAGE,)
        return tuple(range(len(STAGE_LABELS)))

    def _book_histograms(self) -> None:
        ax = self.axes
        self.histos.add("hEventVertexZ", [ax.vertex_z])
        self.histos.add("hEventCentrality", [Axis.uniform(20, -100.0, 100.0)])
        for name in (
            "GammaAll",
            "LambdaAll",
            "AntiLambdaAll",
            "GammaSigma0",
            "LambdaSigma0",
            "Sigma0All",
            "Sigma0AfterSel",
            "AntiSigma0All",
            "GammaAntiSigma0",
            "LambdaAntiSigma0",
            "AntiSigma0AfterSel",
        ):
            self.histos.add(f"Efficiency/h2dPtVsCentrality_{name}", [ax.centrality, ax.pt])
        self.histos.add("Efficiency/h2dSigmaPtVsLambdaPt", [ax.pt, ax.pt])
        self.histos.add("Efficiency/h2dSigmaPtVsGammaPt", [ax.pt, ax.pt])
        self.histos.add("Efficiency/h2dLambdaPtResolution", [ax.pt, ax.delta_pt])
        self.histos.add("Efficiency/h2dGammaPtResolution", [ax.pt, ax.delta_pt])
        self.histos.add("h3dMassSigmasAll", [ax.centrality, ax.pt, ax.sigma_mass])
        self.histos.add("h3dMassSigmasAfterSel", [ax.centrality, ax.pt, ax.sigma_mass])

    # -- selection ---------------------------------------------------------

    def select(self, lam: V0Candidate, gamma: V0Candidate) -> bool:
        """Run the cut chain on one (Lambda, photon) pair, charging the funnel."""
        if lam.v0_type == 0 or gamma.v0_type == 0:
            return False

        if self.mode is SelectionMode.ML:
            if not self._passes_ml(lam, gamma):
                return False
        elif not self._passes_standard(lam, gamma):
            return False

        kin = sigma0_kinematics(gamma, lam)
        if abs(kin.mass - MASS_SIGMA0) > self.sigma_cuts.window:
            return False
        if abs(kin.rapidity) > self.sigma_cuts.max_rapidity:
            return False
        self.funnel.record_stage(SIGMA_WINDOW_STAGE)
        return True

    def _passes_ml(self, lam: V0Candidate, gamma: V0Candidate) -> bool:
        gamma_score = _require(gamma.gamma_bdt_score, "gamma_bdt_score")
        lambda_score = _require(lam.lambda_bdt_score, "lambda_bdt_score")
        antilambda_score = _require(lam.antilambda_bdt_score, "antilambda_bdt_score")
        th = self.ml_thresholds
        if gamma_score <= th.gamma:
            return False
        if lambda_score <= th.lambda_ and antilambda_score <= th.antilambda:
            return False
        return True

    def _passes_standard(self, lam: V0Candidate, gamma: V0Candidate) -> bool:
        pc = self.photon_cuts
        lc = self.lambda_cuts
        record = self.funnel.record_stage

        if abs(gamma.m_gamma) > pc.max_mass:
            return False
        record(0)
        if abs(gamma.negative.eta) > pc.max_dau_pseudorap or abs(gamma.positive.eta) > pc.max_dau_pseudorap:
            return False
        record(1)
        if abs(gamma.dca_pos_to_pv) < pc.min_dca_to_pv or abs(gamma.dca_neg_to_pv) < pc.min_dca_to_pv:
            return False
        record(2)
        if abs(gamma.dca_v0_daughters) > pc.max_dca_v0_dau:
            return False
        record(3)
        if gamma.v0_radius < pc.min_radius or gamma.v0_radius > pc.max_radius:
            return False
        record(4)

        # either mass hypothesis of the Lambda-role V0 may satisfy the window
        if abs(lam.m_lambda - MASS_LAMBDA) > lc.window and abs(lam.m_antilambda - MASS_LAMBDA) > lc.window:
            return False
        record(5)
        if abs(lam.negative.eta) > lc.dau_pseudorap or abs(lam.positive.eta) > lc.dau_pseudorap:
            return False
        record(6)
        if abs(lam.dca_pos_to_pv) < lc.min_dca_pos_to_pv or abs(lam.dca_neg_to_pv) < lc.min_dca_neg_to_pv:
            return False
        record(7)
        if lam.v0_radius < lc.min_v0_radius or lam.v0_radius > lc.max_v0_radius:
            return False
        record(8)
        if abs(lam.dca_v0_daughters) > lc.max_dca_v0_dau:
            return False
        record(9)
        return True

    # -- processing --------------------------------------------------------

    def build(
        self,
        gammas: Sequence[V0Candidate],
        lambdas: Sequence[V0Candidate],
        collision_id: str,
    ) -> list[Sigma0Candidate]:
        """Cross-pair photon- and Lambda-role V0s and emit every accepted pair."""
        accepted: list[Sigma0Candidate] = []
        for gamma, lam in iter_pairs(gammas, lambdas, PairingPolicy.CROSS):
            if not self.select(lam, gamma):
                continue
            self.n_candidates += 1
            if self.n_candidates % PROGRESS_EVERY == 0:
                logger.info("Sigma0 Candidates built: %d", self.n_candidates)
            accepted.append(self._emit(gamma, lam, collision_id))
        return accepted

    def _emit(self, gamma: V0Candidate, lam: V0Candidate, collision_id: str) -> Sigma0Candidate:
        kin = sigma0_kinematics(gamma, lam)
        self.tables.cores.append(SigmaCore(collision_id, kin.pt, kin.mass, kin.rapidity))
        self.tables.photon_extras.append(photon_extra_row(gamma))
        self.tables.lambda_extras.append(lambda_extra_row(lam))
        return Sigma0Candidate(
            collision_id=collision_id,
            photon_id=gamma.v0_id,
            lambda_id=lam.v0_id,
            mass=kin.mass,
            pt=kin.pt,
            rapidity=kin.rapidity,
        )

    def process_collision(self, event: EventInput) -> list[Sigma0Candidate]:
        """Build candidates of one collision from its sliced V0 table."""
        coll = event.collision
        self.histos.fill("hEventVertexZ", coll.pos_z)
        self.histos.fill("hEventCentrality", coll.cent_ft0c)
        self.tables.collisions.append(coll)
        v0s = [v0 for v0 in event.v0s if v0.collision_id == coll.collision_id]
        return self.build(v0s, v0s, coll.collision_id)

    def process_events(self, events: Sequence[EventInput]) -> list[Sigma0Candidate]:
        out: list[Sigma0Candidate] = []
        for event in events:
            out.extend(self.process_collision(event))
        return out

    # -- Monte Carlo -------------------------------------------------------

    def process_monte_carlo(self, event: EventInput) -> list[Sigma0Candidate]:
        """Efficiency bookkeeping plus truth-flagged candidates for one MC collision.

        Accepted pairs are not written to the core tables here; only their
        truth classification is appended to `tables.mc_cores`.
        """
        coll = event.collision
        centrality = coll.cent_ft0c
        v0s = [v0 for v0 in event.v0s if v0.collision_id == coll.collision_id]
        accepted: list[Sigma0Candidate] = []

        for gamma in v0s:
            self._fill_v0_truth(gamma, centrality)
            for lam in v0s:
                kin = sigma0_kinematics(gamma, lam)
                self.histos.fill("h3dMassSigmasAll", centrality, kin.pt, kin.mass)
                truth_y_ok = abs(kin.rapidity) < TRUTH_MAX_RAPIDITY
                if _is_true_sigma0(gamma, lam, sign=1) and truth_y_ok:
                    self.histos.fill("Efficiency/h2dPtVsCentrality_Sigma0All", centrality, kin.pt)
                    self.histos.fill("Efficiency/h2dSigmaPtVsLambdaPt", kin.pt, lam.pt)
                    self.histos.fill("Efficiency/h2dSigmaPtVsGammaPt", kin.pt, gamma.pt)
                if _is_true_sigma0(gamma, lam, sign=-1) and truth_y_ok:
                    self.histos.fill("Efficiency/h2dPtVsCentrality_AntiSigma0All", centrality, kin.pt)

                if not self.select(lam, gamma):
                    continue

                self.histos.fill("h3dMassSigmasAfterSel", centrality, kin.pt, kin.mass)
                is_sigma = _is_true_sigma0(gamma, lam, sign=1)
                is_antisigma = _is_true_sigma0(gamma, lam, sign=-1)
                if is_sigma:
                    self.histos.fill("Efficiency/h2dPtVsCentrality_Sigma0AfterSel", centrality, kin.pt)
                if is_antisigma:
                    self.histos.fill("Efficiency/h2dPtVsCentrality_AntiSigma0AfterSel", centrality, kin.pt)
                self.tables.mc_cores.append(Sigma0McCore(is_sigma, is_antisigma))
                accepted.append(
                    Sigma0Candidate(coll.collision_id, gamma.v0_id, lam.v0_id, kin.mass, kin.pt, kin.rapidity)
                )
        return accepted

    def _fill_v0_truth(self, v0: V0Candidate, centrality: float) -> None:
        if not v0.has_mc:
            return
        p3 = (v0.px, v0.py, v0.pz)
        if v0.pdg_code == PDG_GAMMA:
            if abs(rapidity(p3, MASS_PHOTON)) >= TRUTH_MAX_RAPIDITY:
                return
            self.histos.fill("Efficiency/h2dPtVsCentrality_GammaAll", centrality, v0.pt)
            self._fill_resolution("Efficiency/h2dGammaPtResolution", v0)
            if v0.pdg_code_mother == PDG_SIGMA0:
                self.histos.fill("Efficiency/h2dPtVsCentrality_GammaSigma0", centrality, v0.pt)
            if v0.pdg_code_mother == -PDG_SIGMA0:
                self.histos.fill("Efficiency/h2dPtVsCentrality_GammaAntiSigma0", centrality, v0.pt)
        elif v0.pdg_code == PDG_LAMBDA:
            if abs(rapidity(p3, MASS_LAMBDA)) >= TRUTH_MAX_RAPIDITY:
                return
            self.histos.fill("Efficiency/h2dPtVsCentrality_LambdaAll", centrality, v0.pt)
            self._fill_resolution("Efficiency/h2dLambdaPtResolution", v0)
            if v0.pdg_code_mother == PDG_SIGMA0:
                self.histos.fill("Efficiency/h2dPtVsCentrality_LambdaSigma0", centrality, v0.pt)
        elif v0.pdg_code == -PDG_LAMBDA:
            if abs(rapidity(p3, MASS_LAMBDA)) >= TRUTH_MAX_RAPIDITY:
                return
            self.histos.fill("Efficiency/h2dPtVsCentrality_AntiLambdaAll", centrality, v0.pt)
            if v0.pdg_code_mother == -PDG_SIGMA0:
                self.histos.fill("Efficiency/h2dPtVsCentrality_LambdaAntiSigma0", centrality, v0.pt)

    def _fill_resolution(self, name: str, v0: V0Candidate) -> None:
        if v0.px_mc is None or v0.py_mc is None:
            return
        self.histos.fill(name, v0.pt, v0.pt - transverse_momentum((v0.px_mc, v0.py_mc)))


def _require(value: float | None, column: str) -> float:
    if value is None:
        raise SchemaMismatch(column, "V0 row in ML selection mode")
    return value


def _is_true_sigma0(gamma: V0Candidate, lam: V0Candidate, sign: int) -> bool:
    """Both legs come from the same (anti-)Sigma0 according to MC truth."""
    if not (gamma.has_mc and lam.has_mc):
        return False
    return (
        gamma.pdg_code == PDG_GAMMA
        and gamma.pdg_code_mother == sign * PDG_SIGMA0
        and lam.pdg_code == sign * PDG_LAMBDA
        and lam.pdg_code_mother == sign * PDG_SIGMA0
        and gamma.mother_mc_part_id == lam.mother_mc_part_id
    )
