"""Unit tests for Sigma0 candidate building and the cut funnel."""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"


import math
import unittest

from pidcomb import (
    Collision,
    EventInput,
    SchemaMismatch,
    SelectionMode,
    Sigma0Builder,
    Sigma0Cuts,
    V0Candidate,
    V0Leg,
)
from pidcomb.composite import NO_SCORE, Sigma0McCore
from pidcomb.sigma0 import SIGMA_WINDOW_STAGE, STAGE_LABELS, sigma0_kinematics
from pidcomb.species import MASS_LAMBDA, MASS_SIGMA0

# Decay momentum of Sigma0 -> Lambda gamma in the Sigma0 rest frame
P_STAR = (MASS_SIGMA0**2 - MASS_LAMBDA**2) / (2.0 * MASS_SIGMA0)


def make_v0(v0_id: str, p3, collision_id: str = "c0", **overrides) -> V0Candidate:
    """V0 that passes both the photon and the Lambda standard selections."""
    leg = V0Leg(px=0.1, py=0.0, pz=0.01, eta=0.1)
    values = dict(
        v0_id=v0_id,
        collision_id=collision_id,
        v0_type=1,
        px=p3[0],
        py=p3[1],
        pz=p3[2],
        m_gamma=0.01,
        m_lambda=1.1157,
        m_antilambda=1.1157,
        v0_radius=10.0,
        dca_v0_daughters=0.5,
        dca_pos_to_pv=0.1,
        dca_neg_to_pv=0.1,
        positive=leg,
        negative=leg,
    )
    values.update(overrides)
    return V0Candidate(**values)


class TestSigma0Builder(unittest.TestCase):
    """Validate cut chain, funnel accounting and emitted candidates."""

    def _scenario(self):
        """Three photon-role and two Lambda-role V0s with known four-momenta."""
        gammas = [
            make_v0("g1", (P_STAR, 0.0, 0.0)),
            make_v0("g2", (0.0, P_STAR, 0.0)),
            make_v0("g3", (0.5, 0.0, 0.0)),
        ]
        lambdas = [
            make_v0("l1", (-P_STAR, 0.0, 0.0)),
            make_v0("l2", (0.0, -P_STAR, 0.0)),
        ]
        return gammas, lambdas

    def test_cross_mode_keeps_expected_subset(self) -> None:
        """Only pairs inside the Sigma0 window survive, and stage 10 counts them."""
        gammas, lambdas = self._scenario()
        builder = Sigma0Builder()
        accepted = builder.build(gammas, lambdas, "c0")

        pairs = {(c.photon_id, c.lambda_id) for c in accepted}
        self.assertEqual(pairs, {("g1", "l1"), ("g1", "l2"), ("g2", "l1"), ("g2", "l2")})
        self.assertEqual(builder.funnel.count(SIGMA_WINDOW_STAGE), len(accepted))
        self.assertEqual(builder.funnel.counts[:10], (6,) * 10)
        self.assertTrue(builder.funnel.is_monotonic(builder.active_stages))

    def test_back_to_back_pair_has_nominal_mass(self) -> None:
        """A photon and a Lambda back to back at the decay momentum rebuild the Sigma0 mass."""
        gammas, lambdas = self._scenario()
        kin = sigma0_kinematics(gammas[0], lambdas[0])
        self.assertAlmostEqual(kin.mass, MASS_SIGMA0, places=9)
        self.assertAlmostEqual(kin.pt, 0.0, places=12)
        self.assertAlmostEqual(kin.rapidity, 0.0, places=12)

    def test_narrow_window_rejects_off_peak_pairs(self) -> None:
        """With a tight window only the back-to-back pairs remain."""
        gammas, lambdas = self._scenario()
        builder = Sigma0Builder(sigma_cuts=Sigma0Cuts(window=0.001))
        accepted = builder.build(gammas, lambdas, "c0")
        pairs = {(c.photon_id, c.lambda_id) for c in accepted}
        self.assertEqual(pairs, {("g1", "l1"), ("g2", "l2")})
        self.assertEqual(builder.funnel.count(SIGMA_WINDOW_STAGE), 2)

    def test_invalid_v0_type_is_rejected_without_funnel_entry(self) -> None:
        """Role validity precedes every stage and is not charged."""
        gamma = make_v0("g", (P_STAR, 0.0, 0.0), v0_type=0)
        lam = make_v0("l", (-P_STAR, 0.0, 0.0))
        builder = Sigma0Builder()
        self.assertFalse(builder.select(lam, gamma))
        self.assertEqual(builder.funnel.counts, (0,) * len(STAGE_LABELS))

    def test_photon_mass_cut_stops_at_first_stage(self) -> None:
        """A photon failing the mass cut charges no stage at all."""
        gamma = make_v0("g", (P_STAR, 0.0, 0.0), m_gamma=0.5)
        lam = make_v0("l", (-P_STAR, 0.0, 0.0))
        builder = Sigma0Builder()
        self.assertFalse(builder.select(lam, gamma))
        self.assertEqual(sum(builder.funnel.counts), 0)

    def test_lambda_radius_failure_charges_up_to_previous_stage(self) -> None:
        """Short-circuiting leaves the funnel filled up to the last passed stage."""
        gamma = make_v0("g", (P_STAR, 0.0, 0.0))
        lam = make_v0("l", (-P_STAR, 0.0, 0.0), v0_radius=500.0)
        builder = Sigma0Builder()
        self.assertFalse(builder.select(lam, gamma))
        self.assertEqual(builder.funnel.counts, (1,) * 8 + (0,) * 3)

    def test_either_lambda_hypothesis_passes_mass_cut(self) -> None:
        """The anti-Lambda mass alone is enough for the Lambda mass stage."""
        gamma = make_v0("g", (P_STAR, 0.0, 0.0))
        lam = make_v0("l", (-P_STAR, 0.0, 0.0), m_lambda=1.3, m_antilambda=1.1157)
        builder = Sigma0Builder()
        self.assertTrue(builder.select(lam, gamma))

    def test_ml_mode_uses_scores_and_only_final_stage(self) -> None:
        """ML mode applies BDT thresholds and charges only the Sigma window stage."""
        gamma = make_v0("g", (P_STAR, 0.0, 0.0), gamma_bdt_score=0.5)
        lam = make_v0(
            "l",
            (-P_STAR, 0.0, 0.0),
            lambda_bdt_score=0.05,
            antilambda_bdt_score=0.8,
            m_gamma=0.5,
        )
        builder = Sigma0Builder(mode=SelectionMode.ML)
        self.assertTrue(builder.select(lam, gamma))
        self.assertEqual(builder.active_stages, (SIGMA_WINDOW_STAGE,))
        self.assertEqual(sum(builder.funnel.counts), 1)

        low = make_v0("g2", (P_STAR, 0.0, 0.0), gamma_bdt_score=0.05)
        self.assertFalse(builder.select(lam, low))

    def test_ml_mode_without_scores_raises(self) -> None:
        """A V0 lacking a score column in ML mode is a schema error."""
        gamma = make_v0("g", (P_STAR, 0.0, 0.0))
        lam = make_v0("l", (-P_STAR, 0.0, 0.0))
        builder = Sigma0Builder(mode=SelectionMode.ML)
        with self.assertRaises(SchemaMismatch):
            builder.select(lam, gamma)

    def test_mode_follows_input_columns(self) -> None:
        """Score columns on the input select ML mode, otherwise standard cuts."""
        ml = Sigma0Builder.from_schema(["v0_id", "gamma_bdt_score", "lambda_bdt_score", "antilambda_bdt_score"])
        std = Sigma0Builder.from_schema(["v0_id", "gamma_bdt_score"])
        self.assertIs(ml.mode, SelectionMode.ML)
        self.assertIs(std.mode, SelectionMode.STANDARD)

    def test_output_tables_are_row_aligned(self) -> None:
        """Each accepted pair adds one core, one photon and one Lambda row."""
        gammas, lambdas = self._scenario()
        builder = Sigma0Builder()
        accepted = builder.build(gammas, lambdas, "c0")
        self.assertEqual(len(builder.tables.cores), len(accepted))
        self.assertEqual(len(builder.tables.photon_extras), len(accepted))
        self.assertEqual(len(builder.tables.lambda_extras), len(accepted))
        self.assertEqual(builder.tables.photon_extras[0].bdt_score, NO_SCORE)
        self.assertAlmostEqual(builder.tables.cores[0].mass, accepted[0].mass, places=12)

    def test_process_collision_pairs_v0_table_with_itself(self) -> None:
        """All V0s of a collision are tried in both roles."""
        gamma = make_v0("g", (P_STAR, 0.0, 0.0), m_lambda=1.5, m_antilambda=1.5)
        lam = make_v0("l", (-P_STAR, 0.0, 0.0), m_gamma=0.5)
        other = make_v0("x", (P_STAR, 0.0, 0.0), collision_id="c1")
        event = EventInput(collision=Collision("c0", pos_z=1.0), v0s=(gamma, lam, other))
        builder = Sigma0Builder()
        accepted = builder.process_collision(event)
        self.assertEqual([(c.photon_id, c.lambda_id) for c in accepted], [("g", "l")])
        self.assertEqual(len(builder.tables.collisions), 1)
        self.assertEqual(builder.histos.get("hEventVertexZ").entries, 1)

    def test_rerun_is_idempotent(self) -> None:
        """Same input and configuration give identical counters and kinematics."""
        gammas, lambdas = self._scenario()
        v0s = tuple(gammas + lambdas)
        events = [EventInput(collision=Collision("c0"), v0s=v0s)]
        first = Sigma0Builder()
        second = Sigma0Builder()
        out1 = first.process_events(events)
        out2 = second.process_events(events)
        self.assertEqual(first.funnel.counts, second.funnel.counts)
        self.assertEqual(
            [(c.mass, c.pt, c.rapidity) for c in out1],
            [(c.mass, c.pt, c.rapidity) for c in out2],
        )
        self.assertTrue(first.funnel.is_monotonic(first.active_stages))

    def test_forward_pair_fails_rapidity(self) -> None:
        """A pair boosted along z is rejected by the rapidity cut."""
        gamma_fwd = make_v0("gf", (P_STAR, 0.0, 2.0))
        lam_fwd = make_v0("lf", (-P_STAR, 0.0, 20.0))
        builder = Sigma0Builder(sigma_cuts=Sigma0Cuts(window=10.0))
        self.assertFalse(builder.select(lam_fwd, gamma_fwd))
        self.assertEqual(builder.funnel.count(SIGMA_WINDOW_STAGE), 0)
        self.assertEqual(builder.funnel.count(9), 1)


class TestSigma0MonteCarlo(unittest.TestCase):
    """Validate truth matching and efficiency bookkeeping."""

    def test_true_sigma0_pair_is_flagged(self) -> None:
        """A photon and a Lambda from the same Sigma0 give an is_sigma row."""
        gamma = make_v0(
            "g",
            (P_STAR, 0.0, 0.0),
            m_lambda=1.5,
            m_antilambda=1.5,
            pdg_code=22,
            pdg_code_mother=3212,
            mother_mc_part_id=7,
            px_mc=P_STAR,
            py_mc=0.0,
        )
        lam = make_v0(
            "l",
            (-P_STAR, 0.0, 0.0),
            m_gamma=0.5,
            pdg_code=3122,
            pdg_code_mother=3212,
            mother_mc_part_id=7,
        )
        event = EventInput(collision=Collision("c0", cent_ft0c=15.0), v0s=(gamma, lam))
        builder = Sigma0Builder()
        accepted = builder.process_monte_carlo(event)

        self.assertEqual(len(accepted), 1)
        self.assertEqual(builder.tables.mc_cores, [Sigma0McCore(is_sigma=True, is_antisigma=False)])
        self.assertEqual(builder.histos.get("h3dMassSigmasAll").entries, 4)
        self.assertEqual(builder.histos.get("h3dMassSigmasAfterSel").entries, 1)
        self.assertEqual(builder.histos.get("Efficiency/h2dPtVsCentrality_Sigma0All").entries, 1)
        self.assertEqual(builder.histos.get("Efficiency/h2dPtVsCentrality_GammaSigma0").entries, 1)
        self.assertEqual(builder.histos.get("Efficiency/h2dPtVsCentrality_LambdaSigma0").entries, 1)
        self.assertEqual(builder.histos.get("Efficiency/h2dGammaPtResolution").entries, 1)
        self.assertTrue(math.isclose(builder.histos.get("Efficiency/h2dGammaPtResolution").sum(), 1.0))

    def test_different_mothers_are_not_flagged(self) -> None:
        """Legs from two different Sigma0 decays are combinatorial background."""
        gamma = make_v0(
            "g", (P_STAR, 0.0, 0.0), m_lambda=1.5, m_antilambda=1.5,
            pdg_code=22, pdg_code_mother=3212, mother_mc_part_id=1,
        )
        lam = make_v0(
            "l", (-P_STAR, 0.0, 0.0), m_gamma=0.5,
            pdg_code=3122, pdg_code_mother=3212, mother_mc_part_id=2,
        )
        builder = Sigma0Builder()
        builder.process_monte_carlo(EventInput(collision=Collision("c0"), v0s=(gamma, lam)))
        self.assertEqual(builder.tables.mc_cores, [Sigma0McCore(is_sigma=False, is_antisigma=False)])


if __name__ == "__main__":
    unittest.main()
