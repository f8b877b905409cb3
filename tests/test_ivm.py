"""Unit tests for the PID-slot N-track invariant-mass selector."""

from __future__ import annotations

import math
import unittest

from pidcomb import Collision, EventInput, InvalidConfiguration, IvmSelector, PidSlot, Species, Track
from pidcomb.ivm import slots_from_config
from pidcomb.physics import invariant_mass


def make_track(track_id: str, charge: int, px: float, nsigma: dict, collision_id: str = "c0") -> Track:
    return Track(track_id, collision_id, p=abs(px), pt=abs(px), eta=0.0, phi=0.0 if px >= 0 else math.pi,
                 charge=charge, tpc_nsigma=nsigma)


PION_WINDOWS = {Species.PION: (-3.0, 3.0), Species.KAON: (-2.0, 2.0)}


class TestIvmSelector(unittest.TestCase):
    """Validate slot matching and emitted invariant masses."""

    def test_slot_inside_and_veto_windows(self) -> None:
        """The slot species must be inside its window, vetoed species outside."""
        slot = PidSlot(Species.PION, sign=1, windows=PION_WINDOWS)
        self.assertTrue(slot.accepts(make_track("a", 1, 0.3, {Species.PION: 0.5, Species.KAON: 4.0})))
        self.assertFalse(slot.accepts(make_track("b", 1, 0.3, {Species.PION: 0.5, Species.KAON: 1.0})))
        self.assertFalse(slot.accepts(make_track("c", -1, 0.3, {Species.PION: 0.5, Species.KAON: 4.0})))
        self.assertFalse(slot.accepts(make_track("d", 1, 0.3, {Species.KAON: 4.0})))

    def test_empty_window_is_ignored(self) -> None:
        slot = PidSlot(Species.PION, windows={Species.PION: (0.0, 0.0)})
        self.assertTrue(slot.accepts(make_track("a", 1, 0.3, {})))

    def test_opposite_sign_pion_pairs(self) -> None:
        """Only the pi+ pi- tuple survives, in slot order, with pion masses."""
        slots = [
            PidSlot(Species.PION, sign=1, windows=PION_WINDOWS),
            PidSlot(Species.PION, sign=-1, windows=PION_WINDOWS),
        ]
        pim = make_track("pim", -1, -0.4, {Species.PION: 0.1, Species.KAON: 5.0})
        pip = make_track("pip", 1, 0.4, {Species.PION: -0.2, Species.KAON: 5.0})
        kap = make_track("kap", 1, 0.5, {Species.PION: 6.0, Species.KAON: 0.1})
        selector = IvmSelector(slots)
        found = selector.compute("c0", [pim, pip, kap])
        self.assertEqual(len(found), 1)
        self.assertEqual(found[0].track_ids, ("pip", "pim"))
        m = Species.PION.mass
        expected = invariant_mass(((0.4, 0.0, 0.0), (-0.4, 0.0, 0.0)), (m, m))
        self.assertAlmostEqual(found[0].mass, expected, places=9)
        self.assertAlmostEqual(found[0].pt, 0.0, places=9)
        self.assertEqual(selector.histos.get("nIVMs").entries, 1)
        self.assertEqual(selector.histos.get("IVMptTrkDG").entries, 2)

    def test_tracks_of_other_collisions_are_ignored(self) -> None:
        """Only tracks belonging to the event's collision are combined."""
        slots = [
            PidSlot(Species.PION, sign=1, windows=PION_WINDOWS),
            PidSlot(Species.PION, sign=-1, windows=PION_WINDOWS),
        ]
        nsigma = {Species.PION: 0.0, Species.KAON: 5.0}
        tracks = (
            make_track("pip", 1, 0.4, nsigma),
            make_track("pim", -1, -0.4, nsigma),
            make_track("stray", -1, -0.3, nsigma, collision_id="c1"),
        )
        selector = IvmSelector(slots)
        found = selector.process_collision(EventInput(collision=Collision("c0"), tracks=tracks))
        self.assertEqual([c.track_ids for c in found], [("pip", "pim")])
        self.assertEqual(found[0].collision_id, "c0")

    def test_needs_two_slots(self) -> None:
        with self.assertRaises(InvalidConfiguration):
            IvmSelector([PidSlot(Species.PION)])

    def test_slots_from_config(self) -> None:
        slots = slots_from_config([{"pid": "pi", "sign": -1, "nsigma": {"pi": [-3, 3], "ka": [-2, 2]}}])
        self.assertEqual(slots[0].species, Species.PION)
        self.assertEqual(slots[0].sign, -1)
        self.assertEqual(slots[0].windows[Species.KAON], (-2.0, 2.0))
        with self.assertRaises(ValueError):
            slots_from_config([{"sign": 1}])
        with self.assertRaises(ValueError):
            slots_from_config([{"pid": "pi", "nsigma": {"pi": [1.0]}}])


if __name__ == "__main__":
    unittest.main()
