"""Invariant masses of PID-selected N-track combinations.

Used on low-multiplicity (double-gap) events: every unordered N-track tuple
is tested against N PID slots. A slot fixes the mass hypothesis, optionally
the charge sign, and a set of TPC n-sigma windows:

* for the slot's own species the track must lie inside, `min < n < max`;
* for every other listed species it must lie outside, `n < min or n > max`.

A tuple is accepted with the first slot assignment (permutation of the
tracks) that satisfies all slots, and its invariant mass is computed with
the slot masses of that assignment.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from itertools import permutations
from typing import Any, Mapping, Sequence

from .combiner import iter_n_body_combinations
from .exceptions import InvalidConfiguration
from .histograms import Axis, HistogramRegistry
from .models import EventInput, Track
from .physics import invariant_mass, sum_momenta, transverse_momentum
from .species import Species, species_from_name


@dataclass(frozen=True)
class PidSlot:
    species: Species
    sign: int = 0
    windows: Mapping[Species, tuple[float, float]] = field(default_factory=dict)

    def accepts(self, track: Track) -> bool:
        if self.sign != 0 and track.charge * self.sign <= 0:
            return False
        for species, (low, high) in self.windows.items():
            # an empty window places no requirement
            if low >= high:
                continue
            nsigma = track.tpc_nsigma.get(species, math.nan)
            if math.isnan(nsigma):
                return False
            inside = low < nsigma < high
            if species is self.species and not inside:
                return False
            if species is not self.species and inside:
                return False
        return True


@dataclass(frozen=True)
class IvmCandidate:
    collision_id: str
    track_ids: tuple[str, ...]
    species: tuple[Species, ...]
    mass: float
    pt: float


class IvmSelector:
    """Enumerate N-track tuples of one collision and keep PID-compatible ones."""

    def __init__(self, slots: Sequence[PidSlot], mass_axis: Axis | None = None):
        if len(slots) < 2:
            raise InvalidConfiguration("IVM selection needs at least two PID slots.")
        self.slots = tuple(slots)
        self.candidates: list[IvmCandidate] = []
        self.histos = HistogramRegistry("IVM")
        mass_axis = mass_axis or Axis.uniform(350, 0.0, 3.5, "IVM (GeV/c^2)")
        pt_axis = Axis.uniform(250, 0.0, 5.0, "p_T (GeV/c)")
        self.histos.add("nIVMs", [Axis.uniform(36, -0.5, 35.5)])
        self.histos.add("IVMptSysDG", [mass_axis, pt_axis])
        self.histos.add("IVMptTrkDG", [mass_axis, pt_axis])

    @property
    def n_body(self) -> int:
        return len(self.slots)

    def match(self, tracks: Sequence[Track]) -> tuple[Track, ...] | None:
        """First ordering of `tracks` that satisfies every slot, or None."""
        for ordered in permutations(tracks):
            if all(slot.accepts(trk) for slot, trk in zip(self.slots, ordered)):
                return ordered
        return None

    def compute(self, collision_id: str, tracks: Sequence[Track]) -> list[IvmCandidate]:
        found: list[IvmCandidate] = []
        for combo in iter_n_body_combinations(tracks, self.n_body):
            ordered = self.match(combo)
            if ordered is None:
                continue
            momenta = [(t.px, t.py, t.pz) for t in ordered]
            masses = [slot.species.mass for slot in self.slots]
            cand = IvmCandidate(
                collision_id=collision_id,
                track_ids=tuple(t.track_id for t in ordered),
                species=tuple(slot.species for slot in self.slots),
                mass=invariant_mass(momenta, masses),
                pt=transverse_momentum(sum_momenta(momenta)),
            )
            found.append(cand)
            self.histos.fill("IVMptSysDG", cand.mass, cand.pt)
            for trk in ordered:
                self.histos.fill("IVMptTrkDG", cand.mass, trk.pt)
        self.histos.fill("nIVMs", len(found))
        self.candidates.extend(found)
        return found

    def process_collision(self, event: EventInput) -> list[IvmCandidate]:
        """Candidates of one collision, built from the tracks sliced to it."""
        coll = event.collision
        tracks = [t for t in event.tracks if t.collision_id == coll.collision_id]
        return self.compute(coll.collision_id, tracks)


def slots_from_config(raw: Sequence[Any]) -> list[PidSlot]:
    """Build PID slots from JSON entries.

    Each entry is `{"pid": "pi", "sign": 1, "nsigma": {"pi": [-3, 3], "ka": [-2, 2]}}`.
    """
    slots: list[PidSlot] = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict) or "pid" not in item:
            raise ValueError(f"PID slot at index {idx} must be an object with a 'pid' key.")
        windows: dict[Species, tuple[float, float]] = {}
        nsigma = item.get("nsigma", {})
        if not isinstance(nsigma, dict):
            raise ValueError(f"PID slot at index {idx}: 'nsigma' must be an object.")
        for name, bounds in nsigma.items():
            if not isinstance(bounds, list) or len(bounds) != 2:
                raise ValueError(f"PID slot at index {idx}: window for '{name}' must be [min, max].")
            windows[species_from_name(name)] = (float(bounds[0]), float(bounds[1]))
        slots.append(
            PidSlot(species=species_from_name(str(item["pid"])), sign=int(item.get("sign", 0)), windows=windows)
        )
    return slots
