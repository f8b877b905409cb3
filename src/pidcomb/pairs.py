"""Same-event track-track pairs for femtoscopic correlation studies.

Tracks of one collision are split by charge into two partitions (particle
one and particle two), each filtered on pt range, |eta| and a PDG-dependent
n-sigma acceptance. Opposite-charge pairs are built with cross pairing,
like-charge pairs with self pairing. For self pairs the leg order is random,
so that the first leg is not biased by the input ordering.
"""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"

from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

import numpy as np

from .combiner import PairingPolicy, iter_pairs
from .histograms import Axis, HistogramRegistry
from .logger import logger
from .models import EventInput, PairSelectionConfig, Track
from .physics import pair_kstar, pair_kt, pair_mt
from .pid import is_particle_nsigma
from .species import species_from_pdg

MULT_EDGES = (
    0.0, 4.0, 8.0, 12.0, 16.0, 20.0, 24.0, 28.0, 32.0, 36.0, 40.0, 44.0, 48.0, 52.0, 56.0, 60.0,
    64.0, 68.0, 72.0, 76.0, 80.0, 84.0, 88.0, 92.0, 96.0, 100.0, 200.0, 99999.0,
)


class PairSign(Enum):
    """Charge combination of a pair container."""

    PM = "PM"
    PP = "PP"
    MM = "MM"


@dataclass(frozen=True)
class PairRecord:
    """One accepted same-event pair; `first_id` is the leg filled first."""

    collision_id: str
    first_id: str
    second_id: str
    kstar: float
    kt: float
    mt: float
    multiplicity: int
    sign: PairSign


@dataclass(frozen=True)
class PairAxes:
    kstar: Axis = Axis.uniform(60, 0.0, 0.3, "k* (GeV/c)")
    kt: Axis = Axis.variable((0.1, 0.2, 0.3, 0.4), "k_T (GeV/c)")
    multiplicity: Axis = Axis.variable((0.0, 200.0), "Multiplicity")
    mult_mixing: Axis = Axis.variable(MULT_EDGES, "Multiplicity")


@dataclass
class PairAccumulator:
    """Records and histograms of one charge combination."""

    sign: PairSign
    registry: HistogramRegistry
    axes: PairAxes
    records: list[PairRecord] = field(default_factory=list)

    def __post_init__(self) -> None:
        prefix = self.sign.value
        self.kstar_name = f"{prefix}/SameEvent/relPairDist"
        self.kstar_kt_mult_name = f"{prefix}/SameEvent/relPairkstarKtMult"
        self.registry.add(self.kstar_name, [self.axes.kstar])
        self.registry.add(
            self.kstar_kt_mult_name, [self.axes.kstar, self.axes.kt, self.axes.multiplicity]
        )

    def add(self, record: PairRecord) -> None:
        self.records.append(record)
        self.registry.fill(self.kstar_name, record.kstar)
        self.registry.fill(self.kstar_kt_mult_name, record.kstar, record.kt, record.multiplicity)

    def __len__(self) -> int:
        return len(self.records)


class SameEventPairTask:
    """Build same-event pairs for the charge combinations switched on in `config`.

    The task owns one random generator; `seed=None` draws fresh entropy, an
    integer seed makes the leg order reproducible.
    """

    def __init__(
        self,
        config: PairSelectionConfig | None = None,
        seed: int | None = None,
        axes: PairAxes | None = None,
    ):
        self.config = config or PairSelectionConfig()
        self.rng = np.random.default_rng(seed)
        self.mass_one = species_from_pdg(self.config.pdg_code_one).mass
        self.mass_two = species_from_pdg(self.config.pdg_code_two).mass
        self.histos = HistogramRegistry("Pairs")
        axes = axes or PairAxes()
        self.histos.add("Event/zvtxhist", [Axis.uniform(300, -12.5, 12.5, "Vtx_z (cm)")])
        self.histos.add("Event/MultNTr", [axes.mult_mixing])
        self.accumulators: dict[PairSign, PairAccumulator] = {}
        if self.config.process_pm:
            self.accumulators[PairSign.PM] = PairAccumulator(PairSign.PM, self.histos, axes)
        if self.config.process_pp:
            self.accumulators[PairSign.PP] = PairAccumulator(PairSign.PP, self.histos, axes)
        if self.config.process_mm:
            self.accumulators[PairSign.MM] = PairAccumulator(PairSign.MM, self.histos, axes)

    # -- partitions --------------------------------------------------------

    def _in_partition(self, track: Track, charge: int, pt_low: float, pt_high: float, pdg_code: int) -> bool:
        if track.charge != charge:
            return False
        if not pt_low < track.pt < pt_high:
            return False
        if abs(track.eta) >= self.config.eta_max:
            return False
        return is_particle_nsigma(track, pdg_code, self.config)

    def partition_one(self, tracks: Sequence[Track]) -> list[Track]:
        c = self.config
        return [
            t for t in tracks
            if self._in_partition(t, c.charge_one, c.pt_low_one, c.pt_high_one, c.pdg_code_one)
        ]

    def partition_two(self, tracks: Sequence[Track]) -> list[Track]:
        c = self.config
        return [
            t for t in tracks
            if self._in_partition(t, c.charge_two, c.pt_low_two, c.pt_high_two, c.pdg_code_two)
        ]

    # -- pairing -----------------------------------------------------------

    def _record(self, collision_id: str, first: Track, second: Track, mult: int, sign: PairSign) -> PairRecord:
        p1 = (first.px, first.py, first.pz)
        p2 = (second.px, second.py, second.pz)
        kt = pair_kt(p1, p2)
        return PairRecord(
            collision_id=collision_id,
            first_id=first.track_id,
            second_id=second.track_id,
            kstar=pair_kstar(p1, self.mass_one, p2, self.mass_two),
            kt=kt,
            mt=pair_mt(kt, self.mass_one, self.mass_two),
            multiplicity=mult,
            sign=sign,
        )

    def _cross(self, collision_id: str, ones: Sequence[Track], twos: Sequence[Track], mult: int) -> None:
        acc = self.accumulators[PairSign.PM]
        for p1, p2 in iter_pairs(ones, twos, PairingPolicy.CROSS):
            if p1.track_id == p2.track_id:
                continue
            acc.add(self._record(collision_id, p1, p2, mult, PairSign.PM))

    def _self(self, collision_id: str, parts: Sequence[Track], mult: int, sign: PairSign) -> None:
        acc = self.accumulators[sign]
        for p1, p2 in iter_pairs(parts, policy=PairingPolicy.SELF):
            if p1.track_id == p2.track_id:
                continue
            # one draw per accepted pair
            if self.rng.random() > 0.5:
                acc.add(self._record(collision_id, p1, p2, mult, sign))
            else:
                acc.add(self._record(collision_id, p2, p1, mult, sign))

    def process_collision(self, event: EventInput) -> None:
        coll = event.collision
        self.histos.fill("Event/zvtxhist", coll.pos_z)
        self.histos.fill("Event/MultNTr", coll.mult_ntr)
        tracks = [t for t in event.tracks if t.collision_id == coll.collision_id]
        ones = self.partition_one(tracks)
        twos = self.partition_two(tracks)
        mult = coll.mult_ntr
        if PairSign.PM in self.accumulators:
            self._cross(coll.collision_id, ones, twos, mult)
        if PairSign.PP in self.accumulators:
            self._self(coll.collision_id, ones, mult, PairSign.PP)
        if PairSign.MM in self.accumulators:
            self._self(coll.collision_id, twos, mult, PairSign.MM)

    def process_events(self, events: Sequence[EventInput]) -> dict[PairSign, list[PairRecord]]:
        for event in events:
            self.process_collision(event)
        for sign, acc in self.accumulators.items():
            logger.info("Same-event %s pairs: %d", sign.value, len(acc))
        return {sign: list(acc.records) for sign, acc in self.accumulators.items()}
