"""TPC particle identification: per-species tables, QA and n-sigma acceptance.

Only the tables for the species that are switched on are produced. A species
with no table gets no record at all, never a zero-filled placeholder.
"""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"

import math
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Iterable, Mapping, Sequence

from .exceptions import InvalidConfiguration
from .histograms import Axis, HistogramRegistry
from .logger import logger
from .models import Collision, IdentificationRecord, PairSelectionConfig, Track
from .response import DetectorResponse
from .species import Species, species_from_name, species_from_pdg

TABLE_PREFIX = "pidTPCFull"


class PidToggle(IntEnum):
    """Per-species switch: AUTO follows downstream demand, OFF/ON force the table."""

    AUTO = -1
    OFF = 0
    ON = 1


@dataclass(frozen=True)
class Consumer:
    """Downstream task and the exact table names it reads."""

    name: str
    inputs: tuple[str, ...] = ()


def table_name(species: Species) -> str:
    """Name under which a species' PID table is published, e.g. `pidTPCFullPi`."""
    return f"{TABLE_PREFIX}{species.code}"


def parse_toggles(raw: Mapping[str, int]) -> dict[Species, PidToggle]:
    """Convert `{"pi": 1, "Ka": -1, ...}` into typed toggles; missing species stay AUTO."""
    toggles = {sp: PidToggle.AUTO for sp in Species}
    for name, value in raw.items():
        species = species_from_name(name)
        try:
            toggles[species] = PidToggle(int(value))
        except ValueError as exc:
            raise InvalidConfiguration(
                f"Toggle for '{name}' must be -1 (auto), 0 (off) or 1 (on), got {value!r}"
            ) from exc
    return toggles


def resolve_toggles(
    toggles: Mapping[Species, PidToggle], consumers: Iterable[Consumer]
) -> dict[Species, bool]:
    """Turn tri-state toggles into booleans using the declared consumer inputs.

    Matching is exact and case-sensitive on the full table name. An AUTO
    species that no consumer asks for is disabled.
    """
    requested: set[str] = set()
    for consumer in consumers:
        requested.update(consumer.inputs)

    enabled: dict[Species, bool] = {}
    for species in Species:
        flag = toggles.get(species, PidToggle.AUTO)
        table = table_name(species)
        if flag == PidToggle.ON:
            enabled[species] = True
            logger.info("Table enabled: %s", table)
        elif flag == PidToggle.OFF:
            enabled[species] = False
            if table in requested:
                logger.info("Table disabled: %s", table)
        else:
            enabled[species] = table in requested
            if enabled[species]:
                logger.info("Auto-enabling table: %s", table)
    return enabled


class PidEvaluator:
    """Compute expected-signal differences and n-sigma for the enabled species."""

    def __init__(
        self,
        response: DetectorResponse,
        toggles: Mapping[Species, PidToggle] | None = None,
        consumers: Sequence[Consumer] = (),
    ):
        self.response = response
        self.enabled = resolve_toggles(toggles or {}, consumers)

    @property
    def enabled_species(self) -> tuple[Species, ...]:
        return tuple(sp for sp in Species if self.enabled[sp])

    def identify(self, track: Track, species: Species) -> IdentificationRecord:
        """PID record for one track under one species hypothesis."""
        expected = self.response.expected_signal(species, track)
        sigma = self.response.expected_sigma(species, track)
        diff = track.tpc_signal - expected
        return IdentificationRecord(expected_signal_diff=diff, separation=diff / sigma)

    def process(self, tracks: Sequence[Track]) -> dict[Species, list[IdentificationRecord]]:
        """One table per enabled species, one record per track, in `Species` order."""
        tables: dict[Species, list[IdentificationRecord]] = {}
        for species in self.enabled_species:
            tables[species] = [self.identify(trk, species) for trk in tracks]
        return tables

    @staticmethod
    def attach(
        tracks: Sequence[Track], tables: Mapping[Species, Sequence[IdentificationRecord]]
    ) -> list[Track]:
        """Return copies of `tracks` whose `tpc_nsigma` holds the produced separations."""
        out: list[Track] = []
        for idx, trk in enumerate(tracks):
            nsigma = dict(trk.tpc_nsigma)
            for species, records in tables.items():
                nsigma[species] = records[idx].separation
            out.append(replace(trk, tpc_nsigma=nsigma))
        return out


class PidQa:
    """QA histograms of the TPC signal against the per-species expectations."""

    def __init__(
        self,
        registry: HistogramRegistry,
        nbins_p: int = 400,
        min_p: float = 0.0,
        max_p: float = 20.0,
        log_axis: bool = False,
        nbins_delta: int = 200,
        min_delta: float = -1000.0,
        max_delta: float = 1000.0,
        nbins_nsigma: int = 200,
        min_nsigma: float = -10.0,
        max_nsigma: float = 10.0,
    ):
        self.registry = registry
        if log_axis:
            p_axis = Axis.logarithmic(nbins_p, min_p, max_p, "p (GeV/c)")
        else:
            p_axis = Axis.uniform(nbins_p, min_p, max_p, "p (GeV/c)")
        registry.add("event/vertexz", [Axis.uniform(100, -20.0, 20.0, "Vtx_z (cm)")])
        registry.add("event/tpcsignal", [p_axis, Axis.uniform(1000, 0.0, 1000.0, "dE/dx A.U.")])
        for sp in Species:
            registry.add(f"expected/{sp.code}", [p_axis, Axis.uniform(1000, 0.0, 1000.0, f"dE/dx_({sp.label})")])
            registry.add(
                f"expected_diff/{sp.code}",
                [p_axis, Axis.uniform(nbins_delta, min_delta, max_delta, f"dE/dx - dE/dx({sp.label})")],
            )
            registry.add(
                f"nsigma/{sp.code}",
                [p_axis, Axis.uniform(nbins_nsigma, min_nsigma, max_nsigma, f"N_sigma^TPC({sp.label})")],
            )

    def fill(
        self,
        collision: Collision,
        tracks: Sequence[Track],
        tables: Mapping[Species, Sequence[IdentificationRecord]],
    ) -> None:
        self.registry.fill("event/vertexz", collision.pos_z)
        for idx, trk in enumerate(tracks):
            mom = trk.inner_param
            self.registry.fill("event/tpcsignal", mom, trk.tpc_signal)
            for species, records in tables.items():
                rec = records[idx]
                self.registry.fill(f"expected/{species.code}", mom, trk.tpc_signal - rec.expected_signal_diff)
                self.registry.fill(f"expected_diff/{species.code}", mom, rec.expected_signal_diff)
                self.registry.fill(f"nsigma/{species.code}", trk.p, rec.separation)


def _nsigma(table: Mapping[Species, float], species: Species) -> float:
    # Missing PID information never passes a selection
    return table.get(species, math.inf)


def is_proton_nsigma(track: Track, config: PairSelectionConfig) -> bool:
    """|n_TPC| below threshold at low momentum, combined TPC+TOF above `tof_pt_min`."""
    return _tpc_or_combined(track, Species.PROTON, config)


def is_pion_nsigma(track: Track, config: PairSelectionConfig) -> bool:
    return _tpc_or_combined(track, Species.PION, config)


def _tpc_or_combined(track: Track, species: Species, config: PairSelectionConfig) -> bool:
    tpc = _nsigma(track.tpc_nsigma, species)
    if track.p < config.tof_pt_min:
        return abs(tpc) < config.nsigma_tpc
    tof = _nsigma(track.tof_nsigma, species)
    return math.hypot(tof, tpc) < config.nsigma_combined


def is_kaon_nsigma(track: Track, config: PairSelectionConfig | None = None) -> bool:
    """Momentum-sliced kaon selection; TOF is required above 0.55 GeV/c."""
    tpc = abs(_nsigma(track.tpc_nsigma, Species.KAON))
    mom = track.p
    if mom < 0.3:
        return tpc < 3.0
    if mom < 0.45:
        return tpc < 2.0
    if mom < 0.55:
        return tpc < 1.0
    tof = abs(_nsigma(track.tof_nsigma, Species.KAON))
    if mom < 1.5:
        return tof < 3.0 and tpc < 3.0
    if mom > 1.5:
        return tof < 2.0 and tpc < 3.0
    return False


def is_particle_nsigma(track: Track, pdg_code: int, config: PairSelectionConfig) -> bool:
    """Dispatch the n-sigma acceptance on a (signed) PDG code."""
    species = species_from_pdg(pdg_code)
    if species is Species.PROTON:
        return is_proton_nsigma(track, config)
    if species is Species.PION:
        return is_pion_nsigma(track, config)
    if species is Species.KAON:
        return is_kaon_nsigma(track, config)
    raise InvalidConfiguration(f"No n-sigma selection defined for PDG code {pdg_code}")


@dataclass(frozen=True)
class PidRow:
    """Long-format export row: one track under one enabled species."""

    collision_id: str
    track_id: str
    species: Species
    expected_signal_diff: float
    separation: float


def pid_table_rows(
    tracks: Sequence[Track], tables: Mapping[Species, Sequence[IdentificationRecord]]
) -> list[PidRow]:
    rows: list[PidRow] = []
    for species, records in tables.items():
        for trk, rec in zip(tracks, records):
            rows.append(PidRow(trk.collision_id, trk.track_id, species, rec.expected_signal_diff, rec.separation))
    return rows
