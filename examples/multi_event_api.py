"""Multi-event API example: Sigma0 building on synthetic V0 tables.

Run from repository root without installation:
    PYTHONPATH=src python examples/multi_event_api.py
"""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"


from pathlib import Path

import numpy as np

from pidcomb import Collision, EventInput, Sigma0Builder, V0Candidate, V0Leg
from pidcomb.io import write_histograms, write_table
from pidcomb.species import MASS_LAMBDA, MASS_SIGMA0

P_STAR = (MASS_SIGMA0**2 - MASS_LAMBDA**2) / (2.0 * MASS_SIGMA0)


def make_event(rng: np.random.Generator, idx: int, n_v0: int = 6) -> EventInput:
    """One collision with a true back-to-back Sigma0 pair plus random V0s."""
    cid = f"col{idx}"
    leg = V0Leg(px=0.2, py=0.0, pz=0.02, eta=0.1, tpc_crossed_rows=110)
    phi = rng.uniform(0.0, 2.0 * np.pi)
    momenta = [
        (P_STAR * np.cos(phi), P_STAR * np.sin(phi), 0.0),
        (-P_STAR * np.cos(phi), -P_STAR * np.sin(phi), 0.0),
    ]
    momenta += [tuple(rng.normal(0.0, 0.6, size=3)) for _ in range(n_v0 - 2)]
    v0s = tuple(
        V0Candidate(
            v0_id=f"{cid}_v{k}",
            collision_id=cid,
            v0_type=1,
            px=float(p[0]),
            py=float(p[1]),
            pz=float(p[2]),
            m_gamma=abs(float(rng.normal(0.0, 0.02))),
            m_lambda=float(rng.normal(MASS_LAMBDA, 0.003)),
            m_antilambda=float(rng.normal(MASS_LAMBDA, 0.02)),
            v0_radius=float(rng.uniform(1.0, 60.0)),
            dca_v0_daughters=float(rng.uniform(0.0, 1.0)),
            dca_pos_to_pv=float(rng.uniform(0.02, 1.0)),
            dca_neg_to_pv=float(rng.uniform(0.02, 1.0)),
            positive=leg,
            negative=leg,
        )
        for k, p in enumerate(momenta)
    )
    collision = Collision(cid, pos_z=float(rng.normal(0.0, 5.0)), cent_ft0c=float(rng.uniform(0.0, 100.0)))
    return EventInput(collision=collision, v0s=v0s)


def main() -> int:
    """Generate events, build Sigma0 candidates, and write a parquet table."""
    rng = np.random.default_rng(7)
    events = [make_event(rng, i) for i in range(50)]
    builder = Sigma0Builder()
    candidates = builder.process_events(events)

    out_path = Path("examples/sigma0_candidates.parquet")
    write_table(out_path, candidates)
    write_histograms(out_path.with_suffix(".npz"), builder.histos)
    for label, count in zip(builder.funnel.labels, builder.funnel.counts):
        print(f"{label:<20s} {count}")
    print(f"Wrote {len(candidates)} candidates to {out_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
