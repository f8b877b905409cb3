"""Example custom callback: rank Sigma0 candidates by distance to the nominal mass."""

from __future__ import annotations

import json
from pathlib import Path

from pidcomb.species import MASS_SIGMA0


def process(results, context):
    """Keep the ten candidates closest to the Sigma0 mass."""
    ranked = sorted(results, key=lambda r: abs(r.mass - MASS_SIGMA0))
    payload = {
        "n_total": len(results),
        "top_candidates": [
            {
                "collision_id": r.collision_id,
                "photon_id": r.photon_id,
                "lambda_id": r.lambda_id,
                "mass": r.mass,
                "pt": r.pt,
                "rapidity": r.rapidity,
            }
            for r in ranked[:10]
        ],
    }
    out = Path(context["output_path"]).with_name("top_candidates.json")
    out.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    print(f"Wrote {out}")
