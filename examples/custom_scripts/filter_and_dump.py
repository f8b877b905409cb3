"""Example custom callback: keep low-k* pairs and dump them per charge container."""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"


import json
from collections import Counter
from pathlib import Path

KSTAR_MAX = 0.1


def process(results, context):
    """Filter pair records by k* and write a compact JSON report."""
    selected = [r for r in results if r.kstar < KSTAR_MAX]
    payload = {
        "n_selected": len(selected),
        "per_sign": dict(Counter(r.sign.value for r in selected)),
        "selected": [
            {
                "collision_id": r.collision_id,
                "tracks": [r.first_id, r.second_id],
                "kstar": r.kstar,
                "kt": r.kt,
                "sign": r.sign.value,
            }
            for r in selected
        ],
    }
    out = Path(context["output_path"]).with_name("low_kstar_pairs.json")
    out.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    print(f"Wrote {out}")
