"""Example custom callback: summarise the Sigma0 selection funnel."""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"


import json
from pathlib import Path


def process(results, context):
    """Write the per-stage survivor counts next to the output table."""
    registry = context["histograms"]
    if "hCandidateBuilderSelection" not in registry:
        print("No selection funnel in this run; nothing to summarise.")
        return
    funnel = registry.get("hCandidateBuilderSelection")
    labels = funnel.bin_labels
    summary = {
        "n_results": len(results),
        "stages": {labels.get(i, str(i)): float(v) for i, v in enumerate(funnel.values)},
    }
    out_path = Path(context["output_path"]).with_name("funnel.json")
    out_path.write_text(json.dumps(summary, indent=2), encoding="utf-8")
    print(f"Funnel summary written to {out_path}")
