"""Input/output helpers for JSON event inputs and tabular result export."""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"


import json
from dataclasses import asdict, fields, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Sequence

import numpy as np

from .histograms import HistogramRegistry
from .models import Collision, EventInput, Track, V0Candidate, V0Leg
from .species import Species, species_from_name

_V0_REQUIRED = (
    "v0_id",
    "v0_type",
    "px",
    "py",
    "pz",
    "m_gamma",
    "m_lambda",
    "m_antilambda",
    "v0_radius",
    "dca_v0_daughters",
    "dca_pos_to_pv",
    "dca_neg_to_pv",
)
_V0_OPTIONAL_FLOAT = (
    "qt_arm",
    "alpha",
    "v0_cos_pa",
    "z",
    "psi_pair",
    "gamma_bdt_score",
    "lambda_bdt_score",
    "antilambda_bdt_score",
    "px_mc",
    "py_mc",
)
_V0_OPTIONAL_INT = ("pdg_code", "pdg_code_mother", "mother_mc_part_id")


def load_events_json(path: str | Path) -> list[EventInput]:
    """Load multi-event input JSON into `EventInput` objects.

    Expected shape:
    {
      "events": [
        {"collision": {...}, "tracks": [...], "v0s": [...]},
        ...
      ]
    }
    """
    events, _ = load_events_with_columns(path)
    return events


def load_events_with_columns(path: str | Path) -> tuple[list[EventInput], frozenset[str]]:
    """Load events and report the V0 columns present on every V0 row.

    The column set is what selects the Sigma0 selection mode; a column that
    is missing on any row counts as absent.
    """
    data = _load_json(path)
    events_data = data.get("events")
    if not isinstance(events_data, list):
        raise ValueError("Events JSON must contain a list under key 'events'.")
    out: list[EventInput] = []
    columns: set[str] | None = None
    for idx, event in enumerate(events_data):
        if not isinstance(event, dict):
            raise ValueError(f"Event entry at index {idx} must be an object.")
        collision = _parse_collision(event.get("collision", {}), idx)
        context = f"event '{collision.collision_id}'"
        tracks_data = event.get("tracks", [])
        v0s_data = event.get("v0s", [])
        if not isinstance(tracks_data, list):
            raise ValueError(f"{context}: key 'tracks' must be a list.")
        if not isinstance(v0s_data, list):
            raise ValueError(f"{context}: key 'v0s' must be a list.")
        tracks = tuple(
            _parse_track_item(item, tidx, context, collision.collision_id)
            for tidx, item in enumerate(tracks_data)
        )
        v0s = []
        for vidx, item in enumerate(v0s_data):
            v0s.append(_parse_v0_item(item, vidx, context, collision.collision_id))
            keys = set(item)
            columns = keys if columns is None else columns & keys
        out.append(EventInput(collision=collision, tracks=tracks, v0s=tuple(v0s)))
    return out, frozenset(columns or ())


def write_table(path: str | Path, rows: Sequence[Any]) -> None:
    """Write dataclass rows into a Parquet/CSV/Pickle table."""
    pd = _require_pandas()
    df = pd.DataFrame([_flatten_row(row) for row in rows])
    out = Path(path)
    suffix = out.suffix.lower()
    if suffix == ".parquet":
        df.to_parquet(out, index=False)
    elif suffix in (".pkl", ".pickle"):
        df.to_pickle(out)
    elif suffix == ".csv":
        df.to_csv(out, index=False)
    else:
        raise ValueError(
            f"Unsupported output format '{suffix}'. Use .parquet, .csv, or .pkl"
        )


def write_histograms(path: str | Path, registry: HistogramRegistry) -> None:
    """Dump every histogram of a registry (with flow bins and edges) to an `.npz` file."""
    arrays: dict[str, np.ndarray] = {}
    for name in registry.names():
        hist = registry.get(name)
        key = name.replace("/", "__")
        arrays[key] = hist.values_flow
        for idx, axis in enumerate(hist.axes):
            arrays[f"{key}__edges{idx}"] = np.asarray(axis.edges)
    np.savez_compressed(Path(path), **arrays)


def _flatten_row(row: Any) -> dict[str, Any]:
    """Turn one output row into a flat, DataFrame-ready dictionary."""
    if not is_dataclass(row):
        raise ValueError(f"Cannot write row of type {type(row).__name__}.")
    flat: dict[str, Any] = {}
    for key, value in asdict(row).items():
        if isinstance(value, Enum):
            value = value.name if isinstance(value, Species) else value.value
        elif isinstance(value, tuple):
            value = ",".join(v.name if isinstance(v, Enum) else str(v) for v in value)
        flat[key] = value
    return flat


def _require_pandas():
    """Import pandas lazily and provide a clear installation hint on failure."""
    try:
        import pandas as pd  # type: ignore
    except ModuleNotFoundError as exc:
        raise ModuleNotFoundError(
            "pandas is required to write output tables. Install pandas and pyarrow."
        ) from exc
    return pd


def _parse_collision(item: Any, idx: int) -> Collision:
    if not isinstance(item, dict):
        raise ValueError(f"Collision of event at index {idx} must be an object.")
    kwargs: dict[str, Any] = {"collision_id": str(item.get("collision_id", f"col{idx}"))}
    for f in fields(Collision):
        if f.name == "collision_id" or f.name not in item:
            continue
        kwargs[f.name] = int(item[f.name]) if f.name == "mult_ntr" else float(item[f.name])
    return Collision(**kwargs)


def _parse_nsigma(value: Any, context: str) -> dict[Species, float]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"n-sigma mapping in {context} must be an object.")
    return {species_from_name(str(k)): float(v) for k, v in value.items()}


def _parse_track_item(item: Any, idx: int, context: str, collision_id: str) -> Track:
    """Parse one track dictionary into a `Track`."""
    if not isinstance(item, dict):
        raise ValueError(f"Track entry at index {idx} in {context} must be an object.")
    for key in ("track_id", "p", "pt", "eta"):
        if key not in item:
            raise ValueError(f"Track at index {idx} in {context} must define '{key}'.")
    inner = item.get("tpc_inner_param")
    return Track(
        track_id=str(item["track_id"]),
        collision_id=str(item.get("collision_id", collision_id)),
        p=float(item["p"]),
        pt=float(item["pt"]),
        eta=float(item["eta"]),
        phi=float(item.get("phi", 0.0)),
        charge=int(item.get("charge", 0)),
        tpc_signal=float(item.get("tpc_signal", 0.0)),
        tpc_inner_param=None if inner is None else float(inner),
        tpc_nsigma=_parse_nsigma(item.get("tpc_nsigma"), context),
        tof_nsigma=_parse_nsigma(item.get("tof_nsigma"), context),
    )


def _parse_leg(item: Any, context: str) -> V0Leg:
    if not isinstance(item, dict):
        raise ValueError(f"V0 daughter in {context} must be an object.")
    return V0Leg(
        px=float(item["px"]),
        py=float(item["py"]),
        pz=float(item["pz"]),
        eta=float(item["eta"]),
        tpc_nsigma_el=float(item.get("tpc_nsigma_el", 0.0)),
        tpc_nsigma_pi=float(item.get("tpc_nsigma_pi", 0.0)),
        tpc_nsigma_pr=float(item.get("tpc_nsigma_pr", 0.0)),
        tpc_crossed_rows=int(item.get("tpc_crossed_rows", 0)),
        its_ncls=int(item.get("its_ncls", 0)),
        its_cluster_sizes=int(item.get("its_cluster_sizes", 0)),
    )


def _parse_v0_item(item: Any, idx: int, context: str, collision_id: str) -> V0Candidate:
    """Parse one V0 dictionary into a `V0Candidate`."""
    if not isinstance(item, dict):
        raise ValueError(f"V0 entry at index {idx} in {context} must be an object.")
    missing = [key for key in _V0_REQUIRED + ("positive", "negative") if key not in item]
    if missing:
        raise ValueError(f"V0 at index {idx} in {context} is missing: {', '.join(missing)}")
    kwargs: dict[str, Any] = {
        "v0_id": str(item["v0_id"]),
        "collision_id": str(item.get("collision_id", collision_id)),
        "v0_type": int(item["v0_type"]),
        "positive": _parse_leg(item["positive"], context),
        "negative": _parse_leg(item["negative"], context),
    }
    for key in _V0_REQUIRED[2:]:
        kwargs[key] = float(item[key])
    for key in _V0_OPTIONAL_FLOAT:
        if item.get(key) is not None:
            kwargs[key] = float(item[key])
    for key in _V0_OPTIONAL_INT:
        if item.get(key) is not None:
            kwargs[key] = int(item[key])
    return V0Candidate(**kwargs)


def _load_json(path: str | Path) -> dict[str, Any]:
    """Read and validate a JSON object document from disk."""
    raw = Path(path).read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"JSON document at {path} must be an object.")
    return data
