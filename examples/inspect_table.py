"""Utility script to inspect table and histogram outputs produced by pidcomb."""

from __future__ import annotations

import argparse
from pathlib import Path

import numpy as np


def _require_pandas():
    """Import pandas with an actionable error if not installed."""
    try:
        import pandas as pd  # type: ignore
    except ModuleNotFoundError as exc:
        raise ModuleNotFoundError(
            "pandas is required. Install with: pip install pandas pyarrow"
        ) from exc
    return pd


def load_table(path: str):
    """Load table data from parquet/csv/pickle into a pandas DataFrame."""
    pd = _require_pandas()
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".parquet":
        return pd.read_parquet(p)
    if suffix == ".csv":
        return pd.read_csv(p)
    if suffix in (".pkl", ".pickle"):
        return pd.read_pickle(p)
    raise ValueError("Supported input formats: .parquet, .csv, .pkl")


def summarise_histograms(path: str) -> None:
    """Print name, shape and integral (flow bins included) of every dumped histogram."""
    with np.load(path) as data:
        for name in sorted(data.files):
            if "__edges" in name:
                continue
            values = data[name]
            print(f"{name.replace('__', '/'):<40s} shape={values.shape} sum={values.sum():g}")


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint for quick inspection of task outputs."""
    parser = argparse.ArgumentParser(description="Inspect pidcomb output table.")
    parser.add_argument("--input", required=True, help="Path to .parquet/.csv/.pkl output.")
    parser.add_argument("--head", type=int, default=10, help="Rows to print.")
    parser.add_argument("--histos", default=None, help="Optional .npz histogram dump to summarise.")
    args = parser.parse_args(argv)

    df = load_table(args.input)
    print(df.head(args.head).to_string(index=False))
    print(f"\nRows={len(df)}  Columns={len(df.columns)}")
    if len(df) and "mass" in df.columns:
        print(df["mass"].describe().to_string())

    if args.histos:
        print()
        summarise_histograms(args.histos)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
