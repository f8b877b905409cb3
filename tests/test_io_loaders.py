"""Unit tests for JSON input loaders, configuration and table writers."""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"


import json
import tempfile
import unittest
from pathlib import Path

import numpy as np
import pandas as pd

from pidcomb import PidToggle, Species
from pidcomb.composite import SigmaCore
from pidcomb.config import load_task_config_json
from pidcomb.histograms import Axis, HistogramRegistry
from pidcomb.io import load_events_json, load_events_with_columns, write_histograms, write_table
from pidcomb.pid import PidRow

LEG = {"px": 0.1, "py": 0.0, "pz": 0.0, "eta": 0.0, "tpc_crossed_rows": 120}


def v0_payload(v0_id: str, **extra) -> dict:
    item = {
        "v0_id": v0_id,
        "v0_type": 1,
        "px": 0.5,
        "py": 0.1,
        "pz": 0.0,
        "m_gamma": 0.01,
        "m_lambda": 1.2,
        "m_antilambda": 1.2,
        "v0_radius": 5.0,
        "dca_v0_daughters": 0.2,
        "dca_pos_to_pv": 0.1,
        "dca_neg_to_pv": 0.1,
        "positive": LEG,
        "negative": LEG,
    }
    item.update(extra)
    return item


class TestIOLoaders(unittest.TestCase):
    """Validate parsing for event batches and task configuration."""

    def _write(self, tmpdir: str, name: str, payload: dict) -> Path:
        path = Path(tmpdir) / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    def test_load_events_json_parses_event_payload(self) -> None:
        """Event loader should parse collision, track and V0 containers."""
        payload = {
            "events": [
                {
                    "collision": {"collision_id": "col42", "pos_z": 1.5, "cent_ft0c": 20.0, "mult_ntr": 12},
                    "tracks": [
                        {
                            "track_id": "t0",
                            "p": 0.5,
                            "pt": 0.45,
                            "eta": 0.2,
                            "charge": -1,
                            "tpc_signal": 70.0,
                            "tpc_nsigma": {"pi": 0.3, "Ka": -2.0},
                        }
                    ],
                    "v0s": [v0_payload("v0", pdg_code=22)],
                }
            ]
        }
        with tempfile.TemporaryDirectory() as tmpdir:
            [event] = load_events_json(self._write(tmpdir, "events.json", payload))
        self.assertEqual(event.event_id, "col42")
        self.assertEqual(event.collision.mult_ntr, 12)
        self.assertEqual(event.tracks[0].collision_id, "col42")
        self.assertEqual(event.tracks[0].tpc_nsigma[Species.KAON], -2.0)
        self.assertEqual(event.v0s[0].positive.tpc_crossed_rows, 120)
        self.assertEqual(event.v0s[0].pdg_code, 22)
        self.assertIsNone(event.v0s[0].gamma_bdt_score)

    def test_columns_are_common_to_all_v0_rows(self) -> None:
        """A score column counts only when every V0 row carries it."""
        scores = {"gamma_bdt_score": 0.5, "lambda_bdt_score": 0.5, "antilambda_bdt_score": 0.5}
        payload = {
            "events": [
                {"collision": {"collision_id": "a"}, "v0s": [v0_payload("v1", **scores)]},
                {"collision": {"collision_id": "b"}, "v0s": [v0_payload("v2", gamma_bdt_score=0.2)]},
            ]
        }
        with tempfile.TemporaryDirectory() as tmpdir:
            _, columns = load_events_with_columns(self._write(tmpdir, "events.json", payload))
        self.assertIn("gamma_bdt_score", columns)
        self.assertNotIn("lambda_bdt_score", columns)

    def test_missing_v0_fields_are_reported(self) -> None:
        payload = {"events": [{"collision": {}, "v0s": [{"v0_id": "x"}]}]}
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(ValueError):
                load_events_json(self._write(tmpdir, "events.json", payload))

    def test_events_key_is_required(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(ValueError):
                load_events_json(self._write(tmpdir, "events.json", {"tracks": []}))

    def test_task_config(self) -> None:
        """Config sections map onto the cut dataclasses; unknown keys are rejected."""
        payload = {
            "pid": {"toggles": {"pi": 1}, "consumers": [{"name": "femto", "inputs": ["pidTPCFullKa"]}]},
            "sigma0_cuts": {"window": 0.02},
            "ml_thresholds": {"lambda": 0.3},
            "pairs": {"process_pm": True, "pdg_code_one": 2212},
            "seed": 11,
        }
        with tempfile.TemporaryDirectory() as tmpdir:
            config = load_task_config_json(self._write(tmpdir, "config.json", payload))
            with self.assertRaises(ValueError):
                load_task_config_json(self._write(tmpdir, "bad.json", {"photon_cuts": {"max_mas": 1.0}}))
        self.assertEqual(config.toggles[Species.PION], PidToggle.ON)
        self.assertEqual(config.consumers[0].inputs, ("pidTPCFullKa",))
        self.assertEqual(config.sigma0_cuts.window, 0.02)
        self.assertEqual(config.sigma0_cuts.max_rapidity, 0.5)
        self.assertEqual(config.ml_thresholds.lambda_, 0.3)
        self.assertTrue(config.pairs.process_pm)
        self.assertEqual(config.pairs.pdg_code_one, 2212)
        self.assertEqual(config.seed, 11)

    def test_config_values_keep_their_json_type(self) -> None:
        """String or mistyped values are rejected rather than coerced."""
        with tempfile.TemporaryDirectory() as tmpdir:
            for section in (
                {"pairs": {"process_pm": "false"}},
                {"pairs": {"pdg_code_one": 2212.5}},
                {"pairs": {"eta_max": True}},
                {"sigma0_cuts": {"window": "0.02"}},
            ):
                with self.assertRaises(ValueError):
                    load_task_config_json(self._write(tmpdir, "bad.json", section))
            config = load_task_config_json(self._write(tmpdir, "ok.json", {"pairs": {"eta_max": 1}}))
        self.assertIsInstance(config.pairs.eta_max, float)
        self.assertEqual(config.pairs.eta_max, 1.0)


class TestWriters(unittest.TestCase):
    """Validate table and histogram export."""

    def test_write_table_csv(self) -> None:
        rows = [
            SigmaCore("c0", pt=1.0, mass=1.19, rapidity=0.1),
            SigmaCore("c1", pt=2.0, mass=1.20, rapidity=-0.1),
        ]
        with tempfile.TemporaryDirectory() as tmpdir:
            out = Path(tmpdir) / "cores.csv"
            write_table(out, rows)
            df = pd.read_csv(out)
        self.assertEqual(list(df.columns), ["collision_id", "pt", "mass", "rapidity"])
        self.assertEqual(len(df), 2)

    def test_enum_columns_are_written_by_name(self) -> None:
        rows = [PidRow("c0", "t0", Species.KAON, 1.0, 0.5)]
        with tempfile.TemporaryDirectory() as tmpdir:
            out = Path(tmpdir) / "pid.pkl"
            write_table(out, rows)
            df = pd.read_pickle(out)
        self.assertEqual(df["species"].iloc[0], "KAON")

    def test_unsupported_suffix(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(ValueError):
                write_table(Path(tmpdir) / "out.txt", [SigmaCore("c0", 1.0, 1.19, 0.0)])

    def test_write_histograms(self) -> None:
        registry = HistogramRegistry("r")
        registry.add("dir/h", [Axis.uniform(2, 0.0, 2.0)])
        registry.fill("dir/h", 0.5)
        with tempfile.TemporaryDirectory() as tmpdir:
            out = Path(tmpdir) / "histos.npz"
            write_histograms(out, registry)
            with np.load(out) as data:
                np.testing.assert_allclose(data["dir__h"], [0.0, 1.0, 0.0, 0.0])
                np.testing.assert_allclose(data["dir__h__edges0"], [0.0, 1.0, 2.0])


if __name__ == "__main__":
    unittest.main()
