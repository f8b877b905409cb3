"""Command-line interface for the PID, Sigma0, pair and IVM tasks."""

from __future__ import annotations

import argparse
import importlib.util
from dataclasses import replace
from pathlib import Path
from typing import Any

from .calibration import DirectoryCalibrationStore
from .config import TaskConfig, load_task_config_json
from .histograms import HistogramRegistry
from .io import load_events_with_columns, write_histograms, write_table
from .ivm import IvmSelector
from .logger import logger
from .pairs import SameEventPairTask
from .pid import PidEvaluator, PidQa, PidToggle, pid_table_rows
from .response import load_detector_response
from .sigma0 import Sigma0Builder
from .species import species_from_name


def build_parser() -> argparse.ArgumentParser:
    """Define and return the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="pidcomb",
        description="TPC PID, Sigma0 building, same-event pairs and N-track IVMs on JSON event inputs.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--events", required=True, help="Input JSON with key 'events'.")
    common.add_argument("--config", default=None, help="Task configuration JSON.")
    common.add_argument(
        "--out",
        required=True,
        help="Output table file (.parquet, .csv, .pkl).",
    )
    common.add_argument("--histos-out", default=None, help="Optional .npz dump of the task histograms.")
    common.add_argument(
        "--custom-script",
        default=None,
        help="Path to Python file with process(results, context) function.",
    )

    pid = sub.add_parser("pid", parents=[common], help="Produce TPC n-sigma tables.")
    pid.add_argument("--param-file", default=None, help="Offline JSON with the response parametrizations.")
    pid.add_argument("--calib-dir", default=None, help="Directory-backed calibration store root.")
    pid.add_argument("--timestamp", type=int, default=None, help="Calibration timestamp in ms (-1: now).")
    pid.add_argument(
        "--enable",
        default=None,
        help="Comma-separated species whose tables are forced on (e.g. pi,ka,pr).",
    )
    pid.add_argument("--log-axis", action="store_true", help="Use a logarithmic momentum axis in QA.")

    sigma0 = sub.add_parser("sigma0", parents=[common], help="Build Sigma0 candidates from V0s.")
    sigma0.add_argument("--photon-out", default=None, help="Output table for photon-leg rows.")
    sigma0.add_argument("--lambda-out", default=None, help="Output table for Lambda-leg rows.")
    sigma0.add_argument("--mc", action="store_true", help="Run the Monte-Carlo efficiency path.")
    sigma0.add_argument("--sigma-window", type=float, default=None, help="Sigma0 mass window (GeV/c^2).")
    sigma0.add_argument("--max-rapidity", type=float, default=None, help="Sigma0 |y| cut.")

    pairs = sub.add_parser("pairs", parents=[common], help="Build same-event track pairs.")
    pairs.add_argument("--seed", type=int, default=None, help="Seed of the leg-order generator.")

    sub.add_parser("ivm", parents=[common], help="Invariant masses of PID-selected track tuples.")
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint: load inputs, run the chosen task, write tables, optional custom hook."""
    args = build_parser().parse_args(argv)
    config = load_task_config_json(args.config) if args.config else TaskConfig()
    events, columns = load_events_with_columns(args.events)
    logger.info("Loaded %d events from %s", len(events), args.events)

    runners = {"pid": _run_pid, "sigma0": _run_sigma0, "pairs": _run_pairs, "ivm": _run_ivm}
    results, registry = runners[args.command](args, config, events, columns)
    write_table(args.out, results)
    if args.histos_out:
        write_histograms(args.histos_out, registry)

    if args.custom_script:
        run_custom_script(
            script_path=args.custom_script,
            results=results,
            context={
                "command": args.command,
                "events_path": args.events,
                "config": config,
                "histograms": registry,
                "output_path": args.out,
            },
        )
    return 0


def _run_pid(args, config: TaskConfig, events, columns):
    response_cfg = config.response
    if args.param_file is not None:
        response_cfg = replace(response_cfg, param_file=args.param_file)
    if args.timestamp is not None:
        response_cfg = replace(response_cfg, timestamp=args.timestamp)
    store = DirectoryCalibrationStore(args.calib_dir) if args.calib_dir else None
    response = load_detector_response(response_cfg, store)

    toggles = dict(config.toggles)
    if args.enable:
        for name in args.enable.split(","):
            if name.strip():
                toggles[species_from_name(name)] = PidToggle.ON
    evaluator = PidEvaluator(response, toggles, config.consumers)
    qa = PidQa(registry=HistogramRegistry("pid-qa"), log_axis=args.log_axis)

    rows = []
    for event in events:
        tables = evaluator.process(event.tracks)
        qa.fill(event.collision, event.tracks, tables)
        rows.extend(pid_table_rows(event.tracks, tables))
    return rows, qa.registry


def _run_sigma0(args, config: TaskConfig, events, columns):
    sigma_cuts = config.sigma0_cuts
    if args.sigma_window is not None:
        sigma_cuts = replace(sigma_cuts, window=args.sigma_window)
    if args.max_rapidity is not None:
        sigma_cuts = replace(sigma_cuts, max_rapidity=args.max_rapidity)
    builder = Sigma0Builder.from_schema(
        columns,
        photon_cuts=config.photon_cuts,
        lambda_cuts=config.lambda_cuts,
        sigma_cuts=sigma_cuts,
        ml_thresholds=config.ml_thresholds,
    )
    logger.info("Sigma0 selection mode: %s", builder.mode.value)
    if args.mc:
        candidates = []
        for event in events:
            candidates.extend(builder.process_monte_carlo(event))
    else:
        candidates = builder.process_events(events)
        if args.photon_out:
            write_table(args.photon_out, builder.tables.photon_extras)
        if args.lambda_out:
            write_table(args.lambda_out, builder.tables.lambda_extras)
    for idx, label in enumerate(builder.funnel.labels):
        logger.info("%-20s %d", label, builder.funnel.count(idx))
    return candidates, builder.histos


def _run_pairs(args, config: TaskConfig, events, columns):
    seed = args.seed if args.seed is not None else config.seed
    task = SameEventPairTask(config.pairs, seed=seed)
    by_sign = task.process_events(events)
    return [rec for records in by_sign.values() for rec in records], task.histos


def _run_ivm(args, config: TaskConfig, events, columns):
    if not config.ivm_slots:
        raise ValueError("The ivm command needs 'ivm_slots' in the task configuration.")
    selector = IvmSelector(config.ivm_slots)
    for event in events:
        selector.process_collision(event)
    return list(selector.candidates), selector.histos


def run_custom_script(script_path: str, results: list[Any], context: dict[str, Any]) -> None:
    """Execute user-supplied post-processing callback `process(results, context)`."""
    module = _load_module(script_path)
    process = getattr(module, "process", None)
    if process is None or not callable(process):
        raise ValueError(
            f"Custom script {script_path} must define callable process(results, context)."
        )
    process(results, context)


def _load_module(script_path: str):
    """Import a Python module from an arbitrary file path."""
    path = Path(script_path)
    spec = importlib.util.spec_from_file_location(path.stem, path)
    if spec is None or spec.loader is None:
        raise ValueError(f"Cannot import custom script: {script_path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


if __name__ == "__main__":
    raise SystemExit(main())
