"""Task configuration loaded from a JSON document.

Every top-level key is optional and maps onto one frozen dataclass:

{
  "response": {"param_file": "...", "ccdb_path": "...", "timestamp": -1},
  "pid": {"toggles": {"pi": 1, "ka": -1}, "consumers": [{"name": "...", "inputs": ["pidTPCFullKa"]}]},
  "photon_cuts": {...}, "lambda_cuts": {...}, "sigma0_cuts": {...},
  "ml_thresholds": {"gamma": 0.1, "lambda": 0.1, "antilambda": 0.1},
  "pairs": {...}, "seed": 12345,
  "ivm_slots": [{"pid": "pi", "sign": 1, "nsigma": {"pi": [-3, 3]}}, ...]
}
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

from .ivm import PidSlot, slots_from_config
from .models import LambdaCuts, MLThresholds, PairSelectionConfig, PhotonCuts, Sigma0Cuts
from .pid import Consumer, PidToggle, parse_toggles
from .response import ResponseConfig
from .species import Species


@dataclass(frozen=True)
class TaskConfig:
    response: ResponseConfig = field(default_factory=ResponseConfig)
    toggles: Mapping[Species, PidToggle] = field(default_factory=dict)
    consumers: tuple[Consumer, ...] = ()
    photon_cuts: PhotonCuts = field(default_factory=PhotonCuts)
    lambda_cuts: LambdaCuts = field(default_factory=LambdaCuts)
    sigma0_cuts: Sigma0Cuts = field(default_factory=Sigma0Cuts)
    ml_thresholds: MLThresholds = field(default_factory=MLThresholds)
    pairs: PairSelectionConfig = field(default_factory=PairSelectionConfig)
    seed: int | None = None
    ivm_slots: tuple[PidSlot, ...] = ()


def _build(cls, data: Any, section: str, renames: Mapping[str, str] | None = None):
    """Instantiate a dataclass from a JSON object, rejecting unknown keys."""
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ValueError(f"Config section '{section}' must be an object.")
    renames = renames or {}
    known = {f.name: f for f in fields(cls)}
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        name = renames.get(key, key)
        if name not in known:
            raise ValueError(f"Unknown key '{key}' in config section '{section}'.")
        default = getattr(cls(), name)
        kwargs[name] = _checked(value, type(default), f"{section}.{key}")
    return cls(**kwargs)


def _checked(value: Any, expected: type, where: str) -> Any:
    """Return `value` as `expected`; only int -> float is widened."""
    if isinstance(value, bool) and expected is not bool:
        raise ValueError(f"Config key '{where}' must be {expected.__name__}, got bool.")
    if expected is float and isinstance(value, int):
        return float(value)
    if not isinstance(value, expected):
        raise ValueError(f"Config key '{where}' must be {expected.__name__}, got {type(value).__name__}.")
    return value


def _parse_consumers(raw: Any) -> tuple[Consumer, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ValueError("Config key 'pid.consumers' must be a list.")
    out: list[Consumer] = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict) or not isinstance(item.get("inputs", []), list):
            raise ValueError(f"Consumer at index {idx} must be an object with an 'inputs' list.")
        out.append(Consumer(name=str(item.get("name", f"consumer{idx}")), inputs=tuple(str(x) for x in item.get("inputs", []))))
    return tuple(out)


def task_config_from_dict(data: Mapping[str, Any]) -> TaskConfig:
    pid = data.get("pid", {})
    if not isinstance(pid, dict):
        raise ValueError("Config section 'pid' must be an object.")
    toggles = pid.get("toggles", {})
    if not isinstance(toggles, dict):
        raise ValueError("Config key 'pid.toggles' must be an object.")
    seed = data.get("seed")
    return TaskConfig(
        response=_build(ResponseConfig, data.get("response"), "response"),
        toggles=parse_toggles(toggles),
        consumers=_parse_consumers(pid.get("consumers")),
        photon_cuts=_build(PhotonCuts, data.get("photon_cuts"), "photon_cuts"),
        lambda_cuts=_build(LambdaCuts, data.get("lambda_cuts"), "lambda_cuts"),
        sigma0_cuts=_build(Sigma0Cuts, data.get("sigma0_cuts"), "sigma0_cuts"),
        ml_thresholds=_build(MLThresholds, data.get("ml_thresholds"), "ml_thresholds", {"lambda": "lambda_"}),
        pairs=_build(PairSelectionConfig, data.get("pairs"), "pairs"),
        seed=None if seed is None else int(seed),
        ivm_slots=tuple(slots_from_config(data.get("ivm_slots", []))),
    )


def load_task_config_json(path: str | Path) -> TaskConfig:
    """Read a task configuration file; a missing section keeps its defaults."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"JSON document at {path} must be an object.")
    return task_config_from_dict(data)
