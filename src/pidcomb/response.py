"""Detector-response model for the TPC energy-loss measurement.

The response holds exactly one signal and one resolution parametrization.
Both are resolved once, at initialization, either from an offline JSON file
or from a timestamp-indexed calibration store, and are never replaced while
tracks are being processed.

Expected signal (`BetheBloch`): ALEPH-style Bethe-Bloch curve evaluated at
`bg = p_inner / m`, normalised to the MIP signal and scaled by
`|z| ** charge_factor`. Parameters: `(mip, kp1, kp2, kp3, kp4, kp5,
charge_factor)`.

Expected resolution (`TPCReso`): `signal * sqrt(p0^2 + (p1 / bg)^2)`.
Parameters: `(p0[, p1])`.
"""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"

import json
import math
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence

from scipy.optimize import brentq

from .calibration import CalibrationStore, Parametrization, parametrization_from_dict
from .exceptions import CalibrationUnavailable, InvalidConfiguration, NotFound
from .logger import logger
from .models import Track
from .species import Species

DEFAULT_BETHE_BLOCH = (50.0, 0.0320981, 19.9768, 2.52666e-16, 2.72123, 6.08092, 2.3)
DEFAULT_TPC_RESO = (0.07, 0.0)


def bethe_bloch_aleph(bg: float, kp1: float, kp2: float, kp3: float, kp4: float, kp5: float) -> float:
    """ALEPH parametrization of the mean energy loss as a function of beta*gamma.

    Returns NaN for a non-positive beta*gamma.
    """
    if not bg > 0.0:
        return math.nan
    beta = bg / math.sqrt(1.0 + bg * bg)
    aa = beta**kp4
    bb = math.log(kp3 + bg ** (-kp5))
    return (kp2 - aa - bb) * kp1 / aa


def _bethe_bloch(params: Sequence[float], bg: float, charge: int) -> float:
    mip, kp1, kp2, kp3, kp4, kp5, charge_factor = params
    return mip * bethe_bloch_aleph(bg, kp1, kp2, kp3, kp4, kp5) * abs(charge) ** charge_factor


def _tpc_reso(params: Sequence[float], signal: float, bg: float) -> float:
    p0 = params[0]
    p1 = params[1] if len(params) > 1 else 0.0
    if not bg > 0.0:
        return math.nan
    return signal * math.sqrt(p0 * p0 + (p1 / bg) ** 2)


# name -> (function, min parameters, max parameters)
SIGNAL_FUNCTIONS: dict[str, tuple[Callable[[Sequence[float], float, int], float], int, int]] = {
    "BetheBloch": (_bethe_bloch, 7, 7),
}
SIGMA_FUNCTIONS: dict[str, tuple[Callable[[Sequence[float], float, float], float], int, int]] = {
    "TPCReso": (_tpc_reso, 1, 2),
}


def _lookup(table, par: Parametrization, kind: str):
    """Resolve a parametrization to its function, checking the parameter count."""
    if par.name not in table:
        raise InvalidConfiguration(f"Unknown {kind} parametrization '{par.name}'")
    fn, n_min, n_max = table[par.name]
    n = len(par.parameters)
    if not n_min <= n <= n_max:
        expected = str(n_min) if n_min == n_max else f"{n_min}-{n_max}"
        raise InvalidConfiguration(f"{par.name} expects {expected} parameters, got {n}")
    return fn


@dataclass(frozen=True)
class ResponseConfig:
    """Where and how to load the response parametrizations."""

    param_file: str = ""
    signal_name: str = "BetheBloch"
    sigma_name: str = "TPCReso"
    ccdb_url: str = "http://alice-ccdb.cern.ch"
    ccdb_path: str = "Analysis/PID/TPC"
    timestamp: int = -1


class DetectorResponse:
    """Expected signal and resolution for a track under a species hypothesis."""

    def __init__(self, signal: Parametrization, sigma: Parametrization):
        self._signal_fn = _lookup(SIGNAL_FUNCTIONS, signal, "signal")
        self._sigma_fn = _lookup(SIGMA_FUNCTIONS, sigma, "resolution")
        self.signal = signal
        self.sigma = sigma

    @classmethod
    def default(cls) -> "DetectorResponse":
        """Response with the built-in default parameters."""
        return cls(
            Parametrization("BetheBloch", DEFAULT_BETHE_BLOCH),
            Parametrization("TPCReso", DEFAULT_TPC_RESO),
        )

    def expected_signal_at(self, species: Species, momentum: float) -> float:
        bg = momentum / species.mass
        return self._signal_fn(self.signal.parameters, bg, species.charge)

    def expected_sigma_at(self, species: Species, momentum: float) -> float:
        bg = momentum / species.mass
        signal = self._signal_fn(self.signal.parameters, bg, species.charge)
        return self._sigma_fn(self.sigma.parameters, signal, bg)

    def expected_signal(self, species: Species, track: Track) -> float:
        return self.expected_signal_at(species, track.inner_param)

    def expected_sigma(self, species: Species, track: Track) -> float:
        return self.expected_sigma_at(species, track.inner_param)

    def band_crossing_momentum(
        self, first: Species, second: Species, p_min: float, p_max: float
    ) -> float:
        """Momentum in `[p_min, p_max]` where two expected-signal bands cross.

        Raises `ValueError` when the difference does not change sign in the
        bracket.
        """
        def diff(p: float) -> float:
            return self.expected_signal_at(first, p) - self.expected_signal_at(second, p)

        if diff(p_min) * diff(p_max) > 0.0:
            raise ValueError(
                f"No {first.code}/{second.code} band crossing between {p_min} and {p_max} GeV/c"
            )
        return brentq(diff, p_min, p_max, xtol=1e-9)


def now_ms() -> int:
    return int(time.time() * 1000)


def load_param_from_file(path: str | Path, name: str) -> Parametrization:
    """Load one named parametrization from an offline JSON file.

    The file maps parametrization names to objects with a `parameters` list.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise CalibrationUnavailable(name, str(path)) from exc
    if not isinstance(data, dict) or name not in data:
        raise CalibrationUnavailable(name, str(path))
    try:
        return parametrization_from_dict(data[name], context=str(path), default_name=name)
    except ValueError as exc:
        raise CalibrationUnavailable(name, str(path)) from exc


def load_param_from_store(store: CalibrationStore, path: str, timestamp: int) -> Parametrization:
    try:
        return store.fetch(path, timestamp)
    except (NotFound, ValueError, OSError) as exc:
        raise CalibrationUnavailable(path, "calibration store", timestamp) from exc


def load_detector_response(
    config: ResponseConfig, store: CalibrationStore | None = None
) -> DetectorResponse:
    """Resolve signal and resolution parametrizations and build the response.

    With `config.param_file` set both objects come from that file, otherwise
    from `store` at `<ccdb_path>/<name>`. A timestamp of -1 means the current
    time; timestamps in the future are rejected.
    """
    current = now_ms()
    timestamp = current if config.timestamp < 0 else config.timestamp
    if timestamp > current:
        raise InvalidConfiguration(
            f"Calibration timestamp {timestamp} is later than current time {current}"
        )

    if config.param_file:
        logger.info(
            "Loading exp. signal parametrization from file %s, using param: %s",
            config.param_file,
            config.signal_name,
        )
        signal = load_param_from_file(config.param_file, config.signal_name)
        logger.info(
            "Loading exp. sigma parametrization from file %s, using param: %s",
            config.param_file,
            config.sigma_name,
        )
        sigma = load_param_from_file(config.param_file, config.sigma_name)
    else:
        if store is None:
            raise InvalidConfiguration("No parametrization file given and no calibration store configured")
        path = f"{config.ccdb_path}/{config.signal_name}"
        logger.info("Loading exp. signal parametrization from %s, path %s for timestamp %d", config.ccdb_url, path, timestamp)
        signal = load_param_from_store(store, path, timestamp)
        path = f"{config.ccdb_path}/{config.sigma_name}"
        logger.info("Loading exp. sigma parametrization from %s, path %s for timestamp %d", config.ccdb_url, path, timestamp)
        sigma = load_param_from_store(store, path, timestamp)
    return DetectorResponse(signal, sigma)
