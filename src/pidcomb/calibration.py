"""Timestamp-indexed calibration stores for detector-response parametrizations.

A store resolves `fetch(path, timestamp)` to the `Parametrization` whose
validity interval contains the timestamp; the most recent `valid_from` wins
when intervals overlap. A missing object raises `NotFound`.
"""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, Sequence

from .exceptions import NotFound


@dataclass(frozen=True)
class Parametrization:
    """Named, versioned set of response parameters.

    `valid_until=None` means open-ended validity.
    """

    name: str
    parameters: tuple[float, ...]
    valid_from: int = 0
    valid_until: int | None = None

    def is_valid_at(self, timestamp: int) -> bool:
        if timestamp < self.valid_from:
            return False
        return self.valid_until is None or timestamp < self.valid_until


class CalibrationStore(Protocol):
    """Interface consumed by the detector-response loader."""

    def fetch(self, path: str, timestamp: int) -> Parametrization:
        ...


def _select_valid(path: str, objects: Sequence[Parametrization], timestamp: int) -> Parametrization:
    valid = [obj for obj in objects if obj.is_valid_at(timestamp)]
    if not valid:
        raise NotFound(path, timestamp)
    return max(valid, key=lambda obj: obj.valid_from)


class InMemoryCalibrationStore:
    """Dictionary-backed store, used for tests and for pre-fetched objects."""

    def __init__(self) -> None:
        self._objects: dict[str, list[Parametrization]] = {}
        self.fetch_count = 0

    def put(self, path: str, parametrization: Parametrization) -> None:
        self._objects.setdefault(path, []).append(parametrization)

    def fetch(self, path: str, timestamp: int) -> Parametrization:
        self.fetch_count += 1
        return _select_valid(path, self._objects.get(path, []), timestamp)


class DirectoryCalibrationStore:
    """Store laid out as `<root>/<path>/<anything>.json`, one object per file.

    Each file holds `{"name": ..., "parameters": [...], "valid_from": int,
    "valid_until": int | null}`. Object lists are cached per path after the
    first lookup.
    """

    def __init__(self, root: str | Path, caching: bool = True):
        self.root = Path(root)
        self.caching = caching
        self._cache: dict[str, list[Parametrization]] = {}

    def fetch(self, path: str, timestamp: int) -> Parametrization:
        objects = self._cache.get(path) if self.caching else None
        if objects is None:
            objects = self._scan(path)
            if self.caching:
                self._cache[path] = objects
        return _select_valid(path, objects, timestamp)

    def _scan(self, path: str) -> list[Parametrization]:
        folder = self.root / path
        if not folder.is_dir():
            return []
        return [
            parametrization_from_dict(json.loads(f.read_text(encoding="utf-8")), context=str(f))
            for f in sorted(folder.glob("*.json"))
        ]


def parametrization_from_dict(data: Any, context: str, default_name: str | None = None) -> Parametrization:
    """Validate and convert a JSON object into a `Parametrization`."""
    if not isinstance(data, dict):
        raise ValueError(f"Parametrization in {context} must be an object.")
    params = data.get("parameters")
    if not isinstance(params, list) or not params:
        raise ValueError(f"Parametrization in {context} must define a non-empty 'parameters' list.")
    name = data.get("name", default_name)
    if name is None:
        raise ValueError(f"Parametrization in {context} must define 'name'.")
    valid_until = data.get("valid_until")
    return Parametrization(
        name=str(name),
        parameters=tuple(float(x) for x in params),
        valid_from=int(data.get("valid_from", 0)),
        valid_until=None if valid_until is None else int(valid_until),
    )
