"""Fixed-binning histograms, a named registry and the cut funnel.

Binning is declared once when a histogram is added and never changes
afterwards; fills are purely additive. Every task instance owns its own
registry, so nothing here is module-global.
"""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"

from dataclasses import dataclass
from typing import Sequence

import numpy as np


@dataclass(frozen=True)
class Axis:
    """Histogram axis defined by its bin edges.

    Use `Axis.uniform` for equal-width binning, `Axis.variable` for explicit
    edges (the `VARIABLE_WIDTH` axes of the analysis configuration), and
    `Axis.logarithmic` for log-spaced momentum axes.
    """

    edges: tuple[float, ...]
    title: str = ""

    def __post_init__(self) -> None:
        if len(self.edges) < 2:
            raise ValueError("An axis needs at least two bin edges.")
        if any(b <= a for a, b in zip(self.edges, self.edges[1:])):
            raise ValueError("Axis edges must be strictly increasing.")

    @classmethod
    def uniform(cls, nbins: int, low: float, high: float, title: str = "") -> "Axis":
        if nbins <= 0:
            raise ValueError("Number of bins must be positive.")
        return cls(tuple(float(x) for x in np.linspace(low, high, nbins + 1)), title)

    @classmethod
    def variable(cls, edges: Sequence[float], title: str = "") -> "Axis":
        return cls(tuple(float(x) for x in edges), title)

    @classmethod
    def logarithmic(cls, nbins: int, low: float, high: float, title: str = "") -> "Axis":
        """Log-spaced axis; a non-positive lower edge is replaced by `high * 1e-3`."""
        low = low if low > 0.0 else high * 1e-3
        return cls(tuple(float(x) for x in np.geomspace(low, high, nbins + 1)), title)

    @property
    def nbins(self) -> int:
        return len(self.edges) - 1

    def find_bin(self, value: float) -> int:
        """Return the bin index, with 0 = underflow and nbins + 1 = overflow."""
        if np.isnan(value):
            return self.nbins + 1
        # right-open bins; the upper edge belongs to the overflow
        return int(np.searchsorted(self.edges, value, side="right"))


class Histogram:
    """N-dimensional weighted histogram with under/overflow bins on every axis."""

    def __init__(self, name: str, axes: Sequence[Axis], title: str = ""):
        if not axes:
            raise ValueError(f"Histogram '{name}' needs at least one axis.")
        self.name = name
        self.title = title
        self.axes = tuple(axes)
        self._counts = np.zeros(tuple(a.nbins + 2 for a in self.axes), dtype=np.float64)
        self._labels: dict[int, str] = {}
        self.entries = 0

    @property
    def ndim(self) -> int:
        return len(self.axes)

    def fill(self, *values: float, weight: float = 1.0) -> None:
        if len(values) != self.ndim:
            raise ValueError(
                f"Histogram '{self.name}' has {self.ndim} axes, got {len(values)} values."
            )
        index = tuple(axis.find_bin(float(v)) for axis, v in zip(self.axes, values))
        self._counts[index] += weight
        self.entries += 1

    @property
    def values(self) -> np.ndarray:
        """In-range bin contents (under/overflow stripped)."""
        return self._counts[tuple(slice(1, -1) for _ in self.axes)].copy()

    @property
    def values_flow(self) -> np.ndarray:
        """Bin contents including under/overflow bins."""
        return self._counts.copy()

    def bin_content(self, *bins: int) -> float:
        """Content of in-range bins, indexed from zero."""
        return float(self._counts[tuple(b + 1 for b in bins)])

    def sum(self) -> float:
        return float(self.values.sum())

    def set_bin_label(self, bin_index: int, label: str) -> None:
        """Attach a label to an in-range bin of a 1D histogram."""
        if self.ndim != 1:
            raise ValueError("Bin labels are only supported on 1D histograms.")
        if not 0 <= bin_index < self.axes[0].nbins:
            raise IndexError(f"Bin {bin_index} out of range for '{self.name}'.")
        self._labels[bin_index] = label

    @property
    def bin_labels(self) -> dict[int, str]:
        return dict(self._labels)


class HistogramRegistry:
    """Named collection of histograms declared at task initialization."""

    def __init__(self, name: str):
        self.name = name
        self._histograms: dict[str, Histogram] = {}

    def add(self, name: str, axes: Sequence[Axis], title: str = "") -> Histogram:
        if name in self._histograms:
            raise ValueError(f"Histogram '{name}' already declared in registry '{self.name}'.")
        hist = Histogram(name, axes, title or name)
        self._histograms[name] = hist
        return hist

    def get(self, name: str) -> Histogram:
        try:
            return self._histograms[name]
        except KeyError as exc:
            raise KeyError(f"Histogram '{name}' not declared in registry '{self.name}'.") from exc

    def fill(self, name: str, *values: float, weight: float = 1.0) -> None:
        self.get(name).fill(*values, weight=weight)

    def __contains__(self, name: str) -> bool:
        return name in self._histograms

    def names(self) -> list[str]:
        return list(self._histograms)


class CutFunnel:
    """Ordered selection-stage counters backed by a labelled 1D histogram.

    Stage labels are fixed at construction. `record_stage(i)` is the only
    mutation; counters are never reset during a run.
    """

    def __init__(self, registry: HistogramRegistry, name: str, labels: Sequence[str]):
        if not labels:
            raise ValueError("A cut funnel needs at least one stage.")
        self.labels = tuple(labels)
        n = len(self.labels)
        self._hist = registry.add(name, [Axis.uniform(n, -0.5, n - 0.5)])
        for idx, label in enumerate(self.labels):
            self._hist.set_bin_label(idx, label)
        self._counts = [0] * n

    def record_stage(self, stage: int) -> None:
        if not 0 <= stage < len(self._counts):
            raise IndexError(f"Stage {stage} out of range (0..{len(self._counts) - 1}).")
        self._counts[stage] += 1
        self._hist.fill(float(stage))

    def count(self, stage: int) -> int:
        return self._counts[stage]

    @property
    def counts(self) -> tuple[int, ...]:
        return tuple(self._counts)

    def is_monotonic(self, stages: Sequence[int] | None = None) -> bool:
        """True when pass counts never increase along `stages` (default: all)."""
        order = range(len(self._counts)) if stages is None else stages
        seq = [self._counts[i] for i in order]
        return all(b <= a for a, b in zip(seq, seq[1:]))
