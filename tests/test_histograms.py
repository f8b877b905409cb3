"""Unit tests for histogram axes, the registry and the cut funnel."""

from __future__ import annotations

import math
import unittest

import numpy as np

from pidcomb import Axis, CutFunnel, Histogram, HistogramRegistry


class TestAxis(unittest.TestCase):
    """Validate bin lookup including flow bins."""

    def test_uniform_bins_and_flow(self) -> None:
        """Values below range land in bin 0, the upper edge in the overflow."""
        axis = Axis.uniform(4, 0.0, 4.0)
        self.assertEqual(axis.nbins, 4)
        self.assertEqual(axis.find_bin(-0.1), 0)
        self.assertEqual(axis.find_bin(0.0), 1)
        self.assertEqual(axis.find_bin(3.99), 4)
        self.assertEqual(axis.find_bin(4.0), 5)
        self.assertEqual(axis.find_bin(math.nan), 5)

    def test_variable_edges(self) -> None:
        axis = Axis.variable([0.0, 0.1, 1.0, 10.0])
        self.assertEqual(axis.find_bin(0.5), 2)
        self.assertEqual(axis.find_bin(9.0), 3)

    def test_invalid_edges(self) -> None:
        """Edges must be strictly increasing and at least two."""
        with self.assertRaises(ValueError):
            Axis.variable([1.0])
        with self.assertRaises(ValueError):
            Axis.variable([0.0, 1.0, 1.0])
        with self.assertRaises(ValueError):
            Axis.uniform(0, 0.0, 1.0)

    def test_logarithmic_axis(self) -> None:
        """A zero lower edge is replaced so log spacing stays defined."""
        axis = Axis.logarithmic(3, 0.0, 10.0)
        self.assertAlmostEqual(axis.edges[0], 0.01)
        self.assertAlmostEqual(axis.edges[-1], 10.0)
        self.assertAlmostEqual(axis.edges[1] / axis.edges[0], axis.edges[2] / axis.edges[1])


class TestHistogram(unittest.TestCase):
    """Validate additive fills in one and more dimensions."""

    def test_weighted_fills(self) -> None:
        hist = Histogram("h", [Axis.uniform(2, 0.0, 2.0)])
        hist.fill(0.5)
        hist.fill(0.5, weight=2.0)
        hist.fill(5.0)
        np.testing.assert_allclose(hist.values, [3.0, 0.0])
        self.assertEqual(hist.values_flow[-1], 1.0)
        self.assertEqual(hist.entries, 3)
        self.assertEqual(hist.sum(), 3.0)

    def test_two_dimensional(self) -> None:
        hist = Histogram("h2", [Axis.uniform(2, 0.0, 2.0), Axis.uniform(3, 0.0, 3.0)])
        hist.fill(1.5, 2.5)
        self.assertEqual(hist.bin_content(1, 2), 1.0)
        self.assertEqual(hist.values.shape, (2, 3))
        with self.assertRaises(ValueError):
            hist.fill(1.0)


class TestRegistryAndFunnel(unittest.TestCase):
    """Validate declaration rules and funnel bookkeeping."""

    def test_duplicate_and_missing_names(self) -> None:
        registry = HistogramRegistry("r")
        registry.add("a", [Axis.uniform(1, 0.0, 1.0)])
        with self.assertRaises(ValueError):
            registry.add("a", [Axis.uniform(1, 0.0, 1.0)])
        with self.assertRaises(KeyError):
            registry.get("b")
        self.assertIn("a", registry)
        self.assertEqual(registry.names(), ["a"])

    def test_funnel_counts_and_labels(self) -> None:
        """Recording a stage increments its counter and histogram bin."""
        registry = HistogramRegistry("r")
        funnel = CutFunnel(registry, "sel", ["first", "second", "third"])
        for stage in (0, 0, 1, 0, 1, 2):
            funnel.record_stage(stage)
        self.assertEqual(funnel.counts, (3, 2, 1))
        self.assertTrue(funnel.is_monotonic())
        np.testing.assert_allclose(registry.get("sel").values, [3.0, 2.0, 1.0])
        self.assertEqual(registry.get("sel").bin_labels, {0: "first", 1: "second", 2: "third"})
        with self.assertRaises(IndexError):
            funnel.record_stage(3)

    def test_funnel_monotonicity_on_subset(self) -> None:
        registry = HistogramRegistry("r")
        funnel = CutFunnel(registry, "sel", ["a", "b", "c"])
        funnel.record_stage(2)
        self.assertFalse(funnel.is_monotonic())
        self.assertTrue(funnel.is_monotonic((2,)))


if __name__ == "__main__":
    unittest.main()
