"""Combinatorial enumeration of sub-candidate tuples within one event."""

from __future__ import annotations

from enum import Enum
from itertools import combinations, product
from typing import Iterable, Iterator, Sequence, TypeVar

from .models import SelectionMode

T = TypeVar("T")
U = TypeVar("U")

ML_SCORE_COLUMNS = ("gamma_bdt_score", "lambda_bdt_score", "antilambda_bdt_score")


class PairingPolicy(Enum):
    """How two roles are paired inside one event.

    CROSS: every element of role A with every element of role B (M*N pairs).
    SELF: unordered pairs of distinct elements of one collection
    (N*(N-1)/2 pairs, strictly upper triangle).
    """

    CROSS = "cross"
    SELF = "self"


def iter_pairs(
    first: Sequence[T],
    second: Sequence[U] | None = None,
    policy: PairingPolicy = PairingPolicy.CROSS,
) -> Iterator[tuple[T, U]]:
    """Yield candidate pairs according to `policy`.

    For CROSS, `second` defaults to `first` (roles drawn from the same table).
    SELF pairing only uses `first`; passing a distinct `second` is an error.
    """
    if policy is PairingPolicy.CROSS:
        return product(first, first if second is None else second)
    if second is not None and second is not first:
        raise ValueError("Self pairing takes a single collection.")
    return combinations(first, 2)


def iter_n_body_combinations(items: Sequence[T], n_body: int) -> Iterable[tuple[T, ...]]:
    """Yield unordered tuples of `n_body` distinct items."""
    if n_body < 2:
        raise ValueError("Combinations need at least two bodies.")
    return combinations(items, n_body)


def resolve_selection_mode(columns: Iterable[str]) -> SelectionMode:
    """ML selection when all score columns exist on the input, standard otherwise."""
    present = set(columns)
    if all(col in present for col in ML_SCORE_COLUMNS):
        return SelectionMode.ML
    return SelectionMode.STANDARD
