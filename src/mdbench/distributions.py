"""Popularity distributions used to pick which existing node an event references."""

from __future__ import annotations

import random
from collections.abc import Sequence
from itertools import accumulate


class CategoricalDistribution:
    """Categorical distribution over ``[0, len(weights))`` from unnormalized weights."""

    def __init__(self, weights: Sequence[float]) -> None:
        if not weights:
            raise ValueError("Categorical distribution requires at least one weight.")
        if any(weight < 0 for weight in weights):
            raise ValueError("Categorical weights must be non-negative.")
        self.weights = tuple(float(weight) for weight in weights)
        self._cum_weights = list(accumulate(self.weights))
        if self._cum_weights[-1] <= 0:
            raise ValueError("Categorical weights must not all be zero.")
        self._indices = range(len(self.weights))

    def __len__(self) -> int:
        return len(self.weights)

    def sample(self, rng: random.Random) -> int:
        return rng.choices(self._indices, cum_weights=self._cum_weights)[0]

    def probabilities(self) -> tuple[float, ...]:
        total = self._cum_weights[-1]
        return tuple(weight / total for weight in self.weights)


def dirichlet_categorical(size: int, alpha: float, rng: random.Random) -> CategoricalDistribution:
    """Draw a categorical distribution from a symmetric Dirichlet(alpha) prior.

    Each index gets an independent Gamma(alpha, 1) weight; normalizing those
    weights yields a Dirichlet sample, and the categorical sampler normalizes
    internally, so the simplex is never materialized. Small ``alpha``
    concentrates mass on a few indices while large ``alpha`` approaches a
    uniform distribution.

    For very small ``alpha`` every weight may underflow to zero. The limit of
    the prior is then a uniformly chosen vertex of the simplex, so the whole
    mass goes to one index drawn from ``rng``.
    """

    if size <= 0:
        raise ValueError("Popularity distribution requires a non-empty population.")
    weights = [rng.gammavariate(alpha, 1.0) for _ in range(size)]
    if not any(weights):
        weights[rng.randrange(size)] = 1.0
    return CategoricalDistribution(weights)
