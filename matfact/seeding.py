"""Seeding strategies: initial (U, V) factors for iterative factorizations.

A strategy receives the input matrix A (m x n) and the rank k, and returns a
pair of dense arrays U (m x k) and V (n x k). Seeded strategies are
deterministic: the same seed, input and rank always give the same factors.
"""

import logging
from abc import ABC, abstractmethod

import numpy as np
from scipy.cluster.vq import kmeans2

from .matrix_utils import as_array, normalize_columns_l2

logger = logging.getLogger(__name__)


class SeedingStrategy(ABC):
    """Produces the starting factors of a factorization."""

    @abstractmethod
    def seed(self, A, k: int):
        """Return initial (U, V) of shapes (rows(A), k) and (columns(A), k)."""

    def __repr__(self):
        return f"{type(self).__name__}()"


class RandomSeedingStrategy(SeedingStrategy):
    """Uniform random factors in [0, 1) drawn from a fixed seed."""

    def __init__(self, seed: int = 0):
        self.random_seed = seed

    def seed(self, A, k: int):
        m, n = A.shape
        # Fresh generator per call so repeated runs see identical streams
        rng = np.random.RandomState(self.random_seed)
        U = rng.random_sample((m, k))
        V = rng.random_sample((n, k))
        return U, V

    def __repr__(self):
        return f"RandomSeedingStrategy(seed={self.random_seed})"


class KMeansSeedingStrategy(SeedingStrategy):
    """
    Seed U with k-means centroids of the columns of A.

    Columns of A (documents) are clustered with scipy's kmeans2. U receives
    the L2-normalized centroids and V the one-hot cluster memberships. A small
    positive offset is added to both so that multiplicative update rules,
    which never move an exact zero, can still adjust every entry.
    """

    def __init__(self, max_iterations: int = 5, seed: int = 0, eps: float = 1e-3):
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be at least 1, got {max_iterations}")
        self.max_iterations = max_iterations
        self.random_seed = seed
        self.eps = eps

    def seed(self, A, k: int):
        dense = as_array(A)
        m, n = dense.shape
        if k > n:
            raise ValueError(f"Cannot seed {k} clusters from {n} columns")

        documents = dense.T
        centroids, labels = kmeans2(
            documents,
            k,
            iter=self.max_iterations,
            minit="++",
            missing="warn",
            seed=self.random_seed,
        )
        logger.debug(
            f"k-means seeding: {len(np.unique(labels))} of {k} clusters non-empty"
        )

        U, _ = normalize_columns_l2(np.abs(centroids.T))
        V = np.zeros((n, k))
        V[np.arange(n), labels] = 1.0
        return U + self.eps, V + self.eps

    def __repr__(self):
        return (
            f"KMeansSeedingStrategy(max_iterations={self.max_iterations}, "
            f"seed={self.random_seed})"
        )


class FixedSeedingStrategy(SeedingStrategy):
    """Always return copies of the given factors (warm starts, regression tests)."""

    def __init__(self, U, V):
        self.U = np.array(U, dtype=float)
        self.V = np.array(V, dtype=float)

    def seed(self, A, k: int):
        return self.U.copy(), self.V.copy()

    def __repr__(self):
        return f"FixedSeedingStrategy(U={self.U.shape}, V={self.V.shape})"
