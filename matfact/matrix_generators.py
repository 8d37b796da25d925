"""Matrix generators for exercising the factorization algorithms.

This module provides synthetic term-document matrices with planted topic
structure, plain random non-negative matrices, tf-idf weighting and a summary
helper for logging.
"""

from typing import Dict

import numpy as np
import scipy.sparse as sp

from .matrix_utils import as_array, normalize_columns_l2


class MatrixGenerator:
    """Generate test matrices with controlled properties."""

    @staticmethod
    def random_nonnegative(m: int, n: int, seed: int = 42) -> np.ndarray:
        """
        Generate a random non-negative matrix.

        Args:
            m: number of rows
            n: number of columns
            seed: random seed for reproducibility

        Returns:
            A: (m x n) matrix with entries uniform in [0, 1)
        """
        rng = np.random.RandomState(seed)
        return rng.random_sample((m, n))

    @staticmethod
    def term_document(
        m: int,
        n: int,
        topics: int,
        density: float = 0.3,
        noise_level: float = 0.0,
        seed: int = 42,
        sparse: bool = False,
    ):
        """
        Generate a term-document count matrix with planted topics.

        Terms are split into `topics` contiguous blocks. Each document picks a
        dominant topic and draws counts mostly from that topic's terms, so the
        true non-negative rank is roughly `topics`.

        Algorithm:
            1. Assign each document a topic (round-robin, then shuffled)
            2. For each term of the document's topic, keep it with probability
               `density` and give it a Poisson(3) + 1 count
            3. Optionally add uniform noise of magnitude `noise_level` on
               a `density / 4` fraction of all cells

        Args:
            m: number of terms (rows)
            n: number of documents (columns)
            topics: number of planted topics
            density: fraction of a topic's terms present in each document
            noise_level: magnitude of off-topic noise (0.0 = no noise)
            seed: random seed for reproducibility
            sparse: if True, return a scipy.sparse CSR matrix

        Returns:
            A: (m x n) non-negative matrix

        Raises:
            ValueError: if topics is not in [1, min(m, n)]
            ValueError: if density is not in (0, 1] or noise_level < 0
        """
        if topics < 1 or topics > min(m, n):
            raise ValueError(f"topics must be in [1, {min(m, n)}], got {topics}")
        if not 0 < density <= 1:
            raise ValueError(f"density must be in (0, 1], got {density}")
        if noise_level < 0:
            raise ValueError(f"noise_level must be non-negative, got {noise_level}")

        rng = np.random.RandomState(seed)
        blocks = np.array_split(np.arange(m), topics)
        labels = rng.permutation(np.arange(n) % topics)

        A = np.zeros((m, n))
        for doc, topic in enumerate(labels):
            terms = blocks[topic]
            present = terms[rng.random_sample(len(terms)) < density]
            if len(present) == 0:
                present = terms[[rng.randint(len(terms))]]
            A[present, doc] = rng.poisson(3.0, size=len(present)) + 1.0

        if noise_level > 0:
            mask = rng.random_sample((m, n)) < density / 4
            A += mask * rng.random_sample((m, n)) * noise_level

        return sp.csr_matrix(A) if sparse else A

    @staticmethod
    def tfidf(A) -> np.ndarray:
        """
        Apply tf-idf weighting to a term-document count matrix.

        Weight = count * log(n / df), where df is the number of documents
        containing the term; document columns are then scaled to unit length.

        Args:
            A: (m x n) dense or sparse count matrix

        Returns:
            W: (m x n) dense tf-idf matrix
        """
        counts = as_array(A)
        n = counts.shape[1]
        df = np.count_nonzero(counts, axis=1)
        idf = np.log(n / np.maximum(df, 1))
        W, _ = normalize_columns_l2(counts * idf[:, np.newaxis])
        return W

    @staticmethod
    def get_matrix_info(A) -> Dict:
        """
        Get information about a matrix for logging.

        Args:
            A: dense or sparse input matrix

        Returns:
            Dictionary with matrix properties:
                - shape: tuple of matrix dimensions
                - sparse: whether the input is a scipy.sparse matrix
                - density: fraction of non-zero entries
                - min, max, mean: value statistics
        """
        dense = as_array(A)
        return {
            'shape': dense.shape,
            'sparse': sp.issparse(A),
            'density': np.count_nonzero(dense) / dense.size,
            'min': float(np.min(dense)),
            'max': float(np.max(dense)),
            'mean': float(np.mean(dense)),
        }
