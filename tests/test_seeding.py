"""Tests for seeding strategies."""

import numpy as np
import pytest
import scipy.sparse as sp

from matfact import FixedSeedingStrategy, KMeansSeedingStrategy, RandomSeedingStrategy


class TestRandomSeeding:

    def test_shapes_and_range(self, topic_matrix):
        U, V = RandomSeedingStrategy(0).seed(topic_matrix, 5)
        assert U.shape == (40, 5)
        assert V.shape == (30, 5)
        assert U.min() >= 0 and U.max() < 1
        assert V.min() >= 0 and V.max() < 1

    def test_deterministic(self, topic_matrix):
        strategy = RandomSeedingStrategy(11)
        U1, V1 = strategy.seed(topic_matrix, 3)
        U2, V2 = strategy.seed(topic_matrix, 3)
        np.testing.assert_array_equal(U1, U2)
        np.testing.assert_array_equal(V1, V2)

    def test_seed_changes_output(self, topic_matrix):
        U1, _ = RandomSeedingStrategy(1).seed(topic_matrix, 3)
        U2, _ = RandomSeedingStrategy(2).seed(topic_matrix, 3)
        assert not np.array_equal(U1, U2)

    def test_sparse_input(self, topic_matrix):
        U, V = RandomSeedingStrategy(0).seed(sp.csr_matrix(topic_matrix), 2)
        assert U.shape == (40, 2) and V.shape == (30, 2)


class TestKMeansSeeding:

    def test_shapes_and_positive(self, topic_matrix):
        U, V = KMeansSeedingStrategy(seed=3).seed(topic_matrix, 4)
        assert U.shape == (40, 4)
        assert V.shape == (30, 4)
        assert (U > 0).all() and (V > 0).all()

    def test_one_cluster_per_document(self, topic_matrix):
        strategy = KMeansSeedingStrategy(seed=3, eps=0.0)
        _, V = strategy.seed(topic_matrix, 4)
        np.testing.assert_array_equal(V.sum(axis=1), np.ones(30))

    def test_deterministic(self, topic_matrix):
        U1, V1 = KMeansSeedingStrategy(seed=5).seed(topic_matrix, 4)
        U2, V2 = KMeansSeedingStrategy(seed=5).seed(topic_matrix, 4)
        np.testing.assert_array_equal(U1, U2)
        np.testing.assert_array_equal(V1, V2)

    def test_too_many_clusters(self):
        with pytest.raises(ValueError):
            KMeansSeedingStrategy().seed(np.ones((5, 2)), 3)

    def test_invalid_iterations(self):
        with pytest.raises(ValueError):
            KMeansSeedingStrategy(max_iterations=0)


class TestFixedSeeding:

    def test_returns_copies(self):
        U = np.ones((3, 2))
        V = np.ones((4, 2))
        strategy = FixedSeedingStrategy(U, V)
        U_seed, V_seed = strategy.seed(np.zeros((3, 4)), 2)
        U_seed[:] = 0.0
        np.testing.assert_array_equal(strategy.seed(np.zeros((3, 4)), 2)[0], U)
        assert V_seed.shape == (4, 2)
