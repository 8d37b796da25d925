import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest


# Exact rank-2 factors of a 4x3 matrix. U0 has orthonormal columns, so moving
# V away from V0 by e * E (with ||E||_F = 1) gives a residual of exactly e.
U0 = np.array([[1.0, 0.0], [0.0, 1.0], [0.0, 0.0], [0.0, 0.0]])
V0 = np.array([[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]])
E = np.zeros((3, 2))
E[0, 0] = 1.0


def scripted_step(errors):
    """Update step whose residual after iteration i is errors[i]."""
    remaining = iter(errors)

    def step(A, U, V):
        error = next(remaining)
        return U0.copy(), V0 + error * E

    return step


@pytest.fixture
def exact_matrix():
    """4x3 matrix equal to U0 @ V0.T."""
    return U0 @ V0.T


@pytest.fixture
def topic_matrix():
    """Small non-negative term-document matrix with planted topics."""
    from matfact.matrix_generators import MatrixGenerator

    return MatrixGenerator.term_document(40, 30, 4, density=0.4, noise_level=0.2, seed=7)
