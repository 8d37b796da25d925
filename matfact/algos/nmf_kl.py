"""Non-negative matrix factorization minimising Kullback-Leibler divergence."""

from functools import partial

import numpy as np

from ..iterative import factorize
from ..matrix_utils import check_nonnegative, divide_by_reconstruction, normalize_columns_l1

DEFAULT_EPS = 1e-9


def nmf_kl_step(A, U, V, eps=DEFAULT_EPS):
    """One multiplicative update of U, then V, for the divergence D(A || U V^T).

        U <- U .* ((A ./ U V^T) V) ./ colsum(V)
        V <- V .* ((A ./ U V^T)^T U) ./ colsum(U)

    U columns are normalised to sum to one, with V rescaled accordingly.
    """
    ratio = divide_by_reconstruction(A, U, V, eps)
    U = U * (ratio @ V) / (np.sum(V, axis=0)[np.newaxis, :] + eps)

    ratio = divide_by_reconstruction(A, U, V, eps)
    V = V * (ratio.T @ U) / (np.sum(U, axis=0)[np.newaxis, :] + eps)

    U, sums = normalize_columns_l1(U)
    V = V * sums[np.newaxis, :]
    return U, V


def nmf_kl(A, k, seeding_strategy=None, eps=DEFAULT_EPS, **settings):
    """Run Kullback-Leibler NMF on A with rank k."""
    check_nonnegative(A, "NMF-KL")
    return factorize(
        A, partial(nmf_kl_step, eps=eps), seeding_strategy=seeding_strategy, k=k, **settings
    )
