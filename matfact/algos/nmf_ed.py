"""Non-negative matrix factorization minimising Euclidean distance.

Lee & Seung multiplicative updates for A ~ U @ V.T with U, V >= 0. Every
update keeps the factors non-negative as long as the seeds and A are.
"""

from functools import partial

import numpy as np

from ..iterative import factorize
from ..matrix_utils import check_nonnegative, normalize_columns_l2

DEFAULT_EPS = 1e-9


def nmf_ed_step(A, U, V, eps=DEFAULT_EPS):
    """One multiplicative update of V, then U.

    Update rules (Euclidean cost ||A - U V^T||_F^2):
        V <- V .* (A^T U) ./ (V U^T U)
        U <- U .* (A V) ./ (U V^T V)

    U columns are then scaled to unit length and V is rescaled so that
    U @ V.T is unchanged.

    Args:
        A: (m x n) non-negative dense or sparse matrix
        U: (m x k) current left factor
        V: (n x k) current right factor
        eps: guard added to denominators

    Returns:
        U, V: updated factors
    """
    V = V * (A.T @ U) / (V @ (U.T @ U) + eps)
    U = U * (A @ V) / (U @ (V.T @ V) + eps)

    U, norms = normalize_columns_l2(U)
    V = V * norms[np.newaxis, :]
    return U, V


def nmf_ed(A, k, seeding_strategy=None, eps=DEFAULT_EPS, **settings):
    """Run Euclidean NMF on A with rank k.

    Remaining keyword settings (max_iterations, stop_threshold, ordered, seed)
    are passed to the factorization configuration.

    Returns:
        The computed IterativeFactorization
    """
    check_nonnegative(A, "NMF-ED")
    return factorize(
        A, partial(nmf_ed_step, eps=eps), seeding_strategy=seeding_strategy, k=k, **settings
    )
