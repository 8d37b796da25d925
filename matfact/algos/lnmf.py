"""Local Non-negative Matrix Factorization (LNMF).

Variant of KL-divergence NMF (Li, Hou & Zhang, 2001) that favours spatially
localised, nearly orthogonal base vectors. The coefficient update uses a
square root instead of the plain multiplicative step, and base vectors are
kept L1-normalised.
"""

from functools import partial

import numpy as np

from ..iterative import factorize
from ..matrix_utils import check_nonnegative, divide_by_reconstruction, normalize_columns_l1

DEFAULT_EPS = 1e-9


def lnmf_step(A, U, V, eps=DEFAULT_EPS):
    """
    One LNMF update.

    Update rules:
        V <- sqrt(V .* ((A ./ U V^T)^T U))
        U <- U .* ((A ./ U V^T) V) ./ colsum(V)
        U <- U with columns normalised to unit L1 norm

    Args:
        A: (m x n) non-negative dense or sparse matrix
        U: (m x k) base vectors
        V: (n x k) coefficients
        eps: guard added to denominators

    Returns:
        U, V: updated factors
    """
    ratio = divide_by_reconstruction(A, U, V, eps)
    V = np.sqrt(V * (ratio.T @ U))

    ratio = divide_by_reconstruction(A, U, V, eps)
    U = U * (ratio @ V) / (np.sum(V, axis=0)[np.newaxis, :] + eps)

    U, _ = normalize_columns_l1(U)
    return U, V


def lnmf(A, k, seeding_strategy=None, eps=DEFAULT_EPS, **settings):
    """Run LNMF on A with rank k."""
    check_nonnegative(A, "LNMF")
    return factorize(
        A, partial(lnmf_step, eps=eps), seeding_strategy=seeding_strategy, k=k, **settings
    )
