"""Matrix helpers shared by the factorization core and the update rules.

Inputs may be dense numpy arrays or scipy.sparse matrices; factors (U, V) are
always dense. These are thin wrappers over numpy/scipy, not a general linear
algebra layer.
"""

import numpy as np
import scipy.sparse as sp

from .errors import InvalidConfiguration


def as_array(A) -> np.ndarray:
    """Return A as a dense float ndarray (sparse inputs are densified)."""
    if sp.issparse(A):
        return A.toarray().astype(float, copy=False)
    return np.asarray(A, dtype=float)


def is_finite(M) -> bool:
    """True if every stored entry of M is finite."""
    if sp.issparse(M):
        return bool(np.isfinite(M.data).all())
    return bool(np.isfinite(M).all())


def frobenius_norm(M) -> float:
    """Square root of the sum of squared entries."""
    if sp.issparse(M):
        return float(np.sqrt(M.multiply(M).sum()))
    return float(np.linalg.norm(M, ord="fro"))


def residual_norm(A, U: np.ndarray, V: np.ndarray) -> float:
    """Frobenius norm of U @ V.T - A."""
    R = U @ V.T
    if sp.issparse(A):
        R = R - A.toarray()
    else:
        R -= A
    return frobenius_norm(R)


def normalize_columns_l2(M: np.ndarray):
    """
    Scale each column of M to unit Euclidean length.

    Columns with zero length are left untouched.

    Returns:
        normalized: copy of M with unit-length columns
        norms: (k,) array of the original column lengths
    """
    norms = np.sqrt(np.sum(M * M, axis=0))
    safe = np.where(norms > 0, norms, 1.0)
    return M / safe[np.newaxis, :], norms


def normalize_columns_l1(M: np.ndarray):
    """Scale each column of M so that its absolute values sum to one.

    Returns the normalized copy and the original column sums.
    """
    sums = np.sum(np.abs(M), axis=0)
    safe = np.where(sums > 0, sums, 1.0)
    return M / safe[np.newaxis, :], sums


def column_activity(V: np.ndarray) -> np.ndarray:
    """Sum of squares of every column of V (one score per base vector)."""
    return np.sum(V * V, axis=0)


def order_by_activity(U: np.ndarray, V: np.ndarray):
    """
    Reorder base vectors by descending activity.

    Activity of base vector i is the sum of squares of V[:, i]. The same
    column permutation is applied to U and V, so U @ V.T is unchanged. Ties
    keep their original relative order.

    Args:
        U: (m x k) left factor
        V: (n x k) right factor

    Returns:
        U_sorted: (m x k) copy of U with permuted columns
        V_sorted: (n x k) copy of V with permuted columns
        aggregates: (k,) activity scores in descending order
        order: (k,) permutation, order[j] is the original index of column j
    """
    if U.shape[1] != V.shape[1]:
        raise ValueError(
            f"U and V must have the same number of columns, got {U.shape[1]} and {V.shape[1]}"
        )
    activity = column_activity(V)
    order = np.argsort(-activity, kind="stable")
    return U[:, order].copy(), V[:, order].copy(), activity[order], order


def divide_by_reconstruction(A, U: np.ndarray, V: np.ndarray, eps: float = 1e-9):
    """
    Element-wise A / (U @ V.T + eps).

    For sparse A only the stored entries are divided, so the result stays
    sparse and the dense reconstruction is never formed.
    """
    if sp.issparse(A):
        coo = A.tocoo()
        approx = np.einsum("ij,ij->i", U[coo.row], V[coo.col])
        values = coo.data / (approx + eps)
        return sp.csr_matrix((values, (coo.row, coo.col)), shape=A.shape)
    return A / (U @ V.T + eps)


def check_nonnegative(A, method: str):
    """Raise InvalidConfiguration if A has negative entries."""
    values = A.data if sp.issparse(A) else np.asarray(A)
    if values.size and values.min() < 0:
        raise InvalidConfiguration(f"{method} requires a non-negative input matrix")
