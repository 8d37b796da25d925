"""K-means clustering expressed as a matrix factorization.

Columns of A (documents) are grouped around k centroids. U holds the
unit-length centroids (m x k) and V the one-hot cluster membership of every
column (n x k), so that U @ V.T places each document's centroid in its column.
"""

import numpy as np

from ..iterative import factorize
from ..matrix_utils import as_array, normalize_columns_l2


def kmeans_step(A, U, V):
    """
    One assignment + centroid update round.

    Each column of A is assigned to the centroid with the highest cosine
    similarity. Centroids become the normalised mean of their assigned
    (normalised) columns; a centroid with no members keeps its previous value.

    Args:
        A: (m x n) dense or sparse matrix
        U: (m x k) current centroids
        V: (n x k) current memberships (only its shape is used)

    Returns:
        U, V: new centroids and one-hot memberships
    """
    documents, _ = normalize_columns_l2(as_array(A))
    centroids, _ = normalize_columns_l2(U)
    n, k = V.shape

    labels = np.argmax(centroids.T @ documents, axis=0)
    V = np.zeros((n, k))
    V[np.arange(n), labels] = 1.0

    U = centroids.copy()
    for cluster in range(k):
        members = labels == cluster
        if members.any():
            U[:, cluster] = documents[:, members].mean(axis=1)

    U, _ = normalize_columns_l2(U)
    return U, V


def kmeans(A, k, seeding_strategy=None, **settings):
    """Run k-means factorization on A with k clusters."""
    return factorize(A, kmeans_step, seeding_strategy=seeding_strategy, k=k, **settings)
