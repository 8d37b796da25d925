"""Concrete update rules for iterative factorizations.

Each `*_step` function has the signature (A, U, V) -> (U, V) and can be passed
to `IterativeFactorization` as its update step. The same-named functions
without the suffix run a complete factorization and return it.
"""

from .kmeans import kmeans, kmeans_step
from .lnmf import lnmf, lnmf_step
from .nmf_ed import nmf_ed, nmf_ed_step
from .nmf_kl import nmf_kl, nmf_kl_step

# Update steps by the names used on the command line
ALGORITHMS = {
    "nmf-ed": nmf_ed_step,
    "nmf-kl": nmf_kl_step,
    "lnmf": lnmf_step,
    "kmeans": kmeans_step,
}

# Update steps that are only defined for non-negative input
NONNEGATIVE_ALGORITHMS = frozenset({"nmf-ed", "nmf-kl", "lnmf"})

__all__ = [
    "ALGORITHMS",
    "NONNEGATIVE_ALGORITHMS",
    "kmeans",
    "kmeans_step",
    "lnmf",
    "lnmf_step",
    "nmf_ed",
    "nmf_ed_step",
    "nmf_kl",
    "nmf_kl_step",
]
