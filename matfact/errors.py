"""Exception types raised by the factorization engine.

All failures derive from `FactorizationError`, so callers can catch the whole
family at once. Each error optionally records the iteration index at which it
happened (`None` when the run never started iterating).
"""

from typing import Optional


class FactorizationError(Exception):
    """Base class for factorization failures."""

    def __init__(self, message: str, iteration: Optional[int] = None):
        super().__init__(message)
        self.iteration = iteration

    def __str__(self):
        message = super().__str__()
        if self.iteration is None:
            return message
        return f"{message} (iteration {self.iteration})"


class InvalidConfiguration(FactorizationError, ValueError):
    """Out-of-domain settings supplied before the run starts."""


class SeedingFailure(FactorizationError):
    """The seeding strategy failed or returned unusable factors."""


class NumericInstability(FactorizationError, FloatingPointError):
    """An update step or the residual produced non-finite values."""
