"""Iterative matrix factorization core.

`IterativeFactorization` drives repeated refinement of two factors U (m x k)
and V (n x k) so that U @ V.T approximates a fixed input matrix A (m x n).
The numeric update rule is injected as a plain callable; everything else
(seeding, the stopping rule, error bookkeeping and ordering of the resulting
basis by activity) lives here and is shared by every algorithm.

Typical use:

    from matfact import IterativeFactorization
    from matfact.algos import nmf_ed_step

    factorization = IterativeFactorization(A, nmf_ed_step)
    factorization.k = 10
    factorization.stop_threshold = 0.001
    factorization.ordered = True
    factorization.compute()
    U, V = factorization.U, factorization.V
"""

import logging
from enum import Enum
from typing import Callable, Optional, Tuple

import numpy as np
import scipy.sparse as sp

from .config import FactorizationConfig, build_config
from .errors import FactorizationError, InvalidConfiguration, NumericInstability, SeedingFailure
from .matrix_utils import is_finite, order_by_activity, residual_norm
from .seeding import RandomSeedingStrategy, SeedingStrategy

logger = logging.getLogger(__name__)

# (A, U, V) -> (U, V), or None after updating U and V in place
UpdateStep = Callable[..., Optional[Tuple[np.ndarray, np.ndarray]]]


class FactorizationState(Enum):
    UNINITIALIZED = "uninitialized"
    SEEDED = "seeded"
    ITERATING = "iterating"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"
    ORDERED = "ordered"
    DONE = "done"


class IterativeFactorization:
    """Single-use driver of an iterative factorization A ~ U @ V.T."""

    def __init__(
        self,
        A,
        update_step: UpdateStep,
        config: Optional[FactorizationConfig] = None,
        seeding_strategy: Optional[SeedingStrategy] = None,
    ):
        """
        Args:
            A: (m x n) numpy array or scipy.sparse matrix, read-only for the run
            update_step: callable (A, U, V) performing one refinement; it either
                returns the new (U, V) pair or returns None after changing the
                given U and V in place
            config: settings; defaults to FactorizationConfig()
            seeding_strategy: initializer; defaults to RandomSeedingStrategy(config.seed)

        Raises:
            InvalidConfiguration: if A is not a finite, non-empty 2-D matrix or
                update_step is not callable
        """
        self._state = FactorizationState.UNINITIALIZED
        self._A = self._freeze_input(A)

        if not callable(update_step):
            raise InvalidConfiguration(
                f"update_step must be callable, got {type(update_step).__name__}"
            )
        self._update_step = update_step

        if config is None:
            config = FactorizationConfig()
        elif not isinstance(config, FactorizationConfig):
            raise InvalidConfiguration(
                f"config must be a FactorizationConfig, got {type(config).__name__}"
            )
        # Private copy: later changes to the caller's object do not leak in
        self._config = config.model_copy()

        if seeding_strategy is None:
            seeding_strategy = RandomSeedingStrategy(self._config.seed)
        self.seeding_strategy = seeding_strategy

        self._U: Optional[np.ndarray] = None
        self._V: Optional[np.ndarray] = None
        self._approximation_error = -1.0
        self._approximation_errors: Optional[list] = None
        self._iterations_completed = 0
        self._aggregates: Optional[np.ndarray] = None
        self._converged = False

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def k(self) -> int:
        """Number of base vectors."""
        return self._config.k

    @k.setter
    def k(self, k: int):
        self._set("k", k)

    @property
    def max_iterations(self) -> int:
        """Maximum number of iterations the algorithm is allowed to run."""
        return self._config.max_iterations

    @max_iterations.setter
    def max_iterations(self, max_iterations: int):
        self._set("max_iterations", max_iterations)

    @property
    def stop_threshold(self) -> float:
        """
        Relative-improvement cutoff.

        If the relative decrease of the approximation error becomes smaller
        than this value, the run stops. Computing the error is costly: a
        negative threshold turns it off, and the run always performs
        max_iterations steps.
        """
        return self._config.stop_threshold

    @stop_threshold.setter
    def stop_threshold(self, stop_threshold: float):
        self._set("stop_threshold", stop_threshold)

    @property
    def ordered(self) -> bool:
        """True when base vectors are reordered by activity after the run."""
        return self._config.ordered

    @ordered.setter
    def ordered(self, ordered: bool):
        self._set("ordered", ordered)

    @property
    def seeding_strategy(self) -> SeedingStrategy:
        return self._seeding_strategy

    @seeding_strategy.setter
    def seeding_strategy(self, seeding_strategy: SeedingStrategy):
        self._check_configurable()
        if not isinstance(seeding_strategy, SeedingStrategy):
            raise InvalidConfiguration(
                f"seeding_strategy must be a SeedingStrategy, got {type(seeding_strategy).__name__}"
            )
        self._seeding_strategy = seeding_strategy

    @property
    def config(self) -> FactorizationConfig:
        """Copy of the current settings."""
        return self._config.model_copy()

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    @property
    def A(self):
        return self._A

    @property
    def U(self) -> Optional[np.ndarray]:
        """Copy of the left factor (m x k), None before seeding."""
        return None if self._U is None else self._U.copy()

    @property
    def V(self) -> Optional[np.ndarray]:
        """Copy of the right factor (n x k), None before seeding."""
        return None if self._V is None else self._V.copy()

    @property
    def approximation_error(self) -> float:
        """Last computed residual norm, or -1.0 if none was computed."""
        return self._approximation_error

    @property
    def approximation_errors(self) -> Optional[Tuple[float, ...]]:
        """Residual norm after each iteration; None when tracking is disabled."""
        if self._approximation_errors is None:
            return None
        return tuple(self._approximation_errors)

    @property
    def iterations_completed(self) -> int:
        return self._iterations_completed

    @property
    def aggregates(self) -> Optional[np.ndarray]:
        """Activity of each base vector for an ordered run, None otherwise."""
        return None if self._aggregates is None else self._aggregates.copy()

    @property
    def converged(self) -> bool:
        """True if the stop rule ended the run before max_iterations."""
        return self._converged

    @property
    def state(self) -> FactorizationState:
        return self._state

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def compute(self) -> "IterativeFactorization":
        """
        Seed, iterate until converged or exhausted, then optionally order.

        Returns:
            self, for chaining

        Raises:
            FactorizationError: if the instance has already been used
            InvalidConfiguration: if k exceeds the smaller dimension of A
            SeedingFailure: if the seeding strategy fails or returns bad factors
            FactorizationError: if an update step returns factors of the wrong shape
            NumericInstability: if an update step produces non-finite values
        """
        if self._state is not FactorizationState.UNINITIALIZED:
            raise FactorizationError(
                f"Factorization already run (state: {self._state.value}); create a new instance"
            )

        m, n = self._A.shape
        if self.k > min(m, n):
            raise InvalidConfiguration(
                f"k ({self.k}) must not exceed min(m, n) = {min(m, n)}"
            )

        self._seed()
        self._iterate()
        if self.ordered:
            self._order()
        self._state = FactorizationState.DONE
        return self

    def _seed(self):
        m, n = self._A.shape
        k = self.k
        try:
            seeds = self._seeding_strategy.seed(self._A, k)
        except Exception as e:
            raise SeedingFailure(f"{self._seeding_strategy!r} failed: {e}") from e

        if not isinstance(seeds, tuple) or len(seeds) != 2:
            raise SeedingFailure(
                f"{self._seeding_strategy!r} must return a (U, V) pair, got {type(seeds).__name__}"
            )
        try:
            U, V = (np.array(factor, dtype=float) for factor in seeds)
        except (TypeError, ValueError) as e:
            raise SeedingFailure(
                f"{self._seeding_strategy!r} returned factors that are not numeric matrices: {e}"
            ) from e

        if U.shape != (m, k) or V.shape != (n, k):
            raise SeedingFailure(
                f"{self._seeding_strategy!r} returned U{U.shape} and V{V.shape}, "
                f"expected U{(m, k)} and V{(n, k)}"
            )
        if not (is_finite(U) and is_finite(V)):
            raise SeedingFailure(f"{self._seeding_strategy!r} returned non-finite values")

        self._U, self._V = U, V
        self._state = FactorizationState.SEEDED
        logger.debug(f"Seeded U{U.shape}, V{V.shape} with {self._seeding_strategy!r}")

    def _iterate(self):
        self._state = FactorizationState.ITERATING
        if self._config.tracks_error:
            self._approximation_errors = []

        m, n = self._A.shape
        k = self.k
        while self._iterations_completed < self.max_iterations:
            iteration = self._iterations_completed
            updated = self._update_step(self._A, self._U, self._V)
            if updated is None:
                U, V = self._U, self._V
            else:
                U, V = updated
            U = np.asarray(U, dtype=float)
            V = np.asarray(V, dtype=float)
            if U.shape != (m, k) or V.shape != (n, k):
                raise FactorizationError(
                    f"Update step returned U{U.shape} and V{V.shape}, "
                    f"expected U{(m, k)} and V{(n, k)}",
                    iteration=iteration,
                )
            if not (is_finite(U) and is_finite(V)):
                raise NumericInstability(
                    "Update step produced non-finite factor entries", iteration=iteration
                )
            self._U, self._V = U, V
            self._iterations_completed += 1

            if self._config.tracks_error and self._update_approximation_error():
                self._converged = True
                break

        if self._converged:
            self._state = FactorizationState.CONVERGED
            reason = "converged"
        else:
            self._state = FactorizationState.EXHAUSTED
            reason = "reached max_iterations"
        logger.info(
            f"Factorization k={self.k} {reason} after {self._iterations_completed} "
            f"iterations (error={self._approximation_error:.6g})"
        )

    def _update_approximation_error(self) -> bool:
        """Record the residual of the current factors.

        Returns:
            True if the run should stop
        """
        iteration = self._iterations_completed - 1
        new_error = residual_norm(self._A, self._U, self._V)
        if not np.isfinite(new_error):
            raise NumericInstability(
                f"Approximation error is not finite: {new_error}", iteration=iteration
            )

        # First computed error: no previous value to compare against
        previous_error = self._approximation_error if self._approximation_errors else None
        self._approximation_errors.append(new_error)
        self._approximation_error = new_error

        if new_error == 0.0:
            logger.debug(f"Iteration {iteration}: exact reconstruction")
            return True
        if previous_error is None:
            logger.debug(f"Iteration {iteration}: error={new_error:.6g}")
            return False

        # A zero error stops the run above, so previous_error is never zero here
        decrease =(previous_error - new_error) / previous_error
        logger.debug(
            f"Iteration {iteration}: error={new_error:.6g}, relative decrease={decrease:.6g}"
        )
        return decrease < self.stop_threshold

    def _order(self):
        """Reorder U and V columns by descending activity of base vectors."""
        self._U, self._V, self._aggregates, order = order_by_activity(self._U, self._V)
        self._state = FactorizationState.ORDERED
        logger.debug(f"Ordered base vectors: {order.tolist()}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_configurable(self):
        if self._state is not FactorizationState.UNINITIALIZED:
            raise InvalidConfiguration(
                f"Cannot change settings once the run has started (state: {self._state.value})"
            )

    def _set(self, name: str, value):
        self._check_configurable()
        try:
            setattr(self._config, name, value)
        except ValueError as e:
            raise InvalidConfiguration(f"Invalid value for {name}: {value!r}") from e

    @staticmethod
    def _freeze_input(A):
        if sp.issparse(A):
            A = sp.csr_matrix(A, dtype=float, copy=True)
        else:
            A = np.array(A, dtype=float)
            if A.ndim != 2:
                raise InvalidConfiguration(f"Input matrix must be 2-D, got {A.ndim}-D")
            A.setflags(write=False)

        if A.shape[0] < 1 or A.shape[1] < 1:
            raise InvalidConfiguration(f"Input matrix must be non-empty, got shape {A.shape}")
        if not is_finite(A):
            raise InvalidConfiguration("Input matrix contains non-finite values")
        return A

    def __repr__(self):
        return (
            f"IterativeFactorization(shape={self._A.shape}, k={self.k}, "
            f"max_iterations={self.max_iterations}, stop_threshold={self.stop_threshold}, "
            f"ordered={self.ordered}, state={self._state.value})"
        )


def factorize(
    A,
    update_step: UpdateStep,
    seeding_strategy: Optional[SeedingStrategy] = None,
    config: Optional[FactorizationConfig] = None,
    **settings,
) -> IterativeFactorization:
    """
    Build, run and return a factorization in one call.

    Keyword settings (k, max_iterations, stop_threshold, ordered, seed)
    override the values of `config`.
    """
    if config is None:
        config = build_config(settings)
    elif settings:
        config = build_config({**config.model_dump(), **settings})
    factorization = IterativeFactorization(
        A, update_step, config=config, seeding_strategy=seeding_strategy
    )
    return factorization.compute()
