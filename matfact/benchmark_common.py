"""Shared benchmarking infrastructure for factorization comparisons.

This module provides common classes for running several update rules over
one input matrix at several ranks, collecting timing, convergence and memory
figures, and plotting them.
"""

import logging
import time
import tracemalloc
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

from .algos import ALGORITHMS, NONNEGATIVE_ALGORITHMS
from .config import FactorizationConfig, build_config
from .errors import FactorizationError
from .iterative import IterativeFactorization
from .matrix_utils import check_nonnegative
from .seeding import SeedingStrategy

logger = logging.getLogger(__name__)


@dataclass
class BenchmarkResult:
    """Store results for a single algorithm at a single rank."""

    method_name: str
    rank: int
    time_sec: float
    iterations: int
    final_error: float
    converged: bool
    memory_bytes: int
    error_history: List[float] = field(default_factory=list)
    success: bool = True
    error_message: str = ""


class AlgorithmBenchmark:
    """Benchmark a single update rule."""

    def __init__(self, name: str, update_step: Callable, requires_nonnegative: bool = False):
        """
        Args:
            name: Display name for algorithm
            update_step: callable (A, U, V) -> (U, V)
            requires_nonnegative: reject inputs with negative entries
        """
        self.name = name
        self.update_step = update_step
        self.requires_nonnegative = requires_nonnegative

    def run(
        self,
        A,
        rank: int,
        config: Optional[FactorizationConfig] = None,
        seeding_strategy: Optional[SeedingStrategy] = None,
    ) -> BenchmarkResult:
        """
        Run one factorization of A at the given rank.

        Failures of the factorization are recorded in the result instead of
        being raised, so one diverging method does not abort a comparison.

        Args:
            A: input matrix
            rank: number of base vectors
            config: settings shared by all runs (k is overridden by rank)
            seeding_strategy: optional initializer

        Returns:
            BenchmarkResult with all metrics
        """
        try:
            config = build_config({**(config or FactorizationConfig()).model_dump(), "k": rank})
            if self.requires_nonnegative:
                check_nonnegative(A, self.name)

            tracemalloc.start()
            try:
                start_time = time.perf_counter()
                factorization = IterativeFactorization(
                    A, self.update_step, config=config, seeding_strategy=seeding_strategy
                ).compute()
                time_sec = time.perf_counter() - start_time
                _, peak = tracemalloc.get_traced_memory()
            finally:
                tracemalloc.stop()

            errors = factorization.approximation_errors
            return BenchmarkResult(
                method_name=self.name,
                rank=rank,
                time_sec=time_sec,
                iterations=factorization.iterations_completed,
                final_error=factorization.approximation_error,
                converged=factorization.converged,
                memory_bytes=peak,
                error_history=list(errors) if errors is not None else [],
            )

        except (FactorizationError, ValueError, FloatingPointError) as e:
            logger.warning(f"{self.name} failed at rank {rank}: {e}")
            return BenchmarkResult(
                method_name=self.name,
                rank=rank,
                time_sec=0.0,
                iterations=getattr(e, "iteration", None) or 0,
                final_error=np.inf,
                converged=False,
                memory_bytes=0,
                success=False,
                error_message=str(e),
            )


class ComparisonRunner:
    """Run comparison across multiple algorithms and ranks."""

    def __init__(
        self,
        matrix,
        ranks: Sequence[int],
        config: Optional[FactorizationConfig] = None,
        seeding_strategy: Optional[SeedingStrategy] = None,
        algorithms: Optional[Dict[str, Callable]] = None,
    ):
        """
        Args:
            matrix: input matrix (dense or sparse)
            ranks: ranks to test
            config: settings shared by all runs
            seeding_strategy: initializer shared by all runs
            algorithms: name -> update step; defaults to every registered rule
        """
        if len(ranks) == 0:
            raise ValueError("At least one rank is required")
        m, n = matrix.shape
        bad = [r for r in ranks if r < 1 or r > min(m, n)]
        if bad:
            raise ValueError(f"Ranks must be in [1, {min(m, n)}], got {bad}")

        self.A = matrix
        self.ranks = sorted(set(int(r) for r in ranks))
        self.config = config or FactorizationConfig()
        self.seeding_strategy = seeding_strategy
        self.algorithms = [
            AlgorithmBenchmark(name, step, requires_nonnegative=name in NONNEGATIVE_ALGORITHMS)
            for name, step in (algorithms or ALGORITHMS).items()
        ]
        self.results: List[BenchmarkResult] = []

    def run_all(self) -> List[BenchmarkResult]:
        """Run all algorithms for all ranks."""
        print(f"Running comparisons for {len(self.ranks)} ranks: {self.ranks}\n")

        for idx, rank in enumerate(self.ranks, 1):
            print(f"Rank {rank} ({idx}/{len(self.ranks)}):")

            for algo in self.algorithms:
                result = algo.run(self.A, rank, self.config, self.seeding_strategy)
                self.results.append(result)

                if result.success:
                    print(
                        f"  {algo.name:8s}: {result.time_sec:.4f}s, "
                        f"iterations={result.iterations}, "
                        f"error={result.final_error:.4f}, "
                        f"converged={result.converged}, "
                        f"mem={result.memory_bytes // 1024}KB"
                    )
                else:
                    print(f"  {algo.name:8s}: FAILED - {result.error_message}")

            print()

        return self.results

    def results_frame(self) -> pd.DataFrame:
        """One row per (method, rank) run, without the error histories."""
        rows = [
            {
                "method": r.method_name,
                "rank": r.rank,
                "time_sec": r.time_sec,
                "iterations": r.iterations,
                "final_error": r.final_error,
                "converged": r.converged,
                "memory_kb": r.memory_bytes / 1024,
                "success": r.success,
                "error_message": r.error_message,
            }
            for r in self.results
        ]
        return pd.DataFrame(rows)


class ResultsVisualizer:
    """Create visualization plots from benchmark results."""

    def __init__(self, results: List[BenchmarkResult]):
        self.results = results
        self.methods = sorted(set(r.method_name for r in results if r.success))
        self.markers = {
            "nmf-ed": "o",
            "nmf-kl": "s",
            "lnmf": "^",
            "kmeans": "D",
        }

    def plot_all(self, save_dir: str = ".", label: str = "factorization") -> Path:
        """Generate all plots inside save_dir/label and return that folder."""
        experiment_dir = Path(save_dir) / label
        experiment_dir.mkdir(parents=True, exist_ok=True)

        for rank in sorted(set(r.rank for r in self.results if r.error_history)):
            self.plot_error_vs_iteration(rank, experiment_dir / f"error_vs_iteration_k{rank}.png")
        self.plot_time_vs_rank(experiment_dir / "time_vs_rank.png")
        self.plot_iterations_vs_rank(experiment_dir / "iterations_vs_rank.png")

        print(f"\nPlots saved to {experiment_dir}")
        return experiment_dir

    def plot_error_vs_iteration(self, rank: int, save_path: Path):
        """Plot the approximation error history of every method at one rank."""
        fig, ax = plt.subplots(figsize=(10, 6))

        for r in self.results:
            if r.rank == rank and r.success and r.error_history:
                iterations = np.arange(1, len(r.error_history) + 1)
                ax.plot(
                    iterations,
                    r.error_history,
                    marker=self.markers.get(r.method_name, "o"),
                    linewidth=2,
                    markersize=5,
                    label=r.method_name,
                )

        self._format_plot(
            ax,
            title=f"Approximation Error vs Iteration (k={rank})",
            xlabel="Iteration",
            ylabel="||U V^T - A||_F",
            use_log_scale=True,
        )
        plt.savefig(save_path, dpi=150, bbox_inches="tight")
        plt.close(fig)

    def plot_time_vs_rank(self, save_path: Path):
        """Plot execution time vs rank for all methods."""
        self._plot_metric_vs_rank(
            save_path, lambda r: r.time_sec, "Execution Time vs Rank", "Time (seconds)", True
        )

    def plot_iterations_vs_rank(self, save_path: Path):
        """Plot the number of iterations run vs rank for all methods."""
        self._plot_metric_vs_rank(
            save_path, lambda r: r.iterations, "Iterations vs Rank", "Iterations", False
        )

    def _plot_metric_vs_rank(self, save_path, metric, title, ylabel, use_log_scale):
        fig, ax = plt.subplots(figsize=(10, 6))

        for method in self.methods:
            data = [
                (r.rank, metric(r))
                for r in self.results
                if r.method_name == method and r.success
            ]
            if data:
                ranks, values = zip(*data)
                ax.plot(
                    ranks,
                    values,
                    marker=self.markers.get(method, "o"),
                    linewidth=2,
                    markersize=6,
                    label=method,
                )

        self._format_plot(ax, title=title, xlabel="Rank", ylabel=ylabel, use_log_scale=use_log_scale)
        plt.savefig(save_path, dpi=150, bbox_inches="tight")
        plt.close(fig)

    def _format_plot(
        self, ax, title: str, xlabel: str, ylabel: str, use_log_scale: bool = False
    ):
        """Helper to format plot with consistent style."""
        ax.set_title(title, fontsize=14, fontweight="bold")
        ax.set_xlabel(xlabel, fontsize=12)
        ax.set_ylabel(ylabel, fontsize=12)
        ax.grid(True, alpha=0.3, linestyle="--")
        if ax.get_legend_handles_labels()[0]:
            ax.legend(fontsize=10, loc="best")

        if use_log_scale:
            ax.set_yscale("log")
