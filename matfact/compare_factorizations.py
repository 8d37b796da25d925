"""Iterative Factorization Comparison Framework.

Runs the registered update rules on a synthetic term-document matrix across
several ranks, measuring execution time, iterations to convergence,
approximation error and memory usage.
"""

import argparse
import logging

import numpy as np

from .algos import ALGORITHMS
from .benchmark_common import ComparisonRunner, ResultsVisualizer
from .config import build_config, load_config
from .matrix_generators import MatrixGenerator
from .seeding import KMeansSeedingStrategy, RandomSeedingStrategy


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compare iterative matrix factorization algorithms",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # 300 terms x 200 documents with 8 planted topics, ranks 2..12
  python -m matfact.compare_factorizations --terms 300 --documents 200 --topics 8 -r 2 4 8 12

  # Stop early once the error improves by less than 0.1% per iteration
  python -m matfact.compare_factorizations -r 8 --max-iterations 200 --stop-threshold 0.001

  # Only NMF variants, k-means seeding, settings from a YAML file
  python -m matfact.compare_factorizations -r 8 -a nmf-ed nmf-kl --seeding kmeans --config run.yaml
        """,
    )

    parser.add_argument("--terms", "-m", type=int, default=300, help="Number of terms (rows)")
    parser.add_argument(
        "--documents", "-n", type=int, default=200, help="Number of documents (columns)"
    )
    parser.add_argument(
        "--topics", "-t", type=int, default=8, help="Number of planted topics (default: 8)"
    )
    parser.add_argument(
        "--density",
        type=float,
        default=0.3,
        help="Fraction of a topic's terms present in each document (default: 0.3)",
    )
    parser.add_argument(
        "--noise", type=float, default=0.5, help="Off-topic noise level (default: 0.5)"
    )
    parser.add_argument(
        "--tfidf", action="store_true", help="Apply tf-idf weighting to the counts"
    )
    parser.add_argument(
        "--sparse", action="store_true", help="Feed the matrix in scipy.sparse CSR form"
    )
    parser.add_argument(
        "--ranks", "-r", type=int, nargs="+", required=True, help="Ranks k to test"
    )
    parser.add_argument(
        "--algorithms",
        "-a",
        nargs="+",
        choices=sorted(ALGORITHMS),
        default=None,
        help="Algorithms to run (default: all)",
    )
    parser.add_argument(
        "--config", type=str, default=None, help="YAML file with factorization settings"
    )
    parser.add_argument("--max-iterations", type=int, default=None, help="Iteration cap")
    parser.add_argument(
        "--stop-threshold",
        type=float,
        default=None,
        help="Relative error decrease below which a run stops; negative disables tracking",
    )
    parser.add_argument(
        "--ordered", action="store_true", help="Order base vectors by activity"
    )
    parser.add_argument(
        "--seeding",
        choices=["random", "kmeans"],
        default="random",
        help="Seeding strategy (default: random)",
    )
    parser.add_argument(
        "--seed", type=int, default=42, help="Random seed for reproducibility (default: 42)"
    )
    parser.add_argument(
        "--output-dir",
        "-o",
        type=str,
        default="results",
        help="Directory to save plots and CSV (default: results)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    return parser


def main(argv=None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Command-line flags override values from the YAML file
    settings = load_config(args.config).model_dump()
    if args.max_iterations is not None:
        settings["max_iterations"] = args.max_iterations
    if args.stop_threshold is not None:
        settings["stop_threshold"] = args.stop_threshold
    if args.ordered:
        settings["ordered"] = True
    settings["seed"] = args.seed
    config = build_config(settings)

    if args.seeding == "kmeans":
        seeding_strategy = KMeansSeedingStrategy(seed=args.seed)
    else:
        seeding_strategy = RandomSeedingStrategy(args.seed)

    print(
        f"Generating {args.terms}×{args.documents} term-document matrix "
        f"with {args.topics} topics (seed={args.seed})..."
    )
    A = MatrixGenerator.term_document(
        args.terms,
        args.documents,
        args.topics,
        density=args.density,
        noise_level=args.noise,
        seed=args.seed,
        sparse=args.sparse and not args.tfidf,
    )
    if args.tfidf:
        A = MatrixGenerator.tfidf(A)
    print(f"Matrix info: {MatrixGenerator.get_matrix_info(A)}")

    algorithms = None
    if args.algorithms:
        algorithms = {name: ALGORITHMS[name] for name in args.algorithms}

    runner = ComparisonRunner(
        A, args.ranks, config=config, seeding_strategy=seeding_strategy, algorithms=algorithms
    )
    results = runner.run_all()

    label = f"td{args.terms}x{args.documents}_t{args.topics}"
    print("Generating plots...")
    experiment_dir = ResultsVisualizer(results).plot_all(save_dir=args.output_dir, label=label)

    frame = runner.results_frame()
    csv_path = experiment_dir / "results.csv"
    frame.to_csv(csv_path, index=False)
    print(f"Results written to {csv_path}")

    print("\n" + "=" * 60)
    print("SUMMARY STATISTICS")
    print("=" * 60)

    successful = frame[frame["success"]]
    if not successful.empty:
        summary = successful.groupby("method").agg(
            avg_time=("time_sec", "mean"),
            avg_iterations=("iterations", "mean"),
            avg_error=("final_error", "mean"),
            converged_runs=("converged", "sum"),
        )
        print(summary.to_string(float_format=lambda v: f"{v:.4f}"))

    failed = frame[~frame["success"]]
    if not failed.empty:
        print(f"\n{len(failed)} algorithm runs failed:")
        for _, row in failed.iterrows():
            print(f"  {row['method']} at rank {row['rank']}: {row['error_message']}")

    print("\nComparison complete!")
    return int(np.count_nonzero(~frame["success"].to_numpy()) > 0)


if __name__ == "__main__":
    raise SystemExit(main())
