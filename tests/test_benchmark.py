"""Tests for the comparison harness and its command-line entry point."""

import tracemalloc

import numpy as np
import pandas as pd
import pytest

from matfact import FactorizationConfig
from matfact.algos import nmf_ed_step
from matfact.benchmark_common import AlgorithmBenchmark, ComparisonRunner, ResultsVisualizer
from matfact.compare_factorizations import main
from matfact.matrix_generators import MatrixGenerator


class TestAlgorithmBenchmark:

    def test_successful_run(self, topic_matrix):
        config = FactorizationConfig(max_iterations=8, stop_threshold=0.0)
        result = AlgorithmBenchmark("nmf-ed", nmf_ed_step).run(topic_matrix, 3, config)
        assert result.success
        assert result.rank == 3
        assert result.iterations == 8
        assert len(result.error_history) == 8
        assert result.final_error == pytest.approx(result.error_history[-1])

    def test_failure_is_recorded(self, topic_matrix):
        def exploding_step(A, U, V):
            return U * np.inf, V

        result = AlgorithmBenchmark("boom", exploding_step).run(topic_matrix, 2)
        assert not result.success
        assert result.final_error == np.inf
        assert "non-finite" in result.error_message

    def test_invalid_rank_is_recorded(self, topic_matrix):
        result = AlgorithmBenchmark("nmf-ed", nmf_ed_step).run(topic_matrix, 0)
        assert not result.success

    def test_memory_tracing_stopped_after_unexpected_error(self, topic_matrix):
        def broken_step(A, U, V):
            raise TypeError("unsupported operand")

        with pytest.raises(TypeError):
            AlgorithmBenchmark("broken", broken_step).run(topic_matrix, 2)
        assert not tracemalloc.is_tracing()

    def test_negative_input_rejected(self):
        A = -np.ones((6, 5))
        result = AlgorithmBenchmark("nmf-ed", nmf_ed_step, requires_nonnegative=True).run(A, 2)
        assert not result.success
        assert "non-negative" in result.error_message


class TestComparisonRunner:

    def test_results_frame(self, topic_matrix):
        runner = ComparisonRunner(
            topic_matrix, [2, 3], config=FactorizationConfig(max_iterations=4, stop_threshold=0.0)
        )
        results = runner.run_all()
        assert len(results) == 2 * 4

        frame = runner.results_frame()
        assert isinstance(frame, pd.DataFrame)
        assert set(frame["method"]) == {"nmf-ed", "nmf-kl", "lnmf", "kmeans"}
        assert list(frame["rank"].unique()) == [2, 3]
        assert frame["success"].all()

    def test_nonnegative_methods_reject_negative_input(self):
        A = MatrixGenerator.random_nonnegative(12, 10, seed=3) - 0.5
        runner = ComparisonRunner(A, [2], config=FactorizationConfig(max_iterations=3))
        runner.run_all()

        frame = runner.results_frame().set_index("method")
        for method in ("nmf-ed", "nmf-kl", "lnmf"):
            assert not frame.loc[method, "success"]
            assert "non-negative" in frame.loc[method, "error_message"]
        assert frame.loc["kmeans", "success"]

    def test_rank_validation(self, topic_matrix):
        with pytest.raises(ValueError):
            ComparisonRunner(topic_matrix, [])
        with pytest.raises(ValueError):
            ComparisonRunner(topic_matrix, [31])

    def test_plots_written(self, topic_matrix, tmp_path):
        runner = ComparisonRunner(
            topic_matrix,
            [2],
            config=FactorizationConfig(max_iterations=3, stop_threshold=0.0),
            algorithms={"nmf-ed": nmf_ed_step},
        )
        runner.run_all()
        out = ResultsVisualizer(runner.results).plot_all(save_dir=tmp_path, label="exp")
        assert (out / "error_vs_iteration_k2.png").exists()
        assert (out / "time_vs_rank.png").exists()
        assert (out / "iterations_vs_rank.png").exists()


class TestMatrixGenerator:

    def test_term_document_shape_and_sign(self):
        A = MatrixGenerator.term_document(30, 20, 3, seed=1)
        assert A.shape == (30, 20)
        assert A.min() >= 0
        # Every document has at least one term
        assert (A.sum(axis=0) > 0).all()

    def test_sparse_output(self):
        A = MatrixGenerator.term_document(30, 20, 3, seed=1, sparse=True)
        np.testing.assert_array_equal(A.toarray(), MatrixGenerator.term_document(30, 20, 3, seed=1))

    def test_invalid_topics(self):
        with pytest.raises(ValueError):
            MatrixGenerator.term_document(10, 5, 6)

    def test_tfidf_columns_unit_length(self):
        A = MatrixGenerator.term_document(30, 20, 3, noise_level=0.5, seed=2)
        W = MatrixGenerator.tfidf(A)
        norms = np.linalg.norm(W, axis=0)
        assert np.all((np.abs(norms - 1.0) < 1e-9) | (norms == 0))

    def test_matrix_info(self):
        info = MatrixGenerator.get_matrix_info(np.array([[0.0, 2.0], [1.0, 1.0]]))
        assert info['shape'] == (2, 2)
        assert info['density'] == pytest.approx(0.75)
        assert info['max'] == 2.0


class TestCommandLine:

    def test_main_writes_results(self, tmp_path):
        status = main([
            "--terms", "30",
            "--documents", "20",
            "--topics", "3",
            "-r", "2", "3",
            "--max-iterations", "5",
            "--stop-threshold", "0.0",
            "--ordered",
            "-a", "nmf-ed", "kmeans",
            "-o", str(tmp_path),
        ])
        assert status == 0
        csv_path = tmp_path / "td30x20_t3" / "results.csv"
        frame = pd.read_csv(csv_path)
        assert len(frame) == 4
        assert (frame["iterations"] <= 5).all()

    def test_main_with_config_file_and_sparse_input(self, tmp_path):
        config_path = tmp_path / "run.yaml"
        config_path.write_text("max_iterations: 3\nstop_threshold: -1\n")
        status = main([
            "--terms", "30",
            "--documents", "20",
            "--topics", "3",
            "-r", "2",
            "--sparse",
            "--seeding", "kmeans",
            "--config", str(config_path),
            "-o", str(tmp_path),
        ])
        assert status == 0
        frame = pd.read_csv(tmp_path / "td30x20_t3" / "results.csv")
        assert (frame["iterations"] == 3).all()
