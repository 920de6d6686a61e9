from __future__ import annotations

import logging
import threading

import pytest

from pv_cluster_analysis import CONFIG, AnalysisCancelled, AnalysisOrchestrator, CancellationToken
from pv_cluster_analysis.core import (
    AnalysisLogger,
    DetectorFactory,
    LoggerManager,
    LoggingObserver,
    PerformanceLogger,
    ensure_token,
    get_logger,
    setup_logging,
)


def test_logger_manager_is_a_singleton() -> None:
    assert LoggerManager() is LoggerManager()
    assert get_logger("pv_cluster_analysis.test") is get_logger("pv_cluster_analysis.test")


def test_performance_logger_measures_durations() -> None:
    perf = PerformanceLogger()

    perf.start_timer("step")

    assert perf.stop_timer("step") >= 0.0
    assert perf.stop_timer("step") == 0.0


def test_analysis_logger_counts_group_events(caplog) -> None:
    run_log = AnalysisLogger()

    with caplog.at_level(logging.INFO):
        run_log.log_group_event("Süd", "outliers", {"count": 2})
        run_log.log_group_event("Ost", "discarded", {"outliers": 3})

    assert run_log.stats["total_outliers"] == 2
    assert run_log.stats["by_event"] == {"outliers": 1, "discarded": 1}
    assert [r.levelno for r in caplog.records] == [logging.INFO, logging.WARNING]
    run_log.reset_stats()
    assert run_log.stats["total_outliers"] == 0


def test_logging_observer_reports_run_events(base_builder, caplog) -> None:
    observer = LoggingObserver(logging.getLogger("pv_cluster_analysis.test.observer"))
    orchestrator = AnalysisOrchestrator(observers=[observer])

    with caplog.at_level(logging.INFO, logger="pv_cluster_analysis.test.observer"):
        orchestrator.run_full_analysis(base_builder.build())
    events = [r.message for r in caplog.records if r.name == "pv_cluster_analysis.test.observer"]

    assert events[0].startswith("Event: prepared")
    assert events[-1].startswith("Event: complete")

    orchestrator.detach(observer)
    caplog.clear()
    orchestrator.run_full_analysis(base_builder.build())
    assert not [r for r in caplog.records if r.name == "pv_cluster_analysis.test.observer"]


def test_cancellation_token_across_threads() -> None:
    token = CancellationToken()
    token.check("idle")

    worker = threading.Thread(target=token.cancel)
    worker.start()
    worker.join()

    assert token.is_cancelled
    with pytest.raises(AnalysisCancelled, match="during clustering"):
        token.check("clustering")


def test_ensure_token_keeps_given_token() -> None:
    token = CancellationToken()

    assert ensure_token(token) is token
    assert not ensure_token().is_cancelled


def test_detector_factory_lists_registered_detectors() -> None:
    assert set(DetectorFactory.get_available()) >= {"optics", "dbscan"}


def test_setup_logging_keeps_shared_config(tmp_path) -> None:
    previous = LoggerManager._instance
    logger = None
    try:
        setup_logging(tmp_path, log_to_file=True)
        manager = LoggerManager()
        logger = manager.get_logger("pv_cluster_analysis.test.file")

        assert manager.log_to_file
        assert manager.log_dir == tmp_path
        assert CONFIG["logging"]["log_to_file"] is False
        assert list(tmp_path.glob("pv_cluster_analysis.test.file_*.log"))
    finally:
        if logger is not None:
            for handler in logger.handlers:
                handler.close()
            logger.handlers.clear()
        LoggerManager._instance = previous
