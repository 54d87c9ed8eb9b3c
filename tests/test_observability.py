import json
from pathlib import Path

from georesolve.observability.log import configure_logging
from georesolve.observability.metrics import MetricsRegistry, record_duration


def test_metrics_export_includes_hit_ratio(tmp_path):
    metrics = MetricsRegistry()
    metrics.incr("cache_hits", 3)
    metrics.incr("cache_misses")
    with record_duration(metrics, "batch_duration_ms"):
        pass
    path = metrics.export(path=tmp_path / "metrics" / "run.json", run_id="r1")
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["run_id"] == "r1"
    assert payload["counters"]["cache_hits"] == 3
    assert payload["cache_hit_ratio"] == 0.75


def test_hit_ratio_without_lookups():
    assert MetricsRegistry().cache_hit_ratio() == 0.0


def test_configure_logging_from_repository_yaml():
    configure_logging(Path("config/logging.yaml"))


def test_configure_logging_without_yaml(tmp_path):
    configure_logging(tmp_path / "missing.yaml")
