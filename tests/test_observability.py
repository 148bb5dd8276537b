"""Tests for configuration, metrics, audit records and log formatting."""

import json
import logging

import pytest

from configs.config import Config, ConfigError
from utils.audit_log import audit_analysis_run
from utils.log_config import JsonFormatter
from utils.metrics import Timer, incr
from utils.truncation_models import TruncationMetadata


class TestConfig:
    def test_defaults_validate(self, monkeypatch):
        monkeypatch.setattr(Config, "MODEL_PROVIDER", "bedrock")
        Config.validate()

    def test_unknown_provider(self, monkeypatch):
        monkeypatch.setattr(Config, "MODEL_PROVIDER", "mystery")
        with pytest.raises(ConfigError, match="MODEL_PROVIDER"):
            Config.validate()

    def test_negative_deadline(self, monkeypatch):
        monkeypatch.setattr(Config, "MODEL_PROVIDER", "bedrock")
        monkeypatch.setattr(Config, "ANALYSIS_MAX_RUNTIME_S", -1)
        with pytest.raises(ConfigError) as exc_info:
            Config.validate()
        assert exc_info.value.code == "CONFIG"

    def test_model_config_accessor(self, monkeypatch):
        monkeypatch.setattr(Config, "MODEL_SKIP_SSL_VERIFY", True)
        cfg = Config.get_model_config()
        assert cfg["verify_ssl"] is False
        assert set(Config.get_bedrock_config()) == {"region_name", "model_id", "timeout_s", "max_response_tokens"}


class TestMetrics:
    def test_disabled_writes_nothing(self, tmp_path):
        incr("llm.attempt")
        assert not (tmp_path / "metrics").exists()

    def test_counter_and_timer(self, monkeypatch, tmp_path):
        monkeypatch.setattr(Config, "METRICS_ENABLED", True)
        incr("llm.attempt", level="low")
        with pytest.raises(RuntimeError):
            with Timer("llm.analyze", level="low"):
                raise RuntimeError("boom")

        lines = [json.loads(line) for line in (tmp_path / "metrics" / "metrics.log").read_text().splitlines()]
        assert [rec["metric"] for rec in lines] == ["llm.attempt", "llm.analyze.latency_s"]
        assert lines[0]["value"] == 1
        assert lines[1]["level"] == "low"

    def test_long_values_are_clipped(self, monkeypatch, tmp_path):
        monkeypatch.setattr(Config, "METRICS_ENABLED", True)
        incr("llm.failure", detail="x" * 500)
        rec = json.loads((tmp_path / "metrics" / "metrics.log").read_text())
        assert len(rec["detail"]) == 203


def test_audit_record(tmp_path):
    metadata = TruncationMetadata(truncated=True, level="high", total_files=4, files_preserved=1,
                                  files_truncated=3, truncated_files_list=["a", "b", "c"])
    path = audit_analysis_run(["https://github.com/acme/service"], "bedrock", "success", 4, truncation=metadata)
    audit_analysis_run(["https://github.com/acme/service"], "bedrock", "failure", 1, error_code="API")

    assert path == tmp_path / "audit" / "analysis.audit.log"
    first, second = [json.loads(line) for line in path.read_text().splitlines()]
    assert first["truncation"]["files_truncated"] == 3
    assert first["error_code"] == ""
    assert second["truncation"] is None
    assert second["error_code"] == "API"


def test_json_log_formatter():
    record = logging.LogRecord("agents.analysis_agent", logging.WARNING, __file__, 1, "overflow at %s", ("low",), None)
    payload = json.loads(JsonFormatter().format(record))
    assert payload["level"] == "WARNING"
    assert payload["logger"] == "agents.analysis_agent"
    assert payload["msg"] == "overflow at low"
