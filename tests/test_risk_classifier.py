"""Tests for risk classification and the truncation level table."""

import json

import pytest

from configs.config import ConfigError
from utils.risk_classifier import RiskClassifier, RiskPatterns, default_classifier, load_classifier
from utils.truncation_models import (
    FileRiskLevel,
    TruncationLevel,
    TruncationMetadata,
    should_truncate,
)


@pytest.fixture
def classifier():
    return default_classifier()


@pytest.mark.parametrize(
    "path, expected",
    [
        ("db/migrations/001_init.sql", FileRiskLevel.CRITICAL),
        ("src/auth/login.go", FileRiskLevel.CRITICAL),
        ("api/openapi.yaml", FileRiskLevel.CRITICAL),
        ("Dockerfile", FileRiskLevel.HIGH),
        (".github/workflows/ci.yml", FileRiskLevel.HIGH),
        ("deploy/values.yaml", FileRiskLevel.HIGH),
        ("requirements-dev.txt", FileRiskLevel.MEDIUM),
        ("package.json", FileRiskLevel.MEDIUM),
        ("README.md", FileRiskLevel.LOW),
        ("pkg/server/handler_test.go", FileRiskLevel.LOW),
        ("src/tests/helpers.go", FileRiskLevel.LOW),
        ("vendor/github.com/lib/pq/conn.go", FileRiskLevel.LOW),
        ("src/main.go", FileRiskLevel.MEDIUM),
    ],
)
def test_default_patterns(classifier, path, expected):
    assert classifier.classify(path) == expected


def test_matching_is_case_insensitive(classifier):
    assert classifier.classify("DOCS/Guide.MD") == FileRiskLevel.LOW
    assert classifier.classify("Migrations/V2__Add.SQL") == FileRiskLevel.CRITICAL


def test_higher_tier_wins_when_several_match():
    patterns = RiskPatterns(critical=("payments",), low=("*.md",))
    assert RiskClassifier(patterns).classify("payments/README.md") == FileRiskLevel.CRITICAL


def test_unmatched_path_is_medium():
    assert RiskClassifier(RiskPatterns()).classify("anything/at/all.py") == FileRiskLevel.MEDIUM


def test_extend_appends_patterns():
    base = RiskPatterns(low=("*.md",))
    merged = base.extend({"critical": ["billing"], "low": ["*.md", "*.txt"]})
    assert merged.critical == ("billing",)
    assert merged.low == ("*.md", "*.txt")
    assert base.critical == ()


class TestPatternFiles:
    def test_load_from_file(self, tmp_path):
        path = tmp_path / "patterns.json"
        path.write_text(json.dumps({"critical": ["ledger*"], "low": ["*.md"]}))
        classifier = load_classifier(str(path))
        assert classifier.classify("src/ledger_sync.go") == FileRiskLevel.CRITICAL

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            RiskPatterns.from_file(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "patterns.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="not valid JSON"):
            RiskPatterns.from_file(path)

    def test_unknown_tier_rejected(self, tmp_path):
        path = tmp_path / "patterns.json"
        path.write_text(json.dumps({"urgent": ["*.sql"]}))
        with pytest.raises(ConfigError, match="malformed"):
            RiskPatterns.from_file(path)


class TestTruncationLevels:
    def test_ladder_order_and_parameters(self):
        assert [lvl.value for lvl in TruncationLevel.ordered()] == ["low", "moderate", "high", "extreme"]
        assert (TruncationLevel.LOW.keep_start, TruncationLevel.LOW.keep_end) == (50, 20)
        assert (TruncationLevel.MODERATE.keep_start, TruncationLevel.MODERATE.keep_end) == (20, 10)
        assert (TruncationLevel.HIGH.keep_start, TruncationLevel.HIGH.keep_end) == (10, 5)
        assert (TruncationLevel.EXTREME.keep_start, TruncationLevel.EXTREME.keep_end) == (5, 3)
        assert [lvl.small_file_threshold for lvl in TruncationLevel] == [100, 75, 50, 20]

    def test_parse(self):
        assert TruncationLevel.parse(" Moderate ") == TruncationLevel.MODERATE
        with pytest.raises(ValueError, match="Unknown truncation level"):
            TruncationLevel.parse("aggressive")

    @pytest.mark.parametrize(
        "risk, expected",
        [
            (FileRiskLevel.LOW, [True, True, True, True]),
            (FileRiskLevel.MEDIUM, [False, True, True, True]),
            (FileRiskLevel.HIGH, [False, False, True, True]),
            (FileRiskLevel.CRITICAL, [False, False, False, False]),
        ],
    )
    def test_decision_table(self, risk, expected):
        assert [should_truncate(risk, level) for level in TruncationLevel] == expected

    def test_combine_metadata(self):
        combined = TruncationMetadata.combine(
            [
                TruncationMetadata(truncated=True, level="high", total_files=3, files_preserved=1,
                                   files_truncated=2, truncated_files_list=["a", "b"]),
                TruncationMetadata(level="high", total_files=2, files_preserved=2),
            ],
            "high",
        )
        assert combined.truncated is True
        assert combined.total_files == 5
        assert combined.files_preserved == 3
        assert combined.files_truncated == 2
        assert combined.truncated_files_list == ["a", "b"]
