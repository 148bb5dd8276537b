"""Pytest configuration and fixtures."""

from typing import Dict, List, Optional, Sequence

import pytest

from configs.config import Config
from utils.context_window import ContextWindowError
from utils.diff_models import Commit, Comparison, ComparisonStats, FileChange
from utils.risk_classifier import default_classifier


class FakeLLMClient:
    """Scripted client: returns or raises the scripted outcomes in order, repeating the last one."""

    def __init__(self, outcomes: Sequence):
        self.outcomes = list(outcomes)
        self.prompts: List[str] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    def analyze(self, prompt: str) -> str:
        self.prompts.append(prompt)
        outcome = self.outcomes[min(len(self.prompts), len(self.outcomes)) - 1]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def _patch(n: int, prefix: str = "line") -> str:
    return "".join(f"+{prefix} {i}\n" for i in range(n))


@pytest.fixture(autouse=True)
def isolated_observability(tmp_path, monkeypatch):
    """Keep metrics and audit files inside the test's temp dir."""
    monkeypatch.setattr(Config, "METRICS_ENABLED", False)
    monkeypatch.setattr(Config, "METRICS_ROOT", str(tmp_path / "metrics"))
    monkeypatch.setattr(Config, "AUDIT_ROOT", str(tmp_path / "audit"))
    default_classifier.cache_clear()
    yield
    default_classifier.cache_clear()


@pytest.fixture
def make_patch():
    """Build a patch with ``n`` lines, each ending in a newline."""
    return _patch


@pytest.fixture
def make_comparison():
    """Build a comparison from {filename: patch line count}."""

    def _make(
        files: Dict[str, int],
        repo_url: str = "https://github.com/acme/service",
        commits: Optional[List[Commit]] = None,
    ) -> Comparison:
        changes = [
            FileChange(filename=name, additions=n, changes=n, patch=_patch(n, prefix=name))
            for name, n in files.items()
        ]
        if commits is None:
            commits = [Commit(sha="a1b2c3d4e5f6", message="Update service", author="dev")]
        return Comparison(
            repo_url=repo_url,
            diff_url=f"{repo_url}/compare/v1.0.0...v1.1.0",
            commits=commits,
            files=changes,
            stats=ComparisonStats(
                total_files=len(changes),
                total_additions=sum(files.values()),
                total_changes=sum(files.values()),
            ),
        )

    return _make


@pytest.fixture
def fake_client():
    """Factory for scripted LLM clients."""
    return FakeLLMClient


@pytest.fixture
def overflow_error():
    return ContextWindowError(
        "This model's maximum context length is 8192 tokens",
        provider="Fake",
        status_code=400,
        body="maximum context length exceeded",
    )
