#!/usr/bin/env python3
"""File risk classification from glob pattern tables.

Pattern tables are data: they ship as ``configs/risk_patterns.json`` and can
be replaced with ``RISK_PATTERNS_PATH`` or extended in code. A classifier is
built once from a table set and passed to whoever needs it.
"""

from __future__ import annotations

import json
import logging
from fnmatch import fnmatchcase
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from configs.config import Config, ConfigError
from utils.truncation_models import FileRiskLevel

logger = logging.getLogger(__name__)

# Highest risk first; the first tier with a matching pattern wins.
EVALUATION_ORDER = (FileRiskLevel.CRITICAL, FileRiskLevel.HIGH, FileRiskLevel.MEDIUM, FileRiskLevel.LOW)


class RiskPatterns(BaseModel):
    critical: Tuple[str, ...] = Field(default_factory=tuple)
    high: Tuple[str, ...] = Field(default_factory=tuple)
    medium: Tuple[str, ...] = Field(default_factory=tuple)
    low: Tuple[str, ...] = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def from_file(cls, path: str | Path) -> "RiskPatterns":
        """Load a pattern table file.

        Raises:
            ConfigError: if the file is missing, not JSON, or has unknown tiers.
        """
        p = Path(path)
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise ConfigError(f"Risk patterns file not found: {p}")
        except json.JSONDecodeError as e:
            raise ConfigError(f"Risk patterns file {p} is not valid JSON: {e}")
        try:
            patterns = cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Risk patterns file {p} is malformed: {e}")
        logger.debug(
            f"Loaded risk patterns from {p}: "
            f"critical={len(patterns.critical)}, high={len(patterns.high)}, "
            f"medium={len(patterns.medium)}, low={len(patterns.low)}"
        )
        return patterns

    def for_level(self, risk: FileRiskLevel) -> Tuple[str, ...]:
        return getattr(self, risk.value.lower())

    def extend(self, other: "RiskPatterns | Dict[str, List[str]]") -> "RiskPatterns":
        """Return a new table set with ``other``'s patterns appended per tier."""
        if not isinstance(other, RiskPatterns):
            other = RiskPatterns.model_validate(other)
        merged = {}
        for risk in EVALUATION_ORDER:
            key = risk.value.lower()
            merged[key] = self.for_level(risk) + tuple(p for p in other.for_level(risk) if p not in self.for_level(risk))
        return RiskPatterns(**merged)


def _normalize_pattern(pattern: str) -> str:
    return pattern.strip().lower()


class RiskClassifier:
    """Maps a file path to a FileRiskLevel. Pure; unknown paths are MEDIUM."""

    def __init__(self, patterns: RiskPatterns) -> None:
        self.patterns = patterns
        self._tables: Tuple[Tuple[FileRiskLevel, Tuple[str, ...]], ...] = tuple(
            (risk, tuple(_normalize_pattern(p) for p in patterns.for_level(risk) if p.strip()))
            for risk in EVALUATION_ORDER
        )

    def classify(self, filename: str) -> FileRiskLevel:
        lower = filename.lower()
        parts = lower.split("/")
        for risk, table in self._tables:
            if self._matches_any(lower, parts, table):
                return risk
        return FileRiskLevel.MEDIUM

    @staticmethod
    def _matches_any(path: str, parts: List[str], patterns: Tuple[str, ...]) -> bool:
        for pattern in patterns:
            if fnmatchcase(path, pattern):
                return True
            # Fall back to single path segments so "tests" matches "src/tests/foo.go"
            for part in parts:
                if part and fnmatchcase(part, pattern):
                    return True
        return False


def load_classifier(path: Optional[str] = None) -> RiskClassifier:
    return RiskClassifier(RiskPatterns.from_file(path or Config.RISK_PATTERNS_PATH))


@lru_cache(maxsize=1)
def default_classifier() -> RiskClassifier:
    """Classifier for the configured pattern file, loaded on first use."""
    return load_classifier()
