#!/usr/bin/env python3
"""Risk tiers, truncation levels and truncation metadata."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Tuple

from pydantic import BaseModel, Field


class FileRiskLevel(str, Enum):
    """Risk tier of a changed file. Critical files are never truncated, low ones first."""
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


@dataclass(frozen=True)
class LevelParams:
    keep_start: int
    keep_end: int
    small_file_threshold: int


class TruncationLevel(str, Enum):
    """Escalation ladder, least to most aggressive."""
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    EXTREME = "extreme"

    @classmethod
    def ordered(cls) -> Tuple["TruncationLevel", ...]:
        return tuple(cls)

    @classmethod
    def parse(cls, name: str) -> "TruncationLevel":
        try:
            return cls(name.strip().lower())
        except ValueError:
            valid = ", ".join(level.value for level in cls)
            raise ValueError(f"Unknown truncation level '{name}' (expected one of: {valid})") from None

    @property
    def rank(self) -> int:
        return list(TruncationLevel).index(self)

    @property
    def params(self) -> LevelParams:
        return _LEVEL_PARAMS[self]

    @property
    def keep_start(self) -> int:
        return self.params.keep_start

    @property
    def keep_end(self) -> int:
        return self.params.keep_end

    @property
    def small_file_threshold(self) -> int:
        return self.params.small_file_threshold


# Patches shorter than small_file_threshold lines are never truncated; the
# threshold shrinks as levels escalate.
_LEVEL_PARAMS: Dict[TruncationLevel, LevelParams] = {
    TruncationLevel.LOW: LevelParams(keep_start=50, keep_end=20, small_file_threshold=100),
    TruncationLevel.MODERATE: LevelParams(keep_start=20, keep_end=10, small_file_threshold=75),
    TruncationLevel.HIGH: LevelParams(keep_start=10, keep_end=5, small_file_threshold=50),
    TruncationLevel.EXTREME: LevelParams(keep_start=5, keep_end=3, small_file_threshold=20),
}

TRUNCATION_LEVELS: Tuple[TruncationLevel, ...] = TruncationLevel.ordered()


def should_truncate(risk: FileRiskLevel, level: TruncationLevel) -> bool:
    """Decision table: risk tier x truncation level."""
    if risk == FileRiskLevel.LOW:
        return True
    if risk == FileRiskLevel.MEDIUM:
        return level.rank >= TruncationLevel.MODERATE.rank
    if risk == FileRiskLevel.HIGH:
        return level.rank >= TruncationLevel.HIGH.rank
    return False


class TruncationMetadata(BaseModel):
    """What a truncation pass removed; disclosed in the prompt and the audit trail."""
    truncated: bool = False
    level: str = ""
    total_files: int = 0
    files_preserved: int = 0
    files_truncated: int = 0
    truncated_files_list: List[str] = Field(default_factory=list)

    @classmethod
    def combine(cls, items: Iterable["TruncationMetadata"], level: str) -> "TruncationMetadata":
        combined = cls(level=level)
        for item in items:
            if item is None:
                continue
            combined.truncated = combined.truncated or item.truncated
            combined.total_files += item.total_files
            combined.files_preserved += item.files_preserved
            combined.files_truncated += item.files_truncated
            combined.truncated_files_list.extend(item.truncated_files_list)
        return combined
