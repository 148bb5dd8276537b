#!/usr/bin/env python3
"""Group QE-labelled commits by repository for the prompt."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from utils.diff_models import NEEDS_QE_TESTING, QE_TESTED, Comparison

logger = logging.getLogger(__name__)


class QETestingSummary(BaseModel):
    """Short SHAs per repository URL, split by QE label."""
    tested: Dict[str, List[str]] = Field(default_factory=dict)
    needs_testing: Dict[str, List[str]] = Field(default_factory=dict)


def build_qe_testing_summary(comparisons: Sequence[Comparison]) -> Optional[QETestingSummary]:
    """Return None when no commit carries a QE label."""
    summary = QETestingSummary()
    for cmp in comparisons:
        for commit in cmp.commits:
            if commit.qe_testing_label == QE_TESTED:
                bucket = summary.tested
            elif commit.qe_testing_label == NEEDS_QE_TESTING:
                bucket = summary.needs_testing
            else:
                continue
            bucket.setdefault(cmp.repo_url, []).append(commit.display_sha())

    if not summary.tested and not summary.needs_testing:
        return None
    logger.debug(
        f"QE testing coverage: tested={sum(len(v) for v in summary.tested.values())}, "
        f"needs_testing={sum(len(v) for v in summary.needs_testing.values())}"
    )
    return summary


def format_qe_testing_summary(summary: Optional[QETestingSummary]) -> str:
    if summary is None:
        return ""
    parts: List[str] = []
    for title, groups in (("QE tested", summary.tested), ("Needs QE testing", summary.needs_testing)):
        if not groups:
            continue
        parts.append(f"{title}:")
        for repo_url, shas in groups.items():
            parts.append(f"- {repo_url}: {', '.join(shas)}")
    return "\n".join(parts)
