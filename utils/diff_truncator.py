#!/usr/bin/env python3
"""Risk-aware diff truncation.

Shrinks comparisons to a head/tail window per patch, keeping the riskiest
files intact longest. Every pass works on copies of the pristine input, so
escalating levels never re-truncate already truncated text.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from utils.diff_models import Comparison, Documentation, FileChange
from utils.risk_classifier import RiskClassifier, default_classifier
from utils.truncation_models import (
    TruncationLevel,
    TruncationMetadata,
    should_truncate,
)

logger = logging.getLogger(__name__)

OMISSION_MARKER = "... [{omitted} lines omitted] ..."


def _split_lines(text: str) -> Tuple[List[str], bool]:
    """Split on newlines; a trailing newline ends the last line rather than opening a new one."""
    trailing = text.endswith("\n")
    lines = text.split("\n")
    if trailing:
        lines.pop()
    return lines, trailing


def count_lines(text: Optional[str]) -> int:
    if not text:
        return 0
    return len(_split_lines(text)[0])


def truncate_patch(patch: str, keep_start: int, keep_end: int) -> str:
    """Keep the first ``keep_start`` and last ``keep_end`` lines of a patch.

    The dropped middle is replaced by a single marker line stating the exact
    number of omitted lines. Patches with ``keep_start + keep_end`` lines or
    fewer come back unchanged.
    """
    if keep_start < 0 or keep_end < 0:
        raise ValueError(f"keep counts must be non-negative (got {keep_start}, {keep_end})")
    if not patch:
        return patch

    lines, trailing = _split_lines(patch)
    total = len(lines)
    if total <= keep_start + keep_end:
        return patch

    omitted = total - keep_start - keep_end
    out = lines[:keep_start]
    out.append(OMISSION_MARKER.format(omitted=omitted))
    out.extend(lines[total - keep_end:])
    result = "\n".join(out)
    return result + "\n" if trailing else result


class DiffTruncator:
    """Applies risk classification and patch truncation across comparisons."""

    def __init__(self, classifier: Optional[RiskClassifier] = None) -> None:
        self.classifier = classifier or default_classifier()

    def truncate_comparison(
        self, comparison: Comparison, level: TruncationLevel
    ) -> Tuple[Comparison, TruncationMetadata]:
        metadata = TruncationMetadata(level=level.value, total_files=len(comparison.files))
        files: List[FileChange] = []

        for f in comparison.files:
            new_patch = self._truncated_patch(f, level)
            if new_patch is None:
                metadata.files_preserved += 1
                files.append(f.model_copy())
                continue
            metadata.truncated = True
            metadata.files_truncated += 1
            metadata.truncated_files_list.append(f.filename)
            files.append(f.model_copy(update={"patch": new_patch}))

        truncated = comparison.model_copy(
            update={
                "files": files,
                "commits": [c.model_copy() for c in comparison.commits],
                "stats": comparison.stats.model_copy(),
            }
        )
        logger.debug(
            f"Truncated comparison {comparison.repo_url}: level={level.value}, "
            f"total={metadata.total_files}, preserved={metadata.files_preserved}, "
            f"truncated={metadata.files_truncated}"
        )
        return truncated, metadata

    def _truncated_patch(self, f: FileChange, level: TruncationLevel) -> Optional[str]:
        """Return the shortened patch, or None when the file is kept whole."""
        if not f.patch:
            return None
        if count_lines(f.patch) < level.small_file_threshold:
            return None
        risk = self.classifier.classify(f.filename)
        if not should_truncate(risk, level):
            return None
        new_patch = truncate_patch(f.patch, level.keep_start, level.keep_end)
        if new_patch == f.patch:
            return None
        return new_patch

    def truncate_all(
        self, comparisons: Sequence[Comparison], level: TruncationLevel
    ) -> Tuple[List[Comparison], TruncationMetadata]:
        """Truncate every comparison independently and fold the metadata."""
        truncated: List[Comparison] = []
        per_comparison: List[TruncationMetadata] = []
        for comparison in comparisons:
            copy, metadata = self.truncate_comparison(comparison, level)
            truncated.append(copy)
            per_comparison.append(metadata)
        combined = TruncationMetadata.combine(per_comparison, level.value)
        logger.info(
            f"Truncation at level {level.value}: files={combined.total_files}, "
            f"preserved={combined.files_preserved}, truncated={combined.files_truncated}"
        )
        return truncated, combined


def truncate_documentation(docs: Sequence[Documentation], level: TruncationLevel) -> List[Documentation]:
    """Drop linked documents at the two most aggressive levels, keeping entry points."""
    if level.rank < TruncationLevel.HIGH.rank:
        return [d.model_copy() for d in docs]

    result: List[Documentation] = []
    for doc in docs:
        if doc.linked_docs:
            logger.debug(
                f"Dropping {len(doc.linked_docs)} linked docs for {doc.repository.url} at level {level.value}"
            )
        result.append(doc.model_copy(update={"linked_docs": {}, "linked_docs_order": []}))
    return result
