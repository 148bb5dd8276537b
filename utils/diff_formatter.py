#!/usr/bin/env python3
"""Render comparisons and documentation as the text blocks embedded in the prompt."""

from __future__ import annotations

from typing import List, Sequence

from utils.diff_models import NEEDS_QE_TESTING, QE_TESTED, Comparison, Documentation

# Nest documentation headings under the "### file (repo)" headers: # becomes ####.
HEADING_INCREMENT = 3

_QE_SUFFIX = {
    QE_TESTED: " [QE Tested]",
    NEEDS_QE_TESTING: " [Needs QE Testing]",
}


def format_comparisons(comparisons: Sequence[Comparison]) -> str:
    if not comparisons:
        return ""
    multi = len(comparisons) > 1
    out: List[str] = []
    for i, cmp in enumerate(comparisons):
        if not cmp.commits:
            continue
        if multi:
            out.append(f"=== Diff {i + 1}: {cmp.repo_url} ===\n\n")
        else:
            out.append(f"Repository: {cmp.repo_url}\n\n")

        out.append("Commits:\n")
        for commit in cmp.commits:
            message = commit.message.split("\n")[0] if commit.message else ""
            author = commit.author or "Unknown"
            out.append(f"- {message} ({author}){_QE_SUFFIX.get(commit.qe_testing_label, '')}\n")
        out.append("\n")

        out.append("Files:\n")
        for f in cmp.files:
            name = f.filename
            if f.previous_filename:
                name = f"{f.filename} (renamed from {f.previous_filename})"
            out.append(f"- {name}: {f.status} +{f.additions}/-{f.deletions}\n")
        out.append(
            f"\nTotal: {cmp.stats.total_files} files, "
            f"+{cmp.stats.total_additions}/-{cmp.stats.total_deletions} lines\n"
        )

        patched = [f for f in cmp.files if f.patch]
        if patched:
            out.append("\nDiffs:\n")
            for f in patched:
                out.append(f"\n{f.filename}:\n")
                out.append(f.patch)
                out.append("\n")

        if multi:
            out.append("\n")
    return "".join(out)


def adjust_heading_levels(content: str, increment: int = HEADING_INCREMENT) -> str:
    """Shift markdown headings down, capped at H6; fenced code is left alone."""
    if increment <= 0 or not content:
        return content
    lines = content.split("\n")
    in_code = False
    for i, line in enumerate(lines):
        stripped = line.strip()
        if stripped.startswith("```") or stripped.startswith("~~~"):
            in_code = not in_code
            continue
        if in_code or not line.startswith("#"):
            continue
        hashes = len(line) - len(line.lstrip("#"))
        rest = line[hashes:]
        # "#hashtag" is not a heading
        if hashes > 6 or (rest and not rest.startswith(" ")):
            continue
        lines[i] = "#" * min(6, hashes + increment) + rest
    return "\n".join(lines)


def format_documentation(docs: Sequence[Documentation]) -> str:
    out: List[str] = []
    for doc in docs:
        if not doc.main_doc_content:
            continue
        repo_name = doc.repository.full_name
        out.append(f"### {doc.main_doc_file} ({repo_name})\n\n")
        out.append(adjust_heading_levels(doc.main_doc_content))
        out.append("\n\n")
        for name in doc.linked_docs_order:
            content = doc.linked_docs.get(name)
            if content is None:
                continue
            out.append(f"### {name} ({repo_name})\n\n")
            out.append(adjust_heading_levels(content))
            out.append("\n\n")
    return "".join(out)
