#!/usr/bin/env python3
"""Pydantic models for comparison data handed over by the fetch step."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


QE_TESTED = "qe-tested"
NEEDS_QE_TESTING = "needs-qe-testing"


class FileChange(BaseModel):
    """One changed file in a comparison."""

    filename: str
    status: str = "modified"
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: str = ""
    previous_filename: Optional[str] = None

    model_config = {"extra": "ignore"}


class Commit(BaseModel):
    """A commit with the metadata the prompt needs."""

    sha: str
    short_sha: str = ""
    message: str = ""
    author: str = ""
    pr_number: int = 0
    qe_testing_label: str = Field("", description="qe-tested, needs-qe-testing, or empty")

    model_config = {"extra": "ignore"}

    def display_sha(self) -> str:
        return self.short_sha or self.sha[:7]


class ComparisonStats(BaseModel):
    total_files: int = 0
    total_additions: int = 0
    total_deletions: int = 0
    total_changes: int = 0

    model_config = {"extra": "ignore"}


class Comparison(BaseModel):
    """Difference between two git references of one repository."""

    repo_url: str
    diff_url: str = ""
    commits: List[Commit] = Field(default_factory=list)
    files: List[FileChange] = Field(default_factory=list)
    stats: ComparisonStats = Field(default_factory=ComparisonStats)

    model_config = {"extra": "ignore"}


class Repository(BaseModel):
    owner: str = ""
    name: str = ""
    url: str = ""
    default_branch: str = ""

    model_config = {"extra": "ignore"}

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


class Documentation(BaseModel):
    """Entry-point documentation of a repository plus the documents it links to."""

    repository: Repository = Field(default_factory=Repository)
    main_doc_file: str = ""
    main_doc_content: str = ""
    linked_docs: Dict[str, str] = Field(default_factory=dict)
    linked_docs_order: List[str] = Field(default_factory=list)

    model_config = {"extra": "ignore"}


class UserGuidance(BaseModel):
    """Reviewer guidance scraped from comments; only authorized entries reach the prompt."""

    content: str
    author: str = ""
    date: Optional[datetime] = None
    comment_url: str = ""
    is_authorized: bool = False

    model_config = {"extra": "ignore"}


class ReleaseData(BaseModel):
    """Input envelope: everything the fetch step collected for one analysis run."""

    comparisons: List[Comparison] = Field(default_factory=list)
    documentation: List[Documentation] = Field(default_factory=list)
    user_guidance: List[UserGuidance] = Field(default_factory=list)
