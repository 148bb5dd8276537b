#!/usr/bin/env python3
"""Append-only audit records of analysis runs and what was truncated."""

from __future__ import annotations

import json
import os
import time
from pathlib import Path
from typing import List, Optional

from configs.config import Config
from utils.truncation_models import TruncationMetadata


def audit_analysis_run(
    repos: List[str],
    provider: str,
    result: str,
    attempts: int,
    truncation: Optional[TruncationMetadata] = None,
    error_code: str = "",
    level: Optional[str] = None,
    root: Optional[str] = None,
) -> Path:
    """Append a single JSON line per run and return the log path.

    Fields: ts, repos, provider, result, attempts, level, error_code, truncation
    """
    path = Path(root or Config.AUDIT_ROOT) / "analysis.audit.log"
    path.parent.mkdir(parents=True, exist_ok=True)
    record = {
        "ts": int(time.time()),
        "repos": repos,
        "provider": provider,
        "result": result,
        "attempts": attempts,
        "level": level,
        "error_code": error_code,
        "truncation": truncation.model_dump() if truncation is not None else None,
    }
    line = json.dumps(record, separators=(",", ":")) + "\n"
    with open(path, "a", encoding="utf-8") as f:
        f.write(line)
        f.flush()
        os.fsync(f.fileno())
    return path
