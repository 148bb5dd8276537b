#!/usr/bin/env python3
"""Counters and timers for LLM attempts, appended as JSONL under METRICS_ROOT.

Label values should stay short (levels, error codes, counts); long strings
are clipped.
"""

from __future__ import annotations

import json
import os
import time
from pathlib import Path
from typing import Any, Dict

from configs.config import Config

_MAX_LABEL_LEN = 200


def _clip(value: Any) -> Any:
    if isinstance(value, str) and len(value) > _MAX_LABEL_LEN:
        return value[:_MAX_LABEL_LEN] + "..."
    return value


def _append(record: Dict[str, Any]) -> None:
    root = Path(Config.METRICS_ROOT)
    root.mkdir(parents=True, exist_ok=True)
    with open(root / "metrics.log", "a", encoding="utf-8") as f:
        f.write(json.dumps(record, separators=(",", ":")) + "\n")
        f.flush()
        os.fsync(f.fileno())


def incr(name: str, value: Any = 1, **labels) -> None:
    if not Config.METRICS_ENABLED:
        return
    record: Dict[str, Any] = {"ts": int(time.time()), "metric": name, "value": value}
    record.update({k: _clip(v) for k, v in labels.items()})
    _append(record)


class Timer:
    """Records ``<name>.latency_s`` on exit, including when the block raises."""

    def __init__(self, name: str, **labels):
        self.name = name
        self.labels = labels
        self.started = 0.0

    def __enter__(self):
        self.started = time.perf_counter()
        return self

    def __exit__(self, *exc):
        elapsed = round(time.perf_counter() - self.started, 4)
        incr(f"{self.name}.latency_s", value=elapsed, **self.labels)
        return False
