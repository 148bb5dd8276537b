#!/usr/bin/env python3
"""Release analysis with progressive truncation.

The first attempt sends the full diff. When the provider rejects it for
exceeding its context window, the diff is truncated at the next level of the
ladder and resent; any other failure ends the run immediately.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Literal, Optional, Sequence

from clients.factory import LLMClient
from utils.context_window import LLMError, is_context_window_failure
from utils.diff_formatter import format_comparisons, format_documentation
from utils.diff_models import Comparison, Documentation, UserGuidance
from utils.diff_truncator import DiffTruncator, truncate_documentation
from utils.metrics import Timer, incr
from utils.prompt_builder import render_user_prompt
from utils.qe_labels import QETestingSummary
from utils.truncation_models import TRUNCATION_LEVELS, TruncationLevel, TruncationMetadata

logger = logging.getLogger(__name__)


class AnalysisError(Exception):
	"""Terminal failure of an analysis run.

	``code`` is taken from the underlying client error when there is one
	(TIMEOUT, API, RATE_LIMIT, ...); ``level`` is the truncation level of the
	failing attempt, or None for the untruncated one.
	"""

	def __init__(
		self,
		message: str,
		code: str = "UNKNOWN",
		*,
		level: Optional[TruncationLevel] = None,
		attempts: int = 0,
		cause: Optional[BaseException] = None,
	) -> None:
		super().__init__(message)
		self.code = code
		self.level = level
		self.attempts = attempts
		self.cause = cause


class TruncationExhaustedError(AnalysisError):
	"""Every truncation level was tried and the prompt still did not fit."""

	def __init__(self, message: str, *, level: Optional[TruncationLevel], attempts: int, last_error: BaseException) -> None:
		super().__init__(message, code="EXHAUSTED", level=level, attempts=attempts, cause=last_error)
		self.last_error = last_error


@dataclass(frozen=True)
class AttemptOutcome:
	kind: Literal["ok", "overflow", "fatal"]
	response: str = ""
	error: Optional[BaseException] = None


@dataclass
class AnalysisResult:
	response: str
	truncation: Optional[TruncationMetadata]
	attempts: int
	level: Optional[TruncationLevel] = None


PromptRenderer = Callable[..., str]


def _error_code(exc: BaseException) -> str:
	if isinstance(exc, LLMError):
		return exc.code
	if isinstance(exc, TimeoutError):
		return "TIMEOUT"
	return "UNKNOWN"


class ProgressiveTruncationAnalyzer:
	"""Runs the full-diff attempt, then escalates through truncation levels on overflow."""

	def __init__(
		self,
		client: LLMClient,
		*,
		truncator: Optional[DiffTruncator] = None,
		levels: Sequence[TruncationLevel] = TRUNCATION_LEVELS,
		max_runtime_s: Optional[float] = None,
		render_prompt: PromptRenderer = render_user_prompt,
	) -> None:
		self.client = client
		self.truncator = truncator or DiffTruncator()
		self.levels = tuple(levels)
		self.max_runtime_s = max_runtime_s or None
		self.render_prompt = render_prompt

	def analyze(
		self,
		comparisons: Sequence[Comparison],
		documentation: Sequence[Documentation] = (),
		user_guidance: Sequence[UserGuidance] = (),
		qe_summary: Optional[QETestingSummary] = None,
	) -> AnalysisResult:
		started = time.monotonic()
		attempts = 0

		prompt = self._render(
			format_comparisons(comparisons), format_documentation(documentation), user_guidance, qe_summary, None, None
		)
		outcome = self._attempt(prompt, None)
		attempts += 1
		if outcome.kind == "ok":
			return AnalysisResult(response=outcome.response, truncation=None, attempts=attempts)
		if outcome.kind == "fatal":
			raise AnalysisError(
				f"Failed to analyze release: {outcome.error}",
				code=_error_code(outcome.error),
				attempts=attempts,
				cause=outcome.error,
			)

		err = outcome.error
		logger.warning(
			f"Context window exceeded, retrying with progressive truncation "
			f"(provider={getattr(err, 'provider', '')}, status={getattr(err, 'status_code', None)})"
		)
		last_error = err
		level: Optional[TruncationLevel] = None

		for level in self.levels:
			self._check_deadline(started, level, attempts)
			logger.info(f"Attempting analysis with truncation level {level.value}")

			truncated, metadata = self.truncator.truncate_all(comparisons, level)
			docs = truncate_documentation(documentation, level)
			prompt = self._render(
				format_comparisons(truncated), format_documentation(docs), user_guidance, qe_summary, metadata, level
			)
			outcome = self._attempt(prompt, level)
			attempts += 1

			if outcome.kind == "ok":
				logger.info(
					f"Analysis succeeded with truncation level {level.value} "
					f"({metadata.files_truncated}/{metadata.total_files} files truncated)"
				)
				return AnalysisResult(response=outcome.response, truncation=metadata, attempts=attempts, level=level)
			if outcome.kind == "fatal":
				raise AnalysisError(
					f"Failed to analyze release with {level.value} truncation: {outcome.error}",
					code=_error_code(outcome.error),
					level=level,
					attempts=attempts,
					cause=outcome.error,
				)
			logger.warning(f"Context window still exceeded with truncation level {level.value}")
			last_error = outcome.error

		raise TruncationExhaustedError(
			f"Failed to analyze release even with {level.value if level else 'no'} truncation: {last_error}",
			level=level,
			attempts=attempts,
			last_error=last_error,
		)

	def _render(
		self,
		diff_text: str,
		documentation_text: str,
		user_guidance: Sequence[UserGuidance],
		qe_summary: Optional[QETestingSummary],
		metadata: Optional[TruncationMetadata],
		level: Optional[TruncationLevel],
	) -> str:
		try:
			return self.render_prompt(diff_text, documentation_text, user_guidance, qe_summary, metadata)
		except (OSError, ValueError, KeyError) as e:
			where = f" with {level.value} truncation" if level else ""
			raise AnalysisError(f"Failed to format user prompt{where}: {e}", code="PROMPT", level=level, cause=e)

	def _attempt(self, prompt: str, level: Optional[TruncationLevel]) -> AttemptOutcome:
		"""Invoke the model once and classify the result."""
		label = level.value if level else "none"
		incr("llm.attempt", level=label, prompt_len=len(prompt))
		try:
			with Timer("llm.analyze", level=label):
				response = self.client.analyze(prompt)
		except Exception as e:  # noqa: BLE001
			if is_context_window_failure(e):
				incr("llm.context_window_exceeded", level=label)
				return AttemptOutcome("overflow", error=e)
			incr("llm.failure", level=label, code=_error_code(e))
			return AttemptOutcome("fatal", error=e)
		return AttemptOutcome("ok", response=response)

	def _check_deadline(self, started: float, level: TruncationLevel, attempts: int) -> None:
		if self.max_runtime_s is None:
			return
		elapsed = time.monotonic() - started
		if elapsed >= self.max_runtime_s:
			raise AnalysisError(
				f"Analysis deadline exceeded before {level.value} truncation: "
				f"{elapsed:.1f}s >= {self.max_runtime_s}s",
				code="TIMEOUT",
				level=level,
				attempts=attempts,
			)


def analyze_with_progressive_truncation(
	client: LLMClient,
	comparisons: Sequence[Comparison],
	documentation: Sequence[Documentation] = (),
	user_guidance: Sequence[UserGuidance] = (),
	qe_summary: Optional[QETestingSummary] = None,
	**kwargs,
) -> AnalysisResult:
	"""Convenience wrapper around ProgressiveTruncationAnalyzer."""
	analyzer = ProgressiveTruncationAnalyzer(client, **kwargs)
	return analyzer.analyze(comparisons, documentation, user_guidance, qe_summary)


__all__: List[str] = [
	"AnalysisError",
	"AnalysisResult",
	"AttemptOutcome",
	"ProgressiveTruncationAnalyzer",
	"TruncationExhaustedError",
	"analyze_with_progressive_truncation",
]
