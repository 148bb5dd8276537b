#!/usr/bin/env python3
from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from configs.config import Config
from utils.diff_models import UserGuidance
from utils.qe_labels import QETestingSummary, format_qe_testing_summary
from utils.truncation_models import TruncationMetadata


_PLACEHOLDER = re.compile(r"\{\{ (\w+) \}\}")


def _render_template(template: str, mapping: Dict[str, str]) -> str:
	# Single pass: placeholders inside inserted values stay literal
	return _PLACEHOLDER.sub(lambda m: mapping.get(m.group(1), m.group(0)), template)


def _bulleted(lines: List[str], *, max_lines: int = 50) -> str:
	if not lines:
		return "- none"
	out = []
	for line in lines[:max_lines]:
		line_clean = str(line).replace("\r", " ").replace("\n", " ")
		out.append(f"- {line_clean}")
	if len(lines) > max_lines:
		out.append(f"- ... and {len(lines) - max_lines} more")
	return "\n".join(out)


def _load(path: str) -> str:
	with open(path, "r", encoding="utf-8") as f:
		return f.read()


def load_system_prompt(path: Optional[str] = None) -> str:
	return _load(path or Config.SYSTEM_PROMPT_TEMPLATE).strip()


def _authorized_guidance(user_guidance: Sequence[UserGuidance]) -> List[str]:
	return [g.content for g in user_guidance if g.is_authorized]


def _truncation_section(truncation: TruncationMetadata) -> str:
	return (
		"## Truncation Notice\n\n"
		f"The diff exceeded the model's context window and was truncated at level "
		f"'{truncation.level}'. {truncation.files_truncated} of {truncation.total_files} files "
		f"had the middle of their patch omitted ({truncation.files_preserved} kept in full). "
		"High-risk files (authentication, database, API contracts) were preserved. "
		"Account for the missing content when judging confidence.\n\n"
		"Truncated files:\n"
		f"{_bulleted(truncation.truncated_files_list)}\n"
	)


def render_user_prompt(
	diff_text: str,
	documentation_text: str,
	user_guidance: Sequence[UserGuidance],
	qe_summary: Optional[QETestingSummary],
	truncation: Optional[TruncationMetadata],
	*,
	template_path: Optional[str] = None,
) -> str:
	"""Fill the user prompt template.

	The truncation notice is only rendered when content was actually cut, so
	the untruncated first attempt passes ``None``.
	"""
	template = _load(template_path or Config.USER_PROMPT_TEMPLATE)
	guidance = _authorized_guidance(user_guidance)
	qe_text = format_qe_testing_summary(qe_summary)

	mapping = {
		"documentation_section": (
			f"## Documentation\n\n{documentation_text.strip()}\n" if documentation_text.strip() else ""
		),
		"guidance_section": (
			f"## Reviewer Guidance\n\n{_bulleted(guidance)}\n" if guidance else ""
		),
		"qe_section": f"## QE Testing\n\n{qe_text}\n" if qe_text else "",
		"truncation_section": (
			_truncation_section(truncation) if truncation is not None and truncation.truncated else ""
		),
		"diff": diff_text,
	}
	return _render_template(template, mapping)
