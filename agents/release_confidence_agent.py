#!/usr/bin/env python3
"""Release confidence agent.

Loads already-fetched comparison data, sends it to the configured model and
shrinks the diff progressively whenever the model's context window is
exceeded.
"""

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

# Load environment variables from .env file
load_dotenv()

from agents.analysis_agent import AnalysisError, ProgressiveTruncationAnalyzer  # noqa: E402
from clients.factory import new_client  # noqa: E402
from configs.config import Config, ConfigError  # noqa: E402
from utils.audit_log import audit_analysis_run  # noqa: E402
from utils.diff_formatter import format_comparisons  # noqa: E402
from utils.diff_models import ReleaseData  # noqa: E402
from utils.diff_truncator import DiffTruncator  # noqa: E402
from utils.log_config import configure_logging  # noqa: E402
from utils.qe_labels import build_qe_testing_summary  # noqa: E402
from utils.risk_classifier import load_classifier  # noqa: E402
from utils.truncation_models import TruncationLevel, TruncationMetadata  # noqa: E402

logger = logging.getLogger(__name__)


def load_release_data(path: str) -> ReleaseData:
	"""Read the JSON envelope produced by the fetch step."""
	text = Path(path).read_text(encoding="utf-8")
	return ReleaseData.model_validate_json(text)


def print_truncation_summary(metadata: Optional[TruncationMetadata]) -> None:
	if metadata is None or not metadata.truncated:
		print("Truncation: none")
		return
	print(f"Truncation level: {metadata.level}")
	print(
		f"Files: {metadata.total_files} total, {metadata.files_preserved} preserved, "
		f"{metadata.files_truncated} truncated"
	)
	for name in metadata.truncated_files_list:
		print(f"  - {name}")


def _error_message(e: AnalysisError) -> str:
	if e.code == "EXHAUSTED":
		return "Error: Diff exceeds the model's context window even with extreme truncation."
	if e.code == "TIMEOUT":
		return "Error: LLM timeout. Please retry or reduce diff size."
	if e.code == "RATE_LIMIT":
		return "Error: LLM rate limit. Please retry shortly."
	if e.code == "NETWORK":
		return f"Error: Network error contacting {Config.MODEL_PROVIDER}."
	if e.code == "UNAUTHORIZED":
		return "Error: Model credentials were rejected."
	if e.code == "PROMPT":
		return f"Error: Could not render prompt: {e}"
	return f"Error: Analysis failed: {e}"


def _repos(data: ReleaseData) -> List[str]:
	return [c.repo_url for c in data.comparisons]


def run_analyze(args) -> int:
	data = load_release_data(args.input)
	client = new_client()
	analyzer = ProgressiveTruncationAnalyzer(
		client,
		truncator=DiffTruncator(load_classifier()),
		max_runtime_s=Config.ANALYSIS_MAX_RUNTIME_S,
	)
	try:
		result = analyzer.analyze(
			data.comparisons,
			data.documentation,
			data.user_guidance,
			build_qe_testing_summary(data.comparisons),
		)
	except AnalysisError as e:
		logger.error(f"Analysis failed ({e.code}) after {e.attempts} attempt(s): {e}")
		if not args.no_audit:
			audit_analysis_run(
				_repos(data), Config.MODEL_PROVIDER, "failure", e.attempts,
				error_code=e.code, level=e.level.value if e.level else None,
			)
		print(_error_message(e), file=sys.stderr)
		return 1

	if not args.no_audit:
		audit_analysis_run(
			_repos(data), Config.MODEL_PROVIDER, "success", result.attempts,
			truncation=result.truncation, level=result.level.value if result.level else None,
		)

	if args.json:
		print(json.dumps({
			"response": result.response,
			"attempts": result.attempts,
			"level": result.level.value if result.level else None,
			"truncation": result.truncation.model_dump() if result.truncation else None,
		}, indent=2))
	else:
		print(result.response)
	return 0


def run_truncate(args) -> int:
	level = TruncationLevel.parse(args.level)
	data = load_release_data(args.input)
	truncated, metadata = DiffTruncator(load_classifier()).truncate_all(data.comparisons, level)
	if args.json:
		print(json.dumps(metadata.model_dump(), indent=2))
		return 0
	print_truncation_summary(metadata)
	print()
	print(format_comparisons(truncated))
	return 0


def run_classify(args) -> int:
	classifier = load_classifier()
	for path in args.paths:
		print(f"{classifier.classify(path).value}\t{path}")
	return 0


def build_parser():
	import argparse

	parser = argparse.ArgumentParser(
		description="Release Confidence Agent - LLM release analysis with progressive diff truncation",
		formatter_class=argparse.RawDescriptionHelpFormatter,
		epilog="""
Examples:
  python -m agents.release_confidence_agent analyze --input release.json
  python -m agents.release_confidence_agent truncate --input release.json --level moderate
  python -m agents.release_confidence_agent classify db/migrations/001.sql README.md
		"""
	)
	parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
	sub = parser.add_subparsers(dest="command", required=True)

	an = sub.add_parser("analyze", help="Analyze a release with the configured model")
	an.add_argument("--input", required=True, help="Release data JSON file")
	an.add_argument("--json", action="store_true", help="Output response and truncation metadata as JSON")
	an.add_argument("--no-audit", action="store_true", help="Do not append an audit record")

	tr = sub.add_parser("truncate", help="Preview truncation at one level without calling a model")
	tr.add_argument("--input", required=True, help="Release data JSON file")
	tr.add_argument("--level", required=True, help="low, moderate, high or extreme")
	tr.add_argument("--json", action="store_true", help="Output truncation metadata only, as JSON")

	cl = sub.add_parser("classify", help="Print the risk tier of file paths")
	cl.add_argument("paths", nargs="+")
	return parser


_COMMANDS = {
	"analyze": run_analyze,
	"truncate": run_truncate,
	"classify": run_classify,
}


def main(argv: Optional[List[str]] = None) -> None:
	"""CLI entry point for the release confidence agent."""
	args = build_parser().parse_args(argv)
	configure_logging(Config.LOG_LEVEL, Config.LOG_FORMAT, verbose=args.verbose)

	try:
		if args.command == "analyze":
			Config.validate()
		code = _COMMANDS[args.command](args)
	except ConfigError as e:
		print(f"Error: Configuration: {e}", file=sys.stderr)
		sys.exit(1)
	except FileNotFoundError as e:
		print(f"Error: File not found: {e.filename}", file=sys.stderr)
		sys.exit(1)
	except OSError as e:
		print(f"Error: Could not read {e.filename or 'file'}: {e.strerror or e}", file=sys.stderr)
		sys.exit(1)
	except ValidationError as e:
		print(f"Error: Invalid release data: {e.error_count()} validation error(s)", file=sys.stderr)
		logger.debug(str(e))
		sys.exit(1)
	except ValueError as e:
		print(f"Error: {e}", file=sys.stderr)
		sys.exit(1)
	sys.exit(code)


if __name__ == "__main__":
	main()
