import os
from pathlib import Path
from typing import Dict, Any


class ConfigError(Exception):
	"""Raised when required settings are missing or out of range."""
	def __init__(self, message: str, code: str = "CONFIG") -> None:
		super().__init__(message)
		self.code = code


_CONFIGS_DIR = Path(__file__).resolve().parent
_PROMPTS_DIR = _CONFIGS_DIR.parent / "prompts"

SUPPORTED_PROVIDERS = ("bedrock", "claude", "gemini", "llama")


class Config:
	"""Configuration for the release confidence analyzer."""

	# Model provider selection
	MODEL_PROVIDER = os.getenv("MODEL_PROVIDER", "bedrock").lower()
	MODEL_API = os.getenv("MODEL_API", "").rstrip("/")
	MODEL_ID = os.getenv("MODEL_ID", "")
	MODEL_USER_KEY = os.getenv("MODEL_USER_KEY", "")
	MODEL_TIMEOUT_S = int(os.getenv("MODEL_TIMEOUT_S", "120"))
	MODEL_MAX_RESPONSE_TOKENS = int(os.getenv("MODEL_MAX_RESPONSE_TOKENS", "2000"))
	MODEL_SKIP_SSL_VERIFY = bool(int(os.getenv("MODEL_SKIP_SSL_VERIFY", "0")))

	# AWS Bedrock Configuration
	AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
	BEDROCK_MODEL_ID = os.getenv("BEDROCK_MODEL_ID", "anthropic.claude-3-sonnet-20240229-v1:0")

	# Truncation
	RISK_PATTERNS_PATH = os.getenv("RISK_PATTERNS_PATH", str(_CONFIGS_DIR / "risk_patterns.json"))
	# 0 disables the whole-run deadline
	ANALYSIS_MAX_RUNTIME_S = int(os.getenv("ANALYSIS_MAX_RUNTIME_S", "0"))

	# Prompt templates
	USER_PROMPT_TEMPLATE = os.getenv("USER_PROMPT_TEMPLATE", str(_PROMPTS_DIR / "user_prompt.prompt"))
	SYSTEM_PROMPT_TEMPLATE = os.getenv("SYSTEM_PROMPT_TEMPLATE", str(_PROMPTS_DIR / "system_prompt.prompt"))

	# Logging
	LOG_LEVEL = os.getenv("LOG_LEVEL", "info").lower()
	LOG_FORMAT = os.getenv("LOG_FORMAT", "text").lower()

	# Observability
	METRICS_ROOT = os.getenv("METRICS_ROOT", ".cache/release_confidence/metrics")
	METRICS_ENABLED = bool(int(os.getenv("METRICS_ENABLED", "1")))
	AUDIT_ROOT = os.getenv("AUDIT_ROOT", ".cache/release_confidence/audit")

	@classmethod
	def get_model_config(cls) -> Dict[str, Any]:
		"""Get settings shared by the HTTP model providers."""
		return {
			"provider": cls.MODEL_PROVIDER,
			"api": cls.MODEL_API,
			"model_id": cls.MODEL_ID,
			"user_key": cls.MODEL_USER_KEY,
			"timeout_s": cls.MODEL_TIMEOUT_S,
			"max_response_tokens": cls.MODEL_MAX_RESPONSE_TOKENS,
			"verify_ssl": not cls.MODEL_SKIP_SSL_VERIFY,
		}

	@classmethod
	def get_bedrock_config(cls) -> Dict[str, Any]:
		"""Get Bedrock configuration."""
		return {
			"region_name": cls.AWS_REGION,
			"model_id": cls.BEDROCK_MODEL_ID,
			"timeout_s": cls.MODEL_TIMEOUT_S,
			"max_response_tokens": cls.MODEL_MAX_RESPONSE_TOKENS,
		}

	@classmethod
	def observability(cls) -> Dict[str, Any]:
		return {
			"log_level": cls.LOG_LEVEL,
			"log_format": cls.LOG_FORMAT,
			"metrics_root": cls.METRICS_ROOT,
			"metrics_enabled": cls.METRICS_ENABLED,
			"audit_root": cls.AUDIT_ROOT,
		}

	@classmethod
	def validate(cls) -> None:
		"""Check provider settings before any model call is attempted.

		Raises:
			ConfigError: naming the first offending setting.
		"""
		if cls.MODEL_PROVIDER not in SUPPORTED_PROVIDERS:
			raise ConfigError(
				f"MODEL_PROVIDER must be one of {', '.join(SUPPORTED_PROVIDERS)}, got: {cls.MODEL_PROVIDER}"
			)
		if cls.MODEL_PROVIDER != "bedrock":
			for key in ("MODEL_API", "MODEL_ID", "MODEL_USER_KEY"):
				if not getattr(cls, key):
					raise ConfigError(f"{key} is required for provider {cls.MODEL_PROVIDER}")
		if cls.MODEL_TIMEOUT_S < 1:
			raise ConfigError(f"MODEL_TIMEOUT_S must be at least 1, got: {cls.MODEL_TIMEOUT_S}")
		if cls.MODEL_MAX_RESPONSE_TOKENS < 1:
			raise ConfigError(
				f"MODEL_MAX_RESPONSE_TOKENS must be at least 1, got: {cls.MODEL_MAX_RESPONSE_TOKENS}"
			)
		if cls.ANALYSIS_MAX_RUNTIME_S < 0:
			raise ConfigError(f"ANALYSIS_MAX_RUNTIME_S must not be negative, got: {cls.ANALYSIS_MAX_RUNTIME_S}")
		if cls.LOG_FORMAT not in ("text", "json"):
			raise ConfigError(f"LOG_FORMAT must be text or json, got: {cls.LOG_FORMAT}")
