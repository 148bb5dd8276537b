#!/usr/bin/env python3
from __future__ import annotations

from typing import Optional, Protocol

from configs.config import Config, ConfigError
from clients.bedrock_client import BedrockClient
from clients.http_clients import ClaudeVertexClient, GeminiClient, LlamaClient
from utils.prompt_builder import load_system_prompt


class LLMClient(Protocol):
	"""Anything that can run one analysis prompt.

	Implementations raise ContextWindowError when the prompt is too large and
	LLMError for every other failure.
	"""

	def analyze(self, prompt: str) -> str:
		...


_HTTP_CLIENTS = {
	"claude": ClaudeVertexClient,
	"gemini": GeminiClient,
	"llama": LlamaClient,
}


def new_client(provider: Optional[str] = None) -> LLMClient:
	"""Create the client for the configured provider."""
	name = (provider or Config.MODEL_PROVIDER).lower()
	system_prompt = load_system_prompt()
	if name == "bedrock":
		return BedrockClient(system_prompt=system_prompt)
	client_cls = _HTTP_CLIENTS.get(name)
	if client_cls is None:
		raise ConfigError(f"Unsupported model provider: {name}")
	return client_cls(system_prompt=system_prompt)
