#!/usr/bin/env python3
"""HTTP model providers: Claude on Vertex, Gemini (OpenAI-compatible) and Llama.

Each client posts one JSON request per call, with the configured timeout
bounding the attempt. Non-200 responses become typed errors; oversized
prompts become ContextWindowError.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from configs.config import Config
from utils.context_window import LLMError, error_from_response

logger = logging.getLogger(__name__)


class HTTPModelClient(ABC):
    """Shared transport for the HTTP providers."""

    provider = "HTTP"

    def __init__(
        self,
        api: Optional[str] = None,
        model_id: Optional[str] = None,
        user_key: Optional[str] = None,
        timeout_s: Optional[int] = None,
        max_output_tokens: Optional[int] = None,
        system_prompt: str = "",
        session: Optional[requests.Session] = None,
    ) -> None:
        cfg = Config.get_model_config()
        self.api = (api or cfg["api"]).rstrip("/")
        self.model_id = model_id or cfg["model_id"]
        self.user_key = user_key or cfg["user_key"]
        self.timeout_s = timeout_s or cfg["timeout_s"]
        self.max_output_tokens = max_output_tokens or cfg["max_response_tokens"]
        self.system_prompt = system_prompt
        self.session = session or requests.Session()
        self.session.verify = cfg["verify_ssl"]
        self.session.headers.update({
            "Authorization": f"Bearer {self.user_key}",
            "Content-Type": "application/json",
            "User-Agent": "release-confidence-analyzer/1.0",
        })

    @abstractmethod
    def endpoint(self) -> str:
        ...

    @abstractmethod
    def build_request(self, prompt: str) -> Dict[str, Any]:
        ...

    @abstractmethod
    def parse_response(self, data: Dict[str, Any]) -> str:
        ...

    def _combined_prompt(self, prompt: str) -> str:
        if not self.system_prompt:
            return prompt
        return f"{self.system_prompt}\n\n{prompt}"

    def analyze(self, prompt: str) -> str:
        url = self.endpoint()
        logger.debug(f"Sending release analysis request to {self.provider}, model={self.model_id}")
        try:
            response = self.session.post(url, json=self.build_request(prompt), timeout=self.timeout_s)
        except requests.Timeout as e:
            raise LLMError(
                f"{self.provider} request timed out after {self.timeout_s}s: {e}",
                code="TIMEOUT",
                provider=self.provider,
            )
        except requests.RequestException as e:
            raise LLMError(f"HTTP request to {self.provider} failed: {e}", code="NETWORK", provider=self.provider)

        if response.status_code != 200:
            raise error_from_response(response.status_code, response.content, self.provider)

        try:
            data = response.json()
        except ValueError as e:
            raise LLMError(f"Invalid JSON from {self.provider}: {e}", code="INVALID_RESPONSE", provider=self.provider)
        try:
            text = self.parse_response(data)
        except (KeyError, IndexError, TypeError) as e:
            raise LLMError(
                f"Unexpected {self.provider} response shape: {e}", code="INVALID_RESPONSE", provider=self.provider
            )
        if not text or not text.strip():
            raise LLMError(f"No content in {self.provider} response", code="INVALID_RESPONSE", provider=self.provider)
        return text


class ClaudeVertexClient(HTTPModelClient):
    provider = "Claude"

    def endpoint(self) -> str:
        return f"{self.api}/publishers/anthropic/models/{self.model_id}:rawPredict"

    def build_request(self, prompt: str) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "anthropic_version": "vertex-2023-10-16",
            "max_tokens": self.max_output_tokens,
            "temperature": 0,
            "messages": [{"role": "user", "content": [{"type": "text", "text": prompt}]}],
        }
        if self.system_prompt:
            body["system"] = self.system_prompt
        return body

    def parse_response(self, data: Dict[str, Any]) -> str:
        usage = data.get("usage") or {}
        logger.debug(f"Claude token usage: input={usage.get('input_tokens')}, output={usage.get('output_tokens')}")
        return data["content"][0]["text"]


class GeminiClient(HTTPModelClient):
    provider = "Gemini"

    def endpoint(self) -> str:
        return f"{self.api}/v1beta/openai/chat/completions"

    def build_request(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.model_id,
            "messages": [{"role": "user", "content": self._combined_prompt(prompt)}],
            "max_tokens": self.max_output_tokens,
            "temperature": 0,
        }

    def parse_response(self, data: Dict[str, Any]) -> str:
        usage = data.get("usage") or {}
        logger.debug(f"Gemini token usage: prompt={usage.get('prompt_tokens')}, completion={usage.get('completion_tokens')}")
        return data["choices"][0]["message"]["content"]


class LlamaClient(HTTPModelClient):
    provider = "Llama"

    def endpoint(self) -> str:
        return f"{self.api}/v1/completions"

    def build_request(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.model_id,
            "prompt": self._combined_prompt(prompt),
            "max_tokens": self.max_output_tokens,
            "temperature": 0,
        }

    def parse_response(self, data: Dict[str, Any]) -> str:
        usage = data.get("usage") or {}
        logger.debug(f"Llama token usage: prompt={usage.get('prompt_tokens')}, completion={usage.get('completion_tokens')}")
        return data["choices"][0]["text"]
