#!/usr/bin/env python3
from __future__ import annotations

import json
import logging
import random
import time
from typing import Any, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError, EndpointConnectionError, ReadTimeoutError

from configs.config import Config
from utils.context_window import LLMError, error_from_response

logger = logging.getLogger(__name__)

PROVIDER = "Bedrock"


class BedrockClient:
	"""Claude on AWS Bedrock. Oversized prompts raise ContextWindowError."""

	def __init__(
		self,
		model_id: Optional[str] = None,
		timeout_s: Optional[int] = None,
		max_output_tokens: Optional[int] = None,
		system_prompt: str = "",
		transient_retries: int = 2,
		runtime: Any = None,
	) -> None:
		cfg = Config.get_bedrock_config()
		self.region = cfg["region_name"]
		self.model_id = model_id or cfg["model_id"]
		self.timeout_s = int(timeout_s if timeout_s is not None else cfg["timeout_s"])
		self.max_output_tokens = int(max_output_tokens if max_output_tokens is not None else cfg["max_response_tokens"])
		self.system_prompt = system_prompt
		self.transient_retries = max(0, int(transient_retries))
		self.temperature = 0
		# botocore's own retries are off; the timeout bounds one attempt
		self._runtime = runtime or boto3.client(
			"bedrock-runtime",
			region_name=self.region,
			config=BotoConfig(read_timeout=self.timeout_s, retries={"max_attempts": 0}),
		)

	def _invoke(self, prompt: str) -> str:
		body = {
			"anthropic_version": "bedrock-2023-05-31",
			"max_tokens": self.max_output_tokens,
			"temperature": self.temperature,
			"messages": [
				{"role": "user", "content": [{"type": "text", "text": prompt}]}
			],
		}
		if self.system_prompt:
			body["system"] = self.system_prompt
		response = self._runtime.invoke_model(
			modelId=self.model_id,
			contentType="application/json",
			accept="application/json",
			body=json.dumps(body).encode("utf-8"),
		)
		payload = response.get("body")
		raw = payload.read() if hasattr(payload, "read") else payload
		try:
			data = json.loads(raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else raw)
			text = data["content"][0]["text"]
		except (json.JSONDecodeError, KeyError, IndexError, TypeError) as e:
			raise LLMError(f"Invalid response from Bedrock: {e}", code="INVALID_RESPONSE", provider=PROVIDER)
		if not text or not text.strip():
			raise LLMError("Empty text content in response", code="INVALID_RESPONSE", provider=PROVIDER)
		usage = data.get("usage") or {}
		logger.debug(
			f"Bedrock token usage: input={usage.get('input_tokens')}, output={usage.get('output_tokens')}"
		)
		return text

	def _map_client_error(self, e: ClientError) -> LLMError:
		err = e.response.get("Error", {}) if hasattr(e, "response") else {}
		meta = e.response.get("ResponseMetadata", {}) if hasattr(e, "response") else {}
		code = str(err.get("Code", ""))
		message = str(err.get("Message", "")) or str(e)
		status = int(meta.get("HTTPStatusCode") or 400)
		# Bedrock says "Too many tokens" when throttling token throughput
		if "throttl" in code.lower():
			return LLMError(f"Bedrock throttled: {message}", code="RATE_LIMIT", provider=PROVIDER, status_code=status, body=message)
		return error_from_response(status, message, PROVIDER)

	def analyze(self, prompt: str) -> str:
		"""Invoke the model once, retrying only throttling and connection failures."""
		logger.debug(f"Sending release analysis request to {PROVIDER}, model={self.model_id}")
		for attempt in range(self.transient_retries + 1):
			try:
				return self._invoke(prompt)
			except LLMError:
				raise
			except ReadTimeoutError as e:
				raise LLMError(f"Bedrock request timed out after {self.timeout_s}s: {e}", code="TIMEOUT", provider=PROVIDER)
			except EndpointConnectionError as e:
				error = LLMError(f"Network error contacting Bedrock: {e}", code="NETWORK", provider=PROVIDER)
			except ClientError as e:
				error = self._map_client_error(e)
			except BotoCoreError as e:
				error = LLMError(f"Bedrock error: {e}", code="UNKNOWN", provider=PROVIDER)
			if error.code in ("NETWORK", "RATE_LIMIT") and attempt < self.transient_retries:
				backoff = (2 ** attempt) + random.random()
				logger.warning(f"Transient Bedrock failure ({error.code}), retrying in {backoff:.1f}s")
				time.sleep(min(backoff, 2.5))
				continue
			raise error
		raise LLMError("Unknown failure", code="UNKNOWN", provider=PROVIDER)
