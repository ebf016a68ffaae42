from __future__ import annotations
import logging
import httpx
from typing import Any, Dict, List, Optional
from .settings import settings

logger = logging.getLogger(__name__)

ChatMessages = List[Dict[str, str]]


class LLMError(RuntimeError):
	"""Raised when the completion endpoint fails or returns an unusable body."""


class LLMClient:
	"""Client for an OpenAI-compatible ``/chat/completions`` endpoint.

	Two modes are exposed: ``generate_json`` sends a single user prompt with the
	JSON-object response format, ``chat`` sends a full message history and returns
	free text. When a secondary endpoint is configured it is tried once after the
	primary call fails.
	"""

	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		timeout: Optional[float] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.llm_api_key
		if not self.api_key:
			raise ValueError("LLM_API_KEY is not configured")
		self.model = model or settings.llm_model
		self.base_url = (base_url or settings.llm_base_url).rstrip("/")
		self._timeout = timeout or settings.llm_timeout_seconds
		self._client = httpx.AsyncClient(timeout=self._timeout, transport=transport)
		self._fallback_client: Optional[httpx.AsyncClient] = None
		self._fallback_api_key = settings.llm_fallback_api_key
		self._fallback_model = settings.llm_fallback_model
		self._fallback_base_url = settings.llm_fallback_base_url.rstrip("/")
		self._fallback_enabled = bool(self._fallback_api_key)
		if self._fallback_enabled:
			self._fallback_client = httpx.AsyncClient(timeout=self._timeout, transport=transport)

	async def generate_json(self, prompt: str) -> str:
		payload: Dict[str, Any] = {
			"model": self.model,
			"messages": [{"role": "user", "content": prompt}],
			"temperature": 0.3,
			"top_p": 0.95,
			"max_tokens": 2048 * 4,
			"response_format": {"type": "json_object"},
		}
		return await self._post_payload(payload)

	async def chat(self, messages: ChatMessages) -> str:
		payload: Dict[str, Any] = {
			"model": self.model,
			"messages": list(messages),
			"temperature": 0.7,
			"top_p": 0.95,
			"max_tokens": 2048,
		}
		return await self._post_payload(payload)

	async def _post_payload(self, payload: Dict[str, Any]) -> str:
		headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
		last_error: Optional[Exception] = None
		try:
			r = await self._client.post(f"{self.base_url}/chat/completions", headers=headers, json=payload)
			r.raise_for_status()
			return _extract_content(r)
		except (httpx.HTTPError, LLMError) as err:
			last_error = err
		if not self._fallback_enabled:
			raise LLMError(f"completion request failed: {last_error}") from last_error
		logger.warning("Primary LLM call failed (%s); trying secondary endpoint", last_error)
		return await self._fallback_generate(payload, last_error)

	async def _fallback_generate(self, payload: Dict[str, Any], primary_error: Optional[Exception]) -> str:
		if not self._fallback_client or not self._fallback_api_key:
			raise LLMError("Fallback requested but no secondary endpoint is configured") from primary_error
		headers = {"Authorization": f"Bearer {self._fallback_api_key}", "Content-Type": "application/json"}
		try:
			r = await self._fallback_client.post(
				f"{self._fallback_base_url}/chat/completions",
				headers=headers,
				json={**payload, "model": self._fallback_model},
			)
			r.raise_for_status()
			return _extract_content(r)
		except (httpx.HTTPError, LLMError) as fallback_err:
			raise LLMError(
				f"primary call failed ({primary_error}); secondary endpoint also failed ({fallback_err})"
			) from fallback_err

	async def aclose(self) -> None:
		await self._client.aclose()
		if self._fallback_client is not None:
			await self._fallback_client.aclose()


def _extract_content(r: httpx.Response) -> str:
	try:
		data = r.json()
		text = data["choices"][0]["message"]["content"]
	except (ValueError, KeyError, IndexError, TypeError):
		raise LLMError(f"Unexpected completion response: {r.text[:200]}")
	if not text:
		raise LLMError("completion endpoint returned an empty response")
	return text


def build_llm_client() -> Optional[LLMClient]:
	"""Return a shared client, or None when no API key is configured."""
	try:
		return LLMClient()
	except ValueError as exc:
		logger.warning("LLM client disabled: %s", exc)
		return None
