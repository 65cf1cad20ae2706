"""
LLM client wrapper.

This module provides a thin wrapper around an OpenAI-compatible chat
completion API using httpx. The client only returns raw text; callers that
expect JSON use parse_json_object, which tolerates code fences and leading
or trailing commentary.
"""

import json
import logging
from typing import Any, Dict, Optional

import httpx

from .config import Config
from .prompts import build_chat_messages

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Generic error raised by the LLM client."""


def extract_json_from_text(text: str) -> str:
    """
    Extract a JSON object from raw model text.

    The model might respond with:
    - pure JSON
    - JSON wrapped in ```json ... ```
    - JSON wrapped in ``` ... ```
    - leading/trailing commentary (we try to ignore it)

    Strategy:
    - Find the first '{' and the last '}' and slice between them.
    """
    text = (text or "").strip()
    if not text:
        raise LLMError("Empty response from model when JSON was expected.")

    if "```" in text:
        parts = text.split("```")
        if len(parts) >= 3:
            inner = parts[1]
            stripped = inner.lstrip()
            if stripped.lower().startswith("json"):
                inner = stripped[4:]
            text = inner.strip()

    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last == -1 or last <= first:
        raise LLMError("Could not locate a JSON object in the model response.")

    return text[first : last + 1]


def parse_json_object(text: str) -> Dict[str, Any]:
    """
    Parse model text into a dict.

    Raises:
        LLMError: if no JSON object can be found or decoded.
    """
    candidate = extract_json_from_text(text)
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.debug("Raw LLM content that failed JSON parse (first 1000 chars): %s", candidate[:1000])
        raise LLMError(f"Failed to parse JSON from LLM content: {e}") from e

    if not isinstance(data, dict):
        raise LLMError(f"Expected a JSON object, got {type(data).__name__}.")
    return data


class OpenAIChatClient:
    """
    Language-model capability: complete(prompt) -> text.

    Arguments:
        config: Config containing openai_api_key, model_name, llm_base_url and
            llm_timeout_seconds.
        http_client: optional pre-built httpx.Client (tests inject one with a
            MockTransport).
    """

    def __init__(
        self,
        config: Config,
        http_client: Optional[httpx.Client] = None,
        max_tokens: int = 800,
        temperature: float = 0.2,
    ):
        self._config = config
        self._http_client = http_client
        self._max_tokens = max_tokens
        self._temperature = temperature

    def complete(self, prompt: str) -> str:
        """
        Send one prompt and return the model's text content.

        Raises:
            LLMError: on missing credentials, HTTP errors or an unexpected
                response structure.
        """
        config = self._config
        if not config.openai_api_key:
            raise LLMError("OPENAI_API_KEY (or equivalent) is not set in config.")

        headers = {
            "Authorization": f"Bearer {config.openai_api_key}",
            "Content-Type": "application/json",
        }
        payload: Dict[str, Any] = {
            "model": config.model_name,
            "messages": build_chat_messages(prompt),
            "temperature": self._temperature,
            "max_tokens": self._max_tokens,
            "response_format": {"type": "json_object"},
        }

        try:
            logger.info("Calling LLM model=%s", config.model_name)
            if self._http_client is not None:
                resp = self._http_client.post(config.llm_base_url, headers=headers, json=payload)
            else:
                with httpx.Client(timeout=config.llm_timeout_seconds) as client:
                    resp = client.post(config.llm_base_url, headers=headers, json=payload)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise LLMError(f"HTTP error from LLM API: {e}") from e

        try:
            data = resp.json()
        except json.JSONDecodeError as e:
            raise LLMError("Invalid JSON from LLM HTTP response.") from e

        try:
            choices = data.get("choices")
            if not choices:
                raise LLMError("No choices in LLM response.")
            content = choices[0]["message"]["content"]
        except (AttributeError, KeyError, IndexError, TypeError) as e:
            raise LLMError("Unexpected structure in LLM response.") from e

        if not isinstance(content, str):
            raise LLMError(f"LLM content is not a string: {type(content)}")

        logger.debug("LLM raw content (first 500 chars): %s", content[:500])
        return content
