from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from hrapi.services.config import get_settings

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3


class LLMError(RuntimeError):
    pass


class LLMTemporaryError(LLMError):
    pass


class EmptyCompletionError(LLMError):
    """Upstream answered 200 but without any text."""


@dataclass
class LLMResponse:
    text: str
    model: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


def llm_enabled() -> bool:
    settings = get_settings()
    return bool(settings.use_real_llm and settings.openai_api_key)


def _extract_text_from_message(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict) and item.get("type") == "text":
                parts.append(str(item.get("text", "")))
        return "\n".join(parts).strip()
    if content is None:
        return ""
    return str(content)


@retry(
    retry=retry_if_exception_type(
        (httpx.TimeoutException, httpx.TransportError, LLMTemporaryError, EmptyCompletionError)
    ),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    stop=stop_after_attempt(MAX_ATTEMPTS),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
async def _chat_completion_request(payload: dict[str, Any]) -> tuple[str, dict[str, Any]]:
    settings = get_settings()
    if not settings.openai_api_key:
        raise LLMError("OPENAI_API_KEY is not configured")

    url = settings.openai_base_url.rstrip("/") + "/chat/completions"
    headers = {
        "Authorization": f"Bearer {settings.openai_api_key}",
        "Content-Type": "application/json",
    }

    timeout = httpx.Timeout(settings.llm_timeout_seconds)
    async with httpx.AsyncClient(timeout=timeout) as client:
        response = await client.post(url, headers=headers, json=payload)

    if response.status_code >= 500 or response.status_code in {408, 409, 425, 429}:
        raise LLMTemporaryError(f"Completion endpoint temporary error: {response.status_code}")

    if response.status_code >= 400:
        detail = response.text[:300]
        raise LLMError(f"Completion request failed ({response.status_code}): {detail}")

    if not response.content.strip():
        raise EmptyCompletionError("Completion endpoint returned an empty body")

    try:
        data = response.json()
    except ValueError as exc:
        # Gateways sometimes answer 200 with an HTML page.
        raise LLMTemporaryError("Completion endpoint returned a non-JSON body") from exc
    if not isinstance(data, dict):
        raise LLMError(f"Completion response is not a JSON object: {type(data).__name__}")

    choices = data.get("choices") or []
    if not choices:
        raise EmptyCompletionError("Completion response did not contain choices")

    message = choices[0].get("message", {})
    text = _extract_text_from_message(message.get("content", "")).strip()
    if not text:
        raise EmptyCompletionError("Completion response did not contain text content")
    return text, data


async def llm_chat_with_usage(
    messages: list[dict[str, str]],
    temperature: float = 0.7,
    max_tokens: int = 500,
    model: Optional[str] = None,
) -> LLMResponse:
    settings = get_settings()
    if not llm_enabled():
        raise LLMError("Real LLM mode is not enabled")

    payload = {
        "model": model or settings.openai_model,
        "messages": messages,
        "temperature": temperature,
        "max_tokens": max_tokens,
    }

    try:
        text, data = await _chat_completion_request(payload)
    except httpx.HTTPError as exc:
        raise LLMError(f"Completion endpoint unreachable: {exc}") from exc
    usage = data.get("usage", {})
    return LLMResponse(
        text=text,
        model=data.get("model", payload["model"]),
        prompt_tokens=usage.get("prompt_tokens", 0),
        completion_tokens=usage.get("completion_tokens", 0),
        total_tokens=usage.get("total_tokens", 0),
    )


async def llm_chat(
    messages: list[dict[str, str]],
    temperature: float = 0.7,
    max_tokens: int = 500,
    model: Optional[str] = None,
) -> str:
    response = await llm_chat_with_usage(messages, temperature, max_tokens, model)
    return response.text


def try_parse_json_object(text: str) -> Optional[dict[str, Any]]:
    text = text.strip()
    if not text:
        return None

    try:
        value = json.loads(text)
        if isinstance(value, dict):
            return value
    except json.JSONDecodeError:
        pass

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None

    snippet = text[start : end + 1]
    try:
        value = json.loads(snippet)
        if isinstance(value, dict):
            return value
    except json.JSONDecodeError:
        return None

    return None
