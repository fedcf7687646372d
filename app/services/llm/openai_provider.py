from typing import List, Optional

import httpx

from app.logging_config import get_logger
from app.services.llm.base import LLMError, LLMProvider, LLMResponse

logger = get_logger("llm.openai")


class OpenAIProvider(LLMProvider):
    """Any backend speaking the OpenAI chat/completions protocol (OpenAI, OpenRouter...)."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        default_model: str = "gpt-4o-mini",
        extra_headers: Optional[dict] = None,
        timeout_seconds: float = 10.0,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.default_model = default_model
        self.extra_headers = dict(extra_headers or {})
        self.timeout_seconds = timeout_seconds

    @property
    def completions_url(self) -> str:
        return f"{self.base_url}/chat/completions"

    def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> LLMResponse:
        model = model or self.default_model
        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            **self.extra_headers,
        }

        logger.debug(f"LLM request: model={model}, messages_count={len(messages)}")
        with httpx.Client(timeout=self.timeout_seconds) as client:
            response = client.post(self.completions_url, headers=headers, json=payload)

        logger.debug(f"LLM response status: {response.status_code}")
        if response.status_code != 200:
            logger.error(f"LLM error: {response.status_code} - {response.text[:500]}")
            raise LLMError(f"LLM API error: {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise LLMError("LLM API returned a non-JSON body") from e

        if not isinstance(data, dict):
            raise LLMError("LLM API returned an unexpected body")
        choices = data.get("choices") or []
        choice = choices[0] if isinstance(choices, list) and choices else {}
        message = choice.get("message") if isinstance(choice, dict) else None
        if not isinstance(message, dict):
            raise LLMError("LLM API returned no message")
        content = message.get("content") or ""
        if not isinstance(content, str):
            raise LLMError("LLM API returned non-text content")
        if not content.strip():
            raise LLMError("LLM API returned an empty completion")

        return LLMResponse(
            content=content,
            model=data.get("model", model),
            usage=data.get("usage"),
            finish_reason=choice.get("finish_reason"),
        )
