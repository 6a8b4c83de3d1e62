# llm.py
# Generative model access. The planner only needs `complete(prompt) -> text`;
# OpenRouterCompletionClient provides it over any OpenRouter model.

from typing import Protocol

import httpx
from openai import OpenAI

from sequential_planner import config


class CompletionClient(Protocol):
    def complete(
        self,
        prompt: str,
        *,
        max_tokens: int,
        temperature: float,
        stop: list[str],
    ) -> str: ...


def create_openai_client(
    api_key: str | None = None,
    base_url: str = config.OPENROUTER_BASE_URL,
    timeout: float | None = None,
) -> OpenAI:
    """OpenAI SDK client pointed at OpenRouter, with an explicit HTTP timeout."""
    return OpenAI(
        base_url=base_url,
        api_key=api_key or config.api_key(),
        http_client=httpx.Client(timeout=timeout or config.http_timeout()),
    )


class OpenRouterCompletionClient:
    """
    Single-turn chat completion used as a plain text completion.

    Example:
        client = OpenRouterCompletionClient(model="anthropic/claude-3.5-haiku")
        text = client.complete("...", max_tokens=1024, temperature=0.0, stop=["<!-- END -->"])
    """

    def __init__(self, model: str, client: OpenAI | None = None) -> None:
        self._model = model
        self._client = client or create_openai_client()

    @property
    def model(self) -> str:
        return self._model

    def complete(
        self,
        prompt: str,
        *,
        max_tokens: int,
        temperature: float,
        stop: list[str],
    ) -> str:
        response = self._client.chat.completions.create(
            model=self._model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
            temperature=temperature,
            stop=stop or None,
        )
        return (response.choices[0].message.content or "").strip()
