"""
Model Provider Transports
=========================

Transports move an already-encoded request body to a provider and return
the raw JSON response. They know nothing about prompts or token budgets;
every failure surfaces as ``ProviderTransportException``.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx
import openai
from openai import AsyncOpenAI

from helpdesk_ai.core import ConfigurationException, ProviderTransportException
from helpdesk_ai.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class IModelTransport(ABC):
    """Interface for sending an encoded request to a model provider."""

    @abstractmethod
    async def send(self, model_id: str, body: Dict[str, Any], timeout: float) -> Dict[str, Any]:
        """POST ``body`` for ``model_id``; returns the decoded JSON response."""

    async def close(self) -> None:
        """Release network resources."""


class BedrockHttpTransport(IModelTransport):
    """
    Bedrock runtime ``InvokeModel`` over HTTPS with an API key.

    ``POST {endpoint}/model/{modelId}/invoke`` with a bearer token; the body
    is the family-specific JSON produced by the codec.
    """

    def __init__(
        self,
        api_key: Optional[str],
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        if not api_key:
            raise ConfigurationException("Bedrock API key not configured")

        self._endpoint = (endpoint_url or f"https://bedrock-runtime.{region}.amazonaws.com").rstrip("/")
        self._client = client or httpx.AsyncClient(
            base_url=self._endpoint,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

    async def send(self, model_id: str, body: Dict[str, Any], timeout: float) -> Dict[str, Any]:
        path = f"/model/{quote(model_id, safe='')}/invoke"
        try:
            response = await self._client.post(path, json=body, timeout=timeout)
        except httpx.TimeoutException as e:
            raise ProviderTransportException(
                f"Request timed out after {timeout}s",
                {"model_id": model_id}
            ) from e
        except httpx.HTTPError as e:
            raise ProviderTransportException(f"Request failed: {e}", {"model_id": model_id}) from e

        if response.status_code >= 400:
            raise ProviderTransportException(
                f"HTTP {response.status_code}",
                {"model_id": model_id, "body": response.text[:500]}
            )

        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise ProviderTransportException("Response is not JSON", {"model_id": model_id}) from e

    async def close(self) -> None:
        await self._client.aclose()


class OpenAIChatTransport(IModelTransport):
    """OpenAI (or compatible) chat completions via the official SDK."""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None
    ):
        if client is None and not api_key:
            raise ConfigurationException("OpenAI API key not configured")

        # Retries are the caller's decision; the budget gate has already
        # accounted for exactly one call.
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0)

    async def send(self, model_id: str, body: Dict[str, Any], timeout: float) -> Dict[str, Any]:
        try:
            completion = await self._client.chat.completions.create(**body, timeout=timeout)
        except openai.APITimeoutError as e:
            raise ProviderTransportException(
                f"Request timed out after {timeout}s",
                {"model_id": model_id}
            ) from e
        except openai.APIError as e:
            raise ProviderTransportException(f"Request failed: {e}", {"model_id": model_id}) from e
        return completion.model_dump()

    async def close(self) -> None:
        await self._client.close()


class MockModelTransport(IModelTransport):
    """
    Offline transport for development (``MOCK_LLM=true``).

    Picks a canned JSON answer by looking for marker phrases in the prompt
    and wraps it in the response shape of whichever family encoded the body.
    """

    CANNED: List[Tuple[str, str]] = [
        ("Analyze this support ticket", json.dumps({
            "complexity": "medium",
            "category": "support",
            "priority": "medium",
            "estimatedResolutionTime": 4,
            "tags": ["mock"],
            "confidence": 80,
            "reasoning": "Mock analysis",
        })),
        ("Write a reply to this support ticket", json.dumps({
            "response": "Thanks for reaching out. We are looking into this and will follow up shortly.",
            "confidence": 60,
            "knowledgeBaseArticles": [],
            "followUpActions": ["Review ticket"],
            "escalationNeeded": False,
        })),
        ("Rank these knowledge base articles", "[]"),
        ("Identify resolution patterns", "[]"),
        ("Improve this knowledge base article", json.dumps({
            "shouldUpdate": False,
            "improvedContent": "",
            "improvementReason": "Mock",
            "confidence": 0,
        })),
        ("Write a knowledge base article", json.dumps({
            "title": "Mock article",
            "content": "Mock content",
            "category": "support",
            "tags": ["mock"],
            "difficulty": "beginner",
            "estimatedReadTime": 2,
            "confidence": 50,
        })),
    ]

    def __init__(self):
        self.requests: List[Tuple[str, Dict[str, Any]]] = []

    @staticmethod
    def _prompt_of(body: Dict[str, Any]) -> str:
        if "messages" in body:
            return str(body["messages"][-1]["content"])
        return str(body.get("inputText") or body.get("prompt") or "")

    def _answer(self, prompt: str) -> str:
        for marker, answer in self.CANNED:
            if marker in prompt:
                return answer
        return "{}"

    async def send(self, model_id: str, body: Dict[str, Any], timeout: float) -> Dict[str, Any]:
        self.requests.append((model_id, body))
        prompt = self._prompt_of(body)
        text = self._answer(prompt)
        in_tokens, out_tokens = max(1, len(prompt) // 4), max(1, len(text) // 4)

        if "anthropic_version" in body:
            return {
                "content": [{"type": "text", "text": text}],
                "usage": {"input_tokens": in_tokens, "output_tokens": out_tokens},
            }
        if "inputText" in body:
            return {
                "inputTextTokenCount": in_tokens,
                "results": [{"outputText": text, "tokenCount": out_tokens}],
            }
        if "max_gen_len" in body:
            return {
                "generation": text,
                "prompt_token_count": in_tokens,
                "generation_token_count": out_tokens,
            }
        if "maxTokens" in body:
            return {
                "prompt": {"tokens": [None] * in_tokens},
                "completions": [{"data": {"text": text, "tokens": [None] * out_tokens}}],
            }
        return {
            "choices": [{"message": {"role": "assistant", "content": text}}],
            "usage": {"prompt_tokens": in_tokens, "completion_tokens": out_tokens},
        }
