"""
Model Family Codecs
===================

Each model family speaks its own request/response JSON. A family codec
turns a prompt into the family's request body and the family's response
back into text plus token usage. Families are looked up by model-id prefix;
adding a provider means registering a new codec, not branching the gateway.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class InvocationOptions:
    """Generation options common to every family."""
    max_tokens: int
    temperature: float
    top_p: float = 0.9


@dataclass(frozen=True)
class DecodedResponse:
    """Family-neutral response. Token counts are None when not reported."""
    text: str
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None


def _optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class ModelFamily(ABC):
    """Encoder/decoder pair for one family of models."""

    name: str = ""
    style: str = ""
    prefixes: Tuple[str, ...] = ()

    @abstractmethod
    def encode(self, model_id: str, prompt: str, options: InvocationOptions) -> Dict[str, Any]:
        """Request body for ``prompt``."""

    @abstractmethod
    def decode(self, raw: Dict[str, Any]) -> DecodedResponse:
        """
        Parse a provider response.

        Raises KeyError, IndexError or TypeError when the response does not
        have the family's shape.
        """

    def matches(self, model_id: str) -> int:
        """Length of the longest prefix of ``model_id`` this family claims, 0 if none."""
        return max((len(p) for p in self.prefixes if model_id.startswith(p)), default=0)


class AnthropicMessagesFamily(ModelFamily):
    """Claude on Bedrock: messages API (chat-style)."""

    name = "anthropic"
    style = "chat"
    prefixes = ("anthropic.",)
    ANTHROPIC_VERSION = "bedrock-2023-05-31"

    def encode(self, model_id: str, prompt: str, options: InvocationOptions) -> Dict[str, Any]:
        return {
            "anthropic_version": self.ANTHROPIC_VERSION,
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }

    def decode(self, raw: Dict[str, Any]) -> DecodedResponse:
        blocks = raw["content"]
        text = "".join(block.get("text", "") for block in blocks if block.get("type", "text") == "text")
        usage = raw.get("usage") or {}
        return DecodedResponse(
            text=text,
            input_tokens=_optional_int(usage.get("input_tokens")),
            output_tokens=_optional_int(usage.get("output_tokens")),
        )


class TitanTextFamily(ModelFamily):
    """Amazon Titan text models (instruction-style)."""

    name = "titan"
    style = "instruction"
    prefixes = ("amazon.titan",)

    def encode(self, model_id: str, prompt: str, options: InvocationOptions) -> Dict[str, Any]:
        return {
            "inputText": prompt,
            "textGenerationConfig": {
                "maxTokenCount": options.max_tokens,
                "temperature": options.temperature,
                "topP": options.top_p,
            },
        }

    def decode(self, raw: Dict[str, Any]) -> DecodedResponse:
        result = raw["results"][0]
        input_tokens = raw.get("inputTextTokenCount", raw.get("inputTokenCount"))
        output_tokens = result.get("tokenCount", raw.get("outputTokenCount"))
        return DecodedResponse(
            text=result["outputText"],
            input_tokens=_optional_int(input_tokens),
            output_tokens=_optional_int(output_tokens),
        )


class AI21JurassicFamily(ModelFamily):
    """AI21 Jurassic-2 (completion-style)."""

    name = "ai21"
    style = "completion"
    prefixes = ("ai21.j2",)

    def encode(self, model_id: str, prompt: str, options: InvocationOptions) -> Dict[str, Any]:
        return {
            "prompt": prompt,
            "maxTokens": options.max_tokens,
            "temperature": options.temperature,
            "topP": options.top_p,
        }

    def decode(self, raw: Dict[str, Any]) -> DecodedResponse:
        data = raw["completions"][0]["data"]
        prompt_tokens: Optional[List[Any]] = (raw.get("prompt") or {}).get("tokens")
        output_tokens: Optional[List[Any]] = data.get("tokens")
        return DecodedResponse(
            text=data["text"],
            input_tokens=len(prompt_tokens) if prompt_tokens is not None else None,
            output_tokens=len(output_tokens) if output_tokens is not None else None,
        )


class LlamaFamily(ModelFamily):
    """Meta Llama 2/3 (completion-style)."""

    name = "llama"
    style = "completion"
    prefixes = ("meta.llama",)

    def encode(self, model_id: str, prompt: str, options: InvocationOptions) -> Dict[str, Any]:
        return {
            "prompt": prompt,
            "max_gen_len": options.max_tokens,
            "temperature": options.temperature,
            "top_p": options.top_p,
        }

    def decode(self, raw: Dict[str, Any]) -> DecodedResponse:
        return DecodedResponse(
            text=raw["generation"],
            input_tokens=_optional_int(raw.get("prompt_token_count")),
            output_tokens=_optional_int(raw.get("generation_token_count")),
        )


class OpenAIChatFamily(ModelFamily):
    """OpenAI chat completions (chat-style)."""

    name = "openai"
    style = "chat"
    prefixes = ("gpt-", "openai.", "o1", "o3")

    def encode(self, model_id: str, prompt: str, options: InvocationOptions) -> Dict[str, Any]:
        return {
            "model": model_id.removeprefix("openai."),
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
        }

    def decode(self, raw: Dict[str, Any]) -> DecodedResponse:
        content = raw["choices"][0]["message"]["content"]
        if content is None:
            raise TypeError("chat completion has no text content")
        usage = raw.get("usage") or {}
        return DecodedResponse(
            text=content,
            input_tokens=_optional_int(usage.get("prompt_tokens")),
            output_tokens=_optional_int(usage.get("completion_tokens")),
        )


class ModelFamilyRegistry:
    """
    Model-id prefix → family codec.

    The longest matching prefix wins; ids no family claims use the default
    family.
    """

    def __init__(self, default: ModelFamily):
        self._families: Dict[str, ModelFamily] = {}
        self._default = default
        self.register(default)

    def register(self, family: ModelFamily) -> None:
        self._families[family.name] = family

    def resolve(self, model_id: str) -> ModelFamily:
        best, best_len = self._default, 0
        for family in self._families.values():
            length = family.matches(model_id)
            if length > best_len:
                best, best_len = family, length
        return best

    def get(self, name: str) -> Optional[ModelFamily]:
        return self._families.get(name)

    @property
    def names(self) -> List[str]:
        return list(self._families)


def default_registry() -> ModelFamilyRegistry:
    """Registry with every built-in family; unknown ids use Claude messages."""
    registry = ModelFamilyRegistry(default=AnthropicMessagesFamily())
    for family in (TitanTextFamily(), AI21JurassicFamily(), LlamaFamily(), OpenAIChatFamily()):
        registry.register(family)
    return registry
