"""
Model Invocation Infrastructure
===============================

Provider-neutral model calls under a spend budget.

- ``families``: per-family request/response codecs keyed by model-id prefix
- ``transports``: HTTP (Bedrock runtime), OpenAI SDK and offline mock senders
- ``gateway``: ModelGateway, the budgeted ``invoke`` used by triage and mining
- ``parsing``: JSON payload extraction and confidence normalisation

Callers depend on ``ModelGateway.invoke`` only; which provider answers is a
wiring decision made in ``build_transports``.
"""

from typing import Dict

from helpdesk_ai.config import Settings
from helpdesk_ai.core import ConfigurationException
from helpdesk_ai.infrastructure.llm.families import (
    AI21JurassicFamily,
    AnthropicMessagesFamily,
    DecodedResponse,
    InvocationOptions,
    LlamaFamily,
    ModelFamily,
    ModelFamilyRegistry,
    OpenAIChatFamily,
    TitanTextFamily,
    default_registry,
)
from helpdesk_ai.infrastructure.llm.gateway import InvocationResult, ModelGateway, TokenUsage
from helpdesk_ai.infrastructure.llm.parsing import (
    extract_json_payload,
    normalize_confidence,
    parse_model_list,
    parse_model_payload,
)
from helpdesk_ai.infrastructure.llm.transports import (
    BedrockHttpTransport,
    IModelTransport,
    MockModelTransport,
    OpenAIChatTransport,
)
from helpdesk_ai.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

BEDROCK_FAMILIES = ("anthropic", "titan", "ai21", "llama")


def build_transports(app_settings: Settings) -> Dict[str, IModelTransport]:
    """
    Family name → transport for every provider with credentials.

    Families left out have no credentials; the gateway reports them as not
    configured instead of failing at startup.
    """
    if app_settings.mock_llm:
        mock = MockModelTransport()
        logger.warning("Using mock model transport (MOCK_LLM enabled)")
        return {name: mock for name in (*BEDROCK_FAMILIES, "openai")}

    transports: Dict[str, IModelTransport] = {}
    try:
        bedrock = BedrockHttpTransport(
            app_settings.bedrock_api_key,
            region=app_settings.bedrock_region,
            endpoint_url=app_settings.bedrock_endpoint_url,
        )
        transports.update({name: bedrock for name in BEDROCK_FAMILIES})
    except ConfigurationException as e:
        logger.info("Bedrock transport not configured", extra={"reason": e.message})

    try:
        transports["openai"] = OpenAIChatTransport(
            app_settings.openai_api_key,
            base_url=app_settings.openai_base_url,
        )
    except ConfigurationException as e:
        logger.info("OpenAI transport not configured", extra={"reason": e.message})

    return transports


__all__ = [
    "ModelGateway",
    "InvocationResult",
    "TokenUsage",
    "ModelFamily",
    "ModelFamilyRegistry",
    "AnthropicMessagesFamily",
    "TitanTextFamily",
    "AI21JurassicFamily",
    "LlamaFamily",
    "OpenAIChatFamily",
    "InvocationOptions",
    "DecodedResponse",
    "default_registry",
    "IModelTransport",
    "BedrockHttpTransport",
    "OpenAIChatTransport",
    "MockModelTransport",
    "build_transports",
    "extract_json_payload",
    "normalize_confidence",
    "parse_model_payload",
    "parse_model_list",
]
