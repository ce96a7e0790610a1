"""
Model Gateway
=============

Single entry point for model calls. Every call is budgeted before it is
sent and recorded with real token counts after it returns:

1. estimate input tokens
2. fit the output budget under the per-request token ceiling
3. ledger-backed budget gate, circuit check, then the request-rate throttle
4. encode for the model family and send under a clamped timeout
5. decode text and token usage (provider counts preferred)
6. record actual usage in the ledger
"""

import asyncio
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from helpdesk_ai.config.ai_settings import AISettings
from helpdesk_ai.core import (
    BudgetExceededException,
    ConfigurationException,
    ProviderTransportException,
)
from helpdesk_ai.cost_control.application import CostGovernor, RequestThrottle
from helpdesk_ai.cost_control.domain import CostEstimate
from helpdesk_ai.infrastructure.llm.families import (
    DecodedResponse,
    InvocationOptions,
    ModelFamily,
    ModelFamilyRegistry,
    default_registry,
)
from helpdesk_ai.infrastructure.llm.transports import IModelTransport
from helpdesk_ai.shared.infrastructure.grafana import GrafanaOTLPExporter, get_grafana_exporter
from helpdesk_ai.shared.infrastructure.logging import get_logger, log_latency
from helpdesk_ai.shared.infrastructure.resilience import CircuitBreaker

logger = get_logger(__name__)


@dataclass(frozen=True)
class TokenUsage:
    input_tokens: int
    output_tokens: int

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass(frozen=True)
class InvocationResult:
    """Text of a successful call with its pre-call estimate and actual usage."""
    response_text: str
    cost_estimate: CostEstimate
    actual_tokens: TokenUsage
    model_id: str
    latency_ms: int = 0


class ModelGateway:
    """
    Cost-governed model invocation.

    Transports are keyed by family name; a family without a transport (no
    credentials) is treated as not configured.
    """

    MIN_TIMEOUT = 5
    MAX_TIMEOUT = 120
    OUTPUT_ESTIMATE_CAP = 1000

    def __init__(
        self,
        governor: CostGovernor,
        transports: Mapping[str, IModelTransport],
        settings_provider: Callable[[], AISettings],
        registry: Optional[ModelFamilyRegistry] = None,
        throttle: Optional[RequestThrottle] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        metrics_exporter: Optional[GrafanaOTLPExporter] = None
    ):
        self._governor = governor
        self._transports = dict(transports)
        self._settings = settings_provider
        self._registry = registry or default_registry()
        self._throttle = throttle
        self._circuit = circuit_breaker or CircuitBreaker("model-provider")
        self._metrics = metrics_exporter

    @property
    def governor(self) -> CostGovernor:
        return self._governor

    def _resolve(self, model_id: Optional[str]) -> tuple[str, ModelFamily, IModelTransport]:
        model_id = model_id or self._settings().model_id
        if not model_id:
            raise ConfigurationException("No model selected for AI features")
        family = self._registry.resolve(model_id)
        transport = self._transports.get(family.name)
        if transport is None:
            raise ConfigurationException(
                f"No provider credentials configured for model family '{family.name}'",
                {"model_id": model_id}
            )
        return model_id, family, transport

    def is_configured(self, model_id: Optional[str] = None) -> bool:
        try:
            self._resolve(model_id)
        except ConfigurationException:
            return False
        return True

    def clamp_timeout(self, timeout_seconds: Optional[float]) -> float:
        if timeout_seconds is None:
            timeout_seconds = self._settings().response_timeout
        return float(max(self.MIN_TIMEOUT, min(self.MAX_TIMEOUT, timeout_seconds)))

    async def invoke(
        self,
        prompt: str,
        operation: str,
        max_tokens: int,
        temperature: Optional[float] = None,
        user_id: Optional[str] = None,
        ticket_id: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        model_id: Optional[str] = None
    ) -> InvocationResult:
        """
        Run one budgeted model call.

        Raises:
            ConfigurationException: no model id or no credentials for its family
            BudgetExceededException: refused before sending; nothing was recorded
            ProviderTransportException: transport, timeout or decode failure
        """
        model_id, family, transport = self._resolve(model_id)
        current = self._settings()
        if temperature is None:
            temperature = current.temperature

        input_tokens = self._governor.estimate_tokens(prompt)
        limits = await self._governor.get_limits()
        effective_max = min(max_tokens, limits.max_tokens_per_request - input_tokens)
        if effective_max <= 0:
            raise BudgetExceededException(
                f"Request exceeds max tokens per request. Prompt uses {input_tokens} tokens; "
                f"limit is {limits.max_tokens_per_request}.",
                estimated_cost=self._governor.estimate_cost(model_id, input_tokens, 0),
                token_ceiling=True,
            )

        output_estimate = min(effective_max, self.OUTPUT_ESTIMATE_CAP)
        decision = await self._governor.should_block(model_id, input_tokens, output_estimate, operation)
        if decision.blocked:
            raise BudgetExceededException(
                decision.reason or "Blocked by cost limits",
                estimated_cost=decision.estimated_cost,
                token_ceiling=(decision.reason or "").startswith("Request exceeds max tokens"),
            )

        estimate = CostEstimate(
            model_id=model_id,
            input_tokens=input_tokens,
            output_tokens=output_estimate,
            estimated_cost=decision.estimated_cost,
        )

        if not self._circuit.allow_request():
            raise ProviderTransportException("Provider circuit open, call skipped", {"model_id": model_id})

        # Only calls about to be sent count against the request rate
        if self._throttle is not None:
            throttled = await self._throttle.acquire(user_id)
            if not throttled.allowed:
                raise BudgetExceededException(throttled.reason or "AI request rate limit exceeded")

        body = family.encode(model_id, prompt, InvocationOptions(max_tokens=effective_max, temperature=temperature))
        timeout = self.clamp_timeout(timeout_seconds)

        try:
            with log_latency(logger, "model_invoke", model_id=model_id, family=family.name,
                             ai_operation=operation, ticket_id=ticket_id) as timing:
                raw = await asyncio.wait_for(transport.send(model_id, body, timeout), timeout=timeout)
            decoded = self._decode(family, raw, model_id)
        except asyncio.TimeoutError as e:
            self._circuit.record_failure()
            raise ProviderTransportException(
                f"Model call timed out after {timeout}s",
                {"model_id": model_id, "operation": operation}
            ) from e
        except ProviderTransportException:
            self._circuit.record_failure()
            logger.error(
                "Model call failed",
                extra={"model_id": model_id, "ai_operation": operation, "ticket_id": ticket_id}
            )
            raise
        self._circuit.record_success()

        actual = TokenUsage(
            input_tokens=decoded.input_tokens if decoded.input_tokens is not None else input_tokens,
            output_tokens=(
                decoded.output_tokens if decoded.output_tokens is not None
                else self._governor.estimate_tokens(decoded.text)
            ),
        )
        record = await self._governor.record_usage(
            model_id, actual.input_tokens, actual.output_tokens, operation,
            user_id=user_id, ticket_id=ticket_id,
        )

        latency_ms = timing.get("latency_ms", 0)
        await self._export_metrics(model_id, actual, record.estimated_cost, latency_ms, operation)

        return InvocationResult(
            response_text=decoded.text,
            cost_estimate=estimate,
            actual_tokens=actual,
            model_id=model_id,
            latency_ms=latency_ms,
        )

    @staticmethod
    def _decode(family: ModelFamily, raw: object, model_id: str) -> DecodedResponse:
        if not isinstance(raw, dict):
            raise ProviderTransportException("Unexpected response type", {"model_id": model_id})
        try:
            return family.decode(raw)
        except (KeyError, IndexError, TypeError, AttributeError, ValueError) as e:
            raise ProviderTransportException(
                f"Could not decode {family.name} response: {e}",
                {"model_id": model_id}
            ) from e

    async def _export_metrics(
        self,
        model_id: str,
        usage: TokenUsage,
        cost: float,
        latency_ms: int,
        operation: str
    ) -> None:
        exporter = self._metrics or get_grafana_exporter()
        if exporter is None or not exporter.is_enabled():
            return
        await exporter.export_model_usage(
            model_id=model_id,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            cost_usd=cost,
            latency_ms=latency_ms,
            operation=operation,
        )

    async def close(self) -> None:
        # One transport may serve several families
        unique = {id(t): t for t in self._transports.values()}
        for transport in unique.values():
            await transport.close()
