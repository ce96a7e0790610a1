"""
Grafana OTLP Metrics Exporter
==============================

Pushes model usage metrics (tokens, latency, spend) to Grafana Cloud via OTLP.

Metrics exported:
- ai_input_tokens / ai_output_tokens: provider-reported token counts
- ai_request_cost_usd: estimated spend of the call
- ai_latency_ms: model call latency in milliseconds
"""

import base64
import time
from typing import Any, Dict, List, Optional

import httpx

from helpdesk_ai.config import settings
from helpdesk_ai.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


def _gauge(
    name: str,
    unit: str,
    description: str,
    value: float,
    timestamp_ns: int,
    attributes: List[Dict[str, Any]],
    as_double: bool = False
) -> Dict[str, Any]:
    point: Dict[str, Any] = {"timeUnixNano": timestamp_ns, "attributes": attributes}
    if as_double:
        point["asDouble"] = float(value)
    else:
        point["asInt"] = int(value)
    return {
        "name": name,
        "unit": unit,
        "description": description,
        "gauge": {"dataPoints": [point]},
    }


class GrafanaOTLPExporter:
    """
    Export model usage metrics to Grafana Cloud via OTLP HTTP endpoint.

    Uses OpenTelemetry Protocol (OTLP) JSON format for metrics. Export is
    best effort: failures are logged and reported as ``False``.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        api_key: Optional[str] = None,
        instance_id: Optional[str] = None,
        timeout: float = 10.0
    ):
        self._host = host or settings.grafana_host
        self._api_key = api_key or settings.grafana_api_key
        self._instance_id = instance_id or settings.grafana_instance_id
        self._timeout = timeout
        self._enabled = bool(self._host and self._api_key and self._instance_id)

        if self._enabled:
            auth_pair = f"{self._instance_id}:{self._api_key}"
            self._auth_encoded = base64.b64encode(auth_pair.encode()).decode()
            # Don't double-append the path if host already includes it
            if "/otlp/v1/metrics" not in self._host:
                self._url = f"{self._host.rstrip('/')}/otlp/v1/metrics"
            else:
                self._url = self._host
            logger.info(
                "Grafana OTLP exporter initialized",
                extra={"host": self._host, "instance_id": self._instance_id}
            )

    def is_enabled(self) -> bool:
        return self._enabled

    def build_payload(
        self,
        model_id: str,
        input_tokens: int,
        output_tokens: int,
        cost_usd: float,
        latency_ms: int,
        operation: str,
        attributes: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """Build the OTLP ``resourceMetrics`` document for one model call."""
        timestamp_ns = int(time.time() * 1_000_000_000)

        metric_attributes = [
            {"key": "model", "value": {"stringValue": model_id}},
            {"key": "operation", "value": {"stringValue": operation}},
            {"key": "service", "value": {"stringValue": settings.app_name}},
        ]
        for key, value in (attributes or {}).items():
            metric_attributes.append({"key": key, "value": {"stringValue": str(value)}})

        metrics = [
            _gauge("ai_input_tokens", "1", "Input tokens per model call",
                   input_tokens, timestamp_ns, metric_attributes),
            _gauge("ai_output_tokens", "1", "Output tokens per model call",
                   output_tokens, timestamp_ns, metric_attributes),
            _gauge("ai_request_cost_usd", "USD", "Estimated spend per model call",
                   cost_usd, timestamp_ns, metric_attributes, as_double=True),
            _gauge("ai_latency_ms", "ms", "Model call latency in milliseconds",
                   latency_ms, timestamp_ns, metric_attributes),
        ]

        return {
            "resourceMetrics": [
                {
                    "resource": {
                        "attributes": [
                            {"key": "service.name", "value": {"stringValue": settings.app_name}},
                            {"key": "service.version", "value": {"stringValue": settings.app_version}},
                            {"key": "deployment.environment", "value": {"stringValue": settings.environment}},
                        ]
                    },
                    "scopeMetrics": [{"metrics": metrics}]
                }
            ]
        }

    async def export_model_usage(
        self,
        model_id: str,
        input_tokens: int,
        output_tokens: int,
        cost_usd: float,
        latency_ms: int,
        operation: str,
        attributes: Optional[Dict[str, str]] = None
    ) -> bool:
        """
        Export usage metrics of one model call.

        Returns:
            True if Grafana accepted the payload, False otherwise
        """
        if not self._enabled:
            return False

        payload = self.build_payload(
            model_id, input_tokens, output_tokens, cost_usd,
            latency_ms, operation, attributes
        )
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Basic {self._auth_encoded}",
            "X-Grafana-Org-Id": str(self._instance_id)
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self._url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.error("Error exporting metrics to Grafana", extra={"error": str(e)})
            return False

        if response.status_code in (200, 202):
            logger.debug(
                "Model usage exported to Grafana",
                extra={"model_id": model_id, "operation": operation}
            )
            return True

        logger.warning(
            "Failed to export metrics to Grafana",
            extra={
                "status_code": response.status_code,
                "response": response.text[:500],
                "url": self._url
            }
        )
        return False


# Global exporter instance
_grafana_exporter: Optional[GrafanaOTLPExporter] = None


def get_grafana_exporter() -> Optional[GrafanaOTLPExporter]:
    """Get or create global Grafana exporter instance."""
    global _grafana_exporter
    if _grafana_exporter is None:
        _grafana_exporter = GrafanaOTLPExporter()
    return _grafana_exporter


def init_grafana_exporter(
    host: str,
    api_key: str,
    instance_id: str
) -> GrafanaOTLPExporter:
    """Initialize Grafana exporter with credentials."""
    global _grafana_exporter
    _grafana_exporter = GrafanaOTLPExporter(
        host=host,
        api_key=api_key,
        instance_id=instance_id
    )
    return _grafana_exporter
