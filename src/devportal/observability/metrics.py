"""Prometheus-compatible metrics for upstream AI Core and backend calls."""

import logging

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    Info,
    generate_latest,
)

from devportal.config.settings import _project_version

logger = logging.getLogger(__name__)


class MetricsCollector:
    """Prometheus metrics collector for the AI Core gateway.

    Each collector owns its registry so several gateways (or tests) can
    coexist in one process without duplicate-registration errors.
    """

    def __init__(self, service_name: str = "devportal-aicore", registry: CollectorRegistry | None = None) -> None:
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()
        self._init_standard_metrics()
        logger.info("MetricsCollector initialized")

    def _init_standard_metrics(self) -> None:
        info = Info("aicore_gateway_service", "Service information", registry=self.registry)
        info.info({"service": self.service_name, "version": _project_version()})

        self.upstream_requests_total = Counter(
            "aicore_upstream_requests_total",
            "Total upstream AI Core / backend requests",
            ["operation", "status"],
            registry=self.registry,
        )
        self.upstream_request_duration_seconds = Histogram(
            "aicore_upstream_request_duration_seconds",
            "Upstream request duration",
            ["operation"],
            registry=self.registry,
        )
        self.token_acquisitions_total = Counter(
            "aicore_token_acquisitions_total",
            "OAuth client-credentials token acquisitions",
            ["outcome"],
            registry=self.registry,
        )
        self.instances_skipped_total = Counter(
            "aicore_instances_skipped_total",
            "Instances skipped during deployment aggregation",
            ["team"],
            registry=self.registry,
        )
        self.inference_requests_total = Counter(
            "aicore_inference_requests_total",
            "Chat inference requests",
            ["backend", "outcome"],
            registry=self.registry,
        )
        self.inference_tokens_total = Counter(
            "aicore_inference_tokens_total",
            "Tokens reported by inference backends",
            ["backend", "type"],
            registry=self.registry,
        )

    def record_upstream_request(self, operation: str, status: int | str, duration: float) -> None:
        self.upstream_requests_total.labels(operation=operation, status=str(status)).inc()
        self.upstream_request_duration_seconds.labels(operation=operation).observe(duration)

    def record_token_acquisition(self, outcome: str) -> None:
        self.token_acquisitions_total.labels(outcome=outcome).inc()

    def record_instance_skipped(self, team: str) -> None:
        self.instances_skipped_total.labels(team=team).inc()

    def record_inference(
        self, backend: str, outcome: str, prompt_tokens: int = 0, completion_tokens: int = 0
    ) -> None:
        self.inference_requests_total.labels(backend=backend, outcome=outcome).inc()
        if prompt_tokens:
            self.inference_tokens_total.labels(backend=backend, type="prompt").inc(prompt_tokens)
        if completion_tokens:
            self.inference_tokens_total.labels(backend=backend, type="completion").inc(completion_tokens)

    def export(self) -> tuple[bytes, str]:
        """Return the text exposition and its content type."""
        return generate_latest(self.registry), CONTENT_TYPE_LATEST


_default_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Return the process-wide collector, creating it on first use."""
    global _default_metrics
    if _default_metrics is None:
        _default_metrics = MetricsCollector()
    return _default_metrics
