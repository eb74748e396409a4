"""
Inference Gateway - chat inference against an accessible deployment
====================================================================

Locates the deployment among the caller's instances, selects the wire
protocol from the deployment itself and delegates to the matching
adapter. Callers never choose the protocol.
"""

from collections.abc import Sequence

from devportal.core.exceptions import (
    DeploymentNotFoundError,
    DeploymentURLUnavailableError,
    DevPortalError,
)
from devportal.core.structured_logger import get_logger
from devportal.core.types import BackendKind
from devportal.observability.metrics import MetricsCollector, get_metrics

from .backends import (
    AnthropicBackend,
    GeminiBackend,
    InferenceBackend,
    InferenceTarget,
    OpenAIBackend,
    OrchestrationBackend,
    detect_backend,
)
from .client import AICoreClient
from .deployments import DeploymentAggregator
from .models import ChatResponse, InferenceRequest

logger = get_logger("InferenceGateway")


def create_backends(
    client: AICoreClient,
    orchestration_model_name: str = "gpt-4o",
    anthropic_default_max_tokens: int = 1024,
) -> dict[BackendKind, InferenceBackend]:
    """One adapter per protocol, sharing the same AI Core client."""
    return {
        BackendKind.OPENAI: OpenAIBackend(client),
        BackendKind.ANTHROPIC: AnthropicBackend(client, default_max_tokens=anthropic_default_max_tokens),
        BackendKind.GEMINI: GeminiBackend(client),
        BackendKind.ORCHESTRATION: OrchestrationBackend(client, default_model_name=orchestration_model_name),
    }


class InferenceGateway:
    """Routes chat requests to the adapter matching the deployment."""

    def __init__(
        self,
        aggregator: DeploymentAggregator,
        backends: dict[BackendKind, InferenceBackend],
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.aggregator = aggregator
        self._backends = backends
        self._metrics = metrics or get_metrics()

    async def resolve_target(self, instances: Sequence[str], deployment_id: str) -> tuple[BackendKind, InferenceTarget]:
        """
        Find the deployment and decide how to talk to it.

        Raises:
            DeploymentNotFoundError: Not in any of the caller's instances
            DeploymentURLUnavailableError: Deployment is still provisioning
        """
        location = await self.aggregator.find_deployment(instances, deployment_id)
        if location is None:
            raise DeploymentNotFoundError(
                deployment_id, f"deployment {deployment_id} not found or user does not have access"
            )

        deployment = location.deployment
        if not deployment.deployment_url:
            raise DeploymentURLUnavailableError(deployment_id)

        model_name = deployment.backend_model_name
        kind = detect_backend(deployment.scenario_id, model_name)
        target = InferenceTarget(
            team=location.team,
            deployment_id=deployment_id,
            deployment_url=deployment.deployment_url,
            model_name=model_name,
        )
        return kind, target

    async def chat(self, instances: Sequence[str], request: InferenceRequest) -> ChatResponse:
        kind, target = await self.resolve_target(instances, request.deployment_id)
        backend = self._backends[kind]
        logger.info(
            "Routing chat inference",
            backend=kind.value,
            model=target.model_name,
            deployment_id=target.deployment_id,
            team=target.team,
        )

        try:
            response = await backend.infer(request, target)
        except DevPortalError:
            self._metrics.record_inference(kind.value, "error")
            raise

        self._metrics.record_inference(
            kind.value,
            "success",
            prompt_tokens=response.usage.prompt_tokens,
            completion_tokens=response.usage.completion_tokens,
        )
        return response
