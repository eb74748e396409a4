"""
AI Core Service - operations consumed by the portal's HTTP handlers
====================================================================

Ties identity lookup, access resolution, deployment aggregation,
configuration management and inference together. Each public coroutine
maps to one portal operation; handlers only translate HTTP to these
calls and exceptions to status codes.
"""

import httpx

from devportal.config.settings import Settings
from devportal.core.exceptions import (
    DeploymentNotFoundError,
    InstanceAccessDeniedError,
    MissingFieldError,
    UserNotAssignedToTeamError,
)
from devportal.core.structured_logger import get_logger
from devportal.observability.metrics import MetricsCollector, get_metrics
from devportal.persistence.repositories import Directory, User

from .access import AccessResolver
from .client import AICoreClient
from .configurations import (
    ConfigurationManager,
    validate_create_request,
    validate_modification_request,
)
from .credentials import CredentialStore
from .deployments import DeploymentAggregator
from .inference import InferenceGateway, create_backends
from .models import (
    AggregatedDeployments,
    ChatResponse,
    ConfigurationCreateResponse,
    ConfigurationList,
    ConfigurationRequest,
    Deployment,
    DeploymentCreateRequest,
    DeploymentCreateResponse,
    DeploymentDeletionResponse,
    DeploymentModificationRequest,
    DeploymentModificationResponse,
    InferenceRequest,
    MeResponse,
    ScenarioModelList,
)

logger = get_logger("AICoreService")


class AICoreService:
    """Facade over the AI Core components"""

    def __init__(
        self,
        resolver: AccessResolver,
        aggregator: DeploymentAggregator,
        configurations: ConfigurationManager,
        gateway: InferenceGateway,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.resolver = resolver
        self.aggregator = aggregator
        self.configurations = configurations
        self.gateway = gateway
        self._http_client = http_client

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()

    async def __aenter__(self) -> "AICoreService":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Instance selection
    # -------------------------------------------------------------------------

    async def _granted_instances(self, user: User) -> list[str]:
        if not self.resolver.has_any_grant(user):
            raise UserNotAssignedToTeamError()
        return await self.resolver.resolve(user)

    async def _select_instance(self, user: User, instance: str | None) -> str:
        """
        The instance an instance-scoped call runs against.

        Defaults to the user's own team. An explicit instance must be in
        the user's accessible set.
        """
        if instance:
            if instance not in await self.resolver.resolve(user):
                raise InstanceAccessDeniedError(instance)
            return instance

        primary = await self.resolver.primary_instance(user)
        if primary is None:
            raise UserNotAssignedToTeamError()
        # Missing credentials for the user's own team are a configuration error
        self.resolver.credentials.resolve(primary)
        return primary

    async def _locate(self, email: str | None, deployment_id: str) -> str:
        user = await self.resolver.user_by_email(email)
        instances = await self._granted_instances(user)
        location = await self.aggregator.find_deployment(instances, deployment_id)
        if location is None:
            raise DeploymentNotFoundError(deployment_id)
        return location.team

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def get_deployments(self, email: str | None) -> AggregatedDeployments:
        user = await self.resolver.user_by_email(email)
        instances = await self._granted_instances(user)
        return await self.aggregator.list(instances)

    async def get_me(self, username: str | None) -> MeResponse:
        user = await self.resolver.user_by_name(username)
        return MeResponse(user=user.name, ai_instances=await self.resolver.resolve(user))

    async def create_deployment(
        self, email: str | None, request: DeploymentCreateRequest, instance: str | None = None
    ) -> DeploymentCreateResponse:
        validate_create_request(request)
        user = await self.resolver.user_by_email(email)
        team = await self._select_instance(user, instance)
        return await self.configurations.create_deployment(team, request)

    async def update_deployment(
        self, email: str | None, deployment_id: str, request: DeploymentModificationRequest
    ) -> DeploymentModificationResponse:
        _require_deployment_id(deployment_id)
        validate_modification_request(request)
        team = await self._locate(email, deployment_id)
        return await self.configurations.update_deployment(team, deployment_id, request)

    async def delete_deployment(self, email: str | None, deployment_id: str) -> DeploymentDeletionResponse:
        _require_deployment_id(deployment_id)
        team = await self._locate(email, deployment_id)
        return await self.configurations.delete_deployment(team, deployment_id)

    async def get_deployment_details(self, email: str | None, deployment_id: str) -> Deployment:
        _require_deployment_id(deployment_id)
        team = await self._locate(email, deployment_id)
        return await self.configurations.get_deployment_details(team, deployment_id)

    async def get_configurations(self, email: str | None, instance: str | None = None) -> ConfigurationList:
        user = await self.resolver.user_by_email(email)
        team = await self._select_instance(user, instance)
        return await self.configurations.list_configurations(team)

    async def create_configuration(
        self, email: str | None, request: ConfigurationRequest, instance: str | None = None
    ) -> ConfigurationCreateResponse:
        user = await self.resolver.user_by_email(email)
        team = await self._select_instance(user, instance)
        return await self.configurations.create_configuration(team, request)

    async def get_models(self, email: str | None, scenario_id: str, instance: str | None = None) -> ScenarioModelList:
        if not scenario_id or not scenario_id.strip():
            raise MissingFieldError("scenarioId is required", fields=["scenarioId"])
        user = await self.resolver.user_by_email(email)
        team = await self._select_instance(user, instance)
        return await self.configurations.get_models(team, scenario_id)

    async def chat_inference(self, email: str | None, request: InferenceRequest) -> ChatResponse:
        user = await self.resolver.user_by_email(email)
        instances = await self._granted_instances(user)
        return await self.gateway.chat(instances, request)


def _require_deployment_id(deployment_id: str) -> None:
    if not deployment_id:
        raise MissingFieldError("deploymentId is required", fields=["deploymentId"])


def create_aicore_service(
    settings: Settings,
    directory: Directory,
    http_client: httpx.AsyncClient | None = None,
    metrics: MetricsCollector | None = None,
) -> AICoreService:
    """
    Wire the AI Core components from settings.

    Args:
        settings: Validated settings carrying the AI Core credentials
        directory: User/team/group/organization lookups
        http_client: Shared client, injected by tests; created when omitted
        metrics: Collector, defaults to the process-wide one
    """
    config = settings.aicore
    metrics = metrics or get_metrics()
    owns_client = http_client is None
    http_client = http_client or httpx.AsyncClient(timeout=config.http_timeout_seconds)

    store = CredentialStore(
        config.credentials,
        http_client=http_client,
        timeout_seconds=config.http_timeout_seconds,
        expiry_leeway_seconds=config.token_expiry_leeway_seconds,
        metrics=metrics,
    )
    client = AICoreClient(store, http_client=http_client, timeout_seconds=config.http_timeout_seconds, metrics=metrics)
    aggregator = DeploymentAggregator(client, max_concurrency=config.max_concurrent_instances, metrics=metrics)
    gateway = InferenceGateway(
        aggregator,
        create_backends(
            client,
            orchestration_model_name=config.orchestration_model_name,
            anthropic_default_max_tokens=config.anthropic_default_max_tokens,
        ),
        metrics=metrics,
    )

    logger.info("AI Core service created", instances=len(store.teams))
    return AICoreService(
        resolver=AccessResolver(directory, store),
        aggregator=aggregator,
        configurations=ConfigurationManager(client),
        gateway=gateway,
        http_client=http_client if owns_client else None,
    )
