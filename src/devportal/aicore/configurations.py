"""
Configuration Manager - configurations and deployment lifecycle
================================================================

Instance-scoped create/list calls for configurations and deployments.
Request validation happens before any network call; an upstream 404 on
a deployment path is reported as ``DeploymentNotFoundError``.
"""

from devportal.core.exceptions import (
    DeploymentNotFoundError,
    MissingFieldError,
    MutuallyExclusiveFieldsError,
    UpstreamError,
)
from devportal.core.structured_logger import get_logger

from .client import AICoreClient
from .models import (
    ConfigurationCreateResponse,
    ConfigurationList,
    ConfigurationRequest,
    Deployment,
    DeploymentCreateRequest,
    DeploymentCreateResponse,
    DeploymentDeletionResponse,
    DeploymentModificationRequest,
    DeploymentModificationResponse,
    ScenarioModelList,
    dump_upstream,
)

logger = get_logger("ConfigurationManager")

CONFIGURATIONS_PATH = "/v2/lm/configurations"
DEPLOYMENTS_PATH = "/v2/lm/deployments"
SCENARIO_MODELS_PATH = "/v2/lm/scenarios/{scenario_id}/models"


def validate_create_request(request: DeploymentCreateRequest) -> None:
    """Exactly one of configuration_id / configuration_request must be set."""
    has_id = bool(request.configuration_id)
    has_request = request.configuration_request is not None
    if has_id and has_request:
        raise MutuallyExclusiveFieldsError("configurationId", "configurationRequest")
    if not has_id and not has_request:
        raise MissingFieldError(
            "either configurationId or configurationRequest must be provided",
            fields=["configurationId", "configurationRequest"],
        )


def validate_modification_request(request: DeploymentModificationRequest) -> None:
    if request.target_status is None and not request.configuration_id:
        raise MissingFieldError(
            "either targetStatus or configurationId must be provided",
            fields=["targetStatus", "configurationId"],
        )


class ConfigurationManager:
    """Creates and reads configurations and deployments on one instance."""

    def __init__(self, client: AICoreClient) -> None:
        self.client = client

    def _deployment_url(self, team: str, deployment_id: str) -> str:
        return self.client.api_url(team, f"{DEPLOYMENTS_PATH}/{deployment_id}")

    async def list_configurations(self, team: str) -> ConfigurationList:
        return await self.client.get_json(
            team,
            self.client.api_url(team, CONFIGURATIONS_PATH),
            operation="list_configurations",
            response_model=ConfigurationList,
        )

    async def create_configuration(self, team: str, request: ConfigurationRequest) -> ConfigurationCreateResponse:
        response = await self.client.post_json(
            team,
            self.client.api_url(team, CONFIGURATIONS_PATH),
            dump_upstream(request),
            operation="create_configuration",
            response_model=ConfigurationCreateResponse,
        )
        logger.info("Configuration created", team=team, configuration_id=response.id, name=request.name)
        return response

    async def get_models(self, team: str, scenario_id: str) -> ScenarioModelList:
        if not scenario_id or not scenario_id.strip():
            raise MissingFieldError("scenarioId is required", fields=["scenarioId"])
        path = SCENARIO_MODELS_PATH.format(scenario_id=scenario_id.strip())
        return await self.client.get_json(
            team, self.client.api_url(team, path), operation="get_models", response_model=ScenarioModelList
        )

    async def create_deployment(self, team: str, request: DeploymentCreateRequest) -> DeploymentCreateResponse:
        """
        Create a deployment, first creating its configuration when one is
        supplied inline.

        Raises:
            MutuallyExclusiveFieldsError: Both configuration fields set
            MissingFieldError: Neither configuration field set
            UpstreamError: Configuration or deployment creation failed
        """
        validate_create_request(request)

        configuration_id = request.configuration_id
        if request.configuration_request is not None:
            try:
                created = await self.create_configuration(team, request.configuration_request)
            except UpstreamError as e:
                raise UpstreamError(
                    "failed to create configuration", e.status_code, e.body
                ) from e
            configuration_id = created.id

        body = {"configurationId": configuration_id}
        if request.ttl:
            body["ttl"] = request.ttl
        response = await self.client.post_json(
            team,
            self.client.api_url(team, DEPLOYMENTS_PATH),
            body,
            operation="create_deployment",
            response_model=DeploymentCreateResponse,
        )
        logger.info(
            "Deployment created",
            team=team,
            deployment_id=response.id,
            configuration_id=configuration_id,
        )
        return response

    async def update_deployment(
        self, team: str, deployment_id: str, request: DeploymentModificationRequest
    ) -> DeploymentModificationResponse:
        validate_modification_request(request)
        try:
            response = await self.client.patch_json(
                team,
                self._deployment_url(team, deployment_id),
                dump_upstream(request),
                operation="update_deployment",
                response_model=DeploymentModificationResponse,
            )
        except UpstreamError as e:
            _raise_not_found(e, deployment_id)
            raise
        logger.info("Deployment modified", team=team, deployment_id=deployment_id, target=str(request.target_status))
        return response

    async def delete_deployment(self, team: str, deployment_id: str) -> DeploymentDeletionResponse:
        try:
            response = await self.client.delete_json(
                team,
                self._deployment_url(team, deployment_id),
                operation="delete_deployment",
                response_model=DeploymentDeletionResponse,
            )
        except UpstreamError as e:
            _raise_not_found(e, deployment_id)
            raise
        logger.info("Deployment deletion requested", team=team, deployment_id=deployment_id)
        return response

    async def get_deployment_details(self, team: str, deployment_id: str) -> Deployment:
        try:
            return await self.client.get_json(
                team,
                self._deployment_url(team, deployment_id),
                operation="get_deployment",
                response_model=Deployment,
            )
        except UpstreamError as e:
            _raise_not_found(e, deployment_id)
            raise


def _raise_not_found(error: UpstreamError, deployment_id: str) -> None:
    if error.status_code == 404:
        raise DeploymentNotFoundError(deployment_id) from error
