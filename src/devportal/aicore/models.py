"""
AI Core wire models
===================

Pydantic schemas for the AI Core v2 ``lm`` API surface and for the
canonical chat request/response shape exposed to portal handlers.
Upstream payloads use camelCase; every model accepts either spelling
and serializes by alias when sent upstream.
"""

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from devportal.core.types import DeploymentStatus, TargetStatus


class _AICoreModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='ignore')


# =============================================================================
# DEPLOYMENTS
# =============================================================================


class _BackendModel(_AICoreModel):
    name: str | None = None
    version: str | None = None


class _BackendDetails(_AICoreModel):
    model: _BackendModel | None = None


class _DetailResources(_AICoreModel):
    backend_details: _BackendDetails | None = Field(None, alias="backend_details")


class DeploymentDetailsBlock(_AICoreModel):
    """The ``details`` object of a deployment; only the backend model is read"""
    resources: _DetailResources | None = None


class Deployment(_AICoreModel):
    """A deployment as reported by ``/v2/lm/deployments``"""
    id: str
    configuration_id: str | None = None
    configuration_name: str | None = None
    executable_id: str | None = None
    scenario_id: str | None = None
    status: DeploymentStatus | None = None
    status_message: str | None = None
    target_status: str | None = None
    last_operation: str | None = None
    latest_running_configuration_id: str | None = None
    ttl: str | None = None
    deployment_url: str | None = None
    created_at: datetime | None = None
    modified_at: datetime | None = None
    submission_time: datetime | None = None
    start_time: datetime | None = None
    completion_time: datetime | None = None
    details: DeploymentDetailsBlock | None = Field(None, exclude=True)

    @field_validator('status', mode='before')
    @classmethod
    def parse_status(cls, v: object) -> DeploymentStatus | None:
        return None if v is None else DeploymentStatus.parse(v)

    @computed_field
    @property
    def backend_model_name(self) -> str | None:
        """``details.resources.backend_details.model.name``, when reported."""
        try:
            return self.details.resources.backend_details.model.name or None
        except AttributeError:
            return None


class DeploymentList(_AICoreModel):
    count: int = 0
    resources: list[Deployment] = Field(default_factory=list)


class TeamDeployments(BaseModel):
    """Deployments of one instance inside an aggregated listing"""
    team: str
    deployments: list[Deployment] = Field(default_factory=list)


class AggregatedDeployments(BaseModel):
    """Aggregated listing across every accessible instance"""
    count: int = 0
    deployments: list[TeamDeployments] = Field(default_factory=list)


class DeploymentLocation(BaseModel):
    """A deployment together with the instance that owns it"""
    team: str
    deployment: Deployment


class DeploymentCreateRequest(_AICoreModel):
    """Create request; exactly one of configuration_id / configuration_request"""
    configuration_id: str | None = None
    configuration_request: "ConfigurationRequest | None" = None
    ttl: str | None = None


class DeploymentCreateResponse(_AICoreModel):
    id: str
    message: str | None = None
    deployment_url: str | None = None
    status: str | None = None
    ttl: str | None = None


class DeploymentModificationRequest(_AICoreModel):
    target_status: TargetStatus | None = None
    configuration_id: str | None = None


class DeploymentModificationResponse(_AICoreModel):
    id: str
    message: str | None = None
    deployment_url: str | None = None
    status: str | None = None
    target_status: str | None = None


class DeploymentDeletionResponse(_AICoreModel):
    id: str
    message: str | None = None


# =============================================================================
# CONFIGURATIONS & MODELS
# =============================================================================


class ParameterBinding(_AICoreModel):
    key: str = Field(..., min_length=1)
    value: str


class ConfigurationRequest(_AICoreModel):
    name: str = Field(..., min_length=1)
    executable_id: str = Field(..., min_length=1)
    scenario_id: str = Field(..., min_length=1)
    parameter_bindings: list[ParameterBinding] = Field(default_factory=list)
    input_artifact_bindings: list[dict[str, str]] = Field(default_factory=list)


class ConfigurationCreateResponse(_AICoreModel):
    id: str
    message: str | None = None


class Configuration(_AICoreModel):
    id: str
    name: str
    executable_id: str | None = None
    scenario_id: str | None = None
    created_at: datetime | None = None
    parameter_bindings: list[ParameterBinding] = Field(default_factory=list)


class ConfigurationList(_AICoreModel):
    count: int = 0
    resources: list[Configuration] = Field(default_factory=list)


class ModelVersion(_AICoreModel):
    name: str
    is_latest: bool = False
    deprecated: bool = False
    retirement_date: str | None = None
    context_length: int | None = None


class ScenarioModel(_AICoreModel):
    model: str
    executable_id: str | None = None
    description: str | None = None
    display_name: str | None = None
    access_type: str | None = None
    provider: str | None = None
    versions: list[ModelVersion] = Field(default_factory=list)


class ScenarioModelList(_AICoreModel):
    count: int = 0
    resources: list[ScenarioModel] = Field(default_factory=list)


# =============================================================================
# OAUTH
# =============================================================================


class OAuthTokenResponse(BaseModel):
    access_token: str = Field(..., min_length=1)
    token_type: str = "Bearer"
    expires_in: int = Field(..., gt=0)

    model_config = ConfigDict(extra='ignore')


# =============================================================================
# CHAT
# =============================================================================


class ImageURL(BaseModel):
    url: str = Field(..., min_length=1)
    detail: str | None = None


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImagePart(BaseModel):
    type: Literal["image_url"] = "image_url"
    image_url: ImageURL


ContentPart = Annotated[Union[TextPart, ImagePart], Field(discriminator="type")]


class ChatMessage(BaseModel):
    """A chat turn; content is plain text or an ordered list of typed parts"""
    role: str = Field(..., min_length=1)
    content: str | list[ContentPart]

    @field_validator('role')
    @classmethod
    def normalize_role(cls, v: str) -> str:
        return v.strip().lower()

    def text(self) -> str:
        """Concatenated text of the message, ignoring image parts."""
        if isinstance(self.content, str):
            return self.content
        return "".join(p.text for p in self.content if isinstance(p, TextPart))


class InferenceRequest(BaseModel):
    deployment_id: str = Field(..., min_length=1)
    messages: list[ChatMessage] = Field(..., min_length=1)
    max_tokens: int | None = Field(None, gt=0)
    temperature: float | None = Field(None, ge=0, le=2)


class ChatResponseMessage(BaseModel):
    role: str = "assistant"
    content: str = ""


class ChatChoice(BaseModel):
    index: int = 0
    message: ChatResponseMessage
    finish_reason: str | None = None


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatResponse(BaseModel):
    """Canonical response every inference adapter produces"""
    id: str | None = None
    model: str | None = None
    choices: list[ChatChoice] = Field(default_factory=list)
    usage: Usage = Field(default_factory=Usage)


class MeResponse(BaseModel):
    user: str
    ai_instances: list[str] = Field(default_factory=list)


def dump_upstream(model: BaseModel) -> dict[str, Any]:
    """Serialize a request model for AI Core: camelCase keys, unset fields dropped."""
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


DeploymentCreateRequest.model_rebuild()
