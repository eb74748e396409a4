"""Tests for devportal.aicore.models: AI Core and chat wire schemas"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from devportal.aicore.models import (
    ChatMessage,
    ConfigurationRequest,
    Deployment,
    DeploymentModificationRequest,
    InferenceRequest,
    ParameterBinding,
    dump_upstream,
)
from devportal.core.types import DeploymentStatus, TargetStatus


class TestDeployment:
    def test_camel_case_payload(self):
        deployment = Deployment.model_validate({
            "id": "d-1",
            "configurationId": "c-1",
            "scenarioId": "foundation-models",
            "status": "RUNNING",
            "deploymentUrl": "https://host/v2/inference/deployments/d-1",
            "createdAt": "2024-01-01T00:00:00Z",
            "details": {"resources": {"backend_details": {"model": {"name": "gpt-4o", "version": "latest"}}}},
            "unknownField": True,
        })

        assert deployment.configuration_id == "c-1"
        assert deployment.deployment_url.endswith("/d-1")
        assert deployment.backend_model_name == "gpt-4o"

    def test_backend_model_name_absent(self):
        assert Deployment(id="d-1").backend_model_name is None
        assert Deployment.model_validate({"id": "d-1", "details": {"resources": {}}}).backend_model_name is None

    def test_serialized_without_details(self):
        deployment = Deployment.model_validate({
            "id": "d-1",
            "details": {"resources": {"backend_details": {"model": {"name": "gemini-pro"}}}},
        })
        dumped = deployment.model_dump(by_alias=True)
        assert "details" not in dumped
        assert dumped["backendModelName"] == "gemini-pro"

    def test_id_required(self):
        with pytest.raises(PydanticValidationError):
            Deployment.model_validate({"status": "RUNNING"})


class TestDeploymentStatus:
    @pytest.mark.parametrize("raw,expected", [
        ("RUNNING", DeploymentStatus.RUNNING),
        ("running", DeploymentStatus.RUNNING),
        (" Stopped ", DeploymentStatus.STOPPED),
        ("HIBERNATING", DeploymentStatus.UNKNOWN),
        ("", DeploymentStatus.UNKNOWN),
        (None, DeploymentStatus.UNKNOWN),
        (DeploymentStatus.PENDING, DeploymentStatus.PENDING),
    ])
    def test_parse(self, raw, expected):
        assert DeploymentStatus.parse(raw) is expected

    def test_deployment_status_is_parsed(self):
        assert Deployment.model_validate({"id": "d", "status": "running"}).status is DeploymentStatus.RUNNING

    def test_unknown_deployment_status_is_tolerated(self):
        deployment = Deployment.model_validate({"id": "d", "status": "SOMETHING_NEW"})
        assert deployment.status is DeploymentStatus.UNKNOWN

    def test_status_absent(self):
        assert Deployment.model_validate({"id": "d"}).status is None


class TestDumpUpstream:
    def test_configuration_request(self):
        request = ConfigurationRequest(
            name="cfg",
            executable_id="aws-bedrock",
            scenario_id="foundation-models",
            parameter_bindings=[ParameterBinding(key="modelName", value="anthropic--claude-3-haiku")],
        )
        assert dump_upstream(request) == {
            "name": "cfg",
            "executableId": "aws-bedrock",
            "scenarioId": "foundation-models",
            "parameterBindings": [{"key": "modelName", "value": "anthropic--claude-3-haiku"}],
            "inputArtifactBindings": [],
        }

    def test_modification_request_drops_unset(self):
        request = DeploymentModificationRequest.model_validate({"targetStatus": "STOPPED"})
        assert request.target_status is TargetStatus.STOPPED
        assert dump_upstream(request) == {"targetStatus": "STOPPED"}

    def test_unknown_target_status(self):
        with pytest.raises(PydanticValidationError):
            DeploymentModificationRequest.model_validate({"targetStatus": "PAUSED"})


class TestChatMessage:
    def test_role_is_normalized(self):
        assert ChatMessage(role=" User ", content="hi").role == "user"

    def test_text_of_string_content(self):
        assert ChatMessage(role="user", content="hello").text() == "hello"

    def test_text_skips_images(self):
        message = ChatMessage.model_validate({
            "role": "user",
            "content": [
                {"type": "text", "text": "What "},
                {"type": "image_url", "image_url": {"url": "https://example.com/a.png"}},
                {"type": "text", "text": "is this?"},
            ],
        })
        assert message.text() == "What is this?"

    def test_unknown_part_type(self):
        with pytest.raises(PydanticValidationError):
            ChatMessage.model_validate({"role": "user", "content": [{"type": "audio", "data": "x"}]})


class TestInferenceRequest:
    def test_minimal(self):
        request = InferenceRequest.model_validate({
            "deployment_id": "d-1",
            "messages": [{"role": "user", "content": "Hello"}],
        })
        assert request.max_tokens is None
        assert request.temperature is None

    @pytest.mark.parametrize("payload", [
        {"deployment_id": "", "messages": [{"role": "user", "content": "x"}]},
        {"deployment_id": "d-1", "messages": []},
        {"deployment_id": "d-1", "messages": [{"role": "user", "content": "x"}], "max_tokens": 0},
        {"deployment_id": "d-1", "messages": [{"role": "user", "content": "x"}], "temperature": 3},
    ])
    def test_invalid(self, payload):
        with pytest.raises(PydanticValidationError):
            InferenceRequest.model_validate(payload)
