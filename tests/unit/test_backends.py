"""Tests for devportal.aicore.backends: protocol detection and translation"""

from unittest.mock import Mock

import pytest

from devportal.aicore.backends import (
    AnthropicBackend,
    AnthropicResponse,
    GeminiBackend,
    GeminiResponse,
    InferenceTarget,
    OpenAIBackend,
    OpenAIChatResponse,
    OrchestrationBackend,
    OrchestrationResponse,
    detect_backend,
    guess_image_mime,
    parse_data_url,
)
from devportal.aicore.models import InferenceRequest
from devportal.core.exceptions import InferenceResponseError
from devportal.core.types import BackendKind

TARGET = InferenceTarget(
    team="team-alpha",
    deployment_id="d-1",
    deployment_url="https://team-alpha.aicore.test/v2/inference/deployments/d-1/",
    model_name="some-model",
)


def dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def chat(*messages, **params) -> InferenceRequest:
    return InferenceRequest(deployment_id="d-1", messages=list(messages), **params)


IMAGE_MESSAGE = {
    "role": "user",
    "content": [
        {"type": "text", "text": "What is this?"},
        {"type": "image_url", "image_url": {"url": "data:image/jpeg;base64,QUJD"}},
    ],
}


class TestDetectBackend:
    @pytest.mark.parametrize("scenario,model,expected", [
        ("orchestration", "gpt-4o", BackendKind.ORCHESTRATION),
        ("orchestration", "gemini-1.5-flash", BackendKind.ORCHESTRATION),
        ("foundation-models", "gemini-1.5-flash", BackendKind.GEMINI),
        ("foundation-models", "GEMINI-PRO", BackendKind.GEMINI),
        ("foundation-models", "anthropic--claude-3-sonnet", BackendKind.ANTHROPIC),
        ("foundation-models", "Claude-3-Haiku", BackendKind.ANTHROPIC),
        ("foundation-models", "gpt-4o", BackendKind.OPENAI),
        ("foundation-models", None, BackendKind.OPENAI),
        (None, None, BackendKind.OPENAI),
    ])
    def test_detection(self, scenario, model, expected):
        assert detect_backend(scenario, model) is expected


class TestHelpers:
    def test_parse_data_url(self):
        assert parse_data_url("data:image/png;base64,AAAA") == ("image/png", "AAAA")
        assert parse_data_url("https://example.com/cat.png") is None

    def test_guess_image_mime(self):
        assert guess_image_mime("https://example.com/cat.jpg?x=1") == "image/jpeg"
        assert guess_image_mime("https://example.com/blob") == "image/png"

    def test_target_url_strips_trailing_slash(self):
        assert TARGET.url("/invoke") == "https://team-alpha.aicore.test/v2/inference/deployments/d-1/invoke"


class TestOpenAI:
    def setup_method(self):
        self.backend = OpenAIBackend(Mock())

    def test_request_passes_messages_through(self):
        body = dump(self.backend.build_request(chat({"role": "user", "content": "Hello"}, max_tokens=100, temperature=0.7), TARGET))
        assert body == {
            "messages": [{"role": "user", "content": "Hello"}],
            "max_tokens": 100,
            "temperature": 0.7,
        }

    def test_unset_params_are_omitted(self):
        body = dump(self.backend.build_request(chat({"role": "user", "content": "Hi"}), TARGET))
        assert "max_tokens" not in body
        assert "temperature" not in body

    def test_multimodal_content_is_forwarded(self):
        body = dump(self.backend.build_request(chat(IMAGE_MESSAGE), TARGET))
        assert body["messages"][0]["content"][1] == {
            "type": "image_url",
            "image_url": {"url": "data:image/jpeg;base64,QUJD"},
        }

    def test_response_usage_copied(self):
        upstream = OpenAIChatResponse.model_validate({
            "id": "chatcmpl-1",
            "model": "gpt-4o",
            "choices": [{"index": 0, "message": {"role": "ASSISTANT", "content": "Hi!"}, "finish_reason": "stop"}],
            "usage": {"prompt_tokens": 10, "completion_tokens": 15, "total_tokens": 25},
        })
        response = self.backend.to_chat_response(upstream, TARGET)
        assert response.choices[0].message.role == "assistant"
        assert response.choices[0].message.content == "Hi!"
        assert (response.usage.prompt_tokens, response.usage.completion_tokens, response.usage.total_tokens) == (10, 15, 25)

    def test_no_choices(self):
        upstream = OpenAIChatResponse.model_validate({"choices": [], "usage": {}})
        with pytest.raises(InferenceResponseError, match="no choices"):
            self.backend.to_chat_response(upstream, TARGET)

    def test_endpoint(self):
        assert self.backend.endpoint(TARGET).endswith("/d-1/chat/completions")


class TestAnthropic:
    def setup_method(self):
        self.backend = AnthropicBackend(Mock(), default_max_tokens=512)

    def test_leading_system_messages_are_extracted(self):
        request = chat(
            {"role": "system", "content": "Be brief."},
            {"role": "system", "content": "Answer in English."},
            {"role": "user", "content": "Hello"},
            {"role": "assistant", "content": "Hi"},
            {"role": "system", "content": "Late instruction"},
        )
        body = dump(self.backend.build_request(request, TARGET))

        assert body["anthropic_version"] == "bedrock-2023-05-31"
        assert body["system"] == "Be brief.\n\nAnswer in English."
        assert body["max_tokens"] == 512
        assert [m["role"] for m in body["messages"]] == ["user", "assistant", "user"]
        assert body["messages"][2]["content"] == "Late instruction"

    def test_without_system_message(self):
        body = dump(self.backend.build_request(chat({"role": "user", "content": "Hello"}, max_tokens=50), TARGET))
        assert "system" not in body
        assert body["max_tokens"] == 50

    def test_image_becomes_base64_block(self):
        body = dump(self.backend.build_request(chat(IMAGE_MESSAGE), TARGET))
        blocks = body["messages"][0]["content"]
        assert blocks[0] == {"type": "text", "text": "What is this?"}
        assert blocks[1] == {
            "type": "image",
            "source": {"type": "base64", "media_type": "image/jpeg", "data": "QUJD"},
        }

    def test_response_totals_usage(self):
        upstream = AnthropicResponse.model_validate({
            "id": "msg_01",
            "type": "message",
            "role": "assistant",
            "content": [
                {"type": "text", "text": "Hello "},
                {"type": "tool_use", "id": "t1", "name": "x", "input": {}},
                {"type": "text", "text": "there"},
            ],
            "model": "claude-3-sonnet-20240229",
            "stop_reason": "end_turn",
            "usage": {"input_tokens": 25, "output_tokens": 18},
        })
        response = self.backend.to_chat_response(upstream, TARGET)
        assert response.choices[0].message.content == "Hello there"
        assert response.choices[0].message.role == "assistant"
        assert response.choices[0].finish_reason == "end_turn"
        assert response.usage.total_tokens == 43


class TestGemini:
    def setup_method(self):
        self.backend = GeminiBackend(Mock())
        self.target = InferenceTarget("team-alpha", "d-1", "https://host/d-1", model_name="gemini-1.5-flash")

    def test_endpoint_uses_model_name(self):
        assert self.backend.endpoint(self.target) == "https://host/d-1/models/gemini-1.5-flash:generateContent"

    def test_request_roles_and_generation_config(self):
        request = chat(
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "Tell me a story"},
            {"role": "assistant", "content": "Once"},
            max_tokens=500,
            temperature=0.8,
        )
        body = dump(self.backend.build_request(request, self.target))

        assert body["system_instruction"] == {"parts": [{"text": "Be brief."}]}
        assert [c["role"] for c in body["contents"]] == ["user", "model"]
        assert body["generation_config"] == {"maxOutputTokens": 500, "temperature": 0.8}

    def test_generation_config_omitted_when_unset(self):
        body = dump(self.backend.build_request(chat({"role": "user", "content": "Hi"}), self.target))
        assert "generation_config" not in body
        assert "system_instruction" not in body

    def test_images(self):
        message = {
            "role": "user",
            "content": [
                {"type": "image_url", "image_url": {"url": "data:image/jpeg;base64,QUJD"}},
                {"type": "image_url", "image_url": {"url": "https://example.com/cat.webp"}},
            ],
        }
        parts = dump(self.backend.build_request(chat(message), self.target))["contents"][0]["parts"]
        assert parts[0] == {"inline_data": {"mime_type": "image/jpeg", "data": "QUJD"}}
        assert parts[1]["file_data"]["file_uri"] == "https://example.com/cat.webp"

    def test_response_mapping(self):
        upstream = GeminiResponse.model_validate({
            "candidates": [{
                "content": {"parts": [{"text": "Once upon "}, {"text": "a time"}], "role": "model"},
                "finishReason": "STOP",
            }],
            "usageMetadata": {"promptTokenCount": 5, "candidatesTokenCount": 10, "totalTokenCount": 15},
        })
        response = self.backend.to_chat_response(upstream, self.target)
        assert response.choices[0].message.content == "Once upon a time"
        assert response.choices[0].message.role == "assistant"
        assert response.choices[0].finish_reason == "STOP"
        assert (response.usage.prompt_tokens, response.usage.completion_tokens, response.usage.total_tokens) == (5, 10, 15)

    def test_no_candidates(self):
        with pytest.raises(InferenceResponseError):
            self.backend.to_chat_response(GeminiResponse.model_validate({"candidates": []}), self.target)


class TestOrchestration:
    def setup_method(self):
        self.backend = OrchestrationBackend(Mock(), default_model_name="gpt-4o-mini")

    def test_request_nests_model_params(self):
        body = dump(self.backend.build_request(
            chat({"role": "user", "content": "How are you?"}, max_tokens=300, temperature=0.7),
            InferenceTarget("t", "d", "https://host/d"),
        ))
        modules = body["orchestration_config"]["module_configurations"]
        assert modules["templating_module_config"]["template"] == [{"role": "user", "content": "How are you?"}]
        assert modules["llm_module_config"] == {
            "model_name": "gpt-4o-mini",
            "model_version": "latest",
            "model_params": {"max_tokens": 300, "temperature": 0.7},
        }
        assert body["input_params"] == {}

    def test_reported_model_wins(self):
        body = dump(self.backend.build_request(chat({"role": "user", "content": "x"}), TARGET))
        assert body["orchestration_config"]["module_configurations"]["llm_module_config"]["model_name"] == "some-model"

    def test_response_usage_is_zero(self):
        upstream = OrchestrationResponse.model_validate({
            "request_id": "req-1",
            "orchestration_result": {
                "choices": [{"index": 0, "message": {"role": "assistant", "content": "Fine"}, "finish_reason": "stop"}],
                "usage": {"prompt_tokens": 3, "completion_tokens": 4, "total_tokens": 7},
            },
        })
        response = self.backend.to_chat_response(upstream, TARGET)
        assert response.choices[0].message.content == "Fine"
        assert response.usage.total_tokens == 0

    def test_no_choices(self):
        upstream = OrchestrationResponse.model_validate({"orchestration_result": {"choices": []}})
        with pytest.raises(InferenceResponseError, match="no choices"):
            self.backend.to_chat_response(upstream, TARGET)
