"""
Inference Backends - adapters for the AI Core serving protocols
================================================================

A deployment speaks one of four wire protocols. ``detect_backend``
picks it from the scenario and the backend model name; each adapter
translates the canonical chat request into its protocol's request
schema and the protocol's response back into ``ChatResponse``.
"""

import mimetypes
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Literal, Union
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from devportal.core.exceptions import InferenceResponseError
from devportal.core.types import BackendKind

from .client import AICoreClient
from .models import (
    ChatChoice,
    ChatMessage,
    ChatResponse,
    ChatResponseMessage,
    ImagePart,
    InferenceRequest,
    TextPart,
    Usage,
)

ORCHESTRATION_SCENARIO = "orchestration"
ANTHROPIC_VERSION = "bedrock-2023-05-31"
DEFAULT_IMAGE_MIME = "image/png"

_DATA_URL = re.compile(r"data:(?P<mime>[^;,]+);base64,(?P<data>.*)", re.DOTALL)


def detect_backend(scenario_id: str | None, model_name: str | None) -> BackendKind:
    """
    Select the wire protocol for a deployment.

    The orchestration scenario wins regardless of model; otherwise the
    backend model name decides, defaulting to the OpenAI-compatible API.
    """
    if scenario_id == ORCHESTRATION_SCENARIO:
        return BackendKind.ORCHESTRATION
    name = (model_name or "").lower()
    if "gemini" in name:
        return BackendKind.GEMINI
    if "claude" in name or "anthropic" in name:
        return BackendKind.ANTHROPIC
    return BackendKind.OPENAI


def parse_data_url(url: str) -> tuple[str, str] | None:
    """Split ``data:<mime>;base64,<data>`` into (mime, data); None otherwise."""
    match = _DATA_URL.fullmatch(url)
    if match is None:
        return None
    return match.group("mime"), match.group("data")


def guess_image_mime(url: str) -> str:
    mime, _ = mimetypes.guess_type(urlparse(url).path)
    return mime or DEFAULT_IMAGE_MIME


@dataclass(frozen=True)
class InferenceTarget:
    """Where and how to send one inference call"""
    team: str
    deployment_id: str
    deployment_url: str
    model_name: str | None = None

    def url(self, path: str) -> str:
        return f"{self.deployment_url.rstrip('/')}{path}"


class _Wire(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore')


class InferenceBackend(ABC):
    """Base class for protocol adapters"""

    kind: ClassVar[BackendKind]
    response_model: ClassVar[type[BaseModel]]

    def __init__(self, client: AICoreClient) -> None:
        self.client = client

    @abstractmethod
    def endpoint(self, target: InferenceTarget) -> str:
        """Absolute URL the request is POSTed to"""
        pass

    @abstractmethod
    def build_request(self, request: InferenceRequest, target: InferenceTarget) -> BaseModel:
        """Translate the canonical request into the protocol's request body"""
        pass

    @abstractmethod
    def to_chat_response(self, upstream: Any, target: InferenceTarget) -> ChatResponse:
        """Translate a decoded protocol response into a ChatResponse"""
        pass

    async def infer(self, request: InferenceRequest, target: InferenceTarget) -> ChatResponse:
        body = self.build_request(request, target).model_dump(mode="json", by_alias=True, exclude_none=True)
        payload = await self.client.post_json(
            target.team, self.endpoint(target), body, operation=f"inference_{self.kind.value}"
        )
        try:
            upstream = self.response_model.model_validate(payload)
        except PydanticValidationError as e:
            raise InferenceResponseError(
                f"{self.kind.value} backend returned an unexpected response: {e.error_count()} error(s)",
                str(payload)[:500],
            ) from e
        return self.to_chat_response(upstream, target)


# =============================================================================
# OPENAI-COMPATIBLE
# =============================================================================


class OpenAIChatRequest(_Wire):
    messages: list[ChatMessage]
    max_tokens: int | None = None
    temperature: float | None = None


class OpenAIMessage(_Wire):
    role: str | None = None
    content: str | None = None


class OpenAIChoice(_Wire):
    index: int = 0
    message: OpenAIMessage = Field(default_factory=OpenAIMessage)
    finish_reason: str | None = None


class OpenAIUsage(_Wire):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class OpenAIChatResponse(_Wire):
    id: str | None = None
    model: str | None = None
    choices: list[OpenAIChoice] = Field(default_factory=list)
    usage: OpenAIUsage = Field(default_factory=OpenAIUsage)


class OpenAIBackend(InferenceBackend):
    """``/chat/completions``; content and usage pass through unchanged"""

    kind = BackendKind.OPENAI
    response_model = OpenAIChatResponse

    def endpoint(self, target: InferenceTarget) -> str:
        return target.url("/chat/completions")

    def build_request(self, request: InferenceRequest, target: InferenceTarget) -> OpenAIChatRequest:
        return OpenAIChatRequest(
            messages=request.messages,
            max_tokens=request.max_tokens,
            temperature=request.temperature,
        )

    def to_chat_response(self, upstream: OpenAIChatResponse, target: InferenceTarget) -> ChatResponse:
        if not upstream.choices:
            raise InferenceResponseError("openai backend returned no choices")
        return ChatResponse(
            id=upstream.id,
            model=upstream.model or target.model_name,
            choices=[
                ChatChoice(
                    index=c.index,
                    message=ChatResponseMessage(content=c.message.content or ""),
                    finish_reason=c.finish_reason,
                )
                for c in upstream.choices
            ],
            usage=Usage(**upstream.usage.model_dump()),
        )


# =============================================================================
# ANTHROPIC (Bedrock messages API)
# =============================================================================


class AnthropicTextBlock(_Wire):
    type: Literal["text"] = "text"
    text: str


class AnthropicImageSource(_Wire):
    type: Literal["base64", "url"]
    media_type: str | None = None
    data: str | None = None
    url: str | None = None


class AnthropicImageBlock(_Wire):
    type: Literal["image"] = "image"
    source: AnthropicImageSource


AnthropicBlock = Union[AnthropicTextBlock, AnthropicImageBlock]


class AnthropicMessage(_Wire):
    role: Literal["user", "assistant"]
    content: str | list[AnthropicBlock]


class AnthropicRequest(_Wire):
    anthropic_version: str = ANTHROPIC_VERSION
    max_tokens: int
    system: str | None = None
    messages: list[AnthropicMessage]
    temperature: float | None = None


class AnthropicResponseBlock(_Wire):
    type: str
    text: str | None = None


class AnthropicUsage(_Wire):
    input_tokens: int = 0
    output_tokens: int = 0


class AnthropicResponse(_Wire):
    id: str | None = None
    model: str | None = None
    content: list[AnthropicResponseBlock] = Field(default_factory=list)
    stop_reason: str | None = None
    usage: AnthropicUsage = Field(default_factory=AnthropicUsage)


class AnthropicBackend(InferenceBackend):
    """``/invoke`` with the Anthropic messages schema"""

    kind = BackendKind.ANTHROPIC
    response_model = AnthropicResponse

    def __init__(self, client: AICoreClient, default_max_tokens: int = 1024) -> None:
        super().__init__(client)
        self.default_max_tokens = default_max_tokens

    def endpoint(self, target: InferenceTarget) -> str:
        return target.url("/invoke")

    @staticmethod
    def _blocks(message: ChatMessage) -> str | list[AnthropicBlock]:
        if isinstance(message.content, str):
            return message.content
        blocks: list[AnthropicBlock] = []
        for part in message.content:
            if isinstance(part, TextPart):
                blocks.append(AnthropicTextBlock(text=part.text))
                continue
            url = part.image_url.url
            inline = parse_data_url(url)
            if inline is not None:
                source = AnthropicImageSource(type="base64", media_type=inline[0], data=inline[1])
            else:
                source = AnthropicImageSource(type="url", url=url)
            blocks.append(AnthropicImageBlock(source=source))
        return blocks

    def build_request(self, request: InferenceRequest, target: InferenceTarget) -> AnthropicRequest:
        messages = list(request.messages)

        # Leading system turns become the top-level system prompt
        system_parts: list[str] = []
        while messages and messages[0].role == "system":
            system_parts.append(messages.pop(0).text())

        return AnthropicRequest(
            max_tokens=request.max_tokens or self.default_max_tokens,
            system="\n\n".join(system_parts) if system_parts else None,
            messages=[
                AnthropicMessage(
                    role="assistant" if m.role == "assistant" else "user",
                    content=self._blocks(m),
                )
                for m in messages
            ],
            temperature=request.temperature,
        )

    def to_chat_response(self, upstream: AnthropicResponse, target: InferenceTarget) -> ChatResponse:
        text = "".join(b.text or "" for b in upstream.content if b.type == "text")
        usage = upstream.usage
        return ChatResponse(
            id=upstream.id,
            model=upstream.model or target.model_name,
            choices=[
                ChatChoice(
                    message=ChatResponseMessage(content=text),
                    finish_reason=upstream.stop_reason,
                )
            ],
            usage=Usage(
                prompt_tokens=usage.input_tokens,
                completion_tokens=usage.output_tokens,
                total_tokens=usage.input_tokens + usage.output_tokens,
            ),
        )


# =============================================================================
# GEMINI
# =============================================================================


class GeminiInlineData(_Wire):
    mime_type: str
    data: str


class GeminiFileData(_Wire):
    mime_type: str
    file_uri: str


class GeminiPart(_Wire):
    text: str | None = None
    inline_data: GeminiInlineData | None = None
    file_data: GeminiFileData | None = None


class GeminiContent(_Wire):
    role: Literal["user", "model"] | None = None
    parts: list[GeminiPart]


class GeminiGenerationConfig(_Wire):
    max_output_tokens: int | None = Field(None, alias="maxOutputTokens")
    temperature: float | None = None


class GeminiRequest(_Wire):
    contents: list[GeminiContent]
    system_instruction: GeminiContent | None = None
    generation_config: GeminiGenerationConfig | None = None


class _GeminiResponseWire(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='ignore')


class GeminiResponsePart(_GeminiResponseWire):
    text: str | None = None


class GeminiResponseContent(_GeminiResponseWire):
    role: str | None = None
    parts: list[GeminiResponsePart] = Field(default_factory=list)


class GeminiCandidate(_GeminiResponseWire):
    content: GeminiResponseContent = Field(default_factory=GeminiResponseContent)
    finish_reason: str | None = None


class GeminiUsageMetadata(_GeminiResponseWire):
    prompt_token_count: int = 0
    candidates_token_count: int = 0
    total_token_count: int = 0


class GeminiResponse(_GeminiResponseWire):
    candidates: list[GeminiCandidate] = Field(default_factory=list)
    usage_metadata: GeminiUsageMetadata = Field(default_factory=GeminiUsageMetadata)
    model_version: str | None = None


class GeminiBackend(InferenceBackend):
    """``/models/{model}:generateContent``"""

    kind = BackendKind.GEMINI
    response_model = GeminiResponse

    def endpoint(self, target: InferenceTarget) -> str:
        return target.url(f"/models/{target.model_name}:generateContent")

    @staticmethod
    def _parts(message: ChatMessage) -> list[GeminiPart]:
        if isinstance(message.content, str):
            return [GeminiPart(text=message.content)]
        parts: list[GeminiPart] = []
        for part in message.content:
            if isinstance(part, TextPart):
                parts.append(GeminiPart(text=part.text))
            elif isinstance(part, ImagePart):
                url = part.image_url.url
                inline = parse_data_url(url)
                if inline is not None:
                    parts.append(GeminiPart(inline_data=GeminiInlineData(mime_type=inline[0], data=inline[1])))
                else:
                    parts.append(GeminiPart(file_data=GeminiFileData(mime_type=guess_image_mime(url), file_uri=url)))
        return parts

    def build_request(self, request: InferenceRequest, target: InferenceTarget) -> GeminiRequest:
        contents: list[GeminiContent] = []
        system_parts: list[GeminiPart] = []
        for message in request.messages:
            if message.role == "system":
                system_parts.extend(self._parts(message))
                continue
            role = "model" if message.role == "assistant" else "user"
            contents.append(GeminiContent(role=role, parts=self._parts(message)))

        generation_config = None
        if request.max_tokens is not None or request.temperature is not None:
            generation_config = GeminiGenerationConfig(
                max_output_tokens=request.max_tokens,
                temperature=request.temperature,
            )

        return GeminiRequest(
            contents=contents,
            system_instruction=GeminiContent(parts=system_parts) if system_parts else None,
            generation_config=generation_config,
        )

    def to_chat_response(self, upstream: GeminiResponse, target: InferenceTarget) -> ChatResponse:
        if not upstream.candidates:
            raise InferenceResponseError("gemini backend returned no candidates")
        candidate = upstream.candidates[0]
        text = "".join(p.text or "" for p in candidate.content.parts)
        meta = upstream.usage_metadata
        return ChatResponse(
            model=upstream.model_version or target.model_name,
            choices=[
                ChatChoice(
                    message=ChatResponseMessage(content=text),
                    finish_reason=candidate.finish_reason,
                )
            ],
            usage=Usage(
                prompt_tokens=meta.prompt_token_count,
                completion_tokens=meta.candidates_token_count,
                total_tokens=meta.total_token_count,
            ),
        )


# =============================================================================
# ORCHESTRATION
# =============================================================================


class OrchestrationTemplating(_Wire):
    template: list[ChatMessage]


class OrchestrationLLM(_Wire):
    model_name: str
    model_version: str = "latest"
    model_params: dict[str, Any] = Field(default_factory=dict)


class OrchestrationModules(_Wire):
    templating_module_config: OrchestrationTemplating
    llm_module_config: OrchestrationLLM


class OrchestrationConfig(_Wire):
    module_configurations: OrchestrationModules


class OrchestrationRequest(_Wire):
    orchestration_config: OrchestrationConfig
    input_params: dict[str, str] = Field(default_factory=dict)


class OrchestrationResult(_Wire):
    id: str | None = None
    model: str | None = None
    choices: list[OpenAIChoice] = Field(default_factory=list)


class OrchestrationResponse(_Wire):
    request_id: str | None = None
    orchestration_result: OrchestrationResult


class OrchestrationBackend(InferenceBackend):
    """``/completion`` of an orchestration deployment; no token accounting"""

    kind = BackendKind.ORCHESTRATION
    response_model = OrchestrationResponse

    def __init__(self, client: AICoreClient, default_model_name: str = "gpt-4o") -> None:
        super().__init__(client)
        self.default_model_name = default_model_name

    def endpoint(self, target: InferenceTarget) -> str:
        return target.url("/completion")

    def build_request(self, request: InferenceRequest, target: InferenceTarget) -> OrchestrationRequest:
        params: dict[str, Any] = {}
        if request.max_tokens is not None:
            params["max_tokens"] = request.max_tokens
        if request.temperature is not None:
            params["temperature"] = request.temperature

        return OrchestrationRequest(
            orchestration_config=OrchestrationConfig(
                module_configurations=OrchestrationModules(
                    templating_module_config=OrchestrationTemplating(template=request.messages),
                    llm_module_config=OrchestrationLLM(
                        model_name=target.model_name or self.default_model_name,
                        model_params=params,
                    ),
                )
            )
        )

    def to_chat_response(self, upstream: OrchestrationResponse, target: InferenceTarget) -> ChatResponse:
        result = upstream.orchestration_result
        if not result.choices:
            raise InferenceResponseError("orchestration backend returned no choices")
        return ChatResponse(
            id=result.id or upstream.request_id,
            model=result.model or target.model_name or self.default_model_name,
            choices=[
                ChatChoice(
                    index=c.index,
                    message=ChatResponseMessage(content=c.message.content or ""),
                    finish_reason=c.finish_reason,
                )
                for c in result.choices
            ],
            usage=Usage(),
        )
