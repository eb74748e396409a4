"""
AI Core Access & Multi-Model Inference Gateway
===============================================

Per-team instance access, deployment aggregation across independently
credentialed AI Core instances, and chat inference normalized over the
OpenAI, Anthropic, Gemini and orchestration protocols.
"""

from .access import AccessResolver, ManagerStrategy, MemberStrategy, MMMStrategy, RoleStrategy
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
from .configurations import ConfigurationManager
from .credentials import CachedToken, CredentialStore
from .deployments import DeploymentAggregator
from .inference import InferenceGateway, create_backends
from .service import AICoreService, create_aicore_service

__all__ = [
    "AICoreClient",
    "AICoreService",
    "AccessResolver",
    "AnthropicBackend",
    "CachedToken",
    "ConfigurationManager",
    "CredentialStore",
    "DeploymentAggregator",
    "GeminiBackend",
    "InferenceBackend",
    "InferenceGateway",
    "InferenceTarget",
    "MMMStrategy",
    "ManagerStrategy",
    "MemberStrategy",
    "OpenAIBackend",
    "OrchestrationBackend",
    "RoleStrategy",
    "create_aicore_service",
    "create_backends",
    "detect_backend",
]
