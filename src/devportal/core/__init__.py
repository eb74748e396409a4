"""Core gateway module: exceptions, logging and shared types."""

from devportal.core.exceptions import (
    AuthenticationRequiredError,
    AuthorizationError,
    ConfigurationError,
    CredentialsInvalidError,
    CredentialsNotConfiguredError,
    CredentialsNotFoundError,
    DeploymentNotFoundError,
    DeploymentURLUnavailableError,
    DevPortalError,
    ErrorCode,
    InferenceResponseError,
    InstanceAccessDeniedError,
    InvalidPeriodError,
    MissingFieldError,
    MutuallyExclusiveFieldsError,
    NotFoundError,
    TokenAcquisitionError,
    UpstreamError,
    UserNotAssignedToTeamError,
    UserNotFoundError,
    ValidationError,
)
from devportal.core.types import BackendKind, DeploymentStatus, TargetStatus, TeamRole

__all__ = [
    "AuthenticationRequiredError",
    "AuthorizationError",
    "BackendKind",
    "ConfigurationError",
    "CredentialsInvalidError",
    "CredentialsNotConfiguredError",
    "CredentialsNotFoundError",
    "DeploymentNotFoundError",
    "DeploymentStatus",
    "DeploymentURLUnavailableError",
    "DevPortalError",
    "ErrorCode",
    "InferenceResponseError",
    "InstanceAccessDeniedError",
    "InvalidPeriodError",
    "MissingFieldError",
    "MutuallyExclusiveFieldsError",
    "NotFoundError",
    "TargetStatus",
    "TeamRole",
    "TokenAcquisitionError",
    "UpstreamError",
    "UserNotAssignedToTeamError",
    "UserNotFoundError",
    "ValidationError",
]
