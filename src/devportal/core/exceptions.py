"""
Custom Exceptions for the AI Core gateway
==========================================

Structured error handling allows handlers to map failures to responses
based on type rather than parsing strings.

Error Codes:
- 1xxx: Client errors (validation, missing fields)
- 2xxx: Security errors (authentication, access)
- 3xxx: Resource errors (deployment missing, upstream unavailable)
- 4xxx: Execution errors (upstream rejected the call)
- 5xxx: System errors (configuration, internal)
"""

from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Structured error codes for user-friendly messages"""

    # 1xxx: Client Errors
    VALIDATION_ERROR = 1001
    MUTUALLY_EXCLUSIVE_FIELDS = 1002
    MISSING_FIELD = 1003
    INVALID_PERIOD = 1004

    # 2xxx: Security Errors
    UNAUTHORIZED = 2001
    USER_NOT_FOUND = 2002
    NOT_ASSIGNED_TO_TEAM = 2003
    FORBIDDEN = 2004

    # 3xxx: Resource Errors
    NOT_FOUND = 3001
    DEPLOYMENT_NOT_FOUND = 3002
    DEPLOYMENT_NOT_READY = 3003
    BACKEND_UNAVAILABLE = 3004

    # 4xxx: Execution Errors
    UPSTREAM_ERROR = 4001
    TOKEN_ACQUISITION_FAILED = 4002
    INVALID_UPSTREAM_RESPONSE = 4003

    # 5xxx: System Errors
    INTERNAL_ERROR = 5001
    CONFIGURATION_ERROR = 5003


class DevPortalError(Exception):
    """Base exception for all gateway errors"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for structured logging"""
        return {
            'error_type': self.__class__.__name__,
            'error_code': int(self.error_code),
            'message': self.message,
            'details': self.details
        }

    def user_message(self) -> str:
        """Get user-friendly error message based on error code"""
        code_messages = {
            ErrorCode.VALIDATION_ERROR: "Invalid input provided",
            ErrorCode.UNAUTHORIZED: "Authentication required",
            ErrorCode.USER_NOT_FOUND: "User not found",
            ErrorCode.NOT_ASSIGNED_TO_TEAM: "User is not assigned to a team",
            ErrorCode.FORBIDDEN: "Access forbidden",
            ErrorCode.NOT_FOUND: "Resource not found",
            ErrorCode.BACKEND_UNAVAILABLE: "AI Core backend unavailable",
            ErrorCode.INTERNAL_ERROR: "Internal server error",
            ErrorCode.CONFIGURATION_ERROR: "Configuration error",
        }
        return f"Error {self.error_code}: {code_messages.get(self.error_code, self.message)}"


# =============================================================================
# CONFIGURATION
# =============================================================================


class ConfigurationError(DevPortalError):
    """Raised when AI Core credentials are absent or malformed"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


class CredentialsNotConfiguredError(ConfigurationError):
    """Raised when no AI Core credentials are configured at all"""

    def __init__(self, message: str = "No AI Core credentials configured"):
        super().__init__(message)


class CredentialsInvalidError(ConfigurationError):
    """Raised when the credentials configuration cannot be parsed"""


class CredentialsNotFoundError(ConfigurationError):
    """Raised when a team has no credentials record"""

    def __init__(self, team: str):
        super().__init__(f"no credentials found for team: {team}", {'team': team})
        self.team = team


# =============================================================================
# AUTHORIZATION
# =============================================================================


class AuthorizationError(DevPortalError):
    """Raised when the caller cannot be identified or lacks a grant"""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        error_code: ErrorCode = ErrorCode.UNAUTHORIZED,
    ):
        super().__init__(message, error_code, details)


class AuthenticationRequiredError(AuthorizationError):
    """Raised when no caller identity is available"""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class UserNotFoundError(AuthorizationError):
    """Raised when the acting user does not exist"""

    def __init__(self, identity: str):
        super().__init__(
            f"user not found: {identity}", {'identity': identity}, ErrorCode.USER_NOT_FOUND
        )
        self.identity = identity


class UserNotAssignedToTeamError(AuthorizationError):
    """Raised when the acting user has no team or role grant"""

    def __init__(self, message: str = "User is not assigned to any team"):
        super().__init__(message, error_code=ErrorCode.NOT_ASSIGNED_TO_TEAM)


class InstanceAccessDeniedError(AuthorizationError):
    """Raised when the caller asks for an instance outside its access set"""

    def __init__(self, team: str):
        super().__init__(
            f"user does not have access to AI Core instance: {team}",
            {'team': team},
            ErrorCode.FORBIDDEN,
        )
        self.team = team


# =============================================================================
# UPSTREAM
# =============================================================================


class UpstreamError(DevPortalError):
    """Raised when AI Core or a model backend answers with a failure"""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
        error_code: ErrorCode = ErrorCode.UPSTREAM_ERROR,
    ):
        details: dict[str, Any] = {}
        if status_code is not None:
            details['status_code'] = status_code
        if body:
            details['body'] = body
        if status_code is not None:
            message = f"{message} (status {status_code})"
            if body:
                message = f"{message}: {body}"
        super().__init__(message, error_code, details)
        self.status_code = status_code
        self.body = body


class TokenAcquisitionError(UpstreamError):
    """Raised when the OAuth token endpoint fails or returns a malformed body"""

    def __init__(self, team: str, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(
            f"failed to acquire token for {team}: {message}",
            status_code,
            body,
            ErrorCode.TOKEN_ACQUISITION_FAILED,
        )
        self.team = team


class InferenceResponseError(UpstreamError):
    """Raised when a backend answers 2xx with a body that cannot be translated"""

    def __init__(self, message: str, body: str | None = None):
        super().__init__(message, None, body, ErrorCode.INVALID_UPSTREAM_RESPONSE)


# =============================================================================
# NOT FOUND / RESOURCE STATE
# =============================================================================


class NotFoundError(DevPortalError):
    """Raised when a resource is absent or outside the caller's access set"""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        error_code: ErrorCode = ErrorCode.NOT_FOUND,
    ):
        super().__init__(message, error_code, details)


class DeploymentNotFoundError(NotFoundError):
    """Raised when a deployment does not exist or is not accessible"""

    def __init__(self, deployment_id: str, message: str | None = None):
        super().__init__(
            message or f"deployment {deployment_id} not found",
            {'deployment_id': deployment_id},
            ErrorCode.DEPLOYMENT_NOT_FOUND,
        )
        self.deployment_id = deployment_id


class DeploymentURLUnavailableError(DevPortalError):
    """Raised when a deployment has no inference URL yet"""

    def __init__(self, deployment_id: str):
        super().__init__(
            f"deployment URL not available for deployment {deployment_id}; "
            "it may still be provisioning",
            ErrorCode.DEPLOYMENT_NOT_READY,
            {'deployment_id': deployment_id},
        )
        self.deployment_id = deployment_id


# =============================================================================
# VALIDATION
# =============================================================================


class ValidationError(DevPortalError):
    """Raised when input validation fails"""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_ERROR,
    ):
        super().__init__(message, error_code, details)


class MutuallyExclusiveFieldsError(ValidationError):
    """Raised when two fields that exclude each other are both set"""

    def __init__(self, first: str, second: str):
        super().__init__(
            f"{first} and {second} cannot both be provided",
            {'fields': [first, second]},
            ErrorCode.MUTUALLY_EXCLUSIVE_FIELDS,
        )


class MissingFieldError(ValidationError):
    """Raised when a required field (or one of a set of fields) is missing"""

    def __init__(self, message: str, fields: list[str] | None = None):
        super().__init__(message, {'fields': fields or []}, ErrorCode.MISSING_FIELD)


class InvalidPeriodError(ValidationError):
    """Raised when a reporting period is not of the form '<days>d'"""

    def __init__(self, value: str):
        super().__init__(
            f"invalid period format {value!r}: period must be in format "
            "'<number>d' (e.g., '30d', '90d', '365d')",
            {'period': value},
            ErrorCode.INVALID_PERIOD,
        )
