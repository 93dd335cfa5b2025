"""
ContextForge - Core Error Types

Defines the exception hierarchy for the generation and optimization engine.
All exceptions inherit from ContextForgeError for consistent error handling.

Errors fall into two families that callers must be able to tell apart:
- configuration problems (unknown model, unknown provider, missing credentials)
  which the caller has to fix before retrying
- transient problems (network failures, timeouts, non-2xx responses,
  malformed provider payloads) which may succeed on a later retry
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """
    Standard error codes for tool responses.

    Used for structured error handling and client-side error recovery.
    """

    # Input validation errors
    INVALID_INPUT = "INVALID_INPUT"
    MISSING_PARAMETER = "MISSING_PARAMETER"

    # Configuration errors
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    UNSUPPORTED_MODEL = "UNSUPPORTED_MODEL"
    UNSUPPORTED_PROVIDER = "UNSUPPORTED_PROVIDER"
    PROVIDER_NOT_INITIALIZED = "PROVIDER_NOT_INITIALIZED"
    DEPENDENCY_MISSING = "DEPENDENCY_MISSING"
    NOT_FOUND = "NOT_FOUND"

    # Transport errors
    PROVIDER_ERROR = "PROVIDER_ERROR"
    PROVIDER_TIMEOUT = "PROVIDER_TIMEOUT"
    RATE_LIMITED = "RATE_LIMITED"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    CUSTOM_ENDPOINT_ERROR = "CUSTOM_ENDPOINT_ERROR"

    # Storage errors
    STORAGE_ERROR = "STORAGE_ERROR"

    # Internal errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorCategory(str, Enum):
    """Broad classification used by callers to decide between fixing and retrying."""

    CONFIGURATION = "configuration"
    TRANSIENT = "transient"
    INVALID_INPUT = "invalid_input"
    INTERNAL = "internal"


class ContextForgeError(Exception):
    """Base exception for all ContextForge errors."""

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR
    category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        status_code: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        """Whether retrying the same call later could succeed."""
        return self.category == ErrorCategory.TRANSIENT

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "error_code": self.error_code.value,
            "category": self.category.value,
            "retryable": self.retryable,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(ContextForgeError):
    """Raised when configuration is invalid or missing."""

    error_code = ErrorCode.CONFIGURATION_ERROR
    category = ErrorCategory.CONFIGURATION

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details, status_code=500)


class UnsupportedModelError(ConfigurationError):
    """Raised when a model identifier is not present in the registry."""

    error_code = ErrorCode.UNSUPPORTED_MODEL

    def __init__(self, model_id: str, details: dict[str, Any] | None = None):
        message = f"Unsupported model: {model_id}"
        super().__init__(message, {"model": model_id, **(details or {})})
        self.model_id = model_id
        self.status_code = 400


class UnsupportedProviderError(ConfigurationError):
    """Raised when a provider tag has no registered adapter."""

    error_code = ErrorCode.UNSUPPORTED_PROVIDER

    def __init__(self, provider: str, supported: list[str] | None = None):
        message = f"Unsupported provider: {provider}"
        details: dict[str, Any] = {"provider": provider}
        if supported:
            message += f". Supported providers: {', '.join(supported)}"
            details["supported"] = supported
        super().__init__(message, details)
        self.provider = provider
        self.status_code = 400


class ProviderNotInitializedError(ConfigurationError):
    """Raised when the caller has no credential for the requested provider."""

    error_code = ErrorCode.PROVIDER_NOT_INITIALIZED

    def __init__(self, provider: str):
        message = f"Provider {provider} is not initialized. Add an API key for this provider."
        super().__init__(message, {"provider": provider})
        self.provider = provider
        self.status_code = 412


class DependencyError(ConfigurationError):
    """Raised when a required dependency is missing or fails to load."""

    error_code = ErrorCode.DEPENDENCY_MISSING

    def __init__(
        self,
        package: str,
        feature: str | None = None,
        install_hint: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        if feature:
            message = f"Required dependency '{package}' is missing for {feature}"
        else:
            message = f"Required dependency '{package}' is missing"

        if install_hint:
            message += f". Install with: {install_hint}"

        error_details = details or {}
        error_details.update(
            {
                "package": package,
                "feature": feature,
                "install_hint": install_hint,
            }
        )

        super().__init__(message, error_details)


class NotFoundError(ContextForgeError):
    """Raised when a requested resource is not found."""

    error_code = ErrorCode.NOT_FOUND
    category = ErrorCategory.CONFIGURATION

    def __init__(self, resource: str, identifier: str):
        message = f"{resource} not found: {identifier}"
        super().__init__(message, {"resource": resource, "id": identifier}, status_code=404)


class ValidationError(ContextForgeError):
    """Raised when input validation fails."""

    error_code = ErrorCode.INVALID_INPUT
    category = ErrorCategory.INVALID_INPUT

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details, status_code=400)


class ProviderError(ContextForgeError):
    """Transport failure while talking to a provider (network, non-2xx, SDK error)."""

    error_code = ErrorCode.PROVIDER_ERROR
    category = ErrorCategory.TRANSIENT

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details, status_code=502)


class ProviderTimeoutError(ProviderError):
    """Raised when a provider call times out."""

    error_code = ErrorCode.PROVIDER_TIMEOUT

    def __init__(self, provider: str, timeout: float):
        message = f"Provider {provider} timed out after {timeout}s"
        super().__init__(message, {"provider": provider, "timeout": timeout})
        self.status_code = 504


class ProviderRateLimitError(ProviderError):
    """Raised when a provider rate limit is hit."""

    error_code = ErrorCode.RATE_LIMITED

    def __init__(self, provider: str, retry_after: int | None = None):
        message = f"Provider {provider} rate limit exceeded"
        details: dict[str, Any] = {"provider": provider}
        if retry_after:
            details["retry_after"] = retry_after
        super().__init__(message, details)
        self.status_code = 429


class MalformedProviderResponseError(ProviderError):
    """Raised when a provider returns a payload the adapter cannot parse."""

    error_code = ErrorCode.MALFORMED_RESPONSE

    def __init__(self, provider: str, reason: str, details: dict[str, Any] | None = None):
        message = f"Malformed response from {provider}: {reason}"
        super().__init__(message, {"provider": provider, "reason": reason, **(details or {})})


class CustomEndpointError(ProviderError):
    """Raised when a custom endpoint answers with a non-2xx status."""

    error_code = ErrorCode.CUSTOM_ENDPOINT_ERROR

    def __init__(self, endpoint_id: str, status: int, reason: str = ""):
        message = f"Custom endpoint error: {status} {reason}".rstrip()
        super().__init__(message, {"endpoint": endpoint_id, "status": status, "reason": reason})
        self.endpoint_id = endpoint_id
        self.status = status


class StorageError(ContextForgeError):
    """Raised when the optimization store fails."""

    error_code = ErrorCode.STORAGE_ERROR
    category = ErrorCategory.TRANSIENT

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details, status_code=500)


def make_error_response(
    error_code: ErrorCode,
    message: str,
    context: dict[str, Any] | None = None,
    category: ErrorCategory | None = None,
) -> dict[str, Any]:
    """
    Create a standardized error response for tools.

    Args:
        error_code: Standard error code
        message: Human-readable error message
        context: Additional context/details
        category: Error category (derived from the code when omitted)

    Returns:
        Standardized error response dictionary

    Example:
        >>> make_error_response(ErrorCode.UNSUPPORTED_MODEL, "Unsupported model: foo")
        {
            "success": False,
            "error_code": "UNSUPPORTED_MODEL",
            "category": "configuration",
            "retryable": False,
            "message": "Unsupported model: foo",
            "details": {}
        }
    """
    resolved = category or _CODE_CATEGORIES.get(error_code, ErrorCategory.INTERNAL)
    return {
        "success": False,
        "error_code": error_code.value,
        "category": resolved.value,
        "retryable": resolved == ErrorCategory.TRANSIENT,
        "message": message,
        "details": context or {},
    }


def error_response_from_exception(error: Exception) -> dict[str, Any]:
    """Build a standardized error response from any exception."""
    if isinstance(error, ContextForgeError):
        return make_error_response(error.error_code, error.message, error.details, error.category)
    return make_error_response(ErrorCode.INTERNAL_ERROR, str(error) or error.__class__.__name__)


def is_retryable_error(error: Exception) -> bool:
    """
    Check if an error is transient and should be retried.

    Args:
        error: Exception to check

    Returns:
        True if error is retryable (transient)
    """
    if isinstance(error, ContextForgeError):
        return error.retryable
    return isinstance(error, TimeoutError | ConnectionError)


def extract_error_code(error: Exception) -> ErrorCode:
    """
    Extract appropriate ErrorCode from an exception.

    Args:
        error: Exception to categorize

    Returns:
        Appropriate ErrorCode for the exception
    """
    if isinstance(error, ContextForgeError):
        return error.error_code
    if isinstance(error, TimeoutError):
        return ErrorCode.PROVIDER_TIMEOUT
    return ErrorCode.INTERNAL_ERROR


_CODE_CATEGORIES: dict[ErrorCode, ErrorCategory] = {
    ErrorCode.INVALID_INPUT: ErrorCategory.INVALID_INPUT,
    ErrorCode.MISSING_PARAMETER: ErrorCategory.INVALID_INPUT,
    ErrorCode.CONFIGURATION_ERROR: ErrorCategory.CONFIGURATION,
    ErrorCode.UNSUPPORTED_MODEL: ErrorCategory.CONFIGURATION,
    ErrorCode.UNSUPPORTED_PROVIDER: ErrorCategory.CONFIGURATION,
    ErrorCode.PROVIDER_NOT_INITIALIZED: ErrorCategory.CONFIGURATION,
    ErrorCode.DEPENDENCY_MISSING: ErrorCategory.CONFIGURATION,
    ErrorCode.NOT_FOUND: ErrorCategory.CONFIGURATION,
    ErrorCode.PROVIDER_ERROR: ErrorCategory.TRANSIENT,
    ErrorCode.PROVIDER_TIMEOUT: ErrorCategory.TRANSIENT,
    ErrorCode.RATE_LIMITED: ErrorCategory.TRANSIENT,
    ErrorCode.MALFORMED_RESPONSE: ErrorCategory.TRANSIENT,
    ErrorCode.CUSTOM_ENDPOINT_ERROR: ErrorCategory.TRANSIENT,
    ErrorCode.STORAGE_ERROR: ErrorCategory.TRANSIENT,
    ErrorCode.INTERNAL_ERROR: ErrorCategory.INTERNAL,
}


def error_category(error: Exception) -> ErrorCategory:
    """
    Classify an exception as a configuration, transient, input or internal problem.

    Args:
        error: Exception to classify

    Returns:
        ErrorCategory for the exception
    """
    if isinstance(error, ContextForgeError):
        return error.category
    if isinstance(error, TimeoutError | ConnectionError):
        return ErrorCategory.TRANSIENT
    return ErrorCategory.INTERNAL
