import traceback
from typing import Dict, Any, Optional


# Define common HTTP status codes to avoid dependency on FastAPI
HTTP_400_BAD_REQUEST = 400
HTTP_500_INTERNAL_SERVER_ERROR = 500

# Context keys that must never leave the process
SENSITIVE_KEYS = ("secret", "key", "signature", "password", "token")


class ImagorUrlError(Exception):
    """Base exception class for the imagor URL builder.

    This provides a standardized way to handle errors with detailed context.
    """
    def __init__(self,
                 message: str,
                 error_code: str = "internal_error",
                 http_status: int = HTTP_500_INTERNAL_SERVER_ERROR,
                 context: Optional[Dict[str, Any]] = None,
                 original_exception: Optional[Exception] = None):
        self.message = message
        self.error_code = error_code
        self.http_status = http_status
        self.context = context or {}
        self.original_exception = original_exception
        self.traceback = traceback.format_exc() if original_exception else None

        # Add original exception details to context if available
        if original_exception:
            self.context.update({
                "original_error_type": type(original_exception).__name__,
                "original_error": str(original_exception)
            })

        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the error to a dictionary for API responses."""
        result = {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
        }

        safe_context = {}
        for key, value in self.context.items():
            if key not in SENSITIVE_KEYS and value is not None:
                safe_context[key] = value

        if safe_context:
            result["details"] = safe_context

        return result


class ConfigurationError(ImagorUrlError):
    """Error for an unusable builder configuration (e.g. no server address)."""
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="configuration_error",
            http_status=HTTP_500_INTERNAL_SERVER_ERROR,
            context=context
        )


class SigningPreconditionError(ImagorUrlError):
    """Error when a URL can neither be signed nor marked unsafe."""
    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=(
                "Signing key is missing for ImagorUrlBuilder. "
                "Either configure a secret or call unsafe() before get_url()."
            ),
            error_code="signing_precondition_error",
            http_status=HTTP_400_BAD_REQUEST,
            context=context
        )


class SigningUnavailableError(ImagorUrlError):
    """Error when the runtime offers no usable HMAC-SHA1 primitive."""
    def __init__(self, backend: str, context: Optional[Dict[str, Any]] = None, original_exception: Optional[Exception] = None):
        context = context or {}
        context["backend"] = backend
        super().__init__(
            message=f"Crypto functionality not available for signing backend '{backend}'",
            error_code="signing_unavailable",
            http_status=HTTP_500_INTERNAL_SERVER_ERROR,
            context=context,
            original_exception=original_exception
        )


class ValidationError(ImagorUrlError):
    """Error for invalid builder arguments."""
    def __init__(self, message: str, field: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        if field:
            context = context or {}
            context["field"] = field
            message = f"Invalid value for '{field}': {message}"

        super().__init__(
            message=message,
            error_code="validation_error",
            http_status=HTTP_400_BAD_REQUEST,
            context=context
        )


def get_error_response(error: Exception) -> Dict[str, Any]:
    """Convert any exception to a standardized API response.

    Args:
        error: The exception to convert

    Returns:
        A dictionary with error details suitable for API responses
    """
    if isinstance(error, ImagorUrlError):
        return error.to_dict()

    return ImagorUrlError(
        message=str(error),
        error_code="internal_error",
        original_exception=error
    ).to_dict()
