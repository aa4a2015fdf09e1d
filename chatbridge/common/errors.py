"""
Error Definitions

Defines custom exception classes used by the proxy for unified error handling,
and renders them in each downstream dialect's error envelope.
"""

from typing import Any, Optional


class AppError(Exception):
    """
    Application Base Exception

    Base class for all custom exceptions, containing error message, type, and code.
    """

    def __init__(
        self,
        message: str,
        error_type: str = "app_error",
        code: str = "internal_error",
        details: Optional[dict[str, Any]] = None,
        status_code: int = 500,
    ):
        """
        Initialize exception

        Args:
            message: Error message
            error_type: Error type
            code: Error code
            details: Extra error details
            status_code: HTTP status code
        """
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.code = code
        self.details = details or {}
        self.status_code = status_code

    def to_dict(self, include_details: bool = True) -> dict[str, Any]:
        """
        Convert to OpenAI-style dictionary format (for API response)

        Args:
            include_details: Whether to attach the details object

        Returns:
            dict: Error information dictionary
        """
        result = {
            "error": {
                "message": self.message,
                "type": self.error_type,
                "code": self.code,
            }
        }
        if include_details and self.details:
            result["error"]["details"] = self.details
        return result

    def to_anthropic_dict(self) -> dict[str, Any]:
        """Anthropic Messages API error envelope"""
        return {
            "type": "error",
            "error": {"type": self.error_type, "message": self.message},
        }

    def to_ollama_dict(self) -> dict[str, Any]:
        """Ollama native error body"""
        return {"error": self.message}


class InvalidRequestError(AppError):
    """
    Invalid Request Error

    Raised when the downstream request is malformed (missing model or messages,
    unparsable body). No upstream call is made.
    """

    def __init__(
        self,
        message: str = "Invalid request",
        code: str = "invalid_request",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            error_type="invalid_request_error",
            code=code,
            details=details,
            status_code=400,
        )


class ConfigurationError(AppError):
    """
    Configuration Error

    Raised when the proxy cannot authenticate upstream because no API key is configured.
    """

    def __init__(
        self,
        message: str = "API key not configured",
        code: str = "api_key_not_configured",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            error_type="authentication_error",
            code=code,
            details=details,
            status_code=401,
        )


class UpstreamError(AppError):
    """
    Upstream Service Error

    Raised when the backend returns a non-2xx status or cannot be reached.
    The upstream status is relayed; the upstream body is kept in details.
    """

    def __init__(
        self,
        message: str = "Upstream service error",
        code: str = "upstream_error",
        details: Optional[dict[str, Any]] = None,
        status_code: int = 502,
    ):
        super().__init__(
            message=message,
            error_type="api_error",
            code=code,
            details=details,
            status_code=status_code,
        )

    @classmethod
    def from_response(cls, status_code: int, body: Any) -> "UpstreamError":
        """Build from an upstream non-2xx response"""
        return cls(
            message=f"Upstream returned HTTP {status_code}: {_summarize_body(body)}",
            code="upstream_http_error",
            details={"upstream_status": status_code, "upstream_body": body},
            status_code=status_code if status_code >= 400 else 502,
        )


class ConversionError(AppError):
    """
    Conversion Error

    Raised when an upstream response has an unrecognisable top-level shape.
    """

    def __init__(
        self,
        message: str = "Unrecognised upstream response",
        code: str = "conversion_error",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            error_type="api_error",
            code=code,
            details=details,
            status_code=502,
        )


def _summarize_body(body: Any, limit: int = 300) -> str:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])[:limit]
        if isinstance(error, str):
            return error[:limit]
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    return str(body)[:limit]
