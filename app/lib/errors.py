"""
Error taxonomy for the SQL proxy.

Every error carries the HTTP status it maps to and renders itself as the
JSON body returned to the caller. Key material never appears in a message.
"""
from typing import Any, Dict, Optional


class ProxyError(Exception):
    """Base class for all errors surfaced to the caller."""

    status_code = 500

    def __init__(
        self,
        error: str,
        context: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.error = error
        self.context = context or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(error)

    def to_dict(self) -> dict:
        return {"error": self.error, **self.context}


class ClientError(ProxyError):
    status_code = 400


class MethodNotAllowed(ClientError):
    status_code = 405

    def __init__(self):
        super().__init__("Method not allowed")


class Unauthorized(ClientError):
    status_code = 401

    def __init__(self):
        super().__init__("Missing or invalid access token")


class ConfigurationError(ProxyError):
    """Credentials or settings are missing or unusable."""

    def __init__(self, error: str = "Server not configured", hint: Optional[str] = None):
        context = {"hint": hint} if hint else None
        super().__init__(error, context)


class SigningFailure(ProxyError):
    """The signing primitive failed. Only the underlying message is reported."""

    def __init__(self, message: str):
        self.message = message
        super().__init__("JWT generation failed", {"details": message})

    def __str__(self) -> str:
        return self.message


class InvalidKeyMaterial(SigningFailure):
    """Key material could not be decoded into the shape the scheme expects."""


class UpstreamNonJsonError(ProxyError):
    """The remote API answered with something other than JSON."""

    PREVIEW_CHARS = 500

    def __init__(self, status_code: int, text: str):
        super().__init__(
            "Coinbase API returned non-JSON response",
            {"status": status_code, "preview": text[: self.PREVIEW_CHARS]},
            status_code=status_code,
        )


class UpstreamError(ProxyError):
    """Remote error relayed unchanged: the body is passed through as-is."""

    def __init__(self, status_code: int, body: Any):
        self.body = body
        super().__init__("Upstream error", status_code=status_code)

    def to_dict(self):
        return self.body
