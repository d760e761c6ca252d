"""
Error taxonomy shared by the proxy and the browsing client.

Every error carries an HTTP-equivalent `status` and a stable `code`, and renders
as the `{error, code}` envelope the proxy returns:

- ValidationError  400  bad input (limit > 100, non-numeric page, bad id)
- RateLimitError   429  caller must back off
- UpstreamError    upstream status (or 502)  upstream non-2xx or malformed payload
- TransportError   500  network failure talking to upstream / the proxy

Nothing in the core retries on any of these.
"""
from __future__ import annotations
from typing import Any, Dict, Optional

import httpx

class CatalogError(Exception):
    status: int = 500
    code: str = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, *, status: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status
        if code is not None:
            self.code = code

    def to_envelope(self) -> Dict[str, str]:
        return {"error": self.message, "code": self.code}

    @classmethod
    def from_exception(cls, exc: BaseException) -> "CatalogError":
        if isinstance(exc, CatalogError):
            return exc
        return CatalogError(str(exc) or "Unknown error occurred")

    @classmethod
    def from_envelope(cls, status: int, payload: Any) -> "CatalogError":
        """Rebuild an error from a proxy response body; falls back to a generic upstream error."""
        if isinstance(payload, dict) and isinstance(payload.get("error"), str):
            code = str(payload.get("code") or "EXTERNAL_API_ERROR")
            kind = _BY_CODE.get(code, CatalogError)
            return kind(payload["error"], status=status, code=code)
        return UpstreamError(f"request failed with status {status}", status=status)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status}, code={self.code!r}, message={self.message!r})"

class ValidationError(CatalogError):
    status = 400
    code = "INVALID_PARAMETER"

class RateLimitError(CatalogError):
    status = 429
    code = "RATE_LIMIT_EXCEEDED"

    def __init__(self, message: str = "Too many requests", *, retry_after_ms: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after_ms = retry_after_ms

class UpstreamError(CatalogError):
    status = 502
    code = "EXTERNAL_API_ERROR"

    @classmethod
    def from_response(cls, resp: httpx.Response) -> "UpstreamError":
        return cls(resp.reason_phrase or "API request failed", status=resp.status_code)

class TransportError(CatalogError):
    status = 500
    code = "TRANSPORT_ERROR"

INVALID_PAYLOAD = "INVALID_UPSTREAM_PAYLOAD"

_BY_CODE = {
    ValidationError.code: ValidationError,
    RateLimitError.code: RateLimitError,
    UpstreamError.code: UpstreamError,
    INVALID_PAYLOAD: UpstreamError,
    TransportError.code: TransportError,
}
