"""Error taxonomy and HTTP failure classification for the OneDrive API."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from datetime import timedelta
from typing import Any

logger = logging.getLogger(__name__)

HEADER_RETRY_AFTER = "Retry-After"


class OneDriveError(Exception):
    """Base class of every data-driven failure raised by this library."""


class TransportFailure(OneDriveError):
    """Raised when a request never produced an HTTP response.

    The transport exception (DNS, TLS, connect, timeout) is kept as
    ``__cause__``.
    """


class UnexpectedResponse(OneDriveError):
    """Raised when HTTP succeeded but the payload breaks an expected invariant."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Unexpected response: {reason}")
        self.reason = reason


class ApiError(OneDriveError):
    """Raised when a resource endpoint returns a non-success status."""

    def __init__(
        self,
        status_code: int,
        code: str | None,
        message: str | None,
        retry_after: timedelta | None = None,
        inner_error: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(f"Api error {status_code} ({code or 'unknown'}): {message or ''}")
        self.status_code = status_code
        self.code = code
        self.message = message
        self.retry_after = retry_after
        self.inner_error = inner_error

    @property
    def status(self) -> int:
        return self.status_code


class OAuth2Error(OneDriveError):
    """Raised when the OAuth2 token endpoint rejects a request.

    ``status_code`` is ``None`` when the failure was reported by MSAL,
    which does not surface the HTTP status of the token endpoint.
    """

    def __init__(
        self,
        status_code: int | None,
        error: str,
        description: str | None,
        error_codes: list[int] | None = None,
        retry_after: timedelta | None = None,
    ) -> None:
        super().__init__(f"OAuth2 error {status_code} ({error}): {description or ''}")
        self.status_code = status_code
        self.error = error
        self.description = description
        self.error_codes = error_codes or []
        self.retry_after = retry_after

    @property
    def status(self) -> int | None:
        return self.status_code


def parse_retry_after(headers: Mapping[str, str]) -> timedelta | None:
    """Parse a delta-seconds ``Retry-After`` header.

    Args:
        headers: Response headers (case-insensitive mapping).

    Returns:
        The retry delay, or None if absent or not a non-negative integer.
    """
    raw = headers.get(HEADER_RETRY_AFTER)
    if raw is None:
        return None
    raw = raw.strip()
    if not raw.isdigit():
        return None
    return timedelta(seconds=int(raw))


def _load_json_object(body: bytes) -> dict[str, Any] | None:
    try:
        data = json.loads(body)
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def classify_error_response(
    status_code: int, headers: Mapping[str, str], body: bytes
) -> ApiError:
    """Turn a non-success resource response into an ApiError.

    Graph wraps failures in ``{"error": {"code", "message", "innerError"}}``.
    Bodies that are not such an envelope still yield an ApiError carrying
    the decoded text as message.

    Args:
        status_code: HTTP status code.
        headers: Response headers.
        body: Raw response body.

    Returns:
        The classified ApiError (not raised).
    """
    retry_after = parse_retry_after(headers)
    envelope = _load_json_object(body) if body else None
    error_obj = envelope.get("error") if envelope else None
    if isinstance(error_obj, dict):
        inner = error_obj.get("innerError")
        err = ApiError(
            status_code,
            error_obj.get("code"),
            error_obj.get("message"),
            retry_after=retry_after,
            inner_error=inner if isinstance(inner, dict) else None,
        )
    else:
        text = body.decode("utf-8", errors="replace").strip() or None
        err = ApiError(status_code, None, text, retry_after=retry_after)
    logger.warning(
        "[classify_error_response] api request failed; status:%s;code:%s",
        status_code,
        err.code,
    )
    return err


def classify_oauth2_error_response(
    status_code: int, headers: Mapping[str, str], body: bytes
) -> OAuth2Error:
    """Turn a non-success token endpoint response into an OAuth2Error.

    Args:
        status_code: HTTP status code.
        headers: Response headers.
        body: Raw response body.

    Returns:
        The classified OAuth2Error (not raised).
    """
    envelope = _load_json_object(body) if body else None
    if envelope is not None and isinstance(envelope.get("error"), str):
        codes = envelope.get("error_codes")
        err = OAuth2Error(
            status_code,
            envelope["error"],
            envelope.get("error_description"),
            error_codes=codes if isinstance(codes, list) else None,
            retry_after=parse_retry_after(headers),
        )
    else:
        err = OAuth2Error(
            status_code,
            "unknown_error",
            body.decode("utf-8", errors="replace").strip() or None,
            retry_after=parse_retry_after(headers),
        )
    logger.warning(
        "[classify_oauth2_error_response] token request failed; status:%s;error:%s",
        status_code,
        err.error,
    )
    return err
