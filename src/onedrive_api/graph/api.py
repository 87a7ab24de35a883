"""Request/response halves of an API call, independent of any HTTP backend.

An ``Api`` pairs a fully built request with the function that interprets
the response. Clients (see ``transport``) perform the actual HTTP exchange,
so the same ``Api`` runs under a blocking or an asynchronous client.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar
from urllib.parse import quote, urlencode

from onedrive_api.errors import (
    UnexpectedResponse,
    classify_error_response,
    classify_oauth2_error_response,
)

T = TypeVar("T")
U = TypeVar("U")

HEADER_AUTHORIZATION = "Authorization"
HEADER_CONTENT_TYPE = "Content-Type"
HEADER_CONTENT_RANGE = "Content-Range"
HEADER_LOCATION = "Location"

CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_FORM = "application/x-www-form-urlencoded"
CONTENT_TYPE_OCTET_STREAM = "application/octet-stream"

STATUS_ACCEPTED = 202
STATUS_NOT_MODIFIED = 304


@dataclass
class RawRequest:
    """An HTTP request ready to be sent."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None

    def bearer_auth(self, token: str) -> RawRequest:
        """Set the ``Authorization: Bearer`` header and return this request."""
        self.headers[HEADER_AUTHORIZATION] = f"Bearer {token}"
        return self

    def add_query(self, params: Iterable[tuple[str, str]]) -> RawRequest:
        """Append query parameters to the URL.

        OData punctuation is left unescaped, as in
        ``$expand=children($select=id)``.

        Args:
            params: Name and value pairs, in order. An empty iterable leaves
                the URL untouched.

        Returns:
            This request, for chaining.
        """
        params = list(params)
        if params:
            sep = "&" if "?" in self.url else "?"
            self.url += sep + urlencode(params, safe="$,()=", quote_via=quote)
        return self

    def json_body(self, payload: Any) -> RawRequest:
        """Serialize ``payload`` as the JSON body."""
        self.headers[HEADER_CONTENT_TYPE] = CONTENT_TYPE_JSON
        self.body = json.dumps(payload).encode("utf-8")
        return self

    def form_body(self, params: Iterable[tuple[str, str]]) -> RawRequest:
        """Set a form-urlencoded body, as expected by the token endpoint."""
        self.headers[HEADER_CONTENT_TYPE] = CONTENT_TYPE_FORM
        self.body = urlencode(list(params)).encode("ascii")
        return self

    def bytes_body(self, data: bytes) -> RawRequest:
        """Set a raw octet-stream body."""
        self.headers[HEADER_CONTENT_TYPE] = CONTENT_TYPE_OCTET_STREAM
        self.body = bytes(data)
        return self


class Headers(Mapping[str, str]):
    """Case-insensitive, read-only response headers."""

    def __init__(self, items: Iterable[tuple[str, str]] = ()) -> None:
        self._items: dict[str, tuple[str, str]] = {}
        for key, value in items:
            self._items[key.lower()] = (key, value)

    def __getitem__(self, key: str) -> str:
        return self._items[key.lower()][1]

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"Headers({dict(self.items())!r})"


@dataclass
class RawResponse:
    """An HTTP response as handed back by a client."""

    status: int
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300

    @property
    def is_redirection(self) -> bool:
        return 300 <= self.status < 400

    def json(self) -> Any:
        try:
            return json.loads(self.body)
        except ValueError as exc:
            raise UnexpectedResponse(f"Invalid JSON body: {exc}") from exc


class Api(Generic[T]):
    """A single request plus the parser for its response.

    The request can be extracted exactly once; a second extraction is a bug
    in the calling code and raises RuntimeError.
    """

    def __init__(self, request: RawRequest, parser: Callable[[RawResponse], T]) -> None:
        self._request: RawRequest | None = request
        self._parser = parser

    def to_request(self) -> RawRequest:
        """Take the request out of this Api.

        Raises:
            RuntimeError: If the request was already taken.
        """
        if self._request is None:
            raise RuntimeError("Api request has already been taken")
        request, self._request = self._request, None
        return request

    def parse(self, response: RawResponse) -> T:
        return self._parser(response)

    def and_then(self, func: Callable[[T], U]) -> Api[U]:
        """Chain a post-processing step onto the parsed response."""
        request = self.to_request()
        parser = self._parser
        return Api(request, lambda resp: func(parser(resp)))


def check_status(response: RawResponse) -> RawResponse:
    """Raise the classified ApiError unless the status is 2xx or 3xx."""
    if response.is_success or response.is_redirection:
        return response
    raise classify_error_response(response.status, response.headers, response.body)


def check_oauth2_status(response: RawResponse) -> RawResponse:
    """Raise the classified OAuth2Error unless the status is 2xx."""
    if response.is_success:
        return response
    raise classify_oauth2_error_response(response.status, response.headers, response.body)


def parse_json(response: RawResponse) -> Any:
    """Check the status and decode the JSON body.

    Raises:
        ApiError: If the status is an error.
        UnexpectedResponse: If the body is not valid JSON.
    """
    return check_status(response).json()


def parse_optional(response: RawResponse) -> Any | None:
    """Parse JSON, mapping 304 Not Modified and 202 Accepted to None."""
    if response.status in (STATUS_NOT_MODIFIED, STATUS_ACCEPTED):
        return None
    return parse_json(response)


def parse_no_content(response: RawResponse) -> None:
    """Check the status and ignore the body."""
    check_status(response)
