"""Page-by-page cursors over children listings and the delta (change) feed.

A fetcher created from a listing call already holds the first page, which
is handed out by the first ``fetch_next_page`` without any request. Each
later call follows ``@odata.nextLink`` with exactly one GET. Fetchers keep
mutable cursor state and must not be shared between concurrent callers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from onedrive_api.errors import UnexpectedResponse
from onedrive_api.graph.api import Api, RawRequest, RawResponse, parse_json
from onedrive_api.graph.models import ODATA_DELTA_LINK, ODATA_NEXT_LINK, ODATA_VALUE, DriveItem

if TYPE_CHECKING:
    from onedrive_api.graph.transport import AsyncClient, Client

logger = logging.getLogger(__name__)


@dataclass
class DriveItemCollectionResponse:
    """One page of a DriveItem collection."""

    value: list[DriveItem] | None = None
    next_url: str | None = None
    delta_url: str | None = None

    @classmethod
    def from_json(cls, raw: Any) -> DriveItemCollectionResponse:
        if not isinstance(raw, dict):
            raise UnexpectedResponse("Collection response is not a JSON object")
        value = raw.get(ODATA_VALUE)
        if isinstance(value, list) and not all(isinstance(v, dict) for v in value):
            raise UnexpectedResponse("Invalid item in field `value`")
        return cls(
            value=[DriveItem.from_json(v) for v in value] if isinstance(value, list) else None,
            next_url=raw.get(ODATA_NEXT_LINK),
            delta_url=raw.get(ODATA_DELTA_LINK),
        )


def parse_collection(response: RawResponse) -> DriveItemCollectionResponse:
    return DriveItemCollectionResponse.from_json(parse_json(response))


class DriveItemFetcher:
    """Cursor state shared by children listings and change tracking."""

    def __init__(self, token: str, first_response: DriveItemCollectionResponse) -> None:
        self._token = token
        self._response = first_response

    @classmethod
    def resume_from(cls, token: str, next_url: str) -> DriveItemFetcher:
        return cls(token, DriveItemCollectionResponse(next_url=next_url))

    def next_url(self) -> str | None:
        # Hidden while the cached first page is pending: resuming from it
        # would deliver that page twice.
        if self._response.value is None:
            return self._response.next_url
        return None

    def delta_url(self) -> str | None:
        if self._response.value is None:
            return self._response.delta_url
        return None

    def _take_cached(self) -> list[DriveItem] | None:
        items, self._response.value = self._response.value, None
        return items

    def _next_page_api(self) -> Api[list[DriveItem]] | None:
        url = self._response.next_url
        if url is None:
            return None
        request = RawRequest("GET", url).bearer_auth(self._token)

        def parse(response: RawResponse) -> list[DriveItem]:
            page = parse_collection(response)
            if page.value is None and page.next_url is not None:
                raise UnexpectedResponse("Missing field `value` when not finished")
            # State only moves once the page is parsed, so a failure leaves it intact.
            self._response = page
            items = self._take_cached() or []
            logger.debug(
                "[fetch_next_page] fetched page; items:%d;has_next:%s",
                len(items),
                page.next_url is not None,
            )
            return items

        return Api(request, parse)

    def fetch_next_page(self, client: Client) -> list[DriveItem] | None:
        """Return the next page of items, or None once exhausted."""
        cached = self._take_cached()
        if cached is not None:
            return cached
        api = self._next_page_api()
        if api is None:
            return None
        return client.execute(api)

    async def fetch_next_page_async(self, client: AsyncClient) -> list[DriveItem] | None:
        cached = self._take_cached()
        if cached is not None:
            return cached
        api = self._next_page_api()
        if api is None:
            return None
        return await client.execute(api)

    def fetch_all(self, client: Client) -> list[DriveItem]:
        items: list[DriveItem] = []
        while (page := self.fetch_next_page(client)) is not None:
            items.extend(page)
        return items

    async def fetch_all_async(self, client: AsyncClient) -> list[DriveItem]:
        items: list[DriveItem] = []
        while (page := await self.fetch_next_page_async(client)) is not None:
            items.extend(page)
        return items


class ListChildrenFetcher:
    """Cursor over the children of a folder."""

    def __init__(self, token: str, first_response: DriveItemCollectionResponse) -> None:
        self._fetcher = DriveItemFetcher(token, first_response)

    @classmethod
    def resume_from(cls, token: str, next_url: str) -> ListChildrenFetcher:
        """Continue a listing from a previously saved ``next_url``."""
        return cls(token, DriveItemCollectionResponse(next_url=next_url))

    def next_url(self) -> str | None:
        """The URL to resume from, or None before page 1 is consumed or once exhausted."""
        return self._fetcher.next_url()

    def fetch_next_page(self, client: Client) -> list[DriveItem] | None:
        return self._fetcher.fetch_next_page(client)

    async def fetch_next_page_async(self, client: AsyncClient) -> list[DriveItem] | None:
        return await self._fetcher.fetch_next_page_async(client)

    def fetch_all(self, client: Client) -> list[DriveItem]:
        """Fetch every remaining page. Partial results are lost on error."""
        return self._fetcher.fetch_all(client)

    async def fetch_all_async(self, client: AsyncClient) -> list[DriveItem]:
        return await self._fetcher.fetch_all_async(client)


class TrackChangeFetcher:
    """Cursor over the delta feed of a folder.

    The feed may report the same item more than once during one sweep;
    items are passed through as received, without de-duplication.
    """

    def __init__(self, token: str, first_response: DriveItemCollectionResponse) -> None:
        self._fetcher = DriveItemFetcher(token, first_response)

    @classmethod
    def resume_from(cls, token: str, next_url: str) -> TrackChangeFetcher:
        return cls(token, DriveItemCollectionResponse(next_url=next_url))

    def next_url(self) -> str | None:
        return self._fetcher.next_url()

    def delta_url(self) -> str | None:
        """The snapshot URL for a later ``track_changes_from_delta_url``.

        Only available after the last page has been consumed.
        """
        return self._fetcher.delta_url()

    def _check_delta_url(self) -> str:
        delta_url = self._fetcher.delta_url()
        if delta_url is None:
            raise UnexpectedResponse("Missing `@odata.deltaLink` for the last page")
        return delta_url

    def fetch_next_page(self, client: Client) -> list[DriveItem] | None:
        return self._fetcher.fetch_next_page(client)

    async def fetch_next_page_async(self, client: AsyncClient) -> list[DriveItem] | None:
        return await self._fetcher.fetch_next_page_async(client)

    def fetch_all(self, client: Client) -> tuple[list[DriveItem], str]:
        """Fetch every remaining change and the snapshot URL that follows them.

        Raises:
            UnexpectedResponse: If the last page carries no ``@odata.deltaLink``.
        """
        items = self._fetcher.fetch_all(client)
        return items, self._check_delta_url()

    async def fetch_all_async(self, client: AsyncClient) -> tuple[list[DriveItem], str]:
        items = await self._fetcher.fetch_all_async(client)
        return items, self._check_delta_url()
