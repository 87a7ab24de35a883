"""Drive and DriveItem operations against Microsoft Graph.

Every method builds an ``Api`` and performs no I/O itself; run the result
with a ``Client`` or ``AsyncClient``. All requests carry the bearer token
given at construction, except those sent to capability URLs handed out by
the service (copy monitors, upload sessions).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from onedrive_api.errors import UnexpectedResponse
from onedrive_api.graph.api import (
    HEADER_LOCATION,
    STATUS_NOT_MODIFIED,
    Api,
    RawRequest,
    RawResponse,
    check_status,
    parse_json,
    parse_no_content,
    parse_optional,
)
from onedrive_api.graph.fetcher import (
    DriveItemCollectionResponse,
    ListChildrenFetcher,
    TrackChangeFetcher,
    parse_collection,
)
from onedrive_api.graph.location import DriveLocation, FileName, ItemLocation, api_path, api_url
from onedrive_api.graph.models import (
    FIELD_CONFLICT_BEHAVIOR,
    FIELD_FOLDER,
    FIELD_NAME,
    FIELD_PARENT_REFERENCE,
    FIELD_PATH,
    ConflictBehavior,
    CopyProgress,
    CopyStatus,
    Drive,
    DriveField,
    DriveItem,
    DriveItemField,
)
from onedrive_api.graph.options import CollectionOption, DriveItemPutOption, ObjectOption
from onedrive_api.graph.upload import UploadSession

if TYPE_CHECKING:
    from onedrive_api.graph.transport import AsyncClient, Client

logger = logging.getLogger(__name__)

UPLOAD_SMALL_LIMIT = 4_000_000  # 4 MB

COPY_OPERATION = "ItemCopy"
FIELD_OPERATION = "operation"
FIELD_PERCENTAGE_COMPLETE = "percentageComplete"
FIELD_STATUS = "status"


class OneDrive:
    """Operations on one drive, authenticated with one bearer token.

    The token is never refreshed or replaced in place; build a new instance
    with the new token after a refresh.
    """

    def __init__(self, token: str, drive: DriveLocation) -> None:
        """Initialise the drive client.

        Args:
            token: OAuth2 bearer token.
            drive: The drive every request addresses.
        """
        self._token = token
        self._drive = drive

    @property
    def token(self) -> str:
        return self._token

    @property
    def drive(self) -> DriveLocation:
        return self._drive

    def _request(self, method: str, *components: ItemLocation | str) -> RawRequest:
        return RawRequest(method, api_url(self._drive, *components)).bearer_auth(self._token)

    # ------------------------------------------------------------------
    # Drive
    # ------------------------------------------------------------------

    def get_drive_with_option(self, option: ObjectOption[DriveField]) -> Api[Drive]:
        request = self._request("GET")
        option.apply_to(request)
        return Api(request, lambda resp: Drive.from_json(parse_json(resp)))

    def get_drive(self) -> Api[Drive]:
        """Get the Drive resource this client addresses."""
        return self.get_drive_with_option(ObjectOption())

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def get_item_with_option(
        self, item: ItemLocation, option: ObjectOption[DriveItemField]
    ) -> Api[DriveItem | None]:
        """Get the metadata of an item by path or id.

        Returns:
            An Api yielding the item, or None when ``if_none_match`` was set
            and the item's eTag still matches.
        """
        request = self._request("GET", item)
        option.apply_to(request)

        def parse(response: RawResponse) -> DriveItem | None:
            raw = parse_optional(response)
            return None if raw is None else DriveItem.from_json(raw)

        return Api(request, parse)

    def get_item(self, item: ItemLocation) -> Api[DriveItem]:
        def unwrap(value: DriveItem | None) -> DriveItem:
            if value is None:
                raise UnexpectedResponse("Empty response while If-None-Match is not set")
            return value

        return self.get_item_with_option(item, ObjectOption()).and_then(unwrap)

    def get_item_download_url_with_option(
        self, item: ItemLocation, option: ObjectOption[DriveItemField]
    ) -> Api[str | None]:
        """Get a short-lived, pre-authenticated download URL of a file.

        The service answers ``GET {item}/content`` with a 302 redirect; the
        redirect target is returned instead of the file contents.

        Returns:
            An Api yielding the URL, or None on 304 Not Modified.

        Raises:
            UnexpectedResponse: If the response is not a redirect with a
                ``Location`` header.
        """
        request = self._request("GET", item, "content")
        option.apply_to(request)

        def parse(response: RawResponse) -> str | None:
            if response.status == STATUS_NOT_MODIFIED:
                return None
            check_status(response)
            location = response.headers.get(HEADER_LOCATION)
            if not response.is_redirection or location is None:
                raise UnexpectedResponse(
                    f"Expected a redirect with `Location` for download, got {response.status}"
                )
            return location

        return Api(request, parse)

    def get_item_download_url(self, item: ItemLocation) -> Api[str]:
        def unwrap(value: str | None) -> str:
            if value is None:
                raise UnexpectedResponse("Empty response while If-None-Match is not set")
            return value

        return self.get_item_download_url_with_option(item, ObjectOption()).and_then(unwrap)

    def list_children_with_option(
        self, item: ItemLocation, option: CollectionOption[DriveItemField]
    ) -> Api[ListChildrenFetcher | None]:
        """List the children of a folder.

        Returns:
            An Api yielding a fetcher primed with the first page, or None
            when ``if_none_match`` was set and matches the folder's eTag.
        """
        request = self._request("GET", item, "children")
        option.apply_to(request)
        token = self._token

        def parse(response: RawResponse) -> ListChildrenFetcher | None:
            raw = parse_optional(response)
            if raw is None:
                return None
            return ListChildrenFetcher(token, DriveItemCollectionResponse.from_json(raw))

        return Api(request, parse)

    def list_children(self, item: ItemLocation, client: Client) -> list[DriveItem]:
        """List every child of a folder, following all pages.

        Args:
            item: The folder to list.
            client: Client used for the first request and each further page.

        Returns:
            All children, in the order the service returned them.

        Raises:
            UnexpectedResponse: If the service answered 304 without a condition.
        """
        fetcher = client.execute(self.list_children_with_option(item, CollectionOption()))
        if fetcher is None:
            raise UnexpectedResponse("Empty response while If-None-Match is not set")
        return fetcher.fetch_all(client)

    async def list_children_async(
        self, item: ItemLocation, client: AsyncClient
    ) -> list[DriveItem]:
        """Asynchronous counterpart of ``list_children``."""
        api = self.list_children_with_option(item, CollectionOption())
        fetcher = await client.execute(api)
        if fetcher is None:
            raise UnexpectedResponse("Empty response while If-None-Match is not set")
        return await fetcher.fetch_all_async(client)

    def create_folder_with_option(
        self, parent_item: ItemLocation, name: FileName, option: DriveItemPutOption
    ) -> Api[DriveItem]:
        """Create a folder under ``parent_item``.

        The default conflict behavior is ``FAIL``, which surfaces an existing
        target as an ApiError with status 409.
        """
        conflict_behavior = option.get_conflict_behavior() or ConflictBehavior.FAIL
        request = self._request("POST", parent_item, "children")
        option.apply_to(request)
        request.json_body(
            {
                FIELD_NAME: name.value,
                FIELD_FOLDER: {},
                FIELD_CONFLICT_BEHAVIOR: conflict_behavior.value,
            }
        )
        return Api(request, _parse_item)

    def create_folder(self, parent_item: ItemLocation, name: FileName) -> Api[DriveItem]:
        return self.create_folder_with_option(parent_item, name, DriveItemPutOption())

    def update_item_with_option(
        self, item: ItemLocation, patch: DriveItem, option: ObjectOption[DriveItemField]
    ) -> Api[DriveItem]:
        """Update item metadata with the fields set on ``patch``.

        Use ``move_`` to rename or move an item.
        """
        request = self._request("PATCH", item)
        option.apply_to(request)
        request.json_body(patch.to_json())
        return Api(request, _parse_item)

    def update_item(self, item: ItemLocation, patch: DriveItem) -> Api[DriveItem]:
        return self.update_item_with_option(item, patch, ObjectOption())

    def upload_small(self, item: ItemLocation, data: bytes) -> Api[DriveItem]:
        """Create or replace the contents of a file in a single request.

        Raises:
            ValueError: If ``data`` is larger than 4,000,000 bytes. Use an
                upload session for larger files.
        """
        if len(data) > UPLOAD_SMALL_LIMIT:
            raise ValueError(
                f"Data too large for upload_small ({len(data)} B > {UPLOAD_SMALL_LIMIT} B)"
            )
        request = self._request("PUT", item, "content").bytes_body(data)
        return Api(request, _parse_item)

    def new_upload_session_with_option(
        self, item: ItemLocation, option: DriveItemPutOption
    ) -> Api[UploadSession]:
        """Create a resumable upload session for a large file.

        A failed ``if_match`` precondition surfaces as an ApiError with
        status 412.
        """
        conflict_behavior = option.get_conflict_behavior() or ConflictBehavior.FAIL
        request = self._request("POST", item, "createUploadSession")
        option.apply_to(request)
        request.json_body({"item": {FIELD_CONFLICT_BEHAVIOR: conflict_behavior.value}})

        def parse(response: RawResponse) -> UploadSession:
            session = UploadSession.from_json(parse_json(response))
            logger.info(
                "[new_upload_session] session created; expires:%s",
                session.expiration_date_time,
            )
            return session

        return Api(request, parse)

    def new_upload_session(self, item: ItemLocation) -> Api[UploadSession]:
        return self.new_upload_session_with_option(item, DriveItemPutOption())

    def copy(
        self, source_item: ItemLocation, dest_folder: ItemLocation, dest_name: FileName
    ) -> Api[CopyProgressMonitor]:
        """Start an asynchronous copy of an item.

        Which conflict behavior the service applies is not documented and
        cannot be chosen here.

        Returns:
            An Api yielding a monitor polling the copy's progress.

        Raises:
            UnexpectedResponse: If the response carries no ``Location`` header.
        """
        request = self._request("POST", source_item, "copy").json_body(
            {
                FIELD_PARENT_REFERENCE: {FIELD_PATH: api_path(dest_folder)},
                FIELD_NAME: dest_name.value,
            }
        )

        def parse(response: RawResponse) -> CopyProgressMonitor:
            location = check_status(response).headers.get(HEADER_LOCATION)
            if location is None:
                raise UnexpectedResponse("Header `Location` not exists in response of `copy`")
            logger.info("[copy] copy started; name:%s", dest_name.value)
            return CopyProgressMonitor(location)

        return Api(request, parse)

    def move_with_option(
        self,
        source_item: ItemLocation,
        dest_folder: ItemLocation,
        dest_name: FileName | None,
        option: DriveItemPutOption,
    ) -> Api[DriveItem]:
        """Move an item to another folder of the same drive, optionally renaming it.

        A failed ``if_match`` precondition surfaces as an ApiError with
        status 412.
        """
        conflict_behavior = option.get_conflict_behavior() or ConflictBehavior.FAIL
        body: dict[str, Any] = {FIELD_PARENT_REFERENCE: {FIELD_PATH: api_path(dest_folder)}}
        if dest_name is not None:
            body[FIELD_NAME] = dest_name.value
        body[FIELD_CONFLICT_BEHAVIOR] = conflict_behavior.value

        request = self._request("PATCH", source_item)
        option.apply_to(request)
        request.json_body(body)
        return Api(request, _parse_item)

    def move_(
        self, source_item: ItemLocation, dest_folder: ItemLocation, dest_name: FileName | None
    ) -> Api[DriveItem]:
        return self.move_with_option(source_item, dest_folder, dest_name, DriveItemPutOption())

    def delete_with_option(self, item: ItemLocation, option: DriveItemPutOption) -> Api[None]:
        """Move an item to the recycle bin.

        Raises:
            ValueError: If ``option`` sets a conflict behavior, which delete
                does not support.
        """
        if option.get_conflict_behavior() is not None:
            raise ValueError("`conflict_behavior` is not supported by `delete[_with_option]`")
        request = self._request("DELETE", item)
        option.apply_to(request)
        return Api(request, parse_no_content)

    def delete(self, item: ItemLocation) -> Api[None]:
        return self.delete_with_option(item, DriveItemPutOption())

    # ------------------------------------------------------------------
    # Change tracking
    # ------------------------------------------------------------------

    def _track_changes(self, request: RawRequest) -> Api[TrackChangeFetcher]:
        token = self._token
        return Api(request, lambda resp: TrackChangeFetcher(token, parse_collection(resp)))

    def track_changes_from_initial_with_option(
        self, folder: ItemLocation, option: CollectionOption[DriveItemField]
    ) -> Api[TrackChangeFetcher]:
        """Track changes under a folder, starting from an empty state.

        Deleted items come back with the ``deleted`` facet set.

        Raises:
            ValueError: If ``option`` asks for ``$count``, which the delta
                endpoint rejects.
        """
        if option.has_get_count():
            raise ValueError("`get_count` is not supported by `track_changes_from_initial`")
        request = self._request("GET", folder, "delta")
        option.apply_to(request)
        return self._track_changes(request)

    def track_changes_from_initial(self, folder: ItemLocation) -> Api[TrackChangeFetcher]:
        return self.track_changes_from_initial_with_option(folder, CollectionOption())

    def track_changes_from_delta_url(self, delta_url: str) -> Api[TrackChangeFetcher]:
        """Track changes since the snapshot a previous sweep returned."""
        request = RawRequest("GET", delta_url).bearer_auth(self._token)
        return self._track_changes(request)

    def get_latest_delta_url(self, folder: ItemLocation) -> Api[str]:
        """Get a delta URL for the current state, skipping the initial sweep.

        Raises:
            UnexpectedResponse: If the response carries no ``@odata.deltaLink``.
        """
        request = self._request("GET", folder, "delta").add_query([("token", "latest")])

        def parse(response: RawResponse) -> str:
            delta_url = parse_collection(response).delta_url
            if delta_url is None:
                raise UnexpectedResponse(
                    "Missing field `@odata.deltaLink` for getting latest delta"
                )
            logger.debug("[get_latest_delta_url] latest delta link retrieved")
            return delta_url

        return Api(request, parse)


class CopyProgressMonitor:
    """Polls the progress of an asynchronous copy.

    The monitor URL is pre-authenticated; requests to it carry no token.
    """

    def __init__(self, url: str) -> None:
        self._url = url

    @property
    def url(self) -> str:
        """The monitor URL. Keep it to poll the same copy later."""
        return self._url

    def fetch_progress(self) -> Api[CopyProgress]:
        def parse(response: RawResponse) -> CopyProgress:
            raw = parse_json(response)
            if not isinstance(raw, dict):
                raise UnexpectedResponse("Copy progress is not a JSON object")
            operation = raw.get(FIELD_OPERATION)
            if operation is not None and operation != COPY_OPERATION:
                raise UnexpectedResponse(f"Unexpected operation {operation!r} in copy progress")
            try:
                return CopyProgress(
                    percentage_complete=float(raw[FIELD_PERCENTAGE_COMPLETE]),
                    status=CopyStatus(raw[FIELD_STATUS]),
                )
            except (KeyError, TypeError, ValueError) as exc:
                raise UnexpectedResponse(f"Invalid copy progress: {exc}") from exc

        return Api(RawRequest("GET", self._url), parse)


def _parse_item(response: RawResponse) -> DriveItem:
    raw = parse_json(response)
    if not isinstance(raw, dict):
        raise UnexpectedResponse("Item response is not a JSON object")
    return DriveItem.from_json(raw)
