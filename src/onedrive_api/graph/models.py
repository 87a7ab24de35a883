"""Data models for Microsoft Graph drive resources."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from onedrive_api.errors import UnexpectedResponse

# Graph API JSON field names
FIELD_ID = "id"
FIELD_NAME = "name"
FIELD_E_TAG = "eTag"
FIELD_C_TAG = "cTag"
FIELD_SIZE = "size"
FIELD_DESCRIPTION = "description"
FIELD_WEB_URL = "webUrl"
FIELD_FOLDER = "folder"
FIELD_FILE = "file"
FIELD_DELETED = "deleted"
FIELD_CHILDREN = "children"
FIELD_PARENT_REFERENCE = "parentReference"
FIELD_FILE_SYSTEM_INFO = "fileSystemInfo"
FIELD_CREATED_DATE_TIME = "createdDateTime"
FIELD_LAST_MODIFIED_DATE_TIME = "lastModifiedDateTime"
FIELD_PATH = "path"
FIELD_DRIVE_ID = "driveId"
FIELD_DRIVE_TYPE = "driveType"
FIELD_OWNER = "owner"
FIELD_QUOTA = "quota"
FIELD_ROOT = "root"
FIELD_SPECIAL = "special"
FIELD_ITEMS = "items"
FIELD_DOWNLOAD_URL = "@microsoft.graph.downloadUrl"
FIELD_CONFLICT_BEHAVIOR = "@microsoft.graph.conflictBehavior"

# OData response keys
ODATA_DELTA_LINK = "@odata.deltaLink"
ODATA_NEXT_LINK = "@odata.nextLink"
ODATA_VALUE = "value"


@dataclass(frozen=True)
class DriveId:
    """The unique identifier of a Drive."""

    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ItemId:
    """The unique identifier of a DriveItem."""

    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Tag:
    """An opaque version token (eTag or cTag) assigned by the server."""

    value: str

    def __str__(self) -> str:
        return self.value


class DriveField(Enum):
    """Selectable fields of a Drive, valued by their wire name."""

    ID = FIELD_ID
    CREATED_BY = "createdBy"
    CREATED_DATE_TIME = FIELD_CREATED_DATE_TIME
    DESCRIPTION = FIELD_DESCRIPTION
    DRIVE_TYPE = FIELD_DRIVE_TYPE
    ITEMS = FIELD_ITEMS
    LAST_MODIFIED_BY = "lastModifiedBy"
    LAST_MODIFIED_DATE_TIME = FIELD_LAST_MODIFIED_DATE_TIME
    NAME = FIELD_NAME
    OWNER = FIELD_OWNER
    QUOTA = FIELD_QUOTA
    ROOT = FIELD_ROOT
    SHAREPOINT_IDS = "sharepointIds"
    SPECIAL = FIELD_SPECIAL
    SYSTEM = "system"
    WEB_URL = FIELD_WEB_URL

    def api_field_name(self) -> str:
        return self.value


class DriveItemField(Enum):
    """Selectable fields of a DriveItem, valued by their wire name.

    Instance annotations such as ``@microsoft.graph.downloadUrl`` cannot be
    selected and have no member here.
    """

    AUDIO = "audio"
    BUNDLE = "bundle"
    CONTENT = "content"
    C_TAG = FIELD_C_TAG
    DELETED = FIELD_DELETED
    DESCRIPTION = FIELD_DESCRIPTION
    FILE = FIELD_FILE
    FILE_SYSTEM_INFO = FIELD_FILE_SYSTEM_INFO
    FOLDER = FIELD_FOLDER
    IMAGE = "image"
    LOCATION = "location"
    PACKAGE = "package"
    PHOTO = "photo"
    PUBLICATION = "publication"
    REMOTE_ITEM = "remoteItem"
    ROOT = FIELD_ROOT
    SEARCH_RESULT = "searchResult"
    SHARED = "shared"
    SHAREPOINT_IDS = "sharepointIds"
    SIZE = FIELD_SIZE
    SPECIAL_FOLDER = "specialFolder"
    VIDEO = "video"
    WEB_DAV_URL = "webDavUrl"
    CHILDREN = FIELD_CHILDREN
    PERMISSIONS = "permissions"
    THUMBNAILS = "thumbnails"
    VERSIONS = "versions"
    ID = FIELD_ID
    CREATED_BY = "createdBy"
    CREATED_DATE_TIME = FIELD_CREATED_DATE_TIME
    E_TAG = FIELD_E_TAG
    LAST_MODIFIED_BY = "lastModifiedBy"
    LAST_MODIFIED_DATE_TIME = FIELD_LAST_MODIFIED_DATE_TIME
    NAME = FIELD_NAME
    PARENT_REFERENCE = FIELD_PARENT_REFERENCE
    WEB_URL = FIELD_WEB_URL

    def api_field_name(self) -> str:
        return self.value


class ConflictBehavior(Enum):
    """How the server resolves a name collision on create, move or upload."""

    FAIL = "fail"
    REPLACE = "replace"
    RENAME = "rename"


class CopyStatus(Enum):
    """Status values reported by a copy progress monitor."""

    NOT_STARTED = "notStarted"
    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"
    UPDATING = "updating"
    FAILED = "failed"
    DELETE_PENDING = "deletePending"
    DELETE_FAILED = "deleteFailed"
    WAITING = "waiting"


@dataclass
class ItemReference:
    """Reference to an item, as found in ``parentReference``."""

    drive_id: DriveId | None = None
    id: ItemId | None = None
    name: str | None = None
    path: str | None = None

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> ItemReference:
        drive_id = raw.get(FIELD_DRIVE_ID)
        item_id = raw.get(FIELD_ID)
        return cls(
            drive_id=DriveId(drive_id) if drive_id else None,
            id=ItemId(item_id) if item_id else None,
            name=raw.get(FIELD_NAME),
            path=raw.get(FIELD_PATH),
        )

    def to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.drive_id is not None:
            out[FIELD_DRIVE_ID] = self.drive_id.value
        if self.id is not None:
            out[FIELD_ID] = self.id.value
        if self.name is not None:
            out[FIELD_NAME] = self.name
        if self.path is not None:
            out[FIELD_PATH] = self.path
        return out


@dataclass
class DriveItem:
    """A file, folder or other item stored in a drive.

    Every field is optional since ``$select`` may drop any of them. The
    complete JSON object is kept in ``raw``.
    """

    id: ItemId | None = None
    name: str | None = None
    e_tag: Tag | None = None
    c_tag: Tag | None = None
    size: int | None = None
    description: str | None = None
    web_url: str | None = None
    download_url: str | None = None
    created_date_time: str | None = None
    last_modified_date_time: str | None = None
    parent_reference: ItemReference | None = None
    file: dict[str, Any] | None = None
    folder: dict[str, Any] | None = None
    deleted: dict[str, Any] | None = None
    file_system_info: dict[str, Any] | None = None
    children: list[DriveItem] | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def is_folder(self) -> bool:
        return self.folder is not None

    @property
    def is_deleted(self) -> bool:
        return self.deleted is not None

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> DriveItem:
        """Map a raw Graph API item dict to a DriveItem.

        Raises:
            UnexpectedResponse: If ``raw`` or a nested child is not a JSON object.
        """
        if not isinstance(raw, dict):
            raise UnexpectedResponse("DriveItem is not a JSON object")
        parent_ref = raw.get(FIELD_PARENT_REFERENCE)
        children = raw.get(FIELD_CHILDREN)
        return cls(
            id=_wrap(ItemId, raw.get(FIELD_ID)),
            name=raw.get(FIELD_NAME),
            e_tag=_wrap(Tag, raw.get(FIELD_E_TAG)),
            c_tag=_wrap(Tag, raw.get(FIELD_C_TAG)),
            size=raw.get(FIELD_SIZE),
            description=raw.get(FIELD_DESCRIPTION),
            web_url=raw.get(FIELD_WEB_URL),
            download_url=raw.get(FIELD_DOWNLOAD_URL),
            created_date_time=raw.get(FIELD_CREATED_DATE_TIME),
            last_modified_date_time=raw.get(FIELD_LAST_MODIFIED_DATE_TIME),
            parent_reference=(
                ItemReference.from_json(parent_ref) if isinstance(parent_ref, dict) else None
            ),
            file=raw.get(FIELD_FILE),
            folder=raw.get(FIELD_FOLDER),
            deleted=raw.get(FIELD_DELETED),
            file_system_info=raw.get(FIELD_FILE_SYSTEM_INFO),
            children=(
                [cls.from_json(c) for c in children] if isinstance(children, list) else None
            ),
            raw=raw,
        )

    def to_json(self) -> dict[str, Any]:
        """Render the fields that are set, as used for PATCH bodies.

        Read-only annotations (download URL) and ``raw`` are not included.
        """
        out: dict[str, Any] = {}
        for key, value in (
            (FIELD_ID, self.id),
            (FIELD_E_TAG, self.e_tag),
            (FIELD_C_TAG, self.c_tag),
        ):
            if value is not None:
                out[key] = value.value
        for key, plain in (
            (FIELD_NAME, self.name),
            (FIELD_SIZE, self.size),
            (FIELD_DESCRIPTION, self.description),
            (FIELD_WEB_URL, self.web_url),
            (FIELD_CREATED_DATE_TIME, self.created_date_time),
            (FIELD_LAST_MODIFIED_DATE_TIME, self.last_modified_date_time),
            (FIELD_FILE, self.file),
            (FIELD_FOLDER, self.folder),
            (FIELD_DELETED, self.deleted),
            (FIELD_FILE_SYSTEM_INFO, self.file_system_info),
        ):
            if plain is not None:
                out[key] = plain
        if self.parent_reference is not None:
            out[FIELD_PARENT_REFERENCE] = self.parent_reference.to_json()
        if self.children is not None:
            out[FIELD_CHILDREN] = [c.to_json() for c in self.children]
        return out


@dataclass
class Drive:
    """A top-level storage container (a user's OneDrive or a document library)."""

    id: DriveId | None = None
    name: str | None = None
    description: str | None = None
    drive_type: str | None = None
    web_url: str | None = None
    owner: dict[str, Any] | None = None
    quota: dict[str, Any] | None = None
    root: DriveItem | None = None
    special: list[DriveItem] | None = None
    items: list[DriveItem] | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> Drive:
        root = raw.get(FIELD_ROOT)
        special = raw.get(FIELD_SPECIAL)
        items = raw.get(FIELD_ITEMS)
        return cls(
            id=_wrap(DriveId, raw.get(FIELD_ID)),
            name=raw.get(FIELD_NAME),
            description=raw.get(FIELD_DESCRIPTION),
            drive_type=raw.get(FIELD_DRIVE_TYPE),
            web_url=raw.get(FIELD_WEB_URL),
            owner=raw.get(FIELD_OWNER),
            quota=raw.get(FIELD_QUOTA),
            root=DriveItem.from_json(root) if isinstance(root, dict) else None,
            special=(
                [DriveItem.from_json(s) for s in special] if isinstance(special, list) else None
            ),
            items=[DriveItem.from_json(i) for i in items] if isinstance(items, list) else None,
            raw=raw,
        )


@dataclass(frozen=True)
class CopyProgress:
    """Progress of an asynchronous copy operation."""

    percentage_complete: float
    status: CopyStatus


def _wrap(kind: Any, value: Any) -> Any:
    return kind(value) if isinstance(value, str) and value else None
