"""Client library for OneDrive and SharePoint drives on Microsoft Graph."""

from onedrive_api.errors import (
    ApiError,
    OAuth2Error,
    OneDriveError,
    TransportFailure,
    UnexpectedResponse,
)
from onedrive_api.graph.auth import (
    AppTokenProvider,
    Authentication,
    ClientCredential,
    Permission,
    Token,
)
from onedrive_api.graph.drive import CopyProgressMonitor, OneDrive
from onedrive_api.graph.fetcher import ListChildrenFetcher, TrackChangeFetcher
from onedrive_api.graph.location import (
    DriveKind,
    DriveLocation,
    FileName,
    ItemKind,
    ItemLocation,
)
from onedrive_api.graph.models import (
    ConflictBehavior,
    CopyProgress,
    CopyStatus,
    Drive,
    DriveField,
    DriveId,
    DriveItem,
    DriveItemField,
    ItemId,
    ItemReference,
    Tag,
)
from onedrive_api.graph.options import CollectionOption, DriveItemPutOption, ObjectOption, Order
from onedrive_api.graph.transport import HttpxAsyncClient, UrllibClient
from onedrive_api.graph.upload import ExpectRange, UploadSession, UploadSessionMeta

__version__ = "0.1.0"

__all__ = [
    "ApiError",
    "AppTokenProvider",
    "Authentication",
    "ClientCredential",
    "CollectionOption",
    "ConflictBehavior",
    "CopyProgress",
    "CopyProgressMonitor",
    "CopyStatus",
    "Drive",
    "DriveField",
    "DriveId",
    "DriveItem",
    "DriveItemField",
    "DriveItemPutOption",
    "DriveKind",
    "DriveLocation",
    "ExpectRange",
    "FileName",
    "HttpxAsyncClient",
    "ItemId",
    "ItemKind",
    "ItemLocation",
    "ItemReference",
    "ListChildrenFetcher",
    "OAuth2Error",
    "ObjectOption",
    "OneDrive",
    "OneDriveError",
    "Order",
    "Permission",
    "Tag",
    "Token",
    "TrackChangeFetcher",
    "TransportFailure",
    "UnexpectedResponse",
    "UploadSession",
    "UploadSessionMeta",
    "UrllibClient",
]
