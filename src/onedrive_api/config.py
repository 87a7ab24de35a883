"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

from onedrive_api.graph.auth import DEFAULT_TENANT, AppTokenProvider, Authentication, Permission
from onedrive_api.graph.location import DriveLocation
from onedrive_api.graph.state import BlobDeltaLinkStore
from onedrive_api.graph.transport import UrllibClient

DEFAULT_REDIRECT_URI = "https://login.microsoftonline.com/common/oauth2/nativeclient"


@dataclass(frozen=True)
class AppConfig:
    """Centralized application configuration.

    ``client_id`` has no default and causes a KeyError at startup if its
    environment variable is missing. Everything else is optional.
    """

    # Required
    client_id: str

    # Optional, with defaults
    client_secret: str | None = None
    tenant_id: str = DEFAULT_TENANT
    redirect_uri: str = DEFAULT_REDIRECT_URI
    drive_user: str | None = None
    http_timeout: float = 30.0
    storage_connection_string: str | None = None
    delta_container: str = "onedrive-api-state"
    delta_blob: str = "delta-link/current.txt"


def load_config() -> AppConfig:
    """Construct an AppConfig from environment variables.

    Required environment variables:
        ODA_CLIENT_ID: Azure AD application (client) ID.

    Optional environment variables (with defaults):
        ODA_CLIENT_SECRET: Client secret, for confidential clients and app-only access.
        ODA_TENANT_ID: Tenant ID or ``common`` (default: common).
        ODA_REDIRECT_URI: Redirect URI registered for the application.
        ODA_DRIVE_USER: UPN or object ID of the drive owner; empty means ``/me``.
        ODA_HTTP_TIMEOUT: Socket timeout in seconds for the blocking client (default: 30).
        ODA_STORAGE_CONNECTION_STRING: Azure Storage connection string for delta links.
        ODA_DELTA_CONTAINER: Blob container for delta link storage.
        ODA_DELTA_BLOB: Blob path for the delta link file.

    Returns:
        Configured AppConfig instance.
    """
    return AppConfig(
        client_id=os.environ["ODA_CLIENT_ID"],
        client_secret=os.environ.get("ODA_CLIENT_SECRET") or None,
        tenant_id=os.environ.get("ODA_TENANT_ID", DEFAULT_TENANT),
        redirect_uri=os.environ.get("ODA_REDIRECT_URI", DEFAULT_REDIRECT_URI),
        drive_user=os.environ.get("ODA_DRIVE_USER") or None,
        http_timeout=float(os.environ.get("ODA_HTTP_TIMEOUT", "30")),
        storage_connection_string=os.environ.get("ODA_STORAGE_CONNECTION_STRING") or None,
        delta_container=os.environ.get("ODA_DELTA_CONTAINER", "onedrive-api-state"),
        delta_blob=os.environ.get("ODA_DELTA_BLOB", "delta-link/current.txt"),
    )


def drive_location_from_config(config: AppConfig) -> DriveLocation:
    """The configured user's drive, or the signed-in user's when none is set."""
    if config.drive_user is None:
        return DriveLocation.me()
    return DriveLocation.from_user(config.drive_user)


def authentication_from_config(config: AppConfig, permission: Permission) -> Authentication:
    return Authentication(
        client_id=config.client_id,
        permission=permission,
        redirect_uri=config.redirect_uri,
        tenant=config.tenant_id,
    )


def app_token_provider_from_config(config: AppConfig) -> AppTokenProvider:
    """Construct an AppTokenProvider from application configuration.

    Raises:
        ValueError: If no client secret is configured.
    """
    if config.client_secret is None:
        raise ValueError("ODA_CLIENT_SECRET is required for app-only access")
    return AppTokenProvider(
        client_id=config.client_id,
        client_secret=config.client_secret,
        tenant_id=config.tenant_id,
    )


def delta_link_store_from_config(config: AppConfig) -> BlobDeltaLinkStore:
    """Construct a BlobDeltaLinkStore from application configuration.

    Raises:
        ValueError: If no storage connection string is configured.
    """
    if config.storage_connection_string is None:
        raise ValueError("ODA_STORAGE_CONNECTION_STRING is required for delta link storage")
    return BlobDeltaLinkStore(
        connection_string=config.storage_connection_string,
        container=config.delta_container,
        blob=config.delta_blob,
    )


def urllib_client_from_config(config: AppConfig) -> UrllibClient:
    return UrllibClient(timeout=config.http_timeout)
