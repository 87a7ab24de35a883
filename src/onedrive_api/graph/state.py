"""Delta-link persistence in Azure Blob Storage."""

from __future__ import annotations

import logging

from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError
from azure.storage.blob import BlobServiceClient

logger = logging.getLogger(__name__)


class BlobDeltaLinkStore:
    """Keeps the latest ``@odata.deltaLink`` of a change-tracking sweep in one blob."""

    def __init__(self, connection_string: str, container: str, blob: str) -> None:
        """Initialise the store.

        Args:
            connection_string: Azure Storage connection string.
            container: Blob container holding the delta link.
            blob: Blob path of the delta link inside the container.
        """
        self._blob_service = BlobServiceClient.from_connection_string(connection_string)
        self._container = container
        self._blob = blob

    def load(self) -> str | None:
        """Read the persisted delta link.

        Returns:
            The stored delta URL, or None if nothing has been saved yet.
        """
        container_client = self._blob_service.get_container_client(self._container)
        blob_client = container_client.get_blob_client(self._blob)
        try:
            data = blob_client.download_blob().readall()
        except ResourceNotFoundError:
            logger.info("[load] no delta link found in blob storage; blob:%s", self._blob)
            return None
        return data.decode("utf-8")

    def save(self, delta_url: str) -> None:
        """Write the delta link, creating the container if needed."""
        container_client = self._blob_service.get_container_client(self._container)
        try:
            container_client.create_container()
            logger.info("[save] created blob container; container:%s", self._container)
        except ResourceExistsError:
            pass

        blob_client = container_client.get_blob_client(self._blob)
        blob_client.upload_blob(delta_url.encode("utf-8"), overwrite=True)
        logger.info("[save] saved delta link to blob storage; blob:%s", self._blob)
