"""Smoke tests — validate the package imports and an end-to-end call works."""

import json
from unittest.mock import MagicMock

import onedrive_api
from onedrive_api import DriveLocation, ItemLocation, OneDrive, UrllibClient


def test_version() -> None:
    assert onedrive_api.__version__ == "0.1.0"


def test_get_item_through_urllib_client() -> None:
    """A drive call runs through the blocking client without error."""
    mock_response = MagicMock()
    mock_response.status = 200
    mock_response.read.return_value = json.dumps({"id": "root-id", "folder": {}}).encode()
    mock_response.headers.items.return_value = [("Content-Type", "application/json")]
    mock_response.__enter__ = lambda s: s
    mock_response.__exit__ = MagicMock(return_value=False)

    client = UrllibClient()
    client._opener = MagicMock()  # type: ignore[assignment]
    client._opener.open.return_value = mock_response

    item = client.execute(OneDrive("tok", DriveLocation.me()).get_item(ItemLocation.root()))

    assert item.is_folder
