"""Integration tests against the real Microsoft Graph API.

These tests require a real bearer token and are skipped unless the
ODA_ACCESS_TOKEN environment variable is set. Write tests run inside a
scratch folder that is deleted afterwards.
"""

import asyncio
import os
import uuid

import pytest

pytestmark = pytest.mark.skipif(
    not os.getenv("ODA_ACCESS_TOKEN"),
    reason="Real Graph credentials not available",
)


def _drive():  # type: ignore[no-untyped-def]
    from onedrive_api import DriveLocation, OneDrive

    return OneDrive(os.environ["ODA_ACCESS_TOKEN"], DriveLocation.me())


def test_get_drive_and_root_real() -> None:
    from onedrive_api import ItemLocation, UrllibClient

    client = UrllibClient(timeout=30)
    drive = _drive()

    assert client.execute(drive.get_drive()).id is not None
    assert client.execute(drive.get_item(ItemLocation.root())).is_folder


def test_folder_upload_and_delta_cycle_real() -> None:
    """Create a folder, upload into it, see the change in delta, clean up."""
    from onedrive_api import FileName, ItemLocation, UrllibClient
    from onedrive_api.graph.upload import iter_part_ranges

    client = UrllibClient(timeout=60)
    drive = _drive()
    folder_name = FileName.new(f"onedrive-api-test-{uuid.uuid4().hex[:8]}")
    assert folder_name is not None

    latest = client.execute(drive.get_latest_delta_url(ItemLocation.root()))
    folder = client.execute(drive.create_folder(ItemLocation.root(), folder_name))
    assert folder.id is not None
    try:
        file_name = FileName.new("big.bin")
        assert file_name is not None
        target = ItemLocation.child_of_id(folder.id, file_name)
        data = bytes(range(256)) * 2600  # spans two 320 KiB parts
        session = client.execute(drive.new_upload_session(target))
        result = None
        for part in iter_part_ranges(len(data), 320 << 10):
            chunk = data[part.start : part.stop]
            result = client.execute(session.upload_part(chunk, part, len(data)))
        assert result is not None
        assert result.size == len(data)

        fetcher = client.execute(drive.track_changes_from_delta_url(latest))
        items, _ = fetcher.fetch_all(client)
        assert any(item.id == folder.id for item in items)
    finally:
        client.execute(drive.delete(ItemLocation.from_id(folder.id)))


def test_list_children_async_real() -> None:
    from onedrive_api import CollectionOption, HttpxAsyncClient, ItemLocation

    async def run() -> int:
        async with HttpxAsyncClient() as client:
            option = CollectionOption().page_size(5)
            fetcher = await client.execute(
                _drive().list_children_with_option(ItemLocation.root(), option)
            )
            assert fetcher is not None
            return len(await fetcher.fetch_all_async(client))

    assert asyncio.run(run()) >= 0
