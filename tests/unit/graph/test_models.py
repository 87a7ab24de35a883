"""Unit tests for graph/models.py — resource mapping."""

import pytest

from onedrive_api.errors import UnexpectedResponse
from onedrive_api.graph.models import (
    Drive,
    DriveId,
    DriveItem,
    DriveItemField,
    ItemId,
    ItemReference,
    Tag,
)

# ---------------------------------------------------------------------------
# DriveItem
# ---------------------------------------------------------------------------


class TestDriveItem:
    def test_from_json_maps_fields(self) -> None:
        raw = {
            "id": "item-1",
            "name": "report.docx",
            "eTag": "etag-1",
            "cTag": "ctag-1",
            "size": 1234,
            "file": {"mimeType": "application/octet-stream"},
            "parentReference": {"driveId": "d-1", "id": "parent-1", "path": "/drive/root:/Docs"},
            "@microsoft.graph.downloadUrl": "https://download.example/x",
        }

        item = DriveItem.from_json(raw)

        assert item.id == ItemId("item-1")
        assert item.name == "report.docx"
        assert item.e_tag == Tag("etag-1")
        assert item.c_tag == Tag("ctag-1")
        assert item.size == 1234
        assert item.download_url == "https://download.example/x"
        assert item.parent_reference == ItemReference(
            drive_id=DriveId("d-1"), id=ItemId("parent-1"), path="/drive/root:/Docs"
        )
        assert not item.is_folder
        assert item.raw is raw

    def test_missing_fields_are_none(self) -> None:
        item = DriveItem.from_json({"id": "x"})

        assert item.name is None
        assert item.e_tag is None
        assert item.parent_reference is None
        assert item.children is None

    def test_folder_and_deleted_facets(self) -> None:
        item = DriveItem.from_json({"id": "x", "folder": {"childCount": 0}, "deleted": {}})

        assert item.is_folder
        assert item.is_deleted

    def test_expanded_children(self) -> None:
        item = DriveItem.from_json({"id": "p", "children": [{"id": "c1"}, {"id": "c2"}]})

        assert item.children is not None
        assert [c.id for c in item.children] == [ItemId("c1"), ItemId("c2")]

    def test_non_object_child_is_unexpected_response(self) -> None:
        with pytest.raises(UnexpectedResponse):
            DriveItem.from_json({"id": "p", "children": [{"id": "c1"}, 7]})

    def test_to_json_renders_only_set_fields(self) -> None:
        patch = DriveItem(description="quarterly numbers")

        assert patch.to_json() == {"description": "quarterly numbers"}

    def test_to_json_omits_download_url(self) -> None:
        item = DriveItem(name="a.txt", download_url="https://download.example/x")

        assert item.to_json() == {"name": "a.txt"}


# ---------------------------------------------------------------------------
# Drive
# ---------------------------------------------------------------------------


class TestDrive:
    def test_from_json_maps_fields(self) -> None:
        drive = Drive.from_json(
            {
                "id": "d-1",
                "driveType": "personal",
                "quota": {"total": 100, "used": 10},
                "root": {"id": "root-id", "folder": {}},
            }
        )

        assert drive.id == DriveId("d-1")
        assert drive.drive_type == "personal"
        assert drive.quota == {"total": 100, "used": 10}
        assert drive.root is not None
        assert drive.root.is_folder


# ---------------------------------------------------------------------------
# Field tags
# ---------------------------------------------------------------------------


class TestDriveItemField:
    def test_wire_names_are_camel_case(self) -> None:
        assert DriveItemField.E_TAG.api_field_name() == "eTag"
        assert DriveItemField.PARENT_REFERENCE.api_field_name() == "parentReference"
        assert DriveItemField.WEB_DAV_URL.api_field_name() == "webDavUrl"
