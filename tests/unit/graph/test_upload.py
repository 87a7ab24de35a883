"""Unit tests for graph/upload.py — resumable upload sessions."""

import pytest
from graph_fakes import FakeClient, json_response

from onedrive_api.errors import ApiError, UnexpectedResponse
from onedrive_api.graph.api import RawResponse
from onedrive_api.graph.models import ItemId
from onedrive_api.graph.upload import (
    ExpectRange,
    UploadSession,
    UploadSessionMeta,
    iter_part_ranges,
)

UPLOAD_URL = "https://contoso.sharepoint.com/_api/v2.0/drive/items/01X/uploadSession?guid=abc"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _session() -> UploadSession:
    return UploadSession.from_json(
        {
            "uploadUrl": UPLOAD_URL,
            "expirationDateTime": "2026-10-18T10:00:00Z",
            "nextExpectedRanges": ["0-"],
        }
    )


# ---------------------------------------------------------------------------
# ExpectRange / metadata
# ---------------------------------------------------------------------------


class TestExpectRange:
    def test_closed_range_becomes_half_open(self) -> None:
        assert ExpectRange.parse("2-7") == ExpectRange(2, 8)

    def test_open_range(self) -> None:
        assert ExpectRange.parse("2-") == ExpectRange(2, None)

    @pytest.mark.parametrize("raw", ["", "abc", "12", "-5", "1-x"])
    def test_invalid_range(self, raw: str) -> None:
        with pytest.raises(UnexpectedResponse):
            ExpectRange.parse(raw)


class TestUploadSessionMeta:
    def test_from_json(self) -> None:
        session = _session()

        assert session.upload_url == UPLOAD_URL
        assert session.next_expected_ranges == [ExpectRange(0, None)]
        assert session.expiration_date_time == "2026-10-18T10:00:00Z"

    def test_missing_upload_url(self) -> None:
        with pytest.raises(UnexpectedResponse, match="uploadUrl"):
            UploadSession.from_json({"nextExpectedRanges": ["0-"]})

    def test_get_meta_is_unauthenticated(self) -> None:
        client = FakeClient(
            json_response(
                200,
                {"expirationDateTime": "2026-10-18T10:00:00Z", "nextExpectedRanges": ["2-"]},
            )
        )

        meta = client.execute(UploadSession.get_meta(UPLOAD_URL))

        assert meta == UploadSessionMeta([ExpectRange(2, None)], "2026-10-18T10:00:00Z")
        assert client.requests[0].method == "GET"
        assert client.requests[0].url == UPLOAD_URL
        assert "Authorization" not in client.requests[0].headers

    @pytest.mark.parametrize("ranges", [[5], "0-", [None]])
    def test_get_meta_rejects_malformed_ranges(self, ranges: object) -> None:
        client = FakeClient(json_response(200, {"nextExpectedRanges": ranges}))

        with pytest.raises(UnexpectedResponse, match="nextExpectedRanges"):
            client.execute(UploadSession.get_meta(UPLOAD_URL))

    def test_from_meta_rebuilds_session(self) -> None:
        meta = UploadSessionMeta([ExpectRange(2, None)], "2026-10-18T10:00:00Z")

        session = UploadSession.from_meta(UPLOAD_URL, meta)

        assert session.upload_url == UPLOAD_URL
        assert session.next_expected_ranges == [ExpectRange(2, None)]


# ---------------------------------------------------------------------------
# upload_part
# ---------------------------------------------------------------------------


class TestUploadPart:
    def test_two_part_upload(self) -> None:
        data = b"12345678"
        session = _session()
        client = FakeClient(
            json_response(202, {"nextExpectedRanges": ["2-"]}),
            json_response(201, {"id": "01NEW", "name": "file.bin", "size": 8}),
        )

        first = client.execute(session.upload_part(data[0:2], range(0, 2), len(data)))
        item = client.execute(session.upload_part(data[2:8], range(2, 8), len(data)))

        assert first is None
        assert item is not None
        assert item.id == ItemId("01NEW")
        assert item.size == 8

        assert client.requests[0].method == "PUT"
        assert client.requests[0].url == UPLOAD_URL
        assert client.requests[0].headers["Content-Range"] == "bytes 0-1/8"
        assert client.requests[0].body == b"12"
        assert client.requests[1].headers["Content-Range"] == "bytes 2-7/8"
        assert "Authorization" not in client.requests[1].headers

    def test_conflict_on_final_part(self) -> None:
        client = FakeClient(json_response(409, {"error": {"code": "nameAlreadyExists"}}))

        with pytest.raises(ApiError) as exc_info:
            client.execute(_session().upload_part(b"ab", range(0, 2), 2))

        assert exc_info.value.status_code == 409

    def test_out_of_order_part_is_range_not_satisfiable(self) -> None:
        client = FakeClient(json_response(416, {"error": {"code": "invalidRange"}}))

        with pytest.raises(ApiError) as exc_info:
            client.execute(_session().upload_part(b"cd", range(2, 4), 8))

        assert exc_info.value.status_code == 416
        assert exc_info.value.code == "invalidRange"
        assert client.requests[0].headers["Content-Range"] == "bytes 2-3/8"

    @pytest.mark.parametrize(
        ("data", "remote_range", "file_size"),
        [
            (b"", range(0, 0), 8),
            (b"ab", range(2, 0), 8),
            (b"ab", range(7, 9), 8),
            (b"abc", range(0, 2), 8),
            (b"ab", range(0, 4, 2), 8),
        ],
    )
    def test_contract_violations(self, data: bytes, remote_range: range, file_size: int) -> None:
        with pytest.raises(ValueError):
            _session().upload_part(data, remote_range, file_size)

    def test_part_larger_than_limit(self) -> None:
        size = (60 << 20) + 1
        with pytest.raises(ValueError, match="too large"):
            _session().upload_part(bytes(size), range(0, size), size)


# ---------------------------------------------------------------------------
# delete
# ---------------------------------------------------------------------------


class TestDelete:
    def test_delete_sends_unauthenticated_delete(self) -> None:
        client = FakeClient(RawResponse(status=204))

        assert client.execute(_session().delete()) is None
        assert client.requests[0].method == "DELETE"
        assert client.requests[0].url == UPLOAD_URL
        assert "Authorization" not in client.requests[0].headers


# ---------------------------------------------------------------------------
# iter_part_ranges
# ---------------------------------------------------------------------------


class TestIterPartRanges:
    def test_splits_into_aligned_parts(self) -> None:
        part = 320 << 10
        ranges = list(iter_part_ranges(2 * part + 5, part))

        assert ranges == [range(0, part), range(part, 2 * part), range(2 * part, 2 * part + 5)]

    def test_small_file_is_one_part(self) -> None:
        assert list(iter_part_ranges(8, 320 << 10)) == [range(0, 8)]

    @pytest.mark.parametrize("part_size", [0, 1000, (60 << 20) + (320 << 10)])
    def test_invalid_part_size(self, part_size: int) -> None:
        with pytest.raises(ValueError):
            iter_part_ranges(1 << 20, part_size)
