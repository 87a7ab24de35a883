"""Resumable upload sessions for large files.

A session is created by ``OneDrive.new_upload_session``. Its ``upload_url``
is a capability URL: requests to it carry no bearer token. Parts must be
sent in increasing, non-overlapping order and, except for the last one,
sized in multiples of 320 KiB; the server answers 416 otherwise. The part
that completes the file returns the finished item; there is no separate
commit step.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from onedrive_api.errors import UnexpectedResponse
from onedrive_api.graph.api import (
    HEADER_CONTENT_RANGE,
    Api,
    RawRequest,
    RawResponse,
    parse_json,
    parse_no_content,
    parse_optional,
)
from onedrive_api.graph.models import DriveItem

logger = logging.getLogger(__name__)

FIELD_UPLOAD_URL = "uploadUrl"
FIELD_NEXT_EXPECTED_RANGES = "nextExpectedRanges"
FIELD_EXPIRATION_DATE_TIME = "expirationDateTime"

UPLOAD_PART_ALIGNMENT = 320 << 10  # 320 KiB
UPLOAD_PART_LIMIT = 60 << 20  # 60 MiB


@dataclass(frozen=True)
class ExpectRange:
    """A byte range the server still expects, as a half-open ``[start, end)``.

    ``end`` is None when the range runs to the end of the file.
    """

    start: int
    end: int | None = None

    @classmethod
    def parse(cls, raw: str) -> ExpectRange:
        """Parse the wire form ``"start-last"`` (inclusive) or ``"start-"``."""
        start_s, sep, last_s = raw.partition("-")
        try:
            start = int(start_s)
            end = int(last_s) + 1 if last_s else None
        except ValueError as exc:
            raise UnexpectedResponse(f"Invalid expected range {raw!r}") from exc
        if not sep:
            raise UnexpectedResponse(f"Invalid expected range {raw!r}")
        return cls(start, end)


@dataclass(frozen=True)
class UploadSessionMeta:
    """Server-side state of an upload session."""

    next_expected_ranges: list[ExpectRange] = field(default_factory=list)
    expiration_date_time: str | None = None

    @classmethod
    def from_json(cls, raw: Any) -> UploadSessionMeta:
        if not isinstance(raw, dict):
            raise UnexpectedResponse("Upload session response is not a JSON object")
        ranges = raw.get(FIELD_NEXT_EXPECTED_RANGES) or []
        if not isinstance(ranges, list) or not all(isinstance(r, str) for r in ranges):
            raise UnexpectedResponse("Invalid field `nextExpectedRanges`")
        return cls(
            next_expected_ranges=[ExpectRange.parse(r) for r in ranges],
            expiration_date_time=raw.get(FIELD_EXPIRATION_DATE_TIME),
        )


@dataclass(frozen=True)
class UploadSession:
    """A server-allocated target for a chunked upload."""

    upload_url: str
    next_expected_ranges: list[ExpectRange] = field(default_factory=list)
    expiration_date_time: str | None = None

    @classmethod
    def from_json(cls, raw: Any) -> UploadSession:
        if not isinstance(raw, dict) or not isinstance(raw.get(FIELD_UPLOAD_URL), str):
            raise UnexpectedResponse("Missing field `uploadUrl`")
        meta = UploadSessionMeta.from_json(raw)
        return cls.from_meta(raw[FIELD_UPLOAD_URL], meta)

    @classmethod
    def from_meta(cls, upload_url: str, meta: UploadSessionMeta) -> UploadSession:
        return cls(
            upload_url=upload_url,
            next_expected_ranges=list(meta.next_expected_ranges),
            expiration_date_time=meta.expiration_date_time,
        )

    @staticmethod
    def get_meta(upload_url: str) -> Api[UploadSessionMeta]:
        """Query the ranges still expected, e.g. to resume after a restart."""
        request = RawRequest("GET", upload_url)
        return Api(request, lambda resp: UploadSessionMeta.from_json(parse_json(resp)))

    def upload_part(
        self, data: bytes, remote_range: range, file_size: int
    ) -> Api[DriveItem | None]:
        """Upload one part of the file.

        Args:
            data: The bytes of this part.
            remote_range: Half-open byte range of ``data`` within the file
                (``range(start, end)``, step 1).
            file_size: Total size of the file.

        Returns:
            An Api yielding None while bytes remain outstanding, or the
            finished DriveItem once this part completes the file.

        Raises:
            ValueError: If the range is empty or inconsistent with
                ``file_size``, ``len(data)`` differs from its length, or the
                part exceeds 60 MiB.
        """
        start, end = remote_range.start, remote_range.stop
        if remote_range.step != 1 or not 0 <= start < end <= file_size:
            raise ValueError(f"Invalid range {start}..{end} for file size {file_size}")
        if len(data) != end - start:
            raise ValueError(f"Length mismatch: {len(data)} B for range {start}..{end}")
        if len(data) > UPLOAD_PART_LIMIT:
            raise ValueError(
                f"Data too large for one part ({len(data)} B > {UPLOAD_PART_LIMIT} B)"
            )

        request = RawRequest("PUT", self.upload_url).bytes_body(data)
        request.headers[HEADER_CONTENT_RANGE] = f"bytes {start}-{end - 1}/{file_size}"

        def parse(response: RawResponse) -> DriveItem | None:
            raw = parse_optional(response)
            if raw is None:
                logger.debug("[upload_part] part accepted; range:%d-%d", start, end)
                return None
            logger.info("[upload_part] upload completed; size:%d", file_size)
            return DriveItem.from_json(raw)

        return Api(request, parse)

    def delete(self) -> Api[None]:
        """Cancel the session and discard the bytes uploaded so far."""
        request = RawRequest("DELETE", self.upload_url)
        return Api(request, parse_no_content)


def iter_part_ranges(file_size: int, part_size: int) -> Iterator[range]:
    """Split a file into contiguous ranges suitable for ``upload_part``.

    Args:
        file_size: Total size of the file, in bytes.
        part_size: Bytes per part; a positive multiple of 320 KiB, at most 60 MiB.

    Returns:
        An iterator of half-open ranges covering ``[0, file_size)`` in order.

    Raises:
        ValueError: If ``part_size`` is not allowed.
    """
    if part_size <= 0 or part_size % UPLOAD_PART_ALIGNMENT or part_size > UPLOAD_PART_LIMIT:
        raise ValueError(f"Part size must be a multiple of 320 KiB up to 60 MiB, got {part_size}")
    return (
        range(start, min(start + part_size, file_size))
        for start in range(0, file_size, part_size)
    )
