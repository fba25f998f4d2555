"""
Unit tests for attachment extraction and the attachment summary text.
"""

import base64
import io
from unittest.mock import patch

import pytest
from starlette.datastructures import FormData, Headers, UploadFile

from chatify.attachments import (
    NO_ATTACHMENTS,
    build_attachment_summary,
    read_attachments,
)
from chatify.models import AttachmentDetail


def _upload(name: str, data: bytes, content_type: str | None) -> UploadFile:
    headers = Headers({"content-type": content_type}) if content_type else Headers({})
    return UploadFile(file=io.BytesIO(data), filename=name, headers=headers)


class TestBuildAttachmentSummary:
    """Test cases for the summary text block."""

    def test_empty(self) -> None:
        assert build_attachment_summary([]) == "No attachments were included."
        assert NO_ATTACHMENTS == "No attachments were included."

    def test_one_bullet_per_attachment_in_order(self) -> None:
        items = [
            AttachmentDetail(name="notes.txt", type="text/plain", size=1536),
            AttachmentDetail(name="data.csv", type="text/csv", size=100),
        ]

        summary = build_attachment_summary(items)

        assert summary == (
            "Attachments provided:\n"
            "• notes.txt (text/plain, ~2KB)\n"
            "• data.csv (text/csv, ~1KB)"
        )

    def test_size_rounds_half_up(self) -> None:
        items = [AttachmentDetail(name="a.bin", type="application/octet-stream", size=2560)]

        assert "~3KB" in build_attachment_summary(items)

    def test_preview_is_appended_to_bullet(self) -> None:
        items = [AttachmentDetail(name="p.png", type="image/png", size=10, preview="\n   • preview")]

        assert build_attachment_summary(items).endswith("• p.png (image/png, ~1KB)\n   • preview")

    def test_summary_is_repeatable(self) -> None:
        items = [
            AttachmentDetail(name=f"f{i}.txt", type="text/plain", size=i * 700)
            for i in range(4)
        ]

        assert build_attachment_summary(items) == build_attachment_summary(list(items))


class TestReadAttachments:
    """Test cases for decoding multipart file parts."""

    @pytest.mark.asyncio
    async def test_skips_text_fields(self) -> None:
        form = FormData([("messages", "[]")])

        assert await read_attachments(form) == []

    @pytest.mark.asyncio
    async def test_non_image_has_no_preview(self) -> None:
        form = FormData([
            ("messages", "[]"),
            ("attachment-0", _upload("notes.txt", b"hello world", "text/plain")),
        ])

        details = await read_attachments(form)

        assert len(details) == 1
        assert details[0].name == "notes.txt"
        assert details[0].type == "text/plain"
        assert details[0].size == 11
        assert details[0].preview == ""

    @pytest.mark.asyncio
    async def test_missing_type_defaults_to_octet_stream(self) -> None:
        form = FormData([("attachment-0", _upload("blob", b"\x00\x01", None))])

        details = await read_attachments(form)

        assert details[0].type == "application/octet-stream"

    @pytest.mark.asyncio
    async def test_image_preview_is_truncated(self) -> None:
        data = b"\x89PNG\r\n" * 500
        form = FormData([("attachment-0", _upload("photo.png", data, "image/png"))])

        details = await read_attachments(form)

        encoded = base64.b64encode(data).decode("ascii")
        assert details[0].preview == (
            f"\n   • Visual preview (base64, truncated): {encoded[:800]}..."
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("size", [10, 599, 600, 601, 5_000_000])
    async def test_image_preview_encodes_only_the_kept_prefix(self, size) -> None:
        data = bytes(range(256)) * (size // 256) + bytes(range(size % 256))
        form = FormData([("attachment-0", _upload("big.png", data, "image/png"))])

        with patch("chatify.attachments.base64.b64encode", wraps=base64.b64encode) as b64:
            details = await read_attachments(form)

        assert len(b64.call_args.args[0]) <= 600
        encoded = base64.b64encode(data).decode("ascii")
        assert details[0].preview == (
            f"\n   • Visual preview (base64, truncated): {encoded[:800]}..."
        )

    @pytest.mark.asyncio
    async def test_keeps_arrival_order(self) -> None:
        form = FormData([
            ("attachment-0", _upload("b.txt", b"b", "text/plain")),
            ("attachment-1", _upload("a.txt", b"a", "text/plain")),
        ])

        details = await read_attachments(form)

        assert [d.name for d in details] == ["b.txt", "a.txt"]
