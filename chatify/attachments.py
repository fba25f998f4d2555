"""첨부 파일 처리: multipart file parts to AttachmentDetail + prompt summary."""
import base64
import logging

from starlette.datastructures import FormData, UploadFile

from chatify.config import PREVIEW_CHARS
from chatify.models import AttachmentDetail

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"
NO_ATTACHMENTS = "No attachments were included."


def _visual_preview(data: bytes, mime_type: str) -> str:
    """Truncated base64 snippet for images, empty for everything else."""
    if not mime_type.startswith("image/"):
        return ""
    # every 3 input bytes become 4 base64 chars
    encoded = base64.b64encode(data[:PREVIEW_CHARS * 3 // 4]).decode("ascii")
    return f"\n   • Visual preview (base64, truncated): {encoded[:PREVIEW_CHARS]}..."


async def read_attachments(form: FormData) -> list[AttachmentDetail]:
    """Every file part of the form, in arrival order."""
    details = []
    for _, value in form.multi_items():
        if not isinstance(value, UploadFile):
            continue
        data = await value.read()
        mime_type = value.content_type or DEFAULT_MIME_TYPE
        details.append(AttachmentDetail(
            name=value.filename or "upload",
            type=mime_type,
            size=len(data),
            preview=_visual_preview(data, mime_type),
        ))
    if details:
        logger.info("첨부 파일 %d개 수신: %s", len(details), [d.name for d in details])
    return details


def _approx_kb(size: int) -> int:
    # half-up, never below 1KB
    return max(1, int(size / 1024 + 0.5))


def build_attachment_summary(items: list[AttachmentDetail]) -> str:
    if not items:
        return NO_ATTACHMENTS

    lines = [
        f"• {item.name} ({item.type}, ~{_approx_kb(item.size)}KB){item.preview}"
        for item in items
    ]
    return "Attachments provided:\n" + "\n".join(lines)
