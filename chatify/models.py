"""Pydantic 스키마 정의: relay wire format and composer transcript types."""
import time
import uuid
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

ChatRole = Literal["user", "assistant"]


def new_id() -> str:
    return uuid.uuid4().hex


# ── Relay wire format ────────────────────────────────


class AttachmentMeta(BaseModel):
    """Attachment metadata carried inside the serialized transcript."""
    name: str
    type: str


class RequestMessage(BaseModel):
    """One transcript entry as the composer sends it."""
    role: ChatRole
    content: str
    attachments: list[AttachmentMeta] | None = None


RequestTranscript = TypeAdapter(list[RequestMessage])


class ChatReply(BaseModel):
    """Relay response body."""
    reply: str


class HealthResponse(BaseModel):
    """헬스체크 응답."""
    status: str = "ok"
    version: str = "0.1.0"
    upstream_configured: bool = False


class AttachmentDetail(BaseModel):
    """Per-request description of one uploaded file. Never persisted."""
    name: str
    type: str
    size: int
    preview: str = ""


# ── Composer transcript ──────────────────────────────


class PersistedAttachment(BaseModel):
    """Sent attachment with its bytes inlined as a data URL."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: str
    url: str


class Message(BaseModel):
    """Transcript entry. Immutable once appended."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    role: ChatRole
    content: str
    created_at: float = Field(default_factory=time.time)
    attachments: tuple[PersistedAttachment, ...] | None = None

    def to_request(self) -> dict:
        """Wire form: role, content and attachment name/type only."""
        data: dict = {"role": self.role, "content": self.content}
        if self.attachments is not None:
            data["attachments"] = [{"name": a.name, "type": a.type} for a in self.attachments]
        return data


class AttachmentDraft(BaseModel):
    """A staged file awaiting send, with its local preview reference."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    path: Path
    preview: str

    @property
    def name(self) -> str:
        return self.path.name
