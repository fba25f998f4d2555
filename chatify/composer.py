"""Conversation composer: transcript state, attachment staging, voice I/O.

One ``send()`` is one relay round trip: staged files are inlined as data URLs
for the local transcript, the transcript (text and attachment metadata only)
goes out as the ``messages`` field and every readable file as its own
``attachment-<n>`` part. Whatever goes wrong, the outcome is an assistant
message in the transcript; ``send()`` does not raise for transport problems.
"""
from __future__ import annotations

import asyncio
import base64
import json
import logging
import mimetypes
from pathlib import Path

import httpx

from chatify.attachments import DEFAULT_MIME_TYPE
from chatify.config import MAX_ATTACHMENTS
from chatify.models import AttachmentDraft, Message, PersistedAttachment
from chatify.previews import PreviewRegistry
from chatify.speech import SpeechError, SpeechRecognizer, SpeechSynthesizer

logger = logging.getLogger(__name__)

GREETING = (
    "Hi, I'm Chatify, your friendly AI co-pilot for everyday challenges. "
    "Ask me anything, speak to me, or share images and files so we can tackle it together!"
)
NO_REPLY = "I'm here, but I couldn't understand the request just yet."


class RelayError(Exception):
    """The relay answered with a non-OK status."""

    def __init__(self, status_code: int):
        super().__init__("Failed to reach Chatify")
        self.status_code = status_code


def _issue_reply(error: Exception) -> str:
    detail = str(error)
    if not detail:
        return "Something unexpected happened. Let's try again!"
    return f"I ran into an issue: {detail}. Please try again."


async def _persist(draft: AttachmentDraft) -> tuple[PersistedAttachment, bytes]:
    """Read a staged file and inline it as a data URL."""
    data = await asyncio.to_thread(draft.path.read_bytes)
    mime_type = mimetypes.guess_type(draft.name)[0] or DEFAULT_MIME_TYPE
    encoded = base64.b64encode(data).decode("ascii")
    persisted = PersistedAttachment(
        id=draft.id,
        name=draft.name,
        type=mime_type,
        url=f"data:{mime_type};base64,{encoded}",
    )
    return persisted, data


class Composer:
    def __init__(
        self,
        client: httpx.AsyncClient,
        endpoint: str = "/api/chat",
        *,
        previews: PreviewRegistry | None = None,
        recognizer: SpeechRecognizer | None = None,
        synthesizer: SpeechSynthesizer | None = None,
        auto_speak: bool = True,
    ):
        self._client = client
        self._endpoint = endpoint
        self._previews = previews or PreviewRegistry()
        self._recognizer = recognizer
        self._synthesizer = synthesizer
        self._transcript: list[Message] = [Message(role="assistant", content=GREETING)]
        self._drafts: list[AttachmentDraft] = []

        self.input_text = ""
        self.auto_speak = auto_speak
        self.is_thinking = False
        self.is_listening = False

        if recognizer is not None:
            recognizer.bind(
                on_result=self._on_recognition_result,
                on_error=self._on_recognition_error,
                on_end=self._on_recognition_end,
            )

    async def __aenter__(self) -> "Composer":
        return self

    async def __aexit__(self, *exc) -> None:
        self.close()

    @property
    def transcript(self) -> tuple[Message, ...]:
        return tuple(self._transcript)

    @property
    def staged(self) -> tuple[AttachmentDraft, ...]:
        return tuple(self._drafts)

    @property
    def can_send(self) -> bool:
        return bool(self.input_text.strip()) or bool(self._drafts)

    @property
    def listening_available(self) -> bool:
        return self._recognizer is not None

    # ── attachment staging ──────────────────────────────

    def stage_attachment(self, path: str | Path) -> AttachmentDraft | None:
        if len(self._drafts) >= MAX_ATTACHMENTS:
            logger.info("Attachment limit reached (%d), ignoring %s", MAX_ATTACHMENTS, path)
            return None
        path = Path(path)
        draft = AttachmentDraft(path=path, preview=self._previews.allocate(path))
        self._drafts.append(draft)
        return draft

    def stage_attachments(self, paths) -> list[AttachmentDraft]:
        """Stage a multi-file selection; files beyond the free slots are ignored."""
        staged = []
        for path in paths:
            draft = self.stage_attachment(path)
            if draft is None:
                break
            staged.append(draft)
        return staged

    def remove_attachment(self, draft_id: str) -> None:
        for draft in self._drafts:
            if draft.id == draft_id:
                self._drafts.remove(draft)
                self._previews.release(draft.preview)
                return

    # ── send ────────────────────────────────────────────

    async def send(self) -> Message | None:
        """Send the current input and staged files; returns the assistant reply message."""
        if self.is_thinking or not self.can_send:
            return None

        self.is_thinking = True
        try:
            snapshot = list(self._drafts)
            results = await asyncio.gather(*(_persist(d) for d in snapshot), return_exceptions=True)
            converted = []
            for draft, result in zip(snapshot, results):
                if isinstance(result, Exception):
                    logger.warning("Dropping unreadable attachment %s: %s", draft.name, result)
                    continue
                if isinstance(result, BaseException):
                    raise result
                converted.append(result)

            user_message = Message(
                role="user",
                content=self.input_text.strip(),
                attachments=tuple(persisted for persisted, _ in converted),
            )
            self.input_text = ""
            for draft in snapshot:
                if draft in self._drafts:
                    self._drafts.remove(draft)
                self._previews.release(draft.preview)
            self._transcript.append(user_message)

            reply = await self._post(converted)
            assistant_message = Message(role="assistant", content=reply)
            self._transcript.append(assistant_message)
            self._announce(assistant_message)
            return assistant_message
        finally:
            self.is_thinking = False

    def _request_files(self, converted: list[tuple[PersistedAttachment, bytes]]) -> list:
        messages = json.dumps([message.to_request() for message in self._transcript])
        files = [("messages", (None, messages))]
        for index, (persisted, data) in enumerate(converted):
            files.append((f"attachment-{index}", (persisted.name, data, persisted.type)))
        return files

    async def _post(self, converted: list[tuple[PersistedAttachment, bytes]]) -> str:
        try:
            resp = await self._client.post(self._endpoint, files=self._request_files(converted))
            if not resp.is_success:
                raise RelayError(resp.status_code)
            payload = resp.json()
        except (httpx.HTTPError, RelayError, ValueError) as e:
            logger.warning("Relay request failed: %s", e)
            return _issue_reply(e)

        reply = payload.get("reply") if isinstance(payload, dict) else None
        if not isinstance(reply, str):
            return NO_REPLY
        return reply

    # ── voice output ────────────────────────────────────

    def set_auto_speak(self, enabled: bool) -> None:
        self.auto_speak = enabled
        if not enabled and self._synthesizer is not None:
            self._synthesizer.cancel()

    def _announce(self, message: Message) -> None:
        if not self.auto_speak or self._synthesizer is None:
            return
        self._synthesizer.cancel()
        self._synthesizer.speak(message.content)

    # ── voice input ─────────────────────────────────────

    def toggle_listening(self) -> None:
        if self._recognizer is None:
            return
        if self.is_listening:
            self._recognizer.stop()
            self.is_listening = False
            return
        try:
            self._recognizer.start()
            self.is_listening = True
        except SpeechError as e:
            logger.warning("Speech recognition failed to start: %s", e)
            self.is_listening = False

    def _on_recognition_result(self, transcript: str) -> None:
        previous = self.input_text
        self.input_text = f"{previous.strip()} {transcript}".strip() if previous else transcript
        self.is_listening = False

    def _on_recognition_error(self, error: Exception) -> None:
        logger.info("Speech recognition error: %s", error)
        self.is_listening = False

    def _on_recognition_end(self) -> None:
        self.is_listening = False

    # ── teardown ────────────────────────────────────────

    def close(self) -> None:
        """Release every preview and stop the voice engines."""
        for draft in self._drafts:
            self._previews.release(draft.preview)
        self._drafts.clear()
        if self._recognizer is not None and self.is_listening:
            self._recognizer.stop()
            self.is_listening = False
        if self._synthesizer is not None:
            self._synthesizer.cancel()
