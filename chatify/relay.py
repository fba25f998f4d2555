"""Conversation relay: attachment enrichment, upstream call, fallback reply."""
import logging

import httpx

from chatify import config
from chatify.attachments import build_attachment_summary
from chatify.models import AttachmentDetail, RequestMessage
from chatify.upstream import UpstreamError, request_completion

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are Chatify, an upbeat and deeply practical AI guide. You:
- treat every question as a real-life problem to solve with empathy.
- break answers into clear, actionable steps and highlight pros/cons when useful.
- keep explanations concise but thorough, and propose creative ideas when helpful.
- reference any shared files or images to inform your answer. If details are limited, infer possibilities and state assumptions."""


def fallback_reply(latest_user_message: str, attachment_summary: str) -> str:
    return (
        "I couldn't reach my reasoning engine just now, but here's a quick take based on what you shared:"
        f"\n\n{latest_user_message}\n\n{attachment_summary}\n\n"
        "Let's retry in a moment if you need a deeper dive."
    )


def trouble_reply(error: Exception) -> str:
    """Reply for failures nothing else handled."""
    detail = str(error) or type(error).__name__
    return f"I had trouble completing that request ({detail}). Let's try again in a moment."


def _latest_user_index(messages: list[RequestMessage]) -> int | None:
    for index in range(len(messages) - 1, -1, -1):
        if messages[index].role == "user":
            return index
    return None


def latest_user_content(messages: list[RequestMessage]) -> str:
    index = _latest_user_index(messages)
    return messages[index].content if index is not None else ""


def enrich_messages(messages: list[RequestMessage], attachments: list[AttachmentDetail],
                    summary: str) -> list[dict]:
    """Upstream turns; the summary goes onto the latest user turn only."""
    target = _latest_user_index(messages) if attachments else None
    enriched = []
    for index, message in enumerate(messages):
        content = message.content
        if index == target:
            content = f"{content}\n\n{summary}"
        enriched.append({"role": message.role, "content": content})
    return enriched


async def relay(messages: list[RequestMessage], attachments: list[AttachmentDetail]) -> str:
    """Produce the assistant reply for a validated conversation.

    Never raises for upstream problems: missing credentials, error statuses,
    unreachable service and unusable completions all yield the fallback text.
    """
    latest = latest_user_content(messages)
    summary = build_attachment_summary(attachments)

    api_key = config.OPENAI_API_KEY
    if not api_key:
        logger.info("No upstream credential, answering with fallback")
        return fallback_reply(latest, summary)

    try:
        reply = await request_completion(api_key, SYSTEM_PROMPT,
                                         enrich_messages(messages, attachments, summary))
    except UpstreamError as e:
        excerpt = e.body[:config.ERROR_EXCERPT_CHARS]
        return fallback_reply(latest, f"{summary}\n(Reason: {excerpt})")
    except httpx.RequestError as e:
        logger.warning("Completion service unreachable: %s", e)
        excerpt = (str(e) or type(e).__name__)[:config.ERROR_EXCERPT_CHARS]
        return fallback_reply(latest, f"{summary}\n(Reason: {excerpt})")

    if reply is None:
        return fallback_reply(latest, summary)
    return reply
