"""Completion service client: one chat-completions call per relay request."""
import asyncio
import logging

import httpx

from chatify import config

logger = logging.getLogger(__name__)

# 동시 실행 제한 세마포어
_semaphore = asyncio.Semaphore(config.MAX_CONCURRENT)


class UpstreamError(Exception):
    """The completion service answered with a non-success status."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"upstream returned HTTP {status_code}")
        self.status_code = status_code
        self.body = body


def _make_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=config.UPSTREAM_TIMEOUT)


def build_payload(system_prompt: str, messages: list[dict]) -> dict:
    """Request body: system prompt first, then the conversation turns."""
    return {
        "model": config.OPENAI_MODEL,
        "temperature": config.OPENAI_TEMPERATURE,
        "max_tokens": config.OPENAI_MAX_TOKENS,
        "messages": [{"role": "system", "content": system_prompt}] + [
            {"role": m["role"], "content": m["content"]} for m in messages
        ],
    }


def extract_reply(completion) -> str | None:
    """choices[0].message.content, trimmed. None on any shape mismatch or empty text."""
    if not isinstance(completion, dict):
        return None
    choices = completion.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    message = first.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if not isinstance(content, str):
        return None
    return content.strip() or None


async def request_completion(api_key: str, system_prompt: str, messages: list[dict]) -> str | None:
    """Call the completion service.

    Returns the reply text, or None when the response carries no usable text.
    Raises UpstreamError for non-2xx answers and httpx.RequestError when the
    service cannot be reached.
    """
    payload = build_payload(system_prompt, messages)
    async with _semaphore:
        async with _make_client() as client:
            resp = await client.post(
                config.OPENAI_API_URL,
                json=payload,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {api_key}",
                },
            )

    if not resp.is_success:
        logger.warning("Completion service HTTP error %d", resp.status_code)
        raise UpstreamError(resp.status_code, resp.text)

    try:
        completion = resp.json()
    except ValueError as e:
        logger.warning("Completion response is not JSON: %s", e)
        return None

    reply = extract_reply(completion)
    if reply is None:
        logger.warning("Completion response had no usable text")
    return reply
