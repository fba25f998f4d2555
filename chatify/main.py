"""FastAPI 메인 앱: chat relay endpoint and health check."""
import uuid
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from chatify import config
from chatify.attachments import read_attachments
from chatify.models import ChatReply, HealthResponse, RequestTranscript
from chatify.relay import relay, trouble_reply

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Chatify Relay", version=config.VERSION)


def _reject(reply: str) -> JSONResponse:
    """Structural validation failure."""
    logger.warning("Rejected chat request: %s", reply)
    return JSONResponse(ChatReply(reply=reply).model_dump(), status_code=400)


# ── request id ───────────────────────────────────────


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = str(uuid.uuid4())
    request.state.request_id = rid
    response = await call_next(request)
    response.headers["X-Request-ID"] = rid
    return response


# ── 헬스체크 ──────────────────────────────────────────


@app.get("/api/health", response_model=HealthResponse)
async def health():
    return HealthResponse(version=config.VERSION, upstream_configured=bool(config.OPENAI_API_KEY))


# ── Chat API ─────────────────────────────────────────


@app.post("/api/chat", response_model=ChatReply)
async def api_chat(request: Request):
    """Relay one conversation turn. Always answers with a JSON reply."""
    try:
        content_type = request.headers.get("content-type", "")
        if "multipart/form-data" not in content_type:
            return _reject("Invalid payload format.")

        # uploads are spooled per request and closed on exit
        async with request.form() as form:
            raw_messages = form.get("messages")
            if not isinstance(raw_messages, str):
                return _reject("Missing conversation context.")

            try:
                messages = RequestTranscript.validate_json(raw_messages)
            except ValidationError:
                return _reject("The conversation payload could not be parsed.")

            attachments = await read_attachments(form)

        reply = await relay(messages, attachments)
        return ChatReply(reply=reply)

    except Exception as e:
        logger.exception("Chat relay error (request %s)",
                         getattr(request.state, "request_id", "-"))
        return JSONResponse(ChatReply(reply=trouble_reply(e)).model_dump(), status_code=200)


# ── 서버 실행 ────────────────────────────────────────


def main():
    """uvicorn으로 서버 시작."""
    import uvicorn
    logger.info("🚀 Chatify relay 시작 %s:%s (upstream=%s)",
                config.HOST, config.PORT, "configured" if config.OPENAI_API_KEY else "fallback")
    uvicorn.run(app, host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    main()
