"""Configuration from environment variables with validation."""
import os
import logging

logger = logging.getLogger(__name__)

# Relay server
HOST = os.environ.get("HOST", "127.0.0.1")
PORT = int(os.environ.get("PORT", "8450"))

# Upstream completion service. An empty key is a supported setup (fallback mode).
OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY", "").strip()
OPENAI_API_URL = os.environ.get("OPENAI_API_URL", "https://api.openai.com/v1/chat/completions")
OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_TEMPERATURE = min(max(float(os.environ.get("OPENAI_TEMPERATURE", "0.6")), 0.0), 2.0)
OPENAI_MAX_TOKENS = min(max(int(os.environ.get("OPENAI_MAX_TOKENS", "600")), 16), 4096)
UPSTREAM_TIMEOUT = min(max(int(os.environ.get("UPSTREAM_TIMEOUT", "30")), 5), 300)  # 5s-5m
MAX_CONCURRENT = min(max(int(os.environ.get("MAX_CONCURRENT", "4")), 1), 32)  # 1-32

# Attachments
MAX_ATTACHMENTS = 4
PREVIEW_CHARS = 800  # base64 prefix embedded for images
ERROR_EXCERPT_CHARS = 200  # upstream error body excerpt

# Terminal client
RELAY_URL = os.environ.get("RELAY_URL", f"http://{HOST}:{PORT}")
TTS_CMD = os.environ.get("TTS_CMD", "").strip()
AUTO_SPEAK = os.environ.get("AUTO_SPEAK", "true").lower() in ("true", "1", "yes")

VERSION = "0.1.0"

if not OPENAI_API_KEY:
    logger.warning("OPENAI_API_KEY not configured - replies will use the local fallback")

# Log configuration summary
logger.info("Configuration loaded: HOST=%s, PORT=%s, MODEL=%s, UPSTREAM=%s",
            HOST, PORT, OPENAI_MODEL, "configured" if OPENAI_API_KEY else "fallback")
