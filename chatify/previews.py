"""Preview references for staged attachments."""
import logging
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)


class PreviewRegistry:
    """Hands out opaque preview references and tracks the live ones.

    Every reference must be released once its draft is sent or removed;
    ``active`` is how callers verify nothing leaked.
    """

    def __init__(self):
        self._live: dict[str, Path] = {}

    def allocate(self, path: Path) -> str:
        ref = f"preview://{uuid.uuid4().hex}"
        self._live[ref] = path
        return ref

    def release(self, ref: str) -> None:
        if self._live.pop(ref, None) is None:
            logger.debug("Preview already released: %s", ref)

    def resolve(self, ref: str) -> Path | None:
        return self._live.get(ref)

    @property
    def active(self) -> int:
        return len(self._live)
