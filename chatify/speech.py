"""Speech capabilities consumed by the composer.

The composer never talks to a speech engine directly. It receives a
recognizer and/or a synthesizer at construction time; either may be absent,
in which case the matching voice feature is simply unavailable.
"""
from __future__ import annotations

import logging
import re
import shlex
import subprocess
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class SpeechError(RuntimeError):
    """A speech engine refused to start."""


class SpeechRecognizer(Protocol):
    """Speech-to-text engine with an event-driven result channel."""

    def bind(
        self,
        on_result: Callable[[str], None],
        on_error: Callable[[Exception], None],
        on_end: Callable[[], None],
    ) -> None: ...

    def start(self) -> None: ...

    def stop(self) -> None: ...


class SpeechSynthesizer(Protocol):
    """Text-to-speech engine speaking one utterance at a time."""

    def speak(self, text: str) -> None: ...

    def cancel(self) -> None: ...


_CODE_BLOCK = re.compile(r"```.*?```", re.DOTALL)
_INLINE_CODE = re.compile(r"`[^`]+`")
_EMPHASIS = re.compile(r"\*{1,2}([^*]+)\*{1,2}")
_URL = re.compile(r"https?://\S+")


def spoken_text(reply: str) -> str:
    """Reply text as it should be read aloud: no code, links or emphasis marks."""
    reply = _CODE_BLOCK.sub("", reply)
    reply = _INLINE_CODE.sub("", reply)
    reply = _EMPHASIS.sub(r"\1", reply)
    reply = _URL.sub("", reply)
    return " ".join(reply.split())


class CommandSynthesizer:
    """Speaks through an external TTS command such as ``espeak-ng`` or ``say``.

    The text is passed as the last argument. Starting a new utterance
    terminates the previous one, so at most one process is speaking.
    """

    def __init__(self, command: str) -> None:
        self._argv = shlex.split(command)
        if not self._argv:
            raise ValueError("TTS command must not be empty")
        self._proc: Optional[subprocess.Popen] = None

    def speak(self, text: str) -> None:
        self.cancel()
        spoken = spoken_text(text)
        if not spoken:
            return
        try:
            self._proc = subprocess.Popen(
                [*self._argv, spoken],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            logger.warning("TTS command failed to start (%s): %s", self._argv[0], e)
            self._proc = None

    def cancel(self) -> None:
        proc, self._proc = self._proc, None
        if proc is None or proc.poll() is not None:
            return
        proc.terminate()
        try:
            proc.wait(timeout=2)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait()
