#!/usr/bin/env python3
"""터미널 채팅 클라이언트: drives a Composer against a running relay.

Commands:
  /attach <path> [<path> ...]   stage files (up to 4)
  /remove <id>                  unstage a file
  /speak on|off                 toggle spoken replies (needs TTS_CMD)
  /quit                         exit
Anything else is sent as a chat turn.
"""
import asyncio
import logging
import shlex

import httpx

from chatify import config
from chatify.composer import Composer
from chatify.speech import CommandSynthesizer

logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)


def _print_message(message) -> None:
    label = "Chatify" if message.role == "assistant" else "You"
    print(f"\n[{label}] {message.content}\n")


def _handle_command(composer: Composer, line: str) -> bool:
    """Apply a slash command. Returns False when the client should exit."""
    try:
        parts = shlex.split(line)
    except ValueError as e:
        print(f"  {e}")
        print(__doc__)
        return True
    command, args = parts[0], parts[1:]

    if command == "/quit":
        return False
    if command == "/attach":
        staged = composer.stage_attachments(args)
        for draft in staged:
            print(f"  staged {draft.name} (id={draft.id})")
        if len(staged) < len(args):
            print(f"  only {config.MAX_ATTACHMENTS} attachments can be staged")
    elif command == "/remove" and args:
        composer.remove_attachment(args[0])
        print(f"  {len(composer.staged)} attachment(s) staged")
    elif command == "/speak" and args:
        composer.set_auto_speak(args[0].lower() in ("on", "true", "1", "yes"))
        print(f"  auto-speak {'on' if composer.auto_speak else 'off'}")
    else:
        print(__doc__)
    return True


async def run(relay_url: str = config.RELAY_URL) -> None:
    synthesizer = CommandSynthesizer(config.TTS_CMD) if config.TTS_CMD else None
    async with httpx.AsyncClient(base_url=relay_url, timeout=config.UPSTREAM_TIMEOUT + 10) as client:
        async with Composer(client, synthesizer=synthesizer, auto_speak=config.AUTO_SPEAK) as composer:
            _print_message(composer.transcript[0])
            while True:
                try:
                    line = await asyncio.to_thread(input, "> ")
                except EOFError:
                    break
                line = line.strip()
                if line.startswith("/"):
                    if not _handle_command(composer, line):
                        break
                    continue
                composer.input_text = line
                reply = await composer.send()
                if reply is not None:
                    _print_message(reply)


def main():
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
