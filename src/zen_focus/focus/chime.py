"""Fire-and-forget completion chime."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


class ChimePlayer:
    """Plays the completion sound without ever blocking or raising.

    With a chime file configured, the file is handed to an external player
    command. Otherwise the terminal bell is rung.
    """

    def __init__(self, chime_file: Path | None = None, player_command: list[str] | None = None):
        self.chime_file = chime_file
        self.player_command = player_command or ["paplay"]
        self._tasks: set[asyncio.Task] = set()

    def play(self) -> None:
        """Schedule playback and return immediately."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._ring_bell()
            return

        try:
            task = loop.create_task(self._play())
        except Exception as e:
            logger.warning(f"Could not schedule chime: {e}")
            return
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _play(self) -> None:
        if self.chime_file is None:
            self._ring_bell()
            return

        try:
            process = await asyncio.create_subprocess_exec(
                *self.player_command,
                str(self.chime_file),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            returncode = await process.wait()
            if returncode != 0:
                logger.warning(f"Chime player exited with status {returncode}")
        except Exception as e:
            logger.warning(f"Could not play chime: {e}")

    @staticmethod
    def _ring_bell() -> None:
        try:
            sys.stdout.write("\a")
            sys.stdout.flush()
        except Exception as e:
            logger.debug(f"Could not ring terminal bell: {e}")

    async def wait(self) -> None:
        """Wait for in-flight playback (used on shutdown)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
