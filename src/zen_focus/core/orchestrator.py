"""Wires the store, ledger, chime and timer engine together."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Callable

from zen_focus.core.clock import Clock, SystemClock
from zen_focus.core.config import Config, get_config
from zen_focus.focus.chime import ChimePlayer
from zen_focus.focus.ledger import StatisticsLedger
from zen_focus.focus.timer import LifecycleEvent, TimerEngine
from zen_focus.storage.database import KeyValueStore, open_store
from zen_focus.storage.preferences import Preferences

logger = logging.getLogger(__name__)


class Orchestrator:
    """Owns every component for one process.

    The store is opened once; everything else is constructed with explicit
    references to it rather than reaching for shared globals.
    """

    def __init__(self, config: Config | None = None, clock: Clock | None = None):
        self.config = config or get_config()
        self.clock = clock or SystemClock()
        self._running = False

        # Initialized in start()
        self.store: KeyValueStore | None = None
        self.preferences: Preferences | None = None
        self.ledger: StatisticsLedger | None = None
        self.chime: ChimePlayer | None = None
        self.engine: TimerEngine | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> TimerEngine:
        """Open storage and build the engine (which recovers any running session)."""
        if self._running and self.engine is not None:
            logger.warning("Orchestrator already running")
            return self.engine

        self.config.ensure_directories()
        self.store = await open_store(self.config.db_path)

        self.preferences = Preferences(
            self.store,
            default_focus_minutes=self.config.timer.default_focus_minutes,
            default_break_minutes=self.config.timer.default_break_minutes,
            default_sound_enabled=self.config.sound.enabled,
        )
        self.ledger = StatisticsLedger(
            self.store,
            self.clock,
            retention_days=self.config.ledger.retention_days,
            history_limit=self.config.ledger.history_limit,
        )
        self.chime = ChimePlayer(
            chime_file=self.config.sound.chime_file,
            player_command=self.config.sound.player_command,
        )
        self.engine = TimerEngine(
            self.store,
            self.ledger,
            self.preferences,
            clock=self.clock,
            chime=self.chime,
            tick_interval=self.config.timer.tick_interval_seconds,
        )

        self._running = True
        logger.info("Zen Focus started")
        return self.engine

    async def stop(self) -> None:
        """Stop ticking and persist everything still pending."""
        if not self._running:
            return

        if self.engine:
            self.engine.close()
        if self.chime:
            await self.chime.wait()
        if self.store:
            await self.store.close()

        self._running = False
        logger.info("Zen Focus stopped")

    def setup_lifecycle_signals(self, on_interrupt: Callable[[], None] | None = None) -> None:
        """Map job-control signals to lifecycle events.

        SIGTSTP (Ctrl-Z) backgrounds the engine before the process stops;
        SIGCONT foregrounds it again. SIGINT/SIGTERM call `on_interrupt`.
        """
        loop = asyncio.get_running_loop()

        if on_interrupt is not None:
            for sig in (signal.SIGTERM, signal.SIGINT):
                try:
                    loop.add_signal_handler(sig, on_interrupt)
                except (NotImplementedError, RuntimeError):
                    logger.debug(f"Cannot handle {sig.name} on this platform")

        if not hasattr(signal, "SIGTSTP"):
            return

        try:
            loop.add_signal_handler(signal.SIGTSTP, self._handle_suspend)
            loop.add_signal_handler(signal.SIGCONT, self._handle_resume)
        except (NotImplementedError, RuntimeError):
            logger.debug("Job-control signals unavailable")

    def _handle_suspend(self) -> None:
        logger.info("Received SIGTSTP, suspending")
        if self.engine:
            self.engine.handle_lifecycle(LifecycleEvent.BACKGROUNDED)
        signal.raise_signal(signal.SIGSTOP)

    def _handle_resume(self) -> None:
        logger.info("Received SIGCONT, resuming")
        if self.engine:
            self.engine.handle_lifecycle(LifecycleEvent.FOREGROUNDED)
