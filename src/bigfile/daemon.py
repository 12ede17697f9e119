"""Watch daemon: opens changed files in a local host and reports the outcome."""

from __future__ import annotations

import asyncio
import logging
import signal
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from .document import DetectionState
from .host import LocalHost
from .logging_setup import setup_logging
from .plugin import setup
from .size import SizeProbe
from .watcher import FileWatcher

if TYPE_CHECKING:
    from .config import BigfileConfig
    from .plugin import Bigfile


@dataclass
class DocumentReport:
    """What happened to one document during a load cycle."""

    path: Path
    size: int | None
    state: DetectionState
    immediate: list[str] = field(default_factory=list)
    deferred: list[str] = field(default_factory=list)

    @property
    def is_big(self) -> bool:
        return bool(self.immediate or self.deferred)


@dataclass
class DaemonStats:
    """Statistics for the daemon."""

    start_time: datetime
    files_opened: int = 0
    big_files: int = 0
    features_disabled: int = 0
    errors: int = 0


def process_path(instance: Bigfile, host: LocalHost, path: Path) -> DocumentReport:
    """Open a file in the host, collect what was disabled, then close it.

    Errors raised while loading propagate; the document is closed either way,
    which also drops any post-load work still pending for it.
    """
    try:
        document = host.open(path)
        disabled = instance.processor.disabled_features(document)
        return DocumentReport(
            path=path,
            size=SizeProbe(instance.config.size_unit).probe(document),
            state=instance.processor.detection(document).state,
            immediate=[f.name for f in disabled if not f.deferred],
            deferred=[f.name for f in disabled if f.deferred],
        )
    finally:
        if (opened := host.find(path)) is not None:
            host.close(opened)


class BigfileDaemon:
    """Runs every file that changes under the watch directories through bigfile."""

    def __init__(self, config: BigfileConfig) -> None:
        """Initialize the daemon.

        Args:
            config: Bigfile configuration.

        """
        self.config = config
        self.logger = setup_logging(config)

        self.host = LocalHost()
        self.bigfile = setup(self.host, config)
        self.watcher = FileWatcher(config, self.logger)

        self.stats = DaemonStats(start_time=datetime.now())
        self._running = False

    def process(self, path: Path) -> DocumentReport | None:
        """Process a single file.

        Returns:
            Report for the file, or None if it was skipped or failed.

        """
        if not path.is_file():
            self.logger.debug("Skipping non-file: %s", path)
            return None

        try:
            report = process_path(self.bigfile, self.host, path)
        except Exception:
            self.logger.exception("Failed to process %s", path)
            self.stats.errors += 1
            return None

        self.stats.files_opened += 1
        if report.is_big:
            self.stats.big_files += 1
            self.stats.features_disabled += len(report.immediate) + len(report.deferred)
            self.logger.info(
                "%s (%s units): immediate=%s deferred=%s",
                path.name,
                report.size,
                ",".join(report.immediate) or "-",
                ",".join(report.deferred) or "-",
            )
        return report

    async def run_daemon(self) -> None:
        """Run the daemon until a shutdown signal arrives."""
        self._running = True
        self.logger.info("Starting bigfile watch daemon...")

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._handle_shutdown)

        self.watcher.start(loop)

        try:
            while self._running:
                path = await self.watcher.get_pending(timeout=0.5)
                if path is not None:
                    self.process(path)
        except asyncio.CancelledError:
            self.logger.info("Daemon cancelled")
            raise
        finally:
            self._shutdown_watcher()
            self.logger.info(
                "Daemon stopped. Stats: opened=%d, big=%d, disabled=%d, errors=%d",
                self.stats.files_opened,
                self.stats.big_files,
                self.stats.features_disabled,
                self.stats.errors,
            )

    def _handle_shutdown(self) -> None:
        """Handle shutdown signal."""
        self.logger.info("Shutdown signal received")
        self._running = False

    def stop(self) -> None:
        """Stop the daemon."""
        self._running = False
        self._shutdown_watcher()

    def _shutdown_watcher(self) -> None:
        """Stop watching and drop files that were queued but never opened."""
        self.watcher.stop()
        if dropped := self.watcher.clear_pending():
            self.logger.info("Dropped %d queued file(s) on shutdown", dropped)
