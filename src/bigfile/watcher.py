"""File system watcher that feeds new and changed files to the host."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable

from watchdog.events import FileCreatedEvent, FileModifiedEvent, FileMovedEvent, FileSystemEventHandler
from watchdog.observers import Observer

if TYPE_CHECKING:
    from watchdog.events import FileSystemEvent

    from .config import BigfileConfig


class OpenEventHandler(FileSystemEventHandler):
    """Turns file system events into document open requests."""

    def __init__(
        self,
        callback: Callable[[Path], None],
        logger: logging.Logger,
        ignore: Iterable[Path] = (),
    ) -> None:
        """Initialize the event handler.

        Args:
            callback: Function to call with each file to open.
            logger: Logger instance.
            ignore: Files whose events are dropped, such as our own log file.

        """
        super().__init__()
        self.callback = callback
        self.logger = logger
        self.ignore = {path.expanduser().resolve() for path in ignore}

    def on_created(self, event: FileSystemEvent) -> None:
        if isinstance(event, FileCreatedEvent) and not event.is_directory:
            self._request(Path(os.fsdecode(event.src_path)))

    def on_modified(self, event: FileSystemEvent) -> None:
        if isinstance(event, FileModifiedEvent) and not event.is_directory:
            self._request(Path(os.fsdecode(event.src_path)))

    def on_moved(self, event: FileSystemEvent) -> None:
        """Handle file moves (editors often save through a rename)."""
        if isinstance(event, FileMovedEvent) and not event.is_directory:
            self._request(Path(os.fsdecode(event.dest_path)))

    def _request(self, path: Path) -> None:
        if path.resolve() in self.ignore:
            return
        self.logger.debug("File event: %s", path)
        self.callback(path)


class FileWatcher:
    """Watches directories and queues files for the daemon to open."""

    def __init__(self, config: BigfileConfig, logger: logging.Logger) -> None:
        """Initialize the file watcher.

        Args:
            config: Bigfile configuration.
            logger: Logger instance.

        """
        self.config = config
        self.logger = logger
        self._observer: Observer | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._pending: asyncio.Queue[Path] = asyncio.Queue()
        self._running = False

    def _on_file_event(self, path: Path) -> None:
        """Queue a path. Called from the observer thread."""
        if self._loop is not None and self._loop.is_running():
            self._loop.call_soon_threadsafe(self._enqueue, path)
        else:
            self._enqueue(path)

    def _enqueue(self, path: Path) -> None:
        try:
            self._pending.put_nowait(path)
        except asyncio.QueueFull:
            self.logger.warning("Open queue full, dropping: %s", path.name)

    def start(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Start watching configured directories.

        Args:
            loop: Event loop that consumes the queue. Events are handed
                over to it thread-safely.

        """
        if self._observer is not None:
            return

        self._loop = loop
        self._observer = Observer()
        handler = OpenEventHandler(self._on_file_event, self.logger, ignore=[self.config.log_file])

        for directory in self.config.watch_directories:
            if directory.exists():
                self._observer.schedule(handler, str(directory), recursive=True)
                self.logger.info("Watching directory: %s", directory)
            else:
                self.logger.warning("Watch directory does not exist: %s", directory)

        self._observer.start()
        self._running = True
        self.logger.info("File watcher started")

    def stop(self) -> None:
        """Stop watching directories."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5.0)
            self._observer = None
            self._running = False
            self.logger.info("File watcher stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    async def get_pending(self, timeout: float | None = None) -> Path | None:
        """Get the next queued file.

        Args:
            timeout: Maximum time to wait.

        Returns:
            Path to open, or None on timeout.

        """
        try:
            if timeout is not None:
                return await asyncio.wait_for(self._pending.get(), timeout=timeout)
            return await self._pending.get()
        except asyncio.TimeoutError:
            return None

    def clear_pending(self) -> int:
        """Drop all queued files, returning how many were dropped."""
        count = 0
        while not self._pending.empty():
            try:
                self._pending.get_nowait()
                count += 1
            except asyncio.QueueEmpty:
                break
        return count
