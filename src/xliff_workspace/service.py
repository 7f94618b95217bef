"""Keep a workspace index current: one full scan, then watch events."""

from __future__ import annotations

import asyncio
import logging
import signal
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.logging import RichHandler

from .config import LOG_LEVELS
from .index import WorkspaceIndex
from .scanner import WorkspaceScanner
from .watcher import WorkspaceWatcher

if TYPE_CHECKING:
    from .config import WorkspaceConfig
    from .events import FileWatchEvent
    from .scanner import WorkspaceScan

LOGGER_NAME = "xliff-workspace"


@dataclass
class ServiceStats:
    """Statistics for the service."""

    start_time: datetime
    scans: int = 0
    events_received: int = 0
    events_applied: int = 0
    events_ignored: int = 0


class WorkspaceService:
    """Scans a workspace once, then folds watcher events into its index."""

    def __init__(self, config: WorkspaceConfig, root_path: Path | None = None) -> None:
        """Initialize the service.

        Args:
            config: Workspace configuration.
            root_path: Workspace to index. Defaults to the configured root.

        Raises:
            ValueError: If no root is given or configured, or the log level
                is invalid.

        """
        root = root_path or config.workspace_root
        if root is None:
            raise ValueError("No workspace root given or configured")

        self.config = config
        self.root_path = Path(root).absolute()
        self.logger = self._setup_logging()

        # Initialize components
        self.scanner = WorkspaceScanner(self.logger)
        self.index = WorkspaceIndex(self.root_path)
        self.watcher = WorkspaceWatcher(
            self.root_path,
            callback=self._on_watch_event,
            logger=self.logger,
        )

        # State
        self.stats = ServiceStats(start_time=datetime.now())
        self._running = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._events: asyncio.Queue[FileWatchEvent] = asyncio.Queue(
            maxsize=config.event_queue_size
        )

    def _setup_logging(self) -> logging.Logger:
        """Set up logging for the service.

        Returns:
            Configured logger instance.

        """
        level = self.config.log_level.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.config.log_level}")

        logger = logging.getLogger(LOGGER_NAME)
        logger.setLevel(level)

        # Clear existing handlers to avoid duplicates if the service is recreated
        if logger.handlers:
            logger.handlers.clear()

        console_handler = RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
        )
        console_handler.setLevel(level)
        logger.addHandler(console_handler)

        self.config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(self.config.log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
        )
        logger.addHandler(file_handler)

        return logger

    def scan(self) -> WorkspaceScan:
        """Run a full scan and rebuild the index from it.

        Returns:
            The scan result.

        Raises:
            ScanError: If the workspace cannot be scanned.

        """
        result = self.scanner.scan(self.root_path)
        self.index = WorkspaceIndex.from_scan(result)
        self.stats.scans += 1
        self.logger.info(
            "Indexed %d files in %d groups under %s",
            result.total_files,
            len(result.groups),
            result.root_path,
        )
        return result

    def _on_watch_event(self, event: FileWatchEvent) -> None:
        """Hand an event from the watcher thread to the event loop.

        Args:
            event: Event reported by the watcher.

        """
        if self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._enqueue, event)

    def _enqueue(self, event: FileWatchEvent) -> None:
        try:
            self._events.put_nowait(event)
        except asyncio.QueueFull:
            self.logger.warning("Event queue full, dropping: %s", event)

    def handle_event(self, event: FileWatchEvent) -> bool:
        """Apply a single event to the index.

        Args:
            event: Event to apply.

        Returns:
            True if the index changed.

        """
        self.stats.events_received += 1
        changed = self.index.apply(event)

        if changed:
            self.stats.events_applied += 1
            self.logger.info("%s (%d groups)", event, len(self.index))
        else:
            self.stats.events_ignored += 1
            self.logger.debug("No index change for %s", event)

        return changed

    async def run(self) -> None:
        """Run until stopped or signalled."""
        self._running = True
        loop = asyncio.get_running_loop()
        self._loop = loop
        self.logger.info("Starting workspace service for %s", self.root_path)

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._handle_shutdown)

        try:
            if self.config.rescan_on_start:
                self.scan()
            self.watcher.start()

            while self._running:
                try:
                    async with asyncio.timeout(self.config.poll_interval):
                        event = await self._events.get()
                except TimeoutError:
                    continue
                self.handle_event(event)

        except asyncio.CancelledError:
            self.logger.info("Service cancelled")
            raise
        finally:
            self.watcher.stop()
            self._loop = None
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.remove_signal_handler(sig)
            self.logger.info(
                "Service stopped. Stats: scans=%d, events=%d, applied=%d, ignored=%d",
                self.stats.scans,
                self.stats.events_received,
                self.stats.events_applied,
                self.stats.events_ignored,
            )

    def _handle_shutdown(self) -> None:
        """Handle shutdown signal."""
        self.logger.info("Shutdown signal received")
        self._running = False

    def stop(self) -> None:
        """Stop the service."""
        self._running = False
        self.watcher.stop()
