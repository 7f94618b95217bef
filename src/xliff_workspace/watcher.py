"""File system watcher for XLIFF workspaces using watchdog."""

from __future__ import annotations

import logging
import queue
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .errors import WatchError
from .events import (
    EventType,
    FileWatchEvent,
    directory_to_register,
    directory_to_release,
    translate_event,
)
from .naming import is_hidden, is_localization_file
from .scanner import iter_workspace_directories

if TYPE_CHECKING:
    from watchdog.events import FileSystemEvent
    from watchdog.observers.api import BaseObserver

EventCallback = Callable[[FileWatchEvent], None]


class WorkspaceEventHandler(FileSystemEventHandler):
    """Translates events for one observer run and tracks the watched directories.

    The observer watches the whole root recursively. Events below hidden
    directories are dropped here, and the set of visible directories is
    kept current as directories appear and disappear.
    """

    def __init__(
        self,
        root_path: Path,
        deliver: EventCallback,
        logger: logging.Logger,
    ) -> None:
        """Initialize the event handler.

        Args:
            root_path: Root of the watched workspace.
            deliver: Function receiving each translated event.
            logger: Logger instance.

        """
        super().__init__()
        self.root_path = root_path
        self.deliver = deliver
        self.logger = logger
        self._directories: set[Path] = set()
        self._directories_lock = threading.Lock()

    @property
    def watched_directories(self) -> frozenset[Path]:
        """Non-hidden directories currently covered by the watch."""
        with self._directories_lock:
            return frozenset(self._directories)

    def is_visible(self, path: Path, *, is_directory: bool = False) -> bool:
        """Check that a path is inside the root and not below a hidden directory."""
        try:
            relative = path.relative_to(self.root_path)
        except ValueError:
            return False
        parts = relative.parts if is_directory else relative.parent.parts
        return not any(is_hidden(part) for part in parts)

    def register_tree(self, top: Path) -> list[Path]:
        """Record a directory and its non-hidden subdirectories.

        Unreadable directories are logged and skipped.

        Returns:
            Localization files already present in newly recorded directories.

        """
        found: list[Path] = []

        for directory, file_names in iter_workspace_directories(top, onerror=self._log_walk_error):
            with self._directories_lock:
                if directory in self._directories:
                    continue
                self._directories.add(directory)

            self.logger.debug("Watching directory: %s", directory)
            found.extend(directory / name for name in file_names if is_localization_file(name))

        return found

    def release_tree(self, top: Path) -> int:
        """Forget a directory and everything below it.

        Returns:
            Number of directories released.

        """
        with self._directories_lock:
            released = [d for d in self._directories if d == top or top in d.parents]
            self._directories.difference_update(released)

        if released:
            self.logger.debug("Released %d directories under %s", len(released), top)
        return len(released)

    def _log_walk_error(self, error: OSError) -> None:
        self.logger.warning("Cannot read directory %s: %s", error.filename, error.strerror or error)

    def _visible_event(self, event: FileWatchEvent) -> FileWatchEvent | None:
        """Restrict an event to the non-hidden part of the workspace.

        A move out of view becomes a deletion of its source, a file moved
        into view becomes a creation.
        """
        new_visible = self.is_visible(event.path, is_directory=event.is_directory)
        if event.type is not EventType.RENAMED or event.old_path in (None, event.path):
            return event if new_visible else None

        old_visible = self.is_visible(event.old_path, is_directory=event.is_directory)
        if old_visible and new_visible:
            return event
        if event.is_directory:
            # Files of a directory moved into view come from register_tree
            return FileWatchEvent(EventType.DELETED, event.old_path, is_directory=True) if old_visible else None

        if old_visible and is_localization_file(event.old_path):
            return FileWatchEvent(EventType.DELETED, event.old_path)
        if new_visible and is_localization_file(event.path):
            return FileWatchEvent(EventType.CREATED, event.path)
        return None

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Handle every raw event in arrival order.

        Args:
            event: File system event.

        """
        if (gone := directory_to_release(event)) is not None:
            self.release_tree(gone)

        watch_event = translate_event(event)
        if watch_event is not None and (watch_event := self._visible_event(watch_event)) is not None:
            self.deliver(watch_event)

        appeared = directory_to_register(event)
        if appeared is not None and self.is_visible(appeared, is_directory=True):
            # Files may land in a new directory before it is watched
            for path in self.register_tree(appeared):
                self.deliver(FileWatchEvent(EventType.CREATED, path))


class WorkspaceWatcher:
    """Watches a workspace tree and reports changes to XLIFF files.

    Events go to ``callback`` when one is given, otherwise they are queued
    and can be drained with :meth:`get_pending_event`.
    """

    def __init__(
        self,
        root_path: Path,
        callback: EventCallback | None = None,
        logger: logging.Logger | None = None,
        *,
        queue_size: int = 0,
    ) -> None:
        """Initialize the watcher.

        Args:
            root_path: Root directory of the workspace.
            callback: Called once per event on the watcher thread. Must not
                block for long.
            logger: Logger instance.
            queue_size: Maximum queued events when no callback is set,
                0 for unbounded.

        """
        self.root_path = Path(root_path).absolute()
        self.callback = callback
        self.logger = logger or logging.getLogger(__name__)
        self._observer: BaseObserver | None = None
        self._handler: WorkspaceEventHandler | None = None
        self._pending_events: queue.Queue[FileWatchEvent] = queue.Queue(maxsize=queue_size)
        self._lock = threading.Lock()
        self._running = False
        self._starting = False

    def _on_event(self, event: FileWatchEvent) -> None:
        """Deliver an event to the callback or the pending queue.

        Args:
            event: Translated event.

        """
        if self.callback is None:
            try:
                self._pending_events.put_nowait(event)
            except queue.Full:
                self.logger.warning("Event queue full, dropping: %s", event)
            return

        try:
            self.callback(event)
        except Exception:
            # Keep observing; a failing consumer must not end the watch
            self.logger.exception("Event callback failed for %s", event)

    def start(self) -> None:
        """Start watching the workspace.

        A call made while another call is still starting the watcher
        returns at once.

        Raises:
            WatchError: If the root is not a directory or cannot be watched.

        """
        with self._lock:
            if self._running or self._starting:
                return
            self._starting = True

        try:
            if not self.root_path.is_dir():
                raise WatchError(f"Watch root is not a directory: {self.root_path}", self.root_path)

            observer = Observer()
            handler = WorkspaceEventHandler(self.root_path, self._on_event, self.logger)
            handler.register_tree(self.root_path)
            try:
                observer.schedule(handler, str(self.root_path), recursive=True)
                observer.start()
            except OSError as e:
                raise WatchError(f"Cannot watch {self.root_path}: {e}", self.root_path) from e
        except BaseException:
            with self._lock:
                self._starting = False
            raise

        with self._lock:
            self._observer = observer
            self._handler = handler
            self._running = True
            self._starting = False

        self.logger.info(
            "Watching %s (%d directories)",
            self.root_path,
            len(handler.watched_directories),
        )

    def stop(self) -> None:
        """Stop watching and wait for the event thread to exit."""
        with self._lock:
            if not self._running:
                return
            observer, self._observer = self._observer, None
            self._handler = None
            self._running = False

        observer.stop()
        # stop() may be called from the callback, which runs on the observer thread
        if threading.current_thread() is not observer:
            observer.join()
        self.logger.info("Stopped watching %s", self.root_path)

    @property
    def is_running(self) -> bool:
        """Check if watcher is running."""
        with self._lock:
            return self._running

    @property
    def watched_directories(self) -> frozenset[Path]:
        """Directories currently being watched."""
        handler = self._handler
        return handler.watched_directories if handler is not None else frozenset()

    def get_pending_event(self, timeout: float | None = None) -> FileWatchEvent | None:
        """Get the next queued event.

        Args:
            timeout: Maximum time to wait, None to block.

        Returns:
            The next event, or None on timeout.

        """
        try:
            return self._pending_events.get(timeout=timeout)
        except queue.Empty:
            return None

    def clear_pending(self) -> int:
        """Clear all pending events.

        Returns:
            Number of events cleared.

        """
        count = 0
        while True:
            try:
                self._pending_events.get_nowait()
            except queue.Empty:
                break
            count += 1
        return count
