"""Watch mode for Inkpress.

A watchdog observer reports changes under the template and content
directories. The observer thread only flags that something changed; the
rebuild itself always runs on the calling thread, so builds never overlap.
Changes that arrive while a rebuild is running collapse into a single
follow-up rebuild.

Key classes:
- Watcher: Runs the detect / rebuild loop.
- _ChangeHandler: File system event handler that flags changes.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from collections.abc import Callable, Iterable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .errors import InkpressError

logger = logging.getLogger(__name__)

# Events that do not change file contents
_IGNORED_EVENT_TYPES = {"opened", "closed", "closed_no_write"}


class WatchUnavailableError(InkpressError):
    """File system watching is not available on this platform."""


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, watcher: Watcher):
        super().__init__()
        self.watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type in _IGNORED_EVENT_TYPES:
            return
        path = Path(os.fsdecode(event.src_path))
        if self.watcher.is_ignored(path):
            return
        self.watcher.mark_changed(path)


class Watcher:
    """Rebuilds the site whenever a watched directory changes.

    Attributes:
        paths: Directories to watch; missing ones are skipped.
        on_change: Callback run after each detected change.
        ignore: Paths whose changes never trigger a rebuild.
        debounce_seconds: Quiet period before a rebuild starts.
        poll_interval: How often the loop wakes up while idle.
    """

    def __init__(
        self,
        paths: Iterable[Path],
        on_change: Callable[[], object],
        ignore: Iterable[Path] = (),
        observer_factory: Callable[[], Observer] = Observer,
        debounce_seconds: float = 0.1,
        poll_interval: float = 1.0,
    ):
        self.paths = [Path(p) for p in paths]
        self.on_change = on_change
        self.ignore = [Path(p) for p in ignore]
        self.debounce_seconds = debounce_seconds
        self.poll_interval = poll_interval
        self._observer_factory = observer_factory
        self._observer: Observer | None = None
        self._changed = threading.Event()
        self.rebuild_count = 0

    def is_ignored(self, path: Path) -> bool:
        for ignored in self.ignore:
            if path == ignored or ignored in path.parents:
                return True
        return False

    def mark_changed(self, path: Path | None = None) -> None:
        logger.debug("Change detected: %s", path)
        self._changed.set()

    def start(self) -> None:
        """Start the observer on every existing watch path.

        Raises:
            WatchUnavailableError: If the platform cannot watch the paths.
        """
        handler = _ChangeHandler(self)
        try:
            observer = self._observer_factory()
            scheduled = 0
            for path in self.paths:
                if path.is_dir():
                    observer.schedule(handler, str(path), recursive=True)
                    scheduled += 1
            observer.start()
        except (OSError, NotImplementedError) as exc:
            raise WatchUnavailableError(f"File system watching is unavailable: {exc}") from exc
        if not scheduled:
            logger.warning("None of the watch directories exist; waiting for changes anyway")
        self._observer = observer

    def stop(self) -> None:
        if self._observer:
            self._observer.stop()
            self._observer.join()
            self._observer = None

    def step(self, timeout: float | None = None) -> bool:
        """Wait for a change and rebuild once.

        Args:
            timeout: Longest time to wait for a change, None to wait forever.

        Returns:
            True if a rebuild ran.
        """
        if not self._changed.wait(timeout):
            return False
        if self.debounce_seconds:
            time.sleep(self.debounce_seconds)
        # Changes from here on schedule the next pass.
        self._changed.clear()
        self.rebuild_count += 1
        logger.debug("Starting rebuild %d", self.rebuild_count)
        try:
            self.on_change()
        except Exception:
            logger.exception("Rebuild failed; still watching")
        return True

    def watch(self) -> None:
        """Run the detect / rebuild loop until the process is interrupted."""
        self.start()
        watched = ", ".join(str(p) for p in self.paths if p.is_dir())
        logger.info("Watching %s for changes. Press Ctrl+C to stop.", watched)
        try:
            while True:
                self.step(self.poll_interval)
        finally:
            self.stop()
