"""
File Watcher - Polling-based hot reload
=======================================

Polls the modification time of watched files and calls a callback
when one changes. Used to reload the rules file and the settings file
without restarting the host.
"""

import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

from core.logging import get_logger

logger = get_logger("services.watcher")


@dataclass
class WatchedFile:
    """A watched path, its last seen mtime and the change callback."""
    path: Path
    callback: Callable[[], object]
    mtime: Optional[float] = None


class FileWatcher:
    """
    Calls back when watched files change on disk.

    A file that disappears is reported once and otherwise ignored; its
    reappearance counts as a change.

    Example:
        watcher = FileWatcher(interval=5.0)
        watcher.watch(store.rules_path, store.load)
        watcher.start()
    """

    def __init__(self, interval: float = 5.0):
        """
        Initialize the watcher.

        Args:
            interval: Seconds between polls
        """
        self.interval = interval
        self._files: Dict[Path, WatchedFile] = {}
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def watch(self, path: str, callback: Callable[[], object]) -> None:
        """
        Start watching a file.

        Args:
            path: File to watch
            callback: Called with no arguments after a change
        """
        entry = WatchedFile(path=Path(path), callback=callback, mtime=self._stat(Path(path)))
        with self._lock:
            self._files[entry.path] = entry
        logger.info(f"Watching for file changes on: {entry.path}")

    def check_once(self) -> List[Path]:
        """
        Poll every watched file once.

        Returns:
            Paths whose callbacks were run
        """
        with self._lock:
            entries = list(self._files.values())

        changed = []
        for entry in entries:
            mtime = self._stat(entry.path)

            if mtime is None:
                if entry.mtime is not None:
                    logger.info(f"Watched file is not accessible or has been deleted: {entry.path}")
                entry.mtime = None
                continue

            if mtime == entry.mtime:
                continue

            entry.mtime = mtime
            logger.info(f"Change detected in {entry.path}. Reloading...")
            try:
                entry.callback()
            except Exception as e:
                logger.error(f"Reload callback for {entry.path} failed: {e}", exc_info=True)
            changed.append(entry.path)

        return changed

    def start(self) -> None:
        """Start polling in a daemon thread."""
        if self.running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="file-watcher", daemon=True)
        self._thread.start()
        logger.debug(f"Started file watcher (poll interval: {self.interval}s)")

    def stop(self) -> None:
        """Stop polling."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5)
        self._thread = None
        logger.debug("Stopped file watcher")

    def _loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            self.check_once()

    @staticmethod
    def _stat(path: Path) -> Optional[float]:
        try:
            return os.stat(path).st_mtime
        except OSError:
            return None
