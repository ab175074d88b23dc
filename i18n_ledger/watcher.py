"""Directory watching by polling file fingerprints on a background thread."""
import logging
import os
import threading
from typing import Callable, Dict, Tuple

logger = logging.getLogger(__name__)

WatchCallback = Callable[[str, str], None]


def _fingerprints(directory: str) -> Dict[str, Tuple[int, int]]:
    result = {}
    try:
        entries = list(os.scandir(directory))
    except OSError as e:
        logger.warning("Could not scan directory '%s': %s", directory, e)
        return result
    for entry in entries:
        try:
            if entry.is_file():
                stat = entry.stat()
                result[entry.name] = (stat.st_mtime_ns, stat.st_size)
        except OSError:
            # The file disappeared between scandir() and stat()
            continue
    return result


class PollingWatcher:
    """
    Poll a directory and report changes as ``(event_type, file_name)``.

    Created and deleted files are reported as ``'rename'`` events, modified
    files as ``'change'`` events. The callback runs on the watcher thread.
    """

    def __init__(self, directory: str, callback: WatchCallback, interval: float = 0.5):
        self.directory = directory
        self.callback = callback
        self.interval = interval
        self._stop_event = threading.Event()
        self._snapshot = _fingerprints(directory)
        self._thread = threading.Thread(target=self._watch_loop, name=f"watch:{directory}", daemon=True)
        self._thread.start()
        logger.debug("Watching '%s' every %.2fs", directory, interval)

    def poll(self) -> None:
        """Compare the directory with the previous scan and emit the differences."""
        current = _fingerprints(self.directory)
        previous = self._snapshot
        self._snapshot = current

        for name in sorted(set(previous) | set(current)):
            if name not in previous or name not in current:
                self._emit('rename', name)
            elif previous[name] != current[name]:
                self._emit('change', name)

    def _emit(self, event_type: str, file_name: str) -> None:
        try:
            self.callback(event_type, file_name)
        except Exception:
            logger.exception("Watch callback failed for '%s'", file_name)

    def _watch_loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            self.poll()

    def close(self) -> None:
        self._stop_event.set()
        if self._thread is not threading.current_thread():
            self._thread.join(timeout=2.0)
        logger.debug("Stopped watching '%s'", self.directory)


def watch_directory(directory: str, callback: WatchCallback, interval: float = 0.5) -> PollingWatcher:
    return PollingWatcher(directory, callback, interval)
