"""Watch beats.jsonl and rebuild the cache when it changes."""

import threading
import time
from pathlib import Path

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer
from rich.console import Console

from .cache.migration import refresh_cache
from .errors import BTVError
from .ingest.loader import BEATS_FILE

console = Console(stderr=True)


class BeatsLogHandler(FileSystemEventHandler):
    """Collects beats.jsonl events and debounces them."""

    def __init__(self, debounce: float = 2.0):
        super().__init__()
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._debounce = debounce
        self._callback = None

    def set_callback(self, callback):
        self._callback = callback

    def _is_log(self, path: str) -> bool:
        return Path(path).name == BEATS_FILE

    def on_created(self, event):
        if not event.is_directory and self._is_log(event.src_path):
            self._schedule()

    def on_modified(self, event):
        if not event.is_directory and self._is_log(event.src_path):
            self._schedule()

    def on_moved(self, event):
        if not event.is_directory and self._is_log(event.dest_path):
            self._schedule()

    def _schedule(self):
        with self._lock:
            if self._timer:
                self._timer.cancel()
            self._timer = threading.Timer(self._debounce, self._flush)
            self._timer.daemon = True
            self._timer.start()

    def _flush(self):
        if self._callback:
            self._callback()


class CacheWatcher:
    """Keeps one .beats directory's cache in step with its log."""

    def __init__(
        self,
        beats_dir: str | Path,
        debounce: float = 2.0,
        preserve_view_stats: bool = False,
        classifier=None,
        extractor=None,
    ):
        self.beats_dir = Path(beats_dir)
        self.preserve_view_stats = preserve_view_stats
        self.classifier = classifier
        self.extractor = extractor
        self.handler = BeatsLogHandler(debounce=debounce)
        self.handler.set_callback(self.rebuild)
        self.observer = Observer()

    def rebuild(self):
        try:
            cache = refresh_cache(
                self.beats_dir,
                preserve_view_stats=self.preserve_view_stats,
                classifier=self.classifier,
                extractor=self.extractor,
            )
        except (BTVError, OSError) as e:
            console.print(f"  [red]✗ Cache rebuild failed: {e}[/]")
            return
        console.print(f"  [green]✓ Cache rebuilt: {len(cache.taxonomies)} beat(s), hash {cache.source_hash}[/]")

    def run(self):
        """Start watching (blocks until Ctrl+C)."""
        self.observer.schedule(self.handler, str(self.beats_dir), recursive=False)
        self.observer.start()

        console.print(f"[bold]Watching {self.beats_dir / BEATS_FILE} for changes... (Ctrl+C to stop)[/]")

        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Stopping watcher...[/]")
            self.observer.stop()
        self.observer.join()
        console.print("[green]✓ Watcher stopped.[/]")
