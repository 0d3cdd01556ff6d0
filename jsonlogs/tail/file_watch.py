import logging
import os

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)


class FileEventHandler(FileSystemEventHandler):
    """Forwards events that concern one file to a callback"""

    def __init__(self, target_path, callback=None):
        super().__init__()
        self.target_path = os.path.abspath(target_path)
        self.callback = callback

    def _is_target(self, path) -> bool:
        return bool(path) and os.path.abspath(os.fsdecode(path)) == self.target_path

    def _process_event(self, event_type, event):
        if self.callback:
            self.callback(event_type, self.target_path)

    def on_created(self, event):
        if not event.is_directory and self._is_target(event.src_path):
            self._process_event("created", event)

    def on_modified(self, event):
        if not event.is_directory and self._is_target(event.src_path):
            self._process_event("modified", event)

    def on_deleted(self, event):
        if not event.is_directory and self._is_target(event.src_path):
            self._process_event("deleted", event)

    def on_moved(self, event):
        if event.is_directory:
            return
        if self._is_target(event.src_path):
            self._process_event("deleted", event)
        elif self._is_target(getattr(event, "dest_path", None)):
            self._process_event("created", event)


class FileChangeWatcher:
    """Watches a single file through its parent directory"""

    def __init__(self, file_path, callback=None):
        self.file_path = os.path.abspath(file_path)
        self.observer = Observer()
        self.event_handler = FileEventHandler(self.file_path, callback)
        self.schedule_object = None

    def start(self):
        directory = os.path.dirname(self.file_path)
        if not os.path.isdir(directory):
            logger.warning(f"Directory not found: {directory}")
            return

        self.schedule_object = self.observer.schedule(self.event_handler, directory, recursive=False)
        if not self.observer.is_alive():
            self.observer.start()
        logger.info(f"Started watching: {self.file_path}")

    def stop(self):
        if self.schedule_object is None:
            return
        self.observer.unschedule(self.schedule_object)
        self.schedule_object = None
        if self.observer.is_alive():
            self.observer.stop()
            self.observer.join()
        logger.info(f"Stopped watching: {self.file_path}")

    @property
    def is_watching(self) -> bool:
        return self.schedule_object is not None
